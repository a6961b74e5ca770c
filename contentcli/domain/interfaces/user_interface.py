"""Interface for interacting with the user (output only).

Defines the contract for displaying information, errors, warnings and
research/throttling results, allowing different UI implementations
(e.g., console, test doubles).
"""

import abc
from typing import Any, List

from contentcli.domain.models.research import KeywordResearch, ResearchOutcome, SerpData
from contentcli.domain.models.throttling import ServiceStats


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_output(self, output: str, **kwargs: Any) -> None:
        """Displays standard output to the user.

        Args:
            output: The text to display (rendered as Markdown where supported).
            **kwargs: Additional arguments for formatting (e.g., title).
        """
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user."""
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass

    @abc.abstractmethod
    def display_service_stats(self, stats: List[ServiceStats]) -> None:
        """Displays a throttling summary, one row per service."""
        pass

    @abc.abstractmethod
    def display_research(self, research: KeywordResearch) -> None:
        """Displays the combined research for one keyword."""
        pass

    @abc.abstractmethod
    def display_research_summary(self, outcomes: List[ResearchOutcome]) -> None:
        """Displays per-keyword success/failure of a batch research run."""
        pass

    @abc.abstractmethod
    def display_list(self, title: str, items: List[str]) -> None:
        """Displays a titled, numbered list of short items."""
        pass

    def display_serp(self, serp: SerpData) -> None:
        """Displays SERP data on its own. Optional for implementations."""
        pass
