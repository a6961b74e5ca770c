"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), delegates the work to
the application services and reports results or failures through the
UserInterface.
"""

import json
import logging
from typing import Callable, List, Optional

from contentcli.core.services.generation_service import GenerationService
from contentcli.core.services.research_service import ResearchService
from contentcli.domain.interfaces.cache import CacheService
from contentcli.domain.interfaces.user_interface import UserInterface
from contentcli.domain.models.ai import GenerationOptions
from contentcli.domain.models.common import CachePrefix, PromptText
from contentcli.domain.models.research import ResearchOutcome
from contentcli.infrastructure.resilience.errors import MaxRetryError
from contentcli.infrastructure.resilience.rate_limiter import RateLimiterRegistry

logger = logging.getLogger(__name__)


class CommandHandler:
    """Handles incoming commands and delegates to appropriate services."""

    def __init__(
        self,
        research_service: ResearchService,
        generation_service: Optional[GenerationService],
        rate_limiter: RateLimiterRegistry,
        cache_service: Optional[CacheService],
        ui: UserInterface,
    ):
        self.research_service = research_service
        self.generation_service = generation_service
        self.rate_limiter = rate_limiter
        self.cache_service = cache_service
        self.ui = ui

    async def handle_research(
        self,
        keywords: List[str],
        use_cache: bool = True,
        on_result: Optional[Callable[[ResearchOutcome], None]] = None,
    ) -> bool:
        """Handles the 'research' command for one or many keywords."""
        logger.info(f"Handling 'research' command for {len(keywords)} keyword(s)")
        if not keywords:
            self.ui.display_error("Provide at least one keyword.")
            return False

        if len(keywords) == 1:
            try:
                research = await self.research_service.research_keyword(keywords[0], use_cache=use_cache)
            except Exception as e:
                logger.error(f"Research command failed: {e}", exc_info=True)
                self.ui.display_error(f"Research failed: {e}")
                return False
            self.ui.display_research(research)
            return True

        outcomes = await self.research_service.research_many(keywords, use_cache=use_cache, on_result=on_result)
        self.ui.display_research_summary(outcomes)
        return all(outcome.success for outcome in outcomes)

    async def handle_generate(self, prompt: str, options: GenerationOptions, as_json: bool = False) -> bool:
        """Handles the 'generate' command."""
        logger.info(f"Handling 'generate' command (json={as_json})")
        if self.generation_service is None:
            self.ui.display_error("No content generator is configured. Set OPENAI_API_KEY or GROQ_API_KEY.")
            return False
        try:
            if as_json:
                parsed = await self.generation_service.generate_json(PromptText(prompt), options)
                if parsed is None:
                    self.ui.display_warning("The model did not return valid JSON.")
                    return False
                self.ui.display_output(f"```json\n{json.dumps(parsed, indent=2)}\n```", title="JSON")
            else:
                text = await self.generation_service.generate(PromptText(prompt), options)
                self.ui.display_output(text, title="Generated")
        except MaxRetryError as e:
            logger.error(f"Generation gave up after {e.attempts} retries: {e.original_exception}")
            self.ui.display_error(f"Generation failed after {e.attempts} retries: {e.original_exception}")
            return False
        except Exception as e:
            logger.error(f"Generate command failed: {e}", exc_info=True)
            self.ui.display_error(f"Generation failed: {e}")
            return False
        return True

    def handle_limits(self) -> None:
        """Handles the 'limits' command."""
        stats = [self.rate_limiter.stats(name) for name in self.rate_limiter.services()]
        self.ui.display_service_stats(stats)

    async def handle_trending(self, category: str) -> bool:
        logger.info(f"Handling 'trending' command for category: {category}")
        topics = await self.research_service.trending_topics(category)
        if not topics and self.research_service.serp_client is None:
            self.ui.display_warning("Trending topics need a SerpAPI key (SERPAPI_KEY).")
            return False
        self.ui.display_list(f"Trending in {category}", topics)
        return True

    async def handle_clear_cache(self, prefix: Optional[str] = None) -> bool:
        """Handles the 'clear-cache' command."""
        logger.info(f"Handling 'clear-cache' command for prefix: {prefix or 'all'}")
        if self.cache_service is None:
            self.ui.display_warning("Cache is disabled.")
            return False
        try:
            removed = await self.cache_service.clear(CachePrefix(prefix) if prefix else None)
        except Exception as e:
            logger.error(f"Failed to clear cache: {e}", exc_info=True)
            self.ui.display_error(f"Failed to clear cache: {e}")
            return False
        scope = f"with prefix '{prefix}'" if prefix else "in total"
        self.ui.display_info(f"Removed {removed} cache entries {scope}.")
        return True
