"""Interface for content generation models (LLMs).

Defines the contract for sending a prompt to different AI providers
(e.g., OpenAI-compatible endpoints, Groq).
"""

import abc
from typing import Optional

from ..models.ai import GenerationOptions, StructuredAIResponse


class ContentGenerator(abc.ABC):
    """Abstract Base Class for text generation."""

    provider_name: str = "unknown"

    @abc.abstractmethod
    async def generate(
        self, prompt: str, options: Optional[GenerationOptions] = None
    ) -> StructuredAIResponse:
        """Sends a single prompt to the model asynchronously.

        Args:
            prompt: The full prompt text.
            options: Sampling options; provider defaults are used if None.

        Returns:
            A StructuredAIResponse containing the generated text and metadata.

        Raises:
            Exception: Provider SDK errors are propagated unchanged so the
                rate limiter can classify them.
        """
        pass

    async def generate_content(
        self, prompt: str, options: Optional[GenerationOptions] = None
    ) -> str:
        """Convenience wrapper returning only the generated text."""
        response = await self.generate(prompt, options)
        return response.content
