"""Application service for rate-limited text generation."""

import logging
from typing import Any, Optional

from contentcli.domain.interfaces.ai_model import ContentGenerator
from contentcli.domain.models.ai import GenerationOptions
from contentcli.domain.models.common import AIResponse, PromptText
from contentcli.domain.models.throttling import LLM_SERVICE
from contentcli.infrastructure.parsing.json_response import parse_json_response
from contentcli.infrastructure.resilience.rate_limiter import RateLimiterRegistry

logger = logging.getLogger(__name__)


class GenerationService:
    """Sends prompts to the content generator under the 'llm' rate limit."""

    def __init__(self, generator: ContentGenerator, rate_limiter: RateLimiterRegistry, timeout: Optional[float] = None):
        """Initializes the service.

        Args:
            generator: Provider client used for every prompt.
            rate_limiter: Registry charging each call to the 'llm' service.
            timeout: Optional per-call timeout; the service's own timeout applies if None.
        """
        self.generator = generator
        self.rate_limiter = rate_limiter
        self.timeout = timeout

    async def generate(self, prompt: PromptText, options: Optional[GenerationOptions] = None) -> AIResponse:
        if not prompt or not prompt.strip():
            raise ValueError("Prompt must not be empty.")
        logger.info(f"Generating with {self.generator.provider_name} ({len(prompt)} chars prompt)")
        text = await self.rate_limiter.execute(
            LLM_SERVICE, lambda: self.generator.generate_content(prompt, options), timeout=self.timeout
        )
        return AIResponse(text)

    async def generate_json(self, prompt: PromptText, options: Optional[GenerationOptions] = None) -> Optional[Any]:
        """Generates and parses a JSON answer. None when the model's output is not JSON."""
        text = await self.generate(prompt, options)
        parsed = parse_json_response(text)
        if parsed is None:
            logger.warning("Model response did not contain valid JSON.")
        return parsed
