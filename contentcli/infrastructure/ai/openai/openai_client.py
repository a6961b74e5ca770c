"""Concrete implementation of the ContentGenerator interface using the OpenAI API.

Hides the specifics of the OpenAI client library and translates requests/
responses between the domain model and the OpenAI API format. Any
OpenAI-compatible endpoint (e.g. Gemini's) can be targeted through base_url.
"""

import asyncio
import logging
import os
import time
from typing import Any, Dict, Optional

from openai import APIError, AuthenticationError, OpenAI, RateLimitError

from contentcli.domain.interfaces.ai_model import ContentGenerator
from contentcli.domain.models.ai import GenerationOptions, StructuredAIResponse
from contentcli.domain.models.common import TokenUsage

logger = logging.getLogger(__name__)


def parse_chat_completion(response: Any, provider: str) -> StructuredAIResponse:
    """Parses a chat completion object (OpenAI or Groq shape)."""
    try:
        choice = response.choices[0]
        content = choice.message.content or ""

        token_usage = None
        if response.usage:
            token_usage = TokenUsage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens
            )

        return StructuredAIResponse(
            content=content,
            token_usage=token_usage,
            model_name=response.model,
            finish_reason=choice.finish_reason,
        )
    except (AttributeError, IndexError, KeyError, TypeError) as e:
        logger.error(f"Failed to parse {provider} response structure: {e}", exc_info=True)
        logger.debug(f"Raw {provider} response object: {response}")
        raise ValueError(f"Invalid response structure from {provider}: {e}") from e


class OpenAIContentClient(ContentGenerator):
    """OpenAI implementation of the ContentGenerator interface."""

    provider_name = "openai"
    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """Initializes the OpenAI client.

        Args:
            api_key: OpenAI API key. Reads from OPENAI_API_KEY env var if None.
            model: The default model to use.
            base_url: Optional OpenAI-compatible endpoint.
            timeout: Request timeout in seconds. The SDK default applies if None.
        """
        effective_api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not effective_api_key:
            raise ValueError("OpenAI API key not provided and not found in environment variables.")

        # Retries are owned by the rate limiter
        client_kwargs: Dict[str, Any] = {"api_key": effective_api_key, "base_url": base_url, "max_retries": 0}
        # A call abandoned by the rate limiter keeps its thread until this timeout
        if timeout is not None:
            client_kwargs["timeout"] = timeout
        self.client = OpenAI(**client_kwargs)
        self.model = model or self.DEFAULT_MODEL
        logger.info(f"OpenAIContentClient initialized for model: {self.model}" + (f" at {base_url}" if base_url else ""))

    async def generate(self, prompt: str, options: Optional[GenerationOptions] = None) -> StructuredAIResponse:
        """Sends a prompt to the configured model asynchronously."""
        options = options or GenerationOptions()
        logger.debug(f"Sending prompt ({len(prompt)} chars) to OpenAI model: {self.model}")
        start_time = time.perf_counter()
        try:
            # Use asyncio.to_thread for the synchronous SDK call
            response = await asyncio.to_thread(
                self.client.chat.completions.create,
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=options.temperature,
                max_tokens=options.max_tokens,
            )
        except AuthenticationError as e:
            logger.error(f"OpenAI Authentication Error: {e}")
            raise
        except RateLimitError as e:
            logger.warning(f"OpenAI Rate Limit Error encountered: {e}")
            raise
        except APIError as e:
            logger.warning(f"OpenAI API Error encountered (Status: {getattr(e, 'status_code', 'N/A')}): {e}")
            raise

        latency_ms = (time.perf_counter() - start_time) * 1000
        structured_response = parse_chat_completion(response, "OpenAI")
        structured_response.latency_ms = latency_ms
        logger.debug(f"Received response from OpenAI in {latency_ms:.2f}ms. Usage: {structured_response.token_usage}")
        return structured_response
