"""Concrete implementation of the ContentGenerator interface using the Groq API."""

import asyncio
import logging
import os
import time
from typing import Any, Dict, Optional

from groq import APIError, AuthenticationError, Groq, RateLimitError

from contentcli.domain.interfaces.ai_model import ContentGenerator
from contentcli.domain.models.ai import GenerationOptions, StructuredAIResponse
from contentcli.infrastructure.ai.openai.openai_client import parse_chat_completion

logger = logging.getLogger(__name__)


class GroqContentClient(ContentGenerator):
    """Groq implementation of the ContentGenerator interface."""

    provider_name = "groq"
    DEFAULT_MODEL = "llama-3.3-70b-versatile"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, timeout: Optional[float] = None):
        """Initializes the Groq client.

        Args:
            api_key: Groq API key. Reads from GROQ_API_KEY env var if None.
            model: The default Groq model to use.
            timeout: Request timeout in seconds. The SDK default applies if None.
        """
        effective_api_key = api_key or os.getenv("GROQ_API_KEY")
        if not effective_api_key:
            raise ValueError("Groq API key not provided and not found in environment variables.")

        client_kwargs: Dict[str, Any] = {"api_key": effective_api_key, "max_retries": 0}
        if timeout is not None:
            client_kwargs["timeout"] = timeout
        self.client = Groq(**client_kwargs)
        self.model = model or self.DEFAULT_MODEL
        logger.info(f"GroqContentClient initialized for model: {self.model}")

    async def generate(self, prompt: str, options: Optional[GenerationOptions] = None) -> StructuredAIResponse:
        """Sends a prompt to the configured Groq model asynchronously."""
        options = options or GenerationOptions()
        logger.debug(f"Sending prompt ({len(prompt)} chars) to Groq model: {self.model}")
        start_time = time.perf_counter()
        try:
            # The official Groq SDK client is synchronous
            chat_completion = await asyncio.to_thread(
                self.client.chat.completions.create,
                messages=[{"role": "user", "content": prompt}],
                model=self.model,
                temperature=options.temperature,
                max_tokens=options.max_tokens,
            )
        except AuthenticationError as e:
            logger.error(f"Groq Authentication Error: {e}")
            raise
        except RateLimitError as e:
            logger.warning(f"Groq Rate Limit Error encountered: {e}")
            raise
        except APIError as e:
            logger.warning(f"Groq API Error encountered (Status: {getattr(e, 'status_code', 'N/A')}): {e}")
            raise

        latency_ms = (time.perf_counter() - start_time) * 1000
        structured_response = parse_chat_completion(chat_completion, "Groq")
        structured_response.latency_ms = latency_ms
        logger.debug(f"Received response from Groq in {latency_ms:.2f}ms. Usage: {structured_response.token_usage}")
        return structured_response
