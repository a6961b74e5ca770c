"""Domain models related to AI interactions.

Includes the generation options accepted by content generators and the
structured response they produce.
"""

from dataclasses import dataclass
from typing import Optional

from .common import TokenUsage

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 8192


@dataclass(frozen=True)
class GenerationOptions:
    """Sampling options for a single generation request."""
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS

    def __post_init__(self):
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError(f"temperature must be within [0, 2], got {self.temperature}")
        if self.max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive, got {self.max_tokens}")


@dataclass
class StructuredAIResponse:
    """Structured response from an AI model, including metadata."""
    content: str
    token_usage: Optional[TokenUsage] = None
    model_name: Optional[str] = None # Which model generated the response
    latency_ms: Optional[float] = None # Time taken for the API call
    finish_reason: Optional[str] = None
