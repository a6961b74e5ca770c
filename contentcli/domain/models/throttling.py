"""Domain models for per-service request throttling.

A service is a named external dependency (generation API, search API,
forum API) with its own sliding-window request budget and retry policy.
"""

import enum
from dataclasses import dataclass
from typing import Optional

from .common import ServiceName

# Default policy values shared by every service unless overridden
DEFAULT_BACKOFF_MULTIPLIER = 2.0
DEFAULT_MAX_BACKOFF_SECONDS = 16.0
DEFAULT_BASE_BACKOFF_SECONDS = 1.0
DEFAULT_JITTER_SECONDS = 1.0
DEFAULT_MAX_RETRIES = 5

# Well-known service names
LLM_SERVICE = ServiceName("llm")
SERPAPI_SERVICE = ServiceName("serpapi")
REDDIT_SERVICE = ServiceName("reddit")


@dataclass(frozen=True)
class ServiceConfig:
    """Throttling parameters for one service. Immutable once created.

    Attributes:
        name: Service name used as the registry key.
        max_requests: Maximum calls issued within any window.
        window_seconds: Length of the sliding window.
        backoff_multiplier: Growth factor of the retry delay per attempt.
        max_backoff_seconds: Ceiling applied before jitter is added.
        max_retries: Retries allowed for a retryable failure before giving up.
        timeout_seconds: Optional limit on a single call; expiry is retryable.
        base_backoff_seconds: Delay for attempt 0 before growth.
        jitter_seconds: Upper bound of the random delay added to each backoff.
    """
    name: ServiceName
    max_requests: int
    window_seconds: float
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER
    max_backoff_seconds: float = DEFAULT_MAX_BACKOFF_SECONDS
    max_retries: int = DEFAULT_MAX_RETRIES
    timeout_seconds: Optional[float] = None
    base_backoff_seconds: float = DEFAULT_BASE_BACKOFF_SECONDS
    jitter_seconds: float = DEFAULT_JITTER_SECONDS

    def __post_init__(self):
        if not self.name:
            raise ValueError("Service name must not be empty.")
        if self.max_requests <= 0 or self.window_seconds <= 0:
            raise ValueError("Max requests and window must be positive.")
        if self.backoff_multiplier < 1:
            raise ValueError("Backoff multiplier must be >= 1.")
        if self.max_backoff_seconds < 0 or self.base_backoff_seconds < 0 or self.jitter_seconds < 0:
            raise ValueError("Backoff delays and jitter must be non-negative.")
        if self.max_retries < 0:
            raise ValueError("Max retries must be non-negative.")
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError("Timeout must be positive when set.")


DEFAULT_SERVICE_CONFIGS = {
    LLM_SERVICE: ServiceConfig(name=LLM_SERVICE, max_requests=15, window_seconds=60.0),
    SERPAPI_SERVICE: ServiceConfig(name=SERPAPI_SERVICE, max_requests=10, window_seconds=60.0),
    REDDIT_SERVICE: ServiceConfig(name=REDDIT_SERVICE, max_requests=60, window_seconds=60.0),
}


class UnitState(str, enum.Enum):
    """Lifecycle of a queued unit of work."""
    PENDING = "pending"
    ACTIVE = "active"
    RETRY_SCHEDULED = "retry_scheduled"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ServiceStats:
    """Read-only snapshot of a service's throttling state."""
    service: ServiceName
    queue_length: int
    recent_requests: int
    can_proceed: bool
    delay_until_next_slot: float
    pending_retries: int = 0
    draining: bool = False
