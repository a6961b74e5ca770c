"""API Resilience Implementations.

Per-service sliding-window throttling, request queueing, error
classification and retries with exponential backoff.
Bounded Context: API Resilience
"""

from contentcli.infrastructure.resilience.errors import (
    ClassifiedError,
    ErrorKind,
    MaxRetryError,
    QueueClearedError,
    RateLimiterError,
    UnitTimeoutError,
    UnknownServiceError,
    classify_error,
)
from contentcli.infrastructure.resilience.rate_limiter import RateLimiterRegistry

__all__ = [
    "ClassifiedError",
    "ErrorKind",
    "MaxRetryError",
    "QueueClearedError",
    "RateLimiterError",
    "RateLimiterRegistry",
    "UnitTimeoutError",
    "UnknownServiceError",
    "classify_error",
]
