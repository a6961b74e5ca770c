"""Error types and classification for throttled calls.

External services fail in many shapes (SDK exceptions carrying
``status_code``, httpx errors carrying ``response.status_code``, plain
exceptions with only a message). ``classify_error`` is the single adapter
that turns any of them into a ``ClassifiedError`` so the dispatcher only
ever looks at an explicit retryable/permanent tag.
"""

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Optional

import groq
import httpx
import openai

logger = logging.getLogger(__name__)

RETRYABLE_MESSAGE_MARKERS = ("network", "timeout", "rate limit")
RATE_LIMIT_STATUS = 429


# --- Custom Exceptions ---

class RateLimiterError(Exception):
    """Base class for errors raised by the rate limiter itself."""


class UnknownServiceError(RateLimiterError):
    """Raised when a unit is submitted for a service that was never configured."""

    def __init__(self, service: str):
        self.service = service
        super().__init__(f"Service '{service}' is not configured.")


class QueueClearedError(RateLimiterError):
    """Settles units discarded by clear_queue() or shutdown()."""

    def __init__(self, service: str):
        self.service = service
        super().__init__(f"Request cancelled: queue for '{service}' was cleared.")


class UnitTimeoutError(RateLimiterError):
    """Raised when a unit of work exceeds its timeout. Always retryable."""

    def __init__(self, service: str, timeout: float):
        self.service = service
        self.timeout = timeout
        super().__init__(f"Request to '{service}' timed out after {timeout:.2f}s.")


class MaxRetryError(RateLimiterError):
    """Exception raised when max retries are exceeded."""

    def __init__(self, original_exception: BaseException, attempts: int):
        self.original_exception = original_exception
        self.attempts = attempts
        super().__init__(f"Max retries ({attempts}) exceeded. Last error: {original_exception}")


# --- Classification ---

class ErrorKind(str, enum.Enum):
    RETRYABLE = "retryable"
    PERMANENT = "permanent"


@dataclass(frozen=True)
class ClassifiedError:
    """An external-service error tagged with how the dispatcher must treat it."""
    kind: ErrorKind
    error: BaseException
    status_code: Optional[int] = None

    @property
    def retryable(self) -> bool:
        return self.kind is ErrorKind.RETRYABLE


# Transport-level failures are retryable whatever their message says
TRANSIENT_EXCEPTIONS = (
    UnitTimeoutError,
    asyncio.TimeoutError,
    TimeoutError,
    ConnectionError,
    httpx.TimeoutException,
    httpx.NetworkError,
    openai.APIConnectionError,
    groq.APIConnectionError,
)


def extract_status_code(error: BaseException) -> Optional[int]:
    """Finds an HTTP status on the error, checking the common attribute shapes."""
    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    if response is not None:
        for attr in ("status_code", "status"):
            value = getattr(response, attr, None)
            if isinstance(value, int):
                return value
    return None


def classify_error(error: BaseException) -> ClassifiedError:
    """Classifies an error raised by a unit of work.

    Retryable iff the message mentions a network problem, a timeout or a rate
    limit, the status is 429 or 5xx, or the error is a known transport failure.
    Everything else is permanent.
    """
    status = extract_status_code(error)
    message = str(error).lower()

    retryable = (
        isinstance(error, TRANSIENT_EXCEPTIONS)
        or any(marker in message for marker in RETRYABLE_MESSAGE_MARKERS)
        or status == RATE_LIMIT_STATUS
        or (status is not None and 500 <= status < 600)
    )
    kind = ErrorKind.RETRYABLE if retryable else ErrorKind.PERMANENT
    logger.debug(f"Classified {type(error).__name__} (status={status}) as {kind.value}")
    return ClassifiedError(kind=kind, error=error, status_code=status)
