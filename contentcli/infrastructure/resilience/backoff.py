"""Exponential backoff with additive jitter."""

import random
from typing import Callable

BASE_DELAY_SECONDS = 1.0
MAX_JITTER_SECONDS = 1.0


def compute_delay(
    attempt: int,
    multiplier: float,
    ceiling: float,
    base_delay: float = BASE_DELAY_SECONDS,
    jitter: float = MAX_JITTER_SECONDS,
    rng: Callable[[], float] = random.random,
) -> float:
    """Calculates the delay before retry number ``attempt`` (zero-indexed).

    delay = min(base_delay * multiplier ** attempt, ceiling) + U[0, jitter)

    Args:
        attempt: Retries already performed for the unit.
        multiplier: Growth factor per attempt.
        ceiling: Maximum delay before jitter.
        base_delay: Delay for attempt 0 before jitter.
        jitter: Upper bound of the random component.
        rng: Source of uniform values in [0, 1).

    Returns:
        Delay in seconds.
    """
    if attempt < 0:
        raise ValueError("attempt must be non-negative")
    # multiplier ** attempt overflows float for very large attempts
    try:
        exponential = base_delay * (multiplier ** attempt)
    except OverflowError:
        exponential = ceiling
    return min(exponential, ceiling) + rng() * jitter
