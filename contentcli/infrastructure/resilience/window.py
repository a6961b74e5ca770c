"""Sliding-window request tracking for a single service.

Decides whether a new call may be issued right now and, if not, how long
until a slot frees up. Timestamps older than the window are pruned lazily
on every check.
"""

import collections
import logging
import time
from typing import Callable, Deque

from contentcli.domain.models.throttling import ServiceConfig

logger = logging.getLogger(__name__)


class WindowTracker:
    """Records issued calls for one service using a sliding window."""

    def __init__(self, config: ServiceConfig, clock: Callable[[], float] = time.monotonic):
        """Initializes the tracker.

        Args:
            config: Throttling parameters of the service.
            clock: Monotonic time source in seconds (injectable for tests).
        """
        self.config = config
        self._clock = clock
        # Use a deque to efficiently store timestamps and remove old ones
        self.timestamps: Deque[float] = collections.deque()

    def _prune_timestamps(self, now: float) -> None:
        """Removes timestamps that slid out of the window."""
        while self.timestamps and now - self.timestamps[0] >= self.config.window_seconds:
            self.timestamps.popleft()

    def can_proceed(self) -> bool:
        """Checks if a call can be issued without exceeding the limit."""
        self._prune_timestamps(self._clock())
        return len(self.timestamps) < self.config.max_requests

    def record_call(self) -> None:
        """Records that a call is being issued now."""
        now = self._clock()
        self._prune_timestamps(now)
        if len(self.timestamps) >= self.config.max_requests:
            # Only possible if can_proceed() was not consulted first
            logger.warning(f"Recording call for '{self.config.name}' while window is already full.")
        self.timestamps.append(now)

    def delay_until_next_slot(self) -> float:
        """Seconds until the oldest call in a saturated window expires. 0 if a slot is free."""
        now = self._clock()
        self._prune_timestamps(now)
        if len(self.timestamps) < self.config.max_requests:
            return 0.0
        # The oldest entry is the one that has to slide out
        oldest = self.timestamps[0]
        return max(0.0, self.config.window_seconds - (now - oldest))

    def recent_requests(self) -> int:
        """Number of calls recorded within the current window."""
        self._prune_timestamps(self._clock())
        return len(self.timestamps)
