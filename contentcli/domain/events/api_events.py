"""Domain Events related to throttled API calls.

Emitted by the rate limiter when units are queued, deferred, issued,
retried, settled or cancelled.
"""

from dataclasses import dataclass, field
import time
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


@dataclass
class UnitEnqueued(DomainEvent):
    """Event triggered when a unit of work joins a service queue."""
    service: str
    unit_id: int
    queue_length: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class CallDeferred(DomainEvent):
    """Event triggered when the window is saturated and the worker waits."""
    service: str
    wait_time_seconds: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class CallIssued(DomainEvent):
    """Event triggered when a unit is about to be executed."""
    service: str
    unit_id: int
    attempt_number: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a retry is scheduled for a failed unit."""
    service: str
    unit_id: int
    attempt_number: int
    delay_seconds: float
    error_message: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class UnitSucceeded(DomainEvent):
    """Event triggered when a unit resolves."""
    service: str
    unit_id: int
    latency_ms: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class UnitFailed(DomainEvent):
    """Event triggered when a unit fails definitively."""
    service: str
    unit_id: int
    error_type: str
    error_message: str
    retries: int = 0
    timestamp: float = field(default_factory=time.time)


@dataclass
class UnitCancelled(DomainEvent):
    """Event triggered when a pending unit is discarded."""
    service: str
    unit_id: int
    reason: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
