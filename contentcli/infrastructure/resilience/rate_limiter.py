"""Per-service rate-limited request scheduler.

Serializes and throttles outbound calls to external services (generation
API, search API, forum API). Each registered service owns a sliding window,
a FIFO queue of pending units and a single worker task that drains it.
Retryable failures are re-queued at the front of the queue after an
exponential backoff; permanent failures and exhausted retries settle the
caller's future with an error. Every submitted unit settles exactly once.

All methods must be called from the event loop thread: queue appends and
worker start/stop never straddle an ``await``, which is what keeps a single
worker per service without a lock.
"""

import asyncio
import collections
import dataclasses
import functools
import itertools
import logging
import random
import time
from typing import (
    Any, Awaitable, Callable, Deque, Dict, Iterable, List, Optional, Tuple, TypeVar,
)

from contentcli.domain.events.api_events import (
    CallDeferred, CallIssued, DomainEvent, RetryScheduled, UnitCancelled,
    UnitEnqueued, UnitFailed, UnitSucceeded,
)
from contentcli.domain.models.common import ServiceName
from contentcli.domain.models.throttling import (
    DEFAULT_SERVICE_CONFIGS, ServiceConfig, ServiceStats, UnitState,
)
from contentcli.infrastructure.resilience.backoff import compute_delay
from contentcli.infrastructure.resilience.errors import (
    ClassifiedError, MaxRetryError, QueueClearedError, RateLimiterError,
    UnitTimeoutError, UnknownServiceError, classify_error,
)
from contentcli.infrastructure.resilience.window import WindowTracker

logger = logging.getLogger(__name__)

T = TypeVar("T")
UnitOfWork = Callable[[], Awaitable[Any]]
EventListener = Callable[[DomainEvent], None]
ErrorClassifier = Callable[[BaseException], ClassifiedError]


@dataclasses.dataclass(eq=False)
class QueuedUnit:
    """A pending unit of work and the future its caller awaits."""
    unit_id: int
    work: UnitOfWork
    future: asyncio.Future
    enqueued_at: float
    timeout: Optional[float] = None
    state: UnitState = UnitState.PENDING


class ServiceState:
    """Mutable throttling state of one service. Owned by the registry."""

    def __init__(self, config: ServiceConfig, clock: Callable[[], float]):
        self.config = config
        self.window = WindowTracker(config, clock)
        self.queue: Deque[QueuedUnit] = collections.deque()
        # RetryState: attempts per unit, keyed by the unit's id within this service
        self.retry_counts: Dict[int, int] = {}
        self.retry_handles: Dict[int, Tuple[asyncio.TimerHandle, QueuedUnit]] = {}
        self.worker: Optional[asyncio.Task] = None

    @property
    def draining(self) -> bool:
        return self.worker is not None and not self.worker.done()

    def reconfigure(self, config: ServiceConfig) -> None:
        self.config = config
        self.window.config = config


class RateLimiterRegistry:
    """Owns one ServiceState per service and dispatches units of work."""

    def __init__(
        self,
        configs: Optional[Iterable[ServiceConfig]] = None,
        classifier: ErrorClassifier = classify_error,
        event_listener: Optional[EventListener] = None,
        clock: Callable[[], float] = time.monotonic,
        rng: Callable[[], float] = random.random,
    ):
        """Initializes the registry.

        Args:
            configs: Services to register. Defaults to llm/serpapi/reddit.
            classifier: Adapter mapping an exception to retryable/permanent.
            event_listener: Optional callback receiving domain events.
            clock: Monotonic time source for the sliding windows.
            rng: Uniform [0, 1) source used for backoff jitter.
        """
        self._services: Dict[str, ServiceState] = {}
        self._classifier = classifier
        self._event_listener = event_listener
        self._clock = clock
        self._rng = rng
        self._ids = itertools.count(1)
        self._closed = False

        for config in (DEFAULT_SERVICE_CONFIGS.values() if configs is None else configs):
            self.configure(config.name, config)
        logger.info(f"RateLimiterRegistry initialized with services: {', '.join(self.services()) or 'none'}")

    # --- Configuration ---

    def configure(self, service_name: str, config: ServiceConfig) -> None:
        """Registers or replaces a service's throttling parameters.

        Replacing a config takes effect at the next window check; timestamps
        already recorded are kept and judged against the new window.
        """
        if config.name != service_name:
            config = dataclasses.replace(config, name=ServiceName(service_name))
        state = self._services.get(service_name)
        if state is None:
            self._services[service_name] = ServiceState(config, self._clock)
        else:
            state.reconfigure(config)
        logger.info(
            f"Rate limit for '{service_name}': {config.max_requests} requests / "
            f"{config.window_seconds:g}s, max_retries={config.max_retries}"
        )

    def services(self) -> List[str]:
        return sorted(self._services)

    def _get_state(self, service_name: str) -> ServiceState:
        state = self._services.get(service_name)
        if state is None:
            raise UnknownServiceError(service_name)
        return state

    # --- Public dispatch API ---

    async def execute(
        self, service_name: str, unit_of_work: Callable[[], Awaitable[T]], timeout: Optional[float] = None
    ) -> T:
        """Runs ``unit_of_work`` under the service's throttling policy.

        Args:
            service_name: Registered service to charge the call to.
            unit_of_work: Zero-argument callable returning an awaitable. It is
                called again for every retry.
            timeout: Optional per-call timeout overriding the service's.

        Returns:
            The unit's result.

        Raises:
            UnknownServiceError: If the service was never configured.
            QueueClearedError: If the unit was discarded before completing.
            MaxRetryError: If a retryable failure persisted past max_retries.
            Exception: The unit's own error when it is not retryable.
        """
        if self._closed:
            raise RateLimiterError("Rate limiter has been shut down.")
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be positive")
        state = self._get_state(service_name)

        loop = asyncio.get_running_loop()
        unit = QueuedUnit(
            unit_id=next(self._ids),
            work=unit_of_work,
            future=loop.create_future(),
            enqueued_at=time.time(),
            timeout=timeout,
        )
        state.queue.append(unit)
        self._dispatch_event(UnitEnqueued(service=service_name, unit_id=unit.unit_id, queue_length=len(state.queue)))
        self._ensure_worker(service_name, state)
        return await unit.future

    async def call(
        self,
        service_name: str,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> T:
        """Convenience wrapper: execute(service_name, lambda: func(*args, **kwargs)).

        ``timeout`` is keyword-only and belongs to the rate limiter, never to
        ``func``. Bind a target's own ``timeout`` argument beforehand, e.g.
        ``call(name, functools.partial(func, timeout=5))``.
        """
        return await self.execute(service_name, functools.partial(func, *args, **kwargs), timeout=timeout)

    def queue_length(self, service_name: str) -> int:
        """Units waiting in the queue (excludes the active unit and scheduled retries)."""
        return len(self._get_state(service_name).queue)

    def stats(self, service_name: str) -> ServiceStats:
        """Read-only snapshot of a service's throttling state."""
        state = self._get_state(service_name)
        can_proceed = state.window.can_proceed()
        return ServiceStats(
            service=ServiceName(service_name),
            queue_length=len(state.queue),
            recent_requests=state.window.recent_requests(),
            can_proceed=can_proceed,
            delay_until_next_slot=0.0 if can_proceed else state.window.delay_until_next_slot(),
            pending_retries=len(state.retry_handles),
            draining=state.draining,
        )

    def clear_queue(self, service_name: str) -> int:
        """Discards every pending unit of a service, settling each with QueueClearedError.

        Units waiting on a retry timer are discarded as well. The unit that is
        currently executing is left alone.

        Returns:
            Number of units cancelled.
        """
        state = self._get_state(service_name)
        cancelled = 0
        while state.queue:
            cancelled += self._cancel_unit(service_name, state, state.queue.popleft(), "queue cleared")
        for handle, unit in list(state.retry_handles.values()):
            handle.cancel()
            cancelled += self._cancel_unit(service_name, state, unit, "queue cleared during backoff")
        state.retry_handles.clear()
        if cancelled:
            logger.info(f"Cleared {cancelled} pending request(s) for '{service_name}'.")
        return cancelled

    async def shutdown(self) -> None:
        """Cancels every pending unit and stops all workers."""
        if self._closed:
            return
        self._closed = True
        workers = []
        for service_name, state in self._services.items():
            self.clear_queue(service_name)
            if state.draining:
                state.worker.cancel()
                workers.append(state.worker)
        if workers:
            await asyncio.gather(*workers, return_exceptions=True)
        logger.info("RateLimiterRegistry shut down.")

    async def __aenter__(self) -> "RateLimiterRegistry":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.shutdown()

    # --- Worker ---

    def _ensure_worker(self, service_name: str, state: ServiceState) -> None:
        """Starts the service's worker unless one is already draining."""
        if state.draining or self._closed:
            return
        state.worker = asyncio.get_running_loop().create_task(
            self._drain(service_name, state), name=f"rate-limiter:{service_name}"
        )
        logger.debug(f"Started worker for '{service_name}'.")

    async def _drain(self, service_name: str, state: ServiceState) -> None:
        """Processes the service's queue one unit at a time until it is empty."""
        try:
            while state.queue:
                if not state.window.can_proceed():
                    wait_time = state.window.delay_until_next_slot()
                    self._dispatch_event(CallDeferred(service=service_name, wait_time_seconds=wait_time))
                    logger.debug(f"Rate limit reached for '{service_name}'. Waiting {wait_time:.2f}s.")
                    await asyncio.sleep(wait_time)
                    continue

                unit = state.queue.popleft()
                if unit.future.done():
                    # Caller stopped waiting; skip without spending a slot
                    state.retry_counts.pop(unit.unit_id, None)
                    unit.state = UnitState.CANCELLED
                    continue

                state.window.record_call()
                await self._run_unit(service_name, state, unit)
        finally:
            if state.worker is asyncio.current_task():
                state.worker = None
            logger.debug(f"Worker for '{service_name}' stopped.")
            # A unit that raised CancelledError on its own must not strand the rest
            if state.queue and not self._closed:
                self._ensure_worker(service_name, state)

    async def _run_unit(self, service_name: str, state: ServiceState, unit: QueuedUnit) -> None:
        attempt = state.retry_counts.get(unit.unit_id, 0)
        unit.state = UnitState.ACTIVE
        self._dispatch_event(CallIssued(service=service_name, unit_id=unit.unit_id, attempt_number=attempt + 1))

        timeout = unit.timeout if unit.timeout is not None else state.config.timeout_seconds
        start_time = time.perf_counter()
        try:
            if timeout is not None:
                try:
                    result = await asyncio.wait_for(unit.work(), timeout)
                except asyncio.TimeoutError as e:
                    raise UnitTimeoutError(service_name, timeout) from e
            else:
                result = await unit.work()
        except asyncio.CancelledError:
            self._cancel_unit(service_name, state, unit, "worker cancelled")
            raise
        except Exception as e:
            self._handle_failure(service_name, state, unit, e)
            return

        latency_ms = (time.perf_counter() - start_time) * 1000
        state.retry_counts.pop(unit.unit_id, None)
        unit.state = UnitState.SUCCEEDED
        if not unit.future.done():
            unit.future.set_result(result)
        self._dispatch_event(UnitSucceeded(service=service_name, unit_id=unit.unit_id, latency_ms=latency_ms))

    def _handle_failure(self, service_name: str, state: ServiceState, unit: QueuedUnit, error: Exception) -> None:
        classified = self._classifier(error)
        attempts = state.retry_counts.get(unit.unit_id, 0)
        config = state.config

        if self._closed:
            # No worker will run again; settle instead of scheduling a retry
            self._cancel_unit(service_name, state, unit, "registry shut down")
            return

        if classified.retryable and attempts < config.max_retries and not unit.future.done():
            delay = compute_delay(
                attempts,
                config.backoff_multiplier,
                config.max_backoff_seconds,
                base_delay=config.base_backoff_seconds,
                jitter=config.jitter_seconds,
                rng=self._rng,
            )
            state.retry_counts[unit.unit_id] = attempts + 1
            unit.state = UnitState.RETRY_SCHEDULED
            logger.warning(
                f"Retrying {service_name} request (attempt {attempts + 1}/{config.max_retries}) "
                f"after {delay:.2f}s: {type(error).__name__}: {error}"
            )
            self._dispatch_event(RetryScheduled(
                service=service_name, unit_id=unit.unit_id, attempt_number=attempts + 1,
                delay_seconds=delay, error_message=str(error),
            ))
            handle = asyncio.get_running_loop().call_later(delay, self._requeue_front, service_name, unit)
            state.retry_handles[unit.unit_id] = (handle, unit)
            return

        state.retry_counts.pop(unit.unit_id, None)
        unit.state = UnitState.FAILED
        if classified.retryable:
            final_error: BaseException = MaxRetryError(error, attempts)
            final_error.__cause__ = error
            logger.error(f"Max retries ({attempts}) reached for {service_name} request. Last error: {error}")
        else:
            final_error = error
            logger.error(f"Non-retryable error from {service_name} (status={classified.status_code}): {error}")
        if not unit.future.done():
            unit.future.set_exception(final_error)
        self._dispatch_event(UnitFailed(
            service=service_name, unit_id=unit.unit_id, error_type=type(error).__name__,
            error_message=str(error), retries=attempts,
        ))

    def _requeue_front(self, service_name: str, unit: QueuedUnit) -> None:
        """Timer callback: puts a unit whose backoff elapsed at the head of the queue."""
        state = self._services.get(service_name)
        if state is None:
            return
        state.retry_handles.pop(unit.unit_id, None)
        if self._closed:
            self._cancel_unit(service_name, state, unit, "registry shut down")
            return
        if unit.future.done():
            state.retry_counts.pop(unit.unit_id, None)
            unit.state = UnitState.CANCELLED
            return
        unit.state = UnitState.PENDING
        state.queue.appendleft(unit)
        self._ensure_worker(service_name, state)

    def _cancel_unit(self, service_name: str, state: ServiceState, unit: QueuedUnit, reason: str) -> int:
        state.retry_counts.pop(unit.unit_id, None)
        unit.state = UnitState.CANCELLED
        if unit.future.done():
            return 0
        unit.future.set_exception(QueueClearedError(service_name))
        self._dispatch_event(UnitCancelled(service=service_name, unit_id=unit.unit_id, reason=reason))
        return 1

    # --- Events ---

    def _dispatch_event(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if self._event_listener is None:
            return
        try:
            self._event_listener(event)
        except Exception as e:
            logger.error(f"Event listener failed on {type(event).__name__}: {e}", exc_info=True)
