# backend/pricesync/services/circuit_breaker.py
"""
Per-provider circuit breaker.

A provider that keeps timing out or answering 5xx is skipped for a while
instead of being asked again for every investment in the cycle. Skipping
an open provider raises CircuitBreakerOpen, a TransientProviderError, so
the fallback resolver simply moves on to the next adapter.

Only transient provider errors count as failures. A provider that answers
"unknown symbol" is healthy; that answer must not trip its breaker.

States:
    CLOSED    - Normal operation, requests pass through
    OPEN      - Too many failures, requests rejected immediately
    HALF_OPEN - Testing recovery, limited requests allowed

State Transitions:
    CLOSED -> OPEN: When failure count reaches threshold
    OPEN -> HALF_OPEN: After recovery timeout expires
    HALF_OPEN -> CLOSED: When a test request succeeds
    HALF_OPEN -> OPEN: When a test request fails

Usage:
    breaker = CircuitBreaker(name="nse", failure_threshold=5, recovery_timeout=60)

    with breaker:
        quote = await adapter.fetch_quote("INFY")
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from functools import wraps
from typing import Any, Awaitable, Callable, TypeVar

from pricesync.services.exceptions import CircuitBreakerOpen, TransientProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreakerStats:
    """
    Counters for monitoring a breaker (exposed by GET /providers).

    Attributes:
        total_calls: Calls attempted, including rejected ones
        successful_calls: Calls that returned normally
        failed_calls: Calls that raised a counted error
        rejected_calls: Calls refused because the circuit was open
        state_changes: Number of state transitions
    """
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    rejected_calls: int = 0
    state_changes: int = 0


@dataclass
class CircuitBreaker:
    """
    Circuit breaker guarding one provider.

    The lock is a threading.RLock: entering and leaving the breaker never
    awaits, so it is safe to use from coroutines on one event loop and from
    worker threads alike.

    Attributes:
        name: Provider id (used in logs and CircuitBreakerOpen)
        failure_threshold: Consecutive counted failures before opening
        recovery_timeout: Seconds to stay open before testing recovery
        half_open_max_calls: Test calls allowed while half-open
        counted_exceptions: Exception types that count as failures
        clock: Time source (injectable for tests)
    """

    name: str
    failure_threshold: int = 5
    recovery_timeout: float = 60.0
    half_open_max_calls: int = 1
    counted_exceptions: tuple[type[Exception], ...] = (TransientProviderError,)
    clock: Callable[[], float] = time.monotonic

    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _failure_count: int = field(default=0, init=False)
    _opened_at: float = field(default=0.0, init=False)
    _half_open_calls: int = field(default=0, init=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False)
    _stats: CircuitBreakerStats = field(default_factory=CircuitBreakerStats, init=False)

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if self.recovery_timeout < 0:
            raise ValueError("recovery_timeout cannot be negative")
        if self.half_open_max_calls < 1:
            raise ValueError("half_open_max_calls must be at least 1")

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._check_state_transition()
            return self._state

    @property
    def stats(self) -> CircuitBreakerStats:
        """Copy of the current counters."""
        with self._lock:
            return CircuitBreakerStats(**vars(self._stats))

    @property
    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    def _check_state_transition(self) -> None:
        """Move OPEN -> HALF_OPEN once the recovery timeout passed. Caller holds the lock."""
        if self._state == CircuitState.OPEN and self._time_until_recovery() <= 0:
            self._transition_to(CircuitState.HALF_OPEN)

    def _transition_to(self, new_state: CircuitState) -> None:
        old_state = self._state
        self._state = new_state
        self._stats.state_changes += 1

        if new_state == CircuitState.OPEN:
            self._opened_at = self.clock()
        elif new_state == CircuitState.HALF_OPEN:
            self._half_open_calls = 0
        elif new_state == CircuitState.CLOSED:
            self._failure_count = 0

        level = logging.WARNING if new_state == CircuitState.OPEN else logging.INFO
        logger.log(level, f"CircuitBreaker '{self.name}' state change: {old_state.value} -> {new_state.value}")

    def _record_success(self) -> None:
        self._stats.successful_calls += 1
        self._failure_count = 0
        if self._state == CircuitState.HALF_OPEN:
            self._transition_to(CircuitState.CLOSED)

    def _record_failure(self) -> None:
        self._stats.failed_calls += 1

        if self._state == CircuitState.HALF_OPEN:
            self._transition_to(CircuitState.OPEN)
            return

        self._failure_count += 1
        if self._state == CircuitState.CLOSED and self._failure_count >= self.failure_threshold:
            self._transition_to(CircuitState.OPEN)

    def _can_execute(self) -> bool:
        self._check_state_transition()

        if self._state == CircuitState.CLOSED:
            return True
        if self._state == CircuitState.HALF_OPEN and self._half_open_calls < self.half_open_max_calls:
            self._half_open_calls += 1
            return True
        return False

    def _time_until_recovery(self) -> float:
        return max(0.0, self.recovery_timeout - (self.clock() - self._opened_at))

    def reject_if_open(self) -> None:
        """
        Raise if the circuit is open, without reserving a half-open call.

        Raises:
            CircuitBreakerOpen: If the circuit is open
        """
        with self._lock:
            self._check_state_transition()
            if self._state == CircuitState.OPEN:
                self._stats.total_calls += 1
                self._stats.rejected_calls += 1
                raise CircuitBreakerOpen(self.name, self._time_until_recovery())

    def __enter__(self) -> "CircuitBreaker":
        """
        Raises:
            CircuitBreakerOpen: If the circuit is open
        """
        with self._lock:
            self._stats.total_calls += 1
            if not self._can_execute():
                self._stats.rejected_calls += 1
                raise CircuitBreakerOpen(self.name, self._time_until_recovery())
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> bool:
        with self._lock:
            if exc_val is not None and isinstance(exc_val, self.counted_exceptions):
                self._record_failure()
            elif exc_val is None or isinstance(exc_val, Exception):
                # Permanent errors mean the provider answered
                self._record_success()
            elif self._state == CircuitState.HALF_OPEN:
                # Cancelled test call: give the slot back
                self._half_open_calls = max(0, self._half_open_calls - 1)
        return False

    def __call__(self, func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        """Use the breaker as a decorator on a coroutine function."""
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            with self:
                return await func(*args, **kwargs)
        return wrapper

    def reset(self) -> None:
        """Manually close the breaker."""
        with self._lock:
            self._transition_to(CircuitState.CLOSED)

    def force_open(self) -> None:
        """Manually open the breaker (maintenance, known outage)."""
        with self._lock:
            self._transition_to(CircuitState.OPEN)
