"""
Circuit breaker for outbound provider calls.

Uses pybreaker library for circuit breaker implementation. Each
ResilientClient owns one ProviderCircuitBreaker with its own in-memory
storage; state is never shared between clients or kept at module level.

Circuit Breaker States:
- CLOSED: Requests pass through. ``fail_max`` consecutive failed requests
  open the circuit.
- OPEN: Requests fail immediately with CircuitOpenError until
  ``reset_timeout`` seconds have passed since the circuit opened.
- HALF_OPEN: Requests pass through as trial calls. ``success_threshold``
  consecutive successes close the circuit; any failure reopens it.

A "failure" here is a request whose retries were exhausted, not a single
attempt. Non-retryable errors (exhausted quota, open circuit) say nothing
about provider health and are excluded.
"""
import asyncio
import time
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pybreaker import (
    STATE_CLOSED,
    STATE_HALF_OPEN,
    STATE_OPEN,
    CircuitBreaker,
    CircuitBreakerListener,
    CircuitMemoryStorage,
)

from sportsync.core.errors import CircuitOpenError, SportsDataError
from sportsync.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_FAIL_MAX = 5
DEFAULT_SUCCESS_THRESHOLD = 3
DEFAULT_RESET_TIMEOUT_MS = 30000


class CircuitState(str, Enum):
    CLOSED = STATE_CLOSED
    OPEN = STATE_OPEN
    HALF_OPEN = STATE_HALF_OPEN


def is_excluded(exc: BaseException) -> bool:
    """True for errors that must not count against the provider."""
    if isinstance(exc, asyncio.CancelledError):
        return True
    return isinstance(exc, SportsDataError) and not exc.retryable


class BreakerMonitor(CircuitBreakerListener):
    """Logs state transitions and remembers the last failure time."""

    def __init__(self):
        self.last_failure_time: Optional[float] = None

    def failure(self, cb: CircuitBreaker, exc: BaseException) -> None:
        self.last_failure_time = time.time()

    def state_change(self, cb: CircuitBreaker, old_state: Any, new_state: Any) -> None:
        old_name = old_state.name if old_state else None
        if old_name == new_state.name:
            return
        log = logger.warning if new_state.name == STATE_OPEN else logger.info
        log(f"Circuit breaker '{cb.name}': {old_name} -> {new_state.name}")


class ProviderCircuitBreaker(CircuitBreaker):
    """
    pybreaker CircuitBreaker configured for one provider client.

    The breaker guards a whole request (all retry attempts) through
    ``calling()``. ``check()`` lets the client fail fast before spending
    quota or waiting for a rate-limit slot.

    Args:
        name: Provider name used in errors and log lines
        fail_max: Consecutive failures in CLOSED before opening
        success_threshold: Consecutive successes in HALF_OPEN before closing
        reset_timeout_ms: Cool-down before an OPEN circuit admits a trial call

    Example:
        breaker = ProviderCircuitBreaker("thesportsdb")
        breaker.check()              # raises CircuitOpenError while open
        with breaker.calling():
            data = await fetch()
    """

    def __init__(
        self,
        name: str,
        fail_max: int = DEFAULT_FAIL_MAX,
        success_threshold: int = DEFAULT_SUCCESS_THRESHOLD,
        reset_timeout_ms: int = DEFAULT_RESET_TIMEOUT_MS,
    ):
        self.storage = CircuitMemoryStorage(STATE_CLOSED)
        self.monitor = BreakerMonitor()
        super().__init__(
            fail_max=fail_max,
            reset_timeout=reset_timeout_ms / 1000,
            success_threshold=success_threshold,
            exclude=[is_excluded],
            listeners=[self.monitor],
            state_storage=self.storage,
            name=name,
            # Surface the provider error on the tripping call
            throw_new_error_on_trip=False,
        )

    def retry_after_ms(self) -> int:
        """Milliseconds left in the open cool-down (0 when not cooling down)."""
        opened_at = self.storage.opened_at
        if self.current_state != STATE_OPEN or opened_at is None:
            return 0
        remaining = opened_at + timedelta(seconds=self.reset_timeout) - datetime.now(timezone.utc)
        return max(0, int(remaining.total_seconds() * 1000))

    def check(self) -> None:
        """
        Gate a request without touching breaker state.

        Raises:
            CircuitOpenError: Circuit is open and the cool-down is still running
        """
        retry_after = self.retry_after_ms()
        if retry_after > 0:
            raise CircuitOpenError(self.name, retry_after)

    def reset(self) -> None:
        """
        Manually reset the breaker to CLOSED with cleared counters.

        Use with caution - only reset if you know the provider has recovered.
        """
        self.close()
        self.monitor.last_failure_time = None
        logger.warning(f"Circuit breaker '{self.name}' manually reset to CLOSED state")

    def status(self) -> Dict[str, Any]:
        return {
            'state': self.current_state,
            'failure_count': self.fail_counter,
            'success_count': self.success_counter,
            'last_failure_time': self.monitor.last_failure_time,
        }


def get_breaker_state(breaker: CircuitBreaker) -> CircuitState:
    """
    Get the current state of a circuit breaker.

    Returns:
        CircuitState.CLOSED, CircuitState.OPEN or CircuitState.HALF_OPEN
    """
    return CircuitState(breaker.current_state)
