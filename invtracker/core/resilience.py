"""
Fault tolerance for the record store.

- :data:`db_circuit_breaker` guards every repository call.  After
  ``CB_FAILURE_THRESHOLD`` consecutive store failures it opens and rejects
  calls for ``CB_RECOVERY_TIMEOUT`` seconds, then admits one probe at a time
  (half-open) whose outcome closes or re-opens it.
- :func:`retry_with_backoff` retries an async callable with exponential
  backoff.  Only the startup table-creation probe uses it; CRUD calls are
  never retried.
"""

import asyncio
import functools
import logging
import random
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Iterator, Tuple, Type

from sqlalchemy.exc import OperationalError

from invtracker.core.config import settings

logger = logging.getLogger(__name__)

# Failures that mean the store could not be reached, as opposed to a bad
# request.  ConnectionError and TimeoutError are OSError subclasses but are
# listed for readability.
STORE_FAILURES: Tuple[Type[Exception], ...] = (
    OperationalError,
    ConnectionError,
    TimeoutError,
    OSError,
)


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerError(Exception):
    """A call was rejected without being attempted because the circuit is open."""

    def __init__(self, name: str, retry_after: float):
        self.name = name
        self.retry_after = retry_after
        super().__init__(
            f"Circuit breaker '{name}' is OPEN; store calls are rejected for "
            f"another {retry_after:.1f}s."
        )


class CircuitBreaker:
    """
    Async circuit breaker.

    Parameters
    ----------
    name : str
        Identifier used in logs and in :meth:`get_status`.
    failure_threshold : int
        Consecutive failures that open the circuit.
    recovery_timeout : float
        Seconds the circuit stays open before a probe is admitted.
    expected_exceptions : tuple
        Exception types counted as failures.  Other exceptions propagate
        without affecting the circuit.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        expected_exceptions: Tuple[Type[Exception], ...] = (Exception,),
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exceptions = expected_exceptions
        self.reset()

    @property
    def state(self) -> CircuitState:
        """The current state; an open circuit turns half-open once its timeout elapses."""
        if self._state is CircuitState.OPEN and self._seconds_until_probe() <= 0:
            self._transition(CircuitState.HALF_OPEN, "recovery timeout elapsed")
        return self._state

    def _seconds_until_probe(self) -> float:
        return self.recovery_timeout - (time.monotonic() - self._last_failure_time)

    def _transition(self, new_state: CircuitState, reason: str) -> None:
        if new_state is self._state:
            return
        log = logger.error if new_state is CircuitState.OPEN else logger.info
        log("Circuit '%s': %s -> %s (%s)", self.name, self._state.value, new_state.value, reason)
        self._state = new_state

    def _on_success(self) -> None:
        self._success_count += 1
        self._failure_count = 0
        self._transition(CircuitState.CLOSED, "call succeeded")

    def _on_failure(self, exc: Exception) -> None:
        self._failure_count += 1
        self._last_failure_time = time.monotonic()
        if self._state is CircuitState.HALF_OPEN or self._failure_count >= self.failure_threshold:
            self._transition(
                CircuitState.OPEN,
                f"{type(exc).__name__} was failure {self._failure_count}/{self.failure_threshold}",
            )
        else:
            logger.warning(
                "Circuit '%s' failure %d/%d: %s",
                self.name,
                self._failure_count,
                self.failure_threshold,
                exc,
            )

    async def call(self, func: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Any:
        """
        Await ``func(*args, **kwargs)`` unless the circuit is open.

        Raises :class:`CircuitBreakerError` without calling ``func`` while
        the circuit is open, or while it is half-open and another caller's
        probe has not finished yet.
        """
        state = self.state
        if state is CircuitState.OPEN:
            raise CircuitBreakerError(self.name, max(self._seconds_until_probe(), 0.0))
        if state is CircuitState.HALF_OPEN:
            if self._probe_in_flight:
                raise CircuitBreakerError(self.name, 0.0)
            self._probe_in_flight = True

        try:
            result = await func(*args, **kwargs)
        except self.expected_exceptions as exc:
            self._on_failure(exc)
            raise
        finally:
            if state is CircuitState.HALF_OPEN:
                self._probe_in_flight = False
        self._on_success()
        return result

    def reset(self) -> None:
        """Close the circuit and zero every counter."""
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time = 0.0
        self._probe_in_flight = False

    def get_status(self) -> dict:
        """Snapshot for the ``/health`` endpoint."""
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self._failure_count,
            "failure_threshold": self.failure_threshold,
            "success_count": self._success_count,
            "recovery_timeout_s": self.recovery_timeout,
        }


db_circuit_breaker = CircuitBreaker(
    name="database",
    failure_threshold=settings.CB_FAILURE_THRESHOLD,
    recovery_timeout=settings.CB_RECOVERY_TIMEOUT,
    expected_exceptions=STORE_FAILURES,
)


def backoff_delays(
    base_delay: float, max_delay: float, jitter: bool = True
) -> Iterator[float]:
    """Yield ``base_delay``, doubling each time up to ``max_delay``, plus up to 50% jitter."""
    delay = base_delay
    while True:
        capped = min(delay, max_delay)
        yield capped + random.uniform(0, capped * 0.5) if jitter else capped
        delay *= 2


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 10.0,
    jitter: bool = True,
    retryable_exceptions: Tuple[Type[Exception], ...] = STORE_FAILURES,
) -> Callable:
    """
    Decorator retrying an async function on ``retryable_exceptions``.

    ``max_retries`` counts attempts after the first one, so 0 means a single
    call.  The last exception is re-raised once retries are exhausted.

    Example::

        @retry_with_backoff(max_retries=4, base_delay=2.0)
        async def create_tables():
            ...
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            delays = backoff_delays(base_delay, max_delay, jitter)
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as exc:
                    if attempt >= max_retries:
                        logger.error(
                            "%s failed after %d attempts: %s: %s",
                            func.__qualname__,
                            attempt + 1,
                            type(exc).__name__,
                            exc,
                        )
                        raise
                    attempt += 1
                    wait = next(delays)
                    logger.warning(
                        "%s failed (%s: %s); retry %d/%d in %.2fs",
                        func.__qualname__,
                        type(exc).__name__,
                        exc,
                        attempt,
                        max_retries,
                        wait,
                    )
                    await asyncio.sleep(wait)

        return wrapper

    return decorator
