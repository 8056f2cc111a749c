"""Retry and circuit-breaker wrapper around single data-store calls."""

import logging
import threading
import time
from collections.abc import Callable
from enum import StrEnum
from typing import TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_PATTERNS = (
    "connection refused",
    "econnrefused",
    "enotfound",
    "getaddrinfo",
    "name or service not known",
    "could not translate host name",
    "temporary failure in name resolution",
    "timeout",
    "timed out",
    "fetch failed",
    "network error",
    "other side closed",
    "server closed the connection unexpectedly",
    "connection reset",
    "circuit breaker",
)


def error_text(exc: BaseException) -> str:
    """Lower-cased driver message, or the error's own message if it wraps none.

    SQLAlchemy wrappers render the statement and bound parameters into
    ``str(exc)``; only the wrapped DB-API message is matched so row data
    never affects classification.
    """
    orig = getattr(exc, "orig", None)
    return str(orig if orig is not None else exc).lower()


def is_transient_error(exc: BaseException) -> bool:
    """Whether the failure looks like a connectivity problem worth retrying."""
    if isinstance(exc, httpx.TransportError | ConnectionError | TimeoutError):
        return True
    text = error_text(exc)
    return any(pattern in text for pattern in TRANSIENT_PATTERNS)


class CircuitOpenError(Exception):
    """Raised without calling the store while the breaker is open."""

    is_network_error = True

    def __init__(self, retry_after: float) -> None:
        super().__init__(f"circuit breaker open; retry in {retry_after:.1f}s")
        self.retry_after = retry_after


class RetryExhaustedError(Exception):
    """Transient failure that persisted through every retry."""

    is_network_error = True

    def __init__(self, description: str, attempts: int, last_error: BaseException) -> None:
        super().__init__(
            f"network error: {description} failed after {attempts} attempts: {last_error}"
        )
        self.attempts = attempts
        self.last_error = last_error


class BreakerState(StrEnum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Counts consecutive transient failures and fails fast once tripped.

    After ``failure_threshold`` consecutive failures the breaker opens for
    ``cooldown_seconds``. It then lets a single probe through; the probe's
    outcome closes or re-opens it. All state changes happen under one lock so
    the breaker can be shared by concurrent requests.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        cooldown_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.failure_threshold = failure_threshold
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._failures = 0
        self._opened_at: float | None = None
        self._probe_in_flight = False

    @property
    def failure_count(self) -> int:
        with self._lock:
            return self._failures

    @property
    def state(self) -> BreakerState:
        with self._lock:
            return self._state_locked()

    def _state_locked(self) -> BreakerState:
        if self._opened_at is None:
            return BreakerState.CLOSED
        if self._clock() - self._opened_at >= self.cooldown_seconds:
            return BreakerState.HALF_OPEN
        return BreakerState.OPEN

    def retry_after(self) -> float:
        """Seconds left until the next probe is allowed."""
        with self._lock:
            if self._opened_at is None:
                return 0.0
            return max(0.0, self.cooldown_seconds - (self._clock() - self._opened_at))

    def allow_request(self) -> bool:
        """Reserve a call slot; False means fail fast."""
        with self._lock:
            state = self._state_locked()
            if state is BreakerState.CLOSED:
                return True
            if state is BreakerState.HALF_OPEN and not self._probe_in_flight:
                self._probe_in_flight = True
                return True
            return False

    def record_success(self) -> None:
        with self._lock:
            if self._opened_at is not None:
                logger.info("Circuit breaker closed")
            self._failures = 0
            self._opened_at = None
            self._probe_in_flight = False

    def record_failure(self) -> None:
        with self._lock:
            self._failures += 1
            self._probe_in_flight = False
            if self._failures >= self.failure_threshold:
                if self._opened_at is None:
                    logger.error(
                        f"Circuit breaker opened after {self._failures} consecutive failures"
                    )
                self._opened_at = self._clock()


class RecoveryExecutor:
    """Runs a zero-argument store operation with bounded retries.

    Only transient (network-class) failures are retried; everything else is
    re-raised on the first occurrence.
    """

    def __init__(
        self,
        breaker: CircuitBreaker,
        max_retries: int = 3,
        backoff_seconds: float = 0.25,
        backoff_max_seconds: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.breaker = breaker
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.backoff_max_seconds = backoff_max_seconds
        self._sleep = sleep

    def backoff(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (0-based)."""
        return min(self.backoff_seconds * (2**attempt), self.backoff_max_seconds)

    def run(self, operation: Callable[[], T], description: str = "operation") -> T:
        attempts = 0
        while True:
            if not self.breaker.allow_request():
                logger.warning(f"{description}: circuit breaker open, failing fast")
                raise CircuitOpenError(self.breaker.retry_after())

            attempts += 1
            try:
                result = operation()
            except Exception as exc:
                if not is_transient_error(exc):
                    # The backend answered; the failure is logical, not connectivity
                    self.breaker.record_success()
                    raise
                self.breaker.record_failure()
                if attempts > self.max_retries:
                    logger.error(f"{description}: giving up after {attempts} attempts: {exc}")
                    raise RetryExhaustedError(description, attempts, exc) from exc
                delay = self.backoff(attempts - 1)
                logger.warning(
                    f"{description}: transient failure (attempt {attempts}), "
                    f"retrying in {delay:.2f}s: {exc}"
                )
                self._sleep(delay)
            else:
                self.breaker.record_success()
                return result
