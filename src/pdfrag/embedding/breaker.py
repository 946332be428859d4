"""Circuit breaker guarding calls to the embedding provider."""

import logging
import threading
import time
from collections.abc import Callable
from enum import Enum

from pdfrag.constants import DEFAULT_BREAKER_FAILURE_THRESHOLD, DEFAULT_BREAKER_RESET_TIMEOUT
from pdfrag.embedding.base import CircuitOpenError

logger = logging.getLogger(__name__)


class BreakerState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Consecutive-failure circuit breaker.

    After ``failure_threshold`` consecutive failures the breaker opens and
    rejects calls for ``reset_timeout`` seconds. It then half-opens and admits
    a single trial: success closes it, failure opens it again.
    """

    def __init__(
        self,
        failure_threshold: int = DEFAULT_BREAKER_FAILURE_THRESHOLD,
        reset_timeout: float = DEFAULT_BREAKER_RESET_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the breaker.

        Args:
            failure_threshold: Consecutive failures that open the breaker
            reset_timeout: Seconds to stay open before admitting a trial
            clock: Monotonic time source (injectable for tests)
        """
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self._clock = clock
        self._lock = threading.Lock()
        self._state = BreakerState.CLOSED
        self._failures = 0
        self._opened_at = 0.0
        self._trial_in_flight = False

    @property
    def state(self) -> BreakerState:
        with self._lock:
            self._refresh()
            return self._state

    def _refresh(self) -> None:
        if (
            self._state == BreakerState.OPEN
            and self._clock() - self._opened_at >= self.reset_timeout
        ):
            self._state = BreakerState.HALF_OPEN
            self._trial_in_flight = False
            logger.info("🔌 Circuit breaker half-open, admitting a trial call")

    def before_call(self) -> None:
        """Admit or reject a call.

        Raises:
            CircuitOpenError: If the breaker is open, or half-open with a trial
                already in flight
        """
        with self._lock:
            self._refresh()
            if self._state == BreakerState.OPEN:
                remaining = self.reset_timeout - (self._clock() - self._opened_at)
                raise CircuitOpenError(f"Circuit breaker is open, retry in {remaining:.1f}s")
            if self._state == BreakerState.HALF_OPEN:
                if self._trial_in_flight:
                    raise CircuitOpenError("Circuit breaker is half-open, trial in flight")
                self._trial_in_flight = True

    def record_success(self) -> None:
        with self._lock:
            if self._state != BreakerState.CLOSED:
                logger.info("✅ Circuit breaker closed")
            self._state = BreakerState.CLOSED
            self._failures = 0
            self._trial_in_flight = False

    def record_failure(self) -> None:
        with self._lock:
            self._failures += 1
            if self._state == BreakerState.HALF_OPEN or self._failures >= self.failure_threshold:
                if self._state != BreakerState.OPEN:
                    logger.warning(
                        f"⚠️ Circuit breaker opened after {self._failures} consecutive failures"
                    )
                self._state = BreakerState.OPEN
                self._opened_at = self._clock()
                self._trial_in_flight = False

    def release_trial(self) -> None:
        """Give back a half-open trial slot without recording an outcome."""
        with self._lock:
            self._trial_in_flight = False
