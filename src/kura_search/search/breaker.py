"""Circuit breaker for the vector search path."""

import logging
import time
from collections.abc import Callable
from enum import StrEnum

logger = logging.getLogger(__name__)


class BreakerState(StrEnum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Skips a failing collaborator for a while instead of paying its timeout on every call.

    After ``failure_threshold`` consecutive failures the breaker opens and
    ``allow()`` returns False until ``recovery_timeout`` seconds have passed.
    Then one trial call is let through (half-open); its outcome closes or
    re-opens the breaker.

    One breaker belongs to one searcher instance. All mutation happens
    between awaits on the event loop thread, so no lock is needed.
    """

    def __init__(
        self,
        name: str = "vector",
        *,
        failure_threshold: int = 3,
        recovery_timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Configure thresholds; ``clock`` is injectable for tests."""
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock
        self.state = BreakerState.CLOSED
        self.failure_count = 0
        self.opened_at: float | None = None
        self._trial_in_flight = False

    def allow(self) -> bool:
        """Whether a call should be attempted now."""
        if self.state == BreakerState.CLOSED:
            return True
        if self.state == BreakerState.OPEN:
            if self.opened_at is not None and (
                self._clock() - self.opened_at < self.recovery_timeout
            ):
                return False
            self.state = BreakerState.HALF_OPEN
            logger.info("Circuit breaker %s half-open, probing", self.name)
        if self._trial_in_flight:
            return False
        self._trial_in_flight = True
        return True

    def record_success(self) -> None:
        """Reset after a successful call."""
        if self.state != BreakerState.CLOSED:
            logger.info("Circuit breaker %s closed", self.name)
        self.state = BreakerState.CLOSED
        self.failure_count = 0
        self.opened_at = None
        self._trial_in_flight = False

    def record_failure(self) -> None:
        """Count a failed call, opening the breaker at the threshold."""
        self._trial_in_flight = False
        self.failure_count += 1
        if self.state == BreakerState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            if self.state != BreakerState.OPEN:
                logger.warning(
                    "Circuit breaker %s opened after %d failures", self.name, self.failure_count
                )
            self.state = BreakerState.OPEN
            self.opened_at = self._clock()

    def release(self) -> None:
        """Give back the trial slot without recording an outcome (e.g. on cancellation)."""
        self._trial_in_flight = False
