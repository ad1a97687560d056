"""
Retry and Circuit-Breaker Policy
Injectable policy wrapped around every call to an external capability
"""
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_none,
)

from .clock import Clock, SystemClock
from .errors import TransientExternalFailure
from .observability import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class CircuitBreaker:
    """
    Counts consecutive transient failures; once the threshold trips, calls
    fail fast until reset_after seconds have passed (then one trial call is let through)
    """

    def __init__(self,
                 failure_threshold: int = 5,
                 reset_after: float = 30.0,
                 clock: Optional[Clock] = None):
        self.failure_threshold = failure_threshold
        self.reset_after = reset_after
        self.clock = clock or SystemClock()
        self.consecutive_failures = 0
        self.opened_at: Optional[float] = None

    @property
    def is_open(self) -> bool:
        if self.opened_at is None:
            return False
        if self.clock.monotonic() - self.opened_at >= self.reset_after:
            # half-open: allow a trial call
            return False
        return True

    def record_success(self):
        self.consecutive_failures = 0
        self.opened_at = None

    def record_failure(self):
        self.consecutive_failures += 1
        if self.failure_threshold and self.consecutive_failures >= self.failure_threshold:
            self.opened_at = self.clock.monotonic()


class RetryPolicy:
    """
    Retry with exponential backoff for idempotent external calls.
    Only TransientExternalFailure is retried; anything else propagates on the first attempt.
    """

    def __init__(self,
                 max_attempts: int = 3,
                 backoff_base: float = 0.5,
                 backoff_max: float = 4.0,
                 failure_threshold: int = 5,
                 reset_after: float = 30.0,
                 clock: Optional[Clock] = None):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.breaker = CircuitBreaker(failure_threshold, reset_after, clock)

    @classmethod
    def no_delay(cls, max_attempts: int = 3, failure_threshold: int = 0) -> "RetryPolicy":
        """Policy without sleeping between attempts and without tripping"""
        return cls(
            max_attempts=max_attempts,
            backoff_base=0.0,
            backoff_max=0.0,
            failure_threshold=failure_threshold,
        )

    @classmethod
    def from_settings(cls, settings, clock: Optional[Clock] = None) -> "RetryPolicy":
        return cls(
            max_attempts=settings.retry_max_attempts,
            backoff_base=settings.retry_backoff_base,
            backoff_max=settings.retry_backoff_max,
            failure_threshold=settings.circuit_failure_threshold,
            reset_after=settings.circuit_reset_seconds,
            clock=clock,
        )

    def _wait(self):
        if self.backoff_base <= 0:
            return wait_none()
        return wait_exponential(multiplier=self.backoff_base, max=self.backoff_max)

    async def call(self,
                   operation: Callable[..., Awaitable[T]],
                   *args: Any,
                   capability: str = "external",
                   **kwargs: Any) -> T:
        """Run operation under the policy; raises TransientExternalFailure once attempts are exhausted"""
        if self.breaker.is_open:
            logger.warning("circuit_open", capability=capability)
            raise TransientExternalFailure(f"{capability} circuit is open", capability=capability)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait(),
            retry=retry_if_exception_type(TransientExternalFailure),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.info(
                            "retrying_external_call",
                            capability=capability,
                            attempt=attempt.retry_state.attempt_number,
                        )
                    result = await operation(*args, **kwargs)
        except TransientExternalFailure:
            self.breaker.record_failure()
            logger.warning("external_call_failed", capability=capability, attempts=self.max_attempts)
            raise
        except RetryError as e:
            self.breaker.record_failure()
            raise TransientExternalFailure(str(e), capability=capability) from e

        self.breaker.record_success()
        return result
