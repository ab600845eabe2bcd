"""Retry Executor - Bounded exponential backoff around a single remote call.

The executor only records outcomes into the circuit breaker. Checking
whether the breaker is open is the caller's job.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, TypeVar

from opentelemetry import trace

from ..config import RetryConfig
from ..errors import ErrorType, classify_error

if TYPE_CHECKING:
    from .breaker import CircuitBreaker

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
SleepFunc = Callable[[float], Awaitable[None]]


class RetryExecutor:
    """Runs a zero-argument coroutine factory with retry and backoff.

    Delays are ``base_delay_ms * 2**attempt`` (attempt zero-indexed), so the
    defaults wait 1s, 2s, 4s between four attempts. AUTH failures are raised
    on the first attempt.

    Cancellation is not a failure: ``asyncio.CancelledError`` propagates
    without any breaker update, including while sleeping between attempts.
    """

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        breaker: Optional["CircuitBreaker"] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """Initialize executor.

        Args:
            config: Retry settings (defaults to RetryConfig())
            breaker: Breaker to report outcomes to (optional)
            sleep: Coroutine taking seconds (injectable for tests)
        """
        self.config = config or RetryConfig()
        self.breaker = breaker
        self._sleep = sleep

    def backoff_ms(self, attempt: int) -> float:
        """Delay after the zero-indexed ``attempt`` fails."""
        return self.config.base_delay_ms * (2**attempt)

    async def run(self, operation: Operation[T]) -> T:
        """Execute the operation, retrying transient failures.

        Args:
            operation: Callable returning a fresh awaitable per attempt

        Returns:
            The operation's result from the first successful attempt

        Raises:
            The last failure once attempts are exhausted, or the first AUTH failure
        """
        if not self.config.enabled:
            return await self._attempt_once(operation)

        max_retries = self.config.max_retries
        span = trace.get_current_span()
        attempt = 0

        while True:
            try:
                result = await operation()
            except Exception as e:
                error_type = classify_error(e)
                self._record_failure()

                if error_type is ErrorType.AUTH:
                    raise

                if attempt >= max_retries:
                    raise

                delay_ms = self.backoff_ms(attempt)
                span.add_event(
                    "memoryrelay.retry",
                    {
                        "retry.attempt": attempt + 1,
                        "retry.delay_ms": delay_ms,
                        "error.type": error_type.value,
                    },
                )
                logging.debug(
                    "[memoryrelay] Attempt %d failed (%s): %s; retrying in %.0fms",
                    attempt + 1,
                    error_type.value,
                    e,
                    delay_ms,
                )
                await self._sleep(delay_ms / 1000.0)
                attempt += 1
            else:
                self._record_success()
                return result

    async def _attempt_once(self, operation: Operation[T]) -> T:
        try:
            result = await operation()
        except Exception:
            self._record_failure()
            raise
        self._record_success()
        return result

    def _record_success(self) -> None:
        if self.breaker is not None:
            self.breaker.record_success()

    def _record_failure(self) -> None:
        if self.breaker is not None:
            self.breaker.record_failure()


__all__ = ["RetryExecutor"]
