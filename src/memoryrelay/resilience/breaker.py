"""Circuit Breaker - Fail-fast gate over a streak of remote failures.

One breaker belongs to one client instance. It is not shared across agents
or processes.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from opentelemetry import trace


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass(frozen=True)
class CircuitSnapshot:
    """Point-in-time view of a breaker for status reporting.

    Attributes:
        open: Whether calls are currently fast-failed
        failures: Consecutive failures recorded so far
        open_until_ms: Deadline (breaker clock, ms) while open
    """

    open: bool
    failures: int
    open_until_ms: Optional[float] = None

    def to_dict(self) -> dict:
        d = {"open": self.open, "failures": self.failures}
        if self.open_until_ms is not None:
            d["openUntilMs"] = self.open_until_ms
        return d


class CircuitBreaker:
    """Tracks consecutive failures and opens a fail-fast window.

    There is no distinct half-open state: once the cooldown has elapsed the
    next ``is_open()`` check resets the breaker, the next call goes through,
    and a failure there counts toward a fresh streak.

    Example:
        breaker = CircuitBreaker(max_failures=3, reset_timeout_ms=60000)
        if not breaker.is_open():
            try:
                result = await call()
                breaker.record_success()
            except Exception:
                breaker.record_failure()
    """

    def __init__(
        self,
        max_failures: int = 3,
        reset_timeout_ms: int = 60000,
        clock: Optional[Callable[[], float]] = None,
    ):
        """Initialize breaker.

        Args:
            max_failures: Consecutive failures that open the circuit
            reset_timeout_ms: How long the circuit stays open
            clock: Millisecond clock (defaults to time.monotonic in ms)
        """
        if max_failures < 1:
            raise ValueError("max_failures must be >= 1")
        if reset_timeout_ms < 0:
            raise ValueError("reset_timeout_ms must be >= 0")

        self._max_failures = max_failures
        self._reset_timeout_ms = reset_timeout_ms
        self._clock = clock or _monotonic_ms
        self._lock = threading.Lock()

        self._consecutive_failures = 0
        self._open_until: Optional[float] = None

    @property
    def max_failures(self) -> int:
        return self._max_failures

    @property
    def reset_timeout_ms(self) -> int:
        return self._reset_timeout_ms

    @property
    def failures(self) -> int:
        with self._lock:
            return self._consecutive_failures

    def is_open(self) -> bool:
        """Return True while calls should be fast-failed.

        An expired deadline resets the breaker as a side effect.
        """
        with self._lock:
            return self._check_open()

    def record_success(self) -> None:
        """Clear the failure streak and any open deadline."""
        with self._lock:
            self._clear()

    def record_failure(self) -> None:
        """Count a failure, opening the circuit once the threshold is reached."""
        with self._lock:
            self._consecutive_failures += 1
            if self._consecutive_failures >= self._max_failures:
                self._open_until = self._clock() + self._reset_timeout_ms
                trace.get_current_span().add_event(
                    "memoryrelay.circuit_open",
                    {
                        "circuit.failures": self._consecutive_failures,
                        "circuit.reset_timeout_ms": self._reset_timeout_ms,
                    },
                )

    def reset(self) -> None:
        """Manually close the circuit."""
        self.record_success()

    def snapshot(self) -> CircuitSnapshot:
        with self._lock:
            is_open = self._check_open()
            return CircuitSnapshot(
                open=is_open,
                failures=self._consecutive_failures,
                open_until_ms=self._open_until,
            )

    def _check_open(self) -> bool:
        if self._open_until is None:
            return False
        if self._clock() < self._open_until:
            return True
        # Cooldown elapsed: close lazily instead of running a timer
        self._clear()
        return False

    def _clear(self) -> None:
        self._consecutive_failures = 0
        self._open_until = None


__all__ = ["CircuitBreaker", "CircuitSnapshot"]
