"""Resilience module - Keeping remote calls well-behaved.

This module provides the request-level resilience primitives:
- CircuitBreaker: Fail fast after a streak of failures
- RetryExecutor: Bounded exponential backoff per call
"""

from .breaker import CircuitBreaker, CircuitSnapshot
from .retry import RetryExecutor

__all__ = [
    "CircuitBreaker",
    "CircuitSnapshot",
    "RetryExecutor",
]
