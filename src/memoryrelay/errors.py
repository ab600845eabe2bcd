"""Error types and failure classification for MemoryRelay.

This module defines:
- ErrorType: The five failure kinds used for retry and breaker policy
- MemoryRelayError and its subclasses raised by the client
- classify_failure / classify_error: Map a failure to an ErrorType
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Optional

import httpx


class ErrorType(Enum):
    """Failure classification for policy decisions.

    - AUTH: Bad or missing credentials (never retried)
    - RATE_LIMIT: Too many requests (retried)
    - SERVER: 5xx or unknown failure (retried)
    - NETWORK: Connection refused, timeouts (retried)
    - VALIDATION: Malformed request (retried by current policy)
    """

    AUTH = "auth_error"
    RATE_LIMIT = "rate_limit"
    SERVER = "server_error"
    NETWORK = "network_error"
    VALIDATION = "validation_error"


class MemoryRelayError(RuntimeError):
    """Base error for all MemoryRelay client failures."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def error_type(self) -> ErrorType:
        return classify_error(self)


class MemoryRelayAPIError(MemoryRelayError):
    """Non-2xx response from the MemoryRelay API."""

    def __init__(
        self,
        status_code: int,
        reason: str = "",
        detail: Optional[str] = None,
    ):
        message = f"MemoryRelay API error: {status_code} {reason}".rstrip()
        if detail:
            message += f" - {detail}"
        super().__init__(message, status_code=status_code)
        self.reason = reason
        self.detail = detail


class MemoryNotFoundError(MemoryRelayAPIError):
    """The requested memory does not exist (404)."""


class MemoryRelayNetworkError(MemoryRelayError):
    """Transport failure before any response was received."""


class MemoryRelayResponseError(MemoryRelayError):
    """A successful response whose body is not the documented shape."""


class CircuitOpenError(MemoryRelayError):
    """Raised instead of issuing a request while the circuit breaker is open."""

    def __init__(self, open_until_ms: Optional[float] = None):
        super().__init__("MemoryRelay circuit breaker is open; request not attempted")
        self.open_until_ms = open_until_ms


class ConfigError(ValueError):
    """Missing or invalid MemoryRelay configuration."""


_NETWORK_MARKERS = (
    "econnrefused",
    "connection refused",
    "connecterror",
    "timeout",
    "timed out",
)


def _status_in_text(message: str, *codes: str) -> bool:
    return any(re.search(rf"\b{code}\b", message) for code in codes)


def classify_failure(status_code: Optional[int] = None, message: str = "") -> ErrorType:
    """Classify a failure from its status code and/or message text.

    Rules are checked in order and the first match wins. When no status code
    is known, three-digit codes embedded in the message are used instead.

    Args:
        status_code: HTTP status code, if the failure carried one
        message: Failure description

    Returns:
        Exactly one ErrorType
    """
    text = message or ""
    lowered = text.lower()

    if status_code is not None:
        is_auth = status_code in (401, 403)
        is_rate_limit = status_code == 429
        is_server = status_code >= 500
        is_validation = status_code == 400
    else:
        is_auth = _status_in_text(text, "401", "403")
        is_rate_limit = _status_in_text(text, "429")
        is_server = _status_in_text(text, r"5\d\d")
        is_validation = _status_in_text(text, "400")

    if is_auth:
        return ErrorType.AUTH
    if is_rate_limit:
        return ErrorType.RATE_LIMIT
    if is_server:
        return ErrorType.SERVER
    if any(marker in lowered for marker in _NETWORK_MARKERS):
        return ErrorType.NETWORK
    if is_validation:
        return ErrorType.VALIDATION
    # Unknown failures stay eligible for retry
    return ErrorType.SERVER


def classify_error(error: BaseException) -> ErrorType:
    """Classify an exception raised by a remote call."""
    status_code = getattr(error, "status_code", None)
    if status_code is None and isinstance(error, httpx.HTTPStatusError):
        status_code = error.response.status_code

    if status_code is None and isinstance(
        error, (MemoryRelayNetworkError, httpx.TransportError, TimeoutError, ConnectionError)
    ):
        return ErrorType.NETWORK

    return classify_failure(status_code, str(error))


_HINTS = {
    ErrorType.AUTH: "Check your API key configuration",
    ErrorType.RATE_LIMIT: "Reduce request volume or raise your plan's rate limit",
}


def error_hint(error_type: ErrorType) -> Optional[str]:
    """Return a user-facing hint for an error type, if one applies."""
    return _HINTS.get(error_type)


__all__ = [
    "ErrorType",
    "MemoryRelayError",
    "MemoryRelayAPIError",
    "MemoryNotFoundError",
    "MemoryRelayNetworkError",
    "MemoryRelayResponseError",
    "CircuitOpenError",
    "ConfigError",
    "classify_failure",
    "classify_error",
    "error_hint",
]
