"""Client module - Talking to the MemoryRelay API.

This module provides:
- RemoteMemoryGateway: Single-attempt HTTP transport
- MemoryRelayClient: Gateway behind circuit breaker and retry
- MemoryRecord/SearchHit/MemoryStats/HealthStatus: Response types
"""

from .client import MemoryRelayClient
from .gateway import RemoteMemoryGateway
from .types import HealthStatus, MemoryRecord, MemoryStats, SearchHit

__all__ = [
    "MemoryRelayClient",
    "RemoteMemoryGateway",
    "HealthStatus",
    "MemoryRecord",
    "MemoryStats",
    "SearchHit",
]
