"""Client types - Records returned by the MemoryRelay API.

This module defines:
- MemoryRecord: A stored memory (read-only snapshot)
- SearchHit: A memory paired with a similarity score
- MemoryStats: Per-agent counters
- HealthStatus: Result of the health endpoint
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional

VALID_HEALTH_STATUSES = ("ok", "healthy", "up")


def _timestamp(value: Any) -> Optional[float]:
    """Seconds since epoch from a number, numeric string, or ISO-8601 string."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and value:
        try:
            return float(value)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
        except ValueError:
            return None
    return None


@dataclass(frozen=True)
class MemoryRecord:
    """A memory as stored by the remote service.

    Attributes:
        id: Server-assigned identifier
        content: Memory text
        agent_id: Owning agent scope
        user_id: Owning user, if the server reports one
        metadata: String key/value pairs
        entities: Entity strings the server extracted
        created_at: Creation time (seconds since epoch)
        updated_at: Last update time (seconds since epoch)
    """

    id: str
    content: str
    agent_id: str = ""
    user_id: str = ""
    metadata: dict[str, str] = field(default_factory=dict)
    entities: tuple[str, ...] = field(default_factory=tuple)
    created_at: Optional[float] = None
    updated_at: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> MemoryRecord:
        metadata = data.get("metadata") or {}
        return cls(
            id=str(data.get("id", "")),
            content=str(data.get("content", "")),
            agent_id=str(data.get("agent_id") or ""),
            user_id=str(data.get("user_id") or ""),
            metadata={str(k): str(v) for k, v in metadata.items()},
            entities=tuple(str(e) for e in data.get("entities") or ()),
            created_at=_timestamp(data.get("created_at")),
            updated_at=_timestamp(data.get("updated_at")),
        )

    @property
    def short_id(self) -> str:
        return self.id[:8]

    def preview(self, length: int) -> str:
        """Content truncated to ``length`` characters, with an ellipsis if cut."""
        if len(self.content) > length:
            return self.content[:length] + "..."
        return self.content


@dataclass(frozen=True)
class SearchHit:
    """A search result: memory plus similarity score in [0, 1]."""

    memory: MemoryRecord
    score: float

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SearchHit:
        return cls(
            memory=MemoryRecord.from_dict(data.get("memory") or {}),
            score=float(data.get("score") or 0.0),
        )


@dataclass(frozen=True)
class MemoryStats:
    total_memories: int = 0
    last_updated: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> MemoryStats:
        data = data or {}
        last_updated = data.get("last_updated")
        return cls(
            total_memories=int(data.get("total_memories") or 0),
            last_updated=str(last_updated) if last_updated is not None else None,
        )


@dataclass(frozen=True)
class HealthStatus:
    status: str

    @property
    def healthy(self) -> bool:
        return self.status.lower() in VALID_HEALTH_STATUSES


__all__ = [
    "VALID_HEALTH_STATUSES",
    "MemoryRecord",
    "SearchHit",
    "MemoryStats",
    "HealthStatus",
]
