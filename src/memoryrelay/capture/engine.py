"""Capture decisions - Is a piece of text worth remembering?

Deciding is kept separate from storing: the engine never touches the network.
The duplicate check against the remote store happens at storage time (see
MemoryRelayPlugin.agent_end).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional, Pattern, Sequence

from .entities import Entity, extract_entities

MIN_CAPTURE_LENGTH = 20
MAX_CAPTURE_LENGTH = 2000

# Storage policy applied by callers
MAX_CAPTURES_PER_TURN = 3
DEDUP_THRESHOLD = 0.95

CAPTURE_PATTERNS: tuple[Pattern[str], ...] = (
    re.compile(r"remember\s+(?:that\s+)?", re.IGNORECASE),
    re.compile(r"(?:my|the)\s+(?:name|email|phone|address|preference)", re.IGNORECASE),
    re.compile(r"important(?:ly)?[:\s]", re.IGNORECASE),
    re.compile(r"always\s+(?:use|prefer|want)", re.IGNORECASE),
    re.compile(r"(?:do|don't)\s+(?:like|want|prefer)", re.IGNORECASE),
    re.compile(r"(?:api|key|token|password|secret)(?:\s+is)?[:\s]", re.IGNORECASE),
    re.compile(r"(?:ssh|server|host|ip|port)(?:\s+is)?[:\s]", re.IGNORECASE),
)


@dataclass(frozen=True)
class CaptureDecision:
    """Outcome of a capture check.

    Attributes:
        accepted: Whether the text should be stored
        reason: too_short, too_long, entities, pattern, or no_match
        entities: Entities found (empty unless accepted for entities)
    """

    accepted: bool
    reason: str
    entities: tuple[Entity, ...] = field(default_factory=tuple)


class CaptureDecisionEngine:
    """Combines length bounds, entity extraction and phrase patterns.

    Rules, in order:
        1. Reject text shorter than 20 or longer than 2000 characters
        2. Accept if entity extraction is on and any entity is found
        3. Accept iff a capture pattern matches
    """

    def __init__(
        self,
        entity_extraction_enabled: bool = True,
        patterns: Sequence[Pattern[str]] = CAPTURE_PATTERNS,
        min_length: int = MIN_CAPTURE_LENGTH,
        max_length: int = MAX_CAPTURE_LENGTH,
    ):
        self.entity_extraction_enabled = entity_extraction_enabled
        self.patterns = tuple(patterns)
        self.min_length = min_length
        self.max_length = max_length

    def decide(self, text: str) -> CaptureDecision:
        if len(text) < self.min_length:
            return CaptureDecision(False, "too_short")
        if len(text) > self.max_length:
            return CaptureDecision(False, "too_long")

        if self.entity_extraction_enabled:
            entities = extract_entities(text)
            if entities:
                return CaptureDecision(True, "entities", tuple(entities))

        if self.matches_pattern(text):
            return CaptureDecision(True, "pattern")
        return CaptureDecision(False, "no_match")

    def should_capture(self, text: str) -> bool:
        return self.decide(text).accepted

    def matches_pattern(self, text: str) -> bool:
        return any(pattern.search(text) for pattern in self.patterns)

    def select(self, texts: Iterable[Optional[str]], limit: Optional[int] = None) -> list[str]:
        """Filter texts down to capture candidates, preserving order.

        Args:
            texts: Candidate texts (empty values are skipped)
            limit: Keep at most this many candidates

        Returns:
            Accepted texts
        """
        selected = [text for text in texts if text and self.should_capture(text)]
        if limit is not None:
            selected = selected[:limit]
        return selected


__all__ = [
    "CAPTURE_PATTERNS",
    "CaptureDecision",
    "CaptureDecisionEngine",
    "DEDUP_THRESHOLD",
    "MAX_CAPTURES_PER_TURN",
    "MAX_CAPTURE_LENGTH",
    "MIN_CAPTURE_LENGTH",
]
