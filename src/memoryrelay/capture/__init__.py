"""Capture module - Deciding what to remember.

This module provides the auto-capture building blocks:
- extract_entities: Structured tokens (keys, emails, URLs, IPs)
- CaptureDecisionEngine: Length bounds + entities + phrase patterns
- messages: Message content shapes and text extraction
"""

from .engine import (
    CAPTURE_PATTERNS,
    DEDUP_THRESHOLD,
    MAX_CAPTURES_PER_TURN,
    CaptureDecision,
    CaptureDecisionEngine,
)
from .entities import Entity, EntityType, extract_entities
from .messages import (
    AgentMessage,
    BlockList,
    ContentBlock,
    PlainText,
    extract_texts,
    texts_from_messages,
)

__all__ = [
    # Engine
    "CAPTURE_PATTERNS",
    "DEDUP_THRESHOLD",
    "MAX_CAPTURES_PER_TURN",
    "CaptureDecision",
    "CaptureDecisionEngine",
    # Entities
    "Entity",
    "EntityType",
    "extract_entities",
    # Messages
    "AgentMessage",
    "BlockList",
    "ContentBlock",
    "PlainText",
    "extract_texts",
    "texts_from_messages",
]
