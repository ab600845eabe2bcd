"""Entity extraction - Structured tokens in free text.

Detected entities widen auto-capture: text that carries an API key, email,
URL or IP address is worth storing regardless of phrasing. Entities are never
stored on their own.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class EntityType(Enum):
    API_KEY = "api_key"
    EMAIL = "email"
    URL = "url"
    IP_ADDRESS = "ip_address"


@dataclass(frozen=True)
class Entity:
    """A typed span detected in text."""

    type: EntityType
    value: str

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type.value, "value": self.value}


API_KEY_PATTERN = re.compile(
    r"\b(?:mem|nr|sk|pk|api)_(?:prod|test|dev|live)_[a-zA-Z0-9]{16,64}\b",
    re.IGNORECASE,
)
EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
URL_PATTERN = re.compile(r"https?://[^\s<>\"{}|\\^`\[\]]+")
IP_PATTERN = re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}\b")


def _valid_ip(candidate: str) -> bool:
    return all(0 <= int(octet) <= 255 for octet in candidate.split("."))


def extract_entities(text: str) -> list[Entity]:
    """Find entities in text.

    Passes run in a fixed order (api_key, email, url, ip_address) and each
    pass scans left to right. Repeated values are reported once per
    occurrence.

    Args:
        text: Free text to scan

    Returns:
        Entities in detection order
    """
    entities: list[Entity] = []

    for match in API_KEY_PATTERN.finditer(text):
        entities.append(Entity(EntityType.API_KEY, match.group(0)))

    for match in EMAIL_PATTERN.finditer(text):
        entities.append(Entity(EntityType.EMAIL, match.group(0)))

    for match in URL_PATTERN.finditer(text):
        entities.append(Entity(EntityType.URL, match.group(0)))

    for match in IP_PATTERN.finditer(text):
        # "999.1.1.1" is syntactically an IP but not a real one
        if _valid_ip(match.group(0)):
            entities.append(Entity(EntityType.IP_ADDRESS, match.group(0)))

    return entities


__all__ = ["Entity", "EntityType", "extract_entities"]
