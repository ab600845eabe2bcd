"""Conversation message shapes for auto-capture.

Host runtimes hand over message content either as a plain string or as a list
of typed content blocks. Both are modeled explicitly:

- PlainText: content given as a single string
- BlockList: content given as ordered blocks (only "text" blocks carry text)

``extract_texts`` reduces either shape to an ordered list of strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Literal, Optional, Union

CAPTURE_ROLES = frozenset({"user", "assistant"})


@dataclass(frozen=True)
class ContentBlock:
    """One typed block of structured message content."""

    type: str
    text: Optional[str] = None


@dataclass(frozen=True)
class PlainText:
    text: str
    kind: Literal["text"] = "text"


@dataclass(frozen=True)
class BlockList:
    blocks: tuple[ContentBlock, ...] = field(default_factory=tuple)
    kind: Literal["blocks"] = "blocks"


MessageContent = Union[PlainText, BlockList]


@dataclass(frozen=True)
class AgentMessage:
    """A single conversation message."""

    role: str
    content: MessageContent


def extract_texts(content: MessageContent) -> list[str]:
    """Flatten message content to its text strings, in order."""
    if content.kind == "text":
        return [content.text] if content.text else []
    return [block.text for block in content.blocks if block.type == "text" and block.text]


def parse_content(raw: Any) -> Optional[MessageContent]:
    """Convert raw host content (str or list of block dicts) into MessageContent.

    Returns None for shapes that carry no text.
    """
    if isinstance(raw, str):
        return PlainText(raw)
    if isinstance(raw, (list, tuple)):
        blocks = []
        for item in raw:
            if isinstance(item, dict) and "type" in item:
                text = item.get("text")
                blocks.append(
                    ContentBlock(type=str(item["type"]), text=text if isinstance(text, str) else None)
                )
        return BlockList(tuple(blocks))
    return None


def parse_message(raw: Any) -> Optional[AgentMessage]:
    """Convert a raw host message dict into an AgentMessage, or None if malformed."""
    if isinstance(raw, AgentMessage):
        return raw
    if not isinstance(raw, dict):
        return None
    role = raw.get("role")
    content = parse_content(raw.get("content"))
    if not isinstance(role, str) or content is None:
        return None
    return AgentMessage(role=role, content=content)


def texts_from_messages(messages: Iterable[Any]) -> list[str]:
    """Collect capturable text from user and assistant messages.

    Other roles (system, tool) and malformed entries are skipped.
    """
    texts: list[str] = []
    for raw in messages:
        message = parse_message(raw)
        if message is None or message.role not in CAPTURE_ROLES:
            continue
        texts.extend(extract_texts(message.content))
    return texts


__all__ = [
    "AgentMessage",
    "BlockList",
    "ContentBlock",
    "MessageContent",
    "PlainText",
    "extract_texts",
    "parse_content",
    "parse_message",
    "texts_from_messages",
]
