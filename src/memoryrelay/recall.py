"""Recall helpers - Query cleanup and context formatting for auto-recall."""

from __future__ import annotations

import re
from typing import Sequence

from .client.types import SearchHit

STOPWORDS = (
    "what",
    "how",
    "when",
    "where",
    "why",
    "who",
    "which",
    "whose",
    "whom",
    "is",
    "are",
    "was",
    "were",
    "do",
    "does",
    "did",
    "can",
    "could",
    "should",
    "would",
    "will",
)

_STOPWORD_RE = re.compile(r"\b(?:" + "|".join(STOPWORDS) + r")\b", re.IGNORECASE)
_PUNCTUATION_RE = re.compile(r"[?!.,;:'\"()]")
_WHITESPACE_RE = re.compile(r"\s+")


def preprocess_query(query: str) -> str:
    """Strip interrogative/auxiliary words and punctuation from a query.

    Apostrophes split words, so "What's the database password?" becomes
    "s the database password". May return an empty string; see recall_query.
    """
    cleaned = _STOPWORD_RE.sub("", query)
    cleaned = _PUNCTUATION_RE.sub(" ", cleaned)
    return _WHITESPACE_RE.sub(" ", cleaned).strip()


def recall_query(prompt: str, preprocess: bool = True) -> str:
    """Return the query to search with, falling back to the raw prompt.

    An empty cleaned query means the stoplist consumed everything, not that
    there is nothing to search for.
    """
    if not preprocess:
        return prompt
    return preprocess_query(prompt) or prompt


def format_recall_context(hits: Sequence[SearchHit]) -> str:
    """Render search hits as a context block to prepend to the agent prompt."""
    lines = "\n".join(f"- {hit.memory.content}" for hit in hits)
    return (
        "<relevant-memories>\n"
        "The following memories from MemoryRelay may be relevant:\n"
        f"{lines}\n"
        "</relevant-memories>"
    )


__all__ = ["STOPWORDS", "preprocess_query", "recall_query", "format_recall_context"]
