"""MemoryRelay Plugin - Lifecycle hooks for an agent runtime.

The host calls these at fixed points of each turn:
- start(): once, verifies the connection
- before_agent_start(prompt): auto-recall, returns context to prepend
- agent_end(messages): auto-capture, stores noteworthy text
- status(): availability report for the host's status command

None of the hooks raise. Failures are logged and degrade to "no memories
injected" or "nothing captured", so a memory outage never breaks a turn.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from .capture import (
    DEDUP_THRESHOLD,
    MAX_CAPTURES_PER_TURN,
    CaptureDecisionEngine,
    texts_from_messages,
)
from .client import MemoryRelayClient
from .config import MemoryRelayConfig
from .errors import MemoryRelayError, classify_error, error_hint
from .recall import format_recall_context, recall_query
from .tools import MemoryTools

MIN_RECALL_PROMPT_LENGTH = 10


class MemoryRelayPlugin:
    """Auto-recall and auto-capture for one agent.

    Example:
        plugin = MemoryRelayPlugin(MemoryRelayConfig.from_dict(host_config))
        if await plugin.start():
            context = await plugin.before_agent_start(prompt)
            ...
            await plugin.agent_end(messages)
    """

    def __init__(
        self,
        config: MemoryRelayConfig,
        client: Optional[MemoryRelayClient] = None,
    ):
        """Initialize plugin.

        Args:
            config: Validated plugin configuration
            client: Pre-built client (defaults to one built from config)
        """
        self.config = config
        self.client = client or MemoryRelayClient(config)
        self.capture_engine = CaptureDecisionEngine(
            entity_extraction_enabled=config.entity_extraction.enabled
        )
        self.tools = MemoryTools(self.client, recall_threshold=config.recall_threshold)
        self.available = False

    async def start(self) -> bool:
        """Verify the connection with a health check.

        A failed check disables the plugin for this process.

        Returns:
            True if the API answered with a healthy status and the plugin is active
        """
        self.available = False
        try:
            health = await self.client.health()
        except MemoryRelayError as e:
            error_type = classify_error(e)
            logging.error(
                "[memoryrelay] health check failed (%s): %s", error_type.value, e
            )
            hint = error_hint(error_type)
            if hint:
                logging.error("[memoryrelay] %s", hint)
            return False
        except Exception as e:
            logging.error("[memoryrelay] health check failed: %s", e)
            return False

        if not health.healthy:
            logging.error(
                "[memoryrelay] health check failed: API reported status %r", health.status
            )
            return False

        self.available = True
        logging.info("[memoryrelay] connected to %s", self.config.api_url)
        logging.info(
            "[memoryrelay] circuit breaker=%s, retry=%s, entity extraction=%s, "
            "query preprocessing=%s",
            self.config.circuit_breaker.enabled,
            self.config.retry.enabled,
            self.config.entity_extraction.enabled,
            self.config.query_preprocessing.enabled,
        )
        logging.info(
            "[memoryrelay] plugin loaded (autoRecall: %s, autoCapture: %s)",
            self.config.auto_recall,
            self.config.auto_capture,
        )
        return True

    async def before_agent_start(self, prompt: Optional[str]) -> Optional[str]:
        """Auto-recall: find memories relevant to the prompt.

        Returns:
            A <relevant-memories> block to prepend, or None
        """
        if not (self.config.auto_recall and self.available):
            return None
        if not prompt or len(prompt) < MIN_RECALL_PROMPT_LENGTH:
            return None
        if self.client.is_circuit_open():
            logging.debug("[memoryrelay] circuit open, skipping recall")
            return None

        query = recall_query(prompt, preprocess=self.config.query_preprocessing.enabled)
        try:
            hits = await self.client.search(
                query, self.config.recall_limit, self.config.recall_threshold
            )
        except Exception as e:
            logging.warning("[memoryrelay] recall failed (%s): %s", classify_error(e).value, e)
            return None

        if not hits:
            return None

        logging.info("[memoryrelay] injecting %d memories into context", len(hits))
        return format_recall_context(hits)

    async def agent_end(self, messages: Optional[Iterable[Any]], success: bool = True) -> int:
        """Auto-capture: store noteworthy user/assistant text from the turn.

        At most MAX_CAPTURES_PER_TURN candidates are considered, in order.
        Each is skipped if a near-identical memory already exists.

        Returns:
            Number of memories stored
        """
        if not (self.config.auto_capture and self.available):
            return 0
        if not success or not messages:
            return 0

        candidates = self.capture_engine.select(
            texts_from_messages(messages), limit=MAX_CAPTURES_PER_TURN
        )
        if not candidates:
            return 0
        if self.client.is_circuit_open():
            logging.debug("[memoryrelay] circuit open, skipping capture")
            return 0

        stored = 0
        try:
            for text in candidates:
                existing = await self.client.search(text, 1, DEDUP_THRESHOLD)
                if existing:
                    continue
                await self.client.store(text, {"source": "auto-capture"})
                stored += 1
        except Exception as e:
            logging.warning("[memoryrelay] capture failed: %s", e)

        if stored:
            logging.info("[memoryrelay] auto-captured %d memories", stored)
        return stored

    async def status(self) -> dict[str, Any]:
        """Report availability for the host's status command."""
        circuit = self.client.circuit_state()
        report: dict[str, Any] = {
            "endpoint": self.config.endpoint,
            "agentId": self.config.agent_id,
            "circuit": circuit.to_dict() if circuit is not None else None,
        }
        try:
            health = await self.client.health()
        except Exception as e:
            report.update(
                available=False,
                connected=False,
                error=str(e),
                vector={"available": False, "enabled": True},
            )
            return report

        memory_count = 0
        try:
            memory_count = (await self.client.stats()).total_memories
        except Exception as e:
            logging.debug("[memoryrelay] stats endpoint unavailable: %s", e)

        report.update(
            available=True,
            connected=health.healthy,
            memoryCount=memory_count,
            vector={"available": True, "enabled": True},
        )
        return report

    async def close(self) -> None:
        await self.client.aclose()


__all__ = ["MemoryRelayPlugin", "MIN_RECALL_PROMPT_LENGTH"]
