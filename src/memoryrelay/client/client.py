"""MemoryRelay Client - Gateway calls behind a circuit breaker and retry.

One MemoryRelayClient is constructed per agent and passed to everything that
needs it (plugin hooks, tools, CLI). It owns that agent's breaker state.
"""

from __future__ import annotations

import asyncio
import json
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

from ..config import MemoryRelayConfig
from ..errors import CircuitOpenError
from ..resilience import CircuitBreaker, CircuitSnapshot, RetryExecutor
from .gateway import RemoteMemoryGateway
from .types import HealthStatus, MemoryRecord, MemoryStats, SearchHit

T = TypeVar("T")

MAX_CONTENT_LENGTH = 50_000
MAX_METADATA_BYTES = 10 * 1024


class MemoryRelayClient:
    """Resilient MemoryRelay client for a single agent.

    Every call first checks the circuit breaker. While it is open the call
    fails fast with CircuitOpenError and no request is made. Otherwise the
    gateway call runs under the retry policy, which reports each outcome to
    the breaker.

    Example:
        config = MemoryRelayConfig.from_dict({"apiKey": "...", "agentId": "bot"})
        async with MemoryRelayClient(config) as client:
            await client.store("User prefers dark mode")
            hits = await client.search("theme preference")
    """

    def __init__(
        self,
        config: MemoryRelayConfig,
        *,
        gateway: Optional[RemoteMemoryGateway] = None,
        breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Optional[Callable[[], float]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize client.

        Args:
            config: Client configuration
            gateway: Pre-built gateway (defaults to one built from config)
            breaker: Pre-built breaker (defaults to one built from config,
                or none when the breaker is disabled)
            transport: httpx transport for the default gateway
            clock: Millisecond clock for the default breaker
            sleep: Backoff sleep coroutine (seconds)
        """
        self.config = config
        self.gateway = gateway or RemoteMemoryGateway(
            api_key=config.api_key,
            agent_id=config.agent_id,
            api_url=config.api_url,
            timeout_ms=config.timeout_ms,
            transport=transport,
        )

        if breaker is None and config.circuit_breaker.enabled:
            breaker = CircuitBreaker(
                max_failures=config.circuit_breaker.max_failures,
                reset_timeout_ms=config.circuit_breaker.reset_timeout_ms,
                clock=clock,
            )
        self.breaker = breaker
        self.retry = RetryExecutor(config.retry, breaker=self.breaker, sleep=sleep)

    @property
    def agent_id(self) -> str:
        return self.config.agent_id

    async def __aenter__(self) -> MemoryRelayClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.gateway.aclose()

    def is_circuit_open(self) -> bool:
        return self.breaker.is_open() if self.breaker is not None else False

    def circuit_state(self) -> Optional[CircuitSnapshot]:
        return self.breaker.snapshot() if self.breaker is not None else None

    async def _call(self, operation: Callable[[], Awaitable[T]]) -> T:
        if self.breaker is not None and self.breaker.is_open():
            raise CircuitOpenError(self.breaker.snapshot().open_until_ms)
        return await self.retry.run(operation)

    async def store(
        self, content: str, metadata: Optional[dict[str, str]] = None
    ) -> MemoryRecord:
        """Store a new memory.

        Raises:
            ValueError: If content or metadata are out of bounds (no request is made)
        """
        if not content or len(content) > MAX_CONTENT_LENGTH:
            raise ValueError(f"content must be 1-{MAX_CONTENT_LENGTH} characters")
        if metadata is not None:
            size = len(json.dumps(metadata, separators=(",", ":")).encode("utf-8"))
            if size > MAX_METADATA_BYTES:
                raise ValueError(f"metadata must be at most {MAX_METADATA_BYTES} bytes serialized")
        return await self._call(lambda: self.gateway.store(content, metadata))

    async def search(
        self, query: str, limit: int = 5, threshold: float = 0.3
    ) -> list[SearchHit]:
        return await self._call(lambda: self.gateway.search(query, limit, threshold))

    async def list(self, limit: int = 20, offset: int = 0) -> list[MemoryRecord]:
        return await self._call(lambda: self.gateway.list(limit, offset))

    async def get(self, memory_id: str) -> MemoryRecord:
        return await self._call(lambda: self.gateway.get(memory_id))

    async def delete(self, memory_id: str) -> None:
        await self._call(lambda: self.gateway.delete(memory_id))

    async def health(self) -> HealthStatus:
        return await self._call(self.gateway.health)

    async def stats(self) -> MemoryStats:
        return await self._call(self.gateway.stats)


__all__ = ["MemoryRelayClient", "MAX_CONTENT_LENGTH", "MAX_METADATA_BYTES"]
