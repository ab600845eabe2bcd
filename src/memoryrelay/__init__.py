"""MemoryRelay Python SDK - Long-term memory for AI agents.

This package sits between an agent runtime and the MemoryRelay API. It keeps
remote calls well-behaved and decides what is worth remembering:

- **Resilience**: circuit breaker, bounded retry with backoff, error classes
- **Capture**: entity extraction + phrase patterns decide what to store
- **Recall**: query cleanup before semantic search

Quick Start:
    ```python
    from memoryrelay import MemoryRelayClient, MemoryRelayConfig

    config = MemoryRelayConfig.from_dict({"apiKey": "mem_prod_...", "agentId": "my-agent"})

    async with MemoryRelayClient(config) as client:
        await client.store("User prefers PostgreSQL over MySQL")
        for hit in await client.search("which database does the user like?"):
            print(hit.score, hit.memory.content)
    ```

For hosts with per-turn lifecycle hooks:
    ```python
    from memoryrelay import MemoryRelayPlugin

    plugin = MemoryRelayPlugin(config)
    if await plugin.start():
        context = await plugin.before_agent_start(prompt)  # auto-recall
        ...
        await plugin.agent_end(messages)  # auto-capture
    ```

Module structure:
    - client/: Gateway (HTTP), resilient client, response types
    - resilience/: CircuitBreaker, RetryExecutor
    - capture/: Entity extraction, capture decisions, message shapes
    - recall: Query preprocessing and context formatting
    - plugin: Lifecycle hooks
    - tools: Agent-facing memory tools
    - telemetry/: OpenTelemetry tracing
    - cli: Command line interface
"""

from ._version import __version__

# Capture
from .capture import CaptureDecisionEngine, Entity, EntityType, extract_entities

# Client
from .client import (
    HealthStatus,
    MemoryRecord,
    MemoryRelayClient,
    MemoryStats,
    RemoteMemoryGateway,
    SearchHit,
)

# Config
from .config import MemoryRelayConfig, load_config

# Errors
from .errors import (
    CircuitOpenError,
    ConfigError,
    ErrorType,
    MemoryNotFoundError,
    MemoryRelayError,
    MemoryRelayResponseError,
    classify_error,
)

# Plugin
from .plugin import MemoryRelayPlugin

# Recall
from .recall import preprocess_query

# Resilience
from .resilience import CircuitBreaker, RetryExecutor

# Tools
from .tools import MemoryTools, Tool, ToolResult, tool

__all__ = [
    "__version__",
    # Client
    "MemoryRelayClient",
    "RemoteMemoryGateway",
    "MemoryRecord",
    "SearchHit",
    "MemoryStats",
    "HealthStatus",
    # Config
    "MemoryRelayConfig",
    "load_config",
    # Errors
    "ErrorType",
    "MemoryRelayError",
    "MemoryRelayResponseError",
    "MemoryNotFoundError",
    "CircuitOpenError",
    "ConfigError",
    "classify_error",
    # Resilience
    "CircuitBreaker",
    "RetryExecutor",
    # Capture
    "CaptureDecisionEngine",
    "Entity",
    "EntityType",
    "extract_entities",
    # Recall
    "preprocess_query",
    # Plugin
    "MemoryRelayPlugin",
    # Tools
    "MemoryTools",
    "Tool",
    "ToolResult",
    "tool",
]
