"""Memory tools exposed to the agent.

Tools are declared with the @tool decorator, which derives a Pydantic input
model (and so a JSON schema) from the function signature. MemoryTools binds
them to a MemoryRelayClient:

- memory_store: Save a memory
- memory_recall: Semantic search
- memory_forget: Delete by id, or find candidates by query

Tool failures become error results; they are never raised to the host.
"""

import inspect
import json
import logging
import typing
from dataclasses import dataclass, field
from typing import Annotated, Any, Callable, Optional

from pydantic import AliasChoices, BaseModel, Field, ValidationError, create_model

from .client import MemoryRelayClient

FORGET_SEARCH_LIMIT = 5
FORGET_SEARCH_THRESHOLD = 0.5
FORGET_AUTO_DELETE_SCORE = 0.9


@dataclass
class ToolResult:
    """Result of a tool execution.

    Attributes:
        text: Human-readable result shown to the agent
        details: Structured data for the host
    """

    text: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return "error" in self.details

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": [{"type": "text", "text": self.text}],
            "details": self.details,
        }


class Tool:
    """A declared tool with its metadata and handler function."""

    def __init__(
        self,
        name: str,
        description: str,
        func: Callable[..., Any],
        input_model: Optional[type[BaseModel]],
    ):
        self.name = name
        self.description = description
        self.func = func
        self.input_model = input_model

    @property
    def parameters_schema(self) -> dict[str, Any]:
        """JSON Schema for tool parameters."""
        if self.input_model:
            return self.input_model.model_json_schema()
        return {"type": "object", "properties": {}}

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters_schema,
        }


def _model_from_signature(func: Callable[..., Any]) -> Optional[type[BaseModel]]:
    """Build a Pydantic input model from a function signature."""
    sig = inspect.signature(func)
    hints = typing.get_type_hints(func, include_extras=True)
    fields = {}
    for name, param in sig.parameters.items():
        if name == "self":
            continue
        ann = hints.get(
            name,
            str if param.default is inspect.Parameter.empty else type(param.default),
        )
        default = ... if param.default is inspect.Parameter.empty else param.default
        fields[name] = (ann, default)
    if not fields:
        return None
    model_name = "".join(part.capitalize() for part in func.__name__.split("_")) + "Input"
    return create_model(model_name, **fields)


def tool(name: str, description: str = ""):
    """Decorator to declare a function or method as a memory tool.

    Args:
        name: Tool name as seen by the agent
        description: What the tool does (defaults to the docstring)

    Example:
        @tool("memory_recall", description="Search memories")
        async def memory_recall(self, query: str, limit: int = 5) -> ToolResult:
            ...
    """

    def wrapper(func: Callable[..., Any]):
        func.__memoryrelay_tool__ = Tool(
            name=name,
            description=description or inspect.cleandoc(func.__doc__ or ""),
            func=func,
            input_model=_model_from_signature(func),
        )
        return func

    return wrapper


class MemoryTools:
    """The memory tools, bound to one agent's client."""

    def __init__(self, client: MemoryRelayClient, recall_threshold: float = 0.3):
        self.client = client
        self.recall_threshold = recall_threshold
        self._tools: dict[str, Tool] = {}
        for attr in dir(type(self)):
            t = getattr(getattr(type(self), attr), "__memoryrelay_tool__", None)
            if t is not None:
                self._tools[t.name] = t

    @property
    def tools(self) -> list[Tool]:
        return sorted(self._tools.values(), key=lambda t: t.name)

    def get_tool(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    async def call(self, name: str, arguments: Optional[dict[str, Any]] = None) -> ToolResult:
        """Validate arguments and run a tool by name."""
        t = self._tools.get(name)
        if t is None:
            return ToolResult(f"Unknown tool: {name}", {"error": "unknown_tool"})

        kwargs: dict[str, Any] = {}
        if t.input_model is not None:
            try:
                parsed = t.input_model.model_validate(arguments or {})
            except ValidationError as e:
                return ToolResult(
                    f"Invalid arguments for {name}: {e.error_count()} error(s)",
                    {"error": "invalid_arguments", "errors": json.loads(e.json())},
                )
            kwargs = {key: getattr(parsed, key) for key in type(parsed).model_fields}

        return await t.func(self, **kwargs)

    @tool(
        "memory_store",
        description=(
            "Store a new memory in MemoryRelay. Use this to save important information, "
            "facts, preferences, or context that should be remembered for future conversations."
        ),
    )
    async def memory_store(
        self,
        content: Annotated[str, Field(min_length=1, description="The memory content to store")],
        metadata: Optional[dict[str, str]] = None,
    ) -> ToolResult:
        try:
            memory = await self.client.store(content, metadata)
        except Exception as e:
            logging.warning("[memoryrelay] memory_store failed: %s", e)
            return ToolResult(f"Failed to store memory: {e}", {"error": str(e)})
        return ToolResult(
            f"Memory stored successfully (id: {memory.short_id}...)",
            {"id": memory.id, "stored": True},
        )

    @tool(
        "memory_recall",
        description=(
            "Search memories using natural language. Returns the most relevant memories "
            "based on semantic similarity."
        ),
    )
    async def memory_recall(
        self,
        query: Annotated[str, Field(min_length=1, description="Natural language search query")],
        limit: Annotated[int, Field(ge=1, le=20, description="Maximum results (1-20)")] = 5,
    ) -> ToolResult:
        try:
            hits = await self.client.search(query, limit, self.recall_threshold)
        except Exception as e:
            logging.warning("[memoryrelay] memory_recall failed: %s", e)
            return ToolResult(f"Search failed: {e}", {"error": str(e)})

        if not hits:
            return ToolResult("No relevant memories found.", {"count": 0})

        formatted = "\n".join(f"- [{hit.score:.2f}] {hit.memory.preview(200)}" for hit in hits)
        return ToolResult(
            f"Found {len(hits)} relevant memories:\n{formatted}",
            {
                "count": len(hits),
                "memories": [
                    {"id": hit.memory.id, "content": hit.memory.content, "score": hit.score}
                    for hit in hits
                ],
            },
        )

    @tool("memory_forget", description="Delete a memory by ID or search for memories to forget.")
    async def memory_forget(
        self,
        memory_id: Annotated[
            Optional[str],
            Field(
                validation_alias=AliasChoices("memoryId", "memory_id"),
                description="Memory ID to delete",
            ),
        ] = None,
        query: Annotated[Optional[str], Field(description="Search query to find memory")] = None,
    ) -> ToolResult:
        """Delete by id, or by a single confident search match.

        An unknown id answers 404, which classifies as a server failure: it is
        retried with backoff (about 7s under the default retry settings) and
        every attempt counts toward the circuit breaker. With the defaults one
        bad id opens the circuit, pausing auto-recall and auto-capture until
        the cooldown ends.
        """
        if memory_id:
            try:
                await self.client.delete(memory_id)
            except Exception as e:
                logging.warning("[memoryrelay] memory_forget failed: %s", e)
                return ToolResult(f"Delete failed: {e}", {"error": str(e)})
            return ToolResult(
                f"Memory {memory_id[:8]}... deleted.",
                {"action": "deleted", "id": memory_id},
            )

        if not query:
            return ToolResult("Provide query or memoryId.", {"error": "missing_param"})

        try:
            hits = await self.client.search(query, FORGET_SEARCH_LIMIT, FORGET_SEARCH_THRESHOLD)
            if not hits:
                return ToolResult("No matching memories found.", {"count": 0})

            # A single high-confidence match is unambiguous
            if len(hits) == 1 and hits[0].score > FORGET_AUTO_DELETE_SCORE:
                target = hits[0].memory
                await self.client.delete(target.id)
                return ToolResult(
                    f'Forgotten: "{target.preview(60)}"',
                    {"action": "deleted", "id": target.id},
                )
        except Exception as e:
            logging.warning("[memoryrelay] memory_forget failed: %s", e)
            return ToolResult(f"Forget failed: {e}", {"error": str(e)})

        candidates = "\n".join(
            f"- [{hit.memory.short_id}] {hit.memory.preview(60)}" for hit in hits
        )
        return ToolResult(
            f"Found {len(hits)} candidates. Specify memoryId:\n{candidates}",
            {"action": "candidates", "count": len(hits)},
        )


__all__ = ["Tool", "ToolResult", "MemoryTools", "tool"]
