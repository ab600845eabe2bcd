"""Unit tests for the agent-facing memory tools."""

from typing import Annotated
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import Field

from memoryrelay.client.types import MemoryRecord, SearchHit
from memoryrelay.errors import MemoryRelayAPIError
from memoryrelay.tools import MemoryTools, ToolResult, tool


def hit(content, score, memory_id="abcdef1234567890"):
    return SearchHit(MemoryRecord(id=memory_id, content=content), score)


@pytest.fixture
def client():
    mock = MagicMock()
    mock.store = AsyncMock(return_value=MemoryRecord(id="abcdef1234567890", content="x"))
    mock.search = AsyncMock(return_value=[])
    mock.delete = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def tools(client):
    return MemoryTools(client, recall_threshold=0.4)


class TestToolDecorator:
    def test_schema_from_signature(self):
        @tool("echo", description="Echo text back")
        async def echo(text: str, times: int = 1) -> ToolResult:
            return ToolResult(text * times)

        t = echo.__memoryrelay_tool__
        schema = t.parameters_schema
        assert t.name == "echo"
        assert schema["required"] == ["text"]
        assert schema["properties"]["times"]["default"] == 1

    def test_description_defaults_to_docstring(self):
        @tool("noop")
        async def noop() -> ToolResult:
            """Does nothing."""
            return ToolResult("")

        t = noop.__memoryrelay_tool__
        assert t.description == "Does nothing."
        assert t.input_model is None
        assert t.parameters_schema == {"type": "object", "properties": {}}

    def test_field_constraints_reach_schema(self):
        @tool("bounded")
        async def bounded(n: Annotated[int, Field(ge=1, le=20)] = 5) -> ToolResult:
            return ToolResult(str(n))

        props = bounded.__memoryrelay_tool__.parameters_schema["properties"]["n"]
        assert props["minimum"] == 1
        assert props["maximum"] == 20


class TestMemoryTools:
    def test_registered_tools(self, tools):
        assert [t.name for t in tools.tools] == ["memory_forget", "memory_recall", "memory_store"]
        assert tools.get_tool("memory_store").to_dict()["parameters"]["required"] == ["content"]

    @pytest.mark.asyncio
    async def test_unknown_tool(self, tools):
        result = await tools.call("memory_bogus", {})
        assert result.is_error
        assert result.details["error"] == "unknown_tool"

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, tools, client):
        result = await tools.call("memory_recall", {"query": "x", "limit": 50})
        assert result.details["error"] == "invalid_arguments"
        client.search.assert_not_called()


class TestMemoryStore:
    @pytest.mark.asyncio
    async def test_store(self, tools, client):
        result = await tools.call("memory_store", {"content": "likes tea", "metadata": {"k": "v"}})
        client.store.assert_awaited_once_with("likes tea", {"k": "v"})
        assert result.text == "Memory stored successfully (id: abcdef12...)"
        assert result.details == {"id": "abcdef1234567890", "stored": True}
        assert result.to_dict()["content"] == [{"type": "text", "text": result.text}]

    @pytest.mark.asyncio
    async def test_store_failure_is_a_result(self, tools, client):
        client.store.side_effect = MemoryRelayAPIError(500, "Internal Server Error")
        result = await tools.call("memory_store", {"content": "likes tea"})
        assert result.is_error
        assert result.text.startswith("Failed to store memory:")


class TestMemoryRecall:
    @pytest.mark.asyncio
    async def test_recall_uses_configured_threshold(self, tools, client):
        client.search.return_value = [hit("User prefers vim", 0.953)]
        result = await tools.call("memory_recall", {"query": "editor"})

        client.search.assert_awaited_once_with("editor", 5, 0.4)
        assert result.text == "Found 1 relevant memories:\n- [0.95] User prefers vim"
        assert result.details["count"] == 1
        assert result.details["memories"][0]["score"] == 0.953

    @pytest.mark.asyncio
    async def test_recall_no_results(self, tools):
        result = await tools.call("memory_recall", {"query": "editor", "limit": 3})
        assert result.text == "No relevant memories found."
        assert result.details == {"count": 0}


class TestMemoryForget:
    @pytest.mark.asyncio
    async def test_forget_by_id(self, tools, client):
        result = await tools.call("memory_forget", {"memoryId": "abcdef1234567890"})
        client.delete.assert_awaited_once_with("abcdef1234567890")
        assert result.text == "Memory abcdef12... deleted."
        assert result.details["action"] == "deleted"

    @pytest.mark.asyncio
    async def test_forget_requires_a_parameter(self, tools, client):
        result = await tools.call("memory_forget", {})
        assert result.text == "Provide query or memoryId."
        assert result.details == {"error": "missing_param"}
        client.search.assert_not_called()

    @pytest.mark.asyncio
    async def test_single_confident_match_is_deleted(self, tools, client):
        client.search.return_value = [hit("old staging password", 0.97, "feedface00000000")]
        result = await tools.call("memory_forget", {"query": "staging password"})

        client.search.assert_awaited_once_with("staging password", 5, 0.5)
        client.delete.assert_awaited_once_with("feedface00000000")
        assert result.text == 'Forgotten: "old staging password"'

    @pytest.mark.asyncio
    async def test_ambiguous_matches_are_listed(self, tools, client):
        client.search.return_value = [
            hit("staging password v1", 0.96, "aaaaaaaa11111111"),
            hit("staging password v2", 0.93, "bbbbbbbb22222222"),
        ]
        result = await tools.call("memory_forget", {"query": "staging password"})

        client.delete.assert_not_called()
        assert result.details == {"action": "candidates", "count": 2}
        assert "- [aaaaaaaa] staging password v1" in result.text

    @pytest.mark.asyncio
    async def test_low_score_single_match_is_not_deleted(self, tools, client):
        client.search.return_value = [hit("staging password", 0.9)]
        result = await tools.call("memory_forget", {"query": "staging password"})
        client.delete.assert_not_called()
        assert result.details["action"] == "candidates"

    @pytest.mark.asyncio
    async def test_no_matches(self, tools, client):
        result = await tools.call("memory_forget", {"query": "nothing"})
        assert result.text == "No matching memories found."


class TestUnexpectedErrors:
    """Any exception from the client becomes an error result."""

    @pytest.mark.asyncio
    async def test_store(self, tools, client):
        client.store.side_effect = AttributeError("'str' object has no attribute 'get'")
        result = await tools.call("memory_store", {"content": "likes tea"})
        assert result.is_error

    @pytest.mark.asyncio
    async def test_recall(self, tools, client):
        client.search.side_effect = ValueError("could not convert string to float: 'high'")
        result = await tools.call("memory_recall", {"query": "editor"})
        assert result.is_error
        assert result.text.startswith("Search failed:")

    @pytest.mark.asyncio
    async def test_forget_by_id(self, tools, client):
        client.delete.side_effect = RuntimeError("boom")
        result = await tools.call("memory_forget", {"memoryId": "abc"})
        assert result.text == "Delete failed: boom"

    @pytest.mark.asyncio
    async def test_forget_by_query(self, tools, client):
        client.search.side_effect = TypeError("bad")
        result = await tools.call("memory_forget", {"query": "staging"})
        assert result.text == "Forget failed: bad"
