"""Tests for MemoryRelayPlugin lifecycle hooks."""

import logging
from unittest.mock import AsyncMock

import httpx
import pytest

from conftest import hit_json, memory_json
from memoryrelay.config import MemoryRelayConfig
from memoryrelay.plugin import MemoryRelayPlugin


@pytest.fixture
def plugin(config, client):
    return MemoryRelayPlugin(config, client=client)


@pytest.fixture
def healthy(api):
    api.on("GET", "/v1/health", httpx.Response(200, json={"status": "ok"}))


async def started(plugin):
    assert await plugin.start()
    return plugin


class TestStart:
    @pytest.mark.asyncio
    async def test_start_success(self, plugin, healthy, caplog):
        with caplog.at_level(logging.INFO):
            assert await plugin.start()
        assert plugin.available
        assert "plugin loaded (autoRecall: True, autoCapture: True)" in caplog.text

    @pytest.mark.asyncio
    async def test_start_auth_failure_logs_hint(self, plugin, api, caplog):
        api.on("GET", "/v1/health", httpx.Response(401, json={"message": "bad key"}))

        assert not await plugin.start()
        assert not plugin.available
        assert "auth_error" in caplog.text
        assert "Check your API key configuration" in caplog.text
        assert len(api.requests) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"status": "down"}, {}, {"status": "DEGRADED"}])
    async def test_unhealthy_status_fails_start(self, plugin, api, body, caplog):
        api.on("GET", "/v1/health", httpx.Response(200, json=body))

        assert await plugin.start() is False
        assert not plugin.available
        assert "API reported status" in caplog.text

    @pytest.mark.asyncio
    async def test_health_status_is_case_insensitive(self, plugin, api):
        api.on("GET", "/v1/health", httpx.Response(200, json={"status": "Healthy"}))
        assert await plugin.start() is True

    @pytest.mark.asyncio
    async def test_malformed_health_body_fails_start(self, plugin, api):
        api.on("GET", "/v1/health", httpx.Response(200, json="ok"))

        assert await plugin.start() is False
        assert not plugin.available

    @pytest.mark.asyncio
    async def test_unexpected_error_fails_start(self, plugin, caplog):
        plugin.client.health = AsyncMock(side_effect=RuntimeError("boom"))

        assert await plugin.start() is False
        assert "boom" in caplog.text

    @pytest.mark.asyncio
    async def test_hooks_inactive_when_unavailable(self, plugin, api):
        assert await plugin.before_agent_start("What database do we use?") is None
        assert await plugin.agent_end([{"role": "user", "content": "remember that I use vim"}]) == 0
        assert api.requests == []


class TestAutoRecall:
    @pytest.mark.asyncio
    async def test_injects_context(self, plugin, api, healthy):
        await started(plugin)
        api.on(
            "POST",
            "/v1/memories/search",
            httpx.Response(200, json={"data": [hit_json("The database password is in vault", 0.8)]}),
        )

        context = await plugin.before_agent_start("What's the database password?")

        search = api.calls("POST", "/v1/memories/search")[0]
        assert api.body(search) == {
            "query": "s the database password",
            "limit": 5,
            "threshold": 0.3,
            "agent_id": "test-agent",
        }
        assert context == (
            "<relevant-memories>\n"
            "The following memories from MemoryRelay may be relevant:\n"
            "- The database password is in vault\n"
            "</relevant-memories>"
        )

    @pytest.mark.asyncio
    async def test_short_prompt_skipped(self, plugin, api, healthy):
        await started(plugin)
        assert await plugin.before_agent_start("hi there") is None
        assert api.calls("POST", "/v1/memories/search") == []

    @pytest.mark.asyncio
    async def test_no_hits(self, plugin, api, healthy):
        await started(plugin)
        api.on("POST", "/v1/memories/search", httpx.Response(200, json={"data": []}))
        assert await plugin.before_agent_start("Which editor do I like?") is None

    @pytest.mark.asyncio
    async def test_preprocessing_disabled_sends_raw_prompt(self, make_client, api, healthy):
        config = MemoryRelayConfig.from_dict(
            {
                "apiKey": "k",
                "agentId": "test-agent",
                "autoRecall": True,
                "queryPreprocessing": {"enabled": False},
            },
            use_env=False,
        )
        plugin = await started(MemoryRelayPlugin(config, client=make_client(config)))
        api.on("POST", "/v1/memories/search", httpx.Response(200, json={"data": []}))

        await plugin.before_agent_start("What's the database password?")

        search = api.calls("POST", "/v1/memories/search")[0]
        assert api.body(search)["query"] == "What's the database password?"

    @pytest.mark.asyncio
    async def test_recall_failure_degrades(self, plugin, api, healthy, caplog):
        await started(plugin)
        api.on("POST", "/v1/memories/search", httpx.Response(500))

        assert await plugin.before_agent_start("Which editor do I like?") is None
        assert "recall failed" in caplog.text

    @pytest.mark.asyncio
    async def test_recall_skipped_while_circuit_open(self, plugin, api, healthy):
        await started(plugin)
        for _ in range(3):
            plugin.client.breaker.record_failure()

        assert await plugin.before_agent_start("Which editor do I like?") is None
        assert api.calls("POST", "/v1/memories/search") == []


class TestAutoCapture:
    messages = [
        {"role": "system", "content": "remember that you are a helpful assistant"},
        {"role": "user", "content": "Remember that my favourite editor is vim"},
        {"role": "assistant", "content": [{"type": "text", "text": "Got it, thanks!"}]},
        {"role": "user", "content": "ops contact: someone.longername@example.org"},
    ]

    @pytest.mark.asyncio
    async def test_stores_candidates(self, plugin, api, healthy):
        await started(plugin)
        api.on("POST", "/v1/memories/search", httpx.Response(200, json={"data": []}))
        api.on("POST", "/v1/memories", httpx.Response(201, json=memory_json()))

        stored = await plugin.agent_end(self.messages)

        assert stored == 2
        stores = api.calls("POST", "/v1/memories")
        assert [api.body(r)["content"] for r in stores] == [
            "Remember that my favourite editor is vim",
            "ops contact: someone.longername@example.org",
        ]
        assert api.body(stores[0])["metadata"] == {"source": "auto-capture"}

        dedup = api.calls("POST", "/v1/memories/search")[0]
        assert api.body(dedup)["limit"] == 1
        assert api.body(dedup)["threshold"] == 0.95

    @pytest.mark.asyncio
    async def test_duplicates_skipped(self, plugin, api, healthy):
        await started(plugin)
        api.on(
            "POST",
            "/v1/memories/search",
            httpx.Response(200, json={"data": [hit_json("Remember that my favourite editor is vim", 0.99)]}),
        )

        assert await plugin.agent_end(self.messages) == 0
        assert api.calls("POST", "/v1/memories") == []

    @pytest.mark.asyncio
    async def test_at_most_three_per_turn(self, plugin, api, healthy):
        await started(plugin)
        api.on("POST", "/v1/memories/search", httpx.Response(200, json={"data": []}))
        api.on("POST", "/v1/memories", httpx.Response(201, json=memory_json()))
        messages = [
            {"role": "user", "content": f"remember that fact number {i} is true"} for i in range(5)
        ]

        assert await plugin.agent_end(messages) == 3

    @pytest.mark.asyncio
    async def test_failed_turn_not_captured(self, plugin, api, healthy):
        await started(plugin)
        assert await plugin.agent_end(self.messages, success=False) == 0
        assert len(api.requests) == 1

    @pytest.mark.asyncio
    async def test_capture_failure_degrades(self, plugin, api, healthy, caplog):
        await started(plugin)
        api.on("POST", "/v1/memories/search", httpx.Response(200, json={"data": []}))
        api.on("POST", "/v1/memories", httpx.Response(401))

        assert await plugin.agent_end(self.messages) == 0
        assert "capture failed" in caplog.text

    @pytest.mark.asyncio
    async def test_capture_skipped_while_circuit_open(self, plugin, api, healthy):
        await started(plugin)
        for _ in range(3):
            plugin.client.breaker.record_failure()

        assert await plugin.agent_end(self.messages) == 0
        assert len(api.requests) == 1


class TestStatus:
    @pytest.mark.asyncio
    async def test_connected(self, plugin, api, healthy):
        api.on("GET", "/v1/stats", httpx.Response(200, json={"data": {"total_memories": 7}}))

        report = await plugin.status()

        assert report["available"] is True
        assert report["connected"] is True
        assert report["memoryCount"] == 7
        assert report["endpoint"] == "api.test.memoryrelay.net"
        assert report["agentId"] == "test-agent"
        assert report["circuit"] == {"open": False, "failures": 0}

    @pytest.mark.asyncio
    async def test_unreachable(self, plugin, api):
        api.on("GET", "/v1/health", httpx.Response(503))

        report = await plugin.status()

        assert report["available"] is False
        assert report["connected"] is False
        assert "503" in report["error"]


class TestHooksNeverRaise:
    """Malformed bodies and unexpected errors degrade like any other failure."""

    @pytest.mark.asyncio
    async def test_recall_with_bad_score(self, plugin, api, healthy, caplog):
        await started(plugin)
        hit = hit_json("The database password is in vault", 0.8)
        hit["score"] = "high"
        api.on("POST", "/v1/memories/search", httpx.Response(200, json={"data": [hit]}))

        assert await plugin.before_agent_start("What's the database password?") is None
        assert "recall failed (server_error)" in caplog.text

    @pytest.mark.asyncio
    async def test_recall_with_unexpected_exception(self, plugin, healthy):
        await started(plugin)
        plugin.client.search = AsyncMock(side_effect=KeyError("data"))

        assert await plugin.before_agent_start("Which editor do I like?") is None

    @pytest.mark.asyncio
    async def test_capture_with_non_object_store_body(self, plugin, api, healthy, caplog):
        await started(plugin)
        api.on("POST", "/v1/memories/search", httpx.Response(200, json={"data": []}))
        api.on("POST", "/v1/memories", httpx.Response(201, json=["not", "a", "memory"]))

        assert await plugin.agent_end(TestAutoCapture.messages) == 0
        assert "capture failed" in caplog.text

    @pytest.mark.asyncio
    async def test_capture_with_unexpected_exception(self, plugin, healthy):
        await started(plugin)
        plugin.client.search = AsyncMock(side_effect=TypeError("bad"))

        assert await plugin.agent_end(TestAutoCapture.messages) == 0

    @pytest.mark.asyncio
    async def test_status_with_malformed_health(self, plugin, api):
        api.on("GET", "/v1/health", httpx.Response(200, json="ok"))

        report = await plugin.status()

        assert report["available"] is False
        assert "expected a JSON object" in report["error"]

    @pytest.mark.asyncio
    async def test_status_with_malformed_stats(self, plugin, api, healthy):
        api.on("GET", "/v1/stats", httpx.Response(200, json={"data": "lots"}))

        report = await plugin.status()

        assert report["available"] is True
        assert report["memoryCount"] == 0
