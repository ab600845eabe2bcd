"""Test fixtures and configuration for memoryrelay tests.

Test Structure:
    tests/
    ├── conftest.py          # Shared fixtures
    ├── unit/                # Pure logic, no transport
    │   ├── test_breaker.py
    │   ├── test_capture.py
    │   ├── test_config.py
    │   ├── test_entities.py
    │   ├── test_errors.py
    │   ├── test_messages.py
    │   ├── test_recall.py
    │   ├── test_retry.py
    │   ├── test_telemetry.py
    │   └── test_tools.py
    ├── test_gateway.py      # HTTP layer over httpx.MockTransport
    ├── test_client.py       # Breaker + retry + gateway together
    ├── test_plugin.py       # Lifecycle hooks
    └── test_cli.py

Running tests:
    pytest tests/unit -v        # Unit tests only
    pytest -v                   # Everything (no network access needed)
"""

import json
from typing import Callable

import httpx
import pytest

from memoryrelay.client import MemoryRelayClient
from memoryrelay.config import MemoryRelayConfig

API_URL = "https://api.test.memoryrelay.net"


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start_ms: float = 1_000_000.0):
        self.now_ms = start_ms

    def __call__(self) -> float:
        return self.now_ms

    def advance(self, ms: float) -> None:
        self.now_ms += ms


class RecordingSleep:
    """Async sleep stand-in that records requested delays (seconds)."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class MockAPI:
    """Routes requests to per-(method, path) handlers and records them."""

    def __init__(self):
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def on(self, method: str, path: str, handler) -> None:
        if isinstance(handler, httpx.Response):
            template = handler

            def handler(request: httpx.Request) -> httpx.Response:
                # fresh response per request, a read stream cannot be reused
                return httpx.Response(
                    template.status_code, headers=template.headers, content=template.content
                )

        self.routes[(method, path)] = handler

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"message": "no route"})
        return handler(request)

    @staticmethod
    def body(request: httpx.Request) -> dict:
        return json.loads(request.content)


def memory_json(memory_id: str = "mem-1234567890", content: str = "hello", **extra) -> dict:
    data = {
        "id": memory_id,
        "content": content,
        "agent_id": "test-agent",
        "user_id": "user-1",
        "metadata": {},
        "entities": [],
        "created_at": 1700000000,
        "updated_at": 1700000000,
    }
    data.update(extra)
    return data


def hit_json(content: str, score: float, memory_id: str = "mem-1234567890") -> dict:
    return {"memory": memory_json(memory_id, content), "score": score}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def api() -> MockAPI:
    return MockAPI()


@pytest.fixture
def config() -> MemoryRelayConfig:
    return MemoryRelayConfig.from_dict(
        {
            "apiKey": "mem_test_abcdefghijklmnop",
            "agentId": "test-agent",
            "apiUrl": API_URL,
            "autoRecall": True,
            "autoCapture": True,
            "retry": {"enabled": True, "maxRetries": 2, "baseDelayMs": 100},
            "circuitBreaker": {"enabled": True, "maxFailures": 3, "resetTimeoutMs": 1000},
        },
        use_env=False,
    )


@pytest.fixture
def make_client(api, clock, sleep):
    """Build a MemoryRelayClient wired to the mock API, fake clock and sleep."""

    def factory(config: MemoryRelayConfig) -> MemoryRelayClient:
        return MemoryRelayClient(
            config,
            transport=httpx.MockTransport(api),
            clock=clock,
            sleep=sleep,
        )

    return factory


@pytest.fixture
def client(make_client, config) -> MemoryRelayClient:
    return make_client(config)
