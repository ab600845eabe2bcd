"""Remote Memory Gateway - Direct HTTP calls to the MemoryRelay API.

Each method issues exactly one request. Retry and circuit breaking live in
MemoryRelayClient, which wraps this gateway.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, TypeVar
from urllib.parse import quote

import httpx
from opentelemetry import trace

from .._version import __version__
from ..config import DEFAULT_API_URL
from ..errors import (
    MemoryNotFoundError,
    MemoryRelayAPIError,
    MemoryRelayError,
    MemoryRelayNetworkError,
    MemoryRelayResponseError,
    classify_error,
)
from .types import HealthStatus, MemoryRecord, MemoryStats, SearchHit

T = TypeVar("T")

# Get tracer for request spans
tracer = trace.get_tracer(__name__)

USER_AGENT = f"memoryrelay-py/{__version__}"


class RemoteMemoryGateway:
    """Thin transport over the MemoryRelay REST API.

    Every memory operation carries the configured agent id, so results are
    partitioned per agent. Search results keep the server's order.

    Example:
        async with RemoteMemoryGateway(api_key, "my-agent") as gateway:
            hits = await gateway.search("database password", limit=3)
    """

    def __init__(
        self,
        api_key: str,
        agent_id: str,
        api_url: str = DEFAULT_API_URL,
        timeout_ms: int = 30000,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize gateway.

        Args:
            api_key: Bearer token
            agent_id: Agent scope attached to every memory operation
            api_url: API base URL
            timeout_ms: Hard timeout per request
            transport: Custom httpx transport (e.g. httpx.MockTransport in tests)
        """
        self.agent_id = agent_id
        self.api_url = api_url.rstrip("/")
        self.timeout_ms = timeout_ms
        self._client = httpx.AsyncClient(
            base_url=self.api_url,
            timeout=timeout_ms / 1000.0,
            transport=transport,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {api_key}",
                "User-Agent": USER_AGENT,
            },
        )

    async def __aenter__(self) -> RemoteMemoryGateway:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
        missing_ok: bool = False,
    ) -> Any:
        """Send one request and decode the JSON response.

        Args:
            method: HTTP method
            path: Path relative to the API URL
            json: Request body
            params: Query parameters
            missing_ok: Return None on 404 instead of raising

        Returns:
            Decoded JSON body, or None for empty bodies

        Raises:
            MemoryNotFoundError: On 404 (unless missing_ok)
            MemoryRelayAPIError: On any other non-2xx response
            MemoryRelayNetworkError: If no response was received
            MemoryRelayError: On other httpx failures or an undecodable body
        """
        with tracer.start_as_current_span(
            "memoryrelay.request",
            attributes={
                "http.method": method,
                "memoryrelay.path": path,
                "agent.id": self.agent_id,
            },
        ) as span:
            try:
                try:
                    response = await self._client.request(method, path, json=json, params=params)
                except httpx.TransportError as e:
                    raise MemoryRelayNetworkError(
                        f"MemoryRelay network error: {type(e).__name__}: {e}"
                    ) from e
                except httpx.HTTPError as e:
                    # Decoding failures, redirect loops
                    raise MemoryRelayError(
                        f"MemoryRelay request failed: {type(e).__name__}: {e}"
                    ) from e

                span.set_attribute("http.status_code", response.status_code)

                if response.status_code == 404 and missing_ok:
                    return None

                if not response.is_success:
                    raise self._api_error(response)

                if not response.content:
                    return None
                try:
                    result = response.json()
                except ValueError as e:
                    raise MemoryRelayError(
                        f"MemoryRelay API returned invalid JSON ({response.status_code})",
                        status_code=response.status_code,
                    ) from e

                span.set_status(trace.Status(trace.StatusCode.OK))
                return result

            except MemoryRelayError as e:
                span.set_attribute("error.type", classify_error(e).value)
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
                span.record_exception(e)
                raise

    @staticmethod
    def _api_error(response: httpx.Response) -> MemoryRelayAPIError:
        # Error bodies are optional and may not be JSON
        try:
            error_data = response.json()
        except ValueError:
            error_data = {}
        detail = error_data.get("message") if isinstance(error_data, dict) else None

        error_cls = MemoryNotFoundError if response.status_code == 404 else MemoryRelayAPIError
        return error_cls(response.status_code, response.reason_phrase, detail)

    async def store(
        self, content: str, metadata: Optional[dict[str, str]] = None
    ) -> MemoryRecord:
        body: dict[str, Any] = {"content": content, "agent_id": self.agent_id}
        if metadata is not None:
            body["metadata"] = metadata
        data = await self._request("POST", "/v1/memories", json=body)
        return _parse("store", MemoryRecord.from_dict, _object(data))

    async def search(
        self, query: str, limit: int = 5, threshold: float = 0.3
    ) -> list[SearchHit]:
        data = await self._request(
            "POST",
            "/v1/memories/search",
            json={
                "query": query,
                "limit": limit,
                "threshold": threshold,
                "agent_id": self.agent_id,
            },
        )
        return _parse("search", _list_of(SearchHit.from_dict), _object(data).get("data"))

    async def list(self, limit: int = 20, offset: int = 0) -> list[MemoryRecord]:
        data = await self._request(
            "GET",
            "/v1/memories/memories",
            params={"limit": limit, "offset": offset, "agent_id": self.agent_id},
        )
        return _parse("list", _list_of(MemoryRecord.from_dict), _object(data).get("data"))

    async def get(self, memory_id: str) -> MemoryRecord:
        data = await self._request(
            "GET", f"/v1/memories/{quote(memory_id, safe='')}", params={"agent_id": self.agent_id}
        )
        return _parse("get", MemoryRecord.from_dict, _object(data))

    async def delete(self, memory_id: str) -> None:
        await self._request(
            "DELETE",
            f"/v1/memories/{quote(memory_id, safe='')}",
            params={"agent_id": self.agent_id},
        )

    async def health(self) -> HealthStatus:
        data = await self._request("GET", "/v1/health")
        status = _object(data).get("status")
        return HealthStatus(status=status if isinstance(status, str) else "")

    async def stats(self) -> MemoryStats:
        """Fetch per-agent stats; a missing endpoint reports zero memories."""
        data = await self._request(
            "GET", "/v1/stats", params={"agent_id": self.agent_id}, missing_ok=True
        )
        if data is None:
            return MemoryStats()
        return _parse("stats", MemoryStats.from_dict, _object(data).get("data"))


def _object(data: Any) -> dict[str, Any]:
    """Response body as a JSON object; an empty body counts as {}."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise MemoryRelayResponseError(
            f"MemoryRelay API returned {type(data).__name__}, expected a JSON object"
        )
    return data


def _list_of(parse: Callable[[Any], T]) -> Callable[[Any], list[T]]:
    def parse_all(items: Any) -> list[T]:
        if items is None:
            return []
        if not isinstance(items, list):
            raise TypeError(f"'data' must be a list, got {type(items).__name__}")
        return [parse(item) for item in items]

    return parse_all


def _parse(operation: str, parse: Callable[[Any], T], data: Any) -> T:
    try:
        return parse(data)
    except (AttributeError, TypeError, ValueError) as e:
        raise MemoryRelayResponseError(
            f"MemoryRelay API returned an unexpected {operation} response: {e}"
        ) from e


__all__ = ["RemoteMemoryGateway", "USER_AGENT"]
