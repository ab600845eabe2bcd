from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from .client import MemoryRelayClient
from .config import MemoryRelayConfig, load_config
from .errors import ConfigError, MemoryRelayError, classify_error, error_hint


def _load(args) -> MemoryRelayConfig:
    if args.config:
        config = MemoryRelayConfig.load(Path(args.config))
    else:
        config = load_config(Path("."))
    return config.validate()


async def _status(client: MemoryRelayClient, args) -> None:
    health = await client.health()
    print(f"Status: {health.status}")
    print(f"Agent ID: {client.config.agent_id}")
    print(f"API: {client.config.api_url}")


async def _list(client: MemoryRelayClient, args) -> None:
    memories = await client.list(limit=args.limit, offset=args.offset)
    for m in memories:
        print(f"[{m.short_id}] {m.preview(80)}")
    print(f"\nTotal: {len(memories)} memories")


async def _search(client: MemoryRelayClient, args) -> None:
    hits = await client.search(args.query, limit=args.limit, threshold=args.threshold)
    for hit in hits:
        print(f"[{hit.score:.2f}] {hit.memory.preview(80)}")
    if not hits:
        print("No relevant memories found.")


async def _stats(client: MemoryRelayClient, args) -> None:
    stats = await client.stats()
    print(f"Memories: {stats.total_memories}")
    if stats.last_updated:
        print(f"Last updated: {stats.last_updated}")


async def _run(handler, config: MemoryRelayConfig, args) -> int:
    async with MemoryRelayClient(config) as client:
        try:
            await handler(client, args)
        except MemoryRelayError as e:
            print(f"[memoryrelay] Request failed: {e}", file=sys.stderr)
            hint = error_hint(classify_error(e))
            if hint:
                print(f"[memoryrelay] {hint}", file=sys.stderr)
            return 1
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="memoryrelay", description="MemoryRelay memory commands")
    p.add_argument("--config", default=None, help="Path to memoryrelay.toml (default: search up)")
    p.add_argument("--trace", action="store_true", help="Export OpenTelemetry traces via OTLP")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    ss = sub.add_parser("status", help="Check MemoryRelay connection status")
    ss.set_defaults(handler=_status)

    sl = sub.add_parser("list", help="List recent memories")
    sl.add_argument("--limit", type=int, default=10, help="Max results")
    sl.add_argument("--offset", type=int, default=0, help="Skip this many memories")
    sl.set_defaults(handler=_list)

    sq = sub.add_parser("search", help="Search memories")
    sq.add_argument("query", help="Search query")
    sq.add_argument("--limit", type=int, default=5, help="Max results")
    sq.add_argument("--threshold", type=float, default=0.3, help="Minimum similarity score")
    sq.set_defaults(handler=_search)

    st = sub.add_parser("stats", help="Show memory count for the agent")
    st.set_defaults(handler=_stats)

    args = p.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        config = _load(args)
    except ConfigError as e:
        print(f"[memoryrelay] {e}", file=sys.stderr)
        return 2

    if args.trace:
        from .telemetry import init_telemetry, shutdown_telemetry

        init_telemetry(config)
        try:
            return asyncio.run(_run(args.handler, config, args))
        finally:
            shutdown_telemetry()

    return asyncio.run(_run(args.handler, config, args))


if __name__ == "__main__":
    sys.exit(main())
