"""Telemetry module - Where MemoryRelay request spans are exported.

- init_telemetry(config): OTLP export tagged with the agent id and endpoint
- shutdown_telemetry(): flush on exit
"""

from .tracing import init_telemetry, shutdown_telemetry, telemetry_resource

__all__ = ["init_telemetry", "shutdown_telemetry", "telemetry_resource"]
