"""Trace export for MemoryRelay requests.

The gateway opens a ``memoryrelay.request`` span per HTTP call and the retry
executor and circuit breaker add events to it. This module only decides where
those spans go: one OTLP exporter per process, with resource attributes naming
the agent whose memory traffic is being traced.
"""

import logging
import os
from typing import Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from .._version import __version__
from ..config import MemoryRelayConfig

DEFAULT_SERVICE_NAME = "memoryrelay"
DEFAULT_OTLP_ENDPOINT = "http://localhost:4317"

_provider: Optional[TracerProvider] = None


def telemetry_resource(config: MemoryRelayConfig, service_name: Optional[str] = None) -> Resource:
    """Resource describing one agent's MemoryRelay client."""
    return Resource.create(
        {
            "service.name": service_name or os.getenv("OTEL_SERVICE_NAME", DEFAULT_SERVICE_NAME),
            "service.version": __version__,
            "agent.id": config.agent_id,
            "memoryrelay.endpoint": config.endpoint,
            "memoryrelay.circuit_breaker.enabled": config.circuit_breaker.enabled,
            "memoryrelay.circuit_breaker.max_failures": config.circuit_breaker.max_failures,
            "memoryrelay.retry.max_retries": (
                config.retry.max_retries if config.retry.enabled else 0
            ),
        }
    )


def init_telemetry(
    config: MemoryRelayConfig,
    otlp_endpoint: Optional[str] = None,
    service_name: Optional[str] = None,
) -> TracerProvider:
    """Export request spans for ``config``'s agent over OTLP/gRPC.

    Only the first call configures the process; later calls return the
    existing provider.

    Args:
        config: Client configuration (agent id and endpoint become resource attributes)
        otlp_endpoint: Collector address (default: OTEL_EXPORTER_OTLP_ENDPOINT or localhost:4317)
        service_name: Service name (default: OTEL_SERVICE_NAME or "memoryrelay")
    """
    global _provider
    if _provider is not None:
        return _provider

    endpoint = otlp_endpoint or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", DEFAULT_OTLP_ENDPOINT)
    provider = TracerProvider(resource=telemetry_resource(config, service_name))
    # CLI runs are short, flush every second
    provider.add_span_processor(
        BatchSpanProcessor(
            OTLPSpanExporter(endpoint=endpoint, insecure=endpoint.startswith("http://")),
            schedule_delay_millis=1000,
        )
    )
    trace.set_tracer_provider(provider)

    _provider = provider
    logging.info(
        "[memoryrelay] tracing agent %s requests to %s", config.agent_id, endpoint
    )
    return provider


def shutdown_telemetry() -> None:
    """Flush pending spans and stop the exporter."""
    global _provider
    if _provider is None:
        return
    _provider.shutdown()
    _provider = None


__all__ = [
    "DEFAULT_OTLP_ENDPOINT",
    "init_telemetry",
    "shutdown_telemetry",
    "telemetry_resource",
]
