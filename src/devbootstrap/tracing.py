"""
OpenTelemetry tracing for bootstrap runs.

The orchestrator always creates spans through the global tracer; without
configure_tracing() they go to the no-op provider. When an OTLP endpoint is
given, spans are exported so an installation can be inspected alongside the
services it brought up.
"""

from __future__ import annotations

import logging

from opentelemetry import trace

__all__ = ["configure_tracing", "flush_tracing", "get_tracer", "TRACER_NAME"]

logger = logging.getLogger(__name__)

TRACER_NAME = "devbootstrap"


def get_tracer() -> trace.Tracer:
    return trace.get_tracer(TRACER_NAME)


def configure_tracing(endpoint: str) -> bool:
    """
    Configure the global TracerProvider with an OTLP gRPC exporter.

    Args:
        endpoint: OTLP endpoint (e.g., localhost:4317)

    Returns:
        True if configuration succeeded, False otherwise
    """
    try:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor

        from devbootstrap import __version__

        resource = Resource.create({
            "service.name": "devbootstrap",
            "service.version": __version__,
        })
        provider = TracerProvider(resource=resource)
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True)))
        trace.set_tracer_provider(provider)
    except Exception as e:
        logger.warning("Failed to configure tracing: %s", e)
        return False

    logger.info("Trace export configured to %s", endpoint)
    return True


def flush_tracing(timeout_millis: int = 10000) -> None:
    """Flush and shut down the tracer provider so pending spans are exported."""
    provider = trace.get_tracer_provider()
    if hasattr(provider, "force_flush"):
        provider.force_flush(timeout_millis=timeout_millis)
    if hasattr(provider, "shutdown"):
        provider.shutdown()
