from __future__ import annotations

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from ..core.config import Settings
from .logging import get_logger

logger = get_logger("observability.otel")


def init_otel(app: FastAPI, cfg: Settings) -> None:
    """
    Initialize OpenTelemetry tracing when enabled.

    Traces are exported via OTLP gRPC to the collector configured in
    PRICESCAN_OTEL_EXPORTER_OTLP_ENDPOINT (Grafana Alloy by default).
    """
    otel_cfg = cfg.otel
    if not otel_cfg.enabled:
        logger.info("OpenTelemetry tracing disabled")
        return

    resource = Resource(
        attributes={
            "service.name": otel_cfg.service_name,
            "service.environment": cfg.app.env.value,
        }
    )

    tracer_provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(tracer_provider)

    span_exporter = OTLPSpanExporter(
        endpoint=otel_cfg.exporter_otlp_endpoint,
        insecure=True,
    )

    span_processor = BatchSpanProcessor(span_exporter)
    tracer_provider.add_span_processor(span_processor)

    # Instrument FastAPI + Uvicorn
    FastAPIInstrumentor.instrument_app(app, tracer_provider=tracer_provider)
    logger.info(
        "OpenTelemetry tracing enabled",
        extra={"endpoint": otel_cfg.exporter_otlp_endpoint},
    )
