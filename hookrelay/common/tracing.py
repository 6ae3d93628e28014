import logging

import httpx
from fastapi import FastAPI

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (  # type: ignore[attr-defined]
    OTLPSpanExporter as OTLPGrpcExporter,
)
from opentelemetry.exporter.otlp.proto.http.trace_exporter import (  # type: ignore[attr-defined]
    OTLPSpanExporter as OTLPHttpExporter,
)
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from opentelemetry.trace import TracerProvider as APITracerProvider

from .config import ServiceSettings

_LOGGER = logging.getLogger(__name__)
_INSTRUMENTED_APPS: set[int] = set()
_INSTRUMENTED_CLIENTS: set[int] = set()


def _create_exporter(settings: ServiceSettings):
    if settings.tracing_endpoint is None:
        return None
    if settings.tracing_protocol == "grpc":
        return OTLPGrpcExporter(endpoint=settings.tracing_endpoint, insecure=settings.tracing_insecure)
    return OTLPHttpExporter(endpoint=settings.tracing_endpoint)


def _ensure_provider(settings: ServiceSettings) -> APITracerProvider:
    current_provider = trace.get_tracer_provider()
    if isinstance(current_provider, TracerProvider):
        return current_provider

    resource = Resource.create(
        {
            "service.name": settings.app_name,
            "deployment.environment": settings.environment,
        }
    )
    provider = TracerProvider(resource=resource, sampler=TraceIdRatioBased(settings.tracing_sample_rate))
    exporter = _create_exporter(settings)
    if exporter is not None:
        provider.add_span_processor(BatchSpanProcessor(exporter))
    else:
        _LOGGER.warning(
            "Tracing is enabled for %s but no OTLP endpoint is configured; spans will not be exported.",
            settings.app_name,
        )
    trace.set_tracer_provider(provider)
    return trace.get_tracer_provider()


def configure_tracing(app: FastAPI, settings: ServiceSettings) -> None:
    """Instrument incoming requests on ``app`` when tracing is enabled."""

    if not settings.enable_tracing:
        return

    app_id = id(app)
    if app_id in _INSTRUMENTED_APPS:
        return
    provider = _ensure_provider(settings)
    FastAPIInstrumentor().instrument_app(app, tracer_provider=provider)
    _INSTRUMENTED_APPS.add(app_id)


def instrument_http_client(client: httpx.AsyncClient, settings: ServiceSettings) -> None:
    """Trace outbound webhook calls made through ``client``."""

    if not settings.enable_tracing:
        return

    client_id = id(client)
    if client_id in _INSTRUMENTED_CLIENTS:
        return
    provider = _ensure_provider(settings)
    try:
        HTTPXClientInstrumentor.instrument_client(client, tracer_provider=provider)
    except Exception as exc:  # pragma: no cover - instrumentation must not block startup
        _LOGGER.warning("Failed to instrument webhook client for tracing: %s", exc)
        return
    _INSTRUMENTED_CLIENTS.add(client_id)
