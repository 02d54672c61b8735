"""OpenTelemetry tracing setup.

The tracer provider is owned by the application, not installed as the global
provider: create_app() builds a Telemetry, instruments the app with it, and
the lifespan shuts it down after the last response. Only the propagator is
registered globally, because the ASGI instrumentation extracts inbound
context through opentelemetry.propagate.
"""

from dataclasses import dataclass

from fastapi import FastAPI
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.propagate import set_global_textmap
from opentelemetry.propagators.textmap import TextMapPropagator
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SimpleSpanProcessor,
    SpanExporter,
)

from random_status.config import Settings
from random_status.propagation import build_propagator


@dataclass
class Telemetry:
    """Tracing context handed to the app at construction."""

    provider: TracerProvider
    propagator: TextMapPropagator

    def instrument(self, app: FastAPI) -> None:
        """One SERVER span per request, continuing the caller's trace if any.

        The per-message "http receive"/"http send" spans are left out so each
        request yields exactly one span.
        """
        FastAPIInstrumentor.instrument_app(
            app,
            tracer_provider=self.provider,
            exclude_spans=["receive", "send"],
        )

    def shutdown(self) -> None:
        """Flush pending spans and stop the exporters."""
        self.provider.force_flush()
        self.provider.shutdown()


def setup_telemetry(settings: Settings, exporter: SpanExporter | None = None) -> Telemetry:
    """Build the tracer provider for this service.

    Spans go to the OTLP/HTTP endpoint when one is configured (batched), and to
    ``exporter`` when given (synchronously, so tests can read them right after
    the response).
    """
    resource = Resource.create(
        {
            "service.name": settings.service_name,
            "deployment.environment": settings.environment,
            "service.version": settings.version,
        }
    )
    provider = TracerProvider(resource=resource)

    if settings.otlp_traces_endpoint:
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_traces_endpoint))
        )
    if exporter is not None:
        provider.add_span_processor(SimpleSpanProcessor(exporter))

    propagator = build_propagator()
    set_global_textmap(propagator)

    return Telemetry(provider=provider, propagator=propagator)
