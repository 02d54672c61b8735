from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from opentelemetry.sdk.trace.export import SpanExporter

from random_status.config import Settings
from random_status.logging import LoggingSettings, ServiceIdentity, configure_logging, get_logger
from random_status.middleware import RequestIDMiddleware
from random_status.routers.status import router as status_router
from random_status.schemas.response import ErrorResponse, SuccessResponse
from random_status.services.generator import (
    RandomSource,
    ResponseGenerator,
    create_random_source,
)
from random_status.telemetry import setup_telemetry

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager — code before yield runs on startup, after yield on shutdown.

    Startup: logging and tracing are already set up by create_app().
    Shutdown: flush buffered spans and stop the exporters.
    """
    settings: Settings = app.state.settings
    logger.info("service_started", host=settings.host, port=settings.port)
    yield
    logger.info("service_stopping")
    app.state.telemetry.shutdown()


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unhandled exceptions and return a safe error response.

    - Logs full exception with traceback (includes request_id from context)
    - Returns generic error to client (no stack traces leaked)
    """
    logger.exception("unhandled_exception", path=request.url.path, method=request.method)
    body = ErrorResponse(
        error="INTERNAL_ERROR",
        message="An internal error occurred",
        code="Unexpected failure while handling the request",
    )
    return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))


async def health() -> SuccessResponse:
    """Liveness/readiness check. No random draw, no dependencies, no I/O."""
    return SuccessResponse(status="healthy", message="Service is healthy")


def create_app(
    settings: Settings | None = None,
    *,
    logging_settings: LoggingSettings | None = None,
    random_source: RandomSource | None = None,
    span_exporter: SpanExporter | None = None,
) -> FastAPI:
    """Build the application with its logging and tracing context.

    Everything process-wide is initialized here, before the first request:
    structlog, the tracer provider and its FastAPI instrumentation, and the
    random source. Used directly by uvicorn (``--factory``) and by tests,
    which pass a scripted random source and an in-memory span exporter.
    """
    settings = settings or Settings()
    configure_logging(
        logging_settings or LoggingSettings(),
        ServiceIdentity(settings.service_name, settings.environment, settings.version),
    )
    telemetry = setup_telemetry(settings, exporter=span_exporter)
    if random_source is None:
        random_source = create_random_source(settings.random_seed)

    app = FastAPI(title=settings.service_name, version=settings.version, lifespan=lifespan)
    app.state.settings = settings
    app.state.telemetry = telemetry
    app.state.generator = ResponseGenerator(random_source)

    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(Exception, unhandled_exception_handler)
    app.include_router(status_router)
    app.add_api_route(
        "/health",
        health,
        methods=["GET"],
        response_model=SuccessResponse,
        response_model_exclude_none=True,
    )

    # Instrumented last so its middleware wraps RequestIDMiddleware
    telemetry.instrument(app)

    return app
