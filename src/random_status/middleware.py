"""FastAPI middleware for request tracing and observability."""

import uuid
from collections.abc import Awaitable, Callable

import structlog
from opentelemetry import propagate, trace
from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from random_status.logging import get_logger

REQUEST_ID_HEADER = "X-Request-ID"

logger = get_logger(__name__)


def _log_trace_headers(headers: Headers) -> None:
    """Log the propagation headers the caller sent, if any. Never raises."""
    try:
        incoming = {
            name: headers[name]
            for name in sorted(propagate.get_global_textmap().fields)
            if name in headers
        }
        if incoming:
            logger.info("incoming_trace_headers", headers=incoming)
    except Exception:  # noqa: BLE001
        pass


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Add request ID and request metadata to every request's log context.

    - Reads X-Request-ID from request headers, or generates a UUID if missing
    - Stores it on request.state for the handlers and tags the request span
    - Binds request_id, method, path, remote_addr and user_agent to structlog
      context (auto-included in all logs)
    - Logs incoming trace propagation headers
    - Adds X-Request-ID to response headers

    Runs inside the SERVER span opened by the OpenTelemetry instrumentation,
    so log lines written here and in handlers carry its trace_id/span_id.

    Usage:
        app.add_middleware(RequestIDMiddleware)

        # In any endpoint or dependency:
        logger.info("something_happened")  # request_id automatically included
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        # Use existing request ID or generate new one
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        trace.get_current_span().set_attribute("request.id", request_id)

        # Bind to structlog context — all logs in this request will include it
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            remote_addr=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )
        _log_trace_headers(request.headers)

        response = await call_next(request)

        # Add to response headers for client tracing
        response.headers[REQUEST_ID_HEADER] = request_id

        return response
