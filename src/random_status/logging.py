"""Structured logging configuration.

JSON logs with automatic context binding. Uses structlog with stdlib integration.
Request-scoped context (request_id, method, path, ...) is automatically included
in all logs via structlog.contextvars, and the active OpenTelemetry span adds
trace_id/span_id so log lines can be joined with traces in the APM backend.
"""

import logging
import logging.config
import sys
from datetime import UTC, datetime
from typing import Any

import structlog
from opentelemetry import trace
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from structlog.stdlib import BoundLogger

_LOW_64_BITS = (1 << 64) - 1


def _add_timestamp(
    _logger: object,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Add ISO 8601 UTC timestamp with timezone offset."""
    event_dict["timestamp"] = datetime.now(UTC).isoformat()
    return event_dict


def add_trace_context(
    _logger: object,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Add the current span's identifiers, if a span is active.

    ``trace_id``/``span_id`` are the OpenTelemetry hex forms. ``dd.trace_id``/
    ``dd.span_id`` are the decimal low-64-bit forms Datadog uses to correlate
    logs with traces (and that nginx's datadog module writes to access logs).
    """
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return event_dict

    event_dict["trace_id"] = trace.format_trace_id(span_context.trace_id)
    event_dict["span_id"] = trace.format_span_id(span_context.span_id)
    event_dict["dd.trace_id"] = str(span_context.trace_id & _LOW_64_BITS)
    event_dict["dd.span_id"] = str(span_context.span_id)
    return event_dict


class ServiceIdentity:
    """Processor that stamps every event with the service identity."""

    def __init__(self, service: str, env: str, version: str) -> None:
        self._fields = {"service": service, "env": env, "version": version}

    def __call__(
        self, _logger: object, _method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        for key, value in self._fields.items():
            event_dict.setdefault(key, value)
        return event_dict


class LoggingSettings(BaseSettings):
    """Logging settings from environment variables."""

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    # Optional file that receives the same JSON lines as stdout
    log_file: str | None = Field(default=None, alias="LOG_FILE")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )


def _writable(path: str) -> bool:
    try:
        with open(path, "a", encoding="utf-8"):
            return True
    except OSError:
        return False


def configure_logging(settings: LoggingSettings, identity: ServiceIdentity) -> None:
    """Configure structlog with JSON output to stdout (and optionally a file).

    Called by create_app() before the first request is served. After this, all
    loggers created via get_logger() output JSON with automatic context binding.
    If the log file cannot be opened, logs go to stdout only.
    """
    # Processors run on every log event
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,  # Auto-include bound context
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _add_timestamp,
        identity,
        add_trace_context,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        # Not cached: a second create_app() must reach loggers already in use
        cache_logger_on_first_use=False,
    )

    handlers: dict[str, dict[str, Any]] = {
        "default": {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "stream": sys.stdout,
        },
    }
    log_file_ok = settings.log_file is None or _writable(settings.log_file)
    if settings.log_file is not None and log_file_ok:
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": "json",
            "filename": settings.log_file,
            "encoding": "utf-8",
        }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "processor": structlog.processors.JSONRenderer(),
                    "foreign_pre_chain": processors,
                },
            },
            "handlers": handlers,
            "loggers": {
                "": {
                    "handlers": list(handlers),
                    "level": settings.log_level,
                    "propagate": True,
                },
            },
        }
    )

    if not log_file_ok:
        get_logger(__name__).warning("log_file_unavailable", log_file=settings.log_file)


def get_logger(name: str) -> BoundLogger:
    """Get a structured logger.

    Args:
        name: Logger name, typically __name__

    Returns:
        Logger that outputs JSON with automatic context binding.

    Example:
        logger = get_logger(__name__)
        logger.info("request_handled", outcome="success")
        # Output: {"event": "request_handled", "outcome": "success", "level": "info", ...}
    """
    return structlog.get_logger(name)  # type: ignore[no-any-return]
