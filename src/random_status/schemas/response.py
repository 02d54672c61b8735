"""Response schemas.

Both bodies are flat JSON objects. ``timestamp`` is filled in when the model is
built, i.e. at response-construction time. ``request_id`` is left out of the
JSON when unset (health checks).
"""

from datetime import UTC, datetime

from pydantic import BaseModel, Field


def utc_timestamp() -> str:
    """Current UTC time as RFC 3339 with millisecond precision, e.g. 2025-01-31T12:00:00.123Z."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class SuccessResponse(BaseModel):
    """Successful outcome (and health check) body."""

    status: str
    message: str
    timestamp: str = Field(default_factory=utc_timestamp)
    request_id: str | None = None


class ErrorResponse(BaseModel):
    """Simulated (or unexpected) failure body.

    ``error`` is the machine-readable code, ``code`` the human-readable reason.
    """

    error: str
    message: str
    code: str
    timestamp: str = Field(default_factory=utc_timestamp)
    request_id: str | None = None
