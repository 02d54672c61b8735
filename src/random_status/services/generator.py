"""Random outcome selection.

Decides, per request, whether the service answers with a success, a simulated
client error or a simulated server error. Plain dataclasses only; the router
turns an Outcome into the Pydantic response model.

Thresholds are inclusive-low / exclusive-high:
    [0.0, 0.5) success, [0.5, 0.8) client error, [0.8, 1.0) server error.
"""

import random
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

SUCCESS_THRESHOLD = 0.5
CLIENT_ERROR_THRESHOLD = 0.8

SUCCESS_MESSAGE = "Request processed successfully"


class RandomSource(Protocol):
    """Anything that returns uniform floats in [0, 1). random.Random qualifies."""

    def random(self) -> float: ...


class OutcomeClass(StrEnum):
    SUCCESS = "success"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"


@dataclass(frozen=True)
class ErrorScenario:
    """A canned failure: HTTP status, machine code, message and human reason."""

    status_code: int
    error_code: str
    message: str
    reason: str


ERROR_SCENARIOS: tuple[ErrorScenario, ...] = (
    ErrorScenario(400, "INVALID_REQUEST", "Invalid request format", "Missing required parameter 'user_id'"),
    ErrorScenario(400, "VALIDATION_ERROR", "Request validation failed", "Email format is invalid"),
    ErrorScenario(400, "MISSING_AUTH", "Authentication required", "Authorization header is missing or malformed"),
    ErrorScenario(500, "DATABASE_ERROR", "Internal database error", "Connection to user database failed"),
    ErrorScenario(500, "SERVICE_UNAVAILABLE", "External service error", "Payment service is temporarily unavailable"),
    ErrorScenario(500, "TIMEOUT_ERROR", "Request timeout", "Upstream service did not respond within 30 seconds"),
)  # fmt: skip

CLIENT_ERROR_SCENARIOS = ERROR_SCENARIOS[:3]
SERVER_ERROR_SCENARIOS = ERROR_SCENARIOS[3:]


def classify(draw: float) -> OutcomeClass:
    """Map a uniform draw in [0, 1) to its outcome class."""
    if draw < SUCCESS_THRESHOLD:
        return OutcomeClass.SUCCESS
    if draw < CLIENT_ERROR_THRESHOLD:
        return OutcomeClass.CLIENT_ERROR
    return OutcomeClass.SERVER_ERROR


@dataclass(frozen=True)
class Outcome:
    """Result of one draw. ``scenario`` is None for successes."""

    outcome_class: OutcomeClass
    status_code: int
    scenario: ErrorScenario | None = None


class ResponseGenerator:
    """Draws outcomes from an injected random source.

    Holds no per-request state; one instance serves the whole process. The
    source is never reseeded, so a seeded random.Random yields a reproducible
    sequence of outcomes.
    """

    def __init__(self, source: RandomSource) -> None:
        self._source = source

    def draw(self) -> Outcome:
        outcome_class = classify(self._source.random())
        if outcome_class is OutcomeClass.SUCCESS:
            return Outcome(outcome_class, 200)

        if outcome_class is OutcomeClass.CLIENT_ERROR:
            scenario = self._pick(CLIENT_ERROR_SCENARIOS)
        else:
            scenario = self._pick(SERVER_ERROR_SCENARIOS)
        return Outcome(outcome_class, scenario.status_code, scenario)

    def _pick(self, scenarios: tuple[ErrorScenario, ...]) -> ErrorScenario:
        """Second, independent draw: uniform over the class's scenarios."""
        index = int(self._source.random() * len(scenarios))
        return scenarios[min(index, len(scenarios) - 1)]


def create_random_source(seed: int | None = None) -> random.Random:
    """Process-wide source. ``seed=None`` uses OS entropy."""
    return random.Random(seed)
