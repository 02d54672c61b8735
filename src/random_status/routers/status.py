"""Random status endpoint."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from random_status.dependencies import ResponseGeneratorDep
from random_status.logging import get_logger
from random_status.schemas.response import ErrorResponse, SuccessResponse
from random_status.services.generator import SUCCESS_MESSAGE, Outcome

router = APIRouter()

logger = get_logger(__name__)


def _log_outcome(outcome: Outcome) -> None:
    """One log line per request. A broken log sink never reaches the response."""
    try:
        scenario = outcome.scenario
        if scenario is None:
            logger.info(
                "request_processed",
                outcome=outcome.outcome_class.value,
                status_code=outcome.status_code,
            )
            return
        logger.error(
            f"{outcome.outcome_class.value}_occurred",
            outcome=outcome.outcome_class.value,
            status_code=outcome.status_code,
            error_code=scenario.error_code,
            error_message=scenario.message,
            error_reason=scenario.reason,
            error_type=outcome.outcome_class.value,
        )
    except Exception:  # noqa: BLE001
        pass


@router.get(
    "/",
    response_model=SuccessResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def random_status(request: Request, generator: ResponseGeneratorDep) -> JSONResponse:
    """Answer 200, 400 or 500 at random (50% / 30% / 20%).

    The error bodies are simulated failures, not faults of this service.
    """
    request_id = getattr(request.state, "request_id", None)
    outcome = generator.draw()

    span = trace.get_current_span()
    span.set_attribute("outcome", outcome.outcome_class.value)

    body: SuccessResponse | ErrorResponse
    scenario = outcome.scenario
    if scenario is None:
        body = SuccessResponse(status="success", message=SUCCESS_MESSAGE, request_id=request_id)
    else:
        span.set_attributes(
            {
                "error.type": outcome.outcome_class.value,
                "error.code": scenario.error_code,
                "error.message": scenario.message,
            }
        )
        span.set_status(Status(StatusCode.ERROR, scenario.message))
        body = ErrorResponse(
            error=scenario.error_code,
            message=scenario.message,
            code=scenario.reason,
            request_id=request_id,
        )

    _log_outcome(outcome)
    return JSONResponse(status_code=outcome.status_code, content=body.model_dump(exclude_none=True))
