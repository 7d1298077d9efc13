"""
Reason -> HTTP error mapping for the REST API.

Error bodies look like {"error": "<reason code>", "detail": "<message>"}.
"""

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from app.constants.reasons import NOT_FOUND_REASONS, Reason, describe

UNAUTHORIZED_REASONS = frozenset({Reason.INVALID_REFRESH, Reason.INVALID_CREDENTIALS})

CONFLICT_REASONS = frozenset(
    {
        Reason.NOT_AVAILABLE,
        Reason.ALREADY_EXISTS,
        Reason.HAS_CITIES,
        Reason.HAS_HOUSES,
        Reason.HOUSE_BOOKED,
    }
)


def status_for_reason(reason: Reason) -> int:
    if reason in NOT_FOUND_REASONS:
        return 404
    if reason in CONFLICT_REASONS:
        return 409
    if reason in UNAUTHORIZED_REASONS:
        return 401
    # WRONG_CITY, WRONG_COUNTRY, PAST_START_DATE, PAST_END_DATE
    return 422


class ReasonError(HTTPException):
    """HTTPException carrying the business reason it was raised for."""

    def __init__(self, reason: Reason):
        super().__init__(status_code=status_for_reason(reason), detail=describe(reason))
        self.reason = reason


def raise_for_reason(reason: Reason | None) -> None:
    if reason is not None:
        raise ReasonError(reason)


async def reason_error_handler(request: Request, exc: ReasonError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.reason), "detail": exc.detail},
    )
