"""RFC 7807 Problem Details helpers."""
from __future__ import annotations

from http import HTTPStatus

from fastapi import Request
from fastapi.responses import JSONResponse

from .domain_errors import DomainError

PROBLEM_BASE_URL = "https://yardops.local/problems"

PROBLEM_TITLES: dict[str, str] = {
    "VALIDATION_ERROR": "Invalid yard request",
    "INSUFFICIENT_CAPACITY": "Insufficient rack capacity",
    "APPOINTMENT_NOT_SCHEDULED": "Dock appointment not scheduled",
    "INVALID_STATUS_TRANSITION": "Status change not allowed",
    "PERSISTENCE_FAILURE": "Receiving step not saved",
    "COLLABORATOR_FAILURE": "External service unavailable",
}


def problem_title(exc: DomainError) -> str:
    if exc.code in PROBLEM_TITLES:
        return PROBLEM_TITLES[exc.code]
    if exc.code.endswith("_NOT_FOUND"):
        return f"{exc.code[: -len('_NOT_FOUND')].replace('_', ' ').capitalize()} not found"
    try:
        return HTTPStatus(exc.http_status).phrase
    except ValueError:
        return "Yard operation failed"


def build_problem_details_response(exc: DomainError) -> JSONResponse:
    """Render DomainError as RFC 7807 payload; ``type`` is keyed by the domain code."""
    payload: dict[str, object] = {
        "type": f"{PROBLEM_BASE_URL}/{exc.code.lower().replace('_', '-')}",
        "title": problem_title(exc),
        "status": exc.http_status,
        "detail": exc.message,
        "code": exc.code,
    }
    if exc.details is not None:
        payload["details"] = exc.details

    return JSONResponse(
        status_code=exc.http_status,
        content=payload,
        media_type="application/problem+json",
    )


async def domain_error_handler(_: Request, exc: DomainError) -> JSONResponse:
    return build_problem_details_response(exc)
