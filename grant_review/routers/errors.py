"""
Error Responses - Grant Review Engine
grant_review/routers/errors.py

ErrorResponse rendering shared by every router, plus the exception handlers
registered in main.py.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.responses import JSONResponse
import structlog

from grant_review.core.exceptions import (
    AssignmentInUseException,
    DatabaseConnectionException,
    DuplicateEntityException,
    EntityNotFoundException,
    InvalidStateTransitionException,
    RepositoryException,
    ScoreValidationException,
)
from grant_review.models.assessment import ErrorResponse

logger = structlog.get_logger(__name__)


#  Validation messages

FIELD_MESSAGES = {
    "application_ids": {
        "missing": "Application IDs are required",
        "uuid_parsing": "Application IDs must be valid UUIDs",
        "list_type": "Application IDs must be a list",
    },
    "assessor_ids": {
        "missing": "Assessor IDs are required",
        "uuid_parsing": "Assessor IDs must be valid UUIDs",
        "list_type": "Assessor IDs must be a list",
    },
    "assigned_by": {
        "missing": "Assigning coordinator is required",
        "uuid_parsing": "Assigning coordinator must be a valid UUID format",
    },
    "assignment_id": {
        "uuid_parsing": "Assignment ID must be a valid UUID format",
        "uuid_type": "Assignment ID must be a valid UUID",
    },
    "assessment_id": {
        "uuid_parsing": "Assessment ID must be a valid UUID format",
        "uuid_type": "Assessment ID must be a valid UUID",
    },
    "application_id": {
        "uuid_parsing": "Application ID must be a valid UUID format",
    },
    "call_id": {
        "uuid_parsing": "Funding call ID must be a valid UUID format",
    },
    "reason": {
        "missing": "A reason is required when returning an assessment",
        "string_too_short": "Reason must not be empty",
        "string_too_long": "Reason must not exceed 2000 characters",
    },
    "sort_by": {
        "enum": "Sort key must be one of: total, weighted",
    },
    "sheet": {
        "enum": "Export sheet must be one of: results, assessors",
    },
}

DEFAULT_MESSAGES = {
    "missing": "Field '{field}' is required",
    "string_too_short": "Field '{field}' is too short",
    "string_too_long": "Field '{field}' is too long",
    "less_than_equal": "Field '{field}' exceeds maximum allowed value",
    "greater_than_equal": "Field '{field}' is below minimum allowed value",
    "greater_than": "Field '{field}' must be greater than the minimum",
    "uuid_parsing": "Field '{field}' must be a valid UUID",
    "uuid_type": "Field '{field}' must be a valid UUID",
    "string_type": "Field '{field}' must be a string",
    "float_parsing": "Field '{field}' must be a number",
    "float_type": "Field '{field}' must be a number",
    "bool_parsing": "Field '{field}' must be true or false",
    "bool_type": "Field '{field}' must be true or false",
    "list_type": "Field '{field}' must be a list",
    "datetime_parsing": "Field '{field}' must be a valid datetime",
    "enum": "Field '{field}' has an invalid value",
    "json_invalid": "Malformed JSON request body",
    "extra_forbidden": "Unknown field '{field}' is not allowed",
}


def get_validation_message(field: str, error_type: str) -> str:
    # "application_ids.0" -> "application_ids"
    base_field = field.split(".")[0]
    if base_field in FIELD_MESSAGES:
        field_msgs = FIELD_MESSAGES[base_field]
        for key in field_msgs:
            if key in error_type:
                return field_msgs[key]

    for key, template in DEFAULT_MESSAGES.items():
        if key in error_type:
            return template.format(field=field)

    return f"Invalid value for field '{field}'"


def error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error_code=error_code,
            message=message,
            details=details,
            timestamp=datetime.now(timezone.utc),
        ).model_dump(mode="json"),
    )


#  Exception Helpers

def raise_error(status_code: int, error_code: str, message: str):
    raise HTTPException(
        status_code=status_code,
        detail=ErrorResponse(
            error_code=error_code,
            message=message,
            timestamp=datetime.now(timezone.utc)
        ).model_dump(mode="json")
    )


def raise_assignment_not_found():
    raise_error(status.HTTP_404_NOT_FOUND, "ASSIGNMENT_NOT_FOUND", "Assignment not found")


def raise_assessment_not_found():
    raise_error(status.HTTP_404_NOT_FOUND, "ASSESSMENT_NOT_FOUND", "Assessment not found")


def raise_validation_error(msg: str):
    raise_error(status.HTTP_422_UNPROCESSABLE_ENTITY, "VALIDATION_ERROR", msg)


#  Custom Exception Handlers

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()

    if not errors:
        return error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY, "VALIDATION_ERROR", "Request validation failed"
        )

    err = errors[0]
    error_type = err.get("type", "")
    loc = err.get("loc", [])

    if "json_invalid" in error_type:
        return error_response(
            status.HTTP_400_BAD_REQUEST, "INVALID_REQUEST", "Malformed JSON request body"
        )

    field = ".".join(str(l) for l in loc if l not in ("body", "path", "query"))
    message = get_validation_message(field, error_type)

    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "VALIDATION_ERROR",
        message,
        {"field": field, "type": error_type} if field else None,
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    """Render raise_error() details flat, like every other error body."""
    if isinstance(exc.detail, dict) and "error_code" in exc.detail:
        return JSONResponse(status_code=exc.status_code, content=exc.detail)
    return error_response(exc.status_code, "HTTP_ERROR", str(exc.detail))


async def not_found_exception_handler(request: Request, exc: EntityNotFoundException):
    error_code = f"{_snake_upper(exc.entity_type)}_NOT_FOUND"
    return error_response(status.HTTP_404_NOT_FOUND, error_code, f"{exc.entity_type} not found")


async def state_transition_exception_handler(request: Request, exc: InvalidStateTransitionException):
    return error_response(
        status.HTTP_409_CONFLICT,
        "INVALID_STATE_TRANSITION",
        str(exc),
        {"entity": exc.entity_type, "current": exc.current, "target": exc.target},
    )


async def assignment_in_use_exception_handler(request: Request, exc: AssignmentInUseException):
    return error_response(
        status.HTTP_409_CONFLICT,
        "ASSIGNMENT_IN_USE",
        str(exc),
        {"assignment_id": exc.assignment_id},
    )


async def score_validation_exception_handler(request: Request, exc: ScoreValidationException):
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "SCORE_VALIDATION_ERROR",
        "Scores do not satisfy the funding call criteria",
        {"errors": exc.errors},
    )


async def duplicate_exception_handler(request: Request, exc: DuplicateEntityException):
    return error_response(status.HTTP_409_CONFLICT, "DUPLICATE_ENTITY", exc.message)


async def repository_exception_handler(request: Request, exc: RepositoryException):
    logger.error(
        "repository_error",
        path=request.url.path,
        error=str(exc),
        connection=isinstance(exc, DatabaseConnectionException),
    )
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_SERVER_ERROR", "Unexpected server error"
    )


def _snake_upper(name: str) -> str:
    # "FundingCall" -> "FUNDING_CALL"
    out = []
    for i, ch in enumerate(name):
        if ch.isupper() and i:
            out.append("_")
        out.append(ch.upper())
    return "".join(out)
