"""
Assignment Router - Grant Review Engine
grant_review/routers/assignments.py

Bulk distribution of applications to assessors and assignment lookups.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from grant_review.config import Settings, get_settings
from grant_review.core.dependencies import (
    get_assignment_distributor,
    get_assignment_repository,
)
from grant_review.models.assessment import ErrorResponse
from grant_review.models.assignment import AssignmentResponse, BulkAssignmentCreate
from grant_review.models.enumerations import AssignmentStatus
from grant_review.repositories.assignment_repository import AssignmentRepository
from grant_review.routers.errors import raise_assignment_not_found, raise_validation_error
from grant_review.services.assignment_distributor import AssignmentDistributor

router = APIRouter(tags=["Assignments"])


_NOT_FOUND = {
    "model": ErrorResponse,
    "description": "Assignment not found",
    "content": {
        "application/json": {
            "example": {
                "error_code": "ASSIGNMENT_NOT_FOUND",
                "message": "Assignment not found",
                "details": None,
                "timestamp": "2026-01-28T12:00:00Z"
            }
        }
    }
}

_SERVER_ERROR = {
    "model": ErrorResponse,
    "description": "Internal server error",
    "content": {
        "application/json": {
            "example": {
                "error_code": "INTERNAL_SERVER_ERROR",
                "message": "Unexpected server error",
                "details": None,
                "timestamp": "2026-01-28T12:00:00Z"
            }
        }
    }
}

_IN_USE = {
    "model": ErrorResponse,
    "description": "Assessment already started",
    "content": {
        "application/json": {
            "example": {
                "error_code": "ASSIGNMENT_IN_USE",
                "message": "Cannot unassign - assessment already started",
                "details": {"assignment_id": "6f1c2a9e-0b7d-4c1e-9a57-3d2f8e4b5c60"},
                "timestamp": "2026-01-28T12:00:00Z"
            }
        }
    }
}


#  Routes

@router.post(
    "/assignments/bulk",
    response_model=List[AssignmentResponse],
    status_code=status.HTTP_201_CREATED,
    responses={
        422: {
            "model": ErrorResponse,
            "description": "Validation error",
            "content": {
                "application/json": {
                    "example": {
                        "error_code": "VALIDATION_ERROR",
                        "message": "Assessor IDs must be valid UUIDs",
                        "details": {"field": "assessor_ids.0", "type": "uuid_parsing"},
                        "timestamp": "2026-01-28T12:00:00Z"
                    }
                }
            }
        },
        500: _SERVER_ERROR,
    },
    summary="Distribute applications to assessors",
    description=(
        "Assigns application i to assessor i mod len(assessor_ids). Pairs that already "
        "exist are skipped; only newly created assignments are returned. The batch is "
        "all-or-nothing."
    ),
)
async def create_bulk_assignments(
    payload: BulkAssignmentCreate,
    distributor: AssignmentDistributor = Depends(get_assignment_distributor),
    settings: Settings = Depends(get_settings),
) -> List[AssignmentResponse]:
    if len(payload.application_ids) > settings.MAX_BULK_ASSIGNMENTS:
        raise_validation_error(
            f"At most {settings.MAX_BULK_ASSIGNMENTS} applications can be assigned per request"
        )

    return distributor.create_bulk(
        payload.application_ids,
        payload.assessor_ids,
        payload.assigned_by,
        due_at=payload.due_at,
    )


@router.get(
    "/assignments/{assignment_id}",
    response_model=AssignmentResponse,
    responses={404: _NOT_FOUND, 500: _SERVER_ERROR},
    summary="Get assignment by ID",
)
async def get_assignment(
    assignment_id: UUID,
    assignment_repo: AssignmentRepository = Depends(get_assignment_repository),
) -> AssignmentResponse:
    assignment = assignment_repo.get_by_id(assignment_id)
    if not assignment:
        raise_assignment_not_found()

    return AssignmentResponse(**assignment)


@router.delete(
    "/assignments/{assignment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: _NOT_FOUND, 409: _IN_USE, 500: _SERVER_ERROR},
    summary="Delete an assignment",
    description=(
        "Explicit coordinator action; assignments are never removed implicitly. "
        "Refused once an assessment has been started for the assignment."
    ),
)
async def delete_assignment(
    assignment_id: UUID,
    distributor: AssignmentDistributor = Depends(get_assignment_distributor),
) -> Response:
    distributor.unassign(assignment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/applications/{application_id}/assignments",
    response_model=List[AssignmentResponse],
    responses={500: _SERVER_ERROR},
    summary="List assignments of an application",
)
async def list_application_assignments(
    application_id: UUID,
    assignment_repo: AssignmentRepository = Depends(get_assignment_repository),
) -> List[AssignmentResponse]:
    rows = assignment_repo.list_by_application(application_id)
    return [AssignmentResponse(**row) for row in rows]


@router.get(
    "/assessors/{assessor_id}/assignments",
    response_model=List[AssignmentResponse],
    responses={500: _SERVER_ERROR},
    summary="List an assessor's assignments",
    description="Earliest deadline first, optionally filtered by status.",
)
async def list_assessor_assignments(
    assessor_id: UUID,
    status_filter: Optional[AssignmentStatus] = Query(default=None, alias="status"),
    assignment_repo: AssignmentRepository = Depends(get_assignment_repository),
) -> List[AssignmentResponse]:
    rows = assignment_repo.list_by_assessor(assessor_id, status=status_filter)
    return [AssignmentResponse(**row) for row in rows]
