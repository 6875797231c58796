"""
Assessment Router - Grant Review Engine
grant_review/routers/assessments.py

Assessment lifecycle: create-or-get for an assignment, edit, submit and
return for revision. Status cascades onto the assignment happen in the
lifecycle manager.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, status

from grant_review.core.dependencies import (
    get_assignment_repository,
    get_funding_call_repository,
    get_lifecycle_manager,
)
from grant_review.models.assessment import (
    AssessmentCreate,
    AssessmentResponse,
    AssessmentUpdate,
    ErrorResponse,
    ReturnForRevision,
)
from grant_review.models.funding_call import Criterion, FundingCallConfig
from grant_review.repositories.assignment_repository import AssignmentRepository
from grant_review.repositories.funding_call_repository import FundingCallRepository
from grant_review.routers.errors import raise_assessment_not_found
from grant_review.services.assessment_lifecycle import AssessmentLifecycleManager

router = APIRouter(tags=["Assessments"])


_NOT_FOUND = {
    "model": ErrorResponse,
    "description": "Assessment not found",
    "content": {
        "application/json": {
            "example": {
                "error_code": "ASSESSMENT_NOT_FOUND",
                "message": "Assessment not found",
                "details": None,
                "timestamp": "2026-01-28T12:00:00Z"
            }
        }
    }
}

_CONFLICT = {
    "model": ErrorResponse,
    "description": "Status change not allowed",
    "content": {
        "application/json": {
            "example": {
                "error_code": "INVALID_STATE_TRANSITION",
                "message": "Assessment 3f0c... cannot move from 'submitted' to 'submitted'",
                "details": {"entity": "Assessment", "current": "submitted", "target": "submitted"},
                "timestamp": "2026-01-28T12:00:00Z"
            }
        }
    }
}


def _criteria_for(
    assignment_id: UUID,
    assignment_repo: AssignmentRepository,
    funding_call_repo: FundingCallRepository,
) -> Optional[List[Criterion]]:
    """Criteria of the funding call behind an assignment, if configured."""
    assignment = assignment_repo.get_by_id(assignment_id)
    if not assignment:
        return None

    config = funding_call_repo.get_config_for_application(assignment["application_id"])
    if not config:
        return None

    return FundingCallConfig(**config).criteria or None


#  Routes

@router.post(
    "/assignments/{assignment_id}/assessment",
    response_model=AssessmentResponse,
    responses={
        404: {
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
        },
    },
    summary="Create or get the assessment of an assignment",
    description=(
        "Returns the assignment's assessment, creating a draft on the first call. "
        "The first call also moves the assignment to in_progress."
    ),
)
async def create_or_get_assessment(
    assignment_id: UUID,
    payload: Optional[AssessmentCreate] = Body(default=None),
    lifecycle: AssessmentLifecycleManager = Depends(get_lifecycle_manager),
) -> AssessmentResponse:
    payload = payload or AssessmentCreate()

    return lifecycle.create_or_get(
        assignment_id,
        scores=payload.scores,
        overall_comment=payload.overall_comment,
        coi_confirmed=payload.coi_confirmed,
        coi_details=payload.coi_details,
    )


@router.get(
    "/assignments/{assignment_id}/assessment",
    response_model=AssessmentResponse,
    responses={404: _NOT_FOUND},
    summary="Get the assessment of an assignment",
)
async def get_assignment_assessment(
    assignment_id: UUID,
    lifecycle: AssessmentLifecycleManager = Depends(get_lifecycle_manager),
) -> AssessmentResponse:
    assessment = lifecycle.get_by_assignment(assignment_id)
    if not assessment:
        raise_assessment_not_found()

    return assessment


@router.get(
    "/assessments/{assessment_id}",
    response_model=AssessmentResponse,
    responses={404: _NOT_FOUND},
    summary="Get assessment by ID",
)
async def get_assessment(
    assessment_id: UUID,
    lifecycle: AssessmentLifecycleManager = Depends(get_lifecycle_manager),
) -> AssessmentResponse:
    assessment = lifecycle.get(assessment_id)
    if not assessment:
        raise_assessment_not_found()

    return assessment


@router.patch(
    "/assessments/{assessment_id}",
    response_model=AssessmentResponse,
    responses={404: _NOT_FOUND, 409: _CONFLICT},
    summary="Edit an assessment",
    description=(
        "Partial update; only fields present in the body change. Editing a returned "
        "assessment reopens it as a draft. Submitted assessments cannot be edited."
    ),
)
async def update_assessment(
    assessment_id: UUID,
    payload: AssessmentUpdate,
    lifecycle: AssessmentLifecycleManager = Depends(get_lifecycle_manager),
) -> AssessmentResponse:
    fields = payload.model_dump(exclude_unset=True)

    assessment = lifecycle.update(assessment_id, **fields)
    if not assessment:
        raise_assessment_not_found()

    return assessment


@router.post(
    "/assessments/{assessment_id}/submit",
    response_model=AssessmentResponse,
    responses={
        404: _NOT_FOUND,
        409: _CONFLICT,
        422: {
            "model": ErrorResponse,
            "description": "Scores fail the funding call criteria",
            "content": {
                "application/json": {
                    "example": {
                        "error_code": "SCORE_VALIDATION_ERROR",
                        "message": "Scores do not satisfy the funding call criteria",
                        "details": {"errors": ["Missing score for criterion: Impact"]},
                        "timestamp": "2026-01-28T12:00:00Z"
                    }
                }
            }
        },
    },
    summary="Submit an assessment",
    description="Validates scores against the call's criteria, submits, and completes the assignment.",
)
async def submit_assessment(
    assessment_id: UUID,
    lifecycle: AssessmentLifecycleManager = Depends(get_lifecycle_manager),
    assignment_repo: AssignmentRepository = Depends(get_assignment_repository),
    funding_call_repo: FundingCallRepository = Depends(get_funding_call_repository),
) -> AssessmentResponse:
    current = lifecycle.get(assessment_id)
    if not current:
        raise_assessment_not_found()

    criteria = _criteria_for(current.assignment_id, assignment_repo, funding_call_repo)

    assessment = lifecycle.submit(assessment_id, criteria=criteria)
    if not assessment:
        raise_assessment_not_found()

    return assessment


@router.post(
    "/assessments/{assessment_id}/return",
    response_model=AssessmentResponse,
    responses={404: _NOT_FOUND, 409: _CONFLICT},
    summary="Return an assessment for revision",
)
async def return_assessment(
    assessment_id: UUID,
    payload: ReturnForRevision,
    lifecycle: AssessmentLifecycleManager = Depends(get_lifecycle_manager),
) -> AssessmentResponse:
    return lifecycle.return_for_revision(assessment_id, payload.reason)
