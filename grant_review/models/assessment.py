from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime
from typing import Optional, List

from grant_review.models.enumerations import AssessmentStatus


class CriterionScore(BaseModel):
    """
    An assessor's score for a single criterion.
    """

    criterion_id: str = Field(..., min_length=1, description="Criterion identifier")

    criterion_name: Optional[str] = Field(default=None, max_length=255)

    score: float = Field(..., description="Awarded score")

    max_score: Optional[float] = Field(default=None, gt=0, description="Maximum possible score")

    comment: Optional[str] = Field(default=None, description="Justification for the score")


class AssessmentCreate(BaseModel):
    """
    Initial values for a lazily created assessment.
    """

    scores: Optional[List[CriterionScore]] = None
    overall_comment: Optional[str] = None
    coi_confirmed: bool = False
    coi_details: Optional[str] = None


class AssessmentUpdate(BaseModel):
    """
    Partial update; only fields present in the request are applied.

    scores and coi_confirmed may be omitted but not sent as null.
    """

    scores: List[CriterionScore] = Field(default_factory=list)
    overall_comment: Optional[str] = None
    coi_confirmed: bool = False
    coi_details: Optional[str] = None


class ReturnForRevision(BaseModel):
    """
    Coordinator request to send an assessment back to its assessor.
    """

    reason: str = Field(..., min_length=1, max_length=2000, description="Why the assessment needs revision")


class AssessmentResponse(BaseModel):
    """
    The assessor's work product for one assignment.
    """

    id: UUID
    assignment_id: UUID
    scores: List[CriterionScore] = Field(default_factory=list)
    overall_score: float = 0.0
    overall_comment: Optional[str] = None
    coi_confirmed: bool = False
    coi_details: Optional[str] = None
    status: AssessmentStatus = AssessmentStatus.DRAFT
    submitted_at: Optional[datetime] = None
    returned_at: Optional[datetime] = None
    return_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# Domain name used by services
Assessment = AssessmentResponse


class ErrorResponse(BaseModel):
    """
    Standard error response model.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[dict] = Field(default=None, description="Additional error details")
    timestamp: datetime = Field(..., description="Error occurrence timestamp")
