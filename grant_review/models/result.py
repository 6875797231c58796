from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime
from typing import Optional, List

from grant_review.models.assessment import CriterionScore


class AssessorScore(BaseModel):
    """One submitted assessment as it contributes to an application result."""

    assessor_id: UUID
    assessor_name: Optional[str] = None
    scores: List[CriterionScore] = Field(default_factory=list)
    overall_score: float
    overall_comment: Optional[str] = None
    submitted_at: Optional[datetime] = None


class CriterionAggregate(BaseModel):
    """Spread of assessor scores for one criterion."""

    criterion_id: str
    criterion_name: str
    max_points: float
    weight: Optional[float] = None
    scores: List[float] = Field(default_factory=list)
    average: float = 0.0
    min: float = 0.0
    max: float = 0.0
    variance: float = 0.0
    high_variance: bool = False


class ApplicationResult(BaseModel):
    """Aggregated multi-assessor result for one application."""

    application_id: UUID
    reference_number: Optional[str] = None
    applicant_name: Optional[str] = None
    assessor_scores: List[AssessorScore] = Field(default_factory=list)
    criterion_aggregates: List[CriterionAggregate] = Field(default_factory=list)
    average_score: float = 0.0
    total_score: float = 0.0
    weighted_average: Optional[float] = None
    variance: float = Field(default=0.0, description="Score range as a percentage of the average")
    variance_flagged: bool = False
    submitted_count: int = 0
    expected_count: int = 0
    is_complete: bool = False


class ResultsSummary(BaseModel):
    total_applications: int = 0
    fully_assessed: int = 0
    partially_assessed: int = 0
    not_assessed: int = 0
    high_variance_count: int = 0


class MasterResults(BaseModel):
    """Results for every submitted application of a funding call."""

    call_id: UUID
    call_name: str
    results: List[ApplicationResult] = Field(default_factory=list)
    summary: ResultsSummary


class AssessorProgress(BaseModel):
    assessor_id: UUID
    assessor_name: Optional[str] = None
    assigned_count: int = 0
    completed_count: int = 0
    outstanding_count: int = 0
    overdue_count: int = 0
    last_activity: Optional[datetime] = None


class CallProgress(BaseModel):
    """Assignment and assessment completion for a funding call."""

    call_id: UUID
    call_name: str
    total_applications: int = 0
    total_assignments: int = 0
    completed_assessments: int = 0
    outstanding_assessments: int = 0
    overdue_assignments: int = Field(default=0, description="Past due_at and not completed")
    completion_percentage: int = Field(default=0, ge=0, le=100)
    assessor_progress: List[AssessorProgress] = Field(default_factory=list)
