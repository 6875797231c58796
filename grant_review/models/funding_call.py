from pydantic import BaseModel, Field
from uuid import UUID
from typing import Optional, List


class Criterion(BaseModel):
    """
    One assessment criterion configured on a funding call.
    """

    criterion_id: str = Field(..., min_length=1, description="Stable criterion identifier")

    name: str = Field(..., min_length=1, max_length=255, description="Display name")

    max_points: float = Field(..., gt=0, description="Maximum score an assessor may award")

    weight: Optional[float] = Field(
        default=None,
        ge=0,
        description="Relative weight; missing weight counts as 1 in weighted averages",
    )

    comments_required: bool = Field(
        default=False,
        description="Whether assessors must justify this score with a comment",
    )


class FundingCallConfig(BaseModel):
    """
    Review configuration of the funding call that owns an application.
    """

    call_id: UUID
    name: str
    assessors_per_application: Optional[int] = Field(
        default=None,
        ge=0,
        description="Submitted assessments required per application",
    )
    variance_threshold: Optional[float] = Field(
        default=None,
        ge=0,
        description="Variance percentage above which a result is flagged",
    )
    criteria: List[Criterion] = Field(default_factory=list)

    class Config:
        from_attributes = True
