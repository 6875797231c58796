from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime
from typing import Optional, List

from grant_review.models.enumerations import AssignmentStatus


class BulkAssignmentCreate(BaseModel):
    """
    Request model for round-robin distribution of applications to assessors.
    """

    application_ids: List[UUID] = Field(
        default_factory=list,
        description="Applications to distribute, in allocation order",
    )

    assessor_ids: List[UUID] = Field(
        default_factory=list,
        description="Assessor pool; application i goes to assessor i mod len(pool)",
    )

    assigned_by: UUID = Field(..., description="Coordinator performing the distribution")

    due_at: Optional[datetime] = Field(default=None, description="Optional deadline for every new assignment")


class AssignmentResponse(BaseModel):
    """
    One (application, assessor) pairing.
    """

    id: UUID
    application_id: UUID
    assessor_id: UUID
    assigned_by: Optional[UUID] = None
    assigned_at: datetime
    due_at: Optional[datetime] = None
    status: AssignmentStatus = AssignmentStatus.PENDING
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Domain name used by services
Assignment = AssignmentResponse
