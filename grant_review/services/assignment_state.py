"""
Assignment State Tracker
grant_review/services/assignment_state.py

Owns the assignment status field and its timestamps:

  - IN_PROGRESS: started_at is set once, on first entry, and never moved
  - COMPLETED:   completed_at is overwritten on every entry
  - RETURNED / PENDING: status only
"""

from typing import Any, Optional
from uuid import UUID

import structlog

from grant_review.core.exceptions import (
    EntityNotFoundException,
    InvalidStateTransitionException,
)
from grant_review.models.enumerations import AssignmentStatus
from grant_review.repositories.assignment_repository import AssignmentRepository
from grant_review.services.state_machine import can_transition_assignment

logger = structlog.get_logger(__name__)


class AssignmentStateTracker:
    """Applies assignment status changes requested by the lifecycle manager."""

    def __init__(self, assignment_repo: AssignmentRepository):
        self.assignment_repo = assignment_repo

    def set_status(
        self,
        assignment_id: UUID,
        status: AssignmentStatus,
        cursor: Optional[Any] = None,
    ) -> None:
        """
        Move an assignment to ``status``.

        Args:
            assignment_id: Assignment to update
            status: Target status
            cursor: Open transaction to join, so the change commits with the
                    assessment write that caused it

        Raises:
            EntityNotFoundException: assignment does not exist
            InvalidStateTransitionException: target not reachable from current status
        """
        current = self.assignment_repo.get_by_id(assignment_id, cursor=cursor)
        if current is None:
            raise EntityNotFoundException("Assignment", str(assignment_id))

        if not can_transition_assignment(current["status"], status):
            raise InvalidStateTransitionException(
                "Assignment", str(assignment_id), current["status"].value, status.value
            )

        self.assignment_repo.update_status(
            assignment_id,
            status,
            stamp_started=status == AssignmentStatus.IN_PROGRESS,
            stamp_completed=status == AssignmentStatus.COMPLETED,
            cursor=cursor,
        )

        logger.info(
            "assignment_status_changed",
            assignment_id=str(assignment_id),
            from_status=current["status"].value,
            to_status=status.value,
        )
