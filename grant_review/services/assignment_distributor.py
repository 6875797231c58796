"""
Assignment Distributor
grant_review/services/assignment_distributor.py

Round-robin distribution of applications across an assessor pool:

  1. Application i goes to assessor_ids[i mod len(assessor_ids)]
  2. Each pair is written with the repository's atomic insert-if-absent
     (Snowflake MERGE), so existing pairs are skipped, never duplicated
  3. The whole batch is one transaction; any storage error rolls it back

A coordinator may also remove an assignment, but only while no assessment
has been started for it.
"""

from datetime import datetime
from typing import List, Optional, Sequence
from uuid import UUID

import structlog

from grant_review.core.exceptions import AssignmentInUseException, EntityNotFoundException
from grant_review.models.assignment import Assignment
from grant_review.repositories.assignment_repository import AssignmentRepository

logger = structlog.get_logger(__name__)


class AssignmentDistributor:
    """Creates assignments in bulk for a coordinator."""

    def __init__(self, assignment_repo: AssignmentRepository):
        self.assignment_repo = assignment_repo

    def create_bulk(
        self,
        application_ids: Sequence[UUID],
        assessor_ids: Sequence[UUID],
        assigned_by: UUID,
        due_at: Optional[datetime] = None,
    ) -> List[Assignment]:
        """
        Distribute applications across assessors, round-robin.

        Args:
            application_ids: Applications in allocation order
            assessor_ids: Assessor pool
            assigned_by: Coordinator performing the distribution
            due_at: Optional deadline applied to every new assignment

        Returns:
            Newly created assignments in creation order. Pairs that already
            existed are omitted. Empty when either input list is empty.
        """
        if not application_ids or not assessor_ids:
            logger.info(
                "assignments_distribution_skipped",
                applications=len(application_ids),
                assessors=len(assessor_ids),
            )
            return []

        created: List[Assignment] = []
        pool_size = len(assessor_ids)

        with self.assignment_repo.transaction() as cur:
            for i, application_id in enumerate(application_ids):
                assessor_id = assessor_ids[i % pool_size]
                row = self.assignment_repo.insert_if_absent(
                    application_id,
                    assessor_id,
                    assigned_by,
                    due_at=due_at,
                    cursor=cur,
                )
                if row is not None:
                    created.append(Assignment(**row))

        logger.info(
            "assignments_distributed",
            assigned_by=str(assigned_by),
            requested=len(application_ids),
            created=len(created),
            skipped=len(application_ids) - len(created),
            assessor_pool=pool_size,
        )
        return created

    def unassign(self, assignment_id: UUID) -> None:
        """
        Remove an assignment that has no assessment yet.

        Raises:
            EntityNotFoundException: assignment does not exist
            AssignmentInUseException: an assessment already exists for it
        """
        with self.assignment_repo.transaction() as cur:
            if self.assignment_repo.get_by_id(assignment_id, cursor=cur) is None:
                raise EntityNotFoundException("Assignment", str(assignment_id))

            if not self.assignment_repo.delete(assignment_id, cursor=cur):
                logger.info("assignment_removal_refused", assignment_id=str(assignment_id))
                raise AssignmentInUseException(str(assignment_id))

        logger.info("assignment_removed", assignment_id=str(assignment_id))
