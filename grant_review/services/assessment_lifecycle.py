"""
Assessment Lifecycle Manager
grant_review/services/assessment_lifecycle.py

Creates, edits, submits and returns assessments. Every status change of an
assessment is written together with the matching assignment status in one
transaction:

    create (first call)  -> assessment DRAFT,     assignment IN_PROGRESS
    update on RETURNED   -> assessment DRAFT,     assignment IN_PROGRESS
    submit               -> assessment SUBMITTED, assignment COMPLETED
    return_for_revision  -> assessment RETURNED,  assignment RETURNED
"""

from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

import structlog

from grant_review.core.exceptions import (
    EntityNotFoundException,
    InvalidStateTransitionException,
    ScoreValidationException,
)
from grant_review.models.assessment import Assessment, CriterionScore
from grant_review.models.enumerations import AssessmentStatus, AssignmentStatus
from grant_review.models.funding_call import Criterion
from grant_review.repositories.assessment_repository import AssessmentRepository
from grant_review.repositories.assignment_repository import AssignmentRepository
from grant_review.scoring.score_aggregator import overall_score, validate_scores
from grant_review.services.assignment_state import AssignmentStateTracker
from grant_review.services.state_machine import (
    can_transition_assessment,
    can_transition_assignment,
    mirrored_assignment_status,
)

logger = structlog.get_logger(__name__)


class _Unset:
    """Marker for update() arguments the caller did not supply."""

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


def _as_scores(scores: Optional[Sequence[Any]]) -> List[CriterionScore]:
    return [s if isinstance(s, CriterionScore) else CriterionScore(**s) for s in scores or []]


def _dump_scores(scores: Sequence[CriterionScore]) -> List[Dict[str, Any]]:
    return [s.model_dump(exclude_none=True) for s in scores]


class AssessmentLifecycleManager:
    """Owns the assessment state machine and its cascade onto assignments."""

    def __init__(
        self,
        assessment_repo: AssessmentRepository,
        assignment_repo: AssignmentRepository,
        state_tracker: Optional[AssignmentStateTracker] = None,
    ):
        self.assessment_repo = assessment_repo
        self.assignment_repo = assignment_repo
        self.state_tracker = state_tracker or AssignmentStateTracker(assignment_repo)

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    def get(self, assessment_id: UUID) -> Optional[Assessment]:
        row = self.assessment_repo.get_by_id(assessment_id)
        return Assessment(**row) if row else None

    def get_by_assignment(self, assignment_id: UUID) -> Optional[Assessment]:
        row = self.assessment_repo.get_by_assignment(assignment_id)
        return Assessment(**row) if row else None

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def create_or_get(
        self,
        assignment_id: UUID,
        scores: Optional[Sequence[Any]] = None,
        overall_comment: Optional[str] = None,
        coi_confirmed: bool = False,
        coi_details: Optional[str] = None,
    ) -> Assessment:
        """
        Return the assignment's assessment, creating a DRAFT on first call.

        Only the call that actually inserts the row moves the assignment to
        IN_PROGRESS. Later calls return the stored record and ignore the
        initial values.

        Raises:
            EntityNotFoundException: assignment does not exist
            InvalidStateTransitionException: assignment is COMPLETED but its
                assessment row is missing
        """
        criterion_scores = _as_scores(scores)

        with self.assessment_repo.transaction() as cur:
            assignment = self.assignment_repo.get_by_id(assignment_id, cursor=cur)
            if assignment is None:
                raise EntityNotFoundException("Assignment", str(assignment_id))

            # A completed assignment whose assessment is gone cannot restart
            status = assignment["status"]
            if not can_transition_assignment(status, AssignmentStatus.IN_PROGRESS) and (
                self.assessment_repo.get_by_assignment(assignment_id, cursor=cur) is None
            ):
                raise InvalidStateTransitionException(
                    "Assignment", str(assignment_id), status.value,
                    AssignmentStatus.IN_PROGRESS.value,
                )

            inserted = self.assessment_repo.insert_if_absent(
                assignment_id,
                _dump_scores(criterion_scores),
                overall_score(criterion_scores),
                overall_comment=overall_comment,
                coi_confirmed=coi_confirmed,
                coi_details=coi_details,
                cursor=cur,
            )
            if inserted:
                self.state_tracker.set_status(
                    assignment_id, AssignmentStatus.IN_PROGRESS, cursor=cur
                )

            row = self.assessment_repo.get_by_assignment(assignment_id, cursor=cur)
            assessment = Assessment(**row)

        logger.info(
            "assessment_created" if inserted else "assessment_reused",
            assessment_id=str(row["id"]),
            assignment_id=str(assignment_id),
        )
        return assessment

    def update(
        self,
        assessment_id: UUID,
        *,
        scores: Any = UNSET,
        overall_comment: Any = UNSET,
        coi_confirmed: Any = UNSET,
        coi_details: Any = UNSET,
    ) -> Optional[Assessment]:
        """
        Apply a partial edit. Arguments left UNSET are not touched.

        When ``scores`` is given, overall_score is recomputed and written in
        the same statement. Editing a RETURNED assessment reopens it as DRAFT
        and moves the assignment back to IN_PROGRESS.

        Returns:
            The updated assessment, or None if it does not exist

        Raises:
            InvalidStateTransitionException: assessment is already SUBMITTED
        """
        fields: Dict[str, Any] = {}
        if scores is not UNSET:
            criterion_scores = _as_scores(scores)
            fields["scores"] = _dump_scores(criterion_scores)
            fields["overall_score"] = overall_score(criterion_scores)
        if overall_comment is not UNSET:
            fields["overall_comment"] = overall_comment
        if coi_confirmed is not UNSET:
            fields["coi_confirmed"] = coi_confirmed
        if coi_details is not UNSET:
            fields["coi_details"] = coi_details

        with self.assessment_repo.transaction() as cur:
            current = self.assessment_repo.get_by_id(assessment_id, cursor=cur)
            if current is None:
                return None

            if not fields:
                return Assessment(**current)

            status = current["status"]
            if status == AssessmentStatus.SUBMITTED:
                raise InvalidStateTransitionException(
                    "Assessment", str(assessment_id), status.value, "edited"
                )

            reopened = status == AssessmentStatus.RETURNED
            if reopened:
                fields["status"] = AssessmentStatus.DRAFT

            row = self.assessment_repo.update_fields(assessment_id, fields, cursor=cur)

            if reopened:
                self.state_tracker.set_status(
                    current["assignment_id"],
                    mirrored_assignment_status(AssessmentStatus.DRAFT),
                    cursor=cur,
                )

            # Validated before commit
            updated = Assessment(**row) if row else None

        logger.info(
            "assessment_updated",
            assessment_id=str(assessment_id),
            fields=sorted(k for k in fields if k != "status"),
            reopened=reopened,
        )
        return updated

    def submit(
        self,
        assessment_id: UUID,
        criteria: Optional[Sequence[Criterion]] = None,
    ) -> Optional[Assessment]:
        """
        Submit an assessment and complete its assignment.

        Args:
            criteria: When given, scores are validated against them first

        Returns:
            The submitted assessment, or None if it does not exist

        Raises:
            ScoreValidationException: scores fail the criteria
            InvalidStateTransitionException: assessment is already SUBMITTED
        """
        with self.assessment_repo.transaction() as cur:
            current = self.assessment_repo.get_by_id(assessment_id, cursor=cur)
            if current is None:
                return None

            self._check_transition(current, AssessmentStatus.SUBMITTED)

            if criteria is not None:
                errors = validate_scores(_as_scores(current["scores"]), criteria)
                if errors:
                    logger.info(
                        "assessment_submit_rejected",
                        assessment_id=str(assessment_id),
                        errors=len(errors),
                    )
                    raise ScoreValidationException(errors)

            row = self.assessment_repo.mark_submitted(assessment_id, cursor=cur)
            self.state_tracker.set_status(
                current["assignment_id"],
                mirrored_assignment_status(AssessmentStatus.SUBMITTED),
                cursor=cur,
            )

        logger.info(
            "assessment_submitted",
            assessment_id=str(assessment_id),
            assignment_id=str(current["assignment_id"]),
            overall_score=current["overall_score"],
        )
        return Assessment(**row) if row else None

    def return_for_revision(self, assessment_id: UUID, reason: str) -> Assessment:
        """
        Send an assessment back to its assessor.

        Raises:
            EntityNotFoundException: assessment does not exist
            InvalidStateTransitionException: assessment is already RETURNED
        """
        with self.assessment_repo.transaction() as cur:
            current = self.assessment_repo.get_by_id(assessment_id, cursor=cur)
            if current is None:
                raise EntityNotFoundException("Assessment", str(assessment_id))

            self._check_transition(current, AssessmentStatus.RETURNED)

            row = self.assessment_repo.mark_returned(assessment_id, reason, cursor=cur)
            self.state_tracker.set_status(
                current["assignment_id"],
                mirrored_assignment_status(AssessmentStatus.RETURNED),
                cursor=cur,
            )

        logger.info(
            "assessment_returned",
            assessment_id=str(assessment_id),
            assignment_id=str(current["assignment_id"]),
        )
        return Assessment(**row)

    def _check_transition(self, current: Dict[str, Any], target: AssessmentStatus) -> None:
        if not can_transition_assessment(current["status"], target):
            raise InvalidStateTransitionException(
                "Assessment", str(current["id"]), current["status"].value, target.value
            )
