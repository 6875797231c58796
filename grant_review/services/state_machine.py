"""
Review Workflow State Machines
grant_review/services/state_machine.py

The assignment and assessment status machines, and the mirror that keeps
them coupled. Every assessment status corresponds to exactly one assignment
status; the lifecycle manager moves both together.

    Assignment:  PENDING -> IN_PROGRESS -> COMPLETED
                 IN_PROGRESS | COMPLETED -> RETURNED
                 RETURNED -> IN_PROGRESS | COMPLETED

    Assessment:  DRAFT -> SUBMITTED | RETURNED
                 SUBMITTED -> RETURNED
                 RETURNED -> DRAFT (reopened on edit) | SUBMITTED
"""

from typing import Dict, FrozenSet

from grant_review.models.enumerations import AssessmentStatus, AssignmentStatus


ASSIGNMENT_TRANSITIONS: Dict[AssignmentStatus, FrozenSet[AssignmentStatus]] = {
    AssignmentStatus.PENDING: frozenset({AssignmentStatus.IN_PROGRESS}),
    AssignmentStatus.IN_PROGRESS: frozenset({AssignmentStatus.COMPLETED, AssignmentStatus.RETURNED}),
    AssignmentStatus.COMPLETED: frozenset({AssignmentStatus.RETURNED}),
    AssignmentStatus.RETURNED: frozenset({AssignmentStatus.IN_PROGRESS, AssignmentStatus.COMPLETED}),
}

ASSESSMENT_TRANSITIONS: Dict[AssessmentStatus, FrozenSet[AssessmentStatus]] = {
    AssessmentStatus.DRAFT: frozenset({AssessmentStatus.SUBMITTED, AssessmentStatus.RETURNED}),
    AssessmentStatus.SUBMITTED: frozenset({AssessmentStatus.RETURNED}),
    AssessmentStatus.RETURNED: frozenset({AssessmentStatus.DRAFT, AssessmentStatus.SUBMITTED}),
}

# Assignment status implied by each assessment status
ASSIGNMENT_STATUS_FOR: Dict[AssessmentStatus, AssignmentStatus] = {
    AssessmentStatus.DRAFT: AssignmentStatus.IN_PROGRESS,
    AssessmentStatus.SUBMITTED: AssignmentStatus.COMPLETED,
    AssessmentStatus.RETURNED: AssignmentStatus.RETURNED,
}


def can_transition_assignment(current: AssignmentStatus, target: AssignmentStatus) -> bool:
    """Same-status requests are allowed; they re-apply timestamp rules."""
    return current == target or target in ASSIGNMENT_TRANSITIONS[current]


def can_transition_assessment(current: AssessmentStatus, target: AssessmentStatus) -> bool:
    return target in ASSESSMENT_TRANSITIONS[current]


def mirrored_assignment_status(status: AssessmentStatus) -> AssignmentStatus:
    return ASSIGNMENT_STATUS_FOR[status]
