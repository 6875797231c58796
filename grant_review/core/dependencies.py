"""
Dependencies - Grant Review Engine
grant_review/core/dependencies.py

FastAPI dependency injection for repositories and review services.
"""

from functools import lru_cache

from grant_review.config import get_settings
from grant_review.repositories.assessment_repository import AssessmentRepository
from grant_review.repositories.assignment_repository import AssignmentRepository
from grant_review.repositories.funding_call_repository import FundingCallRepository
from grant_review.services.assessment_lifecycle import AssessmentLifecycleManager
from grant_review.services.assignment_distributor import AssignmentDistributor
from grant_review.services.assignment_state import AssignmentStateTracker
from grant_review.services.results_aggregator import ResultsAggregator


@lru_cache()
def get_assignment_repository() -> AssignmentRepository:
    """Get cached AssignmentRepository instance."""
    return AssignmentRepository()


@lru_cache()
def get_assessment_repository() -> AssessmentRepository:
    """Get cached AssessmentRepository instance."""
    return AssessmentRepository()


@lru_cache()
def get_funding_call_repository() -> FundingCallRepository:
    """Get cached FundingCallRepository instance."""
    return FundingCallRepository()


@lru_cache()
def get_assignment_state_tracker() -> AssignmentStateTracker:
    return AssignmentStateTracker(get_assignment_repository())


@lru_cache()
def get_assignment_distributor() -> AssignmentDistributor:
    return AssignmentDistributor(get_assignment_repository())


@lru_cache()
def get_lifecycle_manager() -> AssessmentLifecycleManager:
    return AssessmentLifecycleManager(
        get_assessment_repository(),
        get_assignment_repository(),
        get_assignment_state_tracker(),
    )


@lru_cache()
def get_results_aggregator() -> ResultsAggregator:
    """Results aggregator wired with the configured fallbacks."""
    settings = get_settings()
    return ResultsAggregator(
        get_assessment_repository(),
        get_assignment_repository(),
        get_funding_call_repository(),
        default_variance_threshold=settings.DEFAULT_VARIANCE_THRESHOLD,
        default_assessors_per_application=settings.DEFAULT_ASSESSORS_PER_APPLICATION,
    )
