"""
Repositories Package - Grant Review Engine
grant_review/repositories/__init__.py

Data access layer for Snowflake database operations.
"""

from grant_review.repositories.base import BaseRepository
from grant_review.repositories.assessment_repository import AssessmentRepository
from grant_review.repositories.assignment_repository import AssignmentRepository
from grant_review.repositories.funding_call_repository import FundingCallRepository

__all__ = [
    "BaseRepository",
    "AssessmentRepository",
    "AssignmentRepository",
    "FundingCallRepository",
]
