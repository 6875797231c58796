"""
Core Package - Grant Review Engine
grant_review/core/__init__.py

Core infrastructure: dependencies (grant_review.core.dependencies), exceptions.
"""

from grant_review.core.exceptions import (
    AssignmentInUseException,
    DatabaseConnectionException,
    DuplicateEntityException,
    EntityNotFoundException,
    ForeignKeyViolationException,
    InvalidStateTransitionException,
    RepositoryException,
    ScoreValidationException,
    WorkflowException,
)

__all__ = [
    "AssignmentInUseException",
    "DatabaseConnectionException",
    "DuplicateEntityException",
    "EntityNotFoundException",
    "ForeignKeyViolationException",
    "InvalidStateTransitionException",
    "RepositoryException",
    "ScoreValidationException",
    "WorkflowException",
]
