"""
Custom Exceptions - Grant Review Engine
grant_review/core/exceptions.py

Exception classes for repository and workflow operations.
"""

from typing import List


class RepositoryException(Exception):
    """Base exception for repository operations."""

    pass


class EntityNotFoundException(RepositoryException):
    """Entity not found in database."""

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with ID {entity_id} not found")


class DuplicateEntityException(RepositoryException):
    """Duplicate entity violation."""

    def __init__(self, message: str = "Entity already exists"):
        self.message = message
        super().__init__(message)


class DatabaseConnectionException(RepositoryException):
    """Database connection failure."""

    def __init__(self, message: str = "Database connection failed"):
        self.message = message
        super().__init__(message)


class ForeignKeyViolationException(RepositoryException):
    """Foreign key constraint violation."""

    def __init__(self, message: str = "Foreign key constraint violation"):
        self.message = message
        super().__init__(message)


class WorkflowException(Exception):
    """Base exception for review workflow rule violations."""

    pass


class InvalidStateTransitionException(WorkflowException):
    """Requested status change is not allowed from the current status."""

    def __init__(self, entity_type: str, entity_id: str, current: str, target: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current = current
        self.target = target
        super().__init__(
            f"{entity_type} {entity_id} cannot move from '{current}' to '{target}'"
        )


class ScoreValidationException(WorkflowException):
    """Criterion scores do not satisfy the funding call's criteria."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__("; ".join(errors) or "Invalid scores")


class AssignmentInUseException(WorkflowException):
    """Assignment cannot be removed once its assessment has been started."""

    def __init__(self, assignment_id: str):
        self.assignment_id = assignment_id
        super().__init__("Cannot unassign - assessment already started")
