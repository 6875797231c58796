from enum import Enum

class AssignmentStatus(str, Enum):
    PENDING = "pending"          # Created by the distributor, not yet opened
    IN_PROGRESS = "in_progress"  # Assessor has a draft assessment
    COMPLETED = "completed"      # Assessment submitted
    RETURNED = "returned"        # Sent back to the assessor for revision

class AssessmentStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    RETURNED = "returned"

class ApplicationStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    WITHDRAWN = "withdrawn"

class ResultSortKey(str, Enum):
    TOTAL = "total"
    WEIGHTED = "weighted"

class ExportSheet(str, Enum):
    RESULTS = "results"      # One row per application
    ASSESSORS = "assessors"  # One row per submitted assessment
