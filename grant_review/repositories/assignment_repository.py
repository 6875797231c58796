"""
Assignment Repository - Grant Review Engine
grant_review/repositories/assignment_repository.py

Data access layer for Assignment (application ↔ assessor pairing) rows.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID, uuid4

from grant_review.models.enumerations import AssessmentStatus, AssignmentStatus
from grant_review.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

_COLUMNS = """
    ID, APPLICATION_ID, ASSESSOR_ID, ASSIGNED_BY, ASSIGNED_AT, DUE_AT,
    STATUS, STARTED_AT, COMPLETED_AT
"""


class AssignmentRepository(BaseRepository):
    """Repository for Assignment persistence."""

    TABLE_NAME = "ASSIGNMENTS"

    def __init__(self, id_factory: Callable[[], UUID] = uuid4):
        self._id_factory = id_factory

    def insert_if_absent(
        self,
        application_id: UUID,
        assessor_id: UUID,
        assigned_by: Optional[UUID],
        due_at: Optional[datetime] = None,
        cursor: Optional[Any] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Create the (application, assessor) pairing unless it already exists.

        The MERGE is a single atomic statement, so concurrent callers cannot
        both insert the same pair.

        Returns:
            The created assignment dict, or None when the pair already existed
        """
        assignment_id = self._id_factory()

        sql = """
            MERGE INTO ASSIGNMENTS t
            USING (
                SELECT %s AS ID, %s AS APPLICATION_ID, %s AS ASSESSOR_ID,
                       %s AS ASSIGNED_BY, %s::TIMESTAMP_TZ AS DUE_AT
            ) s
            ON t.APPLICATION_ID = s.APPLICATION_ID AND t.ASSESSOR_ID = s.ASSESSOR_ID
            WHEN NOT MATCHED THEN INSERT
                (ID, APPLICATION_ID, ASSESSOR_ID, ASSIGNED_BY, ASSIGNED_AT, DUE_AT, STATUS)
            VALUES
                (s.ID, s.APPLICATION_ID, s.ASSESSOR_ID, s.ASSIGNED_BY,
                 CURRENT_TIMESTAMP(), s.DUE_AT, %s)
        """
        params = (
            str(assignment_id),
            str(application_id),
            str(assessor_id),
            self.uuid_to_str(assigned_by),
            due_at,
            AssignmentStatus.PENDING.value,
        )

        inserted = self.execute_query(sql, params, commit=True, cursor=cursor)
        if not inserted:
            logger.debug(f"Assignment pair exists: {application_id} / {assessor_id}")
            return None

        return self.get_by_id(assignment_id, cursor=cursor)

    def get_by_id(
        self, assignment_id: UUID, cursor: Optional[Any] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Retrieve an assignment by ID.

        Returns:
            Assignment dict or None if not found
        """
        sql = f"SELECT {_COLUMNS} FROM ASSIGNMENTS WHERE ID = %s"
        row = self.execute_query(sql, (str(assignment_id),), fetch_one=True, cursor=cursor)

        if not row:
            return None

        return self._row_to_dict(row)

    def list_by_application(self, application_id: UUID) -> List[Dict[str, Any]]:
        """All assignments for an application, oldest first."""
        sql = f"""
            SELECT {_COLUMNS}
            FROM ASSIGNMENTS
            WHERE APPLICATION_ID = %s
            ORDER BY ASSIGNED_AT
        """
        rows = self.execute_query(sql, (str(application_id),), fetch_all=True) or []
        return [self._row_to_dict(row) for row in rows]

    def list_by_assessor(
        self, assessor_id: UUID, status: Optional[AssignmentStatus] = None
    ) -> List[Dict[str, Any]]:
        """An assessor's assignments, earliest deadline first."""
        where_clauses = ["ASSESSOR_ID = %s"]
        params: List[Any] = [str(assessor_id)]

        if status:
            where_clauses.append("STATUS = %s")
            params.append(status.value)

        sql = f"""
            SELECT {_COLUMNS}
            FROM ASSIGNMENTS
            WHERE {' AND '.join(where_clauses)}
            ORDER BY DUE_AT ASC NULLS LAST, ASSIGNED_AT DESC
        """
        rows = self.execute_query(sql, tuple(params), fetch_all=True) or []
        return [self._row_to_dict(row) for row in rows]

    def list_by_call(self, call_id: UUID) -> List[Dict[str, Any]]:
        """
        Assignments of every application in a funding call, joined with the
        assessor's name and the status of the linked assessment (if any).
        """
        sql = """
            SELECT asn.ID, asn.APPLICATION_ID, asn.ASSESSOR_ID, asn.ASSIGNED_BY,
                   asn.ASSIGNED_AT, asn.DUE_AT, asn.STATUS, asn.STARTED_AT,
                   asn.COMPLETED_AT,
                   u.DISPLAY_NAME AS ASSESSOR_NAME,
                   ass.STATUS AS ASSESSMENT_STATUS,
                   ass.SUBMITTED_AT AS ASSESSMENT_SUBMITTED_AT
            FROM ASSIGNMENTS asn
            JOIN APPLICATIONS a ON asn.APPLICATION_ID = a.ID
            LEFT JOIN ASSESSORS u ON asn.ASSESSOR_ID = u.ID
            LEFT JOIN ASSESSMENTS ass ON ass.ASSIGNMENT_ID = asn.ID
            WHERE a.CALL_ID = %s
            ORDER BY asn.ASSIGNED_AT
        """
        rows = self.execute_query(sql, (str(call_id),), fetch_all=True) or []

        results = []
        for row in rows:
            data = self._row_to_dict(row)
            data["assessor_name"] = row["ASSESSOR_NAME"]
            data["assessment_status"] = (
                AssessmentStatus(row["ASSESSMENT_STATUS"]) if row["ASSESSMENT_STATUS"] else None
            )
            data["assessment_submitted_at"] = self.normalize_timestamp(row["ASSESSMENT_SUBMITTED_AT"])
            results.append(data)
        return results

    def update_status(
        self,
        assignment_id: UUID,
        status: AssignmentStatus,
        stamp_started: bool = False,
        stamp_completed: bool = False,
        cursor: Optional[Any] = None,
    ) -> int:
        """
        Set the status and the requested timestamps in one statement.

        Args:
            stamp_started: Set STARTED_AT only if it is still NULL
            stamp_completed: Overwrite COMPLETED_AT with the current time

        Returns:
            Number of rows updated (0 when the assignment does not exist)
        """
        additional = {}
        if stamp_started:
            additional["started_at"] = "COALESCE(STARTED_AT, CURRENT_TIMESTAMP())"
        if stamp_completed:
            additional["completed_at"] = "CURRENT_TIMESTAMP()"

        sql, params = self.build_update_query(
            self.TABLE_NAME,
            {"status": status.value},
            "ID",
            str(assignment_id),
            additional_set=additional,
        )
        return self.execute_query(sql, tuple(params), commit=True, cursor=cursor) or 0

    def delete(self, assignment_id: UUID, cursor: Optional[Any] = None) -> bool:
        """
        Remove an assignment whose assessment has not been started.

        The existence check and the delete are one statement, so an
        assessment created concurrently is never orphaned.

        Returns:
            False when the assignment is missing or already has an assessment
        """
        sql = """
            DELETE FROM ASSIGNMENTS
            WHERE ID = %s
              AND NOT EXISTS (SELECT 1 FROM ASSESSMENTS WHERE ASSIGNMENT_ID = %s)
        """
        params = (str(assignment_id), str(assignment_id))
        deleted = self.execute_query(sql, params, commit=True, cursor=cursor)
        return bool(deleted)

    def _row_to_dict(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """Convert Snowflake row to assignment dict."""
        return {
            "id": UUID(row["ID"]),
            "application_id": UUID(row["APPLICATION_ID"]),
            "assessor_id": UUID(row["ASSESSOR_ID"]),
            "assigned_by": self.str_to_uuid(row["ASSIGNED_BY"]),
            "assigned_at": self.normalize_timestamp(row["ASSIGNED_AT"]),
            "due_at": self.normalize_timestamp(row["DUE_AT"]),
            "status": AssignmentStatus(row["STATUS"]),
            "started_at": self.normalize_timestamp(row["STARTED_AT"]),
            "completed_at": self.normalize_timestamp(row["COMPLETED_AT"]),
        }
