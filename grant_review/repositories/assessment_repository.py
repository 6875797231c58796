"""
Assessment Repository - Grant Review Engine
grant_review/repositories/assessment_repository.py

Data access layer for Assessment entity operations.
"""

import json
import logging
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID, uuid4

from grant_review.models.enumerations import AssessmentStatus
from grant_review.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

_COLUMNS = """
    ID, ASSIGNMENT_ID, SCORES, OVERALL_SCORE, OVERALL_COMMENT,
    COI_CONFIRMED, COI_DETAILS, STATUS, SUBMITTED_AT,
    RETURNED_AT, RETURN_REASON, CREATED_AT, UPDATED_AT
"""

# Columns a caller may change through update_fields()
UPDATABLE_FIELDS = ("scores", "overall_score", "overall_comment", "coi_confirmed", "coi_details", "status")


class AssessmentRepository(BaseRepository):
    """Repository for Assessment persistence."""

    TABLE_NAME = "ASSESSMENTS"

    def __init__(self, id_factory: Callable[[], UUID] = uuid4):
        self._id_factory = id_factory

    def insert_if_absent(
        self,
        assignment_id: UUID,
        scores: List[Dict[str, Any]],
        overall_score: float,
        overall_comment: Optional[str] = None,
        coi_confirmed: bool = False,
        coi_details: Optional[str] = None,
        cursor: Optional[Any] = None,
    ) -> bool:
        """
        Create a DRAFT assessment for the assignment unless one exists.

        Returns:
            True if this call inserted the row, False if it already existed
        """
        sql = """
            MERGE INTO ASSESSMENTS t
            USING (
                SELECT %s AS ID, %s AS ASSIGNMENT_ID, PARSE_JSON(%s) AS SCORES,
                       %s AS OVERALL_SCORE, %s AS OVERALL_COMMENT,
                       %s AS COI_CONFIRMED, %s AS COI_DETAILS
            ) s
            ON t.ASSIGNMENT_ID = s.ASSIGNMENT_ID
            WHEN NOT MATCHED THEN INSERT
                (ID, ASSIGNMENT_ID, SCORES, OVERALL_SCORE, OVERALL_COMMENT,
                 COI_CONFIRMED, COI_DETAILS, STATUS, CREATED_AT, UPDATED_AT)
            VALUES
                (s.ID, s.ASSIGNMENT_ID, s.SCORES, s.OVERALL_SCORE, s.OVERALL_COMMENT,
                 s.COI_CONFIRMED, s.COI_DETAILS, %s, CURRENT_TIMESTAMP(), CURRENT_TIMESTAMP())
        """
        params = (
            str(self._id_factory()),
            str(assignment_id),
            json.dumps(scores),
            overall_score,
            overall_comment,
            coi_confirmed,
            coi_details,
            AssessmentStatus.DRAFT.value,
        )

        inserted = self.execute_query(sql, params, commit=True, cursor=cursor)
        return bool(inserted)

    def get_by_id(
        self, assessment_id: UUID, cursor: Optional[Any] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Retrieve an assessment by ID.

        Returns:
            Assessment dict or None if not found
        """
        sql = f"SELECT {_COLUMNS} FROM ASSESSMENTS WHERE ID = %s"
        row = self.execute_query(sql, (str(assessment_id),), fetch_one=True, cursor=cursor)

        if not row:
            return None

        return self._row_to_dict(row)

    def get_by_assignment(
        self, assignment_id: UUID, cursor: Optional[Any] = None
    ) -> Optional[Dict[str, Any]]:
        """Retrieve the (single) assessment belonging to an assignment."""
        sql = f"SELECT {_COLUMNS} FROM ASSESSMENTS WHERE ASSIGNMENT_ID = %s"
        row = self.execute_query(sql, (str(assignment_id),), fetch_one=True, cursor=cursor)

        if not row:
            return None

        return self._row_to_dict(row)

    def update_fields(
        self,
        assessment_id: UUID,
        fields: Dict[str, Any],
        cursor: Optional[Any] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Apply a partial update in a single UPDATE statement.

        Args:
            fields: Subset of UPDATABLE_FIELDS. ``scores`` is a list of dicts
                    and is always written together with ``overall_score``
                    when the caller supplies both.

        Returns:
            Updated assessment dict or None if not found
        """
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update assessment fields: {sorted(unknown)}")

        if not fields:
            return self.get_by_id(assessment_id, cursor=cursor)

        update_data = dict(fields)
        if "scores" in update_data:
            update_data["scores"] = json.dumps(update_data["scores"])
        if "status" in update_data:
            update_data["status"] = AssessmentStatus(update_data["status"]).value

        sql, params = self.build_update_query(
            self.TABLE_NAME,
            update_data,
            "ID",
            str(assessment_id),
            additional_set={"updated_at": "CURRENT_TIMESTAMP()"},
            placeholders={"scores": "PARSE_JSON(%s)"},
        )
        updated = self.execute_query(sql, tuple(params), commit=True, cursor=cursor)
        if not updated:
            return None

        return self.get_by_id(assessment_id, cursor=cursor)

    def mark_submitted(
        self, assessment_id: UUID, cursor: Optional[Any] = None
    ) -> Optional[Dict[str, Any]]:
        """Set SUBMITTED and stamp SUBMITTED_AT."""
        sql, params = self.build_update_query(
            self.TABLE_NAME,
            {"status": AssessmentStatus.SUBMITTED.value},
            "ID",
            str(assessment_id),
            additional_set={
                "submitted_at": "CURRENT_TIMESTAMP()",
                "updated_at": "CURRENT_TIMESTAMP()",
            },
        )
        updated = self.execute_query(sql, tuple(params), commit=True, cursor=cursor)
        if not updated:
            return None

        return self.get_by_id(assessment_id, cursor=cursor)

    def mark_returned(
        self, assessment_id: UUID, reason: str, cursor: Optional[Any] = None
    ) -> Optional[Dict[str, Any]]:
        """Set RETURNED and record why."""
        sql, params = self.build_update_query(
            self.TABLE_NAME,
            {"status": AssessmentStatus.RETURNED.value, "return_reason": reason},
            "ID",
            str(assessment_id),
            additional_set={
                "returned_at": "CURRENT_TIMESTAMP()",
                "updated_at": "CURRENT_TIMESTAMP()",
            },
        )
        updated = self.execute_query(sql, tuple(params), commit=True, cursor=cursor)
        if not updated:
            return None

        return self.get_by_id(assessment_id, cursor=cursor)

    def list_submitted_for_application(self, application_id: UUID) -> List[Dict[str, Any]]:
        """
        SUBMITTED assessments of an application with assessor identity,
        ordered by submission time.
        """
        sql = """
            SELECT ass.ID, ass.ASSIGNMENT_ID, ass.SCORES, ass.OVERALL_SCORE,
                   ass.OVERALL_COMMENT, ass.COI_CONFIRMED, ass.COI_DETAILS,
                   ass.STATUS, ass.SUBMITTED_AT, ass.RETURNED_AT,
                   ass.RETURN_REASON, ass.CREATED_AT, ass.UPDATED_AT,
                   asn.ASSESSOR_ID, u.DISPLAY_NAME AS ASSESSOR_NAME
            FROM ASSESSMENTS ass
            JOIN ASSIGNMENTS asn ON ass.ASSIGNMENT_ID = asn.ID
            LEFT JOIN ASSESSORS u ON asn.ASSESSOR_ID = u.ID
            WHERE asn.APPLICATION_ID = %s AND ass.STATUS = %s
            ORDER BY ass.SUBMITTED_AT
        """
        rows = self.execute_query(
            sql,
            (str(application_id), AssessmentStatus.SUBMITTED.value),
            fetch_all=True,
        ) or []

        results = []
        for row in rows:
            data = self._row_to_dict(row)
            data["assessor_id"] = UUID(row["ASSESSOR_ID"])
            data["assessor_name"] = row["ASSESSOR_NAME"]
            results.append(data)
        return results

    def _row_to_dict(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """Convert Snowflake row to assessment dict."""
        return {
            "id": UUID(row["ID"]),
            "assignment_id": UUID(row["ASSIGNMENT_ID"]),
            "scores": self.parse_variant(row["SCORES"], default=[]),
            "overall_score": float(row["OVERALL_SCORE"]) if row["OVERALL_SCORE"] is not None else 0.0,
            "overall_comment": row["OVERALL_COMMENT"],
            "coi_confirmed": bool(row["COI_CONFIRMED"]),
            "coi_details": row["COI_DETAILS"],
            "status": AssessmentStatus(row["STATUS"]),
            "submitted_at": self.normalize_timestamp(row["SUBMITTED_AT"]),
            "returned_at": self.normalize_timestamp(row["RETURNED_AT"]),
            "return_reason": row["RETURN_REASON"],
            "created_at": self.normalize_timestamp(row["CREATED_AT"]),
            "updated_at": self.normalize_timestamp(row["UPDATED_AT"]),
        }
