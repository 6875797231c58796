"""
Funding Call Repository - Grant Review Engine
grant_review/repositories/funding_call_repository.py

Read-only access to funding-call review configuration and the applications
submitted to each call.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

from grant_review.models.enumerations import ApplicationStatus
from grant_review.repositories.base import BaseRepository


class FundingCallRepository(BaseRepository):
    """Repository for funding calls and their applications."""

    TABLE_NAME = "FUNDING_CALLS"

    def get_by_id(self, call_id: UUID) -> Optional[Dict[str, Any]]:
        """
        Retrieve a funding call's review configuration.

        Returns:
            Call config dict or None if not found
        """
        sql = """
            SELECT ID, NAME, ASSESSORS_PER_APPLICATION, VARIANCE_THRESHOLD, CRITERIA
            FROM FUNDING_CALLS
            WHERE ID = %s
        """
        row = self.execute_query(sql, (str(call_id),), fetch_one=True)

        if not row:
            return None

        return self._row_to_dict(row)

    def get_config_for_application(self, application_id: UUID) -> Optional[Dict[str, Any]]:
        """Configuration of the call that owns an application."""
        sql = """
            SELECT fc.ID, fc.NAME, fc.ASSESSORS_PER_APPLICATION,
                   fc.VARIANCE_THRESHOLD, fc.CRITERIA
            FROM FUNDING_CALLS fc
            JOIN APPLICATIONS a ON a.CALL_ID = fc.ID
            WHERE a.ID = %s
        """
        row = self.execute_query(sql, (str(application_id),), fetch_one=True)

        if not row:
            return None

        return self._row_to_dict(row)

    def get_application(self, application_id: UUID) -> Optional[Dict[str, Any]]:
        """Application header fields used on result sheets."""
        sql = """
            SELECT ID, CALL_ID, REFERENCE_NUMBER, APPLICANT_NAME, STATUS
            FROM APPLICATIONS
            WHERE ID = %s
        """
        row = self.execute_query(sql, (str(application_id),), fetch_one=True)

        if not row:
            return None

        return self._application_to_dict(row)

    def list_applications(
        self,
        call_id: UUID,
        status: Optional[ApplicationStatus] = ApplicationStatus.SUBMITTED,
    ) -> List[Dict[str, Any]]:
        """Applications of a call, by reference number."""
        where_clauses = ["CALL_ID = %s"]
        params: List[Any] = [str(call_id)]

        if status:
            where_clauses.append("STATUS = %s")
            params.append(status.value)

        sql = f"""
            SELECT ID, CALL_ID, REFERENCE_NUMBER, APPLICANT_NAME, STATUS
            FROM APPLICATIONS
            WHERE {' AND '.join(where_clauses)}
            ORDER BY REFERENCE_NUMBER
        """
        rows = self.execute_query(sql, tuple(params), fetch_all=True) or []
        return [self._application_to_dict(row) for row in rows]

    def _row_to_dict(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """Convert Snowflake row to funding call config dict."""
        return {
            "call_id": UUID(row["ID"]),
            "name": row["NAME"],
            "assessors_per_application": (
                int(row["ASSESSORS_PER_APPLICATION"])
                if row["ASSESSORS_PER_APPLICATION"] is not None
                else None
            ),
            "variance_threshold": (
                float(row["VARIANCE_THRESHOLD"]) if row["VARIANCE_THRESHOLD"] is not None else None
            ),
            "criteria": self.parse_variant(row["CRITERIA"], default=[]),
        }

    def _application_to_dict(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "id": UUID(row["ID"]),
            "call_id": UUID(row["CALL_ID"]),
            "reference_number": row["REFERENCE_NUMBER"],
            "applicant_name": row["APPLICANT_NAME"],
            "status": ApplicationStatus(row["STATUS"]),
        }
