"""
Snowflake Repository Tests - Grant Review Engine
tests/test_repositories.py

Tests for the SQL issued by the repositories, row conversion, transaction
handling and error translation, with the Snowflake connector mocked out.
"""
import json
import pytest
from unittest.mock import patch, MagicMock
from uuid import UUID
from datetime import datetime, timezone

from snowflake.connector.errors import InterfaceError, ProgrammingError

from grant_review.core.exceptions import (
    DatabaseConnectionException,
    DuplicateEntityException,
    ForeignKeyViolationException,
    RepositoryException,
)
from grant_review.models.enumerations import AssessmentStatus, AssignmentStatus
from grant_review.repositories.assessment_repository import AssessmentRepository
from grant_review.repositories.assignment_repository import AssignmentRepository
from grant_review.repositories.base import BaseRepository
from grant_review.repositories.funding_call_repository import FundingCallRepository


ASSIGNMENT_ID = UUID("a0000000-0000-0000-0000-000000000001")
APPLICATION_ID = UUID("b0000000-0000-0000-0000-000000000001")
ASSESSOR_ID = UUID("c0000000-0000-0000-0000-000000000001")
ASSESSMENT_ID = UUID("d0000000-0000-0000-0000-000000000001")
CALL_ID = UUID("e0000000-0000-0000-0000-000000000001")


def assignment_row(**overrides):
    row = {
        "ID": str(ASSIGNMENT_ID),
        "APPLICATION_ID": str(APPLICATION_ID),
        "ASSESSOR_ID": str(ASSESSOR_ID),
        "ASSIGNED_BY": None,
        "ASSIGNED_AT": datetime(2026, 3, 1, 9, 0),
        "DUE_AT": None,
        "STATUS": "pending",
        "STARTED_AT": None,
        "COMPLETED_AT": None,
    }
    row.update(overrides)
    return row


def assessment_row(**overrides):
    row = {
        "ID": str(ASSESSMENT_ID),
        "ASSIGNMENT_ID": str(ASSIGNMENT_ID),
        "SCORES": json.dumps([{"criterion_id": "impact", "score": 8}]),
        "OVERALL_SCORE": 8.0,
        "OVERALL_COMMENT": None,
        "COI_CONFIRMED": False,
        "COI_DETAILS": None,
        "STATUS": "draft",
        "SUBMITTED_AT": None,
        "RETURNED_AT": None,
        "RETURN_REASON": None,
        "CREATED_AT": datetime(2026, 3, 1, 9, 0),
        "UPDATED_AT": datetime(2026, 3, 1, 9, 0),
    }
    row.update(overrides)
    return row


@pytest.fixture
def mock_conn():
    """Patched Snowflake connection whose cursor is shared across calls."""
    with patch("grant_review.repositories.base.get_snowflake_connection") as mock_connect:
        conn = MagicMock()
        cursor = MagicMock()
        cursor.connection = conn
        conn.cursor.return_value = cursor
        mock_connect.return_value = conn
        yield conn


def executed_sql(conn):
    return [c.args[0] for c in conn.cursor.return_value.execute.call_args_list]


class TestBaseRepository:
    """Connection, transaction and error handling."""

    def test_execute_query_commits_and_closes(self, mock_conn):
        mock_conn.cursor.return_value.rowcount = 1

        result = BaseRepository().execute_query("DELETE FROM X WHERE ID = %s", ("1",), commit=True)

        assert result == 1
        mock_conn.commit.assert_called_once()
        mock_conn.close.assert_called_once()

    def test_execute_query_uses_given_cursor(self, mock_conn):
        cursor = MagicMock()
        cursor.fetchone.return_value = {"ID": "1"}

        result = BaseRepository().execute_query("SELECT 1", fetch_one=True, commit=True, cursor=cursor)

        assert result == {"ID": "1"}
        cursor.execute.assert_called_once_with("SELECT 1", ())
        mock_conn.cursor.assert_not_called()
        mock_conn.commit.assert_not_called()

    def test_transaction_commits(self, mock_conn):
        repo = BaseRepository()

        with repo.transaction() as cur:
            repo.execute_query("UPDATE X SET A = 1", cursor=cur)

        assert executed_sql(mock_conn) == ["BEGIN", "UPDATE X SET A = 1"]
        mock_conn.commit.assert_called_once()
        mock_conn.rollback.assert_not_called()
        mock_conn.close.assert_called_once()

    def test_transaction_rolls_back_and_reraises(self, mock_conn):
        repo = BaseRepository()

        with pytest.raises(RuntimeError):
            with repo.transaction():
                raise RuntimeError("boom")

        mock_conn.rollback.assert_called_once()
        mock_conn.commit.assert_not_called()
        mock_conn.close.assert_called_once()

    def test_duplicate_translated(self, mock_conn):
        mock_conn.cursor.return_value.execute.side_effect = ProgrammingError(msg="Duplicate key value")

        with pytest.raises(DuplicateEntityException):
            BaseRepository().execute_query("INSERT ...")

    def test_foreign_key_translated(self, mock_conn):
        mock_conn.cursor.return_value.execute.side_effect = ProgrammingError(
            msg="Foreign key constraint violated"
        )

        with pytest.raises(ForeignKeyViolationException):
            BaseRepository().execute_query("INSERT ...")

    def test_other_query_errors_translated(self, mock_conn):
        mock_conn.cursor.return_value.execute.side_effect = ProgrammingError(msg="SQL compilation error")

        with pytest.raises(RepositoryException):
            BaseRepository().execute_query("SELEC 1")

    def test_connection_failure(self):
        with patch(
            "grant_review.repositories.base.get_snowflake_connection",
            side_effect=InterfaceError(msg="Connection refused"),
        ):
            with pytest.raises(DatabaseConnectionException):
                BaseRepository().execute_query("SELECT 1")

    def test_build_update_query(self):
        sql, params = BaseRepository().build_update_query(
            "ASSESSMENTS",
            {"scores": "[]", "overall_score": 0.0},
            "ID",
            "abc",
            additional_set={"updated_at": "CURRENT_TIMESTAMP()"},
            placeholders={"scores": "PARSE_JSON(%s)"},
        )

        assert "SCORES = PARSE_JSON(%s)" in sql
        assert "OVERALL_SCORE = %s" in sql
        assert "UPDATED_AT = CURRENT_TIMESTAMP()" in sql
        assert params == ["[]", 0.0, "abc"]

    def test_naive_timestamps_become_utc(self):
        ts = BaseRepository().normalize_timestamp(datetime(2026, 3, 1, 9, 0))

        assert ts.tzinfo == timezone.utc


class TestAssignmentRepository:

    def test_insert_if_absent_creates(self, mock_conn):
        cursor = mock_conn.cursor.return_value
        cursor.rowcount = 1
        cursor.fetchone.return_value = assignment_row()
        repo = AssignmentRepository(id_factory=lambda: ASSIGNMENT_ID)

        created = repo.insert_if_absent(APPLICATION_ID, ASSESSOR_ID, None)

        merge_sql, merge_params = cursor.execute.call_args_list[0].args
        assert "MERGE INTO ASSIGNMENTS" in merge_sql
        assert "WHEN NOT MATCHED THEN INSERT" in merge_sql
        assert merge_params[:3] == (str(ASSIGNMENT_ID), str(APPLICATION_ID), str(ASSESSOR_ID))
        assert merge_params[-1] == "pending"
        assert created["id"] == ASSIGNMENT_ID
        assert created["status"] == AssignmentStatus.PENDING
        assert created["assigned_at"].tzinfo == timezone.utc

    def test_insert_if_absent_skips_existing(self, mock_conn):
        cursor = mock_conn.cursor.return_value
        cursor.rowcount = 0

        assert AssignmentRepository().insert_if_absent(APPLICATION_ID, ASSESSOR_ID, None) is None
        cursor.fetchone.assert_not_called()

    def test_update_status_in_progress_keeps_first_start(self, mock_conn):
        mock_conn.cursor.return_value.rowcount = 1

        AssignmentRepository().update_status(
            ASSIGNMENT_ID, AssignmentStatus.IN_PROGRESS, stamp_started=True
        )

        sql = executed_sql(mock_conn)[0]
        assert "STARTED_AT = COALESCE(STARTED_AT, CURRENT_TIMESTAMP())" in sql
        assert "COMPLETED_AT" not in sql

    def test_update_status_completed_overwrites(self, mock_conn):
        mock_conn.cursor.return_value.rowcount = 1

        AssignmentRepository().update_status(
            ASSIGNMENT_ID, AssignmentStatus.COMPLETED, stamp_completed=True
        )

        assert "COMPLETED_AT = CURRENT_TIMESTAMP()" in executed_sql(mock_conn)[0]

    def test_update_status_returned_no_timestamps(self, mock_conn):
        mock_conn.cursor.return_value.rowcount = 1

        updated = AssignmentRepository().update_status(ASSIGNMENT_ID, AssignmentStatus.RETURNED)

        sql = executed_sql(mock_conn)[0]
        assert updated == 1
        assert "STARTED_AT" not in sql and "COMPLETED_AT" not in sql

    def test_list_by_call_joins_assessment(self, mock_conn):
        mock_conn.cursor.return_value.fetchall.return_value = [
            assignment_row(
                ASSESSOR_NAME="Xavier Moss",
                ASSESSMENT_STATUS="submitted",
                ASSESSMENT_SUBMITTED_AT=datetime(2026, 3, 2, 10, 0),
            ),
            assignment_row(ASSESSOR_NAME=None, ASSESSMENT_STATUS=None, ASSESSMENT_SUBMITTED_AT=None),
        ]

        rows = AssignmentRepository().list_by_call(CALL_ID)

        assert rows[0]["assessor_name"] == "Xavier Moss"
        assert rows[0]["assessment_status"] == AssessmentStatus.SUBMITTED
        assert rows[1]["assessment_status"] is None

    def test_delete_guarded_by_assessment(self, mock_conn):
        mock_conn.cursor.return_value.rowcount = 1

        assert AssignmentRepository().delete(ASSIGNMENT_ID) is True

        sql = executed_sql(mock_conn)[0]
        params = mock_conn.cursor.return_value.execute.call_args.args[1]
        assert "NOT EXISTS (SELECT 1 FROM ASSESSMENTS WHERE ASSIGNMENT_ID = %s)" in sql
        assert params == (str(ASSIGNMENT_ID), str(ASSIGNMENT_ID))
        mock_conn.commit.assert_called_once()

    def test_delete_refused_returns_false(self, mock_conn):
        mock_conn.cursor.return_value.rowcount = 0

        assert AssignmentRepository().delete(ASSIGNMENT_ID) is False


class TestAssessmentRepository:

    def test_insert_if_absent_keyed_on_assignment(self, mock_conn):
        cursor = mock_conn.cursor.return_value
        cursor.rowcount = 1

        inserted = AssessmentRepository(id_factory=lambda: ASSESSMENT_ID).insert_if_absent(
            ASSIGNMENT_ID, [{"criterion_id": "impact", "score": 8}], 8.0
        )

        sql, params = cursor.execute.call_args.args
        assert inserted is True
        assert "ON t.ASSIGNMENT_ID = s.ASSIGNMENT_ID" in sql
        assert "PARSE_JSON(%s)" in sql
        assert json.loads(params[2]) == [{"criterion_id": "impact", "score": 8}]
        assert params[-1] == "draft"

    def test_row_parses_variant_scores(self, mock_conn):
        mock_conn.cursor.return_value.fetchone.return_value = assessment_row()

        assessment = AssessmentRepository().get_by_id(ASSESSMENT_ID)

        assert assessment["scores"] == [{"criterion_id": "impact", "score": 8}]
        assert assessment["status"] == AssessmentStatus.DRAFT

    def test_update_fields_rejects_unknown(self, mock_conn):
        with pytest.raises(ValueError):
            AssessmentRepository().update_fields(ASSESSMENT_ID, {"submitted_at": None})

    def test_update_fields_single_statement(self, mock_conn):
        cursor = mock_conn.cursor.return_value
        cursor.rowcount = 1
        cursor.fetchone.return_value = assessment_row(OVERALL_SCORE=6.0)

        AssessmentRepository().update_fields(
            ASSESSMENT_ID,
            {"scores": [{"criterion_id": "impact", "score": 6}], "overall_score": 6.0, "status": AssessmentStatus.DRAFT},
        )

        sql, params = cursor.execute.call_args_list[0].args
        assert sql.count("UPDATE ASSESSMENTS") == 1
        assert "SCORES = PARSE_JSON(%s)" in sql
        assert "OVERALL_SCORE = %s" in sql
        assert "UPDATED_AT = CURRENT_TIMESTAMP()" in sql
        assert params[2] == "draft"

    def test_update_fields_missing_row(self, mock_conn):
        mock_conn.cursor.return_value.rowcount = 0

        assert AssessmentRepository().update_fields(ASSESSMENT_ID, {"overall_comment": "x"}) is None

    def test_mark_returned_records_reason(self, mock_conn):
        cursor = mock_conn.cursor.return_value
        cursor.rowcount = 1
        cursor.fetchone.return_value = assessment_row(STATUS="returned", RETURN_REASON="Recheck")

        returned = AssessmentRepository().mark_returned(ASSESSMENT_ID, "Recheck")

        sql, params = cursor.execute.call_args_list[0].args
        assert "RETURNED_AT = CURRENT_TIMESTAMP()" in sql
        assert "Recheck" in params
        assert returned["return_reason"] == "Recheck"


class TestFundingCallRepository:

    def test_config_parses_criteria(self, mock_conn):
        mock_conn.cursor.return_value.fetchone.return_value = {
            "ID": str(CALL_ID),
            "NAME": "Community Grants 2026",
            "ASSESSORS_PER_APPLICATION": 2,
            "VARIANCE_THRESHOLD": None,
            "CRITERIA": json.dumps([{"criterion_id": "impact", "name": "Impact", "max_points": 10}]),
        }

        config = FundingCallRepository().get_config_for_application(APPLICATION_ID)

        assert config["call_id"] == CALL_ID
        assert config["assessors_per_application"] == 2
        assert config["variance_threshold"] is None
        assert config["criteria"][0]["criterion_id"] == "impact"

    def test_missing_call(self, mock_conn):
        mock_conn.cursor.return_value.fetchone.return_value = None

        assert FundingCallRepository().get_by_id(CALL_ID) is None
