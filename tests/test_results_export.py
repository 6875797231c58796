# tests/test_results_export.py

"""
Results Export Tests - CSV sheets and download filenames
"""

import csv
import io
from datetime import date

import pytest

from grant_review.models.enumerations import ExportSheet
from grant_review.services.results_export import (
    assessor_details_csv,
    export_filename,
    render,
    results_csv,
)
from tests.fakes import scores_for


def read_rows(content):
    return list(csv.reader(io.StringIO(content)))


@pytest.fixture
def master(aggregator, distributor, lifecycle, call_id, application_ids, assessor_ids, coordinator_id):
    """APP-001 scored 60 and 90; APP-002 scored 80 by one assessor; APP-003 untouched."""
    a1, a2, _ = application_ids
    x, y = assessor_ids
    for app, assessor, score in ((a1, x, 60), (a1, y, 90), (a2, x, 80)):
        created = distributor.create_bulk([app], [assessor], coordinator_id)
        draft = lifecycle.create_or_get(created[0].id, scores=scores_for(score, score, score))
        lifecycle.submit(draft.id)
    return aggregator.compute_master_results(call_id)


class TestExportFilename:

    def test_results_sheet(self):
        name = export_filename("Community Grants 2026", date(2026, 3, 1))

        assert name == "Community_Grants_2026_master_results_20260301.csv"

    def test_assessor_sheet(self):
        name = export_filename("Arts/Heritage", date(2026, 3, 1), ExportSheet.ASSESSORS)

        assert name == "Arts_Heritage_assessor_details_20260301.csv"


class TestResultsCsv:

    def test_header_follows_criteria(self, master):
        header = read_rows(results_csv(master))[0]

        assert header == [
            "Reference", "Applicant", "Assessments",
            "Impact Avg", "Impact Var",
            "Feasibility Avg", "Feasibility Var",
            "Value for Money Avg", "Value for Money Var",
            "Total Avg", "Weighted Avg", "Variance %", "High Variance",
        ]

    def test_rows(self, master):
        rows = read_rows(results_csv(master))[1:]
        by_ref = {row[0]: row for row in rows}

        assert list(by_ref) == ["APP-001", "APP-002", "APP-003"]
        assert by_ref["APP-001"][1:4] == ["Applicant 1", "2/2", "75.00"]
        assert by_ref["APP-001"][4] == "225.00"
        assert by_ref["APP-001"][-1] == "Yes"
        assert by_ref["APP-002"][2] == "1/2"
        assert by_ref["APP-002"][-1] == "No"

    def test_unassessed_application(self, master):
        row = read_rows(results_csv(master))[3]

        assert row[2] == "0/2"
        assert row[-4:] == ["0.00", "N/A", "0.00", "No"]

    def test_no_applications(self, aggregator, store):
        empty = aggregator.compute_master_results(store.add_call(name="Empty Call"))

        assert read_rows(results_csv(empty)) == [
            ["Reference", "Applicant", "Assessments", "Total Avg", "Weighted Avg", "Variance %", "High Variance"]
        ]


class TestAssessorDetailsCsv:

    def test_one_row_per_submission(self, master):
        rows = read_rows(assessor_details_csv(master))

        assert rows[0][:4] == ["Reference", "Assessor", "Impact Score", "Impact Comment"]
        assert rows[0][-2:] == ["Overall Score", "Overall Comment"]
        assert [(r[0], r[1]) for r in rows[1:]] == [
            ("APP-001", "Xavier Moss"),
            ("APP-001", "Yara Quinn"),
            ("APP-002", "Xavier Moss"),
        ]

    def test_scores_and_comments(self, master):
        header, first = read_rows(assessor_details_csv(master))[:2]
        row = dict(zip(header, first))

        assert row["Impact Score"] == "60.00"
        assert row["Impact Comment"] == ""
        assert row["Value for Money Comment"] == "Solid budget"
        assert row["Overall Score"] == "60.00"


class TestRender:

    def test_selects_sheet(self, master):
        assert render(master) == results_csv(master)
        assert render(master, ExportSheet.ASSESSORS) == assessor_details_csv(master)
