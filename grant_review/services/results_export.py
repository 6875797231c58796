"""
Results Export
grant_review/services/results_export.py

CSV renderings of a funding call's master results:

  - results_csv:          one row per application with per-criterion
                          average and variance, totals and the variance flag
  - assessor_details_csv: one row per submitted assessment with each
                          criterion's score and comment

Numbers are rounded to two decimals. Criterion columns follow the order of
the call's criteria.
"""

import csv
import io
import re
from datetime import date
from typing import List, Optional

from grant_review.models.enumerations import ExportSheet
from grant_review.models.result import ApplicationResult, CriterionAggregate, MasterResults


def export_filename(call_name: str, on: date, sheet: ExportSheet = ExportSheet.RESULTS) -> str:
    """e.g. "Arts_Fund_master_results_20260301.csv"."""
    safe_name = re.sub(r"[^A-Za-z0-9]", "_", call_name)
    suffix = "master_results" if sheet == ExportSheet.RESULTS else "assessor_details"
    return f"{safe_name}_{suffix}_{on.strftime('%Y%m%d')}.csv"


def render(master: MasterResults, sheet: ExportSheet = ExportSheet.RESULTS) -> str:
    if sheet == ExportSheet.ASSESSORS:
        return assessor_details_csv(master)
    return results_csv(master)


def results_csv(master: MasterResults) -> str:
    criteria = _criteria(master.results)

    header = ["Reference", "Applicant", "Assessments"]
    for c in criteria:
        header += [f"{c.criterion_name} Avg", f"{c.criterion_name} Var"]
    header += ["Total Avg", "Weighted Avg", "Variance %", "High Variance"]

    rows: List[List[object]] = []
    for result in master.results:
        by_id = {a.criterion_id: a for a in result.criterion_aggregates}
        row: List[object] = [
            result.reference_number or "",
            result.applicant_name or "",
            f"{result.submitted_count}/{result.expected_count}",
        ]
        for c in criteria:
            agg = by_id.get(c.criterion_id)
            row += [_num(agg.average), _num(agg.variance)] if agg else ["", ""]
        row += [
            _num(result.average_score),
            _num(result.weighted_average) if result.weighted_average is not None else "N/A",
            _num(result.variance),
            "Yes" if result.variance_flagged else "No",
        ]
        rows.append(row)

    return _write(header, rows)


def assessor_details_csv(master: MasterResults) -> str:
    criteria = _criteria(master.results)

    header = ["Reference", "Assessor"]
    for c in criteria:
        header += [f"{c.criterion_name} Score", f"{c.criterion_name} Comment"]
    header += ["Overall Score", "Overall Comment"]

    rows: List[List[object]] = []
    for result in master.results:
        for assessor in result.assessor_scores:
            scores = {s.criterion_id: s for s in assessor.scores}
            row: List[object] = [result.reference_number or "", assessor.assessor_name or ""]
            for c in criteria:
                score = scores.get(c.criterion_id)
                row += [_num(score.score), score.comment or ""] if score else ["", ""]
            row += [_num(assessor.overall_score), assessor.overall_comment or ""]
            rows.append(row)

    return _write(header, rows)


def _criteria(results: List[ApplicationResult]) -> List[CriterionAggregate]:
    # Every result of a call carries the same criteria
    for result in results:
        if result.criterion_aggregates:
            return result.criterion_aggregates
    return []


def _num(value: Optional[float]) -> str:
    return "" if value is None else f"{value:.2f}"


def _write(header: List[str], rows: List[List[object]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue()
