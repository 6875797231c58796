"""
Results Router - Grant Review Engine
grant_review/routers/results.py

Multi-assessor results and review progress for coordinators.
"""

import io
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
import structlog

from grant_review.core.dependencies import get_results_aggregator
from grant_review.models.assessment import ErrorResponse
from grant_review.models.enumerations import ExportSheet, ResultSortKey
from grant_review.models.result import (
    ApplicationResult,
    AssessorProgress,
    CallProgress,
    MasterResults,
)
from grant_review.services.results_aggregator import ResultsAggregator
from grant_review.services.results_export import export_filename, render

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Results"])


def _not_found(entity: str, code: str) -> dict:
    return {
        "model": ErrorResponse,
        "description": f"{entity} not found",
        "content": {
            "application/json": {
                "example": {
                    "error_code": code,
                    "message": f"{entity} not found",
                    "details": None,
                    "timestamp": "2026-01-28T12:00:00Z"
                }
            }
        }
    }


@router.get(
    "/applications/{application_id}/results",
    response_model=ApplicationResult,
    responses={404: _not_found("Application", "APPLICATION_NOT_FOUND")},
    summary="Aggregated result for an application",
    description=(
        "Average, total and variance over submitted assessments, with per-criterion "
        "spread. Uses the owning funding call's variance threshold and assessor count."
    ),
)
async def get_application_result(
    application_id: UUID,
    aggregator: ResultsAggregator = Depends(get_results_aggregator),
) -> ApplicationResult:
    return aggregator.compute_for_application(application_id)


@router.get(
    "/calls/{call_id}/results",
    response_model=MasterResults,
    responses={404: _not_found("FundingCall", "FUNDING_CALL_NOT_FOUND")},
    summary="Master results for a funding call",
)
async def get_master_results(
    call_id: UUID,
    sort_by: Optional[ResultSortKey] = Query(default=None),
    aggregator: ResultsAggregator = Depends(get_results_aggregator),
) -> MasterResults:
    return aggregator.compute_master_results(call_id, sort_by=sort_by)


@router.get(
    "/calls/{call_id}/results/flagged",
    response_model=List[ApplicationResult],
    responses={404: _not_found("FundingCall", "FUNDING_CALL_NOT_FOUND")},
    summary="High-variance applications for a funding call",
    description="Applications with two or more submissions whose spread exceeds the threshold, widest first.",
)
async def get_flagged_results(
    call_id: UUID,
    aggregator: ResultsAggregator = Depends(get_results_aggregator),
) -> List[ApplicationResult]:
    return aggregator.flagged_results(call_id)


@router.get(
    "/calls/{call_id}/results/export",
    response_class=StreamingResponse,
    responses={
        200: {"content": {"text/csv": {}}, "description": "CSV download"},
        404: _not_found("FundingCall", "FUNDING_CALL_NOT_FOUND"),
    },
    summary="Download master results as CSV",
)
async def export_results(
    call_id: UUID,
    sheet: ExportSheet = Query(default=ExportSheet.RESULTS),
    sort_by: Optional[ResultSortKey] = Query(default=None),
    aggregator: ResultsAggregator = Depends(get_results_aggregator),
):
    master = aggregator.compute_master_results(call_id, sort_by=sort_by)
    content = render(master, sheet).encode("utf-8")
    filename = export_filename(master.call_name, aggregator.clock().date(), sheet)

    logger.info("results_exported", call_id=str(call_id), sheet=sheet.value, bytes=len(content))

    return StreamingResponse(
        content=io.BytesIO(content),
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Content-Length": str(len(content)),
        },
    )


@router.get(
    "/calls/{call_id}/progress",
    response_model=CallProgress,
    responses={404: _not_found("FundingCall", "FUNDING_CALL_NOT_FOUND")},
    summary="Review progress for a funding call",
)
async def get_call_progress(
    call_id: UUID,
    aggregator: ResultsAggregator = Depends(get_results_aggregator),
) -> CallProgress:
    return aggregator.compute_call_progress(call_id)


@router.get(
    "/calls/{call_id}/progress/outstanding",
    response_model=List[AssessorProgress],
    responses={404: _not_found("FundingCall", "FUNDING_CALL_NOT_FOUND")},
    summary="Assessors with outstanding assessments",
)
async def get_outstanding_assessors(
    call_id: UUID,
    aggregator: ResultsAggregator = Depends(get_results_aggregator),
) -> List[AssessorProgress]:
    return aggregator.assessors_with_outstanding(call_id)
