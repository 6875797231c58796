"""
Results Aggregator
grant_review/services/results_aggregator.py

Builds multi-assessor results for coordinators:

  - compute_application_result: one application, SUBMITTED assessments only
  - compute_master_results:     every submitted application of a call
  - compute_call_progress:      assignment completion per call and assessor,
                                with overdue counts against the injected clock
  - flagged_results:            high-variance applications, widest spread first

Thresholds and expected assessor counts come from the funding call and are
passed explicitly; the DEFAULT_* settings are only fallbacks for calls
that leave them unset.
"""

import math
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence
from uuid import UUID

import structlog

from grant_review.core.exceptions import EntityNotFoundException
from grant_review.models.assessment import CriterionScore
from grant_review.models.enumerations import AssessmentStatus, AssignmentStatus, ResultSortKey
from grant_review.models.funding_call import Criterion, FundingCallConfig
from grant_review.models.result import (
    ApplicationResult,
    AssessorProgress,
    AssessorScore,
    CallProgress,
    MasterResults,
    ResultsSummary,
)
from grant_review.repositories.assessment_repository import AssessmentRepository
from grant_review.repositories.assignment_repository import AssignmentRepository
from grant_review.repositories.funding_call_repository import FundingCallRepository
from grant_review.scoring.score_aggregator import (
    aggregate,
    criterion_aggregates,
    rank_results,
    weighted_overall,
)
from grant_review.scoring.utils import mean

logger = structlog.get_logger(__name__)


class ResultsAggregator:
    """Read-side aggregation over submitted assessments."""

    def __init__(
        self,
        assessment_repo: AssessmentRepository,
        assignment_repo: AssignmentRepository,
        funding_call_repo: FundingCallRepository,
        default_variance_threshold: float = 20.0,
        default_assessors_per_application: int = 2,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.assessment_repo = assessment_repo
        self.assignment_repo = assignment_repo
        self.funding_call_repo = funding_call_repo
        self.default_variance_threshold = default_variance_threshold
        self.default_assessors_per_application = default_assessors_per_application
        self.clock = clock or _utcnow

    def compute_application_result(
        self,
        application_id: UUID,
        expected_assessments: int,
        variance_threshold: float,
        criteria: Optional[Sequence[Criterion]] = None,
    ) -> ApplicationResult:
        """
        Aggregate the SUBMITTED assessments of one application.

        Args:
            application_id: Application to aggregate
            expected_assessments: Number of assessments the call requires
            variance_threshold: Percentage above which disagreement is flagged
            criteria: When given, per-criterion spread and the weighted
                      average are included

        Returns:
            ApplicationResult; all zero and not complete when nothing has
            been submitted yet
        """
        rows = self.assessment_repo.list_submitted_for_application(application_id)

        assessor_scores: List[AssessorScore] = []
        for row in rows:
            assessor_scores.append(
                AssessorScore(
                    assessor_id=row["assessor_id"],
                    assessor_name=row.get("assessor_name"),
                    scores=[CriterionScore(**s) for s in row["scores"]],
                    overall_score=row["overall_score"],
                    overall_comment=row.get("overall_comment"),
                    submitted_at=row.get("submitted_at"),
                )
            )

        agg = aggregate([a.overall_score for a in assessor_scores], variance_threshold)

        result = ApplicationResult(
            application_id=application_id,
            assessor_scores=assessor_scores,
            average_score=agg.average,
            total_score=agg.total,
            variance=agg.variance,
            variance_flagged=agg.flagged,
            submitted_count=agg.count,
            expected_count=expected_assessments,
            is_complete=agg.count >= expected_assessments,
        )

        if criteria:
            score_sets = [a.scores for a in assessor_scores]
            result.criterion_aggregates = criterion_aggregates(
                criteria, score_sets, variance_threshold
            )
            weighted = [weighted_overall(s, criteria) for s in score_sets]
            weighted = [w for w in weighted if w is not None]
            result.weighted_average = mean(weighted) if weighted else None

        return result

    def compute_for_application(self, application_id: UUID) -> ApplicationResult:
        """
        Result for one application using its funding call's configuration.

        Raises:
            EntityNotFoundException: application (or its call) does not exist
        """
        application = self.funding_call_repo.get_application(application_id)
        if application is None:
            raise EntityNotFoundException("Application", str(application_id))

        config = self.funding_call_repo.get_config_for_application(application_id)
        if config is None:
            raise EntityNotFoundException("FundingCall", str(application["call_id"]))

        return self._result_for(application, FundingCallConfig(**config))

    def compute_master_results(
        self, call_id: UUID, sort_by: Optional[ResultSortKey] = None
    ) -> MasterResults:
        """
        Results for every submitted application of a call with a summary.

        Args:
            sort_by: Rank best-first by total or weighted score; keeps
                     reference-number order when omitted
        """
        config = self._call_config(call_id)
        applications = self.funding_call_repo.list_applications(call_id)

        results = [self._result_for(app, config) for app in applications]
        if sort_by is not None:
            results = rank_results(results, sort_by)

        summary = ResultsSummary(
            total_applications=len(results),
            fully_assessed=sum(1 for r in results if r.submitted_count >= r.expected_count),
            partially_assessed=sum(
                1 for r in results if 0 < r.submitted_count < r.expected_count
            ),
            not_assessed=sum(1 for r in results if r.submitted_count == 0),
            high_variance_count=sum(1 for r in results if r.variance_flagged),
        )

        logger.info(
            "master_results_computed",
            call_id=str(call_id),
            applications=summary.total_applications,
            fully_assessed=summary.fully_assessed,
            high_variance=summary.high_variance_count,
        )
        return MasterResults(
            call_id=call_id,
            call_name=config.name,
            results=results,
            summary=summary,
        )

    def compute_call_progress(self, call_id: UUID) -> CallProgress:
        """Assignment completion for a call, overall and per assessor."""
        config = self._call_config(call_id)
        total_applications = len(self.funding_call_repo.list_applications(call_id))
        assignments = self.assignment_repo.list_by_call(call_id)

        now = self.clock()
        per_assessor: Dict[UUID, AssessorProgress] = OrderedDict()
        completed = 0
        overdue = 0

        for row in assignments:
            progress = per_assessor.get(row["assessor_id"])
            if progress is None:
                progress = AssessorProgress(
                    assessor_id=row["assessor_id"],
                    assessor_name=row.get("assessor_name"),
                )
                per_assessor[row["assessor_id"]] = progress

            progress.assigned_count += 1
            if _is_overdue(row, now):
                overdue += 1
                progress.overdue_count += 1
            if row.get("assessment_status") == AssessmentStatus.SUBMITTED:
                completed += 1
                progress.completed_count += 1
                submitted_at = row.get("assessment_submitted_at")
                if submitted_at and (
                    progress.last_activity is None or submitted_at > progress.last_activity
                ):
                    progress.last_activity = submitted_at

        for progress in per_assessor.values():
            progress.outstanding_count = progress.assigned_count - progress.completed_count

        total_assignments = len(assignments)
        percentage = _round_half_up(completed / total_assignments * 100) if total_assignments else 0

        return CallProgress(
            call_id=call_id,
            call_name=config.name,
            total_applications=total_applications,
            total_assignments=total_assignments,
            completed_assessments=completed,
            outstanding_assessments=total_assignments - completed,
            overdue_assignments=overdue,
            completion_percentage=percentage,
            assessor_progress=sorted(
                per_assessor.values(), key=lambda p: (p.assessor_name or "", str(p.assessor_id))
            ),
        )

    def flagged_results(self, call_id: UUID) -> List[ApplicationResult]:
        """
        Applications whose assessors disagree beyond the call's threshold.

        Only results with at least two submissions can be flagged. Ordered
        by variance, widest spread first.
        """
        master = self.compute_master_results(call_id)
        flagged = [
            r for r in master.results if r.variance_flagged and r.submitted_count > 1
        ]
        return sorted(flagged, key=lambda r: r.variance, reverse=True)

    def assessors_with_outstanding(self, call_id: UUID) -> List[AssessorProgress]:
        """Assessors of a call who still have unsubmitted assignments."""
        progress = self.compute_call_progress(call_id)
        return [p for p in progress.assessor_progress if p.outstanding_count > 0]

    def _call_config(self, call_id: UUID) -> FundingCallConfig:
        config = self.funding_call_repo.get_by_id(call_id)
        if config is None:
            raise EntityNotFoundException("FundingCall", str(call_id))
        return FundingCallConfig(**config)

    def _threshold(self, config: FundingCallConfig) -> float:
        if config.variance_threshold is None:
            return self.default_variance_threshold
        return config.variance_threshold

    def _expected(self, config: FundingCallConfig) -> int:
        if config.assessors_per_application is None:
            return self.default_assessors_per_application
        return config.assessors_per_application

    def _result_for(self, application: Dict[str, Any], config: FundingCallConfig) -> ApplicationResult:
        result = self.compute_application_result(
            application["id"],
            self._expected(config),
            self._threshold(config),
            criteria=config.criteria,
        )
        result.reference_number = application.get("reference_number")
        result.applicant_name = application.get("applicant_name")
        return result


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_overdue(row: Dict[str, Any], now: datetime) -> bool:
    """Past its deadline and not yet completed."""
    due_at = row.get("due_at")
    return (
        due_at is not None
        and due_at < now
        and row["status"] != AssignmentStatus.COMPLETED
    )
