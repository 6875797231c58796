# grant_review/scoring/score_aggregator.py
"""
Score Aggregator
----------------
Pure functions turning criterion scores into an assessor's overall score,
and several assessors' overall scores into an application-level result.

Formulas:
    overall     = mean(criterion scores)                  (0 when no scores)
    average     = mean(overall scores)
    total       = Σ overall scores
    variance    = (max − min) / average × 100             (0 when average ≤ 0 or n < 2)
    flagged     = variance > variance_threshold

Per-criterion spread:
    variance    = population variance of the criterion's scores
    high        = n ≥ 2 and variance / max_points² × 100 > variance_threshold
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

import structlog

from grant_review.models.assessment import CriterionScore
from grant_review.models.enumerations import ResultSortKey
from grant_review.models.funding_call import Criterion
from grant_review.models.result import ApplicationResult, CriterionAggregate
from grant_review.scoring.utils import (
    mean,
    population_variance,
    relative_range_pct,
    weighted_mean,
)

logger = structlog.get_logger(__name__)


@dataclass
class AggregateResult:
    """Output of aggregate()."""
    average: float
    total: float
    variance: float   # Range as a percentage of the average
    flagged: bool
    count: int


def overall_score(scores: Iterable[CriterionScore]) -> float:
    """Arithmetic mean of the criterion scores; exactly 0.0 for no scores."""
    return mean([s.score for s in scores])


def aggregate(overall_scores: Sequence[float], variance_threshold: float) -> AggregateResult:
    """
    Args:
        overall_scores: One overall score per submitted assessment.
        variance_threshold: Percentage above which disagreement is flagged,
                            taken from the owning funding call.

    Returns:
        AggregateResult. With fewer than two scores there is no disagreement,
        so variance is 0 and flagged is False.
    """
    values = [float(v) for v in overall_scores]
    average = mean(values)
    variance = relative_range_pct(values)
    flagged = len(values) >= 2 and variance > variance_threshold

    logger.debug(
        "scores_aggregated",
        count=len(values),
        average=average,
        variance=variance,
        variance_threshold=variance_threshold,
        flagged=flagged,
    )

    return AggregateResult(
        average=average,
        total=sum(values),
        variance=variance,
        flagged=flagged,
        count=len(values),
    )


def _score_lookup(scores: Iterable[CriterionScore]) -> Dict[str, CriterionScore]:
    return {s.criterion_id: s for s in scores}


def criterion_aggregates(
    criteria: Sequence[Criterion],
    score_sets: Sequence[Sequence[CriterionScore]],
    variance_threshold: float,
) -> List[CriterionAggregate]:
    """
    Spread of scores per criterion across assessors.

    Args:
        criteria: The funding call's criteria, in display order.
        score_sets: One list of CriterionScore per submitted assessment.
        variance_threshold: Percentage of max_points² above which a
                            criterion is marked high-variance.
    """
    lookups = [_score_lookup(scores) for scores in score_sets]
    aggregates: List[CriterionAggregate] = []

    for criterion in criteria:
        values = [
            lookup[criterion.criterion_id].score
            for lookup in lookups
            if criterion.criterion_id in lookup
        ]
        variance = population_variance(values)
        high_variance = (
            len(values) >= 2
            and variance / (criterion.max_points ** 2) * 100 > variance_threshold
        )
        aggregates.append(
            CriterionAggregate(
                criterion_id=criterion.criterion_id,
                criterion_name=criterion.name,
                max_points=criterion.max_points,
                weight=criterion.weight,
                scores=values,
                average=mean(values),
                min=min(values) if values else 0.0,
                max=max(values) if values else 0.0,
                variance=variance,
                high_variance=high_variance,
            )
        )

    return aggregates


def weighted_overall(
    scores: Sequence[CriterionScore], criteria: Sequence[Criterion]
) -> Optional[float]:
    """
    Weighted mean of one assessor's criterion scores.

    Returns None when no criterion carries a positive weight. Criteria
    without a weight count as 1; criteria without a score are skipped.
    """
    if not any(c.weight is not None and c.weight > 0 for c in criteria):
        return None

    lookup = _score_lookup(scores)
    values: List[float] = []
    weights: List[float] = []
    for criterion in criteria:
        score = lookup.get(criterion.criterion_id)
        if score is None:
            continue
        values.append(score.score)
        weights.append(criterion.weight if criterion.weight is not None else 1.0)

    return weighted_mean(values, weights)


def validate_scores(
    scores: Sequence[CriterionScore], criteria: Sequence[Criterion]
) -> List[str]:
    """Return a list of problems; empty when the scores satisfy every criterion."""
    errors: List[str] = []
    lookup = _score_lookup(scores)

    for criterion in criteria:
        score = lookup.get(criterion.criterion_id)
        if score is None:
            errors.append(f"Missing score for criterion: {criterion.name}")
            continue
        if score.score < 0:
            errors.append(f"Score for {criterion.name} cannot be negative")
        if score.score > criterion.max_points:
            errors.append(
                f"Score for {criterion.name} exceeds maximum ({criterion.max_points:g})"
            )
        if criterion.comments_required and not (score.comment or "").strip():
            errors.append(f"Comment required for criterion: {criterion.name}")

    return errors


def rank_results(
    results: Sequence[ApplicationResult],
    sort_by: ResultSortKey = ResultSortKey.TOTAL,
) -> List[ApplicationResult]:
    """Order results best-first by average score or weighted average."""

    def key(result: ApplicationResult) -> float:
        if sort_by == ResultSortKey.WEIGHTED and result.weighted_average is not None:
            return result.weighted_average
        return result.average_score

    return sorted(results, key=key, reverse=True)
