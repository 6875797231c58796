# tests/test_score_aggregator.py

"""
Score Aggregator Tests - overall score, multi-assessor aggregate,
criterion spread, weighted average, validation and ranking
"""

from uuid import uuid4

import pytest

from grant_review.models.assessment import CriterionScore
from grant_review.models.enumerations import ResultSortKey
from grant_review.models.funding_call import Criterion
from grant_review.models.result import ApplicationResult
from grant_review.scoring.score_aggregator import (
    aggregate,
    criterion_aggregates,
    overall_score,
    rank_results,
    validate_scores,
    weighted_overall,
)
from grant_review.scoring.utils import (
    mean,
    population_variance,
    relative_range_pct,
    weighted_mean,
)


def _score(criterion_id: str, score: float, comment: str = None) -> CriterionScore:
    return CriterionScore(criterion_id=criterion_id, score=score, comment=comment)


@pytest.fixture
def criteria():
    return [
        Criterion(criterion_id="impact", name="Impact", max_points=100, weight=2),
        Criterion(criterion_id="feasibility", name="Feasibility", max_points=100, weight=1),
        Criterion(criterion_id="value", name="Value for Money", max_points=100, comments_required=True),
    ]


# =============================================================================
# UTILS
# =============================================================================

class TestUtils:

    def test_mean_empty_is_zero(self):
        assert mean([]) == 0.0

    def test_population_variance(self):
        assert population_variance([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(4.0)

    def test_population_variance_single_value(self):
        assert population_variance([42]) == 0.0

    def test_weighted_mean(self):
        assert weighted_mean([80, 60], [3, 1]) == pytest.approx(75.0)

    def test_weighted_mean_zero_weights(self):
        assert weighted_mean([80, 60], [0, 0]) == 0.0

    def test_weighted_mean_length_mismatch(self):
        with pytest.raises(ValueError):
            weighted_mean([1, 2], [1])

    def test_relative_range_non_positive_mean(self):
        assert relative_range_pct([0, 0]) == 0.0


# =============================================================================
# OVERALL SCORE
# =============================================================================

class TestOverallScore:

    def test_mean_of_criterion_scores(self):
        scores = [_score("a", 8), _score("b", 6), _score("c", 7)]
        assert overall_score(scores) == pytest.approx(7.0)

    def test_no_scores_is_exactly_zero(self):
        assert overall_score([]) == 0.0


# =============================================================================
# AGGREGATE
# =============================================================================

class TestAggregate:

    def test_wide_disagreement_is_flagged(self):
        """[60, 90]: average 75, range 30 -> 40% > 20%."""
        result = aggregate([60, 90], variance_threshold=20)

        assert result.average == pytest.approx(75.0)
        assert result.total == pytest.approx(150.0)
        assert result.variance == pytest.approx(40.0)
        assert result.flagged is True
        assert result.count == 2

    def test_close_scores_not_flagged(self):
        """[70, 74]: average 72, range 4 -> about 5.56%."""
        result = aggregate([70, 74], variance_threshold=20)

        assert result.average == pytest.approx(72.0)
        assert result.variance == pytest.approx(4 / 72 * 100)
        assert result.flagged is False

    def test_empty(self):
        result = aggregate([], variance_threshold=20)

        assert result.average == 0.0
        assert result.total == 0.0
        assert result.variance == 0.0
        assert result.flagged is False
        assert result.count == 0

    def test_single_score_never_flagged(self):
        result = aggregate([10], variance_threshold=0)

        assert result.variance == 0.0
        assert result.flagged is False

    def test_variance_equal_to_threshold_not_flagged(self):
        # [40, 60]: average 50, range 20 -> exactly 40%
        assert aggregate([40, 60], variance_threshold=40).flagged is False

    def test_all_zero_scores(self):
        result = aggregate([0, 0, 0], variance_threshold=20)

        assert result.variance == 0.0
        assert result.flagged is False


# =============================================================================
# CRITERION AGGREGATES
# =============================================================================

class TestCriterionAggregates:

    def test_spread_per_criterion(self, criteria):
        score_sets = [
            [_score("impact", 80), _score("feasibility", 60), _score("value", 70, "ok")],
            [_score("impact", 40), _score("feasibility", 60), _score("value", 72, "ok")],
        ]

        aggregates = criterion_aggregates(criteria, score_sets, variance_threshold=2)
        impact, feasibility, value = aggregates

        assert impact.scores == [80, 40]
        assert impact.average == pytest.approx(60.0)
        assert impact.min == 40 and impact.max == 80
        assert impact.variance == pytest.approx(400.0)
        # 400 / 100² × 100 = 4% > 2%
        assert impact.high_variance is True

        assert feasibility.variance == 0.0
        assert feasibility.high_variance is False
        assert value.high_variance is False

    def test_missing_scores_are_skipped(self, criteria):
        score_sets = [[_score("impact", 50)], []]

        impact = criterion_aggregates(criteria, score_sets, variance_threshold=20)[0]

        assert impact.scores == [50]
        assert impact.high_variance is False

    def test_no_submissions(self, criteria):
        aggregates = criterion_aggregates(criteria, [], variance_threshold=20)

        assert [a.criterion_id for a in aggregates] == ["impact", "feasibility", "value"]
        assert all(a.scores == [] and a.average == 0.0 for a in aggregates)


# =============================================================================
# WEIGHTED OVERALL
# =============================================================================

class TestWeightedOverall:

    def test_missing_weight_counts_as_one(self, criteria):
        scores = [_score("impact", 80), _score("feasibility", 60), _score("value", 70)]

        # (80×2 + 60×1 + 70×1) / 4
        assert weighted_overall(scores, criteria) == pytest.approx(72.5)

    def test_none_without_weights(self):
        criteria = [Criterion(criterion_id="a", name="A", max_points=10)]

        assert weighted_overall([_score("a", 5)], criteria) is None


# =============================================================================
# VALIDATION
# =============================================================================

class TestValidateScores:

    def test_valid_scores(self, criteria):
        scores = [_score("impact", 80), _score("feasibility", 0), _score("value", 100, "Fair")]

        assert validate_scores(scores, criteria) == []

    def test_all_problems_reported(self, criteria):
        scores = [_score("impact", -1), _score("value", 120)]

        errors = validate_scores(scores, criteria)

        assert errors == [
            "Score for Impact cannot be negative",
            "Missing score for criterion: Feasibility",
            "Score for Value for Money exceeds maximum (100)",
            "Comment required for criterion: Value for Money",
        ]

    def test_blank_comment_counts_as_missing(self, criteria):
        scores = [_score("impact", 1), _score("feasibility", 1), _score("value", 1, "   ")]

        assert validate_scores(scores, criteria) == [
            "Comment required for criterion: Value for Money"
        ]


# =============================================================================
# RANKING
# =============================================================================

class TestRankResults:

    def _result(self, average: float, weighted: float = None) -> ApplicationResult:
        return ApplicationResult(
            application_id=uuid4(), average_score=average, weighted_average=weighted
        )

    def test_rank_by_total(self):
        low, high, mid = self._result(50), self._result(90), self._result(70)

        assert rank_results([low, high, mid]) == [high, mid, low]

    def test_rank_by_weighted_falls_back_to_average(self):
        a = self._result(90, weighted=60)
        b = self._result(70, weighted=80)
        c = self._result(75)

        assert rank_results([a, b, c], ResultSortKey.WEIGHTED) == [b, c, a]
