"""
Score Math Utilities
grant_review/scoring/utils.py

Zero-safe statistics shared by the score aggregator.
"""

from typing import List, Sequence


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean; 0.0 for an empty sequence."""
    if not values:
        return 0.0
    return sum(values) / len(values)


def population_variance(values: Sequence[float]) -> float:
    """
    Population variance.

    Formula: Σ(value_i - mean)² / n
    Returns 0.0 for fewer than two values.
    """
    if len(values) < 2:
        return 0.0
    mu = mean(values)
    return sum((v - mu) ** 2 for v in values) / len(values)


def weighted_mean(values: List[float], weights: List[float]) -> float:
    """
    Calculate weighted mean.

    Formula: Σ(value_i × weight_i) / Σ(weight_i)
    Returns 0.0 for empty input or when all weights are zero.
    """
    if len(values) != len(weights):
        raise ValueError("values and weights must have same length")

    total_weight = sum(weights)
    if not values or total_weight == 0:
        return 0.0

    return sum(v * w for v, w in zip(values, weights)) / total_weight


def relative_range_pct(values: Sequence[float]) -> float:
    """
    Spread of values as a percentage of their mean.

    Formula: (max - min) / mean × 100 (if mean > 0 and n >= 2, else 0)
    """
    if len(values) < 2:
        return 0.0
    avg = mean(values)
    if avg <= 0:
        return 0.0
    return (max(values) - min(values)) / avg * 100
