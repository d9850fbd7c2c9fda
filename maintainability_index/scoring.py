"""
Weighted aggregation of metric results into the maintainability index.

Scoring system:
- Each metric scores 0-100 or is Unavailable
- Each metric carries a canonical weight; weights sum to 1.0
- Unavailable metrics drop out and the remaining weights are rescaled
  proportionally so they again sum to 1.0
- Composite = Sum(score × normalized weight), or Unavailable when no metric
  could be computed
"""

import math
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Sequence

from maintainability_index.exceptions import ConfigurationError
from maintainability_index.metrics import METRIC_SPECS
from maintainability_index.metrics.base import MetricName, MetricResult

DEFAULT_WEIGHTS: Mapping[MetricName, float] = MappingProxyType(
    {spec.name: spec.weight for spec in METRIC_SPECS}
)

# Metrics scoring below this are called out in the recommendation.
IMPROVEMENT_THRESHOLD = 60.0


class Tier(str, Enum):
    """Quality band derived from the composite index."""

    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"
    CRITICAL = "Critical"


# Lower bounds, inclusive, checked from the top.
TIER_THRESHOLDS: tuple[tuple[float, Tier], ...] = (
    (90.0, Tier.EXCELLENT),
    (75.0, Tier.GOOD),
    (60.0, Tier.FAIR),
    (40.0, Tier.POOR),
)

_TIER_PHRASES = {
    Tier.EXCELLENT: "Excellent repository maintainability!",
    Tier.GOOD: "Good repository maintainability.",
    Tier.FAIR: "Fair repository maintainability.",
    Tier.POOR: "Repository maintainability needs improvement.",
    Tier.CRITICAL: "Repository maintainability needs improvement.",
}


def normalize_weights(entries: Sequence[tuple[float | None, float]]) -> list[float]:
    """
    Rescale weights over available entries so they sum to 1.0.

    Args:
        entries: (score or None, canonical weight) pairs.

    Returns:
        Normalized weight per entry, 0.0 for entries whose score is None.
        All zeros when nothing is available.
    """
    available_total = math.fsum(
        weight for score, weight in entries if score is not None
    )
    if available_total <= 0:
        return [0.0 for _ in entries]
    return [
        weight / available_total if score is not None else 0.0
        for score, weight in entries
    ]


def compute_composite(entries: Sequence[tuple[float | None, float]]) -> float | None:
    """
    Weighted average of the available scores.

    ``math.fsum`` makes the sum exactly rounded, so the result does not depend
    on the order of ``entries``.

    Returns:
        Composite in [0, 100], or None when no entry carries a score.
    """
    if not any(score is not None for score, _ in entries):
        return None
    weights = normalize_weights(entries)
    composite = math.fsum(
        score * weight
        for (score, _), weight in zip(entries, weights)
        if score is not None
    )
    return min(100.0, max(0.0, composite))


def determine_tier(index: float) -> Tier:
    """Map a composite index to its tier band."""
    for lower_bound, tier in TIER_THRESHOLDS:
        if index >= lower_bound:
            return tier
    return Tier.CRITICAL


def _metric_from_key(key: str) -> MetricName | None:
    normalized = key.strip().lower().replace("-", "_").replace(" ", "_")
    for metric in MetricName:
        if normalized == metric.name.lower():
            return metric
    return None


def resolve_weights(
    overrides: Mapping[str, float] | None = None,
) -> dict[MetricName, float]:
    """
    Resolve the canonical weights, applying configured overrides.

    Override keys may be metric display names ("Code Quality") or snake case
    ("code_quality"). Overrides must name all four metrics with positive
    numbers; they are normalized to sum to 1.0.

    Raises:
        ConfigurationError: If overrides are missing metrics, name unknown
            metrics, or include non-positive values.
    """
    if not overrides:
        return dict(DEFAULT_WEIGHTS)

    resolved: dict[MetricName, float] = {}
    unknown = []
    for key, value in overrides.items():
        metric = _metric_from_key(key)
        if metric is None:
            unknown.append(key)
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigurationError(
                f"Weight for '{key}' must be a number, got {value!r}."
            )
        if not math.isfinite(value) or value <= 0:
            raise ConfigurationError(
                f"Weight for '{key}' must be greater than 0, got {value!r}."
            )
        resolved[metric] = float(value)

    if unknown:
        raise ConfigurationError(
            f"Weights include unknown metrics: {', '.join(sorted(unknown))}."
        )
    missing = [metric.value for metric in MetricName if metric not in resolved]
    if missing:
        raise ConfigurationError(f"Weights are missing metrics: {', '.join(missing)}.")

    total = math.fsum(resolved.values())
    return {metric: resolved[metric] / total for metric in MetricName}


def effective_weights(
    results: Sequence[MetricResult], weights: Mapping[MetricName, float]
) -> dict[MetricName, float]:
    """Normalized weight actually applied to each metric in ``results``."""
    entries = [(result.score, weights[result.name]) for result in results]
    return {
        result.name: weight
        for result, weight in zip(results, normalize_weights(entries))
    }


def aggregate(
    results: Sequence[MetricResult],
    weights: Mapping[MetricName, float] | None = None,
) -> tuple[float | None, Tier | None]:
    """
    Combine metric results into the composite index and tier.

    Returns:
        (composite, tier); both None when every metric is Unavailable.
    """
    weights = weights or DEFAULT_WEIGHTS
    composite = compute_composite(
        [(result.score, weights[result.name]) for result in results]
    )
    if composite is None:
        return None, None
    return composite, determine_tier(composite)


def build_recommendation(
    tier: Tier | None, results: Sequence[MetricResult]
) -> str:
    """Summarize the tier and the metrics scoring below 60."""
    if tier is None:
        return (
            "Maintainability index unavailable: no metric could be computed "
            "for this repository."
        )

    improvements = [
        result.name.value
        for result in results
        if result.score is not None and result.score < IMPROVEMENT_THRESHOLD
    ]
    if improvements:
        return f"{_TIER_PHRASES[tier]} Focus on improving: {', '.join(improvements)}."
    return f"{_TIER_PHRASES[tier]} Keep up the good work!"
