"""
Tests for weight normalization, composite aggregation and tiers.
"""

import itertools
import math

import pytest

from maintainability_index.exceptions import ConfigurationError
from maintainability_index.metrics.base import MetricName, MetricResult
from maintainability_index.scoring import (
    DEFAULT_WEIGHTS,
    Tier,
    aggregate,
    build_recommendation,
    compute_composite,
    determine_tier,
    effective_weights,
    normalize_weights,
    resolve_weights,
)

SCORES = {
    MetricName.CODE_QUALITY: 72.5,
    MetricName.DOCUMENTATION: 41.0,
    MetricName.ACTIVITY: 93.25,
    MetricName.COMMUNITY_HEALTH: 58.0,
}


def _results(available):
    return [
        MetricResult.scored(name, SCORES[name], [])
        if name in available
        else MetricResult.unavailable(name, "missing")
        for name in MetricName
    ]


def _subsets():
    names = list(MetricName)
    for size in range(1, len(names) + 1):
        yield from itertools.combinations(names, size)


class TestNormalizeWeights:
    """Test weight redistribution over available metrics."""

    @pytest.mark.parametrize("available", list(_subsets()))
    def test_available_weights_sum_to_one(self, available):
        entries = [
            (SCORES[name] if name in available else None, DEFAULT_WEIGHTS[name])
            for name in MetricName
        ]
        weights = normalize_weights(entries)
        assert math.fsum(weights) == pytest.approx(1.0, abs=1e-12)
        for (score, _), weight in zip(entries, weights):
            if score is None:
                assert weight == 0.0

    def test_proportions_preserved(self):
        weights = normalize_weights([(50.0, 0.30), (None, 0.25), (80.0, 0.20)])
        assert weights[0] == pytest.approx(0.6)
        assert weights[1] == 0.0
        assert weights[2] == pytest.approx(0.4)

    def test_nothing_available(self):
        assert normalize_weights([(None, 0.5), (None, 0.5)]) == [0.0, 0.0]


class TestComputeComposite:
    """Test the weighted composite."""

    @pytest.mark.parametrize("name", list(MetricName))
    def test_single_metric_reduces_to_its_score(self, name):
        results = _results({name})
        composite, _ = aggregate(results)
        assert composite == pytest.approx(SCORES[name])

    def test_all_unavailable(self):
        composite, tier = aggregate(_results(set()))
        assert composite is None
        assert tier is None

    @pytest.mark.parametrize("available", list(_subsets()))
    def test_order_independent(self, available):
        entries = [
            (SCORES[name] if name in available else None, DEFAULT_WEIGHTS[name])
            for name in MetricName
        ]
        expected = compute_composite(entries)
        for permutation in itertools.permutations(entries):
            assert compute_composite(list(permutation)) == expected

    def test_known_value(self):
        composite, tier = aggregate(_results(set(MetricName)))
        expected = 72.5 * 0.30 + 41.0 * 0.25 + 93.25 * 0.25 + 58.0 * 0.20
        assert composite == pytest.approx(expected)
        assert tier is Tier.FAIR

    def test_two_of_four_renormalized(self):
        available = {MetricName.DOCUMENTATION, MetricName.ACTIVITY}
        composite, _ = aggregate(_results(available))
        assert composite == pytest.approx((41.0 + 93.25) / 2)


@pytest.mark.parametrize(
    "index,tier",
    [
        (100.0, Tier.EXCELLENT),
        (90.0, Tier.EXCELLENT),
        (89.99, Tier.GOOD),
        (75.0, Tier.GOOD),
        (60.0, Tier.FAIR),
        (40.0, Tier.POOR),
        (39.99, Tier.CRITICAL),
        (0.0, Tier.CRITICAL),
    ],
)
def test_determine_tier(index, tier):
    assert determine_tier(index) is tier


class TestResolveWeights:
    """Test configured weight overrides."""

    def test_defaults(self):
        assert resolve_weights(None) == DEFAULT_WEIGHTS

    def test_overrides_are_normalized(self):
        weights = resolve_weights(
            {
                "code_quality": 2,
                "Documentation": 1,
                "activity": 1,
                "community-health": 1,
            }
        )
        assert weights[MetricName.CODE_QUALITY] == pytest.approx(0.4)
        assert math.fsum(weights.values()) == pytest.approx(1.0)

    def test_missing_metric(self):
        with pytest.raises(ConfigurationError, match="missing metrics"):
            resolve_weights({"code_quality": 1})

    def test_unknown_metric(self):
        with pytest.raises(ConfigurationError, match="unknown metrics"):
            resolve_weights(
                {
                    "code_quality": 1,
                    "documentation": 1,
                    "activity": 1,
                    "community_health": 1,
                    "popularity": 1,
                }
            )

    @pytest.mark.parametrize("value", [0, -1, True, "1", math.inf])
    def test_invalid_values(self, value):
        overrides = {name.name.lower(): 1 for name in MetricName}
        overrides["activity"] = value
        with pytest.raises(ConfigurationError):
            resolve_weights(overrides)


def test_effective_weights_zero_for_unavailable():
    results = _results({MetricName.ACTIVITY, MetricName.DOCUMENTATION})
    weights = effective_weights(results, DEFAULT_WEIGHTS)
    assert weights[MetricName.CODE_QUALITY] == 0.0
    assert weights[MetricName.ACTIVITY] == pytest.approx(0.5)


class TestRecommendation:
    """Test the one-line recommendation."""

    def test_unavailable(self):
        assert build_recommendation(None, _results(set())).startswith(
            "Maintainability index unavailable"
        )

    def test_focus_areas(self):
        text = build_recommendation(Tier.FAIR, _results(set(MetricName)))
        assert text == (
            "Fair repository maintainability. "
            "Focus on improving: Documentation, Community Health."
        )

    def test_all_good(self):
        results = [MetricResult.scored(name, 95.0, []) for name in MetricName]
        assert build_recommendation(Tier.EXCELLENT, results) == (
            "Excellent repository maintainability! Keep up the good work!"
        )
