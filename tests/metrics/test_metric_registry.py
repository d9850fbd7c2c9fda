"""Tests for the metric registry and runner."""

import pytest

from maintainability_index.metrics import (
    METRIC_SPECS,
    MetricName,
    MetricSpec,
    compute_metrics,
    run_metric,
)
from maintainability_index.metrics.base import MetricContext


def _boom(_snapshot, _context):
    raise RuntimeError("boom")


def test_specs_cover_all_metrics_in_order():
    assert [spec.name for spec in METRIC_SPECS] == list(MetricName)


def test_default_weights_sum_to_one():
    assert sum(spec.weight for spec in METRIC_SPECS) == pytest.approx(1.0)


def test_compute_metrics_order(make_snapshot, make_commits):
    snapshot = make_snapshot({"src/app.py": "x = 1\n"}, commits=make_commits(3))
    results = compute_metrics(snapshot)
    assert [result.name for result in results] == list(MetricName)


def test_parallel_matches_sequential(make_snapshot, make_commits):
    snapshot = make_snapshot(
        {"src/app.py": "if x:\n    y = 1\n", "README.md": "# Hi\n"},
        commits=make_commits(5),
    )
    assert compute_metrics(snapshot, parallel=True) == compute_metrics(snapshot)


def test_run_metric_converts_exceptions(make_snapshot):
    """A crashing calculator only loses its own slot."""
    spec = MetricSpec(MetricName.ACTIVITY, 0.25, _boom)
    result = run_metric(spec, make_snapshot(), MetricContext())
    assert result.name is MetricName.ACTIVITY
    assert result.score is None
    assert result.unavailable_reason == "analysis incomplete: boom"


def test_compute_metrics_isolates_failures(make_snapshot, make_commits):
    specs = (
        MetricSpec(MetricName.CODE_QUALITY, 0.5, _boom),
        METRIC_SPECS[2],
    )
    results = compute_metrics(make_snapshot(commits=make_commits(2)), specs=specs)
    assert results[0].score is None
    assert results[1].score is not None
