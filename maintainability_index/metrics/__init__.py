"""
Metric calculators for the maintainability index.

The calculator set is closed: four specs, always evaluated and reported in
``METRIC_SPECS`` order.
"""

import logging
from concurrent.futures import ThreadPoolExecutor

from maintainability_index.metrics.activity import METRIC as ACTIVITY
from maintainability_index.metrics.base import (
    MetricContext,
    MetricName,
    MetricResult,
    MetricSpec,
)
from maintainability_index.metrics.code_quality import METRIC as CODE_QUALITY
from maintainability_index.metrics.community_health import (
    METRIC as COMMUNITY_HEALTH,
)
from maintainability_index.metrics.documentation import METRIC as DOCUMENTATION
from maintainability_index.models import RepositorySnapshot

__all__ = [
    "INCOMPLETE_REASON_PREFIX",
    "METRIC_SPECS",
    "MetricContext",
    "MetricName",
    "MetricResult",
    "MetricSpec",
    "run_metric",
    "compute_metrics",
]

logger = logging.getLogger(__name__)

INCOMPLETE_REASON_PREFIX = "analysis incomplete"

METRIC_SPECS: tuple[MetricSpec, ...] = (
    CODE_QUALITY,
    DOCUMENTATION,
    ACTIVITY,
    COMMUNITY_HEALTH,
)


def run_metric(
    spec: MetricSpec, snapshot: RepositorySnapshot, context: MetricContext
) -> MetricResult:
    """Run one calculator; an unexpected exception becomes Unavailable for its slot."""
    try:
        result = spec.checker(snapshot, context)
    except Exception as e:
        logger.exception("%s check failed", spec.name.value)
        return MetricResult.unavailable(spec.name, f"{INCOMPLETE_REASON_PREFIX}: {e}")
    logger.debug("Calculated metric %s: score=%s", spec.name.value, result.score)
    return result


def compute_metrics(
    snapshot: RepositorySnapshot,
    context: MetricContext | None = None,
    parallel: bool = False,
    specs: tuple[MetricSpec, ...] = METRIC_SPECS,
) -> tuple[MetricResult, ...]:
    """
    Run every calculator against one snapshot.

    Args:
        snapshot: Read-only repository snapshot.
        context: Tuning knobs passed to each calculator.
        parallel: Run calculators on a thread pool. Output is identical.
        specs: Calculator set, in report order.

    Returns:
        One result per spec, in ``specs`` order regardless of completion order.
    """
    context = context or MetricContext()
    if not parallel:
        return tuple(run_metric(spec, snapshot, context) for spec in specs)

    with ThreadPoolExecutor(max_workers=len(specs)) as executor:
        futures = [
            executor.submit(run_metric, spec, snapshot, context) for spec in specs
        ]
        return tuple(future.result() for future in futures)
