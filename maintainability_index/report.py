"""
Report model produced by one analysis run.
"""

from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping, NamedTuple

from maintainability_index.metrics.base import MetricName, MetricResult
from maintainability_index.models import RepositoryIdentifier
from maintainability_index.scoring import Tier


class CompositeReport(NamedTuple):
    """The result of a repository analysis."""

    repository: RepositoryIdentifier
    metric_results: tuple[MetricResult, ...]
    composite_index: float | None
    tier: Tier | None
    generated_at: datetime
    weights: Mapping[MetricName, float] = MappingProxyType({})  # Effective weights
    recommendation: str = ""
    narrative: str | None = None
    warnings: tuple[str, ...] = ()

    @property
    def composite_available(self) -> bool:
        return self.composite_index is not None

    def get_metric(self, name: MetricName) -> MetricResult:
        for result in self.metric_results:
            if result.name is name:
                return result
        raise KeyError(name)

    def to_dict(self) -> dict[str, Any]:
        """
        Render the report as a JSON-ready mapping.

        Unavailable metrics and an unavailable composite carry
        ``"available": false`` and a null score, never a numeric placeholder.
        """
        return {
            "repository": self.repository.full_name,
            "generated_at": self.generated_at.isoformat(),
            "composite": {
                "available": self.composite_available,
                "index": (
                    round(self.composite_index, 2)
                    if self.composite_index is not None
                    else None
                ),
                "tier": self.tier.value if self.tier is not None else None,
            },
            "metrics": [
                {
                    "name": result.name.value,
                    "available": result.available,
                    "score": (
                        round(result.score, 2) if result.score is not None else None
                    ),
                    "weight": round(self.weights.get(result.name, 0.0), 4),
                    "unavailable_reason": result.unavailable_reason,
                    "findings": list(result.findings),
                }
                for result in self.metric_results
            ],
            "recommendation": self.recommendation,
            "narrative": self.narrative,
            "warnings": list(self.warnings),
        }
