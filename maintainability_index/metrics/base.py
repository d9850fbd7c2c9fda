"""
Shared metric types and scoring helpers.
"""

import math
from enum import Enum
from typing import Callable, NamedTuple

from maintainability_index.models import RepositorySnapshot


class MetricName(str, Enum):
    """The closed set of maintainability metrics, in report order."""

    CODE_QUALITY = "Code Quality"
    DOCUMENTATION = "Documentation"
    ACTIVITY = "Activity"
    COMMUNITY_HEALTH = "Community Health"


class MetricResult(NamedTuple):
    """A single metric outcome: a bounded score, or Unavailable with a reason."""

    name: MetricName
    score: float | None
    findings: tuple[str, ...] = ()
    unavailable_reason: str | None = None

    @property
    def available(self) -> bool:
        return self.score is not None

    @classmethod
    def scored(
        cls, name: MetricName, score: float, findings: list[str] | tuple[str, ...]
    ) -> "MetricResult":
        return cls(name, clamp_score(score), tuple(findings))

    @classmethod
    def unavailable(
        cls,
        name: MetricName,
        reason: str,
        findings: list[str] | tuple[str, ...] = (),
    ) -> "MetricResult":
        return cls(name, None, tuple(findings), reason)


class MetricContext(NamedTuple):
    """Tuning knobs provided to metric checks."""

    max_source_files: int = 200
    docs_sample_files: int = 30


class MetricSpec(NamedTuple):
    """Specification for a metric calculator."""

    name: MetricName
    weight: float
    checker: Callable[[RepositorySnapshot, MetricContext], MetricResult]


def clamp_score(value: float) -> float:
    """
    Clamp a raw score into [0, 100].

    Raises:
        ValueError: If the value is NaN or infinite.
    """
    if not math.isfinite(value):
        raise ValueError(f"Metric score must be finite, got {value!r}")
    return float(min(100.0, max(0.0, value)))


def saturate(value: float, target: float) -> float:
    """Return ``value / target`` capped to [0, 1]; ``target`` is the full-credit point."""
    if target <= 0:
        return 1.0
    return min(1.0, max(0.0, value / target))


def decay(age: float, half_life: float) -> float:
    """Exponential decay: 1.0 at age 0, 0.5 after one half-life."""
    return 0.5 ** (max(0.0, age) / half_life)
