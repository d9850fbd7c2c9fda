"""Community health metric."""

import statistics

from maintainability_index.metrics.base import (
    MetricContext,
    MetricName,
    MetricResult,
    MetricSpec,
    decay,
    saturate,
)
from maintainability_index.models import RepositorySnapshot

CLOSE_RATIO_POINTS = 35.0
TIME_TO_CLOSE_POINTS = 25.0
MERGE_RATIO_POINTS = 30.0
REVIEW_BONUS_POINTS = 10.0

TARGET_CLOSE_RATIO = 0.8
TIME_TO_CLOSE_HALF_LIFE_DAYS = 30.0
TARGET_MERGE_RATIO = 0.7
TARGET_REVIEWS_PER_MERGE = 1.0

# Credit given to a component whose category exists but is empty.
NEUTRAL_SIGNAL = 0.5

BUG_LABELS = frozenset({"bug", "type: bug", "kind/bug", "defect", "regression"})
# Open issues at or above this count are reported as a backlog.
OPEN_BACKLOG_THRESHOLD = 50


def _issue_signals(snapshot: RepositorySnapshot, findings: list[str]) -> float:
    issues = snapshot.issues or ()
    if not issues:
        findings.append("No issues filed.")
        return (CLOSE_RATIO_POINTS + TIME_TO_CLOSE_POINTS) * NEUTRAL_SIGNAL

    closed = [issue for issue in issues if issue.state == "closed"]
    close_ratio = len(closed) / len(issues)
    open_count = len(issues) - len(closed)
    points = CLOSE_RATIO_POINTS * saturate(close_ratio, TARGET_CLOSE_RATIO)
    findings.append(
        f"Issues: {open_count} open, {len(closed)} closed "
        f"({close_ratio:.0%} closed)."
    )
    if open_count >= OPEN_BACKLOG_THRESHOLD:
        findings.append(
            f"Open issue backlog: {open_count} of the {len(issues)} most recent "
            "issues are still open."
        )

    close_days = [
        (issue.closed_at - issue.created_at).total_seconds() / 86400
        for issue in closed
        if issue.closed_at is not None
    ]
    if close_days:
        median_days = statistics.median(close_days)
        points += TIME_TO_CLOSE_POINTS * decay(
            median_days, TIME_TO_CLOSE_HALF_LIFE_DAYS
        )
        findings.append(f"Median time to close: {median_days:.1f} days.")
    else:
        findings.append("No resolved issues to measure time to close.")

    open_bugs = sum(
        1
        for issue in issues
        if issue.state == "open"
        and any(label.lower() in BUG_LABELS for label in issue.labels)
    )
    if open_bugs:
        findings.append(f"{open_bugs} open issue(s) labelled as bugs.")
    return points


def _pull_request_signals(snapshot: RepositorySnapshot, findings: list[str]) -> float:
    pull_requests = snapshot.pull_requests or ()
    if not pull_requests:
        findings.append("No pull requests opened.")
        return MERGE_RATIO_POINTS * NEUTRAL_SIGNAL

    merged = [pr for pr in pull_requests if pr.state == "merged"]
    merge_ratio = len(merged) / len(pull_requests)
    points = MERGE_RATIO_POINTS * saturate(merge_ratio, TARGET_MERGE_RATIO)
    findings.append(
        f"Pull requests: {len(merged)}/{len(pull_requests)} merged ({merge_ratio:.0%})."
    )

    if merged:
        avg_reviews = statistics.fmean(pr.review_count for pr in merged)
        points += REVIEW_BONUS_POINTS * saturate(avg_reviews, TARGET_REVIEWS_PER_MERGE)
        findings.append(f"Average {avg_reviews:.1f} review(s) per merged pull request.")
    return points


def check_community_health(
    snapshot: RepositorySnapshot, _context: MetricContext | None = None
) -> MetricResult:
    """
    Evaluates issue handling and pull-request flow.

    Scoring (0-100):
    - Issue close ratio: 35 points at 80% closed
    - Median time to close: 25 points, halving every 30 days
    - Pull-request merge ratio: 30 points at 70% merged
    - Reviews per merged pull request: 10 bonus points at one review

    Unavailable when issues or pull requests are disabled for the repository;
    an enabled but empty category gets neutral credit instead.
    """
    if snapshot.issues is None:
        return MetricResult.unavailable(
            MetricName.COMMUNITY_HEALTH, "issues are disabled for this repository"
        )
    if snapshot.pull_requests is None:
        return MetricResult.unavailable(
            MetricName.COMMUNITY_HEALTH, "pull requests are unavailable"
        )

    findings: list[str] = []
    score = _issue_signals(snapshot, findings) + _pull_request_signals(
        snapshot, findings
    )
    return MetricResult.scored(MetricName.COMMUNITY_HEALTH, score, findings)


METRIC = MetricSpec(
    name=MetricName.COMMUNITY_HEALTH,
    weight=0.20,
    checker=check_community_health,
)
