"""Development activity metric."""

import re

from maintainability_index.metrics.base import (
    MetricContext,
    MetricName,
    MetricResult,
    MetricSpec,
    decay,
    saturate,
)
from maintainability_index.models import RepositorySnapshot

RECENCY_POINTS = 50.0
FREQUENCY_POINTS = 30.0
DIVERSITY_POINTS = 20.0

RECENCY_HALF_LIFE_DAYS = 30.0
TARGET_COMMITS_PER_WEEK = 1.0
TARGET_AUTHORS = 3

# Conventional-commit subject, e.g. "fix(parser): handle empty input".
CONVENTIONAL_SUBJECT = re.compile(
    r"^(?:feat|fix|docs|style|refactor|test|chore|perf|ci|build)(?:\(.+\))?!?:.+",
    re.IGNORECASE,
)
MIN_SUBJECT_LENGTH = 10
MIN_FREEFORM_SUBJECT_LENGTH = 20
_LOW_EFFORT_PREFIXES = ("merge", "update")

BOT_KEYWORDS = (
    "[bot]",
    "dependabot",
    "renovate",
    "github-actions",
    "actions-user",
    "pre-commit-ci",
    "greenkeeper",
    "snyk-bot",
)


def is_bot(author: str) -> bool:
    """Check if a commit author appears to be an automation account."""
    lower = author.lower()
    return any(keyword in lower for keyword in BOT_KEYWORDS)


def is_descriptive_subject(message: str) -> bool:
    """
    Check whether a commit subject line follows a descriptive convention.

    Conventional-commit subjects qualify. Free-form subjects qualify when they
    are at least 20 characters, start with a capital letter, and are not merge,
    "update" or work-in-progress commits.
    """
    lines = message.strip().splitlines()
    subject = lines[0].strip() if lines else ""
    if len(subject) < MIN_SUBJECT_LENGTH:
        return False
    if CONVENTIONAL_SUBJECT.match(subject):
        return True
    lower = subject.lower()
    return (
        len(subject) >= MIN_FREEFORM_SUBJECT_LENGTH
        and subject[0].isupper()
        and not lower.startswith(_LOW_EFFORT_PREFIXES)
        and "wip" not in lower
    )


def check_activity(
    snapshot: RepositorySnapshot, _context: MetricContext | None = None
) -> MetricResult:
    """
    Evaluates commit activity within the snapshot's recent window.

    Scoring (0-100):
    - Recency: 50 points, halving every 30 days since the last commit
    - Frequency: 30 points at one commit per week or more
    - Contributor diversity: 20 points at three or more human authors

    An empty window scores exactly 0; inactivity is a real signal, not
    missing data.
    Commit subject conventions are reported as a finding and do not score.
    """
    commits = snapshot.commits
    if not commits:
        return MetricResult.scored(
            MetricName.ACTIVITY,
            0.0,
            [f"No commits in window (last {snapshot.window_days} days)."],
        )

    latest = max(commit.timestamp for commit in commits)
    days_since = max(0.0, (snapshot.fetched_at - latest).total_seconds() / 86400)
    weeks = max(snapshot.window_days, 1) / 7
    per_week = len(commits) / weeks

    authors = {commit.author for commit in commits if commit.author}
    human_authors = {author for author in authors if not is_bot(author)}

    score = (
        RECENCY_POINTS * decay(days_since, RECENCY_HALF_LIFE_DAYS)
        + FREQUENCY_POINTS * saturate(per_week, TARGET_COMMITS_PER_WEEK)
        + DIVERSITY_POINTS * saturate(len(human_authors), TARGET_AUTHORS)
    )

    findings = [
        f"Last commit {days_since:.0f} day(s) ago.",
        f"{len(commits)} commit(s) in the last {snapshot.window_days} days "
        f"({per_week:.1f} per week).",
        f"{len(human_authors)} distinct human author(s) in window.",
    ]
    bots = len(authors) - len(human_authors)
    if bots:
        findings.append(f"{bots} automation account(s) excluded from author count.")

    descriptive = sum(1 for commit in commits if is_descriptive_subject(commit.message))
    findings.append(
        f"{descriptive} of {len(commits)} commit subject(s) follow a descriptive "
        f"convention ({descriptive / len(commits):.0%})."
    )

    return MetricResult.scored(MetricName.ACTIVITY, score, findings)


METRIC = MetricSpec(
    name=MetricName.ACTIVITY,
    weight=0.25,
    checker=check_activity,
)
