"""Code quality metric."""

import hashlib
import posixpath
import re
import statistics
from collections import Counter
from typing import NamedTuple

from maintainability_index.exceptions import FileContentError
from maintainability_index.metrics.base import (
    MetricContext,
    MetricName,
    MetricResult,
    MetricSpec,
    saturate,
)
from maintainability_index.models import FileKind, RepositorySnapshot

COMPLEXITY_SCALE = 20.0
LARGE_FILE_LINES = 500
LARGE_FILE_PENALTY_MAX = 10.0
DUPLICATION_PENALTY_MAX = 30.0
DUPLICATION_SATURATION = 0.5
TEST_BONUS_MAX = 15.0
TEST_BONUS_MIN = 5.0
TEST_RATIO_TARGET = 0.2
MIN_SIGNIFICANT_LENGTH = 12

_DECISION_KEYWORDS = re.compile(
    r"\b(?:if|elif|elsif|for|foreach|while|case|catch|except|rescue|when)\b"
)
_SHORT_CIRCUIT = re.compile(r"&&|\|\|")
_WORD_OPERATORS = re.compile(r"\b(?:and|or)\b")
_TERNARY = re.compile(r"\s\?\s")
_WHITESPACE = re.compile(r"\s+")

# Languages whose boolean operators are words rather than symbols.
_WORD_OPERATOR_EXTENSIONS = frozenset({".py", ".pyi", ".rb", ".lua", ".pl", ".pm"})
_COMMENT_PREFIXES = ("#", "//", "/*", "*", "--", ";")
_IMPORT_PREFIXES = (
    "import ",
    "from ",
    "#include",
    "using ",
    "package ",
    "require",
    "use ",
)

_TEST_DIRECTORIES = frozenset(
    {"test", "tests", "__tests__", "spec", "specs", "testing", "testdata"}
)
_TEST_FILE_PATTERN = re.compile(
    r"^(?:test_.+|.+_test|.+\.test|.+\.spec|.+Tests?)\.[A-Za-z0-9]+$"
)


class FileComplexity(NamedTuple):
    """Lexical statistics for one source file."""

    path: str
    lines: int
    complexity: int
    line_keys: tuple[bytes, ...]


def is_test_path(path: str) -> bool:
    """Check whether a path follows a recognised automated-test convention."""
    parts = path.split("/")
    if any(part.lower() in _TEST_DIRECTORIES for part in parts[:-1]):
        return True
    return bool(_TEST_FILE_PATTERN.match(parts[-1]))


def _is_comment(stripped: str) -> bool:
    return stripped.startswith(_COMMENT_PREFIXES)


def _line_key(stripped: str) -> bytes | None:
    """Digest of a normalised line, or None for lines too trivial to compare."""
    normalized = _WHITESPACE.sub(" ", stripped)
    if len(normalized) < MIN_SIGNIFICANT_LENGTH:
        return None
    if normalized.startswith(_IMPORT_PREFIXES):
        return None
    if not any(ch.isalnum() for ch in normalized):
        return None
    return hashlib.sha1(normalized.encode("utf-8")).digest()


def measure_file(path: str, content: str) -> FileComplexity:
    """
    Count control-flow constructs in a file as a cyclomatic complexity proxy.

    Complexity is 1 plus one per conditional, loop, exception handler,
    short-circuit operator and ternary found on non-comment lines.
    """
    ext = posixpath.splitext(path)[1].lower()
    word_operators = ext in _WORD_OPERATOR_EXTENSIONS

    decisions = 0
    line_count = 0
    keys: list[bytes] = []
    for raw_line in content.splitlines():
        stripped = raw_line.strip()
        if not stripped:
            continue
        line_count += 1
        if _is_comment(stripped):
            continue
        decisions += len(_DECISION_KEYWORDS.findall(stripped))
        decisions += len(_SHORT_CIRCUIT.findall(stripped))
        decisions += len(_TERNARY.findall(stripped))
        if word_operators:
            decisions += len(_WORD_OPERATORS.findall(stripped))
        key = _line_key(stripped)
        if key is not None:
            keys.append(key)

    return FileComplexity(path, line_count, 1 + decisions, tuple(keys))


def duplication_ratio(files: list[FileComplexity]) -> float:
    """
    Share of significant lines whose normalised digest occurs in two or more files.
    """
    files_per_key: Counter[bytes] = Counter()
    for measured in files:
        files_per_key.update(set(measured.line_keys))

    total = 0
    duplicated = 0
    for measured in files:
        total += len(measured.line_keys)
        duplicated += sum(1 for key in measured.line_keys if files_per_key[key] > 1)
    if total == 0:
        return 0.0
    return duplicated / total


def check_code_quality(
    snapshot: RepositorySnapshot, context: MetricContext | None = None
) -> MetricResult:
    """
    Estimates code quality from lexical heuristics over source files.

    Considers:
    - Average control-flow complexity per file (inverse, saturating)
    - Near-duplicate lines across files (penalty up to 30)
    - Files over 500 lines (penalty up to 10)
    - Automated test files in the tree (bonus up to 15)

    Files that cannot be read are skipped and reported as unscored.
    Unavailable when no source file could be scored.
    """
    context = context or MetricContext()
    source_files = snapshot.files_of_kind(FileKind.SOURCE)
    sample = source_files[: context.max_source_files]

    measured: list[FileComplexity] = []
    unscored = 0
    for entry in sample:
        try:
            content = snapshot.read_file(entry.path)
        except FileContentError:
            unscored += 1
            continue
        if "\x00" in content:
            unscored += 1
            continue
        measured.append(measure_file(entry.path, content))

    findings: list[str] = []
    if len(source_files) > len(sample):
        findings.append(f"Sampled {len(sample)} of {len(source_files)} source files.")
    if unscored:
        findings.append(
            f"{unscored} source file(s) could not be read and were not scored."
        )

    if not measured:
        return MetricResult.unavailable(
            MetricName.CODE_QUALITY, "no readable source files", findings
        )

    avg_complexity = statistics.fmean(m.complexity for m in measured)
    complexity_score = 100.0 * COMPLEXITY_SCALE / (COMPLEXITY_SCALE + avg_complexity)

    line_counts = [m.lines for m in measured]
    large_files = sum(1 for count in line_counts if count > LARGE_FILE_LINES)
    large_penalty = LARGE_FILE_PENALTY_MAX * (large_files / len(measured))

    dup_ratio = duplication_ratio(measured)
    dup_penalty = DUPLICATION_PENALTY_MAX * saturate(dup_ratio, DUPLICATION_SATURATION)

    test_files = sum(1 for entry in source_files if is_test_path(entry.path))
    non_test_files = len(source_files) - test_files
    if test_files:
        test_ratio = test_files / max(1, non_test_files)
        test_bonus = max(
            TEST_BONUS_MIN, TEST_BONUS_MAX * saturate(test_ratio, TEST_RATIO_TARGET)
        )
    else:
        test_bonus = 0.0

    score = complexity_score - dup_penalty - large_penalty + test_bonus

    findings.append(
        f"Scored {len(measured)} source file(s); average complexity "
        f"{avg_complexity:.1f} per file."
    )
    findings.append(
        f"Median file length {statistics.median(line_counts):.0f} lines; "
        f"{large_files} file(s) over {LARGE_FILE_LINES} lines."
    )
    findings.append(f"Duplicated line ratio across files: {dup_ratio:.0%}.")
    if test_files:
        findings.append(f"{test_files} automated test file(s) detected.")
    else:
        findings.append("No automated test files detected.")

    return MetricResult.scored(MetricName.CODE_QUALITY, score, findings)


METRIC = MetricSpec(
    name=MetricName.CODE_QUALITY,
    weight=0.30,
    checker=check_code_quality,
)
