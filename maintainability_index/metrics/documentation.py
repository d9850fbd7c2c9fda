"""Documentation metric."""

import posixpath
import re

from maintainability_index.exceptions import FileContentError
from maintainability_index.metrics.base import (
    MetricContext,
    MetricName,
    MetricResult,
    MetricSpec,
)
from maintainability_index.metrics.code_quality import is_test_path
from maintainability_index.models import FileEntry, FileKind, RepositorySnapshot

BASELINE_POINTS = 10.0
OVERVIEW_POINTS = 45.0
INLINE_DOC_POINTS = 30.0
SUPPLEMENTARY_CAP = 15.0

MIN_OVERVIEW_CHARS = 500
MIN_OVERVIEW_SECTIONS = 3

_README_PREFERENCE = (".md", ".markdown", ".rst", ".adoc", ".txt", "")

# Points per supplementary document, keyed by upper-cased file stem.
SUPPLEMENTARY_DOCS = {
    "CONTRIBUTING": ("contribution guide", 5.0),
    "CHANGELOG": ("changelog", 5.0),
    "CHANGES": ("changelog", 5.0),
    "HISTORY": ("changelog", 5.0),
    "ARCHITECTURE": ("architecture notes", 5.0),
    "CODE_OF_CONDUCT": ("code of conduct", 3.0),
    "LICENSE": ("license", 3.0),
    "LICENCE": ("license", 3.0),
    "COPYING": ("license", 3.0),
}
_SUPPLEMENTARY_DIRS = ("", ".github", "docs", "doc")

_MARKDOWN_HEADING = re.compile(r"^#{1,6}\s+\S", re.MULTILINE)
_UNDERLINE_HEADING = re.compile(r"^\S.*\n(?:=+|-+|~+|\^+)[ \t]*$", re.MULTILINE)

_PYTHON_DECLARATION = re.compile(r"^( {0,4})(?:async\s+)?(?:def|class)\s+[A-Za-z]\w*")
_RUBY_DECLARATION = re.compile(r"^\s*(?:def|class|module)\s+[A-Za-z]")
_PUBLIC_DECLARATIONS = (
    # JavaScript / TypeScript
    re.compile(
        r"^\s*export\s+(?:default\s+)?(?:async\s+)?(?:abstract\s+)?"
        r"(?:function|class|const|let|interface|type|enum)\b"
    ),
    # Java / C# / PHP / Kotlin / Swift
    re.compile(r"^\s*public\s+[^=;]*?\b(?:class|interface|enum|record|struct)\s+\w+"),
    re.compile(r"^\s*public\s+[^=;]*\("),
    # Rust
    re.compile(
        r"^\s*pub(?:\([^)]*\))?\s+(?:async\s+)?"
        r"(?:fn|struct|enum|trait|mod|const|type)\b"
    ),
    # Go exports
    re.compile(r"^func\s+(?:\([^)]*\)\s*)?[A-Z]\w*\s*[\[(]"),
    re.compile(r"^type\s+[A-Z]\w*\s+(?:struct|interface)\b"),
)
_DOC_COMMENT_PREFIXES = ("///", "//", "/**", "/*", "*", "#")
_ANNOTATION_PREFIXES = ("@", "#[", "[")
_DOCSTRING_PREFIXES = ('"""', "'''", 'r"""', "r'''", 'u"""', '"', "'")


def find_readme(snapshot: RepositorySnapshot) -> FileEntry | None:
    """Locate the top-level overview document, preferring Markdown."""
    best: FileEntry | None = None
    best_rank = len(_README_PREFERENCE)
    for entry in snapshot.top_level_files():
        stem, ext = posixpath.splitext(entry.path)
        ext = ext.lower()
        if stem.upper() != "README" or ext not in _README_PREFERENCE:
            continue
        rank = _README_PREFERENCE.index(ext)
        if rank < best_rank:
            best, best_rank = entry, rank
    return best


def count_sections(text: str) -> int:
    """Count Markdown headings and reStructuredText/setext underlined titles."""
    return len(_MARKDOWN_HEADING.findall(text)) + len(_UNDERLINE_HEADING.findall(text))


def _overview_signal(snapshot: RepositorySnapshot, findings: list[str]) -> float:
    readme = find_readme(snapshot)
    if readme is None:
        findings.append("No top-level README found.")
        return 0.0

    try:
        text = snapshot.read_file(readme.path)
    except FileContentError as e:
        findings.append(f"{readme.path} present but unreadable ({e.reason}).")
        return 0.4

    # Tenths: 4 for presence, 3 each for length and structure.
    tenths = 4
    length = len(text.strip())
    sections = count_sections(text)
    if length >= MIN_OVERVIEW_CHARS:
        tenths += 3
    if sections >= MIN_OVERVIEW_SECTIONS:
        tenths += 3
    if tenths == 10:
        findings.append(f"{readme.path}: {length} characters, {sections} sections.")
    else:
        findings.append(
            f"{readme.path} is thin: {length} characters, {sections} sections "
            f"(want {MIN_OVERVIEW_CHARS}+ characters and {MIN_OVERVIEW_SECTIONS}+ sections)."
        )
    return tenths / 10


def _python_has_docstring(lines: list[str], index: int) -> bool:
    # Skip to the end of the (possibly multi-line) signature.
    end = index
    while end < len(lines) and end < index + 10:
        code = lines[end].split("#", 1)[0].rstrip()
        if code.endswith(":"):
            break
        end += 1
    for line in lines[end + 1 : end + 4]:
        stripped = line.strip()
        if not stripped:
            continue
        return stripped.startswith(_DOCSTRING_PREFIXES)
    return False


def _has_preceding_comment(lines: list[str], index: int) -> bool:
    cursor = index - 1
    while cursor >= 0:
        stripped = lines[cursor].strip()
        if stripped.startswith(_ANNOTATION_PREFIXES):
            cursor -= 1
            continue
        if not stripped:
            return False
        return stripped.startswith(_DOC_COMMENT_PREFIXES) or stripped.endswith("*/")
    return False


def scan_declarations(path: str, content: str) -> tuple[int, int]:
    """
    Find public declarations and count how many carry a documentation comment.

    Returns:
        (documented, total) declaration counts.
    """
    ext = posixpath.splitext(path)[1].lower()
    lines = content.splitlines()
    documented = 0
    total = 0
    for index, line in enumerate(lines):
        if ext in (".py", ".pyi"):
            if _PYTHON_DECLARATION.match(line):
                total += 1
                if _python_has_docstring(lines, index):
                    documented += 1
            continue
        if ext == ".rb":
            matched = bool(_RUBY_DECLARATION.match(line))
        else:
            matched = any(pattern.match(line) for pattern in _PUBLIC_DECLARATIONS)
        if matched:
            total += 1
            if _has_preceding_comment(lines, index):
                documented += 1
    return documented, total


def _inline_doc_signal(
    snapshot: RepositorySnapshot, context: MetricContext, findings: list[str]
) -> float:
    candidates = [
        entry
        for entry in snapshot.files_of_kind(FileKind.SOURCE)
        if not is_test_path(entry.path)
    ][: context.docs_sample_files]

    documented = 0
    total = 0
    unreadable = 0
    for entry in candidates:
        try:
            content = snapshot.read_file(entry.path)
        except FileContentError:
            unreadable += 1
            continue
        file_documented, file_total = scan_declarations(entry.path, content)
        documented += file_documented
        total += file_total

    if unreadable:
        findings.append(f"{unreadable} sampled source file(s) could not be read.")
    if total == 0:
        findings.append("No public declarations found to check for doc comments.")
        return 0.0

    ratio = documented / total
    findings.append(
        f"{documented}/{total} public declarations documented ({ratio:.0%})."
    )
    return ratio


def _supplementary_points(snapshot: RepositorySnapshot, findings: list[str]) -> float:
    found: dict[str, float] = {}
    has_docs_dir = False
    for entry in snapshot.file_tree:
        directory, basename = posixpath.split(entry.path)
        top = entry.path.split("/", 1)[0].lower()
        if "/" in entry.path and top in ("docs", "doc"):
            has_docs_dir = True
        if directory.lower() not in _SUPPLEMENTARY_DIRS:
            continue
        stem = posixpath.splitext(basename)[0].upper()
        if stem in SUPPLEMENTARY_DOCS:
            label, points = SUPPLEMENTARY_DOCS[stem]
            found[label] = points

    if has_docs_dir and "architecture notes" not in found:
        found["docs directory"] = SUPPLEMENTARY_DOCS["ARCHITECTURE"][1]

    if found:
        findings.append("Supplementary docs: " + ", ".join(sorted(found)) + ".")
    else:
        findings.append("No contribution guide, changelog or architecture notes.")
    return min(SUPPLEMENTARY_CAP, sum(found.values()))


def check_documentation(
    snapshot: RepositorySnapshot, context: MetricContext | None = None
) -> MetricResult:
    """
    Evaluates overview, inline and supplementary documentation.

    Scoring (0-100):
    - Baseline: 10
    - Top-level README present, 500+ characters, 3+ sections: up to 45
    - Share of public declarations with doc comments: up to 30
    - Contribution guide, changelog, architecture/docs, conduct, license: up to 15
    """
    context = context or MetricContext()
    findings: list[str] = []

    overview = _overview_signal(snapshot, findings)
    inline = _inline_doc_signal(snapshot, context, findings)
    supplementary = _supplementary_points(snapshot, findings)

    score = (
        BASELINE_POINTS
        + OVERVIEW_POINTS * overview
        + INLINE_DOC_POINTS * inline
        + supplementary
    )
    return MetricResult.scored(MetricName.DOCUMENTATION, score, findings)


METRIC = MetricSpec(
    name=MetricName.DOCUMENTATION,
    weight=0.25,
    checker=check_documentation,
)
