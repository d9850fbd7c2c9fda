"""
Optional narrative enhancement through an OpenRouter-compatible chat API.

The enhancer only adds prose to a report. It never changes metric scores.
"""

import json
import logging
import os
from typing import Any, Sequence

import httpx

from maintainability_index.config import DEFAULT_LLM_API_URL, DEFAULT_LLM_MODEL
from maintainability_index.exceptions import (
    ConfigurationError,
    EnhancementError,
    FileContentError,
)
from maintainability_index.http_client import _get_http_client
from maintainability_index.metrics.base import MetricResult
from maintainability_index.metrics.documentation import find_readme
from maintainability_index.models import RepositorySnapshot

logger = logging.getLogger(__name__)

TEMPERATURE = 0.3
MAX_TOKENS = 2000
README_EXCERPT_CHARS = 4000
MAX_COMMIT_SUBJECTS = 20
ERROR_MESSAGE_CHARS = 200

REFERER = "https://github.com/repo-maintainability-index"
APP_TITLE = "Repository Maintainability Index"


def extract_error_message(body: str) -> str:
    """
    Pull a readable message out of an API error body.

    Understands ``{"error": {"message": ..., "code": ...}}`` and falls back to
    the raw body, truncated.
    """
    if not body or not body.strip():
        return "No error details available"
    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        payload = None

    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        error = payload["error"]
        message = error.get("message")
        if message:
            code = error.get("code")
            return f"[{code}] {message}" if code is not None else str(message)

    if len(body) > ERROR_MESSAGE_CHARS:
        return body[:ERROR_MESSAGE_CHARS] + "..."
    return body


def _commit_subjects(snapshot: RepositorySnapshot) -> list[str]:
    subjects = []
    for commit in snapshot.commits[:MAX_COMMIT_SUBJECTS]:
        subject = commit.message.strip().splitlines()[0] if commit.message.strip() else ""
        if subject:
            subjects.append(subject)
    return subjects


def _readme_excerpt(snapshot: RepositorySnapshot) -> str | None:
    readme = find_readme(snapshot)
    if readme is None:
        return None
    try:
        text = snapshot.read_file(readme.path)
    except FileContentError as e:
        logger.debug("README unavailable for prompt: %s", e)
        return None
    return text[:README_EXCERPT_CHARS]


def build_prompt(
    snapshot: RepositorySnapshot, metric_results: Sequence[MetricResult]
) -> str:
    """Assemble the enhancer prompt from the snapshot and metric results."""
    lines = [
        "You are reviewing the maintainability of a software repository.",
        f"Repository: {snapshot.identifier.full_name}",
    ]
    if snapshot.description:
        lines.append(f"Description: {snapshot.description}")

    lines.append("")
    lines.append("Metric results (0-100):")
    for result in metric_results:
        if result.available:
            lines.append(f"- {result.name.value}: {result.score:.1f}")
        else:
            lines.append(
                f"- {result.name.value}: unavailable ({result.unavailable_reason})"
            )
        for finding in result.findings:
            lines.append(f"  * {finding}")

    subjects = _commit_subjects(snapshot)
    if subjects:
        lines.append("")
        lines.append("Recent commit messages:")
        lines.extend(f"- {subject}" for subject in subjects)

    readme = _readme_excerpt(snapshot)
    if readme:
        lines.append("")
        lines.append("README excerpt:")
        lines.append(readme)

    lines.append("")
    lines.append(
        "Write a short qualitative assessment of the repository's "
        "maintainability with two or three concrete, prioritised suggestions. "
        "Do not restate the numeric scores and do not suggest adding files "
        "that already exist."
    )
    return "\n".join(lines)


class NarrativeEnhancer:
    """Chat-completions client that turns metric results into prose."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_LLM_MODEL,
        api_url: str = DEFAULT_LLM_API_URL,
        timeout: float = 60.0,
    ):
        """
        Initialize the enhancer.

        Args:
            api_key: OpenRouter API key. If not provided, reads from
                     OPENROUTER_API_KEY environment variable.
            model: Model identifier.
            api_url: Chat-completions endpoint.
            timeout: Request timeout in seconds.

        Raises:
            ConfigurationError: If no API key is available.
        """
        self.api_key = api_key or os.getenv("OPENROUTER_API_KEY")
        if not self.api_key or not self.api_key.strip():
            raise ConfigurationError(
                "OPENROUTER_API_KEY is required for narrative enhancement."
            )
        self.model = model
        self.api_url = api_url
        self.timeout = timeout

    def summarize(
        self, snapshot: RepositorySnapshot, metric_results: Sequence[MetricResult]
    ) -> str:
        """
        Produce a narrative for one analysis.

        Raises:
            EnhancementError: On HTTP failure or an empty/malformed response.
        """
        return self.complete(build_prompt(snapshot, metric_results))

    def complete(self, prompt: str) -> str:
        """Send one prompt and return the assistant message content."""
        logger.info("Sending enhancer request to model: %s", self.model)
        body = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": TEMPERATURE,
            "max_tokens": MAX_TOKENS,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": REFERER,
            "X-Title": APP_TITLE,
        }
        try:
            response = _get_http_client().post(
                self.api_url, json=body, headers=headers, timeout=self.timeout
            )
        except httpx.TransportError as e:
            raise EnhancementError(f"Enhancer request failed: {e}") from e

        if response.status_code >= 400:
            message = extract_error_message(response.text)
            raise EnhancementError(
                f"Enhancer request failed: {response.status_code} "
                f"(model: {self.model}) - {message}",
                response.status_code,
            )
        return self._parse_response(response)

    @staticmethod
    def _parse_response(response: httpx.Response) -> str:
        try:
            payload: Any = response.json()
        except ValueError as e:
            raise EnhancementError("Enhancer response was not valid JSON") from e

        if not isinstance(payload, dict):
            raise EnhancementError("Enhancer response must be a JSON object")
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            raise EnhancementError("Enhancer response did not contain choices")
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content.strip():
            raise EnhancementError("Enhancer response did not contain content")

        usage = payload.get("usage") or {}
        if usage.get("total_tokens") is not None:
            logger.debug("Enhancer used %s tokens", usage["total_tokens"])
        return content.strip()
