"""
Core analysis logic for the maintainability index.

One call to ``analyze_repository`` fetches a snapshot, runs the four metric
calculators, optionally asks the enhancer for a narrative, and assembles the
report. Nothing is kept between calls.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Protocol, Sequence

from maintainability_index.config import AnalysisConfig, load_config
from maintainability_index.exceptions import (
    ConfigurationError,
    EnhancementError,
    RepositoryTransportError,
)
from maintainability_index.llm import NarrativeEnhancer
from maintainability_index.metrics import (
    INCOMPLETE_REASON_PREFIX,
    MetricContext,
    MetricResult,
    compute_metrics,
)
from maintainability_index.models import RepositoryIdentifier, RepositorySnapshot
from maintainability_index.report import CompositeReport
from maintainability_index.scoring import (
    aggregate,
    build_recommendation,
    effective_weights,
)
from maintainability_index.vcs import BaseSnapshotProvider, GitHubProvider

logger = logging.getLogger(__name__)


class Enhancer(Protocol):
    """Anything that can turn a snapshot and metric results into prose."""

    def summarize(
        self, snapshot: RepositorySnapshot, metric_results: Sequence[MetricResult]
    ) -> str: ...


def _build_provider(config: AnalysisConfig) -> BaseSnapshotProvider:
    if not config.has_credentials:
        raise ConfigurationError(
            "GITHUB_TOKEN is required. Pass --token or set the GITHUB_TOKEN "
            "environment variable."
        )
    return GitHubProvider(
        token=config.github_token,
        max_file_bytes=config.max_file_bytes,
    )


def fetch_snapshot(
    provider: BaseSnapshotProvider,
    identifier: RepositoryIdentifier,
    config: AnalysisConfig,
) -> RepositorySnapshot:
    """
    Fetch the snapshot, bounded by ``config.fetch_timeout``.

    Raises:
        RepositoryNotFoundError: If the repository is missing or inaccessible.
        RepositoryTransportError: If the fetch fails or times out.
    """
    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(
        provider.fetch_snapshot,
        identifier,
        config.commit_window_days,
        config.max_commits,
    )
    try:
        return future.result(timeout=config.fetch_timeout)
    except FuturesTimeoutError as e:
        raise RepositoryTransportError(
            f"Timed out fetching {identifier.full_name} after "
            f"{config.fetch_timeout:g}s."
        ) from e
    finally:
        executor.shutdown(wait=False, cancel_futures=True)


def _incomplete_warnings(results: Sequence[MetricResult]) -> list[str]:
    return [
        f"{result.name.value}: {result.unavailable_reason}"
        for result in results
        if result.unavailable_reason
        and result.unavailable_reason.startswith(INCOMPLETE_REASON_PREFIX)
    ]


def _warn(warnings: list[str], message: str) -> None:
    logger.warning(message)
    warnings.append(message)


def generate_narrative(
    snapshot: RepositorySnapshot,
    results: Sequence[MetricResult],
    config: AnalysisConfig,
    enhancer: Enhancer | None,
    warnings: list[str],
) -> str | None:
    """
    Ask the enhancer for a narrative, bounded by ``config.enhancer_timeout``.

    Failure, timeout and user interrupt all yield None and append a warning.
    """
    if not config.enable_enhancer:
        return None
    if enhancer is None:
        if not config.enhancer_configured:
            _warn(
                warnings,
                "Narrative enhancement was requested but OPENROUTER_API_KEY is "
                "not set; skipping.",
            )
            return None
        enhancer = NarrativeEnhancer(
            api_key=config.llm_api_key,
            model=config.llm_model,
            api_url=config.llm_api_url,
            timeout=config.enhancer_timeout,
        )

    logger.info("Requesting narrative for %s", snapshot.identifier.full_name)
    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(enhancer.summarize, snapshot, tuple(results))
    try:
        narrative = future.result(timeout=config.enhancer_timeout)
    except FuturesTimeoutError:
        _warn(
            warnings,
            f"Narrative enhancement timed out after {config.enhancer_timeout:g}s.",
        )
        return None
    except KeyboardInterrupt:
        _warn(warnings, "Narrative enhancement was interrupted.")
        return None
    except EnhancementError as e:
        _warn(warnings, f"Narrative enhancement failed: {e}")
        return None
    except Exception as e:
        message = f"Narrative enhancement failed: {e}"
        logger.exception(message)
        warnings.append(message)
        return None
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    if not narrative or not narrative.strip():
        _warn(warnings, "Narrative enhancement returned an empty response.")
        return None
    return narrative.strip()


def analyze_repository(
    identifier: RepositoryIdentifier | str,
    config: AnalysisConfig | None = None,
    provider: BaseSnapshotProvider | None = None,
    enhancer: Enhancer | None = None,
) -> CompositeReport:
    """
    Analyze one repository and assemble its maintainability report.

    Args:
        identifier: ``owner/name``, a GitHub URL, or a parsed identifier.
        config: Analysis settings. Loaded from the environment when omitted.
        provider: Snapshot provider. A GitHubProvider is built from the config
            when omitted, which requires a GitHub token.
        enhancer: Narrative enhancer. Built from the config when omitted and
            enhancement is enabled.

    Returns:
        The report. Unavailable metrics, enhancer failures and an all
        unavailable composite are represented inside it.

    Raises:
        ConfigurationError: For a malformed identifier or missing credentials.
        RepositoryNotFoundError: If the repository is missing or inaccessible.
        RepositoryTransportError: If the snapshot cannot be fetched.
    """
    if not isinstance(identifier, RepositoryIdentifier):
        identifier = RepositoryIdentifier.parse(identifier)
    config = config or load_config()
    provider = provider or _build_provider(config)

    snapshot = fetch_snapshot(provider, identifier, config)
    logger.info(
        "Fetched %s: %d files, %d commits",
        identifier.full_name,
        len(snapshot.file_tree),
        len(snapshot.commits),
    )

    warnings = list(snapshot.notes)
    context = MetricContext(
        max_source_files=config.max_source_files,
        docs_sample_files=config.docs_sample_files,
    )
    results = compute_metrics(snapshot, context, parallel=config.parallel_metrics)
    warnings.extend(_incomplete_warnings(results))

    narrative = generate_narrative(snapshot, results, config, enhancer, warnings)

    composite, tier = aggregate(results, config.weights)

    return CompositeReport(
        repository=identifier,
        metric_results=results,
        composite_index=composite,
        tier=tier,
        generated_at=datetime.now(timezone.utc),
        weights=MappingProxyType(effective_weights(results, config.weights)),
        recommendation=build_recommendation(tier, results),
        narrative=narrative,
        warnings=tuple(warnings),
    )
