"""
Configuration management for the maintainability index.

Each setting is resolved with the following priority:
1. Explicit argument (CLI option)
2. Environment variable (``.env`` is loaded first)
3. ``[tool.maintainability-index]`` in .maintainability-index.toml
4. ``[tool.maintainability-index]`` in pyproject.toml
5. Built-in default

Credentials are only read from arguments and the environment.
"""

import os
import tomllib
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, NamedTuple

from dotenv import load_dotenv

from maintainability_index.exceptions import ConfigurationError
from maintainability_index.metrics.base import MetricName
from maintainability_index.scoring import DEFAULT_WEIGHTS, resolve_weights

load_dotenv()

CONFIG_SECTION = "maintainability-index"
LOCAL_CONFIG_NAME = ".maintainability-index.toml"

# Directory searched for configuration files. None means the working directory.
PROJECT_ROOT: Path | None = None

DEFAULT_LLM_API_URL = "https://openrouter.ai/api/v1/chat/completions"
DEFAULT_LLM_MODEL = "openai/gpt-oss-20b:free"

# Global configuration for SSL verification
# Default: True (verify SSL certificates)
# Can be set to False by CLI --insecure flag
VERIFY_SSL = True


class AnalysisConfig(NamedTuple):
    """Settings consumed by one analysis run."""

    github_token: str | None = None
    enable_enhancer: bool = False
    enhancer_timeout: float = 60.0
    commit_window_days: int = 90
    max_commits: int = 100
    fetch_timeout: float = 120.0
    max_source_files: int = 200
    docs_sample_files: int = 30
    max_file_bytes: int = 1_000_000
    parallel_metrics: bool = False
    weights: Mapping[MetricName, float] = DEFAULT_WEIGHTS
    llm_api_key: str | None = None
    llm_model: str = DEFAULT_LLM_MODEL
    llm_api_url: str = DEFAULT_LLM_API_URL

    @property
    def has_credentials(self) -> bool:
        return bool(self.github_token and self.github_token.strip())

    @property
    def enhancer_configured(self) -> bool:
        return bool(self.llm_api_key and self.llm_api_key.strip())


def load_config_file(config_path: Path) -> dict:
    """Load a TOML configuration file."""
    if not config_path.exists():
        return {}
    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(
            f"Failed to load config from {config_path}: {e}"
        ) from e


def get_file_settings() -> dict[str, Any]:
    """
    Load the ``[tool.maintainability-index]`` table.

    Priority:
    1. .maintainability-index.toml (local config, highest priority)
    2. pyproject.toml (project-level config, fallback)

    Returns:
        The settings table, or an empty dict if neither file defines it.
    """
    root = PROJECT_ROOT or Path.cwd()
    for filename in (LOCAL_CONFIG_NAME, "pyproject.toml"):
        config = load_config_file(root / filename)
        settings = config.get("tool", {}).get(CONFIG_SECTION)
        if settings:
            return settings
    return {}


def _resolve(
    explicit: Any, env_var: str | None, settings: dict[str, Any], key: str, default: Any
) -> Any:
    if explicit is not None:
        return explicit
    if env_var:
        env_value = os.getenv(env_var)
        if env_value:
            return env_value
    if key in settings:
        return settings[key]
    return default


def _positive(name: str, value: Any, cast: type) -> Any:
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be a positive number, got {value!r}.")
    try:
        converted = cast(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"{name} must be a positive number, got {value!r}."
        ) from e
    if converted <= 0:
        raise ConfigurationError(f"{name} must be a positive number, got {value!r}.")
    return converted


def _flag(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off", ""):
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {value!r}.")


def load_config(
    token: str | None = None,
    enable_enhancer: bool | None = None,
    enhancer_timeout: float | None = None,
    commit_window_days: int | None = None,
    llm_model: str | None = None,
    parallel_metrics: bool | None = None,
) -> AnalysisConfig:
    """
    Build the analysis configuration from arguments, environment and files.

    Environment variables:
        GITHUB_TOKEN, OPENROUTER_API_KEY, OPENROUTER_MODEL, OPENROUTER_API_URL,
        RMI_ENABLE_ENHANCER, RMI_ENHANCER_TIMEOUT, RMI_COMMIT_WINDOW_DAYS

    Raises:
        ConfigurationError: If a setting is malformed.
    """
    settings = get_file_settings()

    weights_table = settings.get("weights")
    if weights_table is not None and not isinstance(weights_table, dict):
        raise ConfigurationError(
            "weights should be a table of metric names to numbers."
        )

    return AnalysisConfig(
        github_token=token or os.getenv("GITHUB_TOKEN"),
        enable_enhancer=_flag(
            "enable_enhancer",
            _resolve(
                enable_enhancer, "RMI_ENABLE_ENHANCER", settings, "enable_enhancer", False
            ),
        ),
        enhancer_timeout=_positive(
            "enhancer_timeout",
            _resolve(
                enhancer_timeout,
                "RMI_ENHANCER_TIMEOUT",
                settings,
                "enhancer_timeout",
                AnalysisConfig._field_defaults["enhancer_timeout"],
            ),
            float,
        ),
        commit_window_days=_positive(
            "commit_window_days",
            _resolve(
                commit_window_days,
                "RMI_COMMIT_WINDOW_DAYS",
                settings,
                "commit_window_days",
                AnalysisConfig._field_defaults["commit_window_days"],
            ),
            int,
        ),
        max_commits=_positive(
            "max_commits",
            settings.get("max_commits", AnalysisConfig._field_defaults["max_commits"]),
            int,
        ),
        fetch_timeout=_positive(
            "fetch_timeout",
            settings.get(
                "fetch_timeout", AnalysisConfig._field_defaults["fetch_timeout"]
            ),
            float,
        ),
        max_source_files=_positive(
            "max_source_files",
            settings.get(
                "max_source_files", AnalysisConfig._field_defaults["max_source_files"]
            ),
            int,
        ),
        docs_sample_files=_positive(
            "docs_sample_files",
            settings.get(
                "docs_sample_files",
                AnalysisConfig._field_defaults["docs_sample_files"],
            ),
            int,
        ),
        max_file_bytes=_positive(
            "max_file_bytes",
            settings.get(
                "max_file_bytes", AnalysisConfig._field_defaults["max_file_bytes"]
            ),
            int,
        ),
        parallel_metrics=_flag(
            "parallel_metrics",
            _resolve(parallel_metrics, None, settings, "parallel_metrics", False),
        ),
        weights=MappingProxyType(resolve_weights(weights_table)),
        llm_api_key=os.getenv("OPENROUTER_API_KEY"),
        llm_model=_resolve(
            llm_model, "OPENROUTER_MODEL", settings, "llm_model", DEFAULT_LLM_MODEL
        ),
        llm_api_url=_resolve(
            None, "OPENROUTER_API_URL", settings, "llm_api_url", DEFAULT_LLM_API_URL
        ),
    )


def set_verify_ssl(verify: bool) -> None:
    """
    Set the SSL verification setting globally.

    Args:
        verify: Whether to verify SSL certificates.
    """
    global VERIFY_SSL
    VERIFY_SSL = verify


def get_verify_ssl() -> bool:
    """
    Get the current SSL verification setting.

    Returns:
        Whether SSL verification is enabled.
    """
    return VERIFY_SSL
