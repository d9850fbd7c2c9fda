"""
Tests for the command-line interface.
"""

import json
from datetime import datetime, timezone
from unittest.mock import patch

from typer.testing import CliRunner

from maintainability_index import __version__
from maintainability_index.cli import app
from maintainability_index.config import AnalysisConfig
from maintainability_index.exceptions import (
    ConfigurationError,
    RateLimitError,
    RepositoryNotFoundError,
)
from maintainability_index.metrics.base import MetricName, MetricResult
from maintainability_index.models import RepositoryIdentifier
from maintainability_index.report import CompositeReport
from maintainability_index.scoring import Tier

runner = CliRunner()


def _report(composite=82.5, tier=Tier.GOOD, narrative=None, warnings=()):
    results = tuple(
        MetricResult.scored(name, 82.5, [f"{name.value} finding."])
        for name in MetricName
    )
    if composite is None:
        results = tuple(
            MetricResult.unavailable(name, "no data") for name in MetricName
        )
    return CompositeReport(
        repository=RepositoryIdentifier("octo", "widgets"),
        metric_results=results,
        composite_index=composite,
        tier=tier,
        generated_at=datetime(2024, 6, 1, tzinfo=timezone.utc),
        weights={name: 0.25 for name in MetricName},
        recommendation="Good repository maintainability. Keep up the good work!",
        narrative=narrative,
        warnings=warnings,
    )


@patch("maintainability_index.cli.load_config", return_value=AnalysisConfig())
@patch("maintainability_index.cli.analyze_repository")
def test_analyze_text_output(mock_analyze, _mock_config):
    mock_analyze.return_value = _report(
        narrative="Well kept.", warnings=("Tree truncated.",)
    )
    result = runner.invoke(app, ["analyze", "octo/widgets"])

    assert result.exit_code == 0
    assert "Maintainability Index" in result.output
    assert "82.5/100" in result.output
    assert "Good" in result.output
    assert "Keep up the good work!" in result.output
    assert "Well kept." in result.output
    assert "Tree truncated." in result.output


@patch("maintainability_index.cli.load_config", return_value=AnalysisConfig())
@patch("maintainability_index.cli.analyze_repository")
def test_analyze_unavailable_composite(mock_analyze, _mock_config):
    mock_analyze.return_value = _report(composite=None, tier=None)
    result = runner.invoke(app, ["analyze", "octo/widgets"])
    assert result.exit_code == 0
    assert "Composite index unavailable" in result.output
    assert "unavailable" in result.output


@patch("maintainability_index.cli.load_config", return_value=AnalysisConfig())
@patch("maintainability_index.cli.analyze_repository")
def test_analyze_json_output(mock_analyze, _mock_config):
    mock_analyze.return_value = _report()
    result = runner.invoke(app, ["analyze", "octo/widgets", "--format", "json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["repository"] == "octo/widgets"
    assert data["composite"]["tier"] == "Good"
    assert len(data["metrics"]) == 4


@patch("maintainability_index.cli.analyze_repository")
@patch("maintainability_index.cli.load_config")
def test_options_forwarded_to_config(mock_config, mock_analyze):
    mock_config.return_value = AnalysisConfig()
    mock_analyze.return_value = _report()
    result = runner.invoke(
        app,
        [
            "analyze",
            "octo/widgets",
            "-t",
            "ghp_cli",
            "--llm",
            "-m",
            "some/model",
            "--enhancer-timeout",
            "5",
            "--window-days",
            "30",
            "--parallel",
            "-q",
        ],
    )
    assert result.exit_code == 0
    mock_config.assert_called_once_with(
        token="ghp_cli",
        enable_enhancer=True,
        enhancer_timeout=5.0,
        commit_window_days=30,
        llm_model="some/model",
        parallel_metrics=True,
    )
    mock_analyze.assert_called_once_with("octo/widgets", mock_config.return_value)


@patch("maintainability_index.cli.load_config", return_value=AnalysisConfig())
@patch("maintainability_index.cli.analyze_repository")
def test_configuration_error_exit_code(mock_analyze, _mock_config):
    mock_analyze.side_effect = ConfigurationError("GITHUB_TOKEN is required.")
    result = runner.invoke(app, ["analyze", "octo/widgets"])
    assert result.exit_code == 2
    assert "GITHUB_TOKEN is required." in result.output


@patch("maintainability_index.cli.load_config", return_value=AnalysisConfig())
@patch("maintainability_index.cli.analyze_repository")
def test_not_found_exit_code(mock_analyze, _mock_config):
    mock_analyze.side_effect = RepositoryNotFoundError("octo/missing")
    result = runner.invoke(app, ["analyze", "octo/missing"])
    assert result.exit_code == 1
    assert "not found" in result.output


@patch("maintainability_index.cli.load_config", return_value=AnalysisConfig())
@patch("maintainability_index.cli.analyze_repository")
def test_rate_limit_exit_code(mock_analyze, _mock_config):
    mock_analyze.side_effect = RateLimitError(429)
    result = runner.invoke(app, ["analyze", "octo/widgets"])
    assert result.exit_code == 1
    assert "retry later" in result.output


@patch("maintainability_index.cli.load_config")
def test_invalid_config_exit_code(mock_config):
    mock_config.side_effect = ConfigurationError("enhancer_timeout must be a positive number")
    result = runner.invoke(app, ["analyze", "octo/widgets"])
    assert result.exit_code == 2


@patch("maintainability_index.cli.set_verify_ssl")
@patch("maintainability_index.cli.load_config", return_value=AnalysisConfig())
@patch("maintainability_index.cli.analyze_repository")
def test_insecure_disables_ssl_verification(mock_analyze, _mock_config, mock_set_ssl):
    mock_analyze.return_value = _report()
    result = runner.invoke(app, ["analyze", "octo/widgets", "--insecure"])
    assert result.exit_code == 0
    mock_set_ssl.assert_called_once_with(False)


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output
