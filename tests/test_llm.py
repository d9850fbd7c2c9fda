"""
Tests for the narrative enhancer.
"""

from unittest.mock import patch

import httpx
import pytest

from maintainability_index.exceptions import ConfigurationError, EnhancementError
from maintainability_index.llm import (
    MAX_TOKENS,
    TEMPERATURE,
    NarrativeEnhancer,
    build_prompt,
    extract_error_message,
)
from maintainability_index.metrics.base import MetricName, MetricResult

RESULTS = (
    MetricResult.scored(MetricName.CODE_QUALITY, 81.0, ["Low complexity."]),
    MetricResult.unavailable(MetricName.COMMUNITY_HEALTH, "issues are disabled for this repository"),
)


class TestExtractErrorMessage:
    """Test API error message extraction."""

    def test_structured_error(self):
        body = '{"error": {"message": "Rate limit exceeded", "code": 429}}'
        assert extract_error_message(body) == "[429] Rate limit exceeded"

    def test_message_without_code(self):
        assert extract_error_message('{"error": {"message": "Bad key"}}') == "Bad key"

    def test_plain_body_truncated(self):
        message = extract_error_message("x" * 500)
        assert message == "x" * 200 + "..."

    def test_empty_body(self):
        assert extract_error_message("") == "No error details available"


class TestBuildPrompt:
    """Test prompt assembly."""

    def test_includes_scores_commits_and_readme(self, make_snapshot, make_commits):
        snapshot = make_snapshot(
            {"README.md": "# Widgets\n" + "w" * 5000},
            commits=make_commits(25),
            description="Tiny widgets",
        )
        prompt = build_prompt(snapshot, RESULTS)
        assert "Repository: octo/widgets" in prompt
        assert "Description: Tiny widgets" in prompt
        assert "- Code Quality: 81.0" in prompt
        assert "  * Low complexity." in prompt
        assert "Community Health: unavailable (issues are disabled" in prompt
        assert "- Change number 19" in prompt
        assert "- Change number 20" not in prompt
        assert "Details." not in prompt
        assert "w" * 3990 in prompt
        assert "w" * 4000 not in prompt

    def test_without_readme_or_commits(self, make_snapshot):
        prompt = build_prompt(make_snapshot(), RESULTS)
        assert "README excerpt" not in prompt
        assert "Recent commit messages" not in prompt


class TestNarrativeEnhancer:
    """Test the chat-completions client."""

    def test_requires_api_key(self):
        with patch.dict("os.environ", {}, clear=True):
            with pytest.raises(ConfigurationError, match="OPENROUTER_API_KEY"):
                NarrativeEnhancer()

    def test_reads_key_from_env(self):
        with patch.dict("os.environ", {"OPENROUTER_API_KEY": "sk-env"}):
            assert NarrativeEnhancer().api_key == "sk-env"

    @patch("maintainability_index.llm._get_http_client")
    def test_summarize(self, mock_get_client, make_snapshot):
        mock_response = mock_get_client.return_value.post.return_value
        mock_response.status_code = 200
        mock_response.json.return_value = {
            "choices": [{"message": {"content": "  Solid project.  "}}],
            "usage": {"total_tokens": 120},
        }

        enhancer = NarrativeEnhancer(api_key="sk-test", model="test/model")
        assert enhancer.summarize(make_snapshot(), RESULTS) == "Solid project."

        _, kwargs = mock_get_client.return_value.post.call_args
        assert kwargs["json"]["model"] == "test/model"
        assert kwargs["json"]["temperature"] == TEMPERATURE
        assert kwargs["json"]["max_tokens"] == MAX_TOKENS
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
        assert kwargs["headers"]["X-Title"] == "Repository Maintainability Index"

    @patch("maintainability_index.llm._get_http_client")
    def test_http_error(self, mock_get_client):
        mock_response = mock_get_client.return_value.post.return_value
        mock_response.status_code = 401
        mock_response.text = '{"error": {"message": "No auth", "code": 401}}'

        enhancer = NarrativeEnhancer(api_key="sk-test")
        with pytest.raises(EnhancementError, match=r"401.*\[401\] No auth") as exc_info:
            enhancer.complete("hello")
        assert exc_info.value.status_code == 401

    @patch("maintainability_index.llm._get_http_client")
    def test_transport_error(self, mock_get_client):
        mock_get_client.return_value.post.side_effect = httpx.ConnectError("down")
        with pytest.raises(EnhancementError, match="down"):
            NarrativeEnhancer(api_key="sk-test").complete("hello")

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"choices": []},
            {"choices": [{"message": {"content": ""}}]},
            {"choices": [{"message": {}}]},
            ["not", "an", "object"],
        ],
    )
    @patch("maintainability_index.llm._get_http_client")
    def test_malformed_payload(self, mock_get_client, payload):
        mock_response = mock_get_client.return_value.post.return_value
        mock_response.status_code = 200
        mock_response.json.return_value = payload
        with pytest.raises(EnhancementError):
            NarrativeEnhancer(api_key="sk-test").complete("hello")

    @patch("maintainability_index.llm._get_http_client")
    def test_invalid_json(self, mock_get_client):
        mock_response = mock_get_client.return_value.post.return_value
        mock_response.status_code = 200
        mock_response.json.side_effect = ValueError("bad json")
        with pytest.raises(EnhancementError, match="not valid JSON"):
            NarrativeEnhancer(api_key="sk-test").complete("hello")
