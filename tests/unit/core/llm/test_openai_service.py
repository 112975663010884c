"""
Unit tests for OpenAI service request building and retries.

Tests verify:
- Schema unwrapping helper works correctly
- complete_json sends json_object or json_schema response formats
- Transient errors are retried within the configured bound
- Guardrails catch invalid schemas and empty answers
"""
import pytest
from unittest.mock import MagicMock, patch
import json

import httpx
import openai

from core.llm.openai_service import (
    OpenAIService,
    _is_retryable,
    _parse_reset_duration,
    _unwrap_schema_spec,
)
from core.llm.schema_models import MATCH_SCORE_SCHEMA


def _response(content):
    mock_message = MagicMock()
    mock_message.content = content
    mock_choice = MagicMock()
    mock_choice.message = mock_message
    mock_response = MagicMock()
    mock_response.choices = [mock_choice]
    return mock_response


def _connection_error():
    return openai.APIConnectionError(request=httpx.Request("POST", "https://api.example.com/v1"))


class TestUnwrapSchemaSpec:
    """Tests for the schema unwrapping helper."""

    def test_wrapper_schema_returns_name_strict_and_inner_schema(self):
        """Wrapped schemas should return name, strict flag, and inner schema."""
        name, strict, raw_schema = _unwrap_schema_spec(MATCH_SCORE_SCHEMA)

        assert name == "match_score_schema"
        assert strict is True
        assert raw_schema.get("type") == "object"
        assert set(raw_schema["required"]) == {
            "score", "skillMatch", "interestMatch", "experienceMatch",
            "reasoning", "matchedSkills", "suggestions",
        }

    def test_raw_schema_passes_through_unchanged(self):
        """Raw JSON schemas should pass through with defaults."""
        raw = {"type": "object", "properties": {"foo": {"type": "string"}}}
        name, strict, result = _unwrap_schema_spec(raw)

        assert name == "match_response"
        assert strict is False
        assert result == raw


class TestRetryHelpers:

    def test_parse_reset_duration(self):
        assert _parse_reset_duration("500ms") == pytest.approx(0.5)
        assert _parse_reset_duration("1m30s") == pytest.approx(90.0)
        assert _parse_reset_duration("") == 0.0

    def test_connection_errors_are_retryable(self):
        assert _is_retryable(_connection_error()) is True
        assert _is_retryable(ValueError("bad")) is False


class TestCompleteJson:
    """Tests for complete_json."""

    @pytest.fixture
    def service(self):
        """Create service with mocked client."""
        svc = OpenAIService(api_key="test", model="deepseek-chat", max_retries=2)
        svc.client = MagicMock()
        svc.client.chat.completions.create.return_value = _response(json.dumps({"score": 1}))
        return svc

    def test_default_mode_sends_json_object(self, service):
        service.complete_json("prompt", "system", MATCH_SCORE_SCHEMA)

        call_kwargs = service.client.chat.completions.create.call_args[1]
        assert call_kwargs["response_format"] == {"type": "json_object"}
        assert call_kwargs["model"] == "deepseek-chat"
        assert call_kwargs["temperature"] == 0.3
        assert call_kwargs["messages"][0] == {"role": "system", "content": "system"}
        assert call_kwargs["messages"][1] == {"role": "user", "content": "prompt"}

    def test_json_schema_mode_sends_unwrapped_schema(self, service):
        service.response_format = "json_schema"
        service.complete_json("prompt", "system", MATCH_SCORE_SCHEMA)

        call_kwargs = service.client.chat.completions.create.call_args[1]
        json_schema = call_kwargs["response_format"]["json_schema"]
        assert json_schema["name"] == "match_score_schema"
        assert json_schema["strict"] is True
        assert "name" not in json_schema["schema"]

    def test_json_schema_mode_rejects_invalid_schema(self, service):
        service.response_format = "json_schema"
        with pytest.raises(ValueError, match="Not a valid JSON Schema object"):
            service.complete_json("prompt", "system", {"not": "a schema"})

    def test_per_call_timeout_is_forwarded(self, service):
        service.complete_json("prompt", "system", timeout_seconds=0.5)

        assert service.client.chat.completions.create.call_args[1]["timeout"] == 0.5

    def test_returns_raw_content(self, service):
        assert service.complete_json("prompt", "system") == '{"score": 1}'

    def test_empty_content_raises_value_error(self, service):
        service.client.chat.completions.create.return_value = _response(None)
        with pytest.raises(ValueError):
            service.complete_json("prompt", "system")

    def test_transient_error_is_retried(self, service):
        service.client.chat.completions.create.side_effect = [
            _connection_error(),
            _response('{"ok": true}'),
        ]
        with patch("time.sleep"):
            assert service.complete_json("prompt", "system") == '{"ok": true}'
        assert service.client.chat.completions.create.call_count == 2

    def test_retries_are_bounded(self, service):
        service.client.chat.completions.create.side_effect = _connection_error()
        with patch("time.sleep"):
            with pytest.raises(openai.APIConnectionError):
                service.complete_json("prompt", "system")
        # 1 attempt + max_retries
        assert service.client.chat.completions.create.call_count == 3

    def test_non_transient_error_is_not_retried(self, service):
        service.client.chat.completions.create.side_effect = ValueError("boom")
        with pytest.raises(ValueError):
            service.complete_json("prompt", "system")
        assert service.client.chat.completions.create.call_count == 1


class TestUnconfiguredService:

    def test_missing_api_key_leaves_service_unconfigured(self):
        svc = OpenAIService(api_key=None)

        assert svc.client is None
        assert svc.is_configured is False

    def test_complete_json_without_client_raises_openai_error(self):
        svc = OpenAIService(api_key=None)
        with pytest.raises(openai.OpenAIError):
            svc.complete_json("prompt", "system")

    def test_client_is_built_without_sdk_retries(self):
        with patch("core.llm.openai_service.OpenAI") as mock_openai:
            OpenAIService(api_key="key", base_url="https://api.deepseek.com/v1", timeout_seconds=3.0)

        kwargs = mock_openai.call_args[1]
        assert kwargs["max_retries"] == 0
        assert kwargs["timeout"] == 3.0
        assert kwargs["base_url"] == "https://api.deepseek.com/v1"
