"""Tests for the OpenAI chat-completions adapter with a mocked client."""

from unittest.mock import MagicMock, patch

import pytest
from openai import OpenAIError
from pydantic import SecretStr

from src.adapters.llm import OpenAIChatAdapter
from src.domain.ports import LanguageModelError
from src.infrastructure.config_manager import LanguageModelConfig


def _completion(content):
    completion = MagicMock()
    completion.choices = [MagicMock()]
    completion.choices[0].message.content = content
    completion.usage = None
    return completion


@pytest.fixture
def config():
    return LanguageModelConfig(api_key=SecretStr("sk-test"), model="gpt-4o", temperature=0.1)


class TestCompleteJson:
    """Request shape and failure mapping."""

    def test_requests_json_object_completion(self, config):
        client = MagicMock()
        client.chat.completions.create.return_value = _completion('{"action": "add", "records": []}')

        raw = OpenAIChatAdapter(config, client=client).complete_json("system text", "add a snack")

        assert raw == '{"action": "add", "records": []}'
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["temperature"] == 0.1
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"] == [
            {"role": "system", "content": "system text"},
            {"role": "user", "content": "add a snack"},
        ]

    def test_empty_reply_is_error(self, config):
        client = MagicMock()
        client.chat.completions.create.return_value = _completion("")
        with pytest.raises(LanguageModelError) as exc_info:
            OpenAIChatAdapter(config, client=client).complete_json("s", "u")
        assert str(exc_info.value) == "No response from AI"

    def test_api_error_wrapped(self, config):
        client = MagicMock()
        client.chat.completions.create.side_effect = OpenAIError("rate limited")
        with pytest.raises(LanguageModelError) as exc_info:
            OpenAIChatAdapter(config, client=client).complete_json("s", "u")
        assert "rate limited" in str(exc_info.value)


class TestClientConstruction:
    """Lazy client creation from configuration."""

    def test_missing_key(self):
        adapter = OpenAIChatAdapter(LanguageModelConfig())
        with pytest.raises(LanguageModelError) as exc_info:
            adapter.complete_json("s", "u")
        assert str(exc_info.value) == "OPENAI_API_KEY not configured"

    def test_client_built_with_timeout_and_base_url(self):
        config = LanguageModelConfig(api_key=SecretStr("sk-test"), timeout=30, base_url="https://llm.internal/v1")
        with patch("src.adapters.llm.openai_adapter.OpenAI") as mock_openai:
            OpenAIChatAdapter(config).client
        mock_openai.assert_called_once_with(api_key="sk-test", base_url="https://llm.internal/v1", timeout=30)
