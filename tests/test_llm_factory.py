"""Tests for LLM factory, auto-detection and providers."""

from unittest.mock import MagicMock, patch

import pytest

from llm import LLMError, create_llm_provider
from llm import detect_provider


class TestAutoDetection:
    def test_detects_anthropic_key(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        assert detect_provider() == "claude"

    def test_detects_openai_key(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        assert detect_provider() == "openai"

    def test_prefers_anthropic_when_multiple(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        assert detect_provider() == "claude"

    def test_explicit_key_prefix_wins(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        assert detect_provider("sk-openai-key") == "openai"

    def test_no_keys_raises(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(LLMError, match="No LLM API key found"):
            detect_provider()


class TestCreateProvider:
    def test_explicit_claude_with_client(self):
        mock_client = MagicMock()
        provider = create_llm_provider(provider="claude", client=mock_client)
        assert provider.provider_name == "claude"
        assert provider.client is mock_client

    def test_explicit_openai_with_client(self):
        mock_client = MagicMock()
        provider = create_llm_provider(provider="openai", client=mock_client)
        assert provider.provider_name == "openai"
        assert provider.client is mock_client

    def test_unknown_provider_raises(self):
        with pytest.raises(LLMError, match="Unknown provider"):
            create_llm_provider(provider="gemini", client=MagicMock())

    def test_auto_with_anthropic_key(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with patch("anthropic.Anthropic") as anthropic_cls:
            provider = create_llm_provider(timeout=30)
            assert provider.provider_name == "claude"
            anthropic_cls.assert_called_once_with(api_key="sk-ant-test", timeout=30)

    def test_default_models(self):
        mock_client = MagicMock()
        assert create_llm_provider(provider="claude", client=mock_client).model == "claude-sonnet-4-20250514"
        assert create_llm_provider(provider="openai", client=mock_client).model == "gpt-4o"

    def test_custom_model(self):
        provider = create_llm_provider(provider="openai", client=MagicMock(), model="gpt-4.1")
        assert provider.model == "gpt-4.1"


class TestProviders:
    def test_claude_generate(self):
        client = MagicMock()
        client.messages.create.return_value = MagicMock(content=[MagicMock(type="text", text='{"contact_updates": []}')])
        provider = create_llm_provider(provider="claude", client=client)

        out = provider.generate([{"role": "user", "content": "hi"}], system="sys", max_tokens=100)

        assert out == '{"contact_updates": []}'
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["system"] == "sys"
        assert kwargs["max_tokens"] == 100

    def test_openai_requests_json(self):
        client = MagicMock()
        client.chat.completions.create.return_value = MagicMock(
            choices=[MagicMock(message=MagicMock(content="{}"))]
        )
        provider = create_llm_provider(provider="openai", client=client)

        assert provider.generate([{"role": "user", "content": "hi"}], system="sys") == "{}"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0] == {"role": "system", "content": "sys"}

    def test_sdk_errors_become_llm_errors(self):
        client = MagicMock()
        client.chat.completions.create.side_effect = RuntimeError("socket closed")
        provider = create_llm_provider(provider="openai", client=client)
        with pytest.raises(LLMError, match="socket closed"):
            provider.generate([{"role": "user", "content": "hi"}])

    def test_empty_answer_is_an_error(self):
        client = MagicMock()
        client.chat.completions.create.return_value = MagicMock(
            choices=[MagicMock(message=MagicMock(content=None))]
        )
        provider = create_llm_provider(provider="openai", client=client)
        with pytest.raises(LLMError, match="empty answer"):
            provider.generate([{"role": "user", "content": "hi"}])
