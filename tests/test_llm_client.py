"""Tests for the OpenRouter model gateway."""
import sys
import types
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.llm_client import ModelGateway, ModelOptions, get_client, get_model


def fake_openai_client(content="{}", side_effect=None):
    client = MagicMock()
    response = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=11, completion_tokens=7),
    )
    client.chat.completions.create = AsyncMock(return_value=response, side_effect=side_effect)
    return client


class TestGetModel:
    def test_get_model_returns_default_when_no_override(self):
        with patch("app.llm_client.settings") as mock_settings:
            mock_settings.openrouter_model = ""
            mock_settings.default_model = "google/gemini-2.5-flash"

            assert get_model() == "google/gemini-2.5-flash"

    def test_get_model_returns_openrouter_override(self):
        with patch("app.llm_client.settings") as mock_settings:
            mock_settings.openrouter_model = "openai/gpt-4.1"
            mock_settings.default_model = "google/gemini-2.5-flash"

            assert get_model() == "openai/gpt-4.1"


class TestGetClient:
    def test_get_client_uses_openrouter(self):
        with patch("app.llm_client.settings") as mock_settings:
            mock_settings.openrouter_api_key = "sk-or-valid-key"
            mock_settings.openrouter_base_url = "https://openrouter.ai/api/v1"

            openai_module = types.ModuleType("openai")
            mock_openai = MagicMock()
            openai_module.AsyncOpenAI = mock_openai

            with patch.dict(sys.modules, {"openai": openai_module}):
                get_client()

            mock_openai.assert_called_once_with(
                api_key="sk-or-valid-key",
                base_url="https://openrouter.ai/api/v1",
            )


class TestModelGateway:
    @pytest.mark.asyncio
    async def test_decide_sends_system_and_user_messages(self):
        client = fake_openai_client(content='{"type": "ANSWER", "answer": "x"}')
        gateway = ModelGateway(client, model="google/gemini-2.5-flash")

        text = await gateway.decide("sys", "user prompt", ModelOptions(temperature=0.3))

        assert text == '{"type": "ANSWER", "answer": "x"}'
        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "google/gemini-2.5-flash"
        assert kwargs["temperature"] == 0.3
        assert kwargs["messages"] == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "user prompt"},
        ]
        assert "extra_body" not in kwargs

    @pytest.mark.asyncio
    async def test_thinking_budget_maps_to_reasoning_tokens(self):
        client = fake_openai_client()
        gateway = ModelGateway(client, model="m")

        await gateway.decide("sys", "u", ModelOptions(temperature=0.3, thinking_budget=2048))

        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["extra_body"] == {"reasoning": {"max_tokens": 2048}}

    @pytest.mark.asyncio
    async def test_search_always_enables_web_plugin(self):
        client = fake_openai_client(content="Ward 1 was merged in 2025.")
        gateway = ModelGateway(client, model="m")

        text = await gateway.search("ward merger", ModelOptions(temperature=0.3))

        assert text == "Ward 1 was merged in 2025."
        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["extra_body"] == {"plugins": [{"id": "web"}]}
        assert kwargs["messages"] == [
            {
                "role": "user",
                "content": "Search for the following and summarize the key facts: ward merger",
            }
        ]

    @pytest.mark.asyncio
    async def test_empty_choices_return_empty_text(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=SimpleNamespace(choices=[], usage=None))
        gateway = ModelGateway(client, model="m")

        assert await gateway.decide("", "u", ModelOptions(temperature=0.3)) == ""
        assert client.chat.completions.create.await_args.kwargs["messages"] == [
            {"role": "user", "content": "u"}
        ]

    @pytest.mark.asyncio
    async def test_failures_are_logged_and_reraised(self):
        client = fake_openai_client(side_effect=TimeoutError("timed out"))
        gateway = ModelGateway(client, model="m")

        with patch("app.llm_client.log_service.log_llm_call") as log_call:
            with pytest.raises(TimeoutError):
                await gateway.decide("sys", "u", ModelOptions(temperature=0.3))

        assert log_call.call_args.kwargs["status"] == "error"
        assert log_call.call_args.kwargs["error"] == "timed out"
        assert client.chat.completions.create.await_count == 1

    @pytest.mark.asyncio
    async def test_successful_call_logs_token_usage(self):
        client = fake_openai_client()
        gateway = ModelGateway(client, model="m")

        with patch("app.llm_client.log_service.log_llm_call") as log_call:
            await gateway.decide("sys", "u", ModelOptions(temperature=0.3))

        assert log_call.call_args.kwargs["input_tokens"] == 11
        assert log_call.call_args.kwargs["output_tokens"] == 7
        assert log_call.call_args.kwargs["caller"] == "decide"
