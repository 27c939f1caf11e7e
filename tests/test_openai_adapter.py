"""Tests for the OpenAI argument generator."""

import json

import pytest
from unittest.mock import AsyncMock, MagicMock

from toolbridge.adapters.vendor_adapter_openai import OpenAIArgumentGenerator
from toolbridge.infra.errors import InvocationError
from toolbridge.models.capability import ConversationContext
from toolbridge.services.schema_compiler import compile_schema

from conftest import make_tool


def _client(content):
    mock_message = MagicMock()
    mock_message.content = content
    mock_choice = MagicMock()
    mock_choice.message = mock_message
    mock_response = MagicMock()
    mock_response.choices = [mock_choice]

    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=mock_response)
    return client


class TestOpenAIArgumentGenerator:

    @pytest.mark.asyncio
    async def test_generates_arguments_from_conversation(self, search_tool):
        client = _client(json.dumps({"query": "cat pictures"}))
        generator = OpenAIArgumentGenerator(model="gpt-4o-mini", client=client)
        validator = compile_schema(search_tool.input_schema)

        args = await generator.generate_arguments(
            ConversationContext(recent_messages="user: find me cat pictures"),
            search_tool,
            validator,
        )

        assert args == {"query": "cat pictures"}
        kwargs = client.chat.completions.create.call_args[1]
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["response_format"] == {"type": "json_object"}
        system_prompt = kwargs["messages"][0]["content"]
        assert "Tool: search" in system_prompt
        assert '"query"' in system_prompt
        assert kwargs["messages"][1]["content"] == "user: find me cat pictures"

    @pytest.mark.asyncio
    async def test_no_declared_properties_skips_model(self):
        client = _client("{}")
        tool = make_tool("ping")
        generator = OpenAIArgumentGenerator(client=client)

        assert await generator.generate_arguments(ConversationContext(), tool, compile_schema(tool.input_schema)) == {}
        client.chat.completions.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_json_reply(self, search_tool):
        generator = OpenAIArgumentGenerator(client=_client("not json"))
        with pytest.raises(InvocationError) as exc_info:
            await generator.generate_arguments(
                ConversationContext(), search_tool, compile_schema(search_tool.input_schema)
            )
        assert exc_info.value.tool_name == "search"

    @pytest.mark.asyncio
    async def test_non_object_reply(self, search_tool):
        generator = OpenAIArgumentGenerator(client=_client("[1, 2]"))
        with pytest.raises(InvocationError):
            await generator.generate_arguments(
                ConversationContext(), search_tool, compile_schema(search_tool.input_schema)
            )

    @pytest.mark.asyncio
    async def test_api_failure(self, search_tool):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=RuntimeError("rate limited"))
        generator = OpenAIArgumentGenerator(client=client)

        with pytest.raises(InvocationError) as exc_info:
            await generator.generate_arguments(
                ConversationContext(), search_tool, compile_schema(search_tool.input_schema)
            )
        assert "rate limited" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_records_token_usage(self, search_tool):
        from prometheus_client import REGISTRY

        labels = {"provider": "openai", "model": "usage-test-model", "type": "prompt"}
        before = REGISTRY.get_sample_value("llm_tokens_total", labels) or 0
        client = _client(json.dumps({"query": "cats"}))
        response = client.chat.completions.create.return_value
        response.usage.prompt_tokens = 12
        response.usage.completion_tokens = 3
        generator = OpenAIArgumentGenerator(model="usage-test-model", client=client)

        await generator.generate_arguments(
            ConversationContext(), search_tool, compile_schema(search_tool.input_schema)
        )
        assert REGISTRY.get_sample_value("llm_tokens_total", labels) == before + 12

    def test_missing_api_key(self, monkeypatch):
        from toolbridge.infra.config import config
        monkeypatch.setattr(config, "OPENAI_API_KEY", None)
        generator = OpenAIArgumentGenerator()
        with pytest.raises(ValueError):
            generator.client
