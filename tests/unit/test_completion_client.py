"""
tests/unit/test_completion_client.py — Completion Client Unit Tests

The OpenAI SDK call is replaced with an AsyncMock; no network traffic.

Covers:
  - unconfigured client (no API key) resolves to None
  - SDK timeout / status / connection errors and malformed tool calls resolve to None
  - hard timeout around a hung request
  - response normalisation: text, tool calls, empty choices
  - request shape: tools only sent when present, transcript serialisation
  - tool argument parsing degrades to {}
"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import openai
import pytest

from netden.brain.completion_client import OpenRouterCompletionClient
from netden.brain.types import (
    ChatMessage,
    CompletionConfig,
    ToolCall,
    parse_tool_arguments,
)

_REQUEST = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")
_CONFIG = CompletionConfig(model="openai/gpt-4o-mini", timeout_seconds=1.0)
_TRANSCRIPT = [ChatMessage.system("be brief"), ChatMessage.user("hi")]


def _response(content=None, tool_calls=None, choices=True):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(
        model="openai/gpt-4o-mini",
        choices=[SimpleNamespace(message=message)] if choices else [],
    )


def _sdk_tool_call(call_id, name, arguments):
    return SimpleNamespace(id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


@pytest.fixture
def client():
    c = OpenRouterCompletionClient(api_key="sk-test", http_referer="https://netden.app",
                                   app_title="NetDen")
    c._client.chat.completions.create = AsyncMock()
    return c


def _create(client) -> AsyncMock:
    return client._client.chat.completions.create


class TestUnconfigured:
    @pytest.mark.asyncio
    async def test_no_key_returns_none(self):
        client = OpenRouterCompletionClient(api_key=None)
        assert client.is_configured is False
        assert await client.complete(_TRANSCRIPT, [], _CONFIG) is None


class TestFailures:
    @pytest.mark.asyncio
    async def test_sdk_timeout(self, client):
        _create(client).side_effect = openai.APITimeoutError(request=_REQUEST)
        assert await client.complete(_TRANSCRIPT, [], _CONFIG) is None

    @pytest.mark.asyncio
    async def test_non_2xx(self, client):
        response = httpx.Response(503, request=_REQUEST)
        _create(client).side_effect = openai.APIStatusError(
            "upstream overloaded", response=response, body=None,
        )
        assert await client.complete(_TRANSCRIPT, [], _CONFIG) is None

    @pytest.mark.asyncio
    async def test_connection_error(self, client):
        _create(client).side_effect = openai.APIConnectionError(request=_REQUEST)
        assert await client.complete(_TRANSCRIPT, [], _CONFIG) is None

    @pytest.mark.asyncio
    async def test_hung_request_hits_hard_timeout(self, client):
        async def hang(**kwargs):
            await asyncio.sleep(10)

        _create(client).side_effect = hang
        config = CompletionConfig(model="m", timeout_seconds=0.05)
        assert await client.complete(_TRANSCRIPT, [], config) is None

    @pytest.mark.asyncio
    async def test_empty_choices(self, client):
        _create(client).return_value = _response(choices=False)
        assert await client.complete(_TRANSCRIPT, [], _CONFIG) is None

    @pytest.mark.asyncio
    async def test_tool_call_without_id(self, client):
        _create(client).return_value = _response(tool_calls=[
            _sdk_tool_call(None, "notes_search", '{"q": "plan"}'),
        ])
        assert await client.complete(_TRANSCRIPT, [], _CONFIG) is None


class TestResponses:
    @pytest.mark.asyncio
    async def test_text_reply(self, client):
        _create(client).return_value = _response(content=" Hello! ")
        message = await client.complete(_TRANSCRIPT, [], _CONFIG)

        assert message.text == "Hello!"
        assert message.has_tool_calls is False
        assert message.model == "openai/gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_tool_calls(self, client):
        _create(client).return_value = _response(tool_calls=[
            _sdk_tool_call("call_1", "notes_search", '{"q": "plan"}'),
            _sdk_tool_call("call_2", "daily_overview", None),
        ])
        message = await client.complete(_TRANSCRIPT, [], _CONFIG)

        assert [tc.id for tc in message.tool_calls] == ["call_1", "call_2"]
        assert message.tool_calls[0].parsed_arguments() == {"q": "plan"}
        assert message.tool_calls[1].raw_arguments == "{}"

    @pytest.mark.asyncio
    async def test_request_without_tools(self, client):
        _create(client).return_value = _response(content="ok")
        await client.complete(_TRANSCRIPT, [], _CONFIG)

        kwargs = _create(client).await_args.kwargs
        assert "tools" not in kwargs
        assert kwargs["model"] == "openai/gpt-4o-mini"
        assert kwargs["messages"] == [
            {"role": "system", "content": "be brief"},
            {"role": "user", "content": "hi"},
        ]

    @pytest.mark.asyncio
    async def test_request_with_tools(self, client):
        _create(client).return_value = _response(content="ok")
        tools = [{"type": "function", "function": {"name": "x", "parameters": {}}}]
        await client.complete(_TRANSCRIPT, tools, _CONFIG)

        kwargs = _create(client).await_args.kwargs
        assert kwargs["tools"] == tools
        assert kwargs["tool_choice"] == "auto"
        assert kwargs["parallel_tool_calls"] is True


class TestTypes:
    @pytest.mark.parametrize("raw", [None, "", "not json", "[1, 2]", '"text"'])
    def test_bad_arguments_become_empty(self, raw):
        assert parse_tool_arguments(raw) == {}

    def test_assistant_tool_call_message(self):
        call = ToolCall(id="c1", name="notes_search", raw_arguments='{"q":"x"}')
        msg = ChatMessage.assistant_tool_calls(None, [call])
        assert msg.to_provider() == {
            "role": "assistant",
            "tool_calls": [{
                "id": "c1",
                "type": "function",
                "function": {"name": "notes_search", "arguments": '{"q":"x"}'},
            }],
        }

    def test_tool_result_message(self):
        assert ChatMessage.tool("c1", '{"ok":true}').to_provider() == {
            "role": "tool", "tool_call_id": "c1", "content": '{"ok":true}',
        }
