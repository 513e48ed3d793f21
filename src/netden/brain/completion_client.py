"""
brain/completion_client.py — OpenRouter Completion Client

One call to an OpenAI-compatible chat-completion endpoint (OpenRouter by
default) with a hard timeout. Provider failures never propagate: every
transport error, timeout, non-2xx answer or malformed body resolves to None,
which the turn coordinator turns into its localized fallback text.

No retry: a failed call costs the user one fallback message, not a stalled
turn.

Usage:
    client = OpenRouterCompletionClient(api_key=..., base_url=...)
    message = await client.complete(transcript, tools, CompletionConfig(model="openai/gpt-4o-mini"))
    if message is None:
        ...  # temporarily unavailable
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Optional

import openai
from openai import AsyncOpenAI
from pydantic import ValidationError

from netden.brain.types import ChatMessage, CompletionConfig, CompletionMessage, ToolCall
from netden.exceptions import CompletionError, CompletionTimeoutError, CompletionUnavailableError
from netden.observability.logger import get_logger

log = get_logger(__name__)

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"


class BaseCompletionClient(ABC):
    """
    Abstract completion client.

    Subclasses implement _request(), which may raise CompletionError.
    complete() is the public, never-raising entry point.
    """

    async def complete(
        self,
        messages: list[ChatMessage],
        tools: list[dict[str, Any]],
        config: CompletionConfig,
    ) -> Optional[CompletionMessage]:
        """Return the assistant message, or None on any provider failure."""
        try:
            return await asyncio.wait_for(
                self._request(messages, tools, config),
                timeout=config.timeout_seconds,
            )
        except asyncio.TimeoutError:
            log.warning("completion.timeout", model=config.model,
                        timeout_s=config.timeout_seconds)
            return None
        except CompletionError as e:
            log.warning("completion.failed", model=config.model, error=str(e),
                        error_type=type(e).__name__, status=e.status_code)
            return None

    @abstractmethod
    async def _request(
        self,
        messages: list[ChatMessage],
        tools: list[dict[str, Any]],
        config: CompletionConfig,
    ) -> Optional[CompletionMessage]:
        ...

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"


class OpenRouterCompletionClient(BaseCompletionClient):
    """
    OpenRouter client built on the AsyncOpenAI SDK.

    api_key=None means the provider is not configured; every call then
    resolves to None without touching the network.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = DEFAULT_BASE_URL,
        http_referer: Optional[str] = None,
        app_title: Optional[str] = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._client: Optional[AsyncOpenAI] = None
        if api_key:
            headers: dict[str, str] = {}
            if http_referer:
                headers["HTTP-Referer"] = http_referer
            if app_title:
                headers["X-Title"] = app_title
            self._client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                default_headers=headers or None,
                max_retries=0,
            )

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    async def _request(
        self,
        messages: list[ChatMessage],
        tools: list[dict[str, Any]],
        config: CompletionConfig,
    ) -> Optional[CompletionMessage]:
        if self._client is None:
            log.warning("completion.not_configured", reason="OPENROUTER_API_KEY is not set")
            return None

        log.debug("completion.request", model=config.model,
                  message_count=len(messages), tool_count=len(tools))

        extra: dict[str, Any] = {}
        if tools:
            extra = {
                "tools": tools,
                "tool_choice": "auto",
                "parallel_tool_calls": config.parallel_tool_calls,
            }

        try:
            response = await self._client.chat.completions.create(
                model=config.model,
                messages=[m.to_provider() for m in messages],
                temperature=config.temperature,
                timeout=config.timeout_seconds,
                **extra,
            )
        except openai.APITimeoutError as e:
            raise CompletionTimeoutError(str(e)) from e
        except openai.APIStatusError as e:
            raise CompletionUnavailableError(str(e), status_code=e.status_code) from e
        except openai.APIError as e:
            raise CompletionUnavailableError(str(e)) from e

        return self._from_provider_response(response)

    @staticmethod
    def _from_provider_response(response) -> Optional[CompletionMessage]:
        choices = getattr(response, "choices", None) or []
        if not choices or choices[0].message is None:
            log.warning("completion.empty_choices")
            return None

        msg = choices[0].message
        try:
            tool_calls = [
                ToolCall(
                    id=tc.id,
                    name=tc.function.name,
                    raw_arguments=tc.function.arguments or "{}",
                )
                for tc in (msg.tool_calls or [])
                if getattr(tc, "function", None) is not None
            ]
            result = CompletionMessage(
                content=msg.content,
                tool_calls=tool_calls,
                model=getattr(response, "model", "") or "",
            )
        except ValidationError as e:
            log.warning("completion.malformed_response", error=str(e))
            return None
        log.debug("completion.response", model=result.model,
                  tool_calls=len(result.tool_calls), has_text=bool(result.text))
        return result

    def __repr__(self) -> str:
        return f"<OpenRouterCompletionClient base_url={self._base_url!r}>"
