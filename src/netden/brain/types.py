"""
brain/types.py — Completion Provider Data Models

Provider-facing types shared by the completion client and the turn
coordinator. The transcript is built from ChatMessage objects, which
serialise to the OpenAI/OpenRouter chat format via to_provider().
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"           # tool result fed back to the provider


# ─────────────────────────────────────────────────────────────────────────────
# Tool calling types
# ─────────────────────────────────────────────────────────────────────────────


class ToolCall(BaseModel):
    """A single tool invocation requested by the provider, arguments still raw."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Correlates the call with its result")
    name: str = Field(..., description="Tool/function name to call")
    raw_arguments: str = Field(default="{}", description="JSON string exactly as sent")

    def parsed_arguments(self) -> dict[str, Any]:
        return parse_tool_arguments(self.raw_arguments)

    def to_provider(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.raw_arguments},
        }


def parse_tool_arguments(raw: Optional[str]) -> dict[str, Any]:
    """
    Parse provider-supplied JSON arguments.

    Malformed JSON, or JSON that is not an object, degrades to an empty dict.
    """
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return {}
    return parsed if isinstance(parsed, dict) else {}


# ─────────────────────────────────────────────────────────────────────────────
# Message types
# ─────────────────────────────────────────────────────────────────────────────


class ChatMessage(BaseModel):
    """
    One transcript entry. Frozen: once appended it never changes.

    Assistant messages that request tools carry tool_calls; tool messages
    carry the tool_call_id of the call they answer.
    """
    model_config = ConfigDict(frozen=True)

    role: Role
    content: Optional[str] = None
    name: Optional[str] = None
    tool_call_id: Optional[str] = None
    tool_calls: tuple[ToolCall, ...] = ()

    @classmethod
    def system(cls, content: str) -> "ChatMessage":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant_tool_calls(
        cls, content: Optional[str], tool_calls: list[ToolCall]
    ) -> "ChatMessage":
        return cls(role=Role.ASSISTANT, content=content, tool_calls=tuple(tool_calls))

    @classmethod
    def tool(cls, tool_call_id: str, content: str) -> "ChatMessage":
        return cls(role=Role.TOOL, tool_call_id=tool_call_id, content=content)

    def to_provider(self) -> dict[str, Any]:
        """Translate to the OpenAI chat message dict, dropping unset fields."""
        entry: dict[str, Any] = {"role": self.role.value}
        if self.content is not None:
            entry["content"] = self.content
        if self.name:
            entry["name"] = self.name
        if self.tool_call_id:
            entry["tool_call_id"] = self.tool_call_id
        if self.tool_calls:
            entry["tool_calls"] = [tc.to_provider() for tc in self.tool_calls]
        return entry


# ─────────────────────────────────────────────────────────────────────────────
# Request / response
# ─────────────────────────────────────────────────────────────────────────────


class CompletionConfig(BaseModel):
    """Per-request completion configuration."""
    model: str
    temperature: float = 0.2
    timeout_seconds: float = 30.0
    parallel_tool_calls: bool = True


class CompletionMessage(BaseModel):
    """The assistant message of the first choice, normalised."""
    content: Optional[str] = None
    tool_calls: list[ToolCall] = Field(default_factory=list)
    model: str = ""

    @property
    def has_tool_calls(self) -> bool:
        return len(self.tool_calls) > 0

    @property
    def text(self) -> str:
        return (self.content or "").strip()
