"""
tools/types.py — Tool System Data Models

Shared types used across the tool registry, the dispatcher and all module
tool sets.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from netden.agent.types import Module
from netden.workspace.store import WorkspaceStore


# ─────────────────────────────────────────────────────────────────────────────
# Registration metadata
# ─────────────────────────────────────────────────────────────────────────────

ToolHandler = Callable[..., Awaitable[Any]]


class ToolDescriptor(BaseModel):
    """
    Full metadata for a registered tool.

    parameters is a JSON Schema object; it is sent to the provider verbatim
    and used by the dispatcher to validate arguments before execution.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    description: str
    module: Module
    mutating: bool = False
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )
    execute: ToolHandler = Field(exclude=True)

    def to_provider_tool(self) -> dict[str, Any]:
        """OpenAI function-tool entry."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    def to_catalog_entry(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "module": self.module.value,
            "mutating": self.mutating,
            "parameters": self.parameters,
        }


# ─────────────────────────────────────────────────────────────────────────────
# Execution context / results
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ToolContext:
    """Ambient identity and collaborators passed to every handler."""
    user_id: str
    now_iso: str
    store: WorkspaceStore

    @property
    def today(self) -> str:
        return self.now_iso[:10]


class ToolResult(BaseModel):
    """Envelope returned to the coordinator and serialised into tool messages."""
    ok: bool
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, data: Any = None) -> "ToolResult":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: str) -> "ToolResult":
        return cls(ok=False, error=error)

    def envelope(self) -> dict[str, Any]:
        if self.ok:
            return {"ok": True, "data": self.data}
        return {"ok": False, "error": self.error}


class TaggedToolResult(BaseModel):
    """A batch result correlated with the provider's tool_call_id."""
    tool_call_id: str
    tool_name: str
    result: ToolResult


class ToolInvocation(BaseModel):
    """A parsed call ready for dispatch."""
    tool_call_id: str
    tool_name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


# ─────────────────────────────────────────────────────────────────────────────
# Validation verdicts
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ValidArgs:
    arguments: dict[str, Any]
    valid: bool = True


@dataclass(frozen=True)
class RejectedArgs:
    errors: tuple[str, ...]
    valid: bool = False

    @property
    def message(self) -> str:
        return "Invalid arguments: " + "; ".join(self.errors)


ValidationVerdict = Union[ValidArgs, RejectedArgs]
