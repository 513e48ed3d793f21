"""
agent/types.py — Turn Data Contracts

Wire-facing models for one agent turn. Field names are snake_case in Python
and camelCase on the wire (alias generator), so request bodies like
{"actionDecision": {"actionId": "…", "approved": false}} parse directly.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """JSON-safe dict with camelCase keys and unset optionals dropped."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ─────────────────────────────────────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────────────────────────────────────

class Language(str, Enum):
    EN = "en"
    RU = "ru"


class Module(str, Enum):
    CALENDAR = "calendar"
    KANBAN = "kanban"
    NOTES = "notes"
    DAILY = "daily"


ALL_MODULES: tuple[Module, ...] = (
    Module.CALENDAR, Module.KANBAN, Module.NOTES, Module.DAILY,
)


class IntentType(str, Enum):
    QUERY = "query"
    ACTION = "action"
    NAVIGATE = "navigate"
    CLARIFY = "clarify"
    UNKNOWN = "unknown"


class ActionKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    MOVE = "move"
    GENERATE = "generate"


class MessageRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ProfileStyle(str, Enum):
    FRIENDLY = "friendly"
    BALANCED = "balanced"
    FORMAL = "formal"


# ─────────────────────────────────────────────────────────────────────────────
# Intent
# ─────────────────────────────────────────────────────────────────────────────

class Intent(_WireModel):
    type: IntentType
    confidence: float
    requires_confirmation: bool = False
    action_kind: Optional[ActionKind] = None
    navigate_to: Optional[str] = None


# ─────────────────────────────────────────────────────────────────────────────
# Turn input
# ─────────────────────────────────────────────────────────────────────────────

class HistoryMessage(_WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    role: MessageRole
    content: str
    name: Optional[str] = None
    tool_call_id: Optional[str] = None


class MemoryItem(_WireModel):
    id: str
    value: str
    pinned: bool = False
    updated_at: str = ""


class AgentProfile(_WireModel):
    name: Optional[str] = None      # falls back to agent.assistant_name
    style: ProfileStyle = ProfileStyle.BALANCED
    adapt_tone: bool = True


class AgentSettings(_WireModel):
    profile: AgentProfile = Field(default_factory=AgentProfile)
    role: Optional[str] = None


class ActionDecision(_WireModel):
    action_id: str
    approved: bool

    @field_validator("action_id")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("actionDecision.actionId is required")
        return v


class TurnInput(_WireModel):
    message: Optional[str] = None
    session_id: str
    history: list[HistoryMessage] = Field(default_factory=list)
    memory: list[MemoryItem] = Field(default_factory=list)
    settings: AgentSettings = Field(default_factory=AgentSettings)
    action_decision: Optional[ActionDecision] = None

    @field_validator("session_id")
    @classmethod
    def _session_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("sessionId is required")
        return v


class UserContext(_WireModel):
    """Ambient identity of the caller; authentication happens upstream."""
    user_id: str
    user_name: str
    timezone: str = "UTC"
    now_iso: str
    workspace_id: str = "default"
    user_role: Optional[str] = None

    @property
    def now(self) -> datetime:
        return datetime.fromisoformat(self.now_iso.replace("Z", "+00:00"))


# ─────────────────────────────────────────────────────────────────────────────
# Proposals + results
# ─────────────────────────────────────────────────────────────────────────────

class ActionProposal(_WireModel):
    """
    A deferred mutating tool call awaiting approval.

    Never mutated after creation. owner_id stays server-side: it is excluded
    from every serialisation.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    tool_name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    summary: str
    created_at: datetime
    expires_at: datetime
    owner_id: str = Field(exclude=True)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


class TurnResult(_WireModel):
    text: str
    language: Language
    intent: Intent
    used_modules: list[Module] = Field(default_factory=list)
    navigate_to: Optional[str] = None
    pending_action: Optional[ActionProposal] = None
