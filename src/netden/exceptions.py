"""
exceptions.py — NetDen Unified Error Hierarchy

Every layer raises typed subclasses of NetDenError. They are absorbed at the
dispatcher, coordinator and stream-client boundaries, so none of them ever
escapes TurnCoordinator.run_turn().

Hierarchy:
    NetDenError
    ├── ToolError
    │   ├── ToolNotFoundError
    │   └── ToolTimeoutError
    ├── PendingActionError
    │   └── PendingActionStoreError
    ├── CompletionError
    │   ├── CompletionTimeoutError
    │   └── CompletionUnavailableError
    ├── TransportError
    │   └── StreamProtocolError
    └── WorkspaceError
        └── EntityNotFoundError
"""

from __future__ import annotations


# ─────────────────────────────────────────────────────────────────────────────
# Root
# ─────────────────────────────────────────────────────────────────────────────

class NetDenError(Exception):
    """Base class for all NetDen exceptions."""


# ─────────────────────────────────────────────────────────────────────────────
# Tool layer
# ─────────────────────────────────────────────────────────────────────────────

class ToolError(NetDenError):
    """Base for all tool-related errors."""


class ToolNotFoundError(ToolError):
    """Requested tool is not registered."""

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(f"Unknown tool: {tool_name}")


class ToolTimeoutError(ToolError):
    """Tool execution exceeded its timeout."""


# ─────────────────────────────────────────────────────────────────────────────
# Pending actions
# ─────────────────────────────────────────────────────────────────────────────

class PendingActionError(NetDenError):
    """Base for pending-action store errors."""


class PendingActionStoreError(PendingActionError):
    """The backing store could not be read or written."""


# ─────────────────────────────────────────────────────────────────────────────
# Completion provider
# ─────────────────────────────────────────────────────────────────────────────

class CompletionError(NetDenError):
    """Base for completion-provider errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CompletionTimeoutError(CompletionError):
    """The provider did not answer within the configured timeout."""


class CompletionUnavailableError(CompletionError):
    """Provider unreachable, unauthorised, or answered with a non-2xx status."""


# ─────────────────────────────────────────────────────────────────────────────
# Streaming transport
# ─────────────────────────────────────────────────────────────────────────────

class TransportError(NetDenError):
    """Base for stream transport errors."""


class StreamProtocolError(TransportError):
    """A stream block could not be parsed."""


# ─────────────────────────────────────────────────────────────────────────────
# Workspace store
# ─────────────────────────────────────────────────────────────────────────────

class WorkspaceError(NetDenError):
    """Base for workspace persistence errors."""


class EntityNotFoundError(WorkspaceError):
    """A calendar event, card, note or journal entry does not exist."""

    def __init__(self, kind: str, entity_id: str) -> None:
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found")


__all__ = [
    "NetDenError",
    "ToolError",
    "ToolNotFoundError",
    "ToolTimeoutError",
    "PendingActionError",
    "PendingActionStoreError",
    "CompletionError",
    "CompletionTimeoutError",
    "CompletionUnavailableError",
    "TransportError",
    "StreamProtocolError",
    "WorkspaceError",
    "EntityNotFoundError",
]
