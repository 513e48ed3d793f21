"""
tools/ — NetDen Tool System

Public interface for the tool system.

Usage:
    from netden.tools import ToolDispatcher, ToolContext, build_default_registry

    registry = build_default_registry()
    dispatcher = ToolDispatcher(registry, timeout_seconds=15)
    result = await dispatcher.execute("calendar_list_events", {"limit": 5}, ctx)
"""

from __future__ import annotations

from netden.tools.builtin import build_default_registry
from netden.tools.dispatcher import ToolDispatcher
from netden.tools.registry import ToolRegistry
from netden.tools.types import (
    RejectedArgs,
    TaggedToolResult,
    ToolContext,
    ToolDescriptor,
    ToolInvocation,
    ToolResult,
    ValidArgs,
)

__all__ = [
    "build_default_registry",
    "ToolDispatcher",
    "ToolRegistry",
    # Types
    "RejectedArgs",
    "TaggedToolResult",
    "ToolContext",
    "ToolDescriptor",
    "ToolInvocation",
    "ToolResult",
    "ValidArgs",
]
