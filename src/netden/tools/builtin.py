"""
tools/builtin.py — Built-in Tool Sets

build_default_registry() registers every module tool set on a fresh
registry. Registration order is catalog order.
"""

from __future__ import annotations

from netden.tools.calendar import register_calendar_tools
from netden.tools.daily import register_daily_tools
from netden.tools.kanban import register_kanban_tools
from netden.tools.links import register_link_tools
from netden.tools.notes import register_notes_tools
from netden.tools.registry import ToolRegistry


def build_default_registry(
    enable_calendar: bool = True,
    enable_kanban: bool = True,
    enable_notes: bool = True,
    enable_daily: bool = True,
) -> ToolRegistry:
    """
    Args:
        enable_calendar: Register calendar_* tools.
        enable_kanban:   Register kanban_* tools.
        enable_notes:    Register notes_* tools.
        enable_daily:    Register daily_overview, journal_* and items_* tools.
    """
    registry = ToolRegistry()
    if enable_calendar:
        register_calendar_tools(registry)
    if enable_kanban:
        register_kanban_tools(registry)
    if enable_notes:
        register_notes_tools(registry)
    if enable_daily:
        register_daily_tools(registry)
        register_link_tools(registry)
    return registry
