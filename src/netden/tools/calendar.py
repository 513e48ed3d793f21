"""
tools/calendar.py — Calendar Tools

Registered tools:
  - calendar_list_events  → list events/tasks with date and status filters
  - calendar_create_event → create an event or task            (mutating)
  - calendar_update_event → update an event, revision-checked  (mutating)
  - calendar_delete_event → delete an event                    (mutating)
"""

from __future__ import annotations

from typing import Any

from netden.agent.types import Module
from netden.exceptions import EntityNotFoundError
from netden.tools.args import clamp, compact, opt_int, opt_str
from netden.tools.registry import ToolRegistry
from netden.tools.types import ToolContext
from netden.workspace.models import EVENT_STATUSES, EVENT_TYPES

_SCOPES = ["this", "all", "this_and_following"]


def register_calendar_tools(registry: ToolRegistry) -> None:

    @registry.register(
        name="calendar_list_events",
        description="List events/tasks from calendar with optional date and status filters",
        module=Module.CALENDAR,
        parameters={
            "type": "object",
            "properties": {
                "q": {"type": "string"},
                "type": {"type": "string", "enum": list(EVENT_TYPES)},
                "status": {"type": "string", "enum": list(EVENT_STATUSES)},
                "dateFrom": {"type": "string", "description": "YYYY-MM-DD"},
                "dateTo": {"type": "string", "description": "YYYY-MM-DD"},
                "limit": {"type": "number"},
            },
        },
    )
    async def calendar_list_events(ctx: ToolContext, **args: Any) -> list[dict]:
        limit = clamp(opt_int(args, "limit"), 1, 100, 30)
        events = await ctx.store.list_events(
            ctx.user_id,
            q=opt_str(args, "q"),
            type=opt_str(args, "type"),
            status=opt_str(args, "status"),
            date_from=opt_str(args, "dateFrom"),
            date_to=opt_str(args, "dateTo"),
        )
        return [e.to_dict() for e in events[:limit]]

    @registry.register(
        name="calendar_create_event",
        description="Create event/task in calendar",
        module=Module.CALENDAR,
        mutating=True,
        parameters={
            "type": "object",
            "required": ["title", "date"],
            "properties": {
                "title": {"type": "string", "minLength": 1},
                "description": {"type": "string"},
                "date": {"type": "string", "description": "YYYY-MM-DD"},
                "time": {"type": "string", "description": "HH:MM"},
                "type": {"type": "string", "enum": list(EVENT_TYPES)},
                "status": {"type": "string", "enum": list(EVENT_STATUSES)},
            },
        },
    )
    async def calendar_create_event(ctx: ToolContext, **args: Any) -> dict:
        event = await ctx.store.create_event(
            ctx.user_id,
            **compact(
                title=opt_str(args, "title"),
                date=opt_str(args, "date"),
                time=opt_str(args, "time"),
                description=opt_str(args, "description"),
                type=opt_str(args, "type"),
                status=opt_str(args, "status"),
            ),
        )
        return event.to_dict()

    @registry.register(
        name="calendar_update_event",
        description="Update existing calendar event/task",
        module=Module.CALENDAR,
        mutating=True,
        parameters={
            "type": "object",
            "required": ["eventId"],
            "properties": {
                "eventId": {"type": "string"},
                "title": {"type": "string"},
                "description": {"type": "string"},
                "date": {"type": "string"},
                "time": {"type": "string"},
                "status": {"type": "string", "enum": list(EVENT_STATUSES)},
                "type": {"type": "string", "enum": list(EVENT_TYPES)},
                "scope": {"type": "string", "enum": _SCOPES},
                "revision": {"type": "number"},
            },
        },
    )
    async def calendar_update_event(ctx: ToolContext, **args: Any) -> dict:
        changes = compact(
            title=opt_str(args, "title"),
            description=opt_str(args, "description"),
            date=opt_str(args, "date"),
            time=opt_str(args, "time"),
            status=opt_str(args, "status"),
            type=opt_str(args, "type"),
        )
        # Single events only: every scope resolves to the event itself.
        event = await ctx.store.update_event(
            ctx.user_id, args["eventId"], changes, revision=opt_int(args, "revision"),
        )
        return event.to_dict()

    @registry.register(
        name="calendar_delete_event",
        description="Delete calendar event/task",
        module=Module.CALENDAR,
        mutating=True,
        parameters={
            "type": "object",
            "required": ["eventId"],
            "properties": {
                "eventId": {"type": "string"},
                "scope": {"type": "string", "enum": _SCOPES},
            },
        },
    )
    async def calendar_delete_event(ctx: ToolContext, **args: Any) -> dict:
        if not await ctx.store.delete_event(ctx.user_id, args["eventId"]):
            raise EntityNotFoundError("event", args["eventId"])
        return {"deleted": True, "id": args["eventId"]}
