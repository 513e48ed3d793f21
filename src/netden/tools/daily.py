"""
tools/daily.py — Daily Planner & Journal Tools

Registered tools:
  - daily_overview → rolling planner view: calendar tasks + due kanban cards
  - journal_list   → journal entries by date range, text or tag
  - journal_get    → one journal entry
  - journal_create → new journal entry    (mutating)
  - journal_update → edit a journal entry (mutating)
  - journal_delete → delete an entry      (mutating)
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any

from netden.agent.types import Module
from netden.exceptions import EntityNotFoundError
from netden.tools.args import clamp, compact, opt_int, opt_str, str_list
from netden.tools.registry import ToolRegistry
from netden.tools.types import ToolContext

_MAX_ENTRIES = 100


def _parse_day(value: str | None, fallback: date) -> date:
    if not value:
        return fallback
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        return fallback


async def build_daily_overview(ctx: ToolContext, start_date: str | None, days: int | None) -> dict:
    """
    Planner items for [start, start + days]: tasks from the calendar and
    kanban cards due in the window. days is clamped to 1..31 (default 7).
    """
    start = _parse_day(start_date, _parse_day(ctx.now_iso, date.today()))
    span = clamp(days, 1, 31, 7)
    date_from = start.isoformat()
    date_to = (start + timedelta(days=span)).isoformat()

    tasks = await ctx.store.list_events(
        ctx.user_id, type="task", date_from=date_from, date_to=date_to,
    )
    cards = [
        c for c in await ctx.store.list_cards(ctx.user_id)
        if c.due_date and date_from <= c.due_date <= date_to
    ]

    items = [
        {
            "id": f"daily-event-{t.id}",
            "title": t.title,
            "date": t.date,
            "source": "calendar",
            "status": t.status or "pending",
            "linkedEventId": t.id,
        }
        for t in tasks
    ] + [
        {
            "id": f"daily-card-{c.id}",
            "title": c.title,
            "date": c.due_date,
            "source": "kanban",
            "status": "pending",
            "linkedEventId": c.event_links[0] if c.event_links else None,
        }
        for c in cards
    ]
    items.sort(key=lambda item: item["date"])

    done = sum(1 for item in items if item["status"] == "done")
    return {
        "dateFrom": date_from,
        "dateTo": date_to,
        "items": items,
        "stats": {"total": len(items), "done": done, "pending": len(items) - done},
    }


def register_daily_tools(registry: ToolRegistry) -> None:

    @registry.register(
        name="daily_overview",
        description="Daily planner overview: tasks and due cards for the next days",
        module=Module.DAILY,
        parameters={
            "type": "object",
            "properties": {
                "startDate": {"type": "string", "description": "YYYY-MM-DD"},
                "days": {"type": "number"},
            },
        },
    )
    async def daily_overview(ctx: ToolContext, **args: Any) -> dict:
        return await build_daily_overview(ctx, opt_str(args, "startDate"), opt_int(args, "days"))

    @registry.register(
        name="journal_list",
        description="List journal entries by date, date range, text or tag",
        module=Module.DAILY,
        parameters={
            "type": "object",
            "properties": {
                "date": {"type": "string", "description": "Exact date YYYY-MM-DD"},
                "dateFrom": {"type": "string"},
                "dateTo": {"type": "string"},
                "q": {"type": "string"},
                "tag": {"type": "string"},
            },
        },
    )
    async def journal_list(ctx: ToolContext, **args: Any) -> list[dict]:
        entries = await ctx.store.list_journal(
            ctx.user_id,
            date=opt_str(args, "date"),
            date_from=opt_str(args, "dateFrom"),
            date_to=opt_str(args, "dateTo"),
            q=opt_str(args, "q"),
            tag=opt_str(args, "tag"),
        )
        return [e.to_dict() for e in entries[:_MAX_ENTRIES]]

    @registry.register(
        name="journal_get",
        description="Get one journal entry",
        module=Module.DAILY,
        parameters={
            "type": "object",
            "required": ["entryId"],
            "properties": {"entryId": {"type": "string"}},
        },
    )
    async def journal_get(ctx: ToolContext, **args: Any) -> dict:
        entry = await ctx.store.get_journal(ctx.user_id, args["entryId"])
        if entry is None:
            raise EntityNotFoundError("journal entry", args["entryId"])
        return entry.to_dict()

    @registry.register(
        name="journal_create",
        description="Create a journal entry",
        module=Module.DAILY,
        mutating=True,
        parameters={
            "type": "object",
            "required": ["title", "date"],
            "properties": {
                "title": {"type": "string", "minLength": 1},
                "body": {"type": "string"},
                "date": {"type": "string", "description": "Date YYYY-MM-DD"},
                "mood": {"type": "string"},
                "tags": {"type": "array", "items": {"type": "string"}},
            },
        },
    )
    async def journal_create(ctx: ToolContext, **args: Any) -> dict:
        entry = await ctx.store.create_journal(
            ctx.user_id,
            title=args["title"].strip(),
            date=args["date"].strip(),
            **compact(
                body=args.get("body") if isinstance(args.get("body"), str) else None,
                mood=opt_str(args, "mood"),
                tags=str_list(args, "tags"),
            ),
        )
        return entry.to_dict()

    @registry.register(
        name="journal_update",
        description="Update a journal entry",
        module=Module.DAILY,
        mutating=True,
        parameters={
            "type": "object",
            "required": ["entryId"],
            "properties": {
                "entryId": {"type": "string"},
                "title": {"type": "string"},
                "body": {"type": "string"},
                "date": {"type": "string"},
                "mood": {"type": "string"},
                "tags": {"type": "array", "items": {"type": "string"}},
            },
        },
    )
    async def journal_update(ctx: ToolContext, **args: Any) -> dict:
        changes = compact(
            title=opt_str(args, "title"),
            body=args.get("body") if isinstance(args.get("body"), str) else None,
            date=opt_str(args, "date"),
            mood=opt_str(args, "mood"),
            tags=str_list(args, "tags"),
        )
        entry = await ctx.store.update_journal(ctx.user_id, args["entryId"], changes)
        return entry.to_dict()

    @registry.register(
        name="journal_delete",
        description="Delete a journal entry",
        module=Module.DAILY,
        mutating=True,
        parameters={
            "type": "object",
            "required": ["entryId"],
            "properties": {"entryId": {"type": "string"}},
        },
    )
    async def journal_delete(ctx: ToolContext, **args: Any) -> dict:
        if not await ctx.store.delete_journal(ctx.user_id, args["entryId"]):
            raise EntityNotFoundError("journal entry", args["entryId"])
        return {"deleted": True, "id": args["entryId"]}
