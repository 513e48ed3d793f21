"""
tools/kanban.py — Kanban Tools

Registered tools:
  - kanban_list_boards → boards with their columns
  - kanban_list_cards  → cards, optionally filtered by board
  - kanban_create_card → add a card to a column     (mutating)
  - kanban_update_card → edit card fields           (mutating)
  - kanban_move_card   → move a card between columns (mutating)
  - kanban_delete_card → delete a card              (mutating)
"""

from __future__ import annotations

from typing import Any

from netden.agent.types import Module
from netden.exceptions import EntityNotFoundError
from netden.tools.args import compact, opt_int, opt_str, str_list
from netden.tools.registry import ToolRegistry
from netden.tools.types import ToolContext

_MAX_CARDS = 100


def register_kanban_tools(registry: ToolRegistry) -> None:

    @registry.register(
        name="kanban_list_boards",
        description="List kanban boards with columns",
        module=Module.KANBAN,
        parameters={"type": "object", "properties": {}},
    )
    async def kanban_list_boards(ctx: ToolContext, **args: Any) -> list[dict]:
        return [b.to_dict() for b in await ctx.store.list_boards(ctx.user_id)]

    @registry.register(
        name="kanban_list_cards",
        description="List kanban cards with optional board filter",
        module=Module.KANBAN,
        parameters={
            "type": "object",
            "properties": {"boardId": {"type": "string"}},
        },
    )
    async def kanban_list_cards(ctx: ToolContext, **args: Any) -> list[dict]:
        cards = await ctx.store.list_cards(ctx.user_id, board_id=opt_str(args, "boardId"))
        cards.sort(key=lambda c: (c.due_date or "9999-99-99", -c.updated_at))
        return [c.to_dict() for c in cards[:_MAX_CARDS]]

    @registry.register(
        name="kanban_create_card",
        description="Create a kanban card in a column",
        module=Module.KANBAN,
        mutating=True,
        parameters={
            "type": "object",
            "required": ["columnId", "title"],
            "properties": {
                "columnId": {"type": "string"},
                "title": {"type": "string", "minLength": 1},
                "description": {"type": "string"},
                "position": {"type": "number"},
                "dueDate": {"type": "string"},
                "eventLinks": {"type": "array", "items": {"type": "string"}},
            },
        },
    )
    async def kanban_create_card(ctx: ToolContext, **args: Any) -> dict:
        card = await ctx.store.create_card(
            ctx.user_id,
            title=args["title"].strip(),
            column_id=args["columnId"],
            **compact(
                description=opt_str(args, "description"),
                due_date=opt_str(args, "dueDate"),
                event_links=str_list(args, "eventLinks"),
            ),
        )
        position = opt_int(args, "position")
        if position is not None:
            card = await ctx.store.move_card(ctx.user_id, card.id, card.column_id, position)
        return card.to_dict()

    @registry.register(
        name="kanban_update_card",
        description="Update kanban card fields",
        module=Module.KANBAN,
        mutating=True,
        parameters={
            "type": "object",
            "required": ["cardId"],
            "properties": {
                "cardId": {"type": "string"},
                "title": {"type": "string"},
                "description": {"type": "string"},
                "dueDate": {"type": ["string", "null"]},
                "eventLinks": {"type": "array", "items": {"type": "string"}},
            },
        },
    )
    async def kanban_update_card(ctx: ToolContext, **args: Any) -> dict:
        changes = compact(
            title=opt_str(args, "title"),
            description=opt_str(args, "description"),
            due_date=opt_str(args, "dueDate"),
            event_links=str_list(args, "eventLinks"),
        )
        if "dueDate" in args and args["dueDate"] is None:
            changes["due_date"] = None
        card = await ctx.store.update_card(ctx.user_id, args["cardId"], changes)
        return card.to_dict()

    @registry.register(
        name="kanban_move_card",
        description="Move kanban card to another column and/or position",
        module=Module.KANBAN,
        mutating=True,
        parameters={
            "type": "object",
            "required": ["cardId", "columnId"],
            "properties": {
                "cardId": {"type": "string"},
                "columnId": {"type": "string"},
                "position": {"type": "number"},
            },
        },
    )
    async def kanban_move_card(ctx: ToolContext, **args: Any) -> dict:
        card = await ctx.store.move_card(
            ctx.user_id, args["cardId"], args["columnId"], opt_int(args, "position"),
        )
        return card.to_dict()

    @registry.register(
        name="kanban_delete_card",
        description="Delete kanban card",
        module=Module.KANBAN,
        mutating=True,
        parameters={
            "type": "object",
            "required": ["cardId"],
            "properties": {"cardId": {"type": "string"}},
        },
    )
    async def kanban_delete_card(ctx: ToolContext, **args: Any) -> dict:
        if not await ctx.store.delete_card(ctx.user_id, args["cardId"]):
            raise EntityNotFoundError("card", args["cardId"])
        return {"deleted": True, "id": args["cardId"]}
