"""
tools/links.py — Item Link Tools

Typed relations between events, tasks, notes and journal logs. Part of the
daily module.

Registered tools:
  - items_link       → link two items (mutating, idempotent)
  - items_unlink     → remove a link  (mutating)
  - items_list_links → every link touching an item
"""

from __future__ import annotations

from typing import Any

from netden.agent.types import Module
from netden.exceptions import EntityNotFoundError
from netden.tools.registry import ToolRegistry
from netden.tools.types import ToolContext
from netden.workspace.models import ITEM_TYPES, LINK_RELATIONS


def register_link_tools(registry: ToolRegistry) -> None:

    @registry.register(
        name="items_link",
        description="Link two workspace items (event, task, note, log) with a typed relation",
        module=Module.DAILY,
        mutating=True,
        parameters={
            "type": "object",
            "required": ["fromItemId", "fromItemType", "toItemId", "toItemType"],
            "properties": {
                "fromItemId": {"type": "string"},
                "fromItemType": {"type": "string", "enum": list(ITEM_TYPES)},
                "toItemId": {"type": "string"},
                "toItemType": {"type": "string", "enum": list(ITEM_TYPES)},
                "relationType": {"type": "string", "enum": list(LINK_RELATIONS)},
            },
        },
    )
    async def items_link(ctx: ToolContext, **args: Any) -> dict:
        link = await ctx.store.link_items(
            ctx.user_id,
            from_item_id=args["fromItemId"],
            from_item_type=args["fromItemType"],
            to_item_id=args["toItemId"],
            to_item_type=args["toItemType"],
            relation_type=args.get("relationType") or "references",
        )
        return link.to_dict()

    @registry.register(
        name="items_unlink",
        description="Remove a link between two items",
        module=Module.DAILY,
        mutating=True,
        parameters={
            "type": "object",
            "required": ["fromItemId", "toItemId"],
            "properties": {
                "fromItemId": {"type": "string"},
                "toItemId": {"type": "string"},
                "relationType": {"type": "string", "enum": list(LINK_RELATIONS)},
            },
        },
    )
    async def items_unlink(ctx: ToolContext, **args: Any) -> dict:
        removed = await ctx.store.unlink_items(
            ctx.user_id, args["fromItemId"], args["toItemId"],
            args.get("relationType") or "references",
        )
        if not removed:
            raise EntityNotFoundError("link", args["fromItemId"])
        return {"deleted": True}

    @registry.register(
        name="items_list_links",
        description="List links of an item",
        module=Module.DAILY,
        parameters={
            "type": "object",
            "required": ["itemId"],
            "properties": {"itemId": {"type": "string"}},
        },
    )
    async def items_list_links(ctx: ToolContext, **args: Any) -> list[dict]:
        links = await ctx.store.list_links(ctx.user_id, args["itemId"])
        return [link.to_dict() for link in links[:100]]
