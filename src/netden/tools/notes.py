"""
tools/notes.py — Notes Tools

Registered tools:
  - notes_search → search notes by text, tag or parent
  - notes_create → create a note (mutating)
  - notes_update → edit a note   (mutating)
  - notes_delete → delete a note (mutating)
"""

from __future__ import annotations

from typing import Any

from netden.agent.types import Module
from netden.exceptions import EntityNotFoundError
from netden.tools.args import compact, opt_str, str_list
from netden.tools.registry import ToolRegistry
from netden.tools.types import ToolContext

_MAX_NOTES = 50


def register_notes_tools(registry: ToolRegistry) -> None:

    @registry.register(
        name="notes_search",
        description="Search notes by text, tag or parent note",
        module=Module.NOTES,
        parameters={
            "type": "object",
            "properties": {
                "q": {"type": "string"},
                "tag": {"type": "string"},
                "parentId": {"type": "string"},
            },
        },
    )
    async def notes_search(ctx: ToolContext, **args: Any) -> list[dict]:
        notes = await ctx.store.list_notes(
            ctx.user_id,
            q=opt_str(args, "q"),
            tag=opt_str(args, "tag"),
            parent_id=opt_str(args, "parentId"),
        )
        return [n.to_dict() for n in notes[:_MAX_NOTES]]

    @registry.register(
        name="notes_create",
        description="Create a note",
        module=Module.NOTES,
        mutating=True,
        parameters={
            "type": "object",
            "required": ["title"],
            "properties": {
                "title": {"type": "string", "minLength": 1},
                "body": {"type": "string"},
                "parentId": {"type": "string"},
                "tags": {"type": "array", "items": {"type": "string"}},
                "eventLinks": {"type": "array", "items": {"type": "string"}},
            },
        },
    )
    async def notes_create(ctx: ToolContext, **args: Any) -> dict:
        note = await ctx.store.create_note(
            ctx.user_id,
            title=args["title"].strip(),
            **compact(
                body=args.get("body") if isinstance(args.get("body"), str) else None,
                parent_id=opt_str(args, "parentId"),
                tags=str_list(args, "tags"),
                event_links=str_list(args, "eventLinks"),
            ),
        )
        return note.to_dict()

    @registry.register(
        name="notes_update",
        description="Update a note",
        module=Module.NOTES,
        mutating=True,
        parameters={
            "type": "object",
            "required": ["noteId"],
            "properties": {
                "noteId": {"type": "string"},
                "title": {"type": "string"},
                "body": {"type": "string"},
                "parentId": {"type": ["string", "null"]},
                "tags": {"type": "array", "items": {"type": "string"}},
                "eventLinks": {"type": "array", "items": {"type": "string"}},
            },
        },
    )
    async def notes_update(ctx: ToolContext, **args: Any) -> dict:
        changes = compact(
            title=opt_str(args, "title"),
            body=args.get("body") if isinstance(args.get("body"), str) else None,
            parent_id=opt_str(args, "parentId"),
            tags=str_list(args, "tags"),
            event_links=str_list(args, "eventLinks"),
        )
        if "parentId" in args and args["parentId"] is None:
            changes["parent_id"] = None
        note = await ctx.store.update_note(ctx.user_id, args["noteId"], changes)
        return note.to_dict()

    @registry.register(
        name="notes_delete",
        description="Delete a note",
        module=Module.NOTES,
        mutating=True,
        parameters={
            "type": "object",
            "required": ["noteId"],
            "properties": {"noteId": {"type": "string"}},
        },
    )
    async def notes_delete(ctx: ToolContext, **args: Any) -> dict:
        if not await ctx.store.delete_note(ctx.user_id, args["noteId"]):
            raise EntityNotFoundError("note", args["noteId"])
        return {"deleted": True, "id": args["noteId"]}
