"""
tests/unit/test_context_builder.py — Workspace Context Snapshot Tests

Covers:
  - build_unified_context: event-linked merging, ordering, rendering
  - truncate_fragment: max_chars and ellipsis
  - ContextSnapshotBuilder: reads only selected modules, survives failing
    tools, respects max_chars
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from netden.agent.context_builder import (
    ContextSnapshotBuilder,
    build_unified_context,
    truncate_fragment,
)
from netden.agent.types import Module
from netden.tools.builtin import build_default_registry
from netden.tools.dispatcher import ToolDispatcher
from netden.tools.types import ToolContext, ToolResult
from netden.workspace.store import InMemoryWorkspaceStore


# ── truncate_fragment ────────────────────────────────────────────────────────

class TestTruncate:
    def test_short_value_untouched(self):
        assert truncate_fragment("abc", 3) == "abc"

    def test_long_value_gets_ellipsis_within_max_chars(self):
        out = truncate_fragment("abcdefgh", 5)
        assert out == "abcd…"
        assert len(out) == 5

    @pytest.mark.parametrize("max_chars", [0, 1, 2])
    def test_tiny_limits_never_overflow(self, max_chars):
        assert len(truncate_fragment("abcdefgh", max_chars)) == max_chars

    def test_zero_limit_on_unified_context(self):
        events = [{"id": str(i), "title": f"Event {i}"} for i in range(30)]
        ctx = build_unified_context(events, [], [], [], max_chars=0)
        assert ctx.prompt_fragment == ""


# ── build_unified_context ────────────────────────────────────────────────────

class TestUnifiedContext:
    def test_linked_items_fold_into_event(self):
        ctx = build_unified_context(
            events=[{"id": "e1", "title": "Launch", "date": "2026-03-04",
                     "time": "10:00", "status": "pending"}],
            cards=[{"id": "c1", "title": "Slides", "eventLinks": ["e1"]}],
            notes=[{"id": "n1", "title": "Launch notes", "eventLinks": ["e1"]}],
            daily=[{"id": "daily-event-e1", "title": "Launch", "linkedEventId": "e1",
                    "date": "2026-03-04", "status": "pending"}],
        )
        assert len(ctx.entities) == 1
        entity = ctx.entities[0]
        assert entity.key == "event:e1"
        assert entity.sources == [Module.CALENDAR, Module.KANBAN, Module.NOTES, Module.DAILY]
        assert [c["id"] for c in entity.cards] == ["c1"]
        assert [n["id"] for n in entity.notes] == ["n1"]
        assert ctx.prompt_fragment == (
            "- [event:e1] Launch (calendar,kanban,notes,daily) "
            "date=2026-03-04 time=10:00 status=pending"
        )

    def test_unlinked_items_stand_alone_and_sort_undated_last(self):
        ctx = build_unified_context(
            events=[{"id": "e1", "title": "Later", "date": "2026-03-09"}],
            cards=[{"id": "c1", "title": "Due soon", "dueDate": "2026-03-02"}],
            notes=[{"id": "n1", "title": "Alpha"}],
            daily=[],
        )
        assert [e.key for e in ctx.entities] == ["kanban:c1", "event:e1", "note:n1"]
        assert ctx.prompt_fragment.splitlines()[-1] == "- [note:n1] Alpha (notes)"

    def test_same_date_sorted_by_title(self):
        ctx = build_unified_context(
            events=[{"id": "b", "title": "Beta", "date": "2026-03-02"},
                    {"id": "a", "title": "Alpha", "date": "2026-03-02"}],
            cards=[], notes=[], daily=[],
        )
        assert [e.title for e in ctx.entities] == ["Alpha", "Beta"]

    def test_daily_item_fills_missing_fields(self):
        ctx = build_unified_context(
            events=[{"id": "e1", "title": "Undated"}],
            cards=[], notes=[],
            daily=[{"id": "d1", "title": "x", "linkedEventId": "e1",
                    "date": "2026-03-03", "status": "done"}],
        )
        entity = ctx.entities[0]
        assert (entity.date, entity.status) == ("2026-03-03", "done")

    def test_fragment_respects_max_chars(self):
        events = [{"id": str(i), "title": f"Event {i}", "date": "2026-03-02"} for i in range(50)]
        ctx = build_unified_context(events=events, cards=[], notes=[], daily=[], max_chars=120)
        assert len(ctx.prompt_fragment) == 120
        assert ctx.prompt_fragment.endswith("…")
        assert len(ctx.entities) == 50

    def test_empty(self):
        ctx = build_unified_context([], [], [], [])
        assert ctx.entities == []
        assert ctx.prompt_fragment == ""


# ── ContextSnapshotBuilder ───────────────────────────────────────────────────

@pytest.fixture
def tool_ctx():
    return ToolContext(user_id="u1", now_iso="2026-03-01T09:00:00.000Z",
                       store=InMemoryWorkspaceStore())


class TestSnapshotBuilder:
    @pytest.mark.asyncio
    async def test_reads_only_selected_modules(self, tool_ctx):
        dispatcher = AsyncMock()
        dispatcher.execute.return_value = ToolResult.success([])
        builder = ContextSnapshotBuilder(dispatcher, lookahead_days=14)

        await builder.build("what about my notes", [Module.NOTES, Module.CALENDAR], tool_ctx)

        calls = {c.args[0]: c.args[1] for c in dispatcher.execute.await_args_list}
        assert set(calls) == {"notes_search", "calendar_list_events"}
        assert calls["notes_search"] == {"q": "what about my notes"}
        assert calls["calendar_list_events"] == {
            "dateFrom": "2026-03-01", "dateTo": "2026-03-15", "limit": 50,
        }

    @pytest.mark.asyncio
    async def test_short_message_skips_note_query(self, tool_ctx):
        dispatcher = AsyncMock()
        dispatcher.execute.return_value = ToolResult.success([])
        await ContextSnapshotBuilder(dispatcher).build("hi", [Module.NOTES], tool_ctx)
        assert dispatcher.execute.await_args.args[:2] == ("notes_search", {})

    @pytest.mark.asyncio
    async def test_failing_reads_contribute_nothing(self, tool_ctx):
        async def execute(name, args, ctx):
            if name == "kanban_list_cards":
                raise RuntimeError("kanban down")
            if name == "notes_search":
                return ToolResult.failure("bad")
            if name == "daily_overview":
                return ToolResult.success("not a dict")
            return ToolResult.success([{"id": "e1", "title": "Dentist", "date": "2026-03-02"}])

        dispatcher = AsyncMock()
        dispatcher.execute.side_effect = execute
        context = await ContextSnapshotBuilder(dispatcher).build(
            "anything", list(Module), tool_ctx,
        )
        assert [e.key for e in context.entities] == ["event:e1"]

    @pytest.mark.asyncio
    async def test_end_to_end_with_real_tools(self, tool_ctx):
        store = tool_ctx.store
        event = await store.create_event("u1", title="Launch", date="2026-03-04")
        await store.create_card("u1", title="Slides", due_date="2026-03-03",
                                event_links=[event.id])
        dispatcher = ToolDispatcher(build_default_registry())

        context = await ContextSnapshotBuilder(dispatcher, max_chars=2400).build(
            "launch", [Module.CALENDAR, Module.KANBAN, Module.DAILY], tool_ctx,
        )
        assert len(context.entities) == 1
        entity = context.entities[0]
        assert entity.sources == [Module.CALENDAR, Module.KANBAN, Module.DAILY]
        assert "[event:" in context.prompt_fragment
