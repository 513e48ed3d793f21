"""
agent/context_builder.py — Workspace Context Snapshot

Assembles the "Relevant workspace context" block of the user message.

  1. One read-only tool call per selected module, all concurrent
  2. Merge results into unified entities: cards, notes and daily items that
     point at a calendar event fold into that event's entity
  3. Sort by date (undated last), then title
  4. Render one line per entity and cap the fragment at max_chars

Any module read that fails, times out or returns the wrong shape simply
contributes nothing.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Optional, Sequence

from netden.agent.types import Module
from netden.observability.logger import get_logger
from netden.tools.dispatcher import ToolDispatcher
from netden.tools.types import ToolContext, ToolResult

log = get_logger(__name__)

DEFAULT_MAX_CHARS = 2400
DEFAULT_LOOKAHEAD_DAYS = 14
_UNDATED = "9999-99-99"
_ELLIPSIS = "…"


@dataclass
class UnifiedEntity:
    key: str
    title: str
    sources: list[Module]
    date: Optional[str] = None
    time: Optional[str] = None
    status: Optional[str] = None
    event: Optional[dict[str, Any]] = None
    cards: list[dict[str, Any]] = field(default_factory=list)
    notes: list[dict[str, Any]] = field(default_factory=list)

    def add_source(self, module: Module) -> None:
        if module not in self.sources:
            self.sources.append(module)

    def render(self) -> str:
        sources = ",".join(m.value for m in self.sources)
        line = f"- [{self.key}] {self.title} ({sources})"
        if self.date:
            line += f" date={self.date}"
        if self.time:
            line += f" time={self.time}"
        if self.status:
            line += f" status={self.status}"
        return line


@dataclass
class UnifiedContext:
    entities: list[UnifiedEntity]
    prompt_fragment: str


def truncate_fragment(value: str, max_chars: int) -> str:
    """Cap value at max_chars; a cut value ends with an ellipsis."""
    if len(value) <= max_chars:
        return value
    if max_chars < 1:
        return ""
    return value[: max_chars - 1] + _ELLIPSIS


def _event_key(event_id: str) -> str:
    return f"event:{event_id}"


def _first_link(record: dict[str, Any]) -> Optional[str]:
    links = record.get("eventLinks") or []
    if isinstance(links, list) and links and isinstance(links[0], str):
        return links[0]
    return None


def build_unified_context(
    events: Sequence[dict[str, Any]],
    cards: Sequence[dict[str, Any]],
    notes: Sequence[dict[str, Any]],
    daily: Sequence[dict[str, Any]],
    max_chars: int = DEFAULT_MAX_CHARS,
) -> UnifiedContext:
    entities: dict[str, UnifiedEntity] = {}

    for event in events:
        key = _event_key(event["id"])
        entities[key] = UnifiedEntity(
            key=key,
            title=event.get("title", ""),
            sources=[Module.CALENDAR],
            date=event.get("date"),
            time=event.get("time"),
            status=event.get("status"),
            event=event,
        )

    for card in cards:
        linked = _first_link(card)
        key = _event_key(linked) if linked else f"kanban:{card['id']}"
        existing = entities.get(key)
        if existing:
            existing.cards.append(card)
            existing.add_source(Module.KANBAN)
            continue
        entities[key] = UnifiedEntity(
            key=key, title=card.get("title", ""), sources=[Module.KANBAN],
            date=card.get("dueDate"), cards=[card],
        )

    for note in notes:
        linked = _first_link(note)
        key = _event_key(linked) if linked else f"note:{note['id']}"
        existing = entities.get(key)
        if existing:
            existing.notes.append(note)
            existing.add_source(Module.NOTES)
            continue
        entities[key] = UnifiedEntity(
            key=key, title=note.get("title", ""), sources=[Module.NOTES], notes=[note],
        )

    for item in daily:
        linked = item.get("linkedEventId")
        key = _event_key(linked) if linked else f"daily:{item['id']}"
        existing = entities.get(key)
        if existing:
            existing.add_source(Module.DAILY)
            existing.date = existing.date or item.get("date")
            existing.status = existing.status or item.get("status")
            continue
        entities[key] = UnifiedEntity(
            key=key, title=item.get("title", ""), sources=[Module.DAILY],
            date=item.get("date"), status=item.get("status"),
        )

    ordered = sorted(entities.values(), key=lambda e: (e.date or _UNDATED, e.title))
    fragment = "\n".join(e.render() for e in ordered)
    return UnifiedContext(entities=ordered, prompt_fragment=truncate_fragment(fragment, max_chars))


# ─────────────────────────────────────────────────────────────────────────────
# Snapshot builder
# ─────────────────────────────────────────────────────────────────────────────


def _records(result: Any) -> list[dict[str, Any]]:
    if isinstance(result, ToolResult) and result.ok and isinstance(result.data, list):
        return [r for r in result.data if isinstance(r, dict) and "id" in r]
    return []


def _daily_items(result: Any) -> list[dict[str, Any]]:
    if isinstance(result, ToolResult) and result.ok and isinstance(result.data, dict):
        items = result.data.get("items")
        if isinstance(items, list):
            return [i for i in items if isinstance(i, dict) and "id" in i]
    return []


class ContextSnapshotBuilder:
    """
    Reads the selected modules through the dispatcher and merges them.

    Usage:
        builder = ContextSnapshotBuilder(dispatcher, max_chars=2400)
        context = await builder.build("what's due tomorrow?", [Module.DAILY], ctx)
    """

    def __init__(
        self,
        dispatcher: ToolDispatcher,
        max_chars: int = DEFAULT_MAX_CHARS,
        lookahead_days: int = DEFAULT_LOOKAHEAD_DAYS,
    ) -> None:
        self.dispatcher = dispatcher
        self.max_chars = max_chars
        self.lookahead_days = lookahead_days

    def _today(self, ctx: ToolContext) -> date:
        try:
            return datetime.fromisoformat(ctx.now_iso.replace("Z", "+00:00")).date()
        except ValueError:
            return date.today()

    async def _read(
        self, wanted: bool, tool: str, args: dict[str, Any], ctx: ToolContext
    ) -> Optional[ToolResult]:
        if not wanted:
            return None
        return await self.dispatcher.execute(tool, args, ctx)

    async def build(
        self, message: str, modules: Sequence[Module], ctx: ToolContext
    ) -> UnifiedContext:
        today = self._today(ctx)
        date_from = today.isoformat()
        date_to = (today + timedelta(days=self.lookahead_days)).isoformat()
        selected = set(modules)

        notes_args: dict[str, Any] = {}
        if len(message) > 4:
            notes_args["q"] = message[:80]

        results = await asyncio.gather(
            self._read(Module.CALENDAR in selected, "calendar_list_events",
                       {"dateFrom": date_from, "dateTo": date_to, "limit": 50}, ctx),
            self._read(Module.KANBAN in selected, "kanban_list_cards", {}, ctx),
            self._read(Module.NOTES in selected, "notes_search", notes_args, ctx),
            self._read(Module.DAILY in selected, "daily_overview",
                       {"startDate": date_from, "days": self.lookahead_days}, ctx),
            return_exceptions=True,
        )
        for tool, result in zip(
            ("calendar_list_events", "kanban_list_cards", "notes_search", "daily_overview"),
            results,
        ):
            if isinstance(result, BaseException):
                log.warning("context.read_failed", tool=tool, error=str(result))
            elif isinstance(result, ToolResult) and not result.ok:
                log.info("context.read_empty", tool=tool, error=result.error)

        calendar, kanban, notes, daily = results
        context = build_unified_context(
            events=_records(calendar),
            cards=_records(kanban),
            notes=_records(notes),
            daily=_daily_items(daily),
            max_chars=self.max_chars,
        )
        log.debug("context.built", modules=[m.value for m in modules],
                  entities=len(context.entities), fragment_chars=len(context.prompt_fragment))
        return context
