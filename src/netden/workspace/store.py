"""
workspace/store.py — Workspace Store

The CRUD collaborator behind the module tools. The agent core only talks to
this through tools, and the tools only see the WorkspaceStore interface.

InMemoryWorkspaceStore is the single-process backend: one asyncio.Lock
guards all per-user collections, so every method is atomic with respect to
other coroutines.
"""

from __future__ import annotations

import asyncio
import dataclasses
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any, Optional

from netden.exceptions import EntityNotFoundError, WorkspaceError
from netden.observability.logger import get_logger
from netden.workspace.models import (
    CalendarEvent,
    ItemLink,
    JournalEntry,
    KanbanBoard,
    KanbanCard,
    KanbanColumn,
    Note,
    new_id,
)

log = get_logger(__name__)

_DEFAULT_COLUMNS = ("To do", "In progress", "Done")


class WorkspaceStore(ABC):
    """Async CRUD interface for calendar, kanban, notes, journal and links."""

    # ── Calendar ──────────────────────────────────────────────────────────────

    @abstractmethod
    async def list_events(
        self, user_id: str, *, q: Optional[str] = None, type: Optional[str] = None,
        status: Optional[str] = None, date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> list[CalendarEvent]: ...

    @abstractmethod
    async def get_event(self, user_id: str, event_id: str) -> Optional[CalendarEvent]: ...

    @abstractmethod
    async def create_event(self, user_id: str, **fields: Any) -> CalendarEvent: ...

    @abstractmethod
    async def update_event(
        self, user_id: str, event_id: str, changes: dict[str, Any],
        revision: Optional[int] = None,
    ) -> CalendarEvent: ...

    @abstractmethod
    async def delete_event(self, user_id: str, event_id: str) -> bool: ...

    # ── Kanban ────────────────────────────────────────────────────────────────

    @abstractmethod
    async def list_boards(self, user_id: str) -> list[KanbanBoard]: ...

    @abstractmethod
    async def list_cards(
        self, user_id: str, *, board_id: Optional[str] = None,
        column_id: Optional[str] = None, q: Optional[str] = None,
    ) -> list[KanbanCard]: ...

    @abstractmethod
    async def create_card(self, user_id: str, **fields: Any) -> KanbanCard: ...

    @abstractmethod
    async def update_card(self, user_id: str, card_id: str, changes: dict[str, Any]) -> KanbanCard: ...

    @abstractmethod
    async def move_card(
        self, user_id: str, card_id: str, column_id: str, position: Optional[int] = None,
    ) -> KanbanCard: ...

    @abstractmethod
    async def delete_card(self, user_id: str, card_id: str) -> bool: ...

    # ── Notes ─────────────────────────────────────────────────────────────────

    @abstractmethod
    async def list_notes(
        self, user_id: str, *, q: Optional[str] = None, tag: Optional[str] = None,
        parent_id: Optional[str] = None,
    ) -> list[Note]: ...

    @abstractmethod
    async def create_note(self, user_id: str, **fields: Any) -> Note: ...

    @abstractmethod
    async def update_note(self, user_id: str, note_id: str, changes: dict[str, Any]) -> Note: ...

    @abstractmethod
    async def delete_note(self, user_id: str, note_id: str) -> bool: ...

    # ── Journal ───────────────────────────────────────────────────────────────

    @abstractmethod
    async def list_journal(
        self, user_id: str, *, date: Optional[str] = None, date_from: Optional[str] = None,
        date_to: Optional[str] = None, q: Optional[str] = None, tag: Optional[str] = None,
    ) -> list[JournalEntry]: ...

    @abstractmethod
    async def get_journal(self, user_id: str, entry_id: str) -> Optional[JournalEntry]: ...

    @abstractmethod
    async def create_journal(self, user_id: str, **fields: Any) -> JournalEntry: ...

    @abstractmethod
    async def update_journal(self, user_id: str, entry_id: str, changes: dict[str, Any]) -> JournalEntry: ...

    @abstractmethod
    async def delete_journal(self, user_id: str, entry_id: str) -> bool: ...

    # ── Links ─────────────────────────────────────────────────────────────────

    @abstractmethod
    async def link_items(self, user_id: str, **fields: Any) -> ItemLink: ...

    @abstractmethod
    async def unlink_items(
        self, user_id: str, from_item_id: str, to_item_id: str, relation_type: Optional[str] = None,
    ) -> int: ...

    @abstractmethod
    async def list_links(self, user_id: str, item_id: str) -> list[ItemLink]: ...


# ─────────────────────────────────────────────────────────────────────────────
# In-memory backend
# ─────────────────────────────────────────────────────────────────────────────


def _matches(q: Optional[str], *texts: Optional[str]) -> bool:
    if not q:
        return True
    needle = q.casefold()
    return any(needle in (t or "").casefold() for t in texts)


def _apply(record: Any, changes: dict[str, Any]) -> None:
    known = {f.name for f in dataclasses.fields(record)}
    for key, value in changes.items():
        if key in known and key != "id":
            setattr(record, key, value)
    if "updated_at" in known:
        record.updated_at = time.time()


class InMemoryWorkspaceStore(WorkspaceStore):
    """Per-process store. Data is scoped by user id and lost on restart."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._events: dict[str, dict[str, CalendarEvent]] = defaultdict(dict)
        self._boards: dict[str, dict[str, KanbanBoard]] = defaultdict(dict)
        self._cards: dict[str, dict[str, KanbanCard]] = defaultdict(dict)
        self._notes: dict[str, dict[str, Note]] = defaultdict(dict)
        self._journal: dict[str, dict[str, JournalEntry]] = defaultdict(dict)
        self._links: dict[str, dict[str, ItemLink]] = defaultdict(dict)

    # ── Calendar ──────────────────────────────────────────────────────────────

    async def list_events(self, user_id, *, q=None, type=None, status=None,
                          date_from=None, date_to=None):
        async with self._lock:
            events = [
                e for e in self._events[user_id].values()
                if _matches(q, e.title, e.description)
                and (type is None or e.type == type)
                and (status is None or e.status == status)
                and (date_from is None or e.date >= date_from)
                and (date_to is None or e.date <= date_to)
            ]
        return sorted(events, key=lambda e: (e.date, e.time or "", e.title))

    async def get_event(self, user_id, event_id):
        async with self._lock:
            return self._events[user_id].get(event_id)

    async def create_event(self, user_id, **fields):
        event = CalendarEvent(id=new_id(), **fields)
        async with self._lock:
            self._events[user_id][event.id] = event
        log.debug("workspace.event_created", event_id=event.id)
        return event

    async def update_event(self, user_id, event_id, changes, revision=None):
        async with self._lock:
            event = self._events[user_id].get(event_id)
            if event is None:
                raise EntityNotFoundError("event", event_id)
            if revision is not None and revision != event.revision:
                raise WorkspaceError(
                    f"revision conflict: expected {event.revision}, got {revision}"
                )
            _apply(event, changes)
            event.revision += 1
            return event

    async def delete_event(self, user_id, event_id):
        async with self._lock:
            return self._events[user_id].pop(event_id, None) is not None

    # ── Kanban ────────────────────────────────────────────────────────────────

    def _default_board(self, user_id: str) -> KanbanBoard:
        boards = self._boards[user_id]
        if boards:
            return next(iter(boards.values()))
        board = KanbanBoard(
            id=new_id(),
            title="Main",
            columns=[KanbanColumn(id=new_id(), title=t, position=i)
                     for i, t in enumerate(_DEFAULT_COLUMNS)],
        )
        boards[board.id] = board
        return board

    def _find_column(self, user_id: str, column_id: str) -> tuple[KanbanBoard, KanbanColumn]:
        for board in self._boards[user_id].values():
            column = board.column(column_id)
            if column is not None:
                return board, column
        raise EntityNotFoundError("column", column_id)

    async def list_boards(self, user_id):
        async with self._lock:
            self._default_board(user_id)
            return list(self._boards[user_id].values())

    async def list_cards(self, user_id, *, board_id=None, column_id=None, q=None):
        async with self._lock:
            cards = [
                c for c in self._cards[user_id].values()
                if (board_id is None or c.board_id == board_id)
                and (column_id is None or c.column_id == column_id)
                and _matches(q, c.title, c.description)
            ]
        return sorted(cards, key=lambda c: (c.column_id, c.position))

    async def create_card(self, user_id, *, title, column_id=None, **fields):
        async with self._lock:
            if column_id:
                board, column = self._find_column(user_id, column_id)
            else:
                board = self._default_board(user_id)
                column = board.columns[0]
            position = sum(1 for c in self._cards[user_id].values() if c.column_id == column.id)
            card = KanbanCard(id=new_id(), board_id=board.id, column_id=column.id,
                              title=title, position=position, **fields)
            self._cards[user_id][card.id] = card
        return card

    async def update_card(self, user_id, card_id, changes):
        async with self._lock:
            card = self._cards[user_id].get(card_id)
            if card is None:
                raise EntityNotFoundError("card", card_id)
            _apply(card, changes)
            return card

    async def move_card(self, user_id, card_id, column_id, position=None):
        async with self._lock:
            card = self._cards[user_id].get(card_id)
            if card is None:
                raise EntityNotFoundError("card", card_id)
            board, column = self._find_column(user_id, column_id)
            siblings = sorted(
                (c for c in self._cards[user_id].values()
                 if c.column_id == column.id and c.id != card.id),
                key=lambda c: c.position,
            )
            index = len(siblings) if position is None else max(0, min(position, len(siblings)))
            siblings.insert(index, card)
            for i, c in enumerate(siblings):
                c.position = i
            card.board_id = board.id
            card.column_id = column.id
            card.updated_at = time.time()
            return card

    async def delete_card(self, user_id, card_id):
        async with self._lock:
            return self._cards[user_id].pop(card_id, None) is not None

    # ── Notes ─────────────────────────────────────────────────────────────────

    async def list_notes(self, user_id, *, q=None, tag=None, parent_id=None):
        async with self._lock:
            notes = [
                n for n in self._notes[user_id].values()
                if _matches(q, n.title, n.body)
                and (tag is None or tag in n.tags)
                and (parent_id is None or n.parent_id == parent_id)
            ]
        return sorted(notes, key=lambda n: n.updated_at, reverse=True)

    async def create_note(self, user_id, **fields):
        note = Note(id=new_id(), **fields)
        async with self._lock:
            self._notes[user_id][note.id] = note
        return note

    async def update_note(self, user_id, note_id, changes):
        async with self._lock:
            note = self._notes[user_id].get(note_id)
            if note is None:
                raise EntityNotFoundError("note", note_id)
            _apply(note, changes)
            return note

    async def delete_note(self, user_id, note_id):
        async with self._lock:
            return self._notes[user_id].pop(note_id, None) is not None

    # ── Journal ───────────────────────────────────────────────────────────────

    async def list_journal(self, user_id, *, date=None, date_from=None, date_to=None,
                           q=None, tag=None):
        async with self._lock:
            entries = [
                e for e in self._journal[user_id].values()
                if (date is None or e.date == date)
                and (date_from is None or e.date >= date_from)
                and (date_to is None or e.date <= date_to)
                and _matches(q, e.title, e.body)
                and (tag is None or tag in e.tags)
            ]
        return sorted(entries, key=lambda e: e.date, reverse=True)

    async def get_journal(self, user_id, entry_id):
        async with self._lock:
            return self._journal[user_id].get(entry_id)

    async def create_journal(self, user_id, **fields):
        entry = JournalEntry(id=new_id(), **fields)
        async with self._lock:
            self._journal[user_id][entry.id] = entry
        return entry

    async def update_journal(self, user_id, entry_id, changes):
        async with self._lock:
            entry = self._journal[user_id].get(entry_id)
            if entry is None:
                raise EntityNotFoundError("journal entry", entry_id)
            _apply(entry, changes)
            return entry

    async def delete_journal(self, user_id, entry_id):
        async with self._lock:
            return self._journal[user_id].pop(entry_id, None) is not None

    # ── Links ─────────────────────────────────────────────────────────────────

    async def link_items(self, user_id, *, from_item_id, from_item_type, to_item_id,
                         to_item_type, relation_type="references"):
        async with self._lock:
            for link in self._links[user_id].values():
                if (link.from_item_id, link.to_item_id, link.relation_type) == (
                    from_item_id, to_item_id, relation_type
                ):
                    return link
            link = ItemLink(id=new_id(), from_item_id=from_item_id,
                            from_item_type=from_item_type, to_item_id=to_item_id,
                            to_item_type=to_item_type, relation_type=relation_type)
            self._links[user_id][link.id] = link
            return link

    async def unlink_items(self, user_id, from_item_id, to_item_id, relation_type=None):
        async with self._lock:
            doomed = [
                link_id for link_id, link in self._links[user_id].items()
                if link.from_item_id == from_item_id and link.to_item_id == to_item_id
                and (relation_type is None or link.relation_type == relation_type)
            ]
            for link_id in doomed:
                del self._links[user_id][link_id]
            return len(doomed)

    async def list_links(self, user_id, item_id):
        async with self._lock:
            return [
                link for link in self._links[user_id].values()
                if item_id in (link.from_item_id, link.to_item_id)
            ]
