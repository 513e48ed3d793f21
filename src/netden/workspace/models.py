"""
workspace/models.py — Workspace Records

Plain dataclasses for the four data modules plus cross-item links.
to_dict() renders camelCase keys, the shape tools return to the provider.
"""

from __future__ import annotations

import time as _time
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

EVENT_TYPES = ("event", "task")
EVENT_STATUSES = ("pending", "done")
ITEM_TYPES = ("event", "task", "note", "log")
LINK_RELATIONS = ("references", "blocks", "belongs_to", "scheduled_for")


def new_id() -> str:
    return str(uuid.uuid4())


def _camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.title() for part in rest)


class _Record:
    def to_dict(self) -> dict[str, Any]:
        return {_camel(k): v for k, v in asdict(self).items()}  # type: ignore[call-overload]


@dataclass
class CalendarEvent(_Record):
    id: str
    title: str
    date: str                       # YYYY-MM-DD
    time: Optional[str] = None      # HH:MM
    description: str = ""
    type: str = "task"
    status: str = "pending"
    revision: int = 1
    updated_at: float = field(default_factory=_time.time)


@dataclass
class KanbanColumn(_Record):
    id: str
    title: str
    position: int


@dataclass
class KanbanBoard(_Record):
    id: str
    title: str
    columns: list[KanbanColumn] = field(default_factory=list)

    def column(self, column_id: str) -> Optional[KanbanColumn]:
        return next((c for c in self.columns if c.id == column_id), None)


@dataclass
class KanbanCard(_Record):
    id: str
    board_id: str
    column_id: str
    title: str
    description: str = ""
    due_date: Optional[str] = None
    position: int = 0
    event_links: list[str] = field(default_factory=list)
    updated_at: float = field(default_factory=_time.time)


@dataclass
class Note(_Record):
    id: str
    title: str
    body: str = ""
    parent_id: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    event_links: list[str] = field(default_factory=list)
    updated_at: float = field(default_factory=_time.time)


@dataclass
class JournalEntry(_Record):
    id: str
    date: str
    title: str = ""
    body: str = ""
    mood: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    updated_at: float = field(default_factory=_time.time)


@dataclass
class ItemLink(_Record):
    id: str
    from_item_id: str
    from_item_type: str
    to_item_id: str
    to_item_type: str
    relation_type: str = "references"
