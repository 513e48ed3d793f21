from netden.workspace.models import (
    CalendarEvent,
    ItemLink,
    JournalEntry,
    KanbanBoard,
    KanbanCard,
    KanbanColumn,
    Note,
)
from netden.workspace.store import InMemoryWorkspaceStore, WorkspaceStore

__all__ = [
    "CalendarEvent",
    "ItemLink",
    "JournalEntry",
    "KanbanBoard",
    "KanbanCard",
    "KanbanColumn",
    "Note",
    "InMemoryWorkspaceStore",
    "WorkspaceStore",
]
