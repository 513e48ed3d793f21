"""
agent/sync.py — Linked-entity Synchronisation

After an approved calendar action succeeds, kanban cards and notes that
link to the event are brought in line with it: cards take the event title
and its date as due date, notes take the title.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from netden.observability.logger import get_logger
from netden.workspace.store import WorkspaceStore

log = get_logger(__name__)


@dataclass(frozen=True)
class SyncReport:
    cards: int = 0
    notes: int = 0


def affected_event_id(result_data: Any, arguments: dict[str, Any]) -> Optional[str]:
    """The result's id when it has one, else the eventId argument."""
    if isinstance(result_data, dict) and isinstance(result_data.get("id"), str):
        return result_data["id"]
    event_id = arguments.get("eventId")
    return event_id if isinstance(event_id, str) else None


async def sync_linked_entities(store: WorkspaceStore, user_id: str, event_id: str) -> SyncReport:
    event = await store.get_event(user_id, event_id)
    if event is None:
        return SyncReport()

    cards = [c for c in await store.list_cards(user_id) if event_id in c.event_links]
    for card in cards:
        await store.update_card(user_id, card.id, {"title": event.title, "due_date": event.date})

    notes = [n for n in await store.list_notes(user_id) if event_id in n.event_links]
    for note in notes:
        await store.update_note(user_id, note.id, {"title": event.title})

    report = SyncReport(cards=len(cards), notes=len(notes))
    log.info("sync.linked_entities", event_id=event_id, cards=report.cards, notes=report.notes)
    return report
