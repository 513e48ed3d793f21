"""
agent/pending_actions.py — Pending Action Store

Mutating tool calls are never executed in the turn that proposes them.
They are parked here as single-use, owner-scoped ActionProposals and
executed only when the owner approves them in a later turn.

Backends:
  InMemoryPendingActionStore  dict + asyncio.Lock, per process
  SqlitePendingActionStore    aiosqlite, survives restarts

Every backend purges expired entries on create/get/consume. consume() is
the atomic get-and-remove the coordinator uses, so two concurrent decisions
on the same id resolve exactly one of them.

Usage:
    store = build_pending_store(settings)
    await store.init()
    proposal = await store.create("user-1", "notes_create", {"title": "x"}, "…")
    taken = await store.consume(proposal.id, "user-1")   # proposal
    again = await store.consume(proposal.id, "user-1")   # None
"""

from __future__ import annotations

import asyncio
import json
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Optional

import aiosqlite

from netden.agent.types import ActionProposal
from netden.exceptions import PendingActionStoreError
from netden.observability.logger import get_logger

log = get_logger(__name__)

DEFAULT_TTL_SECONDS = 15 * 60

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PendingActionStore(ABC):
    """Owner-scoped, single-use storage for action proposals."""

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS, clock: Clock = utc_now) -> None:
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock

    async def init(self) -> None:
        """Open backing resources. No-op for in-memory stores."""

    async def close(self) -> None:
        """Release backing resources."""

    def _new_proposal(
        self, owner_id: str, tool_name: str, arguments: dict[str, Any], summary: str
    ) -> ActionProposal:
        now = self._clock()
        return ActionProposal(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            tool_name=tool_name,
            arguments=dict(arguments),
            summary=summary,
            created_at=now,
            expires_at=now + self.ttl,
        )

    @abstractmethod
    async def create(
        self, owner_id: str, tool_name: str, arguments: dict[str, Any], summary: str
    ) -> ActionProposal: ...

    @abstractmethod
    async def get(self, action_id: str, owner_id: str) -> Optional[ActionProposal]:
        """The live proposal, or None if missing, expired or owned by someone else."""

    @abstractmethod
    async def remove(self, action_id: str) -> None:
        """Idempotent."""

    @abstractmethod
    async def consume(self, action_id: str, owner_id: str) -> Optional[ActionProposal]:
        """Atomic get + remove. Only the first caller for a given id wins."""


# ─────────────────────────────────────────────────────────────────────────────
# In-memory backend
# ─────────────────────────────────────────────────────────────────────────────


class InMemoryPendingActionStore(PendingActionStore):

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS, clock: Clock = utc_now) -> None:
        super().__init__(ttl_seconds, clock)
        self._items: dict[str, ActionProposal] = {}
        self._lock = asyncio.Lock()

    def _purge_expired(self) -> None:
        now = self._clock()
        expired = [k for k, p in self._items.items() if p.is_expired(now)]
        for k in expired:
            del self._items[k]
        if expired:
            log.debug("pending_actions.purged", count=len(expired))

    async def create(self, owner_id, tool_name, arguments, summary):
        proposal = self._new_proposal(owner_id, tool_name, arguments, summary)
        async with self._lock:
            self._purge_expired()
            self._items[proposal.id] = proposal
        log.info("pending_actions.created", action_id=proposal.id, tool=tool_name)
        return proposal

    async def get(self, action_id, owner_id):
        async with self._lock:
            self._purge_expired()
            proposal = self._items.get(action_id)
        if proposal is None or proposal.owner_id != owner_id:
            return None
        return proposal

    async def remove(self, action_id):
        async with self._lock:
            self._items.pop(action_id, None)

    async def consume(self, action_id, owner_id):
        async with self._lock:
            self._purge_expired()
            proposal = self._items.get(action_id)
            if proposal is None or proposal.owner_id != owner_id:
                return None
            del self._items[action_id]
        log.info("pending_actions.consumed", action_id=action_id)
        return proposal

    def __len__(self) -> int:
        return len(self._items)


# ─────────────────────────────────────────────────────────────────────────────
# SQLite backend
# ─────────────────────────────────────────────────────────────────────────────

_SCHEMA = """
CREATE TABLE IF NOT EXISTS pending_actions (
    id              TEXT PRIMARY KEY,
    user_id         TEXT NOT NULL,
    tool_name       TEXT NOT NULL,
    arguments_json  TEXT NOT NULL,
    summary         TEXT NOT NULL,
    created_at      REAL NOT NULL,   -- unix seconds
    expires_at      REAL NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_pending_actions_expires ON pending_actions(expires_at);
"""

_COLUMNS = "id, user_id, tool_name, arguments_json, summary, created_at, expires_at"


def _row_to_proposal(row: Any) -> ActionProposal:
    return ActionProposal(
        id=row["id"],
        owner_id=row["user_id"],
        tool_name=row["tool_name"],
        arguments=json.loads(row["arguments_json"]),
        summary=row["summary"],
        created_at=datetime.fromtimestamp(row["created_at"], tz=timezone.utc),
        expires_at=datetime.fromtimestamp(row["expires_at"], tz=timezone.utc),
    )


class SqlitePendingActionStore(PendingActionStore):
    """
    Proposals in a single SQLite table.

    consume() is one DELETE … RETURNING statement filtered on id, owner and
    expiry: a row comes back only when this statement removed it.
    """

    def __init__(
        self,
        db_path: str = "./data/sqlite/pending_actions.db",
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Clock = utc_now,
    ) -> None:
        super().__init__(ttl_seconds, clock)
        self.db_path = db_path
        self._db: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    async def init(self) -> None:
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._db = await aiosqlite.connect(self.db_path)
            self._db.row_factory = aiosqlite.Row
            await self._db.executescript(_SCHEMA)
            await self._db.commit()
        except aiosqlite.Error as e:
            raise PendingActionStoreError(f"Cannot open pending action store: {e}") from e
        log.info("pending_actions.sqlite_initialized", db_path=self.db_path)

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    def _require_db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise PendingActionStoreError(
                "SqlitePendingActionStore is not initialised. Call `await store.init()` first."
            )
        return self._db

    def _now_ts(self) -> float:
        return self._clock().timestamp()

    async def _purge_expired(self, db: aiosqlite.Connection) -> None:
        await db.execute("DELETE FROM pending_actions WHERE expires_at <= ?", (self._now_ts(),))

    async def create(self, owner_id, tool_name, arguments, summary):
        db = self._require_db()
        proposal = self._new_proposal(owner_id, tool_name, arguments, summary)
        async with self._lock:
            try:
                await self._purge_expired(db)
                await db.execute(
                    f"INSERT INTO pending_actions ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (
                        proposal.id,
                        owner_id,
                        tool_name,
                        json.dumps(proposal.arguments, ensure_ascii=False),
                        summary,
                        proposal.created_at.timestamp(),
                        proposal.expires_at.timestamp(),
                    ),
                )
                await db.commit()
            except aiosqlite.Error as e:
                raise PendingActionStoreError(str(e)) from e
        log.info("pending_actions.created", action_id=proposal.id, tool=tool_name)
        return proposal

    async def get(self, action_id, owner_id):
        db = self._require_db()
        async with self._lock:
            try:
                await self._purge_expired(db)
                await db.commit()
                async with db.execute(
                    f"SELECT {_COLUMNS} FROM pending_actions WHERE id = ? AND user_id = ?",
                    (action_id, owner_id),
                ) as cursor:
                    row = await cursor.fetchone()
            except aiosqlite.Error as e:
                raise PendingActionStoreError(str(e)) from e
        return _row_to_proposal(row) if row else None

    async def remove(self, action_id):
        db = self._require_db()
        async with self._lock:
            try:
                await db.execute("DELETE FROM pending_actions WHERE id = ?", (action_id,))
                await db.commit()
            except aiosqlite.Error as e:
                raise PendingActionStoreError(str(e)) from e

    async def consume(self, action_id, owner_id):
        db = self._require_db()
        async with self._lock:
            try:
                async with db.execute(
                    f"DELETE FROM pending_actions "
                    f"WHERE id = ? AND user_id = ? AND expires_at > ? "
                    f"RETURNING {_COLUMNS}",
                    (action_id, owner_id, self._now_ts()),
                ) as cursor:
                    row = await cursor.fetchone()
                await self._purge_expired(db)
                await db.commit()
            except aiosqlite.Error as e:
                raise PendingActionStoreError(str(e)) from e
        if row is None:
            return None
        log.info("pending_actions.consumed", action_id=action_id)
        return _row_to_proposal(row)


# ─────────────────────────────────────────────────────────────────────────────
# Factory
# ─────────────────────────────────────────────────────────────────────────────


def build_pending_store(settings) -> PendingActionStore:
    """Backend chosen by agent.pending_store ("memory" or "sqlite")."""
    agent = settings.agent
    if agent.pending_store == "sqlite":
        return SqlitePendingActionStore(
            db_path=agent.sqlite_path, ttl_seconds=agent.pending_action_ttl_seconds,
        )
    return InMemoryPendingActionStore(ttl_seconds=agent.pending_action_ttl_seconds)
