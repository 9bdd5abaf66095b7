"""Conversation memory for stepwise-agent-sdk.

A memory store owns every conversation thread, keyed by
:class:`~stepwise_sdk.types.MemoryScope`. Threads are created lazily on
first append and are never deleted by the SDK; retention is the
caller's concern.

Two implementations are provided:

* :class:`InMemoryStore`: process-local, for tests and short demos.
* :class:`SQLiteMemoryStore`: durable, backed by ``aiosqlite``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import weakref
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import datetime

import aiosqlite

from stepwise_sdk.exceptions import MemoryStoreError
from stepwise_sdk.types import MemoryScope, Message, MessageRole, ToolCall, ToolResult

logger = logging.getLogger(__name__)

__all__ = ["MemoryStore", "InMemoryStore", "SQLiteMemoryStore"]


class MemoryStore(ABC):
    """Per-thread conversation history with strictly increasing ordinals.

    Appends on the same scope are serialized through one
    :class:`asyncio.Lock` per key, so ordinals stay monotonic under
    concurrent runs against the same thread. A lock lives only while a
    coroutine holds or waits on it.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[MemoryScope, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock(self, scope: MemoryScope) -> asyncio.Lock:
        return self._locks.setdefault(scope, asyncio.Lock())

    async def append(self, scope: MemoryScope, message: Message) -> Message:
        """Persist ``message`` and return it with its assigned ordinal."""
        (stored,) = await self.append_many(scope, [message])
        return stored

    async def append_many(
        self, scope: MemoryScope, messages: Sequence[Message]
    ) -> list[Message]:
        """Persist several messages contiguously, in order."""
        if not messages:
            return []
        async with self._lock(scope):
            return await self._append(scope, messages)

    @abstractmethod
    async def _append(self, scope: MemoryScope, messages: Sequence[Message]) -> list[Message]:
        """Assign ordinals and persist. Called with the scope lock held."""

    @abstractmethod
    async def read(self, scope: MemoryScope) -> tuple[Message, ...]:
        """Return an immutable snapshot of the thread, oldest first.

        An unknown scope yields an empty tuple.
        """

    @abstractmethod
    async def threads(self, resource_id: str) -> list[str]:
        """Return the thread ids known for ``resource_id``."""

    async def close(self) -> None:
        """Release any resources held by the store."""


class InMemoryStore(MemoryStore):
    """Process-local store backed by a dict of lists."""

    def __init__(self) -> None:
        super().__init__()
        self._threads: dict[MemoryScope, list[Message]] = {}

    async def _append(self, scope: MemoryScope, messages: Sequence[Message]) -> list[Message]:
        thread = self._threads.setdefault(scope, [])
        next_ordinal = thread[-1].ordinal + 1 if thread else 0
        stored = [msg.with_ordinal(next_ordinal + i) for i, msg in enumerate(messages)]
        thread.extend(stored)
        return stored

    async def read(self, scope: MemoryScope) -> tuple[Message, ...]:
        return tuple(self._threads.get(scope, ()))

    async def threads(self, resource_id: str) -> list[str]:
        return [scope.thread_id for scope in self._threads if scope.resource_id == resource_id]

    def __repr__(self) -> str:
        return f"InMemoryStore(threads={len(self._threads)})"


_SCHEMA = """
CREATE TABLE IF NOT EXISTS messages (
    resource_id TEXT NOT NULL,
    thread_id   TEXT NOT NULL,
    ordinal     INTEGER NOT NULL,
    role        TEXT NOT NULL,
    content     TEXT NOT NULL,
    tool_calls  TEXT NOT NULL,
    tool_result TEXT,
    created_at  TEXT NOT NULL,
    PRIMARY KEY (resource_id, thread_id, ordinal)
)
"""

# Ordinal collisions from another process writing the same thread are
# retried this many times before giving up.
_MAX_APPEND_ATTEMPTS = 3


class SQLiteMemoryStore(MemoryStore):
    """Durable store in a SQLite file.

    Parameters
    ----------
    db_path:
        Path of the database file, or ``":memory:"``. An in-memory
        database lives only as long as each connection, so it is only
        useful together with ``keep_open=True``.
    keep_open:
        Reuse one connection for the store's lifetime instead of opening
        one per operation.
    """

    def __init__(self, db_path: str, *, keep_open: bool = False) -> None:
        super().__init__()
        self._db_path = db_path
        self._keep_open = keep_open
        self._conn: aiosqlite.Connection | None = None
        self._init_lock = asyncio.Lock()
        self._initialized = False

    @asynccontextmanager
    async def _acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield a connection; commits on success, rolls back on error."""
        if self._keep_open:
            if self._conn is None:
                self._conn = await aiosqlite.connect(self._db_path)
            conn = self._conn
            try:
                yield conn
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise
            return

        async with aiosqlite.connect(self._db_path) as conn:
            try:
                yield conn
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise

    async def initialize(self) -> None:
        """Create the schema if needed. Called lazily by every operation."""
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return
            try:
                async with self._acquire() as conn:
                    await conn.execute(_SCHEMA)
            except aiosqlite.Error as exc:
                raise MemoryStoreError(f"cannot initialize {self._db_path}: {exc}") from exc
            self._initialized = True
            logger.debug("Initialized conversation store at %s", self._db_path)

    async def _append(self, scope: MemoryScope, messages: Sequence[Message]) -> list[Message]:
        await self.initialize()
        for attempt in range(1, _MAX_APPEND_ATTEMPTS + 1):
            try:
                async with self._acquire() as conn:
                    cursor = await conn.execute(
                        "SELECT MAX(ordinal) FROM messages WHERE resource_id = ? AND thread_id = ?",
                        (scope.resource_id, scope.thread_id),
                    )
                    row = await cursor.fetchone()
                    start = 0 if row is None or row[0] is None else row[0] + 1
                    stored = [msg.with_ordinal(start + i) for i, msg in enumerate(messages)]
                    await conn.executemany(
                        """INSERT INTO messages
                           (resource_id, thread_id, ordinal, role, content,
                            tool_calls, tool_result, created_at)
                           VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                        [self._to_row(scope, msg) for msg in stored],
                    )
                return stored
            except aiosqlite.IntegrityError:
                logger.debug("Ordinal collision on %s (attempt %d)", scope, attempt)
            except aiosqlite.Error as exc:
                raise MemoryStoreError(f"cannot append to {scope}: {exc}") from exc
        raise MemoryStoreError(f"cannot append to {scope}: concurrent writers")

    async def read(self, scope: MemoryScope) -> tuple[Message, ...]:
        await self.initialize()
        try:
            async with self._acquire() as conn:
                cursor = await conn.execute(
                    """SELECT ordinal, role, content, tool_calls, tool_result, created_at
                       FROM messages
                       WHERE resource_id = ? AND thread_id = ?
                       ORDER BY ordinal ASC""",
                    (scope.resource_id, scope.thread_id),
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise MemoryStoreError(f"cannot read {scope}: {exc}") from exc
        return tuple(self._from_row(row) for row in rows)

    async def threads(self, resource_id: str) -> list[str]:
        await self.initialize()
        async with self._acquire() as conn:
            cursor = await conn.execute(
                "SELECT DISTINCT thread_id FROM messages WHERE resource_id = ? ORDER BY thread_id",
                (resource_id,),
            )
            rows = await cursor.fetchall()
        return [row[0] for row in rows]

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    @staticmethod
    def _to_row(scope: MemoryScope, msg: Message) -> tuple:
        return (
            scope.resource_id,
            scope.thread_id,
            msg.ordinal,
            msg.role.value,
            msg.content,
            json.dumps([call.to_dict() for call in msg.tool_calls], ensure_ascii=False),
            json.dumps(msg.tool_result.to_dict(), ensure_ascii=False, default=str)
            if msg.tool_result is not None
            else None,
            msg.created_at.isoformat(),
        )

    @staticmethod
    def _from_row(row: Sequence) -> Message:
        ordinal, role, content, tool_calls, tool_result, created_at = row
        return Message(
            role=MessageRole(role),
            content=content,
            tool_calls=tuple(ToolCall.from_dict(d) for d in json.loads(tool_calls)),
            tool_result=ToolResult.from_dict(json.loads(tool_result)) if tool_result else None,
            ordinal=ordinal,
            created_at=datetime.fromisoformat(created_at),
        )

    def __repr__(self) -> str:
        return f"SQLiteMemoryStore({self._db_path!r})"
