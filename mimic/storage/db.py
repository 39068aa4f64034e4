"""SQLite storage for per-user chat messages.

sqlite3 calls run in a worker thread so a locked or slow store never stalls the event loop.
"""

from __future__ import annotations

import asyncio
import sqlite3
import threading
from datetime import datetime
from pathlib import Path

from loguru import logger

from mimic.bus.events import ChatMessage, StoredMessage, WriteResult

_db_instances: dict[str, "Database"] = {}


def get_db(connection: str) -> "Database":
    """Get or create a Database instance for a store address."""
    key = connection if connection == ":memory:" else str(Path(connection).resolve())
    if key not in _db_instances:
        _db_instances[key] = Database(connection)
    return _db_instances[key]


class Database:
    """SQLite database holding the `message` collection."""

    def __init__(self, connection: str):
        self.connection = connection
        self._db: sqlite3.Connection | None = None
        self._initialized = False
        self._lock = threading.Lock()

    async def _ensure_init(self) -> sqlite3.Connection:
        return await asyncio.to_thread(self._connect)

    def _connect(self) -> sqlite3.Connection:
        with self._lock:
            return self._connect_locked()

    def _connect_locked(self) -> sqlite3.Connection:
        if self._db is None:
            if self.connection != ":memory:":
                Path(self.connection).parent.mkdir(parents=True, exist_ok=True)
            # Shared by worker threads; every use holds self._lock.
            self._db = sqlite3.connect(self.connection, check_same_thread=False)
            # Reliability defaults: allow concurrent readers and reduce lock thrash.
            self._db.execute("PRAGMA journal_mode=WAL")
            self._db.execute("PRAGMA synchronous=NORMAL")
            self._db.execute("PRAGMA busy_timeout=5000")
        if not self._initialized:
            self._create_tables(self._db)
            self._initialized = True
        return self._db

    @staticmethod
    def _create_tables(db: sqlite3.Connection) -> None:
        db.execute(
            """
            CREATE TABLE IF NOT EXISTS message (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                type TEXT NOT NULL DEFAULT 'message',
                channel TEXT NOT NULL,
                user TEXT NOT NULL,
                text TEXT NOT NULL,
                ts TEXT NOT NULL,
                team TEXT
            )
            """
        )
        db.execute("CREATE INDEX IF NOT EXISTS message_user ON message (user)")
        db.commit()

    async def insert(self, msg: ChatMessage | StoredMessage) -> WriteResult:
        """Persist one message. Failures come back as an unsuccessful result."""
        record = msg if isinstance(msg, StoredMessage) else StoredMessage.from_chat(msg)
        if not record.user or not record.channel:
            return WriteResult(success=False, error="message has no user or channel")
        try:
            await asyncio.to_thread(self._insert_sync, record)
        except sqlite3.Error as e:
            return WriteResult(success=False, error=str(e))
        return WriteResult(success=True, count=1)

    def _insert_sync(self, record: StoredMessage) -> None:
        with self._lock:
            db = self._connect_locked()
            try:
                db.execute(
                    "INSERT INTO message (type, channel, user, text, ts, team) VALUES (?, ?, ?, ?, ?, ?)",
                    (record.type, record.channel, record.user, record.text, record.ts.isoformat(), record.team),
                )
                db.commit()
            except sqlite3.Error:
                db.rollback()
                raise

    async def find(self, user: str, limit: int = 150) -> list[StoredMessage]:
        """Return up to `limit` of the user's most recent messages, oldest first."""
        rows = await asyncio.to_thread(self._find_sync, user, limit)
        return [
            StoredMessage(
                type=r[0],
                channel=r[1],
                user=r[2],
                text=r[3],
                ts=datetime.fromisoformat(r[4]),
                team=r[5],
            )
            for r in reversed(rows)
        ]

    def _find_sync(self, user: str, limit: int) -> list[tuple]:
        with self._lock:
            db = self._connect_locked()
            cursor = db.execute(
                """
                SELECT type, channel, user, text, ts, team
                FROM message
                WHERE user=?
                ORDER BY id DESC
                LIMIT ?
                """,
                (user, limit),
            )
            return cursor.fetchall()

    async def remove_all(self, user: str) -> WriteResult:
        try:
            removed = await asyncio.to_thread(self._remove_all_sync, user)
        except sqlite3.Error as e:
            return WriteResult(success=False, error=str(e))
        logger.debug(f"Removed {removed} message(s) for {user}")
        return WriteResult(success=True, count=removed)

    def _remove_all_sync(self, user: str) -> int:
        with self._lock:
            db = self._connect_locked()
            try:
                cursor = db.execute("DELETE FROM message WHERE user=?", (user,))
                db.commit()
            except sqlite3.Error:
                db.rollback()
                raise
            return cursor.rowcount

    async def count(self, user: str | None = None) -> int:
        return await asyncio.to_thread(self._count_sync, user)

    def _count_sync(self, user: str | None) -> int:
        with self._lock:
            db = self._connect_locked()
            if user is None:
                row = db.execute("SELECT COUNT(*) FROM message").fetchone()
            else:
                row = db.execute("SELECT COUNT(*) FROM message WHERE user=?", (user,)).fetchone()
            return int(row[0])

    # ==================== Lifecycle ====================

    async def close(self) -> None:
        await asyncio.to_thread(self._close_sync)

    def _close_sync(self) -> None:
        with self._lock:
            if self._db:
                self._db.close()
                self._db = None
                self._initialized = False
