"""Document store interface and the local SQLite implementation.

The editor core only needs a narrow async interface: create, fetch, list,
partial update, delete, and lookup by share token. Access control belongs
to the store; the local store simply scopes listings by owner.

The SQLite store keeps one connection shared across worker threads
(``check_same_thread=False`` plus a lock) and runs every call through
``asyncio.to_thread`` so the event loop never blocks on disk I/O.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Protocol, TypeVar
from uuid import uuid4

from ..errors import StoreError, ValidationError
from .models import UPDATABLE_FIELDS, Note, now_iso

logger = logging.getLogger(__name__)

T = TypeVar("T")

SCHEMA = """
    CREATE TABLE IF NOT EXISTS notes (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL DEFAULT '',
        content TEXT NOT NULL DEFAULT '',
        user_id TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        is_public INTEGER NOT NULL DEFAULT 0,
        share_token TEXT UNIQUE
    );

    CREATE INDEX IF NOT EXISTS idx_notes_user ON notes(user_id, updated_at);
"""


class NoteStore(Protocol):
    """Async document store consumed by the workspace and the pipelines."""

    async def create(self, title: str, content: str, owner_id: str) -> Note: ...

    async def fetch(self, note_id: str) -> Note | None: ...

    async def list_notes(self, owner_id: str) -> list[Note]:
        """Notes owned by ``owner_id``, most recently updated first."""
        ...

    async def update(self, note_id: str, fields: dict[str, Any]) -> Note:
        """Apply a partial patch and return the stored record."""
        ...

    async def delete(self, note_id: str) -> None: ...

    async def fetch_by_share_token(self, token: str) -> Note | None: ...


def check_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Reject update keys the store does not allow to change."""
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(
            f"Cannot update fields: {', '.join(sorted(unknown))}",
            field="fields",
            value=sorted(unknown),
        )
    return dict(fields)


class SqliteNoteStore:
    """Notes in a local SQLite database.

    Usage:
        store = SqliteNoteStore(settings.db_path)
        note = await store.create("Untitled", "", owner_id="local")
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None

    def _get_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            if str(self.db_path) != ":memory:":
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.executescript(SCHEMA)
        return self._conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database transactions."""
        with self._lock:
            conn = self._get_connection()
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    async def _run(self, operation: str, fn: Callable[[], T], note_id: str | None = None) -> T:
        """Run a blocking call off the loop, wrapping sqlite failures."""
        try:
            return await asyncio.to_thread(fn)
        except sqlite3.Error as e:
            logger.error("Note store %s failed: %s", operation, e)
            raise StoreError(
                f"Note store {operation} failed: {e}",
                operation=operation,
                note_id=note_id,
            ) from e

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    # =========================================================================
    # NoteStore
    # =========================================================================

    async def create(self, title: str, content: str, owner_id: str) -> Note:
        now = now_iso()
        note = Note(
            id=uuid4().hex,
            title=title,
            content=content,
            user_id=owner_id,
            created_at=now,
            updated_at=now,
        )

        def insert() -> None:
            with self._transaction() as conn:
                conn.execute(
                    """INSERT INTO notes (id, title, content, user_id, created_at, updated_at)
                       VALUES (?, ?, ?, ?, ?, ?)""",
                    (note.id, note.title, note.content, note.user_id, note.created_at, note.updated_at),
                )

        await self._run("create", insert, note.id)
        logger.debug("Created note %s", note.id)
        return note

    async def fetch(self, note_id: str) -> Note | None:
        def select() -> Note | None:
            with self._transaction() as conn:
                row = conn.execute("SELECT * FROM notes WHERE id = ?", (note_id,)).fetchone()
            return _row_to_note(row) if row else None

        return await self._run("fetch", select, note_id)

    async def list_notes(self, owner_id: str) -> list[Note]:
        def select() -> list[Note]:
            with self._transaction() as conn:
                rows = conn.execute(
                    "SELECT * FROM notes WHERE user_id = ? ORDER BY updated_at DESC",
                    (owner_id,),
                ).fetchall()
            return [_row_to_note(row) for row in rows]

        return await self._run("list", select)

    async def update(self, note_id: str, fields: dict[str, Any]) -> Note:
        fields = check_fields(fields)
        if "is_public" in fields:
            fields["is_public"] = int(bool(fields["is_public"]))

        def patch() -> Note | None:
            with self._transaction() as conn:
                if fields:
                    assignments = ", ".join(f"{name} = ?" for name in fields)
                    conn.execute(
                        f"UPDATE notes SET {assignments} WHERE id = ?",
                        (*fields.values(), note_id),
                    )
                row = conn.execute("SELECT * FROM notes WHERE id = ?", (note_id,)).fetchone()
            return _row_to_note(row) if row else None

        note = await self._run("update", patch, note_id)
        if note is None:
            raise StoreError("Note does not exist", operation="update", note_id=note_id, recoverable=False)
        return note

    async def delete(self, note_id: str) -> None:
        def remove() -> None:
            with self._transaction() as conn:
                conn.execute("DELETE FROM notes WHERE id = ?", (note_id,))

        await self._run("delete", remove, note_id)
        logger.debug("Deleted note %s", note_id)

    async def fetch_by_share_token(self, token: str) -> Note | None:
        def select() -> Note | None:
            with self._transaction() as conn:
                row = conn.execute("SELECT * FROM notes WHERE share_token = ?", (token,)).fetchone()
            return _row_to_note(row) if row else None

        return await self._run("fetch_by_share_token", select)


def _row_to_note(row: sqlite3.Row) -> Note:
    data = dict(row)
    data["is_public"] = bool(data["is_public"])
    return Note.from_dict(data)
