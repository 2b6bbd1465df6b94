from __future__ import annotations

import asyncio
from collections.abc import Iterator
from pathlib import Path
from typing import Any, Callable

import pytest


# =============================================================================
# Manual clock scheduler
# =============================================================================


class ManualTimer:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose clock only moves when a test calls advance().

    Spawned coroutines run as tasks on the running loop, so async tests
    still need to yield (``await scheduler.drain()``) to let them finish.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: list[ManualTimer] = []
        self.tasks: list[asyncio.Future[Any]] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    def spawn(self, coro: Any) -> asyncio.Future[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self.tasks.append(task)
        return task

    def time(self) -> float:
        return self.now

    @property
    def pending(self) -> list[ManualTimer]:
        return [t for t in self.timers if not t.cancelled]

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due timers in order."""
        target = self.now + seconds
        while True:
            due = [t for t in self.pending if t.due <= target + 1e-9]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self.timers.remove(timer)
            self.now = max(self.now, timer.due)
            timer.callback()
        self.now = target

    async def drain(self) -> None:
        """Let spawned tasks run to completion."""
        for _ in range(100):
            await asyncio.sleep(0)
            if all(task.done() for task in self.tasks):
                return


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


# =============================================================================
# Stores
# =============================================================================


class MemoryStore:
    """In-memory NoteStore that records every update.

    Set ``fail_with`` to make updates raise; set ``gate`` to an
    asyncio.Event to hold updates in flight until it is set.
    """

    def __init__(self) -> None:
        self.notes: dict[str, Any] = {}
        self.updates: list[tuple[str, dict[str, Any]]] = []
        self.fail_with: Exception | None = None
        self.gate: asyncio.Event | None = None
        self._counter = 0

    async def create(self, title: str, content: str, owner_id: str):
        from topnote.notes.models import Note

        self._counter += 1
        note = Note(
            id=f"note-{self._counter}",
            title=title,
            content=content,
            user_id=owner_id,
            created_at="2026-10-18T00:00:00+00:00",
            updated_at="2026-10-18T00:00:00+00:00",
        )
        self.notes[note.id] = note
        return Note.from_dict(note.to_dict())

    async def fetch(self, note_id: str):
        from topnote.notes.models import Note

        note = self.notes.get(note_id)
        return Note.from_dict(note.to_dict()) if note else None

    async def list_notes(self, owner_id: str):
        return [n for n in self.notes.values() if n.user_id == owner_id]

    async def update(self, note_id: str, fields: dict[str, Any]):
        from topnote.notes.models import Note

        self.updates.append((note_id, dict(fields)))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        note = self.notes[note_id]
        for key, value in fields.items():
            setattr(note, key, value)
        return Note.from_dict(note.to_dict())

    async def delete(self, note_id: str) -> None:
        self.notes.pop(note_id, None)

    async def fetch_by_share_token(self, token: str):
        for note in self.notes.values():
            if note.share_token == token:
                return note
        return None


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def sqlite_store(tmp_path: Path) -> Iterator[Any]:
    """SQLite store on a temp file database."""
    from topnote.notes.store import SqliteNoteStore

    store = SqliteNoteStore(tmp_path / "notes-test.db")
    try:
        yield store
    finally:
        store.close()


# =============================================================================
# Editor helpers
# =============================================================================


@pytest.fixture
def make_doc() -> Callable[[str], Any]:
    """Build a Document from markup."""
    from topnote.editor.document import Document

    return Document.from_html
