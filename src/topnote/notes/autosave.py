"""Debounced persistence of the open note.

Every content change restarts a trailing debounce timer. When it fires,
the latest (title, content) is compared with what the store last
acknowledged; if they differ, exactly one update is issued.

Rules:
- At most one write is in flight. A change that arrives while a write is
  pending schedules one follow-up debounce cycle after it settles.
- Store failures are reported (log + error callback) and not retried. The
  snapshot is not advanced, so the next edit or flush writes again.
- Opening another note cancels the pending timer and resets the sync
  state. An in-flight write for the old note still completes.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from ..errors import StoreError
from ..scheduling import Scheduler, TimerHandle
from ..settings import settings
from .models import Note, SyncState, now_iso
from .store import NoteStore

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[StoreError], None]


def _log_only(error: StoreError) -> None:
    pass


class AutosavePipeline:
    """Trailing-debounce writer for one open note at a time.

    Usage:
        pipeline = AutosavePipeline(store, scheduler=AsyncioScheduler())
        pipeline.open(note)
        pipeline.notify_change(title, document.serialize())
        ...
        await pipeline.flush()
    """

    def __init__(
        self,
        store: NoteStore,
        *,
        scheduler: Scheduler,
        delay: float | None = None,
        on_error: ErrorCallback = _log_only,
        clock: Callable[[], str] = now_iso,
    ) -> None:
        """Initialize the pipeline.

        Args:
            store: Where updates go.
            scheduler: Timer and task source.
            delay: Debounce window in seconds (default from settings).
            on_error: Receives store failures for a user-visible notice.
            clock: Produces the ``updated_at`` timestamp.
        """
        self._store = store
        self._scheduler = scheduler
        self.delay = settings.autosave_delay_ms / 1000 if delay is None else delay
        self._on_error = on_error
        self._clock = clock
        self._state: SyncState | None = None
        self._current: tuple[str, str] | None = None
        self._timer: TimerHandle | None = None
        self._write_task: asyncio.Future[Any] | None = None

    @property
    def state(self) -> SyncState | None:
        return self._state

    @property
    def timer_pending(self) -> bool:
        return self._timer is not None

    @property
    def dirty(self) -> bool:
        """Local edits differ from what the store last acknowledged."""
        return self._state is not None and self._current != self._state.persisted

    def open(self, note: Note) -> None:
        """Start tracking a note, dropping any pending timer."""
        self._cancel_timer()
        self._state = SyncState.for_note(note)
        self._current = (note.title, note.content)
        logger.debug("Autosave tracking note %s", note.id)

    def notify_change(self, title: str, content: str) -> None:
        """Record the latest values and restart the debounce window."""
        if self._state is None:
            return
        self._current = (title, content)
        self._cancel_timer()
        self._timer = self._scheduler.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        """Drop the pending timer (the in-flight write is unaffected)."""
        self._cancel_timer()

    async def flush(self) -> None:
        """Write outstanding changes now and wait for them to settle."""
        self._cancel_timer()
        await self.settled()
        state = self._state
        if state is not None and self._current != state.persisted:
            await self._write(state, self._current)

    async def settled(self) -> None:
        """Wait for the in-flight write, if any."""
        task = self._write_task
        if task is not None and not task.done():
            await asyncio.wait([task])

    # =========================================================================
    # Internals
    # =========================================================================

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        self._timer = None
        state = self._state
        if state is None:
            return
        if state.write_pending:
            state.follow_up = True
            logger.debug("Write in flight for %s; follow-up scheduled", state.note_id)
            return
        if self._current == state.persisted:
            logger.debug("No changes to save for %s", state.note_id)
            return
        self._write_task = self._scheduler.spawn(self._write(state, self._current))

    async def _write(self, state: SyncState, values: tuple[str, str] | None) -> None:
        if values is None or values == state.persisted:
            return
        title, content = values
        state.write_pending = True
        try:
            await self._store.update(
                state.note_id,
                {"title": title, "content": content, "updated_at": self._clock()},
            )
        except StoreError as e:
            logger.error("Autosave failed for note %s: %s", state.note_id, e.message)
            state.last_error = e
            self._on_error(e)
        else:
            state.persisted = (title, content)
            state.last_error = None
            logger.debug("Saved note %s", state.note_id)
        finally:
            state.write_pending = False
            if state.follow_up:
                state.follow_up = False
                if state is self._state:
                    self._cancel_timer()
                    self._timer = self._scheduler.call_later(self.delay, self._fire)
