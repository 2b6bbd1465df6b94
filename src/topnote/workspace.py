"""Workspace: the composition root for one signed-in user.

Owns the store, the autosave pipeline and the share manager, and keeps at
most one note open in an editor session. Switching notes flushes the
previous note's outstanding edits before the new one is loaded, and
closing the workspace flushes too, so no edit is lost to a cancelled
debounce timer.
"""

from __future__ import annotations

import logging

from .editor.commands import Prompt, no_prompt
from .editor.document import Document
from .editor.geometry import CoordsProvider
from .editor.session import EditorSession
from .errors import StoreError, ValidationError
from .notes.autosave import AutosavePipeline, ErrorCallback
from .notes.models import Note
from .notes.share import ShareLinkManager
from .notes.store import NoteStore
from .scheduling import Scheduler
from .settings import settings

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled"


class Workspace:
    """Notes of one user and the currently open editor.

    Usage:
        workspace = Workspace(store, "user-1", scheduler=AsyncioScheduler())
        session = await workspace.create_note()
        session.type_text("Hello")
        await workspace.close()
    """

    def __init__(
        self,
        store: NoteStore,
        owner_id: str | None = None,
        *,
        scheduler: Scheduler,
        autosave_delay: float | None = None,
        share_origin: str | None = None,
        on_error: ErrorCallback | None = None,
        coords: CoordsProvider | None = None,
        prompt: Prompt = no_prompt,
    ) -> None:
        self.store = store
        self.owner_id = owner_id or settings.user_id
        self._scheduler = scheduler
        self._coords = coords
        self._prompt = prompt
        self.errors: list[StoreError] = []
        self.autosave = AutosavePipeline(
            store,
            scheduler=scheduler,
            delay=autosave_delay,
            on_error=on_error or self.errors.append,
        )
        self.share = ShareLinkManager(store, share_origin)
        self.note: Note | None = None
        self.session: EditorSession | None = None

    @property
    def document(self) -> Document | None:
        return self.session.document if self.session is not None else None

    async def list_notes(self) -> list[Note]:
        return await self.store.list_notes(self.owner_id)

    async def create_note(self, title: str = DEFAULT_TITLE, content: str = "") -> EditorSession:
        """Create a note and open it."""
        note = await self.store.create(title or DEFAULT_TITLE, content, self.owner_id)
        logger.info("Created note %s", note.id)
        return await self.open_note(note)

    async def open_note(self, note: Note | str) -> EditorSession:
        """Open a note (or note id), flushing the previously open one first."""
        if isinstance(note, str):
            fetched = await self.store.fetch(note)
            if fetched is None:
                raise ValidationError("Note not found", field="note_id", value=note)
            note = fetched

        await self._close_current()

        self.note = note
        self.autosave.open(note)
        self.session = EditorSession(
            Document.from_html(note.content),
            self._scheduler,
            coords=self._coords,
            prompt=self._prompt,
            on_content_changed=self._content_changed,
        )
        logger.debug("Opened note %s", note.id)
        return self.session

    def set_title(self, title: str) -> None:
        """Rename the open note; saved by the autosave pipeline."""
        if self.note is None or self.session is None:
            return
        self.note.title = title
        self.autosave.notify_change(title, self.session.document.serialize())

    async def toggle_share(self) -> str | None:
        """Publish or unpublish the open note. Returns the URL when public."""
        if self.note is None:
            raise ValidationError("No note is open", field="note")
        return await self.share.toggle_share(self.note)

    async def delete_note(self, note_id: str) -> None:
        """Delete a note; closes it without saving if it is open."""
        if self.note is not None and self.note.id == note_id:
            self.autosave.cancel()
            await self.autosave.settled()
            self._detach()
        await self.store.delete(note_id)
        logger.info("Deleted note %s", note_id)

    async def close(self) -> None:
        """Flush outstanding edits and close the editor."""
        await self._close_current()

    async def _close_current(self) -> None:
        if self.session is None:
            return
        await self.autosave.flush()
        self._detach()

    def _detach(self) -> None:
        if self.session is not None:
            self.session.close()
        self.session = None
        self.note = None

    def _content_changed(self, document: Document) -> None:
        if self.note is None:
            return
        self.note.content = document.serialize()
        self.autosave.notify_change(self.note.title, self.note.content)
