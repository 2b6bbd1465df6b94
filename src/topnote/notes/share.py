"""Share links for notes.

A note is published by giving it an unguessable token and marking it
public. Unsharing only clears the public flag, so re-sharing brings back
the same URL.
"""

from __future__ import annotations

import logging
from uuid import uuid4

from ..errors import NotFoundError, PersistenceError, StoreError
from ..settings import settings
from .models import Note
from .store import NoteStore

logger = logging.getLogger(__name__)


class ShareLinkManager:
    """Publishes and resolves read-only share links.

    Args:
        store: Where share state is written.
        origin: Site origin used to build URLs (default from settings).
    """

    def __init__(self, store: NoteStore, origin: str | None = None) -> None:
        self._store = store
        self.origin = (origin or settings.share_origin).rstrip("/")

    def share_url(self, note: Note) -> str | None:
        """The public URL, or None while the note is private."""
        if not note.is_public or not note.share_token:
            return None
        return f"{self.origin}/share/{note.share_token}"

    async def toggle_share(self, note: Note) -> str | None:
        """Flip a note between public and private.

        The first share mints a token and sets it together with the public
        flag in a single update. Later toggles only flip the flag.

        Returns:
            The share URL when the note is now public, else None.

        Raises:
            PersistenceError: The store rejected the write; ``note`` is unchanged.
        """
        if note.share_token is None:
            fields = {"share_token": uuid4().hex, "is_public": True}
        else:
            fields = {"is_public": not note.is_public}

        try:
            await self._store.update(note.id, fields)
        except StoreError as e:
            logger.error("Could not update share state for note %s: %s", note.id, e.message)
            raise PersistenceError(
                "Could not update share link",
                operation="share",
                note_id=note.id,
                status_code=e.status_code,
                recoverable=e.recoverable,
            ) from e

        note.share_token = fields.get("share_token", note.share_token)
        note.is_public = fields["is_public"]
        logger.info("Note %s is now %s", note.id, "public" if note.is_public else "private")
        return self.share_url(note)

    async def resolve(self, token: str) -> Note:
        """Load the note behind a share URL for read-only viewing.

        Raises:
            NotFoundError: Unknown token, or the note is no longer public.
        """
        note = await self._store.fetch_by_share_token(token) if token else None
        if note is None or not note.is_public:
            raise NotFoundError(token=token)
        return note
