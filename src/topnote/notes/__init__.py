"""Note persistence: records, stores, autosave and share links."""

from __future__ import annotations

from .autosave import AutosavePipeline
from .models import Note, SyncState
from .rest_store import RestNoteStore
from .share import ShareLinkManager
from .store import NoteStore, SqliteNoteStore

__all__ = [
    "AutosavePipeline",
    "Note",
    "NoteStore",
    "RestNoteStore",
    "ShareLinkManager",
    "SqliteNoteStore",
    "SyncState",
]
