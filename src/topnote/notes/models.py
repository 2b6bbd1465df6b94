"""Note records and per-note sync bookkeeping."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from ..config import EDITOR
from ..editor.html_parser import parse_html

# Columns a store update may change.
UPDATABLE_FIELDS = frozenset({"title", "content", "updated_at", "is_public", "share_token"})


def now_iso() -> str:
    """Get current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Note:
    """A stored note.

    ``share_token`` stays set once the note has been public; unsharing
    only clears ``is_public``.
    """

    id: str
    title: str
    content: str
    user_id: str
    created_at: str
    updated_at: str
    is_public: bool = False
    share_token: str | None = None

    @property
    def preview_text(self) -> str:
        """Plain-text preview for note lists."""
        text = " ".join(
            block.plain_text().replace("\n", " ")
            for block in parse_html(self.content)
        ).strip()
        return text[:EDITOR.PREVIEW_CHARS]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "user_id": self.user_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "is_public": self.is_public,
            "share_token": self.share_token,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Note:
        """Create from a store row or API record."""
        return cls(
            id=str(data["id"]),
            title=data.get("title") or "",
            content=data.get("content") or "",
            user_id=str(data.get("user_id") or ""),
            created_at=data.get("created_at") or "",
            updated_at=data.get("updated_at") or "",
            is_public=bool(data.get("is_public", False)),
            share_token=data.get("share_token"),
        )


@dataclass
class SyncState:
    """What the autosave pipeline knows about the open note.

    Attributes:
        note_id: The note being tracked.
        persisted: (title, content) as last written to (or read from) the store.
        write_pending: A store update is in flight.
        follow_up: A change arrived during the in-flight write.
    """

    note_id: str
    persisted: tuple[str, str]
    write_pending: bool = False
    follow_up: bool = False
    last_error: Exception | None = None

    @classmethod
    def for_note(cls, note: Note) -> SyncState:
        return cls(note_id=note.id, persisted=(note.title, note.content))
