"""Observer streams for document notifications.

The document emits two kinds of events: content changed (consumed by the
autosave pipeline) and selection changed (consumed by the toolbars and the
slash menu). Controllers subscribe to a stream instead of sharing flags.
"""

from __future__ import annotations

import logging
from enum import Enum, auto
from typing import Any, Callable

logger = logging.getLogger(__name__)


class DocumentEventType(Enum):
    """Types of notifications the document model emits."""

    CONTENT_CHANGED = auto()
    SELECTION_CHANGED = auto()


Listener = Callable[..., None]


class EventStream:
    """Ordered list of listeners for one event type.

    Usage:
        stream = EventStream(DocumentEventType.CONTENT_CHANGED)
        unsubscribe = stream.subscribe(on_change)
        stream.emit(document)
        unsubscribe()
    """

    def __init__(self, event_type: DocumentEventType) -> None:
        self.event_type = event_type
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Add a listener; returns a callable that removes it again."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, *args: Any) -> None:
        """Call every listener in subscription order."""
        for listener in list(self._listeners):
            listener(*args)

    def __len__(self) -> int:
        return len(self._listeners)
