"""In-session undo and redo.

History keeps whole-document snapshots. Every content change either
starts a new undo step or, when it follows the previous change within
the grouping window, extends the current one, so a typed word undoes
at once. History lives only as long as the editor session.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import replace
from typing import Callable, Iterator

from ..config import EDITOR
from .blocks_models import Selection
from .document import Document, DocumentSnapshot

logger = logging.getLogger(__name__)


class EditHistory:
    """Undo/redo stacks for one document.

    Args:
        document: The document to track.
        clock: Monotonic seconds, used to group rapid edits.
        depth: Maximum number of undo steps kept.
        group_seconds: Edits closer together than this share a step.
    """

    def __init__(
        self,
        document: Document,
        clock: Callable[[], float],
        *,
        depth: int = EDITOR.UNDO_DEPTH,
        group_seconds: float = EDITOR.UNDO_GROUP_SECONDS,
    ) -> None:
        self._document = document
        self._clock = clock
        self._depth = depth
        self._group_seconds = group_seconds
        self._current = document.snapshot()
        self._undo: list[DocumentSnapshot] = []
        self._redo: list[DocumentSnapshot] = []
        self._last_change: float | None = None
        self._sealed = True
        self._atomic = False
        self._restoring = False

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def record(self) -> None:
        """Note a content change. Call after every document edit."""
        if self._restoring:
            return
        now = self._clock()
        grouped = not self._sealed and (
            self._atomic
            or (self._last_change is not None and now - self._last_change < self._group_seconds)
        )
        if not grouped:
            self._undo.append(self._current)
            del self._undo[:-self._depth]
        self._current = self._document.snapshot()
        self._redo.clear()
        self._last_change = now
        self._sealed = False

    def selection_moved(self, selection: Selection) -> None:
        """Keep the cursor of the current state up to date between edits."""
        if not self._restoring:
            self._current = replace(self._current, selection=selection)

    def seal(self) -> None:
        """Make the next change start a new undo step."""
        self._sealed = True

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Group every change made inside the block into one undo step."""
        self.seal()
        self._atomic = True
        try:
            yield
        finally:
            self._atomic = False
            self.seal()

    def undo(self) -> bool:
        """Restore the state before the last step. False when there is none."""
        if not self._undo:
            return False
        self._redo.append(self._current)
        self._move_to(self._undo.pop())
        logger.debug("Undo (%d steps left)", len(self._undo))
        return True

    def redo(self) -> bool:
        """Re-apply the last undone step. False when there is none."""
        if not self._redo:
            return False
        self._undo.append(self._current)
        self._move_to(self._redo.pop())
        logger.debug("Redo (%d steps left)", len(self._redo))
        return True

    def _move_to(self, snapshot: DocumentSnapshot) -> None:
        self._current = snapshot
        self._restoring = True
        try:
            self._document.restore(snapshot)
        finally:
            self._restoring = False
        self.seal()
