"""Floating formatting toolbar shown over a range selection.

State machine:
    Hidden --range selection--> Visible(anchor)
    Visible --collapsed selection--> Hidden
    Visible --outside pointer-down--> (grace delay) --> Hidden
    toolbar pointer-down during the grace window cancels the pending hide

The "more options" panel (block type choices) is a sub-state of Visible;
it closes when the toolbar hides or on a pointer-down outside the panel.
The link URL field (opened by the link button or Mod-k) is another
sub-state; it closes when a link is set or the toolbar hides.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from ..config import EDITOR
from ..scheduling import Scheduler, TimerHandle
from .blocks_models import BlockKind, Mark, Selection
from .document import Document
from .geometry import CoordsProvider, Point

logger = logging.getLogger(__name__)


class PointerTarget(str, Enum):
    """Where a pointer-down landed, as reported by the rendering layer.

    The button that opens the "more options" panel counts as part of
    the panel.
    """

    TOOLBAR = "toolbar"
    MORE_OPTIONS = "more_options"
    DOCUMENT = "document"
    OUTSIDE = "outside"


@dataclass(frozen=True)
class ToolbarHidden:
    pass


@dataclass(frozen=True)
class ToolbarVisible:
    anchor: Point


ToolbarState = Union[ToolbarHidden, ToolbarVisible]

HIDDEN = ToolbarHidden()

# Block types offered by the "more options" panel, in display order.
MORE_OPTIONS: tuple[tuple[str, BlockKind, dict[str, Any]], ...] = (
    ("Heading 1", BlockKind.HEADING, {"level": 1}),
    ("Heading 2", BlockKind.HEADING, {"level": 2}),
    ("Heading 3", BlockKind.HEADING, {"level": 3}),
    ("Bullet List", BlockKind.BULLET_LIST_ITEM, {}),
    ("Numbered List", BlockKind.ORDERED_LIST_ITEM, {}),
    ("Quote", BlockKind.BLOCKQUOTE, {}),
)


class SelectionToolbarController:
    """Positions the toolbar and forwards its buttons to the document.

    Args:
        document: Document whose selection drives visibility.
        coords: Caret box lookup for both selection endpoints.
        scheduler: Timer source for the outside-click grace delay.
    """

    def __init__(
        self,
        document: Document,
        coords: CoordsProvider,
        scheduler: Scheduler,
        *,
        grace_seconds: float = EDITOR.DISMISS_GRACE_SECONDS,
    ) -> None:
        self._document = document
        self._coords = coords
        self._scheduler = scheduler
        self._grace = grace_seconds
        self._state: ToolbarState = HIDDEN
        self._more_options_open = False
        self._link_input_open = False
        self._pending_hide: TimerHandle | None = None

    @property
    def state(self) -> ToolbarState:
        return self._state

    @property
    def is_visible(self) -> bool:
        return isinstance(self._state, ToolbarVisible)

    @property
    def more_options_open(self) -> bool:
        return self._more_options_open

    @property
    def link_input_open(self) -> bool:
        return self._link_input_open

    @property
    def hide_pending(self) -> bool:
        return self._pending_hide is not None

    # =========================================================================
    # Visibility
    # =========================================================================

    def on_selection_changed(self, selection: Selection) -> ToolbarState:
        """Show above a range selection, hide on a cursor."""
        if selection.is_collapsed:
            self.hide()
            return self._state
        self._state = ToolbarVisible(self._anchor(selection))
        return self._state

    def on_pointer_down(self, target: PointerTarget | str) -> None:
        target = PointerTarget(target)
        if target is not PointerTarget.MORE_OPTIONS:
            self._more_options_open = False
        if target in (PointerTarget.TOOLBAR, PointerTarget.MORE_OPTIONS):
            self._cancel_pending_hide()
            return
        if target is PointerTarget.OUTSIDE and self.is_visible and self._pending_hide is None:
            self._pending_hide = self._scheduler.call_later(self._grace, self._grace_expired)

    def hide(self) -> None:
        self._cancel_pending_hide()
        self._state = HIDDEN
        self._more_options_open = False
        self._link_input_open = False

    def toggle_more_options(self) -> bool:
        if not self.is_visible:
            return False
        self._more_options_open = not self._more_options_open
        return self._more_options_open

    def open_link_input(self) -> bool:
        """Show the URL field (Mod-k). Needs a visible toolbar."""
        if not self.is_visible:
            return False
        self._link_input_open = True
        return True

    def close_link_input(self) -> bool:
        was_open = self._link_input_open
        self._link_input_open = False
        return was_open

    def _grace_expired(self) -> None:
        self._pending_hide = None
        logger.debug("Hiding selection toolbar after outside click")
        self.hide()

    def _cancel_pending_hide(self) -> None:
        if self._pending_hide is not None:
            self._pending_hide.cancel()
            self._pending_hide = None

    def _anchor(self, selection: Selection) -> Point:
        start = self._coords(selection.start)
        end = self._coords(selection.end)
        x = min(start.left, end.left) + abs(end.left - start.left) / 2
        y = min(start.top, end.top) - EDITOR.TOOLBAR_MARGIN
        return Point(x, y)

    # =========================================================================
    # Actions
    # =========================================================================

    def active_marks(self) -> set[Mark]:
        """Marks shown as pressed."""
        return self._document.active_marks()

    def is_block_active(self, kind: BlockKind, attrs: dict[str, Any] | None = None) -> bool:
        return self._document.is_block_active(kind, attrs)

    def toggle_mark(self, mark: Mark | str, attrs: dict[str, Any] | None = None) -> bool:
        selection = self._document.selection
        return self._document.toggle_mark(selection.start, selection.end, mark, attrs)

    def set_link(self, href: str | None) -> None:
        """Apply a link to the selection, or remove it when href is empty."""
        selection = self._document.selection
        self._link_input_open = False
        if href:
            if Mark.LINK in self._document.active_marks():
                self._document.toggle_mark(selection.start, selection.end, Mark.LINK)
            self._document.toggle_mark(selection.start, selection.end, Mark.LINK, {"href": href})
        elif Mark.LINK in self._document.active_marks():
            self._document.toggle_mark(selection.start, selection.end, Mark.LINK)

    def toggle_block_type(self, kind: BlockKind | str, attrs: dict[str, Any] | None = None) -> None:
        """Apply a "more options" choice and close the panel."""
        selection = self._document.selection
        self._document.toggle_block_type(selection.start, kind, attrs, end=selection.end)
        self._more_options_open = False
