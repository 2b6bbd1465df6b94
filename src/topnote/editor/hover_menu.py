"""Block hover handle and its action menu.

Hovering a block shows a handle with an add button and a menu button.
The menu offers duplicate, move up, move down and delete for that block.

State machine:
    Hidden --hover--> Hovering(block)
    Hovering --open_menu--> MenuOpen(block, anchor)
    MenuOpen --action | close | Escape--> Hidden
    any state --document edit--> Hidden
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

from ..config import EDITOR
from .blocks_models import Position
from .document import Document
from .geometry import CoordsProvider, Point

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HoverHidden:
    pass


@dataclass(frozen=True)
class Hovering:
    block: int


@dataclass(frozen=True)
class MenuOpen:
    block: int
    anchor: Point


HoverState = Union[HoverHidden, Hovering, MenuOpen]

HIDDEN = HoverHidden()


class HoverMenuController:
    def __init__(self, document: Document, coords: CoordsProvider) -> None:
        self._document = document
        self._coords = coords
        self._state: HoverState = HIDDEN

    @property
    def state(self) -> HoverState:
        return self._state

    @property
    def is_menu_open(self) -> bool:
        return isinstance(self._state, MenuOpen)

    def hover(self, block: int) -> HoverState:
        """Pointer entered a block. An open menu stays on its block."""
        if not isinstance(self._state, MenuOpen):
            self._document.leaf(block)
            self._state = Hovering(block)
        return self._state

    def leave(self) -> HoverState:
        if not isinstance(self._state, MenuOpen):
            self._state = HIDDEN
        return self._state

    def open_menu(self) -> HoverState:
        """Open the action menu for the hovered block."""
        if isinstance(self._state, Hovering):
            rect = self._coords(Position(self._state.block, 0))
            anchor = Point(rect.left - EDITOR.BLOCK_MENU_OFFSET, rect.top + EDITOR.BLOCK_MENU_DROP)
            self._state = MenuOpen(self._state.block, anchor)
        return self._state

    def close(self) -> None:
        self._state = HIDDEN

    def content_changed(self) -> None:
        """Drop the remembered block; an edit may have shifted leaf indices."""
        if self._state != HIDDEN:
            logger.debug("Closing block menu after a document edit")
        self._state = HIDDEN

    # =========================================================================
    # Actions
    # =========================================================================

    def add_block(self) -> Position | None:
        """Insert an empty paragraph after the hovered block."""
        block = self._target()
        if block is None:
            return None
        return self._document.insert_paragraph_after(block)

    def duplicate(self) -> Position | None:
        return self._run(self._document.duplicate_block)

    def move_up(self) -> Position | None:
        return self._run(lambda block: self._document.move_block(block, -1))

    def move_down(self) -> Position | None:
        return self._run(lambda block: self._document.move_block(block, 1))

    def delete(self) -> Position | None:
        return self._run(self._document.delete_block)

    def _target(self) -> int | None:
        if isinstance(self._state, (Hovering, MenuOpen)):
            return self._state.block
        return None

    def _run(self, action) -> Position | None:
        """Run a menu action on the menu's block, then close the menu."""
        if not isinstance(self._state, MenuOpen):
            return None
        block = self._state.block
        self._state = HIDDEN
        logger.debug("Block menu action on block %d", block)
        return action(block)
