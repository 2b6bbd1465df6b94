"""Editor session: wires the document to its controllers.

One session exists per open note. It subscribes to the document's
streams, re-runs the trigger detector after every change, and decides
which floating control is visible. The slash menu wins over the
selection toolbar, and opening it closes the block menu.
Any document edit closes the block menu.

Input from the rendering layer arrives as plain method calls
(``type_text``, ``handle_key``, ``pointer_down``...), always in dispatch
order on the event loop thread. Keys use ``Mod-`` for Ctrl/Cmd, e.g.
``Mod-b`` or ``Mod-Shift-z``.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable

from ..scheduling import Scheduler
from .blocks_models import Mark, Position, Selection
from .commands import Command, Prompt, no_prompt
from .document import Document
from .geometry import CoordsProvider, line_coords
from .history import EditHistory
from .hover_menu import HoverMenuController
from .input_rules import apply_input_rule, match_input_rule
from .selection_toolbar import PointerTarget, SelectionToolbarController
from .slash_menu import SlashMenuController
from .trigger import TriggerState, detect_trigger

logger = logging.getLogger(__name__)

MARK_SHORTCUTS = {
    "Mod-b": Mark.BOLD,
    "Mod-i": Mark.ITALIC,
    "Mod-e": Mark.CODE,
    "Mod-Shift-s": Mark.STRIKETHROUGH,
    "Mod-Shift-h": Mark.HIGHLIGHT,
}

UNDO_KEYS = frozenset({"Mod-z"})
REDO_KEYS = frozenset({"Mod-Shift-z", "Mod-y"})


class EditorSession:
    """Coordinator for one open document.

    Args:
        document: The document being edited.
        scheduler: Timer source (toolbar grace delay) and clock (undo grouping).
        coords: Caret box lookup; defaults to a fixed-width line layout.
        prompt: Asks the user for values during slash commands.
        on_content_changed: Called with the document after each edit
            (the workspace hands this to the autosave pipeline).
        input_rules: Convert Markdown prefixes while typing.
    """

    def __init__(
        self,
        document: Document,
        scheduler: Scheduler,
        *,
        coords: CoordsProvider | None = None,
        prompt: Prompt = no_prompt,
        today: Callable[[], date] = date.today,
        on_content_changed: Callable[[Document], None] | None = None,
        input_rules: bool = True,
    ) -> None:
        coords = coords or line_coords()
        self.document = document
        self.slash_menu = SlashMenuController(document, coords, prompt=prompt, today=today)
        self.toolbar = SelectionToolbarController(document, coords, scheduler)
        self.hover_menu = HoverMenuController(document, coords)
        self.history = EditHistory(document, scheduler.time)
        self._input_rules = input_rules
        self._on_content_changed = on_content_changed
        self._trigger: TriggerState = detect_trigger("", 0)
        self._unsubscribe = [
            document.content_changed.subscribe(self._content_changed),
            document.selection_changed.subscribe(self._selection_changed),
        ]
        self._refresh()

    @property
    def trigger(self) -> TriggerState:
        """Latest trigger detector result."""
        return self._trigger

    def close(self) -> None:
        """Detach from the document and hide every control."""
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []
        self.slash_menu.cancel()
        self.toolbar.hide()
        self.hover_menu.close()

    # =========================================================================
    # Input
    # =========================================================================

    def type_text(self, text: str) -> Position:
        """Insert typed text at the cursor, replacing any selected range.

        Afterwards a Markdown prefix typed at the start of a paragraph is
        converted; the conversion is its own undo step.
        """
        selection = self.document.selection
        cursor = selection.head
        if not selection.is_collapsed:
            cursor = self.document.delete_range(selection.start, selection.end)
        after = self.document.insert_text(cursor, text)
        if self._input_rules and match_input_rule(self.document, after) is not None:
            with self.history.atomic():
                after = apply_input_rule(self.document, after) or after
        return after

    def select(self, anchor: Position, head: Position | None = None) -> Selection:
        """Move the cursor. The next edit starts a new undo step."""
        self.history.seal()
        return self.document.set_selection(anchor, head)

    def handle_key(self, key: str) -> bool:
        """Handle a special key. Returns True when the key was consumed."""
        if key == "Escape":
            consumed = (
                self.slash_menu.is_visible
                or self.hover_menu.is_menu_open
                or self.toolbar.link_input_open
            )
            self.slash_menu.cancel()
            self.hover_menu.close()
            self.toolbar.close_link_input()
            return consumed

        if key in MARK_SHORTCUTS:
            selection = self.document.selection
            self.document.toggle_mark(selection.start, selection.end, MARK_SHORTCUTS[key])
            return True
        if key == "Mod-k":
            self.toolbar.open_link_input()
            return True
        if key in UNDO_KEYS:
            self.undo()
            return True
        if key in REDO_KEYS:
            self.redo()
            return True

        if self.slash_menu.is_visible:
            if key == "Enter":
                with self.history.atomic():
                    self.slash_menu.confirm()
                self._refresh()
                return True
            if key == "ArrowDown":
                self.slash_menu.move_highlight(1)
                return True
            if key == "ArrowUp":
                self.slash_menu.move_highlight(-1)
                return True

        if key == "Enter":
            selection = self.document.selection
            cursor = selection.head
            with self.history.atomic():
                if not selection.is_collapsed:
                    cursor = self.document.delete_range(selection.start, selection.end)
                self.document.split_block(cursor)
            return True
        if key == "Backspace":
            self._backspace()
            return True
        return False

    def undo(self) -> bool:
        return self.history.undo()

    def redo(self) -> bool:
        return self.history.redo()

    def choose_command(self, command: Command) -> bool:
        """A slash menu item was clicked."""
        with self.history.atomic():
            ran = self.slash_menu.confirm(command)
        self._refresh()
        return ran

    def pointer_down(self, target: PointerTarget | str) -> None:
        target = PointerTarget(target)
        self.toolbar.on_pointer_down(target)
        if target in (PointerTarget.DOCUMENT, PointerTarget.OUTSIDE):
            self.slash_menu.cancel()
            self.hover_menu.close()

    def hover_block(self, block: int | None) -> None:
        if block is None:
            self.hover_menu.leave()
        else:
            self.hover_menu.hover(block)

    def open_block_menu(self) -> None:
        if not self.slash_menu.is_visible:
            self.hover_menu.open_menu()

    def _backspace(self) -> None:
        selection = self.document.selection
        if not selection.is_collapsed:
            self.document.delete_range(selection.start, selection.end)
            return
        block, offset = selection.head
        if offset > 0:
            self.document.delete_range(Position(block, offset - 1), selection.head)
        elif block > 0:
            previous = Position(block - 1, self.document.leaf(block - 1).text_length)
            self.document.delete_range(previous, selection.head)

    # =========================================================================
    # Derived state
    # =========================================================================

    def _content_changed(self, document: Document) -> None:
        self.history.record()
        self.hover_menu.content_changed()
        self._refresh()
        if self._on_content_changed is not None:
            self._on_content_changed(document)

    def _selection_changed(self, selection: Selection) -> None:
        self.history.selection_moved(selection)
        self._refresh()

    def _refresh(self) -> None:
        selection = self.document.selection
        head = selection.head
        self._trigger = detect_trigger(
            self.document.text_at(head.block),
            head.offset,
            selection.is_collapsed,
        )
        self.slash_menu.update(self._trigger)
        if self.slash_menu.is_visible:
            self.toolbar.hide()
            self.hover_menu.close()
        else:
            self.toolbar.on_selection_changed(selection)
