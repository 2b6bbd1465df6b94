"""Slash menu controller.

Shows the command list while a slash trigger is active and runs the
chosen command in place of the "/query" text.

State machine:
    Hidden --TriggerActive--> Visible(query, anchor)
    Visible --TriggerActive--> Visible (query/anchor updated)
    Visible --TriggerInactive | cancel | confirm--> Hidden
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Union

from ..config import EDITOR
from .blocks_models import Position
from .commands import COMMANDS, Command, CommandContext, Prompt, no_prompt, filter_commands
from .document import Document
from .geometry import CoordsProvider, Point
from .trigger import TriggerActive, TriggerState, detect_trigger, trigger_span

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlashMenuHidden:
    pass


@dataclass(frozen=True)
class SlashMenuVisible:
    query: str
    anchor: Point


SlashMenuState = Union[SlashMenuHidden, SlashMenuVisible]

HIDDEN = SlashMenuHidden()


class SlashMenuController:
    """Drives slash menu visibility, filtering and confirmation.

    Args:
        document: The document commands act on.
        coords: Caret box lookup for anchoring the menu.
        prompt: Asks the user for values (image URL); None means cancelled.
        today: Date source for the Date command.
    """

    def __init__(
        self,
        document: Document,
        coords: CoordsProvider,
        *,
        prompt: Prompt = no_prompt,
        today: Callable[[], date] = date.today,
        commands: tuple[Command, ...] = COMMANDS,
    ) -> None:
        self._document = document
        self._coords = coords
        self._prompt = prompt
        self._today = today
        self._commands = commands
        self._state: SlashMenuState = HIDDEN
        self._highlighted = 0

    @property
    def state(self) -> SlashMenuState:
        return self._state

    @property
    def is_visible(self) -> bool:
        return isinstance(self._state, SlashMenuVisible)

    @property
    def items(self) -> list[Command]:
        """Filtered commands for the current query (empty when hidden)."""
        if not isinstance(self._state, SlashMenuVisible):
            return []
        return filter_commands(self._state.query, self._commands)

    @property
    def highlighted_index(self) -> int:
        return self._highlighted

    @property
    def highlighted(self) -> Command | None:
        items = self.items
        if not items:
            return None
        return items[min(self._highlighted, len(items) - 1)]

    def update(self, trigger: TriggerState) -> SlashMenuState:
        """Apply the latest trigger detector result."""
        if isinstance(trigger, TriggerActive):
            anchor = self._anchor(self._document.selection.head)
            previous = self._state
            if not isinstance(previous, SlashMenuVisible) or previous.query != trigger.query:
                self._highlighted = 0
            self._state = SlashMenuVisible(query=trigger.query, anchor=anchor)
        else:
            self._hide()
        return self._state

    def move_highlight(self, delta: int) -> None:
        """Move the highlighted item, wrapping at either end."""
        items = self.items
        if items:
            self._highlighted = (self._highlighted + delta) % len(items)

    def cancel(self) -> None:
        self._hide()

    def confirm(self, command: Command | None = None) -> bool:
        """Delete the trigger text and run a command.

        The trigger span is resolved again from the current document, not
        from the state captured when the menu opened.

        Args:
            command: The clicked command; defaults to the highlighted one.

        Returns:
            True if a command ran. Confirming with no matching command is
            a no-op.
        """
        selection = self._document.selection
        head = selection.head
        trigger = detect_trigger(
            self._document.text_at(head.block),
            head.offset,
            selection.is_collapsed,
        )
        if not isinstance(trigger, TriggerActive):
            self._hide()
            return False

        if command is None:
            self._state = SlashMenuVisible(query=trigger.query, anchor=self._anchor(head))
            command = self.highlighted
            if command is None:
                logger.debug("No command matches %r; confirm ignored", trigger.query)
                return False

        start, end = trigger_span(head.offset, trigger)
        cursor = self._document.delete_range(Position(head.block, start), Position(head.block, end))
        self._hide()
        command.run(
            self._document,
            CommandContext(position=cursor, prompt=self._prompt, today=self._today()),
        )
        return True

    def _anchor(self, position: Position) -> Point:
        rect = self._coords(position)
        return Point(rect.left, rect.bottom + EDITOR.SLASH_MENU_OFFSET)

    def _hide(self) -> None:
        self._state = HIDDEN
        self._highlighted = 0
