"""Slash-command trigger detection.

Decides from the text before the cursor whether the slash menu should be
open and what it is filtering on. Pure function; the session re-runs it
after every content or selection change.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

# A slash followed by a run of word characters, ending at the cursor.
_TRIGGER_PATTERN = re.compile(r"/(\w+)$")


@dataclass(frozen=True)
class TriggerActive:
    """The slash menu should be open, filtering on ``query``."""

    query: str


@dataclass(frozen=True)
class TriggerInactive:
    pass


TriggerState = Union[TriggerActive, TriggerInactive]

INACTIVE = TriggerInactive()


def detect_trigger(text: str, offset: int, collapsed: bool = True) -> TriggerState:
    """Inspect the block text before the cursor.

    Args:
        text: Plain text of the block holding the cursor.
        offset: Cursor offset within that text.
        collapsed: False when there is a range selection (never a trigger).

    Returns:
        TriggerActive("") right after a "/", TriggerActive(query) while a
        word follows the slash, TriggerInactive otherwise.

    Example:
        >>> detect_trigger("hello /wor", 10)
        TriggerActive(query='wor')
        >>> detect_trigger("hello / wor", 11)
        TriggerInactive()
    """
    if not collapsed:
        return INACTIVE
    before = text[:max(0, offset)]
    if before.endswith("/"):
        return TriggerActive("")
    match = _TRIGGER_PATTERN.search(before)
    if match:
        return TriggerActive(match.group(1))
    return INACTIVE


def trigger_span(offset: int, state: TriggerActive) -> tuple[int, int]:
    """Character range [start, end) of the "/query" text ending at ``offset``."""
    return offset - len(state.query) - 1, offset
