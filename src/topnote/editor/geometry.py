"""Screen geometry shared by the floating controls.

The rendering layer owns layout; the controllers only ever see these two
value types and a provider that maps a document position to its caret box.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from .blocks_models import Position


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Rect:
    """Caret or block box in viewport coordinates."""

    left: float
    top: float
    bottom: float

    @property
    def height(self) -> float:
        return self.bottom - self.top


CoordsProvider = Callable[[Position], Rect]
"""Maps a document position to the box of the caret at that position."""


def line_coords(line_height: float = 20.0, char_width: float = 8.0) -> CoordsProvider:
    """Monospace layout: one leaf per line, fixed-width characters.

    Used where no renderer is attached (the CLI and tests).
    """
    def coords(position: Position) -> Rect:
        top = position.block * line_height
        return Rect(left=position.offset * char_width, top=top, bottom=top + line_height)
    return coords
