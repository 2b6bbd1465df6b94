"""Centralized editor constants for topnote.

This module provides a single source of truth for:
- Floating menu placement offsets (slash menu, selection toolbar)
- Pointer dismissal grace delay
- Preview and truncation limits
- Undo history depth and grouping

Constants can be overridden via environment variables where noted.
"""

from __future__ import annotations

import os
from dataclasses import dataclass


# =============================================================================
# Helper functions
# =============================================================================


def _env_int(name: str, default: int, min_val: int | None = None) -> int:
    """Get integer from environment with optional minimum enforcement."""
    val = int(os.environ.get(name, str(default)))
    if min_val is not None and val < min_val:
        return min_val
    return val


def _env_float(name: str, default: float, min_val: float | None = None) -> float:
    """Get float from environment with optional minimum enforcement."""
    val = float(os.environ.get(name, str(default)))
    if min_val is not None and val < min_val:
        return min_val
    return val


# =============================================================================
# Editor Layout
# =============================================================================


@dataclass(frozen=True)
class EditorConfig:
    """Placement and timing knobs for the floating editor controls.

    Coordinates are in the rendering layer's pixel space.
    """

    # Selection toolbar floats this far above the topmost selection endpoint.
    TOOLBAR_MARGIN: int = _env_int("TOPNOTE_TOOLBAR_MARGIN", 50, min_val=0)

    # Slash menu opens this far below the cursor.
    SLASH_MENU_OFFSET: int = _env_int("TOPNOTE_SLASH_MENU_OFFSET", 5, min_val=0)

    # Hover menu opens this far to the left of the hovered block.
    BLOCK_MENU_OFFSET: int = 200

    # ... and this far below its top edge.
    BLOCK_MENU_DROP: int = 30

    # Delay before an outside click hides the toolbar (seconds).
    DISMISS_GRACE_SECONDS: float = _env_float("TOPNOTE_DISMISS_GRACE", 0.15, min_val=0.0)

    # Note list preview length (characters).
    PREVIEW_CHARS: int = 200

    # Undo steps kept per session.
    UNDO_DEPTH: int = _env_int("TOPNOTE_UNDO_DEPTH", 100, min_val=1)

    # Edits closer together than this undo as one step (seconds).
    UNDO_GROUP_SECONDS: float = 0.5


EDITOR = EditorConfig()
