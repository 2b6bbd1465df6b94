"""Block-document editing engine.

This package provides:
- The document model (blocks, inline marks, positions, selection)
- The markup codec used for stored note content, plus Markdown import/export
- Slash command trigger detection and the command registry
- Controllers for the slash menu, selection toolbar and block hover menu
- The editor session that wires them together
"""

from __future__ import annotations

from .blocks_models import Block, BlockKind, InlineSpan, Mark, Position, Selection
from .commands import COMMANDS, Command, CommandContext, filter_commands
from .document import Document
from .session import EditorSession
from .trigger import TriggerActive, TriggerInactive, detect_trigger

__all__ = [
    # Model
    "Block",
    "BlockKind",
    "InlineSpan",
    "Mark",
    "Position",
    "Selection",
    "Document",
    # Slash commands
    "COMMANDS",
    "Command",
    "CommandContext",
    "filter_commands",
    "TriggerActive",
    "TriggerInactive",
    "detect_trigger",
    # Coordinator
    "EditorSession",
]
