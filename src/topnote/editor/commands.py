"""Slash command registry.

The fixed, ordered catalogue of commands offered by the slash menu, and
the filter that narrows it while the user types. Each command's action
performs exactly one document mutation at the cursor.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Callable, Optional

from .blocks_models import (
    Block,
    BlockKind,
    CalloutEmbed,
    DateEmbed,
    ImageEmbed,
    MathEmbed,
    Position,
    TableEmbed,
    TerminalEmbed,
    ToggleEmbed,
)

if TYPE_CHECKING:
    from .document import Document

logger = logging.getLogger(__name__)


Prompt = Callable[[str], Optional[str]]


def no_prompt(message: str) -> str | None:
    return None


@dataclass
class CommandContext:
    """What a command needs besides the document.

    Attributes:
        position: Cursor position (the trigger text is already deleted).
        prompt: Asks the user for a value; returns None when cancelled.
        today: Date used by the Date command.
    """

    position: Position
    prompt: Prompt = no_prompt
    today: date = field(default_factory=date.today)


Action = Callable[["Document", CommandContext], None]


@dataclass(frozen=True)
class Command:
    """Immutable descriptor of one slash command."""

    icon: str
    title: str
    description: str
    keywords: tuple[str, ...]
    action: Action

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on the title or any keyword."""
        needle = query.lower()
        return needle in self.title.lower() or any(needle in k.lower() for k in self.keywords)

    def run(self, document: Document, context: CommandContext) -> None:
        logger.debug("Running slash command %r at %s", self.title, tuple(context.position))
        self.action(document, context)


# =============================================================================
# Actions
# =============================================================================


def _set_type(kind: BlockKind, **attrs) -> Action:
    def action(document: Document, context: CommandContext) -> None:
        document.set_block_type(context.position, kind, attrs or None)
    return action


def _toggle_type(kind: BlockKind) -> Action:
    def action(document: Document, context: CommandContext) -> None:
        document.toggle_block_type(context.position, kind)
    return action


def _insert(build: Callable[[CommandContext], Block]) -> Action:
    def action(document: Document, context: CommandContext) -> None:
        document.insert_fragment(context.position, [build(context)])
    return action


def _insert_image(document: Document, context: CommandContext) -> None:
    url = context.prompt("Enter image URL:")
    if not url:
        logger.debug("Image prompt cancelled")
        return
    document.insert_fragment(context.position, [Block.from_embed(ImageEmbed(src=url))])


# =============================================================================
# Registry
# =============================================================================


COMMANDS: tuple[Command, ...] = (
    Command(
        "Type", "Text", "Just start writing with plain text.",
        ("text", "paragraph", "p"),
        _set_type(BlockKind.PARAGRAPH),
    ),
    Command(
        "Heading1", "Heading 1", "Big section heading.",
        ("heading", "h1", "title"),
        _set_type(BlockKind.HEADING, level=1),
    ),
    Command(
        "Heading2", "Heading 2", "Medium section heading.",
        ("heading", "h2", "subtitle"),
        _set_type(BlockKind.HEADING, level=2),
    ),
    Command(
        "Heading3", "Heading 3", "Small section heading.",
        ("heading", "h3"),
        _set_type(BlockKind.HEADING, level=3),
    ),
    Command(
        "List", "Bulleted list", "Create a simple bulleted list.",
        ("bullet", "list", "ul"),
        _toggle_type(BlockKind.BULLET_LIST_ITEM),
    ),
    Command(
        "ListOrdered", "Numbered list", "Create a list with numbering.",
        ("numbered", "list", "ol", "ordered"),
        _toggle_type(BlockKind.ORDERED_LIST_ITEM),
    ),
    Command(
        "Quote", "Quote", "Capture a quote.",
        ("quote", "blockquote", "citation"),
        _toggle_type(BlockKind.BLOCKQUOTE),
    ),
    Command(
        "Code", "Code", "Capture a code snippet.",
        ("code", "codeblock", "snippet"),
        _toggle_type(BlockKind.CODE_BLOCK),
    ),
    Command(
        "Minus", "Divider", "Visually divide blocks.",
        ("divider", "separator", "hr", "line"),
        _insert(lambda ctx: Block.rule()),
    ),
    Command(
        "Table", "Table", "Create a simple table.",
        ("table", "grid", "data"),
        _insert(lambda ctx: Block.from_embed(TableEmbed.blank(3, 3))),
    ),
    Command(
        "Image", "Image", "Insert an image.",
        ("image", "photo", "picture", "img"),
        _insert_image,
    ),
    Command(
        "AlertCircle", "Callout", "Make writing stand out.",
        ("callout", "note", "info", "warning"),
        _insert(lambda ctx: Block.from_embed(CalloutEmbed("Type your note here..."))),
    ),
    Command(
        "ChevronRight", "Toggle", "Create a collapsible section.",
        ("toggle", "collapse", "expand", "details"),
        _insert(lambda ctx: Block.from_embed(ToggleEmbed("Toggle to expand", "Content goes here..."))),
    ),
    Command(
        "FileText", "Page", "Create a sub-page.",
        ("page", "subpage", "document"),
        _insert(lambda ctx: Block.paragraph("\U0001F4C4 New Page")),
    ),
    Command(
        "Calendar", "Date", "Insert today's date.",
        ("date", "today", "time", "calendar"),
        _insert(lambda ctx: Block.from_embed(DateEmbed(ctx.today))),
    ),
    Command(
        "Terminal", "Terminal", "Create a terminal/command line block.",
        ("terminal", "command", "shell", "bash", "cmd"),
        _insert(lambda ctx: Block.from_embed(TerminalEmbed(("npm install", "npm run dev")))),
    ),
    Command(
        "Hash", "Math", "Write mathematical expressions.",
        ("math", "equation", "formula", "latex"),
        _insert(lambda ctx: Block.from_embed(MathEmbed("E = mc²"))),
    ),
)


def filter_commands(query: str, commands: tuple[Command, ...] = COMMANDS) -> list[Command]:
    """Commands whose title or keywords contain ``query``, in registry order.

    An empty query returns every command.
    """
    if not query:
        return list(commands)
    return [command for command in commands if command.matches(query)]


def find_command(title: str) -> Command:
    """Look up a command by its exact title."""
    for command in COMMANDS:
        if command.title == title:
            return command
    raise KeyError(title)
