"""Data models for the block-based document.

This module defines the core data structures for Notion-style blocks:
inline spans with marks, text and atom leaves, the list/quote containers
that group them, and the structured embed variants.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any, NamedTuple, Union


class BlockKind(str, Enum):
    """Supported block kinds."""

    # Text blocks
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    CODE_BLOCK = "code_block"

    # List items (only valid inside their list container)
    BULLET_LIST_ITEM = "bullet_list_item"
    ORDERED_LIST_ITEM = "ordered_list_item"

    # Containers
    BULLET_LIST = "bullet_list"
    ORDERED_LIST = "ordered_list"
    BLOCKQUOTE = "blockquote"

    # Atoms
    HORIZONTAL_RULE = "horizontal_rule"
    EMBED = "embed"


# Block kinds that hold child blocks instead of text
CONTAINER_KINDS = frozenset({
    BlockKind.BULLET_LIST,
    BlockKind.ORDERED_LIST,
    BlockKind.BLOCKQUOTE,
})

# Block kinds that hold inline spans
TEXT_KINDS = frozenset({
    BlockKind.PARAGRAPH,
    BlockKind.HEADING,
    BlockKind.CODE_BLOCK,
    BlockKind.BULLET_LIST_ITEM,
    BlockKind.ORDERED_LIST_ITEM,
})

# Block kinds with neither children nor text
ATOM_KINDS = frozenset({
    BlockKind.HORIZONTAL_RULE,
    BlockKind.EMBED,
})

# List item kind -> the only container it may live in
LIST_CONTAINERS = {
    BlockKind.BULLET_LIST_ITEM: BlockKind.BULLET_LIST,
    BlockKind.ORDERED_LIST_ITEM: BlockKind.ORDERED_LIST,
}

# Leaves a blockquote may hold
QUOTABLE_KINDS = frozenset({BlockKind.PARAGRAPH, BlockKind.HEADING})

HEADING_LEVELS = (1, 2, 3)


class Mark(str, Enum):
    """Inline marks that can be toggled on a text range."""

    BOLD = "bold"
    ITALIC = "italic"
    STRIKETHROUGH = "strikethrough"
    CODE = "code"
    HIGHLIGHT = "highlight"
    LINK = "link"


class Position(NamedTuple):
    """A point in the document.

    ``block`` indexes the depth-first sequence of leaf blocks and
    ``offset`` is a character offset inside that leaf. Positions order
    naturally as tuples.
    """

    block: int
    offset: int


@dataclass(frozen=True)
class Selection:
    """Anchor/head pair. Collapsed when both are equal (a cursor)."""

    anchor: Position
    head: Position

    @property
    def is_collapsed(self) -> bool:
        return self.anchor == self.head

    @property
    def start(self) -> Position:
        return min(self.anchor, self.head)

    @property
    def end(self) -> Position:
        return max(self.anchor, self.head)

    @classmethod
    def cursor(cls, position: Position) -> Selection:
        return cls(anchor=position, head=position)


@dataclass(frozen=True)
class InlineSpan:
    """A run of text sharing one set of marks.

    Rich text is stored as a sequence of spans, each with its own
    formatting. Highlight may carry a color; link carries its URL.
    """

    text: str

    # Formatting flags
    bold: bool = False
    italic: bool = False
    strikethrough: bool = False
    code: bool = False
    highlight: bool = False

    highlight_color: str | None = None
    link_url: str | None = None

    def formatting(self) -> tuple[Any, ...]:
        """Everything but the text, for merge/compare decisions."""
        return (
            self.bold,
            self.italic,
            self.strikethrough,
            self.code,
            self.highlight,
            self.highlight_color,
            self.link_url,
        )

    def is_plain(self) -> bool:
        return not any(self.formatting())

    def has_mark(self, mark: Mark, attrs: dict[str, Any] | None = None) -> bool:
        """Check a mark; when attrs are given they must match too."""
        attrs = attrs or {}
        if mark is Mark.LINK:
            if self.link_url is None:
                return False
            return "href" not in attrs or attrs["href"] == self.link_url
        if mark is Mark.HIGHLIGHT:
            if not self.highlight:
                return False
            return "color" not in attrs or attrs["color"] == self.highlight_color
        return bool(getattr(self, mark.value))

    def with_mark(self, mark: Mark, attrs: dict[str, Any] | None = None) -> InlineSpan:
        attrs = attrs or {}
        if mark is Mark.LINK:
            return replace(self, link_url=attrs.get("href", self.link_url or ""))
        if mark is Mark.HIGHLIGHT:
            return replace(self, highlight=True, highlight_color=attrs.get("color"))
        return replace(self, **{mark.value: True})

    def without_mark(self, mark: Mark) -> InlineSpan:
        if mark is Mark.LINK:
            return replace(self, link_url=None)
        if mark is Mark.HIGHLIGHT:
            return replace(self, highlight=False, highlight_color=None)
        return replace(self, **{mark.value: False})

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {"text": self.text}
        for mark in Mark:
            if self.has_mark(mark):
                result[mark.value] = True
        if self.highlight_color:
            result["highlight_color"] = self.highlight_color
        if self.link_url is not None:
            result["link_url"] = self.link_url
        result.pop("link", None)
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InlineSpan:
        """Create from dictionary."""
        return cls(
            text=data["text"],
            bold=bool(data.get("bold", False)),
            italic=bool(data.get("italic", False)),
            strikethrough=bool(data.get("strikethrough", False)),
            code=bool(data.get("code", False)),
            highlight=bool(data.get("highlight", False)),
            highlight_color=data.get("highlight_color"),
            link_url=data.get("link_url"),
        )


# =============================================================================
# Embeds
# =============================================================================


class EmbedType(str, Enum):
    """Embed-like leaf variants."""

    TABLE = "table"
    IMAGE = "image"
    CALLOUT = "callout"
    TOGGLE = "toggle"
    DATE = "date"
    TERMINAL = "terminal"
    MATH = "math"
    OPAQUE = "opaque"


@dataclass(frozen=True)
class TableEmbed:
    rows: tuple[tuple[str, ...], ...]
    header: bool = True

    embed_type = EmbedType.TABLE

    def __post_init__(self) -> None:
        object.__setattr__(self, "rows", tuple(tuple(row) for row in self.rows))
        # A table without rows has nothing to mark as header.
        if not self.rows:
            object.__setattr__(self, "header", True)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def col_count(self) -> int:
        return max((len(r) for r in self.rows), default=0)

    @classmethod
    def blank(cls, rows: int = 3, cols: int = 3) -> TableEmbed:
        """Header row plus numbered cells."""
        header = tuple(f"Header {c + 1}" for c in range(cols))
        body = tuple(
            tuple(f"Cell {r * cols + c + 1}" for c in range(cols))
            for r in range(rows - 1)
        )
        return cls(rows=(header, *body), header=True)


@dataclass(frozen=True)
class ImageEmbed:
    src: str
    alt: str = "Image"
    caption: str | None = None

    embed_type = EmbedType.IMAGE

    def __post_init__(self) -> None:
        if not self.caption:
            object.__setattr__(self, "caption", None)


@dataclass(frozen=True)
class CalloutEmbed:
    text: str
    label: str = "\U0001F4A1 Note"

    embed_type = EmbedType.CALLOUT


@dataclass(frozen=True)
class ToggleEmbed:
    summary: str
    body: str = ""

    embed_type = EmbedType.TOGGLE


@dataclass(frozen=True)
class DateEmbed:
    value: date

    embed_type = EmbedType.DATE

    @property
    def label(self) -> str:
        """US long form, e.g. 'October 18, 2026'."""
        return f"{self.value:%B} {self.value.day}, {self.value.year}"


@dataclass(frozen=True)
class TerminalEmbed:
    commands: tuple[str, ...]
    prompt: str = "$"

    embed_type = EmbedType.TERMINAL

    def __post_init__(self) -> None:
        # One command per line; no commands and a single empty one are the same.
        joined = "\n".join(self.commands)
        object.__setattr__(self, "commands", tuple(joined.split("\n")) if joined else ())


@dataclass(frozen=True)
class MathEmbed:
    expression: str

    embed_type = EmbedType.MATH


@dataclass(frozen=True)
class OpaqueEmbed:
    """Foreign markup kept verbatim so a round trip never drops it."""

    markup: str

    embed_type = EmbedType.OPAQUE


Embed = Union[
    TableEmbed,
    ImageEmbed,
    CalloutEmbed,
    ToggleEmbed,
    DateEmbed,
    TerminalEmbed,
    MathEmbed,
    OpaqueEmbed,
]


# =============================================================================
# Blocks
# =============================================================================


@dataclass
class Block:
    """A structural node of the document.

    Containers hold ``children``; text blocks hold ``spans``; atoms hold
    neither (embeds carry their data in ``embed``). Kind-specific settings
    such as the heading level or code language live in ``attrs``.
    """

    kind: BlockKind
    attrs: dict[str, Any] = field(default_factory=dict)
    spans: list[InlineSpan] = field(default_factory=list)
    children: list[Block] = field(default_factory=list)
    embed: Embed | None = None

    @classmethod
    def paragraph(cls, text: str = "") -> Block:
        return cls(BlockKind.PARAGRAPH, spans=[InlineSpan(text)] if text else [])

    @classmethod
    def heading(cls, level: int, text: str = "") -> Block:
        return cls(BlockKind.HEADING, attrs={"level": level}, spans=[InlineSpan(text)] if text else [])

    @classmethod
    def rule(cls) -> Block:
        return cls(BlockKind.HORIZONTAL_RULE)

    @classmethod
    def from_embed(cls, embed: Embed) -> Block:
        return cls(BlockKind.EMBED, embed=embed)

    def plain_text(self) -> str:
        """Get concatenated plain text (children joined by newlines)."""
        if self.is_container():
            return "\n".join(child.plain_text() for child in self.children)
        return "".join(span.text for span in self.spans)

    @property
    def text_length(self) -> int:
        return sum(len(span.text) for span in self.spans)

    def is_container(self) -> bool:
        return self.kind in CONTAINER_KINDS

    def is_textblock(self) -> bool:
        return self.kind in TEXT_KINDS

    def is_atom(self) -> bool:
        return self.kind in ATOM_KINDS

    def is_empty(self) -> bool:
        return self.is_textblock() and self.text_length == 0
