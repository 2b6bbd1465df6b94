"""Parse Markdown into blocks.

This module converts Markdown text into a list of Block objects
using the mistletoe library for parsing. Used by the CLI ``import``
command; the result goes through the document model, which restores the
tree invariants.
"""

from __future__ import annotations

import logging
from typing import Any

from mistletoe import Document
from mistletoe.block_token import (
    BlockCode,
    CodeFence,
    Heading,
    List,
    ListItem,
    Paragraph,
    Quote,
    Table,
    ThematicBreak,
)
from mistletoe.span_token import (
    Emphasis,
    EscapeSequence,
    Image,
    InlineCode,
    LineBreak,
    Link,
    RawText,
    Strikethrough,
    Strong,
)

from .blocks_models import Block, BlockKind, ImageEmbed, InlineSpan, OpaqueEmbed, TableEmbed
from .rich_text import merge_spans

logger = logging.getLogger(__name__)


def parse_markdown(markdown: str) -> list[Block]:
    """Parse Markdown text into root-level blocks.

    Args:
        markdown: The Markdown text to parse.

    Returns:
        Root-level blocks (lists and quotes as containers).
    """
    doc = Document(markdown)
    blocks: list[Block] = []
    for token in doc.children:
        blocks.extend(_convert_token(token))
    return blocks


def _convert_token(token: Any) -> list[Block]:
    """Convert a mistletoe block token to zero or more blocks."""
    if isinstance(token, Heading):
        return [_convert_heading(token)]
    elif isinstance(token, Paragraph):
        return _convert_paragraph(token)
    elif isinstance(token, (BlockCode, CodeFence)):
        return [_convert_code(token)]
    elif isinstance(token, List):
        return _convert_list(token)
    elif isinstance(token, Quote):
        return [_convert_quote(token)]
    elif isinstance(token, Table):
        return [_convert_table(token)]
    elif isinstance(token, ThematicBreak):
        return [Block.rule()]
    elif isinstance(getattr(token, "content", None), str):
        # Raw HTML blocks are kept as they are.
        return [Block.from_embed(OpaqueEmbed(token.content.strip()))]
    elif hasattr(token, "children"):
        text = _extract_text(token)
        if text.strip():
            return [Block.paragraph(text)]
    logger.debug("Skipping markdown token %s", type(token).__name__)
    return []


def _convert_heading(token: Heading) -> Block:
    """Convert a heading token (levels 4-6 become level 3)."""
    return Block(
        BlockKind.HEADING,
        attrs={"level": min(token.level, 3)},
        spans=_convert_inline_tokens(token.children),
    )


def _convert_paragraph(token: Paragraph) -> list[Block]:
    """Convert a paragraph token.

    A paragraph holding nothing but an image becomes an image embed.
    """
    children = list(token.children)
    if len(children) == 1 and isinstance(children[0], Image):
        image = children[0]
        return [Block.from_embed(ImageEmbed(
            src=image.src,
            alt=_extract_text(image) or "Image",
            caption=image.title or None,
        ))]
    return [Block(BlockKind.PARAGRAPH, spans=_convert_inline_tokens(children))]


def _convert_code(token: BlockCode | CodeFence) -> Block:
    """Convert a code block token."""
    language = getattr(token, "language", "") or ""
    content = _extract_text(token) if token.children else ""
    content = content.rstrip("\n")
    attrs = {"language": language} if language else {}
    return Block(BlockKind.CODE_BLOCK, attrs=attrs, spans=[InlineSpan(content)] if content else [])


def _convert_list(token: List) -> list[Block]:
    """Convert a list token into a list container.

    Nested lists are flattened into following containers; the editor
    keeps lists one level deep.
    """
    is_ordered = token.start is not None
    item_kind = BlockKind.ORDERED_LIST_ITEM if is_ordered else BlockKind.BULLET_LIST_ITEM
    container = Block(BlockKind.ORDERED_LIST if is_ordered else BlockKind.BULLET_LIST)
    if is_ordered and token.start != 1:
        container.attrs["start"] = token.start

    result = [container]
    for item in token.children:
        if not isinstance(item, ListItem):
            continue
        spans: list[InlineSpan] = []
        nested: list[Block] = []
        for child in item.children:
            if isinstance(child, List):
                nested.extend(_convert_list(child))
            elif hasattr(child, "children"):
                if spans:
                    spans.append(InlineSpan("\n"))
                spans.extend(_convert_inline_tokens(child.children))
        current = result[-1]
        if current.kind != container.kind:
            current = Block(container.kind)
            result.append(current)
        current.children.append(Block(item_kind, spans=merge_spans(spans)))
        result.extend(nested)
    return [block for block in result if block.children]


def _convert_quote(token: Quote) -> Block:
    """Convert a block quote; only paragraphs and headings are kept inside."""
    children: list[Block] = []
    for child in token.children:
        for block in _convert_token(child):
            if block.kind in (BlockKind.PARAGRAPH, BlockKind.HEADING):
                children.append(block)
            else:
                children.append(Block.paragraph(block.plain_text()))
    return Block(BlockKind.BLOCKQUOTE, children=children)


def _convert_table(token: Table) -> Block:
    """Convert a table token to a table embed."""
    rows: list[tuple[str, ...]] = []
    header = getattr(token, "header", None)
    if header is not None:
        rows.append(tuple(_extract_text(cell).strip() for cell in header.children))
    for row in token.children:
        rows.append(tuple(_extract_text(cell).strip() for cell in row.children))
    return Block.from_embed(TableEmbed(rows=tuple(rows), header=header is not None))


def _convert_inline_tokens(tokens: Any) -> list[InlineSpan]:
    """Convert a list of inline tokens to rich text spans."""
    spans: list[InlineSpan] = []
    for token in tokens or []:
        spans.extend(_convert_inline_token(token, InlineSpan("")))
    # Merge adjacent spans with same formatting
    return merge_spans(spans)


def _convert_inline_token(token: Any, fmt: InlineSpan) -> list[InlineSpan]:
    """Convert a single inline token, carrying marks from its parents."""
    if isinstance(token, RawText):
        return [InlineSpan(token.content, **_marks(fmt))]

    if isinstance(token, Strong):
        child_fmt = _with(fmt, bold=True)
    elif isinstance(token, Emphasis):
        child_fmt = _with(fmt, italic=True)
    elif isinstance(token, Strikethrough):
        child_fmt = _with(fmt, strikethrough=True)
    elif isinstance(token, InlineCode):
        text = token.children[0].content if token.children else ""
        return [InlineSpan(text, **_marks(_with(fmt, code=True)))]
    elif isinstance(token, Link):
        child_fmt = _with(fmt, link_url=token.target)
    elif isinstance(token, LineBreak):
        # Soft breaks are spaces; only hard breaks end a line.
        return [InlineSpan("\n" if not getattr(token, "soft", False) else " ", **_marks(fmt))]
    elif isinstance(token, EscapeSequence):
        if token.children:
            return [InlineSpan(token.children[0].content, **_marks(fmt))]
        return []
    elif hasattr(token, "children"):
        child_fmt = fmt
    else:
        return []

    spans: list[InlineSpan] = []
    for child in token.children or []:
        spans.extend(_convert_inline_token(child, child_fmt))
    return spans


def _marks(fmt: InlineSpan) -> dict[str, Any]:
    span = fmt.to_dict()
    span.pop("text")
    return span


def _with(fmt: InlineSpan, **changes: Any) -> InlineSpan:
    marks = _marks(fmt)
    marks.update(changes)
    return InlineSpan("", **marks)


def _extract_text(token: Any) -> str:
    """Extract plain text from a token."""
    if isinstance(token, RawText):
        return token.content
    elif hasattr(token, "children") and token.children:
        return "".join(_extract_text(child) for child in token.children)
    return ""
