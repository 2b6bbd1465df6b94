"""Parse stored markup into blocks.

This module converts the HTML-like markup in a note's ``content`` into
Block objects. Parsing happens in two passes: the standard library's
HTMLParser builds a small element tree that remembers the raw source of
every element, then the tree is converted to blocks. Block-level markup
the editor does not model is kept verbatim as an opaque embed.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from html import unescape
from html.parser import HTMLParser
from typing import Union

from .blocks_models import (
    Block,
    BlockKind,
    CalloutEmbed,
    DateEmbed,
    ImageEmbed,
    InlineSpan,
    MathEmbed,
    OpaqueEmbed,
    QUOTABLE_KINDS,
    TableEmbed,
    TerminalEmbed,
    ToggleEmbed,
)
from .rich_text import merge_spans

logger = logging.getLogger(__name__)

VOID_TAGS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
})

INLINE_TAGS = frozenset({
    "a", "abbr", "b", "br", "cite", "code", "del", "em", "i", "kbd", "mark",
    "s", "small", "span", "strike", "strong", "sub", "sup", "u", "var",
})

# Inline tags that map onto a mark; any other inline tag keeps its block opaque
MARK_TAGS = frozenset({
    "a", "b", "br", "code", "del", "em", "i", "mark", "s", "strike", "strong",
})

_LANGUAGE_CLASS = re.compile(r"(?:^|\s)language-(\S+)")


# =============================================================================
# Element Tree
# =============================================================================


@dataclass
class _Text:
    value: str
    index: int = -1


@dataclass
class _Element:
    tag: str
    attrs: dict[str, str]
    start: int
    end: int = -1
    children: list[Union[_Element, _Text]] = field(default_factory=list)


class _TreeBuilder(HTMLParser):
    """Builds an element tree and records every raw token."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=False)
        self.tokens: list[str] = []
        self.root = _Element("#root", {}, start=0)
        self._stack: list[_Element] = [self.root]

    def _token(self, raw: str) -> int:
        self.tokens.append(raw)
        return len(self.tokens) - 1

    def _open(self, tag: str, attrs: list[tuple[str, str | None]], *, void: bool) -> None:
        index = self._token(self.get_starttag_text() or f"<{tag}>")
        element = _Element(tag, {k: v or "" for k, v in attrs}, start=index, end=index)
        self._stack[-1].children.append(element)
        if not void:
            self._stack.append(element)

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self._open(tag, attrs, void=tag in VOID_TAGS)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self._open(tag, attrs, void=True)

    def handle_endtag(self, tag: str) -> None:
        index = self._token(f"</{tag}>")
        for depth in range(len(self._stack) - 1, 0, -1):
            if self._stack[depth].tag == tag:
                # Elements left open inside it end just before this tag.
                for unclosed in self._stack[depth + 1:]:
                    unclosed.end = index - 1
                self._stack[depth].end = index
                del self._stack[depth:]
                return
        # Stray end tag: the raw token stays inside the enclosing element.

    def handle_data(self, data: str) -> None:
        index = self._token(data)
        self._stack[-1].children.append(_Text(data, index))

    def handle_entityref(self, name: str) -> None:
        raw = f"&{name};"
        index = self._token(raw)
        self._stack[-1].children.append(_Text(unescape(raw), index))

    def handle_charref(self, name: str) -> None:
        raw = f"&#{name};"
        index = self._token(raw)
        self._stack[-1].children.append(_Text(unescape(raw), index))

    def handle_comment(self, data: str) -> None:
        self._token(f"<!--{data}-->")

    def handle_decl(self, decl: str) -> None:
        self._token(f"<!{decl}>")

    def close(self) -> None:
        super().close()
        for unclosed in self._stack[1:]:
            unclosed.end = len(self.tokens) - 1
        self._stack = [self.root]

    def raw(self, element: _Element) -> str:
        return "".join(self.tokens[element.start:element.end + 1])

    def raw_run(self, nodes: list[Union[_Element, _Text]]) -> str:
        """Source of a run of sibling nodes, first to last."""
        first, last = nodes[0], nodes[-1]
        start = first.index if isinstance(first, _Text) else first.start
        end = last.index if isinstance(last, _Text) else last.end
        return "".join(self.tokens[start:end + 1])


# =============================================================================
# Public API
# =============================================================================


def parse_html(markup: str) -> list[Block]:
    """Parse markup into root-level blocks.

    Plain text without any tags (notes written before the block editor)
    becomes one paragraph per line.

    Args:
        markup: The stored content string.

    Returns:
        Root-level blocks. May be empty; the document model turns an
        empty list into a single empty paragraph.
    """
    if not markup:
        return []

    if "<" not in markup:
        return [Block.paragraph(line) for line in markup.split("\n")]

    builder = _TreeBuilder()
    builder.feed(markup)
    builder.close()
    return _Converter(builder).blocks(builder.root.children)


# =============================================================================
# Tree -> Blocks
# =============================================================================


class _Converter:
    def __init__(self, builder: _TreeBuilder) -> None:
        self._builder = builder

    def _opaque(self, element: _Element) -> Block:
        return Block.from_embed(OpaqueEmbed(self._builder.raw(element)))

    def blocks(self, nodes: list[Union[_Element, _Text]]) -> list[Block]:
        """Convert block-level nodes, gathering loose inline runs into paragraphs."""
        result: list[Block] = []
        pending: list[Union[_Element, _Text]] = []

        def flush() -> None:
            if pending and _has_foreign_inline(pending):
                result.append(Block.from_embed(OpaqueEmbed(self._builder.raw_run(pending))))
            elif any(_has_content(node) for node in pending):
                result.append(Block(BlockKind.PARAGRAPH, spans=merge_spans(_inline(pending, InlineSpan("")))))
            pending.clear()

        for node in nodes:
            if isinstance(node, _Text) or node.tag in INLINE_TAGS:
                pending.append(node)
                continue
            flush()
            block = self.element(node)
            if block is not None:
                result.append(block)
        flush()
        return result

    def element(self, element: _Element) -> Block | None:
        """Convert one block-level element."""
        tag = element.tag

        if tag in ("p", "h1", "h2", "h3") and (element.attrs or _has_foreign_inline(element.children)):
            return self._opaque(element)

        if tag == "p":
            return Block(BlockKind.PARAGRAPH, spans=merge_spans(_inline(element.children, InlineSpan(""))))
        elif tag in ("h1", "h2", "h3"):
            return Block(
                BlockKind.HEADING,
                attrs={"level": int(tag[1])},
                spans=merge_spans(_inline(element.children, InlineSpan(""))),
            )
        elif tag in ("ul", "ol"):
            return self._list(element)
        elif tag == "blockquote":
            return self._blockquote(element)
        elif tag == "pre":
            return self._code(element)
        elif tag == "hr":
            return Block.rule()
        elif tag == "table":
            return Block.from_embed(_table(element))
        elif tag == "img":
            return Block.from_embed(ImageEmbed(
                src=element.attrs.get("src", ""),
                alt=element.attrs.get("alt", ""),
                caption=element.attrs.get("title") or None,
            ))
        elif tag == "details":
            return self._toggle(element)
        elif tag == "div" and "data-type" in element.attrs:
            return self._typed_div(element)
        return self._opaque(element)

    def _list(self, element: _Element) -> Block:
        ordered = element.tag == "ol"
        start = element.attrs.get("start", "1")
        if set(element.attrs) - ({"start"} if ordered else set()) or not start.isdigit():
            # Task lists and styled lists carry attributes the editor cannot keep.
            return self._opaque(element)

        item_kind = BlockKind.ORDERED_LIST_ITEM if ordered else BlockKind.BULLET_LIST_ITEM
        items: list[Block] = []
        for child in element.children:
            if isinstance(child, _Text):
                if child.value.strip():
                    return self._opaque(element)
                continue
            if child.tag != "li" or not _is_plain_item(child):
                return self._opaque(element)
            items.append(Block(item_kind, spans=_list_item_spans(child)))

        attrs = {}
        if ordered and int(start) != 1:
            attrs["start"] = int(start)
        container = BlockKind.ORDERED_LIST if ordered else BlockKind.BULLET_LIST
        return Block(container, attrs=attrs, children=items)

    def _blockquote(self, element: _Element) -> Block:
        children = self.blocks(element.children)
        if element.attrs or any(child.kind not in QUOTABLE_KINDS for child in children):
            return self._opaque(element)
        return Block(BlockKind.BLOCKQUOTE, children=children)

    def _code(self, element: _Element) -> Block:
        attrs = {}
        for child in element.children:
            if isinstance(child, _Element) and child.tag == "code":
                match = _LANGUAGE_CLASS.search(child.attrs.get("class", ""))
                if match:
                    attrs["language"] = match.group(1)
                break
        text = _text_content(element)
        spans = [InlineSpan(text)] if text else []
        return Block(BlockKind.CODE_BLOCK, attrs=attrs, spans=spans)

    def _toggle(self, element: _Element) -> Block:
        summary = ""
        body_parts: list[str] = []
        for child in element.children:
            if isinstance(child, _Element) and child.tag == "summary":
                summary = _text_content(child)
            elif isinstance(child, _Element):
                body_parts.append(_text_content(child))
            elif child.value.strip():
                body_parts.append(child.value)
        return Block.from_embed(ToggleEmbed(summary=summary, body="\n".join(body_parts)))

    def _typed_div(self, element: _Element) -> Block:
        data_type = element.attrs["data-type"]
        if data_type == "callout":
            return Block.from_embed(CalloutEmbed(
                text=_text_content(element),
                label=element.attrs.get("data-label", ""),
            ))
        elif data_type == "math":
            return Block.from_embed(MathEmbed(_text_content(element)))
        elif data_type == "terminal":
            text = _text_content(element)
            commands = tuple(text.split("\n")) if text else ()
            return Block.from_embed(TerminalEmbed(
                commands=commands,
                prompt=element.attrs.get("data-prompt", "$"),
            ))
        elif data_type == "date":
            value = _find_datetime(element)
            if value is not None:
                return Block.from_embed(DateEmbed(value))
        logger.debug("Keeping unrecognised div data-type=%r as opaque markup", data_type)
        return self._opaque(element)


# =============================================================================
# Helpers
# =============================================================================


def _inline(nodes: list[Union[_Element, _Text]], fmt: InlineSpan) -> list[InlineSpan]:
    """Convert inline nodes to spans, accumulating marks from enclosing tags."""
    spans: list[InlineSpan] = []
    for node in nodes:
        if isinstance(node, _Text):
            spans.append(InlineSpan(
                node.value,
                bold=fmt.bold,
                italic=fmt.italic,
                strikethrough=fmt.strikethrough,
                code=fmt.code,
                highlight=fmt.highlight,
                highlight_color=fmt.highlight_color,
                link_url=fmt.link_url,
            ))
            continue

        tag = node.tag
        if tag == "br":
            spans.append(InlineSpan("\n", **_flags(fmt)))
            continue
        if tag in ("strong", "b"):
            child_fmt = _with(fmt, bold=True)
        elif tag in ("em", "i"):
            child_fmt = _with(fmt, italic=True)
        elif tag in ("s", "strike", "del"):
            child_fmt = _with(fmt, strikethrough=True)
        elif tag == "code":
            child_fmt = _with(fmt, code=True)
        elif tag == "mark":
            child_fmt = _with(fmt, highlight=True, highlight_color=node.attrs.get("data-color") or None)
        elif tag == "a":
            child_fmt = _with(fmt, link_url=node.attrs.get("href", ""))
        else:
            # Callers keep blocks with any other inline tag opaque.
            child_fmt = fmt
        spans.extend(_inline(node.children, child_fmt))
    return spans


def _flags(fmt: InlineSpan) -> dict:
    return {
        "bold": fmt.bold,
        "italic": fmt.italic,
        "strikethrough": fmt.strikethrough,
        "code": fmt.code,
        "highlight": fmt.highlight,
        "highlight_color": fmt.highlight_color,
        "link_url": fmt.link_url,
    }


def _with(fmt: InlineSpan, **changes) -> InlineSpan:
    flags = _flags(fmt)
    flags.update(changes)
    return InlineSpan("", **flags)


def _list_item_spans(item: _Element) -> list[InlineSpan]:
    """Inline content of an <li>, with or without wrapping <p> elements."""
    paragraphs = [c for c in item.children if isinstance(c, _Element) and c.tag == "p"]
    if not paragraphs:
        return merge_spans(_inline(item.children, InlineSpan("")))
    spans: list[InlineSpan] = []
    for i, paragraph in enumerate(paragraphs):
        if i:
            spans.append(InlineSpan("\n"))
        spans.extend(_inline(paragraph.children, InlineSpan("")))
    return merge_spans(spans)


def _text_content(element: _Element) -> str:
    parts: list[str] = []
    for child in element.children:
        if isinstance(child, _Text):
            parts.append(child.value)
        elif child.tag == "br":
            parts.append("\n")
        else:
            parts.append(_text_content(child))
    return "".join(parts)


def _has_content(node: Union[_Element, _Text]) -> bool:
    if isinstance(node, _Text):
        return bool(node.value.strip())
    return node.tag == "br" or any(_has_content(child) for child in node.children)


def _has_foreign_inline(nodes: list[Union[_Element, _Text]]) -> bool:
    """True when any element in the run is not a mark tag."""
    for node in nodes:
        if isinstance(node, _Element):
            if node.tag not in MARK_TAGS or _has_foreign_inline(node.children):
                return True
    return False


def _is_plain_item(item: _Element) -> bool:
    """An <li> the list model can hold: bare inline text or plain <p> children, not both."""
    if item.attrs:
        return False
    has_paragraph = False
    has_loose = False
    for child in item.children:
        if isinstance(child, _Text):
            has_loose = has_loose or bool(child.value.strip())
        elif child.tag == "p":
            if child.attrs or _has_foreign_inline(child.children):
                return False
            has_paragraph = True
        elif child.tag in MARK_TAGS:
            if _has_foreign_inline([child]):
                return False
            has_loose = True
        else:
            return False
    return not (has_paragraph and has_loose)


def _table(element: _Element) -> TableEmbed:
    rows: list[tuple[str, ...]] = []
    header = False

    def collect(node: _Element, in_head: bool) -> None:
        nonlocal header
        for child in node.children:
            if not isinstance(child, _Element):
                continue
            if child.tag in ("thead", "tbody", "tfoot"):
                collect(child, child.tag == "thead")
            elif child.tag == "tr":
                cells = [c for c in child.children if isinstance(c, _Element) and c.tag in ("th", "td")]
                if not rows and (in_head or (cells and all(c.tag == "th" for c in cells))):
                    header = True
                rows.append(tuple(_text_content(c) for c in cells))

    collect(element, False)
    return TableEmbed(rows=tuple(rows), header=header)


def _find_datetime(element: _Element) -> date | None:
    for child in element.children:
        if isinstance(child, _Element) and child.tag == "time":
            try:
                return date.fromisoformat(child.attrs.get("datetime", ""))
            except ValueError:
                return None
    return None
