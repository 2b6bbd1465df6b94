"""Markdown-style shortcuts applied while typing.

Typing a Markdown prefix at the start of a paragraph converts the
paragraph: ``# `` to ``### `` make headings, ``- `` / ``* `` / ``+ ``
a bulleted list, ``1. `` a numbered list starting at that number,
``> `` a quote, three backticks (optionally followed by a language)
and a space a code block, and ``---`` a divider. The prefix itself is removed.

Rules only fire in plain paragraphs. Headings may also be made inside a
quote; the other rules need a root-level paragraph.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable

from .blocks_models import Block, BlockKind, Position
from .document import Document

logger = logging.getLogger(__name__)

Apply = Callable[[Document, Position, re.Match], Position]


@dataclass(frozen=True)
class InputRule:
    """A prefix pattern and the conversion it triggers."""

    name: str
    pattern: re.Pattern[str]
    apply: Apply
    in_quote: bool = False


def _retype(kind: BlockKind, attrs: Callable[[re.Match[str]], dict] = lambda m: {}) -> Apply:
    def apply(document: Document, position: Position, match: re.Match[str]) -> Position:
        start = Position(position.block, 0)
        document.delete_range(start, position)
        document.set_block_type(start, kind, attrs(match))
        return start
    return apply


def _divider(document: Document, position: Position, match: re.Match[str]) -> Position:
    start = Position(position.block, 0)
    document.delete_range(start, position)
    return document.insert_fragment(start, [Block.rule()])


INPUT_RULES: tuple[InputRule, ...] = (
    InputRule(
        "heading",
        re.compile(r"(#{1,3})\s"),
        _retype(BlockKind.HEADING, lambda m: {"level": len(m.group(1))}),
        in_quote=True,
    ),
    InputRule("bullet_list", re.compile(r"\s*[-+*]\s"), _retype(BlockKind.BULLET_LIST_ITEM)),
    InputRule(
        "ordered_list",
        re.compile(r"(\d+)\.\s"),
        _retype(BlockKind.ORDERED_LIST_ITEM, lambda m: {"start": int(m.group(1))}),
    ),
    InputRule("blockquote", re.compile(r"\s*>\s"), _retype(BlockKind.BLOCKQUOTE)),
    InputRule(
        "code_block",
        re.compile(r"```([a-z]+)?\s"),
        _retype(BlockKind.CODE_BLOCK, lambda m: {"language": m.group(1)} if m.group(1) else {}),
    ),
    InputRule("divider", re.compile(r"---|___\s|\*\*\*\s"), _divider),
)


def match_input_rule(document: Document, position: Position) -> tuple[InputRule, re.Match[str]] | None:
    """Find the rule whose pattern is exactly the text before ``position``."""
    if document.leaf(position.block).kind != BlockKind.PARAGRAPH:
        return None
    container = document.container_of(position.block)
    prefix = document.text_at(position.block)[:position.offset]
    for rule in INPUT_RULES:
        if container is not None and not (rule.in_quote and container == BlockKind.BLOCKQUOTE):
            continue
        match = rule.pattern.fullmatch(prefix)
        if match:
            return rule, match
    return None


def apply_input_rule(document: Document, position: Position) -> Position | None:
    """Convert the paragraph at ``position`` if a rule matches.

    Returns:
        The new cursor position, or None when no rule fired.
    """
    found = match_input_rule(document, position)
    if found is None:
        return None
    rule, match = found
    logger.debug("Input rule %s fired in block %d", rule.name, position.block)
    return rule.apply(document, position, match)
