"""The block document model.

The Document owns the block tree of one open note. Every structural change
goes through one of its operations; each operation validates its
positions first, applies the change to a copy of the leaf sequence,
normalizes it back into a tree and only then swaps it in. An operation
that raises leaves the document exactly as it was.

Addressing: a Position is ``(block, offset)`` where ``block`` indexes the
depth-first sequence of leaf blocks (text blocks and atoms; containers are
never addressed directly) and ``offset`` is a character offset in the
leaf. Atoms only accept offset 0.
"""

from __future__ import annotations

import copy
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Any, Iterator, Sequence

from ..errors import RangeError, ValidationError
from .blocks_models import (
    Block,
    BlockKind,
    HEADING_LEVELS,
    InlineSpan,
    LIST_CONTAINERS,
    Mark,
    Position,
    QUOTABLE_KINDS,
    Selection,
)
from .events import DocumentEventType, EventStream
from .html_parser import parse_html
from .html_renderer import render_html
from .rich_text import (
    delete_text,
    insert_spans,
    map_range,
    marks_before,
    merge_spans,
    range_has_mark,
    slice_spans,
    split_spans,
    strip_marks,
)

logger = logging.getLogger(__name__)

# Kinds accepted by set_block_type. List containers are accepted as
# shorthand for their item kind.
SETTABLE_KINDS = frozenset({
    BlockKind.PARAGRAPH,
    BlockKind.HEADING,
    BlockKind.CODE_BLOCK,
    BlockKind.BULLET_LIST_ITEM,
    BlockKind.ORDERED_LIST_ITEM,
    BlockKind.BLOCKQUOTE,
})

_ITEM_FOR_LIST = {container: item for item, container in LIST_CONTAINERS.items()}


@dataclass
class _Entry:
    """A leaf plus the container it sits in (None for root level)."""

    wrapper: BlockKind | None
    leaf: Block
    wrapper_attrs: dict[str, Any] = field(default_factory=dict)


@dataclass
class _Edit:
    entries: list[_Entry]
    selection: Selection | None = None


@dataclass(frozen=True)
class DocumentSnapshot:
    """Tree and selection at one point in time (see EditHistory)."""

    blocks: tuple[Block, ...]
    selection: Selection


@dataclass
class _MarkToggle:
    """Remembers the last range toggle so an immediate repeat restores it."""

    start: Position
    end: Position
    mark: Mark
    attrs: tuple[tuple[str, Any], ...]
    version: int
    before: dict[int, list[InlineSpan]]


class Document:
    """Mutable block tree with selection and change notifications.

    Usage:
        doc = Document.from_html("<p>Hello</p>")
        doc.content_changed.subscribe(on_change)
        doc.insert_text(Position(0, 5), " world")
        doc.serialize()  # '<p>Hello world</p>'
    """

    def __init__(self, blocks: Sequence[Block] | None = None) -> None:
        entries = _normalize(_flatten(copy.deepcopy(list(blocks or []))))
        for entry in entries:
            _check_attrs(entry.leaf)
        self._blocks: list[Block] = _rebuild(entries)
        self._selection = Selection.cursor(Position(0, 0))
        self._stored_marks: InlineSpan | None = None
        self._last_toggle: _MarkToggle | None = None
        self._version = 0

        self.content_changed = EventStream(DocumentEventType.CONTENT_CHANGED)
        self.selection_changed = EventStream(DocumentEventType.SELECTION_CHANGED)

    @classmethod
    def from_html(cls, markup: str) -> Document:
        """Build a document from stored note content."""
        return cls(parse_html(markup))

    # =========================================================================
    # Read access
    # =========================================================================

    @property
    def blocks(self) -> tuple[Block, ...]:
        """Root-level blocks. Treat as read-only."""
        return tuple(self._blocks)

    @property
    def selection(self) -> Selection:
        return self._selection

    @property
    def version(self) -> int:
        """Incremented by every content mutation."""
        return self._version

    @property
    def stored_marks(self) -> InlineSpan | None:
        """Formatting the next typed text will get, if toggled at a cursor."""
        return self._stored_marks

    def leaves(self) -> list[Block]:
        """Leaf blocks in document order (the addressable blocks)."""
        return [entry.leaf for entry in _flatten(self._blocks)]

    def leaf(self, index: int) -> Block:
        leaves = self.leaves()
        if not 0 <= index < len(leaves):
            raise RangeError("Block index out of range", context={"index": index})
        return leaves[index]

    def container_of(self, index: int) -> BlockKind | None:
        """Kind of the container holding leaf ``index`` (None at root)."""
        entries = _flatten(self._blocks)
        if not 0 <= index < len(entries):
            raise RangeError("Block index out of range", context={"index": index})
        return entries[index].wrapper

    def text_at(self, index: int) -> str:
        return self.leaf(index).plain_text()

    def end_position(self) -> Position:
        leaves = self.leaves()
        return Position(len(leaves) - 1, leaves[-1].text_length)

    def serialize(self) -> str:
        """Render the tree to the stored markup format."""
        return render_html(self._blocks)

    def plain_text(self) -> str:
        return "\n".join(leaf.plain_text() for leaf in self.leaves())

    def active_marks(self, start: Position | None = None, end: Position | None = None) -> set[Mark]:
        """Marks carried by every character in the range (default: selection).

        For a collapsed range this is the formatting typed text would get.
        """
        if start is None:
            start, end = self._selection.start, self._selection.end
        end = start if end is None else end
        start, end = self._ordered(start, end)

        if start == end:
            leaf = self.leaf(start.block)
            if self._stored_marks is not None and self._selection == Selection.cursor(start):
                template = self._stored_marks
            else:
                template = marks_before(leaf.spans, start.offset)
            return {mark for mark in Mark if template.has_mark(mark)}

        segments = self._mark_segments(self.leaves(), start, end)
        if not segments:
            return set()
        return {
            mark for mark in Mark
            if all(range_has_mark(leaf.spans, s, e, mark) for _, leaf, s, e in segments)
        }

    def is_block_active(
        self,
        kind: BlockKind | str,
        attrs: dict[str, Any] | None = None,
        start: Position | None = None,
        end: Position | None = None,
    ) -> bool:
        """True when every text block in the range already has this type."""
        kind = _coerce_kind(kind)
        if start is None:
            start, end = self._selection.start, self._selection.end
        end = start if end is None else end
        start, end = self._ordered(start, end)
        entries = _flatten(self._blocks)
        touched = [e for e in entries[start.block:end.block + 1] if e.leaf.is_textblock()]
        if not touched:
            return False
        return all(_entry_matches(e, kind, attrs or {}) for e in touched)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Document):
            return NotImplemented
        return self._blocks == other._blocks

    def __repr__(self) -> str:
        return f"Document({self.serialize()!r})"

    # =========================================================================
    # Selection
    # =========================================================================

    def set_selection(self, anchor: Position, head: Position | None = None) -> Selection:
        """Move the cursor or select a range.

        Raises:
            RangeError: If either end does not exist.
        """
        leaves = self.leaves()
        anchor = self._check_position(anchor, leaves)
        head = anchor if head is None else self._check_position(head, leaves)
        selection = Selection(anchor=anchor, head=head)
        if selection != self._selection:
            self._selection = selection
            self._stored_marks = None
            self.selection_changed.emit(selection)
        return selection

    # =========================================================================
    # Block type
    # =========================================================================

    def set_block_type(
        self,
        position: Position,
        kind: BlockKind | str,
        attrs: dict[str, Any] | None = None,
        *,
        end: Position | None = None,
    ) -> None:
        """Change the type of every text block from ``position`` to ``end``.

        Atoms in the range are left alone. Converting to a code block
        strips inline marks.

        Raises:
            RangeError: If a position does not exist.
            ValidationError: For kinds that cannot be set or bad attrs.
        """
        kind = _coerce_kind(kind)
        kind = _ITEM_FOR_LIST.get(kind, kind)
        if kind not in SETTABLE_KINDS:
            raise ValidationError(f"Cannot set block type to {kind.value}", field="kind", value=kind.value)
        attrs = dict(attrs or {})
        if kind == BlockKind.HEADING:
            attrs = {"level": _heading_level(attrs.get("level", 1))}

        with self._transaction() as edit:
            start, stop = self._ordered_range(position, end, edit.entries)
            for entry in edit.entries[start.block:stop.block + 1]:
                if entry.leaf.is_textblock():
                    _convert_entry(entry, kind, attrs)
            edit.selection = self._selection

    def toggle_block_type(
        self,
        position: Position,
        kind: BlockKind | str,
        attrs: dict[str, Any] | None = None,
        *,
        end: Position | None = None,
    ) -> None:
        """Set the type, or revert to paragraph if the range already has it.

        Toggling quote off lifts the blocks out of the blockquote and
        keeps their own type.
        """
        if not self.is_block_active(kind, attrs, position, end):
            self.set_block_type(position, kind, attrs, end=end)
        elif _coerce_kind(kind) == BlockKind.BLOCKQUOTE:
            with self._transaction() as edit:
                start, stop = self._ordered_range(position, end, edit.entries)
                for entry in edit.entries[start.block:stop.block + 1]:
                    if entry.wrapper == BlockKind.BLOCKQUOTE:
                        entry.wrapper = None
                edit.selection = self._selection
        else:
            self.set_block_type(position, BlockKind.PARAGRAPH, end=end)

    # =========================================================================
    # Marks
    # =========================================================================

    def toggle_mark(
        self,
        start: Position,
        end: Position,
        mark: Mark | str,
        attrs: dict[str, Any] | None = None,
    ) -> bool:
        """Flip a mark over a range.

        If every character already carries the mark it is removed,
        otherwise it is applied to all of them. Repeating the same toggle
        with no change in between restores the exact prior state. At a
        collapsed range the mark is toggled for the next typed text.

        Returns:
            True if the mark is now on.
        """
        mark = _coerce_mark(mark)
        attrs = dict(attrs or {})
        leaves = self.leaves()
        start, end = self._ordered(
            self._check_position(start, leaves),
            self._check_position(end, leaves),
        )

        if start == end:
            return self._toggle_stored_mark(start, mark, attrs)

        key = tuple(sorted(attrs.items()))
        last = self._last_toggle
        if (
            last is not None
            and last.version == self._version
            and (last.start, last.end, last.mark, last.attrs) == (start, end, mark, key)
        ):
            with self._transaction() as edit:
                for index, spans in last.before.items():
                    edit.entries[index].leaf.spans = list(spans)
                edit.selection = self._selection
            self._last_toggle = None
            return any(s.has_mark(mark, attrs) for s in _range_spans(self.leaves(), start, end))

        segments = self._mark_segments(leaves, start, end)
        if not segments:
            return False
        turn_on = not all(range_has_mark(leaf.spans, s, e, mark, attrs) for _, leaf, s, e in segments)
        if turn_on and mark is Mark.LINK and not attrs.get("href"):
            raise ValidationError("Link mark requires an href", field="href")

        before = {index: list(leaf.spans) for index, leaf, _, _ in segments}
        with self._transaction() as edit:
            for index, _, s, e in segments:
                leaf = edit.entries[index].leaf
                if turn_on:
                    leaf.spans = map_range(leaf.spans, s, e, lambda span: span.with_mark(mark, attrs))
                else:
                    leaf.spans = map_range(leaf.spans, s, e, lambda span: span.without_mark(mark))
            edit.selection = self._selection
        self._last_toggle = _MarkToggle(start, end, mark, key, self._version, before)
        return turn_on

    def _toggle_stored_mark(self, position: Position, mark: Mark, attrs: dict[str, Any]) -> bool:
        leaf = self.leaf(position.block)
        if not leaf.is_textblock() or leaf.kind == BlockKind.CODE_BLOCK:
            return False
        if self._stored_marks is not None and self._selection == Selection.cursor(position):
            template = self._stored_marks
        else:
            template = marks_before(leaf.spans, position.offset)
        if template.has_mark(mark, attrs):
            template = template.without_mark(mark)
            turned_on = False
        else:
            if mark is Mark.LINK and not attrs.get("href"):
                raise ValidationError("Link mark requires an href", field="href")
            template = template.with_mark(mark, attrs)
            turned_on = True
        if self._selection != Selection.cursor(position):
            self.set_selection(position)
        self._stored_marks = template
        return turned_on

    def _mark_segments(
        self,
        leaves: list[Block],
        start: Position,
        end: Position,
    ) -> list[tuple[int, Block, int, int]]:
        """(index, leaf, from, to) for every markable piece of a range."""
        segments = []
        for index in range(start.block, end.block + 1):
            leaf = leaves[index]
            if not leaf.is_textblock() or leaf.kind == BlockKind.CODE_BLOCK:
                continue
            s = start.offset if index == start.block else 0
            e = end.offset if index == end.block else leaf.text_length
            if s < e:
                segments.append((index, leaf, s, e))
        return segments

    # =========================================================================
    # Text
    # =========================================================================

    def insert_text(self, position: Position, text: str) -> Position:
        """Type text at a position.

        The text takes the stored marks if a mark was toggled at this
        cursor, otherwise the formatting of the character before it.

        Returns:
            The cursor position after the inserted text.
        """
        if not text:
            return self._check_position(position, self.leaves())
        with self._transaction() as edit:
            pos = self._check_position(position, [e.leaf for e in edit.entries])
            leaf = edit.entries[pos.block].leaf
            if not leaf.is_textblock():
                raise RangeError("Cannot type into an atom block", position=pos)
            if leaf.kind == BlockKind.CODE_BLOCK:
                template = InlineSpan("")
            elif self._stored_marks is not None and self._selection == Selection.cursor(pos):
                template = self._stored_marks
            else:
                template = marks_before(leaf.spans, pos.offset)
            leaf.spans = insert_spans(leaf.spans, pos.offset, [replace(template, text=text)])
            after = Position(pos.block, pos.offset + len(text))
            edit.selection = Selection.cursor(after)
        return after

    def delete_range(self, start: Position, end: Position) -> Position:
        """Delete everything between two positions.

        Across blocks, the first block keeps its type and absorbs the
        remainder of the last one; blocks in between are removed. An atom
        at the start of the range is removed with it.

        Returns:
            The collapsed cursor after deletion.
        """
        with self._transaction() as edit:
            entries = edit.entries
            start, end = self._ordered_range(start, end, entries)
            if start == end:
                edit.selection = Selection.cursor(start)
                return start

            first, last = entries[start.block], entries[end.block]
            if start.block == end.block:
                if first.leaf.is_textblock():
                    first.leaf.spans = delete_text(first.leaf.spans, start.offset, end.offset)
                edit.selection = Selection.cursor(start)
                return start

            merged: list[_Entry] = []
            if first.leaf.is_textblock():
                left, _ = split_spans(first.leaf.spans, start.offset)
                if last.leaf.is_textblock():
                    _, right = split_spans(last.leaf.spans, end.offset)
                    first.leaf.spans = merge_spans(left + right)
                    merged.append(first)
                else:
                    first.leaf.spans = left
                    merged.extend([first, last])
            else:
                if last.leaf.is_textblock():
                    _, right = split_spans(last.leaf.spans, end.offset)
                    last.leaf.spans = right
                merged.append(last)

            edit.entries[start.block:end.block + 1] = merged
            cursor = Position(start.block, start.offset if first.leaf.is_textblock() else 0)
            edit.selection = Selection.cursor(cursor)
        return self._selection.head

    def split_block(self, position: Position) -> Position:
        """Split the block at a position (the Enter key).

        An empty list item leaves its list instead of splitting. In a
        code block a newline is inserted. At an atom, an empty paragraph
        is added after it.

        Returns:
            The cursor position after the split.
        """
        leaves = self.leaves()
        pos = self._check_position(position, leaves)
        leaf = leaves[pos.block]
        if leaf.kind == BlockKind.CODE_BLOCK:
            return self.insert_text(pos, "\n")

        with self._transaction() as edit:
            entry = edit.entries[pos.block]
            if entry.leaf.is_atom():
                edit.entries.insert(pos.block + 1, _Entry(None, Block.paragraph()))
                after = Position(pos.block + 1, 0)
            elif entry.leaf.kind in LIST_CONTAINERS and entry.leaf.is_empty():
                entry.leaf.kind = BlockKind.PARAGRAPH
                entry.wrapper = None
                entry.wrapper_attrs = {}
                after = Position(pos.block, 0)
            else:
                left, right = split_spans(entry.leaf.spans, pos.offset)
                entry.leaf.spans = left
                if entry.leaf.kind == BlockKind.HEADING and not right:
                    new_leaf = Block(BlockKind.PARAGRAPH)
                else:
                    new_leaf = Block(entry.leaf.kind, attrs=dict(entry.leaf.attrs), spans=right)
                edit.entries.insert(
                    pos.block + 1,
                    _Entry(entry.wrapper, new_leaf, dict(entry.wrapper_attrs)),
                )
                after = Position(pos.block + 1, 0)
            edit.selection = Selection.cursor(after)
        return after

    # =========================================================================
    # Fragments
    # =========================================================================

    def insert_fragment(self, position: Position, fragment: str | Sequence[Block]) -> Position:
        """Insert markup or ready-made blocks at a position.

        A fragment that is a single plain paragraph is inserted inline.
        Anything else splits the block at the position and goes in
        between the halves (an empty block is replaced). When the
        fragment ends with an atom and nothing follows it, an empty
        paragraph is added so typing can continue.

        Returns:
            The cursor position after the inserted content.
        """
        blocks = parse_html(fragment) if isinstance(fragment, str) else copy.deepcopy(list(fragment))
        new_entries = _normalize(_flatten(blocks)) if blocks else []
        for entry in new_entries:
            _check_attrs(entry.leaf)
        if not new_entries:
            return self._check_position(position, self.leaves())

        with self._transaction() as edit:
            pos = self._check_position(position, [e.leaf for e in edit.entries])
            target = edit.entries[pos.block]

            inline = (
                len(new_entries) == 1
                and new_entries[0].wrapper is None
                and new_entries[0].leaf.kind == BlockKind.PARAGRAPH
                and target.leaf.is_textblock()
            )
            if inline:
                spans = new_entries[0].leaf.spans
                if target.leaf.kind == BlockKind.CODE_BLOCK:
                    spans = strip_marks(spans)
                target.leaf.spans = insert_spans(target.leaf.spans, pos.offset, spans)
                after = Position(pos.block, pos.offset + sum(len(s.text) for s in spans))
                edit.selection = Selection.cursor(after)
                return after

            if target.leaf.is_atom():
                before_part: list[_Entry] = [target]
                after_part: list[_Entry] = []
            else:
                left, right = split_spans(target.leaf.spans, pos.offset)
                before_part = []
                after_part = []
                if left:
                    before_part.append(_Entry(target.wrapper, replace(target.leaf, spans=left), dict(target.wrapper_attrs)))
                if right:
                    after_part.append(_Entry(target.wrapper, replace(target.leaf, spans=right, attrs=dict(target.leaf.attrs)), dict(target.wrapper_attrs)))

            if new_entries[-1].leaf.is_atom() and not after_part:
                new_entries.append(_Entry(None, Block.paragraph()))

            edit.entries[pos.block:pos.block + 1] = before_part + new_entries + after_part
            last_index = pos.block + len(before_part) + len(new_entries) - 1
            last_leaf = edit.entries[last_index].leaf
            if last_leaf.is_textblock():
                after = Position(last_index, last_leaf.text_length)
            elif after_part:
                after = Position(last_index + 1, 0)
            else:
                after = Position(last_index, 0)
            edit.selection = Selection.cursor(after)
        return after

    # =========================================================================
    # Whole-block operations (hover menu)
    # =========================================================================

    def insert_paragraph_after(self, index: int) -> Position:
        """Add an empty paragraph after a block and move the cursor there."""
        with self._transaction() as edit:
            self._check_index(index, edit.entries)
            edit.entries.insert(index + 1, _Entry(None, Block.paragraph()))
            after = Position(index + 1, 0)
            edit.selection = Selection.cursor(after)
        return after

    def duplicate_block(self, index: int) -> Position:
        """Insert a copy of a block right after it."""
        with self._transaction() as edit:
            self._check_index(index, edit.entries)
            edit.entries.insert(index + 1, copy.deepcopy(edit.entries[index]))
            after = Position(index + 1, 0)
            edit.selection = Selection.cursor(after)
        return after

    def move_block(self, index: int, delta: int) -> Position:
        """Move a block up (negative delta) or down among the leaves."""
        with self._transaction() as edit:
            self._check_index(index, edit.entries)
            target = index + delta
            if not 0 <= target < len(edit.entries):
                raise RangeError("Cannot move block past the document edge", context={"index": index, "delta": delta})
            entry = edit.entries.pop(index)
            edit.entries.insert(target, entry)
            after = Position(target, 0)
            edit.selection = Selection.cursor(after)
        return after

    def delete_block(self, index: int) -> Position:
        """Remove a block. Removing the last one leaves an empty paragraph."""
        with self._transaction() as edit:
            self._check_index(index, edit.entries)
            del edit.entries[index]
            after = Position(max(0, min(index, len(edit.entries) - 1)), 0)
            edit.selection = Selection.cursor(after)
        return self._selection.head

    # =========================================================================
    # Snapshots
    # =========================================================================

    def snapshot(self) -> DocumentSnapshot:
        return DocumentSnapshot(tuple(copy.deepcopy(self._blocks)), self._selection)

    def restore(self, snapshot: DocumentSnapshot) -> None:
        """Replace the tree and selection with an earlier snapshot."""
        with self._transaction() as edit:
            edit.entries[:] = _flatten(copy.deepcopy(list(snapshot.blocks)))
            edit.selection = snapshot.selection

    # =========================================================================
    # Internals
    # =========================================================================

    @contextmanager
    def _transaction(self) -> Iterator[_Edit]:
        """Apply an edit to a copy of the leaves and commit it on success."""
        edit = _Edit(entries=_flatten(copy.deepcopy(self._blocks)))
        yield edit
        entries = _normalize(edit.entries)
        blocks = _rebuild(entries)
        content_changed = blocks != self._blocks
        previous_selection = self._selection
        leaves = [e.leaf for e in entries]
        self._blocks = blocks
        self._selection = _clamp_selection(edit.selection or previous_selection, leaves)
        if content_changed:
            self._version += 1
            self._last_toggle = None
            self._stored_marks = None
            logger.debug("Document changed (version %d)", self._version)
            self.content_changed.emit(self)
        if self._selection != previous_selection:
            self._stored_marks = None
            self.selection_changed.emit(self._selection)

    def _check_position(self, position: Any, leaves: list[Block]) -> Position:
        try:
            pos = Position(int(position[0]), int(position[1]))
        except (TypeError, ValueError, IndexError):
            raise RangeError("Not a position", context={"value": repr(position)}) from None
        if not 0 <= pos.block < len(leaves):
            raise RangeError("Block index out of range", position=pos)
        leaf = leaves[pos.block]
        if not 0 <= pos.offset <= leaf.text_length:
            raise RangeError("Offset outside block", position=pos)
        return pos

    def _check_index(self, index: int, entries: list[_Entry]) -> None:
        if not isinstance(index, int) or not 0 <= index < len(entries):
            raise RangeError("Block index out of range", context={"index": index})

    def _ordered(self, start: Position, end: Position) -> tuple[Position, Position]:
        return (start, end) if start <= end else (end, start)

    def _ordered_range(
        self,
        start: Position,
        end: Position | None,
        entries: list[_Entry],
    ) -> tuple[Position, Position]:
        leaves = [e.leaf for e in entries]
        start = self._check_position(start, leaves)
        end = start if end is None else self._check_position(end, leaves)
        return self._ordered(start, end)


# =============================================================================
# Tree <-> leaf sequence
# =============================================================================


def _flatten(blocks: list[Block], wrapper: Block | None = None) -> list[_Entry]:
    """Depth-first leaves with their enclosing container."""
    entries: list[_Entry] = []
    for block in blocks:
        if block.is_container():
            entries.extend(_flatten(block.children, block))
        else:
            entries.append(_Entry(
                wrapper.kind if wrapper is not None else None,
                block,
                dict(wrapper.attrs) if wrapper is not None else {},
            ))
    return entries


def _normalize(entries: list[_Entry]) -> list[_Entry]:
    """Restore the tree invariants on a leaf sequence."""
    result: list[_Entry] = []
    for entry in entries:
        leaf = entry.leaf
        leaf.children = []
        if leaf.is_atom():
            leaf.spans = []
            leaf.attrs = {} if leaf.kind == BlockKind.HORIZONTAL_RULE else leaf.attrs
            entry.wrapper = None
        else:
            leaf.embed = None
            leaf.spans = strip_marks(leaf.spans) if leaf.kind == BlockKind.CODE_BLOCK else merge_spans(leaf.spans)
            if leaf.kind in LIST_CONTAINERS:
                if entry.wrapper != LIST_CONTAINERS[leaf.kind]:
                    entry.wrapper = LIST_CONTAINERS[leaf.kind]
                    entry.wrapper_attrs = {}
            elif entry.wrapper == BlockKind.BLOCKQUOTE and leaf.kind not in QUOTABLE_KINDS:
                entry.wrapper = None
            elif entry.wrapper in _ITEM_FOR_LIST:
                entry.wrapper = None
        if entry.wrapper is None:
            entry.wrapper_attrs = {}
        result.append(entry)
    if not result:
        result.append(_Entry(None, Block.paragraph()))
    return result


def _rebuild(entries: list[_Entry]) -> list[Block]:
    """Group consecutive leaves with the same wrapper into containers."""
    blocks: list[Block] = []
    current: Block | None = None
    for entry in entries:
        if entry.wrapper is None:
            current = None
            blocks.append(entry.leaf)
            continue
        if current is None or current.kind != entry.wrapper:
            current = Block(entry.wrapper, attrs=dict(entry.wrapper_attrs))
            blocks.append(current)
        current.children.append(entry.leaf)
    return blocks


def _convert_entry(entry: _Entry, kind: BlockKind, attrs: dict[str, Any]) -> None:
    """Turn a text leaf into ``kind`` in place, fixing its wrapper."""
    leaf = entry.leaf
    if kind == BlockKind.BLOCKQUOTE:
        if leaf.kind not in QUOTABLE_KINDS:
            leaf.kind = BlockKind.PARAGRAPH
            leaf.attrs = {}
        entry.wrapper = BlockKind.BLOCKQUOTE
        entry.wrapper_attrs = {}
        return

    leaf.kind = kind
    if kind == BlockKind.HEADING:
        leaf.attrs = dict(attrs)
    elif kind == BlockKind.CODE_BLOCK:
        leaf.attrs = {"language": attrs["language"]} if attrs.get("language") else {}
        leaf.spans = strip_marks(leaf.spans)
    else:
        leaf.attrs = {}

    if kind in LIST_CONTAINERS:
        if entry.wrapper != LIST_CONTAINERS[kind]:
            entry.wrapper = LIST_CONTAINERS[kind]
            entry.wrapper_attrs = {}
            start = attrs.get("start")
            if kind == BlockKind.ORDERED_LIST_ITEM and isinstance(start, int) and start != 1:
                entry.wrapper_attrs = {"start": start}
    elif not (entry.wrapper == BlockKind.BLOCKQUOTE and kind in QUOTABLE_KINDS):
        entry.wrapper = None
        entry.wrapper_attrs = {}


def _entry_matches(entry: _Entry, kind: BlockKind, attrs: dict[str, Any]) -> bool:
    kind = _ITEM_FOR_LIST.get(kind, kind)
    if kind == BlockKind.BLOCKQUOTE:
        return entry.wrapper == BlockKind.BLOCKQUOTE
    if entry.leaf.kind != kind:
        return False
    if kind == BlockKind.HEADING and "level" in attrs:
        return entry.leaf.attrs.get("level") == attrs["level"]
    return True


def _clamp_selection(selection: Selection, leaves: list[Block]) -> Selection:
    def clamp(pos: Position) -> Position:
        block = min(max(pos.block, 0), len(leaves) - 1)
        return Position(block, min(max(pos.offset, 0), leaves[block].text_length))

    return Selection(anchor=clamp(selection.anchor), head=clamp(selection.head))


def _range_spans(leaves: list[Block], start: Position, end: Position) -> list[InlineSpan]:
    spans: list[InlineSpan] = []
    for index in range(start.block, end.block + 1):
        leaf = leaves[index]
        if not leaf.is_textblock() or leaf.kind == BlockKind.CODE_BLOCK:
            continue
        s = start.offset if index == start.block else 0
        e = end.offset if index == end.block else leaf.text_length
        spans.extend(slice_spans(leaf.spans, s, e))
    return spans


def _check_attrs(leaf: Block) -> None:
    if leaf.kind == BlockKind.HEADING:
        leaf.attrs["level"] = _heading_level(leaf.attrs.get("level", 1))


def _heading_level(value: Any) -> int:
    try:
        level = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Heading level must be 1, 2 or 3", field="level", value=value) from None
    if level not in HEADING_LEVELS:
        raise ValidationError("Heading level must be 1, 2 or 3", field="level", value=value)
    return level


def _coerce_kind(kind: BlockKind | str) -> BlockKind:
    try:
        return BlockKind(kind)
    except ValueError:
        raise ValidationError(f"Unknown block kind: {kind}", field="kind", value=kind) from None


def _coerce_mark(mark: Mark | str) -> Mark:
    try:
        return Mark(mark)
    except ValueError:
        raise ValidationError(f"Unknown mark: {mark}", field="mark", value=mark) from None


def tree_problems(blocks: Sequence[Block]) -> list[str]:
    """List invariant violations in a block tree (empty when valid)."""
    problems: list[str] = []
    if not blocks:
        problems.append("document has no blocks")
    for block in blocks:
        if block.kind in LIST_CONTAINERS:
            problems.append(f"{block.kind.value} outside its list")
        problems.extend(_block_problems(block))
        if block.is_container():
            for child in block.children:
                problems.extend(_block_problems(child))
                if child.is_container():
                    problems.append(f"{child.kind.value} nested in {block.kind.value}")
                elif block.kind in _ITEM_FOR_LIST and child.kind != _ITEM_FOR_LIST[block.kind]:
                    problems.append(f"{child.kind.value} inside {block.kind.value}")
                elif block.kind == BlockKind.BLOCKQUOTE and child.kind not in QUOTABLE_KINDS:
                    problems.append(f"{child.kind.value} inside blockquote")
    return problems


def _block_problems(block: Block) -> list[str]:
    problems = []
    if block.is_container():
        if block.spans:
            problems.append(f"{block.kind.value} has both children and text")
        if not block.children:
            problems.append(f"empty {block.kind.value}")
    elif block.children:
        problems.append(f"{block.kind.value} leaf has children")
    if block.kind == BlockKind.HEADING and block.attrs.get("level") not in HEADING_LEVELS:
        problems.append(f"heading level {block.attrs.get('level')!r}")
    if block.kind == BlockKind.CODE_BLOCK and any(not span.is_plain() for span in block.spans):
        problems.append("marks inside code block")
    if any(not span.text for span in block.spans):
        problems.append(f"empty span in {block.kind.value}")
    return problems
