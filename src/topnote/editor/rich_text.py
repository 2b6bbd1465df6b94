"""Character-level operations over inline span lists.

Span lists are treated as immutable values: every function returns a new
normalized list (adjacent spans with identical formatting merged, empty
spans dropped).
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Iterable

from .blocks_models import InlineSpan, Mark


def merge_spans(spans: Iterable[InlineSpan]) -> list[InlineSpan]:
    """Merge adjacent spans with identical formatting and drop empty ones."""
    merged: list[InlineSpan] = []
    for span in spans:
        if not span.text:
            continue
        if merged and merged[-1].formatting() == span.formatting():
            merged[-1] = replace(merged[-1], text=merged[-1].text + span.text)
        else:
            merged.append(span)
    return merged


def split_spans(spans: list[InlineSpan], offset: int) -> tuple[list[InlineSpan], list[InlineSpan]]:
    """Split a span list at a character offset."""
    left: list[InlineSpan] = []
    right: list[InlineSpan] = []
    pos = 0
    for span in spans:
        end = pos + len(span.text)
        if end <= offset:
            left.append(span)
        elif pos >= offset:
            right.append(span)
        else:
            cut = offset - pos
            left.append(replace(span, text=span.text[:cut]))
            right.append(replace(span, text=span.text[cut:]))
        pos = end
    return merge_spans(left), merge_spans(right)


def slice_spans(spans: list[InlineSpan], start: int, end: int) -> list[InlineSpan]:
    """Spans covering [start, end)."""
    _, tail = split_spans(spans, start)
    middle, _ = split_spans(tail, end - start)
    return middle


def delete_text(spans: list[InlineSpan], start: int, end: int) -> list[InlineSpan]:
    """Remove characters [start, end)."""
    left, _ = split_spans(spans, start)
    _, right = split_spans(spans, end)
    return merge_spans(left + right)


def insert_spans(spans: list[InlineSpan], offset: int, new: list[InlineSpan]) -> list[InlineSpan]:
    left, right = split_spans(spans, offset)
    return merge_spans(left + new + right)


def marks_before(spans: list[InlineSpan], offset: int) -> InlineSpan:
    """Formatting a character typed at ``offset`` inherits.

    Text typed after a mark continues it, the same way a word processor
    extends bold when you keep typing. At the start of a block the
    first span's formatting applies. Links only extend when the cursor
    is inside them, never at their edges.
    """
    left, right = split_spans(spans, offset)
    if left:
        template = replace(left[-1], text="")
    elif right:
        template = replace(right[0], text="")
    else:
        return InlineSpan("")
    inside_link = bool(left and right) and left[-1].link_url == right[0].link_url
    if template.link_url is not None and not inside_link:
        template = replace(template, link_url=None)
    return template


def map_range(
    spans: list[InlineSpan],
    start: int,
    end: int,
    fn: Callable[[InlineSpan], InlineSpan],
) -> list[InlineSpan]:
    """Apply ``fn`` to every span piece inside [start, end)."""
    left, tail = split_spans(spans, start)
    middle, right = split_spans(tail, end - start)
    return merge_spans(left + [fn(span) for span in middle] + right)


def range_has_mark(
    spans: list[InlineSpan],
    start: int,
    end: int,
    mark: Mark,
    attrs: dict[str, Any] | None = None,
) -> bool:
    """True when every character in [start, end) carries the mark."""
    middle = slice_spans(spans, start, end)
    return bool(middle) and all(span.has_mark(mark, attrs) for span in middle)


def strip_marks(spans: list[InlineSpan]) -> list[InlineSpan]:
    """Collapse to a single plain span (code blocks carry no marks)."""
    text = "".join(span.text for span in spans)
    return [InlineSpan(text)] if text else []
