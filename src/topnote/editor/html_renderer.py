"""Render blocks to the stored markup format.

This module converts Block objects to the HTML-like markup kept in a
note's ``content`` field. Output is compact (no whitespace between block
tags) so that parsing it back yields the same tree.
"""

from __future__ import annotations

from html import escape

from .blocks_models import (
    Block,
    BlockKind,
    CalloutEmbed,
    DateEmbed,
    Embed,
    ImageEmbed,
    InlineSpan,
    MathEmbed,
    OpaqueEmbed,
    TableEmbed,
    TerminalEmbed,
    ToggleEmbed,
)


def render_html(blocks: list[Block]) -> str:
    """Render a list of root blocks to markup.

    Args:
        blocks: Root-level blocks (containers include their children).

    Returns:
        Markup string.
    """
    return "".join(_render_block(block) for block in blocks)


def _render_block(block: Block) -> str:
    """Render a single block."""
    kind = block.kind

    if kind == BlockKind.PARAGRAPH:
        return f"<p>{render_inline(block.spans)}</p>"
    elif kind == BlockKind.HEADING:
        level = block.attrs.get("level", 1)
        return f"<h{level}>{render_inline(block.spans)}</h{level}>"
    elif kind == BlockKind.BULLET_LIST:
        return f"<ul>{_render_children(block)}</ul>"
    elif kind == BlockKind.ORDERED_LIST:
        start = block.attrs.get("start")
        start_attr = f' start="{start}"' if start not in (None, 1) else ""
        return f"<ol{start_attr}>{_render_children(block)}</ol>"
    elif kind in (BlockKind.BULLET_LIST_ITEM, BlockKind.ORDERED_LIST_ITEM):
        return f"<li><p>{render_inline(block.spans)}</p></li>"
    elif kind == BlockKind.BLOCKQUOTE:
        return f"<blockquote>{_render_children(block)}</blockquote>"
    elif kind == BlockKind.CODE_BLOCK:
        return _render_code(block)
    elif kind == BlockKind.HORIZONTAL_RULE:
        return "<hr>"
    elif kind == BlockKind.EMBED and block.embed is not None:
        return render_embed(block.embed)
    return ""


def _render_children(block: Block) -> str:
    return "".join(_render_block(child) for child in block.children)


def _render_code(block: Block) -> str:
    """Render a code block; its text is never marked up."""
    language = block.attrs.get("language")
    class_attr = f' class="language-{escape(language)}"' if language else ""
    text = escape(block.plain_text(), quote=False)
    return f"<pre><code{class_attr}>{text}</code></pre>"


# =============================================================================
# Inline Rendering
# =============================================================================


def render_inline(spans: list[InlineSpan]) -> str:
    """Render rich text spans to inline markup."""
    return "".join(_render_span(span) for span in spans)


def _render_span(span: InlineSpan) -> str:
    """Render a single span.

    Marks nest in a fixed order, outermost first: link, bold, italic,
    strikethrough, highlight, code.
    """
    if not span.text:
        return ""

    opening: list[str] = []
    closing: list[str] = []

    if span.link_url is not None:
        opening.append(f'<a href="{escape(span.link_url)}">')
        closing.append("</a>")
    if span.bold:
        opening.append("<strong>")
        closing.append("</strong>")
    if span.italic:
        opening.append("<em>")
        closing.append("</em>")
    if span.strikethrough:
        opening.append("<s>")
        closing.append("</s>")
    if span.highlight:
        if span.highlight_color:
            color = escape(span.highlight_color)
            opening.append(f'<mark data-color="{color}" style="background-color: {color}">')
        else:
            opening.append("<mark>")
        closing.append("</mark>")
    if span.code:
        opening.append("<code>")
        closing.append("</code>")

    text = escape(span.text, quote=False).replace("\n", "<br>")
    return "".join(opening) + text + "".join(reversed(closing))


# =============================================================================
# Embed Rendering
# =============================================================================


def render_embed(embed: Embed) -> str:
    """Render a structured embed to markup."""
    if isinstance(embed, TableEmbed):
        return _render_table(embed)
    elif isinstance(embed, ImageEmbed):
        title = f' title="{escape(embed.caption)}"' if embed.caption else ""
        return f'<img src="{escape(embed.src)}" alt="{escape(embed.alt)}"{title}>'
    elif isinstance(embed, CalloutEmbed):
        return (
            f'<div data-type="callout" data-label="{escape(embed.label)}">'
            f"{escape(embed.text, quote=False)}</div>"
        )
    elif isinstance(embed, ToggleEmbed):
        return (
            f"<details><summary>{escape(embed.summary, quote=False)}</summary>"
            f"<div>{escape(embed.body, quote=False)}</div></details>"
        )
    elif isinstance(embed, DateEmbed):
        return (
            f'<div data-type="date"><time datetime="{embed.value.isoformat()}">'
            f"{escape(embed.label, quote=False)}</time></div>"
        )
    elif isinstance(embed, TerminalEmbed):
        lines = escape("\n".join(embed.commands), quote=False)
        return (
            f'<div data-type="terminal" data-prompt="{escape(embed.prompt)}">'
            f"<pre><code>{lines}</code></pre></div>"
        )
    elif isinstance(embed, MathEmbed):
        return f'<div data-type="math">{escape(embed.expression, quote=False)}</div>'
    elif isinstance(embed, OpaqueEmbed):
        return embed.markup
    raise TypeError(f"Unknown embed: {embed!r}")


def _render_table(table: TableEmbed) -> str:
    rows = list(table.rows)
    parts = ["<table>"]
    if table.header and rows:
        head = rows.pop(0)
        cells = "".join(f"<th>{escape(cell, quote=False)}</th>" for cell in head)
        parts.append(f"<thead><tr>{cells}</tr></thead>")
    parts.append("<tbody>")
    for row in rows:
        cells = "".join(f"<td>{escape(cell, quote=False)}</td>" for cell in row)
        parts.append(f"<tr>{cells}</tr>")
    parts.append("</tbody></table>")
    return "".join(parts)
