"""Render blocks to Markdown.

This module converts Block objects to Markdown text for export. Embeds
without a Markdown form are written as their stored markup, which
Markdown passes through as raw HTML.
"""

from __future__ import annotations

from .blocks_models import (
    Block,
    BlockKind,
    CalloutEmbed,
    DateEmbed,
    ImageEmbed,
    InlineSpan,
    MathEmbed,
    TableEmbed,
    TerminalEmbed,
)
from .html_renderer import render_embed


def render_markdown(blocks: list[Block]) -> str:
    """Render a list of root blocks to Markdown.

    Args:
        blocks: Root-level blocks (containers include their children).

    Returns:
        Markdown text.
    """
    parts = [_render_block(block) for block in blocks]
    return "\n\n".join(part for part in parts if part is not None)


def _render_block(block: Block) -> str | None:
    """Render a single block to Markdown."""
    kind = block.kind

    if kind == BlockKind.PARAGRAPH:
        return _render_rich_text(block.spans)
    elif kind == BlockKind.HEADING:
        prefix = "#" * block.attrs.get("level", 1)
        return f"{prefix} {_render_rich_text(block.spans)}"
    elif kind == BlockKind.BULLET_LIST:
        return "\n".join(f"- {_render_rich_text(item.spans)}" for item in block.children)
    elif kind == BlockKind.ORDERED_LIST:
        start = block.attrs.get("start", 1)
        return "\n".join(
            f"{start + i}. {_render_rich_text(item.spans)}"
            for i, item in enumerate(block.children)
        )
    elif kind == BlockKind.BLOCKQUOTE:
        lines = []
        for i, child in enumerate(block.children):
            if i:
                lines.append(">")
            rendered = _render_block(child) or ""
            lines.extend(f"> {line}" if line else ">" for line in rendered.split("\n"))
        return "\n".join(lines)
    elif kind == BlockKind.CODE_BLOCK:
        language = block.attrs.get("language", "")
        return f"```{language}\n{block.plain_text()}\n```"
    elif kind == BlockKind.HORIZONTAL_RULE:
        return "---"
    elif kind == BlockKind.EMBED and block.embed is not None:
        return _render_embed(block)
    return None


def _render_embed(block: Block) -> str:
    """Render an embed leaf."""
    embed = block.embed
    if isinstance(embed, TableEmbed):
        return _render_table(embed)
    elif isinstance(embed, ImageEmbed):
        title = f' "{embed.caption}"' if embed.caption else ""
        return f"![{embed.alt}]({embed.src}{title})"
    elif isinstance(embed, CalloutEmbed):
        return f"> {embed.label}\n>\n> {embed.text}"
    elif isinstance(embed, DateEmbed):
        return embed.label
    elif isinstance(embed, TerminalEmbed):
        commands = "\n".join(f"{embed.prompt} {command}" for command in embed.commands)
        return f"```shell\n{commands}\n```"
    elif isinstance(embed, MathEmbed):
        return f"$$\n{embed.expression}\n$$"
    # Toggles and foreign markup have no Markdown form.
    return render_embed(embed)


def _render_table(table: TableEmbed) -> str:
    """Render a table as a GitHub-style pipe table."""
    width = table.col_count
    if not width:
        return ""
    rows = [list(row) + [""] * (width - len(row)) for row in table.rows]
    if table.header:
        head, body = rows[0], rows[1:]
    else:
        head, body = [""] * width, rows
    lines = [
        "| " + " | ".join(head) + " |",
        "|" + "|".join(["---"] * width) + "|",
    ]
    lines.extend("| " + " | ".join(row) + " |" for row in body)
    return "\n".join(lines)


def _render_rich_text(spans: list[InlineSpan]) -> str:
    """Render rich text spans to Markdown."""
    return "".join(_render_span(span) for span in spans)


def _render_span(span: InlineSpan) -> str:
    """Render a single rich text span with formatting."""
    content = span.text

    # Handle empty content
    if not content:
        return ""

    # Code formatting overrides others
    if span.code:
        content = f"`{content}`"
    else:
        if span.bold and span.italic:
            content = f"***{content}***"
        elif span.bold:
            content = f"**{content}**"
        elif span.italic:
            content = f"*{content}*"

        if span.strikethrough:
            content = f"~~{content}~~"

        if span.highlight:
            content = f"=={content}=="

    content = content.replace("\n", "  \n")

    if span.link_url:
        content = f"[{content}]({span.link_url})"

    return content
