"""Tests for the slash command registry and command actions."""

from __future__ import annotations

from datetime import date

import pytest


def _run(markup: str, title: str, position=(0, 0), **context):
    from topnote.editor.blocks_models import Position
    from topnote.editor.commands import CommandContext, find_command
    from topnote.editor.document import Document

    doc = Document.from_html(markup)
    find_command(title).run(doc, CommandContext(position=Position(*position), **context))
    return doc


# =============================================================================
# Registry
# =============================================================================


class TestRegistry:
    """Test the command catalogue and filtering."""

    def test_catalogue_order(self) -> None:
        """Commands are offered in a fixed order."""
        from topnote.editor.commands import COMMANDS

        assert [c.title for c in COMMANDS] == [
            "Text", "Heading 1", "Heading 2", "Heading 3",
            "Bulleted list", "Numbered list", "Quote", "Code",
            "Divider", "Table", "Image", "Callout", "Toggle",
            "Page", "Date", "Terminal", "Math",
        ]

    def test_filter_head_returns_headings(self) -> None:
        """'head' matches exactly the three headings, in order."""
        from topnote.editor.commands import filter_commands

        assert [c.title for c in filter_commands("head")] == ["Heading 1", "Heading 2", "Heading 3"]

    def test_filter_is_case_insensitive(self) -> None:
        """Queries ignore case."""
        from topnote.editor.commands import filter_commands

        assert [c.title for c in filter_commands("QUO")] == ["Quote"]

    def test_filter_matches_keywords(self) -> None:
        """Keywords are searched as well as titles."""
        from topnote.editor.commands import filter_commands

        assert [c.title for c in filter_commands("latex")] == ["Math"]
        assert [c.title for c in filter_commands("hr")] == ["Divider"]

    def test_empty_query_returns_everything(self) -> None:
        """An empty query lists every command."""
        from topnote.editor.commands import COMMANDS, filter_commands

        assert filter_commands("") == list(COMMANDS)

    def test_no_match(self) -> None:
        """Unmatched queries give an empty list."""
        from topnote.editor.commands import filter_commands

        assert filter_commands("zzz") == []

    def test_find_unknown_command(self) -> None:
        """Unknown titles raise KeyError."""
        from topnote.editor.commands import find_command

        with pytest.raises(KeyError):
            find_command("Nope")


# =============================================================================
# Actions
# =============================================================================


class TestBlockTypeCommands:
    """Commands that change the current block's type."""

    def test_heading(self) -> None:
        doc = _run("<p>Title</p>", "Heading 2")
        assert doc.serialize() == "<h2>Title</h2>"

    def test_text_resets_heading(self) -> None:
        doc = _run("<h1>Title</h1>", "Text")
        assert doc.serialize() == "<p>Title</p>"

    def test_bulleted_list(self) -> None:
        doc = _run("<p>item</p>", "Bulleted list")
        assert doc.serialize() == "<ul><li><p>item</p></li></ul>"

    def test_bulleted_list_toggles_off(self) -> None:
        """Running a list command inside that list leaves it."""
        doc = _run("<ul><li><p>item</p></li></ul>", "Bulleted list")
        assert doc.serialize() == "<p>item</p>"

    def test_numbered_list(self) -> None:
        doc = _run("<p>item</p>", "Numbered list")
        assert doc.serialize() == "<ol><li><p>item</p></li></ol>"

    def test_quote(self) -> None:
        doc = _run("<p>wise words</p>", "Quote")
        assert doc.serialize() == "<blockquote><p>wise words</p></blockquote>"

    def test_code(self) -> None:
        doc = _run("<p><strong>x</strong> = 1</p>", "Code")
        assert doc.serialize() == "<pre><code>x = 1</code></pre>"

    def test_acts_on_cursor_block_only(self) -> None:
        doc = _run("<p>a</p><p>b</p>", "Heading 1", position=(1, 0))
        assert doc.serialize() == "<p>a</p><h1>b</h1>"


class TestInsertCommands:
    """Commands that insert a block at the cursor."""

    def test_divider(self) -> None:
        doc = _run("<p></p>", "Divider")
        assert doc.serialize() == "<hr><p></p>"

    def test_table(self) -> None:
        doc = _run("<p></p>", "Table")
        html = doc.serialize()
        assert html.startswith("<table><thead><tr><th>Header 1</th>")
        assert html.endswith("</tbody></table><p></p>")

    def test_callout(self) -> None:
        doc = _run("<p></p>", "Callout")
        assert doc.serialize() == (
            '<div data-type="callout" data-label="\U0001F4A1 Note">Type your note here...</div><p></p>'
        )

    def test_toggle(self) -> None:
        doc = _run("<p></p>", "Toggle")
        assert doc.serialize() == (
            "<details><summary>Toggle to expand</summary><div>Content goes here...</div></details><p></p>"
        )

    def test_page_is_inline_text(self) -> None:
        doc = _run("<p></p>", "Page")
        assert doc.serialize() == "<p>\U0001F4C4 New Page</p>"

    def test_date_uses_context_day(self) -> None:
        doc = _run("<p></p>", "Date", today=date(2026, 10, 18))
        assert doc.serialize() == (
            '<div data-type="date"><time datetime="2026-10-18">October 18, 2026</time></div><p></p>'
        )

    def test_terminal(self) -> None:
        doc = _run("<p></p>", "Terminal")
        assert doc.serialize() == (
            '<div data-type="terminal" data-prompt="$"><pre><code>npm install\nnpm run dev</code></pre></div><p></p>'
        )

    def test_math(self) -> None:
        doc = _run("<p></p>", "Math")
        assert doc.serialize() == '<div data-type="math">E = mc²</div><p></p>'

    def test_insert_after_text_keeps_text(self) -> None:
        doc = _run("<p>intro</p>", "Divider", position=(0, 5))
        assert doc.serialize() == "<p>intro</p><hr><p></p>"


class TestImageCommand:
    """The image command asks for a URL."""

    def test_image_with_url(self) -> None:
        """A URL from the prompt becomes an image block."""
        asked = []

        def prompt(message: str) -> str:
            asked.append(message)
            return "https://img.test/a.png"

        doc = _run("<p></p>", "Image", prompt=prompt)

        assert asked == ["Enter image URL:"]
        assert doc.serialize() == '<img src="https://img.test/a.png" alt="Image"><p></p>'

    def test_cancelled_prompt_changes_nothing(self) -> None:
        """A cancelled prompt leaves the document alone."""
        doc = _run("<p>keep</p>", "Image", prompt=lambda message: None)

        assert doc.serialize() == "<p>keep</p>"
        assert doc.version == 0
