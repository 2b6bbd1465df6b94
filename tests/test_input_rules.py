"""Tests for Markdown shortcuts typed into the editor."""

from __future__ import annotations

import pytest


def _type(markup: str, keys: str, scheduler, at=None, **kwargs):
    """Open a session on markup and type ``keys`` one character at a time."""
    from topnote.editor.document import Document
    from topnote.editor.session import EditorSession

    doc = Document.from_html(markup)
    session = EditorSession(doc, scheduler, **kwargs)
    session.select(at if at is not None else doc.end_position())
    for ch in keys:
        session.type_text(ch)
    return session


class TestTextBlockRules:
    """Prefixes that change the paragraph's type."""

    @pytest.mark.parametrize(
        "keys, expected",
        [
            ("# ", "<h1></h1>"),
            ("## ", "<h2></h2>"),
            ("### ", "<h3></h3>"),
            ("- ", "<ul><li><p></p></li></ul>"),
            ("* ", "<ul><li><p></p></li></ul>"),
            ("1. ", "<ol><li><p></p></li></ol>"),
            ("3. ", '<ol start="3"><li><p></p></li></ol>'),
            ("> ", "<blockquote><p></p></blockquote>"),
            ("``` ", "<pre><code></code></pre>"),
            ("```py ", '<pre><code class="language-py"></code></pre>'),
        ],
    )
    def test_prefix_converts_paragraph(self, scheduler, keys: str, expected: str) -> None:
        session = _type("<p></p>", keys, scheduler)

        assert session.document.serialize() == expected

    def test_typing_continues_in_new_block(self, scheduler) -> None:
        session = _type("<p></p>", "## Plan", scheduler)

        assert session.document.serialize() == "<h2>Plan</h2>"

    def test_text_after_cursor_is_kept(self, scheduler) -> None:
        """The rule looks only at text before the cursor."""
        from topnote.editor.blocks_models import Position

        session = _type("<p>hello</p>", "# ", scheduler, at=Position(0, 0))

        assert session.document.serialize() == "<h1>hello</h1>"
        assert session.document.selection.head == Position(0, 0)

    def test_too_many_hashes(self, scheduler) -> None:
        session = _type("<p></p>", "#### ", scheduler)

        assert session.document.serialize() == "<p>#### </p>"


class TestDividerRule:
    def test_dashes_insert_divider(self, scheduler) -> None:
        """Three dashes become a rule with an empty paragraph after it."""
        from topnote.editor.blocks_models import Position

        session = _type("<p></p>", "---", scheduler)

        assert session.document.serialize() == "<hr><p></p>"
        assert session.document.selection.head == Position(1, 0)

    def test_divider_before_existing_block(self, scheduler) -> None:
        from topnote.editor.blocks_models import Position

        session = _type("<p></p><p>next</p>", "---", scheduler, at=Position(0, 0))
        session.type_text("x")

        assert session.document.serialize() == "<hr><p>x</p><p>next</p>"


class TestWhereRulesApply:
    """Rules fire only at the start of plain paragraphs."""

    def test_not_mid_paragraph(self, scheduler) -> None:
        session = _type("<p>a</p>", " # ", scheduler)

        assert session.document.serialize() == "<p>a # </p>"

    def test_not_in_list_item(self, scheduler) -> None:
        from topnote.editor.blocks_models import Position

        session = _type("<ul><li><p>x</p></li></ul>", "# ", scheduler, at=Position(0, 0))

        assert session.document.serialize() == "<ul><li><p># x</p></li></ul>"

    def test_not_in_code_block(self, scheduler) -> None:
        session = _type("<pre><code></code></pre>", "- ", scheduler)

        assert session.document.serialize() == "<pre><code>- </code></pre>"

    def test_heading_inside_quote(self, scheduler) -> None:
        session = _type("<blockquote><p></p></blockquote>", "# ", scheduler)

        assert session.document.serialize() == "<blockquote><h1></h1></blockquote>"

    def test_list_not_inside_quote(self, scheduler) -> None:
        session = _type("<blockquote><p></p></blockquote>", "- ", scheduler)

        assert session.document.serialize() == "<blockquote><p>- </p></blockquote>"

    def test_rules_can_be_disabled(self, scheduler) -> None:
        session = _type("<p></p>", "# ", scheduler, input_rules=False)

        assert session.document.serialize() == "<p># </p>"


class TestMatching:
    """match_input_rule on its own."""

    def test_match_reports_rule(self) -> None:
        from topnote.editor.blocks_models import Position
        from topnote.editor.document import Document
        from topnote.editor.input_rules import match_input_rule

        doc = Document.from_html("<p>2. </p>")
        rule, match = match_input_rule(doc, Position(0, 3))

        assert rule.name == "ordered_list"
        assert match.group(1) == "2"

    def test_no_match_leaves_document(self) -> None:
        from topnote.editor.blocks_models import Position
        from topnote.editor.document import Document
        from topnote.editor.input_rules import apply_input_rule

        doc = Document.from_html("<p>plain</p>")

        assert apply_input_rule(doc, Position(0, 5)) is None
        assert doc.version == 0
