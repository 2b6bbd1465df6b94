"""Tests for the slash menu controller."""

from __future__ import annotations

from datetime import date


def _menu(markup: str, offset: int, block: int = 0, **kwargs):
    """Document with the cursor at (block, offset) and a synced menu."""
    from topnote.editor.blocks_models import Position
    from topnote.editor.document import Document
    from topnote.editor.geometry import line_coords
    from topnote.editor.slash_menu import SlashMenuController
    from topnote.editor.trigger import detect_trigger

    doc = Document.from_html(markup)
    doc.set_selection(Position(block, offset))
    menu = SlashMenuController(doc, line_coords(), **kwargs)
    menu.update(detect_trigger(doc.text_at(block), offset))
    return doc, menu


class TestVisibility:
    """Test showing, filtering and hiding."""

    def test_opens_below_cursor(self) -> None:
        """The menu anchors 5px below the caret box."""
        from topnote.editor.geometry import Point
        from topnote.editor.slash_menu import SlashMenuVisible

        _, menu = _menu("<p>ab /head</p>", 8)

        assert menu.state == SlashMenuVisible(query="head", anchor=Point(64, 25))
        assert [c.title for c in menu.items] == ["Heading 1", "Heading 2", "Heading 3"]

    def test_inactive_trigger_hides(self) -> None:
        """An inactive trigger hides the menu."""
        from topnote.editor.trigger import INACTIVE

        _, menu = _menu("<p>/head</p>", 5)
        menu.update(INACTIVE)

        assert not menu.is_visible
        assert menu.items == []
        assert menu.highlighted is None

    def test_highlight_wraps(self) -> None:
        """Arrow keys wrap around the filtered list."""
        _, menu = _menu("<p>/head</p>", 5)

        menu.move_highlight(-1)
        assert menu.highlighted.title == "Heading 3"

        menu.move_highlight(1)
        assert menu.highlighted.title == "Heading 1"

    def test_highlight_resets_on_new_query(self) -> None:
        """Changing the query moves the highlight back to the top."""
        from topnote.editor.trigger import TriggerActive

        _, menu = _menu("<p>/head</p>", 5)
        menu.move_highlight(2)
        menu.update(TriggerActive("heading"))

        assert menu.highlighted_index == 0

    def test_highlight_kept_for_same_query(self) -> None:
        """Re-running the detector with the same query keeps the highlight."""
        from topnote.editor.trigger import TriggerActive

        _, menu = _menu("<p>/head</p>", 5)
        menu.move_highlight(1)
        menu.update(TriggerActive("head"))

        assert menu.highlighted_index == 1

    def test_cancel(self) -> None:
        """cancel() hides without touching the document."""
        doc, menu = _menu("<p>/head</p>", 5)
        menu.cancel()

        assert not menu.is_visible
        assert doc.serialize() == "<p>/head</p>"


class TestConfirm:
    """Test running the chosen command."""

    def test_confirm_highlighted_removes_trigger_text(self) -> None:
        """The /query text is deleted before the command runs."""
        doc, menu = _menu("<p>Title /h1</p>", 9)

        assert menu.confirm() is True
        assert doc.serialize() == "<h1>Title </h1>"
        assert not menu.is_visible

    def test_confirm_after_moving_highlight(self) -> None:
        doc, menu = _menu("<p>/head</p>", 5)
        menu.move_highlight(1)

        menu.confirm()

        assert doc.serialize() == "<h2></h2>"

    def test_confirm_clicked_command(self) -> None:
        """A clicked command runs regardless of the highlight."""
        from topnote.editor.commands import find_command

        doc, menu = _menu("<p>/</p>", 1)

        assert menu.confirm(find_command("Divider")) is True
        assert doc.serialize() == "<hr><p></p>"

    def test_confirm_with_no_match_is_noop(self) -> None:
        """Enter with an empty filtered list does nothing."""
        doc, menu = _menu("<p>/zzz</p>", 4)

        assert menu.confirm() is False
        assert doc.serialize() == "<p>/zzz</p>"
        assert doc.version == 0

    def test_confirm_rechecks_document(self) -> None:
        """If the trigger text is gone the menu just closes."""
        from topnote.editor.blocks_models import Position

        doc, menu = _menu("<p>/head</p>", 5)
        doc.delete_range(Position(0, 0), Position(0, 5))

        assert menu.confirm() is False
        assert not menu.is_visible
        assert doc.serialize() == "<p></p>"

    def test_date_uses_injected_clock(self) -> None:
        doc, menu = _menu("<p>/date</p>", 5, today=lambda: date(2026, 10, 18))

        menu.confirm()

        assert doc.serialize() == (
            '<div data-type="date"><time datetime="2026-10-18">October 18, 2026</time></div><p></p>'
        )

    def test_image_prompt(self) -> None:
        """The image command asks through the injected prompt."""
        doc, menu = _menu("<p>/image</p>", 6, prompt=lambda message: "https://img.test/x.png")

        menu.confirm()

        assert doc.serialize() == '<img src="https://img.test/x.png" alt="Image"><p></p>'

    def test_cancelled_image_prompt_still_removes_trigger(self) -> None:
        """Cancelling the prompt leaves the block without the /query."""
        doc, menu = _menu("<p>note /image</p>", 11)

        assert menu.confirm() is True
        assert doc.serialize() == "<p>note </p>"
