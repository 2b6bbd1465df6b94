"""Tests for slash trigger detection."""

from __future__ import annotations

import pytest


class TestDetectTrigger:
    """Test detect_trigger on the text before the cursor."""

    def test_slash_followed_by_word(self) -> None:
        """A word right after a slash filters the menu."""
        from topnote.editor.trigger import TriggerActive, detect_trigger

        assert detect_trigger("hello /wor", 10) == TriggerActive("wor")

    def test_space_after_slash_closes(self) -> None:
        """A space between the slash and the word means no trigger."""
        from topnote.editor.trigger import TriggerInactive, detect_trigger

        assert detect_trigger("hello / wor", 11) == TriggerInactive()

    def test_bare_slash_opens_with_empty_query(self) -> None:
        """Typing just a slash opens the full menu."""
        from topnote.editor.trigger import TriggerActive, detect_trigger

        assert detect_trigger("/", 1) == TriggerActive("")
        assert detect_trigger("notes /", 7) == TriggerActive("")

    def test_only_text_before_cursor_counts(self) -> None:
        """Text after the cursor is ignored."""
        from topnote.editor.trigger import TriggerActive, detect_trigger

        assert detect_trigger("/head and more", 5) == TriggerActive("head")

    def test_cursor_before_slash(self) -> None:
        """A slash after the cursor is not a trigger."""
        from topnote.editor.trigger import INACTIVE, detect_trigger

        assert detect_trigger("abc /x", 3) == INACTIVE

    def test_range_selection_never_triggers(self) -> None:
        """A non-collapsed selection is always inactive."""
        from topnote.editor.trigger import INACTIVE, detect_trigger

        assert detect_trigger("/head", 5, collapsed=False) == INACTIVE

    @pytest.mark.parametrize("text", ["", "plain", "a/b c", "path/to/ file"])
    def test_no_trigger(self, text: str) -> None:
        """Text not ending in /word is inactive."""
        from topnote.editor.trigger import INACTIVE, detect_trigger

        assert detect_trigger(text, len(text)) == INACTIVE

    def test_slash_inside_word_still_triggers(self) -> None:
        """Anything ending in /word triggers, even without a space before."""
        from topnote.editor.trigger import TriggerActive, detect_trigger

        assert detect_trigger("and/or", 6) == TriggerActive("or")


class TestTriggerSpan:
    """Test the span covering the slash and query."""

    def test_span_covers_slash_and_query(self) -> None:
        """The span starts at the slash and ends at the cursor."""
        from topnote.editor.trigger import TriggerActive, trigger_span

        assert trigger_span(10, TriggerActive("wor")) == (6, 10)
        assert trigger_span(1, TriggerActive("")) == (0, 1)
