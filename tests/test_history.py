"""Tests for in-session undo and redo."""

from __future__ import annotations


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _tracked(markup: str, **kwargs):
    """A document whose edits are recorded by an EditHistory."""
    from topnote.editor.document import Document
    from topnote.editor.history import EditHistory

    doc = Document.from_html(markup)
    clock = _Clock()
    history = EditHistory(doc, clock, **kwargs)
    doc.content_changed.subscribe(lambda d: history.record())
    doc.selection_changed.subscribe(history.selection_moved)
    return doc, history, clock


# =============================================================================
# EditHistory
# =============================================================================


class TestGrouping:
    """Rapid edits share one undo step."""

    def test_quick_typing_undoes_at_once(self) -> None:
        from topnote.editor.blocks_models import Position

        doc, history, clock = _tracked("<p></p>")
        doc.insert_text(Position(0, 0), "a")
        clock.now = 0.2
        doc.insert_text(Position(0, 1), "b")
        clock.now = 2.0
        doc.insert_text(Position(0, 2), "c")

        assert history.undo() is True
        assert doc.serialize() == "<p>ab</p>"
        assert history.undo() is True
        assert doc.serialize() == "<p></p>"
        assert history.undo() is False

    def test_pause_is_measured_from_last_edit(self) -> None:
        """A steady stream of edits stays one step however long it runs."""
        from topnote.editor.blocks_models import Position

        doc, history, clock = _tracked("<p></p>")
        for i, ch in enumerate("abcdef"):
            clock.now = i * 0.4
            doc.insert_text(Position(0, i), ch)

        history.undo()

        assert doc.serialize() == "<p></p>"

    def test_seal_starts_new_step(self) -> None:
        from topnote.editor.blocks_models import Position

        doc, history, clock = _tracked("<p></p>")
        doc.insert_text(Position(0, 0), "a")
        history.seal()
        doc.insert_text(Position(0, 1), "b")

        history.undo()

        assert doc.serialize() == "<p>a</p>"

    def test_atomic_block_is_one_step(self) -> None:
        from topnote.editor.blocks_models import BlockKind, Position

        doc, history, clock = _tracked("<p></p>")
        doc.insert_text(Position(0, 0), "# ")
        with history.atomic():
            doc.delete_range(Position(0, 0), Position(0, 2))
            doc.set_block_type(Position(0, 0), BlockKind.HEADING, {"level": 1})
        doc.insert_text(Position(0, 0), "x")

        history.undo()
        assert doc.serialize() == "<h1></h1>"
        history.undo()
        assert doc.serialize() == "<p># </p>"


class TestUndoRedo:
    """Test moving through the stacks."""

    def test_redo_after_undo(self) -> None:
        from topnote.editor.blocks_models import Position

        doc, history, clock = _tracked("<p>x</p>")
        doc.insert_text(Position(0, 1), "y")

        history.undo()
        assert history.can_redo
        assert history.redo() is True

        assert doc.serialize() == "<p>xy</p>"
        assert history.redo() is False

    def test_new_edit_clears_redo(self) -> None:
        from topnote.editor.blocks_models import Position

        doc, history, clock = _tracked("<p>x</p>")
        doc.insert_text(Position(0, 1), "y")
        history.undo()

        doc.insert_text(Position(0, 1), "z")

        assert not history.can_redo
        assert doc.serialize() == "<p>xz</p>"

    def test_undo_restores_selection(self) -> None:
        from topnote.editor.blocks_models import Position, Selection

        doc, history, clock = _tracked("<p>hello</p>")
        doc.set_selection(Position(0, 5))
        doc.insert_text(Position(0, 5), "!")

        history.undo()

        assert doc.selection == Selection.cursor(Position(0, 5))

    def test_undo_notifies_listeners(self) -> None:
        from topnote.editor.blocks_models import Position

        doc, history, clock = _tracked("<p></p>")
        doc.insert_text(Position(0, 0), "a")
        seen = []
        doc.content_changed.subscribe(lambda d: seen.append(d.serialize()))

        history.undo()

        assert seen == ["<p></p>"]

    def test_restored_tree_is_independent(self) -> None:
        """Editing after an undo does not alter the saved redo state."""
        from topnote.editor.blocks_models import Position
        from topnote.editor.document import tree_problems

        doc, history, clock = _tracked("<ul><li><p>one</p></li></ul>")
        doc.split_block(Position(0, 3))
        history.undo()
        history.redo()
        doc.insert_text(Position(1, 0), "two")
        history.undo()
        history.undo()

        assert doc.serialize() == "<ul><li><p>one</p></li></ul>"
        assert tree_problems(doc.blocks) == []

    def test_depth_limits_steps(self) -> None:
        from topnote.editor.blocks_models import Position

        doc, history, clock = _tracked("<p></p>", depth=2)
        for i, ch in enumerate("abcd"):
            history.seal()
            doc.insert_text(Position(0, i), ch)

        assert history.undo() and history.undo()
        assert history.undo() is False
        assert doc.serialize() == "<p>ab</p>"


# =============================================================================
# Session integration
# =============================================================================


class TestSessionUndo:
    """Undo and redo through editor keys."""

    def _session(self, markup: str, scheduler):
        from topnote.editor.document import Document
        from topnote.editor.session import EditorSession

        doc = Document.from_html(markup)
        session = EditorSession(doc, scheduler)
        session.select(doc.end_position())
        return session

    def test_undo_and_redo_keys(self, scheduler) -> None:
        session = self._session("<p></p>", scheduler)
        session.type_text("h")
        session.type_text("i")
        scheduler.advance(1)
        session.type_text("!")

        assert session.handle_key("Mod-z") is True
        assert session.document.serialize() == "<p>hi</p>"
        session.handle_key("Mod-z")
        assert session.document.serialize() == "<p></p>"

        session.handle_key("Mod-Shift-z")
        session.handle_key("Mod-y")
        assert session.document.serialize() == "<p>hi!</p>"

    def test_cursor_move_ends_step(self, scheduler) -> None:
        from topnote.editor.blocks_models import Position

        session = self._session("<p>ab</p>", scheduler)
        session.type_text("c")
        session.select(Position(0, 0))
        session.type_text("x")

        session.handle_key("Mod-z")

        assert session.document.serialize() == "<p>abc</p>"

    def test_input_rule_undoes_to_typed_prefix(self, scheduler) -> None:
        session = self._session("<p></p>", scheduler)
        session.type_text("#")
        session.type_text(" ")
        assert session.document.serialize() == "<h1></h1>"

        session.undo()
        assert session.document.serialize() == "<p># </p>"
        session.undo()
        assert session.document.serialize() == "<p></p>"

    def test_enter_is_own_step(self, scheduler) -> None:
        session = self._session("<p>ab</p>", scheduler)
        session.type_text("c")
        session.handle_key("Enter")
        session.type_text("d")

        session.undo()
        assert session.document.serialize() == "<p>abc</p><p></p>"
        session.undo()
        assert session.document.serialize() == "<p>abc</p>"

    def test_slash_command_is_one_step(self, scheduler) -> None:
        session = self._session("<p></p>", scheduler)
        for ch in "/quote":
            session.type_text(ch)
        session.handle_key("Enter")
        assert session.document.serialize() == "<blockquote><p></p></blockquote>"

        session.undo()

        assert session.document.serialize() == "<p>/quote</p>"
