"""Tests for the topnote command line."""

from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture
def cli(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]):
    """Run the CLI against a temp database and return (exit code, stdout, stderr)."""
    import topnote.__main__ as cli_module

    monkeypatch.setattr(cli_module, "configure_logging", lambda level: None)
    db = tmp_path / "cli.db"

    def run(*argv: str) -> tuple[int, str, str]:
        code = cli_module.main(["--db", str(db), *argv])
        captured = capsys.readouterr()
        return code, captured.out, captured.err

    return run


def _created_id(out: str) -> str:
    line = next(line for line in out.splitlines() if line.startswith(("Created note: ", "Imported ")))
    return line.rsplit(" ", 1)[-1]


class TestNotes:
    """new / list / show / delete."""

    def test_new_and_show(self, cli) -> None:
        code, out, _ = cli("new", "--title", "Groceries", "--text", "milk")
        assert code == 0
        assert "Title: Groceries" in out
        note_id = _created_id(out)

        code, out, _ = cli("show", note_id)
        assert code == 0
        assert out.strip() == "milk"

        _, out, _ = cli("show", note_id, "--format", "html")
        assert out.strip() == "<p>milk</p>"

    def test_list(self, cli) -> None:
        cli("new", "--title", "First")
        cli("new", "--title", "Second")

        code, out, _ = cli("list")

        assert code == 0
        assert "First" in out
        assert "Second" in out
        assert "Total: 2 notes" in out

    def test_show_missing(self, cli) -> None:
        code, out, _ = cli("show", "nope")

        assert code == 1
        assert "Note not found: nope" in out

    def test_delete(self, cli) -> None:
        _, out, _ = cli("new")
        note_id = _created_id(out)

        code, out, _ = cli("delete", note_id)
        assert code == 0
        assert f"Deleted note: {note_id}" in out

        code, _, _ = cli("show", note_id)
        assert code == 1


class TestImport:
    """import FILE."""

    def test_import_markdown(self, cli, tmp_path: Path) -> None:
        source = tmp_path / "meeting.md"
        source.write_text("# Agenda\n\n- item\n", encoding="utf-8")

        code, out, _ = cli("import", str(source))
        assert code == 0
        note_id = _created_id(out)

        _, out, _ = cli("show", note_id, "--format", "html")
        assert out.strip() == "<h1>Agenda</h1><ul><li><p>item</p></li></ul>"

        _, out, _ = cli("list")
        assert "meeting" in out

    def test_show_as_markdown(self, cli, tmp_path: Path) -> None:
        source = tmp_path / "doc.md"
        source.write_text("## Plan\n\n1. write\n2. ship\n", encoding="utf-8")
        _, out, _ = cli("import", str(source), "--title", "Plan")
        note_id = _created_id(out)

        _, out, _ = cli("show", note_id, "--format", "markdown")

        assert out.strip() == "## Plan\n\n1. write\n2. ship"


class TestShare:
    """share / open-share."""

    def test_share_cycle(self, cli) -> None:
        _, out, _ = cli("new", "--title", "Public", "--text", "hello")
        note_id = _created_id(out)

        code, out, _ = cli("share", note_id)
        assert code == 0
        assert out.startswith("Shared at: ")
        token = out.strip().rsplit("/share/", 1)[-1]

        code, out, _ = cli("open-share", token)
        assert code == 0
        assert "# Public" in out
        assert "hello" in out

        _, out, _ = cli("share", note_id)
        assert "Note is now private" in out

        code, _, err = cli("open-share", token)
        assert code == 1
        assert "Error: Note not found" in err

    def test_share_unknown_note(self, cli) -> None:
        code, _, err = cli("share", "missing")

        assert code == 1
        assert "Error:" in err
