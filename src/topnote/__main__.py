"""topnote - block-document notes from the command line.

Usage:
    topnote new [--title TITLE] [--text TEXT]     Create a note
    topnote list                                  List your notes
    topnote show NOTE_ID [--format FORMAT]        Print a note (html, markdown, text)
    topnote import FILE [--title TITLE]           Create a note from a Markdown file
    topnote share NOTE_ID                         Toggle the note's public share link
    topnote open-share TOKEN                      Print a shared note
    topnote delete NOTE_ID                        Delete a note

Environment Variables:
    TOPNOTE_DATA_DIR       Where the local database and logs live (default: ~/.topnote)
    TOPNOTE_USER_ID        Owner id for new notes (default: local)
    TOPNOTE_SHARE_ORIGIN   Origin used in share links
    TOPNOTE_STORE_URL      Use a remote store instead of the local database
    TOPNOTE_STORE_KEY      API key for the remote store
    TOPNOTE_LOG_LEVEL      Logging level (default: INFO)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .editor.document import Document
from .editor.markdown_parser import parse_markdown
from .editor.markdown_renderer import render_markdown
from .errors import TopnoteError
from .logging_setup import configure_logging
from .notes.rest_store import RestNoteStore
from .notes.share import ShareLinkManager
from .notes.store import NoteStore, SqliteNoteStore
from .scheduling import AsyncioScheduler
from .settings import settings
from .workspace import DEFAULT_TITLE, Workspace

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="topnote",
        description="Block-document notes with autosave and share links",
        epilog="""
Examples:
  topnote new --title "Groceries" --text "milk"
  topnote import meeting.md
  topnote show 3f2c... --format markdown
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help=f"SQLite database path (default: {settings.db_path})",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help=f"Logging level (default: {settings.log_level})",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    new = sub.add_parser("new", help="Create a note")
    new.add_argument("--title", default=DEFAULT_TITLE)
    new.add_argument("--text", default="", help="Plain text body; one paragraph per line")

    sub.add_parser("list", help="List your notes")

    show = sub.add_parser("show", help="Print a note")
    show.add_argument("note_id")
    show.add_argument("--format", choices=["html", "markdown", "text"], default="text")

    imp = sub.add_parser("import", help="Create a note from a Markdown file")
    imp.add_argument("file", type=Path)
    imp.add_argument("--title", default=None)

    share = sub.add_parser("share", help="Toggle the note's share link")
    share.add_argument("note_id")

    open_share = sub.add_parser("open-share", help="Print a shared note")
    open_share.add_argument("token")

    delete = sub.add_parser("delete", help="Delete a note")
    delete.add_argument("note_id")

    return parser


def open_store(db_path: Path | None = None) -> NoteStore:
    """The remote store when configured, else the local database."""
    if settings.store_url and db_path is None:
        return RestNoteStore(settings.store_url, settings.store_key)
    return SqliteNoteStore(db_path or settings.db_path)


async def _close_store(store: NoteStore) -> None:
    if isinstance(store, RestNoteStore):
        await store.aclose()
    elif isinstance(store, SqliteNoteStore):
        store.close()


async def run(args: argparse.Namespace, store: NoteStore) -> int:
    """Execute one CLI command against a store."""
    workspace = Workspace(store, settings.user_id, scheduler=AsyncioScheduler())

    if args.command == "new":
        content = Document.from_html(args.text).serialize() if args.text else ""
        await workspace.create_note(args.title, content)
        note = workspace.note
        await workspace.close()
        print(f"Created note: {note.id}")
        print(f"Title: {note.title}")
        return 0

    if args.command == "list":
        notes = await workspace.list_notes()
        print(f"\n{'ID':<34} {'Title':<30} {'Public':<8} {'Preview'}")
        print("-" * 100)
        for note in notes:
            public = "yes" if note.is_public else ""
            print(f"{note.id:<34} {note.title[:30]:<30} {public:<8} {note.preview_text[:40]}")
        print(f"\nTotal: {len(notes)} notes")
        return 0

    if args.command == "show":
        note = await store.fetch(args.note_id)
        if note is None:
            print(f"Note not found: {args.note_id}")
            return 1
        print(_format_note(note.content, args.format))
        return 0

    if args.command == "import":
        markdown = args.file.read_text(encoding="utf-8")
        document = Document(parse_markdown(markdown))
        title = args.title or args.file.stem
        await workspace.create_note(title, document.serialize())
        note = workspace.note
        await workspace.close()
        print(f"Imported {args.file} as note {note.id}")
        return 0

    if args.command == "share":
        await workspace.open_note(args.note_id)
        url = await workspace.toggle_share()
        await workspace.close()
        print(f"Shared at: {url}" if url else "Note is now private")
        return 0

    if args.command == "open-share":
        note = await ShareLinkManager(store).resolve(args.token)
        print(f"# {note.title}\n")
        print(_format_note(note.content, "text"))
        return 0

    if args.command == "delete":
        await workspace.delete_note(args.note_id)
        print(f"Deleted note: {args.note_id}")
        return 0

    return 2


def _format_note(content: str, fmt: str) -> str:
    document = Document.from_html(content)
    if fmt == "html":
        return document.serialize()
    if fmt == "markdown":
        return render_markdown(list(document.blocks))
    return document.plain_text()


async def _main(args: argparse.Namespace) -> int:
    store = open_store(args.db)
    try:
        return await run(args, store)
    finally:
        await _close_store(store)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the topnote CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        return asyncio.run(_main(args))
    except TopnoteError as e:
        logger.debug("Command failed: %s", e.to_dict())
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
