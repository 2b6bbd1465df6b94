"""topnote: personal block-document notes with autosave and share links."""

__version__ = "0.1.0"
