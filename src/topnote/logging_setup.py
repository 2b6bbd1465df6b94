from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler

from .settings import settings

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None, *, to_file: bool = True) -> None:
    """Configure the root logger for topnote.

    Logs go to stderr and, unless disabled, to a rotating file under the
    data directory. Calling this twice does not duplicate handlers.
    """
    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())

    if getattr(root, "_topnote_configured", False):
        return

    formatter = logging.Formatter(_FORMAT)

    stream = logging.StreamHandler(sys.stderr)
    stream.setFormatter(formatter)
    root.addHandler(stream)

    if to_file:
        try:
            settings.log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                settings.log_path,
                maxBytes=settings.log_max_bytes,
                backupCount=settings.log_backup_count,
                encoding="utf-8",
            )
        except OSError as e:
            root.warning("File logging disabled: %s", e)
        else:
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

    root._topnote_configured = True  # type: ignore[attr-defined]
