from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


@dataclass(frozen=True)
class Settings:
    """Static settings for the local workspace.

    Defaults keep everything on this machine; a remote store is only used
    when TOPNOTE_STORE_URL is set.
    """

    data_dir: Path = Path(os.environ.get("TOPNOTE_DATA_DIR", Path.home() / ".topnote"))
    log_level: str = os.environ.get("TOPNOTE_LOG_LEVEL", "INFO")
    log_max_bytes: int = _env_int("TOPNOTE_LOG_MAX_BYTES", 1_000_000)
    log_backup_count: int = _env_int("TOPNOTE_LOG_BACKUP_COUNT", 3)

    # Autosave debounce window in milliseconds.
    autosave_delay_ms: int = _env_int("TOPNOTE_AUTOSAVE_DELAY_MS", 1000)

    # Share links are <share_origin>/share/<token>.
    share_origin: str = os.environ.get("TOPNOTE_SHARE_ORIGIN", "http://localhost:3000")

    # Optional PostgREST-style remote store.
    store_url: str | None = os.environ.get("TOPNOTE_STORE_URL") or None
    store_key: str | None = os.environ.get("TOPNOTE_STORE_KEY") or None

    # Identity is supplied from outside; the CLI reads it from here.
    user_id: str = os.environ.get("TOPNOTE_USER_ID", "local")

    @property
    def db_path(self) -> Path:
        return self.data_dir / "notes.db"

    @property
    def log_path(self) -> Path:
        return self.data_dir / "topnote.log"


settings = Settings()
