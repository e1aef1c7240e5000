"""SQLite-backed key/value settings store holding the detection keyword."""

import sqlite3
import warnings
from pathlib import Path
from typing import Optional

from .utils import DEFAULT_KEYWORD, clean_keyword

SETTINGS_DIR = Path.home() / ".config" / "tlsdetect"
SETTINGS_DB = SETTINGS_DIR / "settings.db"

KEYWORD_KEY = "keyword"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS settings (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


class SettingsStore:
    """
    Persistent settings shared between runs.

    Values are read from disk on every call so a keyword saved by one process
    takes effect on the next classification in another, without a restart.
    """

    def __init__(self, db_path: Path = SETTINGS_DB):
        self.db_path = Path(db_path)
        self._init_db()

    def _init_db(self) -> None:
        """Create the settings directory and schema if needed."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with self._connect() as conn:
                conn.executescript(_SCHEMA)
        except sqlite3.DatabaseError as exc:
            # DB is corrupt — delete and recreate
            self._reset_db(exc)

    def _reset_db(self, original_error: Exception) -> None:
        """Delete the corrupt database and recreate it."""
        warnings.warn(
            f"Settings database was corrupt ({original_error}), resetting.",
            RuntimeWarning,
            stacklevel=3,
        )
        try:
            self.db_path.unlink(missing_ok=True)
        except OSError:
            pass
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(_SCHEMA)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), timeout=10)
        conn.row_factory = sqlite3.Row
        return conn

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Return the stored value for key, or default on a miss or read failure."""
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT value FROM settings WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.DatabaseError:
            return default
        return row["value"] if row is not None else default

    def set(self, key: str, value: str) -> bool:
        """Store value under key, replacing any existing one. Returns False if the write failed."""
        try:
            with self._connect() as conn:
                conn.execute(
                    "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                    (key, value),
                )
            return True
        except sqlite3.DatabaseError:
            return False  # Settings write failure is non-fatal

    def delete(self, key: str) -> None:
        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM settings WHERE key = ?", (key,))
        except sqlite3.DatabaseError:
            pass

    # -----------------------------------------------------------------------
    # Keyword
    # -----------------------------------------------------------------------

    def get_keyword(self) -> str:
        """Configured keyword, lowercased; the default when unset or empty."""
        return clean_keyword(self.get(KEYWORD_KEY, DEFAULT_KEYWORD))

    def set_keyword(self, value: Optional[str]) -> str:
        """Save a keyword as typed (trimmed); empty input saves the default. Returns what was saved."""
        saved = (value or "").strip() or DEFAULT_KEYWORD
        self.set(KEYWORD_KEY, saved)
        return saved

    def reset_keyword(self) -> None:
        self.delete(KEYWORD_KEY)
