"""SQLite database helpers for the document link index."""

from __future__ import annotations

import logging
from pathlib import Path
import sqlite3
from typing import Any, Iterable, List, Sequence

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DATA_DIR = PROJECT_ROOT / "data"
DEFAULT_DB_PATH = DATA_DIR / "index.db"

DDL_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS files (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        path TEXT UNIQUE NOT NULL,
        file_type TEXT NOT NULL DEFAULT 'org',
        mtime REAL NOT NULL DEFAULT 0,
        project_id INTEGER
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_files_project ON files(project_id)",
    """
    CREATE TABLE IF NOT EXISTS headings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        file_path TEXT NOT NULL,
        level INTEGER NOT NULL DEFAULT 1,
        title TEXT NOT NULL DEFAULT '',
        todo_state TEXT,
        priority TEXT,
        tags TEXT DEFAULT '[]',
        properties TEXT DEFAULT '{}',
        scheduled TEXT,
        deadline TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_headings_file ON headings(file_path)",
    "CREATE INDEX IF NOT EXISTS idx_headings_todo ON headings(todo_state)",
    "CREATE INDEX IF NOT EXISTS idx_headings_deadline ON headings(deadline)",
    """
    CREATE TABLE IF NOT EXISTS links (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        file_path TEXT NOT NULL,
        link_type TEXT NOT NULL,
        target TEXT NOT NULL,
        description TEXT,
        heading_id INTEGER REFERENCES headings(id) ON DELETE SET NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_links_file ON links(file_path)",
    "CREATE INDEX IF NOT EXISTS idx_links_target ON links(target)",
    "CREATE INDEX IF NOT EXISTS idx_links_heading ON links(heading_id)",
)


class StoreQueryError(RuntimeError):
    """Raised when a read against the link index fails."""


class DatabaseService:
    """Manage SQLite connections and schema initialization."""

    def __init__(self, db_path: str | Path | None = None):
        self.db_path = Path(db_path) if db_path else DEFAULT_DB_PATH

    def _ensure_directory(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def connect(self, read_only: bool = False) -> sqlite3.Connection:
        """Return a sqlite3 connection.

        Read-only connections never create the database file; opening a
        missing database raises ``sqlite3.OperationalError``.
        """
        if read_only:
            conn = sqlite3.connect(f"{self.db_path.resolve().as_uri()}?mode=ro", uri=True)
        else:
            self._ensure_directory()
            conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self, statements: Iterable[str] | None = None) -> Path:
        """Create all schema artifacts required by the graph queries."""
        conn = self.connect()
        try:
            with conn:  # Transactional apply of DDL
                for statement in statements or DDL_STATEMENTS:
                    conn.execute(statement)
        finally:
            conn.close()
        return self.db_path

    def open_store(self) -> "GraphStore":
        """Open a read-only store; a store that failed to open raises on every query."""
        try:
            return GraphStore(self.connect(read_only=True))
        except sqlite3.Error as exc:
            logger.error(f"Failed to open link index at {self.db_path}: {exc}")
            return GraphStore(None, open_error=exc)


class GraphStore:
    """Read-only parameterized query surface over files, headings and links."""

    def __init__(self, conn: sqlite3.Connection | None, open_error: Exception | None = None):
        self._conn = conn
        self._open_error = open_error

    def execute(self, sql: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        if self._conn is None:
            raise StoreQueryError(f"Link index unavailable: {self._open_error}")
        try:
            return self._conn.execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as exc:
            raise StoreQueryError(str(exc)) from exc

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "GraphStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def init_database(db_path: str | Path | None = None) -> Path:
    """Convenience wrapper used by the CLI and API startup."""
    return DatabaseService(db_path).initialize()


__all__ = [
    "DatabaseService",
    "GraphStore",
    "StoreQueryError",
    "init_database",
    "DEFAULT_DB_PATH",
]
