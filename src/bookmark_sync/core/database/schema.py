"""SQLite schema creation and migration for the bookmark store."""

import sqlite3
import time

from bookmark_sync.config import FAVORITES_FOLDER_ID, ROOT_FOLDER_ID

SCHEMA_VERSION = 1

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS bookmarks (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    title TEXT,
    url TEXT,
    is_folder INTEGER NOT NULL,
    parent_id TEXT,
    sort_order INTEGER NOT NULL DEFAULT 0,
    is_favorite INTEGER NOT NULL DEFAULT 0,
    favorite_order INTEGER,
    is_pending_deletion INTEGER NOT NULL DEFAULT 0,
    modified_at TEXT,
    created_at REAL NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_bookmarks_parent ON bookmarks(parent_id, sort_order);
CREATE INDEX IF NOT EXISTS idx_bookmarks_modified ON bookmarks(modified_at);
CREATE INDEX IF NOT EXISTS idx_bookmarks_url ON bookmarks(url);

CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS sync_features (
    name TEXT PRIMARY KEY,
    last_modified TEXT
);
"""


def create_schema(conn: sqlite3.Connection) -> None:
    """Create all tables and indexes, and the two root folders."""
    conn.executescript(_SCHEMA_SQL)
    conn.execute(
        "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
        ("schema_version", str(SCHEMA_VERSION)),
    )
    _create_root_folders(conn)
    conn.commit()


def _create_root_folders(conn: sqlite3.Connection) -> None:
    now = time.time()
    for folder_id in (ROOT_FOLDER_ID, FAVORITES_FOLDER_ID):
        conn.execute(
            """INSERT OR IGNORE INTO bookmarks (id, title, is_folder, parent_id, created_at)
               VALUES (?, ?, 1, NULL, ?)""",
            (folder_id, folder_id, now),
        )


def get_schema_version(conn: sqlite3.Connection) -> int | None:
    """Return the current schema version, or None if metadata table doesn't exist."""
    try:
        row = conn.execute(
            "SELECT value FROM metadata WHERE key = 'schema_version'"
        ).fetchone()
    except sqlite3.OperationalError:
        return None
    return int(row[0]) if row else None


def migrate_schema(conn: sqlite3.Connection) -> None:
    """Create or migrate the database schema to the latest version."""
    version = get_schema_version(conn)
    if version is None:
        create_schema(conn)
