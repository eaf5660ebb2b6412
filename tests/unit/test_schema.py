"""Tests for database schema."""

import sqlite3

from bookmark_sync.config import FAVORITES_FOLDER_ID, ROOT_FOLDER_ID
from bookmark_sync.core.database.schema import create_schema, get_schema_version, migrate_schema


def test_create_schema_creates_tables() -> None:
    conn = sqlite3.connect(":memory:")
    create_schema(conn)
    tables = {
        row[0]
        for row in conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        ).fetchall()
    }
    assert {"bookmarks", "metadata", "sync_features"} <= tables


def test_create_schema_creates_clean_root_folders() -> None:
    conn = sqlite3.connect(":memory:")
    create_schema(conn)
    rows = conn.execute(
        "SELECT id, is_folder, parent_id, modified_at FROM bookmarks ORDER BY seq"
    ).fetchall()
    assert rows == [(ROOT_FOLDER_ID, 1, None, None), (FAVORITES_FOLDER_ID, 1, None, None)]


def test_create_schema_twice_keeps_one_copy_of_each_root() -> None:
    conn = sqlite3.connect(":memory:")
    create_schema(conn)
    create_schema(conn)
    count = conn.execute("SELECT COUNT(*) FROM bookmarks").fetchone()[0]
    assert count == 2


def test_migrate_schema_on_empty_db_creates_schema_and_sets_version() -> None:
    conn = sqlite3.connect(":memory:")
    assert get_schema_version(conn) is None
    migrate_schema(conn)
    assert get_schema_version(conn) == 1


def test_migrate_schema_leaves_existing_data_alone() -> None:
    conn = sqlite3.connect(":memory:")
    create_schema(conn)
    conn.execute(
        "INSERT INTO bookmarks (id, is_folder, parent_id, created_at) VALUES ('b', 0, ?, 0)",
        (ROOT_FOLDER_ID,),
    )
    conn.commit()
    migrate_schema(conn)
    assert conn.execute("SELECT COUNT(*) FROM bookmarks").fetchone()[0] == 3
