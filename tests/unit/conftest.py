"""Shared test fixtures."""

import sqlite3
from collections.abc import Iterator

import pytest

from bookmark_sync.core.database.schema import create_schema
from bookmark_sync.core.store.sqlite_store import SqliteBookmarkStore
from bookmark_sync.core.sync.crypter import PlaintextCrypter


@pytest.fixture
def store() -> Iterator[SqliteBookmarkStore]:
    """Return an in-memory store holding only the two root folders."""
    conn = sqlite3.connect(":memory:")
    create_schema(conn)
    store = SqliteBookmarkStore(conn)
    yield store
    store.close()


@pytest.fixture
def crypter() -> PlaintextCrypter:
    return PlaintextCrypter()
