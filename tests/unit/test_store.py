"""Tests for the SQLite entity store."""

import sqlite3
from pathlib import Path

import pytest

from bookmark_sync.config import ROOT_FOLDER_ID
from bookmark_sync.core.store.sqlite_store import SqliteBookmarkStore
from bookmark_sync.errors import StoreError
from bookmark_sync.protocols import EntityStoreProtocol
from tests.unit.fakes import Bookmark, Folder, build_tree, shape


def test_open_creates_database_with_roots(tmp_path: Path) -> None:
    db_path = tmp_path / "nested" / "bookmarks.db"
    store = SqliteBookmarkStore.open(db_path)
    try:
        assert db_path.exists()
        assert store.fetch_node(ROOT_FOLDER_ID) is not None
    finally:
        store.close()


def test_create_node_appends_to_parent(store: SqliteBookmarkStore) -> None:
    with store.transaction():
        a = store.create_node("a", is_folder=False, parent_id=ROOT_FOLDER_ID, url="a.com")
        b = store.create_node("b", is_folder=False, parent_id=ROOT_FOLDER_ID, url="b.com")
    assert (a.sort_order, b.sort_order) == (0, 1)
    assert shape(store) == ["a", "b"]


def test_create_duplicate_id_raises_store_error(store: SqliteBookmarkStore) -> None:
    build_tree(store, Bookmark("a"))
    with pytest.raises(StoreError), store.transaction():
        store.create_node("a", is_folder=False, parent_id=ROOT_FOLDER_ID)


def test_transaction_commits_on_success(tmp_path: Path) -> None:
    db_path = tmp_path / "bookmarks.db"
    store = SqliteBookmarkStore.open(db_path)
    build_tree(store, Bookmark("a"))
    store.close()

    reopened = SqliteBookmarkStore.open(db_path)
    try:
        assert reopened.fetch_node("a") is not None
    finally:
        reopened.close()


def test_transaction_rolls_back_on_exception(store: SqliteBookmarkStore) -> None:
    with pytest.raises(RuntimeError), store.transaction():
        store.create_node("a", is_folder=False, parent_id=ROOT_FOLDER_ID)
        raise RuntimeError("boom")
    assert store.fetch_node("a") is None


def test_transaction_wraps_database_errors(store: SqliteBookmarkStore) -> None:
    with pytest.raises(StoreError), store.transaction():
        store.create_node("a", is_folder=False, parent_id=ROOT_FOLDER_ID)
        raise sqlite3.OperationalError("database is locked")
    assert store.fetch_node("a") is None


def test_nested_transaction_joins_outer(store: SqliteBookmarkStore) -> None:
    with pytest.raises(RuntimeError), store.transaction():
        with store.transaction():
            store.create_node("a", is_folder=False, parent_id=ROOT_FOLDER_ID)
        raise RuntimeError("boom")
    assert store.fetch_node("a") is None


def test_fetch_children_can_hide_tombstones(store: SqliteBookmarkStore) -> None:
    build_tree(store, Bookmark("a"), Bookmark("b", deleted=True))
    assert [n.id for n in store.fetch_children(ROOT_FOLDER_ID)] == ["a", "b"]
    assert [n.id for n in store.fetch_children(ROOT_FOLDER_ID, include_deleted=False)] == ["a"]


def test_fetch_dirty_nodes_in_creation_order(store: SqliteBookmarkStore) -> None:
    build_tree(store, Bookmark("clean"))
    build_tree(store, Bookmark("z"), Bookmark("y"), dirty=True)
    assert [n.id for n in store.fetch_dirty_nodes()] == ["z", "y"]


def test_fetch_descendant_ids_is_breadth_first(store: SqliteBookmarkStore) -> None:
    build_tree(
        store,
        Folder("f", children=[Folder("g", children=[Bookmark("c")]), Bookmark("b")]),
    )
    assert store.fetch_descendant_ids("f") == ["g", "b", "c"]


def test_move_node_detaches_then_appends(store: SqliteBookmarkStore) -> None:
    build_tree(store, Folder("f", children=[Bookmark("x")]), Bookmark("a"), Bookmark("b"))
    with store.transaction():
        store.move_node("a", "f")
    assert shape(store) == [("f", ["x", "a"]), "b"]

    with store.transaction():
        store.move_node("b", None)
    assert [n.id for n in store.fetch_detached_nodes()] == ["b"]


def test_detach_children_returns_ids_in_order(store: SqliteBookmarkStore) -> None:
    build_tree(store, Folder("f", children=[Bookmark("a"), Bookmark("b")]))
    with store.transaction():
        detached = store.detach_children("f")
    assert detached == ["a", "b"]
    assert shape(store, "f") == []


def test_rename_node_carries_children(store: SqliteBookmarkStore) -> None:
    build_tree(store, Folder("old", children=[Bookmark("a")]))
    with store.transaction():
        store.rename_node("old", "new")
    assert store.fetch_node("old") is None
    assert shape(store) == [("new", ["a"])]


def test_rename_onto_existing_id_fails(store: SqliteBookmarkStore) -> None:
    build_tree(store, Bookmark("a"), Bookmark("b"))
    with pytest.raises(StoreError), store.transaction():
        store.rename_node("a", "b")


def test_delete_node_removes_subtree(store: SqliteBookmarkStore) -> None:
    build_tree(store, Folder("f", children=[Folder("g", children=[Bookmark("c")])]), Bookmark("b"))
    with store.transaction():
        store.delete_node("f")
    assert [n.id for n in store.fetch_all_nodes()] == [ROOT_FOLDER_ID, "favorites_root", "b"]


def test_update_node_keeps_position(store: SqliteBookmarkStore) -> None:
    build_tree(store, Bookmark("a"), Bookmark("b"))
    node = store.fetch_node("b")
    assert node is not None
    node.title = "Bee"
    node.parent_id = None
    node.sort_order = 99
    with store.transaction():
        store.update_node(node)

    saved = store.fetch_node("b")
    assert saved is not None
    assert (saved.title, saved.parent_id, saved.sort_order) == ("Bee", ROOT_FOLDER_ID, 1)


def test_clear_favorites(store: SqliteBookmarkStore) -> None:
    build_tree(store, Bookmark("a", favorite=True), Bookmark("b", favorite=True))
    assert [n.id for n in store.fetch_favorites()] == ["a", "b"]
    with store.transaction():
        store.clear_favorites()
    assert store.fetch_favorites() == []


def test_mark_all_dirty_flags_every_node(store: SqliteBookmarkStore) -> None:
    build_tree(store, Bookmark("a"))
    with store.transaction():
        count = store.mark_all_dirty("2024-01-01T00:00:00+00:00")
    assert count == 3
    assert all(n.is_dirty for n in store.fetch_all_nodes())


def test_store_satisfies_protocol(store: SqliteBookmarkStore) -> None:
    assert isinstance(store, EntityStoreProtocol)
