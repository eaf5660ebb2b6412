"""Tests for collecting local changes."""

from bookmark_sync.config import FAVORITES_FOLDER_ID, ROOT_FOLDER_ID
from bookmark_sync.core.bookmarks import editing
from bookmark_sync.core.store.sqlite_store import SqliteBookmarkStore
from bookmark_sync.core.sync.collector import collect_changes
from bookmark_sync.core.sync.crypter import PlaintextCrypter
from tests.unit.fakes import Bookmark, Folder, build_tree


def _payloads(store: SqliteBookmarkStore, crypter: PlaintextCrypter) -> dict[str, dict]:
    return {s.payload["id"]: s.payload for s in collect_changes(store, crypter)}


def test_clean_store_has_no_changes(
    store: SqliteBookmarkStore, crypter: PlaintextCrypter
) -> None:
    build_tree(store, Bookmark("a"))
    assert collect_changes(store, crypter) == []


def test_new_bookmark_and_its_folder_are_collected(
    store: SqliteBookmarkStore, crypter: PlaintextCrypter
) -> None:
    build_tree(store, Bookmark("a"))
    editing.add_bookmark(store, url="b.com", title="B", node_id="b")

    payloads = _payloads(store, crypter)

    assert set(payloads) == {ROOT_FOLDER_ID, "b"}
    assert payloads[ROOT_FOLDER_ID]["folder"] == {"children": ["a", "b"]}
    assert payloads["b"]["page"] == {"url": "b.com"}
    assert "client_last_modified" in payloads["b"]


def test_folder_children_skip_tombstones(
    store: SqliteBookmarkStore, crypter: PlaintextCrypter
) -> None:
    build_tree(store, Folder("f", children=[Bookmark("a"), Bookmark("b")]))
    editing.delete_bookmark(store, "a")

    payloads = _payloads(store, crypter)

    assert payloads["a"] == {"id": "a", "deleted": ""}
    assert payloads["f"]["folder"] == {"children": ["b"]}


def test_favorites_root_lists_favorites(
    store: SqliteBookmarkStore, crypter: PlaintextCrypter
) -> None:
    build_tree(store, Bookmark("a"), Bookmark("b"))
    editing.add_favorite(store, "b")
    editing.add_favorite(store, "a")

    payloads = _payloads(store, crypter)

    assert payloads[FAVORITES_FOLDER_ID]["folder"] == {"children": ["b", "a"]}


def test_changes_come_out_in_creation_order(
    store: SqliteBookmarkStore, crypter: PlaintextCrypter
) -> None:
    build_tree(store, Bookmark("z"), Bookmark("y"), dirty=True)
    ids = [s.uuid for s in collect_changes(store, crypter)]
    assert ids == ["z", "y"]
