"""Tests for tree rendering."""

from bookmark_sync.core.bookmarks import editing
from bookmark_sync.core.store.sqlite_store import SqliteBookmarkStore
from bookmark_sync.core.tree.render import render_tree
from tests.unit.fakes import Bookmark, Folder, build_tree


def _populate(store: SqliteBookmarkStore) -> None:
    build_tree(
        store,
        Folder(
            "work",
            title="Work",
            children=[
                Bookmark("docs", title="Docs", url="docs.example"),
                Folder(
                    "deep",
                    title="Deep",
                    children=[Bookmark("x", title="X", url="x.example")],
                ),
            ],
        ),
        Bookmark("news", title="News", url="news.example", favorite=True),
    )


def test_renders_nested_tree(store: SqliteBookmarkStore) -> None:
    _populate(store)
    assert render_tree(store) == (
        "bookmarks_root/\n"
        "- Work/\n"
        "    - Docs <docs.example>\n"
        "    - Deep/\n"
        "        - X <x.example>\n"
        "- News <news.example> [fav]\n"
    )


def test_max_depth_truncates_with_count(store: SqliteBookmarkStore) -> None:
    _populate(store)
    assert render_tree(store, max_depth=1) == (
        "bookmarks_root/\n"
        "- Work/\n"
        "    - ... (2 more children)\n"
        "- News <news.example> [fav]\n"
    )


def test_start_folder_and_ids(store: SqliteBookmarkStore) -> None:
    _populate(store)
    assert render_tree(store, node_id="deep", show_ids=True) == (
        "Deep/  id=deep\n"
        "- X <x.example>  id=x\n"
    )


def test_deleted_nodes_are_hidden_unless_requested(store: SqliteBookmarkStore) -> None:
    build_tree(store, Bookmark("a", title="A", url="a.example"))
    editing.delete_bookmark(store, "a")

    assert render_tree(store) == "bookmarks_root/ [modified]\n"
    assert render_tree(store, include_deleted=True) == (
        "bookmarks_root/ [modified]\n"
        "- A <a.example> [modified, deleted]\n"
    )


def test_unknown_start_node_renders_nothing(store: SqliteBookmarkStore) -> None:
    assert render_tree(store, node_id="missing") == ""
