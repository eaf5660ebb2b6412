"""SQLite-backed entity store for the bookmark tree."""

import sqlite3
import threading
import time
from collections import deque
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path

from loguru import logger

from bookmark_sync.config import ROOT_FOLDER_IDS
from bookmark_sync.core.database.schema import migrate_schema
from bookmark_sync.errors import StoreError
from bookmark_sync.models.node import BookmarkNode

_COLUMNS = (
    "id, title, url, is_folder, parent_id, sort_order, is_favorite, favorite_order, "
    "is_pending_deletion, modified_at, created_at"
)


def _row_to_node(row: tuple) -> BookmarkNode:
    return BookmarkNode(
        id=row[0],
        title=row[1],
        url=row[2],
        is_folder=bool(row[3]),
        parent_id=row[4],
        sort_order=row[5],
        is_favorite=bool(row[6]),
        favorite_order=row[7],
        is_pending_deletion=bool(row[8]),
        modified_at=row[9],
        created_at=row[10],
    )


class SqliteBookmarkStore:
    """Durable tree of bookmark nodes.

    Individual methods never commit. All writes happen inside
    :meth:`transaction`, which commits when the block exits normally and rolls
    back on any exception, so a failed sync cycle leaves no partial writes.
    The transaction also holds a lock, so local edits from another thread
    wait until a running cycle has finished.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._lock = threading.RLock()
        self._depth = 0

    @classmethod
    def open(cls, db_path: str | Path) -> "SqliteBookmarkStore":
        """Open (creating if needed) a store at ``db_path``."""
        if str(db_path) != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(db_path), check_same_thread=False)
        migrate_schema(conn)
        return cls(conn)

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run a block of store operations as one atomic unit.

        Nested use joins the outermost transaction.
        """
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            self._depth = 1
            try:
                yield
                self._conn.commit()
            except sqlite3.Error as e:
                self._conn.rollback()
                logger.error("Store transaction failed, rolled back: {}", e)
                msg = f"Store transaction failed: {e}"
                raise StoreError(msg) from e
            except BaseException:
                self._conn.rollback()
                raise
            finally:
                self._depth = 0

    # === Reads ===

    def fetch_node(self, node_id: str) -> BookmarkNode | None:
        row = self._conn.execute(
            f"SELECT {_COLUMNS} FROM bookmarks WHERE id = ?", (node_id,)
        ).fetchone()
        return _row_to_node(row) if row else None

    def fetch_nodes(self, node_ids: Iterable[str]) -> list[BookmarkNode]:
        """Fetch the nodes with the given ids, in store order."""
        ids = list(node_ids)
        if not ids:
            return []
        placeholders = ",".join("?" * len(ids))
        rows = self._conn.execute(
            f"SELECT {_COLUMNS} FROM bookmarks WHERE id IN ({placeholders}) ORDER BY seq",
            ids,
        ).fetchall()
        return [_row_to_node(r) for r in rows]

    def fetch_children(
        self, folder_id: str, *, include_deleted: bool = True
    ) -> list[BookmarkNode]:
        """Get direct children of a folder, ordered by sort_order."""
        query = f"SELECT {_COLUMNS} FROM bookmarks WHERE parent_id = ? "
        if not include_deleted:
            query += "AND is_pending_deletion = 0 "
        query += "ORDER BY sort_order, seq"
        rows = self._conn.execute(query, (folder_id,)).fetchall()
        return [_row_to_node(r) for r in rows]

    def fetch_all_nodes(self) -> list[BookmarkNode]:
        rows = self._conn.execute(
            f"SELECT {_COLUMNS} FROM bookmarks ORDER BY seq"
        ).fetchall()
        return [_row_to_node(r) for r in rows]

    def fetch_dirty_nodes(self) -> list[BookmarkNode]:
        """Nodes with local changes pending upload, in creation order."""
        rows = self._conn.execute(
            f"SELECT {_COLUMNS} FROM bookmarks WHERE modified_at IS NOT NULL ORDER BY seq"
        ).fetchall()
        return [_row_to_node(r) for r in rows]

    def fetch_favorites(self) -> list[BookmarkNode]:
        rows = self._conn.execute(
            f"SELECT {_COLUMNS} FROM bookmarks WHERE is_favorite = 1 "
            "ORDER BY favorite_order, seq"
        ).fetchall()
        return [_row_to_node(r) for r in rows]

    def fetch_detached_nodes(self) -> list[BookmarkNode]:
        """Non-root nodes that currently have no parent."""
        placeholders = ",".join("?" * len(ROOT_FOLDER_IDS))
        rows = self._conn.execute(
            f"SELECT {_COLUMNS} FROM bookmarks "
            f"WHERE parent_id IS NULL AND id NOT IN ({placeholders}) ORDER BY seq",
            sorted(ROOT_FOLDER_IDS),
        ).fetchall()
        return [_row_to_node(r) for r in rows]

    def fetch_descendant_ids(self, folder_id: str) -> list[str]:
        """Ids of every node below ``folder_id``, breadth first."""
        result: list[str] = []
        todo: deque[str] = deque([folder_id])
        while todo:
            parent_id = todo.popleft()
            rows = self._conn.execute(
                "SELECT id, is_folder FROM bookmarks WHERE parent_id = ? ORDER BY sort_order, seq",
                (parent_id,),
            ).fetchall()
            for child_id, is_folder in rows:
                result.append(child_id)
                if is_folder:
                    todo.append(child_id)
        return result

    # === Writes ===

    def _next_sort_order(self, parent_id: str) -> int:
        row = self._conn.execute(
            "SELECT MAX(sort_order) FROM bookmarks WHERE parent_id = ?", (parent_id,)
        ).fetchone()
        return 0 if row[0] is None else row[0] + 1

    def create_node(
        self,
        node_id: str,
        *,
        is_folder: bool,
        parent_id: str | None,
        title: str | None = None,
        url: str | None = None,
        modified_at: str | None = None,
    ) -> BookmarkNode:
        """Insert a new node as the last child of ``parent_id``."""
        sort_order = self._next_sort_order(parent_id) if parent_id is not None else 0
        try:
            self._conn.execute(
                """INSERT INTO bookmarks
                   (id, title, url, is_folder, parent_id, sort_order, modified_at, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (node_id, title, url, is_folder, parent_id, sort_order, modified_at, time.time()),
            )
        except sqlite3.IntegrityError as e:
            msg = f"Node {node_id!r} already exists"
            raise StoreError(msg) from e
        node = self.fetch_node(node_id)
        assert node is not None
        return node

    def update_node(self, node: BookmarkNode) -> None:
        """Save every field of ``node`` except its position in the tree."""
        self._conn.execute(
            """UPDATE bookmarks
               SET title = ?, url = ?, is_folder = ?, is_favorite = ?, favorite_order = ?,
                   is_pending_deletion = ?, modified_at = ?
               WHERE id = ?""",
            (
                node.title, node.url, node.is_folder, node.is_favorite, node.favorite_order,
                node.is_pending_deletion, node.modified_at, node.id,
            ),
        )

    def move_node(self, node_id: str, parent_id: str | None) -> None:
        """Detach a node from its parent, then append it to ``parent_id``.

        Passing None only detaches it.
        """
        self._conn.execute(
            "UPDATE bookmarks SET parent_id = NULL, sort_order = 0 WHERE id = ?", (node_id,)
        )
        if parent_id is None:
            return
        self._conn.execute(
            "UPDATE bookmarks SET parent_id = ?, sort_order = ? WHERE id = ?",
            (parent_id, self._next_sort_order(parent_id), node_id),
        )

    def detach_children(self, folder_id: str) -> list[str]:
        """Unlink every child of a folder; returns the detached ids."""
        ids = [
            r[0]
            for r in self._conn.execute(
                "SELECT id FROM bookmarks WHERE parent_id = ? ORDER BY sort_order, seq",
                (folder_id,),
            ).fetchall()
        ]
        self._conn.execute(
            "UPDATE bookmarks SET parent_id = NULL, sort_order = 0 WHERE parent_id = ?",
            (folder_id,),
        )
        return ids

    def rename_node(self, old_id: str, new_id: str) -> None:
        """Give a node a new id; its children follow."""
        try:
            self._conn.execute("UPDATE bookmarks SET id = ? WHERE id = ?", (new_id, old_id))
        except sqlite3.IntegrityError as e:
            msg = f"Cannot rename {old_id!r}: node {new_id!r} already exists"
            raise StoreError(msg) from e
        self._conn.execute(
            "UPDATE bookmarks SET parent_id = ? WHERE parent_id = ?", (new_id, old_id)
        )

    def delete_node(self, node_id: str) -> None:
        """Permanently remove a node and everything below it."""
        ids = [node_id, *self.fetch_descendant_ids(node_id)]
        placeholders = ",".join("?" * len(ids))
        self._conn.execute(f"DELETE FROM bookmarks WHERE id IN ({placeholders})", ids)

    def clear_favorites(self) -> None:
        self._conn.execute(
            "UPDATE bookmarks SET is_favorite = 0, favorite_order = NULL WHERE is_favorite = 1"
        )

    def mark_all_dirty(self, timestamp: str) -> int:
        """Flag every node as modified; returns the number of nodes."""
        cursor = self._conn.execute("UPDATE bookmarks SET modified_at = ?", (timestamp,))
        return cursor.rowcount
