"""Local edits to the bookmark tree.

Every edit flags the nodes it touches as modified, so the next sync uploads
them. Folders whose list of children changes are flagged too, since their
records carry that list.
"""

import uuid

from loguru import logger

from bookmark_sync.config import FAVORITES_FOLDER_ID, ROOT_FOLDER_ID, ROOT_FOLDER_IDS
from bookmark_sync.errors import NodeNotFoundError
from bookmark_sync.models.node import BookmarkNode, now_timestamp
from bookmark_sync.protocols import EntityStoreProtocol


def _get_node(store: EntityStoreProtocol, node_id: str) -> BookmarkNode:
    node = store.fetch_node(node_id)
    if node is None or node.is_pending_deletion:
        msg = f"Node {node_id!r} not found"
        raise NodeNotFoundError(msg)
    return node


def _get_folder(store: EntityStoreProtocol, folder_id: str) -> BookmarkNode:
    folder = _get_node(store, folder_id)
    if not folder.is_folder or folder.id == FAVORITES_FOLDER_ID:
        msg = f"{folder_id!r} is not a bookmark folder"
        raise ValueError(msg)
    return folder


def _touch(store: EntityStoreProtocol, node: BookmarkNode, timestamp: str) -> None:
    node.modified_at = timestamp
    store.update_node(node)


def add_bookmark(
    store: EntityStoreProtocol,
    *,
    url: str,
    title: str | None = None,
    parent_id: str = ROOT_FOLDER_ID,
    node_id: str | None = None,
) -> BookmarkNode:
    """Create a bookmark as the last child of ``parent_id``."""
    with store.transaction():
        parent = _get_folder(store, parent_id)
        timestamp = now_timestamp()
        node = store.create_node(
            node_id or str(uuid.uuid4()),
            is_folder=False,
            parent_id=parent.id,
            title=title if title is not None else url,
            url=url,
            modified_at=timestamp,
        )
        _touch(store, parent, timestamp)
    logger.debug("Added bookmark {} under {}", node.id, parent_id)
    return node


def add_folder(
    store: EntityStoreProtocol,
    *,
    title: str,
    parent_id: str = ROOT_FOLDER_ID,
    node_id: str | None = None,
) -> BookmarkNode:
    """Create a folder as the last child of ``parent_id``."""
    with store.transaction():
        parent = _get_folder(store, parent_id)
        timestamp = now_timestamp()
        node = store.create_node(
            node_id or str(uuid.uuid4()),
            is_folder=True,
            parent_id=parent.id,
            title=title,
            modified_at=timestamp,
        )
        _touch(store, parent, timestamp)
    logger.debug("Added folder {} under {}", node.id, parent_id)
    return node


def update_bookmark(
    store: EntityStoreProtocol,
    node_id: str,
    *,
    title: str | None = None,
    url: str | None = None,
) -> BookmarkNode:
    """Change the title and/or url of a node."""
    with store.transaction():
        node = _get_node(store, node_id)
        if node.id in ROOT_FOLDER_IDS:
            msg = f"Root folder {node_id!r} cannot be edited"
            raise ValueError(msg)
        if url is not None and node.is_folder:
            msg = f"Folder {node_id!r} cannot have a url"
            raise ValueError(msg)
        if title is not None:
            node.title = title
        if url is not None:
            node.url = url
        _touch(store, node, now_timestamp())
    return node


def move_bookmark(store: EntityStoreProtocol, node_id: str, *, parent_id: str) -> BookmarkNode:
    """Move a node to the end of another folder."""
    with store.transaction():
        node = _get_node(store, node_id)
        if node.id in ROOT_FOLDER_IDS:
            msg = f"Root folder {node_id!r} cannot be moved"
            raise ValueError(msg)
        parent = _get_folder(store, parent_id)
        if node.is_folder and (
            parent.id == node.id or parent.id in store.fetch_descendant_ids(node.id)
        ):
            msg = f"Cannot move folder {node_id!r} into itself"
            raise ValueError(msg)

        timestamp = now_timestamp()
        old_parent = store.fetch_node(node.parent_id) if node.parent_id else None
        store.move_node(node.id, parent.id)
        node.parent_id = parent.id
        _touch(store, node, timestamp)
        _touch(store, parent, timestamp)
        if old_parent is not None and old_parent.id != parent.id:
            _touch(store, old_parent, timestamp)
    return node


def delete_bookmark(store: EntityStoreProtocol, node_id: str) -> list[str]:
    """Mark a node, and everything below it, as pending deletion.

    The nodes stay in the store until the server acknowledges the deletion.
    Returns the ids of all tombstoned nodes.
    """
    with store.transaction():
        node = _get_node(store, node_id)
        if node.id in ROOT_FOLDER_IDS:
            msg = f"Root folder {node_id!r} cannot be deleted"
            raise ValueError(msg)

        timestamp = now_timestamp()
        ids = [node.id]
        if node.is_folder:
            ids.extend(store.fetch_descendant_ids(node.id))

        lost_favorite = False
        for doomed in store.fetch_nodes(ids):
            lost_favorite = lost_favorite or doomed.is_favorite
            doomed.is_pending_deletion = True
            doomed.is_favorite = False
            doomed.favorite_order = None
            _touch(store, doomed, timestamp)

        if node.parent_id is not None:
            parent = store.fetch_node(node.parent_id)
            if parent is not None:
                _touch(store, parent, timestamp)
        if lost_favorite:
            _touch(store, _get_node(store, FAVORITES_FOLDER_ID), timestamp)

    logger.debug("Marked {} nodes for deletion", len(ids))
    return ids


def add_favorite(store: EntityStoreProtocol, node_id: str) -> BookmarkNode:
    """Append a bookmark to the favorites."""
    with store.transaction():
        node = _get_node(store, node_id)
        if node.is_folder:
            msg = f"Folder {node_id!r} cannot be a favorite"
            raise ValueError(msg)
        if node.is_favorite:
            return node
        favorites = store.fetch_favorites()
        node.is_favorite = True
        node.favorite_order = max((f.favorite_order or 0 for f in favorites), default=-1) + 1
        store.update_node(node)
        _touch(store, _get_node(store, FAVORITES_FOLDER_ID), now_timestamp())
    return node


def remove_favorite(store: EntityStoreProtocol, node_id: str) -> BookmarkNode:
    """Remove a bookmark from the favorites."""
    with store.transaction():
        node = _get_node(store, node_id)
        if not node.is_favorite:
            return node
        node.is_favorite = False
        node.favorite_order = None
        store.update_node(node)
        _touch(store, _get_node(store, FAVORITES_FOLDER_ID), now_timestamp())
    return node
