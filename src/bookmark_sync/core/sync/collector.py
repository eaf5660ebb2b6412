"""Collect locally modified nodes as records for upload."""

from loguru import logger

from bookmark_sync.config import FAVORITES_FOLDER_ID
from bookmark_sync.models.node import BookmarkNode, Syncable
from bookmark_sync.protocols import CrypterProtocol, EntityStoreProtocol


def _child_ids(store: EntityStoreProtocol, folder: BookmarkNode) -> list[str]:
    if folder.id == FAVORITES_FOLDER_ID:
        return [n.id for n in store.fetch_favorites() if not n.is_pending_deletion]
    return [n.id for n in store.fetch_children(folder.id, include_deleted=False)]


def collect_changes(store: EntityStoreProtocol, crypter: CrypterProtocol) -> list[Syncable]:
    """Encode every dirty node, in creation order.

    Folder records list their live children in order; the favorites root lists
    the favorites. Tombstones go out as deleted records.
    """
    changes: list[Syncable] = []
    for node in store.fetch_dirty_nodes():
        children: list[str] | None = None
        if node.is_folder and not node.is_pending_deletion:
            children = _child_ids(store, node)
        try:
            changes.append(crypter.encrypt(node, children=children))
        except ValueError:
            logger.opt(exception=True).warning(
                "Cannot encode node {}, leaving it for the next sync", node.id
            )

    logger.debug("Collected {} changed nodes", len(changes))
    return changes
