"""Apply the received favorites list to the local favorite flags."""

from loguru import logger

from bookmark_sync.config import FAVORITES_FOLDER_ID
from bookmark_sync.core.sync.batch_index import ReceivedBatchIndex
from bookmark_sync.models.node import SyncMode
from bookmark_sync.protocols import EntityStoreProtocol


class FavoritesReconciler:
    """Replace local favorites with the list carried by the favorites record.

    Must run after the tree merge, so ids created or adopted earlier in the
    same cycle resolve. Once a batch describes the favorites, the remote list
    wins in both modes.
    """

    def __init__(self, store: EntityStoreProtocol) -> None:
        self._store = store

    def apply(self, index: ReceivedBatchIndex, mode: SyncMode) -> int | None:
        """Returns the number of favorites set, or None if the batch had no list."""
        if not index.has_favorites:
            return None

        self._store.clear_favorites()

        position = 0
        for uuid in index.favorite_ids:
            node = self._store.fetch_node(uuid)
            if node is None:
                logger.debug("Favorite {} is unknown locally, skipping", uuid)
                continue
            if node.is_folder or node.is_pending_deletion:
                logger.warning("Favorite {} is a folder or deleted, skipping", uuid)
                continue
            node.is_favorite = True
            node.favorite_order = position
            self._store.update_node(node)
            index.entities_by_uuid[uuid] = node
            position += 1

        favorites_root = self._store.fetch_node(FAVORITES_FOLDER_ID)
        if favorites_root is not None and favorites_root.is_dirty:
            favorites_root.modified_at = None
            self._store.update_node(favorites_root)

        logger.debug("Applied {} favorites ({})", position, mode.value)
        return position
