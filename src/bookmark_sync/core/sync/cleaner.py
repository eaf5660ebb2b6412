"""Settle local state for records the server acknowledged."""

from collections.abc import Iterable
from dataclasses import dataclass

from loguru import logger

from bookmark_sync.models.node import Syncable
from bookmark_sync.protocols import EntityStoreProtocol


@dataclass(frozen=True)
class CleanStats:
    """Summary of a cleanup."""

    cleaned: int
    purged: int


def clean_sent_items(store: EntityStoreProtocol, sent: Iterable[Syncable]) -> CleanStats:
    """Purge acknowledged tombstones and clear the dirty flag of everything else sent.

    Must run in the same transaction as the merge of the cycle's response.
    """
    identifiers = [s.uuid for s in sent if s.uuid is not None]
    if not identifiers:
        return CleanStats(cleaned=0, purged=0)

    cleaned = 0
    purged = 0
    for node in store.fetch_nodes(identifiers):
        if node.is_pending_deletion:
            store.delete_node(node.id)
            purged += 1
        elif node.is_dirty:
            node.modified_at = None
            store.update_node(node)
            cleaned += 1

    logger.debug("Sent items settled: {} cleaned, {} purged", cleaned, purged)
    return CleanStats(cleaned=cleaned, purged=purged)
