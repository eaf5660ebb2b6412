"""Index a received batch of records for the tree merge."""

from collections.abc import Iterable
from dataclasses import dataclass, field

from loguru import logger

from bookmark_sync.config import FAVORITES_FOLDER_ID, ROOT_FOLDER_ID
from bookmark_sync.errors import DecodeError
from bookmark_sync.models.node import BookmarkNode, ReceivedRecord, Syncable
from bookmark_sync.protocols import CrypterProtocol, EntityStoreProtocol


@dataclass
class ReceivedBatchIndex:
    """Lookup structures built once per sync cycle from the received records.

    ``entities_by_uuid`` starts with every local node the batch mentions and is
    kept current by the reconciler as nodes are created, renamed or purged.
    """

    by_uuid: dict[str, ReceivedRecord] = field(default_factory=dict)
    entities_by_uuid: dict[str, BookmarkNode] = field(default_factory=dict)
    top_level_folders: list[ReceivedRecord] = field(default_factory=list)
    orphan_leaves: list[ReceivedRecord] = field(default_factory=list)
    favorite_ids: list[str] = field(default_factory=list)
    has_favorites: bool = False
    skipped: int = 0

    @classmethod
    def build(
        cls,
        received: Iterable[Syncable],
        *,
        crypter: CrypterProtocol,
        store: EntityStoreProtocol,
    ) -> "ReceivedBatchIndex":
        """Decode and index a batch.

        Records without an id, or that fail to decode, are skipped.
        """
        index = cls()

        for syncable in received:
            if syncable.uuid is None:
                logger.warning("Skipping received record without id: {!r}", syncable.payload)
                index.skipped += 1
                continue
            try:
                record = crypter.decrypt(syncable)
            except DecodeError as e:
                logger.warning("Skipping undecodable record {}: {}", syncable.uuid, e)
                index.skipped += 1
                continue

            if record.uuid == FAVORITES_FOLDER_ID:
                index.has_favorites = True
                index.favorite_ids = list(record.children)
                continue

            if record.uuid in index.by_uuid:
                logger.debug("Record {} received twice, keeping the later copy", record.uuid)
            index.by_uuid[record.uuid] = record

        referenced: set[str] = set()
        for record in index.by_uuid.values():
            if record.is_folder and not record.is_deleted:
                referenced.update(c for c in record.children if c != record.uuid)

        for record in index.by_uuid.values():
            if record.is_folder:
                if record.uuid == ROOT_FOLDER_ID or record.uuid not in referenced:
                    index.top_level_folders.append(record)
            elif record.uuid not in referenced:
                index.orphan_leaves.append(record)

        mentioned = set(index.by_uuid) | referenced | set(index.favorite_ids)
        for node in store.fetch_nodes(mentioned):
            index.entities_by_uuid[node.id] = node

        logger.debug(
            "Indexed batch: {} records, {} top-level folders, {} orphans, {} favorites, "
            "{} skipped",
            len(index.by_uuid),
            len(index.top_level_folders),
            len(index.orphan_leaves),
            len(index.favorite_ids),
            index.skipped,
        )
        return index
