"""Merge a received batch of records into the local bookmark tree."""

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field

from loguru import logger

from bookmark_sync.config import ROOT_FOLDER_ID, ROOT_FOLDER_IDS
from bookmark_sync.core.sync.batch_index import ReceivedBatchIndex
from bookmark_sync.core.sync.favorites import FavoritesReconciler
from bookmark_sync.core.sync.matching import pick_duplicate
from bookmark_sync.models.node import (
    BookmarkNode,
    ReceivedRecord,
    Syncable,
    SyncMode,
    now_timestamp,
)
from bookmark_sync.protocols import CrypterProtocol, EntityStoreProtocol


@dataclass
class ReconcileResult:
    """Summary of one merge."""

    created: int = 0
    updated: int = 0
    adopted: int = 0
    moved: int = 0
    deleted: int = 0
    parked: int = 0
    skipped: int = 0
    favorites: int | None = None


@dataclass
class ReconcileContext:
    """Mutable state of one merge, owned by a single ``reconcile`` call."""

    index: ReceivedBatchIndex
    mode: SyncMode
    result: ReconcileResult = field(default_factory=ReconcileResult)
    # Local ids now bound to a received record. Never offered for dedup again.
    linked_ids: set[str] = field(default_factory=set)
    visited: set[str] = field(default_factory=set)
    detached: set[str] = field(default_factory=set)
    remote_tombstones: list[str] = field(default_factory=list)
    received_children: dict[str, tuple[str, ...]] = field(default_factory=dict)


class TreeReconciler:
    """Breadth-first merge of received folders and bookmarks.

    Every top-level folder of the batch is walked level by level. Records the
    batch describes are reconciled as entities; ids the batch only lists as
    children are moved under their new parent; unknown ids are skipped.
    In OVERWRITE mode the batch fully replaces the membership and order of
    every folder it describes. In DEDUPLICATE mode local items are matched by
    content and adopt the remote ids instead of being duplicated.
    """

    def __init__(self, store: EntityStoreProtocol) -> None:
        self._store = store

    def merge(self, ctx: ReconcileContext) -> ReconcileResult:
        for folder in ctx.index.top_level_folders:
            self._process_top_level_folder(ctx, folder)

        self._process_orphans(ctx)
        self._park_detached(ctx)
        if ctx.mode is SyncMode.DEDUPLICATE:
            self._mark_merged_folders_dirty(ctx)
        self._purge_remote_tombstones(ctx)
        return ctx.result

    # === Traversal ===

    def _process_top_level_folder(self, ctx: ReconcileContext, folder: ReceivedRecord) -> None:
        if folder.uuid != ROOT_FOLDER_ID:
            if folder.uuid in ctx.visited:
                return
            self._process_entity(ctx, folder, parent_id=None)
            if folder.is_deleted:
                return

        todo: deque[tuple[str, tuple[str, ...]]] = deque([(folder.uuid, folder.children)])
        while todo:
            parent_id, child_ids = todo.popleft()
            parent = self._store.fetch_node(parent_id)
            if parent is None or not parent.is_folder or parent.is_pending_deletion:
                logger.error(
                    "Folder {} is not available locally, skipping its {} children",
                    parent_id,
                    len(child_ids),
                )
                ctx.result.skipped += len(child_ids)
                continue

            if ctx.mode is SyncMode.OVERWRITE:
                ctx.detached.update(self._store.detach_children(parent_id))
            ctx.received_children[parent_id] = child_ids

            for child_id in child_ids:
                record = ctx.index.by_uuid.get(child_id)
                if record is not None:
                    if child_id in ctx.visited:
                        logger.error(
                            "Record {} reached twice (listed under {}), ignoring repeat",
                            child_id,
                            parent_id,
                        )
                        ctx.result.skipped += 1
                        continue
                    self._process_entity(ctx, record, parent_id=parent_id)
                    if record.is_folder and not record.is_deleted and record.children:
                        todo.append((child_id, record.children))
                elif (existing := self._lookup_local(ctx, child_id)) is not None:
                    self._relink(ctx, existing, parent_id)
                else:
                    logger.debug("Child {} of {} is unknown, skipping", child_id, parent_id)

    def _process_orphans(self, ctx: ReconcileContext) -> None:
        for record in ctx.index.orphan_leaves:
            if record.uuid not in ctx.visited:
                self._process_entity(ctx, record, parent_id=None)

        # Records only reachable through a cycle of folders are still applied.
        for record in ctx.index.by_uuid.values():
            if record.uuid in ctx.visited or record.uuid in ROOT_FOLDER_IDS:
                continue
            logger.warning("Record {} is not reachable from any top-level folder", record.uuid)
            self._process_entity(ctx, record, parent_id=None)

    # === Entities ===

    def _process_entity(
        self, ctx: ReconcileContext, record: ReceivedRecord, *, parent_id: str | None
    ) -> None:
        """Apply one received record.

        ``parent_id`` is the folder the record was listed under, or None when the
        batch carries no placement for it. Existing nodes without placement stay
        where they are; new ones are created under the bookmarks root.
        """
        if record.uuid in ROOT_FOLDER_IDS:
            logger.error("Ignoring record that targets root folder {}", record.uuid)
            ctx.result.skipped += 1
            return
        ctx.visited.add(record.uuid)

        existing = self._store.fetch_node(record.uuid)
        if existing is None and ctx.mode is SyncMode.DEDUPLICATE and not record.is_deleted:
            duplicate = self._find_duplicate(ctx, record, parent_id)
            if duplicate is not None:
                self._adopt(ctx, duplicate, record, parent_id)
                return

        if existing is not None:
            if record.is_deleted:
                self._tombstone(ctx, existing)
            else:
                self._update(ctx, existing, record, parent_id)
        elif record.is_deleted:
            logger.debug("Deleted record {} has no local node, nothing to do", record.uuid)
        else:
            self._create(ctx, record, parent_id)

    def _find_duplicate(
        self, ctx: ReconcileContext, record: ReceivedRecord, parent_id: str | None
    ) -> BookmarkNode | None:
        scope = parent_id
        if scope is None and record.is_folder:
            scope = ROOT_FOLDER_ID

        candidates: Iterable[BookmarkNode]
        if scope is not None:
            candidates = self._store.fetch_children(scope, include_deleted=False)
        else:
            candidates = self._store.fetch_all_nodes()

        unlinked = [
            node
            for node in candidates
            if node.id not in ROOT_FOLDER_IDS
            and node.id not in ctx.linked_ids
            and node.id not in ctx.index.by_uuid
        ]
        return pick_duplicate(unlinked, record)

    def _adopt(
        self,
        ctx: ReconcileContext,
        node: BookmarkNode,
        record: ReceivedRecord,
        parent_id: str | None,
    ) -> None:
        old_id = node.id
        self._store.rename_node(old_id, record.uuid)
        ctx.index.entities_by_uuid.pop(old_id, None)

        node.id = record.uuid
        node.title = record.title
        node.modified_at = None
        self._store.update_node(node)
        if parent_id is not None:
            self._reparent(ctx, node, parent_id)

        ctx.index.entities_by_uuid[record.uuid] = node
        ctx.linked_ids.add(record.uuid)
        ctx.result.adopted += 1
        logger.debug("Deduplicated local node {} as {}", old_id, record.uuid)

    def _update(
        self,
        ctx: ReconcileContext,
        node: BookmarkNode,
        record: ReceivedRecord,
        parent_id: str | None,
    ) -> None:
        ctx.linked_ids.add(node.id)
        ctx.index.entities_by_uuid[node.id] = node
        if node.is_pending_deletion:
            # Local deletion not yet acknowledged; it is still going upstream.
            logger.debug("Node {} is pending deletion, ignoring remote update", node.id)
            return

        if node.is_folder and not record.is_folder:
            # A bookmark cannot keep children; they are parked unless relinked.
            ctx.detached.update(self._store.detach_children(node.id))

        node.title = record.title
        node.is_folder = record.is_folder
        node.url = None if record.is_folder else record.url
        if node.is_folder:
            node.is_favorite = False
            node.favorite_order = None
        node.modified_at = None
        self._store.update_node(node)
        if parent_id is not None:
            self._reparent(ctx, node, parent_id)
        ctx.result.updated += 1

    def _create(
        self, ctx: ReconcileContext, record: ReceivedRecord, parent_id: str | None
    ) -> None:
        node = self._store.create_node(
            record.uuid,
            is_folder=record.is_folder,
            parent_id=parent_id or ROOT_FOLDER_ID,
            title=record.title,
            url=None if record.is_folder else record.url,
        )
        ctx.index.entities_by_uuid[node.id] = node
        ctx.linked_ids.add(node.id)
        ctx.result.created += 1

    def _tombstone(self, ctx: ReconcileContext, node: BookmarkNode) -> None:
        """Mark a node deleted and detach it.

        Descendants stay live below it so later records in the batch can still
        move them out; whatever remains is purged after the merge.
        """
        node.is_pending_deletion = True
        node.is_favorite = False
        node.favorite_order = None
        node.modified_at = None
        self._store.update_node(node)
        self._store.move_node(node.id, None)
        ctx.detached.discard(node.id)
        ctx.remote_tombstones.append(node.id)
        ctx.result.deleted += 1

    # === Links ===

    def _lookup_local(self, ctx: ReconcileContext, node_id: str) -> BookmarkNode | None:
        if node_id not in ctx.index.entities_by_uuid:
            return None
        return self._store.fetch_node(node_id)

    def _relink(self, ctx: ReconcileContext, node: BookmarkNode, parent_id: str) -> None:
        """Move a node the batch listed as a child but did not describe."""
        if node.id in ROOT_FOLDER_IDS or node.is_pending_deletion:
            logger.debug("Not moving {} under {}", node.id, parent_id)
            return
        if self._reparent(ctx, node, parent_id):
            ctx.result.moved += 1

    def _reparent(self, ctx: ReconcileContext, node: BookmarkNode, parent_id: str) -> bool:
        if self._would_create_cycle(node.id, parent_id):
            logger.error("Moving {} under {} would create a cycle, skipping", node.id, parent_id)
            ctx.result.skipped += 1
            return False
        self._store.move_node(node.id, parent_id)
        node.parent_id = parent_id
        ctx.detached.discard(node.id)
        return True

    def _would_create_cycle(self, node_id: str, parent_id: str) -> bool:
        seen: set[str] = set()
        current: str | None = parent_id
        while current is not None and current not in seen:
            if current == node_id:
                return True
            seen.add(current)
            ancestor = self._store.fetch_node(current)
            current = ancestor.parent_id if ancestor else None
        return False

    # === Finishing ===

    def _park_detached(self, ctx: ReconcileContext) -> None:
        for node in self._store.fetch_detached_nodes():
            if node.is_pending_deletion:
                continue
            logger.warning("Node {} lost its parent during sync, moving it to the root", node.id)
            self._store.move_node(node.id, ROOT_FOLDER_ID)
            ctx.result.parked += 1

    def _mark_merged_folders_dirty(self, ctx: ReconcileContext) -> None:
        """Flag folders whose merged children differ from what was received."""
        timestamp = now_timestamp()
        for folder_id, received in ctx.received_children.items():
            local = [c.id for c in self._store.fetch_children(folder_id, include_deleted=False)]
            known = set(local)
            if local == [c for c in received if c in known]:
                continue
            folder = self._store.fetch_node(folder_id)
            if folder is not None and not folder.is_dirty:
                folder.modified_at = timestamp
                self._store.update_node(folder)
                logger.debug("Folder {} has local-only children, marking for upload", folder_id)

    def _purge_remote_tombstones(self, ctx: ReconcileContext) -> None:
        """Delete remote tombstones together with whatever is still below them.

        Runs after the whole merge, so children the batch moved elsewhere
        survive whatever the record order. Nodes bound to a live record of the
        batch but left below a deleted folder are moved to the root instead.
        """
        for node_id in ctx.remote_tombstones:
            doomed = [node_id]
            todo: deque[str] = deque([node_id])
            while todo:
                for child in self._store.fetch_children(todo.popleft()):
                    if child.id in ctx.linked_ids and not child.is_pending_deletion:
                        logger.warning(
                            "Node {} is still live but its folder {} was deleted, "
                            "moving it to the root",
                            child.id,
                            node_id,
                        )
                        self._store.move_node(child.id, ROOT_FOLDER_ID)
                        ctx.result.parked += 1
                        continue
                    doomed.append(child.id)
                    if child.is_folder:
                        todo.append(child.id)

            for doomed_id in doomed:
                ctx.index.entities_by_uuid.pop(doomed_id, None)
            self._store.delete_node(node_id)


def reconcile(
    received: Iterable[Syncable],
    mode: SyncMode,
    *,
    store: EntityStoreProtocol,
    crypter: CrypterProtocol,
) -> ReconcileResult:
    """Merge a received batch into the store, then apply the favorites list.

    Runs inside the caller's transaction; it neither commits nor rolls back.
    """
    records = list(received)
    if not records:
        return ReconcileResult()

    index = ReceivedBatchIndex.build(records, crypter=crypter, store=store)
    ctx = ReconcileContext(index=index, mode=mode)
    ctx.result.skipped += index.skipped

    result = TreeReconciler(store).merge(ctx)
    result.favorites = FavoritesReconciler(store).apply(index, mode)

    logger.info(
        "Reconciled {} records ({}): {} created, {} updated, {} deduplicated, {} moved, "
        "{} deleted, {} skipped",
        len(records),
        mode.value,
        result.created,
        result.updated,
        result.adopted,
        result.moved,
        result.deleted,
        result.skipped,
    )
    return result
