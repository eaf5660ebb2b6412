"""Run whole bookmark sync cycles against the local store."""

import threading
from collections.abc import Callable, Iterable

from loguru import logger

from bookmark_sync.config import FEATURE_NAME
from bookmark_sync.core.sync.cleaner import clean_sent_items
from bookmark_sync.core.sync.collector import collect_changes
from bookmark_sync.core.sync.crypter import PlaintextCrypter
from bookmark_sync.core.sync.reconciler import ReconcileResult, reconcile
from bookmark_sync.errors import StoreError, SyncCycleError
from bookmark_sync.models.node import Syncable, SyncMode, now_timestamp
from bookmark_sync.protocols import (
    CrypterProtocol,
    EntityStoreProtocol,
    TimestampTrackerProtocol,
)

_FEATURE_LOCKS: dict[str, threading.Lock] = {}
_FEATURE_LOCKS_GUARD = threading.Lock()


def _feature_lock(feature: str) -> threading.Lock:
    with _FEATURE_LOCKS_GUARD:
        return _FEATURE_LOCKS.setdefault(feature, threading.Lock())


class BookmarksSyncProvider:
    """Bookmarks side of a sync cycle.

    The transport calls :meth:`fetch_changed_objects` before uploading and one
    of the ``handle_*`` methods with the server's response. Each response is
    applied under a per-feature lock inside a single store transaction: it
    either commits as a whole, or rolls back and raises SyncCycleError, in
    which case the last-sync timestamp is left alone so the cycle can be
    retried.
    """

    def __init__(
        self,
        store: EntityStoreProtocol,
        metadata: TimestampTrackerProtocol,
        *,
        crypter: CrypterProtocol | None = None,
        feature: str = FEATURE_NAME,
        on_synced: Callable[[], None] | None = None,
    ) -> None:
        self._store = store
        self._metadata = metadata
        self._crypter = crypter or PlaintextCrypter()
        self.feature = feature
        self._on_synced = on_synced
        self._cycle_lock = _feature_lock(feature)

    @property
    def last_sync_timestamp(self) -> str | None:
        return self._metadata.get(self.feature)

    @last_sync_timestamp.setter
    def last_sync_timestamp(self, value: str | None) -> None:
        self._metadata.set(self.feature, value)

    def prepare_for_first_sync(self) -> None:
        """Forget the sync cursor and flag every node for upload."""
        with self._cycle_lock:
            self.last_sync_timestamp = None
            with self._store.transaction():
                count = self._store.mark_all_dirty(now_timestamp())
        logger.info("Prepared {} nodes for first sync", count)

    def fetch_changed_objects(self) -> list[Syncable]:
        with self._cycle_lock, self._store.transaction():
            return collect_changes(self._store, self._crypter)

    def handle_initial_sync_response(
        self, received: Iterable[Syncable], timestamp: str | None
    ) -> ReconcileResult:
        return self._run_cycle([], received, SyncMode.DEDUPLICATE, timestamp)

    def handle_sync_response(
        self,
        sent: Iterable[Syncable],
        received: Iterable[Syncable],
        timestamp: str | None,
    ) -> ReconcileResult:
        return self._run_cycle(sent, received, SyncMode.OVERWRITE, timestamp)

    def _run_cycle(
        self,
        sent: Iterable[Syncable],
        received: Iterable[Syncable],
        mode: SyncMode,
        timestamp: str | None,
    ) -> ReconcileResult:
        with self._cycle_lock:
            try:
                with self._store.transaction():
                    stats = clean_sent_items(self._store, sent)
                    result = reconcile(
                        received, mode, store=self._store, crypter=self._crypter
                    )
            except StoreError as e:
                logger.error("Sync cycle for {} rolled back: {}", self.feature, e)
                msg = f"Sync cycle for {self.feature!r} failed: {e}"
                raise SyncCycleError(msg) from e

            if timestamp is not None:
                self.last_sync_timestamp = timestamp

        logger.info(
            "Sync cycle for {} committed: {} sent items cleaned, {} purged",
            self.feature,
            stats.cleaned,
            stats.purged,
        )
        if timestamp is not None and self._on_synced is not None:
            self._on_synced()
        return result
