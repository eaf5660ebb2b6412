"""Bookmark tree synchronization: merge remote change batches into a local store."""

from bookmark_sync.core.store.sqlite_store import SqliteBookmarkStore
from bookmark_sync.core.sync.cleaner import clean_sent_items
from bookmark_sync.core.sync.collector import collect_changes
from bookmark_sync.core.sync.crypter import PlaintextCrypter
from bookmark_sync.core.sync.metadata import SqliteSyncMetadataStore
from bookmark_sync.core.sync.provider import BookmarksSyncProvider
from bookmark_sync.core.sync.reconciler import reconcile
from bookmark_sync.models.node import BookmarkNode, Syncable, SyncMode

__all__ = [
    "BookmarkNode",
    "BookmarksSyncProvider",
    "PlaintextCrypter",
    "SqliteBookmarkStore",
    "SqliteSyncMetadataStore",
    "SyncMode",
    "Syncable",
    "clean_sent_items",
    "collect_changes",
    "reconcile",
]
