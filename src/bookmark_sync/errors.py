"""Exception hierarchy for bookmark-sync."""


class BookmarkSyncError(Exception):
    """Base class for all bookmark-sync errors."""


class DecodeError(BookmarkSyncError):
    """A received record cannot be turned into usable node fields."""


class StoreError(BookmarkSyncError):
    """The entity store failed to read or write."""


class NodeNotFoundError(BookmarkSyncError):
    """A local edit referenced a node that does not exist."""


class SyncCycleError(BookmarkSyncError):
    """A sync cycle failed and was rolled back."""
