"""Content matching used to deduplicate items on the first sync."""

from collections.abc import Iterable

from bookmark_sync.models.node import BookmarkNode, ReceivedRecord


def is_content_match(node: BookmarkNode, record: ReceivedRecord) -> bool:
    """Return True if a local node holds the same item as a received record.

    Bookmarks match on the exact url (case-sensitive), folders on the exact
    title. Tombstones on either side never match.
    """
    if record.is_deleted or node.is_pending_deletion:
        return False
    if node.is_folder != record.is_folder:
        return False
    if record.is_folder:
        return record.title is not None and node.title == record.title
    return record.url is not None and node.url == record.url


def pick_duplicate(
    candidates: Iterable[BookmarkNode], record: ReceivedRecord
) -> BookmarkNode | None:
    """Pick the earliest-created candidate that matches ``record``.

    Candidates created at the same instant keep their input order.
    """
    best: BookmarkNode | None = None
    for node in candidates:
        if not is_content_match(node, record):
            continue
        if best is None or node.created_at < best.created_at:
            best = node
    return best
