"""Domain models for the bookmark sync engine."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class SyncMode(Enum):
    """How received records are merged into the local tree.

    DEDUPLICATE is used for the first sync of an account: local items that
    predate the account are matched against remote ones by content.
    OVERWRITE is used for every later sync: the remote side is authoritative.
    """

    DEDUPLICATE = "deduplicate"
    OVERWRITE = "overwrite"


@dataclass
class BookmarkNode:
    """A single folder or bookmark in the local tree."""

    id: str
    is_folder: bool
    parent_id: str | None
    title: str | None = None
    url: str | None = None
    sort_order: int = 0
    is_favorite: bool = False
    favorite_order: int | None = None
    is_pending_deletion: bool = False
    modified_at: str | None = None
    created_at: float = 0.0

    @property
    def is_dirty(self) -> bool:
        return self.modified_at is not None


@dataclass(frozen=True)
class Syncable:
    """A transmittable record for one node, as carried in a sync batch.

    The payload mirrors the JSON object exchanged with the sync server::

        {"id": "...", "title": "...", "page": {"url": "..."},
         "folder": {"children": [...]}, "deleted": "",
         "client_last_modified": "...", "last_modified": "..."}
    """

    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def uuid(self) -> str | None:
        value = self.payload.get("id")
        return value if isinstance(value, str) and value else None

    @property
    def is_folder(self) -> bool:
        return "folder" in self.payload

    @property
    def is_deleted(self) -> bool:
        return "deleted" in self.payload

    @property
    def children(self) -> list[str]:
        folder = self.payload.get("folder")
        if not isinstance(folder, dict):
            return []
        return [c for c in folder.get("children", []) if isinstance(c, str)]

    @property
    def last_modified(self) -> str | None:
        return self.payload.get("last_modified")


@dataclass(frozen=True)
class ReceivedRecord:
    """A Syncable decoded into plain node fields."""

    uuid: str
    is_folder: bool
    is_deleted: bool = False
    title: str | None = None
    url: str | None = None
    children: tuple[str, ...] = ()
    last_modified: str | None = None


def now_timestamp() -> str:
    """Current UTC time as an ISO 8601 string, the format used for modified_at."""
    return datetime.now(UTC).isoformat()
