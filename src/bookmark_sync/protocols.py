"""Protocols for the collaborators of the sync engine."""

from collections.abc import Iterable
from contextlib import AbstractContextManager
from typing import Protocol, runtime_checkable

from bookmark_sync.models.node import BookmarkNode, ReceivedRecord, Syncable


@runtime_checkable
class EntityStoreProtocol(Protocol):
    """Protocol for the durable bookmark tree."""

    def transaction(self) -> AbstractContextManager[None]:
        """Run a block of operations atomically."""
        ...

    def fetch_node(self, node_id: str) -> BookmarkNode | None: ...

    def fetch_nodes(self, node_ids: Iterable[str]) -> list[BookmarkNode]: ...

    def fetch_children(
        self, folder_id: str, *, include_deleted: bool = True
    ) -> list[BookmarkNode]: ...

    def fetch_all_nodes(self) -> list[BookmarkNode]: ...

    def fetch_dirty_nodes(self) -> list[BookmarkNode]: ...

    def fetch_favorites(self) -> list[BookmarkNode]: ...

    def fetch_detached_nodes(self) -> list[BookmarkNode]: ...

    def fetch_descendant_ids(self, folder_id: str) -> list[str]: ...

    def create_node(
        self,
        node_id: str,
        *,
        is_folder: bool,
        parent_id: str | None,
        title: str | None = None,
        url: str | None = None,
        modified_at: str | None = None,
    ) -> BookmarkNode: ...

    def update_node(self, node: BookmarkNode) -> None: ...

    def move_node(self, node_id: str, parent_id: str | None) -> None: ...

    def detach_children(self, folder_id: str) -> list[str]: ...

    def rename_node(self, old_id: str, new_id: str) -> None: ...

    def delete_node(self, node_id: str) -> None: ...

    def clear_favorites(self) -> None: ...

    def mark_all_dirty(self, timestamp: str) -> int: ...


@runtime_checkable
class CrypterProtocol(Protocol):
    """Protocol for turning nodes into transmittable records and back."""

    def encrypt(self, node: BookmarkNode, *, children: list[str] | None = None) -> Syncable:
        """Encode a node (and, for folders, its ordered child ids)."""
        ...

    def decrypt(self, syncable: Syncable) -> ReceivedRecord:
        """Decode a record, raising DecodeError if it is unusable."""
        ...


@runtime_checkable
class TimestampTrackerProtocol(Protocol):
    """Protocol for the per-feature last-sync cursor."""

    def get(self, feature: str) -> str | None: ...

    def set(self, feature: str, timestamp: str | None) -> None: ...
