"""Encode local nodes as Syncable records and decode received ones."""

from typing import Any

from bookmark_sync.errors import DecodeError
from bookmark_sync.models.node import BookmarkNode, ReceivedRecord, Syncable


class PlaintextCrypter:
    """Record codec that leaves titles and urls readable.

    Subclasses plug in a real cipher by overriding :meth:`encrypt_value` and
    :meth:`decrypt_value`; the record layout stays the same.
    """

    def encrypt_value(self, value: str) -> str:
        return value

    def decrypt_value(self, value: str) -> str:
        return value

    def encrypt(self, node: BookmarkNode, *, children: list[str] | None = None) -> Syncable:
        payload: dict[str, Any] = {"id": node.id}
        if node.is_pending_deletion:
            payload["deleted"] = ""
            return Syncable(payload)

        if node.title is not None:
            payload["title"] = self.encrypt_value(node.title)
        if node.is_folder:
            payload["folder"] = {"children": list(children or [])}
        else:
            page: dict[str, str] = {}
            if node.url is not None:
                page["url"] = self.encrypt_value(node.url)
            payload["page"] = page
        if node.modified_at is not None:
            payload["client_last_modified"] = node.modified_at
        return Syncable(payload)

    def decrypt(self, syncable: Syncable) -> ReceivedRecord:
        uuid = syncable.uuid
        if uuid is None:
            msg = f"Record has no id: {syncable.payload!r}"
            raise DecodeError(msg)

        if syncable.is_deleted:
            return ReceivedRecord(
                uuid=uuid,
                is_folder=syncable.is_folder,
                is_deleted=True,
                last_modified=syncable.last_modified,
            )

        title = self._decrypt_field(uuid, "title", syncable.payload.get("title"))
        url: str | None = None
        if not syncable.is_folder:
            page = syncable.payload.get("page") or {}
            if not isinstance(page, dict):
                msg = f"Record {uuid!r} has a malformed page: {page!r}"
                raise DecodeError(msg)
            url = self._decrypt_field(uuid, "url", page.get("url"))

        return ReceivedRecord(
            uuid=uuid,
            is_folder=syncable.is_folder,
            title=title,
            url=url,
            # First occurrence wins for repeated child ids.
            children=tuple(dict.fromkeys(syncable.children)),
            last_modified=syncable.last_modified,
        )

    def _decrypt_field(self, uuid: str, name: str, value: object) -> str | None:
        if value is None:
            return None
        if not isinstance(value, str):
            msg = f"Record {uuid!r} has a non-string {name}: {value!r}"
            raise DecodeError(msg)
        try:
            return self.decrypt_value(value)
        except (ValueError, UnicodeDecodeError) as e:
            msg = f"Cannot decrypt {name} of record {uuid!r}: {e}"
            raise DecodeError(msg) from e
