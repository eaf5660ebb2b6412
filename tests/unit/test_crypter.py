"""Tests for the record codec."""

import pytest

from bookmark_sync.core.sync.crypter import PlaintextCrypter
from bookmark_sync.errors import DecodeError
from bookmark_sync.models.node import BookmarkNode, Syncable


def test_encrypt_bookmark(crypter: PlaintextCrypter) -> None:
    node = BookmarkNode(
        id="a",
        is_folder=False,
        parent_id="bookmarks_root",
        title="Example",
        url="https://example.com",
        modified_at="2024-01-01T00:00:00+00:00",
    )
    assert crypter.encrypt(node).payload == {
        "id": "a",
        "title": "Example",
        "page": {"url": "https://example.com"},
        "client_last_modified": "2024-01-01T00:00:00+00:00",
    }


def test_encrypt_folder_lists_children(crypter: PlaintextCrypter) -> None:
    node = BookmarkNode(id="f", is_folder=True, parent_id=None, title="Work")
    payload = crypter.encrypt(node, children=["a", "b"]).payload
    assert payload == {"id": "f", "title": "Work", "folder": {"children": ["a", "b"]}}


def test_encrypt_tombstone_carries_only_id(crypter: PlaintextCrypter) -> None:
    node = BookmarkNode(
        id="a", is_folder=False, parent_id=None, title="x", url="x", is_pending_deletion=True
    )
    assert crypter.encrypt(node).payload == {"id": "a", "deleted": ""}


def test_decrypt_bookmark(crypter: PlaintextCrypter) -> None:
    record = crypter.decrypt(
        Syncable({"id": "a", "title": "T", "page": {"url": "u"}, "last_modified": "9"})
    )
    assert (record.uuid, record.title, record.url, record.is_folder) == ("a", "T", "u", False)
    assert record.last_modified == "9"


def test_decrypt_folder_drops_repeated_children(crypter: PlaintextCrypter) -> None:
    record = crypter.decrypt(Syncable({"id": "f", "folder": {"children": ["a", "b", "a"]}}))
    assert record.is_folder
    assert record.children == ("a", "b")
    assert record.url is None


def test_decrypt_tombstone(crypter: PlaintextCrypter) -> None:
    record = crypter.decrypt(Syncable({"id": "a", "deleted": ""}))
    assert record.is_deleted
    assert record.title is None


@pytest.mark.parametrize(
    "payload",
    [
        {"title": "no id"},
        {"id": "a", "title": 5},
        {"id": "a", "page": "https://example.com"},
        {"id": "a", "page": {"url": ["x"]}},
    ],
)
def test_decrypt_rejects_malformed_records(crypter: PlaintextCrypter, payload: dict) -> None:
    with pytest.raises(DecodeError):
        crypter.decrypt(Syncable(payload))


def test_subclass_hooks_are_applied() -> None:
    class UpperCrypter(PlaintextCrypter):
        def encrypt_value(self, value: str) -> str:
            return value.upper()

        def decrypt_value(self, value: str) -> str:
            return value.lower()

    crypter = UpperCrypter()
    node = BookmarkNode(id="a", is_folder=False, parent_id=None, title="Hi", url="x.com")
    syncable = crypter.encrypt(node)
    assert syncable.payload["title"] == "HI"
    assert crypter.decrypt(syncable).url == "x.com"
