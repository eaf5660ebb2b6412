"""Per-feature last-sync timestamps, stored next to the bookmarks."""

from bookmark_sync.core.store.sqlite_store import SqliteBookmarkStore


class SqliteSyncMetadataStore:
    """Keeps the server timestamp of the last successful sync per feature."""

    def __init__(self, store: SqliteBookmarkStore) -> None:
        self._store = store

    def register_feature(self, feature: str) -> None:
        with self._store.transaction():
            self._store.connection.execute(
                "INSERT OR IGNORE INTO sync_features (name, last_modified) VALUES (?, NULL)",
                (feature,),
            )

    def get(self, feature: str) -> str | None:
        row = self._store.connection.execute(
            "SELECT last_modified FROM sync_features WHERE name = ?", (feature,)
        ).fetchone()
        return row[0] if row else None

    def set(self, feature: str, timestamp: str | None) -> None:
        with self._store.transaction():
            self._store.connection.execute(
                """INSERT INTO sync_features (name, last_modified) VALUES (?, ?)
                   ON CONFLICT(name) DO UPDATE SET last_modified = excluded.last_modified""",
                (feature, timestamp),
            )
