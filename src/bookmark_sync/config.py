"""Configuration constants for bookmark-sync."""

from pathlib import Path

# Identifiers of the two folders every store is created with.
ROOT_FOLDER_ID: str = "bookmarks_root"
FAVORITES_FOLDER_ID: str = "favorites_root"

ROOT_FOLDER_IDS: frozenset[str] = frozenset({ROOT_FOLDER_ID, FAVORITES_FOLDER_ID})

# Name under which the last-sync timestamp is stored.
FEATURE_NAME: str = "bookmarks"

DATABASE_FILENAME: str = "bookmarks.db"

# Directory with data. First directory which is found is used.
DATA_DIRECTORIES: list[Path] = [
    Path("~/.local/share/bookmark-sync").expanduser(),
    Path("~/.bookmark-sync").expanduser(),
    Path("~/.config/bookmark-sync").expanduser(),
]


def resolve_data_directory() -> Path:
    """Return the first existing data directory, or the preferred default."""
    for candidate in DATA_DIRECTORIES:
        if candidate.is_dir():
            return candidate
    return DATA_DIRECTORIES[0]
