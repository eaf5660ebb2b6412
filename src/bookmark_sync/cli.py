"""CLI for bookmark-sync: edit the local tree and run sync cycles from JSON files."""

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Any

import typer
from loguru import logger

from bookmark_sync.config import (
    DATABASE_FILENAME,
    FEATURE_NAME,
    ROOT_FOLDER_ID,
    resolve_data_directory,
)
from bookmark_sync.core.bookmarks import editing
from bookmark_sync.core.database.schema import get_schema_version
from bookmark_sync.core.store.sqlite_store import SqliteBookmarkStore
from bookmark_sync.core.sync.metadata import SqliteSyncMetadataStore
from bookmark_sync.core.sync.provider import BookmarksSyncProvider
from bookmark_sync.core.tree.render import render_tree
from bookmark_sync.errors import BookmarkSyncError
from bookmark_sync.logging_config import configure_logging
from bookmark_sync.models.node import Syncable

app = typer.Typer(help="Bookmark sync: keep a local bookmark tree in step with a sync server.")

DataDirOption = Annotated[
    Path | None,
    typer.Option("--data-dir", "-d", help="Directory holding the bookmarks database"),
]
ParentOption = Annotated[str, typer.Option("--folder", "-f", help="Parent folder id")]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log warnings and errors"),
) -> None:
    configure_logging(verbose=verbose, quiet=quiet)


def _db_path(data_dir: Path | None) -> Path:
    return (data_dir or resolve_data_directory()) / DATABASE_FILENAME


@contextmanager
def _open_store(data_dir: Path | None) -> Iterator[SqliteBookmarkStore]:
    """Open the bookmarks database, exiting if it doesn't exist."""
    db_path = _db_path(data_dir)
    if not db_path.exists():
        logger.error("Bookmarks database not found: {}. Run 'init' first.", db_path)
        raise typer.Exit(1)
    store = SqliteBookmarkStore.open(db_path)
    try:
        yield store
    except (BookmarkSyncError, ValueError) as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e
    finally:
        store.close()


def _make_provider(store: SqliteBookmarkStore) -> BookmarksSyncProvider:
    metadata = SqliteSyncMetadataStore(store)
    metadata.register_feature(FEATURE_NAME)
    return BookmarksSyncProvider(store, metadata)


def _read_records(path: Path) -> tuple[list[Syncable], str | None]:
    """Read records from a JSON file.

    Accepts a plain list of records, ``{"entries": [...], "last_modified": ...}``,
    or the same object nested under a ``"bookmarks"`` key.
    """
    data: Any = json.loads(path.read_text(encoding="utf-8"))
    timestamp: str | None = None
    if isinstance(data, dict):
        data = data.get("bookmarks", data)
        timestamp = data.get("last_modified")
        data = data.get("entries", [])
    if not isinstance(data, list):
        msg = f"{path}: expected a list of records"
        raise ValueError(msg)
    return [Syncable(entry) for entry in data if isinstance(entry, dict)], timestamp


@app.command()
def init(data_dir: DataDirOption = None) -> None:
    """Create an empty bookmarks database."""
    db_path = _db_path(data_dir)
    SqliteBookmarkStore.open(db_path).close()
    typer.echo(f"Bookmarks database ready at {db_path}")


@app.command()
def add(
    url: str = typer.Argument(..., help="Bookmark url"),
    title: Annotated[str | None, typer.Option("--title", "-t", help="Bookmark title")] = None,
    folder: ParentOption = ROOT_FOLDER_ID,
    data_dir: DataDirOption = None,
) -> None:
    """Add a bookmark."""
    with _open_store(data_dir) as store:
        node = editing.add_bookmark(store, url=url, title=title, parent_id=folder)
        typer.echo(node.id)


@app.command()
def mkdir(
    title: str = typer.Argument(..., help="Folder title"),
    folder: ParentOption = ROOT_FOLDER_ID,
    data_dir: DataDirOption = None,
) -> None:
    """Add a folder."""
    with _open_store(data_dir) as store:
        node = editing.add_folder(store, title=title, parent_id=folder)
        typer.echo(node.id)


@app.command()
def rm(
    node_id: str = typer.Argument(..., help="Node id"),
    data_dir: DataDirOption = None,
) -> None:
    """Delete a bookmark or folder (propagated on the next sync)."""
    with _open_store(data_dir) as store:
        ids = editing.delete_bookmark(store, node_id)
        typer.echo(f"Marked {len(ids)} nodes for deletion")


@app.command()
def mv(
    node_id: str = typer.Argument(..., help="Node id"),
    folder: str = typer.Argument(..., help="Destination folder id"),
    data_dir: DataDirOption = None,
) -> None:
    """Move a bookmark or folder into another folder."""
    with _open_store(data_dir) as store:
        editing.move_bookmark(store, node_id, parent_id=folder)


@app.command()
def fav(
    node_id: str = typer.Argument(..., help="Bookmark id"),
    data_dir: DataDirOption = None,
) -> None:
    """Add a bookmark to the favorites."""
    with _open_store(data_dir) as store:
        editing.add_favorite(store, node_id)


@app.command()
def unfav(
    node_id: str = typer.Argument(..., help="Bookmark id"),
    data_dir: DataDirOption = None,
) -> None:
    """Remove a bookmark from the favorites."""
    with _open_store(data_dir) as store:
        editing.remove_favorite(store, node_id)


@app.command()
def tree(
    folder: Annotated[
        str, typer.Option("--folder", "-f", help="Folder to start from")
    ] = ROOT_FOLDER_ID,
    max_depth: Annotated[
        int | None,
        typer.Option("--max-depth", "-m", help="Max depth levels to render"),
    ] = None,
    show_deleted: bool = typer.Option(False, "--deleted", help="Show nodes pending deletion"),
    show_ids: bool = typer.Option(False, "--ids", help="Show node ids"),
    data_dir: DataDirOption = None,
) -> None:
    """Print the bookmark tree."""
    with _open_store(data_dir) as store:
        text = render_tree(
            store,
            node_id=folder,
            max_depth=max_depth,
            include_deleted=show_deleted,
            show_ids=show_ids,
        )
        if not text:
            typer.echo(f"Folder '{folder}' not found.")
            raise typer.Exit(1)
        typer.echo(text, nl=False)


@app.command()
def changes(
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write records to this file instead of stdout"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Print the records that the next sync would upload, as JSON."""
    with _open_store(data_dir) as store:
        records = _make_provider(store).fetch_changed_objects()
        text = json.dumps([r.payload for r in records], indent=2)
        if output is None:
            typer.echo(text)
        else:
            output.write_text(text + "\n", encoding="utf-8")
            typer.echo(f"Wrote {len(records)} records to {output}")


@app.command()
def prepare(data_dir: DataDirOption = None) -> None:
    """Reset the sync cursor and flag every node for upload."""
    with _open_store(data_dir) as store:
        _make_provider(store).prepare_for_first_sync()


@app.command()
def apply(
    batch: Path = typer.Argument(..., help="JSON file with the received records"),
    sent: Annotated[
        Path | None,
        typer.Option("--sent", "-s", help="JSON file with the records uploaded this cycle"),
    ] = None,
    initial: bool = typer.Option(
        False, "--initial", "-i", help="First sync: deduplicate against local items"
    ),
    timestamp: Annotated[
        str | None,
        typer.Option("--timestamp", "-t", help="Server timestamp of the response"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Apply a server response to the local tree."""
    for path in (batch, sent):
        if path is not None and not path.exists():
            logger.error("Record file not found: {}", path)
            raise typer.Exit(1)

    with _open_store(data_dir) as store:
        received, batch_timestamp = _read_records(batch)
        sent_records = _read_records(sent)[0] if sent else []
        provider = _make_provider(store)
        cursor = timestamp or batch_timestamp
        if initial:
            result = provider.handle_initial_sync_response(received, cursor)
        else:
            result = provider.handle_sync_response(sent_records, received, cursor)
        typer.echo(
            f"Applied {len(received)} records: {result.created} created, "
            f"{result.updated} updated, {result.adopted} deduplicated, "
            f"{result.moved} moved, {result.deleted} deleted"
        )


@app.command()
def status(data_dir: DataDirOption = None) -> None:
    """Show pending changes and the last sync timestamp."""
    with _open_store(data_dir) as store:
        provider = _make_provider(store)
        dirty = store.fetch_dirty_nodes()
        pending = sum(1 for n in dirty if n.is_pending_deletion)
        typer.echo(f"Schema version: {get_schema_version(store.connection)}")
        typer.echo(f"Last sync: {provider.last_sync_timestamp or 'never'}")
        typer.echo(f"Pending changes: {len(dirty)} ({pending} deletions)")
