"""Render the local bookmark tree as an indented list."""

import io

from bookmark_sync.config import ROOT_FOLDER_ID
from bookmark_sync.models.node import BookmarkNode
from bookmark_sync.protocols import EntityStoreProtocol


def _format_line(node: BookmarkNode, *, show_ids: bool) -> str:
    label = node.title or "(untitled)"
    if node.is_folder:
        line = f"{label}/"
    else:
        line = f"{label} <{node.url}>" if node.url else label

    flags = []
    if node.is_favorite:
        flags.append("fav")
    if node.is_dirty:
        flags.append("modified")
    if node.is_pending_deletion:
        flags.append("deleted")
    if flags:
        line += f" [{', '.join(flags)}]"
    if show_ids:
        line += f"  id={node.id}"
    return line


def render_tree(
    store: EntityStoreProtocol,
    *,
    node_id: str = ROOT_FOLDER_ID,
    max_depth: int | None = None,
    include_deleted: bool = False,
    show_ids: bool = False,
) -> str:
    """Render a folder and its descendants as an indented bullet list.

    Args:
        store: The bookmark store.
        node_id: Folder to start from (the bookmarks root by default).
        max_depth: Max levels below the start folder to include (None = unlimited).
        include_deleted: Whether to show nodes pending deletion.
        show_ids: Append node ids to each line.

    Returns:
        The rendered tree, or an empty string if the start node does not exist.
    """
    start = store.fetch_node(node_id)
    if start is None:
        return ""

    out = io.StringIO()
    out.write(_format_line(start, show_ids=show_ids) + "\n")

    # Depth-first, children pushed in reverse so they pop in sort order.
    todo: list[tuple[BookmarkNode, int]] = []
    children = store.fetch_children(start.id, include_deleted=include_deleted)
    todo.extend((child, 1) for child in reversed(children))
    while todo:
        node, depth = todo.pop()
        indent = "    " * (depth - 1)
        out.write(f"{indent}- {_format_line(node, show_ids=show_ids)}\n")
        if not node.is_folder:
            continue

        children = store.fetch_children(node.id, include_deleted=include_deleted)
        if max_depth is not None and depth >= max_depth:
            if children:
                noun = "child" if len(children) == 1 else "children"
                out.write(f"{indent}    - ... ({len(children)} more {noun})\n")
            continue
        todo.extend((child, depth + 1) for child in reversed(children))

    return out.getvalue()
