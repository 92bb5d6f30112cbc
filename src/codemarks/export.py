"""Render the bookmark store as a Markdown document.

The document starts with YAML frontmatter summarizing the store, so the
export can be read back as structured metadata with python-frontmatter.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import frontmatter

from codemarks.models import CATEGORY_DISPLAY_NAMES, BookmarkNode

if TYPE_CHECKING:
    from codemarks.store.engine import BookmarkStore


def _render_node(node: BookmarkNode, depth: int, lines: list[str]) -> None:
    bm = node.bookmark
    heading = "#" * min(3 + depth, 6)
    lines.append(f"{heading} {bm.order}. {bm.title}")
    lines.append("")
    lines.append(f"**Location:** `{bm.location}`")
    if bm.category:
        lines.append(f"**Category:** {CATEGORY_DISPLAY_NAMES.get(bm.category, bm.category)}")
    lines.append("")
    if bm.description:
        lines.append(bm.description)
        lines.append("")
    for child in node.children:
        _render_node(child, depth + 1, lines)


def export_markdown(engine: BookmarkStore) -> str:
    store = engine.store
    lines = [f"# {store.project_name} - MCP Bookmarks", ""]

    for group in store.groups:
        lines.append(f"## {group.name}")
        if group.description:
            lines.append("")
            lines.append(group.description)
        if group.query:
            lines.append("")
            lines.append(f"> Query: {group.query}")
        lines.append("")
        for tree in engine.get_group_bookmark_trees(group.id):
            _render_node(tree, 0, lines)

    post = frontmatter.Post(
        "\n".join(lines).rstrip() + "\n",
        project=store.project_name,
        version=store.version,
        groups=len(store.groups),
        bookmarks=store.bookmark_count(),
    )
    return frontmatter.dumps(post) + "\n"
