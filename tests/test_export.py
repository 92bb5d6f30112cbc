"""Tests for Markdown export."""

from pathlib import Path

import frontmatter

from codemarks.export import export_markdown
from codemarks.store.engine import BookmarkStore
from codemarks.store.persistence import StoreFile


def _store(tmp_path: Path) -> BookmarkStore:
    root = tmp_path / "shop"
    return BookmarkStore(StoreFile.for_workspace(root), workspace_root=root)


class TestExportMarkdown:
    def test_frontmatter(self, tmp_path: Path):
        store = _store(tmp_path)
        g = store.create_group("Checkout", query="how does checkout work?")
        parent = store.add_bookmark(g, "cart.py:10", "Entry", "Starts here", category="entry-point")
        store.add_bookmark(g, "cart.py:40-52", "Total", "Sums items", parent_id=parent)

        post = frontmatter.loads(export_markdown(store))
        assert post["project"] == "shop"
        assert post["groups"] == 1
        assert post["bookmarks"] == 2

    def test_body_follows_tree(self, tmp_path: Path):
        store = _store(tmp_path)
        g = store.create_group("Checkout", description="Payment path", query="how does checkout work?")
        parent = store.add_bookmark(g, "cart.py:10", "Entry", "Starts here", category="entry-point")
        store.add_bookmark(g, "cart.py:40-52", "Total", "Sums items", parent_id=parent)

        body = frontmatter.loads(export_markdown(store)).content
        assert body.startswith("# shop - MCP Bookmarks")
        assert "## Checkout" in body
        assert "Payment path" in body
        assert "> Query: how does checkout work?" in body
        assert "### 1. Entry" in body
        assert "**Category:** Entry Point" in body
        assert "#### 1. Total" in body
        assert "`cart.py:40-52`" in body
        assert body.index("### 1. Entry") < body.index("#### 1. Total")

    def test_empty_store(self, tmp_path: Path):
        post = frontmatter.loads(export_markdown(_store(tmp_path)))
        assert post["bookmarks"] == 0
        assert post.content.strip() == "# shop - MCP Bookmarks"
