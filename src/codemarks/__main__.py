"""Entry point: python -m codemarks [groups|tree|export]

- "groups":          List groups with bookmark counts (default)
- "tree <group-id>": Print a group's bookmark forest
- "export":          Print the whole store as Markdown
"""

from __future__ import annotations

import logging
import sys

from codemarks.config import load_config
from codemarks.store.engine import BookmarkStore


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _print_tree(node, depth: int = 0) -> None:
    bm = node.bookmark
    print(f"{'  ' * depth}{bm.order}. {bm.title}  ({bm.location})  [{bm.id}]")
    for child in node.children:
        _print_tree(child, depth + 1)


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else "groups"

    config = load_config()
    _setup_logging(config.log_level)
    store = BookmarkStore.from_config(config)

    if cmd == "groups":
        for group in store.list_groups():
            print(f"{group.id}  {group.name}  ({len(group.bookmarks)} bookmarks, {group.created_by})")
    elif cmd == "tree" and len(sys.argv) > 2:
        if not store.get_group(sys.argv[2]):
            print(f"Group not found: {sys.argv[2]}", file=sys.stderr)
            sys.exit(1)
        for tree in store.get_group_bookmark_trees(sys.argv[2]):
            _print_tree(tree)
    elif cmd == "export":
        from codemarks.export import export_markdown

        print(export_markdown(store), end="")
    else:
        print("Usage: python -m codemarks [groups|tree <group-id>|export]")
        print("  groups  - List bookmark groups (default)")
        print("  tree    - Print the bookmark tree of one group")
        print("  export  - Print all bookmarks as Markdown")
        sys.exit(1)


if __name__ == "__main__":
    main()
