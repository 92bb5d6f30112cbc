"""codemarks: hierarchical code bookmarks with line-drift tracking.

Layout on disk:
    <workspace>/
    └── .vscode/
        ├── mcp-bookmarks.json             # The Store: groups -> bookmarks
        └── mcp-bookmarks.json.corrupt-*   # Unreadable stores kept aside on load

A bookmark points at ``path:line`` or ``path:start-end`` and may be parented
to another bookmark of the same group, forming call-chain or
concept/detail trees.
"""
