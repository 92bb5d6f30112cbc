"""Configuration loading from environment variables and codemarks.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_CONFIG_FILENAME = "codemarks.toml"
_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class StoreConfig:
    """Where the bookmark store file lives and how it is loaded."""

    dir: str = ".vscode"
    file: str = "mcp-bookmarks.json"
    legacy_file: str | None = "ai-bookmarks.json"
    strict_load: bool = False


@dataclass
class CodemarksConfig:
    """Top-level codemarks configuration."""

    workspace_root: Path = field(default_factory=Path.cwd)
    store: StoreConfig = field(default_factory=StoreConfig)
    project_name: str | None = None
    log_level: str = "INFO"

    @property
    def store_path(self) -> Path:
        return self.workspace_root / self.store.dir / self.store.file


def _as_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def load_config(config_path: Path | None = None) -> CodemarksConfig:
    """Load configuration from environment variables and optional codemarks.toml.

    Priority: environment variables > codemarks.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.codemarks/
        for candidate in [
            Path.cwd() / _CONFIG_FILENAME,
            Path.home() / ".codemarks" / _CONFIG_FILENAME,
        ]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    store_data = file_data.get("store", {})
    workspace = os.getenv("CODEMARKS_WORKSPACE", file_data.get("workspace_root"))

    config = CodemarksConfig(
        workspace_root=Path(workspace).expanduser() if workspace else Path.cwd(),
        store=StoreConfig(
            dir=store_data.get("dir", ".vscode"),
            file=os.getenv("CODEMARKS_STORE_FILE", store_data.get("file", "mcp-bookmarks.json")),
            legacy_file=store_data.get("legacy_file", "ai-bookmarks.json") or None,
            strict_load=_as_bool(
                os.getenv("CODEMARKS_STRICT_LOAD", store_data.get("strict_load", False))
            ),
        ),
        project_name=file_data.get("project_name"),
        log_level=os.getenv("CODEMARKS_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
    return config
