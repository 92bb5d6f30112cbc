"""JSON file persistence for the bookmark Store.

The whole aggregate is loaded and saved as one document. A missing file
yields an empty default Store. An unreadable file is copied aside and
replaced by an empty Store, unless ``strict_load`` is set.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import shutil
from datetime import datetime
from pathlib import Path

from codemarks.errors import StoreLoadError
from codemarks.models import Store

logger = logging.getLogger(__name__)

STORE_DIR = ".vscode"
STORE_FILE_NAME = "mcp-bookmarks.json"
LEGACY_FILE_NAME = "ai-bookmarks.json"


def create_default_store(project_name: str) -> Store:
    return Store(project_name=project_name)


class StoreFile:
    """Reads and writes the Store document at ``path``."""

    def __init__(
        self,
        path: Path,
        project_name: str | None = None,
        legacy_path: Path | None = None,
        strict_load: bool = False,
    ) -> None:
        self.path = path
        self.project_name = project_name or path.parent.parent.name
        self.legacy_path = legacy_path
        self.strict_load = strict_load

    @classmethod
    def for_workspace(
        cls,
        workspace_root: Path,
        store_dir: str = STORE_DIR,
        file_name: str = STORE_FILE_NAME,
        legacy_file_name: str | None = LEGACY_FILE_NAME,
        project_name: str | None = None,
        strict_load: bool = False,
    ) -> StoreFile:
        directory = workspace_root / store_dir
        return cls(
            directory / file_name,
            project_name=project_name or workspace_root.name,
            legacy_path=directory / legacy_file_name if legacy_file_name else None,
            strict_load=strict_load,
        )

    # ── Load ──────────────────────────────────────────────────

    def _migrate_legacy(self) -> None:
        """Rename the legacy store file if the current one does not exist yet."""
        if not self.legacy_path or self.path.exists() or not self.legacy_path.exists():
            return
        try:
            self.legacy_path.rename(self.path)
            logger.info("Migrated %s to %s", self.legacy_path.name, self.path.name)
        except OSError as e:
            logger.warning("Failed to migrate %s: %s", self.legacy_path, e)

    def load(self) -> Store:
        self._migrate_legacy()
        if not self.path.exists():
            return create_default_store(self.project_name)

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return Store.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            if self.strict_load:
                raise StoreLoadError(f"Failed to load bookmark store {self.path}: {e}") from e
            logger.error("Failed to load bookmark store %s: %s", self.path, e)
            self._set_aside()
            return create_default_store(self.project_name)

    def _set_aside(self) -> None:
        """Keep a copy of an unreadable store file so the next save cannot clobber it."""
        ts = datetime.now().strftime("%Y%m%dT%H%M%S")
        dest = self.path.with_name(f"{self.path.name}.corrupt-{ts}")
        try:
            shutil.copy2(self.path, dest)
            logger.warning("Unreadable bookmark store copied to %s", dest)
        except OSError as e:
            logger.warning("Could not copy unreadable store %s: %s", self.path, e)

    # ── Save ──────────────────────────────────────────────────

    def save(self, store: Store) -> bool:
        """Write ``store`` via a temp file and rename. Failures are logged, not raised."""
        tmp = self.path.with_name(f"{self.path.name}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(
                json.dumps(store.to_dict(), indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
            os.replace(tmp, self.path)
            return True
        except OSError as e:
            logger.error("Failed to save bookmark store %s: %s", self.path, e)
            with contextlib.suppress(OSError):
                tmp.unlink()
            return False

    def mtime(self) -> float | None:
        try:
            return self.path.stat().st_mtime
        except OSError:
            return None
