"""Hierarchical bookmark store engine.

Bookmarks live in flat per-group lists (the persisted shape). An in-memory
index, built once at load and updated incrementally on every mutation,
maps bookmark ids to their owning group and each group's parent ids to
child ids, so lookups and descendant walks avoid full scans.

Every mutating call validates first, then commits: the Store is saved
synchronously and one change event is fired.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Literal

from codemarks.errors import LocationParseError
from codemarks.events import ChangeEvent, ChangeNotifier, Listener
from codemarks.location import (
    adjust_location,
    format_location,
    locations_overlap,
    normalize_path,
    parse_location,
)
from codemarks.models import (
    CATEGORIES,
    UNSET,
    Bookmark,
    BookmarkNode,
    BookmarkRef,
    Category,
    CreatedBy,
    Group,
    Store,
    UpdateResult,
)
from codemarks.store.drift import ContentFetcher, Validity, compare_snapshot
from codemarks.store.persistence import StoreFile

if TYPE_CHECKING:
    from codemarks.config import CodemarksConfig

logger = logging.getLogger(__name__)

Direction = Literal["up", "down"]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def _by_order(bookmarks: Iterable[Bookmark]) -> list[Bookmark]:
    # stable: equal orders keep insertion order
    return sorted(bookmarks, key=lambda b: b.order)


class BookmarkStore:
    """Owns the Store aggregate and every operation that reads or mutates it."""

    def __init__(
        self,
        storage: StoreFile,
        *,
        workspace_root: Path | None = None,
        clock: Callable[[], datetime] = _utc_now,
        id_factory: Callable[[], str] = _new_id,
        notifier: ChangeNotifier | None = None,
    ) -> None:
        self.storage = storage
        self.workspace_root = workspace_root
        self._clock = clock
        self._new_id = id_factory
        self.notifier = notifier or ChangeNotifier()
        self._refs: dict[str, BookmarkRef] = {}
        self._groups: dict[str, Group] = {}
        self._children: dict[str, dict[str | None, list[str]]] = {}
        self._seen_mtime: float | None = None
        self._disposed = False
        self.store = self._load()

    @classmethod
    def from_config(cls, config: CodemarksConfig, **kwargs: Any) -> BookmarkStore:
        storage = StoreFile.for_workspace(
            config.workspace_root,
            store_dir=config.store.dir,
            file_name=config.store.file,
            legacy_file_name=config.store.legacy_file,
            project_name=config.project_name,
            strict_load=config.store.strict_load,
        )
        return cls(storage, workspace_root=config.workspace_root, **kwargs)

    # ── Lifecycle ─────────────────────────────────────────────

    def _load(self) -> Store:
        store = self.storage.load()
        self._seen_mtime = self.storage.mtime()
        self._build_index(store)
        return store

    def reload(self) -> None:
        """Replace in-memory state with the file's current content."""
        self.store = self._load()
        logger.info("Reloaded bookmark store from %s", self.storage.path)
        self._fire("reloaded")

    def reload_if_changed(self) -> bool:
        """Reload if the file was written by someone else since we last saw it."""
        if self.storage.mtime() == self._seen_mtime:
            return False
        self.reload()
        return True

    def on_change(self, listener: Listener) -> Callable[[], None]:
        return self.notifier.subscribe(listener)

    def dispose(self) -> None:
        self._disposed = True
        self.notifier.dispose()

    def _now(self) -> str:
        ts = self._clock().astimezone(timezone.utc)
        return ts.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def _fire(self, kind: str, *ids: str) -> None:
        if not self._disposed:
            self.notifier.fire(ChangeEvent(kind, ids))

    def _commit(self, kind: str, *ids: str) -> None:
        """Persist synchronously, then notify."""
        if self.storage.save(self.store):
            self._seen_mtime = self.storage.mtime()
        self._fire(kind, *ids)

    # ── Index ─────────────────────────────────────────────────

    def _build_index(self, store: Store) -> None:
        """Index every bookmark, repairing dangling parents and cycles."""
        self._refs.clear()
        self._groups.clear()
        self._children.clear()
        for group in store.groups:
            self._groups[group.id] = group
            self._children[group.id] = {}
            for bm in group.bookmarks:
                self._refs[bm.id] = BookmarkRef(bm, group)

        for group in store.groups:
            ids = {bm.id for bm in group.bookmarks}
            for bm in group.bookmarks:
                if bm.parent_id is not None and bm.parent_id not in ids:
                    logger.warning(
                        "Bookmark %s has unknown parent %s, moving to top level",
                        bm.id,
                        bm.parent_id,
                    )
                    bm.parent_id = None
                self._children[group.id].setdefault(bm.parent_id, []).append(bm.id)

            # anything not reachable from a top-level bookmark sits on a cycle
            reachable = {bm.id for bm in self._descendants(group.id, None)}
            for bm in group.bookmarks:
                if bm.id not in reachable:
                    logger.warning("Bookmark %s is part of a parent cycle, moving to top level", bm.id)
                    self._unlink(group.id, bm)
                    bm.parent_id = None
                    self._link(group.id, bm)
                    reachable.update(d.id for d in self._descendants(group.id, bm.id))
                    reachable.add(bm.id)

    def _link(self, group_id: str, bm: Bookmark) -> None:
        self._children[group_id].setdefault(bm.parent_id, []).append(bm.id)

    def _unlink(self, group_id: str, bm: Bookmark) -> None:
        siblings = self._children[group_id].get(bm.parent_id)
        if siblings and bm.id in siblings:
            siblings.remove(bm.id)

    def _child_ids(self, group_id: str, parent_id: str | None) -> list[str]:
        return self._children.get(group_id, {}).get(parent_id, [])

    def _siblings(self, group_id: str, parent_id: str | None) -> list[Bookmark]:
        return [self._refs[i].bookmark for i in self._child_ids(group_id, parent_id)]

    def _descendants(self, group_id: str, bookmark_id: str | None) -> list[Bookmark]:
        """Pre-order walk: each child is followed immediately by its own descendants."""
        result: list[Bookmark] = []
        seen: set[str] = set()
        stack = list(reversed(self._child_ids(group_id, bookmark_id)))
        while stack:
            child_id = stack.pop()
            if child_id in seen:
                continue
            seen.add(child_id)
            result.append(self._refs[child_id].bookmark)
            stack.extend(reversed(self._child_ids(group_id, child_id)))
        return result

    def _next_order(self, group_id: str, parent_id: str | None, exclude: str | None = None) -> int:
        orders = [b.order for b in self._siblings(group_id, parent_id) if b.id != exclude]
        return max(orders) + 1 if orders else 1

    def _normalize_location(self, location: str) -> str:
        root = str(self.workspace_root) if self.workspace_root else None
        return format_location(parse_location(normalize_path(location, root)))

    def _normalize_file_path(self, file_path: str) -> str:
        root = str(self.workspace_root) if self.workspace_root else None
        return normalize_path(file_path, root)

    @staticmethod
    def _require_category(category: str | None) -> None:
        if category is not None and category not in CATEGORIES:
            raise ValueError(f"Invalid category: {category}")

    # ── Groups ────────────────────────────────────────────────

    def create_group(
        self,
        name: str,
        description: str | None = None,
        query: str | None = None,
        created_by: CreatedBy = "ai",
    ) -> str:
        now = self._now()
        group = Group(
            id=self._new_id(),
            name=name,
            description=description,
            query=query,
            created_at=now,
            updated_at=now,
            created_by=created_by,
        )
        self.store.groups.append(group)
        self._groups[group.id] = group
        self._children[group.id] = {}
        self._commit("group_created", group.id)
        return group.id

    def get_group(self, group_id: str) -> Group | None:
        return self._groups.get(group_id)

    def list_groups(self, created_by: CreatedBy | None = None) -> list[Group]:
        if created_by:
            return [g for g in self.store.groups if g.created_by == created_by]
        return list(self.store.groups)

    def update_group(
        self,
        group_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> bool:
        group = self._groups.get(group_id)
        if not group:
            return False
        if name is not None:
            group.name = name
        if description is not None:
            group.description = description
        group.updated_at = self._now()
        self._commit("group_updated", group_id)
        return True

    def remove_group(self, group_id: str) -> bool:
        """Delete a group and every bookmark it owns."""
        group = self._groups.pop(group_id, None)
        if not group:
            return False
        self.store.groups = [g for g in self.store.groups if g is not group]
        for bm in group.bookmarks:
            self._refs.pop(bm.id, None)
        self._children.pop(group_id, None)
        self._commit("group_removed", group_id)
        return True

    def clear_all(self) -> tuple[int, int]:
        """Remove every group and bookmark. Returns (groups, bookmarks) removed."""
        groups_removed = len(self.store.groups)
        bookmarks_removed = self.store.bookmark_count()
        self.store.groups = []
        self._build_index(self.store)
        self._commit("cleared")
        logger.info("Cleared %d groups, %d bookmarks", groups_removed, bookmarks_removed)
        return groups_removed, bookmarks_removed

    # ── Bookmark creation ─────────────────────────────────────

    def _insert(
        self,
        group: Group,
        location: str,
        title: str,
        description: str,
        parent_id: str | None,
        order: int | None,
        category: Category | None,
        code_snapshot: str | None,
    ) -> Bookmark:
        self._require_category(category)
        bm = Bookmark(
            id=self._new_id(),
            parent_id=parent_id,
            order=order if order is not None else self._next_order(group.id, parent_id),
            location=self._normalize_location(location),
            title=title,
            description=description,
            category=category,
            code_snapshot=code_snapshot,
        )
        group.bookmarks.append(bm)
        self._refs[bm.id] = BookmarkRef(bm, group)
        self._link(group.id, bm)
        return bm

    def add_bookmark(
        self,
        group_id: str,
        location: str,
        title: str,
        description: str,
        *,
        parent_id: str | None = None,
        order: int | None = None,
        category: Category | None = None,
        code_snapshot: str | None = None,
    ) -> str | None:
        """Add a bookmark. Returns its id, or None if the group or parent is unknown."""
        group = self._groups.get(group_id)
        if not group:
            return None
        if parent_id and self._group_of(parent_id) is not group:
            return None

        bm = self._insert(
            group, location, title, description, parent_id or None, order, category, code_snapshot
        )
        group.updated_at = self._now()
        self._commit("bookmark_added", bm.id)
        return bm.id

    def add_child_bookmark(
        self,
        parent_bookmark_id: str,
        location: str,
        title: str,
        description: str,
        *,
        order: int | None = None,
        category: Category | None = None,
        code_snapshot: str | None = None,
    ) -> str | None:
        ref = self._refs.get(parent_bookmark_id)
        if not ref:
            return None
        return self.add_bookmark(
            ref.group.id,
            location,
            title,
            description,
            parent_id=parent_bookmark_id,
            order=order,
            category=category,
            code_snapshot=code_snapshot,
        )

    def batch_add_bookmarks(
        self,
        group_id: str,
        items: Iterable[Mapping[str, Any]],
        parent_id: str | None = None,
    ) -> list[str] | None:
        """Add several bookmarks under one parent with a single save.

        Each item carries ``location``, ``title``, ``description`` and
        optionally ``order``, ``category``, ``code_snapshot``.
        """
        group = self._groups.get(group_id)
        if not group:
            return None
        if parent_id and self._group_of(parent_id) is not group:
            return None

        rows = []
        for i, item in enumerate(items):
            missing = [k for k in ("location", "title", "description") if k not in item]
            if missing:
                raise ValueError(f"Batch item {i} is missing {', '.join(missing)}")
            self._require_category(item.get("category"))
            parse_location(item["location"])
            rows.append(item)

        ids = [
            self._insert(
                group,
                item["location"],
                item["title"],
                item["description"],
                parent_id or None,
                item.get("order"),
                item.get("category"),
                item.get("code_snapshot"),
            ).id
            for item in rows
        ]
        if ids:
            group.updated_at = self._now()
            self._commit("bookmarks_added", *ids)
        return ids

    # ── Queries ───────────────────────────────────────────────

    def _group_of(self, bookmark_id: str) -> Group | None:
        ref = self._refs.get(bookmark_id)
        return ref.group if ref else None

    def get_bookmark(self, bookmark_id: str) -> BookmarkRef | None:
        return self._refs.get(bookmark_id)

    def list_bookmarks(
        self,
        *,
        group_id: str | None = None,
        parent_id: str | None = None,
        include_descendants: bool = False,
        top_level_only: bool = False,
        file_path: str | None = None,
        category: Category | None = None,
    ) -> list[BookmarkRef]:
        """Filtered bookmarks across groups, sorted by ``order``."""
        if group_id is not None:
            group = self._groups.get(group_id)
            groups = [group] if group else []
        else:
            groups = self.store.groups

        wanted_path = self._normalize_file_path(file_path) if file_path else None
        results: list[BookmarkRef] = []
        for group in groups:
            if parent_id is not None:
                if include_descendants:
                    candidates = self._descendants(group.id, parent_id)
                else:
                    candidates = self._siblings(group.id, parent_id)
            elif top_level_only:
                candidates = self._siblings(group.id, None)
            else:
                candidates = group.bookmarks

            for bm in candidates:
                if wanted_path is not None:
                    try:
                        path = parse_location(bm.location).file_path
                    except LocationParseError:
                        logger.warning("Skipping bookmark %s with bad location %r", bm.id, bm.location)
                        continue
                    if wanted_path not in path and path not in wanted_path:
                        continue
                if category and bm.category != category:
                    continue
                results.append(BookmarkRef(bm, group))

        results.sort(key=lambda r: r.bookmark.order)
        return results

    def get_all_bookmarks(self) -> list[BookmarkRef]:
        return self.list_bookmarks()

    def get_bookmarks_by_file(self, file_path: str) -> list[BookmarkRef]:
        return self.list_bookmarks(file_path=file_path)

    def bookmarks_at(self, location: str) -> list[BookmarkRef]:
        """Bookmarks whose location shares at least one line with ``location``."""
        target = parse_location(self._normalize_file_path(location))
        results = []
        for group in self.store.groups:
            for bm in group.bookmarks:
                try:
                    loc = parse_location(bm.location)
                except LocationParseError:
                    logger.warning("Skipping bookmark %s with bad location %r", bm.id, bm.location)
                    continue
                if locations_overlap(loc, target):
                    results.append(BookmarkRef(bm, group))
        return results

    def has_children(self, bookmark_id: str) -> bool:
        group = self._group_of(bookmark_id)
        return bool(group and self._child_ids(group.id, bookmark_id))

    def get_child_bookmarks(self, bookmark_id: str) -> list[BookmarkRef]:
        group = self._group_of(bookmark_id)
        if not group:
            return []
        return self.list_bookmarks(group_id=group.id, parent_id=bookmark_id)

    def _build_node(
        self, group_id: str, bm: Bookmark, max_depth: int | None, depth: int
    ) -> BookmarkNode:
        node = BookmarkNode(bm)
        if max_depth is None or depth < max_depth:
            for child in _by_order(self._siblings(group_id, bm.id)):
                node.children.append(self._build_node(group_id, child, max_depth, depth + 1))
        return node

    def get_bookmark_tree(self, bookmark_id: str, max_depth: int | None = None) -> BookmarkNode | None:
        """The bookmark with children attached down to ``max_depth`` levels."""
        ref = self._refs.get(bookmark_id)
        if not ref:
            return None
        return self._build_node(ref.group.id, ref.bookmark, max_depth, 0)

    def get_group_bookmark_trees(self, group_id: str) -> list[BookmarkNode]:
        """One tree per top-level bookmark of the group, in order."""
        if group_id not in self._groups:
            return []
        return [
            self._build_node(group_id, bm, None, 0)
            for bm in _by_order(self._siblings(group_id, None))
        ]

    # ── Mutation ──────────────────────────────────────────────

    def would_create_cycle(self, group_id: str, subject_id: str, candidate_parent_id: str) -> bool:
        """True if parenting ``subject_id`` under ``candidate_parent_id`` forms a cycle."""
        if candidate_parent_id == subject_id:
            return True
        return any(d.id == candidate_parent_id for d in self._descendants(group_id, subject_id))

    def update_bookmark(
        self,
        bookmark_id: str,
        *,
        parent_id: str | None = UNSET,
        location: str | None = None,
        title: str | None = None,
        description: str | None = None,
        order: int | None = None,
        category: Category | None = UNSET,
    ) -> UpdateResult:
        """Update fields of a bookmark.

        ``parent_id`` left unset keeps the parent, ``None`` moves the
        bookmark to the top level, an id reparents it. A reparented bookmark
        goes last among its new siblings unless ``order`` is also given.
        """
        ref = self._refs.get(bookmark_id)
        if not ref:
            return UpdateResult.NOT_FOUND
        bm, group = ref.bookmark, ref.group

        if parent_id is not UNSET and parent_id:
            if self._group_of(parent_id) is not group:
                return UpdateResult.PARENT_NOT_FOUND
            if self.would_create_cycle(group.id, bookmark_id, parent_id):
                return UpdateResult.CIRCULAR_REFERENCE
        if category is not UNSET:
            self._require_category(category)
        if location is not None:
            location = self._normalize_location(location)

        if parent_id is not UNSET:
            new_parent = parent_id or None
            self._unlink(group.id, bm)
            bm.parent_id = new_parent
            bm.order = self._next_order(group.id, new_parent)
            self._link(group.id, bm)

        if location is not None:
            bm.location = location
        if title is not None:
            bm.title = title
        if description is not None:
            bm.description = description
        if order is not None:
            bm.order = order
        if category is not UNSET:
            bm.category = category

        group.updated_at = self._now()
        self._commit("bookmark_updated", bookmark_id)
        return UpdateResult.OK

    def update_snapshot(self, bookmark_id: str, code_snapshot: str) -> bool:
        ref = self._refs.get(bookmark_id)
        if not ref:
            return False
        ref.bookmark.code_snapshot = code_snapshot
        ref.group.updated_at = self._now()
        self._commit("bookmark_updated", bookmark_id)
        return True

    def _detach_subtree(self, group: Group, bookmark_id: str) -> list[Bookmark]:
        """Remove a bookmark and its descendants from ``group`` and the index."""
        root = self._refs[bookmark_id].bookmark
        subtree = [root, *self._descendants(group.id, bookmark_id)]
        ids = {b.id for b in subtree}

        self._unlink(group.id, root)
        for b in subtree:
            self._children[group.id].pop(b.id, None)
            self._refs.pop(b.id, None)
        group.bookmarks = [b for b in group.bookmarks if b.id not in ids]
        return subtree

    def remove_bookmark(self, bookmark_id: str) -> int:
        """Remove a bookmark and all its descendants. Returns the count removed."""
        group = self._group_of(bookmark_id)
        if not group:
            return 0
        removed = self._detach_subtree(group, bookmark_id)
        group.updated_at = self._now()
        self._commit("bookmark_removed", *(b.id for b in removed))
        return len(removed)

    def batch_remove_bookmarks(self, bookmark_ids: Iterable[str]) -> int:
        """Remove several bookmarks (cascading) with a single save."""
        removed: list[str] = []
        for bookmark_id in bookmark_ids:
            group = self._group_of(bookmark_id)
            if not group:
                continue
            removed.extend(b.id for b in self._detach_subtree(group, bookmark_id))
            group.updated_at = self._now()
        if removed:
            self._commit("bookmark_removed", *removed)
        return len(removed)

    def move_bookmark_to_group(self, bookmark_id: str, target_group_id: str) -> int:
        """Move a bookmark and its subtree to another group, as a top-level bookmark.

        Returns the number of bookmarks moved, 0 if nothing was moved.
        """
        source = self._group_of(bookmark_id)
        target = self._groups.get(target_group_id)
        if not source or not target or source is target:
            return 0

        moved = self._detach_subtree(source, bookmark_id)
        root = moved[0]
        root.parent_id = None
        root.order = self._next_order(target.id, None)
        for b in moved:
            target.bookmarks.append(b)
            self._refs[b.id] = BookmarkRef(b, target)
            self._link(target.id, b)

        now = self._now()
        source.updated_at = now
        target.updated_at = now
        self._commit("bookmark_moved", *(b.id for b in moved))
        return len(moved)

    def reorder_bookmark(self, bookmark_id: str, direction: Direction) -> bool:
        """Swap ``order`` with the neighbouring sibling. False at either end."""
        ref = self._refs.get(bookmark_id)
        if not ref:
            return False
        bm, group = ref.bookmark, ref.group

        siblings = _by_order(self._siblings(group.id, bm.parent_id))
        index = next(i for i, b in enumerate(siblings) if b.id == bookmark_id)
        new_index = index - 1 if direction == "up" else index + 1
        if new_index < 0 or new_index >= len(siblings):
            return False

        other = siblings[new_index]
        if bm.order == other.order:
            # tied orders cannot be swapped; renumber in display order first
            for position, sibling in enumerate(siblings, 1):
                sibling.order = position
        bm.order, other.order = other.order, bm.order
        group.updated_at = self._now()
        self._commit("bookmark_reordered", bookmark_id, other.id)
        return True

    # ── Drift ─────────────────────────────────────────────────

    def adjust_for_file_change(self, file_path: str, edit_start_line: int, line_delta: int) -> int:
        """Re-point bookmarks in ``file_path`` after an edit changed its line count.

        Returns the number of bookmarks whose location changed. Saves and
        notifies once for the whole batch.
        """
        target = self._normalize_file_path(file_path)
        moved: list[str] = []
        for group in self.store.groups:
            group_changed = False
            for bm in group.bookmarks:
                try:
                    loc = parse_location(bm.location)
                except LocationParseError:
                    logger.warning("Skipping bookmark %s with bad location %r", bm.id, bm.location)
                    continue
                if loc.file_path != target:
                    continue
                adjusted = adjust_location(loc, edit_start_line, line_delta)
                if adjusted != loc:
                    bm.location = format_location(adjusted)
                    moved.append(bm.id)
                    group_changed = True
            if group_changed:
                group.updated_at = self._now()

        if moved:
            logger.debug("Adjusted %d bookmarks in %s", len(moved), target)
            self._commit("drift_adjusted", *moved)
        return len(moved)

    def check_validity(self, bookmark_id: str, fetch_content: ContentFetcher) -> Validity:
        """Compare a bookmark's code snapshot against the file's current text."""
        ref = self._refs.get(bookmark_id)
        if not ref:
            return Validity(False, "Bookmark not found")
        bm = ref.bookmark
        if not bm.code_snapshot:
            return Validity(True, "No snapshot to compare")

        try:
            loc = parse_location(bm.location)
        except LocationParseError as e:
            return Validity(False, f"Invalid location: {e}")

        path = Path(loc.file_path)
        if self.workspace_root and not path.is_absolute():
            path = self.workspace_root / path
        try:
            content = fetch_content(str(path))
        except OSError as e:
            return Validity(False, f"Error reading {path}: {e}")
        except Exception as e:
            logger.warning("Content fetch failed for %s: %s", path, e)
            return Validity(False, f"Error checking validity: {e}")
        return compare_snapshot(bm.code_snapshot, bm.location, content)
