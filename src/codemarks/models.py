"""Entity model: Store -> Group -> Bookmark.

A Store owns its groups and a group owns its bookmarks. Parent/child links
between bookmarks are same-group references by id, never ownership.
Serialization follows the on-disk JSON schema (camelCase keys, optional
fields omitted when unset).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

logger = logging.getLogger(__name__)

STORE_VERSION = 1

Category = Literal["entry-point", "core-logic", "issue", "note"]
CreatedBy = Literal["ai", "user"]

CATEGORIES: tuple[str, ...] = ("entry-point", "core-logic", "issue", "note")
CREATORS: tuple[str, ...] = ("ai", "user")

CATEGORY_DISPLAY_NAMES = {
    "entry-point": "Entry Point",
    "core-logic": "Core Logic",
    "issue": "Issue",
    "note": "Note",
}


class UpdateResult(str, Enum):
    """Outcome of :meth:`BookmarkStore.update_bookmark`."""

    OK = "ok"
    NOT_FOUND = "not_found"
    CIRCULAR_REFERENCE = "circular_reference"
    PARENT_NOT_FOUND = "parent_not_found"

    def __bool__(self) -> bool:
        return self is UpdateResult.OK


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


# "leave unchanged" marker for arguments where None already means something
UNSET: Any = _Unset()


def _check_category(value: Any) -> Category | None:
    if value is None or value in CATEGORIES:
        return value
    logger.warning("Dropping unknown bookmark category %r", value)
    return None


@dataclass
class Bookmark:
    """An annotation attached to a code location."""

    id: str
    location: str
    title: str
    description: str
    order: int = 1
    parent_id: str | None = None
    category: Category | None = None
    code_snapshot: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id}
        if self.parent_id is not None:
            data["parentId"] = self.parent_id
        data["order"] = self.order
        data["location"] = self.location
        data["title"] = self.title
        data["description"] = self.description
        if self.category is not None:
            data["category"] = self.category
        if self.code_snapshot is not None:
            data["codeSnapshot"] = self.code_snapshot
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Bookmark:
        return cls(
            id=data["id"],
            parent_id=data.get("parentId") or None,
            order=int(data.get("order", 1)),
            location=data.get("location", ""),
            title=data.get("title", ""),
            description=data.get("description", ""),
            category=_check_category(data.get("category")),
            code_snapshot=data.get("codeSnapshot"),
        )


@dataclass
class Group:
    """A named collection of bookmarks."""

    id: str
    name: str
    created_at: str
    updated_at: str
    created_by: CreatedBy = "ai"
    description: str | None = None
    query: str | None = None
    bookmarks: list[Bookmark] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "name": self.name}
        if self.description is not None:
            data["description"] = self.description
        if self.query is not None:
            data["query"] = self.query
        data["createdAt"] = self.created_at
        data["updatedAt"] = self.updated_at
        data["createdBy"] = self.created_by
        data["bookmarks"] = [b.to_dict() for b in self.bookmarks]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Group:
        created_by = data.get("createdBy", "ai")
        if created_by not in CREATORS:
            logger.warning("Group %s has unknown createdBy %r, using 'ai'", data.get("id"), created_by)
            created_by = "ai"
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            description=data.get("description"),
            query=data.get("query"),
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
            created_by=created_by,
            bookmarks=[Bookmark.from_dict(b) for b in data.get("bookmarks", [])],
        )


@dataclass
class Store:
    """Root aggregate and unit of persistence."""

    project_name: str
    version: int = STORE_VERSION
    groups: list[Group] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "projectName": self.project_name,
            "groups": [g.to_dict() for g in self.groups],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Store:
        return cls(
            version=int(data.get("version", STORE_VERSION)),
            project_name=data.get("projectName", ""),
            groups=[Group.from_dict(g) for g in data.get("groups", [])],
        )

    def bookmark_count(self) -> int:
        return sum(len(g.bookmarks) for g in self.groups)


@dataclass
class BookmarkRef:
    """A bookmark together with the group that owns it."""

    bookmark: Bookmark
    group: Group


@dataclass
class BookmarkNode:
    """A bookmark with its materialized children, for tree rendering."""

    bookmark: Bookmark
    children: list[BookmarkNode] = field(default_factory=list)

    def count(self) -> int:
        """Number of nodes in this subtree, including this one."""
        return 1 + sum(child.count() for child in self.children)

    def to_dict(self) -> dict[str, Any]:
        data = self.bookmark.to_dict()
        data["children"] = [child.to_dict() for child in self.children]
        return data
