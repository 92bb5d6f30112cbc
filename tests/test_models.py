"""Tests for entity serialization."""

from codemarks.models import Bookmark, BookmarkNode, Group, Store, UpdateResult


def _group_dict() -> dict:
    return {
        "id": "g1",
        "name": "Crash flow",
        "createdAt": "2026-01-01T00:00:00.000Z",
        "updatedAt": "2026-01-01T00:00:00.000Z",
        "createdBy": "user",
        "bookmarks": [
            {"id": "b1", "order": 1, "location": "a.go:10", "title": "T1", "description": "D1"},
            {
                "id": "b2",
                "parentId": "b1",
                "order": 1,
                "location": "a.go:20-25",
                "title": "T2",
                "description": "D2",
                "category": "core-logic",
                "codeSnapshot": "return x",
            },
        ],
    }


class TestBookmark:
    def test_optional_fields_omitted(self):
        data = Bookmark(id="b1", location="a.go:1", title="t", description="d").to_dict()
        assert "parentId" not in data
        assert "category" not in data
        assert "codeSnapshot" not in data
        assert data["order"] == 1

    def test_camel_case_keys(self):
        bm = Bookmark(
            id="b2", location="a.go:1", title="t", description="d",
            parent_id="b1", category="issue", code_snapshot="x",
        )
        data = bm.to_dict()
        assert data["parentId"] == "b1"
        assert data["codeSnapshot"] == "x"

    def test_unknown_category_dropped(self):
        bm = Bookmark.from_dict(
            {"id": "b", "order": 2, "location": "a:1", "title": "", "description": "", "category": "todo"}
        )
        assert bm.category is None


class TestGroupAndStore:
    def test_group_from_dict(self):
        group = Group.from_dict(_group_dict())
        assert group.created_by == "user"
        assert group.description is None
        assert [b.id for b in group.bookmarks] == ["b1", "b2"]
        assert group.bookmarks[1].parent_id == "b1"
        assert group.bookmarks[1].category == "core-logic"

    def test_unknown_created_by(self):
        data = _group_dict()
        data["createdBy"] = "robot"
        assert Group.from_dict(data).created_by == "ai"

    def test_store_document(self):
        doc = {"version": 1, "projectName": "demo", "groups": [_group_dict()]}
        store = Store.from_dict(doc)
        assert store.project_name == "demo"
        assert store.bookmark_count() == 2
        assert store.to_dict() == doc

    def test_store_defaults(self):
        store = Store.from_dict({})
        assert store.version == 1
        assert store.groups == []


class TestNodeAndResult:
    def test_node_count_and_dict(self):
        leaf = BookmarkNode(Bookmark(id="c", location="a:2", title="c", description=""))
        root = BookmarkNode(Bookmark(id="r", location="a:1", title="r", description=""), [leaf])
        assert root.count() == 2
        assert root.to_dict()["children"][0]["id"] == "c"
        assert root.to_dict()["children"][0]["children"] == []

    def test_update_result_truthiness(self):
        assert UpdateResult.OK
        assert not UpdateResult.NOT_FOUND
        assert UpdateResult.CIRCULAR_REFERENCE == "circular_reference"
