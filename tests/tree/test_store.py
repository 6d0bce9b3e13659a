"""
Tests for PageTreeStore: insert/update/delete with timestamping.
"""
import pytest
from datetime import datetime, timezone
from unittest.mock import patch
from bson import ObjectId

from pagetree.core.exceptions import NodeNotFoundError, StorageError, ValidationError
from pagetree.tree.models import PageTreeNode
from pagetree.tree.store import PageTreeStore

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
T1 = datetime(2024, 5, 2, 8, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def store():
    return PageTreeStore(default_locale="en")


async def count(database):
    return await database.get_collection("page_tree").count_documents({})


class TestCreateNode:
    @pytest.mark.asyncio
    async def test_create_assigns_id_and_stamps(self, database, store):
        with patch("pagetree.tree.models.utcnow", return_value=T0):
            node = await store.create_node({"path": "docs", "depth": 0, "title": "Docs", "is_folder": True})

        assert isinstance(node.id, ObjectId)
        assert node.created_at == T0
        assert node.updated_at == node.created_at
        assert node.locale_code == "en"

        loaded = await store.get_node(node.id)
        assert loaded.title == "Docs"
        assert loaded.is_folder is True

    @pytest.mark.asyncio
    async def test_created_equals_updated_without_patching(self, database, store):
        node = await store.create_node({"path": "docs", "depth": 0, "title": "Docs"})
        assert node.created_at is not None
        assert node.created_at == node.updated_at

    @pytest.mark.asyncio
    async def test_timestamps_survive_reload(self, database, store):
        node = await store.create_node({"path": "docs", "depth": 0, "title": "Docs"})

        loaded = await store.get_node(node.id)
        assert loaded.created_at == node.created_at
        assert loaded.updated_at == node.updated_at
        assert loaded.created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_missing_required_fields(self, database, store):
        with pytest.raises(ValidationError):
            await store.create_node({"title": "X"})
        assert await count(database) == 0

    @pytest.mark.asyncio
    async def test_inconsistent_depth(self, database, store):
        with pytest.raises(ValidationError) as exc:
            await store.create_node({"path": "docs/install", "depth": 3, "title": "Install"})
        assert exc.value.field == "depth"
        assert await count(database) == 0

    @pytest.mark.asyncio
    async def test_unknown_field(self, database, store):
        with pytest.raises(ValidationError) as exc:
            await store.create_node({"path": "docs", "depth": 0, "title": "Docs", "colour": "red"})
        assert exc.value.field == "colour"

    @pytest.mark.asyncio
    async def test_caller_timestamps_are_ignored(self, database, store):
        with patch("pagetree.tree.models.utcnow", return_value=T1):
            node = await store.create_node({
                "path": "docs", "depth": 0, "title": "Docs", "created_at": T0,
            })
        assert node.created_at == T1

    @pytest.mark.asyncio
    async def test_duplicate_path_in_locale(self, database, store):
        await PageTreeNode.ensure_indexes()
        await store.create_node({"path": "docs", "depth": 0, "title": "Docs"})
        await store.create_node({"path": "docs", "depth": 0, "title": "Docs", "locale_code": "fr"})

        with pytest.raises(StorageError):
            await store.create_node({"path": "docs", "depth": 0, "title": "Again"})
        assert await count(database) == 2


class TestUpdateNode:
    @pytest.mark.asyncio
    async def test_update_keeps_created_at(self, database, store):
        with patch("pagetree.tree.models.utcnow", return_value=T0):
            node = await store.create_node({"path": "docs", "depth": 0, "title": "Docs"})

        node.title = "Documentation"
        with patch("pagetree.tree.models.utcnow", return_value=T1):
            updated = await store.update_node(node)

        assert updated.created_at == T0
        assert updated.updated_at == T1
        assert updated.updated_at > updated.created_at
        assert (await store.get_node(node.id)).title == "Documentation"

    @pytest.mark.asyncio
    async def test_update_from_fields(self, database, store):
        node = await store.create_node({"path": "docs", "depth": 0, "title": "Docs"})

        updated = await store.update_node({"id": str(node.id), "is_private": True, "private_ns": "staff"})

        assert updated.is_private is True
        loaded = await store.get_node(node.id)
        assert loaded.private_ns == "staff"
        assert loaded.title == "Docs"

    @pytest.mark.asyncio
    async def test_path_change_does_not_cascade(self, database, store):
        root = await store.create_node({"path": "docs", "depth": 0, "title": "Docs"})
        await store.create_node({"path": "docs/install", "depth": 1, "title": "Install", "parent": root.id})

        await store.update_node({"id": root.id, "path": "manual"})

        assert await store.get_by_path("docs/install") is not None
        assert await store.get_by_path("docs") is None

    @pytest.mark.asyncio
    async def test_update_validates(self, database, store):
        node = await store.create_node({"path": "docs", "depth": 0, "title": "Docs"})
        with pytest.raises(ValidationError):
            await store.update_node({"id": node.id, "path": "docs/install"})
        assert (await store.get_node(node.id)).path == "docs"

    @pytest.mark.asyncio
    async def test_update_unknown_node(self, database, store):
        with pytest.raises(NodeNotFoundError):
            await store.update_node({"id": ObjectId(), "title": "X"})
        with pytest.raises(NodeNotFoundError):
            await store.update_node(PageTreeNode.for_path("ghost", "Ghost"))

    @pytest.mark.asyncio
    async def test_update_requires_id(self, database, store):
        with pytest.raises(ValidationError) as exc:
            await store.update_node({"title": "X"})
        assert exc.value.field == "id"

    @pytest.mark.asyncio
    async def test_update_rejects_conflicting_ids(self, database, store):
        a = await store.create_node({"path": "a", "depth": 0, "title": "A"})
        b = await store.create_node({"path": "b", "depth": 0, "title": "B"})

        with pytest.raises(ValidationError) as exc:
            await store.update_node({"id": a.id, "_id": b.id, "path": "a", "title": "Renamed"})

        assert exc.value.field == "id"
        assert (await store.get_node(a.id)).title == "A"
        assert (await store.get_node(b.id)).title == "B"

    @pytest.mark.asyncio
    async def test_update_accepts_matching_ids(self, database, store):
        node = await store.create_node({"path": "docs", "depth": 0, "title": "Docs"})

        await store.update_node({"id": str(node.id), "_id": node.id, "title": "Manual"})

        assert (await store.get_node(node.id)).title == "Manual"

    @pytest.mark.asyncio
    async def test_update_by_underscore_id(self, database, store):
        node = await store.create_node({"path": "docs", "depth": 0, "title": "Docs"})

        await store.update_node({"_id": node.id, "title": "Manual"})

        assert (await store.get_node(node.id)).title == "Manual"


class TestLookupAndDelete:
    @pytest.mark.asyncio
    async def test_get_by_path_is_locale_scoped(self, database, store):
        en = await store.create_node({"path": "docs", "depth": 0, "title": "Docs"})
        fr = await store.create_node({"path": "docs", "depth": 0, "title": "Documents", "locale_code": "fr"})

        assert (await store.get_by_path("docs")).id == en.id
        assert (await store.get_by_path("docs", "fr")).id == fr.id
        assert await store.get_by_path("docs", "de") is None

    @pytest.mark.asyncio
    async def test_get_node_invalid_id(self, database, store):
        with pytest.raises(ValidationError):
            await store.get_node("not-an-id")

    @pytest.mark.asyncio
    async def test_delete_removes_only_the_node(self, database, store):
        root = await store.create_node({"path": "docs", "depth": 0, "title": "Docs"})
        await store.create_node({"path": "docs/install", "depth": 1, "title": "Install", "parent": root.id})

        assert await store.delete_node(root.id) is True
        assert await store.delete_node(root.id) is False
        assert await store.get_by_path("docs/install") is not None

    @pytest.mark.asyncio
    async def test_update_of_fetched_node_keeps_stored_created_at(self, database, store):
        from pagetree.tree.resolver import SubtreeResolver

        with patch("pagetree.tree.models.utcnow", return_value=T0):
            await store.create_node({"path": "docs", "depth": 0, "title": "Docs"})

        fetched, = await SubtreeResolver().fetch_tree({"path": "docs"})
        assert fetched.created_at is None
        fetched.title = "Manual"
        with patch("pagetree.tree.models.utcnow", return_value=T1):
            await store.update_node(fetched)

        stored = await database.get_collection("page_tree").find_one({"_id": fetched.id})
        assert stored["created_at"] == T0
        assert stored["updated_at"] == T1
        assert stored["title"] == "Manual"
