"""
Unit tests for SQLiteGraphStore against an in-memory database.
"""

import pytest

from associate.errors import NotFoundError, SchemaBootstrapError, StoreError
from associate.store.base import NodeQuery, Scope
from associate.store.sqlite_store import SQLiteGraphStore


def node(node_id, zone_id="z1", created_at=1.0, **extra):
    return {"id": node_id, "zone_id": zone_id, "created_at": created_at, "updated_at": created_at, "tags": [], **extra}


class TestLifecycle:
    async def test_initialize_is_idempotent(self, store):
        await store.initialize()
        await store.ping()

    async def test_file_database(self, tmp_path):
        path = tmp_path / "nested" / "graph.db"
        graph_store = SQLiteGraphStore(str(path))
        await graph_store.initialize()
        await graph_store.create_node("Zone", node("z1"))
        await graph_store.close()

        reopened = SQLiteGraphStore(str(path))
        await reopened.initialize()
        assert await reopened.get_node("z1") is not None
        await reopened.close()

    async def test_schema_failure(self, monkeypatch):
        monkeypatch.setattr("associate.store.sqlite_store.SQLITE_SCHEMA_STATEMENTS", ["CREATE TABLE broken ("])
        with pytest.raises(SchemaBootstrapError):
            await SQLiteGraphStore(":memory:").initialize()


class TestNodes:
    async def test_create_and_get(self, store):
        await store.create_node("Task", node("t1", content="Write tests", tags=["a", "b"]))

        record = await store.get_node("t1")

        assert record.label == "Task"
        assert record.props["content"] == "Write tests"
        assert record.props["tags"] == ["a", "b"]

    async def test_get_missing(self, store):
        assert await store.get_node("missing") is None

    async def test_get_nodes(self, store):
        await store.create_node("Task", node("t1", content="a"))
        await store.create_node("Task", node("t2", content="b"))

        records = await store.get_nodes(["t1", "t2", "t3"])

        assert set(records) == {"t1", "t2"}

    async def test_update_merges_props(self, store):
        await store.create_node("Task", node("t1", content="a", status="pending"))

        record = await store.update_node("t1", {"status": "completed"})

        assert record.props["content"] == "a"
        assert record.props["status"] == "completed"
        assert (await store.get_node("t1")).props["status"] == "completed"

    async def test_update_missing(self, store):
        assert await store.update_node("missing", {"status": "x"}) is None

    async def test_delete_removes_edges(self, store):
        await store.create_node("Plan", node("p1", name="p"))
        await store.create_node("Task", node("t1", content="a"))
        await store.merge_edge("t1", "p1", "PART_OF", {"position": 1000.0})

        assert await store.delete_node("t1") is True
        assert await store.get_edges("p1") == []
        assert await store.delete_node("t1") is False

    async def test_duplicate_id_is_store_error(self, store):
        await store.create_node("Task", node("t1", content="a"))
        with pytest.raises(StoreError):
            await store.create_node("Task", node("t1", content="b"))


class TestFind:
    @pytest.fixture
    async def seeded(self, store):
        await store.create_node("Task", node("t1", created_at=1.0, content="Deploy API", status="pending", tags=["ops"]))
        await store.create_node("Task", node("t2", created_at=2.0, content="Write docs", status="completed"))
        await store.create_node(
            "Task", node("t3", created_at=3.0, content="deploy web", status="pending", tags=["ops", "web"])
        )
        await store.create_node("Task", node("t4", zone_id="z2", created_at=4.0, content="Deploy elsewhere"))
        return store

    async def test_scope_isolates_zones(self, seeded):
        records = await seeded.find_nodes(NodeQuery(label="Task", scope=Scope.zone("z1")))
        assert [r.id for r in records] == ["t3", "t2", "t1"]

    async def test_everywhere(self, seeded):
        assert len(await seeded.find_nodes(NodeQuery(label="Task", scope=Scope.everywhere()))) == 4

    async def test_equals_filter(self, seeded):
        query = NodeQuery(label="Task", scope=Scope.zone("z1"), equals={"status": "pending"})
        assert {r.id for r in await seeded.find_nodes(query)} == {"t1", "t3"}

    async def test_tags_must_all_match(self, seeded):
        query = NodeQuery(label="Task", scope=Scope.zone("z1"), tags=["ops", "web"])
        assert [r.id for r in await seeded.find_nodes(query)] == ["t3"]

    async def test_text_is_case_insensitive(self, seeded):
        query = NodeQuery(label="Task", scope=Scope.zone("z1"), text="DEPLOY", text_fields=("content",))
        assert {r.id for r in await seeded.find_nodes(query)} == {"t1", "t3"}

    async def test_paging(self, seeded):
        query = NodeQuery(label="Task", scope=Scope.zone("z1"), descending=False, limit=2, offset=1)
        assert [r.id for r in await seeded.find_nodes(query)] == ["t2", "t3"]

    async def test_count(self, seeded):
        assert await seeded.count_nodes("Task", Scope.zone("z1")) == 3
        assert await seeded.count_nodes("Plan", Scope.zone("z1")) == 0


class TestEdges:
    @pytest.fixture
    async def linked(self, store):
        for task_id in ("t1", "t2", "t3"):
            await store.create_node("Task", node(task_id, content=task_id))
        await store.merge_edge("t1", "t2", "DEPENDS_ON")
        await store.merge_edge("t3", "t1", "BLOCKS")
        return store

    async def test_merge_is_idempotent(self, linked):
        await linked.merge_edge("t1", "t2", "DEPENDS_ON")
        assert len(await linked.get_edges("t1", "outgoing", ["DEPENDS_ON"])) == 1

    async def test_merge_updates_props(self, linked):
        await linked.merge_edge("t1", "t2", "DEPENDS_ON", {"note": "hard"})
        edge = await linked.get_edge("t1", "t2", "DEPENDS_ON")
        assert edge.props == {"note": "hard"}

    async def test_merge_missing_endpoint(self, linked):
        with pytest.raises(NotFoundError):
            await linked.merge_edge("t1", "ghost", "DEPENDS_ON")

    async def test_directions(self, linked):
        outgoing = await linked.get_edges("t1", "outgoing")
        incoming = await linked.get_edges("t1", "incoming")
        both = await linked.get_edges("t1", "both")

        assert [(e.from_id, e.to_id) for e in outgoing] == [("t1", "t2")]
        assert [(e.from_id, e.to_id) for e in incoming] == [("t3", "t1")]
        assert len(both) == 2

    async def test_type_filter(self, linked):
        assert [e.type for e in await linked.get_edges("t1", "both", ["BLOCKS"])] == ["BLOCKS"]

    async def test_delete_edge(self, linked):
        assert await linked.delete_edge("t1", "t2", "DEPENDS_ON") is True
        assert await linked.delete_edge("t1", "t2", "DEPENDS_ON") is False
        assert await linked.get_edge("t1", "t2", "DEPENDS_ON") is None


class TestTransactions:
    async def test_rollback_on_error(self, store):
        with pytest.raises(RuntimeError):
            async with store.transaction():
                await store.create_node("Task", node("t1", content="a"))
                raise RuntimeError("boom")

        assert await store.get_node("t1") is None

    async def test_nested_transactions_commit_once(self, store):
        async with store.transaction():
            async with store.transaction():
                await store.create_node("Task", node("t1", content="a"))
            await store.create_node("Task", node("t2", content="b"))

        assert set(await store.get_nodes(["t1", "t2"])) == {"t1", "t2"}
