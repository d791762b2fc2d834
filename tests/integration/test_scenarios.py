"""
End-to-end scenarios driven through the MCP tools, plus the graph-wide
properties that must hold after any sequence of operations.
"""

import json

import pytest
from fastmcp import Client

from associate.mcp_server import mcp
from associate.store.base import NodeQuery, Scope


@pytest.fixture
async def mcp_client(shared_engine):
    async with Client(mcp) as client:
        yield client


async def call(client, tool: str, **arguments) -> dict:
    result = await client.call_tool(tool, arguments)
    return json.loads(result.content[0].text)


@pytest.fixture
async def payments(mcp_client):
    """Zone Z1 holding the draft plan Payments with two pending tasks."""
    zone_id = (await call(mcp_client, "create_zone", name="Z1"))["zone"]["id"]
    plan_id = (await call(mcp_client, "create_plan", name="Payments", zone_id=zone_id, status="draft"))["plan"]["id"]
    gateway = await call(mcp_client, "create_task", content="Integrate gateway", plan_ids=[plan_id], status="pending")
    tests = await call(
        mcp_client,
        "create_task",
        content="Write tests",
        plan_ids=[plan_id],
        depends_on=[gateway["task"]["id"]],
    )
    return {
        "zone_id": zone_id,
        "plan_id": plan_id,
        "gateway_id": gateway["task"]["id"],
        "tests_id": tests["task"]["id"],
    }


class TestDependencyScenario:
    async def test_dependency_visible_then_gone(self, mcp_client, payments):
        related = await call(
            mcp_client,
            "get_related",
            id=payments["tests_id"],
            relationship_type="DEPENDS_ON",
            direction="outgoing",
            depth=1,
        )
        assert related["count"] == 1
        assert related["related"][0]["id"] == payments["gateway_id"]
        assert related["related"][0]["content"] == "Integrate gateway"

        await call(mcp_client, "delete_task", id=payments["gateway_id"])

        related = await call(
            mcp_client,
            "get_related",
            id=payments["tests_id"],
            relationship_type="DEPENDS_ON",
            direction="outgoing",
            depth=1,
        )
        assert related["related"] == []

    async def test_plan_view_lists_dependencies(self, mcp_client, payments):
        plan = (await call(mcp_client, "get_plan", id=payments["plan_id"]))["plan"]

        assert plan["status"] == "draft"
        by_content = {t["content"]: t for t in plan["tasks"]}
        assert by_content["Write tests"]["depends_on"] == [payments["gateway_id"]]
        assert by_content["Integrate gateway"]["blocks"] == []


class TestStatusFilterScenario:
    async def test_pending_filter_tracks_updates(self, mcp_client, payments):
        pending = await call(mcp_client, "list_tasks", plan_id=payments["plan_id"], status="pending")
        assert {t["content"] for t in pending["tasks"]} == {"Integrate gateway", "Write tests"}

        await call(mcp_client, "update_task", id=payments["gateway_id"], status="completed")

        pending = await call(mcp_client, "list_tasks", plan_id=payments["plan_id"], status="pending")
        assert [t["content"] for t in pending["tasks"]] == ["Write tests"]


class TestCycleScenario:
    async def test_relates_to_cycle(self, mcp_client):
        zone_id = (await call(mcp_client, "create_zone", name="Loops"))["zone"]["id"]
        ids = [
            (await call(mcp_client, "add_memory", content=name, zone_id=zone_id))["memory"]["id"]
            for name in ("A", "B", "C")
        ]
        for first, second in zip(ids, ids[1:] + ids[:1]):
            await call(mcp_client, "create_relationship", from_id=first, to_id=second, relationship_type="RELATES_TO")

        related = await call(
            mcp_client, "get_related", id=ids[0], relationship_type="RELATES_TO", direction="outgoing", depth=5
        )

        assert [(r["id"], r["depth"]) for r in related["related"]] == [(ids[1], 1), (ids[2], 2)]


class TestGraphProperties:
    """Invariants checked against the store after a mixed workload."""

    @pytest.fixture
    async def workload(self, engine):
        work = await engine.zones.create(name="Work")
        home = await engine.zones.create(name="Home")
        plans = [await engine.plans.create(name=f"P{i}", zone_id=work.id) for i in range(2)]
        tasks = [await engine.tasks.create(content=f"t{i}", plan_ids=[plans[i % 2].id]) for i in range(6)]
        await engine.tasks.update(tasks[0].id, add_plan_ids=[plans[1].id])
        await engine.tasks.reorder(plans[0].id, [tasks[4].id])
        await engine.memories.create(content="note at work", zone_id=work.id, relations={"REFERENCES": [tasks[1].id]})
        await engine.memories.create(content="note at home", zone_id=home.id)
        await engine.memories.create(content="unzoned note")
        await engine.plans.delete(plans[1].id)
        return {"work": work, "home": home, "plans": plans, "tasks": tasks}

    async def _all_nodes(self, engine, label):
        return await engine.store.find_nodes(NodeQuery(label=label, scope=Scope.everywhere(), limit=1000))

    async def test_every_node_has_exactly_one_zone(self, engine, workload):
        for label in ("Plan", "Task", "Memory"):
            for record in await self._all_nodes(engine, label):
                edges = await engine.store.get_edges(record.id, "outgoing", ["BELONGS_TO"])
                assert len(edges) == 1, record.id
                assert edges[0].to_id == record.zone_id

    async def test_every_task_in_a_plan_of_its_zone(self, engine, workload):
        for record in await self._all_nodes(engine, "Task"):
            memberships = await engine.tasks.memberships(record.id)
            assert memberships, record.id
            assert all(m.plan.zone_id == record.zone_id for m in memberships)

    async def test_positions_unique_within_plan(self, engine, workload):
        for record in await self._all_nodes(engine, "Plan"):
            positions = [p for _, p in await engine.relationships.plan_task_positions(record.id)]
            assert len(positions) == len(set(positions))

    async def test_edges_never_cross_zones(self, engine, workload):
        nodes = {}
        for label in ("Zone", "Plan", "Task", "Memory"):
            nodes.update({r.id: r for r in await self._all_nodes(engine, label)})
        for node_id, record in nodes.items():
            for edge in await engine.store.get_edges(node_id, "outgoing"):
                target = nodes[edge.to_id]
                target_zone = target.id if target.label == "Zone" else target.zone_id
                assert target_zone == record.zone_id, (node_id, edge.type, edge.to_id)
