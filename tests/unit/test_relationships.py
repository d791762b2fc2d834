"""
Unit tests for the relationship engine: endpoint rules, zone isolation,
idempotent linking, structural edge protection and the plan cascade.
"""

import pytest

from associate.errors import InvalidInputError, IsolationViolationError, NotFoundError


@pytest.fixture
async def other_zone(engine):
    return await engine.zones.create(name="Home")


@pytest.fixture
async def memory(engine, zone):
    return await engine.memories.create(content="Use Stripe for payments", zone_id=zone.id)


@pytest.fixture
async def task(engine, plan):
    return await engine.tasks.create(content="Integrate Stripe", plan_ids=[plan.id])


class TestLink:
    async def test_link_creates_edge(self, engine, memory, task):
        relationship = await engine.relationships.link(task.id, memory.id, "REFERENCES")

        assert relationship.from_id == task.id
        assert relationship.to_id == memory.id
        assert relationship.type == "REFERENCES"

    async def test_link_is_idempotent(self, engine, memory, task):
        await engine.relationships.link(task.id, memory.id, "REFERENCES")
        await engine.relationships.link(task.id, memory.id, "REFERENCES")

        edges = await engine.relationships.list_relations(task.id, "outgoing", "REFERENCES")
        assert len(edges) == 1

    async def test_depends_on_does_not_create_blocks(self, engine, plan, task):
        other = await engine.tasks.create(content="Set up account", plan_ids=[plan.id])

        await engine.relationships.link(task.id, other.id, "DEPENDS_ON")

        assert await engine.relationships.list_relations(other.id, "outgoing", "BLOCKS") == []

    async def test_unknown_type(self, engine, memory, task):
        with pytest.raises(InvalidInputError):
            await engine.relationships.link(task.id, memory.id, "LIKES")

    async def test_missing_endpoint(self, engine, task):
        with pytest.raises(NotFoundError):
            await engine.relationships.link(task.id, "ghost", "RELATES_TO")
        with pytest.raises(NotFoundError):
            await engine.relationships.link("ghost", task.id, "RELATES_TO")

    async def test_self_link_rejected(self, engine, memory):
        with pytest.raises(InvalidInputError):
            await engine.relationships.link(memory.id, memory.id, "RELATES_TO")

    async def test_wrong_endpoint_kinds(self, engine, zone, memory, plan):
        with pytest.raises(InvalidInputError):
            await engine.relationships.link(memory.id, plan.id, "PART_OF")
        with pytest.raises(InvalidInputError):
            await engine.relationships.link(memory.id, zone.id, "RELATES_TO")

    async def test_cross_zone_rejected(self, engine, other_zone, memory):
        foreign = await engine.memories.create(content="Groceries", zone_id=other_zone.id)

        with pytest.raises(IsolationViolationError):
            await engine.relationships.link(memory.id, foreign.id, "RELATES_TO")

    async def test_belongs_to_own_zone_is_noop(self, engine, zone, memory):
        await engine.relationships.link(memory.id, zone.id, "BELONGS_TO")

        edges = await engine.relationships.list_relations(memory.id, "outgoing", "BELONGS_TO")
        assert [e.to_id for e in edges] == [zone.id]

    async def test_belongs_to_other_zone_rejected(self, engine, other_zone, memory):
        with pytest.raises(IsolationViolationError):
            await engine.relationships.link(memory.id, other_zone.id, "BELONGS_TO")

    async def test_part_of_appends(self, engine, zone, plan, task):
        second_plan = await engine.plans.create(name="Billing", zone_id=zone.id)
        await engine.tasks.create(content="Invoices", plan_ids=[second_plan.id])

        relationship = await engine.relationships.link(task.id, second_plan.id, "PART_OF")

        assert relationship.properties["position"] == 2000.0

    async def test_part_of_relink_keeps_position(self, engine, plan, task):
        relationship = await engine.relationships.link(task.id, plan.id, "PART_OF")
        assert relationship.properties["position"] == 1000.0

    async def test_part_of_explicit_position(self, engine, plan, task):
        relationship = await engine.relationships.link(task.id, plan.id, "PART_OF", {"position": 42.0})
        assert relationship.properties["position"] == 42.0

    async def test_part_of_taken_position_rejected(self, engine, zone, plan, task):
        second_plan = await engine.plans.create(name="Billing", zone_id=zone.id)
        other = await engine.tasks.create(content="Invoices", plan_ids=[second_plan.id])

        with pytest.raises(InvalidInputError):
            await engine.relationships.link(other.id, plan.id, "PART_OF", {"position": 1000.0})

        positions = await engine.relationships.plan_task_positions(plan.id)
        assert positions == [(task.id, 1000.0)]

    @pytest.mark.parametrize("position", ["top", None, True, float("nan"), float("inf")])
    async def test_part_of_bad_position_rejected(self, engine, zone, plan, task, position):
        second_plan = await engine.plans.create(name="Billing", zone_id=zone.id)
        other = await engine.tasks.create(content="Invoices", plan_ids=[second_plan.id])

        with pytest.raises(InvalidInputError):
            await engine.relationships.link(other.id, plan.id, "PART_OF", {"position": position})

        result = await engine.plans.get_with_tasks(plan.id)
        assert [entry.task.id for entry in result[1]] == [task.id]

    async def test_invalid_property_name_rejected(self, engine, memory, task):
        with pytest.raises(InvalidInputError):
            await engine.relationships.link(task.id, memory.id, "REFERENCES", {"ui-x": 1})

        assert await engine.relationships.list_relations(task.id, "outgoing", "REFERENCES") == []


class TestUnlink:
    async def test_unlink(self, engine, memory, task):
        await engine.relationships.link(task.id, memory.id, "REFERENCES")

        assert await engine.relationships.unlink(task.id, memory.id, "REFERENCES") is True
        assert await engine.relationships.list_relations(task.id, "outgoing", "REFERENCES") == []

    async def test_unlink_missing_is_noop(self, engine, memory, task):
        assert await engine.relationships.unlink(task.id, memory.id, "REFERENCES") is False

    async def test_unlink_belongs_to_rejected(self, engine, zone, memory):
        with pytest.raises(InvalidInputError):
            await engine.relationships.unlink(memory.id, zone.id, "BELONGS_TO")

    async def test_unlink_last_plan_rejected(self, engine, plan, task):
        with pytest.raises(InvalidInputError):
            await engine.relationships.unlink(task.id, plan.id, "PART_OF")

    async def test_unlink_one_of_two_plans(self, engine, zone, plan, task):
        second_plan = await engine.plans.create(name="Billing", zone_id=zone.id)
        await engine.relationships.link(task.id, second_plan.id, "PART_OF")

        assert await engine.relationships.unlink(task.id, plan.id, "PART_OF") is True
        memberships = await engine.tasks.memberships(task.id)
        assert [m.plan.id for m in memberships] == [second_plan.id]


class TestListRelations:
    async def test_direction_relative_to_node(self, engine, memory, task):
        await engine.relationships.link(task.id, memory.id, "REFERENCES")

        edges = await engine.relationships.list_relations(memory.id, "both")

        directions = {(e.type, e.direction) for e in edges}
        assert ("REFERENCES", "incoming") in directions
        assert ("BELONGS_TO", "outgoing") in directions

    async def test_missing_node(self, engine):
        with pytest.raises(NotFoundError):
            await engine.relationships.list_relations("ghost")

    async def test_bad_direction(self, engine, memory):
        with pytest.raises(InvalidInputError):
            await engine.relationships.list_relations(memory.id, "sideways")


class TestCascadePlanDelete:
    async def test_shared_task_survives(self, engine, zone, plan):
        other_plan = await engine.plans.create(name="Billing", zone_id=zone.id)
        shared = await engine.tasks.create(content="Shared", plan_ids=[plan.id, other_plan.id])
        solo = await engine.tasks.create(content="Solo", plan_ids=[plan.id])

        tasks_deleted = await engine.plans.delete(plan.id)

        assert tasks_deleted == 1
        assert await engine.plans.get(plan.id) is None
        assert await engine.tasks.get(solo.id) is None
        assert await engine.tasks.get(shared.id) is not None
        memberships = await engine.tasks.memberships(shared.id)
        assert [m.plan.id for m in memberships] == [other_plan.id]

    async def test_delete_missing_plan(self, engine):
        with pytest.raises(NotFoundError):
            await engine.plans.delete("ghost")
