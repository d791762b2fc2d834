"""
Unit tests for breadth-first traversal.
"""

import pytest

from associate.errors import InvalidInputError
from associate.graph.traversal import MAX_TRAVERSAL_DEPTH
from associate.store.base import Scope


@pytest.fixture
async def chain(engine, zone):
    """m0 -> m1 -> ... -> m11 linked with DEPENDS_ON."""
    memories = [await engine.memories.create(content=f"step {i}", zone_id=zone.id) for i in range(12)]
    for first, second in zip(memories, memories[1:]):
        await engine.relationships.link(first.id, second.id, "DEPENDS_ON")
    return memories


class TestGetRelated:
    async def test_depth_one(self, engine, chain):
        related = await engine.traversal.get_related(chain[0].id, "DEPENDS_ON", "outgoing", depth=1)

        assert [r.node.id for r in related] == [chain[1].id]
        assert related[0].depth == 1
        assert related[0].direction == "outgoing"
        assert related[0].relationship_type == "DEPENDS_ON"

    async def test_depth_two_in_bfs_order(self, engine, chain):
        related = await engine.traversal.get_related(chain[0].id, "DEPENDS_ON", "outgoing", depth=2)

        assert [(r.node.id, r.depth) for r in related] == [(chain[1].id, 1), (chain[2].id, 2)]

    async def test_incoming(self, engine, chain):
        related = await engine.traversal.get_related(chain[2].id, "DEPENDS_ON", "incoming", depth=1)

        assert [r.node.id for r in related] == [chain[1].id]
        assert related[0].direction == "incoming"

    async def test_depth_is_capped(self, engine, chain):
        related = await engine.traversal.get_related(chain[0].id, "DEPENDS_ON", "outgoing", depth=100)

        assert len(related) == MAX_TRAVERSAL_DEPTH
        assert max(r.depth for r in related) == MAX_TRAVERSAL_DEPTH

    async def test_depth_below_one(self, engine, chain):
        with pytest.raises(InvalidInputError):
            await engine.traversal.get_related(chain[0].id, depth=0)

    async def test_unknown_type(self, engine, chain):
        with pytest.raises(InvalidInputError):
            await engine.traversal.get_related(chain[0].id, "LIKES")

    async def test_missing_start(self, engine):
        assert await engine.traversal.get_related("ghost") == []

    async def test_cycle_terminates_without_duplicates(self, engine, zone):
        a = await engine.memories.create(content="a", zone_id=zone.id)
        b = await engine.memories.create(content="b", zone_id=zone.id)
        c = await engine.memories.create(content="c", zone_id=zone.id)
        await engine.relationships.link(a.id, b.id, "FOLLOWS")
        await engine.relationships.link(b.id, c.id, "FOLLOWS")
        await engine.relationships.link(c.id, a.id, "FOLLOWS")

        related = await engine.traversal.get_related(a.id, "FOLLOWS", "both", depth=10)

        ids = [r.node.id for r in related]
        assert sorted(ids) == sorted([b.id, c.id])
        assert a.id not in ids
        assert all(r.depth == 1 for r in related)

    async def test_all_types_includes_zone(self, engine, zone, chain):
        related = await engine.traversal.get_related(chain[0].id, depth=1)

        kinds = {(r.node.LABEL, r.relationship_type) for r in related}
        assert ("Zone", "BELONGS_TO") in kinds
        assert ("Memory", "DEPENDS_ON") in kinds

    async def test_scope_mismatch_yields_nothing(self, engine, chain):
        other = await engine.zones.create(name="Elsewhere")
        assert await engine.traversal.get_related(chain[0].id, scope=Scope.zone(other.id)) == []

    async def test_hydrated_nodes(self, engine, chain):
        related = await engine.traversal.get_related(chain[0].id, "DEPENDS_ON", "outgoing")
        assert related[0].node.content == "step 1"
