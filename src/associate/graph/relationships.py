"""
Relationship engine: typed edge creation/removal with endpoint, zone and
structural rules, plus the plan-delete cascade.

Endpoint rules live in ``store.schema.ENDPOINT_RULES``. DEPENDS_ON and BLOCKS
are independent relations: neither is ever created or removed as the inverse
of the other.
"""

import logging
import math
from typing import Any

from ..errors import InvalidInputError, IsolationViolationError, NotFoundError
from ..models.nodes import Relationship
from ..store.base import EdgeDirection, GraphStore, NodeRecord
from ..store.schema import ENDPOINT_RULES, PROPERTY_KEY, RELATION_TYPES
from .positions import append_position

logger = logging.getLogger(__name__)

DIRECTIONS = ("incoming", "outgoing", "both")


def validate_relation_type(rel_type: str) -> str:
    if rel_type not in RELATION_TYPES:
        raise InvalidInputError(f"Unknown relationship type {rel_type!r}. Must be one of {sorted(RELATION_TYPES)}")
    return rel_type


def validate_direction(direction: str) -> EdgeDirection:
    if direction not in DIRECTIONS:
        raise InvalidInputError(f"Invalid direction {direction!r}. Must be one of {list(DIRECTIONS)}")
    return direction  # type: ignore[return-value]


def check_endpoint_kinds(from_label: str, to_label: str, rel_type: str) -> None:
    sources, targets = ENDPOINT_RULES[rel_type]
    if from_label not in sources or to_label not in targets:
        raise InvalidInputError(
            f"{rel_type} cannot connect {from_label} -> {to_label} "
            f"(allowed: {sorted(sources)} -> {sorted(targets)})"
        )


def check_property_keys(properties: dict[str, Any]) -> None:
    for key in properties:
        if not isinstance(key, str) or not PROPERTY_KEY.match(key):
            raise InvalidInputError(
                f"Invalid relationship property name {key!r}: use lowercase letters, digits and underscores"
            )


def check_position(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise InvalidInputError(f"PART_OF position must be a finite number, got {value!r}")
    return float(value)


def _to_relationship(edge, node_id: str | None = None) -> Relationship:
    return Relationship(
        from_id=edge.from_id,
        to_id=edge.to_id,
        type=edge.type,
        properties=edge.props,
        direction=edge.direction_from(node_id) if node_id else None,
    )


class RelationshipEngine:
    """Creates and removes typed edges while enforcing graph invariants."""

    def __init__(self, store: GraphStore):
        self.store = store

    async def _require(self, node_id: str) -> NodeRecord:
        record = await self.store.get_node(node_id)
        if record is None:
            raise NotFoundError("Node", node_id)
        return record

    async def ensure_linkable(self, source: NodeRecord, to_id: str, rel_type: str) -> NodeRecord:
        """
        Validate a prospective edge without writing it.

        ``source`` may be a node that is about to be created, so repositories
        can check every requested relationship before the first write.

        Returns:
            The target node record
        """
        validate_relation_type(rel_type)
        if to_id == source.id:
            raise InvalidInputError(f"A node cannot have a {rel_type} relationship with itself")
        target = await self._require(to_id)
        check_endpoint_kinds(source.label, target.label, rel_type)
        if source.zone_id != target.zone_id:
            raise IsolationViolationError(
                f"Cannot link {source.label} {source.id} (zone {source.zone_id}) to "
                f"{target.label} {target.id} (zone {target.zone_id})"
            )
        return target

    async def plan_task_positions(self, plan_id: str) -> list[tuple[str, float]]:
        """``(task_id, position)`` for every task in the plan, ordered by position."""
        edges = await self.store.get_edges(plan_id, "incoming", ["PART_OF"])
        positions = [(edge.from_id, float(edge.props.get("position", 0.0))) for edge in edges]
        return sorted(positions, key=lambda item: item[1])

    async def link(
        self, from_id: str, to_id: str, rel_type: str, properties: dict[str, Any] | None = None
    ) -> Relationship:
        """
        Create a typed edge (idempotent).

        PART_OF links append the task at the end of the plan unless a
        ``position`` property is supplied; a supplied position must be a finite
        number not held by another task of the plan. BELONGS_TO only succeeds for the
        node's own zone, where it is a no-op.
        """
        validate_relation_type(rel_type)
        props = dict(properties or {})
        check_property_keys(props)
        if rel_type == "PART_OF" and "position" in props:
            props["position"] = check_position(props["position"])

        async with self.store.transaction():
            source = await self._require(from_id)
            await self.ensure_linkable(source, to_id, rel_type)

            existing = await self.store.get_edge(from_id, to_id, rel_type)
            if rel_type == "PART_OF":
                siblings = await self.plan_task_positions(to_id)
                if "position" not in props:
                    if existing is not None:
                        return _to_relationship(existing)
                    props["position"] = append_position(siblings[-1][1] if siblings else None)
                elif any(pos == props["position"] for task_id, pos in siblings if task_id != from_id):
                    raise InvalidInputError(f"Position {props['position']} is already taken in plan {to_id}")

            edge = await self.store.merge_edge(from_id, to_id, rel_type, props or None)

        logger.info(f"Linked {from_id} -[{rel_type}]-> {to_id}")
        return _to_relationship(edge)

    async def unlink(self, from_id: str, to_id: str, rel_type: str) -> bool:
        """
        Remove one edge. A missing edge is a no-op returning False.

        Structural edges are protected: BELONGS_TO never, and a task's last
        PART_OF never (delete the task instead).
        """
        validate_relation_type(rel_type)
        if rel_type == "BELONGS_TO":
            raise InvalidInputError("BELONGS_TO is structural; delete the node instead of unlinking its zone")

        async with self.store.transaction():
            edge = await self.store.get_edge(from_id, to_id, rel_type)
            if edge is None:
                return False
            if rel_type == "PART_OF":
                memberships = await self.store.get_edges(from_id, "outgoing", ["PART_OF"])
                if len(memberships) <= 1:
                    raise InvalidInputError(f"Task {from_id} must belong to at least one plan; delete the task instead")
            deleted = await self.store.delete_edge(from_id, to_id, rel_type)

        logger.info(f"Unlinked {from_id} -[{rel_type}]-> {to_id}")
        return deleted

    async def list_relations(
        self, node_id: str, direction: str = "both", rel_type: str | None = None
    ) -> list[Relationship]:
        direction = validate_direction(direction)
        if rel_type is not None:
            validate_relation_type(rel_type)
        await self._require(node_id)
        edges = await self.store.get_edges(node_id, direction, [rel_type] if rel_type else None)
        return [_to_relationship(edge, node_id) for edge in edges]

    async def cascade_plan_delete(self, plan_id: str) -> int:
        """
        Delete a plan, detaching its tasks and deleting any task left in no plan.

        Returns:
            Number of orphaned tasks deleted
        """
        async with self.store.transaction():
            part_of = await self.store.get_edges(plan_id, "incoming", ["PART_OF"])
            for edge in part_of:
                await self.store.delete_edge(edge.from_id, edge.to_id, "PART_OF")

            tasks_deleted = 0
            for task_id in dict.fromkeys(edge.from_id for edge in part_of):
                remaining = await self.store.get_edges(task_id, "outgoing", ["PART_OF"])
                if not remaining:
                    await self.store.delete_node(task_id)
                    tasks_deleted += 1

            await self.store.delete_node(plan_id)

        logger.info(f"Deleted plan {plan_id} ({tasks_deleted} orphaned tasks removed)")
        return tasks_deleted
