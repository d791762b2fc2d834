"""Breadth-first traversal over typed relationships."""

import logging
from collections import deque

from ..errors import InvalidInputError
from ..models.nodes import RelatedNode, node_from_record
from ..store.base import GraphStore, Scope
from .relationships import validate_direction, validate_relation_type

logger = logging.getLogger(__name__)

# Hard ceiling regardless of the requested depth
MAX_TRAVERSAL_DEPTH = 10


class TraversalEngine:
    """Cycle-safe BFS from a start node, confined to the start node's zone."""

    def __init__(self, store: GraphStore):
        self.store = store

    async def get_related(
        self,
        start_id: str,
        relation_type: str | None = None,
        direction: str = "both",
        depth: int = 1,
        scope: Scope | None = None,
    ) -> list[RelatedNode]:
        """
        Nodes reachable from ``start_id`` in breadth-first order.

        A node is emitted once, at the shallowest depth it is reached; the
        start node is never emitted. Nodes outside the start node's zone are
        neither emitted nor expanded.

        Args:
            start_id: Node to start from
            relation_type: Only follow edges of this type
            direction: Edge direction to follow, relative to the current node
            depth: Maximum hops (capped at MAX_TRAVERSAL_DEPTH)
            scope: When given, a start node outside it yields no results

        Returns:
            RelatedNode entries ordered by depth. Empty when the start is missing.
        """
        direction = validate_direction(direction)
        if relation_type is not None:
            validate_relation_type(relation_type)
        if depth < 1:
            raise InvalidInputError(f"depth must be >= 1, got {depth}")
        if depth > MAX_TRAVERSAL_DEPTH:
            logger.debug(f"Capping traversal depth {depth} at {MAX_TRAVERSAL_DEPTH}")
            depth = MAX_TRAVERSAL_DEPTH

        start = await self.store.get_node(start_id)
        if start is None:
            return []
        if scope is not None and not scope.allows(start.zone_id):
            return []
        zone_id = start.zone_id
        rel_types = [relation_type] if relation_type else None

        visited: set[str] = {start_id}
        results: list[RelatedNode] = []

        # Queue entries: (node_id, hops)
        queue: deque[tuple[str, int]] = deque([(start_id, 0)])

        while queue:
            node_id, hops = queue.popleft()
            if hops >= depth:
                continue

            edges = [e for e in await self.store.get_edges(node_id, direction, rel_types) if e.other(node_id) not in visited]
            records = await self.store.get_nodes(list(dict.fromkeys(e.other(node_id) for e in edges)))

            for edge in edges:
                neighbor_id = edge.other(node_id)
                record = records.get(neighbor_id)
                if neighbor_id in visited or record is None or record.zone_id != zone_id:
                    continue
                visited.add(neighbor_id)
                results.append(
                    RelatedNode(
                        node=node_from_record(record.label, record.props),
                        relationship_type=edge.type,
                        direction=edge.direction_from(node_id),
                        depth=hops + 1,
                    )
                )
                queue.append((neighbor_id, hops + 1))

        return results
