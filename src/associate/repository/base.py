"""
Shared repository machinery.

A repository owns one node kind: it validates input through the pydantic
model, assigns ids and timestamps, scopes every listing by zone and writes
the structural edges a create implies. Optional relationship lists are
validated in full before the first write.
"""

import logging
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import ValidationError

from ..errors import InvalidInputError, IsolationViolationError, NotFoundError
from ..graph.relationships import RelationshipEngine
from ..models.nodes import GraphNode
from ..store.base import GraphStore, NodeQuery, NodeRecord, Scope

logger = logging.getLogger(__name__)

N = TypeVar("N", bound=GraphNode)

DEFAULT_LIMIT = 50
MAX_LIMIT = 500

Relations = dict[str, list[str]]


def scope_for(zone_id: str | None) -> Scope:
    """Zone scope when a zone is given, otherwise an explicit global scope."""
    return Scope.zone(zone_id) if zone_id else Scope.everywhere()


def check_page(limit: int, offset: int) -> None:
    if not 1 <= limit <= MAX_LIMIT:
        raise InvalidInputError(f"limit must be between 1 and {MAX_LIMIT}, got {limit}")
    if offset < 0:
        raise InvalidInputError(f"offset must be >= 0, got {offset}")


def validation_message(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item["loc"]) or "input"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


class Repository(Generic[N]):
    """Base CRUD over one node label."""

    MODEL: ClassVar[type[GraphNode]]

    def __init__(self, store: GraphStore, relationships: RelationshipEngine):
        self.store = store
        self.relationships = relationships

    @property
    def label(self) -> str:
        return self.MODEL.LABEL

    def _build(self, **fields: Any) -> N:
        try:
            return self.MODEL.new(**fields)  # type: ignore[return-value]
        except ValidationError as e:
            raise InvalidInputError(f"Invalid {self.label}: {validation_message(e)}") from e

    def _revise(self, node: N, changes: dict[str, Any]) -> N:
        """Apply a partial update; ``None`` values leave the field unchanged."""
        changes = {k: v for k, v in changes.items() if v is not None}
        try:
            revised = self.MODEL.model_validate({**node.model_dump(), **changes})
        except ValidationError as e:
            raise InvalidInputError(f"Invalid {self.label}: {validation_message(e)}") from e
        revised.touch()
        return revised  # type: ignore[return-value]

    def _hydrate(self, record: NodeRecord) -> N:
        return self.MODEL.from_props(record.props)  # type: ignore[return-value]

    async def _record(self, node_id: str, scope: Scope | None = None) -> NodeRecord | None:
        record = await self.store.get_node(node_id)
        if record is None or record.label != self.label:
            return None
        if scope is not None and not scope.allows(record.zone_id):
            return None
        return record

    async def get(self, node_id: str, scope: Scope | None = None) -> N | None:
        """Fetch by id; None when missing, of another kind, or outside ``scope``."""
        record = await self._record(node_id, scope)
        return self._hydrate(record) if record else None

    async def require(self, node_id: str, scope: Scope | None = None) -> N:
        """Fetch for mutation; missing raises NotFoundError, out-of-scope IsolationViolationError."""
        record = await self._record(node_id)
        if record is None:
            raise NotFoundError(self.label, node_id)
        if scope is not None and not scope.allows(record.zone_id):
            raise IsolationViolationError(f"{self.label} {node_id} is outside zone {scope.zone_id}")
        return self._hydrate(record)

    async def _validate_relations(self, node: GraphNode, relations: Relations | None) -> list[tuple[str, str]]:
        """Check every requested edge; returns ``(rel_type, target_id)`` pairs to write."""
        pending: list[tuple[str, str]] = []
        if not relations:
            return pending
        source = NodeRecord(label=node.LABEL, props=node.to_props())
        for rel_type, target_ids in relations.items():
            for target_id in dict.fromkeys(target_ids):
                await self.relationships.ensure_linkable(source, target_id, rel_type)
                pending.append((rel_type, target_id))
        return pending

    async def _write_relations(self, node_id: str, pending: list[tuple[str, str]]) -> None:
        for rel_type, target_id in pending:
            await self.store.merge_edge(node_id, target_id, rel_type)

    def _query(
        self,
        scope: Scope,
        *,
        tags: list[str] | None = None,
        text: str | None = None,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
        **equals: Any,
    ) -> NodeQuery:
        check_page(limit, offset)
        return NodeQuery(
            label=self.label,
            scope=scope,
            equals={k: v for k, v in equals.items() if v is not None},
            tags=list(tags or []),
            text=text or None,
            text_fields=self.MODEL.TEXT_FIELDS,
            limit=limit,
            offset=offset,
        )

    async def find(self, query: NodeQuery) -> list[N]:
        return [self._hydrate(record) for record in await self.store.find_nodes(query)]

    async def records_in_zone(self, label: str, zone_id: str) -> list[NodeRecord]:
        """Every node of ``label`` in a zone, paging through the store."""
        records: list[NodeRecord] = []
        offset = 0
        while True:
            page = await self.store.find_nodes(
                NodeQuery(label=label, scope=Scope.zone(zone_id), limit=MAX_LIMIT, offset=offset)
            )
            records.extend(page)
            if len(page) < MAX_LIMIT:
                return records
            offset += MAX_LIMIT

    async def _save(self, node: N) -> N:
        record = await self.store.update_node(node.id, node.to_props())
        if record is None:
            raise NotFoundError(self.label, node.id)
        return node

    async def _delete(self, node_id: str, scope: Scope | None = None) -> None:
        async with self.store.transaction():
            await self.require(node_id, scope)
            await self.store.delete_node(node_id)
        logger.info(f"Deleted {self.label} {node_id}")
