"""
FalkorDB graph store.

Native property-graph backend: nodes carry their kind label plus the shared
:Node label, relationships are real typed edges, and every primitive is one
Cypher statement. Connection pooling follows the redis asyncio
BlockingConnectionPool that FalkorDB's async client runs on.

FalkorDB executes each statement atomically; a repository call spanning
several statements is not isolated from concurrent writers.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from falkordb.asyncio import FalkorDB
from redis.asyncio import BlockingConnectionPool
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from ..errors import NotFoundError, SchemaBootstrapError, StoreError, StoreUnavailableError
from .base import EdgeDirection, EdgeRecord, GraphStore, NodeQuery, NodeRecord, Scope
from .schema import (
    BASE_LABEL,
    SCHEMA_STATEMENTS,
    validate_label,
    validate_property_key,
    validate_relation_type,
)

logger = logging.getLogger(__name__)

_UNREACHABLE = (RedisConnectionError, RedisTimeoutError, OSError)


def _set_clause(var: str, props: dict[str, Any], prefix: str) -> tuple[str, dict[str, Any]]:
    """Build ``SET var.key = $prefix_key, ...`` for whitelisted keys."""
    assignments = []
    params = {}
    for key, value in props.items():
        validate_property_key(key)
        assignments.append(f"{var}.{key} = ${prefix}_{key}")
        params[f"{prefix}_{key}"] = value
    return ", ".join(assignments), params


def _node_record(node) -> NodeRecord:
    labels = [label for label in node.labels if label != BASE_LABEL]
    return NodeRecord(label=labels[0], props=dict(node.properties))


class FalkorDBGraphStore(GraphStore):
    """
    Async FalkorDB store for the associate knowledge graph.

    Owns a Redis connection pool shared by every query on the selected graph.
    """

    backend_name = "falkordb"

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        password: str | None = None,
        graph_name: str = "associate",
        max_connections: int = 16,
    ):
        self.host = host
        self.port = port
        self.password = password
        self.graph_name = graph_name
        self.max_connections = max_connections

        self._pool: BlockingConnectionPool | None = None
        self._db: FalkorDB | None = None
        self._graph = None
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize connection pool, select graph, verify and apply schema."""
        if self._initialized:
            return

        self._pool = BlockingConnectionPool(
            host=self.host,
            port=self.port,
            password=self.password,
            max_connections=self.max_connections,
            timeout=None,
            decode_responses=True,
        )
        self._db = FalkorDB(connection_pool=self._pool)
        self._graph = self._db.select_graph(self.graph_name)

        try:
            await self.ping()
        except StoreUnavailableError:
            await self.close()
            raise

        # Apply schema idempotently
        for stmt in SCHEMA_STATEMENTS:
            try:
                await self._graph.query(stmt)
            except _UNREACHABLE as e:
                await self.close()
                raise StoreUnavailableError(f"FalkorDB went away during schema bootstrap: {e}") from e
            except Exception as e:
                # Index already exists is not an error
                if "already indexed" in str(e).lower():
                    continue
                await self.close()
                raise SchemaBootstrapError(f"Schema statement failed: {stmt} -> {e}") from e

        self._initialized = True
        logger.info(f"FalkorDB graph store initialized: {self.host}:{self.port}/{self.graph_name}")

    @property
    def graph(self):
        """Expose graph for direct query access."""
        if self._graph is None:
            raise RuntimeError("FalkorDBGraphStore not initialized. Call initialize() first.")
        return self._graph

    async def ping(self) -> None:
        try:
            await self.graph.query("RETURN 1")
        except _UNREACHABLE as e:
            raise StoreUnavailableError(f"FalkorDB unreachable at {self.host}:{self.port}: {e}") from e

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.disconnect()
        self._pool = None
        self._db = None
        self._graph = None
        self._initialized = False
        logger.info("FalkorDB graph store closed")

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["FalkorDBGraphStore"]:
        yield self

    async def _query(self, cypher: str, params: dict[str, Any] | None = None) -> list[list[Any]]:
        try:
            result = await self.graph.query(cypher, params=params or {})
        except _UNREACHABLE as e:
            raise StoreUnavailableError(f"FalkorDB unreachable: {e}") from e
        except RedisError as e:
            raise StoreError(f"FalkorDB query failed: {e}") from e
        return result.result_set

    # ── Nodes ────────────────────────────────────────────────────────────

    async def create_node(self, label: str, props: dict[str, Any]) -> NodeRecord:
        label = validate_label(label)
        assignments, params = _set_clause("n", props, "p")
        await self._query(f"CREATE (n:{BASE_LABEL}:{label}) SET {assignments}", params)
        return NodeRecord(label=label, props=dict(props))

    async def get_node(self, node_id: str) -> NodeRecord | None:
        rows = await self._query(f"MATCH (n:{BASE_LABEL} {{id: $id}}) RETURN n", {"id": node_id})
        return _node_record(rows[0][0]) if rows else None

    async def get_nodes(self, node_ids: list[str]) -> dict[str, NodeRecord]:
        if not node_ids:
            return {}
        rows = await self._query(f"MATCH (n:{BASE_LABEL}) WHERE n.id IN $ids RETURN n", {"ids": list(node_ids)})
        records = (_node_record(row[0]) for row in rows)
        return {record.id: record for record in records}

    async def update_node(self, node_id: str, props: dict[str, Any]) -> NodeRecord | None:
        if not props:
            return await self.get_node(node_id)
        assignments, params = _set_clause("n", props, "p")
        params["id"] = node_id
        rows = await self._query(f"MATCH (n:{BASE_LABEL} {{id: $id}}) SET {assignments} RETURN n", params)
        return _node_record(rows[0][0]) if rows else None

    async def delete_node(self, node_id: str) -> bool:
        rows = await self._query(
            f"MATCH (n:{BASE_LABEL} {{id: $id}}) DETACH DELETE n RETURN count(*)",
            {"id": node_id},
        )
        return bool(rows and rows[0][0])

    def _where(self, scope: Scope, query: NodeQuery | None = None) -> tuple[str, dict[str, Any]]:
        clauses = []
        params: dict[str, Any] = {}
        if not scope.unscoped:
            clauses.append("n.zone_id = $zone_id")
            params["zone_id"] = scope.zone_id
        if query is not None:
            for key, value in query.equals.items():
                validate_property_key(key)
                clauses.append(f"n.{key} = $eq_{key}")
                params[f"eq_{key}"] = value
            if query.tags:
                clauses.append("ALL(t IN $tags WHERE t IN n.tags)")
                params["tags"] = list(query.tags)
            if query.text and query.text_fields:
                matches = [f"toLower(n.{validate_property_key(f)}) CONTAINS $text" for f in query.text_fields]
                clauses.append("(" + " OR ".join(matches) + ")")
                params["text"] = query.text.lower()
        return (" WHERE " + " AND ".join(clauses)) if clauses else "", params

    async def find_nodes(self, query: NodeQuery) -> list[NodeRecord]:
        label = validate_label(query.label)
        where, params = self._where(query.scope, query)
        direction = "DESC" if query.descending else "ASC"
        order = f"n.{validate_property_key(query.order_by)} {direction}, n.id {direction}"
        params.update(offset=query.offset, limit=query.limit)
        rows = await self._query(
            f"MATCH (n:{label}){where} RETURN n ORDER BY {order} SKIP $offset LIMIT $limit",
            params,
        )
        return [_node_record(row[0]) for row in rows]

    async def count_nodes(self, label: str, scope: Scope) -> int:
        label = validate_label(label)
        where, params = self._where(scope)
        rows = await self._query(f"MATCH (n:{label}){where} RETURN count(n)", params)
        return int(rows[0][0]) if rows else 0

    # ── Edges ────────────────────────────────────────────────────────────

    async def merge_edge(
        self, from_id: str, to_id: str, rel_type: str, props: dict[str, Any] | None = None
    ) -> EdgeRecord:
        """
        Create a typed edge (MERGE = idempotent).

        Edge properties are overwritten on every call, so repeating a link with
        new properties updates them in place.
        """
        rel_type = validate_relation_type(rel_type)
        params: dict[str, Any] = {"from_id": from_id, "to_id": to_id}
        set_part = ""
        if props:
            assignments, edge_params = _set_clause("e", props, "e")
            set_part = f" SET {assignments}"
            params.update(edge_params)
        rows = await self._query(
            f"MATCH (a:{BASE_LABEL} {{id: $from_id}}), (b:{BASE_LABEL} {{id: $to_id}}) "
            f"MERGE (a)-[e:{rel_type}]->(b){set_part} RETURN e",
            params,
        )
        if not rows:
            raise NotFoundError("Edge endpoint", f"{from_id} -> {to_id}")
        return EdgeRecord(from_id=from_id, to_id=to_id, type=rel_type, props=dict(rows[0][0].properties))

    async def get_edge(self, from_id: str, to_id: str, rel_type: str) -> EdgeRecord | None:
        rel_type = validate_relation_type(rel_type)
        rows = await self._query(
            f"MATCH (a:{BASE_LABEL} {{id: $from_id}})-[e:{rel_type}]->(b:{BASE_LABEL} {{id: $to_id}}) RETURN e",
            {"from_id": from_id, "to_id": to_id},
        )
        if not rows:
            return None
        return EdgeRecord(from_id=from_id, to_id=to_id, type=rel_type, props=dict(rows[0][0].properties))

    async def delete_edge(self, from_id: str, to_id: str, rel_type: str) -> bool:
        rel_type = validate_relation_type(rel_type)
        rows = await self._query(
            f"MATCH (a:{BASE_LABEL} {{id: $from_id}})-[e:{rel_type}]->(b:{BASE_LABEL} {{id: $to_id}}) "
            "DELETE e RETURN count(*)",
            {"from_id": from_id, "to_id": to_id},
        )
        return bool(rows and rows[0][0])

    async def get_edges(
        self,
        node_id: str,
        direction: EdgeDirection = "both",
        rel_types: list[str] | None = None,
    ) -> list[EdgeRecord]:
        params: dict[str, Any] = {"id": node_id}
        type_filter = ""
        if rel_types:
            params["types"] = [validate_relation_type(t) for t in rel_types]
            type_filter = " WHERE type(e) IN $types"

        patterns = []
        if direction in ("outgoing", "both"):
            patterns.append(f"MATCH (a:{BASE_LABEL} {{id: $id}})-[e]->(b:{BASE_LABEL})")
        if direction in ("incoming", "both"):
            patterns.append(f"MATCH (a:{BASE_LABEL})-[e]->(b:{BASE_LABEL} {{id: $id}})")

        edges = []
        for pattern in patterns:
            rows = await self._query(f"{pattern}{type_filter} RETURN a.id, type(e), b.id, e", params)
            edges.extend(
                EdgeRecord(from_id=row[0], to_id=row[2], type=row[1], props=dict(row[3].properties)) for row in rows
            )
        return edges
