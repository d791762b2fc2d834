# Copyright 2024 Heinrich Krupp
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
SQLite graph store.

Keeps the graph in two adjacency tables (``nodes`` and ``edges``) with JSON
property columns, using aiosqlite for async access. Suited to single-host
deployments and to running the engine without a graph server; ``:memory:``
keeps everything in-process.

All statements go through one connection. ``transaction()`` serializes callers
with an asyncio lock and wraps their statements in BEGIN/COMMIT, so one
repository call is one atomic unit.
"""

import asyncio
import json
import logging
import os
import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any

import aiosqlite

from ..errors import NotFoundError, SchemaBootstrapError, StoreError, StoreUnavailableError
from .base import EdgeDirection, EdgeRecord, GraphStore, NodeQuery, NodeRecord, Scope
from .schema import SQLITE_SCHEMA_STATEMENTS, validate_label, validate_property_key, validate_relation_type

logger = logging.getLogger(__name__)


class SQLiteGraphStore(GraphStore):
    """Async SQLite adjacency-table graph store."""

    backend_name = "sqlite"

    def __init__(self, db_path: str):
        """
        Initialize the SQLite graph store.

        Args:
            db_path: Path to SQLite database file, or ":memory:"
        """
        self.db_path = db_path
        self._db: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()
        self._in_transaction: ContextVar[bool] = ContextVar(f"sqlite_tx_{id(self)}", default=False)
        self._initialized = False

    async def initialize(self) -> None:
        """Open the connection and create tables if not exists."""
        if self._initialized:
            return

        try:
            directory = os.path.dirname(self.db_path)
            if self.db_path != ":memory:" and directory:
                os.makedirs(directory, exist_ok=True)
            # Autocommit mode; transactions are issued explicitly
            self._db = await aiosqlite.connect(self.db_path, isolation_level=None)
            await self._db.execute("PRAGMA foreign_keys = ON")
        except (sqlite3.Error, OSError) as e:
            raise StoreUnavailableError(f"Cannot open SQLite database at {self.db_path}: {e}") from e

        try:
            for stmt in SQLITE_SCHEMA_STATEMENTS:
                await self._db.execute(stmt)
        except sqlite3.Error as e:
            await self.close()
            raise SchemaBootstrapError(f"SQLite schema bootstrap failed: {e}") from e

        self._initialized = True
        logger.info(f"SQLite graph store initialized at {self.db_path}")

    @property
    def db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise RuntimeError("SQLiteGraphStore not initialized. Call initialize() first.")
        return self._db

    async def ping(self) -> None:
        try:
            await self.db.execute("SELECT 1")
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"SQLite ping failed: {e}") from e

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None
        self._initialized = False

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["SQLiteGraphStore"]:
        if self._in_transaction.get():
            yield self
            return

        async with self._lock:
            token = self._in_transaction.set(True)
            await self.db.execute("BEGIN")
            try:
                yield self
            except BaseException as e:
                if self.db.in_transaction:
                    await self.db.execute("ROLLBACK")
                if isinstance(e, sqlite3.Error):
                    raise StoreError(f"SQLite statement failed: {e}") from e
                raise
            else:
                await self.db.execute("COMMIT")
            finally:
                self._in_transaction.reset(token)

    async def _fetchall(self, sql: str, params: tuple | list = ()) -> list[tuple]:
        cursor = await self.db.execute(sql, params)
        rows = await cursor.fetchall()
        await cursor.close()
        return list(rows)

    # ── Nodes ────────────────────────────────────────────────────────────

    async def create_node(self, label: str, props: dict[str, Any]) -> NodeRecord:
        label = validate_label(label)
        async with self.transaction():
            await self.db.execute(
                "INSERT INTO nodes (id, label, zone_id, created_at, props) VALUES (?, ?, ?, ?, ?)",
                (props["id"], label, props.get("zone_id"), props["created_at"], json.dumps(props)),
            )
        return NodeRecord(label=label, props=dict(props))

    async def get_node(self, node_id: str) -> NodeRecord | None:
        async with self.transaction():
            rows = await self._fetchall("SELECT label, props FROM nodes WHERE id = ?", (node_id,))
        if not rows:
            return None
        return NodeRecord(label=rows[0][0], props=json.loads(rows[0][1]))

    async def get_nodes(self, node_ids: list[str]) -> dict[str, NodeRecord]:
        if not node_ids:
            return {}
        placeholders = ", ".join("?" for _ in node_ids)
        async with self.transaction():
            rows = await self._fetchall(f"SELECT label, props FROM nodes WHERE id IN ({placeholders})", node_ids)
        records = (NodeRecord(label=label, props=json.loads(props)) for label, props in rows)
        return {record.id: record for record in records}

    async def update_node(self, node_id: str, props: dict[str, Any]) -> NodeRecord | None:
        for key in props:
            validate_property_key(key)
        async with self.transaction():
            current = await self.get_node(node_id)
            if current is None:
                return None
            merged = {**current.props, **props}
            await self.db.execute(
                "UPDATE nodes SET zone_id = ?, props = ? WHERE id = ?",
                (merged.get("zone_id"), json.dumps(merged), node_id),
            )
        return NodeRecord(label=current.label, props=merged)

    async def delete_node(self, node_id: str) -> bool:
        async with self.transaction():
            await self.db.execute("DELETE FROM edges WHERE from_id = ? OR to_id = ?", (node_id, node_id))
            cursor = await self.db.execute("DELETE FROM nodes WHERE id = ?", (node_id,))
            deleted = cursor.rowcount > 0
            await cursor.close()
        return deleted

    def _where(self, label: str, scope: Scope, query: NodeQuery | None = None) -> tuple[str, list[Any]]:
        clauses = ["label = ?"]
        params: list[Any] = [validate_label(label)]
        if not scope.unscoped:
            clauses.append("zone_id = ?")
            params.append(scope.zone_id)
        if query is not None:
            for key, value in query.equals.items():
                clauses.append(f"json_extract(props, '$.{validate_property_key(key)}') = ?")
                params.append(value)
            for tag in query.tags:
                clauses.append("EXISTS (SELECT 1 FROM json_each(props, '$.tags') WHERE value = ?)")
                params.append(tag)
            if query.text and query.text_fields:
                matches = [
                    f"instr(lower(json_extract(props, '$.{validate_property_key(f)}')), ?) > 0" for f in query.text_fields
                ]
                clauses.append("(" + " OR ".join(matches) + ")")
                params.extend(query.text.lower() for _ in query.text_fields)
        return " AND ".join(clauses), params

    async def find_nodes(self, query: NodeQuery) -> list[NodeRecord]:
        where, params = self._where(query.label, query.scope, query)
        if query.order_by == "created_at":
            order_expr = "created_at"
        else:
            order_expr = f"json_extract(props, '$.{validate_property_key(query.order_by)}')"
        direction = "DESC" if query.descending else "ASC"
        sql = (
            f"SELECT label, props FROM nodes WHERE {where} "
            f"ORDER BY {order_expr} {direction}, id {direction} LIMIT ? OFFSET ?"
        )
        async with self.transaction():
            rows = await self._fetchall(sql, [*params, query.limit, query.offset])
        return [NodeRecord(label=label, props=json.loads(props)) for label, props in rows]

    async def count_nodes(self, label: str, scope: Scope) -> int:
        where, params = self._where(label, scope)
        async with self.transaction():
            rows = await self._fetchall(f"SELECT COUNT(*) FROM nodes WHERE {where}", params)
        return int(rows[0][0])

    # ── Edges ────────────────────────────────────────────────────────────

    async def merge_edge(
        self, from_id: str, to_id: str, rel_type: str, props: dict[str, Any] | None = None
    ) -> EdgeRecord:
        rel_type = validate_relation_type(rel_type)
        async with self.transaction():
            endpoints = await self._fetchall("SELECT COUNT(*) FROM nodes WHERE id IN (?, ?)", (from_id, to_id))
            if endpoints[0][0] < 2:
                raise NotFoundError("Edge endpoint", f"{from_id} -> {to_id}")
            existing = await self.get_edge(from_id, to_id, rel_type)
            merged = {**(existing.props if existing else {}), **(props or {})}
            await self.db.execute(
                "INSERT INTO edges (from_id, to_id, rel_type, props) VALUES (?, ?, ?, ?) "
                "ON CONFLICT (from_id, to_id, rel_type) DO UPDATE SET props = excluded.props",
                (from_id, to_id, rel_type, json.dumps(merged)),
            )
        return EdgeRecord(from_id=from_id, to_id=to_id, type=rel_type, props=merged)

    async def get_edge(self, from_id: str, to_id: str, rel_type: str) -> EdgeRecord | None:
        async with self.transaction():
            rows = await self._fetchall(
                "SELECT props FROM edges WHERE from_id = ? AND to_id = ? AND rel_type = ?",
                (from_id, to_id, rel_type),
            )
        if not rows:
            return None
        return EdgeRecord(from_id=from_id, to_id=to_id, type=rel_type, props=json.loads(rows[0][0]))

    async def delete_edge(self, from_id: str, to_id: str, rel_type: str) -> bool:
        async with self.transaction():
            cursor = await self.db.execute(
                "DELETE FROM edges WHERE from_id = ? AND to_id = ? AND rel_type = ?",
                (from_id, to_id, rel_type),
            )
            deleted = cursor.rowcount > 0
            await cursor.close()
        return deleted

    async def get_edges(
        self,
        node_id: str,
        direction: EdgeDirection = "both",
        rel_types: list[str] | None = None,
    ) -> list[EdgeRecord]:
        endpoint = {"outgoing": "from_id = ?", "incoming": "to_id = ?", "both": "(from_id = ? OR to_id = ?)"}
        clauses = [endpoint[direction]]
        params: list[Any] = [node_id, node_id] if direction == "both" else [node_id]
        if rel_types:
            clauses.append(f"rel_type IN ({', '.join('?' for _ in rel_types)})")
            params.extend(rel_types)
        sql = f"SELECT from_id, to_id, rel_type, props FROM edges WHERE {' AND '.join(clauses)} ORDER BY rowid"
        async with self.transaction():
            rows = await self._fetchall(sql, params)
        return [EdgeRecord(from_id=f, to_id=t, type=r, props=json.loads(p)) for f, t, r, p in rows]
