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
Backing graph store contract.

A GraphStore holds labelled nodes (flat property maps keyed by ``id``) and
typed directed edges with their own property maps. Repositories, the
relationship engine and the traversal engine are written against these
primitives only, so every backend gets the same invariants.

Every node query carries a mandatory ``Scope``: either one zone's isolation
key or an explicit ``Scope.everywhere()``. There is no unscoped variant.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from typing import Any, Literal

EdgeDirection = Literal["incoming", "outgoing", "both"]


@dataclass(frozen=True)
class Scope:
    """Isolation boundary for a query."""

    zone_id: str | None = None
    unscoped: bool = False

    def __post_init__(self):
        if self.zone_id is None and not self.unscoped:
            raise ValueError("Scope needs a zone id; use Scope.everywhere() for an unscoped read")

    @classmethod
    def zone(cls, zone_id: str) -> "Scope":
        return cls(zone_id=zone_id)

    @classmethod
    def everywhere(cls) -> "Scope":
        return cls(unscoped=True)

    def allows(self, zone_id: str | None) -> bool:
        return self.unscoped or zone_id == self.zone_id


@dataclass
class NodeRecord:
    """A stored node: its label and raw property map."""

    label: str
    props: dict[str, Any]

    @property
    def id(self) -> str:
        return self.props["id"]

    @property
    def zone_id(self) -> str | None:
        return self.props.get("zone_id")


@dataclass
class EdgeRecord:
    """A stored edge."""

    from_id: str
    to_id: str
    type: str
    props: dict[str, Any] = field(default_factory=dict)

    def other(self, node_id: str) -> str:
        """The endpoint that is not ``node_id``."""
        return self.to_id if self.from_id == node_id else self.from_id

    def direction_from(self, node_id: str) -> EdgeDirection:
        return "outgoing" if self.from_id == node_id else "incoming"


@dataclass
class NodeQuery:
    """
    Filtered node listing.

    Args:
        label: Node label to list
        scope: Isolation scope (required)
        equals: Exact-match property filters
        tags: Node must carry ALL of these tags
        text: Case-insensitive substring matched against ``text_fields`` (any)
        text_fields: Properties searched by ``text``
        order_by: Property to order by
        descending: Sort direction
        limit: Page size
        offset: Page start
    """

    label: str
    scope: Scope
    equals: dict[str, Any] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)
    text: str | None = None
    text_fields: tuple[str, ...] = ()
    order_by: str = "created_at"
    descending: bool = True
    limit: int = 50
    offset: int = 0


class GraphStore(ABC):
    """Abstract backing store for the graph engine."""

    backend_name: str = "abstract"

    @abstractmethod
    async def initialize(self) -> None:
        """Open the connection, verify it and apply schema.

        Raises:
            StoreUnavailableError: store unreachable (retryable)
            SchemaBootstrapError: schema could not be applied (fatal)
        """

    @abstractmethod
    async def ping(self) -> None:
        """Round-trip to the store; raises StoreUnavailableError on failure."""

    @abstractmethod
    async def close(self) -> None:
        """Release connections."""

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager["GraphStore"]:
        """Group the statements of one repository call."""

    # ── Nodes ────────────────────────────────────────────────────────────

    @abstractmethod
    async def create_node(self, label: str, props: dict[str, Any]) -> NodeRecord:
        """Insert a node; ``props`` must include ``id``."""

    @abstractmethod
    async def get_node(self, node_id: str) -> NodeRecord | None:
        """Fetch a node by id regardless of label."""

    @abstractmethod
    async def get_nodes(self, node_ids: list[str]) -> dict[str, NodeRecord]:
        """Fetch many nodes by id; missing ids are absent from the result."""

    @abstractmethod
    async def update_node(self, node_id: str, props: dict[str, Any]) -> NodeRecord | None:
        """Overwrite the given properties; returns None if the node is missing."""

    @abstractmethod
    async def delete_node(self, node_id: str) -> bool:
        """Delete a node and every edge touching it."""

    @abstractmethod
    async def find_nodes(self, query: NodeQuery) -> list[NodeRecord]:
        """List nodes matching ``query``."""

    @abstractmethod
    async def count_nodes(self, label: str, scope: Scope) -> int:
        """Count nodes of ``label`` inside ``scope``."""

    # ── Edges ────────────────────────────────────────────────────────────

    @abstractmethod
    async def merge_edge(
        self, from_id: str, to_id: str, rel_type: str, props: dict[str, Any] | None = None
    ) -> EdgeRecord:
        """Create the edge if absent (idempotent); ``props`` are set either way."""

    @abstractmethod
    async def get_edge(self, from_id: str, to_id: str, rel_type: str) -> EdgeRecord | None:
        """Fetch a single edge."""

    @abstractmethod
    async def delete_edge(self, from_id: str, to_id: str, rel_type: str) -> bool:
        """Remove an edge; False if it did not exist."""

    @abstractmethod
    async def get_edges(
        self,
        node_id: str,
        direction: EdgeDirection = "both",
        rel_types: list[str] | None = None,
    ) -> list[EdgeRecord]:
        """Edges touching ``node_id`` in ``direction``, optionally filtered by type."""

