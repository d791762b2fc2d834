"""
Graph schema for the associate knowledge graph.

Defines node labels, relationship types and the endpoint rules between them,
plus the idempotent index statements applied on startup by each backend.

Node Labels:
    :Zone    - Isolation boundary (its zone_id is its own id)
    :Plan    - Container of ordered Tasks, BELONGS_TO one Zone
    :Task    - Unit of work, PART_OF one or more Plans
    :Memory  - Freeform knowledge, BELONGS_TO one Zone

Every node additionally carries the shared :Node label so lookups by id use a
single index.

Relationship Types:
    :BELONGS_TO  - Plan/Memory -> Zone (structural)
    :PART_OF     - Task -> Plan, carries ``position``
    :DEPENDS_ON, :BLOCKS, :FOLLOWS, :RELATES_TO, :REFERENCES, :IMPLEMENTS
                 - Memory/Plan/Task -> Memory/Plan/Task (many-to-many)
"""

import re
from typing import get_args

from ..models.validators import NodeLabel, RelationType

NODE_LABELS: frozenset[str] = frozenset(get_args(NodeLabel))

# Shared label carried by every node
BASE_LABEL = "Node"

# Valid relationship types (whitelist for Cypher injection safety).
# FalkorDB doesn't support parameterized relationship types or labels, so both
# are validated against these sets before string-formatting into queries.
RELATION_TYPES: frozenset[str] = frozenset(get_args(RelationType))

STRUCTURAL_TYPES: frozenset[str] = frozenset({"BELONGS_TO", "PART_OF"})

_CONTENT_KINDS = frozenset({"Memory", "Plan", "Task"})

# rel_type -> (allowed source labels, allowed target labels)
ENDPOINT_RULES: dict[str, tuple[frozenset[str], frozenset[str]]] = {
    "BELONGS_TO": (frozenset({"Plan", "Memory"}), frozenset({"Zone"})),
    "PART_OF": (frozenset({"Task"}), frozenset({"Plan"})),
    **{t: (_CONTENT_KINDS, _CONTENT_KINDS) for t in RELATION_TYPES - STRUCTURAL_TYPES},
}

# Property names are interpolated into queries; keep them to identifiers
PROPERTY_KEY = re.compile(r"^[a-z_][a-z0-9_]*$")

# Cypher statements executed idempotently on graph initialization.
SCHEMA_STATEMENTS: list[str] = [
    f"CREATE INDEX IF NOT EXISTS FOR (n:{BASE_LABEL}) ON (n.id)",
    *(f"CREATE INDEX IF NOT EXISTS FOR (n:{label}) ON (n.zone_id)" for label in sorted(NODE_LABELS)),
    *(f"CREATE INDEX IF NOT EXISTS FOR (n:{label}) ON (n.created_at)" for label in sorted(NODE_LABELS)),
]

# SQLite adjacency-table equivalent
SQLITE_SCHEMA_STATEMENTS: list[str] = [
    """
    CREATE TABLE IF NOT EXISTS nodes (
        id TEXT PRIMARY KEY,
        label TEXT NOT NULL,
        zone_id TEXT,
        created_at REAL NOT NULL,
        props TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS edges (
        from_id TEXT NOT NULL REFERENCES nodes(id) ON DELETE CASCADE,
        to_id TEXT NOT NULL REFERENCES nodes(id) ON DELETE CASCADE,
        rel_type TEXT NOT NULL,
        props TEXT NOT NULL DEFAULT '{}',
        PRIMARY KEY (from_id, to_id, rel_type)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_nodes_label_zone ON nodes(label, zone_id)",
    "CREATE INDEX IF NOT EXISTS idx_nodes_created_at ON nodes(created_at)",
    "CREATE INDEX IF NOT EXISTS idx_edges_to ON edges(to_id, rel_type)",
]


def validate_label(label: str) -> str:
    if label not in NODE_LABELS:
        raise ValueError(f"Invalid node label: {label!r}. Must be one of {sorted(NODE_LABELS)}")
    return label


def validate_relation_type(rel_type: str) -> str:
    if rel_type not in RELATION_TYPES:
        raise ValueError(f"Invalid relation type: {rel_type!r}. Must be one of {sorted(RELATION_TYPES)}")
    return rel_type


def validate_property_key(key: str) -> str:
    if not PROPERTY_KEY.match(key):
        raise ValueError(f"Invalid property name: {key!r}")
    return key
