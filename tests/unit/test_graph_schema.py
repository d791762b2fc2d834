"""
Unit tests for graph schema definitions.

Validates the schema statements, the label/relationship whitelists and the
endpoint rules between node kinds.
"""

import pytest

from associate.store.schema import (
    BASE_LABEL,
    ENDPOINT_RULES,
    NODE_LABELS,
    RELATION_TYPES,
    SCHEMA_STATEMENTS,
    SQLITE_SCHEMA_STATEMENTS,
    validate_label,
    validate_property_key,
    validate_relation_type,
)


class TestGraphSchema:
    """Test graph schema definitions."""

    def test_schema_statements_not_empty(self):
        assert len(SCHEMA_STATEMENTS) > 0

    def test_all_statements_are_index_creation(self):
        """All schema statements should be idempotent index creation."""
        for stmt in SCHEMA_STATEMENTS:
            assert "CREATE INDEX IF NOT EXISTS" in stmt

    def test_id_index_on_base_label(self):
        """id index on the shared label is required for O(1) node lookup."""
        assert any(f"(n:{BASE_LABEL}) ON (n.id)" in stmt for stmt in SCHEMA_STATEMENTS)

    def test_zone_index_per_label(self):
        for label in NODE_LABELS:
            assert any(f"(n:{label}) ON (n.zone_id)" in stmt for stmt in SCHEMA_STATEMENTS)

    def test_sqlite_schema_idempotent(self):
        for stmt in SQLITE_SCHEMA_STATEMENTS:
            assert "IF NOT EXISTS" in stmt


class TestRelationTypes:
    """Test the typed relationship whitelist."""

    def test_relation_types_is_frozenset(self):
        """Must be immutable to prevent runtime modification."""
        assert isinstance(RELATION_TYPES, frozenset)

    def test_relation_types_complete(self):
        assert RELATION_TYPES == {
            "BELONGS_TO",
            "PART_OF",
            "DEPENDS_ON",
            "BLOCKS",
            "FOLLOWS",
            "RELATES_TO",
            "REFERENCES",
            "IMPLEMENTS",
        }

    def test_every_type_has_endpoint_rule(self):
        assert set(ENDPOINT_RULES) == RELATION_TYPES

    def test_structural_endpoints(self):
        sources, targets = ENDPOINT_RULES["BELONGS_TO"]
        assert sources == {"Plan", "Memory"}
        assert targets == {"Zone"}

        sources, targets = ENDPOINT_RULES["PART_OF"]
        assert sources == {"Task"}
        assert targets == {"Plan"}

    def test_zones_never_in_content_relations(self):
        sources, targets = ENDPOINT_RULES["DEPENDS_ON"]
        assert "Zone" not in sources
        assert "Zone" not in targets


class TestValidators:
    def test_valid_label(self):
        assert validate_label("Task") == "Task"

    def test_invalid_label_rejected(self):
        with pytest.raises(ValueError):
            validate_label("Task) DETACH DELETE (n")

    def test_invalid_relation_type_rejected(self):
        with pytest.raises(ValueError):
            validate_relation_type("LIKES")

    @pytest.mark.parametrize("key", ["content", "zone_id", "ui_x"])
    def test_valid_property_keys(self, key):
        assert validate_property_key(key) == key

    @pytest.mark.parametrize("key", ["Content", "a-b", "x; DROP", "", "1abc"])
    def test_invalid_property_keys(self, key):
        with pytest.raises(ValueError):
            validate_property_key(key)
