"""
Unit tests for node models, shared validators and MCP input models.
"""

import json

import pytest
from pydantic import ValidationError

from associate.models.mcp_inputs import (
    AddMemoryParams,
    CreateTaskParams,
    GetRelatedParams,
    ListTasksParams,
    SearchMemoriesParams,
)
from associate.models.nodes import Memory, Plan, Task, Zone, float_to_iso, node_from_record
from associate.models.validators import normalize_tags


class TestNormalizeTags:
    def test_comma_string(self):
        assert normalize_tags("a, b ,c") == ["a", "b", "c"]

    def test_list_deduplicated(self):
        assert normalize_tags(["a", None, " b ", "a", ""]) == ["a", "b"]

    def test_none(self):
        assert normalize_tags(None) == []


class TestNodeModels:
    def test_new_assigns_id_and_timestamps(self):
        memory = Memory.new(content="hello", zone_id="z1")
        assert memory.id
        assert memory.created_at == memory.updated_at
        assert memory.type == "Memory"

    def test_ids_unique(self):
        assert Task.new(content="a", zone_id="z").id != Task.new(content="a", zone_id="z").id

    def test_zone_scopes_itself(self):
        zone = Zone.new(name="Work")
        assert zone.zone_id == zone.id

    def test_defaults(self):
        assert Plan.new(name="p", zone_id="z").status == "active"
        assert Task.new(content="t", zone_id="z").status == "pending"

    def test_blank_content_rejected(self):
        with pytest.raises(ValidationError):
            Memory.new(content="   ", zone_id="z")

    def test_bad_status_rejected(self):
        with pytest.raises(ValidationError):
            Task.new(content="t", zone_id="z", status="done")

    def test_props_round_trip_keeps_metadata(self):
        metadata = {"ui_x": 10.5, "ui_y": -3, "ui_width": 200, "ui_height": 80, "nested": {"k": [1, 2]}}
        plan = Plan.new(name="p", zone_id="z", tags=["x"], metadata=metadata)

        props = plan.to_props()
        assert isinstance(props["metadata"], str)
        assert json.loads(props["metadata"]) == metadata

        restored = Plan.from_props(props)
        assert restored == plan

    def test_empty_metadata_stored_as_empty_string(self):
        assert Task.new(content="t", zone_id="z").to_props()["metadata"] == ""

    def test_undecodable_metadata_dropped(self):
        props = Memory.new(content="m", zone_id="z").to_props()
        props["metadata"] = "{not json"
        assert Memory.from_props(props).metadata == {}

    def test_output_has_kind_and_iso_timestamps(self):
        memory = Memory.new(content="m", zone_id="z")
        output = memory.to_output()
        assert output["kind"] == "Memory"
        assert output["created_at"].endswith("Z")
        assert output["created_at"] == float_to_iso(memory.created_at)

    def test_touch_moves_updated_at_forward(self):
        memory = Memory.new(content="m", zone_id="z")
        memory.created_at -= 100
        memory.updated_at = memory.created_at
        memory.touch()
        assert memory.updated_at > memory.created_at

    def test_node_from_record(self):
        task = Task.new(content="t", zone_id="z")
        assert isinstance(node_from_record("Task", task.to_props()), Task)

    def test_node_from_record_unknown_label(self):
        with pytest.raises(ValueError):
            node_from_record("Person", {})


class TestMCPInputs:
    def test_relations_only_lists_given(self):
        params = AddMemoryParams(content="m", depends_on=["a", "b"], references="c")
        assert params.relations() == {"DEPENDS_ON": ["a", "b"], "REFERENCES": ["c"]}

    def test_bad_memory_type(self):
        with pytest.raises(ValidationError):
            AddMemoryParams(content="m", type="Task")

    def test_task_needs_a_plan(self):
        with pytest.raises(ValidationError):
            CreateTaskParams(content="t", plan_ids=[])

    @pytest.mark.parametrize("limit", [0, 501])
    def test_limit_bounds(self, limit):
        with pytest.raises(ValidationError):
            SearchMemoriesParams(limit=limit)

    def test_query_with_plan_rejected(self):
        with pytest.raises(ValidationError):
            ListTasksParams(plan_id="p", query="x")

    def test_depth_below_one_rejected(self):
        with pytest.raises(ValidationError):
            GetRelatedParams(id="n", depth=0)

    def test_large_depth_accepted(self):
        assert GetRelatedParams(id="n", depth=50).depth == 50

    def test_bad_direction_rejected(self):
        with pytest.raises(ValidationError):
            GetRelatedParams(id="n", direction="sideways")
