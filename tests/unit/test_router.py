"""Tests for the tool router meta-tools and tool registry."""

from __future__ import annotations

import asyncio
import json
import logging

import pytest

from kicad_layout_mcp.exceptions import ValidationError
from kicad_layout_mcp.tools import TOOL_REGISTRY, get_categories
from kicad_layout_mcp.tools.registry import accepts, command, error_payload, json_arg
from kicad_layout_mcp.tools.router import (
    MAX_RESPONSE_CHARS,
    _truncate_response,
    execute_tool,
    get_category_tools,
    list_tool_categories,
    search_tools,
)

DIRECT_TOOLS = [
    "define_component",
    "define_net",
    "get_project_state",
    "generate_netlist",
    "create_initial_pcb",
    "create_board_outline",
    "create_copper_pour",
    "arrange_components",
    "update_component_positions",
    "autoroute_pcb",
    "export_fabrication_files",
]


class TestToolRegistry:
    def test_tools_registered(self) -> None:
        for name in DIRECT_TOOLS:
            assert name in TOOL_REGISTRY
        assert "add_alignment_constraint" in TOOL_REGISTRY
        assert "set_layout_rules" in TOOL_REGISTRY

    def test_direct_flag(self) -> None:
        assert all(TOOL_REGISTRY[name].direct for name in DIRECT_TOOLS)
        assert TOOL_REGISTRY["add_circular_constraint"].direct is False

    def test_categories(self) -> None:
        cats = get_categories()
        assert {"project", "constraints", "board", "layout", "routing", "export"} <= set(cats)
        assert "autoroute_pcb" in [t.name for t in cats["routing"]]

    def test_parameters_match_handlers(self) -> None:
        for spec in TOOL_REGISTRY.values():
            params = {name: None for name in spec.parameters}
            assert accepts(spec.handler, params) is None, spec.name


class TestMetaTools:
    def test_list_only_routed_categories(self) -> None:
        result = list_tool_categories()["categories"]
        assert set(result) == {"constraints"}
        assert result["constraints"]["tool_count"] == 9

    def test_category_tools(self) -> None:
        result = get_category_tools("constraints")
        names = [t["name"] for t in result["tools"]]
        assert "add_symmetry_constraint" in names
        assert "parameters" in result["tools"][0]

    def test_category_without_routed_tools(self) -> None:
        assert "error" in get_category_tools("board")

    def test_unknown_category(self) -> None:
        assert "Unknown category" in get_category_tools("nope")["error"]

    def test_search(self) -> None:
        result = search_tools("circle")
        names = [t["name"] for t in result["tools"]]
        assert "add_circular_constraint" in names
        assert result["result_count"] == len(names)


class TestExecuteTool:
    def test_unknown_tool(self) -> None:
        result = asyncio.run(execute_tool("nonexistent_tool"))
        assert "Unknown tool" in result["error"]

    def test_bad_arguments(self) -> None:
        result = asyncio.run(execute_tool("add_layer_constraint", {"project_name": "demo", "bogus": 1}))
        assert result["error"].startswith("Invalid arguments for add_layer_constraint")

    def test_dispatches_to_handler(self) -> None:
        args = {"project_name": "demo", "layer": "bottom", "components": ["C1", "C2"]}
        result = asyncio.run(execute_tool("add_layer_constraint", args))
        assert result["rule"] == {"type": "LayerConstraint", "layer": "bottom", "components": ["C1", "C2"], "enabled": True}
        assert "C1, C2" in result["warning"]

    def test_handler_errors_become_payloads(self) -> None:
        args = {"project_name": "demo", "axis": "diagonal", "components": ["R1", "R2"]}
        result = asyncio.run(execute_tool("add_alignment_constraint", args))
        assert result["error_code"] == "VALIDATION_ERROR"
        assert result["field"] == "axis"
        assert "Traceback" in result["trace"]


class TestCommandWrapper:
    def test_unexpected_errors_are_internal(self, caplog: pytest.LogCaptureFixture) -> None:
        def boom() -> dict:
            raise KeyError("missing")

        with caplog.at_level(logging.ERROR):
            result = command("boom", boom)()
        assert result["error_code"] == "INTERNAL_ERROR"
        assert result["error_type"] == "KeyError"
        assert "Command boom failed" in caplog.text

    def test_error_payload_keeps_extra_fields(self) -> None:
        payload = error_payload(ValidationError("bad", field="pins"))
        assert payload["error"] == "bad"
        assert payload["field"] == "pins"
        assert "trace" in payload


class TestJsonArg:
    def test_decodes_strings(self) -> None:
        assert json_arg('["U1-1", "R1-2"]', "pins") == ["U1-1", "R1-2"]

    def test_passes_values_through(self) -> None:
        assert json_arg({"rotation": 90}, "properties") == {"rotation": 90}

    def test_invalid_json(self) -> None:
        with pytest.raises(ValidationError, match="pins"):
            json_arg("[U1-1", "pins")


class TestTruncateResponse:
    """Test the _truncate_response safety net."""

    def test_small_response_unchanged(self) -> None:
        data = {"items": [1, 2, 3], "count": 3}
        result = _truncate_response(data)
        assert result == {"items": [1, 2, 3], "count": 3}
        assert "_truncated" not in result

    def test_large_response_truncated(self) -> None:
        big_list = [{"name": f"item_{i}", "data": "x" * 200} for i in range(1000)]
        data = {"items": big_list, "count": len(big_list)}
        assert len(json.dumps(data)) > MAX_RESPONSE_CHARS

        result = _truncate_response(data)
        assert result["_truncated"] is True
        assert "_message" in result
        assert len(result["items"]) < 1000
        assert len(json.dumps(result)) <= MAX_RESPONSE_CHARS
