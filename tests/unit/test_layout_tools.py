"""Tests for layout data extraction, server-side solving and placement write-back."""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any

import pytest

from kicad_layout_mcp.geometry import footprint_bbox
from kicad_layout_mcp.schema.extract import extract_board
from kicad_layout_mcp.sexp import Document
from kicad_layout_mcp.state import get_store
from kicad_layout_mcp.tools import TOOL_REGISTRY
from kicad_layout_mcp.tools.layout_tools import board_outline_data


def _call(name: str, **kwargs: Any) -> dict[str, Any]:
    return TOOL_REGISTRY[name].handler(**kwargs)


@pytest.fixture()
def project(project_board: Path) -> Path:
    _call(
        "define_component",
        project_name="demo",
        component_reference="R1",
        component_description="Resistor",
        component_value="10k",
        footprint_identifier="Test:R_0805",
    )
    _call(
        "define_component",
        project_name="demo",
        component_reference="C1",
        component_description="Capacitor",
        component_value="100n",
        footprint_identifier="Test:PadsOnly",
    )
    _call("define_net", project_name="demo", net_name="GND", pins=["R1-2", "J1-2", "C1-2"])
    return project_board


class TestBoardOutlineData:
    def test_edge_cuts_box(self, board_doc: Document) -> None:
        assert board_outline_data(extract_board(board_doc)) == {
            "x": 0.0,
            "y": 0.0,
            "width": 30.0,
            "height": 20.0,
            "shape": "rectangle",
        }

    def test_footprint_fallback(self, board_doc: Document) -> None:
        board = extract_board(board_doc)
        board.graphics = []
        data = board_outline_data(board)
        assert data["x"] == pytest.approx(8.32 - 10)
        assert data["width"] > 30

    def test_empty_fallback(self, board_doc: Document) -> None:
        board = extract_board(board_doc)
        board.graphics, board.footprints = [], []
        assert board_outline_data(board) == {"x": 0.0, "y": 0.0, "width": 50.0, "height": 50.0, "shape": "rectangle"}


class TestArrangeComponents:
    def test_agent_strategy_returns_layout_data(self, project: Path) -> None:
        result = _call("arrange_components", project_name="demo")
        assert result["message"] == "Extracted layout data. The client will now handle component arrangement."
        assert result["waitForUserInput"] is True
        data = result["layout_data"]
        assert data["layoutStrategy"] == "agent"
        assert "solution" not in result

        nodes = {n["id"]: n for n in data["nodes"]}
        assert list(nodes) == ["R1", "J1", "C1"]
        assert (nodes["R1"]["x"], nodes["R1"]["y"]) == (10.0, 10.0)
        assert nodes["R1"]["placeholder_dimensions"] == {"width": 3.36, "height": 1.9}
        assert nodes["J1"]["rotation"] == 90.0
        assert nodes["J1"]["width"] > 0
        assert nodes["J1"]["pin_count"] == 2
        assert (nodes["C1"]["x"], nodes["C1"]["y"]) == (0.0, 0.0)

        assert data["edges"] == [
            {"source": "R1-2", "target": "J1-2", "label": "GND"},
            {"source": "R1-2", "target": "C1-2", "label": "GND"},
            {"source": "J1-2", "target": "C1-2", "label": "GND"},
        ]
        assert data["board_outline"]["width"] == 30.0

    def test_disabled_rules_are_listed(self, project: Path) -> None:
        _call("add_layer_constraint", project_name="demo", layer="bottom", components=["C1"])
        rules = _call("get_project_state", project_name="demo")["state"]["rules"]
        rules[0]["enabled"] = False
        _call("set_layout_rules", project_name="demo", rules=rules)
        data = _call("arrange_components", project_name="demo", wait_for_user_input=False)["layout_data"]
        assert data["rules"][0]["enabled"] is False
        assert data["waitForUserInput"] is False

    def test_autonomous_strategy_solves(self, project: Path) -> None:
        _call("add_absolute_position_constraint", project_name="demo", component_reference="J1", x=22, y=14)
        _call("add_layer_constraint", project_name="demo", layer="bottom", components=["C1"])
        result = _call(
            "arrange_components",
            project_name="demo",
            layout_strategy="autonomous",
            solver_params={"maxSteps": 200},
        )
        assert result["message"].startswith("Layout solved in")
        solution = result["solution"]
        assert solution["steps"] <= 200
        assert set(solution["positions"]) == {"R1", "J1", "C1"}
        assert (solution["positions"]["J1"]["x"], solution["positions"]["J1"]["y"]) == (22.0, 14.0)
        assert solution["positions"]["C1"]["side"] == "bottom"

    def test_unknown_strategy(self, project: Path) -> None:
        result = _call("arrange_components", project_name="demo", layout_strategy="random")
        assert result["field"] == "layout_strategy"

    def test_unknown_solver_param(self, project: Path) -> None:
        result = _call("arrange_components", project_name="demo", solver_params='{"gravity": 1}')
        assert result["field"] == "solver_params"

    def test_missing_board(self) -> None:
        assert _call("arrange_components", project_name="demo")["error_code"] == "NOT_FOUND"


class TestUpdateComponentPositions:
    def test_moves_and_refits(self, project: Path) -> None:
        result = _call(
            "update_component_positions",
            project_name="demo",
            positions={"R1": {"x": 12, "y": 8, "rotation": 450}, "U9": {"x": 1, "y": 1}},
        )
        assert result["moved"] == ["R1"]
        assert result["unknown_components"] == ["U9"]
        assert result["board_outline"]["auto_sized"] is True

        board = extract_board(Document.load(project))
        r1 = next(fp for fp in board.footprints if fp.reference == "R1")
        assert (r1.position.x, r1.position.y, r1.position.angle) == (12.0, 8.0, 90.0)
        edges = [g for g in board.graphics if g.layer == "Edge.Cuts"]
        assert min(g.start[0] for g in edges) == pytest.approx(12 - 0.95 - 5)

        comp = get_store().load("demo").component("R1")
        assert (comp.x, comp.y, comp.rotation) == (12.0, 8.0, 90.0)  # type: ignore[union-attr]

    def test_flip_to_bottom(self, project: Path) -> None:
        _call("update_component_positions", project_name="demo", positions='{"J1": {"x": 20, "y": 10, "side": "bottom"}}')
        board = extract_board(Document.load(project))
        j1 = next(fp for fp in board.footprints if fp.reference == "J1")
        assert j1.side == "bottom"

    def test_explicit_outline_is_kept(self, project: Path) -> None:
        _call("create_board_outline", project_name="demo", board_width_mm=40, board_height_mm=30)
        result = _call("update_component_positions", project_name="demo", positions={"R1": {"x": 30, "y": 20}})
        assert result["board_outline"]["auto_sized"] is False
        assert result["board_outline"]["width"] == 40

    def test_auto_circle_stays_circular(self, project: Path) -> None:
        created = _call("create_board_outline", project_name="demo", shape="circle")
        assert created["board_outline"]["auto_sized"] is True
        result = _call("update_component_positions", project_name="demo", positions={"R1": {"x": 30, "y": 20}})
        assert result["board_outline"]["shape"] == "circle"
        assert get_store().load("demo").board_outline["shape"] == "circle"  # type: ignore[index]

        board = extract_board(Document.load(project))
        [edge] = [g for g in board.graphics if g.layer == "Edge.Cuts"]
        assert edge.shape == "circle"
        radius = math.dist(edge.center, edge.end)
        for fp in board.footprints:
            for corner in footprint_bbox(fp).corners:  # type: ignore[union-attr]
                assert math.dist(edge.center, corner) < radius

    def test_position_needs_coordinates(self, project: Path) -> None:
        before = project.read_text()
        result = _call("update_component_positions", project_name="demo", positions={"R1": {"x": 3}})
        assert result["field"] == "positions"
        assert project.read_text() == before

    def test_positions_must_be_object(self, project: Path) -> None:
        result = _call("update_component_positions", project_name="demo", positions=["R1"])
        assert result["field"] == "positions"
