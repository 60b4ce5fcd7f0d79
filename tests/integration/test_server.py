"""Integration tests for the MCP server end-to-end flow."""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path
from unittest.mock import patch

from kicad_layout_mcp.backends.freerouting import RouterRun
from kicad_layout_mcp.server import create_server

FIXTURES = Path(__file__).parent.parent / "fixtures"


class TestServerCreation:
    def test_create_server(self) -> None:
        server = create_server()
        assert server is not None
        assert server.name == "kicad-layout-mcp"


class TestEndToEnd:
    """Define parts -> netlist -> board -> outline -> solve -> place -> route."""

    def test_pipeline(self) -> None:
        from kicad_layout_mcp.tools import TOOL_REGISTRY
        from kicad_layout_mcp.tools.router import execute_tool

        def call(name: str, **kwargs):
            result = TOOL_REGISTRY[name].handler(**kwargs)
            assert "error" not in result, result.get("error")
            return result

        for ref, fp in (("R1", "Test:R_0805"), ("J1", "Test:PadsOnly")):
            call(
                "define_component",
                project_name="demo",
                component_reference=ref,
                component_description=ref,
                component_value="x",
                footprint_identifier=fp,
            )
        call("define_net", project_name="demo", net_name="GND", pins=["R1-2", "J1-2"])
        call("define_net", project_name="demo", net_name="VCC", pins=["R1-1", "J1-1"])
        call("generate_netlist", project_name="demo")

        def fake_kinet2pcb(netlist: Path, board: Path) -> Path:
            shutil.copy(FIXTURES / "minimal_board.kicad_pcb", board)
            return board

        with patch("kicad_layout_mcp.backends.kinet2pcb.netlist_to_board", side_effect=fake_kinet2pcb):
            call("create_initial_pcb", project_name="demo", copper_layers=2)

        call("create_board_outline", project_name="demo", board_width_mm=40, board_height_mm=30)
        rule = asyncio.run(
            execute_tool(
                "add_absolute_position_constraint",
                {"project_name": "demo", "component_reference": "J1", "x": 30, "y": 20},
            )
        )
        assert rule["rule"]["component"] == "J1"

        solved = call(
            "arrange_components", project_name="demo", layout_strategy="autonomous", solver_params={"maxSteps": 300}
        )
        positions = {
            ref: {k: pos[k] for k in ("x", "y", "rotation", "side")}
            for ref, pos in solved["solution"]["positions"].items()
        }
        assert positions["J1"]["x"] == 30.0
        placed = call("update_component_positions", project_name="demo", positions=positions)
        assert sorted(placed["moved"]) == ["J1", "R1"]
        assert placed["board_outline"]["width"] == 40

        def fake_router(dsn: Path, ses: Path) -> RouterRun:
            shutil.copy(FIXTURES / "routed.ses", ses)
            return RouterRun(exit_code=0, stall_stopped=False, output_tail=[])

        with patch("kicad_layout_mcp.backends.freerouting.run_freerouting", side_effect=fake_router):
            routed = call("autoroute_pcb", project_name="demo")
        assert routed["tracks_added"] == 3

        state = call("get_project_state", project_name="demo")["state"]
        assert {c["ref"]: c["x"] for c in state["components"]}["J1"] == 30.0
