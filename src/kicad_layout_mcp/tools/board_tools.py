"""Board commands: netlist, initial PCB, outline and copper pours."""

from __future__ import annotations

from typing import Any

from ..exceptions import ResourceNotFoundError, ValidationError
from ..state import get_store
from .helpers import load_board, project_paths
from .registry import register_tool

_PROJECT_PARAM = {"type": "string", "description": "Project name."}


# ── Handlers ────────────────────────────────────────────────────────


def _generate_netlist_handler(project_name: str) -> dict[str, Any]:
    """Write the KiCad netlist of the project's components and nets.

    Args:
        project_name: Project name.
    """
    from ..netlist import write_netlist

    state = get_store().load(project_name)
    if not state.components:
        raise ValidationError("No components defined. Define components and nets first.", field="project_name")
    path = write_netlist(state, project_paths(project_name).netlist)
    return {
        "message": f"Netlist generated successfully at {path.name}.",
        "netlist": path.name,
        "components": len(state.components),
        "nets": len(state.nets),
    }


def _create_initial_pcb_handler(project_name: str, copper_layers: int = 4) -> dict[str, Any]:
    """Create the board from the netlist with kinet2pcb and set the copper layer count.

    Args:
        project_name: Project name.
        copper_layers: Number of copper layers (even, 2-32). Default: 4.
    """
    from ..backends.kinet2pcb import netlist_to_board
    from ..board.layers import set_copper_layer_count
    from ..sexp import Document

    paths = project_paths(project_name)
    if not paths.netlist.exists():
        raise ResourceNotFoundError(
            "Netlist file not found. Please generate the netlist first.", resource_type="netlist"
        )
    copper_layers = int(copper_layers)
    if copper_layers < 2 or copper_layers % 2:
        raise ValidationError("copper_layers must be an even number of at least 2", field="copper_layers")

    with get_store().lock(project_name):
        netlist_to_board(paths.netlist, paths.board)
        doc = Document.load(paths.board)
        inner = set_copper_layer_count(doc, copper_layers)
        doc.save()

    footprints = len(doc.root.find_all("footprint")) + len(doc.root.find_all("module"))
    return {
        "message": f"Initial PCB created at {paths.board.name} from netlist using kinet2pcb.",
        "board": paths.board.name,
        "footprints": footprints,
        "copper_layers": inner + 2,
    }


def _create_board_outline_handler(
    project_name: str,
    shape: str = "rectangle",
    board_width_mm: float | None = None,
    board_height_mm: float | None = None,
    diameter_mm: float | None = None,
) -> dict[str, Any]:
    """Replace the Edge.Cuts outline with a rectangle or circle.

    Missing or non-positive sizes auto-size the outline around the footprints.

    Args:
        project_name: Project name.
        shape: "rectangle" or "circle". Default: "rectangle".
        board_width_mm: Rectangle width (mm).
        board_height_mm: Rectangle height (mm).
        diameter_mm: Circle diameter (mm).
    """
    from ..board.outline import create_board_outline

    with get_store().update(project_name) as state:
        _, doc = load_board(project_name)
        outline = create_board_outline(doc, shape, board_width_mm, board_height_mm, diameter_mm)
        doc.save()
        state.board_outline = outline.to_dict()

    return {"message": outline.describe(), "board_outline": outline.to_dict()}


def _create_copper_pour_handler(project_name: str, layer_name: str, net_name: str) -> dict[str, Any]:
    """Add a copper zone over the whole board outline.

    Args:
        project_name: Project name.
        layer_name: Copper layer, e.g. "B.Cu".
        net_name: Net of the pour, e.g. "GND".
    """
    from ..board.zones import create_copper_pour

    with get_store().lock(project_name):
        _, doc = load_board(project_name)
        zone = create_copper_pour(doc, layer_name, net_name)
        doc.save()

    return {
        "message": f"Copper pour for net {zone['net']} created on {layer_name}.",
        "zone": zone,
    }


# ── Registration ────────────────────────────────────────────────────

register_tool(
    name="generate_netlist",
    description="Validate the project's nets and write a KiCad netlist.",
    parameters={"project_name": _PROJECT_PARAM},
    handler=_generate_netlist_handler,
    category="board",
    direct=True,
)

register_tool(
    name="create_initial_pcb",
    description="Create the .kicad_pcb from the netlist (kinet2pcb) with the given copper layer count.",
    parameters={
        "project_name": _PROJECT_PARAM,
        "copper_layers": {"type": "integer", "description": "Copper layers (even). Default: 4."},
    },
    handler=_create_initial_pcb_handler,
    category="board",
    direct=True,
)

register_tool(
    name="create_board_outline",
    description="Draw a rectangular or circular board outline, explicit or auto-sized around the parts.",
    parameters={
        "project_name": _PROJECT_PARAM,
        "shape": {"type": "string", "description": "'rectangle' or 'circle'. Default: 'rectangle'."},
        "board_width_mm": {"type": "number", "description": "Rectangle width (mm); omit to auto-size."},
        "board_height_mm": {"type": "number", "description": "Rectangle height (mm); omit to auto-size."},
        "diameter_mm": {"type": "number", "description": "Circle diameter (mm); omit to auto-size."},
    },
    handler=_create_board_outline_handler,
    category="board",
    direct=True,
)

register_tool(
    name="create_copper_pour",
    description="Add a copper pour (zone) covering the board outline on a copper layer.",
    parameters={
        "project_name": _PROJECT_PARAM,
        "layer_name": {"type": "string", "description": "Copper layer, e.g. 'B.Cu'."},
        "net_name": {"type": "string", "description": "Net name, e.g. 'GND'."},
    },
    handler=_create_copper_pour_handler,
    category="board",
    direct=True,
)
