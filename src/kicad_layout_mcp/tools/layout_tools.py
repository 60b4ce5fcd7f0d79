"""Layout commands: layout data extraction, server-side solving and placement write-back."""

from __future__ import annotations

from typing import Any

from ..exceptions import ValidationError
from ..logging_config import create_logger
from ..schema.board import Board, Footprint
from ..schema.project import ProjectState
from ..state import get_store
from .helpers import load_board
from .registry import json_arg, register_tool

logger = create_logger(__name__)

LAYOUT_STRATEGIES = ("agent", "autonomous")
OUTLINE_FALLBACK_MARGIN = 10.0
OUTLINE_FALLBACK_SIZE = 50.0

_PROJECT_PARAM = {"type": "string", "description": "Project name."}


def board_outline_data(board: Board) -> dict[str, Any]:
    """Outline box of the board: Edge.Cuts, else the footprints + 10 mm, else 50x50."""
    from ..geometry import footprints_bbox, merge_all_drawings
    from ..schema.common import BoundingBox

    shape = "rectangle"
    if any(g.layer == "Edge.Cuts" and g.shape == "circle" for g in board.graphics):
        shape = "circle"

    paths = merge_all_drawings(board.graphics, "Edge.Cuts")
    box = BoundingBox.from_points(max(paths, key=len)) if paths else None
    if box is None:
        fp_box = footprints_bbox(board.footprints)
        if fp_box is not None and fp_box.width > 0 and fp_box.height > 0:
            box = fp_box.inflate(OUTLINE_FALLBACK_MARGIN)
        else:
            box = BoundingBox(0.0, 0.0, OUTLINE_FALLBACK_SIZE, OUTLINE_FALLBACK_SIZE)
    return {"x": box.min_x, "y": box.min_y, "width": box.width, "height": box.height, "shape": shape}


def _node(ref: str, state: ProjectState, fp: Footprint | None) -> dict[str, Any]:
    from ..geometry import footprint_bbox

    comp = state.component(ref)
    node: dict[str, Any] = {"id": ref, "label": ref}
    if fp is not None:
        node.update(x=fp.position.x, y=fp.position.y, rotation=fp.position.angle, side=fp.side)
    else:
        node.update(
            x=comp.x if comp and comp.x is not None else 0.0,
            y=comp.y if comp and comp.y is not None else 0.0,
            rotation=comp.rotation if comp and comp.rotation is not None else 0.0,
            side=comp.side if comp else "top",
        )

    dims = comp.placeholder_dimensions if comp else None
    if dims is None and fp is not None:
        box = footprint_bbox(fp)
        if box is not None:
            dims = {"width": round(box.width, 4), "height": round(box.height, 4)}
    node.update(
        width=dims["width"] if dims else None,
        height=dims["height"] if dims else None,
        footprint=comp.footprint if comp else (fp.library if fp else ""),
        placeholder_dimensions=dims,
        placeholder_shape=comp.placeholder_shape if comp else "rectangle",
        drc_dimensions=(comp.drc_dimensions if comp else None) or dims,
        drc_shape=comp.drc_shape if comp else "rectangle",
        pins=[p.to_dict() for p in comp.pins] if comp else [],
        pin_count=comp.pin_count if comp else (len(fp.pads) if fp else 0),
    )
    return node


def build_layout_data(state: ProjectState, board: Board) -> dict[str, Any]:
    """Nodes (components merged with their board placement), pin-pair edges, rules and outline."""
    footprints = {fp.reference: fp for fp in board.footprints if fp.reference}
    refs = list(footprints)
    refs += [c.ref for c in state.components if c.ref not in footprints]

    edges: list[dict[str, str]] = []
    for net in state.nets:
        for i in range(len(net.pins)):
            for j in range(i + 1, len(net.pins)):
                edges.append({"source": net.pins[i], "target": net.pins[j], "label": net.name})

    return {
        "nodes": [_node(ref, state, footprints.get(ref)) for ref in refs],
        "edges": edges,
        "rules": [r.to_dict() for r in state.rules],
        "board_outline": board_outline_data(board),
    }


# ── Handlers ────────────────────────────────────────────────────────


def _arrange_components_handler(
    project_name: str,
    layout_strategy: str = "agent",
    wait_for_user_input: bool = True,
    solver_params: Any = None,
) -> dict[str, Any]:
    """Extract the layout problem, and solve it server-side for the autonomous strategy.

    Args:
        project_name: Project name.
        layout_strategy: "agent" (client arranges) or "autonomous" (server solver).
        wait_for_user_input: Passed through for interactive clients.
        solver_params: Optional solver weights (snake_case or camelCase keys).
    """
    from ..algorithms import LayoutParams, Outline, build_graph, solve_layout
    from ..schema.extract import extract_board

    if layout_strategy not in LAYOUT_STRATEGIES:
        raise ValidationError(
            f"layout_strategy must be one of {LAYOUT_STRATEGIES}, got {layout_strategy!r}",
            field="layout_strategy",
        )
    params = LayoutParams.from_dict(json_arg(solver_params, "solver_params"))

    state = get_store().load(project_name)
    _, doc = load_board(project_name)
    data = build_layout_data(state, extract_board(doc))
    data["layoutStrategy"] = layout_strategy
    data["waitForUserInput"] = bool(wait_for_user_input)

    result: dict[str, Any] = {
        "message": "Extracted layout data. The client will now handle component arrangement.",
        "layout_data": data,
        "waitForUserInput": bool(wait_for_user_input),
    }
    if layout_strategy == "autonomous":
        nodes, edges = build_graph(data["nodes"], data["edges"])
        solution = solve_layout(
            nodes, edges, state.enabled_rules, Outline.from_dict(data["board_outline"]), params
        )
        result["solution"] = solution.to_dict()
        result["message"] = (
            f"Layout solved in {solution.steps} steps"
            f" ({'converged' if solution.converged else 'step limit reached'}),"
            f" HPWL {solution.hpwl_before:.1f} -> {solution.hpwl_after:.1f} mm."
        )
    return result


def _update_component_positions_handler(project_name: str, positions: Any) -> dict[str, Any]:
    """Write component placements back to the board.

    Args:
        project_name: Project name.
        positions: {ref: {"x", "y", "rotation"?, "side"?}} in mm and degrees.
    """
    from ..board.outline import refit_outline
    from ..board.placement import place_footprint
    from ..exceptions import ResourceNotFoundError

    placements = json_arg(positions, "positions")
    if not isinstance(placements, dict):
        raise ValidationError("positions must be an object keyed by component reference", field="positions")

    moved: list[str] = []
    unknown: list[str] = []
    with get_store().update(project_name) as state:
        _, doc = load_board(project_name)
        for ref, pos in placements.items():
            if not isinstance(pos, dict) or "x" not in pos or "y" not in pos:
                raise ValidationError(f"Position of {ref} needs x and y", field="positions")
            x, y = float(pos["x"]), float(pos["y"])
            rotation = float(pos["rotation"]) if pos.get("rotation") is not None else None
            side = pos.get("side")
            try:
                place_footprint(doc, ref, x, y, rotation, side)
            except ResourceNotFoundError:
                logger.warning(f"Component {ref} not found on the board; position ignored")
                unknown.append(ref)
                continue
            moved.append(ref)
            comp = state.component(ref)
            if comp is not None:
                comp.x, comp.y = x, y
                if rotation is not None:
                    comp.rotation = rotation % 360
                if side is not None:
                    comp.side = side

        outline = state.board_outline
        if outline is None or outline.get("auto_sized", True):
            shape = outline.get("shape", "rectangle") if outline else "rectangle"
            refit = refit_outline(doc, shape)
            if refit is not None:
                state.board_outline = refit.to_dict()
        doc.save()

    result: dict[str, Any] = {
        "message": f"Component positions updated for {len(moved)} components.",
        "moved": moved,
        "board_outline": state.board_outline,
    }
    if unknown:
        result["unknown_components"] = unknown
    return result


# ── Registration ────────────────────────────────────────────────────

register_tool(
    name="arrange_components",
    description=(
        "Extract components, net edges, rules and board outline for layout;"
        " the 'autonomous' strategy also solves the layout server-side."
    ),
    parameters={
        "project_name": _PROJECT_PARAM,
        "layout_strategy": {"type": "string", "description": "'agent' or 'autonomous'. Default: 'agent'."},
        "wait_for_user_input": {"type": "boolean", "description": "Default: true."},
        "solver_params": {"type": "object", "description": "Solver weights, e.g. {'componentSpacing': 200}."},
    },
    handler=_arrange_components_handler,
    category="layout",
    direct=True,
)

register_tool(
    name="update_component_positions",
    description="Move, rotate and flip footprints to the given positions and refit an auto-sized outline.",
    parameters={
        "project_name": _PROJECT_PARAM,
        "positions": {
            "type": "object",
            "description": "{ref: {x, y, rotation?, side?}} in mm/degrees.",
        },
    },
    handler=_update_component_positions_handler,
    category="layout",
    direct=True,
)
