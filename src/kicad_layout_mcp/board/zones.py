"""Copper pours filling the board outline."""

from __future__ import annotations

import uuid

from ..constants import ZONE_MIN_THICKNESS, ZONE_THERMAL_BRIDGE_WIDTH, ZONE_THERMAL_GAP
from ..exceptions import ResourceNotFoundError, ValidationError
from ..geometry import merge_all_drawings
from ..schema.board import Board, Net
from ..schema.extract import extract_board
from ..sexp import Document
from ..sexp.parser import parse as sexp_parse
from .helpers import fmt


def resolve_net(board: Board, net_name: str) -> Net:
    """Exact net name match first, then a case-insensitive one."""
    net = board.net_by_name(net_name)
    if net is not None:
        return net
    wanted = net_name.lower()
    for candidate in board.nets:
        if candidate.name.lower() == wanted:
            return candidate
    raise ResourceNotFoundError(f"Net {net_name!r} not found on the board", resource_type="net")


def outline_polygon(board: Board) -> list[tuple[float, float]]:
    """The longest closed Edge.Cuts path, without the repeated closing point."""
    paths = merge_all_drawings(board.graphics, "Edge.Cuts")
    if not paths:
        raise ValidationError("Board has no Edge.Cuts outline; create the board outline first", field="layer_name")
    path = max(paths, key=len)
    if len(path) > 1 and path[0] == path[-1]:
        path = path[:-1]
    if len(path) < 3:
        raise ValidationError("Board outline is not a closed shape", field="layer_name")
    return path


def create_copper_pour(doc: Document, layer_name: str, net_name: str) -> dict[str, object]:
    """Add an unfilled zone covering the board outline on one copper layer.

    Args:
        doc: Board document, modified in place.
        layer_name: Copper layer of the pour, e.g. "B.Cu".
        net_name: Net the pour connects to.

    Returns:
        Summary of the zone that was added.
    """
    board = extract_board(doc)
    copper = [layer.name for layer in board.copper_layers]
    if layer_name not in copper:
        raise ValidationError(
            f"Layer {layer_name!r} is not a copper layer of this board ({', '.join(copper)})",
            field="layer_name",
        )
    net = resolve_net(board, net_name)
    points = outline_polygon(board)

    pts = " ".join(f"(xy {fmt(x)} {fmt(y)})" for x, y in points)
    zone_text = (
        f'(zone (net {net.number}) (net_name "{net.name}") (layer "{layer_name}")'
        f' (uuid "{uuid.uuid4()}")'
        f" (hatch edge 0.5)"
        f" (connect_pads (clearance {fmt(board.default_net_class.clearance)}))"
        f" (min_thickness {fmt(ZONE_MIN_THICKNESS)})"
        f" (fill (thermal_gap {fmt(ZONE_THERMAL_GAP)}) (thermal_bridge_width {fmt(ZONE_THERMAL_BRIDGE_WIDTH)}))"
        f" (polygon (pts {pts})))"
    )
    doc.root.children.append(sexp_parse(zone_text))
    return {"net": net.name, "layer": layer_name, "points": len(points)}
