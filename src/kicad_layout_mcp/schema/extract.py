"""Extract typed schema models from parsed S-expression trees.

Handles the KiCad 5 (``module``, ``fp_text reference``, ``net_class``) and
KiCad 6+ (``footprint``, ``property "Reference"``, ``.kicad_pro`` net
settings) spellings of the same data.
"""

from __future__ import annotations

import fnmatch
import json
from pathlib import Path
from typing import Any

from ..constants import (
    DEFAULT_CLEARANCE,
    DEFAULT_TRACK_WIDTH,
    DEFAULT_VIA_DIAMETER,
    DEFAULT_VIA_DRILL,
)
from ..logging_config import create_logger
from ..sexp import Document, SExp
from .board import Board, Footprint, Graphic, Layer, Net, NetClass, Pad, Point, Track, Via, Zone
from .common import Position, rotate_point

logger = create_logger(__name__)

_GRAPHIC_KINDS = frozenset({"line", "arc", "circle", "rect", "poly"})


def _float(val: str | None, default: float = 0.0) -> float:
    if val is None:
        return default
    try:
        return float(val)
    except (ValueError, TypeError):
        return default


def _int(val: str | None, default: int = 0) -> int:
    if val is None:
        return default
    try:
        return int(val)
    except (ValueError, TypeError):
        return default


def _extract_position(node: SExp | None) -> Position:
    """Extract Position from an (at x y [angle]) node."""
    if node is None:
        return Position(0, 0)
    vals = node.atom_values
    x = _float(vals[0]) if len(vals) > 0 else 0.0
    y = _float(vals[1]) if len(vals) > 1 else 0.0
    angle = _float(vals[2]) if len(vals) > 2 else 0.0
    return Position(x, y, angle)


def _point(node: SExp | None) -> Point:
    if node is None:
        return (0.0, 0.0)
    vals = node.atom_values
    return (_float(vals[0]) if vals else 0.0, _float(vals[1]) if len(vals) > 1 else 0.0)


def _layer_of(node: SExp) -> str:
    layer_node = node.get("layer")
    return (layer_node.first_value or "") if layer_node else ""


def _stroke_width(node: SExp) -> float:
    stroke = node.get("stroke")
    if stroke is not None:
        width = stroke.get("width")
        if width is not None:
            return _float(width.first_value)
    width = node.get("width")
    return _float(width.first_value) if width is not None else 0.0


def extract_nets(doc: Document) -> list[Net]:
    """Extract the board-level net table."""
    nets: list[Net] = []
    for node in doc.root.find_all("net"):
        vals = node.atom_values
        if len(vals) >= 2:
            nets.append(Net(number=_int(vals[0]), name=vals[1]))
        elif len(vals) == 1:
            nets.append(Net(number=_int(vals[0]), name=""))
    return nets


def extract_layers(doc: Document) -> list[Layer]:
    """Extract the layer table: ``(layers (0 "F.Cu" signal) ...)``."""
    layers_node = doc.root.get("layers")
    if layers_node is None:
        return []
    layers: list[Layer] = []
    for child in layers_node.children:
        if not child.is_list:
            continue
        vals = child.atom_values
        if len(vals) >= 2:
            layers.append(
                Layer(
                    number=_int(child.name),
                    name=vals[0],
                    layer_type=vals[1],
                    user_name=vals[2] if len(vals) > 2 else None,
                )
            )
    return layers


def extract_pad(pad_node: SExp) -> Pad:
    """Extract a Pad from a (pad ...) S-expression node."""
    vals = pad_node.atom_values
    number = vals[0] if len(vals) > 0 else ""
    pad_type = vals[1] if len(vals) > 1 else ""
    shape = vals[2] if len(vals) > 2 else ""

    size = (0.0, 0.0)
    size_node = pad_node.get("size")
    if size_node:
        size_vals = size_node.atom_values
        size = (
            _float(size_vals[0]) if len(size_vals) > 0 else 0.0,
            _float(size_vals[1]) if len(size_vals) > 1 else 0.0,
        )

    layers_node = pad_node.get("layers")
    layers = layers_node.atom_values if layers_node else []

    net_number = None
    net_name = None
    net_node = pad_node.get("net")
    if net_node:
        net_vals = net_node.atom_values
        if len(net_vals) >= 2:
            net_number, net_name = _int(net_vals[0]), net_vals[1]
        elif net_vals and net_vals[0].isdigit():
            net_number = int(net_vals[0])
        elif net_vals:
            net_name = net_vals[0]

    drill = 0.0
    drill_node = pad_node.get("drill")
    if drill_node:
        numbers = [v for v in drill_node.atom_values if v != "oval"]
        drill = _float(numbers[0]) if numbers else 0.0

    rratio_node = pad_node.get("roundrect_rratio")

    return Pad(
        number=number,
        pad_type=pad_type,
        shape=shape,
        position=_extract_position(pad_node.get("at")),
        size=size,
        layers=layers,
        net_number=net_number,
        net_name=net_name,
        drill=drill,
        roundrect_rratio=_float(rratio_node.first_value, 0.25) if rratio_node else 0.25,
    )


def extract_graphic(node: SExp) -> Graphic | None:
    """Extract a gr_*/fp_* drawing; text items and unknown kinds give None."""
    name = node.name or ""
    prefix, _, kind = name.partition("_")
    if prefix not in ("gr", "fp") or kind not in _GRAPHIC_KINDS:
        return None

    layer = _layer_of(node)
    width = _stroke_width(node)

    if kind == "circle":
        return Graphic(
            shape="circle",
            layer=layer,
            center=_point(node.get("center")),
            end=_point(node.get("end")),
            width=width,
        )

    if kind == "poly":
        pts_node = node.get("pts")
        points = [_point(xy) for xy in pts_node.find_all("xy")] if pts_node else []
        if not points:
            return None
        return Graphic(shape="poly", layer=layer, start=points[0], end=points[0], points=points, width=width)

    start = _point(node.get("start"))
    end = _point(node.get("end"))

    if kind == "arc":
        mid_node = node.get("mid")
        if mid_node is not None:
            return Graphic(shape="arc", layer=layer, start=start, mid=_point(mid_node), end=end, width=width)
        # Legacy arcs: (start <centre>) (end <arc start>) (angle <sweep>)
        angle_node = node.get("angle")
        sweep = _float(angle_node.first_value) if angle_node else 0.0
        center, arc_start = start, end
        return Graphic(
            shape="arc",
            layer=layer,
            start=arc_start,
            mid=rotate_point(arc_start, -sweep / 2, center),
            end=rotate_point(arc_start, -sweep, center),
            center=center,
            width=width,
        )

    return Graphic(shape=kind, layer=layer, start=start, end=end, width=width)


def _footprint_text(fp_node: SExp, field_name: str) -> str:
    for prop in fp_node.find_all("property"):
        prop_vals = prop.atom_values
        if prop_vals and prop_vals[0] == field_name:
            return prop_vals[1] if len(prop_vals) > 1 else ""
    for text in fp_node.find_all("fp_text"):
        text_vals = text.atom_values
        if text_vals and text_vals[0].lower() == field_name.lower():
            return text_vals[1] if len(text_vals) > 1 else ""
    return ""


def extract_footprint(fp_node: SExp) -> Footprint:
    """Extract a footprint from a board ``footprint``/``module`` node or a .kicad_mod root."""
    layer_node = fp_node.get("layer")
    uuid_node = fp_node.get("uuid") or fp_node.get("tstamp")
    descr_node = fp_node.get("descr")

    graphics: list[Graphic] = []
    for child in fp_node.children:
        if child.is_list and (child.name or "").startswith("fp_"):
            graphic = extract_graphic(child)
            if graphic is not None:
                graphics.append(graphic)

    return Footprint(
        library=fp_node.first_value or "",
        reference=_footprint_text(fp_node, "Reference"),
        value=_footprint_text(fp_node, "Value"),
        position=_extract_position(fp_node.get("at")),
        layer=(layer_node.first_value or "F.Cu") if layer_node else "F.Cu",
        pads=[extract_pad(p) for p in fp_node.find_all("pad")],
        graphics=graphics,
        uuid=(uuid_node.first_value or "") if uuid_node else "",
        description=_footprint_text(fp_node, "Description")
        or ((descr_node.first_value or "") if descr_node else ""),
    )


def extract_footprints(doc: Document) -> list[Footprint]:
    """Extract all footprints placed on a board."""
    nodes = doc.root.find_all("footprint") + doc.root.find_all("module")
    return [extract_footprint(node) for node in nodes]


def extract_graphics(doc: Document) -> list[Graphic]:
    """Extract board-level drawings (text excluded)."""
    graphics: list[Graphic] = []
    for child in doc.root.children:
        if child.is_list and (child.name or "").startswith("gr_"):
            graphic = extract_graphic(child)
            if graphic is not None:
                graphics.append(graphic)
    return graphics


def extract_zones(doc: Document) -> list[Zone]:
    zones: list[Zone] = []
    for zone_node in doc.root.find_all("zone"):
        net_node = zone_node.get("net")
        name_node = zone_node.get("net_name")
        layers_node = zone_node.get("layers") or zone_node.get("layer")
        priority_node = zone_node.get("priority")
        polygon = zone_node.get("polygon")
        pts = polygon.get("pts") if polygon else None
        outline = [_point(xy) for xy in pts.find_all("xy")] if pts else []
        zones.append(
            Zone(
                net_number=_int(net_node.first_value if net_node else None),
                net_name=(name_node.first_value or "") if name_node else "",
                layers=layers_node.atom_values if layers_node else [],
                outline=outline,
                priority=_int(priority_node.first_value if priority_node else None),
            )
        )
    return zones


def extract_tracks(doc: Document) -> list[Track]:
    """Extract track segments and track arcs."""
    tracks: list[Track] = []
    for node in doc.root.children:
        if node.name not in ("segment", "arc"):
            continue
        width_node = node.get("width")
        net_node = node.get("net")
        mid_node = node.get("mid")
        tracks.append(
            Track(
                start=_point(node.get("start")),
                end=_point(node.get("end")),
                width=_float(width_node.first_value if width_node else None),
                layer=_layer_of(node),
                net_number=_int(net_node.first_value if net_node else None),
                mid=_point(mid_node) if mid_node is not None else None,
            )
        )
    return tracks


def extract_vias(doc: Document) -> list[Via]:
    vias: list[Via] = []
    for node in doc.root.find_all("via"):
        size_node = node.get("size")
        drill_node = node.get("drill")
        layers_node = node.get("layers")
        net_node = node.get("net")
        layer_vals = layers_node.atom_values if layers_node else []
        vias.append(
            Via(
                position=_point(node.get("at")),
                diameter=_float(size_node.first_value if size_node else None),
                drill=_float(drill_node.first_value if drill_node else None),
                layers=(
                    layer_vals[0] if layer_vals else "F.Cu",
                    layer_vals[-1] if layer_vals else "B.Cu",
                ),
                net_number=_int(net_node.first_value if net_node else None),
            )
        )
    return vias


def _board_net_classes(doc: Document) -> list[NetClass]:
    """Legacy ``(net_class name "descr" (clearance ..) ... (add_net ..))`` blocks."""
    nodes = list(doc.root.find_all("net_class"))
    setup = doc.root.get("setup")
    if setup is not None:
        nodes.extend(setup.find_all("net_class"))

    def rule(node: SExp, key: str, default: float) -> float:
        child = node.get(key)
        return _float(child.first_value, default) if child else default

    classes: list[NetClass] = []
    for node in nodes:
        classes.append(
            NetClass(
                name=node.first_value or "Default",
                clearance=rule(node, "clearance", DEFAULT_CLEARANCE),
                track_width=rule(node, "trace_width", DEFAULT_TRACK_WIDTH),
                via_diameter=rule(node, "via_dia", DEFAULT_VIA_DIAMETER),
                via_drill=rule(node, "via_drill", DEFAULT_VIA_DRILL),
                nets=[n.first_value or "" for n in node.find_all("add_net")],
            )
        )
    return classes


def _project_net_classes(project_file: Path, net_names: list[str]) -> list[NetClass]:
    """Net classes from the ``net_settings`` section of a .kicad_pro file."""
    try:
        data: dict[str, Any] = json.loads(project_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable project file {project_file}: {e}")
        return []

    settings = data.get("net_settings") or {}
    classes: dict[str, NetClass] = {}
    for entry in settings.get("classes") or []:
        name = entry.get("name", "Default")
        classes[name] = NetClass(
            name=name,
            clearance=float(entry.get("clearance", DEFAULT_CLEARANCE)),
            track_width=float(entry.get("track_width", DEFAULT_TRACK_WIDTH)),
            via_diameter=float(entry.get("via_diameter", DEFAULT_VIA_DIAMETER)),
            via_drill=float(entry.get("via_drill", DEFAULT_VIA_DRILL)),
            nets=list(entry.get("nets") or []),
        )

    assignments = settings.get("netclass_assignments") or {}
    for net_name, assigned in assignments.items():
        class_name = assigned[0] if isinstance(assigned, list) and assigned else assigned
        if isinstance(class_name, str) and class_name in classes:
            classes[class_name].nets.append(net_name)

    for pattern in settings.get("netclass_patterns") or []:
        class_name = pattern.get("netclass")
        glob = pattern.get("pattern", "")
        if class_name not in classes or not glob:
            continue
        for net_name in net_names:
            if fnmatch.fnmatchcase(net_name, glob):
                classes[class_name].nets.append(net_name)

    return list(classes.values())


def extract_net_classes(doc: Document, nets: list[Net]) -> list[NetClass]:
    """Resolve net classes so that every named net belongs to exactly one class.

    Classes come from the sibling .kicad_pro when present, else from legacy
    ``net_class`` blocks in the board. Nets without an assignment join
    ``Default``, which always exists.
    """
    net_names = [n.name for n in nets if n.name]
    project_file = doc.path.with_suffix(".kicad_pro")
    classes = _project_net_classes(project_file, net_names) if project_file.exists() else []
    if not classes:
        classes = _board_net_classes(doc)

    default = next((c for c in classes if c.name == "Default"), None)
    if default is None:
        default = NetClass(
            name="Default",
            clearance=DEFAULT_CLEARANCE,
            track_width=DEFAULT_TRACK_WIDTH,
            via_diameter=DEFAULT_VIA_DIAMETER,
            via_drill=DEFAULT_VIA_DRILL,
        )
        classes.insert(0, default)

    claimed: set[str] = set()
    for nc in classes:
        if nc is default:
            continue
        unique = [n for n in dict.fromkeys(nc.nets) if n in net_names and n not in claimed]
        claimed.update(unique)
        nc.nets = unique
    default.nets = [n for n in net_names if n not in claimed]
    return classes


def extract_board(doc: Document) -> Board:
    """Extract the full layout model of a board document."""
    nets = extract_nets(doc)
    footprints = extract_footprints(doc)

    # Newer boards may omit the root net table; fall back to pad nets
    known = {n.name for n in nets}
    next_number = max((n.number for n in nets), default=0) + 1
    for fp in footprints:
        for pad in fp.pads:
            if pad.net_name and pad.net_name not in known:
                number = pad.net_number or next_number
                nets.append(Net(number=number, name=pad.net_name))
                known.add(pad.net_name)
                next_number = max(next_number, number) + 1
    by_name = {n.name: n.number for n in nets}
    by_number = {n.number: n.name for n in nets}
    for fp in footprints:
        for pad in fp.pads:
            if pad.net_number is None and pad.net_name:
                pad.net_number = by_name.get(pad.net_name)
            elif pad.net_number is not None and pad.net_name is None:
                pad.net_name = by_number.get(pad.net_number)

    version_node = doc.root.get("version")
    generator_node = doc.root.get("generator_version")
    thickness = 1.6
    general = doc.root.get("general")
    if general:
        t_node = general.get("thickness")
        if t_node:
            thickness = _float(t_node.first_value, 1.6)

    return Board(
        path=doc.path,
        version=(version_node.first_value or "") if version_node else "",
        generator_version=(generator_node.first_value or "") if generator_node else "",
        thickness=thickness,
        layers=extract_layers(doc),
        nets=nets,
        net_classes=extract_net_classes(doc, nets),
        footprints=footprints,
        graphics=extract_graphics(doc),
        zones=extract_zones(doc),
        tracks=extract_tracks(doc),
        vias=extract_vias(doc),
    )
