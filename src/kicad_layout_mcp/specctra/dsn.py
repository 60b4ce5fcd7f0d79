"""Board to Specctra DSN serializer.

The document handed to the autorouter describes the unrouted board:

- ``structure``: copper layers, routing boundary, optional planes, vias, default rule
- ``placement``: every footprint instance grouped by footprint identity
- ``library``: one image per footprint identity, one padstack per pad shape
- ``network``: net pin lists and the net-class rules
- ``wiring``: pre-routed tracks to keep (usually empty)

Board coordinates are millimetres; the document uses micrometres with a
resolution of 10, and its Y axis points up.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from ..constants import LAYER_FLIP
from ..geometry import footprint_bbox, graphic_coords, merge_all_drawings, pad_relative_angle
from ..logging_config import create_logger
from ..schema.board import Board, Footprint, NetClass, Pad, Point, Track
from ..schema.common import BoundingBox
from .nodes import (
    SPACE,
    Node,
    Tuple,
    block,
    format_angle,
    keyed,
    label,
    make_path,
    make_polygon,
    quoted,
    token,
    um,
)
from .padstacks import pad_name, pad_padstack, side_letter, to_nm, via_name, via_padstack

logger = create_logger(__name__)

HOST_CAD = "KiCad/Singularity"
DEFAULT_CLASS_NAME = "kicad_default"
UNNAMED_NET = "unnamed_net"
BOUNDARY_MARGIN_MM = 2.0


def _nm_points(points: Iterable[Point]) -> list[tuple[int, int]]:
    return [(to_nm(x), to_nm(y)) for x, y in points]


def image_id(fp: Footprint) -> str:
    """Library identity of a footprint, ``lib:name``."""
    return fp.library or fp.reference


def net_token_name(name: str) -> str:
    return name or UNNAMED_NET


def placement_angle(angle: float, side: str) -> str:
    """Rotation as written in a ``place`` entry; back-side parts are mirrored."""
    if side == "back":
        angle = 180 - angle
    return format_angle(angle)


@dataclass
class _Pin:
    name: str
    padstack: str
    x: int
    y: int
    angle: float


@dataclass
class _Image:
    name: str
    pins: list[_Pin] = field(default_factory=list)
    outlines: list[list[tuple[int, int]]] = field(default_factory=list)
    pin_names: dict[str, str] = field(default_factory=dict)  # pad number -> pin name


class DsnWriter:
    """Builds the DSN tree of one board.

    Args:
        board: Extracted board model.
        include_zones: Emit copper zones as ``plane`` entries.
        selected_pads: ``REF-PIN`` names to restrict pins and nets to.
        selected_tracks: Existing tracks written to ``wiring`` as protected wires.
        smd_smd_clearance: Add a quartered clearance rule for SMD-to-SMD spacing.
    """

    def __init__(
        self,
        board: Board,
        include_zones: bool = False,
        selected_pads: Iterable[str] | None = None,
        selected_tracks: Iterable[Track] | None = None,
        smd_smd_clearance: bool = True,
    ) -> None:
        self.board = board
        self.include_zones = include_zones
        self.selected_pads = set(selected_pads) if selected_pads is not None else None
        self.selected_tracks = list(selected_tracks or [])
        self.smd_smd_clearance = smd_smd_clearance
        self.copper = [lyr.name for lyr in board.copper_layers]
        self.padstacks: dict[str, Tuple] = {}
        self.images: dict[str, _Image] = {}

    # ── structure ───────────────────────────────────────────────────

    def _layers(self) -> list[Node]:
        nodes: list[Node] = []
        for index, layer in enumerate(self.board.copper_layers):
            layer_type = "power" if layer.layer_type == "power" else "signal"
            prop = block("property", [keyed("index", label(str(index)))], indent=8)
            nodes.append(
                block("layer", [keyed("type", label(layer_type)), prop], indent=6, head=[token(layer.name)])
            )
        return nodes

    def _all_items_bbox(self) -> BoundingBox | None:
        box: BoundingBox | None = None
        for fp in self.board.footprints:
            fp_box = footprint_bbox(fp)
            if fp_box is not None:
                box = fp_box if box is None else box.union(fp_box)
        points: list[Point] = []
        for graphic in self.board.graphics:
            points.extend(graphic_coords(graphic)[2])
        for track in self.board.tracks:
            points.extend((track.start, track.end))
        extra = BoundingBox.from_points(points)
        if extra is not None:
            box = extra if box is None else box.union(extra)
        return box

    def _boundary(self) -> Tuple:
        paths = merge_all_drawings(self.board.graphics, "Edge.Cuts")
        if paths:
            # The outermost chain is the board edge; inner chains are cut-outs
            outer = max(paths, key=lambda p: _bbox_area(BoundingBox.from_points(p)))
            return block("boundary", [make_path("pcb", _nm_points(outer), 0)], indent=6)

        box = self._all_items_bbox()
        if box is None:
            box = BoundingBox(0, 0, 0, 0)
        logger.warning("No Edge.Cuts outline; using the inflated bounding box of all items")
        box = box.inflate(BOUNDARY_MARGIN_MM)
        rect = [
            (box.min_x, box.min_y),
            (box.max_x, box.min_y),
            (box.max_x, box.max_y),
            (box.min_x, box.max_y),
            (box.min_x, box.min_y),
        ]
        return block("boundary", [make_path("pcb", _nm_points(rect), 0)], indent=6)

    def _planes(self) -> list[Node]:
        planes: list[Node] = []
        for zone in self.board.zones:
            if not zone.net_number or len(zone.outline) < 3:
                continue
            ring = [*zone.outline, zone.outline[0]]
            for layer in zone.layers:
                if layer not in self.copper:
                    continue
                planes.append(
                    keyed("plane", token(net_token_name(zone.net_name)), make_polygon(layer, _nm_points(ring)))
                )
        return planes

    def _class_via(self, nc: NetClass) -> str | None:
        if nc.via_diameter <= 0 or nc.via_drill <= 0:
            return None
        return via_name(to_nm(nc.via_diameter), to_nm(nc.via_drill), len(self.copper))

    def _vias(self) -> Tuple:
        names: list[Node] = []
        for nc in self.board.net_classes:
            name = self._class_via(nc)
            if name is None or name in self.padstacks:
                continue
            self.padstacks[name] = via_padstack(name, to_nm(nc.via_diameter), self.copper)
            names.append(token(name))
        return keyed("via", *names)

    def _rule(self) -> Tuple:
        default = self.board.default_net_class
        clearance = to_nm(default.clearance)
        rules: list[Node] = [
            keyed("width", um(to_nm(default.track_width))),
            keyed("clearance", um(clearance)),
        ]
        if self.smd_smd_clearance:
            rules.append(keyed("clearance", um(clearance // 4), keyed("type", label("smd_smd"))))
        return block("rule", rules, indent=6)

    def structure(self) -> Tuple:
        parts: list[Node] = [*self._layers(), self._boundary()]
        if self.include_zones:
            parts.extend(self._planes())
        parts.append(self._vias())
        parts.append(self._rule())
        return block("structure", parts, indent=4)

    # ── library and placement ───────────────────────────────────────

    def _pad_selected(self, fp: Footprint, pad: Pad) -> bool:
        return self.selected_pads is None or f"{fp.reference}-{pad.number}" in self.selected_pads

    def _image_for(self, fp: Footprint) -> _Image:
        """Image of a footprint in its unflipped frame (built once per identity)."""
        name = image_id(fp)
        if name in self.images:
            return self.images[name]

        image = _Image(name=name)
        flipped = fp.is_flipped
        used: dict[str, int] = {}
        for pad in fp.pads:
            if pad.pad_type == "np_thru_hole" or not pad.number:
                continue
            layers = [LAYER_FLIP.get(lyr, lyr) for lyr in pad.layers] if flipped else list(pad.layers)
            letter = side_letter(layers)
            if letter is None:
                continue
            angle = pad_relative_angle(fp, pad)
            y = pad.position.y
            if flipped:
                angle = (-angle) % 360
                y = -y
            stack = pad_name(pad, letter, angle)
            if stack not in self.padstacks:
                if letter == "A":
                    stack_layers = self.copper
                else:
                    stack_layers = ["F.Cu" if letter == "T" else "B.Cu"]
                self.padstacks[stack] = pad_padstack(stack, pad, stack_layers)

            count = used.get(pad.number, 0)
            used[pad.number] = count + 1
            pin_name = pad.number if count == 0 else f"{pad.number}@{count}"
            image.pin_names.setdefault(pad.number, pin_name)
            image.pins.append(
                _Pin(pin_name, stack, to_nm(pad.position.x), to_nm(y), angle)
            )

        courtyard = "B.CrtYd" if flipped else "F.CrtYd"
        for path in merge_all_drawings(fp.graphics, courtyard):
            if flipped:
                path = [(x, -y) for x, y in path]
            image.outlines.append(_nm_points(path))

        self.images[name] = image
        return image

    def _image_node(self, image: _Image) -> Tuple:
        children: list[Node] = []
        for outline in image.outlines:
            children.append(keyed("outline", make_path("signal", outline, 0)))
        for pin in image.pins:
            items: list[Node] = [label("pin"), SPACE, token(pin.padstack)]
            if pin.angle:
                items.extend((SPACE, keyed("rotate", label(format_angle(pin.angle)))))
            items.extend((SPACE, token(pin.name), SPACE, um(pin.x), SPACE, um(-pin.y)))
            children.append(Tuple(items))
        return block("image", children, indent=6, head=[token(image.name)])

    def placement(self) -> Tuple:
        groups: dict[str, list[Footprint]] = {}
        for fp in self.board.footprints:
            self._image_for(fp)
            groups.setdefault(image_id(fp), []).append(fp)

        components: list[Node] = []
        for name, fps in groups.items():
            places: list[Node] = []
            for fp in fps:
                side = "back" if fp.is_flipped else "front"
                places.append(
                    keyed(
                        "place",
                        token(fp.reference),
                        um(to_nm(fp.position.x)),
                        um(-to_nm(fp.position.y)),
                        label(side),
                        label(placement_angle(fp.position.angle, side)),
                        keyed("PN", quoted(fp.value)),
                    )
                )
            components.append(block("component", places, indent=6, head=[token(name)]))
        return block("placement", components, indent=4)

    def library(self) -> Tuple:
        entries: list[Node] = [self._image_node(image) for image in self.images.values()]
        entries.extend(self.padstacks.values())
        return block("library", entries, indent=4)

    # ── network and wiring ──────────────────────────────────────────

    def _net_pins(self) -> dict[str, list[str]]:
        pins: dict[str, list[str]] = {}
        for fp in self.board.footprints:
            image = self.images[image_id(fp)]
            for pad in fp.pads:
                if not pad.has_net or pad.number not in image.pin_names:
                    continue
                if not self._pad_selected(fp, pad):
                    continue
                name = net_token_name(pad.net_name or "")
                pins.setdefault(name, []).append(f"{fp.reference}-{image.pin_names[pad.number]}")
        return pins

    def network(self) -> Tuple:
        net_pins = self._net_pins()
        entries: list[Node] = []
        for net in self.board.nets:
            if not net.number and not net.name:
                continue
            name = net_token_name(net.name)
            if name not in net_pins:
                continue
            pins = Tuple([label("pins")])
            for pin in net_pins[name]:
                pins.items.extend((SPACE, token(pin)))
            entries.append(block("net", [pins], indent=6, head=[token(name)]))

        for nc in self.board.net_classes:
            members = [net_token_name(n) for n in nc.nets if net_token_name(n) in net_pins]
            via = self._class_via(nc)
            if not members or via is None:
                logger.debug(f"Skipping net class {nc.name!r}: no routable nets or no via")
                continue
            class_name = DEFAULT_CLASS_NAME if nc.name in ("Default", "") else nc.name
            circuit = block("circuit", [keyed("use_via", token(via))], indent=8)
            rule = block(
                "rule",
                [
                    keyed("width", um(to_nm(nc.track_width))),
                    keyed("clearance", um(to_nm(nc.clearance))),
                ],
                indent=8,
            )
            entries.append(
                block("class", [circuit, rule], indent=6, head=[token(class_name), *map(token, members)])
            )
        return block("network", entries, indent=4)

    def wiring(self) -> Tuple:
        if not self.selected_tracks:
            return Tuple([label("wiring")])
        names = {n.number: n.name for n in self.board.nets}
        wires: list[Node] = []
        for track in self.selected_tracks:
            path = make_path(track.layer, _nm_points([track.start, track.end]), to_nm(track.width))
            wires.append(
                keyed(
                    "wire",
                    path,
                    keyed("net", token(net_token_name(names.get(track.net_number, "")))),
                    keyed("type", label("protect")),
                )
            )
        return block("wiring", wires, indent=4)

    # ── document ────────────────────────────────────────────────────

    def build(self) -> Tuple:
        host_version = self.board.generator_version or self.board.version or "unknown"
        parser = block(
            "parser",
            [
                keyed("string_quote", label('"')),
                keyed("space_in_quoted_tokens", label("on")),
                keyed("host_cad", quoted(HOST_CAD)),
                keyed("host_version", quoted(host_version)),
            ],
            indent=4,
        )
        structure = self.structure()
        placement = self.placement()
        library = self.library()
        network = self.network()
        wiring = self.wiring()
        return block(
            "pcb",
            [
                parser,
                keyed("resolution", label("um"), label("10")),
                keyed("unit", label("um")),
                structure,
                placement,
                library,
                network,
                wiring,
            ],
            indent=2,
            head=[token(Path(self.board.path).name)],
        )


def _bbox_area(box: BoundingBox | None) -> float:
    return box.width * box.height if box is not None else 0.0


def board_to_dsn(
    board: Board,
    include_zones: bool = False,
    selected_pads: Iterable[str] | None = None,
    selected_tracks: Iterable[Track] | None = None,
) -> Tuple:
    """Serialize a board into a DSN document tree (``str()`` gives the text)."""
    return DsnWriter(board, include_zones, selected_pads, selected_tracks).build()


def write_dsn(board: Board, path: str | Path, include_zones: bool = False) -> Path:
    """Write the DSN text for ``board`` to ``path``."""
    target = Path(path)
    target.write_text(str(board_to_dsn(board, include_zones)) + "\n", encoding="utf-8")
    logger.info(f"Wrote DSN for {len(board.footprints)} footprints to {target}")
    return target
