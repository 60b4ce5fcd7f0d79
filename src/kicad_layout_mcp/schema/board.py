"""Typed data models for KiCad board files (.kicad_pcb) and footprints (.kicad_mod).

All lengths are millimetres. Pad and footprint graphic coordinates are in
the footprint's local frame, exactly as the file stores them; pad angles
are absolute board angles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .common import Position

Point = tuple[float, float]


@dataclass
class Net:
    """A net (electrical connection) on the board."""

    number: int
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"number": self.number, "name": self.name}


@dataclass
class Layer:
    """A layer in the board stackup."""

    number: int
    name: str
    layer_type: str  # "signal", "power", "mixed", "jumper", "user"
    user_name: str | None = None

    @property
    def is_copper(self) -> bool:
        return self.name.endswith(".Cu")

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "number": self.number,
            "name": self.name,
            "type": self.layer_type,
        }
        if self.user_name:
            d["user_name"] = self.user_name
        return d


@dataclass
class Pad:
    """A pad on a footprint."""

    number: str
    pad_type: str  # "smd", "thru_hole", "np_thru_hole", "connect"
    shape: str  # "roundrect", "circle", "rect", "oval", "trapezoid", "custom"
    position: Position  # local offset, absolute angle
    size: tuple[float, float]
    layers: list[str] = field(default_factory=list)
    net_number: int | None = None
    net_name: str | None = None
    drill: float = 0.0
    roundrect_rratio: float = 0.25

    @property
    def has_net(self) -> bool:
        return bool(self.net_number) or bool(self.net_name)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "number": self.number,
            "type": self.pad_type,
            "shape": self.shape,
            "position": self.position.to_dict(),
            "size": {"width": self.size[0], "height": self.size[1]},
            "layers": self.layers,
        }
        if self.net_number is not None:
            d["net"] = {"number": self.net_number, "name": self.net_name or ""}
        return d


@dataclass
class Graphic:
    """A drawn shape (line, arc, circle, rect, poly) on a board or footprint layer.

    Circles keep their centre in ``center`` and a rim point in ``end``.
    Arcs keep ``start``/``mid``/``end``.
    """

    shape: str
    layer: str
    start: Point = (0.0, 0.0)
    end: Point = (0.0, 0.0)
    mid: Point | None = None
    center: Point | None = None
    points: list[Point] = field(default_factory=list)
    width: float = 0.0


@dataclass
class Footprint:
    """A component footprint placed on the board."""

    library: str  # e.g. "Capacitor_SMD:C_0805_2012Metric"
    reference: str
    value: str
    position: Position
    layer: str  # "F.Cu" or "B.Cu"
    pads: list[Pad] = field(default_factory=list)
    graphics: list[Graphic] = field(default_factory=list)
    uuid: str = ""
    description: str = ""

    @property
    def is_flipped(self) -> bool:
        return self.layer == "B.Cu"

    @property
    def side(self) -> str:
        return "bottom" if self.is_flipped else "top"

    def to_dict(self) -> dict[str, Any]:
        return {
            "library": self.library,
            "reference": self.reference,
            "value": self.value,
            "position": self.position.to_dict(),
            "layer": self.layer,
            "pads": [p.to_dict() for p in self.pads],
            "uuid": self.uuid,
        }


@dataclass
class Track:
    """A copper track segment, or a track arc when ``mid`` is set."""

    start: Point
    end: Point
    width: float
    layer: str
    net_number: int
    mid: Point | None = None


@dataclass
class Via:
    position: Point
    diameter: float
    drill: float
    layers: tuple[str, str]
    net_number: int


@dataclass
class Zone:
    """A copper pour outline."""

    net_number: int
    net_name: str
    layers: list[str]
    outline: list[Point]
    priority: int = 0


@dataclass
class NetClass:
    """Routing rules shared by a group of nets (mm)."""

    name: str
    clearance: float
    track_width: float
    via_diameter: float
    via_drill: float
    nets: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "clearance": self.clearance,
            "track_width": self.track_width,
            "via_diameter": self.via_diameter,
            "via_drill": self.via_drill,
            "nets": list(self.nets),
        }


@dataclass
class Board:
    """Everything the layout pipeline needs from a .kicad_pcb file."""

    path: Path
    version: str
    generator_version: str
    thickness: float
    layers: list[Layer]
    nets: list[Net]
    net_classes: list[NetClass]
    footprints: list[Footprint]
    graphics: list[Graphic]
    zones: list[Zone] = field(default_factory=list)
    tracks: list[Track] = field(default_factory=list)
    vias: list[Via] = field(default_factory=list)

    @property
    def copper_layers(self) -> list[Layer]:
        """Copper layers in stackup order: F.Cu, inner layers, B.Cu."""
        copper = [lyr for lyr in self.layers if lyr.is_copper]

        def order(lyr: Layer) -> tuple[int, int]:
            if lyr.name == "F.Cu":
                return (0, 0)
            if lyr.name == "B.Cu":
                return (2, 0)
            digits = "".join(ch for ch in lyr.name if ch.isdigit())
            return (1, int(digits) if digits else 0)

        return sorted(copper, key=order)

    def net_by_name(self, name: str) -> Net | None:
        for net in self.nets:
            if net.name == name:
                return net
        return None

    def net_class_for(self, net_name: str) -> NetClass:
        for nc in self.net_classes:
            if net_name in nc.nets:
                return nc
        return self.default_net_class

    @property
    def default_net_class(self) -> NetClass:
        for nc in self.net_classes:
            if nc.name in ("Default", ""):
                return nc
        return self.net_classes[0]
