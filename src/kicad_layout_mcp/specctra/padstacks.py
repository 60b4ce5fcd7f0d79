"""Padstack naming and shapes for the DSN library block.

A padstack name is its identity: two pads with the same name share one
library entry, so the name must encode everything that changes the copper
shape (shape, copper side, size, and for rounded rectangles the corner
radius and orientation).
"""

from __future__ import annotations

import math

from ..constants import NM_PER_MM
from ..schema.board import Pad
from .nodes import SPACE, Node, Tuple, block, keyed, label, make_path, make_polygon, token, um


def to_nm(mm: float) -> int:
    return round(mm * NM_PER_MM)


def side_letter(layers: list[str]) -> str | None:
    """``A`` for through-hole (both outer copper layers), ``T`` top, ``B`` bottom."""
    top = "F.Cu" in layers or "*.Cu" in layers
    bottom = "B.Cu" in layers or "*.Cu" in layers
    if top and bottom:
        return "A"
    if top:
        return "T"
    if bottom:
        return "B"
    return None


def corner_radius_nm(pad: Pad) -> int:
    return to_nm(pad.roundrect_rratio * min(pad.size))


def pad_name(pad: Pad, letter: str, angle: float = 0.0) -> str:
    width_um = to_nm(pad.size[0]) // 1000
    height_um = to_nm(pad.size[1]) // 1000
    name = f"{pad.shape.capitalize()}[{letter}]Pad_{width_um}x{height_um}_um"
    if pad.shape == "roundrect":
        name += f"_r{corner_radius_nm(pad) // 1000}_a{round(angle) % 360}"
    return name


def via_name(diameter_nm: int, drill_nm: int, copper_count: int) -> str:
    return f"Via[0-{copper_count - 1}]_{diameter_nm // 1000}:{drill_nm // 1000}_um"


def _roundrect_outline(w: int, h: int, r: int) -> list[tuple[int, int]]:
    """Rounded rectangle with half sizes ``w``/``h``, two chords per corner."""
    s = round(0.5 * r)
    c = round((1 - math.sqrt(3) / 2) * r)
    return [
        (-w + r, h), (w - r, h), (w - s, h - c), (w - c, h - s),
        (w, h - r), (w, -h + r), (w - c, -h + s), (w - s, -h + c),
        (w - r, -h), (-w + r, -h), (-w + s, -h + c), (-w + c, -h + s),
        (-w, -h + r), (-w, h - r), (-w + c, h - s), (-w + s, h - c),
        (-w + r, h),
    ]  # fmt: skip


def pad_shape(pad: Pad, layer: str) -> Tuple:
    """Copper shape of ``pad`` on one layer, in the pad's own frame."""
    width, height = to_nm(pad.size[0]), to_nm(pad.size[1])
    hw, hh = width // 2, height // 2

    if pad.shape == "circle":
        return keyed("circle", token(layer), um(width))

    if pad.shape == "oval":
        if width == height:
            return keyed("circle", token(layer), um(width))
        if width > height:
            ln = (width - height) // 2
            return make_path(layer, [(-ln, 0), (ln, 0)], height)
        ln = (height - width) // 2
        return make_path(layer, [(0, -ln), (0, ln)], width)

    if pad.shape == "roundrect":
        return make_polygon(layer, _roundrect_outline(hw, hh, corner_radius_nm(pad)))

    # rect, trapezoid and custom pads are approximated by their bounding rectangle
    return keyed("rect", token(layer), um(-hw), um(-hh), um(hw), um(hh))


def _shape(shape: Tuple) -> Tuple:
    return Tuple([label("shape"), SPACE, shape])


def pad_padstack(name: str, pad: Pad, layers: list[str]) -> Tuple:
    shapes: list[Node] = [_shape(pad_shape(pad, layer)) for layer in layers]
    shapes.append(keyed("attach", label("off")))
    return block("padstack", shapes, indent=6, head=[token(name)])


def via_padstack(name: str, diameter_nm: int, layers: list[str]) -> Tuple:
    shapes: list[Node] = [_shape(keyed("circle", token(layer), um(diameter_nm))) for layer in layers]
    shapes.append(keyed("attach", label("off")))
    return block("padstack", shapes, indent=6, head=[token(name)])
