"""Footprint placement edits: move, rotate and change side.

KiCad stores pad and text angles as absolute board angles while their
offsets stay in the footprint frame, so a rotation has to shift every
nested angle by the same delta. A side change mirrors the footprint
frame top-to-bottom (local y negated) and swaps front/back layers.
"""

from __future__ import annotations

from ..constants import LAYER_FLIP
from ..exceptions import ResourceNotFoundError, ValidationError
from ..sexp import SExp
from ..sexp.document import Document
from .helpers import find_footprint, fmt

_ANGLED_CHILDREN = ("pad", "fp_text", "property")
_POINT_KEYS = ("start", "end", "mid", "center")


def _normalize(angle: float) -> float:
    angle = angle % 360
    return 0.0 if abs(angle) < 1e-9 or abs(angle - 360) < 1e-9 else angle


def _numeric_prefix(at_node: SExp) -> int:
    count = 0
    for value in at_node.atom_values[:3]:
        try:
            float(value)
        except ValueError:
            break
        count += 1
    return count


def _at_values(at_node: SExp) -> list[float]:
    values = [float(v) for v in at_node.atom_values[: _numeric_prefix(at_node)]]
    while len(values) < 3:
        values.append(0.0)
    return values


def _write_at(at_node: SExp, x: float, y: float, angle: float) -> None:
    extra = at_node.atom_values[_numeric_prefix(at_node) :]  # e.g. "unlocked" on text
    atoms = [fmt(x), fmt(y)]
    if _normalize(angle):
        atoms.append(fmt(_normalize(angle)))
    at_node.set_atoms(*atoms, *extra)


def require_footprint(doc: Document, reference: str) -> SExp:
    fp_node = find_footprint(doc, reference)
    if fp_node is None:
        raise ResourceNotFoundError(f"Component {reference!r} not found on the board", resource_type="footprint")
    return fp_node


def footprint_angle(fp_node: SExp) -> float:
    at_node = fp_node.get("at")
    return _at_values(at_node)[2] if at_node is not None else 0.0


def footprint_side(fp_node: SExp) -> str:
    layer = fp_node.get("layer")
    return "bottom" if layer is not None and layer.first_value == "B.Cu" else "top"


def move_footprint(fp_node: SExp, x: float, y: float) -> None:
    at_node = fp_node.get("at")
    if at_node is None:
        fp_node.children.append(SExp.node("at", SExp.atom(fmt(x)), SExp.atom(fmt(y))))
        return
    _, _, angle = _at_values(at_node)
    _write_at(at_node, x, y, angle)


def rotate_footprint(fp_node: SExp, angle: float) -> float:
    """Set the footprint orientation; returns the applied delta in degrees."""
    at_node = fp_node.get("at")
    if at_node is None:
        at_node = SExp.node("at", SExp.atom("0"), SExp.atom("0"))
        fp_node.children.append(at_node)
    x, y, old = _at_values(at_node)
    delta = angle - old
    if not _normalize(delta):
        return 0.0
    _write_at(at_node, x, y, angle)
    for name in _ANGLED_CHILDREN:
        for child in fp_node.find_all(name):
            child_at = child.get("at")
            if child_at is not None:
                cx, cy, ca = _at_values(child_at)
                _write_at(child_at, cx, cy, ca + delta)
    return delta


def _flip_layer_atoms(node: SExp) -> None:
    for i, child in enumerate(node.children):
        if child.is_atom and child.value in LAYER_FLIP:
            flipped = LAYER_FLIP[child.value]
            if flipped != child.value:
                node.children[i] = SExp.quoted(flipped)


def _mirror_point(node: SExp) -> None:
    vals = node.atom_values
    if len(vals) >= 2:
        node.set_atoms(vals[0], fmt(-float(vals[1])), *vals[2:])


def flip_footprint(fp_node: SExp) -> str:
    """Move the footprint to the other board side; returns the new side."""
    at_node = fp_node.get("at")
    if at_node is not None:
        x, y, angle = _at_values(at_node)
        _write_at(at_node, x, y, -angle)

    for child in fp_node.children:
        if not child.is_list:
            continue
        for key in ("layer", "layers"):
            layer_node = child.get(key) if child.name != key else child
            if layer_node is not None:
                _flip_layer_atoms(layer_node)
        if child.name in _ANGLED_CHILDREN:
            child_at = child.get("at")
            if child_at is not None:
                cx, cy, ca = _at_values(child_at)
                _write_at(child_at, cx, -cy, -ca)
        elif (child.name or "").startswith("fp_"):
            for key in _POINT_KEYS:
                point = child.get(key)
                if point is not None:
                    _mirror_point(point)
            pts = child.get("pts")
            if pts is not None:
                for xy in pts.find_all("xy"):
                    _mirror_point(xy)
    return footprint_side(fp_node)


def set_footprint_side(fp_node: SExp, side: str) -> bool:
    """Flip when ``side`` differs from the current one; True when flipped."""
    if side not in ("top", "bottom"):
        raise ValidationError(f"side must be 'top' or 'bottom', got {side!r}", field="side")
    if footprint_side(fp_node) == side:
        return False
    flip_footprint(fp_node)
    return True


def place_footprint(
    doc: Document,
    reference: str,
    x: float,
    y: float,
    rotation: float | None = None,
    side: str | None = None,
) -> SExp:
    """Move a footprint and optionally set its orientation and side.

    The side change happens before the rotation so ``rotation`` is the
    final board orientation.
    """
    fp_node = require_footprint(doc, reference)
    if side is not None:
        set_footprint_side(fp_node, side)
    move_footprint(fp_node, x, y)
    if rotation is not None:
        rotate_footprint(fp_node, float(rotation))
    return fp_node
