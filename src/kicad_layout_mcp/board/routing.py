"""Track and via edits on a board document."""

from __future__ import annotations

import uuid

from ..sexp import Document
from ..sexp.parser import parse as sexp_parse
from .helpers import fmt

_ROUTING_NODES = frozenset({"segment", "arc", "via"})


def clear_routing(doc: Document) -> dict[str, int]:
    """Remove every track segment, track arc and via.

    Returns:
        Counts of removed items by kind.
    """
    removed = {"segment": 0, "arc": 0, "via": 0}
    kept = []
    for child in doc.root.children:
        if child.name in _ROUTING_NODES:
            removed[child.name] += 1
        else:
            kept.append(child)
    doc.root.children = kept
    return removed


def add_segment(
    doc: Document,
    start: tuple[float, float],
    end: tuple[float, float],
    width: float,
    layer: str,
    net_number: int,
) -> None:
    seg_text = (
        f"(segment (start {fmt(start[0])} {fmt(start[1])}) (end {fmt(end[0])} {fmt(end[1])})"
        f' (width {fmt(width)}) (layer "{layer}")'
        f' (net {net_number}) (uuid "{uuid.uuid4()}"))'
    )
    doc.root.children.append(sexp_parse(seg_text))


def add_via(
    doc: Document,
    position: tuple[float, float],
    diameter: float,
    drill: float,
    net_number: int,
    layers: tuple[str, str] = ("F.Cu", "B.Cu"),
) -> None:
    via_text = (
        f"(via (at {fmt(position[0])} {fmt(position[1])}) (size {fmt(diameter)}) (drill {fmt(drill)})"
        f' (layers "{layers[0]}" "{layers[1]}") (net {net_number})'
        f' (uuid "{uuid.uuid4()}"))'
    )
    doc.root.children.append(sexp_parse(via_text))
