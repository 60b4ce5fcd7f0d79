"""Planar geometry for board drawings and footprints.

- tessellation of arcs and circles to a fixed chord tolerance
- coordinate sequences for every drawable shape
- greedy merge of drawings that share end points into continuous chains
  (board outlines, footprint courtyards)
- footprint local/board frame transforms and bounding boxes

Units are millimetres throughout.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field

from .constants import ARC_CHORD_TOLERANCE, DEFAULT_ARC_SEGMENTS
from .schema.board import Footprint, Graphic, Pad, Point
from .schema.common import BoundingBox, rotate_point


def arc_segment_count(angle: float, radius: float) -> int:
    """Number of chords for a sweep of ``angle`` degrees at ``radius``.

    Chosen so the chord sagitta stays under :data:`ARC_CHORD_TOLERANCE`.
    """
    if radius <= ARC_CHORD_TOLERANCE:
        return DEFAULT_ARC_SEGMENTS
    step = math.acos(1 - ARC_CHORD_TOLERANCE / radius)
    return max(1, round(math.pi * abs(angle) / 360 / step))


def _arc_point(center: Point, radius: float, angle: float) -> Point:
    return (center[0] + radius * math.cos(angle), center[1] + radius * math.sin(angle))


def circumcenter(a: Point, b: Point, c: Point) -> Point | None:
    """Centre of the circle through three points; None when they are collinear."""
    d = 2 * (a[0] * (b[1] - c[1]) + b[0] * (c[1] - a[1]) + c[0] * (a[1] - b[1]))
    if abs(d) < 1e-12:
        return None
    a2 = a[0] ** 2 + a[1] ** 2
    b2 = b[0] ** 2 + b[1] ** 2
    c2 = c[0] ** 2 + c[1] ** 2
    ux = (a2 * (b[1] - c[1]) + b2 * (c[1] - a[1]) + c2 * (a[1] - b[1])) / d
    uy = (a2 * (c[0] - b[0]) + b2 * (a[0] - c[0]) + c2 * (b[0] - a[0])) / d
    return (ux, uy)


def tessellate_arc(start: Point, mid: Point, end: Point) -> list[Point]:
    """Points along the arc start -> mid -> end, end points exact."""
    center = circumcenter(start, mid, end)
    if center is None:
        return [start, end]
    radius = math.dist(center, start)
    a0 = math.atan2(start[1] - center[1], start[0] - center[0])
    a_mid = math.atan2(mid[1] - center[1], mid[0] - center[0])
    a1 = math.atan2(end[1] - center[1], end[0] - center[0])

    tau = 2 * math.pi
    sweep = (a1 - a0) % tau
    if (a_mid - a0) % tau > sweep:
        sweep -= tau

    n = arc_segment_count(math.degrees(sweep), radius)
    inner = [_arc_point(center, radius, a0 + sweep * i / n) for i in range(1, n)]
    return [start, *inner, end]


def tessellate_circle(center: Point, radius: float) -> list[Point]:
    """Closed ring of points; the last point repeats the first exactly."""
    n = arc_segment_count(360, radius)
    ring = [_arc_point(center, radius, 2 * math.pi * i / n) for i in range(n)]
    return [*ring, ring[0]]


def graphic_coords(graphic: Graphic) -> tuple[Point, Point, list[Point]]:
    """Return ``(start, end, coords)`` of a drawing.

    Closed shapes (circle, rect, poly) start and end on the same point.
    """
    if graphic.shape == "line":
        return graphic.start, graphic.end, [graphic.start, graphic.end]

    if graphic.shape == "arc":
        mid = graphic.mid if graphic.mid is not None else graphic.start
        return graphic.start, graphic.end, tessellate_arc(graphic.start, mid, graphic.end)

    if graphic.shape == "circle":
        center = graphic.center or (0.0, 0.0)
        coords = tessellate_circle(center, math.dist(center, graphic.end))
        return coords[0], coords[0], coords

    if graphic.shape == "rect":
        (x1, y1), (x2, y2) = graphic.start, graphic.end
        coords = [(x1, y1), (x2, y1), (x2, y2), (x1, y2), (x1, y1)]
        return coords[0], coords[0], coords

    if not graphic.points:
        return graphic.start, graphic.end, []
    coords = [*graphic.points, graphic.points[0]]
    return coords[0], coords[0], coords


@dataclass
class Chain:
    """A run of drawings joined end to end.

    ``pieces`` holds each member's coordinates and whether it is walked
    backwards.
    """

    start: Point
    end: Point
    pieces: list[tuple[list[Point], bool]] = field(default_factory=list)

    @property
    def coords(self) -> list[Point]:
        out: list[Point] = []
        for i, (coords, backwards) in enumerate(self.pieces):
            seq = coords[::-1] if backwards else coords
            out.extend(seq if i == 0 else seq[1:])
        return out


def _attach(chains: list[Chain], start: Point, end: Point, coords: list[Point]) -> None:
    """Join a drawing onto the first chain sharing an end point, else start a new chain."""
    for chain in chains:
        if start == chain.start:
            chain.start = end
            chain.pieces.insert(0, (coords, True))
            return
        if start == chain.end:
            chain.end = end
            chain.pieces.append((coords, False))
            return
        if end == chain.start:
            chain.start = start
            chain.pieces.insert(0, (coords, False))
            return
        if end == chain.end:
            chain.end = start
            chain.pieces.append((coords, True))
            return
    chains.append(Chain(start, end, [(coords, False)]))


def merge_chains(chains: list[Chain]) -> list[Chain]:
    """Repeat pairwise joining until nothing more connects."""
    while len(chains) > 1:
        merged: list[Chain] = []
        for chain in chains:
            _attach(merged, chain.start, chain.end, chain.coords)
        if len(merged) == len(chains):
            return merged
        chains = merged
    return chains


def merge_drawings(items: Iterable[tuple[Point, Point, list[Point]]]) -> list[list[Point]]:
    """Merge ``(start, end, coords)`` items into continuous point paths."""
    chains: list[Chain] = []
    for start, end, coords in items:
        if coords:
            _attach(chains, start, end, coords)
    return [chain.coords for chain in merge_chains(chains)]


def merge_all_drawings(graphics: Iterable[Graphic], layer: str) -> list[list[Point]]:
    """Continuous paths formed by every drawing on ``layer``."""
    return merge_drawings(graphic_coords(g) for g in graphics if g.layer == layer)


# ── Footprint frames ────────────────────────────────────────────────


def to_board(fp: Footprint, local: Point) -> Point:
    """Map a footprint-local point onto the board."""
    x, y = rotate_point(local, fp.position.angle)
    return (fp.position.x + x, fp.position.y + y)


def pad_board_position(fp: Footprint, pad: Pad) -> Point:
    return to_board(fp, (pad.position.x, pad.position.y))


def pad_relative_angle(fp: Footprint, pad: Pad) -> float:
    """Pad orientation relative to its footprint, in [0, 360)."""
    return (pad.position.angle - fp.position.angle) % 360


def _pad_corners(pad: Pad, rotation: float) -> list[Point]:
    hw, hh = pad.size[0] / 2, pad.size[1] / 2
    cx, cy = pad.position.x, pad.position.y
    return [
        rotate_point((cx + dx, cy + dy), rotation, (cx, cy))
        for dx, dy in ((-hw, -hh), (hw, -hh), (hw, hh), (-hw, hh))
    ]


def pads_local_bbox(fp: Footprint) -> BoundingBox | None:
    """Extent of all pads in the footprint frame."""
    points: list[Point] = []
    for pad in fp.pads:
        points.extend(_pad_corners(pad, pad_relative_angle(fp, pad)))
    return BoundingBox.from_points(points)


def graphics_local_bbox(fp: Footprint, layers: Iterable[str] | None = None) -> BoundingBox | None:
    """Extent of the footprint's drawings, optionally limited to some layers."""
    wanted = set(layers) if layers is not None else None
    points: list[Point] = []
    for graphic in fp.graphics:
        if wanted is not None and graphic.layer not in wanted:
            continue
        points.extend(graphic_coords(graphic)[2])
    return BoundingBox.from_points(points)


def footprint_bbox(fp: Footprint) -> BoundingBox | None:
    """Board-frame extent of a placed footprint (pads and drawings)."""
    local: list[Point] = []
    for pad in fp.pads:
        local.extend(_pad_corners(pad, pad_relative_angle(fp, pad)))
    for graphic in fp.graphics:
        local.extend(graphic_coords(graphic)[2])
    return BoundingBox.from_points(to_board(fp, p) for p in local)


def footprints_bbox(footprints: Iterable[Footprint]) -> BoundingBox | None:
    box: BoundingBox | None = None
    for fp in footprints:
        fp_box = footprint_bbox(fp)
        if fp_box is None:
            fp_box = BoundingBox(fp.position.x, fp.position.y, fp.position.x, fp.position.y)
        box = fp_box if box is None else box.union(fp_box)
    return box
