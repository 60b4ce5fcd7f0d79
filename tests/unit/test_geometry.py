"""Tests for arc tessellation, drawing merge and footprint geometry."""

from __future__ import annotations

import itertools
import math

import pytest

from kicad_layout_mcp.geometry import (
    arc_segment_count,
    footprint_bbox,
    graphic_coords,
    merge_all_drawings,
    pad_board_position,
    pad_relative_angle,
    pads_local_bbox,
    tessellate_arc,
    tessellate_circle,
)
from kicad_layout_mcp.schema.board import Graphic
from kicad_layout_mcp.schema.common import BoundingBox, rotate_point
from kicad_layout_mcp.schema.extract import extract_board
from kicad_layout_mcp.sexp import Document


def _rect_lines(layer: str = "Edge.Cuts") -> list[Graphic]:
    corners = [(0.0, 0.0), (30.0, 0.0), (30.0, 20.0), (0.0, 20.0)]
    return [
        Graphic(shape="line", layer=layer, start=corners[i], end=corners[(i + 1) % 4]) for i in range(4)
    ]


class TestRotatePoint:
    def test_quarter_turn_is_counter_clockwise_on_screen(self) -> None:
        x, y = rotate_point((1.0, 0.0), 90)
        assert x == pytest.approx(0.0, abs=1e-12)
        assert y == pytest.approx(-1.0)

    def test_about_origin(self) -> None:
        x, y = rotate_point((2.0, 1.0), 180, (1.0, 1.0))
        assert (x, y) == pytest.approx((0.0, 1.0))


class TestTessellation:
    def test_segment_count_grows_with_radius(self) -> None:
        assert arc_segment_count(90, 50) > arc_segment_count(90, 1)

    def test_tiny_radius_uses_default(self) -> None:
        assert arc_segment_count(360, 0.001) == 16

    def test_arc_endpoints_exact(self) -> None:
        points = tessellate_arc((10.0, 0.0), (0.0, 10.0), (-10.0, 0.0))
        assert points[0] == (10.0, 0.0)
        assert points[-1] == (-10.0, 0.0)
        assert len(points) - 1 == arc_segment_count(180, 10)

    def test_arc_passes_through_mid_side(self) -> None:
        points = tessellate_arc((10.0, 0.0), (0.0, 10.0), (-10.0, 0.0))
        for x, y in points:
            assert math.hypot(x, y) == pytest.approx(10.0)
            assert y >= -1e-9

    def test_collinear_arc_degrades_to_chord(self) -> None:
        assert tessellate_arc((0.0, 0.0), (1.0, 0.0), (2.0, 0.0)) == [(0.0, 0.0), (2.0, 0.0)]

    def test_circle_is_closed(self) -> None:
        ring = tessellate_circle((5.0, 5.0), 2.0)
        assert ring[0] == ring[-1]
        assert all(math.dist(p, (5.0, 5.0)) == pytest.approx(2.0) for p in ring)


class TestGraphicCoords:
    def test_rect_is_closed(self) -> None:
        start, end, coords = graphic_coords(Graphic(shape="rect", layer="F.CrtYd", start=(0, 0), end=(2, 1)))
        assert start == end == (0, 0)
        assert coords == [(0, 0), (2, 0), (2, 1), (0, 1), (0, 0)]

    def test_poly_closes_back_to_first_point(self) -> None:
        g = Graphic(shape="poly", layer="Edge.Cuts", points=[(0, 0), (1, 0), (1, 1)])
        assert graphic_coords(g)[2] == [(0, 0), (1, 0), (1, 1), (0, 0)]

    def test_empty_poly_has_no_coords(self) -> None:
        g = Graphic(shape="poly", layer="Edge.Cuts")
        assert graphic_coords(g)[2] == []
        assert merge_all_drawings([g], "Edge.Cuts") == []


class TestMergeDrawings:
    def test_rectangle_from_lines(self) -> None:
        paths = merge_all_drawings(_rect_lines(), "Edge.Cuts")
        assert len(paths) == 1
        assert len(paths[0]) == 5
        assert paths[0][0] == paths[0][-1]

    def test_order_independent(self) -> None:
        corners = {(0.0, 0.0), (30.0, 0.0), (30.0, 20.0), (0.0, 20.0)}
        for order in itertools.permutations(_rect_lines()):
            paths = merge_all_drawings(order, "Edge.Cuts")
            assert len(paths) == 1
            assert paths[0][0] == paths[0][-1]
            assert set(paths[0]) == corners

    def test_reversed_segment_is_walked_backwards(self) -> None:
        lines = _rect_lines()
        lines[1] = Graphic(shape="line", layer="Edge.Cuts", start=lines[1].end, end=lines[1].start)
        paths = merge_all_drawings(lines, "Edge.Cuts")
        assert len(paths) == 1
        path = paths[0]
        for a, b in zip(path, path[1:]):
            assert a[0] == b[0] or a[1] == b[1]

    def test_continuous_path_is_unchanged(self) -> None:
        polyline = [
            Graphic(shape="line", layer="Edge.Cuts", start=(0, 0), end=(1, 0)),
            Graphic(shape="line", layer="Edge.Cuts", start=(1, 0), end=(1, 1)),
        ]
        assert merge_all_drawings(polyline, "Edge.Cuts") == [[(0, 0), (1, 0), (1, 1)]]

    def test_disjoint_shapes_stay_separate(self) -> None:
        drawings = _rect_lines() + [Graphic(shape="circle", layer="Edge.Cuts", center=(15, 10), end=(16, 10))]
        paths = merge_all_drawings(drawings, "Edge.Cuts")
        assert len(paths) == 2

    def test_other_layers_ignored(self) -> None:
        assert merge_all_drawings(_rect_lines("F.SilkS"), "Edge.Cuts") == []


class TestFootprintGeometry:
    @pytest.fixture()
    def footprints(self, board_doc: Document) -> dict:
        return {fp.reference: fp for fp in extract_board(board_doc).footprints}

    def test_pads_local_bbox(self, footprints: dict) -> None:
        box = pads_local_bbox(footprints["R1"])
        assert box is not None
        assert box.width == pytest.approx(2.85)
        assert box.height == pytest.approx(1.4)

    def test_relative_angle_removes_footprint_rotation(self, footprints: dict) -> None:
        j1 = footprints["J1"]
        assert [pad_relative_angle(j1, pad) for pad in j1.pads] == [0.0, 0.0]

    def test_pad_board_position_follows_rotation(self, footprints: dict) -> None:
        j1 = footprints["J1"]
        assert pad_board_position(j1, j1.pads[1]) == pytest.approx((22.54, 10.0))

    def test_rotated_footprint_bbox(self, footprints: dict) -> None:
        box = footprint_bbox(footprints["J1"])
        assert box is not None
        assert box.min_x == pytest.approx(19.15)
        assert box.max_x == pytest.approx(23.39)
        assert box.min_y == pytest.approx(9.15)
        assert box.max_y == pytest.approx(10.85)


class TestBoundingBox:
    def test_from_points_empty(self) -> None:
        assert BoundingBox.from_points([]) is None

    def test_union_and_inflate(self) -> None:
        box = BoundingBox(0, 0, 1, 1).union(BoundingBox(2, 2, 3, 4)).inflate(1)
        assert (box.min_x, box.min_y, box.max_x, box.max_y) == (-1, -1, 4, 5)
        assert box.width == 5
        assert box.center.x == pytest.approx(1.5)
