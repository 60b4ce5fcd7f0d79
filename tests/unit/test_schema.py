"""Tests for typed schema models and extraction from S-expression trees."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from kicad_layout_mcp.schema import (
    BoundingBox,
    Position,
    extract_board,
    extract_footprints,
    extract_layers,
    extract_nets,
)
from kicad_layout_mcp.schema.extract import extract_net_classes, extract_tracks, extract_vias
from kicad_layout_mcp.sexp import Document


class TestCommonModels:
    def test_position_to_dict(self) -> None:
        pos = Position(1.5, 2.5)
        d = pos.to_dict()
        assert d == {"x": 1.5, "y": 2.5}

    def test_position_with_angle_to_dict(self) -> None:
        pos = Position(1.0, 2.0, 90.0)
        d = pos.to_dict()
        assert d == {"x": 1.0, "y": 2.0, "angle": 90.0}

    def test_bounding_box_properties(self) -> None:
        bb = BoundingBox(0.0, 0.0, 10.0, 20.0)
        assert bb.width == 10.0
        assert bb.height == 20.0
        assert bb.center == Position(5.0, 10.0)

    def test_bounding_box_to_dict(self) -> None:
        bb = BoundingBox(1.0, 2.0, 11.0, 22.0)
        d = bb.to_dict()
        assert d["min_x"] == 1.0
        assert d["width"] == 10.0
        assert d["height"] == 20.0


class TestExtractFromFixture:
    """Extract schema models from the two-footprint fixture board."""

    def test_extract_nets(self, board_doc: Document) -> None:
        nets = extract_nets(board_doc)
        assert [(n.number, n.name) for n in nets] == [(0, ""), (1, "GND"), (2, "VCC")]

    def test_extract_layers(self, board_doc: Document) -> None:
        layers = extract_layers(board_doc)
        names = {lyr.name for lyr in layers}
        assert {"F.Cu", "B.Cu", "Edge.Cuts"} <= names
        silk = next(lyr for lyr in layers if lyr.name == "F.SilkS")
        assert silk.user_name == "F.Silkscreen"
        assert [lyr.name for lyr in layers if lyr.is_copper] == ["F.Cu", "B.Cu"]

    def test_extract_footprint_properties(self, board_doc: Document) -> None:
        fps = {f.reference: f for f in extract_footprints(board_doc)}
        r1 = fps["R1"]
        assert r1.library == "Resistor_SMD:R_0805_2012Metric"
        assert r1.value == "10k"
        assert r1.side == "top"
        assert r1.position == Position(10.0, 10.0)
        assert fps["J1"].position.angle == 90.0

    def test_extract_footprint_pads(self, board_doc: Document) -> None:
        r1 = next(f for f in extract_footprints(board_doc) if f.reference == "R1")
        pad1 = r1.pads[0]
        assert pad1.number == "1"
        assert pad1.pad_type == "smd"
        assert pad1.shape == "roundrect"
        assert pad1.net_name == "VCC"
        assert pad1.size == (1.025, 1.4)
        assert len(r1.graphics) == 4

    def test_tracks_and_vias(self, board_doc: Document) -> None:
        [track] = extract_tracks(board_doc)
        assert track.layer == "F.Cu"
        assert track.net_number == 1
        [via] = extract_vias(board_doc)
        assert via.layers == ("F.Cu", "B.Cu")

    def test_board_model(self, board_doc: Document) -> None:
        board = extract_board(board_doc)
        assert board.thickness == 1.6
        assert [lyr.name for lyr in board.copper_layers] == ["F.Cu", "B.Cu"]
        assert board.net_by_name("GND").number == 1
        assert board.net_by_name("nope") is None
        assert len(board.graphics) == 4

    def test_footprint_to_dict_json_serializable(self, board_doc: Document) -> None:
        for fp in extract_footprints(board_doc):
            json.dumps(fp.to_dict())


class TestNetClasses:
    def test_default_class_owns_every_net(self, board_doc: Document) -> None:
        classes = extract_net_classes(board_doc, extract_nets(board_doc))
        assert [c.name for c in classes] == ["Default"]
        assert classes[0].nets == ["GND", "VCC"]

    def test_project_file_assignments(self, board_doc: Document) -> None:
        project = Path(board_doc.path).with_suffix(".kicad_pro")
        project.write_text(
            json.dumps(
                {
                    "net_settings": {
                        "classes": [
                            {"name": "Default", "clearance": 0.2, "track_width": 0.25},
                            {"name": "Power", "clearance": 0.3, "track_width": 0.5},
                        ],
                        "netclass_patterns": [{"netclass": "Power", "pattern": "V*"}],
                    }
                }
            )
        )
        board = extract_board(board_doc)
        power = board.net_class_for("VCC")
        assert power.name == "Power"
        assert power.track_width == pytest.approx(0.5)
        assert board.net_class_for("GND").name == "Default"

    def test_unreadable_project_file_is_ignored(self, board_doc: Document) -> None:
        Path(board_doc.path).with_suffix(".kicad_pro").write_text("{not json")
        classes = extract_net_classes(board_doc, extract_nets(board_doc))
        assert [c.name for c in classes] == ["Default"]
