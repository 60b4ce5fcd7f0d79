"""Tests for the Specctra DSN writer and padstack naming."""

from __future__ import annotations

import pytest

from kicad_layout_mcp.schema.board import Board, NetClass, Pad, Zone
from kicad_layout_mcp.schema.common import Position
from kicad_layout_mcp.schema.extract import extract_board
from kicad_layout_mcp.sexp import Document
from kicad_layout_mcp.sexp.values import read_value
from kicad_layout_mcp.specctra import Tuple, board_to_dsn, read_tree, to_values, write_dsn
from kicad_layout_mcp.specctra.dsn import placement_angle
from kicad_layout_mcp.specctra.nodes import format_angle, format_um, token
from kicad_layout_mcp.specctra.padstacks import pad_name, pad_shape, side_letter, via_name


def _pad(shape: str = "roundrect", size: tuple[float, float] = (1.025, 1.4), x: float = 0.0) -> Pad:
    return Pad(
        number="1",
        pad_type="smd",
        shape=shape,
        position=Position(x, 0.0),
        size=size,
        layers=["F.Cu", "F.Paste", "F.Mask"],
        roundrect_rratio=0.243902,
    )


@pytest.fixture()
def board(board_doc: Document) -> Board:
    return extract_board(board_doc)


@pytest.fixture()
def tree(board: Board) -> Tuple:
    return board_to_dsn(board)


class TestNodes:
    def test_format_um(self) -> None:
        assert format_um(250_000) == "250"
        assert format_um(912_500) == "912.5"
        assert format_um(-0.0) == "0"

    def test_format_angle(self) -> None:
        assert format_angle(-90) == "270"
        assert format_angle(360) == "0"
        assert format_angle(45.5) == "45.5"

    def test_token_quotes_reserved_characters(self) -> None:
        assert str(token("GND")) == "GND"
        assert str(token("Net-(R1-Pad1)")) == '"Net-(R1-Pad1)"'
        assert str(token("")) == '""'


class TestPadstackNaming:
    def test_roundrect_name(self) -> None:
        assert pad_name(_pad(), "T") == "Roundrect[T]Pad_1025x1400_um_r250_a0"

    def test_same_shape_same_name(self) -> None:
        assert pad_name(_pad(x=-0.9), "T") == pad_name(_pad(x=0.9), "T")

    def test_orientation_changes_roundrect_name(self) -> None:
        assert pad_name(_pad(), "T", 90) != pad_name(_pad(), "T", 0)

    def test_rect_name_has_no_radius(self) -> None:
        assert pad_name(_pad("rect", (1.7, 1.7)), "A") == "Rect[A]Pad_1700x1700_um"

    def test_side_letters(self) -> None:
        assert side_letter(["*.Cu", "*.Mask"]) == "A"
        assert side_letter(["F.Cu", "F.Paste"]) == "T"
        assert side_letter(["B.Cu"]) == "B"
        assert side_letter(["F.SilkS"]) is None

    def test_via_name(self) -> None:
        assert via_name(800_000, 400_000, 2) == "Via[0-1]_800:400_um"

    def test_horizontal_oval_is_a_path(self) -> None:
        shape = pad_shape(_pad("oval", (2.0, 1.0)), "F.Cu")
        assert to_values(shape) == ["path", "F.Cu", 1000, -500, 0, 500, 0]

    def test_round_oval_is_a_circle(self) -> None:
        assert to_values(pad_shape(_pad("oval", (1.7, 1.7)), "F.Cu")) == ["circle", "F.Cu", 1700]


class TestDsnDocument:
    def test_text_round_trips_through_reader(self, tree: Tuple) -> None:
        text = str(tree)
        assert str(read_tree(text)) == text

    def test_tokenizer_sees_same_structure(self, tree: Tuple) -> None:
        assert read_value(str(tree)) == to_values(tree)

    def test_header(self, tree: Tuple) -> None:
        values = to_values(tree)
        assert values[0] == "pcb"
        assert values[1] == "fixture.kicad_pcb"
        assert ["resolution", "um", 10] in values
        assert ["unit", "um"] in values

    def test_section_order(self, tree: Tuple) -> None:
        keywords = [child.keyword for child in tree.children()]
        assert keywords == [
            "parser", "resolution", "unit", "structure", "placement", "library", "network", "wiring",
        ]  # fmt: skip

    def test_copper_layers(self, tree: Tuple) -> None:
        structure = tree.find("structure")
        assert structure is not None
        layers = [to_values(layer)[1] for layer in structure.find_all("layer")]
        assert layers == ["F.Cu", "B.Cu"]

    def test_boundary_flips_y(self, tree: Tuple) -> None:
        boundary = tree.find("structure").find("boundary")  # type: ignore[union-attr]
        path = to_values(boundary)[1]
        assert path[:3] == ["path", "pcb", 0]
        coords = list(zip(path[3::2], path[4::2]))
        assert set(coords) == {(0, 0), (30000, 0), (30000, -20000), (0, -20000)}

    def test_boundary_falls_back_to_item_bbox(self, board: Board) -> None:
        board.graphics = []
        tree = board_to_dsn(board)
        path = to_values(tree.find("structure").find("boundary"))[1]  # type: ignore[union-attr]
        xs = path[3::2]
        assert min(xs) < 8000
        assert max(xs) > 23390

    def test_default_rule_with_smd_clearance(self, tree: Tuple) -> None:
        rule = to_values(tree.find("structure").find("rule"))  # type: ignore[union-attr]
        assert ["width", 250] in rule
        assert ["clearance", 200] in rule
        assert ["clearance", 50, ["type", "smd_smd"]] in rule

    def test_placement_entries(self, tree: Tuple) -> None:
        placement = to_values(tree.find("placement"))
        components = {c[1]: c[2:] for c in placement[1:]}
        assert components["Resistor_SMD:R_0805_2012Metric"] == [
            ["place", "R1", 10000, -10000, "front", 0, ["PN", "10k"]]
        ]
        assert components["Connector_PinHeader_2.54mm:PinHeader_1x02_P2.54mm_Vertical"] == [
            ["place", "J1", 20000, -10000, "front", 90, ["PN", "Conn_01x02"]]
        ]

    def test_back_side_rotation_is_mirrored(self) -> None:
        assert placement_angle(90, "back") == "90"
        assert placement_angle(30, "back") == "150"
        assert placement_angle(30, "front") == "30"

    def test_padstacks_are_deduplicated(self, tree: Tuple) -> None:
        library = tree.find("library")
        names = [to_values(p)[1] for p in library.find_all("padstack")]  # type: ignore[union-attr]
        assert names.count("Roundrect[T]Pad_1025x1400_um_r250_a0") == 1
        assert "Rect[A]Pad_1700x1700_um" in names
        assert "Oval[A]Pad_1700x1700_um" in names
        assert "Via[0-1]_800:400_um" in names

    def test_image_pins_use_local_frame(self, tree: Tuple) -> None:
        images = {to_values(i)[1]: to_values(i) for i in tree.find("library").find_all("image")}  # type: ignore[union-attr]
        header = images["Connector_PinHeader_2.54mm:PinHeader_1x02_P2.54mm_Vertical"]
        pins = [item for item in header if isinstance(item, list) and item[0] == "pin"]
        assert pins == [
            ["pin", "Rect[A]Pad_1700x1700_um", 1, 0, 0],
            ["pin", "Oval[A]Pad_1700x1700_um", 2, 0, -2540],
        ]

    def test_network_pins(self, tree: Tuple) -> None:
        network = to_values(tree.find("network"))
        nets = {n[1]: n[2] for n in network[1:] if n[0] == "net"}
        assert nets == {"GND": ["pins", "R1-2", "J1-2"], "VCC": ["pins", "R1-1", "J1-1"]}

    def test_default_class(self, tree: Tuple) -> None:
        network = to_values(tree.find("network"))
        classes = [n for n in network[1:] if n[0] == "class"]
        assert len(classes) == 1
        assert classes[0][:4] == ["class", "kicad_default", "GND", "VCC"]
        assert ["circuit", ["use_via", "Via[0-1]_800:400_um"]] in classes[0]

    def test_unnamed_class_is_default(self, board: Board) -> None:
        board.default_net_class.name = ""
        network = to_values(board_to_dsn(board).find("network"))
        classes = [n for n in network[1:] if n[0] == "class"]
        assert [c[1] for c in classes] == ["kicad_default"]

    def test_empty_net_class_is_omitted(self, board: Board) -> None:
        board.net_classes.append(NetClass("Unused", 0.3, 0.5, 0.8, 0.4, nets=[]))
        network = to_values(board_to_dsn(board).find("network"))
        assert all(n[1] != "Unused" for n in network[1:] if n[0] == "class")

    def test_net_class_without_via_is_omitted(self, board: Board) -> None:
        default = board.default_net_class
        board.net_classes = [NetClass("Default", 0.2, 0.25, 0.0, 0.0, nets=list(default.nets))]
        network = to_values(board_to_dsn(board).find("network"))
        assert [n for n in network[1:] if n[0] == "class"] == []

    def test_selected_pads_restrict_network(self, board: Board) -> None:
        tree = board_to_dsn(board, selected_pads=["R1-2", "J1-2"])
        network = to_values(tree.find("network"))
        assert [n[1] for n in network[1:] if n[0] == "net"] == ["GND"]

    def test_zones_become_planes(self, board: Board) -> None:
        board.zones.append(Zone(1, "GND", ["B.Cu"], [(0, 0), (30, 0), (30, 20), (0, 20)]))
        without = board_to_dsn(board).find("structure")
        with_zones = board_to_dsn(board, include_zones=True).find("structure")
        assert without.find("plane") is None  # type: ignore[union-attr]
        plane = to_values(with_zones.find("plane"))  # type: ignore[union-attr]
        assert plane[:2] == ["plane", "GND"]
        assert plane[2][:3] == ["polygon", "B.Cu", 0]

    def test_write_dsn(self, board: Board, tmp_path) -> None:
        path = write_dsn(board, tmp_path / "out.dsn")
        assert path.read_text(encoding="utf-8").startswith("(pcb fixture.kicad_pcb")
