"""Tests for footprint library lookup and component sizing."""

from __future__ import annotations

import logging

import pytest

from kicad_layout_mcp.config import get_settings
from kicad_layout_mcp.footprints import (
    component_dimensions,
    footprint_pins,
    load_footprint,
    resolve_footprint_path,
    split_identifier,
)
from kicad_layout_mcp.schema.board import Footprint, Graphic
from kicad_layout_mcp.schema.common import Position


class TestLookup:
    def test_split_identifier(self) -> None:
        assert split_identifier("Test:R_0805") == ("Test", "R_0805")
        assert split_identifier("R_0805") is None
        assert split_identifier(":R_0805") is None

    def test_resolves_system_library(self) -> None:
        path = resolve_footprint_path("Test:R_0805")
        assert path is not None
        assert path.name == "R_0805.kicad_mod"

    def test_custom_library_wins(self) -> None:
        custom = get_settings().custom_footprint_dir / "Test.pretty"
        custom.mkdir(parents=True)
        (custom / "R_0805.kicad_mod").write_text('(footprint "R_0805" (layer "F.Cu"))')
        assert resolve_footprint_path("Test:R_0805") == custom / "R_0805.kicad_mod"

    def test_missing_footprint_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING):
            assert load_footprint("Test:Nope") is None
        assert "Test:Nope" in caplog.text

    def test_unreadable_footprint_is_none(self) -> None:
        custom = get_settings().custom_footprint_dir / "Broken.pretty"
        custom.mkdir(parents=True)
        (custom / "Bad.kicad_mod").write_text('(footprint "Bad" (layer')
        assert load_footprint("Broken:Bad") is None

    def test_library_identifier_is_recorded(self) -> None:
        fp = load_footprint("Test:R_0805")
        assert fp is not None
        assert fp.library == "Test:R_0805"


class TestDimensions:
    def test_courtyard_sizes_both(self) -> None:
        dims = component_dimensions(load_footprint("Test:R_0805"))
        assert dims["placeholder_dimensions"] == {"width": 3.36, "height": 1.9}
        assert dims["drc_dimensions"] == {"width": 3.36, "height": 1.9}
        assert dims["placeholder_shape"] == "rectangle"

    def test_pads_only_footprint(self) -> None:
        dims = component_dimensions(load_footprint("Test:PadsOnly"))
        assert dims["placeholder_dimensions"] == {"width": 2.0, "height": 1.0}
        assert dims["drc_dimensions"] == dims["placeholder_dimensions"]

    def test_circular_courtyard(self) -> None:
        dims = component_dimensions(load_footprint("Test:Round"))
        assert dims["placeholder_shape"] == "circle"
        assert dims["drc_shape"] == "circle"
        assert dims["drc_dimensions"]["width"] == pytest.approx(6.0, abs=0.05)

    def test_silkscreen_only_footprint(self) -> None:
        fp = Footprint(
            library="Test:Logo",
            reference="G1",
            value="",
            position=Position(0.0, 0.0),
            layer="F.Cu",
            graphics=[Graphic(shape="rect", layer="F.SilkS", start=(-2.0, -1.5), end=(2.0, 1.5))],
        )
        dims = component_dimensions(fp)
        assert dims["placeholder_dimensions"] == {"width": 4.0, "height": 3.0}
        assert dims["drc_dimensions"] == dims["placeholder_dimensions"]
        assert dims["placeholder_shape"] == "rectangle"

    def test_unknown_footprint_has_no_dimensions(self) -> None:
        dims = component_dimensions(None)
        assert dims["placeholder_dimensions"] is None
        assert dims["drc_dimensions"] is None


class TestPins:
    def test_pins_in_footprint_frame(self) -> None:
        pins = footprint_pins(load_footprint("Test:R_0805"))
        assert [(p.name, p.x, p.y) for p in pins] == [("1", -0.9125, 0.0), ("2", 0.9125, 0.0)]

    def test_no_footprint_no_pins(self) -> None:
        assert footprint_pins(None) == []
