"""Footprint library lookup and component dimension derivation.

A footprint identifier is ``Library:Name``. The ``.kicad_mod`` file is
looked up in the custom libraries of the state directory first, then in
the system libraries::

    fp = load_footprint("Resistor_SMD:R_0805_2012Metric")
    dims = component_dimensions(fp)
    dims["drc_dimensions"]   # {"width": 3.36, "height": 1.9}
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .config import Settings, get_settings
from .geometry import graphics_local_bbox, pads_local_bbox, pad_relative_angle
from .logging_config import create_logger
from .schema.board import Footprint
from .schema.common import BoundingBox
from .schema.extract import extract_footprint
from .schema.project import Pin
from .sexp import Document

logger = create_logger(__name__)

COURTYARD_LAYERS = ("F.CrtYd", "B.CrtYd")
FAB_LAYERS = ("F.Fab", "B.Fab")


def split_identifier(identifier: str) -> tuple[str, str] | None:
    if ":" not in identifier:
        return None
    library, name = identifier.split(":", 1)
    if not library or not name:
        return None
    return library, name


def resolve_footprint_path(identifier: str, settings: Settings | None = None) -> Path | None:
    """Path of the ``.kicad_mod`` for ``Library:Name``, or None when no library has it."""
    parts = split_identifier(identifier)
    if parts is None:
        return None
    library, name = parts
    settings = settings or get_settings()
    for root in (settings.custom_footprint_dir, settings.footprint_dir):
        candidate = root / f"{library}.pretty" / f"{name}.kicad_mod"
        if candidate.is_file():
            return candidate
    return None


def load_footprint(identifier: str, settings: Settings | None = None) -> Footprint | None:
    """Parse a library footprint; None (with a warning) when it cannot be found or read."""
    path = resolve_footprint_path(identifier, settings)
    if path is None:
        logger.warning(f"Footprint {identifier!r} not found in any footprint library")
        return None
    try:
        doc = Document.load(path)
    except (OSError, ValueError) as e:
        logger.warning(f"Could not read footprint {path}: {e}")
        return None
    fp = extract_footprint(doc.root)
    fp.library = identifier
    return fp


@dataclass
class SizeSource:
    """Extent of one sizing source and whether it is a single circle."""

    bbox: BoundingBox
    is_circle: bool

    def dimensions(self) -> dict[str, float]:
        return {"width": round(self.bbox.width, 4), "height": round(self.bbox.height, 4)}

    @property
    def shape(self) -> str:
        return "circle" if self.is_circle else "rectangle"


def _layer_source(fp: Footprint, layers: tuple[str, ...]) -> SizeSource | None:
    graphics = [g for g in fp.graphics if g.layer in layers]
    bbox = graphics_local_bbox(fp, layers)
    if bbox is None or bbox.width <= 0 or bbox.height <= 0:
        return None
    return SizeSource(bbox, is_circle=len(graphics) == 1 and graphics[0].shape == "circle")


def _pads_source(fp: Footprint) -> SizeSource | None:
    bbox = pads_local_bbox(fp)
    if bbox is None:
        return None
    return SizeSource(bbox, is_circle=len(fp.pads) == 1 and fp.pads[0].shape == "circle")


def _raw_source(fp: Footprint) -> SizeSource | None:
    bbox = graphics_local_bbox(fp)
    pads = pads_local_bbox(fp)
    if pads is not None:
        bbox = pads.union(bbox)
    if bbox is None:
        return None
    return SizeSource(bbox, is_circle=False)


def component_dimensions(fp: Footprint | None) -> dict[str, Any]:
    """Placeholder and DRC sizes of a footprint.

    The placeholder comes from the courtyard, else the fab layer, else the
    pads, else every drawing. The DRC size is the courtyard, falling back
    to the placeholder.
    """
    empty = {
        "placeholder_dimensions": None,
        "placeholder_shape": "rectangle",
        "drc_dimensions": None,
        "drc_shape": "rectangle",
    }
    if fp is None:
        return empty

    courtyard = _layer_source(fp, COURTYARD_LAYERS)
    placeholder = courtyard or _layer_source(fp, FAB_LAYERS) or _pads_source(fp) or _raw_source(fp)
    if placeholder is None:
        return empty
    drc = courtyard or placeholder
    return {
        "placeholder_dimensions": placeholder.dimensions(),
        "placeholder_shape": placeholder.shape,
        "drc_dimensions": drc.dimensions(),
        "drc_shape": drc.shape,
    }


def footprint_pins(fp: Footprint | None) -> list[Pin]:
    """One pin per distinct pad number, in the footprint frame."""
    if fp is None:
        return []
    pins: list[Pin] = []
    seen: set[str] = set()
    for pad in fp.pads:
        if not pad.number or pad.number in seen:
            continue
        seen.add(pad.number)
        pins.append(
            Pin(
                name=pad.number,
                x=round(pad.position.x, 4),
                y=round(pad.position.y, 4),
                rotation=pad_relative_angle(fp, pad),
            )
        )
    return pins
