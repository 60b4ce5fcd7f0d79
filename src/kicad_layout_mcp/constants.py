"""Global constants for the layout server."""

# Response Size Constants
MAX_RESPONSE_CHARS = 50_000
"""Maximum characters in a response before truncation (~12k tokens)."""

# Board geometry
BOARD_OUTLINE_STROKE_WIDTH = 0.1
"""Stroke width for generated Edge.Cuts drawings in mm."""

ARC_CHORD_TOLERANCE = 0.005
"""Maximum chord deviation (mm) when tessellating arcs and circles."""

DEFAULT_ARC_SEGMENTS = 16
"""Segment count for arcs whose radius is within the chord tolerance."""

NM_PER_MM = 1_000_000
"""KiCad's internal unit is the nanometre."""

# Layer name pairs swapped when a footprint changes side
LAYER_FLIP: dict[str, str] = {
    "F.Cu": "B.Cu",
    "B.Cu": "F.Cu",
    "F.SilkS": "B.SilkS",
    "B.SilkS": "F.SilkS",
    "F.Fab": "B.Fab",
    "B.Fab": "F.Fab",
    "F.CrtYd": "B.CrtYd",
    "B.CrtYd": "F.CrtYd",
    "F.Mask": "B.Mask",
    "B.Mask": "F.Mask",
    "F.Paste": "B.Paste",
    "B.Paste": "F.Paste",
    "F.Adhes": "B.Adhes",
    "B.Adhes": "F.Adhes",
    "*.Cu": "*.Cu",
}

FABRICATION_LAYERS: tuple[str, ...] = (
    "F.Cu",
    "B.Cu",
    "F.Paste",
    "B.Paste",
    "F.SilkS",
    "B.SilkS",
    "F.Mask",
    "B.Mask",
    "Edge.Cuts",
)
"""Layers plotted to Gerber for a fabrication package."""

# Copper pour defaults
ZONE_MIN_THICKNESS = 0.25
ZONE_THERMAL_GAP = 0.5
ZONE_THERMAL_BRIDGE_WIDTH = 0.5

# Net-class fallbacks when the board declares none (mm)
DEFAULT_TRACK_WIDTH = 0.25
DEFAULT_CLEARANCE = 0.2
DEFAULT_VIA_DIAMETER = 0.8
DEFAULT_VIA_DRILL = 0.4
