"""Typed data models for KiCad boards and layout projects."""

from .board import (
    Board,
    Footprint,
    Graphic,
    Layer,
    Net,
    NetClass,
    Pad,
    Track,
    Via,
    Zone,
)
from .common import BoundingBox, Position, rotate_point
from .extract import (
    extract_board,
    extract_footprint,
    extract_footprints,
    extract_layers,
    extract_nets,
)
from .project import Component, Pin, ProjectNet, ProjectState, Rule, rule_from_dict

__all__ = [
    "Board",
    "BoundingBox",
    "Component",
    "Footprint",
    "Graphic",
    "Layer",
    "Net",
    "NetClass",
    "Pad",
    "Pin",
    "Position",
    "ProjectNet",
    "ProjectState",
    "Rule",
    "Track",
    "Via",
    "Zone",
    "extract_board",
    "extract_footprint",
    "extract_footprints",
    "extract_layers",
    "extract_nets",
    "rotate_point",
    "rule_from_dict",
]
