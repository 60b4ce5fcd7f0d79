"""In-place edit operations on .kicad_pcb documents."""

from .layers import set_copper_layer_count
from .outline import BoardOutline, create_board_outline, refit_outline
from .placement import flip_footprint, place_footprint, rotate_footprint
from .routing import add_segment, add_via, clear_routing
from .zones import create_copper_pour

__all__ = [
    "BoardOutline",
    "add_segment",
    "add_via",
    "clear_routing",
    "create_board_outline",
    "create_copper_pour",
    "flip_footprint",
    "place_footprint",
    "refit_outline",
    "rotate_footprint",
    "set_copper_layer_count",
]
