"""Specctra session (SES) reader: applies autorouter output to a board.

The applier is additive. Callers remove existing tracks and vias first
(:func:`..board.routing.clear_routing`), otherwise routes are duplicated.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..board.routing import add_segment, add_via
from ..constants import NM_PER_MM
from ..exceptions import ParseError
from ..logging_config import create_logger
from ..schema.board import Board, NetClass
from ..schema.extract import extract_board
from ..sexp import Document, SExpSyntaxError, tokenize
from ..sexp.values import find_all_nodes, find_node, find_node_recursive, parse_tokens
from .dsn import UNNAMED_NET

logger = create_logger(__name__)

_VIA_SIZE_RE = re.compile(r"_(\d+):(\d+)_um")

DEFAULT_MULTIPLIER = 1000.0
"""Native nanometres per SES unit when no resolution is declared."""


@dataclass
class SesResult:
    tracks: int = 0
    vias: int = 0
    nets: int = 0
    skipped_nets: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tracks_added": self.tracks,
            "vias_added": self.vias,
            "nets_routed": self.nets,
            "skipped_nets": list(self.skipped_nets),
        }


def read_session(text: str) -> list[Any]:
    """Parse every top-level expression of an SES file."""
    tokens = tokenize(text)
    values: list[Any] = []
    pos = 0
    while pos < len(tokens):
        value, pos = parse_tokens(tokens, pos)
        values.append(value)
    return values


def find_routes(values: list[Any]) -> list[Any]:
    """The ``routes`` block, or a bare ``network_out`` from older routers."""
    wrapper = ["session_file", *values]
    routes = find_node_recursive(wrapper, "routes")
    if routes is None:
        routes = find_node_recursive(wrapper, "network_out")
    if routes is None:
        raise ValueError("Could not find a '(routes ...)' or '(network_out ...)' block in the SES file")
    return routes


def unit_multiplier(routes: list[Any]) -> float:
    """Nanometres per SES unit: ``(resolution um N)`` gives ``1000 / N``."""
    resolution = find_node(routes, "resolution")
    if resolution is not None and len(resolution) == 3:
        unit, value = resolution[1], resolution[2]
        if unit == "um" and isinstance(value, (int, float)) and value > 0:
            return 1000.0 / float(value)
    return DEFAULT_MULTIPLIER


def to_board_nm(x: float, y: float, multiplier: float) -> tuple[int, int]:
    """SES coordinates to board nanometres, flipping Y."""
    return int(x * multiplier), int(-y * multiplier)


def via_size_nm(padstack: str, net_class: NetClass) -> tuple[int, int]:
    """Via diameter and drill from a padstack name such as ``Via[0-1]_800:400_um``.

    Falls back to the net class sizes when the name does not carry them.
    """
    match = _VIA_SIZE_RE.search(padstack)
    if match:
        return int(match.group(1)) * 1000, int(match.group(2)) * 1000
    logger.warning(f"Could not parse via size from {padstack!r}; using net class {net_class.name!r} sizes")
    return round(net_class.via_diameter * NM_PER_MM), round(net_class.via_drill * NM_PER_MM)


def _mm(nm: int) -> float:
    return nm / NM_PER_MM


def _apply_net(doc: Document, board: Board, net_def: list[Any], multiplier: float, result: SesResult) -> None:
    ses_name = net_def[1] if len(net_def) > 1 and not isinstance(net_def[1], list) else ""
    items = net_def[2:] if ses_name != "" else net_def[1:]
    name = "" if ses_name == UNNAMED_NET else str(ses_name)

    net = board.net_by_name(name)
    if net is None:
        logger.warning(f"Net {name!r} not found on the board; skipping its routes")
        result.skipped_nets.append(name)
        return
    net_class = board.net_class_for(name)
    result.nets += 1

    for item in items:
        if not isinstance(item, list) or not item:
            continue
        if item[0] == "wire":
            for path in find_all_nodes(item, "path"):
                layer, width, *coords = path[1:]
                width_nm = int(width * multiplier)
                for i in range(0, len(coords) - 2, 2):
                    start = to_board_nm(coords[i], coords[i + 1], multiplier)
                    end = to_board_nm(coords[i + 2], coords[i + 3], multiplier)
                    add_segment(
                        doc,
                        (_mm(start[0]), _mm(start[1])),
                        (_mm(end[0]), _mm(end[1])),
                        _mm(width_nm),
                        str(layer),
                        net.number,
                    )
                    result.tracks += 1
        elif item[0] == "via":
            if len(item) < 4:
                continue
            padstack, x, y = str(item[1]), item[2], item[3]
            position = to_board_nm(x, y, multiplier)
            diameter, drill = via_size_nm(padstack, net_class)
            add_via(doc, (_mm(position[0]), _mm(position[1])), _mm(diameter), _mm(drill), net.number)
            result.vias += 1


def parse_and_apply_ses(doc: Document, ses_path: str | Path) -> SesResult:
    """Read a routed session and add its wires and vias to ``doc``.

    Nets unknown to the board are skipped with a warning. Any other
    failure aborts the whole application.

    Raises:
        ParseError: If the file cannot be read, parsed or applied.
    """
    path = Path(ses_path)
    try:
        values = read_session(path.read_text(encoding="utf-8"))
        routes = find_routes(values)
        multiplier = unit_multiplier(routes)
        network = find_node(routes, "network_out") or routes

        board = extract_board(doc)
        result = SesResult()
        for net_def in find_all_nodes(network, "net"):
            _apply_net(doc, board, net_def, multiplier, result)
    except (OSError, ValueError, TypeError, IndexError, SExpSyntaxError) as e:
        raise ParseError(
            f"Failed to parse and apply the routed session (SES) file {path.name!r}. Error: {e}",
            path=str(path),
        ) from e

    logger.info(
        f"Applied SES {path.name}: {result.tracks} tracks, {result.vias} vias, "
        f"{len(result.skipped_nets)} nets skipped"
    )
    return result
