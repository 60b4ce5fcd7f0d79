"""Board outline (Edge.Cuts) generation.

Outlines are either explicit (user given size) or auto-sized around the
placed footprints. The result is described by a :class:`BoardOutline`
whose ``x``/``y`` are the top-left corner of its bounding box, which is
also what the project state stores.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import asdict, dataclass
from typing import Any

from ..constants import BOARD_OUTLINE_STROKE_WIDTH
from ..exceptions import ValidationError
from ..geometry import footprints_bbox
from ..logging_config import create_logger
from ..schema.common import BoundingBox
from ..schema.extract import extract_footprints
from ..sexp import Document
from ..sexp.parser import parse as sexp_parse
from .helpers import fmt, remove_drawings

logger = create_logger(__name__)

EDGE_LAYER = "Edge.Cuts"
EXPLICIT_OFFSET = 5.0
MIN_MARGIN = 2.0
MARGIN_RATIO = 0.1
EMPTY_RECT_SIZE = 20.0
EMPTY_CIRCLE_CENTER = (25.0, 25.0)
EMPTY_CIRCLE_RADIUS = 20.0
REFIT_MARGIN = 5.0

SHAPES = ("rectangle", "circle")


@dataclass
class BoardOutline:
    shape: str
    x: float
    y: float
    width: float
    height: float
    auto_sized: bool

    @property
    def center(self) -> tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        for key in ("x", "y", "width", "height"):
            d[key] = round(d[key], 6)
        return d

    def describe(self) -> str:
        if self.shape == "circle":
            return f"Circular board outline created (diameter: {self.width:.2f}mm)."
        return f"Rectangular board outline created ({self.width:.2f}mm x {self.height:.2f}mm)."


def _margin(extent: float) -> float:
    return max(MIN_MARGIN, extent * MARGIN_RATIO)


def rectangle_outline(bbox: BoundingBox | None, width: float | None, height: float | None) -> BoardOutline:
    """Explicit rectangle at the fixed offset, else the footprint bbox plus margins."""
    if width and height and width > 0 and height > 0:
        return BoardOutline("rectangle", EXPLICIT_OFFSET, EXPLICIT_OFFSET, width, height, auto_sized=False)
    if bbox is None:
        return BoardOutline(
            "rectangle", EXPLICIT_OFFSET, EXPLICIT_OFFSET, EMPTY_RECT_SIZE, EMPTY_RECT_SIZE, auto_sized=True
        )
    box = bbox.inflate(_margin(bbox.width), _margin(bbox.height))
    return BoardOutline("rectangle", box.min_x, box.min_y, box.width, box.height, auto_sized=True)


def circle_outline(bbox: BoundingBox | None, diameter: float | None) -> BoardOutline:
    """Explicit circle centred on the footprints, else one enclosing every bbox corner."""
    if diameter and diameter > 0:
        radius = diameter / 2
        if bbox is None:
            cx = cy = radius + EXPLICIT_OFFSET
        else:
            cx, cy = bbox.center.x, bbox.center.y
        auto_sized = False
    elif bbox is None:
        (cx, cy), radius = EMPTY_CIRCLE_CENTER, EMPTY_CIRCLE_RADIUS
        auto_sized = True
    else:
        cx, cy = bbox.center.x, bbox.center.y
        radius = max(math.dist((cx, cy), corner) for corner in bbox.corners)
        radius += _margin(radius)
        auto_sized = True
    return BoardOutline("circle", cx - radius, cy - radius, 2 * radius, 2 * radius, auto_sized=auto_sized)


def _line(start: tuple[float, float], end: tuple[float, float]) -> str:
    return (
        f"(gr_line (start {fmt(start[0])} {fmt(start[1])}) (end {fmt(end[0])} {fmt(end[1])})"
        f" (stroke (width {fmt(BOARD_OUTLINE_STROKE_WIDTH)}) (type default))"
        f' (layer "{EDGE_LAYER}") (uuid "{uuid.uuid4()}"))'
    )


def draw_outline(doc: Document, outline: BoardOutline) -> int:
    """Replace every Edge.Cuts drawing with ``outline``; returns how many were removed."""
    removed = remove_drawings(doc, EDGE_LAYER)
    if outline.shape == "circle":
        cx, cy = outline.center
        texts = [
            f"(gr_circle (center {fmt(cx)} {fmt(cy)}) (end {fmt(cx + outline.width / 2)} {fmt(cy)})"
            f" (stroke (width {fmt(BOARD_OUTLINE_STROKE_WIDTH)}) (type default)) (fill none)"
            f' (layer "{EDGE_LAYER}") (uuid "{uuid.uuid4()}"))'
        ]
    else:
        x0, y0 = outline.x, outline.y
        x1, y1 = x0 + outline.width, y0 + outline.height
        corners = [(x0, y0), (x1, y0), (x1, y1), (x0, y1)]
        texts = [_line(corners[i], corners[(i + 1) % 4]) for i in range(4)]
    for text in texts:
        doc.root.children.append(sexp_parse(text))
    return removed


def create_board_outline(
    doc: Document,
    shape: str = "rectangle",
    width: float | None = None,
    height: float | None = None,
    diameter: float | None = None,
) -> BoardOutline:
    """Compute and draw a new board outline.

    Args:
        doc: Board document, modified in place.
        shape: "rectangle" or "circle".
        width: Rectangle width in mm; auto-sized when missing or not positive.
        height: Rectangle height in mm; auto-sized when missing or not positive.
        diameter: Circle diameter in mm; auto-sized when missing or not positive.

    Returns:
        The outline that was drawn.
    """
    if shape not in SHAPES:
        raise ValidationError(f"shape must be one of {SHAPES}, got {shape!r}", field="shape")
    bbox = footprints_bbox(extract_footprints(doc))
    if shape == "circle":
        outline = circle_outline(bbox, diameter)
    else:
        outline = rectangle_outline(bbox, width, height)
    removed = draw_outline(doc, outline)
    logger.info(
        f"Drew {outline.shape} outline {outline.width:.2f}x{outline.height:.2f}mm, removed {removed} old items"
    )
    return outline


def refit_outline(doc: Document, shape: str = "rectangle", margin: float = REFIT_MARGIN) -> BoardOutline | None:
    """Redraw an auto-sized outline around the placed footprints; None when the board has none.

    A circle stays centred on the footprints and clears every bbox corner by ``margin``.
    """
    bbox = footprints_bbox(extract_footprints(doc))
    if bbox is None:
        return None
    if shape == "circle":
        cx, cy = bbox.center.x, bbox.center.y
        radius = max(math.dist((cx, cy), corner) for corner in bbox.corners) + margin
        outline = BoardOutline("circle", cx - radius, cy - radius, 2 * radius, 2 * radius, auto_sized=True)
    else:
        box = bbox.inflate(margin, margin)
        outline = BoardOutline("rectangle", box.min_x, box.min_y, box.width, box.height, auto_sized=True)
    draw_outline(doc, outline)
    return outline
