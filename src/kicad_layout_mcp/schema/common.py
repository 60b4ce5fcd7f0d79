"""Common typed data models shared across KiCad file types."""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any


def rotate_point(
    point: tuple[float, float],
    angle: float,
    origin: tuple[float, float] = (0.0, 0.0),
) -> tuple[float, float]:
    """Rotate ``point`` about ``origin`` by ``angle`` degrees, KiCad convention.

    Board Y grows downwards, so a positive angle turns counter-clockwise on
    screen: (1, 0) rotated by 90 becomes (0, -1).
    """
    if angle % 360 == 0:
        return point
    rad = math.radians(angle)
    c, s = math.cos(rad), math.sin(rad)
    dx, dy = point[0] - origin[0], point[1] - origin[1]
    return (origin[0] + dx * c + dy * s, origin[1] - dx * s + dy * c)


@dataclass(frozen=True)
class Position:
    """2D position in board coordinates (mm), with an optional angle in degrees."""

    x: float
    y: float
    angle: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"x": self.x, "y": self.y}
        if self.angle != 0.0:
            d["angle"] = self.angle
        return d


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned bounding box (mm)."""

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @classmethod
    def from_points(cls, points: Iterable[tuple[float, float]]) -> BoundingBox | None:
        """Box around the points, or None when there are none."""
        xs: list[float] = []
        ys: list[float] = []
        for x, y in points:
            xs.append(x)
            ys.append(y)
        if not xs:
            return None
        return cls(min(xs), min(ys), max(xs), max(ys))

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center(self) -> Position:
        return Position(
            x=(self.min_x + self.max_x) / 2,
            y=(self.min_y + self.max_y) / 2,
        )

    @property
    def corners(self) -> list[tuple[float, float]]:
        return [
            (self.min_x, self.min_y),
            (self.max_x, self.min_y),
            (self.max_x, self.max_y),
            (self.min_x, self.max_y),
        ]

    def union(self, other: BoundingBox | None) -> BoundingBox:
        if other is None:
            return self
        return BoundingBox(
            min(self.min_x, other.min_x),
            min(self.min_y, other.min_y),
            max(self.max_x, other.max_x),
            max(self.max_y, other.max_y),
        )

    def inflate(self, dx: float, dy: float | None = None) -> BoundingBox:
        dy = dx if dy is None else dy
        return BoundingBox(self.min_x - dx, self.min_y - dy, self.max_x + dx, self.max_y + dy)

    def to_dict(self) -> dict[str, Any]:
        return {
            "min_x": self.min_x,
            "min_y": self.min_y,
            "max_x": self.max_x,
            "max_y": self.max_y,
            "width": self.width,
            "height": self.height,
        }
