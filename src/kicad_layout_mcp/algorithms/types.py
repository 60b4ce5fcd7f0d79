"""Shared dataclasses for the constraint layout solver."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from typing import Any

from ..exceptions import ValidationError
from ..schema.common import rotate_point


@dataclass
class LayoutParams:
    """Heuristic weights of the force simulation.

    Field names mirror the camelCase keys layout clients send
    (``componentSpacing`` -> ``component_spacing``).
    """

    component_spacing: float = 200.0
    net_length_weight: float = 0.03
    distribution_strength: float = 0.5
    board_edge_constraint: float = 2.0
    settling_speed: float = 0.9
    repulsion_ramp_up_steps: int = 600
    proximity_kp: float = 1.0
    proximity_kd: float = 0.2
    symmetry_strength: float = 10.0
    alignment_strength: float = 10.0
    circular_strength: float = 10.0
    symmetrical_pair_strength: float = 20.0
    fixed_rotation_strength: float = 50.0
    symmetry_rotation_strength: float = 10.0
    circular_rotation_strength: float = 10.0
    max_steps: int = 3000

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> LayoutParams:
        """Build params from snake_case or camelCase keys; unknown keys are rejected."""
        if not data:
            return cls()
        known = {f.name: f for f in fields(cls)}
        values: dict[str, Any] = {}
        for key, value in data.items():
            name = _snake(key)
            if name not in known:
                raise ValidationError(f"Unknown solver parameter {key!r}", field="solver_params")
            try:
                values[name] = int(value) if known[name].type in ("int", int) else float(value)
            except (TypeError, ValueError) as e:
                raise ValidationError(
                    f"Solver parameter {key!r} must be numeric", field="solver_params"
                ) from e
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _snake(key: str) -> str:
    out = []
    for ch in key:
        if ch.isupper():
            out.append("_" + ch.lower())
        else:
            out.append(ch)
    return "".join(out)


@dataclass
class LayoutNode:
    """One component in the simulation (mm, degrees)."""

    ref: str
    x: float
    y: float
    width: float
    height: float
    rotation: float = 0.0
    side: str = "top"
    pins: dict[str, tuple[float, float]] = field(default_factory=dict)
    vx: float = 0.0
    vy: float = 0.0
    omega: float = 0.0
    fx: float = 0.0
    fy: float = 0.0
    torque: float = 0.0

    @property
    def radius(self) -> float:
        """Half-diagonal of the DRC footprint."""
        return math.hypot(self.width, self.height) / 2

    def pin_position(self, pin: str) -> tuple[float, float] | None:
        local = self.pins.get(pin)
        if local is None:
            return None
        dx, dy = rotate_point(local, self.rotation)
        return (self.x + dx, self.y + dy)

    def reset_forces(self) -> None:
        self.fx = self.fy = self.torque = 0.0


@dataclass(frozen=True)
class LayoutEdge:
    """A pin-to-pin connection of one net."""

    source_ref: str
    source_pin: str
    target_ref: str
    target_pin: str
    net: str = ""


@dataclass
class Outline:
    """Board outline the components are kept inside (top-left origin)."""

    x: float
    y: float
    width: float
    height: float
    shape: str = "rectangle"

    @property
    def center(self) -> tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Outline:
        return cls(
            x=float(data.get("x", 0.0)),
            y=float(data.get("y", 0.0)),
            width=float(data.get("width", 50.0)),
            height=float(data.get("height", 50.0)),
            shape=data.get("shape", "rectangle"),
        )


@dataclass
class LayoutResult:
    """Outcome of a solver run."""

    positions: dict[str, dict[str, Any]] = field(default_factory=dict)
    hpwl_before: float = 0.0
    hpwl_after: float = 0.0
    overlap_count: int = 0
    steps: int = 0
    converged: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "positions": self.positions,
            "hpwl_before": round(self.hpwl_before, 3),
            "hpwl_after": round(self.hpwl_after, 3),
            "overlap_count": self.overlap_count,
            "steps": self.steps,
            "converged": self.converged,
        }
