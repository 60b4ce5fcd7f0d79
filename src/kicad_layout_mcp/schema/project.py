"""Project state: components, nets, layout rules and the board outline.

This is what ``{project}_state.json`` holds between commands. Rule dicts
keep the wire keys used by layout clients (``type``, ``component``,
``groups``, ``center`` ...), so the same JSON drives both the server-side
solver and external ones.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

from ..exceptions import ValidationError

AXES = ("vertical", "horizontal")
SIDES = ("top", "bottom")


@dataclass
class Pin:
    """A pin in the footprint's local frame (mm, degrees)."""

    name: str
    x: float
    y: float
    rotation: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "x": self.x, "y": self.y, "rotation": self.rotation}


@dataclass
class Component:
    ref: str
    part: str
    value: str
    footprint: str
    pin_count: int = 0
    side: str = "top"
    pins: list[Pin] = field(default_factory=list)
    placeholder_dimensions: dict[str, float] | None = None
    placeholder_shape: str = "rectangle"
    drc_dimensions: dict[str, float] | None = None
    drc_shape: str = "rectangle"
    x: float | None = None
    y: float | None = None
    rotation: float | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "ref": self.ref,
            "part": self.part,
            "value": self.value,
            "footprint": self.footprint,
            "pin_count": self.pin_count,
            "side": self.side,
            "pins": [p.to_dict() for p in self.pins],
            "placeholder_dimensions": self.placeholder_dimensions,
            "placeholder_shape": self.placeholder_shape,
            "drc_dimensions": self.drc_dimensions,
            "drc_shape": self.drc_shape,
        }
        if self.x is not None and self.y is not None:
            d.update(x=self.x, y=self.y, rotation=self.rotation or 0.0)
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Component:
        return cls(
            ref=data["ref"],
            part=data.get("part", ""),
            value=data.get("value", ""),
            footprint=data.get("footprint", ""),
            pin_count=int(data.get("pin_count", 0)),
            side=data.get("side", "top"),
            pins=[Pin(**p) for p in data.get("pins", [])],
            placeholder_dimensions=data.get("placeholder_dimensions"),
            placeholder_shape=data.get("placeholder_shape", "rectangle"),
            drc_dimensions=data.get("drc_dimensions"),
            drc_shape=data.get("drc_shape", "rectangle"),
            x=data.get("x"),
            y=data.get("y"),
            rotation=data.get("rotation"),
        )


@dataclass
class ProjectNet:
    name: str
    pins: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "pins": list(self.pins)}


# ── Layout rules ────────────────────────────────────────────────────


def _check_axis(axis: str) -> None:
    if axis not in AXES:
        raise ValidationError(f"axis must be one of {AXES}, got {axis!r}", field="axis")


def _check_refs(refs: list[str], field_name: str, minimum: int = 1) -> None:
    if not isinstance(refs, list) or len(refs) < minimum:
        raise ValidationError(
            f"{field_name} must be a list of at least {minimum} component reference(s)",
            field=field_name,
        )
    for ref in refs:
        if not isinstance(ref, str) or not ref:
            raise ValidationError(f"Invalid component reference {ref!r}", field=field_name)


def _check_pair(pair: list[str], field_name: str) -> None:
    _check_refs(pair, field_name, minimum=2)
    if len(pair) != 2:
        raise ValidationError(f"{field_name} must hold exactly two references", field=field_name)


@dataclass
class Rule:
    """Base class of all layout rules."""

    rule_type: ClassVar[str] = ""
    enabled: bool = field(default=True, kw_only=True)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Raise ValidationError when the rule is malformed."""

    def references(self) -> list[str]:
        """Every component reference the rule mentions."""
        return []

    def _fields(self) -> dict[str, Any]:
        raise NotImplementedError

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.rule_type, **self._fields(), "enabled": self.enabled}

    def describe(self) -> str:
        return self.rule_type


@dataclass
class AbsolutePositionConstraint(Rule):
    rule_type: ClassVar[str] = "AbsolutePositionConstraint"
    component: str
    x: float | None = None
    y: float | None = None

    def validate(self) -> None:
        _check_refs([self.component], "component")
        if self.x is None and self.y is None:
            raise ValidationError(
                "AbsolutePositionConstraint needs at least one of x or y", field="x"
            )

    def references(self) -> list[str]:
        return [self.component]

    def _fields(self) -> dict[str, Any]:
        d: dict[str, Any] = {"component": self.component}
        if self.x is not None:
            d["x"] = self.x
        if self.y is not None:
            d["y"] = self.y
        return d

    def describe(self) -> str:
        axes = ", ".join(f"{k}={v}" for k, v in (("x", self.x), ("y", self.y)) if v is not None)
        return f"{self.component} fixed at {axes}"


@dataclass
class ProximityConstraint(Rule):
    rule_type: ClassVar[str] = "ProximityConstraint"
    groups: list[list[str]]

    def validate(self) -> None:
        if not isinstance(self.groups, list) or not self.groups:
            raise ValidationError("groups must be a non-empty list of groups", field="groups")
        for group in self.groups:
            _check_refs(group, "groups", minimum=2)

    def references(self) -> list[str]:
        return [ref for group in self.groups for ref in group]

    def _fields(self) -> dict[str, Any]:
        return {"groups": [list(g) for g in self.groups]}

    def describe(self) -> str:
        return "keep together: " + "; ".join(", ".join(g) for g in self.groups)


@dataclass
class AlignmentConstraint(Rule):
    rule_type: ClassVar[str] = "AlignmentConstraint"
    axis: str
    components: list[str] = field(default_factory=list)

    def validate(self) -> None:
        _check_axis(self.axis)
        _check_refs(self.components, "components", minimum=2)

    def references(self) -> list[str]:
        return list(self.components)

    def _fields(self) -> dict[str, Any]:
        return {"axis": self.axis, "components": list(self.components)}

    def describe(self) -> str:
        return f"{self.axis} alignment of {', '.join(self.components)}"


@dataclass
class SymmetryConstraint(Rule):
    rule_type: ClassVar[str] = "SymmetryConstraint"
    axis: str
    pairs: list[list[str]] = field(default_factory=list)

    def validate(self) -> None:
        _check_axis(self.axis)
        if not isinstance(self.pairs, list) or not self.pairs:
            raise ValidationError("pairs must be a non-empty list", field="pairs")
        for pair in self.pairs:
            _check_pair(pair, "pairs")

    def references(self) -> list[str]:
        return [ref for pair in self.pairs for ref in pair]

    def _fields(self) -> dict[str, Any]:
        return {"axis": self.axis, "pairs": [list(p) for p in self.pairs]}

    def describe(self) -> str:
        return f"{self.axis} symmetry of " + "; ".join(f"{a}/{b}" for a, b in self.pairs)


@dataclass
class CircularConstraint(Rule):
    rule_type: ClassVar[str] = "CircularConstraint"
    components: list[str]
    radius: float
    center: tuple[float, float] = (0.0, 0.0)

    def validate(self) -> None:
        _check_refs(self.components, "components", minimum=2)
        if self.radius <= 0:
            raise ValidationError("radius must be positive", field="radius")

    def references(self) -> list[str]:
        return list(self.components)

    def _fields(self) -> dict[str, Any]:
        return {
            "components": list(self.components),
            "radius": self.radius,
            "center": [self.center[0], self.center[1]],
        }

    def describe(self) -> str:
        return (
            f"{', '.join(self.components)} on a circle r={self.radius}mm"
            f" around ({self.center[0]}, {self.center[1]})"
        )


@dataclass
class LayerConstraint(Rule):
    rule_type: ClassVar[str] = "LayerConstraint"
    layer: str
    components: list[str] = field(default_factory=list)

    def validate(self) -> None:
        if self.layer not in SIDES:
            raise ValidationError(f"layer must be one of {SIDES}, got {self.layer!r}", field="layer")
        _check_refs(self.components, "components")

    def references(self) -> list[str]:
        return list(self.components)

    def _fields(self) -> dict[str, Any]:
        return {"layer": self.layer, "components": list(self.components)}

    def describe(self) -> str:
        return f"{', '.join(self.components)} on {self.layer} layer"


@dataclass
class FixedPropertyConstraint(Rule):
    rule_type: ClassVar[str] = "FixedPropertyConstraint"
    component: str
    properties: dict[str, Any] = field(default_factory=dict)

    def validate(self) -> None:
        _check_refs([self.component], "component")
        if not isinstance(self.properties, dict) or not self.properties:
            raise ValidationError("properties must be a non-empty object", field="properties")

    def references(self) -> list[str]:
        return [self.component]

    def _fields(self) -> dict[str, Any]:
        return {"component": self.component, "properties": dict(self.properties)}

    def describe(self) -> str:
        props = ", ".join(f"{k}={v}" for k, v in self.properties.items())
        return f"{self.component} fixed {props}"


@dataclass
class SymmetricalPairConstraint(Rule):
    rule_type: ClassVar[str] = "SymmetricalPairConstraint"
    pair: list[str]
    axis: str = "vertical"
    separation: float = 0.0

    def validate(self) -> None:
        _check_pair(self.pair, "pair")
        _check_axis(self.axis)
        if self.separation < 0:
            raise ValidationError("separation must not be negative", field="separation")

    def references(self) -> list[str]:
        return list(self.pair)

    def _fields(self) -> dict[str, Any]:
        return {"pair": list(self.pair), "axis": self.axis, "separation": self.separation}

    def describe(self) -> str:
        return (
            f"{self.pair[0]}/{self.pair[1]} mirrored about the {self.axis} axis,"
            f" {self.separation}mm apart"
        )


RULE_TYPES: dict[str, type[Rule]] = {
    cls.rule_type: cls
    for cls in (
        AbsolutePositionConstraint,
        ProximityConstraint,
        AlignmentConstraint,
        SymmetryConstraint,
        CircularConstraint,
        LayerConstraint,
        FixedPropertyConstraint,
        SymmetricalPairConstraint,
    )
}


def rule_from_dict(data: dict[str, Any]) -> Rule:
    """Build a rule from its wire dict.

    Raises:
        ValidationError: On an unknown type or malformed fields.
    """
    if not isinstance(data, dict):
        raise ValidationError(f"Rule must be an object, got {type(data).__name__}", field="rules")
    rule_type = data.get("type")
    cls = RULE_TYPES.get(rule_type or "")
    if cls is None:
        raise ValidationError(f"Unknown rule type {rule_type!r}", field="type")

    enabled = bool(data.get("enabled", True))
    try:
        if cls is AbsolutePositionConstraint:
            return AbsolutePositionConstraint(
                component=data["component"],
                x=None if data.get("x") is None else float(data["x"]),
                y=None if data.get("y") is None else float(data["y"]),
                enabled=enabled,
            )
        if cls is ProximityConstraint:
            return ProximityConstraint(groups=data["groups"], enabled=enabled)
        if cls is AlignmentConstraint:
            return AlignmentConstraint(
                axis=data["axis"], components=data["components"], enabled=enabled
            )
        if cls is SymmetryConstraint:
            return SymmetryConstraint(axis=data["axis"], pairs=data["pairs"], enabled=enabled)
        if cls is CircularConstraint:
            center = data.get("center") or [0.0, 0.0]
            return CircularConstraint(
                components=data["components"],
                radius=float(data["radius"]),
                center=(float(center[0]), float(center[1])),
                enabled=enabled,
            )
        if cls is LayerConstraint:
            return LayerConstraint(
                layer=data["layer"], components=data["components"], enabled=enabled
            )
        if cls is FixedPropertyConstraint:
            return FixedPropertyConstraint(
                component=data["component"], properties=data["properties"], enabled=enabled
            )
        return SymmetricalPairConstraint(
            pair=data["pair"],
            axis=data.get("axis", "vertical"),
            separation=float(data.get("separation", 0.0)),
            enabled=enabled,
        )
    except KeyError as e:
        raise ValidationError(f"{rule_type} is missing field {e.args[0]!r}", field=e.args[0]) from e
    except (TypeError, ValueError, IndexError) as e:
        raise ValidationError(f"Malformed {rule_type}: {e}", field="rules") from e


@dataclass
class ProjectState:
    """Root aggregate persisted as ``{project}_state.json``."""

    components: list[Component] = field(default_factory=list)
    nets: list[ProjectNet] = field(default_factory=list)
    rules: list[Rule] = field(default_factory=list)
    board_outline: dict[str, Any] | None = None

    def component(self, ref: str) -> Component | None:
        for comp in self.components:
            if comp.ref == ref:
                return comp
        return None

    def upsert_component(self, component: Component) -> bool:
        """Insert or replace by reference; True when an existing one was replaced."""
        for i, existing in enumerate(self.components):
            if existing.ref == component.ref:
                self.components[i] = component
                return True
        self.components.append(component)
        return False

    def upsert_net(self, net: ProjectNet) -> bool:
        for i, existing in enumerate(self.nets):
            if existing.name == net.name:
                self.nets[i] = net
                return True
        self.nets.append(net)
        return False

    def add_rule(self, rule: Rule) -> None:
        self.rules.append(rule)

    @property
    def enabled_rules(self) -> list[Rule]:
        return [r for r in self.rules if r.enabled]

    def to_dict(self) -> dict[str, Any]:
        return {
            "components": [c.to_dict() for c in self.components],
            "nets": [n.to_dict() for n in self.nets],
            "rules": [r.to_dict() for r in self.rules],
            "board_outline": self.board_outline,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectState:
        return cls(
            components=[Component.from_dict(c) for c in data.get("components", [])],
            nets=[ProjectNet(name=n["name"], pins=list(n.get("pins", []))) for n in data.get("nets", [])],
            rules=[rule_from_dict(r) for r in data.get("rules", [])],
            board_outline=data.get("board_outline"),
        )
