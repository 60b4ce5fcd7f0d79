"""Project state commands: components, nets and layout rules."""

from __future__ import annotations

from typing import Any

from ..exceptions import ValidationError
from ..schema.project import (
    SIDES,
    AbsolutePositionConstraint,
    AlignmentConstraint,
    CircularConstraint,
    Component,
    FixedPropertyConstraint,
    LayerConstraint,
    ProjectNet,
    ProximityConstraint,
    Rule,
    SymmetricalPairConstraint,
    SymmetryConstraint,
    rule_from_dict,
)
from ..state import get_store
from .registry import json_arg, register_tool

UNNAMED_NET = "unnamed_net"

_PROJECT_PARAM = {"type": "string", "description": "Project name (prefix of every artifact file)."}


def _add_rule(project_name: str, rule: Rule) -> dict[str, Any]:
    with get_store().update(project_name) as state:
        unknown = [ref for ref in rule.references() if state.component(ref) is None]
        state.add_rule(rule)
        total = len(state.rules)
    result: dict[str, Any] = {
        "message": f"Added {rule.rule_type}: {rule.describe()}.",
        "rule": rule.to_dict(),
        "rule_count": total,
    }
    if unknown:
        result["warning"] = f"Rule references components not defined yet: {', '.join(unknown)}"
    return result


def _string_list(value: Any, name: str) -> list[str]:
    value = json_arg(value, name)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError(f"{name} must be a list of strings", field=name)
    return value


# ── Handlers ────────────────────────────────────────────────────────


def _define_component_handler(
    project_name: str,
    component_reference: str,
    component_description: str,
    component_value: str,
    footprint_identifier: str,
    number_of_pins: int = 0,
    side: str = "top",
) -> dict[str, Any]:
    """Define (or redefine) a component and derive its footprint geometry.

    Args:
        project_name: Project name.
        component_reference: Reference designator, e.g. "U1".
        component_description: Part description, e.g. "ATmega328P".
        component_value: Component value, e.g. "10k".
        footprint_identifier: "Library:Footprint" identifier.
        number_of_pins: Pin count when the footprint is unknown.
        side: "top" or "bottom".
    """
    from ..footprints import component_dimensions, footprint_pins, load_footprint

    if not component_reference:
        raise ValidationError("component_reference must not be empty", field="component_reference")
    if side not in SIDES:
        raise ValidationError(f"side must be one of {SIDES}, got {side!r}", field="side")

    fp = load_footprint(footprint_identifier)
    dims = component_dimensions(fp)
    pins = footprint_pins(fp)
    component = Component(
        ref=component_reference,
        part=component_description,
        value=component_value,
        footprint=footprint_identifier,
        pin_count=len(pins) or int(number_of_pins),
        side=side,
        pins=pins,
        **dims,
    )
    with get_store().update(project_name) as state:
        replaced = state.upsert_component(component)

    result: dict[str, Any] = {
        "message": f"Component {component_reference} {'redefined' if replaced else 'defined'}.",
        "component": component.to_dict(),
    }
    if fp is None:
        result["warning"] = f"Footprint {footprint_identifier!r} not found; dimensions are unknown."
    return result


def _define_net_handler(project_name: str, net_name: str, pins: Any) -> dict[str, Any]:
    """Define (or redefine) a net connecting component pins.

    Args:
        project_name: Project name.
        net_name: Net name; empty names become "unnamed_net".
        pins: List of "REF-PIN" strings (or a JSON string of one).
    """
    from ..netlist import split_pin

    pin_list = _string_list(pins, "pins")
    if not pin_list:
        raise ValidationError("pins must not be empty", field="pins")
    name = net_name or UNNAMED_NET
    for pin in pin_list:
        split_pin(pin, name)

    with get_store().update(project_name) as state:
        replaced = state.upsert_net(ProjectNet(name=name, pins=pin_list))
    return {
        "message": f"Net {name} {'redefined' if replaced else 'defined'} with {len(pin_list)} pins.",
        "net": {"name": name, "pins": pin_list},
    }


def _add_absolute_position_constraint_handler(
    project_name: str,
    component_reference: str,
    x: float | None = None,
    y: float | None = None,
) -> dict[str, Any]:
    """Pin a component to an absolute x and/or y coordinate (mm)."""
    rule = AbsolutePositionConstraint(
        component=component_reference,
        x=None if x is None else float(x),
        y=None if y is None else float(y),
    )
    return _add_rule(project_name, rule)


def _add_proximity_constraint_handler(project_name: str, groups: Any) -> dict[str, Any]:
    """Keep each group of components close together."""
    return _add_rule(project_name, ProximityConstraint(groups=json_arg(groups, "groups")))


def _add_alignment_constraint_handler(project_name: str, axis: str, components: Any) -> dict[str, Any]:
    """Align components on a shared vertical or horizontal line."""
    return _add_rule(
        project_name, AlignmentConstraint(axis=axis, components=_string_list(components, "components"))
    )


def _add_symmetry_constraint_handler(project_name: str, axis: str, pairs: Any) -> dict[str, Any]:
    """Mirror each pair of components across the board centre line."""
    return _add_rule(project_name, SymmetryConstraint(axis=axis, pairs=json_arg(pairs, "pairs")))


def _add_circular_constraint_handler(
    project_name: str,
    components: Any,
    radius: float,
    center_x: float,
    center_y: float,
) -> dict[str, Any]:
    """Arrange components evenly on a circle."""
    rule = CircularConstraint(
        components=_string_list(components, "components"),
        radius=float(radius),
        center=(float(center_x), float(center_y)),
    )
    return _add_rule(project_name, rule)


def _add_layer_constraint_handler(project_name: str, layer: str, components: Any) -> dict[str, Any]:
    """Place components on the top or bottom side."""
    return _add_rule(
        project_name, LayerConstraint(layer=layer, components=_string_list(components, "components"))
    )


def _add_fixed_property_constraint_handler(
    project_name: str, component_reference: str, properties: Any
) -> dict[str, Any]:
    """Fix properties of a component, e.g. {"rotation": 90}."""
    rule = FixedPropertyConstraint(
        component=component_reference, properties=json_arg(properties, "properties")
    )
    return _add_rule(project_name, rule)


def _add_symmetrical_pair_constraint_handler(
    project_name: str, pair: Any, axis: str, separation: float
) -> dict[str, Any]:
    """Place two components mirrored about the centre, ``separation`` mm apart."""
    rule = SymmetricalPairConstraint(
        pair=_string_list(pair, "pair"), axis=axis, separation=float(separation)
    )
    return _add_rule(project_name, rule)


def _set_layout_rules_handler(project_name: str, rules: Any) -> dict[str, Any]:
    """Replace the whole rule list (toggle, delete or reorder rules).

    Args:
        project_name: Project name.
        rules: List of rule objects as returned by get_project_state.
    """
    raw = json_arg(rules, "rules")
    if not isinstance(raw, list):
        raise ValidationError("rules must be a list", field="rules")
    parsed = [rule_from_dict(r) for r in raw]
    with get_store().update(project_name) as state:
        state.rules = parsed
    enabled = sum(1 for r in parsed if r.enabled)
    return {
        "message": f"Layout rules replaced: {len(parsed)} rules ({enabled} enabled).",
        "rules": [r.to_dict() for r in parsed],
    }


def _get_project_state_handler(project_name: str) -> dict[str, Any]:
    """Return the project's components, nets, rules and board outline."""
    state = get_store().load(project_name)
    return {
        "message": (
            f"Project {project_name}: {len(state.components)} components, "
            f"{len(state.nets)} nets, {len(state.rules)} rules."
        ),
        "state": state.to_dict(),
    }


# ── Registration ────────────────────────────────────────────────────

register_tool(
    name="define_component",
    description="Define a component from a footprint library entry and store its pins and dimensions.",
    parameters={
        "project_name": _PROJECT_PARAM,
        "component_reference": {"type": "string", "description": "Reference designator, e.g. 'R1'."},
        "component_description": {"type": "string", "description": "Part description."},
        "component_value": {"type": "string", "description": "Component value, e.g. '10k'."},
        "footprint_identifier": {"type": "string", "description": "'Library:Footprint'."},
        "number_of_pins": {"type": "integer", "description": "Pin count if the footprint is unknown."},
        "side": {"type": "string", "description": "'top' or 'bottom'. Default: 'top'."},
    },
    handler=_define_component_handler,
    category="project",
    direct=True,
)

register_tool(
    name="define_net",
    description="Define a net as a list of 'REF-PIN' connections.",
    parameters={
        "project_name": _PROJECT_PARAM,
        "net_name": {"type": "string", "description": "Net name, e.g. 'GND'."},
        "pins": {"type": "array", "description": "Pins such as ['U1-3', 'R1-1']."},
    },
    handler=_define_net_handler,
    category="project",
    direct=True,
)

register_tool(
    name="get_project_state",
    description="Show the components, nets, layout rules and board outline of a project.",
    parameters={"project_name": _PROJECT_PARAM},
    handler=_get_project_state_handler,
    category="project",
    direct=True,
)

register_tool(
    name="add_absolute_position_constraint",
    description="Fix a component's x and/or y position (mm).",
    parameters={
        "project_name": _PROJECT_PARAM,
        "component_reference": {"type": "string", "description": "Component reference."},
        "x": {"type": "number", "description": "X position (mm)."},
        "y": {"type": "number", "description": "Y position (mm)."},
    },
    handler=_add_absolute_position_constraint_handler,
    category="constraints",
)

register_tool(
    name="add_proximity_constraint",
    description="Keep groups of components close to each other.",
    parameters={
        "project_name": _PROJECT_PARAM,
        "groups": {"type": "array", "description": "Groups of references, e.g. [['U1', 'C1']]."},
    },
    handler=_add_proximity_constraint_handler,
    category="constraints",
)

register_tool(
    name="add_alignment_constraint",
    description="Align components along a vertical or horizontal line.",
    parameters={
        "project_name": _PROJECT_PARAM,
        "axis": {"type": "string", "description": "'vertical' or 'horizontal'."},
        "components": {"type": "array", "description": "Component references."},
    },
    handler=_add_alignment_constraint_handler,
    category="constraints",
)

register_tool(
    name="add_symmetry_constraint",
    description="Mirror pairs of components across the board centre line.",
    parameters={
        "project_name": _PROJECT_PARAM,
        "axis": {"type": "string", "description": "'vertical' or 'horizontal'."},
        "pairs": {"type": "array", "description": "Pairs of references, e.g. [['LED1', 'LED2']]."},
    },
    handler=_add_symmetry_constraint_handler,
    category="constraints",
)

register_tool(
    name="add_circular_constraint",
    description="Arrange components evenly on a circle.",
    parameters={
        "project_name": _PROJECT_PARAM,
        "components": {"type": "array", "description": "Component references."},
        "radius": {"type": "number", "description": "Circle radius (mm)."},
        "center_x": {"type": "number", "description": "Circle centre X (mm)."},
        "center_y": {"type": "number", "description": "Circle centre Y (mm)."},
    },
    handler=_add_circular_constraint_handler,
    category="constraints",
)

register_tool(
    name="add_layer_constraint",
    description="Place components on the top or bottom side of the board.",
    parameters={
        "project_name": _PROJECT_PARAM,
        "layer": {"type": "string", "description": "'top' or 'bottom'."},
        "components": {"type": "array", "description": "Component references."},
    },
    handler=_add_layer_constraint_handler,
    category="constraints",
)

register_tool(
    name="add_fixed_property_constraint",
    description="Fix component properties such as rotation.",
    parameters={
        "project_name": _PROJECT_PARAM,
        "component_reference": {"type": "string", "description": "Component reference."},
        "properties": {"type": "object", "description": "Properties, e.g. {'rotation': 90}."},
    },
    handler=_add_fixed_property_constraint_handler,
    category="constraints",
)

register_tool(
    name="add_symmetrical_pair_constraint",
    description="Place two components mirrored about the board centre at a given separation.",
    parameters={
        "project_name": _PROJECT_PARAM,
        "pair": {"type": "array", "description": "Two component references."},
        "axis": {"type": "string", "description": "'vertical' or 'horizontal'."},
        "separation": {"type": "number", "description": "Distance between the two (mm)."},
    },
    handler=_add_symmetrical_pair_constraint_handler,
    category="constraints",
)

register_tool(
    name="set_layout_rules",
    description="Replace the full layout rule list (enable/disable, delete or reorder rules).",
    parameters={
        "project_name": _PROJECT_PARAM,
        "rules": {"type": "array", "description": "Rule objects as listed by get_project_state."},
    },
    handler=_set_layout_rules_handler,
    category="constraints",
)
