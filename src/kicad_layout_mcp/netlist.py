"""KiCad netlist (S-expression, version "E") writer for a project state."""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path

from .exceptions import ValidationError
from .logging_config import create_logger
from .schema.project import ProjectState
from .sexp import SExp

logger = create_logger(__name__)

PIN_RE = re.compile(r"^([A-Za-z0-9_]+)-([0-9A-Za-z_]+)$")

TOOL_NAME = "kicad-layout-mcp"


def split_pin(pin: str, net_name: str = "") -> tuple[str, str]:
    """``"U1-3"`` -> ``("U1", "3")``.

    Raises:
        ValidationError: If the string is not ``REF-PIN``.
    """
    match = PIN_RE.match(pin)
    if match is None:
        raise ValidationError(
            f"Invalid pin format {pin!r} in net {net_name!r}. Expected format 'REF-PIN'.", field="pins"
        )
    return match.group(1), match.group(2)


def validate_connections(state: ProjectState) -> list[tuple[str, list[tuple[str, str]]]]:
    """Resolve every net pin against the defined components.

    Returns:
        ``(net name, [(ref, pin), ...])`` per net, in definition order.
    """
    resolved: list[tuple[str, list[tuple[str, str]]]] = []
    for net in state.nets:
        nodes: list[tuple[str, str]] = []
        for pin in net.pins:
            ref, pin_name = split_pin(pin, net.name)
            comp = state.component(ref)
            if comp is None:
                raise ValidationError(
                    f"Net {net.name!r} references undefined component {ref!r}", field="pins"
                )
            if comp.pins and pin_name not in {p.name for p in comp.pins}:
                raise ValidationError(
                    f"Component {ref} has no pin {pin_name!r} (net {net.name!r})", field="pins"
                )
            nodes.append((ref, pin_name))
        resolved.append((net.name, nodes))
    return resolved


def _field(name: str, value: str) -> SExp:
    return SExp.node(name, SExp.quoted(value))


def build_netlist(state: ProjectState, source: str = "") -> SExp:
    """The ``(export ...)`` tree kinet2pcb reads."""
    connections = validate_connections(state)

    design = SExp.node(
        "design",
        _field("source", source),
        _field("date", datetime.now().strftime("%Y-%m-%d %H:%M:%S")),
        _field("tool", TOOL_NAME),
    )
    components = SExp.node("components")
    for comp in state.components:
        components.children.append(
            SExp.node(
                "comp",
                _field("ref", comp.ref),
                _field("value", comp.value),
                _field("footprint", comp.footprint),
                _field("description", comp.part),
                SExp.node("libsource", _field("lib", ""), _field("part", comp.part), _field("description", "")),
            )
        )
    nets = SExp.node("nets")
    for code, (name, nodes) in enumerate(connections, start=1):
        net = SExp.node("net", _field("code", str(code)), _field("name", name))
        for ref, pin in nodes:
            net.children.append(SExp.node("node", _field("ref", ref), _field("pin", pin)))
        nets.children.append(net)

    return SExp.node("export", _field("version", "E"), design, components, nets)


def write_netlist(state: ProjectState, path: str | Path) -> Path:
    """Validate and write the netlist; returns the written path."""
    out = Path(path)
    tree = build_netlist(state, source=out.stem)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(tree.to_string() + "\n", encoding="utf-8")
    logger.info(f"Wrote netlist {out.name}: {len(state.components)} components, {len(state.nets)} nets")
    return out
