"""Shared helpers for editing board documents in place."""

from __future__ import annotations

from ..sexp import Document, SExp


def fmt(value: float) -> str:
    """Millimetre value as written to a board file (at most six decimals)."""
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def footprint_nodes(doc: Document) -> list[SExp]:
    """All footprint nodes, including legacy ``module`` ones."""
    return [c for c in doc.root.children if c.name in ("footprint", "module")]


def footprint_reference(fp_node: SExp) -> str:
    for prop in fp_node.find_all("property"):
        vals = prop.atom_values
        if len(vals) > 1 and vals[0] == "Reference":
            return vals[1]
    for text in fp_node.find_all("fp_text"):
        vals = text.atom_values
        if len(vals) > 1 and vals[0] == "reference":
            return vals[1]
    return ""


def find_footprint(doc: Document, reference: str) -> SExp | None:
    """Find a footprint node by reference designator.

    Args:
        doc: The Document to search.
        reference: Reference designator (e.g., "R1", "U1").

    Returns:
        The footprint SExp node if found, None otherwise.
    """
    for fp_node in footprint_nodes(doc):
        if footprint_reference(fp_node) == reference:
            return fp_node
    return None


def node_layer(node: SExp) -> str | None:
    layer = node.get("layer")
    return layer.first_value if layer is not None else None


def remove_drawings(doc: Document, layer: str) -> int:
    """Delete every board-level drawing on ``layer``; returns how many were removed."""
    doomed = [
        child
        for child in doc.root.children
        if child.name and child.name.startswith("gr_") and node_layer(child) == layer
    ]
    for node in doomed:
        doc.root.children.remove(node)
    return len(doomed)
