"""Copper layer stack edits."""

from __future__ import annotations

import re

from ..exceptions import ValidationError
from ..logging_config import create_logger
from ..sexp import Document, SExp

logger = create_logger(__name__)

_INNER_RE = re.compile(r"^In(\d+)\.Cu$")

MAX_COPPER_LAYERS = 32


def uses_v9_numbering(layers_node: SExp) -> bool:
    """KiCad 9 numbers B.Cu as 2 and inner layers 4, 6, ...; older files use 31 and 1..30."""
    for child in layers_node.children:
        if child.is_list and child.first_value == "B.Cu":
            return child.name == "2"
    return False


def inner_layer_number(index: int, v9: bool) -> int:
    """Layer table id of ``In{index}.Cu``."""
    return 2 * index + 2 if v9 else index


def set_copper_layer_count(doc: Document, count: int) -> int:
    """Rewrite the layer table to hold exactly ``count`` copper layers.

    Args:
        doc: Board document, modified in place.
        count: Even number of copper layers between 2 and 32.

    Returns:
        The number of inner layers now present.
    """
    if count < 2 or count > MAX_COPPER_LAYERS or count % 2:
        raise ValidationError(
            f"copper_layers must be an even number between 2 and {MAX_COPPER_LAYERS}, got {count}",
            field="copper_layers",
        )
    layers_node = doc.root.get("layers")
    if layers_node is None:
        raise ValidationError("Board has no layer table", field="copper_layers")

    v9 = uses_v9_numbering(layers_node)
    kept = [
        child
        for child in layers_node.children
        if not (child.is_list and _INNER_RE.match(child.first_value or ""))
    ]
    insert_at = next(
        (i + 1 for i, child in enumerate(kept) if child.is_list and child.first_value == "F.Cu"),
        0,
    )
    inner = [
        SExp(
            name=str(inner_layer_number(i, v9)),
            children=[SExp.quoted(f"In{i}.Cu"), SExp.atom("signal")],
        )
        for i in range(1, count - 1)
    ]
    layers_node.children = kept[:insert_at] + inner + kept[insert_at:]

    setup = doc.root.get("setup")
    if setup is not None and setup.get("stackup") is not None:
        # Stale once the copper count changes
        setup.children = [c for c in setup.children if c.name != "stackup"]

    logger.info(f"Board now has {count} copper layers ({'KiCad 9' if v9 else 'legacy'} numbering)")
    return len(inner)
