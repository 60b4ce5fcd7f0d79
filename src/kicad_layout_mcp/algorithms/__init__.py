"""Constraint layout solver, pure Python."""

from .layout import LayoutSolver, build_graph, compute_hpwl, count_overlaps, solve_layout
from .types import LayoutEdge, LayoutNode, LayoutParams, LayoutResult, Outline

__all__ = [
    "LayoutEdge",
    "LayoutNode",
    "LayoutParams",
    "LayoutResult",
    "LayoutSolver",
    "Outline",
    "build_graph",
    "compute_hpwl",
    "count_overlaps",
    "solve_layout",
]
