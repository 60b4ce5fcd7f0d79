"""Constraint-driven force layout.

Pure Python. Components are point masses with a rotation; each step sums

1. soft repulsion between overlapping components on the same side
2. pin-to-pin springs along every net edge
3. a push away from the centre of mass of the other components
4. containment inside the board outline
5. one force or torque per enabled layout rule

and integrates with explicit Euler. Absolute position rules are applied as
hard locks after every step.
"""

from __future__ import annotations

import math
from collections import deque
from collections.abc import Iterable
from typing import Any

from ..logging_config import create_logger
from ..schema.project import (
    AbsolutePositionConstraint,
    AlignmentConstraint,
    CircularConstraint,
    FixedPropertyConstraint,
    LayerConstraint,
    ProximityConstraint,
    Rule,
    SymmetricalPairConstraint,
    SymmetryConstraint,
)
from .types import LayoutEdge, LayoutNode, LayoutParams, LayoutResult, Outline

logger = create_logger(__name__)

DT = 0.016
ANGULAR_INERTIA = 100.0
CONVERGENCE_WINDOW = 100
CONVERGENCE_FORCE = 0.5
DEFAULT_SIZE = 1.0


def _wrap(angle: float) -> float:
    """Wrap radians into [-pi, pi]."""
    while angle < -math.pi:
        angle += 2 * math.pi
    while angle > math.pi:
        angle -= 2 * math.pi
    return angle


def split_pin(pin_ref: str) -> tuple[str, str]:
    """``"U1-3"`` -> ``("U1", "3")``."""
    ref, _, pin = pin_ref.rpartition("-")
    return (ref, pin) if ref else (pin_ref, "")


def build_graph(
    nodes: Iterable[dict[str, Any]], edges: Iterable[dict[str, Any]]
) -> tuple[dict[str, LayoutNode], list[LayoutEdge]]:
    """Simulation nodes and edges from ``layout_data`` style dicts."""
    graph: dict[str, LayoutNode] = {}
    for data in nodes:
        dims = data.get("drc_dimensions") or data.get("placeholder_dimensions") or {}
        pins = {
            str(p["name"]): (float(p.get("x", 0.0)), float(p.get("y", 0.0)))
            for p in data.get("pins") or []
        }
        graph[data["id"]] = LayoutNode(
            ref=data["id"],
            x=float(data.get("x") or 0.0),
            y=float(data.get("y") or 0.0),
            width=float(dims.get("width") or data.get("width") or DEFAULT_SIZE),
            height=float(dims.get("height") or data.get("height") or DEFAULT_SIZE),
            rotation=float(data.get("rotation") or 0.0),
            side=data.get("side") or "top",
            pins=pins,
        )
    graph_edges = []
    for edge in edges:
        src_ref, src_pin = split_pin(edge["source"])
        dst_ref, dst_pin = split_pin(edge["target"])
        graph_edges.append(LayoutEdge(src_ref, src_pin, dst_ref, dst_pin, edge.get("label", "")))
    return graph, graph_edges


def compute_hpwl(nodes: dict[str, LayoutNode], edges: list[LayoutEdge]) -> float:
    """Half-perimeter wire length summed over nets, from pin positions.

    HPWL = sum over nets of (max_x - min_x + max_y - min_y)
    """
    points: dict[str, list[tuple[float, float]]] = {}
    for edge in edges:
        for ref, pin in ((edge.source_ref, edge.source_pin), (edge.target_ref, edge.target_pin)):
            node = nodes.get(ref)
            if node is None:
                continue
            pos = node.pin_position(pin) or (node.x, node.y)
            points.setdefault(edge.net, []).append(pos)
    total = 0.0
    for pts in points.values():
        if len(pts) < 2:
            continue
        xs = [p[0] for p in pts]
        ys = [p[1] for p in pts]
        total += (max(xs) - min(xs)) + (max(ys) - min(ys))
    return total


def count_overlaps(nodes: dict[str, LayoutNode]) -> int:
    """Pairs of same-side components whose DRC boxes intersect."""
    items = list(nodes.values())
    count = 0
    for i in range(len(items)):
        a = items[i]
        for j in range(i + 1, len(items)):
            b = items[j]
            if a.side != b.side:
                continue
            if abs(a.x - b.x) < (a.width + b.width) / 2 and abs(a.y - b.y) < (a.height + b.height) / 2:
                count += 1
    return count


class LayoutSolver:
    """Iterative force simulation over one project.

    Args:
        nodes: Components keyed by reference.
        edges: Pin-to-pin net connections.
        rules: Layout rules; disabled ones are ignored.
        outline: Board outline to keep components inside.
        params: Heuristic weights.
    """

    def __init__(
        self,
        nodes: dict[str, LayoutNode],
        edges: list[LayoutEdge],
        rules: Iterable[Rule],
        outline: Outline,
        params: LayoutParams | None = None,
    ) -> None:
        self.nodes = nodes
        self.edges = edges
        self.rules = [r for r in rules if r.enabled]
        self.outline = outline
        self.params = params or LayoutParams()
        self.step_count = 0
        for rule in self.rules:
            if isinstance(rule, LayerConstraint):
                for ref in rule.components:
                    if ref in self.nodes:
                        self.nodes[ref].side = rule.layer
        self._apply_locks()

    # ── global forces ───────────────────────────────────────────────

    def _repulsion(self) -> None:
        if not self.params.component_spacing:
            return
        ramp = min(1.0, self.step_count / max(1, self.params.repulsion_ramp_up_steps))
        k = self.params.component_spacing * 0.01
        items = list(self.nodes.values())
        for i in range(len(items)):
            a = items[i]
            for j in range(i + 1, len(items)):
                b = items[j]
                if a.side != b.side:
                    continue
                dx, dy = a.x - b.x, a.y - b.y
                dist_sq = dx * dx + dy * dy
                reach = a.radius + b.radius
                if dist_sq >= reach * reach or dist_sq <= 1e-12:
                    continue
                dist = math.sqrt(dist_sq)
                mag = k * (reach - dist) * ramp
                fx, fy = dx / dist * mag, dy / dist * mag
                a.fx += fx
                a.fy += fy
                b.fx -= fx
                b.fy -= fy

    def _net_springs(self) -> None:
        k = self.params.net_length_weight
        if not k:
            return
        for edge in self.edges:
            a = self.nodes.get(edge.source_ref)
            b = self.nodes.get(edge.target_ref)
            if a is None or b is None or a is b:
                continue
            pa = a.pin_position(edge.source_pin) or (a.x, a.y)
            pb = b.pin_position(edge.target_pin) or (b.x, b.y)
            fx, fy = (pb[0] - pa[0]) * k, (pb[1] - pa[1]) * k
            a.fx += fx
            a.fy += fy
            b.fx -= fx
            b.fy -= fy

    def _distribution(self) -> None:
        k = self.params.distribution_strength
        n = len(self.nodes)
        if not k or n <= 1:
            return
        sum_x = sum(node.x for node in self.nodes.values())
        sum_y = sum(node.y for node in self.nodes.values())
        for node in self.nodes.values():
            com_x = (sum_x - node.x) / (n - 1)
            com_y = (sum_y - node.y) / (n - 1)
            node.fx += (node.x - com_x) * k
            node.fy += (node.y - com_y) * k

    def _containment(self) -> None:
        k = self.params.board_edge_constraint
        if not k:
            return
        o = self.outline
        for node in self.nodes.values():
            hw, hh = node.width / 2, node.height / 2
            if o.shape == "circle":
                cx, cy = o.center
                dx, dy = node.x - cx, node.y - cy
                dist = math.hypot(dx, dy)
                extent = math.hypot(hw, hh)
                if dist + extent > o.width / 2 and dist > 1e-9:
                    depth = dist + extent - o.width / 2
                    node.fx -= dx / dist * depth * k
                    node.fy -= dy / dist * depth * k
                continue
            if node.x < o.x + hw:
                node.fx += k
            if node.x > o.x + o.width - hw:
                node.fx -= k
            if node.y < o.y + hh:
                node.fy += k
            if node.y > o.y + o.height - hh:
                node.fy -= k

    # ── rules ───────────────────────────────────────────────────────

    def _rotation_pd(self, node: LayoutNode, target_deg: float, strength: float) -> None:
        kp = strength * 100
        kd = kp / 10
        error = _wrap(math.radians(target_deg - node.rotation))
        node.torque += kp * error - kd * node.omega

    def _proximity(self, rule: ProximityConstraint) -> None:
        kp, kd = self.params.proximity_kp, self.params.proximity_kd
        for group in rule.groups:
            members = [self.nodes[r] for r in group if r in self.nodes]
            for node in members:
                targets: list[tuple[float, float]] = []
                if len(group) == 2 and len(members) == 2:
                    other = members[1] if members[0] is node else members[0]
                    targets.append(self._connected_pin(node, other) or (other.x, other.y))
                else:
                    targets.extend((o.x, o.y) for o in members if o is not node)
                for tx, ty in targets:
                    node.fx += (tx - node.x) * kp - node.vx * kd
                    node.fy += (ty - node.y) * kp - node.vy * kd

    def _connected_pin(self, node: LayoutNode, other: LayoutNode) -> tuple[float, float] | None:
        """Position of the first ``other`` pin sharing a net edge with ``node``."""
        for edge in self.edges:
            if edge.source_ref == node.ref and edge.target_ref == other.ref:
                return other.pin_position(edge.target_pin)
            if edge.target_ref == node.ref and edge.source_ref == other.ref:
                return other.pin_position(edge.source_pin)
        return None

    def _alignment(self, rule: AlignmentConstraint) -> None:
        members = [self.nodes[r] for r in rule.components if r in self.nodes]
        if len(members) < 2:
            return
        k = self.params.alignment_strength
        if rule.axis == "vertical":
            mean_x = sum(n.x for n in members) / len(members)
            for node in members:
                node.fx += (mean_x - node.x) * k
        else:
            mean_y = sum(n.y for n in members) / len(members)
            for node in members:
                node.fy += (mean_y - node.y) * k

    def _symmetry(self, rule: SymmetryConstraint) -> None:
        k = self.params.symmetry_strength
        cx, cy = self.outline.center
        for ref_a, ref_b in rule.pairs:
            a, b = self.nodes.get(ref_a), self.nodes.get(ref_b)
            if a is None or b is None:
                continue
            for node, other in ((a, b), (b, a)):
                if rule.axis == "vertical":
                    tx, ty, t_rot = 2 * cx - other.x, other.y, 180 - other.rotation
                else:
                    tx, ty, t_rot = other.x, 2 * cy - other.y, -other.rotation
                node.fx += (tx - node.x) * k
                node.fy += (ty - node.y) * k
                self._rotation_pd(node, t_rot, self.params.symmetry_rotation_strength)

    def _circular(self, rule: CircularConstraint) -> None:
        k = self.params.circular_strength
        count = len(rule.components)
        for index, ref in enumerate(rule.components):
            node = self.nodes.get(ref)
            if node is None:
                continue
            angle = 2 * math.pi * index / count
            tx = rule.center[0] + rule.radius * math.cos(angle)
            ty = rule.center[1] + rule.radius * math.sin(angle)
            node.fx += (tx - node.x) * k
            node.fy += (ty - node.y) * k
            self._rotation_pd(node, math.degrees(angle) - 90, self.params.circular_rotation_strength)

    def _fixed_property(self, rule: FixedPropertyConstraint) -> None:
        node = self.nodes.get(rule.component)
        if node is None or "rotation" not in rule.properties:
            return
        self._rotation_pd(node, float(rule.properties["rotation"]), self.params.fixed_rotation_strength)

    def _symmetrical_pair(self, rule: SymmetricalPairConstraint) -> None:
        a, b = self.nodes.get(rule.pair[0]), self.nodes.get(rule.pair[1])
        if a is None or b is None:
            return
        k = self.params.symmetrical_pair_strength
        cx, cy = self.outline.center
        half = rule.separation / 2
        for node, sign in ((a, -1), (b, 1)):
            if rule.axis == "vertical":
                mid_y = (a.y + b.y) / 2
                node.fy += (mid_y - node.y) * k
                node.fx += (cx + sign * half - node.x) * k
            else:
                mid_x = (a.x + b.x) / 2
                node.fx += (mid_x - node.x) * k
                node.fy += (cy + sign * half - node.y) * k

    def _apply_rules(self) -> None:
        for rule in self.rules:
            if isinstance(rule, ProximityConstraint):
                self._proximity(rule)
            elif isinstance(rule, AlignmentConstraint):
                self._alignment(rule)
            elif isinstance(rule, SymmetryConstraint):
                self._symmetry(rule)
            elif isinstance(rule, CircularConstraint):
                self._circular(rule)
            elif isinstance(rule, FixedPropertyConstraint):
                self._fixed_property(rule)
            elif isinstance(rule, SymmetricalPairConstraint):
                self._symmetrical_pair(rule)

    def _apply_locks(self) -> None:
        for rule in self.rules:
            if not isinstance(rule, AbsolutePositionConstraint):
                continue
            node = self.nodes.get(rule.component)
            if node is None:
                continue
            if rule.x is not None:
                node.x, node.vx = rule.x, 0.0
            if rule.y is not None:
                node.y, node.vy = rule.y, 0.0

    # ── integration ─────────────────────────────────────────────────

    def step(self) -> float:
        """Advance one time step; returns the mean force magnitude."""
        self.step_count += 1
        for node in self.nodes.values():
            node.reset_forces()
        self._repulsion()
        self._net_springs()
        self._distribution()
        self._containment()
        self._apply_rules()

        damping = self.params.settling_speed
        total = 0.0
        for node in self.nodes.values():
            total += math.hypot(node.fx, node.fy)
            node.vx = (node.vx + node.fx * DT) * damping
            node.vy = (node.vy + node.fy * DT) * damping
            node.x += node.vx * DT
            node.y += node.vy * DT
            node.omega = (node.omega + node.torque / ANGULAR_INERTIA * DT) * damping
            node.rotation += math.degrees(node.omega * DT)
        self._apply_locks()
        return total / max(1, len(self.nodes))

    def run(self) -> LayoutResult:
        hpwl_before = compute_hpwl(self.nodes, self.edges)
        window: deque[float] = deque(maxlen=CONVERGENCE_WINDOW)
        converged = False
        while self.step_count < self.params.max_steps:
            window.append(self.step())
            if len(window) == CONVERGENCE_WINDOW and sum(window) / CONVERGENCE_WINDOW < CONVERGENCE_FORCE:
                converged = True
                break

        positions = {
            ref: {
                "x": round(node.x, 4),
                "y": round(node.y, 4),
                "rotation": round(node.rotation % 360, 3) % 360,
                "side": node.side,
            }
            for ref, node in self.nodes.items()
        }
        result = LayoutResult(
            positions=positions,
            hpwl_before=hpwl_before,
            hpwl_after=compute_hpwl(self.nodes, self.edges),
            overlap_count=count_overlaps(self.nodes),
            steps=self.step_count,
            converged=converged,
        )
        logger.info(
            f"Layout solved in {result.steps} steps (converged={converged}), "
            f"HPWL {result.hpwl_before:.1f} -> {result.hpwl_after:.1f}, {result.overlap_count} overlaps"
        )
        return result


def solve_layout(
    nodes: dict[str, LayoutNode],
    edges: list[LayoutEdge],
    rules: Iterable[Rule],
    outline: Outline,
    params: LayoutParams | None = None,
) -> LayoutResult:
    """Run the simulation to convergence (or ``params.max_steps``)."""
    return LayoutSolver(nodes, edges, rules, outline, params).run()
