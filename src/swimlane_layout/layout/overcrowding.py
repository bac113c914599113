"""Overcrowding analysis and placement strategies for one lane/tier group.

Everything here is pure: given a node count and a lane boundary, compute how
crowded the group is, which strategy to use, and the Y centres of the nodes.
The solver owns escalation and the audit trail.

Strategies, in escalation order:

    NONE          even distribution inside the usable band (≥ node_padding gaps)
    COMPRESS      gaps shrunk towards min_node_spacing, still inside the usable band
    REDISTRIBUTE  gaps at exactly min_node_spacing, centred in the usable band
    EMERGENCY     back-to-back at emergency_spacing; overlap inside the outer
                  lane envelope if even that does not fit
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from swimlane_layout.config import LayoutConstants
from swimlane_layout.layout.types import CrowdingSeverity, LaneBoundary, OvercrowdingAnalysis, Strategy

# Ratio thresholds, inclusive upper bounds.
_SEVERITY_THRESHOLDS: tuple[tuple[float, CrowdingSeverity], ...] = (
    (1.0, CrowdingSeverity.NONE),
    (1.25, CrowdingSeverity.MILD),
    (1.5, CrowdingSeverity.MODERATE),
    (2.0, CrowdingSeverity.SEVERE),
)

_STRATEGY_THRESHOLDS: tuple[tuple[float, Strategy], ...] = (
    (1.0, Strategy.NONE),
    (1.5, Strategy.COMPRESS),
    (2.0, Strategy.REDISTRIBUTE),
)

_ESCALATION: dict[Strategy, Strategy] = {
    Strategy.NONE: Strategy.COMPRESS,
    Strategy.COMPRESS: Strategy.REDISTRIBUTE,
    Strategy.REDISTRIBUTE: Strategy.EMERGENCY,
    Strategy.EMERGENCY: Strategy.EMERGENCY,
}

# Float slack when comparing a stacked height against the space it must fit.
_EPS = 1e-6


# ─── Analysis ─────────────────────────────────────────────────────────────────


def required_space(node_count: int, constants: LayoutConstants) -> float:
    """Vertical space ``node_count`` nodes need at ideal padding."""
    if node_count <= 0:
        return 0.0
    return node_count * constants.node_height + (node_count - 1) * constants.node_padding


def classify_severity(ratio: float) -> CrowdingSeverity:
    for limit, severity in _SEVERITY_THRESHOLDS:
        if ratio <= limit:
            return severity
    return CrowdingSeverity.CRITICAL


def strategy_for_ratio(ratio: float) -> Strategy:
    for limit, strategy in _STRATEGY_THRESHOLDS:
        if ratio <= limit:
            return strategy
    return Strategy.EMERGENCY


def analyze_group(
    lane: str,
    tier: int | None,
    node_count: int,
    boundary: LaneBoundary,
    constants: LayoutConstants,
) -> OvercrowdingAnalysis:
    """Compare the space a group needs with the lane's usable height.

    ``ratio`` is ``required / available``; it is 0 for an empty group and
    infinite when the lane has no usable height left at all.
    """
    required = required_space(node_count, constants)
    available = boundary.usable_height
    if node_count <= 0:
        ratio = 0.0
    elif available <= 0:
        ratio = math.inf
    else:
        ratio = required / available

    severity = classify_severity(ratio)
    return OvercrowdingAnalysis(
        lane=lane,
        tier=tier,
        node_count=node_count,
        required_space=required,
        available_space=available,
        ratio=ratio,
        severity=severity,
        recommended_action=strategy_for_ratio(ratio),
    )


def choose_strategy(analysis: OvercrowdingAnalysis) -> Strategy:
    return strategy_for_ratio(analysis.ratio)


def escalate(strategy: Strategy) -> Strategy:
    """Next, more aggressive strategy. EMERGENCY is terminal."""
    return _ESCALATION[strategy]


# ─── Placement ────────────────────────────────────────────────────────────────


@dataclass
class Placement:
    """Y centres for one group under one strategy.

    Attributes:
        strategy: Strategy that produced the placement.
        ys: Node centres, top to bottom, in group order.
        spacing: Gap between the edges of two adjacent nodes.
        fits: Whether the strategy achieved its own containment goal.
            A non-fitting placement should be escalated.
    """

    strategy: Strategy
    ys: list[float] = field(default_factory=list)
    spacing: float = 0.0
    fits: bool = True


def _stack(count: int, top: float, spacing: float, constants: LayoutConstants) -> list[float]:
    """Centres of ``count`` nodes stacked from ``top`` with ``spacing`` gaps."""
    h = constants.node_height
    return [top + h / 2 + i * (h + spacing) for i in range(count)]


def _centered(count: int, center_y: float, spacing: float, constants: LayoutConstants) -> list[float]:
    total = count * constants.node_height + (count - 1) * spacing
    return _stack(count, center_y - total / 2, spacing, constants)


def _spacing_to_fill(count: int, space: float, constants: LayoutConstants) -> float:
    """Gap that makes ``count`` nodes fill ``space``, floored at min spacing and capped at padding."""
    if count <= 1:
        return constants.node_padding
    gap = (space - count * constants.node_height) / (count - 1)
    return min(constants.node_padding, max(constants.min_node_spacing, gap))


def _distribute_evenly(count: int, boundary: LaneBoundary, constants: LayoutConstants) -> Placement:
    c = constants
    if count == 1:
        return Placement(Strategy.NONE, [boundary.center_y], c.node_padding, True)
    required = required_space(count, c)
    extra = max(0.0, (boundary.usable_height - required) / (count + 1))
    top = boundary.start_y + c.lane_buffer + extra
    spacing = c.node_padding + extra
    fits = required <= boundary.usable_height + _EPS
    return Placement(Strategy.NONE, _stack(count, top, spacing, c), spacing, fits)


def _compress(count: int, boundary: LaneBoundary, constants: LayoutConstants) -> Placement:
    c = constants
    spacing = _spacing_to_fill(count, boundary.usable_height, c)
    total = count * c.node_height + (count - 1) * spacing
    ys = _centered(count, boundary.center_y, spacing, c)
    return Placement(Strategy.COMPRESS, ys, spacing, total <= boundary.usable_height + _EPS)


def _redistribute(count: int, boundary: LaneBoundary, constants: LayoutConstants) -> Placement:
    """Tightest compression short of emergency. Never leaves the usable band."""
    c = constants
    spacing = c.min_node_spacing
    total = count * c.node_height + (count - 1) * spacing
    ys = _centered(count, boundary.center_y, spacing, c)
    return Placement(Strategy.REDISTRIBUTE, ys, spacing, total <= boundary.usable_height + _EPS)


def _emergency(count: int, boundary: LaneBoundary, constants: LayoutConstants) -> Placement:
    c = constants
    spacing = c.emergency_spacing
    total = count * c.node_height + (count - 1) * spacing
    if total <= boundary.height + _EPS:
        return Placement(Strategy.EMERGENCY, _centered(count, boundary.center_y, spacing, c), spacing, True)

    # Overlap is unavoidable: spread centres evenly over the outer envelope.
    low = boundary.start_y + c.node_half_height
    high = boundary.end_y - c.node_half_height
    if count == 1 or high <= low:
        return Placement(Strategy.EMERGENCY, [boundary.center_y] * count, -c.node_height, False)
    step = (high - low) / (count - 1)
    ys = [low + i * step for i in range(count)]
    return Placement(Strategy.EMERGENCY, ys, step - c.node_height, False)


_APPLY = {
    Strategy.NONE: _distribute_evenly,
    Strategy.COMPRESS: _compress,
    Strategy.REDISTRIBUTE: _redistribute,
    Strategy.EMERGENCY: _emergency,
}


def apply_strategy(
    strategy: Strategy,
    node_count: int,
    boundary: LaneBoundary,
    constants: LayoutConstants,
) -> Placement:
    """Y centres of ``node_count`` nodes placed in ``boundary`` under ``strategy``."""
    if node_count <= 0:
        return Placement(strategy)
    return _APPLY[strategy](node_count, boundary, constants)


def ideal_positions(node_count: int, boundary: LaneBoundary, constants: LayoutConstants) -> list[float]:
    """Centres at ideal padding from the top of the usable band, ignoring overflow."""
    if node_count == 1:
        return [boundary.center_y]
    return _stack(node_count, boundary.start_y + constants.lane_buffer, constants.node_padding, constants)


def place_group(
    node_count: int,
    boundary: LaneBoundary,
    constants: LayoutConstants,
    strategy: Strategy = Strategy.NONE,
) -> tuple[Placement, list[Strategy]]:
    """Apply ``strategy`` and escalate until a placement fits or EMERGENCY is reached.

    Returns:
        The final placement and the list of strategies that were tried.
    """
    tried = [strategy]
    placement = apply_strategy(strategy, node_count, boundary, constants)
    while not placement.fits and strategy is not Strategy.EMERGENCY:
        strategy = escalate(strategy)
        tried.append(strategy)
        placement = apply_strategy(strategy, node_count, boundary, constants)
    return placement, tried
