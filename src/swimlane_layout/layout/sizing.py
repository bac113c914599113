"""Lane sizing — lane heights and the absolute vertical band of every lane.

A lane only has to be tall enough for its single most crowded tier: tiers are
drawn in separate columns, so nodes only compete for vertical space with
other nodes of the same lane *and* tier.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from swimlane_layout.config import LayoutConstants
from swimlane_layout.layout.types import SWIM_LANES, LaneBoundary

# ─── Lane/tier population ─────────────────────────────────────────────────────


def count_nodes_per_lane_tier(placements: Iterable[tuple[str, int]]) -> dict[str, dict[int, int]]:
    """Count nodes per (lane, tier) from an iterable of ``(lane, tier)`` pairs."""
    counts: dict[str, dict[int, int]] = {}
    for lane, tier in placements:
        tier_map = counts.setdefault(lane, {})
        tier_map[tier] = tier_map.get(tier, 0) + 1
    return counts


# ─── Lane height estimation ───────────────────────────────────────────────────


def required_lane_height(node_count: int, constants: LayoutConstants) -> float:
    """Height a lane needs to stack ``node_count`` nodes at ideal padding."""
    c = constants
    if node_count <= 0:
        return c.min_lane_height
    if node_count == 1:
        return max(c.min_lane_height, c.node_height + 2 * c.lane_buffer)
    stacked = node_count * c.node_height + (node_count - 1) * c.node_padding
    return max(c.min_lane_height, stacked + 2 * c.lane_buffer)


def estimate_lane_heights(
    counts: Mapping[str, Mapping[int, int]],
    constants: LayoutConstants,
    lanes: Iterable[str] = SWIM_LANES,
) -> dict[str, float]:
    """Pixel height of every lane, sized for its most crowded tier.

    Lanes without nodes get ``min_lane_height``. The returned dict follows
    ``lanes`` order.
    """
    heights: dict[str, float] = {}
    for lane in lanes:
        tier_map = counts.get(lane, {})
        max_in_tier = max(tier_map.values(), default=0)
        heights[lane] = required_lane_height(max_in_tier, constants)
    return heights


# ─── Boundaries ───────────────────────────────────────────────────────────────


def make_boundary(lane: str, start_y: float, height: float, constants: LayoutConstants) -> LaneBoundary:
    return LaneBoundary(
        lane=lane,
        start_y=start_y,
        end_y=start_y + height,
        center_y=start_y + height / 2,
        height=height,
        usable_height=height - 2 * constants.lane_buffer,
    )


def calculate_lane_boundaries(
    heights: Mapping[str, float],
    constants: LayoutConstants,
    lanes: Iterable[str] = SWIM_LANES,
) -> dict[str, LaneBoundary]:
    """Stack lanes top to bottom in ``lanes`` order.

    The first lane starts one ``lane_padding`` below the origin and every
    following lane starts ``lane_padding`` below the previous lane's end, so
    ``boundaries[i].end_y + lane_padding == boundaries[i + 1].start_y``.
    Lanes missing from ``heights`` get ``min_lane_height``.
    """
    boundaries: dict[str, LaneBoundary] = {}
    y = constants.lane_padding
    for lane in lanes:
        height = heights.get(lane, constants.min_lane_height)
        boundaries[lane] = make_boundary(lane, y, height, constants)
        y += height + constants.lane_padding
    return boundaries


def emergency_boundary(
    lane: str,
    constants: LayoutConstants,
    lanes: tuple[str, ...] = SWIM_LANES,
) -> LaneBoundary:
    """Synthesize a boundary for a lane that has none.

    The band is derived from the lane's index alone (every lane assumed to be
    ``min_lane_height`` tall); unknown lanes are placed after the last lane.
    """
    index = lanes.index(lane) if lane in lanes else len(lanes)
    start_y = constants.lane_padding + index * (constants.min_lane_height + constants.lane_padding)
    return make_boundary(lane, start_y, constants.min_lane_height, constants)


def total_height(boundaries: Mapping[str, LaneBoundary], constants: LayoutConstants) -> float:
    """Diagram height including the trailing lane padding."""
    if not boundaries:
        return 2 * constants.lane_padding
    return max(b.end_y for b in boundaries.values()) + constants.lane_padding
