"""Tests for layout/sizing.py — lane heights and boundaries."""

from __future__ import annotations

import pytest

from swimlane_layout.config import DEFAULT_CONSTANTS, LayoutConstants
from swimlane_layout.layout.sizing import (
    calculate_lane_boundaries,
    count_nodes_per_lane_tier,
    emergency_boundary,
    estimate_lane_heights,
    required_lane_height,
    total_height,
)
from swimlane_layout.layout.types import SWIM_LANES

C = DEFAULT_CONSTANTS


class TestRequiredLaneHeight:
    def test_empty_lane_gets_minimum(self):
        assert required_lane_height(0, C) == C.min_lane_height

    def test_single_node(self):
        """40 + 2 * 20 = 80, equal to the minimum."""
        assert required_lane_height(1, C) == 80

    def test_single_node_floored_at_minimum(self):
        c = LayoutConstants(min_lane_height=120)
        assert required_lane_height(1, c) == 120

    def test_many_nodes(self):
        """N*40 + (N-1)*15 + 40."""
        assert required_lane_height(2, C) == 135
        assert required_lane_height(10, C) == 575


class TestEstimateLaneHeights:
    def test_uses_most_crowded_tier_not_the_sum(self):
        """Three tiers of 1, 3 and 2 nodes size the lane for 3 nodes."""
        counts = {"Farm": {0: 1, 1: 3, 2: 2}}
        heights = estimate_lane_heights(counts, C)
        assert heights["Farm"] == required_lane_height(3, C)

    def test_every_lane_gets_a_height_in_order(self):
        heights = estimate_lane_heights({}, C)
        assert list(heights) == list(SWIM_LANES)
        assert set(heights.values()) == {C.min_lane_height}

    def test_count_nodes_per_lane_tier(self):
        counts = count_nodes_per_lane_tier([("Farm", 0), ("Farm", 0), ("Farm", 1), ("Combat", 2)])
        assert counts == {"Farm": {0: 2, 1: 1}, "Combat": {2: 1}}


class TestLaneBoundaries:
    def test_first_lane_starts_one_padding_down(self):
        boundaries = calculate_lane_boundaries(estimate_lane_heights({}, C), C)
        farm = boundaries["Farm"]
        assert farm.start_y == 25
        assert farm.end_y == 105
        assert farm.center_y == 65
        assert farm.height == 80
        assert farm.usable_height == 40

    def test_lanes_are_separated_by_padding(self):
        """boundary[i].end_y + padding == boundary[i+1].start_y for every lane."""
        heights = estimate_lane_heights({"Farm": {0: 4}, "Combat": {1: 2}}, C)
        ordered = list(calculate_lane_boundaries(heights, C).values())
        for upper, lower in zip(ordered, ordered[1:]):
            assert upper.end_y + C.lane_padding == pytest.approx(lower.start_y)

    def test_order_follows_lanes_argument(self):
        lanes = ("General", "Farm")
        boundaries = calculate_lane_boundaries({"General": 100, "Farm": 80}, C, lanes)
        assert list(boundaries) == ["General", "Farm"]
        assert boundaries["General"].start_y == 25
        assert boundaries["Farm"].start_y == 150

    def test_missing_height_uses_minimum(self):
        boundaries = calculate_lane_boundaries({}, C, ("Farm",))
        assert boundaries["Farm"].height == C.min_lane_height

    def test_total_height(self):
        boundaries = calculate_lane_boundaries({}, C, ("Farm", "Vendors"))
        assert total_height(boundaries, C) == 210 + 25
        assert total_height({}, C) == 50


class TestEmergencyBoundary:
    def test_matches_minimum_height_stack(self):
        """With all lanes at minimum height the synthetic band equals the real one."""
        real = calculate_lane_boundaries({}, C)
        for lane in ("Farm", "Vendors", "General"):
            assert emergency_boundary(lane, C) == real[lane]

    def test_unknown_lane_goes_after_the_last_lane(self):
        boundary = emergency_boundary("Nowhere", C)
        assert boundary.start_y == 25 + len(SWIM_LANES) * (80 + 25)
        assert boundary.lane == "Nowhere"
