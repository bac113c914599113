"""Tests for layout/recovery.py — boundary fallback, lane recovery, reports."""

from __future__ import annotations

import pytest

from swimlane_layout.config import DEFAULT_CONSTANTS
from swimlane_layout.diagnostics import DiagnosticKind, Diagnostics, Severity
from swimlane_layout.items import GameItem
from swimlane_layout.layout.recovery import FALLBACK, ErrorRecovery
from swimlane_layout.layout.types import (
    CrowdingSeverity,
    LaneBoundary,
    Point,
    PositionedNode,
    Strategy,
)

C = DEFAULT_CONSTANTS

# ─── Helpers ──────────────────────────────────────────────────────────────────


def make_boundary(start_y: float = 100, end_y: float = 200) -> LaneBoundary:
    height = end_y - start_y
    return LaneBoundary(
        lane="Farm",
        start_y=start_y,
        end_y=end_y,
        center_y=start_y + height / 2,
        height=height,
        usable_height=height - 2 * C.lane_buffer,
    )


def make_nodes(count: int, *, tier: int = 0, y0: float = 100, dy: float = 20) -> list[PositionedNode]:
    return [
        PositionedNode(
            item=GameItem(id=f"test-item-{i}", name=f"Test Item {i}", source_file="farm_actions.csv"),
            position=Point(300, y0 + i * dy),
            lane="Farm",
            tier=tier,
            within_bounds=False,
        )
        for i in range(count)
    ]


def make_recovery() -> tuple[ErrorRecovery, Diagnostics]:
    diags = Diagnostics(forward_to_log=False)
    return ErrorRecovery(C, diags), diags


# ─── Boundary Enforcement ─────────────────────────────────────────────────────


class TestBoundaryEnforcementFailure:
    def test_position_above_lane_is_moved_down(self):
        recovery, diags = make_recovery()
        boundaries = {"Farm": make_boundary()}
        fixed = recovery.handle_boundary_enforcement_failure(Point(300, 50), "Farm", boundaries, "test-node-1")
        assert fixed.position.y == 140  # 100 + buffer + half height
        assert fixed.position.y >= 100 + C.lane_buffer
        assert fixed.recovery_context.strategy == FALLBACK
        assert fixed.recovery_context.applied_adjustments
        assert fixed.recovery_context.original_position == Point(300, 50)
        assert diags.of_kind(DiagnosticKind.POSITION_CORRECTED)

    def test_position_below_lane_is_moved_up(self):
        recovery, _ = make_recovery()
        fixed = recovery.handle_boundary_enforcement_failure(
            Point(300, 250), "Farm", {"Farm": make_boundary()}, "test-node-2"
        )
        assert fixed.position.y == 160

    def test_x_is_moved_clear_of_labels(self):
        recovery, _ = make_recovery()
        fixed = recovery.handle_boundary_enforcement_failure(
            Point(10, 150), "Farm", {"Farm": make_boundary()}, "n"
        )
        assert fixed.position.x == C.min_valid_x

    def test_missing_boundary_uses_emergency_band(self):
        recovery, diags = make_recovery()
        fixed = recovery.handle_boundary_enforcement_failure(Point(300, 0), "Vendors", {}, "n")
        assert fixed.recovery_context.boundary.start_y == 130
        events = diags.of_kind(DiagnosticKind.MISSING_BOUNDARY)
        assert len(events) == 1
        assert events[0].severity is Severity.CRITICAL


# ─── Lane Overcrowding ────────────────────────────────────────────────────────


class TestLaneOvercrowding:
    def test_analysis_uses_most_crowded_tier(self):
        recovery, diags = make_recovery()
        nodes = make_nodes(2, tier=0) + make_nodes(1, tier=1)
        tiny = LaneBoundary("Farm", 100, 150, 125, 50, 10)
        analysis = recovery.analyze_lane_overcrowding("Farm", nodes, tiny)
        assert analysis.lane == "Farm"
        assert analysis.tier == 0
        assert analysis.node_count == 2
        assert analysis.ratio > 1
        assert analysis.severity is not CrowdingSeverity.NONE
        assert analysis.recommended_action is not Strategy.NONE
        assert diags.of_kind(DiagnosticKind.OVERCROWDED_LANE)

    def test_uncrowded_lane_records_nothing(self):
        recovery, diags = make_recovery()
        analysis = recovery.analyze_lane_overcrowding("Farm", make_nodes(1), make_boundary())
        assert analysis.severity is CrowdingSeverity.NONE
        assert recovery.user_friendly_errors() == []
        assert len(diags) == 0

    def test_recover_overcrowded_lane(self):
        """5 nodes in a 100px lane are spread with centres at least 5px apart."""
        recovery, diags = make_recovery()
        nodes = make_nodes(5)
        boundary = make_boundary()
        analysis = recovery.analyze_lane_overcrowding("Farm", nodes, boundary)
        result = recovery.recover_overcrowded_lane(analysis, nodes, boundary)

        assert len(result.recovered_nodes) == 5
        assert len(result.recovery_contexts) == 5
        ys = sorted(n.position.y for n in result.recovered_nodes)
        assert all(b - a >= 5 for a, b in zip(ys, ys[1:]))
        # Nodes never leave the lane entirely.
        assert ys[0] >= boundary.start_y + C.node_half_height
        assert ys[-1] <= boundary.end_y - C.node_half_height
        assert [n.id for n in result.recovered_nodes] == [n.id for n in nodes]
        assert diags.of_kind(DiagnosticKind.EMERGENCY_SPACING)[0].severity is Severity.CRITICAL

    def test_recover_without_boundary(self):
        """Without a boundary the analysed available space is centred on the nodes."""
        recovery, _ = make_recovery()
        nodes = make_nodes(3, y0=200, dy=10)
        boundary = make_boundary()
        analysis = recovery.analyze_lane_overcrowding("Farm", nodes, boundary)
        result = recovery.recover_overcrowded_lane(analysis, nodes)
        ys = [n.position.y for n in result.recovered_nodes]
        assert sum(ys) / len(ys) == pytest.approx(210)

    def test_recovered_nodes_carry_context(self):
        recovery, _ = make_recovery()
        nodes = make_nodes(5)
        boundary = make_boundary()
        analysis = recovery.analyze_lane_overcrowding("Farm", nodes, boundary)
        recovered = recovery.recover_overcrowded_lane(analysis, nodes, boundary).recovered_nodes
        for node in recovered:
            assert node.recovery is recovery.recovery_context(node.id)
            assert node.recovery.corrected_position == node.position


class TestEmergencySpacing:
    def test_fits_available_height(self):
        """10 nodes in 200px overlap evenly but stay inside it."""
        recovery, _ = make_recovery()
        placed = recovery.create_emergency_spacing(make_nodes(10, dy=5), 200)
        assert len(placed) == 10
        assert max(n.position.y for n in placed) + C.node_half_height <= 200
        assert min(n.position.y for n in placed) - C.node_half_height >= 0

    def test_back_to_back_when_room(self):
        recovery, _ = make_recovery()
        placed = recovery.create_emergency_spacing(make_nodes(2), 200)
        ys = [n.position.y for n in placed]
        assert ys[1] - ys[0] == pytest.approx(C.node_height + C.emergency_spacing)

    def test_empty(self):
        recovery, _ = make_recovery()
        assert recovery.create_emergency_spacing([], 200) == []


# ─── Errors & Report ──────────────────────────────────────────────────────────


class TestUserFacingErrors:
    def test_user_friendly_errors(self):
        recovery, _ = make_recovery()
        recovery.handle_boundary_enforcement_failure(Point(300, 50), "Farm", {"Farm": make_boundary()}, "test-node-1")
        errors = recovery.user_friendly_errors()
        assert len(errors) == 1
        error = errors[0]
        assert error.title
        assert error.message
        assert error.suggested_actions
        assert error.recovery_applied is True

    def test_report(self):
        recovery, _ = make_recovery()
        boundaries = {"Farm": make_boundary()}
        recovery.handle_boundary_enforcement_failure(Point(300, 50), "Farm", boundaries, "test-node-1")
        recovery.handle_boundary_enforcement_failure(Point(300, 250), "Farm", boundaries, "test-node-2")
        report = recovery.report()
        assert report.total_errors == 2
        assert report.total_recoveries == 2
        assert report.errors_by_severity == {"warning": 2}
        assert report.recoveries_by_strategy == {"fallback": 2}
        assert "2 node position(s) recovered" in report.summary

    def test_clean_report(self):
        recovery, _ = make_recovery()
        report = recovery.report()
        assert report.total_errors == 0
        assert report.summary == "Layout built without errors."

    def test_clear(self):
        recovery, _ = make_recovery()
        recovery.handle_boundary_enforcement_failure(Point(300, 50), "Farm", {"Farm": make_boundary()}, "test-node-1")
        assert recovery.recovery_context("test-node-1") is not None
        recovery.clear()
        assert recovery.user_friendly_errors() == []
        assert recovery.recovery_context("test-node-1") is None
