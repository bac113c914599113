"""Error recovery — corrected positions and the audit trail behind them.

One ``ErrorRecovery`` instance belongs to one ``LayoutBuilder``; it collects
an ``ErrorRecoveryContext`` per corrected node and a list of user-facing
issues, and is cleared at the start of every build.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace

from swimlane_layout.config import DEFAULT_CONSTANTS, LayoutConstants
from swimlane_layout.diagnostics import DiagnosticKind, Diagnostics, Severity
from swimlane_layout.layout.overcrowding import analyze_group, choose_strategy, place_group
from swimlane_layout.layout.sizing import emergency_boundary, make_boundary
from swimlane_layout.layout.types import (
    SWIM_LANES,
    CrowdingSeverity,
    ErrorRecoveryContext,
    ErrorRecoveryReport,
    LaneBoundary,
    OvercrowdingAnalysis,
    Point,
    PositionedNode,
    Strategy,
)

FALLBACK = "fallback"

_CROWDING_SEVERITY: dict[CrowdingSeverity, Severity] = {
    CrowdingSeverity.NONE: Severity.INFO,
    CrowdingSeverity.MILD: Severity.WARNING,
    CrowdingSeverity.MODERATE: Severity.WARNING,
    CrowdingSeverity.SEVERE: Severity.ERROR,
    CrowdingSeverity.CRITICAL: Severity.CRITICAL,
}


@dataclass(frozen=True)
class UserFriendlyError:
    """A layout problem phrased for the person maintaining the game data."""

    title: str
    message: str
    severity: Severity
    suggested_actions: tuple[str, ...] = ()
    recovery_applied: bool = True
    node_id: str | None = None
    lane: str | None = None


@dataclass
class BoundaryRecovery:
    position: Point
    recovery_context: ErrorRecoveryContext


@dataclass
class LaneRecovery:
    recovered_nodes: list[PositionedNode] = field(default_factory=list)
    recovery_contexts: list[ErrorRecoveryContext] = field(default_factory=list)


def group_by_tier(nodes: Sequence[PositionedNode]) -> dict[int, list[PositionedNode]]:
    groups: dict[int, list[PositionedNode]] = {}
    for node in nodes:
        groups.setdefault(node.tier, []).append(node)
    return groups


class ErrorRecovery:
    """Per-build recovery log plus the imperative recovery helpers."""

    def __init__(
        self,
        constants: LayoutConstants = DEFAULT_CONSTANTS,
        diagnostics: Diagnostics | None = None,
        lanes: tuple[str, ...] = SWIM_LANES,
    ) -> None:
        self.constants = constants
        self.diagnostics = diagnostics
        self.lanes = lanes
        self._contexts: dict[str, ErrorRecoveryContext] = {}
        self._errors: list[UserFriendlyError] = []

    # ── Bookkeeping ─────────────────────────────────────────────────────────

    def _diagnose(self, kind: DiagnosticKind, severity: Severity, message: str, **kwargs) -> None:
        if self.diagnostics is not None:
            self.diagnostics.record(kind, severity, message, **kwargs)

    def add_error(self, error: UserFriendlyError) -> None:
        self._errors.append(error)

    def add_context(self, context: ErrorRecoveryContext) -> None:
        self._contexts[context.node_id] = context

    def recovery_context(self, node_id: str) -> ErrorRecoveryContext | None:
        return self._contexts.get(node_id)

    @property
    def recovery_contexts(self) -> dict[str, ErrorRecoveryContext]:
        return dict(self._contexts)

    def user_friendly_errors(self) -> list[UserFriendlyError]:
        return list(self._errors)

    def report(self) -> ErrorRecoveryReport:
        by_severity = Counter(e.severity.value for e in self._errors)
        by_strategy = Counter(c.strategy for c in self._contexts.values())
        total_errors = len(self._errors)
        total_recoveries = len(self._contexts)
        if total_errors == 0 and total_recoveries == 0:
            summary = "Layout built without errors."
        else:
            parts = [f"{total_errors} layout issue(s)", f"{total_recoveries} node position(s) recovered"]
            if by_strategy:
                strategies = ", ".join(f"{name}: {count}" for name, count in sorted(by_strategy.items()))
                parts.append(f"strategies used ({strategies})")
            summary = "; ".join(parts) + "."
        return ErrorRecoveryReport(
            total_errors=total_errors,
            total_recoveries=total_recoveries,
            errors_by_severity=dict(by_severity),
            recoveries_by_strategy=dict(by_strategy),
            summary=summary,
        )

    def clear(self) -> None:
        self._contexts.clear()
        self._errors.clear()

    # ── Boundaries ──────────────────────────────────────────────────────────

    def resolve_boundary(self, lane: str, boundaries: Mapping[str, LaneBoundary]) -> LaneBoundary:
        """Boundary of ``lane``, synthesized from the lane index when missing."""
        boundary = boundaries.get(lane)
        if boundary is not None:
            return boundary

        boundary = emergency_boundary(lane, self.constants, self.lanes)
        self._diagnose(
            DiagnosticKind.MISSING_BOUNDARY,
            Severity.CRITICAL,
            f"no boundary for lane {lane!r}; using emergency band "
            f"{boundary.start_y:.0f}-{boundary.end_y:.0f}",
            lane=lane,
        )
        self.add_error(
            UserFriendlyError(
                title="Missing lane boundary",
                message=f"Lane {lane!r} had no computed boundary, so an emergency band was used.",
                severity=Severity.CRITICAL,
                suggested_actions=(
                    "Check that the lane is part of the configured lane order",
                    "Rebuild the layout to recompute lane heights",
                ),
                lane=lane,
            )
        )
        return boundary

    def safe_band(self, boundary: LaneBoundary) -> tuple[float, float]:
        """Range of node centres that keeps a node inside the usable band.

        The range is empty (low > high) when the band is shorter than a node.
        """
        c = self.constants
        low = boundary.start_y + c.lane_buffer + c.node_half_height
        high = boundary.end_y - c.lane_buffer - c.node_half_height
        return low, high

    def outer_envelope(self, boundary: LaneBoundary) -> tuple[float, float]:
        """Range of node centres that keeps a node inside the lane at all."""
        c = self.constants
        low = boundary.start_y + c.node_half_height
        high = boundary.end_y - c.node_half_height
        if high < low:
            return boundary.center_y, boundary.center_y
        return low, high

    def handle_boundary_enforcement_failure(
        self,
        position: Point,
        lane: str,
        boundaries: Mapping[str, LaneBoundary],
        node_id: str,
        tier: int | None = None,
    ) -> BoundaryRecovery:
        """Move an out-of-bounds position back inside its lane's usable band."""
        boundary = self.resolve_boundary(lane, boundaries)
        low, high = self.safe_band(boundary)
        adjustments: list[str] = []

        y = position.y
        if high < low:
            adjustments.append(f"centred in lane {lane!r}, which is shorter than a node plus buffers")
            y = boundary.center_y
        elif y < low:
            adjustments.append(f"moved down {low - y:.1f}px to the top of lane {lane!r}")
            y = low
        elif y > high:
            adjustments.append(f"moved up {y - high:.1f}px to the bottom of lane {lane!r}")
            y = high

        x = position.x
        if x < self.constants.min_valid_x:
            adjustments.append(f"moved right {self.constants.min_valid_x - x:.1f}px clear of the lane labels")
            x = self.constants.min_valid_x

        corrected = Point(x, y)
        context = ErrorRecoveryContext(
            node_id=node_id,
            original_position=position,
            lane=lane,
            tier=tier,
            boundary=boundary,
            strategy=FALLBACK,
            reason="position outside lane boundary",
            applied_adjustments=adjustments,
            corrected_position=corrected,
        )
        self.add_context(context)
        self.add_error(
            UserFriendlyError(
                title="Node outside lane boundary",
                message=(
                    f"{node_id} was placed at y={position.y:.1f}, outside lane {lane!r} "
                    f"({boundary.start_y:.0f}-{boundary.end_y:.0f}); it was moved back inside."
                ),
                severity=Severity.WARNING,
                suggested_actions=(
                    "Review lane height calculations",
                    "Reduce the number of items sharing this lane and tier",
                ),
                node_id=node_id,
                lane=lane,
            )
        )
        self._diagnose(
            DiagnosticKind.POSITION_CORRECTED,
            Severity.WARNING,
            f"{node_id}: ({position.x:.1f}, {position.y:.1f}) → ({x:.1f}, {y:.1f}) in {lane}",
            item_id=node_id,
            lane=lane,
            tier=tier,
        )
        return BoundaryRecovery(corrected, context)

    # ── Overcrowding ────────────────────────────────────────────────────────

    def note_overcrowding(self, analysis: OvercrowdingAnalysis) -> None:
        """Record an overcrowded group; no-op for severity ``none``."""
        if analysis.severity is CrowdingSeverity.NONE:
            return
        severity = _CROWDING_SEVERITY[analysis.severity]
        tier_text = "" if analysis.tier is None else f" tier {analysis.tier}"
        self._diagnose(
            DiagnosticKind.OVERCROWDED_LANE,
            severity,
            f"{analysis.lane}{tier_text}: {analysis.node_count} nodes need "
            f"{analysis.required_space:.0f}px of {analysis.available_space:.0f}px "
            f"(ratio {analysis.ratio:.2f}, {analysis.severity.value}); "
            f"recommended {analysis.recommended_action.value}",
            lane=analysis.lane,
            tier=analysis.tier,
            ratio=analysis.ratio,
        )
        self.add_error(
            UserFriendlyError(
                title=f"{analysis.severity.value.capitalize()} overcrowding in {analysis.lane}",
                message=(
                    f"{analysis.node_count} items share lane {analysis.lane!r}{tier_text} but only "
                    f"{analysis.available_space:.0f}px of {analysis.required_space:.0f}px are available."
                ),
                severity=severity,
                suggested_actions=(
                    "Review lane height calculations",
                    "Move some items to another lane or tier",
                ),
                lane=analysis.lane,
            )
        )

    def analyze_lane_overcrowding(
        self,
        lane: str,
        nodes: Sequence[PositionedNode],
        boundary: LaneBoundary,
    ) -> OvercrowdingAnalysis:
        """Analyse the most crowded tier of ``nodes`` within ``boundary``."""
        groups = group_by_tier(nodes)
        if groups:
            tier, members = max(groups.items(), key=lambda kv: (len(kv[1]), -kv[0]))
        else:
            tier, members = None, []
        analysis = analyze_group(lane, tier, len(members), boundary, self.constants)
        self.note_overcrowding(analysis)
        return analysis

    def place_nodes(
        self,
        nodes: Sequence[PositionedNode],
        boundary: LaneBoundary,
        strategy: Strategy,
        reason: str,
    ) -> LaneRecovery:
        """Re-place one lane/tier group, escalating ``strategy`` as needed."""
        placement, tried = place_group(len(nodes), boundary, self.constants, strategy)
        if len(tried) > 1:
            self._diagnose(
                DiagnosticKind.STRATEGY_ESCALATED,
                Severity.WARNING,
                f"{boundary.lane}: {' → '.join(s.value for s in tried)}",
                lane=boundary.lane,
                tier=nodes[0].tier if nodes else None,
            )
        if placement.strategy is Strategy.EMERGENCY:
            overlap = "" if placement.fits else "; nodes overlap"
            self._diagnose(
                DiagnosticKind.EMERGENCY_SPACING,
                Severity.CRITICAL,
                f"{boundary.lane}: emergency spacing applied to {len(nodes)} nodes{overlap}",
                lane=boundary.lane,
                tier=nodes[0].tier if nodes else None,
            )

        safe_low, safe_high = self.safe_band(boundary)
        outer_low, outer_high = self.outer_envelope(boundary)
        tolerance = self.constants.boundary_tolerance

        result = LaneRecovery()
        for node, y in zip(nodes, placement.ys):
            y = min(max(y, outer_low), outer_high)
            within = safe_low - tolerance <= y <= safe_high + tolerance
            corrected = Point(node.position.x, y)
            context = ErrorRecoveryContext(
                node_id=node.id,
                original_position=node.position,
                lane=node.lane,
                tier=node.tier,
                boundary=boundary,
                strategy=placement.strategy.value,
                reason=reason,
                applied_adjustments=[
                    f"{placement.strategy.value} spacing {placement.spacing:.1f}px",
                    f"y {node.position.y:.1f} → {y:.1f}",
                ],
                corrected_position=corrected,
            )
            self.add_context(context)
            result.recovery_contexts.append(context)
            result.recovered_nodes.append(
                replace(node, position=corrected, within_bounds=within, recovery=context)
            )
        return result

    def recover_overcrowded_lane(
        self,
        analysis: OvercrowdingAnalysis,
        nodes: Sequence[PositionedNode],
        boundary: LaneBoundary | None = None,
    ) -> LaneRecovery:
        """Re-place every tier group of an overcrowded lane.

        When ``boundary`` is omitted, a band of exactly the analysed available
        space is assumed, centred where the nodes currently are.
        """
        if boundary is None:
            boundary = self._boundary_from_analysis(analysis, nodes)

        reason = f"lane overcrowded (ratio {analysis.ratio:.2f}, {analysis.severity.value})"
        recovered: dict[str, PositionedNode] = {}
        contexts: list[ErrorRecoveryContext] = []
        for tier, members in group_by_tier(nodes).items():
            group = analyze_group(analysis.lane, tier, len(members), boundary, self.constants)
            lane_recovery = self.place_nodes(members, boundary, choose_strategy(group), reason)
            contexts.extend(lane_recovery.recovery_contexts)
            for node in lane_recovery.recovered_nodes:
                recovered[node.id] = node
        return LaneRecovery([recovered[n.id] for n in nodes], contexts)

    def _boundary_from_analysis(
        self,
        analysis: OvercrowdingAnalysis,
        nodes: Sequence[PositionedNode],
    ) -> LaneBoundary:
        height = max(analysis.available_space, 0.0) + 2 * self.constants.lane_buffer
        if nodes:
            center = sum(n.position.y for n in nodes) / len(nodes)
        else:
            center = height / 2
        return make_boundary(analysis.lane, center - height / 2, height, self.constants)

    def create_emergency_spacing(
        self,
        nodes: Sequence[PositionedNode],
        available_height: float,
    ) -> list[PositionedNode]:
        """Fit ``nodes`` into ``[0, available_height]`` at emergency spacing.

        Y values are relative to the top of the available space. Nodes overlap
        evenly when even back-to-back stacking does not fit.
        """
        if not nodes:
            return []
        lane = nodes[0].lane
        boundary = make_boundary(lane, 0.0, available_height, self.constants)
        reason = f"emergency spacing into {available_height:.0f}px"
        return self.place_nodes(nodes, boundary, Strategy.EMERGENCY, reason).recovered_nodes
