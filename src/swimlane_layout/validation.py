"""Layout validator — read-only consistency checks over a built layout.

Each check returns a ``ValidationResult``; ``validate_layout`` runs all of
them and bundles the results, the boundary violations and per-lane figures
into a ``ValidationReport``. Nothing here mutates the layout.

The ``run_automated_*`` functions build a layout themselves and are meant
for regression runs over real game data.
"""

from __future__ import annotations

import csv
import io
import json
import logging
import math
import time
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from swimlane_layout.config import DEFAULT_CONSTANTS, LayoutConstants
from swimlane_layout.items import GameItem, coerce_items, tree_items
from swimlane_layout.layout.sizing import required_lane_height, total_height
from swimlane_layout.layout.types import LaneBoundary, LayoutResult, PositionedNode, Strategy

logger = logging.getLogger(__name__)

ERROR = "error"
WARNING = "warning"

# Tier columns must agree to within this many pixels.
X_ALIGNMENT_TOLERANCE = 0.5


# ─── Result types ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ValidationIssue:
    severity: str
    message: str
    node_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"severity": self.severity, "message": self.message, "nodeId": self.node_id}


@dataclass
class ValidationResult:
    """Outcome of one check. ``passed`` is False when any issue is an error."""

    test_name: str
    passed: bool = True
    issues: list[ValidationIssue] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    metrics: dict[str, Any] = field(default_factory=dict)

    def error(self, message: str, node_id: str | None = None) -> None:
        self.issues.append(ValidationIssue(ERROR, message, node_id))
        self.passed = False

    def warning(self, message: str, node_id: str | None = None) -> None:
        self.issues.append(ValidationIssue(WARNING, message, node_id))

    def recommend(self, text: str) -> None:
        if text not in self.recommendations:
            self.recommendations.append(text)

    def to_dict(self) -> dict[str, Any]:
        return {
            "testName": self.test_name,
            "passed": self.passed,
            "issues": [issue.to_dict() for issue in self.issues],
            "recommendations": list(self.recommendations),
            "metrics": dict(self.metrics),
        }


@dataclass(frozen=True)
class BoundaryViolation:
    """A node centre outside its lane's usable band."""

    node: PositionedNode
    violation_type: str  # "top" or "bottom"
    severity: str  # "minor", "major" or "critical"
    allowed_boundary: float
    actual_position: float

    @property
    def distance(self) -> float:
        return abs(self.actual_position - self.allowed_boundary)

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodeId": self.node.id,
            "lane": self.node.lane,
            "violationType": self.violation_type,
            "severity": self.severity,
            "allowedBoundary": self.allowed_boundary,
            "actualPosition": self.actual_position,
        }


def violation_severity(distance: float) -> str:
    if distance <= 10:
        return "minor"
    if distance <= 20:
        return "major"
    return "critical"


# ─── Boundary violations ──────────────────────────────────────────────────────


def usable_range(boundary: LaneBoundary, constants: LayoutConstants) -> tuple[float, float]:
    """Allowed node-centre range inside the usable band."""
    c = constants
    return (
        boundary.start_y + c.lane_buffer + c.node_half_height,
        boundary.end_y - c.lane_buffer - c.node_half_height,
    )


def validate_all_positions(
    nodes: Iterable[PositionedNode],
    boundaries: Mapping[str, LaneBoundary],
    constants: LayoutConstants = DEFAULT_CONSTANTS,
) -> list[BoundaryViolation]:
    """Every node whose centre lies outside its lane's usable band.

    Nodes in lanes without a boundary are skipped.
    """
    tolerance = constants.boundary_tolerance
    violations: list[BoundaryViolation] = []
    for node in nodes:
        boundary = boundaries.get(node.lane)
        if boundary is None:
            continue
        low, high = usable_range(boundary, constants)
        y = node.position.y
        if y < low - tolerance:
            violations.append(BoundaryViolation(node, "top", violation_severity(low - y), low, y))
        elif y > high + tolerance:
            violations.append(BoundaryViolation(node, "bottom", violation_severity(y - high), high, y))
    return violations


# ─── Individual checks ────────────────────────────────────────────────────────


def _group(nodes: Iterable[PositionedNode]) -> dict[tuple[str, int], list[PositionedNode]]:
    groups: dict[tuple[str, int], list[PositionedNode]] = {}
    for node in nodes:
        groups.setdefault((node.lane, node.tier), []).append(node)
    return groups


def _is_emergency(node: PositionedNode) -> bool:
    return node.recovery is not None and node.recovery.strategy == Strategy.EMERGENCY.value


def check_boundary_compliance(result: LayoutResult, constants: LayoutConstants) -> ValidationResult:
    check = ValidationResult("Boundary Compliance")
    tolerance = constants.boundary_tolerance
    flagged = 0
    for violation in validate_all_positions(result.positioned, result.lane_boundaries, constants):
        node = violation.node
        if node.within_bounds:
            check.error(
                f"{node.id} is {violation.distance:.1f}px past the {violation.violation_type} of "
                f"lane {node.lane!r} but is flagged within bounds",
                node.id,
            )
            continue
        flagged += 1
        if not _is_emergency(node):
            check.error(f"{node.id} left the usable band of {node.lane!r} without emergency recovery", node.id)
            continue
        boundary = result.lane_boundaries[node.lane]
        outer_low = boundary.start_y + constants.node_half_height
        outer_high = boundary.end_y - constants.node_half_height
        if outer_low - tolerance <= node.position.y <= outer_high + tolerance:
            check.warning(f"{node.id} uses the lane buffer of {node.lane!r} after recovery", node.id)
        else:
            check.error(f"{node.id} is outside lane {node.lane!r} entirely", node.id)

    for node in result.positioned:
        if node.lane not in result.lane_boundaries:
            check.error(f"{node.id} is in lane {node.lane!r} which has no boundary", node.id)

    if not check.passed:
        check.recommend("Review lane height calculations")
    check.metrics = {"tested_nodes": len(result.positioned), "recovered_out_of_band": flagged}
    return check


def check_lane_heights(result: LayoutResult, constants: LayoutConstants) -> ValidationResult:
    check = ValidationResult("Lane Height Sufficiency")
    worst: dict[str, int] = {}
    for (lane, _tier), members in _group(result.positioned).items():
        worst[lane] = max(worst.get(lane, 0), len(members))

    for lane, height in result.lane_heights.items():
        needed = required_lane_height(worst.get(lane, 0), constants)
        if height + 1e-6 < needed:
            check.error(
                f"lane {lane!r} is {height:.0f}px but its most crowded tier needs {needed:.0f}px",
            )
        boundary = result.lane_boundaries.get(lane)
        if boundary is not None and not math.isclose(boundary.height, height):
            check.error(f"lane {lane!r} boundary height {boundary.height:.0f} != lane height {height:.0f}")

    if not check.passed:
        check.recommend("Review lane height calculations")
    check.metrics = {"lanes": len(result.lane_heights), "max_nodes_per_tier": worst}
    return check


def check_tier_alignment(result: LayoutResult, constants: LayoutConstants) -> ValidationResult:
    check = ValidationResult("Tier Alignment")
    xs: dict[int, list[float]] = {}
    for node in result.positioned:
        xs.setdefault(node.tier, []).append(node.position.x)

    for tier, values in sorted(xs.items()):
        spread = max(values) - min(values)
        if spread > X_ALIGNMENT_TOLERANCE:
            check.error(f"tier {tier} has inconsistent X positions (spread {spread:.2f}px)")
        expected = max(
            constants.lane_start_x + tier * constants.tier_width + constants.node_half_width,
            constants.min_valid_x,
        )
        if abs(values[0] - expected) > X_ALIGNMENT_TOLERANCE:
            check.error(f"tier {tier} sits at x={values[0]:.1f}, expected {expected:.1f}")

    check.metrics = {"tiers": len(xs)}
    return check


def check_non_interference(result: LayoutResult, constants: LayoutConstants) -> ValidationResult:
    """Tier placement must not move a node into another lane or over the labels."""
    check = ValidationResult("Vertical/Horizontal Non-Interference")
    for node in result.positioned:
        left = node.position.x - constants.node_half_width
        if left < constants.lane_start_x - 1e-6:
            check.error(f"{node.id} overlaps the lane labels (left edge {left:.1f})", node.id)
        for lane, boundary in result.lane_boundaries.items():
            if lane != node.lane and boundary.start_y < node.position.y < boundary.end_y:
                check.error(f"{node.id} of lane {node.lane!r} sits inside lane {lane!r}", node.id)
                break

    if constants.tier_width < constants.node_width:
        check.error("tier width is smaller than node width; adjacent tiers overlap")
    check.metrics = {"tested_nodes": len(result.positioned)}
    return check


def check_minimum_spacing(result: LayoutResult, constants: LayoutConstants) -> ValidationResult:
    check = ValidationResult("Minimum Spacing")
    tightest = math.inf
    for (lane, tier), members in _group(result.positioned).items():
        ordered = sorted(members, key=lambda n: n.position.y)
        for upper, lower in zip(ordered, ordered[1:]):
            gap = lower.position.y - upper.position.y - constants.node_height
            tightest = min(tightest, gap)
            if gap + 1e-6 >= constants.min_node_spacing:
                continue
            message = (
                f"{upper.id} and {lower.id} in {lane!r} tier {tier} are {gap:.1f}px apart "
                f"(minimum {constants.min_node_spacing:.0f}px)"
            )
            if _is_emergency(upper) and _is_emergency(lower):
                check.warning(message + " under emergency spacing", lower.id)
            else:
                check.error(message, lower.id)

    if not check.passed:
        check.recommend("Review lane height calculations")
    check.metrics = {"tightest_gap": None if tightest is math.inf else tightest}
    return check


def check_edge_geometry(result: LayoutResult, constants: LayoutConstants) -> ValidationResult:
    check = ValidationResult("Edge Geometry")
    by_id = {node.id: node for node in result.positioned}
    tier_count = max((n.tier for n in result.positioned), default=-1) + 1
    max_length = math.hypot(
        max(tier_count, 1) * constants.tier_width,
        total_height(result.lane_boundaries, constants),
    )
    longest = 0.0
    for edge in result.edges:
        source, target = by_id.get(edge.source), by_id.get(edge.target)
        if source is None or target is None:
            check.error(f"edge {edge.id} references a node that is not in the layout")
            continue
        if source.position.x >= target.position.x:
            check.error(f"Invalid edge direction: {edge.id} does not point right")
        length = math.hypot(
            target.position.x - source.position.x,
            target.position.y - source.position.y,
        )
        longest = max(longest, length)
        if length > max_length:
            check.warning(f"edge {edge.id} is {length:.0f}px long (limit {max_length:.0f}px)")

    check.metrics = {"edges": len(result.edges), "longest_edge": longest}
    return check


def check_prerequisite_positioning(result: LayoutResult, constants: LayoutConstants) -> ValidationResult:
    check = ValidationResult("Prerequisite Positioning")
    by_id = {node.id: node for node in result.positioned}
    for node in result.positioned:
        for prereq_id in node.item.prerequisites:
            prereq = by_id.get(prereq_id)
            if prereq is None or prereq.position.x < node.position.x:
                continue
            message = f"{prereq_id} is not to the left of {node.id}"
            if prereq.tier >= node.tier:
                # Reference cut by cycle handling; reported, not fatal.
                check.warning(message + " (cyclic reference)", node.id)
            else:
                check.error(message, node.id)
    return check


CHECKS = (
    check_boundary_compliance,
    check_lane_heights,
    check_tier_alignment,
    check_non_interference,
    check_minimum_spacing,
    check_edge_geometry,
    check_prerequisite_positioning,
)


# ─── Report ───────────────────────────────────────────────────────────────────


@dataclass
class ValidationReport:
    timestamp: float
    results: list[ValidationResult]
    violations: list[BoundaryViolation]
    node_details: list[dict[str, Any]]
    lane_analysis: list[dict[str, Any]]
    recommendations: list[str]

    @property
    def passed(self) -> bool:
        return all(r.passed for r in self.results)

    @property
    def summary(self) -> dict[str, Any]:
        return {
            "totalNodes": len(self.node_details),
            "adjustmentsMade": sum(1 for d in self.node_details if d["adjusted"]),
            "boundaryViolations": len(self.violations),
            "testsRun": len(self.results),
            "testsPassed": sum(1 for r in self.results if r.passed),
        }

    def result(self, test_name: str) -> ValidationResult | None:
        for r in self.results:
            if r.test_name == test_name:
                return r
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "passed": self.passed,
            "summary": self.summary,
            "testResults": [r.to_dict() for r in self.results],
            "violations": [v.to_dict() for v in self.violations],
            "nodeDetails": self.node_details,
            "laneAnalysis": self.lane_analysis,
            "recommendations": list(self.recommendations),
        }

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def to_csv(self) -> str:
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(["Node ID", "Node Name", "Lane", "Tier", "X", "Y", "Within Bounds", "Adjusted", "Strategy"])
        for d in self.node_details:
            writer.writerow(
                [d["id"], d["name"], d["lane"], d["tier"], d["x"], d["y"], d["withinBounds"], d["adjusted"], d["strategy"]]
            )
        return buf.getvalue()


def _node_detail(node: PositionedNode) -> dict[str, Any]:
    return {
        "id": node.id,
        "name": node.item.label,
        "lane": node.lane,
        "tier": node.tier,
        "x": node.position.x,
        "y": node.position.y,
        "withinBounds": node.within_bounds,
        "adjusted": node.recovery is not None,
        "strategy": node.recovery.strategy if node.recovery is not None else "",
    }


def _lane_analysis(
    nodes: Sequence[PositionedNode],
    result: LayoutResult,
    violations: Sequence[BoundaryViolation],
) -> list[dict[str, Any]]:
    counted: dict[str, dict[str, Any]] = {}
    for node in nodes:
        entry = counted.setdefault(
            node.lane,
            {"lane": node.lane, "nodeCount": 0, "boundaryViolations": 0, "adjustments": 0},
        )
        entry["nodeCount"] += 1
        entry["adjustments"] += node.recovery is not None
    for violation in violations:
        counted[violation.node.lane]["boundaryViolations"] += 1
    for lane, entry in counted.items():
        boundary = result.lane_boundaries.get(lane)
        entry["height"] = boundary.height if boundary is not None else None
    return list(counted.values())


def validate_layout(result: LayoutResult, constants: LayoutConstants = DEFAULT_CONSTANTS) -> ValidationReport:
    """Run every check against ``result``."""
    results = [check(result, constants) for check in CHECKS]
    violations = validate_all_positions(result.positioned, result.lane_boundaries, constants)

    recommendations: list[str] = []
    for r in results:
        for text in r.recommendations:
            if text not in recommendations:
                recommendations.append(text)
    if violations:
        recommendations.append(f"Investigate {len(violations)} boundary violations")

    report = ValidationReport(
        timestamp=time.time(),
        results=results,
        violations=violations,
        node_details=[_node_detail(n) for n in result.positioned],
        lane_analysis=_lane_analysis(result.positioned, result, violations),
        recommendations=recommendations,
    )
    if not report.passed:
        failed = [r.test_name for r in results if not r.passed]
        logger.warning("layout validation failed: %s", ", ".join(failed))
    return report


# ─── Automated harness ────────────────────────────────────────────────────────


def run_automated_boundary_tests(
    items: Iterable[GameItem | Mapping[str, Any]],
    constants: LayoutConstants = DEFAULT_CONSTANTS,
) -> ValidationResult:
    """Build a layout for ``items`` and check every node against its lane."""
    from swimlane_layout.layout.builder import LayoutBuilder

    check = ValidationResult("Automated Boundary Tests")
    parsed = coerce_items(items)
    if not tree_items(parsed):
        check.error("No tree items found in dataset")
        check.metrics = {"tested_nodes": 0}
        return check

    result = LayoutBuilder(constants).build(parsed)
    violations = validate_all_positions(result.positioned, result.lane_boundaries, constants)
    for violation in violations:
        node = violation.node
        message = (
            f"{node.id} violates the {violation.violation_type} of lane {node.lane!r} "
            f"by {violation.distance:.1f}px ({violation.severity})"
        )
        if node.within_bounds or violation.severity == "critical":
            check.error(message, node.id)
        else:
            check.warning(message, node.id)

    if violations:
        check.recommend("Review lane height calculations")
    by_severity = {"minor": 0, "major": 0, "critical": 0}
    for violation in violations:
        by_severity[violation.severity] += 1
    check.metrics = {
        "tested_nodes": len(result.positioned),
        "violations": len(violations),
        **{f"{name}_violations": count for name, count in by_severity.items()},
    }
    return check


def run_automated_performance_tests(
    items: Iterable[GameItem | Mapping[str, Any]],
    constants: LayoutConstants = DEFAULT_CONSTANTS,
    *,
    runs: int = 3,
    budget_ms: float | None = None,
) -> ValidationResult:
    """Time ``runs`` fresh builds against the performance budget."""
    from swimlane_layout.layout.builder import LayoutBuilder

    budget = constants.performance_budget_ms if budget_ms is None else budget_ms
    check = ValidationResult("Automated Performance Tests")
    parsed = coerce_items(items)

    started = time.perf_counter()
    timings: list[float] = []
    node_count = 0
    for _ in range(max(runs, 1)):
        t0 = time.perf_counter()
        result = LayoutBuilder(constants).build(parsed)
        timings.append((time.perf_counter() - t0) * 1000.0)
        node_count = len(result.nodes)
    elapsed = (time.perf_counter() - started) * 1000.0

    average = sum(timings) / len(timings)
    if average > budget:
        check.error(f"average build time {average:.1f}ms exceeds budget {budget:.0f}ms")
        check.recommend("Profile the layout build on this dataset")
    check.metrics = {
        "runs": len(timings),
        "nodes": node_count,
        "average_ms": average,
        "max_ms": max(timings),
        "validation_time": elapsed,
    }
    return check


def run_all_automated_tests(
    items: Iterable[GameItem | Mapping[str, Any]],
    constants: LayoutConstants = DEFAULT_CONSTANTS,
) -> list[ValidationResult]:
    parsed = coerce_items(items)
    results = [
        run_automated_boundary_tests(parsed, constants),
        run_automated_performance_tests(parsed, constants),
    ]
    passed = sum(1 for r in results if r.passed)
    logger.info("automated layout tests: %d/%d passed", passed, len(results))
    return results
