"""Position solver — final (x, y) of every node.

X depends on the tier alone, so every node of a tier shares one column
whatever its lane. Y comes from the overcrowding strategies for the node's
lane/tier group and is then boundary-checked.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import replace

from swimlane_layout.config import DEFAULT_CONSTANTS, LayoutConstants
from swimlane_layout.items import GameItem
from swimlane_layout.layout.overcrowding import analyze_group, apply_strategy, choose_strategy, ideal_positions
from swimlane_layout.layout.recovery import ErrorRecovery
from swimlane_layout.layout.types import LaneBoundary, Point, PositionedNode, Strategy

logger = logging.getLogger(__name__)

# Only emergency placements may leave the usable band; their nodes are kept in
# the outer lane envelope instead of being clamped back.
_SPILLING_STRATEGIES = frozenset({Strategy.EMERGENCY.value})


class PositionSolver:
    """Places lane/tier groups inside a fixed set of lane boundaries.

    Args:
        boundaries: Lane name → boundary, from ``calculate_lane_boundaries``.
        constants: Layout geometry.
        recovery: Recovery log receiving corrections; a private one is
            created when omitted.
    """

    def __init__(
        self,
        boundaries: Mapping[str, LaneBoundary],
        constants: LayoutConstants = DEFAULT_CONSTANTS,
        recovery: ErrorRecovery | None = None,
    ) -> None:
        self.boundaries = boundaries
        self.constants = constants
        self.recovery = recovery if recovery is not None else ErrorRecovery(constants)
        self._placed: dict[str, PositionedNode] = {}

    # ── X ───────────────────────────────────────────────────────────────────

    def tier_x(self, tier: int) -> float:
        """Centre X of a tier column, never left of the lane labels."""
        c = self.constants
        x = c.lane_start_x + tier * c.tier_width + c.node_half_width
        return max(x, c.min_valid_x)

    # ── Boundary checks ─────────────────────────────────────────────────────

    def validate_position_within_bounds(self, position: Point, boundary: LaneBoundary) -> bool:
        """Whether a node centred at ``position`` stays inside the usable band (± tolerance)."""
        low, high = self.recovery.safe_band(boundary)
        tolerance = self.constants.boundary_tolerance
        return low - tolerance <= position.y <= high + tolerance

    def enforce_boundary_constraints(
        self,
        position: Point,
        lane: str,
        node_id: str,
        tier: int | None = None,
        boundary: LaneBoundary | None = None,
    ) -> tuple[Point, bool]:
        """Return ``position`` unchanged if it is in bounds, else a corrected one.

        Returns:
            The position to use and whether a correction was applied.
        """
        if boundary is None:
            boundary = self.recovery.resolve_boundary(lane, self.boundaries)
        if self.validate_position_within_bounds(position, boundary) and position.x >= self.constants.min_valid_x:
            return position, False
        fixed = self.recovery.handle_boundary_enforcement_failure(
            position, lane, {lane: boundary}, node_id, tier=tier
        )
        return fixed.position, True

    # ── Y ───────────────────────────────────────────────────────────────────

    def solve_group(self, lane: str, tier: int, items: Sequence[GameItem]) -> list[PositionedNode]:
        """Place one lane/tier group, top to bottom in ``items`` order."""
        if not items:
            return []

        boundary = self.recovery.resolve_boundary(lane, self.boundaries)
        x = self.tier_x(tier)
        analysis = analyze_group(lane, tier, len(items), boundary, self.constants)
        strategy = choose_strategy(analysis)

        ideal = [
            PositionedNode(item=item, position=Point(x, y), lane=lane, tier=tier)
            for item, y in zip(items, ideal_positions(len(items), boundary, self.constants))
        ]

        if strategy is Strategy.NONE:
            nodes = self._place_evenly(ideal, boundary)
        else:
            self.recovery.note_overcrowding(analysis)
            reason = f"lane/tier overcrowded (ratio {analysis.ratio:.2f}, {analysis.severity.value})"
            nodes = self.recovery.place_nodes(ideal, boundary, strategy, reason).recovered_nodes

        placed = []
        for node in nodes:
            if node.recovery is not None and node.recovery.strategy in _SPILLING_STRATEGIES:
                placed.append(node)
                continue
            position, corrected = self.enforce_boundary_constraints(node.position, lane, node.id, tier, boundary)
            if corrected:
                node = PositionedNode(
                    item=node.item,
                    position=position,
                    lane=lane,
                    tier=tier,
                    within_bounds=self.validate_position_within_bounds(position, boundary),
                    recovery=self.recovery.recovery_context(node.id),
                )
            placed.append(node)

        for node in placed:
            self._placed[node.id] = node
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "placed %s tier %d: %d node(s), strategy %s",
                lane,
                tier,
                len(placed),
                strategy.value,
            )
        return placed

    def _place_evenly(self, ideal: list[PositionedNode], boundary: LaneBoundary) -> list[PositionedNode]:
        placement = apply_strategy(Strategy.NONE, len(ideal), boundary, self.constants)
        return [replace(node, position=Point(node.position.x, y)) for node, y in zip(ideal, placement.ys)]

    def position(
        self,
        item: GameItem,
        lane: str,
        tier: int,
        group: Sequence[GameItem] | None = None,
    ) -> Point:
        """Position of ``item`` placed with its lane/tier ``group``.

        ``group`` defaults to the item alone. Positions already produced by
        ``solve_group`` are returned as-is.
        """
        placed = self._placed.get(item.id)
        if placed is not None and placed.lane == lane and placed.tier == tier:
            return placed.position
        members = list(group) if group is not None else [item]
        if all(member.id != item.id for member in members):
            members.append(item)
        placed_group = {node.id: node for node in self.solve_group(lane, tier, members)}
        return placed_group[item.id].position

    def placed(self) -> dict[str, PositionedNode]:
        return dict(self._placed)

    def clear(self) -> None:
        self._placed.clear()
