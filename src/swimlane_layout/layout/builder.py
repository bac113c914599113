"""Layout builder — runs one full layout pass.

Data flow of ``LayoutBuilder.build``:

    raw items ─► filter to Actions/Unlocks
              ─► TierCalculator + LaneAssigner   (memoized per build)
              ─► estimate_lane_heights ─► calculate_lane_boundaries
              ─► PositionSolver, one lane/tier group at a time
              ─► prerequisite (+ material) edges
              ─► optional validation
              ─► LayoutResult

All per-build state (tier memo, lane memo, recovery log, diagnostics) lives
on the builder and is reset at the start of every build, so repeated builds
never leak results into each other.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from collections.abc import Iterable, Mapping
from typing import Any

from swimlane_layout.config import DEFAULT_CONSTANTS, LayoutConstants
from swimlane_layout.diagnostics import DiagnosticKind, Diagnostics, Severity
from swimlane_layout.items import GameItem, coerce_items, tree_items
from swimlane_layout.layout.edges import build_material_edges, build_prerequisite_edges
from swimlane_layout.layout.lanes import LaneAssigner, game_feature
from swimlane_layout.layout.positions import PositionSolver
from swimlane_layout.layout.recovery import ErrorRecovery
from swimlane_layout.layout.sizing import (
    calculate_lane_boundaries,
    count_nodes_per_lane_tier,
    estimate_lane_heights,
)
from swimlane_layout.layout.tiers import TierCalculator
from swimlane_layout.layout.types import SWIM_LANES, GraphNode, LayoutResult, PositionedNode

logger = logging.getLogger(__name__)


class LayoutBuilder:
    """Builds swim-lane layouts for item sets.

    Args:
        constants: Layout geometry shared with the renderer.
        lanes: Lane order, top to bottom.
        material_edges: Also emit producer → consumer material edges.
        lane_heights: Fixed lane heights overriding the estimate for the
            given lanes (e.g. a renderer with a fixed canvas). Groups that
            no longer fit go through the overcrowding strategies.
        cache_results: Reuse the previous result for an identical input.
    """

    def __init__(
        self,
        constants: LayoutConstants = DEFAULT_CONSTANTS,
        lanes: tuple[str, ...] = SWIM_LANES,
        *,
        material_edges: bool = False,
        lane_heights: Mapping[str, float] | None = None,
        cache_results: bool = False,
    ) -> None:
        self.constants = constants
        self.lanes = lanes
        self.material_edges = material_edges
        self.lane_height_overrides = dict(lane_heights or {})
        self.cache_results = cache_results

        self.diagnostics = Diagnostics()
        self.lane_assigner = LaneAssigner(self.diagnostics, lanes=lanes)
        self.recovery = ErrorRecovery(constants, self.diagnostics, lanes)
        self.tiers: TierCalculator | None = None
        self._cache: dict[str, LayoutResult] = {}

    def reset(self) -> None:
        """Forget all per-build state. The result cache survives."""
        self.diagnostics.clear()
        self.lane_assigner.clear()
        self.recovery.clear()
        self.tiers = None

    def clear_cache(self) -> None:
        self._cache.clear()

    # ── Cache key ───────────────────────────────────────────────────────────

    def cache_key(self, items: Iterable[GameItem]) -> str:
        """SHA-256 over everything that can move a node."""
        payload = {
            "constants": self.constants.as_dict(),
            "lanes": list(self.lanes),
            "material_edges": self.material_edges,
            "lane_heights": self.lane_height_overrides,
            "items": [
                [
                    item.id,
                    item.name,
                    item.category,
                    item.source_file,
                    item.type,
                    list(item.prerequisites),
                    list(item.categories),
                    sorted(item.materials_cost),
                    sorted(item.materials_gain),
                ]
                for item in items
            ],
        }
        blob = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(blob.encode("utf-8")).hexdigest()

    # ── Build ───────────────────────────────────────────────────────────────

    def build(self, items: Iterable[GameItem | Mapping[str, Any]], *, validate: bool = False) -> LayoutResult:
        """Lay out ``items`` and return nodes, edges and lane geometry.

        Never raises for data-quality problems; those are recovered and
        reported in ``result.diagnostics``.

        Raises:
            ItemDataError: if an item mapping has no id.
        """
        all_items = coerce_items(items)

        key = None
        if self.cache_results:
            key = self.cache_key(all_items)
            cached = self._cache.get(key)
            if cached is not None:
                logger.debug("layout cache hit %s", key[:12])
                if validate and cached.validation is None:
                    from swimlane_layout.validation import validate_layout

                    cached.validation = validate_layout(cached, self.constants)
                return cached

        started = time.perf_counter()
        self.reset()
        result = self._build(all_items)
        result.duration_ms = (time.perf_counter() - started) * 1000.0

        if result.duration_ms > self.constants.performance_budget_ms:
            self.diagnostics.record(
                DiagnosticKind.SLOW_BUILD,
                Severity.WARNING,
                f"layout of {len(result.nodes)} nodes took {result.duration_ms:.1f}ms "
                f"(budget {self.constants.performance_budget_ms:.0f}ms)",
                duration_ms=result.duration_ms,
            )

        if validate:
            from swimlane_layout.validation import validate_layout

            result.validation = validate_layout(result, self.constants)

        result.diagnostics = self.diagnostics.events
        result.recovery_report = self.recovery.report()
        result.recovery_contexts = self.recovery.recovery_contexts

        if key is not None:
            self._cache[key] = result
        return result

    def _build(self, all_items: list[GameItem]) -> LayoutResult:
        c = self.constants
        items = self._unique(tree_items(all_items))

        self.tiers = TierCalculator(items, self.diagnostics)
        tiers = self.tiers.tiers
        lanes = {item.id: self.lane_assigner.assign(item) for item in items}

        counts = count_nodes_per_lane_tier((lanes[item.id], tiers[item.id]) for item in items)
        lane_heights = estimate_lane_heights(counts, c, self.lanes)
        lane_heights.update((lane, h) for lane, h in self.lane_height_overrides.items() if lane in lane_heights)
        boundaries = calculate_lane_boundaries(lane_heights, c, self.lanes)

        # Stable sort keeps input order within each tier, which is also the
        # top-to-bottom order inside each lane/tier group.
        ordered = sorted(items, key=lambda item: tiers[item.id])

        groups: dict[tuple[str, int], list[GameItem]] = {}
        for item in ordered:
            groups.setdefault((lanes[item.id], tiers[item.id]), []).append(item)

        solver = PositionSolver(boundaries, c, self.recovery)
        positioned: dict[str, PositionedNode] = {}
        for (lane, tier), members in groups.items():
            for node in solver.solve_group(lane, tier, members):
                positioned[node.id] = node

        nodes = [self._graph_node(positioned[item.id]) for item in ordered]
        edges = build_prerequisite_edges(ordered, tiers, self.diagnostics)
        if self.material_edges:
            edges.extend(build_material_edges(ordered, tiers))

        self.diagnostics.record(
            DiagnosticKind.BUILD_SUMMARY,
            Severity.INFO,
            f"{len(nodes)} nodes (of {len(all_items)} items), {len(edges)} edges, "
            f"{self.tiers.tier_count} tiers",
            nodes=len(nodes),
            edges=len(edges),
        )
        return LayoutResult(
            nodes=nodes,
            edges=edges,
            lane_heights=lane_heights,
            lane_boundaries=boundaries,
            positioned=[positioned[item.id] for item in ordered],
        )

    def _unique(self, items: list[GameItem]) -> list[GameItem]:
        """Drop repeated item ids; the first record with an id wins."""
        seen: set[str] = set()
        unique: list[GameItem] = []
        for item in items:
            if item.id in seen:
                self.diagnostics.record(
                    DiagnosticKind.DUPLICATE_ITEM,
                    Severity.WARNING,
                    f"ignored duplicate item {item.id!r} from {item.source_file or 'unknown source'}",
                    item_id=item.id,
                )
                continue
            seen.add(item.id)
            unique.append(item)
        return unique

    @staticmethod
    def _graph_node(node: PositionedNode) -> GraphNode:
        item = node.item
        return GraphNode(
            id=item.id,
            label=item.label,
            lane=node.lane,
            tier=node.tier,
            position=node.position,
            category=item.categories[0] if item.categories else "general",
            feature=game_feature(item.source_file),
            within_bounds=node.within_bounds,
            item=item,
        )


def build_graph_elements(
    items: Iterable[GameItem | Mapping[str, Any]],
    constants: LayoutConstants = DEFAULT_CONSTANTS,
    *,
    validate: bool = False,
    material_edges: bool = False,
) -> LayoutResult:
    """One-shot build with a fresh ``LayoutBuilder``."""
    builder = LayoutBuilder(constants, material_edges=material_edges)
    return builder.build(items, validate=validate)
