"""Layout IR — the records produced by one layout build.

All of these are created fresh by ``LayoutBuilder.build`` and are not shared
between builds. ``LayoutResult.to_dict`` is the renderer-facing form.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from swimlane_layout.diagnostics import DiagnosticEvent
from swimlane_layout.items import GameItem

# ─── Lanes ────────────────────────────────────────────────────────────────────

# Vertical stacking order of the diagram, top to bottom.
SWIM_LANES: tuple[str, ...] = (
    "Farm",
    "Vendors",
    "Blacksmith",
    "Agronomist",
    "Carpenter",
    "Land Steward",
    "Material Trader",
    "Skills Trainer",
    "Adventure",
    "Combat",
    "Forge",
    "Mining",
    "Tower",
    "General",
)

GENERAL_LANE = "General"


def slugify(text: str) -> str:
    """``"Land Steward"`` → ``"land-steward"`` (used for CSS class names)."""
    return re.sub(r"\s+", "-", text.strip().lower())


# ─── Geometry ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Point:
    """A 2D point in pixel coordinates; y grows downwards."""

    x: float
    y: float

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class LaneBoundary:
    """The absolute vertical band owned by one lane.

    ``usable_height`` excludes the top and bottom lane buffer.
    """

    lane: str
    start_y: float
    end_y: float
    center_y: float
    height: float
    usable_height: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "lane": self.lane,
            "startY": self.start_y,
            "endY": self.end_y,
            "centerY": self.center_y,
            "height": self.height,
            "usableHeight": self.usable_height,
        }


# ─── Overcrowding ─────────────────────────────────────────────────────────────


class Strategy(Enum):
    """Placement strategy for one lane/tier group, in escalation order."""

    NONE = "none"
    COMPRESS = "compress"
    REDISTRIBUTE = "redistribute"
    EMERGENCY = "emergency"


class CrowdingSeverity(Enum):
    NONE = "none"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"
    CRITICAL = "critical"


@dataclass(frozen=True)
class OvercrowdingAnalysis:
    """Required-vs-available vertical space for one lane/tier group."""

    lane: str
    tier: int | None
    node_count: int
    required_space: float
    available_space: float
    ratio: float
    severity: CrowdingSeverity
    recommended_action: Strategy


@dataclass
class ErrorRecoveryContext:
    """Audit trail for a node whose position had to be corrected."""

    node_id: str
    original_position: Point
    lane: str
    tier: int | None
    boundary: LaneBoundary | None
    strategy: str
    reason: str
    applied_adjustments: list[str] = field(default_factory=list)
    corrected_position: Point | None = None


# ─── Nodes and edges ──────────────────────────────────────────────────────────


@dataclass
class PositionedNode:
    """An item with its resolved lane, tier and position."""

    item: GameItem
    position: Point
    lane: str
    tier: int
    within_bounds: bool = True
    recovery: ErrorRecoveryContext | None = None

    @property
    def id(self) -> str:
        return self.item.id


@dataclass(frozen=True)
class GraphNode:
    """A renderer-facing node."""

    id: str
    label: str
    lane: str
    tier: int
    position: Point
    category: str
    feature: str
    within_bounds: bool
    item: GameItem

    @property
    def classes(self) -> str:
        return " ".join(
            [
                "game-node",
                f"lane-{slugify(self.lane)}",
                f"tier-{self.tier}",
                f"category-{slugify(self.category)}",
                f"feature-{slugify(self.feature)}",
            ]
        )

    def to_dict(self) -> dict[str, Any]:
        item = self.item
        return {
            "data": {
                "id": self.id,
                "label": self.label,
                "swimLane": self.lane,
                "tier": self.tier,
                "category": self.category,
                "goldCost": item.gold_cost,
                "energyCost": item.energy_cost,
                "level": item.level,
                "prerequisites": list(item.prerequisites),
                "withinBounds": self.within_bounds,
                "fullData": item.to_dict(),
            },
            "position": self.position.to_dict(),
            "classes": self.classes,
        }


class EdgeKind(Enum):
    PREREQUISITE = "prerequisite"
    MATERIAL = "material"


@dataclass(frozen=True)
class GraphEdge:
    """A directed edge source → target."""

    id: str
    source: str
    target: str
    kind: EdgeKind = EdgeKind.PREREQUISITE
    material: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "type": self.kind.value,
        }
        if self.material is not None:
            data["material"] = self.material
        return {"data": data, "classes": f"edge-{self.kind.value}"}


# ─── Build result ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ErrorRecoveryReport:
    """Summary of the errors and recoveries of one build."""

    total_errors: int
    total_recoveries: int
    errors_by_severity: dict[str, int]
    recoveries_by_strategy: dict[str, int]
    summary: str


@dataclass
class LayoutResult:
    """Everything one layout build produces."""

    nodes: list[GraphNode]
    edges: list[GraphEdge]
    lane_heights: dict[str, float]
    lane_boundaries: dict[str, LaneBoundary]
    positioned: list[PositionedNode] = field(default_factory=list)
    diagnostics: tuple[DiagnosticEvent, ...] = ()
    recovery_report: ErrorRecoveryReport | None = None
    recovery_contexts: dict[str, ErrorRecoveryContext] = field(default_factory=dict)
    validation: Any = None  # swimlane_layout.validation.ValidationReport
    duration_ms: float = 0.0

    def node(self, node_id: str) -> GraphNode | None:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "laneHeights": dict(self.lane_heights),
            "laneBoundaries": {lane: b.to_dict() for lane, b in self.lane_boundaries.items()},
        }
        if self.validation is not None:
            out["validationResults"] = self.validation.to_dict()
        return out
