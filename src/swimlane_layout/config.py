"""Layout constants shared by the layout engine and any renderer.

Every component (height estimation, boundary calculation, placement,
validation, SVG rendering) reads its geometry from one ``LayoutConstants``
instance. Values are validated on construction so a bad configuration fails
before the first item is placed.

Constants can be loaded from a TOML file with a ``[layout]`` table::

    [layout]
    node_height = 48
    tier_width = 200
"""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

from swimlane_layout.errors import LayoutConfigError

# ─── Constants ────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class LayoutConstants:
    """Pixel geometry of the swim-lane diagram.

    Attributes:
        node_width: Rendered node width.
        node_height: Rendered node height.
        node_padding: Ideal vertical gap between two nodes of one lane/tier.
        lane_padding: Gap between two adjacent lanes.
        lane_buffer: Reserved space at the top and bottom inside each lane.
        min_lane_height: Floor for every lane height.
        tier_width: Horizontal distance between two tier columns.
        min_node_spacing: Smallest gap compression may shrink to.
        emergency_spacing: Gap used by emergency placement (may be 0).
        lane_start_x: Horizontal space reserved for lane labels.
        boundary_tolerance: Slack allowed when checking boundaries.
        performance_budget_ms: Advisory wall-clock budget for one build.
    """

    node_width: float = 140
    node_height: float = 40
    node_padding: float = 15
    lane_padding: float = 25
    lane_buffer: float = 20
    min_lane_height: float = 80
    tier_width: float = 180
    min_node_spacing: float = 5
    emergency_spacing: float = 0
    lane_start_x: float = 200
    boundary_tolerance: float = 2
    performance_budget_ms: float = 300

    def __post_init__(self) -> None:
        positive = (
            "node_width",
            "node_height",
            "min_lane_height",
            "tier_width",
            "performance_budget_ms",
        )
        non_negative = (
            "node_padding",
            "lane_padding",
            "lane_buffer",
            "min_node_spacing",
            "emergency_spacing",
            "lane_start_x",
            "boundary_tolerance",
        )
        for name in positive:
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
                raise LayoutConfigError(f"{name} must be a positive number, got {value!r}")
        for name in non_negative:
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value < 0:
                raise LayoutConfigError(f"{name} must be a non-negative number, got {value!r}")

        if self.tier_width < self.node_width:
            raise LayoutConfigError(
                f"tier_width ({self.tier_width}) must be >= node_width ({self.node_width}) "
                "or nodes in adjacent tiers overlap"
            )
        if self.min_node_spacing > self.node_padding:
            raise LayoutConfigError(
                f"min_node_spacing ({self.min_node_spacing}) must not exceed node_padding ({self.node_padding})"
            )
        if self.emergency_spacing > self.min_node_spacing:
            raise LayoutConfigError(
                f"emergency_spacing ({self.emergency_spacing}) must not exceed "
                f"min_node_spacing ({self.min_node_spacing})"
            )
        if self.min_lane_height < self.node_height + 2 * self.lane_buffer:
            raise LayoutConfigError(
                f"min_lane_height ({self.min_lane_height}) cannot hold a single node: "
                f"needs node_height + 2 * lane_buffer = {self.node_height + 2 * self.lane_buffer}"
            )

    # ── Derived values ──────────────────────────────────────────────────────

    @property
    def node_half_width(self) -> float:
        return self.node_width / 2

    @property
    def node_half_height(self) -> float:
        return self.node_height / 2

    @property
    def min_valid_x(self) -> float:
        """Leftmost node centre that does not overlap the lane labels."""
        return self.lane_start_x + self.node_half_width

    # ── Loading ─────────────────────────────────────────────────────────────

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> LayoutConstants:
        """Build constants from a mapping, overriding only the given keys.

        Raises:
            LayoutConfigError: on unknown keys or invalid values.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise LayoutConfigError(f"unknown layout constant(s): {', '.join(unknown)}")
        return cls(**dict(values))

    @classmethod
    def from_toml(cls, path: str | Path) -> LayoutConstants:
        """Load constants from the ``[layout]`` table of a TOML file."""
        with open(path, "rb") as f:
            data = tomllib.load(f)
        table = data.get("layout", {})
        if not isinstance(table, dict):
            raise LayoutConfigError(f"[layout] in {path} must be a table")
        return cls.from_mapping(table)

    def as_dict(self) -> dict[str, float]:
        return asdict(self)


DEFAULT_CONSTANTS = LayoutConstants()
