"""Swim-lane layout engine."""

from swimlane_layout.layout.builder import LayoutBuilder, build_graph_elements
from swimlane_layout.layout.types import (
    SWIM_LANES,
    GraphEdge,
    GraphNode,
    LaneBoundary,
    LayoutResult,
    Point,
    PositionedNode,
    Strategy,
)

__all__ = [
    "SWIM_LANES",
    "GraphEdge",
    "GraphNode",
    "LaneBoundary",
    "LayoutBuilder",
    "LayoutResult",
    "Point",
    "PositionedNode",
    "Strategy",
    "build_graph_elements",
]
