"""SVG renderer — renders a LayoutResult to an SVG string."""

from __future__ import annotations

from swimlane_layout.config import DEFAULT_CONSTANTS, LayoutConstants
from swimlane_layout.layout.sizing import total_height
from swimlane_layout.layout.types import EdgeKind, GraphEdge, GraphNode, LaneBoundary, LayoutResult

# ─── Constants ──────────────────────────────────────────────────────────────

FONT_SIZE = 12
FONT_FAMILY = "sans-serif"
PADDING = 20  # right-hand canvas padding in pixels
LABEL_X = 12  # lane label inset
MAX_LABEL_CHARS = 20

_LANE_FILLS = ("#f7f7f7", "#ececec")
_NODE_STROKE = 'fill="white" stroke="black" stroke-width="1.5"'
_RECOVERED_STROKE = 'fill="#fff4f4" stroke="#c0392b" stroke-width="2"'

_EDGE_STYLES: dict[EdgeKind, str] = {
    EdgeKind.PREREQUISITE: 'stroke="black" stroke-width="1.5"',
    EdgeKind.MATERIAL: 'stroke="#2e86c1" stroke-width="1" stroke-dasharray="6 4"',
}


def _escape(s: str) -> str:
    return s.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace('"', "&quot;")


def _font(size: int = FONT_SIZE) -> str:
    return f'font-family="{FONT_FAMILY}" font-size="{size}"'


def _fmt(v: float) -> str:
    """Compact, deterministic number formatting."""
    return f"{v:.1f}".rstrip("0").rstrip(".")


def _truncate(label: str, limit: int = MAX_LABEL_CHARS) -> str:
    return label if len(label) <= limit else label[: limit - 1] + "…"


# ─── Lane Rendering ─────────────────────────────────────────────────────────


def _render_lane(index: int, boundary: LaneBoundary, width: float) -> str:
    fill = _LANE_FILLS[index % len(_LANE_FILLS)]
    y, h = _fmt(boundary.start_y), _fmt(boundary.height)
    font = _font(FONT_SIZE + 1)
    return "\n".join(
        [
            f'<rect class="lane" x="0" y="{y}" width="{_fmt(width)}" height="{h}" fill="{fill}"/>',
            f'<text x="{LABEL_X}" y="{_fmt(boundary.center_y)}" dominant-baseline="central" '
            f'{font} font-weight="bold" fill="#444">{_escape(boundary.lane)}</text>',
        ]
    )


def _render_tier_headers(tier_count: int, constants: LayoutConstants) -> str:
    font = _font(FONT_SIZE - 2)
    y = _fmt(constants.lane_padding / 2)
    parts = []
    for tier in range(tier_count):
        x = constants.lane_start_x + tier * constants.tier_width + constants.node_half_width
        parts.append(f'<text x="{_fmt(x)}" y="{y}" text-anchor="middle" {font} fill="#888">Tier {tier}</text>')
    return "\n".join(parts)


# ─── Node Rendering ─────────────────────────────────────────────────────────


def _render_node(node: GraphNode, constants: LayoutConstants) -> str:
    w, h = constants.node_width, constants.node_height
    x = node.position.x - w / 2
    y = node.position.y - h / 2
    stroke = _NODE_STROKE if node.within_bounds else _RECOVERED_STROKE
    label = _escape(_truncate(node.label))
    return "\n".join(
        [
            f'<g id="node-{_escape(node.id)}" class="{node.classes}">',
            f'  <rect x="{_fmt(x)}" y="{_fmt(y)}" width="{_fmt(w)}" height="{_fmt(h)}" rx="6" {stroke}/>',
            f'  <text x="{_fmt(node.position.x)}" y="{_fmt(node.position.y)}" dominant-baseline="central" '
            f'text-anchor="middle" {_font()}>{label}</text>',
            "</g>",
        ]
    )


# ─── Edge Rendering ─────────────────────────────────────────────────────────


def _render_edge(edge: GraphEdge, nodes: dict[str, GraphNode], constants: LayoutConstants) -> str:
    source, target = nodes.get(edge.source), nodes.get(edge.target)
    if source is None or target is None:
        return ""
    half = constants.node_half_width
    x1, y1 = source.position.x + half, source.position.y
    x2, y2 = target.position.x - half, target.position.y
    mid = (x1 + x2) / 2
    # Orthogonal route: out, across at the midpoint, in.
    pts = " ".join(f"{_fmt(px)},{_fmt(py)}" for px, py in ((x1, y1), (mid, y1), (mid, y2), (x2, y2)))
    style = _EDGE_STYLES[edge.kind]
    return (
        f'<polyline id="{_escape(edge.id)}" class="edge-{edge.kind.value}" points="{pts}" '
        f'fill="none" {style} marker-end="url(#arrowhead)"/>'
    )


# ─── Public Renderer ────────────────────────────────────────────────────────


class SvgRenderer:
    """SVG renderer — consumes a LayoutResult, produces an SVG string.

    Node and lane geometry come straight from the layout; the renderer only
    needs the same ``LayoutConstants`` the layout was built with.
    """

    extension = ".svg"

    def __init__(self, constants: LayoutConstants = DEFAULT_CONSTANTS) -> None:
        self.constants = constants

    def render(self, result: LayoutResult) -> str:
        c = self.constants
        tier_count = max((n.tier for n in result.nodes), default=-1) + 1

        svg_w = c.lane_start_x + max(tier_count, 1) * c.tier_width + PADDING
        svg_h = total_height(result.lane_boundaries, c)
        w, h = _fmt(svg_w), _fmt(svg_h)

        parts = [
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{w}" height="{h}" viewBox="0 0 {w} {h}">',
            "<defs>",
            '  <marker id="arrowhead" markerWidth="10" markerHeight="7" refX="10" refY="3.5" orient="auto">',
            '    <polygon points="0 0, 10 3.5, 0 7" fill="black"/>',
            "  </marker>",
            "</defs>",
            f'<rect width="{w}" height="{h}" fill="white"/>',
        ]

        for index, boundary in enumerate(result.lane_boundaries.values()):
            parts.append(_render_lane(index, boundary, svg_w))

        if tier_count:
            parts.append(_render_tier_headers(tier_count, c))

        # Edges (behind nodes), sorted for deterministic output
        by_id = {n.id: n for n in result.nodes}
        for edge in sorted(result.edges, key=lambda e: (e.source, e.target, e.kind.value)):
            rendered = _render_edge(edge, by_id, c)
            if rendered:
                parts.append(rendered)

        # Nodes (on top)
        for node in result.nodes:
            parts.append(_render_node(node, c))

        parts.append("</svg>")
        return "\n".join(parts)
