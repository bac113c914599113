"""Public API — build a layout, or build and render it in one call."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from swimlane_layout.config import DEFAULT_CONSTANTS, LayoutConstants
from swimlane_layout.items import GameItem
from swimlane_layout.layout.builder import LayoutBuilder
from swimlane_layout.layout.types import LayoutResult
from swimlane_layout.renderers.json import JsonRenderer
from swimlane_layout.renderers.svg import SvgRenderer


def build_layout(
    items: Iterable[GameItem | Mapping[str, Any]],
    constants: LayoutConstants = DEFAULT_CONSTANTS,
    *,
    validate: bool = False,
    material_edges: bool = False,
) -> LayoutResult:
    """Lay out game items into swim lanes and tier columns.

    Args:
        items: GameItems or raw item mappings (camelCase or snake_case).
        constants: Layout geometry.
        validate: Attach a ValidationReport to the result.
        material_edges: Also emit producer → consumer material edges.

    Returns:
        The LayoutResult; ``result.to_dict()`` is the renderer-facing form.
    """
    builder = LayoutBuilder(constants, material_edges=material_edges)
    return builder.build(items, validate=validate)


def render_svg(
    items: Iterable[GameItem | Mapping[str, Any]] | LayoutResult,
    constants: LayoutConstants = DEFAULT_CONSTANTS,
) -> str:
    """Render items (or an already built layout) as an SVG swim-lane diagram."""
    result = items if isinstance(items, LayoutResult) else build_layout(items, constants)
    return SvgRenderer(constants).render(result)


def render_json(
    items: Iterable[GameItem | Mapping[str, Any]] | LayoutResult,
    constants: LayoutConstants = DEFAULT_CONSTANTS,
    indent: int | None = 2,
) -> str:
    """Render items (or an already built layout) as the JSON graph document."""
    result = items if isinstance(items, LayoutResult) else build_layout(items, constants)
    return JsonRenderer(indent).render(result)
