"""swimlane_layout — swim-lane layout for idle-game progression graphs."""

from swimlane_layout.api import build_layout, render_json, render_svg
from swimlane_layout.config import DEFAULT_CONSTANTS, LayoutConstants
from swimlane_layout.errors import ItemDataError, LayoutConfigError, LayoutError
from swimlane_layout.items import GameItem, load_items
from swimlane_layout.layout import LayoutBuilder, LayoutResult, build_graph_elements

__all__ = [
    "DEFAULT_CONSTANTS",
    "GameItem",
    "ItemDataError",
    "LayoutBuilder",
    "LayoutConfigError",
    "LayoutConstants",
    "LayoutError",
    "LayoutResult",
    "build_graph_elements",
    "build_layout",
    "load_items",
    "render_json",
    "render_svg",
]
