"""Renderers for laid-out swim-lane graphs."""

from swimlane_layout.renderers.base import Renderer
from swimlane_layout.renderers.json import JsonRenderer
from swimlane_layout.renderers.svg import SvgRenderer

__all__ = ["JsonRenderer", "Renderer", "SvgRenderer"]
