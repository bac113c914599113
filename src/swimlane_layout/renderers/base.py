"""Base renderer protocol."""

from __future__ import annotations

from typing import Protocol

from swimlane_layout.layout.types import LayoutResult


class Renderer(Protocol):
    """Protocol that all renderers must implement.

    ``extension`` is the file suffix the CLI uses for the rendered output.
    """

    extension: str

    def render(self, result: LayoutResult) -> str:
        """Render a laid-out swim-lane graph to an output string."""
        ...
