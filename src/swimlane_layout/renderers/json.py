"""JSON renderer — the ``{nodes, edges, laneHeights, laneBoundaries}`` document."""

from __future__ import annotations

import json

from swimlane_layout.layout.types import LayoutResult


class JsonRenderer:
    """Serializes ``LayoutResult.to_dict()`` for a graph front end."""

    extension = ".json"

    def __init__(self, indent: int | None = 2) -> None:
        self.indent = indent

    def render(self, result: LayoutResult) -> str:
        return json.dumps(result.to_dict(), indent=self.indent)
