"""Exception types.

The layout engine never raises for data-quality problems in the item graph
(dangling prerequisites, cycles, overcrowded lanes); those are recovered and
reported through :mod:`swimlane_layout.diagnostics`. Exceptions are reserved
for inputs that make a build meaningless.
"""

from __future__ import annotations


class LayoutError(Exception):
    """Base class for all swimlane_layout errors."""


class LayoutConfigError(LayoutError, ValueError):
    """Layout constants are missing, non-positive or mutually inconsistent."""


class ItemDataError(LayoutError, ValueError):
    """An item record cannot be turned into a GameItem at all."""
