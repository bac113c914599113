"""Tier assignment — topological depth of every item.

An item's tier is 0 when it has no resolvable prerequisites, otherwise
``1 + max(tier(prereq))``. Tiers become the horizontal columns of the
diagram, so every other component depends on them being stable.

Two kinds of prerequisite references are ignored rather than followed:
  - dangling ids (not present in the item set), and
  - references that close a cycle (both ends in the same strongly connected
    component, or an item listing itself).

Every member of a pure cycle therefore resolves to tier 0. This under-reports
depth for cyclic data; the cycle is reported, not rejected.
"""

from __future__ import annotations

from collections.abc import Iterable

import networkx as nx

from swimlane_layout.diagnostics import DiagnosticKind, Diagnostics, Severity
from swimlane_layout.items import GameItem

# ─── Prerequisite graph ───────────────────────────────────────────────────────


def build_prerequisite_graph(
    items: Iterable[GameItem],
    diagnostics: Diagnostics | None = None,
) -> nx.DiGraph:
    """Build a DiGraph with an edge prereq → item for every resolvable reference.

    Dangling prerequisite ids are skipped (and reported when ``diagnostics``
    is given). Node order follows item order.
    """
    items = list(items)
    known = {item.id for item in items}

    graph: nx.DiGraph = nx.DiGraph()
    for item in items:
        graph.add_node(item.id, item=item)

    for item in items:
        for prereq_id in item.prerequisites:
            if prereq_id in known:
                graph.add_edge(prereq_id, item.id)
            elif diagnostics is not None:
                diagnostics.record(
                    DiagnosticKind.DANGLING_PREREQUISITE,
                    Severity.WARNING,
                    f"{item.id} requires unknown item {prereq_id!r}; treated as tier 0",
                    item_id=item.id,
                    prerequisite=prereq_id,
                )
    return graph


def cyclic_components(graph: nx.DiGraph) -> list[set[str]]:
    """Strongly connected components that form a cycle (incl. self-loops)."""
    cycles: list[set[str]] = []
    for component in nx.strongly_connected_components(graph):
        if len(component) > 1:
            cycles.append(set(component))
        else:
            (only,) = component
            if graph.has_edge(only, only):
                cycles.append({only})
    return cycles


# ─── Tier calculator ──────────────────────────────────────────────────────────


class TierCalculator:
    """Per-build memo of item tiers.

    Tiers are computed once for the whole item set on the condensation of the
    prerequisite graph (each strongly connected component collapsed into one
    node), which is a DAG. One pass over a topological order of that DAG ranks
    every component after all of its predecessors, so the cost is linear in
    items plus references however deep the chains run.

    Attributes:
        tiers: Maps item id → tier.
        tier_count: Number of tier columns (0 for an empty item set).
        cycles: The cyclic components that were cut.
    """

    def __init__(self, items: Iterable[GameItem], diagnostics: Diagnostics | None = None) -> None:
        self.diagnostics = diagnostics
        self.graph = build_prerequisite_graph(items, diagnostics)
        self.cycles = cyclic_components(self.graph)
        self.tiers = self._assign()
        self.tier_count = (max(self.tiers.values()) + 1) if self.tiers else 0

        if diagnostics is not None:
            for component in self.cycles:
                members = sorted(component)
                diagnostics.record(
                    DiagnosticKind.CYCLE_DETECTED,
                    Severity.WARNING,
                    f"prerequisite cycle between {', '.join(members)}; cyclic references ignored",
                    item_id=members[0],
                    members=members,
                )

    def _assign(self) -> dict[str, int]:
        if self.graph.number_of_nodes() == 0:
            return {}

        dag = nx.condensation(self.graph)
        mapping: dict[str, int] = dag.graph["mapping"]

        ranks: dict[int, int] = {}
        for component in nx.topological_sort(dag):
            ranks[component] = max((ranks[pred] + 1 for pred in dag.predecessors(component)), default=0)

        return {item_id: ranks[mapping[item_id]] for item_id in self.graph.nodes}

    def tier(self, item: GameItem | str) -> int:
        """Tier of an item (or item id). Unknown ids are tier 0."""
        item_id = item if isinstance(item, str) else item.id
        return self.tiers.get(item_id, 0)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self.tiers


def calculate_tier(item: GameItem, all_items: Iterable[GameItem]) -> int:
    """Tier of ``item`` within ``all_items``.

    Pure convenience wrapper; callers placing many items should build one
    ``TierCalculator`` and reuse it. If ``item`` is not part of
    ``all_items`` it is evaluated as if it were appended to it.
    """
    pool = list(all_items)
    if all(other.id != item.id for other in pool):
        pool.append(item)
    return TierCalculator(pool).tier(item.id)
