"""Edge builder — prerequisite and material-flow edges.

A prerequisite edge is only emitted when it points strictly rightwards
(``tier(source) < tier(target)``); anything else would be drawn as a
backwards arrow and is dropped with a diagnostic.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from swimlane_layout.diagnostics import DiagnosticKind, Diagnostics, Severity
from swimlane_layout.items import GameItem
from swimlane_layout.layout.types import EdgeKind, GraphEdge


def prerequisite_edge_id(source: str, target: str) -> str:
    return f"prereq-{source}-to-{target}"


def material_edge_id(producer: str, consumer: str) -> str:
    return f"mat-{producer}-to-{consumer}"


def build_prerequisite_edges(
    items: Iterable[GameItem],
    tiers: Mapping[str, int],
    diagnostics: Diagnostics | None = None,
) -> list[GraphEdge]:
    """One edge prerequisite → item per valid reference.

    Args:
        items: Items that are nodes of the diagram.
        tiers: Item id → tier for at least every item in ``items``.
        diagnostics: Receives ``INVALID_EDGE`` warnings for dropped edges.

    Dangling prerequisites (ids that are not nodes) produce no edge; they are
    reported by the tier calculator, not here.
    """
    edges: list[GraphEdge] = []
    seen: set[str] = set()
    for item in items:
        for prereq_id in item.prerequisites:
            if prereq_id not in tiers or item.id not in tiers:
                continue
            source_tier, target_tier = tiers[prereq_id], tiers[item.id]
            if source_tier >= target_tier:
                if diagnostics is not None:
                    diagnostics.record(
                        DiagnosticKind.INVALID_EDGE,
                        Severity.WARNING,
                        f"dropped edge {prereq_id} → {item.id}: source tier {source_tier} "
                        f"is not left of target tier {target_tier}",
                        item_id=item.id,
                        tier=target_tier,
                        source=prereq_id,
                    )
                continue
            edge_id = prerequisite_edge_id(prereq_id, item.id)
            if edge_id in seen:
                continue
            seen.add(edge_id)
            edges.append(GraphEdge(id=edge_id, source=prereq_id, target=item.id))
    return edges


def build_material_edges(items: Iterable[GameItem], tiers: Mapping[str, int]) -> list[GraphEdge]:
    """Edges from items that yield a material to later items that consume it.

    Only rightward pairs are kept, so material edges obey the same geometry
    rule as prerequisite edges. Each producer/consumer pair yields at most one
    edge, labelled with the first shared material in alphabetical order.
    """
    items = [item for item in items if item.id in tiers]
    producers: dict[str, list[GameItem]] = {}
    for item in items:
        for material in item.materials_gain:
            producers.setdefault(material, []).append(item)

    edges: list[GraphEdge] = []
    seen: set[str] = set()
    for consumer in items:
        for material in sorted(consumer.materials_cost):
            for producer in producers.get(material, []):
                if producer.id == consumer.id or tiers[producer.id] >= tiers[consumer.id]:
                    continue
                edge_id = material_edge_id(producer.id, consumer.id)
                if edge_id in seen:
                    continue
                seen.add(edge_id)
                edges.append(
                    GraphEdge(
                        id=edge_id,
                        source=producer.id,
                        target=consumer.id,
                        kind=EdgeKind.MATERIAL,
                        material=material,
                    )
                )
    return edges
