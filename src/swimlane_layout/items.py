"""Game items — the immutable input of the layout engine.

An item is one action or unlock from the game-balance data. Only its id,
prerequisites and classification fields influence the layout; the numeric
cost fields are carried through to the output for the renderer.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from swimlane_layout.errors import ItemDataError

# Item categories that take part in the upgrade tree. ``Data`` rows (crops,
# weapons, loot tables, ...) are reference data and are never drawn.
TREE_CATEGORIES: frozenset[str] = frozenset({"Actions", "Unlocks"})

# camelCase keys used by the game-data export → GameItem field names.
_KEY_ALIASES: dict[str, str] = {
    "sourceFile": "source_file",
    "goldCost": "gold_cost",
    "energyCost": "energy_cost",
    "materialsCost": "materials_cost",
    "materialsGain": "materials_gain",
}


@dataclass(frozen=True)
class GameItem:
    """One row of game-balance data that may appear as a node."""

    id: str
    name: str = ""
    category: str = "Actions"
    source_file: str = ""
    prerequisites: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    type: str = ""
    gold_cost: float | None = None
    energy_cost: float | None = None
    level: int | None = None
    materials_cost: Mapping[str, float] = field(default_factory=dict, hash=False, compare=False)
    materials_gain: Mapping[str, float] = field(default_factory=dict, hash=False, compare=False)

    @property
    def label(self) -> str:
        return self.name or self.id

    @property
    def is_tree_item(self) -> bool:
        return self.category in TREE_CATEGORIES

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> GameItem:
        """Build a GameItem from a camelCase or snake_case mapping.

        Unknown keys are ignored. ``prerequisites`` and ``categories`` may be
        lists, tuples, or a single semicolon-separated string.

        Raises:
            ItemDataError: if the record has no usable ``id``.
        """
        data: dict[str, Any] = {}
        for key, value in raw.items():
            data[_KEY_ALIASES.get(key, key)] = value

        item_id = data.get("id")
        if item_id is None or str(item_id).strip() == "":
            raise ItemDataError(f"item record has no id: {dict(raw)!r}")

        return cls(
            id=str(item_id),
            name=str(data.get("name") or ""),
            category=str(data.get("category") or "Actions"),
            source_file=str(data.get("source_file") or ""),
            prerequisites=_as_tuple(data.get("prerequisites")),
            categories=_as_tuple(data.get("categories")),
            type=str(data.get("type") or ""),
            gold_cost=_as_number(data.get("gold_cost")),
            energy_cost=_as_number(data.get("energy_cost")),
            level=int(data["level"]) if data.get("level") not in (None, "") else None,
            materials_cost=dict(data.get("materials_cost") or {}),
            materials_gain=dict(data.get("materials_gain") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize back to the camelCase shape used by the game-data export."""
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "sourceFile": self.source_file,
            "prerequisites": list(self.prerequisites),
            "categories": list(self.categories),
            "type": self.type,
            "goldCost": self.gold_cost,
            "energyCost": self.energy_cost,
            "level": self.level,
            "materialsCost": dict(self.materials_cost),
            "materialsGain": dict(self.materials_gain),
        }


def _as_tuple(value: Any) -> tuple[str, ...]:
    if value is None or value == "":
        return ()
    if isinstance(value, str):
        return tuple(part.strip() for part in value.split(";") if part.strip())
    return tuple(str(v) for v in value if str(v).strip())


def _as_number(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


def coerce_items(items: Iterable[GameItem | Mapping[str, Any]]) -> list[GameItem]:
    """Accept GameItems or raw mappings and return a list of GameItems."""
    return [item if isinstance(item, GameItem) else GameItem.from_dict(item) for item in items]


def tree_items(items: Iterable[GameItem]) -> list[GameItem]:
    """Filter to the Actions/Unlocks items that appear in the upgrade tree."""
    return [item for item in items if item.is_tree_item]


def load_items(path: str | Path) -> list[GameItem]:
    """Load items from a JSON file holding a list, or ``{"items": [...]}``."""
    with open(path, encoding="utf-8") as f:
        payload = json.load(f)
    if isinstance(payload, Mapping):
        payload = payload.get("items", [])
    if not isinstance(payload, list):
        raise ItemDataError(f"{path}: expected a list of items")
    return coerce_items(payload)
