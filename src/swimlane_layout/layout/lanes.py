"""Lane assignment — which swim lane an item is drawn in.

Resolution order:
  1. ``town_<vendor>.csv`` source files map straight to a vendor lane.
  2. The source-file metadata table maps a file to its game feature, and the
     feature to a lane.
  3. An ordered keyword rule table is matched against the item's name, type
     and category tags.
  4. Everything else lands in the General lane.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from swimlane_layout.diagnostics import DiagnosticKind, Diagnostics, Severity
from swimlane_layout.items import GameItem
from swimlane_layout.layout.types import GENERAL_LANE, SWIM_LANES

# ─── Metadata tables ──────────────────────────────────────────────────────────

_TOWN_FILE = re.compile(r"^town_(.+)\.csv$")

TOWN_VENDORS: dict[str, str] = {
    "blacksmith": "Blacksmith",
    "agronomist": "Agronomist",
    "carpenter": "Carpenter",
    "land_steward": "Land Steward",
    "material_trader": "Material Trader",
    "skills_trainer": "Skills Trainer",
}

# Game-data file → game feature.
SOURCE_FILES: dict[str, str] = {
    "crops.csv": "Farm",
    "farm_actions.csv": "Farm",
    "farm_stages.csv": "Farm",
    "helpers.csv": "Farm",
    "helper_roles.csv": "Farm",
    "vendors.csv": "Town",
    "town_blacksmith.csv": "Town",
    "town_carpenter.csv": "Town",
    "town_land_steward.csv": "Town",
    "town_material_trader.csv": "Town",
    "town_skills_trainer.csv": "Town",
    "town_agronomist.csv": "Town",
    "adventures.csv": "Adventure",
    "weapons.csv": "Combat",
    "xp_progression.csv": "Combat",
    "boss_materials.csv": "Combat",
    "armor_base.csv": "Combat",
    "armor_potential.csv": "Combat",
    "armor_effects.csv": "Combat",
    "route_loot_table.csv": "Combat",
    "enemy_types_damage.csv": "Combat",
    "route_wave_composition.csv": "Combat",
    "forge_actions.csv": "Forge",
    "tools.csv": "Forge",
    "mining.csv": "Mining",
    "tower_actions.csv": "Tower",
    "phase_transitions.csv": "General",
}

# Game feature → lane. ``General`` is deliberately absent so items from
# general files still get a chance at the keyword rules.
FEATURE_LANES: dict[str, str] = {
    "Farm": "Farm",
    "Town": "Vendors",
    "Adventure": "Adventure",
    "Combat": "Combat",
    "Forge": "Forge",
    "Mining": "Mining",
    "Tower": "Tower",
}


@dataclass(frozen=True)
class LaneRule:
    """Keyword pattern → lane. Patterns are matched case-insensitively."""

    pattern: re.Pattern[str]
    lane: str

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


def _rule(pattern: str, lane: str) -> LaneRule:
    return LaneRule(re.compile(pattern, re.IGNORECASE), lane)


# First match wins.
LANE_RULES: tuple[LaneRule, ...] = (
    _rule(r"\b(blacksmith|smithing)\b", "Blacksmith"),
    _rule(r"\bagronomist\b", "Agronomist"),
    _rule(r"\bcarpenter\b", "Carpenter"),
    _rule(r"\bland[ _-]?steward\b", "Land Steward"),
    _rule(r"\bmaterial[ _-]?trader\b", "Material Trader"),
    _rule(r"\bskills?[ _-]?trainer\b", "Skills Trainer"),
    _rule(r"\b(farm\w*|crops?|seeds?|plant\w*|harvest\w*|fields?|water\w*|helpers?|gnomes?)\b", "Farm"),
    _rule(r"\b(tower|reach|catch\w*)\b", "Tower"),
    _rule(r"\b(adventures?|routes?|quests?|expeditions?)\b", "Adventure"),
    _rule(r"\b(combat|weapons?|armou?r|boss\w*|enemy|enemies|swords?|shields?|bows?)\b", "Combat"),
    _rule(r"\b(tools?|forge\w*|craft\w*|anvil|hammers?|smelt\w*)\b", "Forge"),
    _rule(r"\b(min(e|es|ing)|ores?|pickaxes?|depths?)\b", "Mining"),
    _rule(r"\b(vendors?|shops?|town|merchants?|traders?|stores?)\b", "Vendors"),
)


def game_feature(source_file: str) -> str:
    """Game feature of a source file, ``General`` when unknown."""
    return SOURCE_FILES.get(source_file, "General")


# ─── Assignment ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class LaneDecision:
    lane: str
    reason: str


def decide_lane(item: GameItem, rules: tuple[LaneRule, ...] = LANE_RULES) -> LaneDecision:
    """Resolve the lane of one item without caching."""
    source = item.source_file or ""

    town = _TOWN_FILE.match(source)
    if town:
        vendor = town.group(1)
        if vendor in TOWN_VENDORS:
            return LaneDecision(TOWN_VENDORS[vendor], f"vendor file {source}")
        return LaneDecision("Vendors", f"unrecognised vendor file {source}")

    feature = SOURCE_FILES.get(source)
    if feature in FEATURE_LANES:
        return LaneDecision(FEATURE_LANES[feature], f"source file {source} belongs to {feature}")

    fields = [("name", item.name), ("type", item.type)]
    fields.extend(("category", tag) for tag in item.categories)
    for rule in rules:
        for field_name, text in fields:
            if text and rule.matches(text):
                return LaneDecision(rule.lane, f"{field_name} {text!r} matches /{rule.pattern.pattern}/")

    return LaneDecision(GENERAL_LANE, "no source file or keyword match")


class LaneAssigner:
    """Memoizing lane resolver for one build.

    The reasoning behind each assignment is recorded once per item id as a
    ``LANE_ASSIGNED`` debug diagnostic. Call ``clear()`` before reusing the
    assigner for a new item set.
    """

    def __init__(
        self,
        diagnostics: Diagnostics | None = None,
        rules: tuple[LaneRule, ...] = LANE_RULES,
        lanes: tuple[str, ...] = SWIM_LANES,
    ) -> None:
        self.diagnostics = diagnostics
        self.rules = rules
        self.lanes = lanes
        self._cache: dict[str, str] = {}

    def assign(self, item: GameItem) -> str:
        cached = self._cache.get(item.id)
        if cached is not None:
            return cached

        decision = decide_lane(item, self.rules)
        lane = decision.lane if decision.lane in self.lanes else GENERAL_LANE
        self._cache[item.id] = lane

        if self.diagnostics is not None:
            self.diagnostics.record(
                DiagnosticKind.LANE_ASSIGNED,
                Severity.DEBUG,
                f"{item.id} → {lane} ({decision.reason})",
                item_id=item.id,
                lane=lane,
            )
        return lane

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)
