"""Tests for items.py — item records and loading."""

import json
from pathlib import Path

import pytest

from swimlane_layout.errors import ItemDataError
from swimlane_layout.items import GameItem, coerce_items, load_items, tree_items


class TestFromDict:
    def test_camel_case_keys(self):
        item = GameItem.from_dict(
            {
                "id": "buy_hoe",
                "name": "Buy Hoe",
                "category": "Unlocks",
                "sourceFile": "town_blacksmith.csv",
                "goldCost": "25",
                "level": "2",
                "materialsCost": {"wood": 1},
            }
        )
        assert item.source_file == "town_blacksmith.csv"
        assert item.gold_cost == 25.0
        assert item.level == 2
        assert item.materials_cost == {"wood": 1}

    def test_semicolon_prerequisites(self):
        item = GameItem.from_dict({"id": "x", "prerequisites": "a; b;;c"})
        assert item.prerequisites == ("a", "b", "c")

    def test_defaults(self):
        item = GameItem.from_dict({"id": 7})
        assert item.id == "7"
        assert item.category == "Actions"
        assert item.prerequisites == ()
        assert item.gold_cost is None
        assert item.label == "7"

    @pytest.mark.parametrize("raw", [{}, {"id": ""}, {"id": "  "}, {"name": "x"}])
    def test_missing_id(self, raw):
        with pytest.raises(ItemDataError):
            GameItem.from_dict(raw)

    def test_to_dict_uses_camel_case(self):
        data = GameItem(id="a", source_file="mining.csv").to_dict()
        assert data["sourceFile"] == "mining.csv"
        assert data["prerequisites"] == []


class TestFiltering:
    def test_tree_items(self):
        items = [
            GameItem(id="a", category="Actions"),
            GameItem(id="b", category="Unlocks"),
            GameItem(id="c", category="Data"),
        ]
        assert [i.id for i in tree_items(items)] == ["a", "b"]

    def test_coerce_mixed(self):
        items = coerce_items([GameItem(id="a"), {"id": "b"}])
        assert all(isinstance(i, GameItem) for i in items)


class TestLoadItems:
    def test_list(self, tmp_path: Path):
        path = tmp_path / "items.json"
        path.write_text(json.dumps([{"id": "a"}, {"id": "b"}]), encoding="utf-8")
        assert [i.id for i in load_items(path)] == ["a", "b"]

    def test_items_key(self, tmp_path: Path):
        path = tmp_path / "items.json"
        path.write_text(json.dumps({"items": [{"id": "a"}]}), encoding="utf-8")
        assert [i.id for i in load_items(path)] == ["a"]

    def test_not_a_list(self, tmp_path: Path):
        path = tmp_path / "items.json"
        path.write_text('"nope"', encoding="utf-8")
        with pytest.raises(ItemDataError):
            load_items(path)
