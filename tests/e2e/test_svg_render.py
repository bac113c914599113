"""End-to-end tests: example item files → layout → SVG / JSON documents."""

import json
import xml.etree.ElementTree as ET
from pathlib import Path

import pytest

from swimlane_layout.api import build_layout, render_json, render_svg
from swimlane_layout.items import load_items
from swimlane_layout.layout.types import SWIM_LANES

EXAMPLES_DIR = Path(__file__).parent.parent.parent / "examples"
SVG_NS = "{http://www.w3.org/2000/svg}"

EXAMPLE_FILES = sorted(EXAMPLES_DIR.glob("*.json"))


def parse_svg(text: str) -> ET.Element:
    return ET.fromstring(text)


@pytest.mark.parametrize("path", EXAMPLE_FILES, ids=[p.stem for p in EXAMPLE_FILES])
class TestExamples:
    def test_svg_is_well_formed(self, path: Path) -> None:
        """Every node and edge of the layout appears once in the SVG."""
        result = build_layout(load_items(path))
        root = parse_svg(render_svg(result))

        groups = [g for g in root.iter(f"{SVG_NS}g") if "game-node" in g.get("class", "")]
        assert len(groups) == len(result.nodes)
        assert {g.get("id") for g in groups} == {f"node-{n.id}" for n in result.nodes}

        polylines = list(root.iter(f"{SVG_NS}polyline"))
        assert len(polylines) == len(result.edges)

        lanes = [r for r in root.iter(f"{SVG_NS}rect") if r.get("class") == "lane"]
        assert len(lanes) == len(SWIM_LANES)

    def test_svg_is_deterministic(self, path: Path) -> None:
        items = load_items(path)
        assert render_svg(items) == render_svg(items)

    def test_json_document(self, path: Path) -> None:
        items = load_items(path)
        document = json.loads(render_json(items))
        assert set(document) == {"nodes", "edges", "laneHeights", "laneBoundaries"}
        node_ids = {n["data"]["id"] for n in document["nodes"]}
        for edge in document["edges"]:
            assert edge["data"]["source"] in node_ids
            assert edge["data"]["target"] in node_ids

    def test_layout_validates(self, path: Path) -> None:
        result = build_layout(load_items(path), validate=True)
        assert result.validation.passed, [
            issue.message for r in result.validation.results for issue in r.issues
        ]


# ─── Dataset specifics ────────────────────────────────────────────────────────


def test_basic_progression() -> None:
    result = build_layout(load_items(EXAMPLES_DIR / "basic_progression.json"))
    assert len(result.nodes) == 14
    assert len(result.edges) == 12
    assert result.node("tower_reach_1").tier == 4
    assert result.node("storage_shed").lane == "Carpenter"


def test_cyclic_and_dangling() -> None:
    result = build_layout(load_items(EXAMPLES_DIR / "cyclic_and_dangling.json"))
    tiers = {n.id: n.tier for n in result.nodes}
    assert tiers["gnome_hut"] == tiers["gnome_bell"] == 0
    assert tiers["gnome_roles"] == 1
    assert tiers["old_map"] == 0
    assert tiers["self_taught"] == 0
    assert [e.id for e in result.edges] == ["prereq-gnome_hut-to-gnome_roles"]
    assert result.node("mystery_crate").lane == "General"


def test_crowded_farm() -> None:
    result = build_layout(load_items(EXAMPLES_DIR / "crowded_farm.json"))
    assert len(result.nodes) == 12
    assert result.lane_heights["Farm"] == 12 * 40 + 11 * 15 + 2 * 20
    assert all(n.within_bounds for n in result.nodes)
