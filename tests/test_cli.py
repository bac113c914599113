"""Tests for cli.py."""

import json
import logging
from pathlib import Path

import pytest

from swimlane_layout.cli import build_parser, main

EXAMPLES_DIR = Path(__file__).parent.parent / "examples"
BASIC = EXAMPLES_DIR / "basic_progression.json"


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args(["items.json"])
        assert args.items == Path("items.json")
        assert args.svg is None
        assert args.json is None
        assert args.validate is False
        assert args.verbose == 0

    def test_verbosity(self):
        assert build_parser().parse_args(["items.json", "-vv"]).verbose == 2


class TestMain:
    def test_writes_svg_and_json(self, tmp_path: Path):
        svg = tmp_path / "tree.svg"
        doc = tmp_path / "tree.json"
        assert main([str(BASIC), "--svg", str(svg), "--json", str(doc)]) == 0
        assert svg.read_text(encoding="utf-8").startswith("<svg")
        data = json.loads(doc.read_text(encoding="utf-8"))
        assert len(data["nodes"]) == 14

    def test_json_to_stdout(self, capsys: pytest.CaptureFixture[str]):
        assert main([str(BASIC), "--json", "-"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert "laneBoundaries" in data

    def test_validate(self, tmp_path: Path):
        doc = tmp_path / "tree.json"
        assert main([str(BASIC), "--validate", "--json", str(doc)]) == 0
        assert json.loads(doc.read_text(encoding="utf-8"))["validationResults"]["passed"] is True

    def test_automated(self, capsys: pytest.CaptureFixture[str]):
        assert main([str(BASIC), "--automated"]) == 0
        out = capsys.readouterr().out
        assert "Automated Boundary Tests: passed" in out
        assert "Automated Performance Tests: passed" in out

    def test_automated_fails_on_empty_dataset(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]):
        items = tmp_path / "items.json"
        items.write_text("[]", encoding="utf-8")
        assert main([str(items), "--automated"]) == 1
        assert "No tree items found in dataset" in capsys.readouterr().out

    def test_material_edges(self, capsys: pytest.CaptureFixture[str]):
        assert main([str(BASIC), "--material-edges", "--json", "-"]) == 0
        edges = json.loads(capsys.readouterr().out)["edges"]
        assert any(e["data"]["type"] == "material" for e in edges)

    def test_custom_config(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]):
        config = tmp_path / "layout.toml"
        config.write_text("[layout]\ntier_width = 240\n", encoding="utf-8")
        assert main([str(BASIC), "--config", str(config), "--json", "-"]) == 0
        nodes = json.loads(capsys.readouterr().out)["nodes"]
        xs = sorted({n["position"]["x"] for n in nodes})
        assert xs[1] - xs[0] == 240

    def test_missing_file(self, tmp_path: Path, caplog: pytest.LogCaptureFixture):
        with caplog.at_level(logging.ERROR, logger="swimlane_layout.cli"):
            assert main([str(tmp_path / "nope.json")]) == 2
        assert [r.name for r in caplog.records] == ["swimlane_layout.cli"]

    def test_bad_config(self, tmp_path: Path):
        config = tmp_path / "layout.toml"
        config.write_text("[layout]\nnode_height = -1\n", encoding="utf-8")
        assert main([str(BASIC), "--config", str(config)]) == 2

    def test_item_without_id(self, tmp_path: Path):
        items = tmp_path / "items.json"
        items.write_text('[{"name": "anonymous"}]', encoding="utf-8")
        assert main([str(items)]) == 2
