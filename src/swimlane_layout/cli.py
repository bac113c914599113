"""Command-line entry point.

    swimlane-layout items.json --svg tree.svg --json tree.json --validate
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from swimlane_layout.config import DEFAULT_CONSTANTS, LayoutConstants
from swimlane_layout.errors import LayoutError
from swimlane_layout.items import load_items
from swimlane_layout.layout.builder import LayoutBuilder
from swimlane_layout.renderers.json import JsonRenderer
from swimlane_layout.renderers.svg import SvgRenderer
from swimlane_layout.validation import run_all_automated_tests

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="swimlane-layout",
        description="Lay out an idle-game upgrade tree into swim lanes and tier columns",
    )
    parser.add_argument("items", type=Path, help="JSON file with a list of items (or {\"items\": [...]})")
    parser.add_argument("--svg", type=Path, help="Write the SVG diagram here")
    parser.add_argument("--json", type=Path, help="Write the {nodes, edges, ...} document here ('-' for stdout)")
    parser.add_argument("--config", type=Path, help="TOML file with a [layout] table of constants")
    parser.add_argument("--validate", action="store_true", help="Run the layout validator and report failures")
    parser.add_argument("--automated", action="store_true", help="Run the automated boundary/performance tests")
    parser.add_argument("--material-edges", action="store_true", help="Also draw material producer → consumer edges")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v for info, -vv for debug")
    return parser


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    try:
        constants = LayoutConstants.from_toml(args.config) if args.config else DEFAULT_CONSTANTS
        items = load_items(args.items)
    except (OSError, ValueError, LayoutError) as exc:
        logger.error("%s", exc)
        return 2

    builder = LayoutBuilder(constants, material_edges=args.material_edges)
    result = builder.build(items, validate=args.validate)
    logger.info(
        "laid out %d nodes and %d edges in %.1fms",
        len(result.nodes),
        len(result.edges),
        result.duration_ms,
    )
    if result.recovery_report is not None and result.recovery_report.total_errors:
        logger.warning("%s", result.recovery_report.summary)

    if args.svg:
        args.svg.write_text(SvgRenderer(constants).render(result), encoding="utf-8")
        logger.info("wrote %s", args.svg)
    if args.json:
        document = JsonRenderer().render(result)
        if str(args.json) == "-":
            sys.stdout.write(document + "\n")
        else:
            args.json.write_text(document, encoding="utf-8")
            logger.info("wrote %s", args.json)

    status = 0
    if result.validation is not None:
        for check in result.validation.results:
            for issue in check.issues:
                log = logger.error if issue.severity == "error" else logger.warning
                log("%s: %s", check.test_name, issue.message)
        if not result.validation.passed:
            status = 1

    if args.automated:
        for check in run_all_automated_tests(items, constants):
            outcome = "passed" if check.passed else "FAILED"
            print(f"{check.test_name}: {outcome}")
            for issue in check.issues:
                print(f"  [{issue.severity}] {issue.message}")
            if not check.passed:
                status = 1

    return status


if __name__ == "__main__":
    sys.exit(main())
