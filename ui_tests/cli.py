"""Command line entry point: run the BREAD acceptance scenarios and report."""
from __future__ import annotations

import argparse
import logging
import sys
from functools import partial
from typing import List, Optional

import anyio

from ui_tests.config import settings
from ui_tests.results import ScenarioResult
from ui_tests.runner import run_scenarios
from ui_tests.scenarios import ScenarioOrchestrator

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="calc-bread-e2e",
        description="Run BREAD acceptance scenarios against a running calculator app",
    )
    parser.add_argument(
        "-s", "--scenario",
        action="append",
        choices=sorted(ScenarioOrchestrator.SCENARIOS),
        help="Scenario to run (repeatable; default: all)",
    )
    parser.add_argument("--list", action="store_true", help="List scenario names and exit")
    parser.add_argument("--base-url", help="Application base URL (overrides UI_BASE_URL)")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument("--parallel", action="store_true", help="Run scenarios concurrently")
    parser.add_argument("--create-mode", choices=["ui", "api"], help="How calculations are created")
    return parser


def apply_arguments(args: argparse.Namespace) -> dict:
    """Translate CLI flags into settings overrides."""
    values = {}
    if args.base_url:
        values["base_url"] = args.base_url
    if args.headed:
        values["playwright_headless"] = False
    if args.create_mode:
        values["calc_create_mode"] = args.create_mode
    return values


def print_report(results: List[ScenarioResult]) -> None:
    for result in results:
        print(result.report())
        print()
    passed = sum(1 for r in results if r.passed)
    print(f"{passed}/{len(results)} scenario(s) passed")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.list:
        for name in sorted(ScenarioOrchestrator.SCENARIOS):
            print(name)
        return 0

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    names = args.scenario or list(ScenarioOrchestrator.SCENARIOS)
    with settings.overrides(**apply_arguments(args)) as config:
        logger.info("Running %s against %s", ", ".join(names), config.base_url)
        results = anyio.run(partial(run_scenarios, names, config, args.parallel))

    print_report(results)
    return 0 if all(r.passed for r in results) else 1


if __name__ == "__main__":
    sys.exit(main())
