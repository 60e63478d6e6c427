"""Command-line interface for the stable-unit issuance engine."""
from __future__ import annotations

import argparse
import asyncio
import sys

from .bootstrap import build_context
from .config import load_config
from .errors import EngineError
from .logging_setup import configure_logging
from .services.scenario import ScenarioRunner, load_scenario
from .units import format_amount


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="stable-engine",
        description="Over-collateralized stable-unit issuance engine",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("prices", help="Refresh and print collateral prices")

    simulate_parser = sub.add_parser("simulate", help="Run a YAML scenario")
    simulate_parser.add_argument("scenario", help="Path to scenario YAML")
    simulate_parser.add_argument(
        "--strict",
        action="store_true",
        help="Stop at the first rejected step",
    )

    return parser


async def _prices(args: argparse.Namespace) -> int:
    ctx = build_context(load_config(args.config))
    await ctx.oracle.refresh()

    status = 0
    for asset in ctx.engine.collateral_assets():
        try:
            quote = ctx.oracle.price(asset)
        except EngineError as e:
            print(f"{asset}: unavailable ({e})")
            status = 1
            continue
        print(f"{asset}: ${format_amount(quote.value, quote.decimals)}")
    return status


def _simulate(args: argparse.Namespace) -> int:
    ctx = build_context(load_config(args.config))
    steps = load_scenario(args.scenario)
    try:
        results = ScenarioRunner(ctx).run(steps, strict=args.strict)
    except EngineError as e:
        print(f"Scenario stopped: {type(e).__name__}: {e}")
        return 1

    rejected = [r for r in results if not r.ok]
    print(f"{len(results)} steps, {len(rejected)} rejected")
    for r in rejected:
        print(f"  step {r.index} ({r.op}): {r.error_kind} — {r.message}")
    return 0


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    configure_logging(args.log_level)

    if args.command == "prices":
        sys.exit(asyncio.run(_prices(args)))
    elif args.command == "simulate":
        sys.exit(_simulate(args))
