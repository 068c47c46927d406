"""Command-line interface for the loan guard."""
from __future__ import annotations

import argparse
import asyncio
import sys

from .config import load_config
from .logging_setup import configure_logging
from .services import LoanGuard


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="loan-guard",
        description="Defend a lending position's health factor with a staked stable reserve",
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

    sub.add_parser("check", help="Run one guarded cycle (may send transactions)")
    sub.add_parser("plan", help="Read the position and print the plan without acting")
    sub.add_parser("status", help="Send a position report to the alert channels")

    run_parser = sub.add_parser("run", help="Run a cycle every interval until stopped")
    run_parser.add_argument(
        "interval",
        nargs="?",
        type=int,
        default=None,
        help="Check interval in minutes (overrides config)",
    )

    return parser


async def _run(args: argparse.Namespace) -> int:
    """Execute the selected command; returns the process exit code."""
    configure_logging(args.log_level)
    config = load_config(args.config)
    guard = LoanGuard(config)

    if args.command == "check":
        report = await guard.check_and_rebalance()
        return 0 if report.ok else 2
    if args.command == "plan":
        report = await guard.preview()
        return 0 if report.ok else 2
    if args.command == "status":
        await guard.send_status_report()
        return 0
    if args.command == "run":
        await guard.run_continuous(args.interval)
        return 0

    build_parser().print_help()
    return 1


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        sys.exit(asyncio.run(_run(args)))
    except KeyboardInterrupt:
        sys.exit(130)
