"""CLI option enums and argument parser."""

from __future__ import annotations

import argparse
from enum import StrEnum

from craftmind.models.plan import PlanMode


class LogFormat(StrEnum):
    """CLI log formatter mode."""

    READABLE = "readable"
    JSON = "json"


class OutputFormat(StrEnum):
    """How the `plan` command prints the goal tree."""

    TREE = "tree"
    JSON = "json"


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", type=str, default=None, help="Path to a YAML config file")
    parser.add_argument("--env-file", type=str, default=None, help="Dotenv file with API keys")
    parser.add_argument(
        "--log-format",
        type=str,
        default=None,
        choices=[fmt.value for fmt in LogFormat],
        help="Terminal log format (defaults to the configured one)",
    )


def build_arg_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="craftmind", description="Goal-planning and tool-dispatch agent for Minecraft bots"
    )
    subparsers = parser.add_subparsers(dest="command")

    plan_parser = subparsers.add_parser("plan", help="Break a goal down into a tree of steps")
    plan_parser.add_argument("goal", type=str, help="Goal to plan, e.g. 'Craft a wooden pickaxe'")
    plan_parser.add_argument(
        "--mode",
        type=str,
        default=None,
        choices=[mode.value for mode in PlanMode],
        help="Frontier order (defaults to planner.default_mode)",
    )
    plan_parser.add_argument(
        "--output",
        type=str,
        default=OutputFormat.TREE.value,
        choices=[fmt.value for fmt in OutputFormat],
        help="Output format",
    )
    _add_common_options(plan_parser)

    observe_parser = subparsers.add_parser("observe", help="Serve the observer API")
    observe_parser.add_argument("--host", type=str, default=None, help="Observer host override")
    observe_parser.add_argument("--port", type=int, default=None, help="Observer port override")
    observe_parser.add_argument(
        "--agent",
        action="append",
        default=None,
        help="Agent name to expose (repeatable; defaults to agent.name)",
    )
    _add_common_options(observe_parser)

    return parser
