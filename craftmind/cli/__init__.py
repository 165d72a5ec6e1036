"""CLI entrypoint for craftmind."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from craftmind.agent import AgentContext, build_reasoner
from craftmind.cli.helpers import _configure_logging, _render_tree, _resolve_llm_settings
from craftmind.cli.options import LogFormat, OutputFormat, build_arg_parser
from craftmind.config.loader import Config, load_config
from craftmind.config.secrets import load_environment_secrets
from craftmind.runtime.mailbox import MessageBus

logger = logging.getLogger(__name__)


def _load(args: argparse.Namespace) -> Config:
    """Load secrets and config, then configure logging from them."""
    load_environment_secrets(getattr(args, "env_file", None))
    config = load_config(getattr(args, "config", None))
    log_format = getattr(args, "log_format", None) or (
        LogFormat.JSON.value if config.logging.json_logs else LogFormat.READABLE.value
    )
    _configure_logging(
        level=config.logging.level,
        log_format=log_format,
        quiet_uvicorn=True,
        log_file=config.logging.file,
    )
    return config


def plan_command(args: argparse.Namespace) -> int:
    """Execute the `plan` command."""
    if args.command != "plan":
        raise ValueError(f"Unsupported command: {args.command}")

    config = _load(args)
    reasoner = build_reasoner(_resolve_llm_settings(config.llm))
    context = AgentContext.build(config, reasoner)

    def on_progress(nodes: list) -> None:
        logger.debug(f"Plan has {len(nodes)} nodes")

    tree = asyncio.run(context.plan(args.goal, args.mode, on_progress=on_progress))

    if args.output == OutputFormat.JSON.value:
        print(json.dumps([node.model_dump(mode="json") for node in tree], indent=2))
    else:
        print(_render_tree(tree))
    return 0


def observe_command(args: argparse.Namespace) -> int:
    """Execute the `observe` command: serve the observer API in the foreground."""
    if args.command != "observe":
        raise ValueError(f"Unsupported command: {args.command}")

    import uvicorn

    from craftmind.observer.server import create_app

    config = _load(args)
    llm_settings = _resolve_llm_settings(config.llm)
    bus = MessageBus()
    names = args.agent or [config.agent.name]
    contexts = [
        AgentContext.build(config, build_reasoner(llm_settings), name=name, bus=bus)
        for name in names
    ]
    app = create_app(contexts, push_interval=config.observer.state_push_seconds)

    host = str(args.host or config.observer.host)
    port = int(args.port or config.observer.port)
    logger.info(f"[OBSERVER] serving {', '.join(names)} on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level="warning", access_log=False)
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint function."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    # Bootstrap logger until the config has been loaded.
    _configure_logging(
        level="INFO",
        log_format=getattr(args, "log_format", None) or LogFormat.READABLE.value,
        quiet_uvicorn=True,
    )

    try:
        if args.command == "plan":
            return plan_command(args)
        if args.command == "observe":
            return observe_command(args)
        raise ValueError(f"Unsupported command: {args.command}")
    except Exception as exc:
        logger.error(f"[BOOT] CLI execution failed: {exc}")
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
