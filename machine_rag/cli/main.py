"""Argument parsing and dispatch for ``python -m machine_rag.cli``."""

from __future__ import annotations

import argparse
import asyncio
import sys

from machine_rag.cli import ask, ingest
from machine_rag.config.settings import Settings
from machine_rag.utils.errors import MachineRagError
from machine_rag.utils.logging import configure_logging

_COMMANDS = {"ingest": ingest.run, "ask": ask.run}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m machine_rag.cli",
        description="Ingest machine documentation and ask questions about industrial assets.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")
    ingest.add_parser(subparsers)
    ask.add_parser(subparsers)
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: parse, configure logging, dispatch, exit."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    configure_logging(
        log_level=app_settings.log_level,
        json_output=(app_settings.app_env == "production"),
    )

    try:
        exit_code = asyncio.run(_COMMANDS[args.command](args, app_settings))
    except MachineRagError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
