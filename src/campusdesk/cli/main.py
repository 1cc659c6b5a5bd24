from __future__ import annotations

import argparse
import logging
from pathlib import Path

from rich.console import Console

from campusdesk.cli.commands import (
    exams_cmd,
    init_cmd,
    inspect_cmd,
    schools_cmd,
    scores_cmd,
    students_cmd,
    web_cmd,
)
from campusdesk.cli.context import CLIContext
from campusdesk.core.config import load_env_file, load_paths, load_settings
from campusdesk.core.errors import CampusError
from campusdesk.core.logging import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="campusdesk",
        description="Campus Desk school records CLI",
    )
    parser.add_argument(
        "--project-root",
        type=Path,
        default=Path.cwd(),
        help="Project root to use for .campusdesk data (default: current working directory)",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0)

    subparsers = parser.add_subparsers(dest="command", required=True)
    init_cmd.register(subparsers)
    schools_cmd.register(subparsers)
    exams_cmd.register(subparsers)
    students_cmd.register(subparsers)
    scores_cmd.register(subparsers)
    inspect_cmd.register(subparsers)
    web_cmd.register(subparsers)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    console = Console()

    handler = getattr(args, "handler", None)
    if handler is None:
        parser.print_help()
        return 2

    try:
        load_env_file(args.project_root)
        paths = load_paths(args.project_root)
        ctx = CLIContext(paths=paths, settings=load_settings(), console=console)
        return handler(args, ctx)
    except CampusError as exc:
        logger.error(str(exc))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
