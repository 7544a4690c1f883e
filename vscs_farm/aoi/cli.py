# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""``aoi``: command line client for the contest platform.

Commands::

    aoi problem deploy [-P] [-s] [-d DESCRIPTION] [-S] [-r]
    aoi problem show [-p PROBLEM] [-c CONTEST] [SLUG]
    aoi problem submit [-p PROBLEM] [-c CONTEST] [-m METHOD] [-f PATH] [SLUG]
    aoi contest export ranklist [-n LIMIT] [-c CONTEST] [-r KEY] [-y] -o OUT

Commands run inside a farm container authenticate with the session
environment written by the farm (``/tmp/env.json``, or ``$AOI_ENV_FILE``).
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import httpx

from vscs_farm import __version__
from vscs_farm.aoi import contest, problem
from vscs_farm.aoi.api import AoiError, open_api
from vscs_farm.logging import configure_logging
from vscs_farm.session_env import SessionEnvError


logger = logging.getLogger(__name__)


def cmd_problem_deploy(args: argparse.Namespace) -> int:
    """Handle problem deploy command.

    Args:
        args: Parsed command line arguments.

    Returns:
        Exit code.
    """
    problem.deploy(
        Path.cwd(),
        pack_only=args.pack_only,
        statement=args.statement,
        description=args.description,
        set_current=args.set,
        rejudge=args.rejudge,
    )
    return 0


def cmd_problem_show(args: argparse.Namespace) -> int:
    """Handle problem show command."""
    with open_api() as api:
        problem.show(
            api,
            problem_id=args.problem,
            contest_id=args.contest,
            slug=args.slug,
        )
    return 0


def cmd_problem_submit(args: argparse.Namespace) -> int:
    """Handle problem submit command."""
    with open_api() as api:
        problem.submit(
            api,
            problem_id=args.problem,
            contest_id=args.contest,
            slug=args.slug,
            method=args.method,
            source=args.file,
        )
    return 0


def cmd_contest_export_ranklist(args: argparse.Namespace) -> int:
    """Handle contest export ranklist command."""
    with open_api() as api:
        contest.export_ranklist(
            api,
            Path(args.output),
            contest_id=args.contest,
            ranklist_key=args.ranklist,
            limit=args.limit,
            assume_yes=args.yes,
        )
    return 0


def _add_target_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-p", "--problem", help="Problem ID")
    parser.add_argument(
        "-c", "--contest", help="Contest ID (default: the session's contest)"
    )
    parser.add_argument("slug", nargs="?", help="Problem slug in the contest")


def build_parser() -> argparse.ArgumentParser:
    """Build the ``aoi`` argument parser."""
    parser = argparse.ArgumentParser(
        prog="aoi", description="AOI Client for the contest platform"
    )
    parser.add_argument(
        "--version", action="version", version=f"aoi {__version__}"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    groups = parser.add_subparsers(dest="group", required=True)

    # problem commands
    problem_parser = groups.add_parser("problem", help="Problem commands")
    problem_commands = problem_parser.add_subparsers(
        dest="command", required=True
    )

    deploy_parser = problem_commands.add_parser(
        "deploy",
        help="Deploy a problem",
        description="Pack data/ into dist/data.zip and deploy it",
    )
    deploy_parser.add_argument(
        "-P", "--pack-only", action="store_true", help="Only pack the data"
    )
    deploy_parser.add_argument(
        "-s",
        "--statement",
        action="store_true",
        help="Upload statement.md as the problem content",
    )
    deploy_parser.add_argument(
        "-d", "--description", help="Description of this data version"
    )
    deploy_parser.add_argument(
        "-S", "--set", action="store_true", help="Set as current data"
    )
    deploy_parser.add_argument(
        "-r", "--rejudge", action="store_true", help="Rejudge solutions"
    )
    deploy_parser.set_defaults(handler=cmd_problem_deploy)

    show_parser = problem_commands.add_parser(
        "show", help="Show problem details"
    )
    _add_target_arguments(show_parser)
    show_parser.set_defaults(handler=cmd_problem_show)

    submit_parser = problem_commands.add_parser(
        "submit", help="Submit a solution"
    )
    _add_target_arguments(submit_parser)
    submit_parser.add_argument(
        "-m",
        "--method",
        choices=problem.SUBMIT_METHODS,
        help="Submit method (default: ask)",
    )
    submit_parser.add_argument(
        "-f", "--file", help="File or folder to submit (default: ask)"
    )
    submit_parser.set_defaults(handler=cmd_problem_submit)

    # contest commands
    contest_parser = groups.add_parser("contest", help="Contest commands")
    contest_commands = contest_parser.add_subparsers(
        dest="command", required=True
    )
    export_parser = contest_commands.add_parser(
        "export", help="Export contest data"
    )
    export_targets = export_parser.add_subparsers(dest="target", required=True)
    ranklist_parser = export_targets.add_parser(
        "ranklist",
        help="Export ranklist of a contest",
        description="Export ranked participants with their best solutions",
    )
    ranklist_parser.add_argument(
        "-n", "--limit", type=int, help="Export at most N participants"
    )
    ranklist_parser.add_argument(
        "-c", "--contest", help="Contest ID (default: the session's contest)"
    )
    ranklist_parser.add_argument("-r", "--ranklist", help="Ranklist key")
    ranklist_parser.add_argument(
        "-y", "--yes", action="store_true", help="Do not ask for confirmation"
    )
    ranklist_parser.add_argument(
        "-o", "--output", required=True, help="Output directory"
    )
    ranklist_parser.set_defaults(handler=cmd_contest_export_ranklist)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 on success, 1 on error, 130 when interrupted).
    """
    args = build_parser().parse_args(argv)

    configure_logging(
        level=logging.DEBUG if args.debug else logging.INFO,
        format_string="%(levelname)s %(message)s",
    )

    try:
        return args.handler(args)
    except (AoiError, SessionEnvError) as e:
        logger.error("%s", e)
        return 1
    except httpx.HTTPError as e:
        logger.error("Request failed: %s", e)
        return 1
    except OSError as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
