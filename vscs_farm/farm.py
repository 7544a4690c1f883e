# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""VSCS Farm CLI: multi-command entry point.

Provides ``vscs-farm <command>`` with subcommands for initializing
configuration, checking system readiness and running the HTTP server.
Running ``vscs-farm`` with no arguments prints version and usage
information.

Subcommands:

* ``init``       : create a stub server config file
* ``check``      : verify config and the container runtime
* ``run-server`` : start the farm HTTP server
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import os
import shutil
import signal
import subprocess
import sys
import threading
from pathlib import Path

from vscs_farm import __version__
from vscs_farm.config import (
    ConfigError,
    FarmConfig,
    get_config_path,
    get_dotenv_path,
    load_config,
)
from vscs_farm.logging import configure_logging


logger = logging.getLogger(__name__)

# Known subcommand names.
_SUBCOMMANDS = frozenset({"init", "check", "run-server"})

# Minimum container runtime versions supporting ``--init`` and label filters.
_MIN_VERSIONS: dict[str, tuple[int, ...]] = {
    "docker": (20, 10),
    "podman": (4, 0),
}

_USAGE = """\
usage: vscs-farm <command> [args]

commands:
  init        Create a stub server config file
  check       Verify config and the container runtime
  run-server  Start the farm HTTP server

Run 'vscs-farm <command> --help' for command-specific help.\
"""


def _parse_version(output: str) -> tuple[int, ...]:
    """Extract a numeric version tuple from command output.

    Looks for the first token that starts with a digit and parses it as a
    dotted version string.  For example::

        Docker version 24.0.7, build afdd53b -> (24, 0, 7)
        podman version 5.3.1                 -> (5, 3, 1)

    Args:
        output: Raw stdout from ``<tool> --version``.

    Returns:
        Numeric version tuple.

    Raises:
        ValueError: If no version number is found.
    """
    for token in output.split():
        if token and token[0].isdigit():
            parts: list[int] = []
            for segment in token.split("."):
                # Strip non-numeric suffixes (e.g. "24.0.7-rc1", "24.0.7,")
                digits = ""
                for ch in segment:
                    if ch.isdigit():
                        digits += ch
                    else:
                        break
                if digits:
                    parts.append(int(digits))
            if parts:
                return tuple(parts)
    raise ValueError(f"Cannot parse version from: {output!r}")


def _fmt_version(v: tuple[int, ...]) -> str:
    """Format a version tuple as a dotted string."""
    return ".".join(str(p) for p in v)


# ── Terminal colors ─────────────────────────────────────────────────


def _use_color() -> bool:
    """Determine whether to use ANSI color codes in output.

    Returns True when stdout is a TTY and the ``NO_COLOR`` environment
    variable is not set.  ``TERM=dumb`` also disables color.
    """
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("TERM") == "dumb":
        return False
    return sys.stdout.isatty()


class _Style:
    """ANSI escape helpers.  All methods return plain text when color is off."""

    def __init__(self, color: bool) -> None:
        self._on = color

    def _wrap(self, code: str, text: str) -> str:
        if not self._on:
            return text
        return f"\033[{code}m{text}\033[0m"

    def bold(self, text: str) -> str:
        return self._wrap("1", text)

    def green(self, text: str) -> str:
        return self._wrap("32", text)

    def red(self, text: str) -> str:
        return self._wrap("31", text)

    def dim(self, text: str) -> str:
        return self._wrap("2", text)

    def cyan(self, text: str) -> str:
        return self._wrap("36", text)


# ── Dependency checking ─────────────────────────────────────────────


def _check_dependency(
    name: str,
    version_cmd: list[str],
    min_version: tuple[int, ...] | None = None,
) -> tuple[bool, str]:
    """Check a single dependency is installed and meets version requirements.

    Args:
        name: Executable name.
        version_cmd: Command to run to get version output.
        min_version: Minimum required version tuple, or None to skip
            version check.

    Returns:
        ``(ok, detail)``: *ok* is True when the check passes, *detail*
        is a human-readable status string (no leading indent).
    """
    path = shutil.which(name)
    if path is None:
        return False, f"{name}: not found"

    try:
        result = subprocess.run(
            version_cmd,
            capture_output=True,
            text=True,
            timeout=10,
        )
        raw = result.stdout.strip() or result.stderr.strip()
    except (subprocess.TimeoutExpired, FileNotFoundError):
        return False, f"{name}: found at {path} but failed to get version"

    try:
        version = _parse_version(raw)
    except ValueError:
        return False, f"{name}: cannot parse version from: {raw}"

    if min_version and version < min_version:
        got = _fmt_version(version)
        want = _fmt_version(min_version)
        return False, f"{name}: {got} (need >= {want})"

    version_str = _fmt_version(version)
    if min_version:
        return True, f"{name}: {version_str} (>= {_fmt_version(min_version)})"
    return True, f"{name}: {version_str}"


# ── init subcommand ─────────────────────────────────────────────────


def cmd_init(argv: list[str]) -> int:
    """Create a stub server configuration file.

    Creates ``~/.config/vscs-farm/farm.yaml`` with a commented template
    if the file does not already exist.

    Args:
        argv: Extra arguments (currently unused).

    Returns:
        Exit code (always 0).
    """
    config_path = get_config_path()

    if config_path.exists():
        print(f"Config already exists: {config_path}")
        return 0

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(_STUB_CONFIG)
    print(f"Created stub config: {config_path}")
    return 0


# ── check subcommand ────────────────────────────────────────────────


def cmd_check(argv: list[str]) -> int:
    """Run readiness checks and print installation status.

    Displays the configuration summary and the container runtime version.
    Both affect the exit code.

    Args:
        argv: Extra arguments (currently unused).

    Returns:
        0 if all checks pass, 1 if any check fails.
    """
    s = _Style(_use_color())
    all_ok = True

    print(s.bold(f"VSCS Farm {__version__}"))
    print()

    # ── Configuration ───────────────────────────────────────────
    print(s.bold("Configuration"))
    config_path = get_config_path()
    if config_path.exists():
        print(f"  Config file: {s.dim(str(config_path))}")
    else:
        print(f"  Config file: {s.dim('none, using environment')}")

    config: FarmConfig | None = None
    try:
        config = load_config()
        print(f"  Status:      {s.green('ok')}")
        for line in config.describe().splitlines()[1:]:
            print(f"  {line.strip()}")
    except ConfigError as e:
        print(f"  Status:      {s.red('error')}: {e}")
        all_ok = False

    dotenv_path = get_dotenv_path()
    if dotenv_path.exists():
        print(f"  Env file:    {s.dim(str(dotenv_path))}")
    print()

    # ── Container runtime ───────────────────────────────────────
    print(s.bold("Dependencies"))
    command = config.container_command if config else "docker"
    ok, detail = _check_dependency(
        command, [command, "--version"], _MIN_VERSIONS.get(command)
    )
    if ok:
        print(f"  {s.green('✓')} {detail}")
    else:
        print(f"  {s.red('✗')} {detail}")
        all_ok = False
    print()

    # ── Summary ─────────────────────────────────────────────────
    if all_ok:
        print(s.green("All checks passed."))
    else:
        print(s.red("Some checks failed."))

    return 0 if all_ok else 1


# ── run-server subcommand ───────────────────────────────────────────


def cmd_run_server(argv: list[str]) -> int:
    """Start the farm HTTP server and block until signalled.

    Args:
        argv: Command-line arguments (``--config``, ``--host``, ``--port``,
            ``--debug``).

    Returns:
        Exit code (0=success, 1=config error, 2=startup error).
    """
    from vscs_farm.server import FarmServer

    parser = argparse.ArgumentParser(
        prog="vscs-farm run-server",
        description="OpenVSCode Farm server",
        epilog="Serves per-user editor containers behind an auth proxy.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to farm.yaml (default: XDG config directory)",
    )
    parser.add_argument("--host", default=None, help="Override listen host")
    parser.add_argument(
        "--port", type=int, default=None, help="Override listen port"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    args = parser.parse_args(argv)

    configure_logging(
        level=logging.DEBUG if args.debug else logging.INFO,
        add_secret_filter=True,
    )

    try:
        config = load_config(args.config)
        overrides: dict[str, object] = {}
        if args.host:
            overrides["listen_host"] = args.host
        if args.port is not None:
            overrides["listen_port"] = args.port
        if overrides:
            config = dataclasses.replace(config, **overrides)
    except ConfigError as e:
        logger.critical("Configuration error: %s", e)
        return 1

    for line in config.describe().splitlines():
        logger.info("%s", line)

    try:
        server = FarmServer(config)
        server.start()
    except Exception as e:
        logger.exception("Failed to start server: %s", e)
        return 2

    stop_event = threading.Event()

    def shutdown_handler(signum: int, frame: object) -> None:
        """Handle shutdown signals."""
        logger.info("Received signal %d, shutting down...", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, shutdown_handler)
    signal.signal(signal.SIGTERM, shutdown_handler)

    stop_event.wait()
    server.stop()
    return 0


# ── CLI plumbing ────────────────────────────────────────────────────


_DISPATCH: dict[str, str] = {
    "init": "cmd_init",
    "check": "cmd_check",
    "run-server": "cmd_run_server",
}


def _print_info() -> None:
    """Print version information and available commands."""
    s = _Style(_use_color())
    print(s.bold(f"VSCS Farm {__version__}"))
    print()
    print(_USAGE)


def cli() -> None:
    """Entry point for ``vscs-farm``.

    When no arguments are given, prints version and usage information.
    Requires an explicit subcommand for all operations.
    """
    argv = sys.argv[1:]

    if not argv or argv[0] == "--help":
        _print_info()
        sys.exit(0)

    if argv[0] not in _SUBCOMMANDS:
        print(f"vscs-farm: unknown command '{argv[0]}'", file=sys.stderr)
        print(_USAGE, file=sys.stderr)
        sys.exit(2)

    command = argv[0]
    rest = argv[1:]

    # Look up handler by name so tests can mock individual commands.
    import vscs_farm.farm as _self

    handler = getattr(_self, _DISPATCH[command])
    sys.exit(handler(rest))


#: Stub configuration template written by ``vscs-farm init``.
_STUB_CONFIG = """\
# VSCS Farm Server Configuration
#
# Values may reference environment variables with !env, e.g.
#   token_secret: !env FARM_TOKEN_SECRET

server:
  host: 0.0.0.0
  port: 3030

container:
  # command: podman
  image: openvscode-server-base
  # External editor URL; {port} and {token} are substituted.
  url: "http://localhost:{port}?tkn={token}"
  # editor_port: 3000
  # session_env_path: /tmp/env.json
  # suppress_errors: false
  # timeout: 60

platform:
  api_root: https://hpcgame.pku.edu.cn/api
  # timeout: 15

# auth:
#   token_secret: !env FARM_TOKEN_SECRET
"""
