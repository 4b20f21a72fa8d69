"""Command-line entry point."""

from __future__ import annotations

import argparse
import logging
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from .config import ConfigError, Rule, load_config_file, rule_from_args
from .daemon import serve
from .display import DisplayError, detect_backend
from .models import Affinity
from .runner import Runner
from .utils import default_config_path, setup_logging

log = logging.getLogger(__name__)


def _version() -> str:
    try:
        return version("monitor-affinity")
    except PackageNotFoundError:
        return "unknown"


def build_parser() -> argparse.ArgumentParser:
    criteria = ", ".join(a.value for a in Affinity)
    parser = argparse.ArgumentParser(
        prog="monitor-affinity",
        description="Launch commands on the monitors that match an ordered list of affinities.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Affinities: {criteria}
Prefix any affinity with "not-" to select the other monitors.

Examples:
  %(prog)s polybar -a primary --args main
  %(prog)s my-bar -a nonprimary -a largest -m -e MONITOR
  %(prog)s --daemonize --config-file ~/.config/monitor-affinity/config.toml
        """,
    )
    parser.add_argument("cmd", nargs="?", help="The command to execute with monitor affinity.")
    parser.add_argument(
        "--args", action="append", metavar="ARG",
        help="Argument to pass to the command (repeatable). %%s is replaced by the monitor name.",
    )
    parser.add_argument(
        "-a", "--affinities", action="append", metavar="AFFINITY",
        help="Monitor affinity (repeatable), evaluated in order to select the preferred monitor.",
    )
    parser.add_argument(
        "-m", "--allow-multiple", action="store_true",
        help="Run the command once per monitor when several match.",
    )
    parser.add_argument("-e", "--env", metavar="NAME", help="Set an env var to the name of the preferred monitor.")
    parser.add_argument(
        "--config-file", type=Path, metavar="PATH",
        help="Read rules from a TOML file. Required for running more than one command.",
    )
    parser.add_argument(
        "--daemonize", action="store_true",
        help="Keep running and restart commands when monitors are plugged, unplugged or rearranged.",
    )
    parser.add_argument(
        "--kill-on-exit", action="store_true",
        help="With --daemonize, stop launched commands when the daemon exits.",
    )
    parser.add_argument(
        "-d", "--dry-run", action="store_true",
        help="Print what commands would be run, but don't run them.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {_version()}")
    return parser


def rules_from_args(parser: argparse.ArgumentParser, ns: argparse.Namespace) -> list[Rule]:
    """Turn parsed arguments into rules, exiting with a usage error on bad input."""
    cli_flags = ns.cmd or ns.args or ns.affinities or ns.allow_multiple or ns.env
    if ns.config_file and cli_flags:
        parser.error("--config-file cannot be combined with a command or its options")

    try:
        if ns.cmd:
            if not ns.affinities:
                parser.error("the following arguments are required: -a/--affinities")
            return [rule_from_args(
                ns.cmd, ns.affinities,
                args=ns.args, env=ns.env, allow_multiple=ns.allow_multiple,
            )]
        if cli_flags:
            parser.error("a command is required")

        path = ns.config_file
        if path is None:
            path = default_config_path()
            if not path.exists():
                parser.error(f"a command or --config-file is required (no {path})")
        return load_config_file(path.expanduser())
    except ConfigError as e:
        parser.error(str(e))


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    ns = parser.parse_args(argv)
    setup_logging(ns.verbose)

    rules = rules_from_args(parser, ns)
    runner = Runner(rules, dry_run=ns.dry_run)

    if ns.daemonize:
        serve(runner, kill_on_exit=ns.kill_on_exit)
        return 0

    backend = detect_backend()
    if backend is None:
        log.error("No supported display server detected")
        return 1
    try:
        monitors = backend.get_monitors()
    except DisplayError as e:
        log.error("%s", e)
        return 1

    log.debug("Monitors: %s", ", ".join(str(m) for m in monitors))
    return 0 if runner.run(monitors) else 1


if __name__ == "__main__":
    sys.exit(main())
