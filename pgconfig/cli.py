"""Command line tool that tunes a PostgreSQL server from its hardware."""

from __future__ import annotations

import argparse
import os
import platform
import sys
from pathlib import Path
from typing import Sequence

import psutil
import yaml

from pgconfig.bytesize import format_bytes, parse_bytes
from pgconfig.formats import ExportFormat, export_conf, parse_export_format
from pgconfig.inputs import PG_VERSION_F, PgConfigError, TuningInput
from pgconfig.profile import Profile, parse_profile
from pgconfig.rules import compute
from pgconfig.version import pretty

CONFIG_NAME = ".pgconfigctl"
_CONFIG_EXTENSIONS = ("json", "yaml", "yml")

_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
}


def _default_os() -> str:
    if sys.platform.startswith("linux"):
        return "linux"
    if sys.platform.startswith("win"):
        return "windows"
    return sys.platform


def _default_arch() -> str:
    machine = platform.machine().lower()
    if machine.startswith("arm"):
        return "arm"
    return _ARCH_ALIASES.get(machine, machine)


def _byte_size(value: str) -> int:
    try:
        return parse_bytes(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _profile(value: str) -> Profile:
    try:
        return parse_profile(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _export_format(value: str) -> ExportFormat:
    try:
        return parse_export_format(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    """Build the parser of the ``pgconfigctl`` command and its subcommands."""
    parser = argparse.ArgumentParser(
        prog="pgconfigctl",
        description="A tool to handle and benchmark your PostgreSQL",
    )
    parser.add_argument(
        "--config",
        default="",
        help=f"config file (default is $HOME/{CONFIG_NAME}.yaml)",
    )
    parser.add_argument(
        "-t", "--toggle", action="store_true", help="Help message for toggle"
    )
    commands = parser.add_subparsers(dest="command")

    tune = commands.add_parser(
        "tune",
        help="Tunes your PostgreSQL server",
        description=(
            "Uses your server info to compute the PostgreSQL tuning aiming to "
            "give you a get-start to tune your server."
        ),
    )
    total_ram = psutil.virtual_memory().total
    tune.add_argument("--os", default=_default_os(), help="Operating system")
    tune.add_argument("--arch", default=_default_arch(), help="Server architecture")
    tune.add_argument(
        "-D", "--disk-type", default="SSD",
        help="Disk type (possible values are SSD, HDD and SAN)",
    )
    tune.add_argument(
        "--version", dest="pg_version", type=float, default=PG_VERSION_F,
        help="PostgreSQL Version",
    )
    tune.add_argument(
        "-c", "--cpus", type=int, default=os.cpu_count() or 1, help="Total CPU cores"
    )
    tune.add_argument(
        "-M", "--max-connections", type=int, default=100,
        help="Max expected connections",
    )
    tune.add_argument(
        "-B", "--include-pgbadger", action="store_true",
        help="Include pgbadger params?",
    )
    tune.add_argument("-L", "--log-format", default="csvlog", help="Default log format")
    tune.add_argument(
        "--ram", type=_byte_size, default=total_ram,
        help=f"Total Memory in bytes (default {format_bytes(total_ram)})",
    )
    tune.add_argument(
        "--profile", type=_profile, default=Profile.WEB,
        help=f"Tuning profile (default {Profile.WEB})",
    )
    tune.add_argument(
        "-F", "--format", type=_export_format, default=ExportFormat.CONFIG,
        help=(
            "config file format (possible values are unix, alter-system, stackgres, "
            "and json) - file extension also work (conf, sql, json, yaml)"
        ),
    )

    commands.add_parser("version", help="Displays version information")
    return parser


def _find_config(explicit: str) -> Path | None:
    if explicit:
        return Path(explicit)
    home = Path.home()
    for ext in _CONFIG_EXTENSIONS:
        candidate = home / f"{CONFIG_NAME}.{ext}"
        if candidate.is_file():
            return candidate
    return None


def _init_config(explicit: str) -> None:
    path = _find_config(explicit)
    if path is None:
        return
    try:
        yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError):
        return
    print("Using config file:", path)


def _run_tune(args: argparse.Namespace) -> int:
    tuning_input = TuningInput(
        os=args.os,
        arch=args.arch,
        total_ram=args.ram,
        total_cpu=args.cpus,
        profile=args.profile,
        disk_type=args.disk_type,
        max_connections=args.max_connections,
        postgres_version=args.pg_version,
    )
    try:
        report = compute(tuning_input)
    except PgConfigError as exc:
        print(exc, file=sys.stderr)
        return 1

    data = report.to_slice(args.pg_version, args.include_pgbadger, args.log_format)
    print(export_conf(args.format, data, args.pg_version, None))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run ``pgconfigctl`` and return its exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    _init_config(args.config)

    if args.command == "version":
        print(f"pgconfigctl - {pretty()}")
        return 0
    return _run_tune(args)


if __name__ == "__main__":
    sys.exit(main())