"""Rendering of a tuning report into configuration files and documents."""

from __future__ import annotations

import json
from enum import Enum
from typing import Iterable, Sequence

import yaml

from pgconfig.category import SliceOutput
from pgconfig.version import pretty


class ExportFormat(str, Enum):
    """Output formats of the tuning report."""

    JSON = "json"
    CONFIG = "conf"
    UNIX = "unix"
    ALTER_SYSTEM = "alter_system"
    SQL = "sql"
    STACKGRES = "stackgres"
    STACKGRES_SHORT = "sg"
    SG_PG_CONFIG = "sgpostgresconfig"
    YAML = "yaml"

    def __str__(self) -> str:
        return self.value


ALL_EXPORT_FORMATS = tuple(ExportFormat)

_SQL_FORMATS = (ExportFormat.ALTER_SYSTEM, ExportFormat.SQL)
_YAML_FORMATS = (
    ExportFormat.STACKGRES,
    ExportFormat.STACKGRES_SHORT,
    ExportFormat.SG_PG_CONFIG,
    ExportFormat.YAML,
)

# Parameters the StackGres operator refuses to set.
BLOCKED_PARAMS_FOR_SG = frozenset({
    "listen_addresses",
    "port",
    "hot_standby",
    "fsync",
    "logging_collector",
    "log_destination",
    "log_directory",
    "log_filename",
    "log_rotation_age",
    "log_rotation_size",
    "log_truncate_on_rotation",
    "wal_level",
    "track_commit_timestamp",
    "wal_log_hints",
    "archive_mode",
    "archive_command",
    "lc_messages",
    "wal_compression",
    "dynamic_library_path",
})


def parse_export_format(value: str) -> ExportFormat:
    """Turn a command-line value into an export format, ignoring case."""
    candidate = str(value).lower()
    for export_format in ALL_EXPORT_FORMATS:
        if export_format.value == candidate:
            return export_format
    names = " ".join(f.value for f in ALL_EXPORT_FORMATS)
    raise ValueError(f"must be one of [{names}]")


def alter_system(report: Iterable[SliceOutput]) -> str:
    """Render the report as ALTER SYSTEM statements."""
    lines = []
    for cat in report:
        lines.append(f"-- {cat.description}\n")
        for param in cat.parameters:
            if param.comment:
                lines.append(f"\n-- {param.comment}\n")
            lines.append(f"ALTER SYSTEM SET {param.name} TO '{param.value}';\n")
        lines.append("\n")
    return "".join(lines)


def config_file(report: Iterable[SliceOutput]) -> str:
    """Render the report as postgresql.conf lines."""
    lines = []
    for cat in report:
        lines.append(f"# {cat.description}\n")
        for param in cat.parameters:
            if param.comment:
                lines.append(f"\n# {param.comment}\n")
            if param.format == "string":
                lines.append(f"{param.name} = '{param.value}'\n")
            else:
                lines.append(f"{param.name} = {param.value}\n")
        lines.append("\n")
    return "".join(lines)


_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def json_file(report: Sequence[SliceOutput] | None) -> str:
    """Render the report as indented JSON; an empty report gives ``null``."""
    data = [cat.to_dict() for cat in report] if report else None
    text = json.dumps(data, indent=2, ensure_ascii=False)
    for char, escaped in _JSON_ESCAPES.items():
        text = text.replace(char, escaped)
    return text


class _SGDumper(yaml.SafeDumper):
    """Dumper that double-quotes strings which would read back as another type."""


def _represent_str(dumper: yaml.SafeDumper, value: str) -> yaml.ScalarNode:
    tag = dumper.resolve(yaml.ScalarNode, value, (True, False))
    style = '"' if tag != "tag:yaml.org,2002:str" else None
    return dumper.represent_scalar("tag:yaml.org,2002:str", value, style=style)


_SGDumper.add_representer(str, _represent_str)


def sg_config_file(report: Iterable[SliceOutput], pg_version: str) -> str:
    """Render the report as a StackGres SGPostgresConfig resource."""
    config = {
        param.name: param.value
        for cat in report
        for param in cat.parameters
        if param.name not in BLOCKED_PARAMS_FOR_SG
    }
    document = {
        "apiVersion": "stackgres.io/v1",
        "kind": "SGPostgresConfig",
        "metadata": {"name": "pgconfig-org-generated"},
        "spec": {
            "postgresVersion": str(pg_version),
            "postgresql.conf": dict(sorted(config.items())),
        },
    }
    return yaml.dump(
        document,
        Dumper=_SGDumper,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
    )


def export_conf(
    export_format: ExportFormat | str,
    output: Sequence[SliceOutput],
    pg_version: float,
    extra: Sequence[str] | None = None,
) -> str:
    """Render the report in the given format, with a generated-by header.

    Unknown formats fall back to the postgresql.conf layout. Each entry of
    ``extra`` is written after the header as a comment, as given.
    """
    comment = "--" if export_format in _SQL_FORMATS else "#"
    parts = []

    if export_format in _YAML_FORMATS:
        parts.append("---\n")

    if export_format != ExportFormat.JSON:
        parts.append(f"{comment} Generated by PGConfig {pretty()}\n")
        parts.extend(f"{comment} {line}" for line in extra or ())
        parts.append("\n")

    if export_format in _SQL_FORMATS:
        parts.append(alter_system(output))
    elif export_format in _YAML_FORMATS:
        parts.append(sg_config_file(output, f"{pg_version:.0f}"))
    elif export_format == ExportFormat.JSON:
        parts.append(json_file(output))
    else:
        parts.append(config_file(output))

    return "".join(parts)