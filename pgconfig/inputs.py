"""Tuning input, defaults and the errors raised for invalid input."""

from __future__ import annotations

from dataclasses import dataclass

from pgconfig.bytesize import GB
from pgconfig.profile import Profile

PG_VERSION = "14"
PG_VERSION_F = 14.0

SUPPORTED_VERSIONS = (9.1, 9.2, 9.3, 9.4, 9.5, 9.6, 10.0, 11.0, 12.0, 13.0, 14.0)


class PgConfigError(Exception):
    """Base class for errors reported by the tuning code."""

    default_message = "pgconfig error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class InvalidSchemaError(PgConfigError, ValueError):
    default_message = "Invalid schema"


class InvalidMaxConnectionsError(PgConfigError, ValueError):
    default_message = "Please set a value > 0"


class InvalidOSError(PgConfigError, ValueError):
    default_message = "Invalid OS"


class InvalidArchError(PgConfigError, ValueError):
    default_message = "Invalid Architecture"


@dataclass
class TuningInput:
    """Everything needed to compute the tuning parameters."""

    os: str = "linux"
    arch: str = "amd64"
    total_ram: int = 2 * GB
    total_cpu: int = 2
    profile: Profile = Profile.WEB
    disk_type: str = "HDD"
    max_connections: int = 100
    postgres_version: float = PG_VERSION_F