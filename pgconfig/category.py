"""Tuning categories, their default values and the sliced report form."""

from __future__ import annotations

import copy
import struct
from dataclasses import dataclass, field, fields
from typing import Any

from pgconfig.bytesize import GB, format_bytes
from pgconfig.docs import ParamDoc
from pgconfig.inputs import InvalidMaxConnectionsError, TuningInput
from pgconfig.profile import Profile


def _f32(value: float) -> float:
    """Round a number to single precision, as the tuning arithmetic does."""
    return struct.unpack("f", struct.pack("f", value))[0]


def _param(kind: str, default: Any, min_version: str | None = None,
           max_version: str | None = None) -> Any:
    return field(
        default=default,
        metadata={"kind": kind, "min_version": min_version, "max_version": max_version},
    )


def _profile_key(profile: Profile | str) -> str:
    return profile.value if isinstance(profile, Profile) else str(profile)


# Share of the profile memory usable for per-connection buffers.
MAX_MEMORY_BUFFERS_PERCENT = {
    Profile.WEB.value: 0.25,
    Profile.OLTP.value: 0.35,
    Profile.DW.value: 0.50,
    Profile.MIXED.value: 0.2,
    Profile.DESKTOP.value: 0.1,
}

# Share of the total memory a profile may use at all.
MAX_MEMORY_PROFILE_PERCENT = {
    Profile.WEB.value: 1.0,
    Profile.OLTP.value: 1.0,
    Profile.DW.value: 1.0,
    Profile.MIXED.value: 0.5,
    Profile.DESKTOP.value: 0.2,
}

SHARED_BUFFER_PERC = 0.25
EFFECTIVE_CACHE_SIZE_PERC = 1 - SHARED_BUFFER_PERC


@dataclass
class MemoryCfg:
    """Memory related parameters."""

    shared_buffers: int = _param("Byte", 0)
    effective_cache_size: int = _param("Byte", 0)
    work_mem: int = _param("Byte", 0)
    maintenance_work_mem: int = _param("Byte", 0)


@dataclass
class CheckpointCfg:
    """Checkpoint related parameters."""

    min_wal_size: int = _param("Byte", 2 * GB, min_version="9.5")
    max_wal_size: int = _param("Byte", 3 * GB, min_version="9.5")
    checkpoint_completion_target: float = _param("float32", 0.9)
    # -1 lets the server tune wal_buffers automatically.
    wal_buffers: int = _param("Byte", -1)
    checkpoint_segments: int = _param("int", 16, max_version="9.4")


@dataclass
class NetworkCfg:
    """Network related parameters."""

    listen_addresses: str = _param("string", "*")
    max_connections: int = _param("int", 100)


@dataclass
class StorageCfg:
    """Storage related parameters."""

    random_page_cost: float = _param("float32", 4.0)
    effective_io_concurrency: int = _param("int", 1)


@dataclass
class WorkerCfg:
    """Worker process parameters."""

    max_worker_processes: int = _param("int", 8, min_version="9.4")
    max_parallel_workers_per_gather: int = _param("int", 2, min_version="9.6")
    max_parallel_workers: int = _param("int", 2, min_version="10")


@dataclass
class ParamSliceOutput:
    """One parameter of a report category."""

    name: str
    value: str
    format: str
    documentation: ParamDoc | None = None
    comment: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form of the parameter."""
        out: dict[str, Any] = {
            "name": self.name,
            "config_value": self.value,
            "format": self.format,
        }
        if self.documentation is not None:
            out["documentation"] = self.documentation.to_dict()
        if self.comment:
            out["comment"] = self.comment
        return out


@dataclass
class SliceOutput:
    """A report category with its parameters."""

    name: str
    description: str
    parameters: list[ParamSliceOutput] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form of the category."""
        return {
            "category": self.name,
            "description": self.description,
            "parameters": [param.to_dict() for param in self.parameters] or None,
        }


PGBADGER_CONFIG = SliceOutput(
    name="log_config",
    description="Logging configuration for pgbadger",
    parameters=[
        ParamSliceOutput(format="bool", name="logging_collector", value="on"),
        ParamSliceOutput(format="bool", name="log_checkpoints", value="on"),
        ParamSliceOutput(format="bool", name="log_connections", value="on"),
        ParamSliceOutput(format="bool", name="log_disconnections", value="on"),
        ParamSliceOutput(format="bool", name="log_lock_waits", value="on"),
        ParamSliceOutput(format="int", name="log_temp_files", value="0"),
        ParamSliceOutput(format="string", name="lc_messages", value="C"),
        ParamSliceOutput(
            format="string",
            name="log_min_duration_statement",
            value="10s",
            comment="Adjust the minimum time to collect the data",
        ),
        ParamSliceOutput(format="int", name="log_autovacuum_min_duration", value="0"),
    ],
)

LOG_OPTIONS = {
    "stderr": SliceOutput(
        name="stder_config",
        description="STDERR Configuration",
        parameters=[
            ParamSliceOutput(format="string", name="log_destination", value="stder"),
            ParamSliceOutput(
                format="string",
                name="log_line_prefix",
                value="%t [%p]: [%l-1] user=%u,db=%d,app=%a,client=%h ",
            ),
        ],
    ),
    "syslog": SliceOutput(
        name="syslog_config",
        description="SYSLOG Configuration",
        parameters=[
            ParamSliceOutput(format="string", name="log_destination", value="syslog"),
            ParamSliceOutput(
                format="string",
                name="log_line_prefix",
                value="user=%u,db=%d,app=%a,client=%h ",
            ),
            ParamSliceOutput(format="string", name="syslog_facility", value="LOCAL0"),
            ParamSliceOutput(format="string", name="syslog_ident", value="postgres"),
        ],
    ),
    "csvlog": SliceOutput(
        name="csv_config",
        description="CSV Configuration",
        parameters=[
            ParamSliceOutput(format="string", name="log_destination", value="csvlog"),
        ],
    ),
}


def _category(cat_id: str, desc: str) -> Any:
    return field(metadata={"id": cat_id, "desc": desc})


def _format_value(kind: str, value: Any) -> str:
    if kind == "Byte":
        return format_bytes(value)
    if kind == "int":
        return str(int(value))
    if kind == "float32":
        return f"{_f32(value):.1f}"
    if kind == "string":
        return str(value)
    return "NOT PARSED - UNKNOW"


def _load_params(cat: Any, pg_version: float) -> list[ParamSliceOutput]:
    if cat is None:
        return []
    out = []
    for param in fields(cat):
        meta = param.metadata
        min_version = meta.get("min_version")
        if min_version is not None and not pg_version >= _f32(float(min_version)):
            continue
        max_version = meta.get("max_version")
        if max_version is not None and not _f32(float(max_version)) >= pg_version:
            continue
        out.append(
            ParamSliceOutput(
                name=param.name,
                value=_format_value(meta["kind"], getattr(cat, param.name)),
                format=meta["kind"],
            )
        )
    return out


@dataclass
class ExportCfg:
    """The full tuning report, one attribute per category."""

    memory: MemoryCfg | None = _category("memory_related", "Memory Configuration")
    checkpoint: CheckpointCfg | None = _category(
        "checkpoint_related", "Checkpoint Related Configuration"
    )
    network: NetworkCfg | None = _category(
        "network_related", "Network Related Configuration"
    )
    storage: StorageCfg | None = _category("storage_type", "Storage Configuration")
    worker: WorkerCfg | None = _category(
        "worker_related", "Worker Processes Configuration"
    )

    def to_slice(self, pg_version: float, include_pgbadger: bool = False,
                 log_format: str = "stderr") -> list[SliceOutput]:
        """List the categories and the parameters that apply to ``pg_version``.

        Empty or removed categories are left out. With ``include_pgbadger``
        the pgbadger logging category and the chosen log format follow.
        """
        version = _f32(pg_version)
        out = []
        for cat in fields(self):
            params = _load_params(getattr(self, cat.name), version)
            if not params:
                continue
            out.append(
                SliceOutput(
                    name=cat.metadata["id"],
                    description=cat.metadata["desc"],
                    parameters=params,
                )
            )

        if include_pgbadger:
            out.append(copy.deepcopy(PGBADGER_CONFIG))
            log_option = LOG_OPTIONS.get(log_format)
            out.append(
                copy.deepcopy(log_option)
                if log_option is not None
                else SliceOutput(name="", description="", parameters=[])
            )
        return out


def memory_cfg(tuning_input: TuningInput) -> MemoryCfg:
    """Compute the memory parameters from the available RAM and profile."""
    if tuning_input.max_connections == 0:
        raise InvalidMaxConnectionsError()
    key = _profile_key(tuning_input.profile)
    total_ram = _f32(
        _f32(tuning_input.total_ram) * _f32(MAX_MEMORY_PROFILE_PERCENT.get(key, 0.0))
    )
    buffers = _f32(total_ram * _f32(MAX_MEMORY_BUFFERS_PERCENT.get(key, 0.0)))
    return MemoryCfg(
        shared_buffers=int(_f32(total_ram * _f32(SHARED_BUFFER_PERC))),
        effective_cache_size=int(_f32(total_ram * _f32(EFFECTIVE_CACHE_SIZE_PERC))),
        work_mem=int(_f32(buffers / _f32(tuning_input.max_connections))),
        maintenance_work_mem=int(_f32(total_ram * _f32(0.05))),
    )


def checkpoint_cfg(tuning_input: TuningInput) -> CheckpointCfg:
    """Return the checkpoint defaults; wal_buffers is left to the server."""
    return CheckpointCfg()


def network_cfg(tuning_input: TuningInput) -> NetworkCfg:
    """Return the network parameters for the expected connections."""
    return NetworkCfg(listen_addresses="*", max_connections=tuning_input.max_connections)


def storage_cfg(tuning_input: TuningInput) -> StorageCfg:
    """Return the storage defaults of PostgreSQL."""
    return StorageCfg()


def worker_cfg(tuning_input: TuningInput) -> WorkerCfg:
    """Return the worker process defaults."""
    return WorkerCfg()


def new_export_cfg(tuning_input: TuningInput) -> ExportCfg:
    """Build a report with the base values, before any rule is applied."""
    return ExportCfg(
        memory=memory_cfg(tuning_input),
        checkpoint=checkpoint_cfg(tuning_input),
        network=network_cfg(tuning_input),
        storage=storage_cfg(tuning_input),
        worker=worker_cfg(tuning_input),
    )