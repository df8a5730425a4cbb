"""Rules that adjust the base tuning report to the server and its workload."""

from __future__ import annotations

import struct
from typing import Callable

from pgconfig.bytesize import GB, MB
from pgconfig.category import ExportCfg, new_export_cfg
from pgconfig.inputs import InvalidArchError, InvalidOSError, PgConfigError, TuningInput
from pgconfig.profile import Profile

VALID_ARCHS = frozenset({"386", "i686", "amd64", "x86-64", "arm", "arm64"})
VALID_OS = frozenset({"windows", "linux", "unix", "darwin"})

_32BIT_ARCHS = frozenset({"386", "i686"})

Rule = Callable[[TuningInput, ExportCfg], ExportCfg]


def _f32(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


def _pg_version(tuning_input: TuningInput) -> float:
    return _f32(tuning_input.postgres_version)


def valid_arch(arch: str) -> None:
    """Raise InvalidArchError unless ``arch`` is a supported architecture."""
    if arch not in VALID_ARCHS:
        raise InvalidArchError()


def valid_os(os_name: str) -> None:
    """Raise InvalidOSError unless ``os_name`` is a supported operating system."""
    if os_name not in VALID_OS:
        raise InvalidOSError()


def compute_arch(tuning_input: TuningInput, cfg: ExportCfg) -> ExportCfg:
    """Limit the memory settings to 4GB on 32-bit architectures."""
    valid_arch(tuning_input.arch)

    if tuning_input.arch in _32BIT_ARCHS:
        limit = 4 * GB
        memory = cfg.memory
        memory.shared_buffers = min(memory.shared_buffers, limit)
        memory.work_mem = min(memory.work_mem, limit)
        memory.maintenance_work_mem = min(memory.maintenance_work_mem, limit)

    return cfg


def compute_os(tuning_input: TuningInput, cfg: ExportCfg) -> ExportCfg:
    """Apply operating-system specific limits."""
    valid_os(tuning_input.os)

    if cfg.memory.shared_buffers > 512 * MB and _pg_version(tuning_input) <= _f32(9.6):
        cfg.memory.shared_buffers = 512 * MB

    # Windows lacks posix_fadvise(), so prefetching cannot be used.
    if tuning_input.os == "windows":
        cfg.storage.effective_io_concurrency = 0

    return cfg


def compute_profile(tuning_input: TuningInput, cfg: ExportCfg) -> ExportCfg:
    """Use a much smaller shared_buffers on the Desktop profile."""
    if tuning_input.profile == Profile.DESKTOP:
        total_ram = int(tuning_input.total_ram)
        cfg.memory.shared_buffers = (
            total_ram // 16 if total_ram >= 0 else -(-total_ram // 16)
        )
    return cfg


def compute_storage(tuning_input: TuningInput, cfg: ExportCfg) -> ExportCfg:
    """Tune the planner and prefetching for the disk type."""
    concurrency = {"SSD": 200, "SAN": 300}
    cfg.storage.effective_io_concurrency = concurrency.get(tuning_input.disk_type, 2)

    if tuning_input.disk_type != "HDD":
        cfg.storage.random_page_cost = 1.1

    return cfg


def compute_version(tuning_input: TuningInput, cfg: ExportCfg) -> ExportCfg:
    """Clear the settings that do not exist in the requested version."""
    version = _pg_version(tuning_input)

    if version < _f32(9.5):
        cfg.checkpoint.min_wal_size = 0
        cfg.checkpoint.max_wal_size = 0

    if version < _f32(9.6):
        if cfg.worker is not None:
            cfg.worker.max_parallel_workers_per_gather = 0
        # Before 9.6 large shared_buffers values tend to cause slowness.
        cfg.memory.shared_buffers = min(cfg.memory.shared_buffers, 8 * GB)

    if version < _f32(10.0) and cfg.worker is not None:
        cfg.worker.max_parallel_workers = 0

    if version >= _f32(9.5):
        cfg.checkpoint.checkpoint_segments = 0

    if version <= _f32(9.3):
        cfg.worker = None

    return cfg


# compute_version may remove whole categories, so it must stay last.
ALL_RULES: tuple[Rule, ...] = (
    compute_arch,
    compute_os,
    compute_profile,
    compute_storage,
    compute_version,
)


def compute(tuning_input: TuningInput) -> ExportCfg:
    """Build the base report and run every rule over it."""
    cfg = new_export_cfg(tuning_input)
    for rule in ALL_RULES:
        try:
            cfg = rule(tuning_input, cfg)
        except PgConfigError as exc:
            raise type(exc)(f"could not process rule: {exc}") from exc
    return cfg