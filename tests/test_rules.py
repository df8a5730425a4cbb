import pytest

from pgconfig.bytesize import GB, MB, TB
from pgconfig.category import ExportCfg, new_export_cfg
from pgconfig.inputs import (
    InvalidArchError,
    InvalidMaxConnectionsError,
    InvalidOSError,
    TuningInput,
)
from pgconfig.profile import Profile
from pgconfig.rules import (
    compute,
    compute_arch,
    compute_os,
    compute_profile,
    compute_storage,
    compute_version,
    valid_arch,
    valid_os,
)


def fake_input(**changes):
    values = dict(
        os="linux",
        arch="amd64",
        total_ram=4 * GB,
        total_cpu=1,
        profile=Profile.WEB,
        disk_type="SSD",
        max_connections=100,
        postgres_version=12.2,
    )
    values.update(changes)
    return TuningInput(**values)


def test_compute_arch_invalid_arch_raises():
    with pytest.raises(InvalidArchError):
        compute_arch(TuningInput(arch="xpto-invalid-arch"), None)


@pytest.mark.parametrize("arch", ["386", "i686"])
def test_compute_arch_limits_memory_on_32_bits(arch):
    tuning_input = fake_input(arch=arch, total_ram=1 * TB)
    out = compute_arch(tuning_input, new_export_cfg(tuning_input))
    assert out.memory.shared_buffers <= 4 * GB
    assert out.memory.work_mem <= 4 * GB
    assert out.memory.maintenance_work_mem <= 4 * GB
    assert out.memory.shared_buffers == 4 * GB


def test_compute_arch_does_not_limit_64_bits():
    tuning_input = fake_input(total_ram=1 * TB)
    out = compute_arch(tuning_input, new_export_cfg(tuning_input))
    assert out.memory.shared_buffers == 256 * GB


@pytest.mark.parametrize("arch", ["386", "i686", "amd64", "x86-64", "arm", "arm64"])
def test_valid_arch_accepts_supported(arch):
    assert valid_arch(arch) is None


def test_valid_arch_rejects_unknown():
    with pytest.raises(InvalidArchError, match="Invalid Architecture"):
        valid_arch("sparc")


@pytest.mark.parametrize("os_name", ["windows", "linux", "unix", "darwin"])
def test_valid_os_accepts_supported(os_name):
    assert valid_os(os_name) is None


def test_compute_os_invalid_os_raises():
    with pytest.raises(InvalidOSError, match="Invalid OS"):
        compute_os(TuningInput(os="xpto-wrong-os"), ExportCfg())


def test_compute_os_limits_shared_buffers_before_pg10():
    tuning_input = fake_input(os="windows", postgres_version=9.6)
    out = compute_os(tuning_input, new_export_cfg(tuning_input))
    assert out.memory.shared_buffers <= 512 * MB
    assert out.memory.shared_buffers == 512 * MB


def test_compute_os_windows_disables_io_concurrency():
    tuning_input = fake_input(os="windows", postgres_version=12.0)
    out = compute_os(tuning_input, new_export_cfg(tuning_input))
    assert out.storage.effective_io_concurrency == 0


def test_compute_os_no_limit_on_recent_versions():
    tuning_input = fake_input(total_ram=120 * GB)
    out = compute_os(tuning_input, new_export_cfg(tuning_input))
    assert out.memory.shared_buffers >= 25 * GB


def test_compute_profile_desktop_lowers_shared_buffers():
    tuning_input = fake_input(profile=Profile.DESKTOP, total_ram=4 * GB)
    out = compute_profile(tuning_input, new_export_cfg(tuning_input))
    assert out.memory.shared_buffers == (4 * GB) // 16


def test_compute_profile_web_keeps_shared_buffers():
    tuning_input = fake_input(total_ram=4 * GB)
    out = compute_profile(tuning_input, new_export_cfg(tuning_input))
    assert out.memory.shared_buffers == 1 * GB


def test_compute_storage():
    tuning_input = fake_input(disk_type="SSD")
    out_ssd = compute_storage(tuning_input, new_export_cfg(tuning_input))
    tuning_input.disk_type = "SAN"
    out_san = compute_storage(tuning_input, new_export_cfg(tuning_input))
    tuning_input.disk_type = "HDD"
    out_hdd = compute_storage(tuning_input, new_export_cfg(tuning_input))

    assert out_ssd.storage.random_page_cost <= 1.1
    assert out_san.storage.random_page_cost <= 1.1
    assert out_ssd.storage.effective_io_concurrency >= 200
    assert out_san.storage.effective_io_concurrency >= 300
    assert out_hdd.storage.effective_io_concurrency <= 2
    assert out_hdd.storage.random_page_cost == 4.0


def test_compute_version_removes_wal_sizes_before_9_5():
    tuning_input = fake_input(postgres_version=9.4)
    out = compute_version(tuning_input, new_export_cfg(tuning_input))
    assert out.checkpoint.min_wal_size == 0
    assert out.checkpoint.max_wal_size == 0


def test_compute_version_removes_checkpoint_segments_from_9_5():
    tuning_input = fake_input(postgres_version=9.5)
    out = compute_version(tuning_input, new_export_cfg(tuning_input))
    assert out.checkpoint.checkpoint_segments == 0


def test_compute_version_removes_workers_on_9_3():
    tuning_input = fake_input(postgres_version=9.3)
    out = compute_version(tuning_input, new_export_cfg(tuning_input))
    assert out.worker is None


def test_compute_version_removes_parallel_per_gather_before_9_6():
    tuning_input = fake_input(postgres_version=9.4)
    out = compute_version(tuning_input, new_export_cfg(tuning_input))
    assert out.worker.max_parallel_workers_per_gather == 0


def test_compute_version_removes_parallel_workers_before_10():
    tuning_input = fake_input(postgres_version=9.5)
    out = compute_version(tuning_input, new_export_cfg(tuning_input))
    assert out.worker.max_parallel_workers == 0


def test_compute_version_limits_shared_buffers_before_9_6():
    tuning_input = fake_input(postgres_version=9.5, total_ram=1 * TB)
    out = compute_version(tuning_input, new_export_cfg(tuning_input))
    assert out.memory.shared_buffers <= 8 * GB


def test_compute_version_keeps_everything_on_recent_versions():
    tuning_input = fake_input(postgres_version=14.0)
    out = compute_version(tuning_input, new_export_cfg(tuning_input))
    assert out.worker.max_parallel_workers == 2
    assert out.worker.max_parallel_workers_per_gather == 2
    assert out.checkpoint.min_wal_size == 2 * GB


def test_compute_runs_all_rules():
    out = compute(fake_input(os="windows"))
    assert out.storage.random_page_cost == 1.1
    assert out.storage.effective_io_concurrency == 0
    assert out.network.max_connections == 100
    assert out.checkpoint.checkpoint_segments == 0


def test_compute_wraps_rule_errors():
    with pytest.raises(InvalidArchError, match="could not process rule: Invalid Architecture"):
        compute(fake_input(arch="sparc"))


def test_compute_rejects_zero_connections():
    with pytest.raises(InvalidMaxConnectionsError):
        compute(fake_input(max_connections=0))