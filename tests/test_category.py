import pytest

from pgconfig.bytesize import GB, TB
from pgconfig.category import (
    PGBADGER_CONFIG,
    ExportCfg,
    ParamSliceOutput,
    SliceOutput,
    checkpoint_cfg,
    memory_cfg,
    network_cfg,
    new_export_cfg,
    storage_cfg,
    worker_cfg,
)
from pgconfig.docs import ParamDoc
from pgconfig.inputs import InvalidMaxConnectionsError, TuningInput
from pgconfig.profile import Profile


def make_input(**kwargs):
    base = dict(
        os="linux",
        arch="amd64",
        total_ram=4 * GB,
        total_cpu=1,
        profile=Profile.WEB,
        disk_type="SSD",
        max_connections=100,
        postgres_version=12.2,
    )
    base.update(kwargs)
    return TuningInput(**base)


def names(slices):
    return [s.name for s in slices]


def param_names(slices, category):
    for s in slices:
        if s.name == category:
            return [p.name for p in s.parameters]
    raise KeyError(category)


def test_memory_web_splits_all_ram():
    cfg = memory_cfg(make_input(total_ram=4 * GB))
    assert cfg.shared_buffers + cfg.effective_cache_size == 4 * GB
    assert cfg.effective_cache_size == 3 * cfg.shared_buffers


def test_memory_mixed_uses_half_ram():
    cfg = memory_cfg(make_input(total_ram=8 * GB, profile=Profile.MIXED))
    assert cfg.shared_buffers + cfg.effective_cache_size == 4 * GB


def test_memory_accepts_plain_profile_string():
    assert memory_cfg(make_input(profile="Mixed")) == memory_cfg(
        make_input(profile=Profile.MIXED)
    )


def test_work_mem_shrinks_with_more_connections():
    few = memory_cfg(make_input(max_connections=10))
    many = memory_cfg(make_input(max_connections=1000))
    assert many.work_mem < few.work_mem
    assert few.shared_buffers == many.shared_buffers


def test_zero_connections_rejected():
    with pytest.raises(InvalidMaxConnectionsError):
        memory_cfg(make_input(max_connections=0))


def test_defaults_of_fixed_categories():
    tuning_input = make_input(max_connections=250)
    assert checkpoint_cfg(tuning_input) == checkpoint_cfg(make_input())
    assert checkpoint_cfg(tuning_input).wal_buffers == -1
    assert checkpoint_cfg(tuning_input).checkpoint_segments == 16
    assert network_cfg(tuning_input).max_connections == 250
    assert network_cfg(tuning_input).listen_addresses == "*"
    assert storage_cfg(tuning_input).effective_io_concurrency == 1
    assert worker_cfg(tuning_input).max_worker_processes == 8


def test_to_slice_category_order():
    out = new_export_cfg(make_input()).to_slice(14.0, False, "stderr")
    assert names(out) == [
        "memory_related",
        "checkpoint_related",
        "network_related",
        "storage_type",
        "worker_related",
    ]
    assert out[-1].description == "Worker Processes Configuration"


def test_checkpoint_values_on_recent_version():
    out = new_export_cfg(make_input()).to_slice(14.0, False, "stderr")
    checkpoint = next(s for s in out if s.name == "checkpoint_related")
    assert [(p.name, p.value, p.format) for p in checkpoint.parameters] == [
        ("min_wal_size", "2GB", "Byte"),
        ("max_wal_size", "3GB", "Byte"),
        ("checkpoint_completion_target", "0.9", "float32"),
        ("wal_buffers", "-1", "Byte"),
    ]


def test_checkpoint_segments_only_until_9_4():
    cfg = new_export_cfg(make_input())
    old = param_names(cfg.to_slice(9.4, False, "stderr"), "checkpoint_related")
    new = param_names(cfg.to_slice(9.5, False, "stderr"), "checkpoint_related")
    assert "checkpoint_segments" in old
    assert "min_wal_size" not in old and "max_wal_size" not in old
    assert "checkpoint_segments" not in new
    assert "min_wal_size" in new


@pytest.mark.parametrize(
    "version, expected",
    [
        (9.4, ["max_worker_processes"]),
        (9.5, ["max_worker_processes"]),
        (9.6, ["max_worker_processes", "max_parallel_workers_per_gather"]),
        (
            10.0,
            [
                "max_worker_processes",
                "max_parallel_workers_per_gather",
                "max_parallel_workers",
            ],
        ),
    ],
)
def test_worker_params_by_version(version, expected):
    out = new_export_cfg(make_input()).to_slice(version, False, "stderr")
    assert param_names(out, "worker_related") == expected


def test_worker_category_dropped_below_9_4():
    out = new_export_cfg(make_input()).to_slice(9.3, False, "stderr")
    assert "worker_related" not in names(out)


def test_removed_category_is_skipped():
    cfg = new_export_cfg(make_input())
    cfg.worker = None
    out = cfg.to_slice(14.0, False, "stderr")
    assert "worker_related" not in names(out)
    assert len(out) == 4


def test_network_and_storage_formatting():
    out = new_export_cfg(make_input()).to_slice(14.0, False, "stderr")
    network = next(s for s in out if s.name == "network_related")
    storage = next(s for s in out if s.name == "storage_type")
    assert [(p.value, p.format) for p in network.parameters] == [
        ("*", "string"),
        ("100", "int"),
    ]
    assert storage.parameters[0].value == "4.0"
    assert storage.parameters[1].format == "int"


def test_memory_values_are_formatted_bytes():
    cfg = new_export_cfg(make_input(total_ram=1 * TB))
    memory = cfg.to_slice(14.0, False, "stderr")[0]
    assert memory.parameters[0].name == "shared_buffers"
    assert memory.parameters[0].value.endswith("GB")
    assert all(p.format == "Byte" for p in memory.parameters)


@pytest.mark.parametrize(
    "log_format, category",
    [("stderr", "stder_config"), ("syslog", "syslog_config"), ("csvlog", "csv_config")],
)
def test_pgbadger_appends_log_categories(log_format, category):
    out = new_export_cfg(make_input()).to_slice(14.0, True, log_format)
    assert names(out)[-2:] == ["log_config", category]


def test_unknown_log_format_appends_empty_category():
    out = new_export_cfg(make_input()).to_slice(14.0, True, "nope")
    assert out[-1].name == ""
    assert out[-1].parameters == []


def test_pgbadger_output_is_a_copy():
    cfg = new_export_cfg(make_input())
    out = cfg.to_slice(14.0, True, "csvlog")
    assert out[-2].parameters[0].name == "logging_collector"
    out[-2].parameters[0].value = "off"
    again = cfg.to_slice(14.0, True, "csvlog")
    assert again[-2].parameters[0].value == "on"
    assert PGBADGER_CONFIG.parameters[0].value == "on"


def test_param_to_dict_omits_empty():
    param = ParamSliceOutput(name="work_mem", value="4MB", format="Byte")
    assert param.to_dict() == {"name": "work_mem", "config_value": "4MB", "format": "Byte"}


def test_param_to_dict_with_comment_and_doc():
    doc = ParamDoc(title="work_mem", short_desc="memory per sort")
    param = ParamSliceOutput(
        name="work_mem", value="4MB", format="Byte", documentation=doc, comment="note"
    )
    data = param.to_dict()
    assert data["comment"] == "note"
    assert data["documentation"] == doc.to_dict()


def test_slice_to_dict():
    cat = SliceOutput(
        name="network_related",
        description="Network Related Configuration",
        parameters=[ParamSliceOutput(name="listen_addresses", value="*", format="string")],
    )
    assert cat.to_dict() == {
        "category": "network_related",
        "description": "Network Related Configuration",
        "parameters": [
            {"name": "listen_addresses", "config_value": "*", "format": "string"}
        ],
    }
    assert SliceOutput(name="", description="").to_dict()["parameters"] is None


def test_empty_export_cfg_gives_nothing():
    assert ExportCfg(None, None, None, None, None).to_slice(14.0, False, "stderr") == []