# pgconfig

A PostgreSQL tuning calculator. You describe a server (memory, CPUs, disk
type, operating system, architecture, expected connections, PostgreSQL
version and workload profile) and it suggests settings for memory,
checkpoints, networking, storage and worker processes.

The calculation is available three ways:

- `pgconfigctl`: a command-line tool that prints a ready-to-use configuration.
- `pgconfig-api`: an HTTP API that serves the suggestions as JSON or as
  configuration text.
- `pgconfig-docgen`: a generator that downloads parameter documentation and
  writes the documentation file the API can attach to its answers.

## Installation

```
pip install .
```

For the test suite:

```
pip install .[test]
pytest
```

## Command-line tool

Tune the machine you are on. Total memory, CPU count, operating system and
architecture are detected automatically:

```
pgconfigctl tune
```

Describe another server:

```
pgconfigctl tune --ram 16GB --cpus 8 --max-connections 200 \
    --profile OLTP --disk-type SSD --version 14 --os linux --arch amd64
```

Options of `tune`:

- `--os`: `linux`, `windows`, `unix` or `darwin`.
- `--arch`: `386`, `i686`, `amd64`, `x86-64`, `arm` or `arm64`. On `386` and
  `i686` the memory settings are capped at 4GB.
- `-D`, `--disk-type`: `SSD` (default), `HDD` or `SAN`; any other value is
  treated like a plain disk.
- `--version`: PostgreSQL version as a number, default `14.0`.
- `-c`, `--cpus`: total CPU cores.
- `-M`, `--max-connections`: expected connections, default `100`.
- `--ram`: total memory, as a number of bytes or with a `KB`, `MB`, `GB` or
  `TB` suffix.
- `--profile`: tuning profile, default `WEB`. The value is upper-cased before
  it is matched, so on the command line only `WEB`, `OLTP` and `DW` are
  accepted; `Mixed` and `Desktop` can be used through the API or the library.
- `-F`, `--format`: output format (case does not matter):
  - `conf` or `unix`: `postgresql.conf` lines (the default)
  - `alter_system` or `sql`: `ALTER SYSTEM` statements
  - `stackgres`, `sg`, `sgpostgresconfig` or `yaml`: a StackGres
    `SGPostgresConfig` resource
  - `json`
- `-B`, `--include-pgbadger`: add logging settings for pgbadger.
- `-L`, `--log-format`: log format for those settings, `stderr`, `csvlog`
  (default) or `syslog`.

Global options, given before the subcommand:

- `--config PATH`: a YAML file to announce as the configuration file. Without
  it, `~/.pgconfigctl.json`, `.yaml` or `.yml` is looked for. The file is only
  checked to be readable YAML and reported with `Using config file:`; its
  contents are not applied to any option.

Show the version:

```
pgconfigctl version
```

## HTTP API

Start the server. It reads a rules file and a documentation file at start-up
and exits with status 1 if either cannot be read:

```
pgconfig-api --port 3000 --rules-file ./rules.yml --docs-file ./pg-docs.yml
```

The defaults are port 3000, `./rules.yml` and `./pg-docs.yml`.

Endpoints:

- `GET /v1/tuning/list-environments`: the supported profiles.
- `GET /v1/tuning/get-config`: a configuration for one profile. Query
  parameters, with their defaults: `pg_version` (14), `total_ram` (2GB),
  `max_connections` (100), `environment_name` (WEB), `os_type` (linux),
  `arch` (amd64), `drive_type` (HDD), `cpus` (2), `format` (json),
  `show_doc` (false), `include_pgbadger` (false), `log_format` (stderr).
  With a `format` other than `json` the answer is configuration text.
- `GET /v1/tuning/get-config-all-environments`: a JSON configuration for
  every profile, without the pgbadger settings.

JSON answers carry `data`, `jsonapi`, `links` and `meta` members. Errors come
back as JSON with an `errors` member holding the status code and message.
All answers allow cross-origin requests.

With `show_doc=true` every parameter gets a `documentation` member built from
the documentation file (for the requested version) and from the rules file.
The rules file is YAML of this shape:

```yaml
categories:
  memory_related:
    shared_buffers:
      abstract: "..."
      recomendations:
        "Some article": "..."
```

For example:

```
curl 'http://localhost:3000/v1/tuning/get-config?total_ram=8GB&format=conf'
```

The application can also be built in code with `pgconfig.api.create_app`,
passing the rules mapping and a `DocFile` (see `load_rules` and `load_docs`).

## Generating the documentation file

`pgconfig-docgen` downloads the documentation page of each tuned parameter
for every supported PostgreSQL version (9.1 to 14), prints its progress and
writes the result as YAML. Pages that cannot be fetched are reported as
`SKIPPED`:

```
pgconfig-docgen --target-file ./pg-docs.yml
```

## Using it as a library

```python
from pgconfig.bytesize import parse_bytes
from pgconfig.formats import ExportFormat, export_conf
from pgconfig.inputs import TuningInput
from pgconfig.profile import Profile
from pgconfig.rules import compute

tuning_input = TuningInput(
    os="linux",
    arch="amd64",
    total_ram=parse_bytes("8GB"),
    total_cpu=4,
    profile=Profile.WEB,
    disk_type="SSD",
    max_connections=100,
    postgres_version=14.0,
)
report = compute(tuning_input).to_slice(14.0, False, "stderr")
print(export_conf(ExportFormat.CONFIG, report, 14.0, None))
```

`compute` raises `InvalidOSError` or `InvalidArchError` for an unknown
operating system or architecture, and `InvalidMaxConnectionsError` when
`max_connections` is zero; all are subclasses of
`pgconfig.inputs.PgConfigError`.

Other building blocks: `pgconfig.bytesize` (`format_bytes`, `parse_bytes`),
`pgconfig.formats` (`alter_system`, `config_file`, `json_file`,
`sg_config_file`) and `pgconfig.docs` (`parse_param_page`,
`fetch_param_doc`, `load_doc_file`).

## What it does not do

- The HTTP API serves no interactive API documentation pages; only the three
  `/v1/tuning/` endpoints exist.
- The CPU count is recorded in the input but no rule uses it yet.
- `pgconfigctl` does not read settings from its configuration file.