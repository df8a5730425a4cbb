"""Generator of the parameter documentation file served by the API."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, Iterable, Sequence

import yaml

from pgconfig.docs import DocFile, ParamDoc, fetch_param_doc, format_ver
from pgconfig.inputs import SUPPORTED_VERSIONS, PgConfigError

log = logging.getLogger(__name__)

DEFAULT_TARGET_FILE = "./pg-docs.yml"

ALL_PARAMS = (
    "shared_buffers",
    "effective_cache_size",
    "work_mem",
    "maintenance_work_mem",
    "min_wal_size",
    "max_wal_size",
    "checkpoint_segments",
    "checkpoint_completion_target",
    "wal_buffers",
    "listen_addresses",
    "max_connections",
    "random_page_cost",
    "effective_io_concurrency",
    "max_worker_processes",
    "max_parallel_workers_per_gather",
    "max_parallel_workers",
)

Fetcher = Callable[[str, float], ParamDoc]


def build_doc_file(
    params: Iterable[str] = ALL_PARAMS,
    versions: Iterable[float] = SUPPORTED_VERSIONS,
    fetch: Fetcher = fetch_param_doc,
) -> DocFile:
    """Collect the documentation of every parameter in every version.

    Parameters whose page cannot be fetched (e.g. not present in that
    version) are skipped.
    """
    versions = list(versions)
    doc_file = DocFile(documentation={format_ver(ver): {} for ver in versions})

    for param in params:
        for ver in versions:
            try:
                doc = fetch(param, ver)
            except PgConfigError:
                doc = None
            print(f"Processing {param} from version {format_ver(ver)}... ", end="")
            if doc is None:
                print("SKIPPED")
                continue
            print()
            doc_file.documentation[format_ver(ver)][param] = doc

    return doc_file


def _version_key(version: str) -> tuple[int, float, str]:
    try:
        return (0, float(version), version)
    except ValueError:
        return (1, 0.0, version)


def save_doc_file(doc_file: DocFile, path: str | Path) -> None:
    """Write the documentation as a YAML document."""
    documentation = doc_file.to_dict()["documentation"]
    data = {
        "documentation": {
            version: dict(sorted(documentation[version].items()))
            for version in sorted(documentation, key=_version_key)
        }
    }
    text = yaml.safe_dump(
        data, sort_keys=False, default_flow_style=False, allow_unicode=True
    )
    try:
        with open(path, "w", encoding="utf-8") as handle:
            handle.write(f"---\n{text}\n")
    except OSError as exc:
        raise PgConfigError(f"could not create file: {exc}") from exc


def main(argv: Sequence[str] | None = None) -> int:
    """Fetch all parameter documentation and save it to the target file."""
    parser = argparse.ArgumentParser(
        prog="pgconfig-docgen", description="Generate the parameter documentation file"
    )
    parser.add_argument(
        "--target-file", "-target-file", default=DEFAULT_TARGET_FILE,
        help="default target doc file",
    )
    args = parser.parse_args(argv)

    doc_file = build_doc_file()
    try:
        save_doc_file(doc_file, args.target_file)
    except PgConfigError as exc:
        log.error("Could not save file: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())