"""HTTP API that serves tuning recommendations as JSON or configuration text."""

from __future__ import annotations

import argparse
import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence

import yaml
from flask import Flask, Response, request

from pgconfig.category import SliceOutput
from pgconfig.docs import DocFile, ParamDoc, format_ver, load_doc_file
from pgconfig.formats import ExportFormat, export_conf
from pgconfig.inputs import PG_VERSION, PgConfigError, TuningInput
from pgconfig.profile import ALL_PROFILES, Profile
from pgconfig.rules import compute
from pgconfig.bytesize import parse_bytes
from pgconfig.version import pretty

log = logging.getLogger(__name__)

JSONAPI_VERSION = "1.0"
COPYRIGHT = "PGConfig API"

_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1
_CORS_METHODS = "GET,POST,HEAD,PUT,DELETE,PATCH"


@dataclass
class _RuleParameter:
    abstract: str = ""
    recomendations: dict[str, str] = field(default_factory=dict)
    formula: str = ""


Rules = dict[str, dict[str, _RuleParameter]]


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _rule_parameter(value: Any) -> _RuleParameter:
    if isinstance(value, _RuleParameter):
        return value
    if value is None:
        return _RuleParameter()
    if not isinstance(value, Mapping):
        raise PgConfigError("could not parse rules config file: parameter is not a mapping")
    recomendations = value.get("recomendations") or {}
    if not isinstance(recomendations, Mapping):
        raise PgConfigError("could not parse rules config file: invalid recomendations")
    return _RuleParameter(
        abstract=_text(value.get("abstract")),
        recomendations={_text(k): _text(v) for k, v in recomendations.items()},
        formula=_text(value.get("formula")),
    )


def _normalize_categories(categories: Any) -> Rules:
    if categories is None:
        return {}
    if not isinstance(categories, Mapping):
        raise PgConfigError("could not parse rules config file: categories is not a mapping")
    out: Rules = {}
    for cat_name, params in categories.items():
        if params is None:
            out[_text(cat_name)] = {}
            continue
        if not isinstance(params, Mapping):
            raise PgConfigError("could not parse rules config file: category is not a mapping")
        out[_text(cat_name)] = {
            _text(name): _rule_parameter(param) for name, param in params.items()
        }
    return out


def load_rules(path: str | Path) -> Rules:
    """Read the rules file: parameter abstracts and recommendations per category."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise PgConfigError(f"could not open rules config file: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise PgConfigError(f"could not parse rules config file: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise PgConfigError("could not parse rules config file: not a mapping")
    return _normalize_categories(data.get("categories"))


def load_docs(path: str | Path) -> DocFile:
    """Read the parameter documentation file."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise PgConfigError(f"could not open pg docs file: {exc}") from exc
    try:
        return load_doc_file(text)
    except (yaml.YAMLError, AttributeError, TypeError) as exc:
        raise PgConfigError(f"could not parse pg docs file: {exc}") from exc


@dataclass
class _ConfigArgs:
    pg_version: float
    total_ram: int
    max_conn: int
    env_name: Profile | str
    os_type: str
    arch: str
    drive_type: str
    cpu_count: int
    out_format: ExportFormat | str
    show_doc: bool
    include_pgbadger: bool
    log_format: str


def _query(name: str, default: str) -> str:
    return request.args.get(name, "") or default


def _parse_float(value: str) -> float:
    invalid = ValueError(f'strconv.ParseFloat: parsing "{value}": invalid syntax')
    if value != value.strip() or "_" in value:
        raise invalid
    try:
        return float(value)
    except ValueError:
        raise invalid from None


def _parse_int(value: str) -> int:
    if not _INT_RE.fullmatch(value):
        raise ValueError(f'strconv.Atoi: parsing "{value}": invalid syntax')
    number = int(value)
    if not _INT64_MIN <= number <= _INT64_MAX:
        raise ValueError(f'strconv.Atoi: parsing "{value}": value out of range')
    return number


def _parse_config_args() -> _ConfigArgs:
    try:
        pg_version = _parse_float(_query("pg_version", PG_VERSION))
    except ValueError as exc:
        raise PgConfigError(f"could not parse pg version: {exc}") from exc
    try:
        max_conn = _parse_int(_query("max_connections", "100"))
    except ValueError as exc:
        raise PgConfigError(f"could not parse max connections: {exc}") from exc
    try:
        cpu_count = _parse_int(_query("cpus", "2"))
    except ValueError as exc:
        raise PgConfigError(f"could not parse cpus: {exc}") from exc
    try:
        total_ram = parse_bytes(_query("total_ram", "2GB"))
    except ValueError as exc:
        raise PgConfigError(f"could not parse total ram: {exc}") from exc

    env_raw = _query("environment_name", "WEB")
    try:
        env_name: Profile | str = Profile(env_raw)
    except ValueError:
        env_name = env_raw

    format_raw = _query("format", "json")
    try:
        out_format: ExportFormat | str = ExportFormat(format_raw)
    except ValueError:
        out_format = format_raw

    return _ConfigArgs(
        pg_version=pg_version,
        total_ram=total_ram,
        max_conn=max_conn,
        env_name=env_name,
        os_type=_query("os_type", "linux"),
        arch=_query("arch", "amd64"),
        drive_type=_query("drive_type", "HDD"),
        cpu_count=cpu_count,
        out_format=out_format,
        show_doc=_query("show_doc", "false") == "true",
        include_pgbadger=_query("include_pgbadger", "false") == "true",
        log_format=_query("log_format", "stderr"),
    )


def _process_config(args: _ConfigArgs, rules: Rules, pg_docs: DocFile) -> list[SliceOutput]:
    tuning_input = TuningInput(
        os=args.os_type,
        arch=args.arch,
        total_ram=args.total_ram,
        total_cpu=args.cpu_count,
        profile=args.env_name,
        disk_type=args.drive_type,
        max_connections=args.max_conn,
        postgres_version=args.pg_version,
    )
    output = compute(tuning_input).to_slice(
        args.pg_version, args.include_pgbadger, args.log_format
    )

    if args.show_doc:
        doc = pg_docs.documentation.get(format_ver(args.pg_version), {})
        for cat in output:
            cat_rules = rules.get(cat.name, {})
            for param in cat.parameters:
                param_docs = doc.get(param.name) or ParamDoc()
                param_rule = cat_rules.get(param.name) or _RuleParameter()
                param.documentation = ParamDoc(
                    title=param_docs.title,
                    short_desc=param_docs.short_desc,
                    text=list(param_docs.text),
                    doc_url=param_docs.doc_url,
                    conf_url=param_docs.conf_url,
                    recomendations_conf=param_docs.recomendations_conf,
                    param_type=param_docs.param_type,
                    default_value=param_docs.default_value,
                    min_value=param_docs.min_value,
                    max_value=param_docs.max_value,
                    blog_recomendations=dict(param_rule.recomendations),
                    abstract=param_rule.abstract,
                )
    return output


def _base_url() -> str:
    return request.host_url.rstrip("/")


def _original_url() -> str:
    query = request.query_string.decode("latin-1")
    return f"{request.path}?{query}" if query else request.path


def _self_link() -> str:
    return f"{_base_url()}{_original_url()}"


def _slices_to_data(output: Sequence[SliceOutput]) -> list[dict[str, Any]] | None:
    return [cat.to_dict() for cat in output] or None


def _v1_response(data: Any) -> dict[str, Any]:
    return {
        "data": data,
        "jsonapi": {"version": JSONAPI_VERSION},
        "links": {"self": _self_link()},
        "meta": {
            "arguments": request.args.to_dict(flat=False),
            "copyright": COPYRIGHT,
            "version": pretty(),
        },
    }


def _json_response(payload: Any, status: int = 200) -> Response:
    return Response(
        json.dumps(payload, separators=(",", ":")),
        status=status,
        mimetype="application/json",
    )


def _http_error_code(exc: Exception) -> int | None:
    """Status code of an HTTP error raised by the framework, or None."""
    code = getattr(exc, "code", None)
    if isinstance(code, int) and hasattr(exc, "get_response"):
        return code
    return None


def create_app(rules: Mapping[str, Any] | None = None,
               pg_docs: DocFile | Mapping[str, Any] | None = None) -> Flask:
    """Build the web application serving the v1 tuning endpoints."""
    all_rules = _normalize_categories(rules)
    if pg_docs is None:
        docs = DocFile()
    elif isinstance(pg_docs, DocFile):
        docs = pg_docs
    else:
        docs = load_doc_file(pg_docs)

    app = Flask(__name__)
    app.url_map.strict_slashes = False

    @app.before_request
    def _preflight() -> Response | None:
        if request.method == "OPTIONS" and request.headers.get("Access-Control-Request-Method"):
            response = Response(status=204)
            response.headers["Access-Control-Allow-Methods"] = _CORS_METHODS
            requested = request.headers.get("Access-Control-Request-Headers")
            if requested:
                response.headers["Access-Control-Allow-Headers"] = requested
            return response
        return None

    @app.after_request
    def _cors_and_log(response: Response) -> Response:
        response.headers["Access-Control-Allow-Origin"] = "*"
        log.info("%s - %s %s", response.status_code, request.method, request.path)
        return response

    @app.errorhandler(Exception)
    def _handle_error(exc: Exception) -> Response:
        http_code = _http_error_code(exc)
        if http_code is not None:
            code = http_code
            if code == 404:
                message = f"Cannot {request.method} {request.path}"
            else:
                message = str(getattr(exc, "name", exc))
        else:
            code = 500
            message = str(exc)
            if not isinstance(exc, PgConfigError):
                log.exception("unhandled error")
        return _json_response(
            {
                "errors": {"code": code, "message": message},
                "links": {"self": _self_link()},
                "jsonapi": {"version": JSONAPI_VERSION},
            },
            status=code,
        )

    def _parse_args() -> _ConfigArgs:
        try:
            return _parse_config_args()
        except PgConfigError as exc:
            raise PgConfigError(f"could not parse args: {exc}") from exc

    def _process(args: _ConfigArgs) -> list[SliceOutput]:
        try:
            return _process_config(args, all_rules, docs)
        except PgConfigError as exc:
            raise PgConfigError(f"could not process config: {exc}") from exc

    @app.get("/v1/tuning/list-environments")
    def list_environments() -> Response:
        return _json_response(_v1_response([p.value for p in ALL_PROFILES]))

    @app.get("/v1/tuning/get-config")
    def get_config() -> Response:
        args = _parse_args()
        final_data = _process(args)
        if args.out_format != ExportFormat.JSON:
            extra = [f"{_self_link()}\n"]
            text = export_conf(args.out_format, final_data, args.pg_version, extra)
            return Response(text, content_type="text/plain; charset=utf-8")
        return _json_response(_v1_response(_slices_to_data(final_data)))

    @app.get("/v1/tuning/get-config-all-environments")
    def get_config_all_environments() -> Response:
        args = _parse_args()
        args.include_pgbadger = False
        out = []
        for profile in ALL_PROFILES:
            args.env_name = profile
            final_data = _process(args)
            out.append(
                {"environment": profile.value, "configuration": _slices_to_data(final_data)}
            )
        return _json_response(_v1_response(out))

    return app


def main(argv: Sequence[str] | None = None) -> int:
    """Load the rules and documentation files and serve the API."""
    parser = argparse.ArgumentParser(prog="pgconfig-api", description="PGConfig API server")
    parser.add_argument("--port", "-port", type=int, default=3000, help="Listen port")
    parser.add_argument("--rules-file", "-rules-file", default="./rules.yml",
                        help="Rules file")
    parser.add_argument("--docs-file", "-docs-file", default="./pg-docs.yml",
                        help="Documentation file")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    try:
        rules = load_rules(args.rules_file)
        pg_docs = load_docs(args.docs_file)
    except PgConfigError as exc:
        log.error("%s", exc)
        return 1

    log.info("PGConfig API - %s", pretty())
    app = create_app(rules, pg_docs)
    try:
        app.run(host="0.0.0.0", port=args.port)
    except OSError as exc:
        log.error("[ERR] not running API: %s", exc)
    return 0