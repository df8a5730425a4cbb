"""PostgreSQL parameter documentation: model, file format and scraper."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

import requests
import yaml
from bs4 import BeautifulSoup

from pgconfig.inputs import PgConfigError

DOC_BASE_URL = "https://postgresqlco.nf/en/doc/param"

_MAIN = "body > div.wrapper > div > section.content > div > div.col-md-8"
_PRIMARY = _MAIN + " > div.box.box-solid.box-primary"
_TITLE = (
    "body > div.wrapper > div > section.content-header > div > div.col-md-8"
    " > h1.parameter-title"
)
_TYPE = (
    _MAIN + " > div.box.box-info > div > table > tbody > tr:nth-child(1)"
    " > td:nth-child(2) > code"
)
_SHORT_DESC = _PRIMARY + " > div:nth-child(1) > strong"
_TEXT = _PRIMARY + " > div.box-body > p"
_DOC_URL = _PRIMARY + " > div:nth-child(3) > span:nth-child(1) > a"
_REC_HEADER = _MAIN + " > div:nth-child(3) > div.box-header.with-border > h4"
_REC_BODY = _MAIN + " > div:nth-child(3) > div.box-body"
_LIMIT_ROW = (
    "div.box-body:nth-child(1) > table:nth-child(1) > tbody:nth-child(1)"
    " > tr:nth-child({row}) > td:nth-child(2) > code:nth-child(1)"
)


@dataclass
class ParamDoc:
    """Documentation of one configuration parameter."""

    title: str = ""
    short_desc: str = ""
    text: list[str] = field(default_factory=list)
    doc_url: str = ""
    conf_url: str = ""
    recomendations_conf: str = ""
    param_type: str = ""
    default_value: str = ""
    min_value: str = ""
    max_value: str = ""
    blog_recomendations: dict[str, str] = field(default_factory=dict)
    abstract: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form, leaving out empty fields."""
        pairs = (
            ("name", self.title),
            ("short_desc", self.short_desc),
            ("details", list(self.text)),
            ("url", self.doc_url),
            ("conf_url", self.conf_url),
            ("recomendations_conf", self.recomendations_conf),
            ("type", self.param_type),
            ("default_value", self.default_value),
            ("min_value", self.min_value),
            ("max_value", self.max_value),
            ("recomendations", dict(self.blog_recomendations)),
            ("abstract", self.abstract),
        )
        return {key: value for key, value in pairs if value}

    def _to_file_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "title": self.title,
            "short_desc": self.short_desc,
            "details": list(self.text),
            "url": self.doc_url,
            "conf_url": self.conf_url,
            "recomendations_conf": self.recomendations_conf,
            "type": self.param_type,
            "default_value": self.default_value,
            "min_value": self.min_value,
            "max_value": self.max_value,
        }
        if self.blog_recomendations:
            out["recomendations"] = dict(self.blog_recomendations)
        if self.abstract:
            out["abstract"] = self.abstract
        return out


Doc = dict[str, ParamDoc]


@dataclass
class DocFile:
    """Parameter documentation keyed by PostgreSQL version, then parameter."""

    documentation: dict[str, Doc] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Return the structure written to the documentation YAML file."""
        return {
            "documentation": {
                version: {name: doc._to_file_dict() for name, doc in params.items()}
                for version, params in self.documentation.items()
            }
        }


def _scalar(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _param_doc_from_file(data: Mapping[str, Any]) -> ParamDoc:
    return ParamDoc(
        title=_scalar(data.get("title")),
        short_desc=_scalar(data.get("short_desc")),
        text=[_scalar(item) for item in data.get("details") or []],
        doc_url=_scalar(data.get("url")),
        conf_url=_scalar(data.get("conf_url")),
        recomendations_conf=_scalar(data.get("recomendations_conf")),
        param_type=_scalar(data.get("type")),
        default_value=_scalar(data.get("default_value")),
        min_value=_scalar(data.get("min_value")),
        max_value=_scalar(data.get("max_value")),
        blog_recomendations={
            _scalar(key): _scalar(value)
            for key, value in (data.get("recomendations") or {}).items()
        },
        abstract=_scalar(data.get("abstract")),
    )


def load_doc_file(data: str | bytes | Mapping[str, Any] | None) -> DocFile:
    """Build a DocFile from YAML text or from an already parsed mapping."""
    if isinstance(data, (str, bytes)):
        data = yaml.safe_load(data)
    data = data or {}
    documentation = {
        _scalar(version): {
            _scalar(name): _param_doc_from_file(doc or {})
            for name, doc in (params or {}).items()
        }
        for version, params in (data.get("documentation") or {}).items()
    }
    return DocFile(documentation=documentation)


def format_ver(ver: float) -> str:
    """Format a version the way PostgreSQL names it: ``9.6`` but ``10``."""
    if ver < 10:
        return f"{ver:.1f}"
    return f"{ver:.0f}"


def sanitize_default(value: str) -> str:
    """Keep the human-readable part of values like ``16 (128kB)``."""
    parts = value.split()
    if len(parts) > 1 and parts[1].startswith("("):
        return parts[1].replace("(", "").replace(")", "")
    return value


def _text(node) -> str:
    return node.get_text().strip()


def parse_param_page(html: str, conf_url: str) -> ParamDoc:
    """Extract a parameter's documentation from its documentation page."""
    soup = BeautifulSoup(html, "html.parser")
    out = ParamDoc(conf_url=conf_url)

    for node in soup.select(_TITLE):
        for child in node.find_all(recursive=False):
            child.decompose()
        out.title = _text(node)

    for node in soup.select(_TYPE):
        final_type = _text(node)
        out.param_type = "floating point" if final_type == "real" else final_type

    for node in soup.select(_SHORT_DESC):
        out.short_desc = _text(node)

    out.text.extend(_text(node) for node in soup.select(_TEXT))

    for node in soup.select(_DOC_URL):
        href = node.get("href")
        if href is not None:
            out.doc_url = href

    previous_section = ""
    for node in soup.select(_REC_HEADER):
        previous_section = _text(node)
    if previous_section == "Recommendations":
        for node in soup.select(_REC_BODY):
            out.recomendations_conf = _text(node)

    for row, attr in ((2, "default_value"), (3, "min_value"), (4, "max_value")):
        for node in soup.select(_LIMIT_ROW.format(row=row)):
            setattr(out, attr, sanitize_default(_text(node)))

    return out


def fetch_param_doc(param: str, ver: float) -> ParamDoc:
    """Download and parse the documentation page of a parameter."""
    conf_url = f"{DOC_BASE_URL}/{param}/{format_ver(ver)}/"
    try:
        response = requests.get(conf_url, timeout=30)
    except requests.RequestException as exc:
        raise PgConfigError(f"could not get URL: {exc}") from exc

    if response.status_code != 200:
        raise PgConfigError(
            f"status code error: {response.status_code} "
            f"{response.status_code} {response.reason}"
        )

    return parse_param_page(response.text, conf_url)