"""Byte sizes in the IEC units PostgreSQL uses for its memory settings."""

from __future__ import annotations

import math
from itertools import takewhile

B = 1
KB = 1 << 10
MB = 1 << 20
GB = 1 << 30
TB = 1 << 40
PB = 1 << 50
EB = 1 << 60

_PARSE_UNITS = {"kb": KB, "mb": MB, "gb": GB, "tb": TB}

_FORMAT_STEPS = (
    (KB, B, "B"),
    (MB, KB, "KB"),
    (GB, MB, "MB"),
    (TB, GB, "GB"),
    (1024 * TB, TB, "TB"),
)


def format_bytes(value: int) -> str:
    """Render a byte count the way postgresql.conf expects it (e.g. ``10GB``).

    Zero and negative values are printed as plain numbers; values of
    1024TB and above cannot be expressed and give an empty string.
    """
    value = int(value)
    if value <= 0:
        return str(value)
    for limit, unit, suffix in _FORMAT_STEPS:
        if value < limit:
            return f"{math.floor(value / unit + 0.5)}{suffix}"
    return ""


def parse_bytes(text: str) -> int:
    """Parse a PostgreSQL-like size such as ``455KB`` or ``5`` into bytes.

    Blank input, or input that does not start with a digit, parses as 0.
    Unknown units are taken as bytes.
    """
    if not text.strip():
        return 0

    number = "".join(takewhile(str.isdecimal, text))
    if not number:
        return 0
    if not number.isascii():
        raise ValueError(f"fail to parse float: invalid syntax {number!r}")

    unit = text[len(number):].strip().lower()
    return int(number) * _PARSE_UNITS.get(unit, B)


def marshal_bytes(value: int) -> bytes:
    """Encode a byte count as a JSON string holding its formatted size."""
    return f'"{format_bytes(value)}"'.encode()