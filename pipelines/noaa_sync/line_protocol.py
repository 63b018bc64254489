"""Influx line protocol encoding.

    <measurement>[,<tag_key>=<tag_value>...] <field_key>=<value>[,...] <timestamp_ns>

Points carry milliseconds internally; the wire wants nanoseconds.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, List, Mapping

from .normalize import CanonicalPoint
from .utils import is_real_number

NS_PER_MS = 1_000_000


def _escape(text: Any, specials: str) -> str:
    # la barra invertida primero, si no se duplican los escapes siguientes
    out = str(text).replace("\\", "\\\\")
    for ch in specials:
        out = out.replace(ch, "\\" + ch)
    return out


def escape_measurement(name: Any) -> str:
    return _escape(name, ", ")


def escape_tag(text: Any) -> str:
    """Escape a tag key, tag value or field key."""
    return _escape(text, ", =")


def format_field_value(value: Any) -> str | None:
    if not is_real_number(value) or not math.isfinite(value):
        return None
    # repr(float) es la representación más corta que vuelve al mismo float
    return repr(float(value))


def encode_line(
    measurement: str, tags: Mapping[str, Any] | None, fields: Mapping[str, Any] | None, tms: int
) -> str | None:
    tag_str = ",".join(f"{escape_tag(k)}={escape_tag(v)}" for k, v in (tags or {}).items())
    parts = []
    for k, v in (fields or {}).items():
        rendered = format_field_value(v)
        if rendered is not None:
            parts.append(f"{escape_tag(k)}={rendered}")
    if not parts:
        return None
    ts_ns = int(tms) * NS_PER_MS
    head = escape_measurement(measurement) + ("," + tag_str if tag_str else "")
    return f"{head} {','.join(parts)} {ts_ns}"


def encode_points(measurement: str, points: Iterable[CanonicalPoint]) -> List[str]:
    lines = []
    for p in points:
        line = encode_line(measurement, p.tags, p.fields, p.tms)
        if line:
            lines.append(line)
    return lines


def build_body(lines: List[str]) -> str:
    return "\n".join(lines) + "\n"
