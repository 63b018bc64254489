from __future__ import annotations

import json
import math
import numbers
import re
from datetime import datetime, timezone
from typing import Any

import numpy as np
import pandas as pd

NON_NUMERIC_TEXT = {"", "null", "nan"}
# solo fechas de calendario; fuera "now", "today" y similares
CALENDAR_TEXT = re.compile(r"\s*[+-]?\d")


def now_utc():
    return datetime.now(timezone.utc)


def now_ms() -> int:
    return int(now_utc().timestamp() * 1000)


def to_ms(value: Any) -> int | None:
    """Parse a feed timestamp into epoch milliseconds.

    Naive timestamps (NOAA publishes ``2024-05-10 17:00:00.000``) are taken as UTC.
    Returns None for anything pandas cannot parse and for the epoch itself,
    which only shows up in malformed records.
    """
    if value is None or isinstance(value, (dict, list, tuple, set, bool)):
        return None
    text = str(value).strip()
    if not CALENDAR_TEXT.match(text):
        return None
    try:
        ts = pd.Timestamp(text)
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    ms = ts.value // 1_000_000
    return ms or None


def is_real_number(value: Any) -> bool:
    # bool es subclase de int; numpy.bool_ no es numbers.Real
    return isinstance(value, numbers.Real) and not isinstance(value, (bool, np.bool_))


def is_finite_number(value: Any) -> bool:
    if value is None:
        return False
    if is_real_number(value):
        return math.isfinite(value)
    if not isinstance(value, str):
        return False
    text = value.strip().lower()
    # float() admite "1_000", la gramática numérica del feed no
    if text in NON_NUMERIC_TEXT or "_" in text:
        return False
    try:
        return math.isfinite(float(text))
    except ValueError:
        return False


def to_number(value: Any) -> float:
    if is_real_number(value):
        return float(value)
    return float(str(value).strip())


def coerce_number(value: Any) -> float:
    """Finite float or NaN, for use with ``Series.map``."""
    return to_number(value) if is_finite_number(value) else math.nan


def log(level: str, run_id: str | None = None, **fields):
    rec = {
        "ts": now_utc().isoformat().replace("+00:00", "Z"),
        "level": level,
    }
    if run_id:
        rec["run_id"] = run_id
    rec.update(fields)
    print(json.dumps(rec, default=str), flush=True)
