"""Incremental window selection over raw feed rows.

A series resumes from its last committed watermark minus a fixed overlap, so
observations that NOAA publishes late or revises are picked up again on the
next run. Only on a cold start (no watermark for any series) the optional
bootstrap cutoff applies.
"""

from __future__ import annotations

from typing import Any, Dict, List

import pandas as pd

from .utils import to_ms

OVERLAP_MS = 10 * 60 * 1000


def cutoff_ms(last_ts_ms: int | None, bootstrap_since_ms: int | None) -> int | None:
    if last_ts_ms is not None:
        return last_ts_ms - OVERLAP_MS
    return bootstrap_since_ms


def slice_new(
    rows: Any, last_ts_ms: int | None, bootstrap_since_ms: int | None = None
) -> List[Dict[str, Any]]:
    """Return rows strictly newer than the cutoff, deduplicated and sorted.

    Dedupe key is the raw ``time_tag`` text (first occurrence wins), not the
    parsed instant: two spellings of the same instant are both kept.
    """
    if not isinstance(rows, list):
        return []
    records = [r for r in rows if isinstance(r, dict)]
    if not records:
        return []
    df = pd.DataFrame(
        {
            "row": pd.Series(records, dtype=object),
            "time_tag": pd.Series([r.get("time_tag") for r in records], dtype=object),
        }
    )
    df["tms"] = df["time_tag"].map(to_ms)
    df = df[df["tms"].notna()]
    since = cutoff_ms(last_ts_ms, bootstrap_since_ms)
    if since is not None:
        df = df[df["tms"] > since]
    if df.empty:
        return []
    df = df.drop_duplicates(subset="time_tag", keep="first")
    df = df.sort_values("tms", kind="stable")
    return df["row"].tolist()


def latest_ts_ms(rows: List[Dict[str, Any]]) -> int | None:
    tms = [t for t in (to_ms(r.get("time_tag")) for r in rows or []) if t]
    return max(tms) if tms else None
