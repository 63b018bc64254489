"""One incremental NOAA -> Grafana sync run.

Order of operations per run:

    load state -> fetch (3 feeds, concurrent) -> slice -> normalize -> encode
    -> push (single batch) -> commit state

The watermark only moves forward after the push succeeds. A failed push or a
crash between push and commit means the next run re-sends part of the data
(the overlap window and an idempotent sink absorb that), never that data is
skipped.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .config import Settings
from .line_protocol import build_body, encode_points
from .noaa_client import fetch_all
from .normalize import MAP_MAG, MAP_WIND, CanonicalPoint, normalize_kp, normalize_points
from .state import StateStore, SyncState
from .utils import log, now_ms as _now_ms
from .window import latest_ts_ms, slice_new


@dataclass(frozen=True)
class Series:
    name: str
    state_key: str
    measurement: str
    normalize: Callable[[List[Dict[str, Any]]], List[CanonicalPoint]]


# El orden es el del batch: kp, wind, mag
SERIES = (
    Series("kp", "k", "spaceweather_kp", normalize_kp),
    Series(
        "wind",
        "wind",
        "solarwind_plasma",
        lambda rows: normalize_points(rows, MAP_WIND, tag_keys=("source",)),
    ),
    Series(
        "mag",
        "mag",
        "solarwind_mag",
        lambda rows: normalize_points(rows, MAP_MAG, tag_keys=("source",)),
    ),
)


@dataclass
class SyncResult:
    pushed: int
    committed: bool
    state: SyncState
    previous_state: SyncState
    counts: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pushed": self.pushed,
            "committed": self.committed,
            "state": self.state.to_dict(),
            "counts": dict(self.counts),
        }


def bootstrap_since_ms(last: SyncState, lookback_minutes: float, now_ms: int) -> Optional[int]:
    if not last.is_cold() or not lookback_minutes or lookback_minutes <= 0:
        return None
    return int(now_ms - lookback_minutes * 60 * 1000)


def _advance(previous: Optional[int], latest: Optional[int]) -> Optional[int]:
    # un re-slice dentro del solape no puede hacer retroceder la marca
    if latest is None:
        return previous
    if previous is None:
        return latest
    return max(previous, latest)


def run_sync(
    settings: Settings,
    store: StateStore,
    fetcher,
    pusher,
    now_ms: Optional[Callable[[], int]] = None,
    run_id: Optional[str] = None,
    dry_run: bool = False,
) -> SyncResult:
    run_id = run_id or str(uuid.uuid4())
    clock = now_ms or _now_ms
    last = store.get() or SyncState()
    log("info", run_id, action="run_start", state=last.to_dict(), dry_run=dry_run)

    since = bootstrap_since_ms(last, settings.bootstrap_lookback_minutes, clock())
    if since is not None:
        log("info", run_id, action="bootstrap", since_ms=since,
            lookback_minutes=settings.bootstrap_lookback_minutes)

    urls = settings.feed_urls
    raw = fetch_all(fetcher, {s.name: urls.get(s.name) for s in SERIES})

    lines: List[str] = []
    counts: Dict[str, int] = {}
    proposed: Dict[str, Optional[int]] = {}
    for s in SERIES:
        new_rows = slice_new(raw.get(s.name), last.get(s.state_key), since)
        points = s.normalize(new_rows)
        lines.extend(encode_points(s.measurement, points))
        counts[s.name] = len(points)
        proposed[s.state_key] = _advance(last.get(s.state_key), latest_ts_ms(new_rows))
    counts["encoded"] = len(lines)
    log("info", run_id, action="fetched", **counts)

    if not lines:
        log("info", run_id, action="noop", state=last.to_dict())
        return SyncResult(pushed=0, committed=False, state=last, previous_state=last, counts=counts)

    new_state = SyncState(**proposed)
    if dry_run:
        log("info", run_id, action="dry_run", lines=len(lines), proposed_state=new_state.to_dict())
        return SyncResult(pushed=0, committed=False, state=last, previous_state=last, counts=counts)

    pusher.push(build_body(lines))
    log("info", run_id, action="pushed", lines=len(lines))
    store.put(new_state)
    log("info", run_id, action="committed", state=new_state.to_dict())
    return SyncResult(pushed=len(lines), committed=True, state=new_state, previous_state=last, counts=counts)
