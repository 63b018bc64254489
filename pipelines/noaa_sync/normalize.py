from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping

import pandas as pd

from .utils import coerce_number, is_finite_number, to_ms, to_number

MAP_WIND = {
    "speed_km_s": "proton_speed",
    "density_cm3": "proton_density",
    "temperature_k": "proton_temperature",
}

MAP_MAG = {
    "bx_gsm_nt": "bx_gsm",
    "by_gsm_nt": "by_gsm",
    "bz_gsm_nt": "bz_gsm",
    "bt_nt": "bt",
}

# Las variantes del feed de Kp no coinciden en el nombre del campo
KP_FIELDS = ("kp", "kp_index")
KP_TAGS = {"source": "noaa"}
UNKNOWN_TAG = "unknown"


@dataclass(frozen=True)
class CanonicalPoint:
    tms: int
    fields: Dict[str, float]
    tags: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if not self.fields:
            raise ValueError(f"Punto sin campos numéricos (tms={self.tms})")


def pick_numeric_fields(row: Mapping[str, Any], field_map: Mapping[str, str]) -> Dict[str, float]:
    out = {}
    for dest, src in field_map.items():
        value = row.get(src)
        if is_finite_number(value):
            out[dest] = to_number(value)
    return out


def _tag_value(value: Any) -> str:
    return UNKNOWN_TAG if value is None else str(value)


def normalize_points(
    rows: Iterable[Any], field_map: Mapping[str, str], tag_keys: Iterable[str] = ()
) -> List[CanonicalPoint]:
    records = [r for r in rows or [] if isinstance(r, dict)]
    df = pd.DataFrame.from_records(records) if records else pd.DataFrame()
    if df.empty or "time_tag" not in df.columns:
        return []
    out = pd.DataFrame(index=df.index)
    out["tms"] = df["time_tag"].map(to_ms)
    for dest, src in field_map.items():
        if src in df.columns:
            out[dest] = df[src].map(coerce_number).astype("float64")
        else:
            out[dest] = math.nan
    tag_keys = list(tag_keys)
    for key in tag_keys:
        # tags tal cual vienen en el registro, sin pasar por los dtypes de pandas
        out[f"tag:{key}"] = [_tag_value(r.get(key)) for r in records]

    out = out[out["tms"].notna()]
    points = []
    for rec in out.to_dict("records"):
        fields = {k: rec[k] for k in field_map if not math.isnan(rec[k])}
        if not fields:
            continue
        tags = {k: rec[f"tag:{k}"] for k in tag_keys}
        points.append(CanonicalPoint(tms=int(rec["tms"]), fields=fields, tags=tags))
    return points


def normalize_kp(rows: Iterable[Any]) -> List[CanonicalPoint]:
    points = []
    for row in rows or []:
        if not isinstance(row, dict):
            continue
        tms = to_ms(row.get("time_tag"))
        if not tms:
            continue
        src = next((k for k in KP_FIELDS if is_finite_number(row.get(k))), None)
        if src is None:
            continue
        points.append(
            CanonicalPoint(tms=tms, fields={"kp": to_number(row[src])}, tags=dict(KP_TAGS))
        )
    return points
