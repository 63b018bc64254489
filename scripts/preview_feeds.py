#!/usr/bin/env python
"""Vista rápida de los feeds NOAA antes de activar la sincronización.

Uso:
    python scripts/preview_feeds.py [--config config/sync.yaml] [--lines 3]
    python scripts/preview_feeds.py --since-minutes 60

No envía nada a Grafana ni toca el estado guardado.
"""
from __future__ import annotations

import argparse
import sys

import pandas as pd

from pipelines.noaa_sync.config import Settings
from pipelines.noaa_sync.line_protocol import encode_points
from pipelines.noaa_sync.noaa_client import NoaaClient, fetch_all
from pipelines.noaa_sync.sync import SERIES
from pipelines.noaa_sync.utils import now_ms
from pipelines.noaa_sync.window import slice_new


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--config", default="config/sync.yaml")
    ap.add_argument("--lines", type=int, default=3, help="Líneas codificadas a mostrar por serie")
    ap.add_argument("--since-minutes", type=float, default=0, help="Ventana hacia atrás (0 = todo el feed)")
    args = ap.parse_args()

    settings = Settings.load(args.config)
    since = int(now_ms() - args.since_minutes * 60 * 1000) if args.since_minutes > 0 else None
    raw = fetch_all(NoaaClient(), {s.name: settings.feed_urls.get(s.name) for s in SERIES})

    summary = []
    for s in SERIES:
        rows = raw.get(s.name)
        sliced = slice_new(rows, None, since)
        points = s.normalize(sliced)
        lines = encode_points(s.measurement, points)
        summary.append(
            {
                "series": s.name,
                "raw": len(rows) if isinstance(rows, list) else 0,
                "sliced": len(sliced),
                "points": len(points),
                "lines": len(lines),
                "first": sliced[0].get("time_tag") if sliced else None,
                "last": sliced[-1].get("time_tag") if sliced else None,
            }
        )
        print(f"\n=== {s.measurement} ===")
        for line in lines[-args.lines:] if args.lines > 0 else []:
            print(line)

    print("\n===== RESUMEN =====")
    print(pd.DataFrame(summary).to_string(index=False))
    sys.exit(0 if any(r["lines"] for r in summary) else 1)


if __name__ == "__main__":  # pragma: no cover
    main()
