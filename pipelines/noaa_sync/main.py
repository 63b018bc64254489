from __future__ import annotations

import argparse
import json
import sys
import uuid
from datetime import datetime, timezone

from .config import DEFAULT_CONFIG_PATH, Settings
from .grafana_client import GrafanaClient
from .noaa_client import NoaaClient
from .state import FsspecStateStore
from .sync import run_sync
from .utils import log


def cmd_run(settings: Settings, dry_run: bool = False) -> int:
    run_id = str(uuid.uuid4())
    t_start = datetime.now(timezone.utc)
    try:
        pusher = None
        if not dry_run:
            pusher = GrafanaClient(
                settings.grafana_url, settings.grafana_user, settings.grafana_api_key
            )
        result = run_sync(
            settings,
            FsspecStateStore(settings.state_url),
            NoaaClient(),
            pusher,
            run_id=run_id,
            dry_run=dry_run,
        )
    except Exception as e:
        log("error", run_id, action="run_failed", error=str(e), error_type=type(e).__name__)
        return 1
    log(
        "info",
        run_id,
        action="run_summary",
        pushed=result.pushed,
        committed=result.committed,
        duration_seconds=round((datetime.now(timezone.utc) - t_start).total_seconds(), 2),
    )
    print(json.dumps(result.to_dict(), indent=2))
    return 0


def cmd_state(settings: Settings) -> int:
    state = FsspecStateStore(settings.state_url).get()
    print(json.dumps(state.to_dict() if state else {}, indent=2))
    return 0


def cmd_serve(settings: Settings, host: str, port: int) -> int:
    import uvicorn

    from .service import build_app

    uvicorn.run(build_app(settings), host=host, port=port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sincronización incremental NOAA SWPC -> Grafana Cloud (Influx line protocol)"
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Ruta del YAML de configuración")
    sub = parser.add_subparsers(dest="command", required=True)

    p_run = sub.add_parser("run", help="Ejecuta una sincronización y termina")
    p_run.add_argument(
        "--dry-run",
        action="store_true",
        help="Calcula el batch pero no envía a Grafana ni guarda estado",
    )

    p_serve = sub.add_parser("serve", help="Servidor HTTP (/health, /run) con disparador periódico")
    p_serve.add_argument("--host", default="0.0.0.0")
    p_serve.add_argument("--port", type=int, default=8080)

    sub.add_parser("state", help="Muestra la marca de agua guardada")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.load(args.config)
    if args.command == "run":
        return cmd_run(settings, dry_run=args.dry_run)
    if args.command == "serve":
        return cmd_serve(settings, args.host, args.port)
    return cmd_state(settings)


if __name__ == "__main__":
    sys.exit(main())
