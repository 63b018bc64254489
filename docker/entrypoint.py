#!/usr/bin/env python
"""Universal entrypoint.
Usage examples inside container:
  # Default (no args) -> show help
  docker run image

  # One sync run (cron / Cloud Scheduler job)
  docker run image sync

  # Dry run: fetch + encode, no push, no state write
  docker run image sync --dry-run

  # HTTP service with periodic trigger (/health, /run?token=...)
  docker run -p 8080:8080 image serve --port 8080

  # Inspect stored watermark
  docker run image state
"""
from __future__ import annotations
import os
import sys
import subprocess

BASE_CMD = [sys.executable, "-m", "pipelines.noaa_sync.main"]

COMMANDS = {
    "sync": "run",
    "serve": "serve",
    "state": "state",
}

def main():
    args = sys.argv[1:]
    if not args:
        print("Usage: sync|serve|state [args...]")
        print("Examples:")
        print("  sync --dry-run")
        print("  serve --port 8080")
        sys.exit(0)

    first = args[0]
    if first not in COMMANDS:
        print(f"[entrypoint] Comando desconocido: {first}", file=sys.stderr)
        sys.exit(2)
    cmd = BASE_CMD + [COMMANDS[first]] + args[1:]

    # Avisar si faltan credenciales del sink (no aplica a --dry-run ni a state)
    if first != "state" and "--dry-run" not in args:
        for var in ("GRAFANA_INFLUX_URL", "GRAFANA_USER", "GRAFANA_API_KEY"):
            if var not in os.environ:
                print(f"[entrypoint] WARNING: {var} not set in environment.", file=sys.stderr)

    completed = subprocess.run(cmd, check=False)
    sys.exit(completed.returncode)

if __name__ == "__main__":
    main()
