"""NOAA space-weather sync subpackage exposing public API.

Typical usage:
    from pipelines.noaa_sync import Settings, run_sync

But normally you call CLI:
    python -m pipelines.noaa_sync.main run

Exports:
    Settings, run_sync, SyncState, FsspecStateStore, NoaaClient, GrafanaClient,
    slice_new, encode_line
"""

from .config import Settings, load_cfg
from .grafana_client import GrafanaClient
from .line_protocol import encode_line
from .noaa_client import NoaaClient
from .state import FsspecStateStore, SyncState
from .sync import SyncResult, run_sync
from .window import OVERLAP_MS, slice_new

__all__ = [
    "Settings",
    "load_cfg",
    "run_sync",
    "SyncResult",
    "SyncState",
    "FsspecStateStore",
    "NoaaClient",
    "GrafanaClient",
    "slice_new",
    "encode_line",
    "OVERLAP_MS",
]
