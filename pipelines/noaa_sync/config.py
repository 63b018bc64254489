from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict

import yaml

DEFAULT_CONFIG_PATH = "config/sync.yaml"
DEFAULT_STATE_URL = "./data/state/noaa_state.json"
DEFAULT_LOOKBACK_MINUTES = 180
DEFAULT_SCHEDULE_MINUTES = 5


def load_cfg(path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    if not os.path.exists(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _env_or(cfg: Dict[str, Any], env_name: str, key: str, default: Any = None) -> Any:
    value = os.environ.get(env_name)
    if value is not None and value != "":
        return value
    return cfg.get(key, default)


@dataclass(frozen=True)
class Settings:
    kp_url: str | None
    wind_url: str | None
    mag_url: str | None
    grafana_url: str | None
    grafana_user: str | None
    grafana_api_key: str | None
    bootstrap_lookback_minutes: float
    state_url: str
    run_token: str | None
    schedule_minutes: float

    @property
    def feed_urls(self) -> Dict[str, str | None]:
        return {"kp": self.kp_url, "wind": self.wind_url, "mag": self.mag_url}

    @classmethod
    def load(cls, path: str = DEFAULT_CONFIG_PATH) -> "Settings":
        cfg = load_cfg(path)
        feeds = cfg.get("feeds", {}) or {}
        grafana = cfg.get("grafana", {}) or {}
        sync = cfg.get("sync", {}) or {}
        return cls(
            kp_url=_env_or(feeds, "NOAA_KP_URL", "kp"),
            wind_url=_env_or(feeds, "NOAA_WIND_URL", "wind"),
            mag_url=_env_or(feeds, "NOAA_MAG_URL", "mag"),
            grafana_url=_env_or(grafana, "GRAFANA_INFLUX_URL", "url"),
            # credenciales solo desde entorno
            grafana_user=os.environ.get("GRAFANA_USER"),
            grafana_api_key=os.environ.get("GRAFANA_API_KEY"),
            bootstrap_lookback_minutes=float(
                _env_or(sync, "BOOTSTRAP_LOOKBACK_MINUTES", "bootstrap_lookback_minutes", DEFAULT_LOOKBACK_MINUTES)
            ),
            state_url=str(_env_or(sync, "STATE_URL", "state_url", DEFAULT_STATE_URL)),
            run_token=os.environ.get("RUN_TOKEN"),
            schedule_minutes=float(
                _env_or(sync, "SCHEDULE_MINUTES", "schedule_minutes", DEFAULT_SCHEDULE_MINUTES)
            ),
        )
