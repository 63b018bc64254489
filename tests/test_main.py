import json

import pytest

from pipelines.noaa_sync import main as cli
from pipelines.noaa_sync.config import Settings, load_cfg
from pipelines.noaa_sync.noaa_client import NoaaClient


@pytest.fixture
def env(tmp_path, monkeypatch):
    for var in ("GRAFANA_INFLUX_URL", "GRAFANA_USER", "GRAFANA_API_KEY", "RUN_TOKEN", "BOOTSTRAP_LOOKBACK_MINUTES"):
        monkeypatch.delenv(var, raising=False)
    state_path = tmp_path / "state" / "noaa_state.json"
    monkeypatch.setenv("STATE_URL", str(state_path))
    return state_path


def test_load_cfg_missing_file_is_empty(tmp_path):
    assert load_cfg(str(tmp_path / "nope.yaml")) == {}


def test_settings_env_overrides_yaml(tmp_path, monkeypatch):
    cfg = tmp_path / "sync.yaml"
    cfg.write_text(
        "feeds:\n  kp: http://yaml/kp\n  wind: http://yaml/wind\n"
        "sync:\n  bootstrap_lookback_minutes: 60\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("NOAA_WIND_URL", "http://env/wind")
    monkeypatch.delenv("NOAA_KP_URL", raising=False)
    monkeypatch.delenv("NOAA_MAG_URL", raising=False)
    monkeypatch.delenv("BOOTSTRAP_LOOKBACK_MINUTES", raising=False)
    monkeypatch.setenv("GRAFANA_API_KEY", "secret")
    s = Settings.load(str(cfg))
    assert s.feed_urls == {"kp": "http://yaml/kp", "wind": "http://env/wind", "mag": None}
    assert s.bootstrap_lookback_minutes == 60
    assert s.grafana_api_key == "secret"


def test_state_command_prints_empty_object(env, tmp_path, capsys):
    assert cli.main(["--config", str(tmp_path / "none.yaml"), "state"]) == 0
    assert json.loads(capsys.readouterr().out) == {}


def test_dry_run_does_not_write_state(env, tmp_path, monkeypatch, capsys):
    payloads = {
        "http://kp": [{"time_tag": "2024-05-10 15:00:00.000", "kp": 2.33}],
        "http://wind": [],
        "http://mag": [],
    }
    monkeypatch.setenv("NOAA_KP_URL", "http://kp")
    monkeypatch.setenv("NOAA_WIND_URL", "http://wind")
    monkeypatch.setenv("NOAA_MAG_URL", "http://mag")
    monkeypatch.setenv("BOOTSTRAP_LOOKBACK_MINUTES", "0")
    monkeypatch.setattr(NoaaClient, "get_json", lambda self, url: payloads[url])

    assert cli.main(["--config", str(tmp_path / "none.yaml"), "run", "--dry-run"]) == 0
    assert not env.exists()
    assert '"action": "dry_run"' in capsys.readouterr().out


def test_run_without_sink_credentials_fails(env, tmp_path, capsys):
    assert cli.main(["--config", str(tmp_path / "none.yaml"), "run"]) == 1
    assert "GRAFANA_INFLUX_URL no configurado" in capsys.readouterr().out
