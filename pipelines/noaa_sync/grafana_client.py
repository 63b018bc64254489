from __future__ import annotations

import json

import requests

from .noaa_client import USER_AGENT


class GrafanaClient:
    """Push Influx line protocol batches to the Grafana Cloud Influx endpoint."""

    def __init__(
        self,
        url: str | None,
        user: str | None,
        api_key: str | None,
        timeout_seconds: float | None = None,
        session: requests.Session | None = None,
    ):
        self.url = (url or "").strip()
        self.user = (user or "").strip()
        self.api_key = (api_key or "").strip()
        if not self.url:
            raise RuntimeError("GRAFANA_INFLUX_URL no configurado")
        if not self.user:
            raise RuntimeError("GRAFANA_USER no configurado")
        if not self.api_key:
            raise RuntimeError("GRAFANA_API_KEY no configurado")
        self.timeout = timeout_seconds
        self.session = session or requests.Session()

    def push(self, body: str) -> None:
        headers = {
            "Content-Type": "text/plain; charset=utf-8",
            "User-Agent": USER_AGENT,
        }
        resp = self.session.post(
            self.url,
            data=body.encode("utf-8"),
            headers=headers,
            auth=(self.user, self.api_key),
            timeout=self.timeout,
        )
        if resp.ok:
            return
        detail = {
            "status": resp.status_code,
            "url": self.url,
            "body": (resp.text or "")[:500],
        }
        raise requests.HTTPError(json.dumps(detail, indent=2), response=resp)
