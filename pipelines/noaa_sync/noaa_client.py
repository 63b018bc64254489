from __future__ import annotations

import json
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any, Dict, Mapping

import requests

REQUEST_TIMEOUT_SECONDS = 15
USER_AGENT = "noaa-grafana-sync/1.0"
CHUNK_SIZE = 64 * 1024


def _http_error(resp: requests.Response) -> requests.HTTPError:
    info = f"HTTP {resp.status_code} - {resp.reason}"
    body = (resp.text or "")[:500]
    return requests.HTTPError(f"{info} | URL={resp.url} | Body={body}", response=resp)


class NoaaClient:
    def __init__(
        self,
        timeout_seconds: float = REQUEST_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ):
        self.timeout = timeout_seconds
        self.session = session or requests.Session()

    def get_json(self, url: str) -> Any:
        """GET a feed with a total deadline of ``timeout`` seconds.

        ``timeout=`` in requests only bounds each connect/read, so a feed that
        trickles bytes could hold the run indefinitely. The request runs in a
        worker and the caller stops waiting at the deadline.
        """
        if not url:
            raise RuntimeError("URL de feed NOAA no configurada")
        deadline = time.monotonic() + self.timeout
        ex = ThreadPoolExecutor(max_workers=1, thread_name_prefix="noaa-fetch")
        try:
            fut = ex.submit(self._get, url, deadline)
            try:
                return fut.result(timeout=self.timeout)
            except FutureTimeout:
                # cierra las conexiones para que el worker no siga leyendo
                self.session.close()
                raise requests.Timeout(f"Timeout de {self.timeout}s leyendo {url}")
        finally:
            ex.shutdown(wait=False)

    def _get(self, url: str, deadline: float) -> Any:
        headers = {
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
            "Cache-Control": "no-cache",
        }
        resp = self.session.get(url, headers=headers, timeout=self.timeout, stream=True)
        try:
            if not resp.ok:
                raise _http_error(resp)
            chunks = []
            for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                if time.monotonic() > deadline:
                    raise requests.Timeout(f"Timeout de {self.timeout}s leyendo {url}")
                chunks.append(chunk)
            return json.loads(b"".join(chunks))
        finally:
            resp.close()


def fetch_all(client: NoaaClient, urls: Mapping[str, str]) -> Dict[str, Any]:
    """Fetch every feed concurrently and wait for all of them.

    Any failure fails the whole batch; the first error in ``urls`` order is raised.
    """
    with ThreadPoolExecutor(max_workers=max(len(urls), 1)) as ex:
        futures = {name: ex.submit(client.get_json, url) for name, url in urls.items()}
        errors = {}
        payloads = {}
        for name, fut in futures.items():
            try:
                payloads[name] = fut.result()
            except Exception as e:
                errors[name] = e
    for name in urls:
        if name in errors:
            raise errors[name]
    return payloads
