"""Invocation surface: periodic trigger plus a manual ``/run`` endpoint.

Both paths go through ``SyncRunner``, whose lock keeps two runs of this
process from interleaving their state read/write. Separate processes
sharing one state document are not coordinated; deploy a single instance.
"""

from __future__ import annotations

import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse, PlainTextResponse

from .config import Settings
from .grafana_client import GrafanaClient
from .noaa_client import NoaaClient
from .state import FsspecStateStore
from .sync import SyncResult, run_sync
from .utils import log


class RunInProgress(RuntimeError):
    pass


class SyncRunner:
    def __init__(self, settings: Settings, run_fn: Optional[Callable[..., SyncResult]] = None):
        self.settings = settings
        self._run_fn = run_fn or self._run_once
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="noaa-sync")

    def _run_once(self, run_id: str) -> SyncResult:
        s = self.settings
        return run_sync(
            s,
            FsspecStateStore(s.state_url),
            NoaaClient(),
            GrafanaClient(s.grafana_url, s.grafana_user, s.grafana_api_key),
            run_id=run_id,
        )

    def run(self) -> SyncResult:
        if not self._lock.acquire(blocking=False):
            raise RunInProgress("run already in progress")
        try:
            return self._run_fn(str(uuid.uuid4()))
        finally:
            self._lock.release()

    def submit(self) -> Future:
        """Fire-and-forget: the outcome is only visible in the logs."""
        fut = self._executor.submit(self.run)
        fut.add_done_callback(_log_outcome)
        return fut

    def shutdown(self):
        self._executor.shutdown(wait=False)


def _log_outcome(fut: Future):
    err = fut.exception()
    if isinstance(err, RunInProgress):
        log("warn", action="run_skipped", reason=str(err))
    elif err is not None:
        log("error", action="run_failed", error=str(err), error_type=type(err).__name__)
    else:
        log("info", action="run_done", **fut.result().to_dict())


class IntervalScheduler:
    def __init__(self, runner: SyncRunner, minutes: float):
        self.runner = runner
        self.interval = minutes * 60
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self):
        if self.interval <= 0 or self._thread is not None:
            return
        self._thread = threading.Thread(target=self._loop, name="noaa-sync-scheduler", daemon=True)
        self._thread.start()
        log("info", action="scheduler_start", interval_seconds=self.interval)

    def _loop(self):
        while not self._stop.wait(self.interval):
            self.runner.submit()

    def stop(self):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None


def create_app(runner: SyncRunner, run_token: Optional[str], schedule_minutes: float = 0) -> FastAPI:
    scheduler = IntervalScheduler(runner, schedule_minutes)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        scheduler.start()
        try:
            yield
        finally:
            scheduler.stop()
            runner.shutdown()

    app = FastAPI(title="NOAA -> Grafana sync", lifespan=lifespan)

    @app.get("/health")
    def health():
        return PlainTextResponse("ok\n")

    # def (no async): FastAPI lo ejecuta en su threadpool y no bloquea el loop
    @app.get("/run")
    def manual_run(token: str = ""):
        if not run_token or token != run_token:
            return PlainTextResponse("unauthorized\n", status_code=401)
        try:
            result = runner.run()
        except RunInProgress as e:
            return PlainTextResponse(f"{e}\n", status_code=409)
        except Exception as e:
            log("error", action="manual_run_failed", error=str(e))
            return PlainTextResponse(f"{e}\n", status_code=500)
        return JSONResponse(result.to_dict())

    return app


def build_app(settings: Settings) -> FastAPI:
    return create_app(SyncRunner(settings), settings.run_token, settings.schedule_minutes)
