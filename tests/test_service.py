import threading
from concurrent.futures import Future

import pytest
from fastapi.testclient import TestClient

from pipelines.noaa_sync.service import IntervalScheduler, RunInProgress, SyncRunner, _log_outcome, create_app
from pipelines.noaa_sync.state import SyncState
from pipelines.noaa_sync.sync import SyncResult


def _result():
    state = SyncState(k=1000, wind=None, mag=2000)
    return SyncResult(pushed=3, committed=True, state=state, previous_state=SyncState(), counts={"kp": 1})


def _runner(run_fn):
    return SyncRunner(settings=None, run_fn=run_fn)


def test_health():
    client = TestClient(create_app(_runner(lambda run_id: _result()), "secret"))
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.text == "ok\n"


@pytest.mark.parametrize("configured,given", [("secret", "nope"), ("secret", ""), (None, ""), ("", "")])
def test_run_requires_matching_token(configured, given):
    calls = []
    client = TestClient(create_app(_runner(lambda run_id: calls.append(run_id)), configured))
    resp = client.get("/run", params={"token": given})
    assert resp.status_code == 401
    assert resp.text == "unauthorized\n"
    assert calls == []


def test_run_returns_result_json():
    client = TestClient(create_app(_runner(lambda run_id: _result()), "secret"))
    resp = client.get("/run", params={"token": "secret"})
    assert resp.status_code == 200
    assert resp.json() == {
        "pushed": 3,
        "committed": True,
        "state": {"k": 1000, "wind": None, "mag": 2000},
        "counts": {"kp": 1},
    }


def test_run_failure_is_500_with_message():
    def boom(run_id):
        raise RuntimeError("Fetch failed 503")

    client = TestClient(create_app(_runner(boom), "secret"))
    resp = client.get("/run", params={"token": "secret"})
    assert resp.status_code == 500
    assert "Fetch failed 503" in resp.text


def test_overlapping_run_is_rejected():
    runner = _runner(lambda run_id: _result())
    client = TestClient(create_app(runner, "secret"))
    runner._lock.acquire()
    try:
        resp = client.get("/run", params={"token": "secret"})
    finally:
        runner._lock.release()
    assert resp.status_code == 409


def test_runner_run_raises_when_busy():
    runner = _runner(lambda run_id: _result())
    runner._lock.acquire()
    try:
        with pytest.raises(RunInProgress):
            runner.run()
    finally:
        runner._lock.release()


def test_submit_does_not_block_caller():
    release = threading.Event()

    def slow(run_id):
        release.wait(5)
        return _result()

    runner = _runner(slow)
    fut = runner.submit()
    assert not fut.done()
    release.set()
    assert fut.result(timeout=5).pushed == 3
    runner.shutdown()


def test_failed_background_run_is_logged(capsys):
    fut = Future()
    fut.set_exception(RuntimeError("sink down"))
    _log_outcome(fut)
    out = capsys.readouterr().out
    assert '"action": "run_failed"' in out
    assert "sink down" in out


def test_scheduler_submits_periodically():
    fired = threading.Event()

    class CountingRunner:
        def submit(self):
            fired.set()

    scheduler = IntervalScheduler(CountingRunner(), minutes=0.001)
    scheduler.start()
    try:
        assert fired.wait(5)
    finally:
        scheduler.stop()


def test_scheduler_disabled_with_zero_interval():
    scheduler = IntervalScheduler(object(), minutes=0)
    scheduler.start()
    assert scheduler._thread is None
