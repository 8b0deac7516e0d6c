import threading

import httpx
import pytest

from tmgmt_connect.connectors.service import TranslatorPlugin
from tmgmt_connect.core import database as db
from tmgmt_connect.translation.submitter import BatchSubmitter, DispatchMode
from tmgmt_connect.web import tasks

FINAL_FIELDS = ("state", "error", "pending_translation", "finished_at")


class TrackingLock:
    def __init__(self):
        self._lock = threading.Lock()
        self.held = False

    def __enter__(self):
        self._lock.acquire()
        self.held = True
        return self

    def __exit__(self, *exc_info):
        self.held = False
        self._lock.release()


@pytest.fixture
def lock(monkeypatch):
    lock = TrackingLock()
    monkeypatch.setattr(tasks, "_runs_lock", lock)
    monkeypatch.setattr(tasks, "_runs", {})
    return lock


@pytest.fixture
def unguarded_writes(monkeypatch, lock):
    writes = []

    class GuardedRun(tasks.RunState):
        def __setattr__(self, name, value):
            registered = getattr(self, "run_id", None) in tasks._runs
            if registered and name in FINAL_FIELDS and not lock.held:
                writes.append(name)
            object.__setattr__(self, name, value)

    monkeypatch.setattr(tasks, "RunState", GuardedRun)
    return writes


def start_run(remote, item_data):
    job_id = db.create_job("lang_connector", "en", "fr")
    db.create_job_item(job_id, "article", "1", item_data("Hello", "World"))
    submitter = BatchSubmitter(TranslatorPlugin("lang_connector", transport=remote.transport()))
    plans = submitter.request_translation(job_id, DispatchMode.IMMEDIATE).plans
    return tasks.create_translation_run(submitter, job_id, plans, background=False)


def test_completed_run_updates_state_under_lock(configured, remote, item_data, unguarded_writes):
    run = start_run(remote, item_data)

    assert run.state == "completed"
    assert run.finished_at is not None
    assert unguarded_writes == []
    assert tasks.cancel_run(run.run_id) is False


def test_failed_run_updates_state_under_lock(configured, remote, item_data, unguarded_writes):
    remote.handler = lambda request, payload: httpx.Response(500)

    run = start_run(remote, item_data)

    assert run.state == "failed"
    assert run.error.startswith("RemoteServiceError: ")
    assert run.pending_translation == {}
    assert unguarded_writes == []


def test_latest_run_is_returned(configured, remote, item_data, lock):
    first = start_run(remote, item_data)

    assert tasks.get_latest_run(first.job_id) is first
    assert tasks.serialize_run(first)["plans"][0]["state"] == "applied"
