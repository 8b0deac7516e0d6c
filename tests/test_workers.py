import httpx

from tmgmt_connect import config
from tmgmt_connect.connectors.service import TranslatorPlugin
from tmgmt_connect.core import database as db
from tmgmt_connect.translation.submitter import BatchSubmitter, DispatchMode
from tmgmt_connect.workers import run_cron

LC_QUEUE = "lang_connector_translate_worker"
XTM_QUEUE = "xtm_connect_translate_worker"


def queue_job(remote, item_data, translator="lang_connector", settings=None):
    job_id = db.create_job(translator, "en", "fr", settings=settings)
    item_id = db.create_job_item(job_id, "article", "1", item_data("Hello", "World"))
    plugin = TranslatorPlugin(translator, transport=remote.transport())
    BatchSubmitter(plugin).request_translation(job_id, DispatchMode.DEFERRED)
    return job_id, item_id


def test_cron_translates_queued_items(configured, remote, item_data):
    job_id, item_id = queue_job(remote, item_data)

    stats = run_cron(transport=remote.transport())

    assert stats[LC_QUEUE] == {"processed": 1, "failed": 0, "dropped": 0}
    assert len(remote.requests) == 1
    assert db.number_of_queue_items(LC_QUEUE) == 0
    assert db.get_job_item(item_id)["state"] == "translated"
    assert db.get_job(job_id)["state"] == "finished"


def test_cron_releases_failed_units_then_drops_them(configured, remote, item_data):
    remote.handler = lambda request, payload: httpx.Response(500)
    _, item_id = queue_job(remote, item_data)

    for attempt in range(config.DEFAULT_QUEUE_MAX_ATTEMPTS - 1):
        stats = run_cron(transport=remote.transport())
        assert stats[LC_QUEUE]["failed"] == 1
        assert db.number_of_queue_items(LC_QUEUE) == 1

    stats = run_cron(transport=remote.transport())
    assert stats[LC_QUEUE]["dropped"] == 1
    assert db.number_of_queue_items(LC_QUEUE) == 0
    assert len(remote.requests) == config.DEFAULT_QUEUE_MAX_ATTEMPTS
    assert db.get_job_item(item_id)["state"] == "active"


def test_cron_sends_xtm_batches(configured, remote, item_data):
    remote.handler = lambda request, payload: httpx.Response(200, json={"id": "ok"})
    job_id, _ = queue_job(remote, item_data, translator="xtm_connect", settings={"batch_id": "b1"})

    stats = run_cron(transport=remote.transport())

    assert stats[XTM_QUEUE]["processed"] == 1
    assert remote.payloads == [{
        "jobs": [{"job_id": job_id, "source_lang": "en", "target_lang": "fr"}],
        "batch_id": "b1",
    }]


def test_cron_with_empty_queues():
    stats = run_cron()
    assert all(counters == {"processed": 0, "failed": 0, "dropped": 0} for counters in stats.values())
