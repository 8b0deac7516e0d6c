"""
Queue workers and the cron entry point.

Deferred submissions leave one unit per job item (LangConnector) or per
job (XTMConnect) on the translator's queue. run_cron drains every queue
once; a unit that fails is handed back with its attempt counter raised and
dropped once queue.max_attempts is reached.
"""

from typing import Any, Dict, Optional

import httpx

from tmgmt_connect.config import DEFAULT_QUEUE_LEASE_SECONDS, DEFAULT_QUEUE_MAX_ATTEMPTS, TRANSLATORS, load_config
from tmgmt_connect.connectors.exceptions import ApplyError, TranslationError
from tmgmt_connect.connectors.hooks import TranslatorHooks
from tmgmt_connect.connectors.service import TranslatorPlugin, get_translator
from tmgmt_connect.core import database as db
from tmgmt_connect.logger import get_logger
from tmgmt_connect.translation.applier import apply_item_translation
from tmgmt_connect.translation.data import chunk_texts
from tmgmt_connect.translation.processor import translate_chunks_sequential
from tmgmt_connect.translation.submitter import BatchSubmitter

logger = get_logger(__name__)


class QueueWorker:
    """Processes the units of one translator queue."""

    def __init__(self, plugin: TranslatorPlugin):
        self.plugin = plugin
        self.submitter = BatchSubmitter(plugin)

    def _load_job(self, data: Dict[str, Any]) -> Dict[str, Any]:
        job = db.get_job(data.get("job_id"))
        if job is None:
            raise ApplyError(f"Job {data.get('job_id')} does not exist", details={"job_id": data.get("job_id")})
        return job

    def process_item(self, data: Dict[str, Any]):
        raise NotImplementedError


class LangConnectorTranslateWorker(QueueWorker):
    """Unit: {job_id, job_item_id, texts, keys_sequence}."""

    def process_item(self, data: Dict[str, Any]):
        job = self._load_job(data)
        job_item_id = data["job_item_id"]
        chunks = chunk_texts(data["texts"], self.submitter.chunk_size)

        context = translate_chunks_sequential(
            self.plugin, job, job_item_id, chunks, data["keys_sequence"],
        )
        if context.translation:
            apply_item_translation(job_item_id, context.translation)
        logger.info(f"Job item {job_item_id}: {len(context.translation)} of "
                    f"{len(data['keys_sequence'])} keys translated inline")


class XTMConnectTranslateWorker(QueueWorker):
    """Unit: {job_id}. Translations arrive later through the callback."""

    def process_item(self, data: Dict[str, Any]):
        job = self._load_job(data)
        self.submitter.batch_request_translation(job)


WORKERS = {
    "lang_connector": LangConnectorTranslateWorker,
    "xtm_connect": XTMConnectTranslateWorker,
}


def get_worker(plugin: TranslatorPlugin) -> QueueWorker:
    return WORKERS[plugin.translator_id](plugin)


def run_cron(
    hooks: Optional[TranslatorHooks] = None,
    transport: Optional[httpx.BaseTransport] = None,
    config: Optional[Dict[str, Any]] = None,
) -> Dict[str, Dict[str, int]]:
    """
    Drain every translator queue once.

    Returns:
        Per queue counters: processed, failed, dropped
    """
    config = config if config is not None else load_config()
    queue_config = config.get("queue", {})
    lease_seconds = queue_config.get("lease_seconds", DEFAULT_QUEUE_LEASE_SECONDS)
    max_attempts = queue_config.get("max_attempts", DEFAULT_QUEUE_MAX_ATTEMPTS)

    stats: Dict[str, Dict[str, int]] = {}
    for translator_id in TRANSLATORS:
        worker = get_worker(get_translator(translator_id, hooks=hooks, transport=transport, config=config))
        queue_name = worker.plugin.queue_name
        counters = {"processed": 0, "failed": 0, "dropped": 0}
        failed = []

        # Failed units stay leased until the queue is drained so they are not picked up again
        while True:
            queue_item = db.claim_queue_item(queue_name, lease_seconds)
            if queue_item is None:
                break

            data = queue_item["data"]
            try:
                worker.process_item(data)
            except TranslationError as e:
                logger.error("Unable to translate job: %s, the following exception was thrown: %s",
                             data.get("job_id"), e)
                failed.append(queue_item)
                continue
            except Exception:
                logger.exception("Unexpected error while processing %s item %s", queue_name, queue_item["id"])
                failed.append(queue_item)
                continue

            db.delete_queue_item(queue_item["id"])
            counters["processed"] += 1

        for queue_item in failed:
            if queue_item["attempts"] + 1 >= max_attempts:
                logger.warning("Dropping %s item %s after %s attempts",
                               queue_name, queue_item["id"], queue_item["attempts"] + 1)
                db.delete_queue_item(queue_item["id"])
                counters["dropped"] += 1
            else:
                db.release_queue_item(queue_item["id"])
                counters["failed"] += 1

        if any(counters.values()):
            logger.info("Cron %s: %s", queue_name, counters)
        stats[queue_name] = counters

    return stats
