"""
Batch Submitter

Turns a job into remote calls:
- LangConnector: every job item is flattened, escaped and cut into chunks;
  one call per chunk, results folded into a BatchContext and applied once
  every chunk succeeded.
- XTMConnect: one call per batch of sibling jobs (jobs sharing a
  settings['batch_id']); translations come back through the callback.

The dispatch mode is chosen by the caller: DEFERRED pushes units onto the
translator's queue for run_cron, IMMEDIATE returns BatchPlans to be run
(the web layer runs them in a background thread with progress).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from tmgmt_connect.config import get_chunk_size
from tmgmt_connect.connectors.exceptions import ConfigurationError, SubmissionCancelled, TranslationError
from tmgmt_connect.connectors.protocols import SIBLING_JOBS
from tmgmt_connect.core import database as db
from tmgmt_connect.logger import get_logger
from tmgmt_connect.translation.applier import apply_item_translation
from tmgmt_connect.translation.data import chunk_texts, filter_translatable, split_keys_and_texts
from tmgmt_connect.translation.processor import BatchContext, translate_chunk
from tmgmt_connect.translation.progress import TranslationProgress

logger = get_logger(__name__)

SUBMITTED_MESSAGE = "The translation job has been submitted."
REJECTED_MESSAGE = "The translation job has been rejected."


class DispatchMode(str, Enum):
    DEFERRED = "deferred"
    IMMEDIATE = "immediate"


class SubmissionState(str, Enum):
    PENDING = "pending"
    CHUNKING = "chunking"
    AWAITING_RESPONSE = "awaiting_response"
    MERGING = "merging"
    FINALIZING = "finalizing"
    APPLIED = "applied"
    FAILED = "failed"


# Plan operations
OP_TRANSLATE_CHUNK = "translate_chunk"
OP_BATCH_REQUEST = "batch_request"
OP_FINALIZE = "finalize"


@dataclass
class BatchPlan:
    """Ordered operations for one job item (or one sibling-job batch)."""
    job_id: int
    job_item_id: Optional[int]
    operations: List[tuple]
    keys_sequence: List[str] = field(default_factory=list)
    state: SubmissionState = SubmissionState.PENDING
    context: BatchContext = field(default_factory=BatchContext)
    error: Optional[TranslationError] = None

    @property
    def total_batches(self) -> int:
        return sum(1 for op, _ in self.operations if op != OP_FINALIZE)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "job_item_id": self.job_item_id,
            "state": self.state.value,
            "total_batches": self.total_batches,
            "processed_keys": self.context.index,
            "total_keys": len(self.keys_sequence),
            "error": f"{type(self.error).__name__}: {self.error}" if self.error else None,
        }


@dataclass
class SubmissionResult:
    """What request_translation did."""
    job_id: int
    mode: DispatchMode
    rejected: bool = False
    message: str = ""
    plans: List[BatchPlan] = field(default_factory=list)
    queued: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "mode": self.mode.value,
            "rejected": self.rejected,
            "message": self.message,
            "plans": [plan.to_dict() for plan in self.plans],
            "queued": list(self.queued),
        }


class BatchSubmitter:
    """Submission workflow of one translator plugin."""

    def __init__(self, plugin, chunk_size: Optional[int] = None):
        self.plugin = plugin
        self.chunk_size = chunk_size or get_chunk_size(plugin.config)

    # ------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------

    def request_translation(self, job_id: int, mode: DispatchMode = DispatchMode.DEFERRED) -> SubmissionResult:
        """
        Submit all items of a job.

        A job that is already rejected is left untouched. An unavailable
        translator rejects the job and nothing is sent.
        Otherwise the job is marked 'submitted' unless it was rejected
        while submitting.

        Raises:
            KeyError: the job does not exist
            ConfigurationError: the job belongs to another translator
        """
        mode = DispatchMode(mode)
        job = self._load_job(job_id)

        if job["state"] == "rejected":
            logger.warning(f"Job {job_id} is rejected, nothing submitted")
            return SubmissionResult(job_id=job_id, mode=mode, rejected=True, message=REJECTED_MESSAGE)

        available = self.plugin.check_available()
        if not available.available:
            logger.warning(f"Job {job_id} rejected: {available.reason}")
            db.update_job_state(job_id, "rejected")
            db.add_job_message(job_id, available.reason, "error")
            return SubmissionResult(job_id=job_id, mode=mode, rejected=True, message=available.reason)

        items = db.get_job_items(job["id"])
        result = self.request_job_items_translation([item["id"] for item in items], mode)
        result.job_id = job_id

        job = db.get_job(job_id)
        if job["state"] != "rejected":
            db.update_job_state(job_id, "submitted")
            db.add_job_message(job_id, SUBMITTED_MESSAGE)
            result.message = SUBMITTED_MESSAGE
            logger.info(f"Job {job_id} submitted ({mode.value})")
        else:
            result.rejected = True

        return result

    def request_job_items_translation(
        self,
        job_item_ids: List[int],
        mode: DispatchMode = DispatchMode.DEFERRED,
    ) -> SubmissionResult:
        """
        Queue (DEFERRED) or plan (IMMEDIATE) the translation of job items.

        Items of rejected jobs are skipped and stay as they are.
        """
        mode = DispatchMode(mode)
        items = [db.get_job_item(item_id) for item_id in job_item_ids]
        missing = [item_id for item_id, item in zip(job_item_ids, items) if item is None]
        if missing:
            raise KeyError(f"Job items do not exist: {missing}")

        result = SubmissionResult(job_id=items[0]["job_id"] if items else 0, mode=mode)
        if not items:
            return result

        jobs = {job_id: self._load_job(job_id) for job_id in dict.fromkeys(item["job_id"] for item in items)}
        rejected = [job_id for job_id, job in jobs.items() if job["state"] == "rejected"]
        if rejected:
            logger.warning(f"Skipping items of rejected jobs {rejected}")
            jobs = {job_id: job for job_id, job in jobs.items() if job_id not in rejected}
            items = [item for item in items if item["job_id"] in jobs]
            result.rejected = not jobs

        for item in items:
            self._activate(jobs[item["job_id"]], item)

        if self.plugin.protocol.batch_unit == SIBLING_JOBS:
            for job in jobs.values():
                if mode == DispatchMode.DEFERRED:
                    result.queued.append(db.create_queue_item(self.plugin.queue_name, {"job_id": job["id"]}))
                    logger.info(f"Queued job {job['id']} on {self.plugin.queue_name}")
                else:
                    plan = self.send_job_for_translation(job)
                    if plan is not None:
                        result.plans.append(plan)
            return result

        for item in items:
            job = jobs[item["job_id"]]
            keys_sequence, texts = split_keys_and_texts(
                filter_translatable(item["data"]), escape=self.plugin.escaper.escape_item
            )
            if not texts:
                logger.debug(f"Job item {item['id']} has nothing to translate")
                continue

            if mode == DispatchMode.DEFERRED:
                queue_item_id = db.create_queue_item(self.plugin.queue_name, {
                    "job_id": job["id"],
                    "job_item_id": item["id"],
                    "texts": texts,
                    "keys_sequence": keys_sequence,
                })
                result.queued.append(queue_item_id)
                logger.info(f"Queued job item {item['id']} ({len(texts)} texts) on {self.plugin.queue_name}")
            else:
                result.plans.append(self.build_plan(job, item["id"], texts, keys_sequence))

        return result

    # ------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------

    def build_plan(self, job: Dict[str, Any], job_item_id: int,
                   texts: List[str], keys_sequence: List[str]) -> BatchPlan:
        """One translate_chunk operation per chunk, then finalize."""
        operations = [(OP_TRANSLATE_CHUNK, chunk) for chunk in chunk_texts(texts, self.chunk_size)]
        operations.append((OP_FINALIZE, None))
        plan = BatchPlan(job_id=job["id"], job_item_id=job_item_id,
                         operations=operations, keys_sequence=list(keys_sequence))
        plan.state = SubmissionState.CHUNKING
        return plan

    def run_plan(
        self,
        plan: BatchPlan,
        progress_callback: Optional[Callable[[TranslationProgress], None]] = None,
        cancel_check: Optional[Callable[[], bool]] = None,
    ) -> BatchPlan:
        """
        Execute a plan.

        On failure the plan ends FAILED with the error kept on it, the
        context holds the chunks merged so far and nothing is applied.
        The error is re-raised.
        """
        job = self._load_job(plan.job_id)
        total_batches = plan.total_batches
        batch = 0

        def report(phase: str, keys_count: int = 0, error: Optional[str] = None):
            if progress_callback:
                progress_callback(TranslationProgress(
                    job_id=plan.job_id,
                    job_item_id=plan.job_item_id,
                    current_batch=batch,
                    total_batches=total_batches,
                    batch_keys_count=keys_count,
                    processed_keys=plan.context.index,
                    total_keys=len(plan.keys_sequence),
                    phase=phase,
                    error=error,
                ))

        try:
            for op, argument in plan.operations:
                if op != OP_FINALIZE and cancel_check and cancel_check():
                    raise SubmissionCancelled(details={"job_item_id": plan.job_item_id,
                                                       "index": plan.context.index})

                if op == OP_TRANSLATE_CHUNK:
                    batch += 1
                    report("translating", len(argument))
                    plan.state = SubmissionState.AWAITING_RESPONSE
                    context = translate_chunk(self.plugin, job, argument, plan.keys_sequence, plan.context)
                    plan.state = SubmissionState.MERGING
                    plan.context = context
                    report("batch_done", len(argument))
                elif op == OP_BATCH_REQUEST:
                    batch += 1
                    plan.state = SubmissionState.AWAITING_RESPONSE
                    self.batch_request_translation(job)
                    report("batch_done")
                elif op == OP_FINALIZE:
                    plan.state = SubmissionState.FINALIZING
                    self._finalize(plan)

            plan.state = SubmissionState.APPLIED
            report("applied")
        except TranslationError as e:
            plan.state = SubmissionState.FAILED
            plan.error = e
            logger.error(f"Job {plan.job_id} item {plan.job_item_id} failed at key "
                         f"{plan.context.index}/{len(plan.keys_sequence)}: {e}")
            report("failed", error=f"{type(e).__name__}: {e}")
            raise

        return plan

    def _finalize(self, plan: BatchPlan):
        if plan.job_item_id is None:
            return
        if not plan.context.translation:
            logger.debug(f"Job item {plan.job_item_id}: all chunks delivered by callback")
            return
        apply_item_translation(plan.job_item_id, plan.context.translation)

    # ------------------------------------------------------------
    # Sibling-job batches (XTMConnect)
    # ------------------------------------------------------------

    def _siblings(self, job: Dict[str, Any]) -> List[Dict[str, Any]]:
        batch_id = job["settings"].get("batch_id")
        if not batch_id:
            return [job]
        return db.find_jobs_by_batch_id(batch_id) or [job]

    def send_job_for_translation(self, job: Dict[str, Any]) -> Optional[BatchPlan]:
        """
        Mark the job and its siblings processed and plan one batch request.

        Returns:
            None when the batch was already sent for a non-continuous job
        """
        if job["settings"].get("processed") and not job["continuous"]:
            logger.debug(f"Job {job['id']} already processed, skipping")
            return None

        batch_id = job["settings"].get("batch_id")
        for sibling in self._siblings(job):
            settings = dict(sibling["settings"])
            settings["batch_id"] = batch_id
            settings["processed"] = True
            db.update_job_settings(sibling["id"], settings)

        return BatchPlan(job_id=job["id"], job_item_id=None,
                         operations=[(OP_BATCH_REQUEST, None), (OP_FINALIZE, None)])

    def batch_request_translation(self, job: Dict[str, Any]) -> Dict[str, Any]:
        """One call listing every sibling job that has items."""
        jobs = []
        for sibling in self._siblings(job):
            if db.get_job_items(sibling["id"]):
                jobs.append({
                    "job_id": sibling["id"],
                    "source_lang": self.plugin.remote_source_language(sibling),
                    "target_lang": self.plugin.remote_target_language(sibling),
                })

        query_params = {
            "jobs": jobs,
            "batch_id": job["settings"].get("batch_id"),
        }
        logger.info(f"Sending batch {query_params['batch_id']} with {len(jobs)} jobs")
        return self.plugin.do_request(job, query_params)

    # ------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------

    def _load_job(self, job_id: int) -> Dict[str, Any]:
        job = db.get_job(job_id)
        if job is None:
            raise KeyError(f"Job {job_id} does not exist")
        if job["translator"] != self.plugin.translator_id:
            raise ConfigurationError(
                f"Job {job_id} belongs to translator '{job['translator']}'",
                code="translator_mismatch",
                details={"job_id": job_id, "translator": job["translator"]},
            )
        return job

    def _activate(self, job: Dict[str, Any], item: Dict[str, Any]):
        if item["state"] == "inactive" or (job["continuous"] and item["state"] != "aborted"):
            if item["state"] != "active":
                db.update_job_item(item["id"], state="active")
                item["state"] = "active"
