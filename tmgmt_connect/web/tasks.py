"""
Asynchronous run helpers for immediate translation submissions.
"""

from __future__ import annotations

import threading
import time
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from tmgmt_connect.connectors.exceptions import SubmissionCancelled
from tmgmt_connect.logger import get_logger
from tmgmt_connect.translation.progress import TranslationProgress
from tmgmt_connect.translation.submitter import BatchPlan, BatchSubmitter

logger = get_logger(__name__)


@dataclass
class RunState:
    """In-memory representation of an immediate run."""

    run_id: str
    job_id: int
    translator: str
    cancel_requested: bool = False
    state: str = "pending"  # pending|running|completed|failed|cancelled
    created_at: float = field(default_factory=time.time)
    started_at: Optional[float] = None
    finished_at: Optional[float] = None
    progress: Dict[str, Any] = field(default_factory=dict)
    progress_history: List[Dict[str, Any]] = field(default_factory=list)
    plans: List[Dict[str, Any]] = field(default_factory=list)
    # Chunks already merged when a plan failed; never applied
    pending_translation: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    last_update: float = field(default_factory=time.time)

    def request_cancel(self):
        """Mark this run as requested for cancellation."""
        self.cancel_requested = True
        self.last_update = time.time()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_runs: Dict[str, RunState] = {}
_runs_lock = threading.Lock()
_RUN_RETENTION_SECONDS = 600  # Retain run info for 10 minutes after completion


def create_translation_run(
    submitter: BatchSubmitter,
    job_id: int,
    plans: List[BatchPlan],
    background: bool = True,
) -> RunState:
    """
    Register and launch a run executing `plans` one after the other.

    Args:
        submitter: BatchSubmitter the plans were built by
        job_id: Job the plans belong to
        plans: Output of request_translation(..., DispatchMode.IMMEDIATE)
        background: Run in a daemon thread (False runs inline, for callers
            that want the outcome right away)

    Returns:
        RunState for the new run
    """
    run_id = uuid.uuid4().hex
    run = RunState(
        run_id=run_id,
        job_id=job_id,
        translator=submitter.plugin.translator_id,
        plans=[plan.to_dict() for plan in plans],
    )

    with _runs_lock:
        _cleanup_runs_locked()
        _runs[run_id] = run

    logger.info("Translation run %s started for job %s (%s plans)", run_id, job_id, len(plans))
    if background:
        thread = threading.Thread(
            target=_run_plans,
            args=(run, submitter, plans),
            name=f"translation-run-{run_id}",
            daemon=True,
        )
        thread.start()
    else:
        _run_plans(run, submitter, plans)

    return run


def get_run(run_id: str) -> Optional[RunState]:
    """Fetch a run by ID (if still retained)."""
    with _runs_lock:
        run = _runs.get(run_id)
        if run and run.finished_at and (time.time() - run.finished_at) > _RUN_RETENTION_SECONDS:
            _runs.pop(run_id, None)
            return None
        return run


def get_latest_run(job_id: int) -> Optional[RunState]:
    """Get the most recent run of a job."""
    with _runs_lock:
        job_runs = [run for run in _runs.values() if run.job_id == job_id]
        if not job_runs:
            return None
        return max(job_runs, key=lambda r: r.created_at)


def cancel_run(run_id: str) -> bool:
    """
    Request cancellation of a running run. Takes effect between chunks.

    Returns:
        True if the run was found and cancellation requested, False otherwise.
    """
    with _runs_lock:
        run = _runs.get(run_id)
        if not run:
            return False
        if run.state in ("completed", "failed", "cancelled"):
            return False
        run.request_cancel()
        logger.info("Cancellation requested for run %s", run_id)
        return True


def serialize_run(run: RunState) -> Dict[str, Any]:
    """Convert RunState into JSON-safe dict."""
    with _runs_lock:
        return run.to_dict()


def _run_plans(run: RunState, submitter: BatchSubmitter, plans: List[BatchPlan]):
    """Worker function executed in a background thread."""
    with _runs_lock:
        run.state = "running"
        run.started_at = time.time()
        run.last_update = run.started_at

    def on_progress(progress: TranslationProgress):
        with _runs_lock:
            serialized = progress.to_dict()
            run.progress = serialized
            run.progress_history.append(serialized)
            run.last_update = time.time()

    def check_cancel():
        with _runs_lock:
            return run.cancel_requested

    index = 0
    try:
        for index, plan in enumerate(plans):
            submitter.run_plan(plan, progress_callback=on_progress, cancel_check=check_cancel)
            with _runs_lock:
                run.plans[index] = plan.to_dict()
        with _runs_lock:
            run.state = "completed"
        logger.info("Translation run %s finished for job %s", run.run_id, run.job_id)
    except SubmissionCancelled:
        with _runs_lock:
            run.state = "cancelled"
        logger.info("Translation run %s cancelled", run.run_id)
    except Exception as exc:
        error = f"{type(exc).__name__}: {exc}"
        with _runs_lock:
            run.state = "failed"
            run.error = error
            if index < len(plans):
                run.pending_translation = dict(plans[index].context.translation)
        logger.exception(
            "Translation run %s failed for job %s: %s",
            run.run_id,
            run.job_id,
            error,
        )
    finally:
        with _runs_lock:
            if index < len(plans):
                run.plans[index] = plans[index].to_dict()
            run.finished_at = time.time()
            run.last_update = run.finished_at


def _cleanup_runs_locked():
    """Remove finished runs that exceeded retention period (call with lock held)."""
    now = time.time()
    expired = [
        run_id
        for run_id, run in _runs.items()
        if run.finished_at and (now - run.finished_at) > _RUN_RETENTION_SECONDS
    ]
    for run_id in expired:
        _runs.pop(run_id, None)
