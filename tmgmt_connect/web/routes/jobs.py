"""Translation job API routes."""

from __future__ import annotations

from typing import Any, Dict, List

from flask import Blueprint, jsonify, request

from tmgmt_connect.config import TRANSLATORS
from tmgmt_connect.core import database as db
from tmgmt_connect.logger import get_logger
from tmgmt_connect.translation.data import count_translatable
from tmgmt_connect.translation.submitter import BatchSubmitter, DispatchMode
from tmgmt_connect.web.routes import get_plugin
from tmgmt_connect.web.tasks import (
    cancel_run,
    create_translation_run,
    get_latest_run,
    get_run,
    serialize_run,
)

jobs_bp = Blueprint("jobs", __name__)
logger = get_logger(__name__)


def _job_not_found(job_id: int):
    return jsonify({"error": f"Job {job_id} not found", "code": "job_not_found"}), 404


def _serialize_job(job: Dict[str, Any]) -> Dict[str, Any]:
    items = db.get_job_items(job["id"])
    total = translated = 0
    for item in items:
        item_total, item_translated = count_translatable(item["data"])
        total += item_total
        translated += item_translated
    return {
        **job,
        "items": items,
        "messages": db.get_job_messages(job["id"]),
        "statistics": {"total": total, "translated": translated},
    }


@jobs_bp.post("/")
def create_job():
    """Create a job in draft state together with its items."""
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    translator = data.get("translator")
    source_language = (data.get("source_language") or "").strip()
    target_language = (data.get("target_language") or "").strip()
    items: List[Dict[str, Any]] = data.get("items") or []

    if translator not in TRANSLATORS:
        return jsonify({"error": f"Unknown translator: {translator}", "code": "translator_unknown"}), 400
    if not source_language or not target_language:
        return jsonify({"error": "source_language and target_language are required",
                        "code": "invalid_languages"}), 400
    if not isinstance(items, list) or not all(isinstance(item, dict) and isinstance(item.get("data"), dict)
                                              for item in items):
        return jsonify({"error": "items must be a list of objects with a data object",
                        "code": "invalid_items"}), 400

    job_id = db.create_job(
        translator,
        source_language,
        target_language,
        continuous=bool(data.get("continuous", False)),
        settings=data.get("settings") or {},
    )
    for item in items:
        db.create_job_item(job_id, item.get("item_type", "node"), item.get("item_id", ""), item["data"])

    logger.info("Created %s job %s (%s -> %s) with %s items",
                translator, job_id, source_language, target_language, len(items))
    return jsonify({"job": _serialize_job(db.get_job(job_id))}), 201


@jobs_bp.get("/<int:job_id>")
def get_job(job_id: int):
    job = db.get_job(job_id)
    if not job:
        return _job_not_found(job_id)
    return jsonify({"job": _serialize_job(job)})


@jobs_bp.delete("/<int:job_id>")
def delete_job(job_id: int):
    if not db.get_job(job_id):
        return _job_not_found(job_id)
    db.delete_job(job_id)
    logger.info("Deleted job %s", job_id)
    return jsonify({"status": "deleted"})


@jobs_bp.post("/<int:job_id>/translate")
def request_translation(job_id: int):
    """
    Submit a job.

    Body: {"mode": "deferred" | "immediate"}. Immediate submissions run in
    the background; poll /progress with the returned run_id.
    """
    job = db.get_job(job_id)
    if not job:
        return _job_not_found(job_id)

    data: Dict[str, Any] = request.get_json(silent=True) or {}
    try:
        mode = DispatchMode(data.get("mode", DispatchMode.DEFERRED.value))
    except ValueError:
        return jsonify({"error": f"Invalid mode: {data.get('mode')}", "code": "invalid_mode"}), 400

    submitter = BatchSubmitter(get_plugin(job["translator"]))
    result = submitter.request_translation(job_id, mode)

    if result.rejected:
        return jsonify({
            "error": result.message or "The translation job has been rejected.",
            "code": "job_rejected" if job["state"] == "rejected" else "translator_config_missing",
            "submission": result.to_dict(),
        }), 400

    response: Dict[str, Any] = {"submission": result.to_dict()}
    if mode == DispatchMode.IMMEDIATE:
        run = create_translation_run(submitter, job_id, result.plans)
        response["run_id"] = run.run_id
        return jsonify(response), 202

    return jsonify(response)


@jobs_bp.get("/<int:job_id>/progress")
def get_progress(job_id: int):
    """Latest run of the job, or the run given by ?run_id=."""
    job = db.get_job(job_id)
    if not job:
        return _job_not_found(job_id)

    run_id = request.args.get("run_id")
    run = get_run(run_id) if run_id else get_latest_run(job_id)
    if run is None or run.job_id != job_id:
        return jsonify({"error": "No translation run found", "code": "run_not_found"}), 404

    return jsonify({"run": serialize_run(run), "job_state": job["state"]})


@jobs_bp.post("/<int:job_id>/cancel")
def cancel(job_id: int):
    """Request cancellation of the job's run; honoured between chunks."""
    if not db.get_job(job_id):
        return _job_not_found(job_id)

    data: Dict[str, Any] = request.get_json(silent=True) or {}
    run = get_run(data["run_id"]) if data.get("run_id") else get_latest_run(job_id)
    if run is None or run.job_id != job_id:
        return jsonify({"error": "No translation run found", "code": "run_not_found"}), 404

    if not cancel_run(run.run_id):
        return jsonify({"error": "Run already finished", "code": "run_finished"}), 409
    return jsonify({"status": "cancelling", "run_id": run.run_id})


@jobs_bp.get("/<int:job_id>/checkout-settings")
def get_checkout_settings(job_id: int):
    job = db.get_job(job_id)
    if not job:
        return _job_not_found(job_id)

    plugin = get_plugin(job["translator"])
    return jsonify({
        "has_checkout_settings": plugin.has_checkout_settings(job),
        "form": plugin.checkout_settings_form(job),
        "settings": job["settings"],
    })


@jobs_bp.put("/<int:job_id>/checkout-settings")
def update_checkout_settings(job_id: int):
    """Merge checkout settings (e.g. workflow, batch_id) into the job settings."""
    job = db.get_job(job_id)
    if not job:
        return _job_not_found(job_id)

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Request body must be a JSON object", "code": "invalid_payload"}), 400

    settings = dict(job["settings"])
    settings.update(data)
    db.update_job_settings(job_id, settings)
    logger.info("Updated checkout settings of job %s: %s", job_id, sorted(data))
    return jsonify({"settings": settings})
