"""Inbound callbacks of the remote translation services."""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from tmgmt_connect.core import database as db
from tmgmt_connect.logger import get_logger
from tmgmt_connect.translation.applier import apply_job_translation

logger = get_logger(__name__)


def create_callbacks_blueprint(translator_id: str) -> Blueprint:
    """Callback routes for one translator, mounted under /api/<translator_id>."""
    bp = Blueprint(f"{translator_id}_callbacks", __name__)

    def load_job(job_id: int):
        job = db.get_job(job_id)
        if not job or job["translator"] != translator_id:
            logger.warning("Callback for unknown %s job %s", translator_id, job_id)
            return None
        return job

    @bp.post("/translations/<int:job_id>")
    def apply_translations(job_id: int):
        """Apply job-level flattened translations ('<item_id>][field]...' keys)."""
        if not load_job(job_id):
            return jsonify({"error": f"Job {job_id} not found", "code": "job_not_found"}), 404

        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "Request body must be a JSON object", "code": "invalid_payload"}), 400

        applied = apply_job_translation(job_id, data)
        logger.info("%s callback applied translations to job %s items %s", translator_id, job_id, applied)
        return jsonify({"success": True, "jobId": job_id})

    @bp.get("/translations/<int:job_id>/items")
    def get_job_items(job_id: int):
        """Active items of a job with their source content."""
        if not load_job(job_id):
            return jsonify({"error": f"Job {job_id} not found", "code": "job_not_found"}), 404

        return jsonify([
            {
                "resource_id": item["item_id"],
                "resource_type": item["item_type"],
                "job_item_id": item["id"],
                "content": item["data"],
            }
            for item in db.get_job_items(job_id, state="active")
        ])

    return bp
