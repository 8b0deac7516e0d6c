"""Translator settings API routes."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

from flask import Blueprint, jsonify, request

import tmgmt_connect.config as config
from tmgmt_connect.config import TRANSLATOR_DESCRIPTIONS, TRANSLATOR_DISPLAY_NAMES, TRANSLATORS
from tmgmt_connect.logger import LOG_FILE, _clear_log_mode_cache, get_logger
from tmgmt_connect.web.routes import get_plugin

translators_bp = Blueprint("translators", __name__)
logger = get_logger(__name__)

LOG_MODES = ("off", "info", "debug")


def _unknown_translator(translator_id: str):
    return jsonify({"error": f"Unknown translator: {translator_id}", "code": "translator_unknown"}), 404


@translators_bp.get("/")
def list_translators():
    """Known translators with their local availability."""
    translators = []
    for translator_id in TRANSLATORS:
        available = get_plugin(translator_id).check_available()
        translators.append({
            "id": translator_id,
            "name": TRANSLATOR_DISPLAY_NAMES[translator_id],
            "description": TRANSLATOR_DESCRIPTIONS[translator_id],
            **available.to_dict(),
        })
    return jsonify({"translators": translators})


@translators_bp.get("/<translator_id>/settings")
def get_settings(translator_id: str):
    if translator_id not in TRANSLATORS:
        return _unknown_translator(translator_id)
    return jsonify({"settings": config.get_translator_settings(translator_id)})


@translators_bp.put("/<translator_id>/settings")
def update_settings(translator_id: str):
    """Update translator settings; outline detection follows tag handling."""
    if translator_id not in TRANSLATORS:
        return _unknown_translator(translator_id)

    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not isinstance(data.get("settings"), dict):
        return jsonify({"error": "settings object is missing", "code": "config_missing"}), 400

    new_settings: Dict[str, Any] = data["settings"]
    for key in ("url", "auth_key"):
        if key in new_settings and new_settings[key] is not None and not isinstance(new_settings[key], str):
            return jsonify({"error": f"{key} must be a string", "code": "invalid_settings"}), 400
    mappings = new_settings.get("remote_languages_mappings")
    if mappings is not None and not isinstance(mappings, dict):
        return jsonify({"error": "remote_languages_mappings must be an object", "code": "invalid_settings"}), 400
    timeout = new_settings.get("timeout")
    if timeout not in (None, "") and not isinstance(timeout, dict):
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            return jsonify({"error": "timeout must be a positive number", "code": "invalid_settings"}), 400

    settings = config.save_translator_settings(translator_id, new_settings)
    logger.info("Settings of %s updated", translator_id)
    return jsonify({"message": "Settings updated successfully", "settings": settings})


@translators_bp.get("/<translator_id>/form")
def get_configuration_form(translator_id: str):
    if translator_id not in TRANSLATORS:
        return _unknown_translator(translator_id)
    return jsonify({"form": get_plugin(translator_id).build_configuration_form()})


@translators_bp.post("/<translator_id>/connect")
def connect(translator_id: str):
    """Check url and key against the remote service."""
    if translator_id not in TRANSLATORS:
        return _unknown_translator(translator_id)

    result = get_plugin(translator_id).validate_api()
    if result.available:
        logger.info("%s connection check succeeded", translator_id)
    else:
        logger.warning("%s connection check failed: %s", translator_id, result.reason)
    return jsonify(result.to_dict())


@translators_bp.get("/<translator_id>/languages")
def get_languages(translator_id: str):
    """Supported remote target languages for ?source=<code>."""
    if translator_id not in TRANSLATORS:
        return _unknown_translator(translator_id)

    source = (request.args.get("source") or "").strip()
    if not source:
        return jsonify({"error": "source parameter is required", "code": "invalid_languages"}), 400
    return jsonify({"languages": get_plugin(translator_id).get_supported_target_languages(source)})


@translators_bp.put("/log-mode")
def update_log_mode():
    data = request.get_json(silent=True) or {}
    log_mode = data.get("log_mode")
    if log_mode not in LOG_MODES:
        return jsonify({"error": f"Invalid log mode: {log_mode}", "code": "invalid_log_mode"}), 400

    current_config = config.load_config()
    current_config["log_mode"] = log_mode
    config.save_config(current_config)

    # Clear log mode cache to ensure new log mode takes effect
    _clear_log_mode_cache()
    logger.info("Log mode set to %s", log_mode)
    return jsonify({"log_mode": log_mode})


@translators_bp.delete("/logs")
def clear_logs():
    """Delete all log files to free up disk space."""
    log_file = Path(LOG_FILE)
    deleted_count = 0

    log_dir = log_file.parent
    if log_dir.exists():
        for log_path in log_dir.glob("*.log"):
            log_path.unlink()
            deleted_count += 1

    if deleted_count > 0:
        return jsonify({"message": f"Successfully deleted {deleted_count} log file(s)"})
    return jsonify({"message": "No log files found to delete"})
