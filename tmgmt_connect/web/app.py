"""Flask application configuration and blueprint registration."""

from __future__ import annotations

from typing import Optional

import httpx
from flask import Flask, jsonify

from tmgmt_connect.config import TRANSLATORS
from tmgmt_connect.connectors.exceptions import (
    ApplyError,
    ConfigurationError,
    MalformedResponseError,
    RemoteServiceError,
    TranslationError,
    TransportError,
)
from tmgmt_connect.connectors.hooks import TranslatorHooks
from tmgmt_connect.logger import get_logger

from .routes.callbacks import create_callbacks_blueprint
from .routes.jobs import jobs_bp
from .routes.settings import translators_bp

logger = get_logger(__name__)


def error_status(error: TranslationError) -> int:
    """HTTP status used when a TranslationError reaches a route."""
    if isinstance(error, (ConfigurationError, ApplyError)):
        return 400
    if isinstance(error, (RemoteServiceError, TransportError, MalformedResponseError)):
        return 502
    return 500


def build_app(
    hooks: Optional[TranslatorHooks] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)

    # Ensure JSON responses keep Unicode data.
    app.json.ensure_ascii = False

    # Handed to every TranslatorPlugin built by the routes
    app.config["TRANSLATOR_HOOKS"] = hooks or TranslatorHooks()
    app.config["HTTP_TRANSPORT"] = transport

    register_blueprints(app)
    register_default_routes(app)

    return app


def register_blueprints(app: Flask) -> None:
    """Register Flask blueprints."""
    app.register_blueprint(jobs_bp, url_prefix="/api/jobs")
    app.register_blueprint(translators_bp, url_prefix="/api/translators")
    for translator_id in TRANSLATORS:
        app.register_blueprint(create_callbacks_blueprint(translator_id), url_prefix=f"/api/{translator_id}")


def register_default_routes(app: Flask) -> None:
    """Register default health route and JSON error handlers."""

    @app.get("/health")
    def health_check():
        logger.debug("Health check requested")
        return jsonify({"status": "ok"})

    @app.errorhandler(TranslationError)
    def translation_error(e: TranslationError):
        status = error_status(e)
        logger.warning("Request failed with %s (%s): %s", type(e).__name__, status, e)
        response = {"error": str(e), "code": e.code}
        if e.details:
            response["details"] = e.details
        return jsonify(response), status

    @app.errorhandler(404)
    def page_not_found(e):
        return jsonify({"error": "Not found", "code": "not_found"}), 404

    @app.errorhandler(500)
    def internal_error(e):
        logger.exception("Internal server error: %s", e)
        return jsonify({"error": "Internal server error", "code": "internal_error"}), 500
