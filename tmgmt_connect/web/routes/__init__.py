"""Route blueprints for the web application."""

from flask import current_app

from tmgmt_connect.connectors.service import TranslatorPlugin, get_translator


def get_plugin(translator_id: str) -> TranslatorPlugin:
    """Build a translator plugin with the hooks and transport of the current app."""
    return get_translator(
        translator_id,
        hooks=current_app.config.get("TRANSLATOR_HOOKS"),
        transport=current_app.config.get("HTTP_TRANSPORT"),
    )


from .callbacks import create_callbacks_blueprint  # noqa: E402
from .jobs import jobs_bp  # noqa: E402
from .settings import translators_bp  # noqa: E402

__all__ = [
    "get_plugin",
    "create_callbacks_blueprint",
    "jobs_bp",
    "translators_bp",
]
