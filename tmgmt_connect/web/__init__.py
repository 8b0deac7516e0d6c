"""Web application package for tmgmt-connect."""

from typing import Optional

import httpx
from flask import Flask

from tmgmt_connect.config import initialize_app
from tmgmt_connect.connectors.hooks import TranslatorHooks


def create_app(
    hooks: Optional[TranslatorHooks] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> Flask:
    """Application factory for the web interface."""
    initialize_app()

    from .app import build_app  # Import here to avoid circular imports

    return build_app(hooks=hooks, transport=transport)


__all__ = ["create_app"]
