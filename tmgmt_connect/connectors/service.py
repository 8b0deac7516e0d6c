"""
Translator Service Module

This module provides the translator plugins used by the submission workflow:
- TranslatorPlugin class binding settings, hooks and a protocol adapter
- Configuration validation
- Configuration and checkout settings form descriptions

For the HTTP details, see connectors/client.py
"""

import json
import uuid
from typing import Any, Dict, List, Optional

import httpx

from tmgmt_connect.config import (
    DEFAULT_CONFIG,
    TRANSLATOR_DISPLAY_NAMES,
    get_translator_settings,
    load_config,
)
from tmgmt_connect import language_codes as lc
from tmgmt_connect.logger import get_logger
from tmgmt_connect.connectors.client import AvailableResult, RemoteClient
from tmgmt_connect.connectors.exceptions import ConfigurationError, TranslationError
from tmgmt_connect.connectors.hooks import TranslatorHooks
from tmgmt_connect.connectors.protocols import PROTOCOLS, get_protocol
from tmgmt_connect.translation.escaper import Escaper

logger = get_logger(__name__)


def validate_translator_config(translator_id: str, config: Optional[Dict[str, Any]] = None) -> None:
    """
    Validate that a translator is properly set up.

    Raises:
        ConfigurationError: unknown translator or missing url / auth key,
            with code and details.
    """
    if translator_id not in PROTOCOLS:
        raise ConfigurationError(
            f"Unknown translator '{translator_id}'",
            code="translator_unknown",
            details={"translator": translator_id},
        )

    settings = get_translator_settings(translator_id, config)
    display = TRANSLATOR_DISPLAY_NAMES.get(translator_id, translator_id)
    for field_name in get_protocol(translator_id).required_settings:
        if not settings.get(field_name):
            raise ConfigurationError(
                f"{display} is not available. Make sure it is properly configured.",
                details={"translator": translator_id, "missing_field": field_name},
            )


class TranslatorPlugin:
    """One configured translator (LangConnector or XTMConnect)."""

    def __init__(
        self,
        translator_id: str,
        hooks: Optional[TranslatorHooks] = None,
        transport: Optional[httpx.BaseTransport] = None,
        config: Optional[Dict[str, Any]] = None,
    ):
        self.protocol = get_protocol(translator_id)
        self.translator_id = translator_id
        self.label = self.protocol.label
        self.display_name = TRANSLATOR_DISPLAY_NAMES.get(translator_id, self.label)
        self.hooks = hooks or TranslatorHooks()
        self.transport = transport
        self.config = config if config is not None else load_config()
        self.escaper = Escaper(
            self.protocol.escape_start,
            self.protocol.escape_end,
            patterns=self.config.get("translation", {}).get("escape_patterns") or [],
        )
        logger.debug(f"Initialized translator: {translator_id}")

    @property
    def settings(self) -> Dict[str, Any]:
        return get_translator_settings(self.translator_id, self.config)

    @property
    def translator_url(self) -> str:
        return self.settings.get("url") or DEFAULT_CONFIG[self.translator_id].get("url") or ""

    @property
    def queue_name(self) -> str:
        return self.protocol.queue_name

    # ------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------

    def check_available(self) -> AvailableResult:
        """Local check: are the settings needed to talk to the API present?"""
        try:
            validate_translator_config(self.translator_id, self.config)
        except ConfigurationError as e:
            return AvailableResult.no(str(e))
        return AvailableResult.yes()

    def validate_api(self) -> AvailableResult:
        """Remote check used by the 'connect' action."""
        available = self.check_available()
        if not available.available:
            return available

        result = self.client().validate(self.protocol.health_path)
        if result.available and not self.protocol.is_healthy(result.body):
            logger.warning(f"{self.label} validate call returned unexpected body: {result.body!r}")
            return AvailableResult.no("Please check the url and key.", body=result.body)
        return result

    # ------------------------------------------------------------
    # Forms
    # ------------------------------------------------------------

    def has_checkout_settings(self, job: Dict[str, Any]) -> bool:
        # Defaults to not having checkout settings
        return self.hooks.alter_has_checkout_settings(False, job)

    def build_configuration_form(self) -> Dict[str, Any]:
        """Describe the translator configuration form."""
        settings = self.settings
        form = {
            "url": {
                "type": "textfield",
                "title": "API Url",
                "required": True,
                "default_value": settings.get("url") or self.translator_url,
            },
            "auth_key": {
                "type": "textfield",
                "title": "API key",
                "required": True,
                "default_value": settings.get("auth_key", ""),
            },
            "tag_handling": {
                "type": "checkbox",
                "title": "Tag handling",
                "default_value": bool(settings.get("tag_handling")),
            },
            "outline_detection": {
                "type": "checkbox",
                "title": "Outline detection",
                "default_value": bool(settings.get("outline_detection")),
                "states": {"enabled": {"tag_handling": True}},
            },
            "connect": {
                "type": "button",
                "title": "Connect",
            },
        }
        return self.hooks.alter_configuration_form(form)

    def checkout_settings_form(self, job: Dict[str, Any]) -> Dict[str, Any]:
        """Describe the per-job checkout settings form."""
        form = self.hooks.alter_checkout_settings_form({}, job)

        if self.translator_id == "xtm_connect":
            messages = []
            workflows: List[Dict[str, Any]] = []
            try:
                workflows = self.get_workflows()
            except TranslationError as e:
                logger.error(f"Failed to fetch workflows: {e}")
                messages.append(f"Failed to fetch workflows: {e}")

            form["workflow"] = {
                "type": "select",
                "title": "Workflow",
                "options": {json.dumps(w): w["name"] for w in workflows},
                "empty_option": "- Select Workflow -",
                "required": True,
            }
            form["batch_id"] = {
                "type": "hidden",
                "title": "Batch ID",
                "default_value": f"xtm_batch_{uuid.uuid4().hex[:13]}",
            }
            if messages:
                form["messages"] = messages
        else:
            form.setdefault("settings", {})["active"] = {
                "type": "radios",
                "title": "Format",
                "default_value": 0,
                "options": {0: "JSON"},
            }

        return form

    # ------------------------------------------------------------
    # Languages
    # ------------------------------------------------------------

    def remote_language(self, code: str) -> str:
        if not self.protocol.maps_remote_languages:
            return code
        return lc.map_remote_language(code, self.settings.get("remote_languages_mappings") or {})

    def remote_source_language(self, job: Dict[str, Any]) -> str:
        code = self.remote_language(job["source_language"])
        if self.protocol.maps_remote_languages:
            code = lc.fix_source_language(code)
        return code

    def remote_target_language(self, job: Dict[str, Any]) -> str:
        return self.remote_language(job["target_language"])

    def get_supported_target_languages(self, source_language: str) -> Dict[str, str]:
        return lc.get_supported_target_languages(self.remote_language(source_language))

    # ------------------------------------------------------------
    # Remote calls
    # ------------------------------------------------------------

    def client(self) -> RemoteClient:
        settings = self.settings
        return RemoteClient(
            url=self.translator_url,
            auth_key=settings.get("auth_key", ""),
            timeout=settings.get("timeout"),
            transport=self.transport,
            service_name=self.label,
        )

    def do_request(self, job: Dict[str, Any], query_params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Build the payload for `job`, let the query hooks alter it and send it.

        Raises:
            TranslationError subclasses (see RemoteClient.send)
        """
        payload = self.protocol.build_payload(job, query_params)
        payload = self.hooks.alter_query(job, payload, query_params)
        return self.client().send(payload)

    def get_workflows(self) -> List[Dict[str, Any]]:
        return self.client().get_workflows()


def get_translator(
    translator_id: str,
    hooks: Optional[TranslatorHooks] = None,
    transport: Optional[httpx.BaseTransport] = None,
    config: Optional[Dict[str, Any]] = None,
) -> TranslatorPlugin:
    """Build the plugin for a translator id."""
    if translator_id not in PROTOCOLS:
        raise ConfigurationError(
            f"Unknown translator '{translator_id}'",
            code="translator_unknown",
            details={"translator": translator_id},
        )
    return TranslatorPlugin(translator_id, hooks=hooks, transport=transport, config=config)
