"""
Remote protocol adapters

The two translators share one submission workflow and differ only in:
- payload shape of the translate call
- batching unit (chunks of one item's text vs. all sibling jobs of a batch)
- sentinel tags used to mark non-translatable spans
- validate endpoint and its success shape
- whether local language codes are mapped to remote ones
"""

from typing import Any, Dict, Tuple

ITEM_CHUNKS = "item_chunks"
SIBLING_JOBS = "sibling_jobs"


class RemoteProtocolAdapter:
    """Base adapter. Subclasses describe one remote API."""

    translator_id: str = ""
    label: str = ""
    escape_start: str = ""
    escape_end: str = ""
    queue_name: str = ""
    batch_unit: str = ITEM_CHUNKS
    health_path: str = ""
    maps_remote_languages: bool = True
    required_settings: Tuple[str, ...] = ("url", "auth_key")

    def build_payload(self, job: Dict[str, Any], query_params: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def is_healthy(self, body: Any) -> bool:
        raise NotImplementedError


class LangConnectorProtocol(RemoteProtocolAdapter):
    """One call per chunk of a job item: {job_id, source_lang, target_lang, text}."""

    translator_id = "lang_connector"
    label = "LangConnector"
    escape_start = '<lang_connector translate="no">'
    escape_end = '</lang_connector>'
    queue_name = "lang_connector_translate_worker"
    batch_unit = ITEM_CHUNKS
    health_path = ""
    maps_remote_languages = True

    def build_payload(self, job: Dict[str, Any], query_params: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "job_id": job["id"],
            "source_lang": query_params["source_lang"],
            "target_lang": query_params["target_lang"],
            "text": list(query_params.get("text", [])),
        }

    def is_healthy(self, body: Any) -> bool:
        return isinstance(body, dict) and "id" in body


class XTMConnectProtocol(RemoteProtocolAdapter):
    """One call per batch of sibling jobs: {jobs: [...], batch_id}."""

    translator_id = "xtm_connect"
    label = "XTMConnect"
    escape_start = '<xtm_connect translate="no">'
    escape_end = '</xtm_connect>'
    queue_name = "xtm_connect_translate_worker"
    batch_unit = SIBLING_JOBS
    health_path = "/health"
    maps_remote_languages = False

    def build_payload(self, job: Dict[str, Any], query_params: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "jobs": list(query_params["jobs"]),
            "batch_id": query_params["batch_id"],
        }

    def is_healthy(self, body: Any) -> bool:
        if not isinstance(body, dict):
            return False
        return body.get("data") == "ok" or "id" in body


PROTOCOLS = {
    LangConnectorProtocol.translator_id: LangConnectorProtocol,
    XTMConnectProtocol.translator_id: XTMConnectProtocol,
}


def get_protocol(translator_id: str) -> RemoteProtocolAdapter:
    """Instantiate the adapter registered for a translator id."""
    try:
        return PROTOCOLS[translator_id]()
    except KeyError:
        raise KeyError(f"Unknown translator: {translator_id}") from None
