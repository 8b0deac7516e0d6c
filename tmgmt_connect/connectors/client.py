"""
Remote Translation API Client

HTTP client shared by the LangConnector and XTM Connect translators:
- JSON POST to the configured translate endpoint
- GET health/validate call used by the "connect" check
- GET workflows listing used by the XTM Connect checkout settings

Every request carries `Content-Type: application/json` and the raw API key in
the `Authorization` header.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from tmgmt_connect.logger import get_logger
from tmgmt_connect.connectors.exceptions import (
    MalformedResponseError,
    RemoteServiceError,
    TransportError,
)

logger = get_logger(__name__)

# Set on the result of a 204 reply: the texts are delivered through the callback
NO_CONTENT = "no_content"


@dataclass
class AvailableResult:
    """Outcome of an availability check."""
    available: bool
    reason: str = ""
    body: Optional[Any] = None

    @classmethod
    def yes(cls, body: Any = None) -> "AvailableResult":
        return cls(True, "", body)

    @classmethod
    def no(cls, reason: str, body: Any = None) -> "AvailableResult":
        return cls(False, reason, body)

    def to_dict(self) -> Dict[str, Any]:
        return {"available": self.available, "reason": self.reason}


def get_httpx_timeout(timeout_config: Any) -> Optional[httpx.Timeout]:
    """
    Convert timeout configuration to httpx.Timeout object.

    Args:
        timeout_config: None (keep the httpx default), a number (read timeout)
            or a dict with connect, write, read, pool keys

    Returns:
        httpx.Timeout object, or None to keep the transport default
    """
    if timeout_config is None or timeout_config == "":
        return None
    if isinstance(timeout_config, dict):
        return httpx.Timeout(
            connect=timeout_config.get('connect', 10.0),
            write=timeout_config.get('write', 60.0),
            read=timeout_config.get('read', 120.0),
            pool=timeout_config.get('pool', 10.0),
        )
    return httpx.Timeout(
        connect=10.0,
        write=60.0,
        read=float(timeout_config),
        pool=10.0,
    )


class RemoteClient:
    """Blocking JSON client for one configured translator endpoint."""

    def __init__(
        self,
        url: str,
        auth_key: str,
        timeout: Any = None,
        transport: Optional[httpx.BaseTransport] = None,
        service_name: str = "Remote",
    ):
        self.url = url
        self.auth_key = auth_key
        self.timeout = timeout
        self.transport = transport
        self.service_name = service_name

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": self.auth_key or "",
        }

    def _client(self) -> httpx.Client:
        kwargs: Dict[str, Any] = {}
        httpx_timeout = get_httpx_timeout(self.timeout)
        if httpx_timeout is not None:
            kwargs["timeout"] = httpx_timeout
        if self.transport is not None:
            kwargs["transport"] = self.transport
        return httpx.Client(**kwargs)

    def _error_message(self, detail: str) -> str:
        return f"{self.service_name} API service returned following error: {detail}"

    def send(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a JSON payload and decode the JSON answer.

        Returns:
            The decoded body; `{"translations": [], NO_CONTENT: True}` for 204
            No Content.

        Raises:
            TransportError: no response was received.
            RemoteServiceError: non-2xx response, carries the reason phrase.
            MalformedResponseError: 2xx body that is not a JSON object.
        """
        logger.debug(f"POST {self.url} ({self.service_name})")

        try:
            with self._client() as client:
                response = client.post(self.url, headers=self.headers, json=payload)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            reason = e.response.reason_phrase
            logger.error(f"{self.service_name} API HTTP error: {status_code} {reason}")
            raise RemoteServiceError(
                self._error_message(reason),
                status_code=status_code,
                reason=reason,
            ) from e
        except httpx.TimeoutException as e:
            raise TransportError(self._error_message(f"request timeout ({e})")) from e
        except httpx.RequestError as e:
            raise TransportError(self._error_message(str(e) or type(e).__name__)) from e

        if response.status_code == 204:
            logger.debug(f"{self.service_name} API returned 204 No Content")
            return {"translations": [], NO_CONTENT: True}

        try:
            result = response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"{self.service_name} API returned a body that is not valid JSON",
                details={"status_code": response.status_code, "body": response.text[:500]},
            ) from e

        if not isinstance(result, dict):
            raise MalformedResponseError(
                f"{self.service_name} API returned unexpected response format: {type(result).__name__}",
                details={"status_code": response.status_code},
            )

        if "translations" in result and not isinstance(result["translations"], list):
            raise MalformedResponseError(
                f"{self.service_name} API returned 'translations' that is not a list",
                details={"status_code": response.status_code},
            )

        return result

    def validate(self, path: str = "") -> AvailableResult:
        """
        GET the endpoint (or a sub path like /health) to check url and key.

        Expected failures are reported in the result, never raised.
        """
        url = self.url.rstrip('/') + path if path else self.url
        try:
            with self._client() as client:
                response = client.get(url, headers=self.headers)
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(f"{self.service_name} validate call failed: {e.response.status_code}")
            return AvailableResult.no(
                f"{self.service_name} API returned {e.response.status_code} {e.response.reason_phrase}",
                body=e.response.status_code,
            )
        except httpx.RequestError as e:
            logger.warning(f"{self.service_name} validate call could not connect: {e}")
            return AvailableResult.no(f"Could not connect to {self.service_name} API: {e}")
        except ValueError:
            return AvailableResult.no(f"{self.service_name} API returned a body that is not valid JSON")

        return AvailableResult.yes(body)

    def get_workflows(self) -> List[Dict[str, Any]]:
        """List the workflows offered by the remote service."""
        url = self.url.rstrip('/') + "/workflows"
        try:
            with self._client() as client:
                response = client.get(url, headers=self.headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RemoteServiceError(
                self._error_message(e.response.reason_phrase),
                status_code=e.response.status_code,
                reason=e.response.reason_phrase,
            ) from e
        except httpx.RequestError as e:
            raise TransportError(self._error_message(str(e) or type(e).__name__)) from e

        try:
            result = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"{self.service_name} workflows response is not valid JSON") from e

        # Either a bare list or {"data": [...]}
        if isinstance(result, dict):
            result = result.get("data", [])
        if not isinstance(result, list):
            raise MalformedResponseError(f"{self.service_name} workflows response is not a list")

        return [w for w in result if isinstance(w, dict) and "id" in w and "name" in w]
