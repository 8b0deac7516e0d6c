"""
Translator Connector Exceptions

This module contains exception classes for the translator connectors.
Separated to avoid circular imports between the client, the translator
plugins and the translation workflow.
"""


class TranslationError(Exception):
    """Translation service error with optional code and details."""

    def __init__(self, message: str, code: str = None, details: dict = None):
        super().__init__(message)
        self.code = code
        self.details = details or {}


class ConfigurationError(TranslationError):
    """Translator is missing its API url or auth key."""

    def __init__(self, message: str, code: str = "translator_config_missing", details: dict = None):
        super().__init__(message, code=code, details=details)


class TransportError(TranslationError):
    """The remote service could not be reached, no response was received."""

    def __init__(self, message: str, code: str = "transport_error", details: dict = None):
        super().__init__(message, code=code, details=details)


class RemoteServiceError(TranslationError):
    """The remote service answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int = None, reason: str = "", details: dict = None):
        details = dict(details or {})
        details.setdefault("status_code", status_code)
        details.setdefault("reason", reason)
        super().__init__(message, code="remote_service_error", details=details)
        self.status_code = status_code
        self.reason = reason


class MalformedResponseError(TranslationError):
    """A 2xx response whose body cannot be used (not JSON, wrong shape, too short)."""

    def __init__(self, message: str, code: str = "malformed_response", details: dict = None):
        super().__init__(message, code=code, details=details)


class ApplyError(TranslationError):
    """Translated data could not be unflattened or committed onto a job item."""

    def __init__(self, message: str, code: str = "apply_error", details: dict = None):
        super().__init__(message, code=code, details=details)


class SubmissionCancelled(TranslationError):
    """An immediate run was cancelled between two chunks."""

    def __init__(self, message: str = "Translation was cancelled", code: str = "cancelled", details: dict = None):
        super().__init__(message, code=code, details=details)
