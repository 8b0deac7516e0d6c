"""
Connectors Module

This module provides the remote translator connectors (LangConnector and
XTMConnect) and related utilities. TranslatorPlugin lives in
connectors.service and is imported from there.
"""

from tmgmt_connect.connectors.exceptions import (
    TranslationError,
    ConfigurationError,
    TransportError,
    RemoteServiceError,
    MalformedResponseError,
    ApplyError,
    SubmissionCancelled,
)
from tmgmt_connect.connectors.client import AvailableResult, RemoteClient
from tmgmt_connect.connectors.hooks import TranslatorHooks
from tmgmt_connect.connectors.protocols import get_protocol

__all__ = [
    'TranslationError', 'ConfigurationError', 'TransportError', 'RemoteServiceError',
    'MalformedResponseError', 'ApplyError', 'SubmissionCancelled',
    'AvailableResult', 'RemoteClient', 'TranslatorHooks', 'get_protocol',
]
