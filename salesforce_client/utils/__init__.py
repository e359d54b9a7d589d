"""Utility helpers for HTTP, record decoding, and token persistence."""

from .decoder import DecodeError, RecordDecoder, decode
from .http_client import AuthError, HttpClient, SalesforceError, SessionExpiredError, TransportError

__all__ = [
    "HttpClient",
    "RecordDecoder",
    "decode",
    "SalesforceError",
    "TransportError",
    "SessionExpiredError",
    "AuthError",
    "DecodeError",
]
