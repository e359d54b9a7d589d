"""Salesforce REST client: OAuth2 grant flows, session refresh, and paginated SOQL queries."""

from .api import AuthAPI, QueryAPI, RefreshError, ValidationError, validate_auth
from .client import Salesforce
from .models import Credentials, GrantType, QueryResult, Session, SObjectRecord
from .utils import (
    AuthError,
    DecodeError,
    HttpClient,
    RecordDecoder,
    SalesforceError,
    SessionExpiredError,
    TransportError,
    decode,
)

__all__ = [
    "Salesforce",
    "AuthAPI",
    "QueryAPI",
    "HttpClient",
    "RecordDecoder",
    "decode",
    "validate_auth",
    "Credentials",
    "GrantType",
    "Session",
    "QueryResult",
    "SObjectRecord",
    "SalesforceError",
    "TransportError",
    "SessionExpiredError",
    "AuthError",
    "ValidationError",
    "RefreshError",
    "DecodeError",
]
