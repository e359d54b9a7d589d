"""Data models for sessions, credentials, and query pages."""

from .auth_models import (
    ClientCredentialsGrant,
    Credentials,
    GrantCredentials,
    GrantType,
    JwtBearerGrant,
    Session,
    UsernamePasswordGrant,
)
from .query_models import QueryPage, QueryResult, SObjectRecord

__all__ = [
    "GrantType",
    "Session",
    "Credentials",
    "GrantCredentials",
    "UsernamePasswordGrant",
    "ClientCredentialsGrant",
    "JwtBearerGrant",
    "QueryPage",
    "QueryResult",
    "SObjectRecord",
]
