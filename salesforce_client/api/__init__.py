"""API layer for authentication and SOQL queries."""

from .auth_api import AuthAPI, RefreshError, ValidationError, validate_auth
from .query_api import QueryAPI

__all__ = ["AuthAPI", "QueryAPI", "validate_auth", "ValidationError", "RefreshError"]
