"""High level client that authenticates once and runs queries."""

from __future__ import annotations

from typing import Any, Optional

from .api.auth_api import AuthAPI, ValidationError, validate_auth
from .api.query_api import QueryAPI
from .models import Credentials, QueryResult, Session
from .utils.decoder import RecordDecoder
from .utils.http_client import DEFAULT_API_VERSION, HttpClient


class Salesforce:
    """Owns the session for one org and wires refresh-on-expiry into the transport."""

    def __init__(
        self,
        credentials: Credentials,
        api_version: str = DEFAULT_API_VERSION,
        timeout: int = 10,
        decoder: Optional[RecordDecoder] = None,
    ) -> None:
        self._client = HttpClient(api_version=api_version, timeout=timeout)
        self._auth_api = AuthAPI(self._client)
        self._query_api = QueryAPI(self._client, decoder)
        try:
            self._client.session = self._authenticate(credentials)
        except Exception:
            self._client.close()
            raise
        self._client.refresher = self._auth_api.refresh_session

    @property
    def session(self) -> Optional[Session]:
        return self._client.session

    def query(self, soql: str, target: Any) -> QueryResult:
        validate_auth(self._client.session)
        return self._query_api.perform_query(soql, target)

    def refresh(self) -> Session:
        validate_auth(self._client.session)
        self._client.session = self._auth_api.refresh_session(self._client.session)
        return self._client.session

    def _authenticate(self, creds: Credentials) -> Session:
        if creds == Credentials():
            raise ValidationError("credentials are empty")
        if not creds.domain:
            raise ValidationError("domain is required")

        if creds.access_token:
            return self._auth_api.set_access_token(creds.domain, creds.access_token)
        if (
            creds.username
            and creds.password
            and creds.security_token
            and creds.consumer_key
            and creds.consumer_secret
        ):
            return self._auth_api.username_password(
                creds.domain,
                creds.username,
                creds.password,
                creds.security_token,
                creds.consumer_key,
                creds.consumer_secret,
            )
        if creds.consumer_key and creds.consumer_secret:
            return self._auth_api.client_credentials(creds.domain, creds.consumer_key, creds.consumer_secret)
        if creds.username and creds.consumer_key and creds.consumer_rsa_pem:
            return self._auth_api.jwt_bearer(
                creds.domain,
                creds.username,
                creds.consumer_key,
                creds.consumer_rsa_pem,
                creds.jwt_ttl,
            )
        raise ValidationError("no usable credential combination supplied")

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "Salesforce":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
