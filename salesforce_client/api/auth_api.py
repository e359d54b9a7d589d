"""OAuth2 grant flows, session validation, and refresh for Salesforce."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict

from jose import jwt
from jose.exceptions import JOSEError

from ..models import (
    ClientCredentialsGrant,
    GrantType,
    JwtBearerGrant,
    Session,
    UsernamePasswordGrant,
)
from ..models.auth_models import DEFAULT_JWT_TTL, GrantCredentials
from ..utils.http_client import AuthError, HttpClient, SalesforceError

JWT_ALGORITHM = "RS256"


class ValidationError(SalesforceError):
    """Raised when a session or access token is missing before use."""


class RefreshError(SalesforceError):
    """Raised when a session cannot be refreshed."""


def validate_auth(session: Session | None) -> None:
    """Rejects sessions without an access token. Performs no I/O."""

    if session is None or not session.access_token:
        raise ValidationError("not authenticated: access token is empty")


class AuthAPI:
    """Exchanges credentials for sessions and renews them by grant type."""

    def __init__(self, http_client: HttpClient) -> None:
        self._client = http_client
        self._flows: Dict[GrantType, Callable[[Any], Session]] = {
            GrantType.USERNAME_PASSWORD: self._request_username_password,
            GrantType.CLIENT_CREDENTIALS: self._request_client_credentials,
            GrantType.JWT_BEARER: self._request_jwt_bearer,
        }

    def username_password(
        self,
        domain: str,
        username: str,
        password: str,
        security_token: str,
        consumer_key: str,
        consumer_secret: str,
    ) -> Session:
        grant = UsernamePasswordGrant(
            domain=domain,
            username=username,
            password=password,
            security_token=security_token,
            consumer_key=consumer_key,
            consumer_secret=consumer_secret,
        )
        return self._issued(self._request_username_password(grant))

    def client_credentials(self, domain: str, consumer_key: str, consumer_secret: str) -> Session:
        grant = ClientCredentialsGrant(domain=domain, consumer_key=consumer_key, consumer_secret=consumer_secret)
        return self._issued(self._request_client_credentials(grant))

    def jwt_bearer(
        self,
        domain: str,
        username: str,
        consumer_key: str,
        consumer_rsa_pem: str,
        ttl: timedelta = DEFAULT_JWT_TTL,
    ) -> Session:
        grant = JwtBearerGrant(
            domain=domain,
            username=username,
            consumer_key=consumer_key,
            consumer_rsa_pem=consumer_rsa_pem,
            ttl=ttl,
        )
        return self._issued(self._request_jwt_bearer(grant))

    def set_access_token(self, domain: str, access_token: str) -> Session:
        """Wraps an existing token in a session that cannot be refreshed."""

        if not access_token:
            raise ValidationError("access token is empty")
        self._client.verify_token(domain, access_token)
        logging.info("Using supplied access token for %s", domain)
        return Session(access_token=access_token, instance_url=domain, grant_type=GrantType.NONE)

    def refresh_session(self, session: Session) -> Session:
        """Re-runs the flow that created ``session`` and returns the new session."""

        flow = self._flows.get(session.grant_type)
        if flow is None or session.credentials is None:
            raise RefreshError("session has no grant type and cannot be refreshed")

        refreshed = flow(session.credentials)
        if not refreshed.access_token:
            raise RefreshError("token endpoint returned no access token on refresh")
        logging.info("Refreshed %s session for %s", session.grant_type.name, refreshed.instance_url)
        return refreshed

    def _request_username_password(self, grant: UsernamePasswordGrant) -> Session:
        form = {
            "grant_type": GrantType.USERNAME_PASSWORD.value,
            "client_id": grant.consumer_key,
            "client_secret": grant.consumer_secret,
            "username": grant.username,
            "password": grant.password + grant.security_token,
        }
        return self._request_token(grant, GrantType.USERNAME_PASSWORD, form)

    def _request_client_credentials(self, grant: ClientCredentialsGrant) -> Session:
        form = {
            "grant_type": GrantType.CLIENT_CREDENTIALS.value,
            "client_id": grant.consumer_key,
            "client_secret": grant.consumer_secret,
        }
        return self._request_token(grant, GrantType.CLIENT_CREDENTIALS, form)

    def _request_jwt_bearer(self, grant: JwtBearerGrant) -> Session:
        claims = {
            "iss": grant.consumer_key,
            "sub": grant.username,
            "aud": grant.domain,
            "exp": datetime.now(timezone.utc) + grant.ttl,
        }
        try:
            assertion = jwt.encode(claims, grant.consumer_rsa_pem, algorithm=JWT_ALGORITHM)
        except (JOSEError, ValueError, TypeError) as exc:
            raise AuthError(f"unable to sign JWT assertion: {exc}") from exc
        form = {"grant_type": GrantType.JWT_BEARER.value, "assertion": assertion}
        return self._request_token(grant, GrantType.JWT_BEARER, form)

    def _request_token(self, grant: GrantCredentials, grant_type: GrantType, form: Dict[str, str]) -> Session:
        data = self._client.post_token(grant.domain, form)
        fields = ("access_token", "instance_url", "id", "issued_at", "signature")
        if any(data.get(name) is not None and not isinstance(data.get(name), str) for name in fields):
            raise AuthError("token response has an unexpected shape")
        return Session(
            access_token=data.get("access_token") or "",
            instance_url=data.get("instance_url") or "",
            id=data.get("id") or "",
            issued_at=data.get("issued_at") or "",
            signature=data.get("signature") or "",
            grant_type=grant_type,
            credentials=grant,
        )

    @staticmethod
    def _issued(session: Session) -> Session:
        if not session.access_token:
            raise AuthError("token response is missing access_token")
        logging.info("Authenticated with %s grant against %s", session.grant_type.name, session.instance_url)
        return session
