"""Shared HTTP helpers for the Salesforce token and data APIs."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

import requests

from ..models import Session

DEFAULT_API_VERSION = "v63.0"
TOKEN_PATH = "/services/oauth2/token"
LIMITS_PATH = "/limits"

API_HEADERS_TEMPLATE: Dict[str, str] = {
    "accept": "application/json",
    "user-agent": "salesforce-client/0.1",
}


class SalesforceError(Exception):
    """Base class for every error raised by this package."""


class TransportError(SalesforceError):
    """Raised when a request cannot be completed or the data API rejects it."""


class SessionExpiredError(TransportError):
    """Raised when the data API keeps rejecting the session with 401."""


class AuthError(SalesforceError):
    """Raised when a grant flow fails or its token response is unusable."""


class HttpClient:
    """Handles token and data API requests for a single owned session.

    ``session`` is the only reference to the authenticated state. When
    ``refresher`` is set, an HTTP 401 from the data API swaps in the
    refreshed session and replays the request once.
    """

    def __init__(
        self,
        session: Optional[Session] = None,
        api_version: str = DEFAULT_API_VERSION,
        timeout: int = 10,
    ) -> None:
        self.session = session
        self.api_version = api_version
        self.timeout = timeout
        self.refresher: Optional[Callable[[Session], Session]] = None
        self._http = requests.Session()
        self._http.headers.update(API_HEADERS_TEMPLATE.copy())

    @property
    def api_prefix(self) -> str:
        return f"/services/data/{self.api_version}"

    def post_token(self, domain: str, form: Dict[str, str]) -> Dict[str, Any]:
        """POST a form-encoded grant to the token endpoint of ``domain``."""

        url = domain.rstrip("/") + TOKEN_PATH
        try:
            response = self._http.post(url, data=form, timeout=self.timeout)
        except requests.RequestException as exc:
            logging.error("Token request to %s failed: %s", url, exc)
            raise TransportError(f"token request to {url} failed: {exc}") from exc

        if not response.ok:
            logging.error("Token endpoint rejected %s grant (status %s).", form.get("grant_type"), response.status_code)
            raise AuthError(f"token endpoint returned status {response.status_code}: {response.text}")

        try:
            data = response.json()
        except ValueError as exc:
            raise AuthError("token response is not valid JSON") from exc
        if not isinstance(data, dict):
            raise AuthError("token response is not a JSON object")
        return data

    def verify_token(self, domain: str, access_token: str) -> None:
        """Confirms ``access_token`` is accepted by a lightweight data API call."""

        url = domain.rstrip("/") + self.api_prefix + LIMITS_PATH
        try:
            response = self._http.get(url, headers=_bearer(access_token), timeout=self.timeout)
        except requests.RequestException as exc:
            logging.error("Token verification against %s failed: %s", url, exc)
            raise TransportError(f"token verification against {url} failed: {exc}") from exc

        if not response.ok:
            raise AuthError(f"access token rejected with status {response.status_code}")

    def request_api(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> requests.Response:
        """Sends an authenticated request to a data API path relative to the API version."""

        if self.session is None:
            raise TransportError("no session attached to the HTTP client")

        response = self._send(method, path, payload)
        if response.status_code == 401 and self.refresher is not None:
            logging.info("Session rejected for %s %s, refreshing.", method, path)
            self.session = self.refresher(self.session)
            response = self._send(method, path, payload)

        if response.status_code == 401:
            raise SessionExpiredError("session expired or invalid")
        if not response.ok:
            logging.error("API request %s %s failed with status %s", method, path, response.status_code)
            raise TransportError(f"{method} {path} returned status {response.status_code}: {response.text}")
        return response

    def _send(self, method: str, path: str, payload: Optional[Dict[str, Any]]) -> requests.Response:
        url = self.session.instance_url.rstrip("/") + self.api_prefix + path
        try:
            return self._http.request(
                method,
                url,
                json=payload,
                headers=_bearer(self.session.access_token),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logging.error("HTTP %s to %s failed: %s", method, url, exc)
            raise TransportError(f"{method} {url} failed: {exc}") from exc

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()


def _bearer(access_token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {access_token}"}
