"""Pytest fixtures: an in-memory stand-in for ``requests.Session`` and test keys."""

import json

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from salesforce_client.utils import http_client as http_client_module

DOMAIN = "https://login.example.com"
INSTANCE_URL = "https://na1.example.com"
DATA_PREFIX = INSTANCE_URL + "/services/data/v63.0"


def token_body(access_token="T", instance_url=INSTANCE_URL):
    return {
        "access_token": access_token,
        "instance_url": instance_url,
        "id": "https://login.example.com/id/00D/005",
        "issued_at": "1704164645000",
        "signature": "signed",
    }


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        if text is None:
            text = json.dumps(body) if body is not None else ""
        self.status_code = status_code
        self.text = text
        self.content = text.encode("utf-8")

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        return json.loads(self.text)


class FakeHttpSession:
    """Serves queued responses by method and URL substring, in order."""

    def __init__(self):
        self.headers = {}
        self.calls = []
        self.closed = False
        self._routes = []

    def add(self, method, url_part, response, repeat=False):
        self._routes.append((method, url_part, response, repeat))

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        for index, (route_method, url_part, response, repeat) in enumerate(self._routes):
            if route_method == method and url_part in url:
                if not repeat:
                    del self._routes[index]
                if isinstance(response, Exception):
                    raise response
                return response
        raise AssertionError(f"unexpected request {method} {url}")

    def post(self, url, **kwargs):
        return self.request("POST", url, **kwargs)

    def get(self, url, **kwargs):
        return self.request("GET", url, **kwargs)

    def close(self):
        self.closed = True


@pytest.fixture
def fake_http(monkeypatch):
    fake = FakeHttpSession()
    monkeypatch.setattr(http_client_module.requests, "Session", lambda: fake)
    return fake


@pytest.fixture(scope="session")
def rsa_keys():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.TraditionalOpenSSL,
        serialization.NoEncryption(),
    ).decode()
    public_pem = key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    return private_pem, public_pem
