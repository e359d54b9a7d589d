"""Models describing sessions, grant types, and the credentials behind them."""

from __future__ import annotations

from datetime import timedelta
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field

DEFAULT_JWT_TTL = timedelta(minutes=5)


class GrantType(str, Enum):
    """How a session was obtained, and therefore how it can be renewed."""

    USERNAME_PASSWORD = "password"
    CLIENT_CREDENTIALS = "client_credentials"
    JWT_BEARER = "urn:ietf:params:oauth:grant-type:jwt-bearer"
    NONE = "none"


class UsernamePasswordGrant(BaseModel):
    domain: str
    username: str
    password: str
    security_token: str
    consumer_key: str
    consumer_secret: str


class ClientCredentialsGrant(BaseModel):
    domain: str
    consumer_key: str
    consumer_secret: str


class JwtBearerGrant(BaseModel):
    domain: str
    username: str
    consumer_key: str
    consumer_rsa_pem: str
    ttl: timedelta = DEFAULT_JWT_TTL


GrantCredentials = Union[UsernamePasswordGrant, ClientCredentialsGrant, JwtBearerGrant]


class Session(BaseModel):
    """Authenticated state returned by the token endpoint.

    ``credentials`` keeps the inputs of the flow that created the session so
    it can be re-run on refresh. It is ``None`` for injected tokens.
    """

    access_token: str = ""
    instance_url: str = ""
    id: str = ""
    issued_at: str = ""
    signature: str = ""
    grant_type: GrantType = GrantType.NONE
    credentials: Optional[GrantCredentials] = Field(default=None, exclude=True, repr=False)


class Credentials(BaseModel):
    """Everything a caller may supply; the client picks a grant flow from it."""

    domain: str = ""
    username: str = ""
    password: str = ""
    security_token: str = ""
    consumer_key: str = ""
    consumer_secret: str = ""
    consumer_rsa_pem: str = ""
    access_token: str = ""
    jwt_ttl: timedelta = DEFAULT_JWT_TTL
