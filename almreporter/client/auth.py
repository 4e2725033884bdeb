"""
Authorization information for ALM REST API requests.

Each auth info object knows how to render itself as the value of an
``Authorization`` header. Instances hold plain strings only so they can be
rebuilt on the far side of a dispatch boundary.
"""

import base64
from dataclasses import dataclass
from enum import Enum


class APIAuthType(Enum):
    """Authorization scheme selected for a connection"""
    BASIC = "basic"
    API_KEY = "api_key"

    @classmethod
    def from_value(cls, value) -> "APIAuthType":
        """Parse a config value: enum value, enum name or ordinal string."""
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for member in cls:
            if text.lower() in (member.value, member.name.lower()):
                return member
        if text.isdigit() and int(text) < len(cls):
            return list(cls)[int(text)]
        if text.lower() in ("apikey", "api-key"):
            return cls.API_KEY
        raise ValueError(f"Unsupported ALM API authorization type: {value}")

    @property
    def description(self) -> str:
        if self is APIAuthType.API_KEY:
            return "API Key"
        return "Username & Password"


def _encode_pair(first: str, second: str) -> str:
    return base64.b64encode(f"{first}:{second}".encode("utf-8")).decode("ascii")


@dataclass(frozen=True)
class AuthInfoBasic:
    username: str
    password: str

    auth_type = APIAuthType.BASIC

    def get_authorization_header(self) -> str:
        return f"Basic {_encode_pair(self.username, self.password)}"


@dataclass(frozen=True)
class AuthInfoAPIKey:
    key_id: str
    secret: str

    auth_type = APIAuthType.API_KEY

    def get_authorization_header(self) -> str:
        return f"APIKey {_encode_pair(self.key_id, self.secret)}"


@dataclass(frozen=True)
class AuthInfoToken:
    """Short-lived project token returned by the REST API"""
    token: str

    def get_authorization_header(self) -> str:
        return f"Bearer {self.token}"


def build_auth_info(auth_type: APIAuthType, user_id: str, secret: str):
    """Wrap a resolved credential pair in the auth info for ``auth_type``."""
    if auth_type is APIAuthType.BASIC:
        return AuthInfoBasic(user_id, secret)
    if auth_type is APIAuthType.API_KEY:
        return AuthInfoAPIKey(user_id, secret)
    raise ValueError(f"Unsupported ALM API authorization type: {auth_type}")
