"""
Credential resolution for ALM connections.

Connections only store a credentials id. The secret itself lives in a
credential store (environment variables, a YAML credentials file, or a chain
of both) and is turned into a user id / secret pair at publish time.
"""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import ClassVar, Mapping, Optional, Sequence, Tuple, Union

import yaml

from almreporter.client.auth import APIAuthType, build_auth_info

logger = logging.getLogger(__name__)

SECRET_TEXT_SEPARATOR = ":"


@dataclass(frozen=True)
class SecretTextCredential:
    """A single secret string holding ``userId:secret``"""
    secret: str

    kind: ClassVar[str] = "secret_text"


@dataclass(frozen=True)
class UsernamePasswordCredential:
    username: str
    password: str

    kind: ClassVar[str] = "username_password"


@dataclass(frozen=True)
class UnsupportedCredential:
    """Any stored credential shape the reporter cannot use"""
    shape: str

    kind: ClassVar[str] = "unsupported"


Credential = Union[SecretTextCredential, UsernamePasswordCredential, UnsupportedCredential]


class CredentialErrorKind(Enum):
    NOT_FOUND = "not_found"
    MALFORMED_FORMAT = "malformed_format"
    UNSUPPORTED_SHAPE = "unsupported_shape"
    UNSUPPORTED_AUTH_TYPE = "unsupported_auth_type"


ERROR_MESSAGES = {
    CredentialErrorKind.MALFORMED_FORMAT: (
        "Invalid format for secret text credentials. Secret text credentials must have "
        "a user ID and user secret separated by a ':' character."
    ),
    CredentialErrorKind.UNSUPPORTED_SHAPE: (
        "Credentials must be either 'Username with password' or 'Secret text'."
    ),
    CredentialErrorKind.UNSUPPORTED_AUTH_TYPE: "Unsupported ALM API authorization type selected.",
}

UNKNOWN_ERROR = "An unknown error occurred while determining ALM REST API authorization information."


@dataclass
class CredentialDetailsResult:
    """User id and secret resolved from a stored credential, or the reason it failed"""
    user_id: str = ""
    user_secret: str = ""
    error_kind: Optional[CredentialErrorKind] = None
    error: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.error_kind is not None or bool(self.error)

    @property
    def error_message(self) -> str:
        if self.error:
            return self.error
        return ERROR_MESSAGES.get(self.error_kind, UNKNOWN_ERROR)

    def __repr__(self):
        return (f"CredentialDetailsResult(user_id={self.user_id!r}, "
                f"error_kind={self.error_kind}, error={self.error!r})")

    @classmethod
    def failure(cls, kind: CredentialErrorKind, message: Optional[str] = None) -> "CredentialDetailsResult":
        return cls(error_kind=kind, error=message or ERROR_MESSAGES.get(kind))


@dataclass
class AuthInfoResult:
    """Auth info ready for the REST client, or the reason it couldn't be built"""
    auth_info: object = None
    error_kind: Optional[CredentialErrorKind] = None
    error: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.auth_info is None

    @property
    def error_message(self) -> str:
        return self.error or ERROR_MESSAGES.get(self.error_kind, UNKNOWN_ERROR)


class CredentialStore(ABC):
    """Read-only lookup of stored credentials by id"""

    @abstractmethod
    def lookup(self, credentials_id: str) -> Optional[Credential]:
        """Return the credential stored under ``credentials_id``, or None."""


class EnvironmentCredentialStore(CredentialStore):
    """Credentials exposed to the job as environment variables.

    ``<ID>`` holds secret text; ``<ID>_USR`` and ``<ID>_PSW`` hold a username
    and password, the way CI systems bind username/password credentials.
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self.environ = environ if environ is not None else os.environ

    @staticmethod
    def variable_names(credentials_id: str) -> Tuple[str, str, str]:
        """Environment variables that can hold the credential ``credentials_id``."""
        return credentials_id, f"{credentials_id}_USR", f"{credentials_id}_PSW"

    def lookup(self, credentials_id: str) -> Optional[Credential]:
        if not credentials_id:
            return None
        if credentials_id in self.environ:
            return SecretTextCredential(self.environ[credentials_id])

        _, username_var, password_var = self.variable_names(credentials_id)
        username = self.environ.get(username_var)
        password = self.environ.get(password_var)
        if username is not None and password is not None:
            return UsernamePasswordCredential(username, password)
        return None


class FileCredentialStore(CredentialStore):
    """Credentials kept in a YAML file.

    Example::

        credentials:
          alm-api-key:
            type: secret_text
            secret: "keyid:keysecret"
          alm-user:
            type: username_password
            username: build
            password: s3cret
    """

    def __init__(self, path):
        self.path = Path(path).expanduser()

    def _load_entries(self) -> Mapping:
        if not self.path.exists():
            logger.debug(f"Credentials file not found: {self.path}")
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring credentials file with unexpected layout: {self.path}")
            return {}
        entries = data.get("credentials", data)
        return entries if isinstance(entries, dict) else {}

    def lookup(self, credentials_id: str) -> Optional[Credential]:
        entry = self._load_entries().get(credentials_id)
        if entry is None:
            return None
        if not isinstance(entry, dict):
            return UnsupportedCredential(type(entry).__name__)

        kind = entry.get("type")
        if kind == SecretTextCredential.kind:
            return SecretTextCredential(str(entry.get("secret", "")))
        if kind == UsernamePasswordCredential.kind:
            return UsernamePasswordCredential(str(entry.get("username", "")), str(entry.get("password", "")))
        return UnsupportedCredential(str(kind))


class ChainedCredentialStore(CredentialStore):
    """First store that knows the id wins"""

    def __init__(self, stores: Sequence[CredentialStore]):
        self.stores = list(stores)

    def lookup(self, credentials_id: str) -> Optional[Credential]:
        for store in self.stores:
            credential = store.lookup(credentials_id)
            if credential is not None:
                return credential
        return None


def _from_secret_text(credential: SecretTextCredential) -> CredentialDetailsResult:
    parts = credential.secret.split(SECRET_TEXT_SEPARATOR, 1)
    if len(parts) != 2:
        return CredentialDetailsResult.failure(CredentialErrorKind.MALFORMED_FORMAT)
    return CredentialDetailsResult(user_id=parts[0], user_secret=parts[1])


def _from_username_password(credential: UsernamePasswordCredential) -> CredentialDetailsResult:
    return CredentialDetailsResult(user_id=credential.username, user_secret=credential.password)


def _from_unsupported(credential: UnsupportedCredential) -> CredentialDetailsResult:
    return CredentialDetailsResult.failure(CredentialErrorKind.UNSUPPORTED_SHAPE)


_DETAIL_RESOLVERS = {
    SecretTextCredential.kind: _from_secret_text,
    UsernamePasswordCredential.kind: _from_username_password,
    UnsupportedCredential.kind: _from_unsupported,
}


class CredentialResolver:
    """Turns a credentials id into a user id / secret pair"""

    def __init__(self, store: CredentialStore):
        self.store = store
        self.logger = logging.getLogger(self.__class__.__name__)

    def resolve(self, credentials_id: str) -> CredentialDetailsResult:
        credential = self.store.lookup(credentials_id)
        if credential is None:
            self.logger.debug(f"No stored credentials for id {credentials_id}")
            return CredentialDetailsResult.failure(
                CredentialErrorKind.NOT_FOUND,
                f"Could not find credentials with ID {credentials_id}",
            )
        return _DETAIL_RESOLVERS[credential.kind](credential)

    def auth_info(self, auth_type, credentials_id: str) -> AuthInfoResult:
        """Resolve ``credentials_id`` and wrap it in the auth info for ``auth_type``."""
        details = self.resolve(credentials_id)
        if details.is_error:
            return AuthInfoResult(error_kind=details.error_kind, error=details.error_message)

        try:
            auth_info = build_auth_info(APIAuthType.from_value(auth_type), details.user_id, details.user_secret)
        except ValueError:
            return AuthInfoResult(error_kind=CredentialErrorKind.UNSUPPORTED_AUTH_TYPE,
                                  error=ERROR_MESSAGES[CredentialErrorKind.UNSUPPORTED_AUTH_TYPE])
        return AuthInfoResult(auth_info=auth_info)
