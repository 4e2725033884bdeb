"""
End-to-end validation of an ALM connection definition.

Walks the same path a publish would take (credentials, reachability,
certificate trust, REST API version, project access) and reports the first
problem found.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from packaging.version import InvalidVersion, Version

from almreporter.client import connect, normalize_api_address
from almreporter.client.exceptions import (
    ALMClientError,
    APIConnectionError,
    APIServerError,
    AuthenticationError,
    InvalidAPIAddressError,
)
from almreporter.client.models import VersionInfo
from almreporter.connections.credentials import CredentialResolver
from almreporter.connections.models import Connection
from almreporter.connections.trust import CertificateTrustManager

MINIMUM_REST_API_VERSION = "2022.2.0"

# Development builds of the REST API report this version
DEBUG_VERSION = "."
UNKNOWN_ALM_SERVER_VERSION = "<unknown>"

INVALID_CREDENTIALS_MESSAGE = "Cannot connect to the REST API server. The specified credentials are invalid."


class CheckKind(Enum):
    OK = "ok"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class CheckResult:
    kind: CheckKind
    message: str

    @property
    def is_ok(self) -> bool:
        return self.kind is CheckKind.OK

    @classmethod
    def ok(cls, message: str) -> "CheckResult":
        return cls(CheckKind.OK, message)

    @classmethod
    def warning(cls, message: str) -> "CheckResult":
        return cls(CheckKind.WARNING, message)

    @classmethod
    def error(cls, message: str) -> "CheckResult":
        return cls(CheckKind.ERROR, message)


def compare_versions(minimum: str, version: str) -> Optional[CheckResult]:
    """Error result when ``version`` is older than ``minimum``, otherwise None."""
    try:
        if Version(version) < Version(minimum):
            return CheckResult.error(
                f"The ALM REST API Server version must be {minimum} or later. "
                f"Installed version: {version}."
            )
    except InvalidVersion:
        return CheckResult.error(
            f"An error occurred when attempting to determine the ALM REST API Server version. "
            f"Reported version: {version}."
        )
    return None


def check_rest_api_version(versions: VersionInfo) -> Optional[CheckResult]:
    if versions.rest_api_server == DEBUG_VERSION:
        return None
    return compare_versions(MINIMUM_REST_API_VERSION, versions.rest_api_server)


def check_alm_server_connection(versions: VersionInfo) -> Optional[CheckResult]:
    alm_version = versions.alm_server or ""
    if alm_version == UNKNOWN_ALM_SERVER_VERSION or "." not in alm_version:
        return CheckResult.error(
            "The ALM REST API Server cannot connect to the ALM Server. "
            "Check the ALM REST API Server configuration."
        )
    return None


class ConnectionTester:
    """Validates a connection and reports the first problem found"""

    def __init__(self, resolver: CredentialResolver, trust_manager: CertificateTrustManager,
                 client_factory: Callable = connect, timeout: float = 60):
        self.resolver = resolver
        self.trust_manager = trust_manager
        self.client_factory = client_factory
        self.timeout = timeout
        self.logger = logging.getLogger(self.__class__.__name__)

    def test(self, connection: Connection) -> CheckResult:
        if not (connection.connection_name and connection.api_address and connection.credentials_id):
            return CheckResult.error("Connection name, REST API address, and Credentials cannot be empty.")

        try:
            address = normalize_api_address(connection.api_address)
        except InvalidAPIAddressError:
            return CheckResult.error(f"Cannot connect to the REST API Server at {connection.api_address}.")

        auth = self.resolver.auth_info(connection.credential_type, connection.credentials_id)
        if auth.is_error:
            return CheckResult.error(auth.error_message)

        try:
            return self._test_server(connection, address, auth.auth_info)
        except ALMClientError as e:
            self.logger.warning(f"Connection test for '{connection.connection_name}' failed: {e}")
            return CheckResult.error(f"Unknown error: {e.message}")

    def _test_server(self, connection: Connection, address: str, auth_info) -> CheckResult:
        with self.client_factory(address, auth_info, (), timeout=self.timeout) as client:
            try:
                client.does_server_exist()
            except APIConnectionError as e:
                self.logger.debug(f"Server unreachable: {e}")
                return CheckResult.error(f"Cannot connect to the REST API Server at {address}.")

        certificates = []
        if connection.is_https:
            outcome = self.trust_manager.check(connection)
            if not outcome.is_trusted:
                if outcome.severity == "warning":
                    return CheckResult.warning(outcome.message)
                return CheckResult.error(outcome.message)
            certificates = outcome.certificates

        with self.client_factory(address, auth_info, certificates, timeout=self.timeout) as client:
            versions = client.get_versions()
            problem = check_rest_api_version(versions) or check_alm_server_connection(versions)
            if problem:
                return problem

            try:
                projects = client.get_projects()
            except AuthenticationError:
                return CheckResult.error(INVALID_CREDENTIALS_MESSAGE)
            except APIServerError as e:
                # A malformed API key is reported as a server error
                if e.status_code == 500:
                    return CheckResult.error(INVALID_CREDENTIALS_MESSAGE)
                raise

            if not projects:
                return CheckResult.error(
                    "The specified user does not have permission to access any ALM projects using the REST API."
                )

        return CheckResult.ok("Connection successful.")
