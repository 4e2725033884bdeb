"""
ALM REST API client.

Thin ``requests``-based client for the ALM REST API. The rest of the package
only talks to the server through ``connect()`` and the returned client.
"""

from .api_client import ALMAPIClient, RUN_SET_MENU_ID, normalize_api_address
from .auth import APIAuthType, AuthInfoAPIKey, AuthInfoBasic, AuthInfoToken, build_auth_info
from .exceptions import (
    ALMClientError,
    APIConnectionError,
    APINotFoundError,
    APIServerError,
    APITimeoutError,
    AuthenticationError,
    InvalidAPIAddressError,
    RestrictedEnvironmentError,
)
from .models import CertificateInfo, CertificateStatus, ReportFormatType


def connect(api_address: str, auth_info, pem_certificates=(), timeout: float = 60) -> ALMAPIClient:
    """Create a client for ``api_address`` trusting the given accepted certificates."""
    return ALMAPIClient(api_address, auth_info, pem_certificates, timeout=timeout)


__all__ = [
    'connect',
    'ALMAPIClient',
    'RUN_SET_MENU_ID',
    'normalize_api_address',
    'APIAuthType',
    'AuthInfoAPIKey',
    'AuthInfoBasic',
    'AuthInfoToken',
    'build_auth_info',
    'ALMClientError',
    'APIConnectionError',
    'APINotFoundError',
    'APIServerError',
    'APITimeoutError',
    'AuthenticationError',
    'InvalidAPIAddressError',
    'RestrictedEnvironmentError',
    'CertificateInfo',
    'CertificateStatus',
    'ReportFormatType',
]
