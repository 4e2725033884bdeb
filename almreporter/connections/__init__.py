"""
ALM connection definitions, credentials and certificate trust.
"""

from .credentials import (
    AuthInfoResult,
    ChainedCredentialStore,
    CredentialDetailsResult,
    CredentialErrorKind,
    CredentialResolver,
    EnvironmentCredentialStore,
    FileCredentialStore,
    SecretTextCredential,
    UnsupportedCredential,
    UsernamePasswordCredential,
)
from .directory import ConnectionDirectory
from .models import Connection
from .tester import CheckKind, CheckResult, ConnectionTester
from .trust import CertificateStore, CertificateTrustManager, TrustOutcome

__all__ = [
    'AuthInfoResult',
    'ChainedCredentialStore',
    'CredentialDetailsResult',
    'CredentialErrorKind',
    'CredentialResolver',
    'EnvironmentCredentialStore',
    'FileCredentialStore',
    'SecretTextCredential',
    'UnsupportedCredential',
    'UsernamePasswordCredential',
    'ConnectionDirectory',
    'Connection',
    'CheckKind',
    'CheckResult',
    'ConnectionTester',
    'CertificateStore',
    'CertificateTrustManager',
    'TrustOutcome',
]
