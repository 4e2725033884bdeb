"""
Builds the publishing components from a loaded configuration.
"""
from typing import Mapping, Optional

from almreporter.connections.credentials import (
    ChainedCredentialStore,
    CredentialResolver,
    EnvironmentCredentialStore,
    FileCredentialStore,
)
from almreporter.connections.directory import ConnectionDirectory
from almreporter.connections.trust import CertificateStore, CertificateTrustManager

DEFAULT_CERTIFICATE_DIRECTORY = "~/.almreporter/certificates"


def build_directory(config: dict) -> ConnectionDirectory:
    return ConnectionDirectory.from_config(config.get("connections"))


def build_credential_resolver(config: dict, environ: Optional[Mapping[str, str]] = None) -> CredentialResolver:
    """Environment first, then the credentials file when one is configured."""
    stores = [EnvironmentCredentialStore(environ)]
    credentials_file = (config.get("credentials") or {}).get("file")
    if credentials_file:
        stores.append(FileCredentialStore(credentials_file))
    return CredentialResolver(ChainedCredentialStore(stores))


def build_trust_manager(config: dict) -> CertificateTrustManager:
    directory = (config.get("certificate_store") or {}).get("directory") or DEFAULT_CERTIFICATE_DIRECTORY
    return CertificateTrustManager(CertificateStore(directory))


def publish_settings(config: dict) -> dict:
    settings = {
        "request_timeout": 60,
        "unstable_exit_code": 0,
        "dispatch": "local",
        "task_file": None,
        "task_result_timeout": 0,
    }
    settings.update(config.get("publish") or {})
    return settings
