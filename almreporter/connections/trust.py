"""
Trust-on-first-use handling of ALM server certificates.

Certificates an administrator chose to accept are stored per connection in a
JSON file named after the connection uuid. Installs that predate connection
uuids stored them under the URL-encoded connection name; those files are
copied to the uuid key the first time they are read.
"""

import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence
from urllib.parse import quote

from almreporter.client.models import CertificateInfo, CertificateStatus
from almreporter.client.tls import get_server_cert_status
from almreporter.connections.models import Connection

logger = logging.getLogger(__name__)

INVALID_CERTIFICATE_MESSAGE = (
    "The SSL certificate used by the specified REST API server is invalid and cannot be used."
)
UNACCEPTED_CERTIFICATE_MESSAGE = (
    "The SSL certificate used by the specified REST API server is invalid. To use it anyway "
    "to connect to this server, set 'accept_ssl_certificates' for the connection and try again."
)

_locks: Dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


def connection_lock(connection_uuid: str) -> threading.Lock:
    """Process-wide lock guarding the certificate file of one connection."""
    with _locks_guard:
        lock = _locks.get(connection_uuid)
        if lock is None:
            lock = _locks[connection_uuid] = threading.Lock()
        return lock


def encode_name_as_filename(name: str) -> str:
    """Encode a connection name the way legacy certificate files were named.

    Form encoding with spaces as ``%20`` and ``.``, ``*`` and ``~`` escaped too,
    so no name can produce a relative path or hidden file.
    """
    encoded = quote(name, safe="")
    return encoded.replace(".", "%2E").replace("*", "%2A").replace("~", "%7E")


class CertificateStore:
    """Accepted PEM certificates on disk, one JSON list per connection"""

    FILE_SUFFIX = ".json"

    def __init__(self, directory):
        self.directory = Path(directory).expanduser()

    def path_for(self, key: str) -> Path:
        return self.directory / f"{key}{self.FILE_SUFFIX}"

    def read(self, key: str) -> Optional[List[str]]:
        """Certificates stored under ``key``; None when there is no usable file."""
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read accepted certificates from {path}: {e}")
            return None

        if not isinstance(data, list):
            logger.warning(f"Ignoring accepted certificate file with unexpected content: {path}")
            return None
        return [cert for cert in data if isinstance(cert, str)]

    def write(self, key: str, pem_certificates: Sequence[str]) -> None:
        """Atomically replace the certificates stored under ``key``."""
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(key)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.directory), prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(list(pem_certificates), f, indent=2)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.debug(f"Saved {len(pem_certificates)} accepted certificate(s) to {path}")

    def load(self, connection_uuid: str, connection_name: Optional[str] = None) -> List[str]:
        """Accepted certificates for a connection, migrating a legacy name-keyed file.

        The uuid file wins when both exist. A legacy file is copied, never
        moved, so older tooling reading it keeps working.
        """
        certificates = self.read(connection_uuid)
        if certificates is not None:
            return certificates

        if not connection_name:
            return []

        legacy_key = encode_name_as_filename(connection_name)
        certificates = self.read(legacy_key)
        if certificates is None:
            return []

        logger.info(f"Migrating accepted certificates for connection '{connection_name}' to {connection_uuid}")
        try:
            self.write(connection_uuid, certificates)
        except OSError as e:
            logger.warning(f"Could not migrate accepted certificates for '{connection_name}': {e}")
        return certificates

    def save(self, connection_uuid: str, pem_certificates: Sequence[str]) -> None:
        self.write(connection_uuid, pem_certificates)


@dataclass
class TrustOutcome:
    """What to do about a server's certificate chain"""
    status: CertificateStatus
    certificates: List[str] = field(default_factory=list)
    persisted: bool = False
    message: Optional[str] = None
    severity: Optional[str] = None

    @property
    def is_trusted(self) -> bool:
        return self.status in (CertificateStatus.VALID, CertificateStatus.TRUSTED)


class CertificateTrustManager:
    """Decides whether a connection's server certificate may be used.

    The check for one connection runs under that connection's lock: the
    stored certificates are loaded and the server probed again after the lock
    is taken, so a concurrent check that already accepted the certificate is
    seen and nothing is downloaded twice.
    """

    def __init__(self, store: CertificateStore,
                 probe: Callable[..., CertificateInfo] = get_server_cert_status):
        self.store = store
        self.probe = probe
        self.logger = logging.getLogger(self.__class__.__name__)

    def accepted_certificates(self, connection: Connection) -> List[str]:
        with connection_lock(connection.connection_uuid):
            return self.store.load(connection.connection_uuid, connection.connection_name)

    def check(self, connection: Connection) -> TrustOutcome:
        if not connection.is_https:
            return TrustOutcome(status=CertificateStatus.VALID)

        with connection_lock(connection.connection_uuid):
            accepted = self.store.load(connection.connection_uuid, connection.connection_name)
            info = self.probe(connection.api_address, accepted)
            return self._decide(connection, accepted, info)

    def _decide(self, connection: Connection, accepted: List[str], info: CertificateInfo) -> TrustOutcome:
        if info.status in (CertificateStatus.VALID, CertificateStatus.TRUSTED):
            return TrustOutcome(status=info.status, certificates=accepted)

        if info.status is CertificateStatus.INVALID_DOWNLOADABLE and info.pem_certificates:
            if not connection.accept_ssl_certificates:
                self.logger.warning(f"Untrusted certificate for {connection.api_address}: {info.error_message}")
                return TrustOutcome(status=info.status, message=UNACCEPTED_CERTIFICATE_MESSAGE,
                                    severity="warning")

            self.store.save(connection.connection_uuid, info.pem_certificates)
            self.logger.info(f"Accepted the certificate presented by {connection.api_address} "
                             f"for connection '{connection.connection_name}'")
            return TrustOutcome(status=CertificateStatus.TRUSTED,
                                certificates=list(info.pem_certificates), persisted=True)

        self.logger.warning(f"Invalid certificate for {connection.api_address}: {info.error_message}")
        return TrustOutcome(status=CertificateStatus.INVALID, message=INVALID_CERTIFICATE_MESSAGE,
                            severity="error")
