"""
TLS helpers for the ALM REST client.

Builds SSL contexts that combine the system trust roots with certificates an
administrator explicitly accepted, probes a server to classify its certificate
chain, and mounts the same trust decision on a ``requests`` session.
"""

import logging
import socket
import ssl
from typing import List, Sequence, Tuple
from urllib.parse import urlparse

from requests.adapters import HTTPAdapter

from .exceptions import APIConnectionError, InvalidAPIAddressError
from .models import CertificateInfo, CertificateStatus

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 10


def is_https(url: str) -> bool:
    return (url or "").lower().startswith("https://")


def split_address(url: str) -> Tuple[str, int]:
    """Return the (host, port) pair a TLS probe should connect to."""
    parsed = urlparse(url)
    if not parsed.hostname:
        raise InvalidAPIAddressError(f"Invalid REST API address: {url}")
    port = parsed.port or (443 if parsed.scheme == "https" else 80)
    return parsed.hostname, port


def build_ssl_context(pem_certificates: Sequence[str] = ()) -> ssl.SSLContext:
    """System trust roots plus any accepted PEM certificates.

    Accepted certificates act as trust anchors on their own, so a pinned
    self-signed leaf is enough. The pinned certificate is the server identity,
    which is why hostname matching is relaxed once certificates are accepted.
    """
    context = ssl.create_default_context()
    if pem_certificates:
        context.load_verify_locations(cadata="\n".join(pem_certificates))
        context.verify_flags |= ssl.VERIFY_X509_PARTIAL_CHAIN
        context.check_hostname = False
    return context


def _handshake(host: str, port: int, context: ssl.SSLContext, timeout: float) -> None:
    with socket.create_connection((host, port), timeout=timeout) as sock:
        with context.wrap_socket(sock, server_hostname=host):
            pass


def fetch_server_certificates(host: str, port: int, timeout: float = DEFAULT_PROBE_TIMEOUT) -> List[str]:
    """Retrieve the certificate the server presents, without validating it."""
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE

    with socket.create_connection((host, port), timeout=timeout) as sock:
        with context.wrap_socket(sock, server_hostname=host) as tls_sock:
            der = tls_sock.getpeercert(binary_form=True)

    if not der:
        return []
    return [ssl.DER_cert_to_PEM_cert(der)]


def get_server_cert_status(url: str,
                           accepted_certificates: Sequence[str] = (),
                           timeout: float = DEFAULT_PROBE_TIMEOUT) -> CertificateInfo:
    """Classify the server's certificate chain.

    VALID when the system roots verify it, TRUSTED when the previously accepted
    certificates do, INVALID_DOWNLOADABLE when neither does but the presented
    certificate could be retrieved, INVALID otherwise.
    """
    if not is_https(url):
        return CertificateInfo(status=CertificateStatus.VALID)

    host, port = split_address(url)

    try:
        _handshake(host, port, build_ssl_context(), timeout)
        return CertificateInfo(status=CertificateStatus.VALID)
    except ssl.SSLCertVerificationError as e:
        logger.debug(f"System trust rejected {host}:{port}: {e}")
        verification_error = str(e)
    except OSError as e:
        raise APIConnectionError(f"Cannot connect to {host}:{port}: {e}", endpoint=url)

    if accepted_certificates:
        try:
            _handshake(host, port, build_ssl_context(accepted_certificates), timeout)
            return CertificateInfo(status=CertificateStatus.TRUSTED,
                                   pem_certificates=list(accepted_certificates))
        except ssl.SSLCertVerificationError as e:
            logger.debug(f"Accepted certificates no longer match {host}:{port}: {e}")
        except OSError as e:
            raise APIConnectionError(f"Cannot connect to {host}:{port}: {e}", endpoint=url)

    try:
        presented = fetch_server_certificates(host, port, timeout)
    except (OSError, ValueError) as e:
        logger.warning(f"Could not download the certificate presented by {host}:{port}: {e}")
        return CertificateInfo(status=CertificateStatus.INVALID, error_message=verification_error)

    if presented:
        return CertificateInfo(status=CertificateStatus.INVALID_DOWNLOADABLE,
                               pem_certificates=presented,
                               error_message=verification_error)
    return CertificateInfo(status=CertificateStatus.INVALID, error_message=verification_error)


class PinnedCertificateAdapter(HTTPAdapter):
    """HTTPS adapter that trusts the system roots plus accepted certificates."""

    def __init__(self, pem_certificates: Sequence[str] = (), **kwargs):
        # HTTPAdapter.__init__ builds the pool manager, so the context comes first
        self.ssl_context = build_ssl_context(pem_certificates)
        super().__init__(**kwargs)

    def _apply_context(self, kwargs: dict) -> dict:
        kwargs["ssl_context"] = self.ssl_context
        if not self.ssl_context.check_hostname:
            kwargs["assert_hostname"] = False
        return kwargs

    def init_poolmanager(self, *args, **kwargs):
        return super().init_poolmanager(*args, **self._apply_context(kwargs))

    def proxy_manager_for(self, proxy, **proxy_kwargs):
        return super().proxy_manager_for(proxy, **self._apply_context(proxy_kwargs))
