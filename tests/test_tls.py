"""
Tests for server certificate classification.

Handshakes and certificate downloads are patched; nothing connects out.
"""

import ssl
from unittest.mock import patch

import pytest

from almreporter.client.exceptions import APIConnectionError, InvalidAPIAddressError
from almreporter.client.models import CertificateStatus
from almreporter.client.tls import (
    PinnedCertificateAdapter,
    build_ssl_context,
    get_server_cert_status,
    split_address,
)

PEM = "-----BEGIN CERTIFICATE-----\nMIIB\n-----END CERTIFICATE-----\n"
URL = "https://alm.example.com:8443"


def _untrusted(*args, **kwargs):
    raise ssl.SSLCertVerificationError("certificate verify failed: self signed certificate")


class TestSplitAddress:

    def test_explicit_port(self):
        assert split_address(URL) == ("alm.example.com", 8443)

    def test_default_ports(self):
        assert split_address("https://alm.example.com") == ("alm.example.com", 443)
        assert split_address("http://alm.example.com") == ("alm.example.com", 80)

    def test_missing_host(self):
        with pytest.raises(InvalidAPIAddressError):
            split_address("https://")


class TestGetServerCertStatus:

    def test_http_is_always_valid(self):
        with patch("almreporter.client.tls._handshake") as mock_handshake:
            info = get_server_cert_status("http://alm.example.com")

        assert info.status is CertificateStatus.VALID
        mock_handshake.assert_not_called()

    @patch("almreporter.client.tls._handshake")
    def test_system_trusted_certificate(self, mock_handshake):
        info = get_server_cert_status(URL)

        assert info.status is CertificateStatus.VALID
        assert info.is_trustworthy
        mock_handshake.assert_called_once()

    @patch("almreporter.client.tls.build_ssl_context")
    @patch("almreporter.client.tls._handshake")
    def test_accepted_certificate_is_trusted(self, mock_handshake, mock_context):
        mock_handshake.side_effect = [ssl.SSLCertVerificationError("self signed"), None]

        info = get_server_cert_status(URL, [PEM])

        assert info.status is CertificateStatus.TRUSTED
        assert info.pem_certificates == [PEM]
        mock_context.assert_called_with([PEM])

    @patch("almreporter.client.tls.fetch_server_certificates", return_value=[PEM])
    @patch("almreporter.client.tls._handshake", side_effect=_untrusted)
    def test_untrusted_but_downloadable(self, mock_handshake, mock_fetch):
        info = get_server_cert_status(URL)

        assert info.status is CertificateStatus.INVALID_DOWNLOADABLE
        assert info.pem_certificates == [PEM]
        assert "self signed" in info.error_message
        assert not info.is_trustworthy

    @patch("almreporter.client.tls.fetch_server_certificates", return_value=[])
    @patch("almreporter.client.tls._handshake", side_effect=_untrusted)
    def test_untrusted_and_nothing_downloaded(self, mock_handshake, mock_fetch):
        info = get_server_cert_status(URL)

        assert info.status is CertificateStatus.INVALID
        assert info.pem_certificates == []

    @patch("almreporter.client.tls.fetch_server_certificates", side_effect=OSError("reset"))
    @patch("almreporter.client.tls._handshake", side_effect=_untrusted)
    def test_download_failure_is_invalid(self, mock_handshake, mock_fetch):
        info = get_server_cert_status(URL)

        assert info.status is CertificateStatus.INVALID

    @patch("almreporter.client.tls._handshake", side_effect=ConnectionRefusedError("refused"))
    def test_unreachable_server_raises(self, mock_handshake):
        with pytest.raises(APIConnectionError):
            get_server_cert_status(URL)


class TestPinnedCertificateAdapter:

    def test_system_roots_keep_hostname_checks(self):
        context = build_ssl_context()
        assert context.check_hostname
        assert context.verify_mode == ssl.CERT_REQUIRED

    def test_adapter_uses_its_context(self):
        adapter = PinnedCertificateAdapter()

        assert adapter.poolmanager.connection_pool_kw["ssl_context"] is adapter.ssl_context
        assert "assert_hostname" not in adapter.poolmanager.connection_pool_kw
