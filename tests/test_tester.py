"""
Tests for the connection tester.

The REST client and trust manager are mocked.
"""

from unittest.mock import Mock

import pytest

from almreporter.client.auth import APIAuthType
from almreporter.client.exceptions import APIConnectionError, APIServerError, AuthenticationError
from almreporter.client.models import CertificateStatus, Project, VersionInfo
from almreporter.connections.credentials import CredentialResolver, EnvironmentCredentialStore
from almreporter.connections.models import Connection
from almreporter.connections.tester import (
    CheckKind,
    ConnectionTester,
    check_alm_server_connection,
    check_rest_api_version,
    compare_versions,
)
from almreporter.connections.trust import TrustOutcome


class TestVersionChecks:

    @pytest.mark.parametrize("version", ["2022.2.0", "2022.2.1", "2023.1", "2024.1.0.15"])
    def test_supported_versions(self, version):
        assert compare_versions("2022.2.0", version) is None

    @pytest.mark.parametrize("version", ["2022.1.9", "2021.3.0"])
    def test_old_versions(self, version):
        result = compare_versions("2022.2.0", version)
        assert result.kind is CheckKind.ERROR
        assert "2022.2.0 or later" in result.message

    def test_unparseable_version(self):
        assert compare_versions("2022.2.0", "latest").kind is CheckKind.ERROR

    def test_debug_version_skips_check(self):
        assert check_rest_api_version(VersionInfo(".", "2023.1.0")) is None

    @pytest.mark.parametrize("alm_version", ["<unknown>", "2023", ""])
    def test_alm_server_not_connected(self, alm_version):
        result = check_alm_server_connection(VersionInfo("2023.1.0", alm_version))
        assert result.kind is CheckKind.ERROR

    def test_alm_server_connected(self):
        assert check_alm_server_connection(VersionInfo("2023.1.0", "2023.1.0")) is None


class TestConnectionTester:
    """Test cases for ConnectionTester.test"""

    def setup_method(self):
        self.resolver = CredentialResolver(EnvironmentCredentialStore({"ALM_KEY": "id:secret"}))
        self.trust_manager = Mock()
        self.trust_manager.check.return_value = TrustOutcome(CertificateStatus.VALID)
        self.client = self.create_mock_api_client()
        self.client.get_versions.return_value = VersionInfo("2023.1.0", "2023.1.0")
        self.client.get_projects.return_value = [Project("p-1", "Sample")]
        self.client_factory = Mock(return_value=self.client)
        self.tester = ConnectionTester(self.resolver, self.trust_manager, client_factory=self.client_factory)
        self.connection = Connection("Production", "https://alm.example.com", "ALM_KEY",
                                     credential_type=APIAuthType.API_KEY)

    def create_mock_api_client(self):
        """Create a mock API client that supports context manager protocol"""
        mock_client = Mock()
        mock_client.__enter__ = Mock(return_value=mock_client)
        mock_client.__exit__ = Mock(return_value=None)
        return mock_client

    def test_successful_connection(self):
        result = self.tester.test(self.connection)

        assert result.is_ok
        assert result.message == "Connection successful."
        self.trust_manager.check.assert_called_once_with(self.connection)

    def test_blank_fields(self):
        result = self.tester.test(Connection("", "https://alm", "ALM_KEY"))
        assert result.kind is CheckKind.ERROR
        self.client_factory.assert_not_called()

    def test_invalid_address(self):
        result = self.tester.test(Connection("Bad", "alm.example.com", "ALM_KEY"))
        assert result.kind is CheckKind.ERROR
        assert "Cannot connect" in result.message

    def test_missing_credentials(self):
        result = self.tester.test(Connection("Production", "https://alm", "UNKNOWN"))
        assert result.message == "Could not find credentials with ID UNKNOWN"

    def test_unreachable_server(self):
        self.client.does_server_exist.side_effect = APIConnectionError("refused")

        result = self.tester.test(self.connection)

        assert result.kind is CheckKind.ERROR
        self.trust_manager.check.assert_not_called()

    def test_certificate_warning(self):
        self.trust_manager.check.return_value = TrustOutcome(
            CertificateStatus.INVALID_DOWNLOADABLE, message="opt in", severity="warning"
        )

        result = self.tester.test(self.connection)

        assert result.kind is CheckKind.WARNING
        assert result.message == "opt in"

    def test_trusted_certificates_passed_to_client(self):
        self.trust_manager.check.return_value = TrustOutcome(CertificateStatus.TRUSTED, ["PEM"])

        self.tester.test(self.connection)

        assert self.client_factory.call_args[0][2] == ["PEM"]

    def test_http_skips_trust_check(self):
        result = self.tester.test(Connection("Plain", "http://alm", "ALM_KEY"))
        assert result.is_ok
        self.trust_manager.check.assert_not_called()

    def test_old_rest_api(self):
        self.client.get_versions.return_value = VersionInfo("2021.1.0", "2023.1.0")
        result = self.tester.test(self.connection)
        assert "2022.2.0 or later" in result.message

    def test_no_projects(self):
        self.client.get_projects.return_value = []
        result = self.tester.test(self.connection)
        assert "does not have permission" in result.message

    @pytest.mark.parametrize("error", [
        AuthenticationError("denied", status_code=401),
        AuthenticationError("denied", status_code=403),
        APIServerError("bad key", status_code=500),
    ])
    def test_invalid_credentials(self, error):
        self.client.get_projects.side_effect = error
        result = self.tester.test(self.connection)
        assert result.message == "Cannot connect to the REST API server. The specified credentials are invalid."

    def test_unexpected_client_error(self):
        self.client.get_projects.side_effect = APIServerError("overloaded", status_code=503)
        result = self.tester.test(self.connection)
        assert result.kind is CheckKind.ERROR
        assert result.message == "Unknown error: overloaded"
