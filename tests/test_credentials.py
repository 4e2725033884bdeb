"""
Tests for credential stores and credential resolution.
"""

import os
import tempfile

import yaml

from almreporter.client.auth import APIAuthType, AuthInfoAPIKey, AuthInfoBasic
from almreporter.connections.credentials import (
    ChainedCredentialStore,
    CredentialErrorKind,
    CredentialResolver,
    EnvironmentCredentialStore,
    FileCredentialStore,
    SecretTextCredential,
    UnsupportedCredential,
    UsernamePasswordCredential,
)


class DictStore:
    """In-memory credential store"""

    def __init__(self, credentials):
        self.credentials = credentials

    def lookup(self, credentials_id):
        return self.credentials.get(credentials_id)


class TestCredentialResolver:
    """Test cases for resolving stored credentials"""

    def setup_method(self):
        self.resolver = CredentialResolver(DictStore({
            "pair": SecretTextCredential("a:b"),
            "colons": SecretTextCredential("key:sec:ret"),
            "no-colon": SecretTextCredential("a"),
            "empty-secret": SecretTextCredential("a:"),
            "userpass": UsernamePasswordCredential("build", "p:w"),
            "ssh": UnsupportedCredential("ssh_key"),
            "hidden": SecretTextCredential("user:TopSecretValue"),
        }))

    def test_secret_text_split(self):
        result = self.resolver.resolve("pair")
        assert not result.is_error
        assert (result.user_id, result.user_secret) == ("a", "b")

    def test_secret_text_split_on_first_separator_only(self):
        result = self.resolver.resolve("colons")
        assert (result.user_id, result.user_secret) == ("key", "sec:ret")

    def test_secret_text_without_separator_is_malformed(self):
        result = self.resolver.resolve("no-colon")
        assert result.is_error
        assert result.error_kind is CredentialErrorKind.MALFORMED_FORMAT
        assert "separated by a ':' character" in result.error_message

    def test_secret_text_with_empty_secret(self):
        result = self.resolver.resolve("empty-secret")
        assert not result.is_error
        assert (result.user_id, result.user_secret) == ("a", "")

    def test_username_password_used_as_is(self):
        result = self.resolver.resolve("userpass")
        assert (result.user_id, result.user_secret) == ("build", "p:w")

    def test_unsupported_shape(self):
        result = self.resolver.resolve("ssh")
        assert result.error_kind is CredentialErrorKind.UNSUPPORTED_SHAPE
        assert result.error_message == "Credentials must be either 'Username with password' or 'Secret text'."

    def test_not_found(self):
        result = self.resolver.resolve("missing")
        assert result.error_kind is CredentialErrorKind.NOT_FOUND
        assert result.error_message == "Could not find credentials with ID missing"

    def test_secret_not_in_repr(self):
        assert "TopSecretValue" not in repr(self.resolver.resolve("hidden"))

    def test_auth_info_basic(self):
        result = self.resolver.auth_info(APIAuthType.BASIC, "userpass")
        assert not result.is_error
        assert result.auth_info == AuthInfoBasic("build", "p:w")

    def test_auth_info_api_key_from_config_value(self):
        result = self.resolver.auth_info("api_key", "pair")
        assert result.auth_info == AuthInfoAPIKey("a", "b")

    def test_auth_info_unknown_type(self):
        result = self.resolver.auth_info("kerberos", "pair")
        assert result.is_error
        assert result.error_kind is CredentialErrorKind.UNSUPPORTED_AUTH_TYPE

    def test_auth_info_propagates_credential_error(self):
        result = self.resolver.auth_info(APIAuthType.BASIC, "no-colon")
        assert result.is_error
        assert result.error_kind is CredentialErrorKind.MALFORMED_FORMAT


class TestCredentialStores:
    """Test cases for the environment, file and chained stores"""

    def test_environment_secret_text(self):
        store = EnvironmentCredentialStore({"ALM_KEY": "id:secret"})
        assert store.lookup("ALM_KEY") == SecretTextCredential("id:secret")

    def test_environment_username_password(self):
        store = EnvironmentCredentialStore({"ALM_USR": "build", "ALM_PSW": "pw"})
        assert store.lookup("ALM") == UsernamePasswordCredential("build", "pw")

    def test_environment_missing(self):
        store = EnvironmentCredentialStore({"ALM_USR": "build"})
        assert store.lookup("ALM") is None
        assert store.lookup("") is None

    def test_file_store(self):
        data = {
            "credentials": {
                "key": {"type": "secret_text", "secret": "id:secret"},
                "user": {"type": "username_password", "username": "build", "password": "pw"},
                "cert": {"type": "certificate", "keystore": "x.p12"},
            }
        }
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            yaml.safe_dump(data, f)

        try:
            store = FileCredentialStore(f.name)
            assert store.lookup("key") == SecretTextCredential("id:secret")
            assert store.lookup("user") == UsernamePasswordCredential("build", "pw")
            assert store.lookup("cert") == UnsupportedCredential("certificate")
            assert store.lookup("missing") is None
        finally:
            os.unlink(f.name)

    def test_file_store_missing_file(self):
        assert FileCredentialStore("/non/existent/credentials.yaml").lookup("key") is None

    def test_chained_store_first_match_wins(self):
        store = ChainedCredentialStore([
            EnvironmentCredentialStore({"KEY": "env:value"}),
            DictStore({"KEY": SecretTextCredential("file:value"), "OTHER": SecretTextCredential("o:v")}),
        ])

        assert store.lookup("KEY") == SecretTextCredential("env:value")
        assert store.lookup("OTHER") == SecretTextCredential("o:v")
        assert store.lookup("NONE") is None
