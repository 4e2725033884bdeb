"""
Tests for connection definitions and the connection directory.
"""

import threading

import pytest

from almreporter.client.auth import APIAuthType
from almreporter.connections.directory import ConnectionDirectory
from almreporter.connections.models import Connection


def make_connection(name="Production", address="https://alm.example.com", credentials_id="ALM_KEY", **kwargs):
    return Connection(connection_name=name, api_address=address, credentials_id=credentials_id, **kwargs)


class TestConnection:
    """Test cases for the Connection model"""

    def test_uuid_generated_once(self):
        connection = make_connection()
        assert connection.connection_uuid
        assert make_connection().connection_uuid != connection.connection_uuid

    def test_uuid_immutable(self):
        connection = make_connection()
        with pytest.raises(AttributeError):
            connection.connection_uuid = "other"

    def test_name_mutable(self):
        connection = make_connection()
        connection.connection_name = "Renamed"
        assert connection.connection_name == "Renamed"

    def test_from_dict_keeps_uuid(self):
        connection = Connection.from_dict({
            "connection_uuid": "c1",
            "connection_name": "Production",
            "api_address": "https://alm.example.com",
            "credential_type": "api_key",
            "credentials_id": "ALM_KEY",
            "accept_ssl_certificates": True,
        })

        assert connection.connection_uuid == "c1"
        assert connection.credential_type is APIAuthType.API_KEY
        assert connection.accept_ssl_certificates
        assert connection.is_https

    def test_from_dict_legacy_optional_props(self):
        connection = Connection.from_dict({
            "connection_name": "Legacy",
            "api_address": "http://alm",
            "credentials_id": "X",
            "optional_connection_props": {"accept_ssl_certificates": True},
        })

        assert connection.accept_ssl_certificates
        assert not connection.is_https

    def test_to_dict_round_trip(self):
        connection = make_connection(credential_type=APIAuthType.API_KEY)
        assert Connection.from_dict(connection.to_dict()) == connection


class TestConnectionDirectory:
    """Test cases for ConnectionDirectory"""

    def setup_method(self):
        self.first = make_connection("Production", connection_uuid="c1")
        self.second = make_connection("Staging", "http://staging", connection_uuid="c2")
        self.directory = ConnectionDirectory([self.first, self.second])

    def test_find_by_name_or_uuid(self):
        assert self.directory.find("Staging") is self.second
        assert self.directory.find("c1") is self.first
        assert self.directory.find("missing") is None
        assert self.directory.find("") is None

    def test_find_returns_first_of_duplicate_names(self):
        duplicate = make_connection("Production", connection_uuid="c3")
        self.directory.add(duplicate)
        assert self.directory.find("Production") is self.first
        assert self.directory.find("c3") is duplicate

    def test_list_is_snapshot(self):
        snapshot = self.directory.list()
        self.directory.remove("c1")
        assert len(snapshot) == 2
        assert [c.connection_uuid for c in self.directory.list()] == ["c2"]

    def test_add_rejects_duplicate_uuid(self):
        with pytest.raises(ValueError):
            self.directory.add(make_connection("Other", connection_uuid="c1"))

    def test_remove(self):
        assert self.directory.remove("Staging")
        assert not self.directory.remove("Staging")

    def test_replace(self):
        edited = make_connection("Production EU", connection_uuid="c1")
        self.directory.replace(edited)
        assert self.directory.find("c1").connection_name == "Production EU"

    def test_replace_unknown(self):
        with pytest.raises(KeyError):
            self.directory.replace(make_connection(connection_uuid="nope"))

    def test_concurrent_adds(self):
        def add_many(prefix):
            for i in range(50):
                self.directory.add(make_connection(f"{prefix}-{i}"))

        threads = [threading.Thread(target=add_many, args=(p,)) for p in ("a", "b", "c")]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(self.directory.list()) == 152

    def test_from_config(self):
        directory = ConnectionDirectory.from_config([self.first.to_dict()])
        assert directory.find("c1") == self.first
        assert directory.to_config() == [self.first.to_dict()]


class TestValidate:
    """Save-time validation rules"""

    def test_valid(self):
        connections = [make_connection("A"), make_connection("B", "http://b")]
        assert ConnectionDirectory.validate(connections) == []

    def test_blank_name(self):
        errors = ConnectionDirectory.validate([make_connection("  ")])
        assert "The ALM connection name cannot be empty." in errors

    def test_duplicate_names(self):
        errors = ConnectionDirectory.validate([make_connection("A"), make_connection("A")])
        assert any("must be unique" in e for e in errors)

    def test_bad_scheme(self):
        errors = ConnectionDirectory.validate([make_connection(address="alm.example.com")])
        assert any("must start with http:// or https://" in e for e in errors)

    def test_blank_credentials(self):
        errors = ConnectionDirectory.validate([make_connection(credentials_id="")])
        assert any("credentials must be selected" in e for e in errors)
