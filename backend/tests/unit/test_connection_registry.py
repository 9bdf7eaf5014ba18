"""Tests for connection lookup and endpoint resolution."""

import pytest

from models import Connection
from services.connection_registry import (
    PAYLOAD_EVENT,
    PAYLOAD_PROFILE,
    ConnectionCredentials,
    ConnectionRegistry,
    default_base_url,
    resolve_endpoint,
)


class TestConnectionRegistry:
    def test_get_credentials_by_id(self, db, connection):
        creds = ConnectionRegistry(db).get_credentials(connection.id)
        assert creds == ConnectionCredentials(
            connection_id=connection.id,
            base_url="https://eu1.api.clevertap.com",
            account_id="ACC-1",
            passcode="PASS-1",
        )
        assert creds.is_complete is True

    def test_get_credentials_by_name(self, db, connection):
        creds = ConnectionRegistry(db).get_credentials("Primary EU")
        assert creds.connection_id == connection.id

    def test_unknown_connection(self, db, connection):
        registry = ConnectionRegistry(db)
        assert registry.get_credentials("nope") is None
        assert registry.get_credentials(None) is None

    def test_incomplete_connection(self, db, incomplete_connection):
        creds = ConnectionRegistry(db).get_credentials(incomplete_connection.id)
        assert creds is not None
        assert creds.is_complete is False

    def test_null_fields_become_blank(self, db):
        conn = Connection(name="Empty")
        db.add(conn)
        db.commit()
        creds = ConnectionRegistry(db).get_credentials(conn.id)
        assert creds.base_url == ""
        assert creds.is_complete is False

    def test_whitespace_only_is_incomplete(self):
        creds = ConnectionCredentials("c", "https://x", "  ", "p")
        assert creds.is_complete is False


class TestResolveEndpoint:
    def test_appends_upload_path(self):
        assert resolve_endpoint("https://eu1.api.clevertap.com", PAYLOAD_PROFILE) == (
            "https://eu1.api.clevertap.com/1/upload"
        )

    def test_trailing_slash(self):
        assert resolve_endpoint("https://eu1.api.clevertap.com/", PAYLOAD_EVENT) == (
            "https://eu1.api.clevertap.com/1/upload"
        )

    def test_existing_upload_path_not_doubled(self):
        assert resolve_endpoint("https://eu1.api.clevertap.com/1/upload", "profile") == (
            "https://eu1.api.clevertap.com/1/upload"
        )

    def test_kind_case_insensitive(self):
        assert resolve_endpoint("https://x", "EVENT") == "https://x/1/upload"

    def test_unknown_kind(self):
        with pytest.raises(ValueError, match="Unknown payload kind"):
            resolve_endpoint("https://x", "segment")


class TestDefaultBaseUrl:
    @pytest.mark.parametrize(
        "region,prefix",
        [("EU", "eu1"), ("IN", "in1"), ("SG", "sg1"), ("US", "us1"), ("ID", "aps3"), ("UAE", "mec1")],
    )
    def test_regions(self, region, prefix):
        assert default_base_url(region) == f"https://{prefix}.api.clevertap.com"

    def test_lowercase_region(self):
        assert default_base_url("us") == "https://us1.api.clevertap.com"

    def test_unknown_or_blank_region_uses_default(self):
        assert default_base_url("MARS") == "https://eu1.api.clevertap.com"
        assert default_base_url(None) == "https://eu1.api.clevertap.com"
