"""
@file: test_auth.py
@description:
Test suite for authentication and authorization: role ordering, bearer key
resolution in AccessGuard, and the HTTP responses of protected endpoints.
"""

from unittest import mock

import pytest

from filevault.core.auth import AccessGuard, extract_token
from filevault.core.exceptions import StorageUnavailable, Unauthenticated, Unauthorized
from filevault.schemas.files import Identity, Role
from filevault.tests.utils import MASTER_KEY, auth


def test_roles_are_totally_ordered():
    assert Role.NONE < Role.READ_WRITE_SELF < Role.READ_WRITE_ALL < Role.ADMINISTRATOR
    assert Role.ADMINISTRATOR.satisfies(Role.READ_WRITE_ALL)
    assert Role.READ_WRITE_SELF.satisfies(Role.READ_WRITE_SELF)
    assert not Role.READ_WRITE_SELF.satisfies(Role.READ_WRITE_ALL)


@pytest.mark.parametrize("value,expected", [
    ("administrator", Role.ADMINISTRATOR),
    ("read-write-self", Role.READ_WRITE_SELF),
    ("READ_WRITE_ALL", Role.READ_WRITE_ALL),
    ("0", Role.NONE),
])
def test_role_parse(value, expected):
    assert Role.parse(value) is expected


def test_extract_token():
    assert extract_token("Bearer abc") == "abc"
    assert extract_token("abc") == "abc"
    assert extract_token(None) == ""
    assert extract_token("") == ""


def test_guard_resolves_identity(catalog):
    catalog.upsert_identity("k1", "alice", Role.READ_WRITE_SELF)
    guard = AccessGuard(catalog)

    identity = guard.resolve("Bearer k1", Role.READ_WRITE_SELF)

    assert identity == Identity(username="alice", role=Role.READ_WRITE_SELF)


def test_guard_rejects_unknown_key(catalog):
    guard = AccessGuard(catalog)
    with pytest.raises(Unauthenticated):
        guard.resolve("Bearer nope", Role.NONE)


def test_guard_rejects_missing_header_without_lookup():
    catalog = mock.MagicMock()
    guard = AccessGuard(catalog)

    with pytest.raises(Unauthenticated):
        guard.resolve(None, Role.READ_WRITE_SELF)
    catalog.find_identity_by_token.assert_not_called()


def test_guard_rejects_insufficient_role(catalog):
    catalog.upsert_identity("k0", "guest", Role.NONE)
    guard = AccessGuard(catalog)
    with pytest.raises(Unauthorized):
        guard.resolve("Bearer k0", Role.READ_WRITE_SELF)


def test_guard_key_invalid_once_identity_removed(catalog):
    catalog.upsert_identity("k1", "alice", Role.ADMINISTRATOR)
    guard = AccessGuard(catalog)
    guard.resolve("Bearer k1", Role.ADMINISTRATOR)

    catalog.delete_identity("alice")

    with pytest.raises(Unauthenticated):
        guard.resolve("Bearer k1", Role.READ_WRITE_SELF)


def test_guard_propagates_storage_failure():
    catalog = mock.MagicMock()
    catalog.find_identity_by_token.side_effect = StorageUnavailable("db gone")
    with pytest.raises(StorageUnavailable):
        AccessGuard(catalog).resolve("Bearer x", Role.READ_WRITE_SELF)


def test_protected_endpoint_without_token(test_client):
    response = test_client.get("/list")
    assert response.status_code == 401
    assert response.json() == {"message": "Invalid API key"}


def test_protected_endpoint_with_bad_token(test_client):
    response = test_client.get("/list", headers=auth("wrong"))
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid API key"


def test_protected_endpoint_with_insufficient_role(test_client):
    response = test_client.get("/list", headers=auth("nobody-key"))
    assert response.status_code == 401
    assert response.json()["message"] == "Insufficient permissions"


def test_master_key_is_administrator(test_client, app):
    identity = app.state.catalog.find_identity_by_token(MASTER_KEY)
    assert identity == Identity(username="Master", role=Role.ADMINISTRATOR)

    response = test_client.get("/list", headers=auth(MASTER_KEY))
    assert response.status_code == 200


def test_upload_requires_authentication(test_client):
    response = test_client.post("/upload", files={"file": ("a.txt", b"data")})
    assert response.status_code == 401
