"""
@file: test_files_api.py
@description:
End-to-end tests of the HTTP surface through FastAPI's TestClient:
upload, list, download, delete, JSON envelopes and status codes.
"""

import re
from unittest import mock

import pytest
from fastapi.testclient import TestClient

from filevault.api.files import check_declared_size, content_disposition
from filevault.core.exceptions import BadRequest, PayloadTooLarge, StorageUnavailable
from filevault.tests.utils import MASTER_KEY, auth

ID_PATTERN = re.compile(r"^[A-Za-z0-9]{8}$")


def upload(client, token, name="report.pdf", data=b"%PDF-1.7 test"):
    return client.post("/upload", headers=auth(token), files={"file": (name, data)})


def test_upload_and_download_scenario(test_client):
    payload = b"%PDF-1.7\n" + bytes(range(256)) * 4

    response = upload(test_client, MASTER_KEY, "report.pdf", payload)

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "File uploaded successfully"
    assert ID_PATTERN.match(body["id"])

    download = test_client.get(f"/{body['id']}")
    assert download.status_code == 200
    assert download.content == payload
    assert download.headers["content-type"] == "application/octet-stream"
    assert download.headers["content-disposition"] == 'attachment; filename="report.pdf"'


def test_delete_by_other_read_write_self_user_is_refused(test_client):
    file_id = upload(test_client, "alice-key").json()["id"]

    response = test_client.delete(f"/{file_id}", headers=auth("bob-key"))

    assert response.status_code == 401
    assert response.json() == {"message": "Insufficient permissions"}
    assert test_client.get(f"/{file_id}").status_code == 200


def test_owner_can_delete(test_client):
    file_id = upload(test_client, "alice-key").json()["id"]

    response = test_client.delete(f"/{file_id}", headers=auth("alice-key"))

    assert response.status_code == 200
    assert response.json() == {"message": "File deleted successfully"}
    assert test_client.get(f"/{file_id}").status_code == 404


def test_read_write_all_can_delete_any_file(test_client):
    file_id = upload(test_client, "alice-key").json()["id"]
    assert test_client.delete(f"/{file_id}", headers=auth("carol-key")).status_code == 200


def test_unknown_ids_are_not_found(test_client):
    response = test_client.get("/ZZZZZZZZ")
    assert response.status_code == 404
    assert response.json() == {"message": "File not found"}

    response = test_client.delete("/ZZZZZZZZ", headers=auth("alice-key"))
    assert response.status_code == 404
    assert response.json() == {"message": "File not found"}


def test_list_is_scoped_for_read_write_self(test_client):
    alice_id = upload(test_client, "alice-key", "a.txt").json()["id"]
    bob_id = upload(test_client, "bob-key", "b.txt").json()["id"]

    alice_view = test_client.get("/list", headers=auth("alice-key"))
    assert alice_view.status_code == 200
    assert alice_view.json()["message"] == "Files fetched successfully"
    files = alice_view.json()["files"]
    assert [f["id"] for f in files] == [alice_id]
    assert set(files[0]) == {"id", "name", "uploadedAt", "creator"}
    assert files[0]["name"] == "a.txt"
    assert files[0]["creator"] == "alice"

    for token in ("carol-key", MASTER_KEY):
        everything = test_client.get("/list", headers=auth(token)).json()["files"]
        assert {f["id"] for f in everything} == {alice_id, bob_id}


def test_list_empty(test_client):
    response = test_client.get("/list", headers=auth("alice-key"))
    assert response.status_code == 200
    assert response.json()["files"] == []


def test_upload_without_file_field(test_client):
    response = test_client.post("/upload", headers=auth("alice-key"), data={"other": "x"})
    assert response.status_code == 400
    assert response.json() == {"message": "Missing file in request"}


def test_upload_with_malformed_multipart(test_client):
    response = test_client.post(
        "/upload",
        headers={**auth("alice-key"), "Content-Type": "multipart/form-data; boundary=xyz"},
        content=b"--xyz\r\nthis is not a valid part",
    )
    assert response.status_code == 400
    assert "message" in response.json()


def test_upload_over_size_limit_is_rejected(test_client, app):
    too_big = b"x" * (app.state.settings.MAX_UPLOAD_BYTES + 1)

    response = upload(test_client, "alice-key", "big.bin", too_big)

    assert response.status_code == 400
    assert app.state.catalog.count_by_creator_or_id() == 0
    assert app.state.blob_store.list_ids() == []


def test_unmatched_route(test_client):
    response = test_client.get("/some/nested/path")
    assert response.status_code == 404
    assert response.json() == {"message": "Route not found"}


def test_health(test_client):
    response = test_client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "OK"


def test_storage_failure_returns_generic_message(test_client, app):
    with mock.patch.object(app.state.catalog, "list_all_files",
                           side_effect=StorageUnavailable("database disk image is malformed")):
        response = test_client.get("/list", headers=auth("carol-key"))

    assert response.status_code == 500
    assert response.json() == {"message": "An unexpected error occurred"}


def test_missing_blob_is_internal_error_not_404(test_client, app):
    file_id = upload(test_client, "alice-key").json()["id"]
    app.state.blob_store.delete(file_id)

    response = test_client.get(f"/{file_id}")

    assert response.status_code == 500
    assert response.json() == {"message": "An unexpected error occurred"}


def test_content_disposition_for_non_ascii_names():
    header = content_disposition("résumé.pdf")
    assert header.startswith('attachment; filename="r?sum?.pdf"')
    assert "filename*=UTF-8''r%C3%A9sum%C3%A9.pdf" in header
    assert content_disposition('a"b.txt') == 'attachment; filename="a\\"b.txt"'


def test_bad_key_is_rejected_before_the_form_is_parsed(test_client):
    response = test_client.post(
        "/upload",
        headers={**auth("wrong-key"), "Content-Type": "multipart/form-data; boundary=xyz"},
        content=b"--xyz\r\nthis is not a valid part",
    )
    assert response.status_code == 401
    assert response.json() == {"message": "Invalid API key"}


@pytest.mark.parametrize("headers,message", [
    ({}, "Invalid API key"),
    ({"Authorization": "Bearer wrong-key"}, "Invalid API key"),
    ({"Authorization": "Bearer nobody-key"}, "Insufficient permissions"),
])
def test_oversized_upload_without_permission_is_unauthorized(test_client, app, headers, message):
    too_big = b"x" * (app.state.settings.MAX_UPLOAD_BYTES + 1)

    response = test_client.post("/upload", headers=headers, files={"file": ("big.bin", too_big)})

    assert response.status_code == 401
    assert response.json() == {"message": message}


def test_check_declared_size():
    def request(length):
        return mock.MagicMock(headers={} if length is None else {"content-length": length})

    check_declared_size(request(None), max_bytes=10)
    check_declared_size(request("10"), max_bytes=10)
    with pytest.raises(PayloadTooLarge):
        check_declared_size(request("11"), max_bytes=10)
    with pytest.raises(BadRequest, match="Invalid Content-Length header"):
        check_declared_size(request("ten"), max_bytes=10)


def test_unexpected_error_returns_generic_envelope(test_client, app):
    client = TestClient(app, raise_server_exceptions=False)

    with mock.patch.object(app.state.catalog, "list_all_files",
                           side_effect=ValueError("7 is not a valid Role")):
        response = client.get("/list", headers=auth("carol-key"))

    assert response.status_code == 500
    assert response.json() == {"message": "An unexpected error occurred"}


def test_error_message_defaults_per_class():
    assert BadRequest().message == "Invalid request"
    assert BadRequest("Missing file in request").message == "Missing file in request"
    assert PayloadTooLarge().status_code == 400
    assert StorageUnavailable("disk full").message == "An unexpected error occurred"
