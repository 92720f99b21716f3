"""
Object storage tests — size/type limits, store and serve.
"""

import io
import os

import pytest

from oos.core.exceptions import NotFoundError, ValidationError
from oos.integrations.object_storage import LocalObjectStorage, is_allowed_content_type, store


@pytest.mark.parametrize("content_type, allowed", [
    ("image/png", True),
    ("image/jpeg; charset=binary", True),
    ("application/pdf", True),
    ("application/zip", False),
    ("text/html", False),
    ("", False),
    (None, False),
])
def test_content_types(content_type, allowed):
    assert is_allowed_content_type(content_type) is allowed


class TestLocalObjectStorage:
    def test_store_writes_file(self, tmp_path):
        s = LocalObjectStorage(root=str(tmp_path))
        key = s.store(b"%PDF-1.4", "../../cac cert.pdf", "application/pdf")
        assert key.endswith("_cac_cert.pdf")
        assert "/" not in key
        with open(os.path.join(tmp_path, key), "rb") as fh:
            assert fh.read() == b"%PDF-1.4"
        assert s.path_for(key).startswith(str(tmp_path))

    def test_too_large(self, tmp_path):
        s = LocalObjectStorage(root=str(tmp_path), max_bytes=5 * 1024 * 1024)
        with pytest.raises(ValidationError) as exc:
            s.store(b"x" * (5 * 1024 * 1024 + 1), "big.png", "image/png")
        assert str(exc.value) == "File size must be less than 5MB"
        assert os.listdir(tmp_path) == []

    def test_wrong_type(self, tmp_path):
        s = LocalObjectStorage(root=str(tmp_path))
        with pytest.raises(ValidationError) as exc:
            s.store(b"PK", "docs.zip", "application/zip")
        assert str(exc.value) == "Only images and PDF files are allowed"

    def test_empty(self, tmp_path):
        with pytest.raises(ValidationError):
            LocalObjectStorage(root=str(tmp_path)).store(b"", "a.png", "image/png")

    def test_path_traversal_is_not_found(self, tmp_path):
        s = LocalObjectStorage(root=str(tmp_path))
        with pytest.raises(NotFoundError):
            s.path_for("../etc/passwd")

    def test_public_url_uses_base(self, app, tmp_path):
        app.config["PUBLIC_BASE_URL"] = "https://cdn.example.com/"
        try:
            url = LocalObjectStorage(root=str(tmp_path)).public_url("abc_file.pdf")
        finally:
            app.config["PUBLIC_BASE_URL"] = ""
        assert url == "https://cdn.example.com/uploads/abc_file.pdf"


def test_module_store_returns_served_url(app):
    with app.test_request_context():
        url = store(b"\x89PNG", "logo.png", "image/png")
    assert url.startswith("/uploads/")
    assert url.endswith("_logo.png")


class TestUploadAPI:
    def test_upload_and_serve(self, client, owner, auth_headers):
        res = client.post(
            "/api/v1/uploads",
            data={"file": (io.BytesIO(b"%PDF-1.4 proof"), "statement.pdf", "application/pdf")},
            content_type="multipart/form-data",
            headers=auth_headers(owner),
        )
        assert res.status_code == 201
        url = res.get_json()["url"]
        served = client.get(url)
        assert served.status_code == 200
        assert served.data == b"%PDF-1.4 proof"
        served.close()

    def test_rejects_type(self, client, owner, auth_headers):
        res = client.post(
            "/api/v1/uploads",
            data={"file": (io.BytesIO(b"<html>"), "x.html", "text/html")},
            content_type="multipart/form-data",
            headers=auth_headers(owner),
        )
        assert res.status_code == 422

    def test_missing_file(self, client, owner, auth_headers):
        res = client.post("/api/v1/uploads", data={}, content_type="multipart/form-data",
                          headers=auth_headers(owner))
        assert res.status_code == 400

    def test_requires_auth(self, client):
        res = client.post(
            "/api/v1/uploads",
            data={"file": (io.BytesIO(b"%PDF"), "a.pdf", "application/pdf")},
            content_type="multipart/form-data",
        )
        assert res.status_code == 401

    def test_unknown_key_404(self, client):
        assert client.get("/uploads/does-not-exist.pdf").status_code == 404
