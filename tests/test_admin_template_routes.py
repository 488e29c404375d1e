import pytest

from app.db.templates_table import get_template_row, list_template_rows

from conftest import MODERN_MINIMAL

UPLOAD_URL = "/api/admin/templates/upload"


def _upload(client, headers, archive: bytes, filename="modern-minimal.zip", content_type="application/zip"):
    return client.post(UPLOAD_URL, files={"template": (filename, archive, content_type)}, headers=headers)


def test_upload_then_public_listing(client, admin_headers, make_template_zip, settings) -> None:
    response = _upload(client, admin_headers, make_template_zip())

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Template uploaded successfully"
    assert body["template"] == {
        "id": "modern-minimal", "name": "Modern Minimal", "version": "1.0.0", "category": "professional"
    }

    templates = client.get("/api/templates").json()["templates"]
    assert [t["id"] for t in templates] == ["modern-minimal"]
    assert templates[0]["isActive"] is True

    entry = client.get(templates[0]["entryPath"])
    assert entry.status_code == 200
    assert "Template" in entry.text

    assert list(settings.template_uploads_dir.iterdir()) == []
    row = get_template_row("modern-minimal")
    assert row["uploaded_by"] == "1"
    assert row["entry_path"] == "/templates/modern-minimal/index.tsx"


def test_x_zip_compressed_mime_is_accepted(client, admin_headers, make_template_zip) -> None:
    response = _upload(client, admin_headers, make_template_zip(), content_type="application/x-zip-compressed")
    assert response.status_code == 200


def test_upload_requires_admin(client, user_headers, make_template_zip) -> None:
    assert _upload(client, {}, make_template_zip()).status_code in (401, 403)
    response = _upload(client, user_headers, make_template_zip())
    assert response.status_code == 403
    assert response.json()["message"] == "Admins only"


def test_upload_without_file(client, admin_headers) -> None:
    response = client.post(UPLOAD_URL, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "No file uploaded"


@pytest.mark.parametrize("filename, content_type", [
    ("modern-minimal.zip", "text/plain"),
    ("modern-minimal.tar", "application/zip"),
])
def test_upload_rejects_non_zip(client, admin_headers, make_template_zip, filename, content_type) -> None:
    response = _upload(client, admin_headers, make_template_zip(), filename, content_type)
    assert response.status_code == 400
    assert response.json()["message"] == "Only ZIP files are allowed"


def test_upload_without_manifest(client, admin_headers, make_template_zip, settings) -> None:
    response = _upload(client, admin_headers, make_template_zip(include_manifest=False))

    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Invalid template structure"
    assert "manifest.json not found" in body["error"]
    assert list(settings.template_uploads_dir.iterdir()) == []
    assert client.get("/api/templates").json()["templates"] == []
    assert list_template_rows() == []


def test_upload_with_missing_entry_file(client, admin_headers, make_template_zip) -> None:
    response = _upload(client, admin_headers, make_template_zip(files={"main.tsx": "export {}"}))
    assert response.status_code == 400
    assert "index.tsx" in response.json()["error"]


def test_upload_too_large(client, admin_headers, make_template_zip, monkeypatch, settings) -> None:
    monkeypatch.setattr(settings, "max_template_upload_mb", 0)
    response = _upload(client, admin_headers, make_template_zip())
    assert response.status_code == 413
    assert list(settings.template_uploads_dir.iterdir()) == []


def test_admin_listing_includes_inactive(client, admin_headers, make_template_zip) -> None:
    _upload(client, admin_headers, make_template_zip())
    client.patch("/api/admin/templates/modern-minimal/toggle", headers=admin_headers)

    body = client.get("/api/admin/templates", headers=admin_headers).json()
    assert [row["template_id"] for row in body["database"]] == ["modern-minimal"]
    assert body["database"][0]["is_active"] is False
    assert body["registry"]["templates"][0]["isActive"] is False


def test_toggle(client, admin_headers, make_template_zip) -> None:
    _upload(client, admin_headers, make_template_zip())

    response = client.patch("/api/admin/templates/modern-minimal/toggle", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["template"]["isActive"] is False
    assert client.get("/api/templates").json()["templates"] == []
    assert get_template_row("modern-minimal")["is_active"] is False

    response = client.patch("/api/admin/templates/modern-minimal/toggle", headers=admin_headers)
    assert response.json()["template"]["isActive"] is True
    assert len(client.get("/api/templates").json()["templates"]) == 1


def test_toggle_unknown_template(client, admin_headers) -> None:
    response = client.patch("/api/admin/templates/nope/toggle", headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["message"] == "Template not found"


def test_delete(client, admin_headers, make_template_zip, settings) -> None:
    _upload(client, admin_headers, make_template_zip())

    response = client.delete("/api/admin/templates/modern-minimal", headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {"message": "Template deleted successfully", "success": True}

    assert client.get("/api/templates").json()["templates"] == []
    assert not (settings.templates_dir / "modern-minimal").exists()
    assert get_template_row("modern-minimal") is None
    assert client.get("/templates/modern-minimal/index.tsx").status_code == 404


def test_upload_succeeds_when_database_mirror_fails(client, admin_headers, make_template_zip, monkeypatch, settings) -> None:
    def database_down(*args, **kwargs):
        raise RuntimeError("db down")

    monkeypatch.setattr("app.api.routes.admin_template_routes.upsert_template_row", database_down)
    response = _upload(client, admin_headers, make_template_zip())

    assert response.status_code == 200
    assert response.json()["template"]["id"] == "modern-minimal"
    assert [t["id"] for t in client.get("/api/templates").json()["templates"]] == ["modern-minimal"]
    assert (settings.templates_dir / "modern-minimal" / "index.tsx").is_file()
    assert get_template_row("modern-minimal") is None


def test_toggle_succeeds_when_database_mirror_fails(client, admin_headers, make_template_zip, monkeypatch) -> None:
    _upload(client, admin_headers, make_template_zip())

    def database_down(*args, **kwargs):
        raise RuntimeError("db down")

    monkeypatch.setattr("app.api.routes.admin_template_routes.set_template_row_active", database_down)
    response = client.patch("/api/admin/templates/modern-minimal/toggle", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["template"]["isActive"] is False
    assert client.get("/api/templates").json()["templates"] == []


def test_reupload_reactivates_template(client, admin_headers, make_template_zip) -> None:
    _upload(client, admin_headers, make_template_zip())
    client.patch("/api/admin/templates/modern-minimal/toggle", headers=admin_headers)
    assert client.get("/api/templates").json()["templates"] == []

    response = _upload(client, admin_headers, make_template_zip(manifest={**MODERN_MINIMAL, "version": "2.0.0"}))
    assert response.status_code == 200

    templates = client.get("/api/templates").json()["templates"]
    assert [(t["id"], t["version"], t["isActive"]) for t in templates] == [("modern-minimal", "2.0.0", True)]
    assert get_template_row("modern-minimal")["is_active"] is True
