from pathlib import Path


def upload(client, headers, name="report.pdf", content=b"%PDF-1.4 data", folder=None, encrypted=None,
           mime="application/pdf"):
    data = {}
    if folder is not None:
        data["folder"] = folder
    if encrypted is not None:
        data["encrypted"] = encrypted
    return client.post("/api/files/upload", files={"file": (name, content, mime)}, data=data, headers=headers)


def test_upload_assigns_generated_storage_name(client, auth_headers, app_env):
    response = upload(client, auth_headers, name="../../etc/passwd.txt")
    assert response.status_code == 201
    record = response.json()
    assert record["original_name"].endswith("passwd.txt")
    assert record["stored_name"] == f"{record['id']}.txt"
    assert "/" not in record["stored_name"]
    assert record["size"] == len(b"%PDF-1.4 data")
    assert record["folder"] == "General"
    assert record["encrypted"] == 0
    stored = Path(app_env) / "uploads" / record["stored_name"]
    assert stored.read_bytes() == b"%PDF-1.4 data"


def test_upload_without_file_is_rejected(client, auth_headers):
    response = client.post("/api/files/upload", data={"folder": "Docs"}, headers=auth_headers)
    assert response.status_code == 400


def test_download_returns_original_bytes(client, auth_headers):
    record = upload(client, auth_headers, name="notes.txt", content=b"hello", mime="text/plain").json()
    response = client.get(f"/api/files/{record['id']}/download", headers=auth_headers)
    assert response.status_code == 200
    assert response.content == b"hello"
    assert response.headers["content-type"].startswith("text/plain")
    assert "notes.txt" in response.headers["content-disposition"]


def test_encrypted_upload_is_stored_as_ciphertext(client, auth_headers, app_env):
    record = upload(client, auth_headers, name="secret.txt", content=b"top secret", encrypted="1").json()
    assert record["encrypted"] == 1
    assert record["size"] == len(b"top secret")
    stored = (Path(app_env) / "uploads" / record["stored_name"]).read_bytes()
    assert b"top secret" not in stored
    response = client.get(f"/api/files/{record['id']}/download", headers=auth_headers)
    assert response.content == b"top secret"


def test_upload_over_limit_is_rejected(client, auth_headers, app_env, monkeypatch):
    monkeypatch.setenv("MAX_UPLOAD_BYTES", "8")
    from auradesk import settings

    settings.reset_settings()
    response = upload(client, auth_headers, content=b"0123456789")
    assert response.status_code == 413
    assert list((Path(app_env) / "uploads").iterdir()) == []
    assert client.get("/api/files", headers=auth_headers).json() == []


def test_folders_and_filter(client, auth_headers):
    upload(client, auth_headers, name="a.txt", folder="Docs")
    upload(client, auth_headers, name="b.txt", folder="Docs")
    upload(client, auth_headers, name="c.png", folder="Images")

    folders = client.get("/api/files/folders", headers=auth_headers).json()
    assert folders == [{"folder": "Docs", "count": 2}, {"folder": "Images", "count": 1}]
    docs = client.get("/api/files", params={"folder": "Docs"}, headers=auth_headers).json()
    assert [item["original_name"] for item in docs] == ["b.txt", "a.txt"]


def test_delete_is_idempotent_and_tolerates_missing_object(client, auth_headers, app_env):
    record = upload(client, auth_headers).json()
    stored = Path(app_env) / "uploads" / record["stored_name"]
    stored.unlink()

    assert client.delete(f"/api/files/{record['id']}", headers=auth_headers).json() == {"success": True}
    assert client.get(f"/api/files/{record['id']}", headers=auth_headers).status_code == 404
    assert client.delete(f"/api/files/{record['id']}", headers=auth_headers).json() == {"success": True}


def test_delete_removes_stored_object(client, auth_headers, app_env):
    record = upload(client, auth_headers).json()
    stored = Path(app_env) / "uploads" / record["stored_name"]
    assert stored.exists()
    client.delete(f"/api/files/{record['id']}", headers=auth_headers)
    assert not stored.exists()


def test_download_missing_object_is_404(client, auth_headers, app_env):
    record = upload(client, auth_headers).json()
    (Path(app_env) / "uploads" / record["stored_name"]).unlink()
    response = client.get(f"/api/files/{record['id']}/download", headers=auth_headers)
    assert response.status_code == 404
    assert response.json() == {"error": "File missing from disk"}


def test_declared_oversize_upload_is_refused_before_reading(client, app_env, monkeypatch):
    monkeypatch.setenv("MAX_UPLOAD_BYTES", "8")
    from auradesk import settings

    settings.reset_settings()
    # No credentials: the size check answers before authentication runs.
    response = upload(client, {}, content=b"x" * (128 * 1024))
    assert response.status_code == 413
    assert response.json() == {"error": "File exceeds 8 bytes"}
    uploads = Path(app_env) / "uploads"
    assert not uploads.exists() or list(uploads.iterdir()) == []
