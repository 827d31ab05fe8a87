import io

import pytest
from PIL import Image

from lms.errors import BadRequestError
from lms.utils.storage import LocalObjectStorage, make_public_id
from lms.utils.uploads import validate_upload

MAX = 1024 * 1024


def _png_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (4, 4), (200, 30, 30)).save(buf, format="PNG")
    return buf.getvalue()


def test_validate_upload_accepts_matching_types():
    assert validate_upload("notes.PDF", "application/pdf", b"%PDF-1.4", MAX) == ".pdf"
    assert validate_upload("pic.png", "image/png", _png_bytes(), MAX) == ".png"


@pytest.mark.parametrize(
    "filename, content_type, payload",
    [
        ("script.exe", "application/octet-stream", b"MZ"),
        ("notes.pdf", "image/png", b"%PDF-1.4"),
        ("notes.pdf", "application/pdf", b""),
        ("../etc/passwd.txt", "text/plain", b"x"),
        ("fake.png", "image/png", b"not really a png"),
        (None, "text/plain", b"x"),
    ],
)
def test_validate_upload_rejects(filename, content_type, payload):
    with pytest.raises(BadRequestError):
        validate_upload(filename, content_type, payload, MAX)


def test_validate_upload_size_limit():
    with pytest.raises(BadRequestError):
        validate_upload("big.txt", "text/plain", b"x" * 11, 10)


def test_make_public_id():
    assert make_public_id("My Notes (final).pdf", now_ms=1700000000000, token="ab12") == "My_Notes_final_1700000000000_ab12"
    assert make_public_id("???.txt", now_ms=5, token="x") == "file_5_x"
    assert make_public_id("a.txt", now_ms=5) != make_public_id("a.txt", now_ms=5)


def test_same_name_uploads_are_both_kept(tmp_path):
    storage = LocalObjectStorage(tmp_path / "store")
    first = storage.save(io.BytesIO(b"one"), "notes.txt")
    second = storage.save(io.BytesIO(b"two"), "notes.txt")
    assert first.public_id != second.public_id
    assert first.url != second.url
    assert (tmp_path / "store" / f"{first.public_id}.txt").read_bytes() == b"one"
    assert (tmp_path / "store" / f"{second.public_id}.txt").read_bytes() == b"two"
    assert len(list((tmp_path / "store").iterdir())) == 2


def test_local_storage_save_and_delete(tmp_path):
    storage = LocalObjectStorage(tmp_path / "store", "/uploads/")
    stored = storage.save(io.BytesIO(b"hello"), "greeting.txt")
    assert stored.size == 5
    assert stored.url == f"/uploads/{stored.public_id}.txt"
    assert (tmp_path / "store" / f"{stored.public_id}.txt").read_bytes() == b"hello"
    assert storage.delete(stored.public_id) is True
    assert storage.delete(stored.public_id) is False
    assert storage.delete("../escape") is False


def test_upload_endpoint(client, student, settings):
    _, headers = student
    r = client.post(
        "/api/files/upload",
        files={"file": ("avatar.png", _png_bytes(), "image/png")},
        headers=headers,
    )
    assert r.status_code == 201
    data = r.json()["data"]
    assert data["file_extension"] == ".png"
    assert data["file_url"].startswith("/uploads/avatar_")
    assert (settings.UPLOAD_DIR / data["file_url"].rsplit("/", 1)[1]).exists()

    served = client.get(data["file_url"])
    assert served.status_code == 200


def test_upload_requires_auth_and_valid_type(client, student):
    _, headers = student
    files = {"file": ("virus.exe", b"MZ", "application/octet-stream")}
    assert client.post("/api/files/upload", files=files).status_code == 401
    r = client.post("/api/files/upload", files=files, headers=headers)
    assert r.status_code == 400
    assert r.json()["success"] is False


def test_upload_multiple_validates_before_storing(client, student, settings):
    _, headers = student
    files = [
        ("files", ("a.txt", b"alpha", "text/plain")),
        ("files", ("b.exe", b"MZ", "application/octet-stream")),
    ]
    assert client.post("/api/files/upload-multiple", files=files, headers=headers).status_code == 400
    assert not settings.UPLOAD_DIR.exists() or list(settings.UPLOAD_DIR.iterdir()) == []

    files = [("files", (f"{n}.txt", b"data", "text/plain")) for n in range(2)]
    r = client.post("/api/files/upload-multiple", files=files, headers=headers)
    assert r.status_code == 201
    assert len(r.json()["data"]) == 2

    files = [("files", ("same.txt", body, "text/plain")) for body in (b"first", b"second")]
    stored = client.post("/api/files/upload-multiple", files=files, headers=headers).json()["data"]
    names = [item["file_url"].rsplit("/", 1)[1] for item in stored]
    assert len(set(names)) == 2
    assert sorted((settings.UPLOAD_DIR / name).read_bytes() for name in names) == [b"first", b"second"]


def test_file_delete_is_staff_only(client, student, instructor):
    _, student_headers = student
    _, instructor_headers = instructor
    public_id = client.post(
        "/api/files/upload", files={"file": ("notes.txt", b"notes", "text/plain")}, headers=student_headers
    ).json()["data"]["public_id"]
    assert client.delete(f"/api/files/{public_id}", headers=student_headers).status_code == 403
    assert client.delete(f"/api/files/{public_id}", headers=instructor_headers).status_code == 200
    assert client.delete(f"/api/files/{public_id}", headers=instructor_headers).status_code == 404


def test_allowed_types(client):
    data = client.get("/api/files/allowed-types").json()["data"]
    assert ".pdf" in data["allowed_extensions"]
    assert data["allowed_file_types"][".png"] == ["image/png"]
