from datetime import date

import pytest

from ezirisk.storage.attachments import (
    MB, build_storage_path, count_attachments_by_module, create_attachment_row, delete_attachment,
    extract_file_path, extract_storage_key, get_signed_url, list_attachments, open_attachment_preview,
    sanitize_filename, upload_evidence_file, validate_file,
)
from ezirisk.storage.errors import AttachmentRejected, InvalidStorageKey, StorageQuotaExceeded


def test_validate_file_messages():
    with pytest.raises(AttachmentRejected, match="File size exceeds maximum of 10MB"):
        validate_file(11 * MB, "image/png", max_mb=10)
    with pytest.raises(AttachmentRejected) as exc:
        validate_file(10, "image/gif", max_mb=10)
    assert str(exc.value) == "File type image/gif is not allowed. Allowed types: JPG, PNG, WEBP, PDF"
    validate_file(10 * MB, "application/pdf", max_mb=10)


def test_sanitize_filename_and_path():
    assert sanitize_filename("Fire Door (North) #2.JPG") == "fire_door_north_2.jpg"
    path = build_storage_path("org", "doc", "a b.png", today=date(2025, 3, 1))
    org, doc, stamp, name = path.split("/")
    assert (org, doc, stamp) == ("org", "doc", "2025-03-01")
    assert name.endswith("_a_b.png")


def _upload(store, org, make_document, size, name="photo.png"):
    doc = make_document(with_modules=False)
    meta = upload_evidence_file(store, b"x" * size, name, "image/png", org["id"], doc["id"])
    return doc, meta


def test_upload_tracks_quota_and_rejects_overflow(store, org, make_document):
    size = int(0.6 * MB)
    doc, meta = _upload(store, org, make_document, size)
    assert meta["file_path"].startswith(f"{org['id']}/{doc['id']}/")
    assert meta["file_size_bytes"] == size
    assert store.read_blob("evidence", meta["file_path"]) == b"x" * size
    assert store.get_row("organisations", org["id"])["storage_used_mb"] == pytest.approx(0.6, abs=1e-6)

    with pytest.raises(StorageQuotaExceeded) as exc:
        upload_evidence_file(store, b"x" * size, "second.png", "image/png", org["id"], doc["id"])
    assert str(exc.value) == ("Storage limit reached. You have 0.4MB remaining of 1MB. "
                              "This file is 0.6MB. Upgrade your plan to add more storage.")


def test_signed_url_and_preview(store, org, make_document):
    doc, meta = _upload(store, org, make_document, 100, name="plan.pdf")
    row = create_attachment_row(store, organisation_id=org["id"], document_id=doc["id"], caption="Plan", **meta)

    url = get_signed_url(store, meta["file_path"], expires_in=60)
    assert store.verify_signed_url(url)
    assert not store.verify_signed_url(url, now=10 ** 12)

    preview = open_attachment_preview(store, row)
    assert (preview.ok, preview.file_type) == (True, "image/png")
    assert open_attachment_preview(store, meta["file_path"]).file_type == "pdf"
    assert open_attachment_preview(store, "").error == "Invalid file path"
    assert not open_attachment_preview(store, "missing/file.png").ok


def test_storage_key_extraction():
    assert extract_storage_key(" a/b.png ") == "a/b.png"
    assert extract_storage_key({"file_path": {"file_path": "a/b.png"}}) == "a/b.png"
    assert extract_file_path({"file_path": ""}) is None
    with pytest.raises(InvalidStorageKey):
        extract_storage_key(42)


def test_json_looking_key_is_rejected(store):
    with pytest.raises(InvalidStorageKey, match="appears to be JSON"):
        get_signed_url(store, '{"file_path": "a/b.png"}')


def test_delete_returns_quota(store, org, make_document):
    doc, meta = _upload(store, org, make_document, int(0.5 * MB))
    row = create_attachment_row(store, organisation_id=org["id"], document_id=doc["id"],
                                module_instance_id="m1", **meta)
    assert count_attachments_by_module(store, "m1") == 1
    assert [a["id"] for a in list_attachments(store, doc["id"])] == [row["id"]]

    assert delete_attachment(store, row["id"]) == (True, None)
    assert store.get_row("organisations", org["id"])["storage_used_mb"] == pytest.approx(0.0, abs=1e-9)
    assert list_attachments(store, doc["id"]) == []
    assert delete_attachment(store, row["id"]) == (False, "Attachment not found")
