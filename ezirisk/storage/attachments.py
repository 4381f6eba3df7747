# ezirisk/storage/attachments.py
"""
Evidence attachments: validation, upload with organisation storage quota,
signed-URL retrieval and deletion. Blob storage itself is the backend's job;
this module only decides *what* to store and *where*.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Tuple
import logging
import re
import uuid

from ezirisk.config import get_config
from ezirisk.schemas.models import Attachment
from ezirisk.storage.errors import (
    AttachmentRejected,
    InvalidStorageKey,
    RecordNotFound,
    StorageQuotaExceeded,
)
from ezirisk.utils.events import publish
from ezirisk.utils.jsonsafe import utc_now_iso

logger = logging.getLogger(__name__)

ALLOWED_FILE_TYPES = ["image/jpeg", "image/jpg", "image/png", "image/webp", "application/pdf"]
_IMAGE_EXT = re.compile(r"\.(jpg|jpeg|png|gif|webp)$", re.IGNORECASE)
_PDF_EXT = re.compile(r"\.pdf$", re.IGNORECASE)

MB = 1024 * 1024


@dataclass
class PreviewResult:
    ok: bool
    url: Optional[str] = None
    file_type: Optional[str] = None
    error: Optional[str] = None


def _bucket() -> str:
    return get_config()["evidence_bucket"]


def validate_file(size_bytes: int, content_type: str, max_mb: Optional[int] = None) -> None:
    max_mb = max_mb if max_mb is not None else int(get_config()["max_upload_mb"])
    if size_bytes > max_mb * MB:
        raise AttachmentRejected(f"File size exceeds maximum of {max_mb}MB")
    if content_type not in ALLOWED_FILE_TYPES:
        raise AttachmentRejected(
            f"File type {content_type} is not allowed. Allowed types: JPG, PNG, WEBP, PDF"
        )


def sanitize_filename(filename: str) -> str:
    name = re.sub(r"[^a-z0-9._-]", "_", filename.lower())
    name = re.sub(r"_+", "_", name)
    return name[:200]


def build_storage_path(organisation_id: str, document_id: str, filename: str,
                       today: Optional[date] = None) -> str:
    stamp = (today or date.today()).isoformat()
    return f"{organisation_id}/{document_id}/{stamp}/{uuid.uuid4()}_{sanitize_filename(filename)}"


def _check_quota(store, organisation_id: str, size_bytes: int) -> Tuple[Dict[str, Any], float]:
    org = store.get_row("organisations", organisation_id)
    if not org:
        raise RecordNotFound("organisations", organisation_id)
    file_mb = size_bytes / MB
    used = float(org.get("storage_used_mb") or 0)
    max_mb = float(org.get("max_storage_mb") or 0)
    new_total = used + file_mb
    if new_total > max_mb:
        remaining = max(0.0, max_mb - used)
        raise StorageQuotaExceeded(
            f"Storage limit reached. You have {remaining:.1f}MB remaining of {max_mb:g}MB. "
            f"This file is {file_mb:.1f}MB. Upgrade your plan to add more storage."
        )
    return org, new_total


def upload_evidence_file(store, content: bytes, file_name: str, content_type: str,
                         organisation_id: str, document_id: str) -> Dict[str, Any]:
    """Validate, quota-check and store one file. Returns the columns for an attachments row."""
    size = len(content)
    validate_file(size, content_type)
    _, new_total = _check_quota(store, organisation_id, size)

    path = build_storage_path(organisation_id, document_id, file_name)
    store.upload(_bucket(), path, content, content_type)
    store.update("organisations", organisation_id, {"storage_used_mb": new_total})

    publish("AttachmentUploaded", {"document_id": document_id, "file_path": path, "bytes": size})
    return {
        "file_path": path,
        "file_name": file_name,
        "file_type": content_type,
        "file_size_bytes": size,
    }


def create_attachment_row(store, **fields: Any) -> Dict[str, Any]:
    row = Attachment(created_at=utc_now_iso(), **fields).to_row()
    return store.insert("attachments", row)


def list_attachments(store, document_id: str) -> List[Dict[str, Any]]:
    rows = store.select("attachments", document_id=document_id)
    return sorted(rows, key=lambda r: r.get("created_at") or "", reverse=True)


def get_attachment(store, attachment_id: str) -> Optional[Dict[str, Any]]:
    return store.get_row("attachments", attachment_id)


def update_attachment_caption(store, attachment_id: str, caption: str) -> Dict[str, Any]:
    return store.update("attachments", attachment_id, {"caption": caption})


def update_attachment_links(store, attachment_id: str, module_instance_id: Optional[str],
                            action_id: Optional[str]) -> Dict[str, Any]:
    return store.update("attachments", attachment_id,
                        {"module_instance_id": module_instance_id, "action_id": action_id})


def extract_storage_key(value: Any) -> str:
    """Accepts a key string, an attachment row, or a row whose file_path is itself a jsonb object."""
    if isinstance(value, str):
        key = value.strip()
        if not key:
            raise InvalidStorageKey("Empty string passed as storage key")
        return key

    if isinstance(value, dict):
        fp = value.get("file_path")
        if isinstance(fp, str):
            key = fp.strip()
            if not key:
                raise InvalidStorageKey("Empty file_path in attachment object")
            return key
        if isinstance(fp, dict) and isinstance(fp.get("file_path"), str):
            key = fp["file_path"].strip()
            if not key:
                raise InvalidStorageKey("Empty file_path in nested JSONB object")
            logger.warning("Nested JSONB file_path detected; query should select the column directly")
            return key

    raise InvalidStorageKey("Invalid storage key input (expected string or attachment with file_path)")


def extract_file_path(value: Any) -> Optional[str]:
    try:
        return extract_storage_key(value)
    except InvalidStorageKey:
        return None


def is_valid_attachment(value: Any) -> bool:
    return extract_file_path(value) is not None


def get_signed_url(store, value: Any, expires_in: Optional[int] = None) -> str:
    key = extract_storage_key(value)
    if key.startswith("{") or '"file_path"' in key or '{"' in key:
        raise InvalidStorageKey("Invalid storage key: key appears to be JSON object, not a path string")
    if isinstance(value, dict):
        logger.warning("Attachment object passed to get_signed_url; pass file_path directly")
    ttl = expires_in if expires_in is not None else int(get_config()["signed_url_ttl"])
    return store.create_signed_url(_bucket(), key, ttl)


def open_attachment_preview(store, value: Any, expires_in: Optional[int] = None) -> PreviewResult:
    path = extract_file_path(value)
    if not path:
        return PreviewResult(ok=False, error="Invalid file path")
    try:
        url = get_signed_url(store, path, expires_in)
    except Exception as e:
        logger.exception("Error opening attachment preview")
        return PreviewResult(ok=False, error=str(e))

    if isinstance(value, dict) and value.get("file_type"):
        file_type = value["file_type"]
    elif _IMAGE_EXT.search(path):
        file_type = "image"
    elif _PDF_EXT.search(path):
        file_type = "pdf"
    else:
        file_type = "unknown"
    return PreviewResult(ok=True, url=url, file_type=file_type)


def delete_attachment(store, attachment_id: str) -> Tuple[bool, Optional[str]]:
    """Remove blob, row, and give the bytes back to the organisation quota."""
    attachment = get_attachment(store, attachment_id)
    if not attachment:
        return False, "Attachment not found"

    size_mb = (attachment.get("file_size_bytes") or 0) / MB
    try:
        store.remove(_bucket(), [attachment["file_path"]])
    except Exception:
        # non-fatal: the row is still deleted
        logger.exception("Error deleting %s from storage", attachment["file_path"])

    store.delete("attachments", attachment_id)

    org_id = attachment.get("organisation_id")
    if org_id and size_mb > 0:
        org = store.get_row("organisations", org_id)
        if org:
            used = max(0.0, float(org.get("storage_used_mb") or 0) - size_mb)
            store.update("organisations", org_id, {"storage_used_mb": used})

    publish("AttachmentDeleted", {"attachment_id": attachment_id, "document_id": attachment.get("document_id")})
    return True, None


def count_attachments_by_action(store, action_id: str) -> int:
    return len(store.select("attachments", action_id=action_id))


def count_attachments_by_module(store, module_instance_id: str) -> int:
    return len(store.select("attachments", module_instance_id=module_instance_id))
