# ezirisk/issue/lock_state.py
from typing import Any, Dict, Optional

from ezirisk.schemas.contracts import LOCKED_STATUSES
from ezirisk.storage.errors import DocumentLocked, RecordNotFound


def is_issued(doc: Optional[Dict[str, Any]]) -> bool:
    if not doc:
        return False
    return doc.get("issue_status") == "issued" or doc.get("status") == "issued" or doc.get("issued") is True


def is_locked(doc: Optional[Dict[str, Any]]) -> bool:
    """Issued and superseded documents are read-only."""
    if not doc:
        return False
    return is_issued(doc) or doc.get("issue_status") in LOCKED_STATUSES


def get_lock_reason(doc: Optional[Dict[str, Any]]) -> Optional[str]:
    if not is_locked(doc):
        return None
    version = doc.get("version_number") or doc.get("current_revision") or 1
    if doc.get("issue_status") == "superseded":
        return f"This survey (v{version}) has been superseded and cannot be edited."
    return f"This survey is issued (v{version}) and cannot be edited. Create a revision to make changes."


def assert_document_mutable(doc: Optional[Dict[str, Any]]) -> None:
    if doc and doc.get("issue_status") in LOCKED_STATUSES:
        raise DocumentLocked(doc["issue_status"])


def enforce_document_mutability(store, document_id: str) -> Dict[str, Any]:
    doc = store.get_row("documents", document_id)
    if doc is None:
        raise RecordNotFound("documents", document_id)
    assert_document_mutable(doc)
    return doc
