# ezirisk/issue/versioning.py
"""
Issuing and revising documents. A revision family shares base_document_id;
at most one member is issued and at most one is a draft. Issuing a revision
supersedes the previously issued member.
"""
from __future__ import annotations
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from ezirisk.actions.register import assign_action_reference_numbers, carry_forward_action_reference_numbers
from ezirisk.issue.validation import check_document_issue_readiness
from ezirisk.schemas.models import Action, Document, ModuleInstance
from ezirisk.storage.errors import IssueBlocked, RecordNotFound, VersionConflict
from ezirisk.utils.events import publish
from ezirisk.utils.jsonsafe import utc_now_iso

logger = logging.getLogger(__name__)

CARRIED_STATUSES = ("open", "in_progress")

# Document columns a new version inherits from the issued one
_INHERITED = ("organisation_id", "title", "document_type", "scope_description", "limitations_assumptions",
              "section_grades", "issue_context", "issue_answers", "industry_sector", "scs_band")


def _get_document(store, document_id: str) -> Dict[str, Any]:
    doc = store.get_row("documents", document_id)
    if doc is None:
        raise RecordNotFound("documents", document_id)
    return doc


def get_document_version_history(store, base_document_id: str) -> List[Dict[str, Any]]:
    """Newest version first."""
    docs = store.select("documents", base_document_id=base_document_id)
    return sorted(docs, key=lambda d: d.get("version_number") or 1, reverse=True)


def _family_member(store, base_document_id: str, status: str,
                   exclude: Optional[str] = None) -> Optional[Dict[str, Any]]:
    for doc in get_document_version_history(store, base_document_id):
        if doc.get("issue_status") == status and doc["id"] != exclude:
            return doc
    return None


def issue_document(store, document_id: str, issued_by: Optional[str] = None,
                   today: Optional[date] = None) -> Dict[str, Any]:
    """
    Raises VersionConflict unless the document is a draft and IssueBlocked
    when the readiness checks fail. Unreferenced actions get R-NN numbers.
    """
    doc = _get_document(store, document_id)
    if (doc.get("issue_status") or "draft") != "draft":
        raise VersionConflict("Only draft documents can be issued")

    result = check_document_issue_readiness(store, document_id)
    if not result.eligible:
        raise IssueBlocked(result.blockers)

    base_id = doc.get("base_document_id") or document_id
    previous = _family_member(store, base_id, "issued", exclude=document_id)
    now = utc_now_iso()
    if previous is not None:
        store.update("documents", previous["id"], {
            "issue_status": "superseded",
            "superseded_by_document_id": document_id,
            "superseded_date": now,
            "updated_at": now,
        })
        logger.info("Document %s superseded by %s", previous["id"], document_id)

    refs = assign_action_reference_numbers(store, document_id, base_id)
    row = store.update("documents", document_id, {
        "issue_status": "issued",
        "issue_date": (today or date.today()).isoformat(),
        "issued_by": issued_by,
        "updated_at": now,
    })
    publish("DocumentIssued", {
        "document_id": document_id,
        "base_document_id": base_id,
        "version_number": row.get("version_number") or 1,
        "superseded_document_id": previous["id"] if previous else None,
        "references_assigned": len(refs),
    })
    logger.info("Issued %s v%s", document_id, row.get("version_number") or 1)
    return row


def create_new_version(store, base_document_id: str) -> Dict[str, Any]:
    """
    Draft revision of the issued member of the family. Module data is copied
    and open actions are carried forward with their origin and R-NN numbers.
    """
    current = _family_member(store, base_document_id, "issued")
    if current is None:
        raise VersionConflict("No issued version found to create new version from")
    if _family_member(store, base_document_id, "draft") is not None:
        raise VersionConflict("A draft version already exists for this document")

    version = (current.get("version_number") or 1) + 1
    new_doc = store.insert("documents", Document(
        **{k: current.get(k) for k in _INHERITED if current.get(k) is not None},
        base_document_id=base_document_id,
        version_number=version,
        updated_at=utc_now_iso(),
    ).to_row())

    module_ids: Dict[str, str] = {}
    for m in store.select("module_instances", document_id=current["id"]):
        copied = store.insert("module_instances", ModuleInstance(
            document_id=new_doc["id"],
            organisation_id=m.get("organisation_id"),
            module_key=m["module_key"],
            module_scope=m.get("module_scope") or "document",
            outcome=m.get("outcome"),
            assessor_notes=m.get("assessor_notes") or "",
            data=m.get("data") or {},
            completed_at=m.get("completed_at"),
        ).to_row())
        module_ids[m["id"]] = copied["id"]

    carried = 0
    for a in store.select("actions", document_id=current["id"]):
        if a.get("deleted_at") or a.get("status") not in CARRIED_STATUSES:
            continue
        fields = {k: v for k, v in a.items() if k not in ("id", "reference_number")}
        fields.update(
            document_id=new_doc["id"],
            module_instance_id=module_ids.get(a.get("module_instance_id")),
            origin_action_id=a.get("origin_action_id") or a["id"],
            carried_from_document_id=current["id"],
        )
        store.insert("actions", Action(**fields).to_row())
        carried += 1
    carry_forward_action_reference_numbers(store, current["id"], new_doc["id"])

    publish("DocumentVersionCreated", {
        "document_id": new_doc["id"],
        "base_document_id": base_document_id,
        "version_number": version,
        "carried_from_document_id": current["id"],
        "actions_carried": carried,
    })
    logger.info("Created v%s (%s) from %s with %d open action(s)", version, new_doc["id"], current["id"], carried)
    return new_doc
