# ezirisk/actions/register.py
"""
Action register: creation with FRA severity, R-NN reference numbers across a
revision family, tracking status and CSV export.
"""
from __future__ import annotations
import logging
import re
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from ezirisk.fra.findings import PRIORITY_ORDER
from ezirisk.fra.severity import (
    FraActionInput, FraContext, derive_severity, suggested_target_date, suggested_timescale,
)
from ezirisk.issue.lock_state import enforce_document_mutability
from ezirisk.schemas.models import Action
from ezirisk.storage.errors import RecordNotFound
from ezirisk.utils.events import publish
from ezirisk.utils.jsonsafe import utc_now_iso

logger = logging.getLogger(__name__)

_REF = re.compile(r"R-(\d+)")
DUE_SOON_DAYS = 7

CSV_HEADERS = [
    "Document", "Issue Date", "Action", "Priority", "Timescale", "Target Date", "Status",
    "Owner", "Source", "Tracking Status", "Age (Days)", "Created", "Closed",
]


class DuplicateAction(ValueError):
    pass


def _live(actions: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [a for a in actions if not a.get("deleted_at")]


def _parse_date(value: Any) -> Optional[date]:
    if not value:
        return None
    if isinstance(value, date):
        return value if not isinstance(value, datetime) else value.date()
    return date.fromisoformat(str(value)[:10])


# --- create / close -----------------------------------------------------------

def create_action(store, document_id: str, recommended_action: str, *,
                  module_instance_id: Optional[str] = None,
                  action_input: Optional[FraActionInput] = None,
                  ctx: Optional[FraContext] = None,
                  timescale: Optional[str] = None,
                  target_date: Optional[str] = None,
                  owner_name: Optional[str] = None,
                  source: str = "manual",
                  today: Optional[date] = None) -> Dict[str, Any]:
    """
    Priority comes from the severity rules; timescale defaults to the one
    suggested for that priority and target date is filled from the timescale
    when not given.
    """
    text = (recommended_action or "").strip()
    if not text:
        raise ValueError("Please enter a recommended action.")

    doc = enforce_document_mutability(store, document_id)

    existing = _live(store.select("actions", document_id=document_id, module_instance_id=module_instance_id))
    if any((a.get("recommended_action") or "").strip().lower() == text.lower() for a in existing):
        raise DuplicateAction("This action already exists in this module.")

    action_input = action_input or FraActionInput()
    severity = derive_severity(action_input, ctx or FraContext())
    timescale = timescale or suggested_timescale(severity.priority)
    target_date = target_date or suggested_target_date(timescale, today)

    row = Action(
        document_id=document_id,
        organisation_id=doc.get("organisation_id"),
        module_instance_id=module_instance_id,
        recommended_action=text,
        priority_band=severity.priority,
        severity_tier=severity.tier,
        trigger_id=severity.trigger_id,
        trigger_text=severity.trigger_text,
        finding_category=action_input.category,
        timescale=timescale,
        target_date=target_date,
        owner_name=owner_name,
        source=source,
        first_raised_in_version=doc.get("version_number") or 1,
        created_at=utc_now_iso(),
    ).to_row()
    return store.insert("actions", row)


def _get_action(store, action_id: str) -> Dict[str, Any]:
    action = store.get_row("actions", action_id)
    if action is None:
        raise RecordNotFound("actions", action_id)
    return action


def close_action(store, action_id: str, note: Optional[str] = None) -> Dict[str, Any]:
    action = _get_action(store, action_id)
    enforce_document_mutability(store, action["document_id"])
    if action.get("status") == "closed":
        return action
    return store.update("actions", action_id, {"status": "closed", "closed_at": utc_now_iso(), "closure_note": note})


def reopen_action(store, action_id: str, note: Optional[str] = None) -> Dict[str, Any]:
    action = _get_action(store, action_id)
    enforce_document_mutability(store, action["document_id"])
    return store.update("actions", action_id, {"status": "open", "closed_at": None, "reopen_note": note})


# --- reference numbers --------------------------------------------------------

def _family_document_ids(store, base_document_id: str) -> List[str]:
    ids = {d["id"] for d in store.select("documents", base_document_id=base_document_id)}
    ids.add(base_document_id)
    return sorted(ids)


def assign_action_reference_numbers(store, document_id: str, base_document_id: str) -> List[str]:
    """R-NN for unreferenced actions (creation order), continuing after the family maximum."""
    actions = sorted(store.select("actions", document_id=document_id), key=lambda a: a.get("created_at") or "")
    if not actions:
        return []

    max_number = 0
    for doc_id in _family_document_ids(store, base_document_id):
        for a in store.select("actions", document_id=doc_id):
            m = _REF.search(a.get("reference_number") or "")
            if m:
                max_number = max(max_number, int(m.group(1)))

    assigned = []
    next_number = max_number + 1
    for a in actions:
        if a.get("reference_number"):
            continue
        ref = f"R-{next_number:02d}"
        store.update("actions", a["id"], {"reference_number": ref})
        assigned.append(ref)
        next_number += 1

    if assigned:
        publish("ActionReferencesAssigned", {"document_id": document_id, "references": assigned})
    return assigned


def carry_forward_action_reference_numbers(store, source_document_id: str, target_document_id: str) -> int:
    """Copies reference_number / first_raised_in_version onto actions carried into a new version."""
    source: Dict[str, Dict[str, Any]] = {}
    for a in store.select("actions", document_id=source_document_id):
        if a.get("reference_number"):
            source[a["id"]] = a
            if a.get("origin_action_id"):
                source.setdefault(a["origin_action_id"], a)
    if not source:
        return 0
    updated = 0
    for target in store.select("actions", document_id=target_document_id):
        origin = source.get(target.get("origin_action_id"))
        if origin:
            store.update("actions", target["id"], {
                "reference_number": origin["reference_number"],
                "first_raised_in_version": origin.get("first_raised_in_version"),
            })
            updated += 1
    return updated


# --- register -----------------------------------------------------------------

def tracking_status(action: Dict[str, Any], today: Optional[date] = None) -> str:
    if action.get("status") == "closed":
        return "closed"
    target = _parse_date(action.get("target_date"))
    if target is None:
        return "on_track"
    today = today or date.today()
    if target < today:
        return "overdue"
    if target < today + timedelta(days=DUE_SOON_DAYS):
        return "due_soon"
    return "on_track"


def age_days(action: Dict[str, Any], today: Optional[date] = None) -> int:
    created = _parse_date(action.get("created_at"))
    if created is None:
        return 0
    end = _parse_date(action.get("closed_at")) or today or date.today()
    return max(0, (end - created).days)


def build_action_register(store, document_id: Optional[str] = None, organisation_id: Optional[str] = None,
                          today: Optional[date] = None) -> List[Dict[str, Any]]:
    """
    Site level (document_id): priority, then newest first.
    Org level: tracking status (descending), priority, newest first.
    """
    if document_id:
        actions = store.select("actions", document_id=document_id)
    elif organisation_id:
        actions = store.select("actions", organisation_id=organisation_id)
    else:
        actions = store.select("actions")

    docs: Dict[str, Dict[str, Any]] = {}
    entries = []
    for a in _live(actions):
        doc_id = a["document_id"]
        if doc_id not in docs:
            docs[doc_id] = store.get_row("documents", doc_id) or {}
        doc = docs[doc_id]
        entries.append({
            **a,
            "document_title": doc.get("title") or "",
            "issue_date": doc.get("issue_date"),
            "tracking_status": tracking_status(a, today),
            "age_days": age_days(a, today),
        })

    entries.sort(key=lambda e: e.get("created_at") or "", reverse=True)
    entries.sort(key=lambda e: PRIORITY_ORDER.get(e.get("priority_band") or "", 5))
    if not document_id:
        entries.sort(key=lambda e: e["tracking_status"], reverse=True)
    return entries


def filter_action_register(entries: List[Dict[str, Any]], status: Optional[List[str]] = None,
                           priority: Optional[List[str]] = None, tracking: Optional[List[str]] = None,
                           overdue: bool = False, document_id: Optional[str] = None) -> List[Dict[str, Any]]:
    out = list(entries)
    if status:
        out = [e for e in out if e.get("status") in status]
    if priority:
        out = [e for e in out if e.get("priority_band") in priority]
    if tracking:
        out = [e for e in out if e.get("tracking_status") in tracking]
    if overdue:
        out = [e for e in out if e.get("tracking_status") == "overdue"]
    if document_id:
        out = [e for e in out if e.get("document_id") == document_id]
    return out


def get_action_register_stats(entries: List[Dict[str, Any]]) -> Dict[str, int]:
    def count(key, value):
        return sum(1 for e in entries if e.get(key) == value)

    return {
        "total": len(entries),
        "open": count("status", "open"),
        "closed": count("status", "closed"),
        "in_progress": count("status", "in_progress"),
        "overdue": count("tracking_status", "overdue"),
        "due_soon": count("tracking_status", "due_soon"),
        "on_track": count("tracking_status", "on_track"),
        "p1": count("priority_band", "P1"),
        "p2": count("priority_band", "P2"),
        "p3": count("priority_band", "P3"),
        "p4": count("priority_band", "P4"),
    }


def _date_only(value: Any) -> str:
    d = _parse_date(value)
    return d.isoformat() if d else ""


def register_dataframe(entries: List[Dict[str, Any]]) -> pd.DataFrame:
    rows = [[
        e.get("document_title") or "",
        e.get("issue_date") or "",
        e.get("recommended_action") or "",
        e.get("priority_band") or "",
        e.get("timescale") or "",
        e.get("target_date") or "",
        e.get("status") or "",
        e.get("owner_name") or "",
        e.get("source") or "",
        e.get("tracking_status") or "",
        str(e.get("age_days", 0)),
        _date_only(e.get("created_at")),
        _date_only(e.get("closed_at")),
    ] for e in entries]
    return pd.DataFrame(rows, columns=CSV_HEADERS)


def export_action_register_csv(entries: List[Dict[str, Any]]) -> str:
    return register_dataframe(entries).to_csv(index=False)
