# ezirisk/forms/service.py
"""
Load / save a module instance. A save is a single row update on
module_instances (plus the documents row for A1 fields); there is no
transaction around the pair.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ezirisk.schemas.contracts import Suggestion
from ezirisk.forms.base import FormSpec
from ezirisk.forms.registry import get_form
from ezirisk.issue.lock_state import enforce_document_mutability
from ezirisk.storage.errors import RecordNotFound
from ezirisk.utils.events import publish
from ezirisk.utils.jsonsafe import to_jsonable, utc_now_iso

logger = logging.getLogger(__name__)


@dataclass
class ModuleView:
    instance: Dict[str, Any]
    form: FormSpec
    data: Dict[str, Any] = field(default_factory=dict)
    outcome: Optional[str] = None
    assessor_notes: str = ""
    suggestion: Optional[Suggestion] = None

    @property
    def module_key(self) -> str:
        return self.instance["module_key"]


def _get_instance(store, module_instance_id: str) -> Dict[str, Any]:
    instance = store.get_row("module_instances", module_instance_id)
    if instance is None:
        raise RecordNotFound("module_instances", module_instance_id)
    return instance


def compute_suggestion(store, instance: Dict[str, Any], form: FormSpec,
                       data: Dict[str, Any]) -> Optional[Suggestion]:
    if form.derived:
        return form.derive(store, instance, data)
    return form.suggest_outcome(data)


def load_module(store, module_instance_id: str) -> ModuleView:
    instance = _get_instance(store, module_instance_id)
    form = get_form(instance["module_key"])
    data = form.hydrate(instance.get("data"))

    # A1 mirrors its document-level fields from the documents row
    if form.document_fields:
        doc = store.get_row("documents", instance["document_id"]) or {}
        for key in form.document_fields:
            if not data.get(key) and doc.get(key):
                data[key] = doc[key]

    outcome = instance.get("outcome") or None
    suggestion = None if outcome else compute_suggestion(store, instance, form, data)
    return ModuleView(
        instance=instance,
        form=form,
        data=data,
        outcome=outcome,
        assessor_notes=instance.get("assessor_notes") or "",
        suggestion=suggestion,
    )


def save_module(store, module_instance_id: str, data: Dict[str, Any],
                outcome: Optional[str] = None, assessor_notes: str = "") -> Dict[str, Any]:
    """
    Raises DocumentLocked for issued/superseded documents and ValueError when
    a form's save hook rejects the payload (e.g. FRA-4 override without a reason).
    """
    instance = _get_instance(store, module_instance_id)
    enforce_document_mutability(store, instance["document_id"])
    form = get_form(instance["module_key"])

    if form.prepare_save is not None:
        data = form.prepare_save(store, instance, data)
    payload = to_jsonable(data or {})

    errors = form.validate(payload)
    if errors:
        logger.warning("Module %s saved with schema issues: %s", instance["module_key"], "; ".join(errors))

    if form.document_fields:
        doc_patch = {k: payload.get(k) for k in form.document_fields if k in payload}
        if doc_patch:
            store.update("documents", instance["document_id"], {**doc_patch, "updated_at": utc_now_iso()})

    now = utc_now_iso()
    outcome = outcome or None
    row = store.update("module_instances", module_instance_id, {
        "data": payload,
        "outcome": outcome,
        "assessor_notes": assessor_notes or "",
        "completed_at": now if outcome else None,
        "updated_at": now,
    })

    publish("ModuleSaved", {
        "module_instance_id": module_instance_id,
        "document_id": instance["document_id"],
        "module_key": instance["module_key"],
        "outcome": outcome,
    })
    logger.info("Saved %s (%s) outcome=%s", instance["module_key"], module_instance_id, outcome)
    return row
