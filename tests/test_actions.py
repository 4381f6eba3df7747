from datetime import date

import pytest

from ezirisk.actions.register import (
    CSV_HEADERS, DuplicateAction, age_days, assign_action_reference_numbers, build_action_register, close_action,
    carry_forward_action_reference_numbers, create_action, export_action_register_csv, filter_action_register,
    get_action_register_stats, reopen_action, tracking_status,
)
from ezirisk.fra.severity import FraActionInput
from ezirisk.schemas.models import Action, Document
from ezirisk.storage.errors import DocumentLocked

TODAY = date(2025, 3, 1)


def test_create_action_derives_priority_and_dates(store, make_document):
    doc = make_document()
    a = create_action(store, doc["id"], "  Replace fire door closer ",
                      action_input=FraActionInput(category="Housekeeping"), today=TODAY)
    assert a["recommended_action"] == "Replace fire door closer"
    assert (a["priority_band"], a["severity_tier"]) == ("P3", "T2")
    assert a["timescale"] == "90d"
    assert a["target_date"] == "2025-05-30"
    assert a["organisation_id"] == doc["organisation_id"]
    assert a["status"] == "open"


def test_create_action_rejects_blank_and_duplicate(store, make_document):
    doc = make_document()
    with pytest.raises(ValueError, match="Please enter a recommended action."):
        create_action(store, doc["id"], "   ")
    create_action(store, doc["id"], "Clear escape route")
    with pytest.raises(DuplicateAction):
        create_action(store, doc["id"], "clear ESCAPE route")


def test_explicit_timescale_and_target_win(store, make_document):
    doc = make_document()
    a = create_action(store, doc["id"], "Fix", action_input=FraActionInput(final_exit_locked=True),
                      timescale="custom", target_date="2025-12-01", today=TODAY)
    assert a["priority_band"] == "P1"
    assert (a["timescale"], a["target_date"]) == ("custom", "2025-12-01")


def test_issued_document_rejects_changes(store, make_document):
    doc = make_document()
    a = create_action(store, doc["id"], "Fix")
    store.update("documents", doc["id"], {"issue_status": "issued"})
    with pytest.raises(DocumentLocked):
        create_action(store, doc["id"], "Another")
    with pytest.raises(DocumentLocked):
        close_action(store, a["id"])


def test_close_and_reopen(store, make_document):
    doc = make_document()
    a = create_action(store, doc["id"], "Fix")
    closed = close_action(store, a["id"], note="done")
    assert closed["status"] == "closed"
    assert closed["closed_at"]
    assert close_action(store, a["id"])["closed_at"] == closed["closed_at"]
    reopened = reopen_action(store, a["id"])
    assert (reopened["status"], reopened["closed_at"]) == ("open", None)


def _action(store, doc_id, text, created_at, **fields):
    return store.insert("actions", Action(document_id=doc_id, recommended_action=text,
                                          created_at=created_at, **fields).to_row())


def test_reference_numbers_continue_across_family(store, make_document, org):
    v1 = make_document(with_modules=False)
    _action(store, v1["id"], "a", "2025-01-01", reference_number="R-03")
    v2 = store.insert("documents", Document(organisation_id=org["id"], base_document_id=v1["id"],
                                            version_number=2).to_row())
    _action(store, v2["id"], "late", "2025-02-02")
    _action(store, v2["id"], "early", "2025-02-01")
    assert assign_action_reference_numbers(store, v2["id"], v1["id"]) == ["R-04", "R-05"]
    refs = {a["recommended_action"]: a["reference_number"] for a in store.select("actions", document_id=v2["id"])}
    assert refs == {"early": "R-04", "late": "R-05"}
    assert assign_action_reference_numbers(store, v2["id"], v1["id"]) == []


def test_carry_forward_reference_numbers(store, make_document):
    v1 = make_document(with_modules=False)
    v2 = make_document(with_modules=False)
    origin = _action(store, v1["id"], "a", "2025-01-01", reference_number="R-01", first_raised_in_version=1)
    _action(store, v2["id"], "a", "2025-02-01", origin_action_id=origin["id"])
    _action(store, v2["id"], "new", "2025-02-01")
    assert carry_forward_action_reference_numbers(store, v1["id"], v2["id"]) == 1


def test_tracking_status_and_age():
    assert tracking_status({"status": "closed", "target_date": "2020-01-01"}, TODAY) == "closed"
    assert tracking_status({"target_date": "2025-02-28"}, TODAY) == "overdue"
    assert tracking_status({"target_date": "2025-03-05"}, TODAY) == "due_soon"
    assert tracking_status({"target_date": "2025-03-08"}, TODAY) == "on_track"
    assert tracking_status({}, TODAY) == "on_track"
    assert age_days({"created_at": "2025-02-19T10:00:00+00:00"}, TODAY) == 10
    assert age_days({"created_at": "2025-02-19", "closed_at": "2025-02-21"}, TODAY) == 2


def test_register_sorting_filters_and_stats(store, make_document):
    doc = make_document(with_modules=False, title="Main Street")
    _action(store, doc["id"], "p3 old", "2025-01-01", priority_band="P3", target_date="2025-01-10")
    _action(store, doc["id"], "p1", "2025-01-02", priority_band="P1", target_date="2025-06-01")
    _action(store, doc["id"], "p3 new", "2025-01-03", priority_band="P3")
    _action(store, doc["id"], "gone", "2025-01-04", priority_band="P1", deleted_at="2025-01-05")

    entries = build_action_register(store, document_id=doc["id"], today=TODAY)
    assert [e["recommended_action"] for e in entries] == ["p1", "p3 new", "p3 old"]
    assert entries[0]["document_title"] == "Main Street"

    assert [e["recommended_action"] for e in filter_action_register(entries, overdue=True)] == ["p3 old"]
    assert len(filter_action_register(entries, priority=["P3"])) == 2

    stats = get_action_register_stats(entries)
    assert (stats["total"], stats["p1"], stats["p3"], stats["overdue"], stats["open"]) == (3, 1, 2, 1, 3)


def test_csv_export_headers(store, make_document):
    doc = make_document(with_modules=False)
    _action(store, doc["id"], "Fix, with comma", "2025-01-01T09:00:00+00:00", priority_band="P2")
    csv = export_action_register_csv(build_action_register(store, document_id=doc["id"], today=TODAY))
    lines = csv.splitlines()
    assert lines[0] == ",".join(CSV_HEADERS)
    assert '"Fix, with comma"' in lines[1]
    assert ",2025-01-01," in lines[1]
