import pytest

from ezirisk.forms.service import load_module, save_module
from ezirisk.storage.errors import DocumentLocked, RecordNotFound
from ezirisk.utils.events import read_events


def test_a1_reads_and_writes_document_fields(store, make_document, instance_of):
    doc = make_document(assessment_date="2025-02-01", scope_description="Whole building")
    a1 = instance_of(doc["id"], "A1_DOC_CONTROL")

    view = load_module(store, a1["id"])
    assert view.data["assessment_date"] == "2025-02-01"
    assert view.data["scope_description"] == "Whole building"

    save_module(store, a1["id"], {**view.data, "assessor_name": "J. Smith", "revision": "B"})
    updated = store.get_row("documents", doc["id"])
    assert updated["assessor_name"] == "J. Smith"
    assert "revision" not in updated
    assert updated["updated_at"]


def test_save_sets_outcome_and_publishes(store, make_document, instance_of):
    doc = make_document()
    fra1 = instance_of(doc["id"], "FRA_1_HAZARDS")
    row = save_module(store, fra1["id"], {"arson_risk": "high"}, outcome="material_def", assessor_notes="checked")
    assert row["outcome"] == "material_def"
    assert row["completed_at"]
    assert row["assessor_notes"] == "checked"

    events = read_events("ModuleSaved")
    assert events[-1]["payload"]["module_key"] == "FRA_1_HAZARDS"

    row = save_module(store, fra1["id"], {"arson_risk": "high"})
    assert (row["outcome"], row["completed_at"]) == (None, None)
    assert load_module(store, fra1["id"]).suggestion.outcome == "material_def"


def test_saved_outcome_hides_suggestion(store, make_document, instance_of):
    doc = make_document()
    fra1 = instance_of(doc["id"], "FRA_1_HAZARDS")
    save_module(store, fra1["id"], {"arson_risk": "high"}, outcome="minor_def")
    view = load_module(store, fra1["id"])
    assert view.outcome == "minor_def"
    assert view.suggestion is None


def test_fra4_derived_and_override_needs_reason(store, make_document, instance_of):
    doc = make_document()
    fra4 = instance_of(doc["id"], "FRA_4_SIGNIFICANT_FINDINGS")
    assert load_module(store, fra4["id"]).suggestion.outcome == "compliant"

    with pytest.raises(ValueError, match="Override reason is required"):
        save_module(store, fra4["id"], {"override_enabled": True, "override_outcome": "ImprovementsRequired"})

    row = save_module(store, fra4["id"], {"override_enabled": False, "override_reason": "stale"})
    assert row["data"]["override_reason"] == ""
    assert row["data"]["computed"]["computed_outcome"] == "SatisfactoryWithImprovements"


def test_locked_document_rejects_save(store, make_document, instance_of):
    doc = make_document(issue_status="superseded")
    fra1 = instance_of(doc["id"], "FRA_1_HAZARDS")
    with pytest.raises(DocumentLocked):
        save_module(store, fra1["id"], {})


def test_unknown_instance(store):
    with pytest.raises(RecordNotFound):
        load_module(store, "missing")
