from scripts.migrate_fra_actions import migrate_document
from scripts.seed_demo_document import seed
from ezirisk.schemas.models import Action
from ezirisk.utils.events import read_events


def test_seed_creates_document_modules_and_numbered_actions(store):
    doc = seed(store, "FRA", "Riverside House")
    assert doc["base_document_id"] == doc["id"]
    keys = {m["module_key"] for m in store.select("module_instances", document_id=doc["id"])}
    assert "FRA_4_SIGNIFICANT_FINDINGS" in keys
    actions = store.select("actions", document_id=doc["id"])
    assert sorted(a["reference_number"] for a in actions) == ["R-01", "R-02"]
    assert {a["priority_band"] for a in actions} == {"P1", "P3"}


def test_seed_re_has_no_actions(store):
    doc = seed(store, "RE", "Plant")
    assert store.select("actions", document_id=doc["id"]) == []


def test_migrate_document_dry_run_then_apply(store, make_document):
    doc = make_document(with_modules=False)
    legacy = store.insert("actions", Action(document_id=doc["id"], risk_score=20).to_row())

    assert migrate_document(store, doc["id"], dry_run=True) == 1
    assert store.get_row("actions", legacy["id"])["severity_tier"] is None

    assert migrate_document(store, doc["id"]) == 1
    row = store.get_row("actions", legacy["id"])
    assert (row["severity_tier"], row["priority_band"], row["trigger_id"]) == ("T4", "P1", "LEGACY-SCORE")
    assert read_events("ActionsMigrated")[-1]["payload"] == {"document_id": doc["id"], "count": 1}
    assert migrate_document(store, doc["id"]) == 0
