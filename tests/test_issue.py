from ezirisk.issue.lock_state import get_lock_reason, is_issued, is_locked
from ezirisk.issue.validation import (
    check_document_issue_readiness, get_requirement_description, get_required_modules, get_validation_summary,
    group_blockers_by_module, module_progress_from_instances, validate_issue_eligibility,
)
from ezirisk.schemas.contracts import ValidationResult


def _all_complete(doc_type, ctx=None):
    return {r.key: "complete" for r in get_required_modules(doc_type, ctx)}


def test_lock_state():
    assert not is_locked({"issue_status": "draft"})
    assert is_issued({"status": "issued"})
    assert is_locked({"issue_status": "superseded"})
    assert get_lock_reason({"issue_status": "superseded", "version_number": 2}) == \
        "This survey (v2) has been superseded and cannot be edited."
    assert get_lock_reason({"issue_status": "issued"}).startswith("This survey is issued (v1)")
    assert get_lock_reason(None) is None


def test_requirement_description():
    assert get_requirement_description("FRA") == "11 required modules must be completed"
    assert get_requirement_description("FSD") == \
        "10 required modules must be completed, 1 conditional modules based on your selections"


def test_fra_blockers():
    result = validate_issue_eligibility("FRA", {"scope_type": "limited"}, {}, {}, [])
    messages = [b.message for b in result.blockers]
    assert not result.eligible
    assert "Document Control & Governance must be completed" in messages
    assert "Document Control & Governance: assessor name is required" in messages
    assert "Scope limitations must be specified for limited/desktop assessments" in messages
    assert "Must have at least one recommendation OR confirm no significant findings" in messages


def test_fra_eligible_with_confirmation():
    answers = {"assessment_date": "2025-03-01", "assessor_name": "J. Smith", "no_significant_findings": True}
    result = validate_issue_eligibility("FRA", {}, answers, _all_complete("FRA"), [])
    assert result.eligible
    assert get_validation_summary(result) == "All requirements met - ready to issue"


def test_closed_actions_do_not_count_as_recommendations():
    answers = {"assessment_date": "2025-03-01", "assessor_name": "J. Smith"}
    result = validate_issue_eligibility("FRA", {}, answers, _all_complete("FRA"), [{"status": "closed"}])
    assert [b.type for b in result.blockers] == ["no_recommendations"]
    assert get_validation_summary(result) == "1 issue must be resolved before issuing"


def test_fsd_smoke_control_is_conditional():
    answers = {"assessment_date": "2025-03-01", "assessor_name": "J. Smith"}
    assert validate_issue_eligibility("FSD", {}, answers, _all_complete("FSD"), []).eligible

    ctx = {"engineered_solutions_used": True}
    progress = {k: v for k, v in _all_complete("FSD", ctx).items() if k != "FSD_8_SMOKE_CONTROL"}
    messages = [b.message for b in validate_issue_eligibility("FSD", ctx, answers, progress, []).blockers]
    assert messages == [
        "Smoke Control must be completed",
        "Limitations must be documented when using engineered solutions",
        "Management assumptions must be documented when using engineered solutions",
    ]


def test_dsear_blockers_grouped_by_module():
    answers = {"assessment_date": "2025-03-01", "assessor_name": "J. Smith"}
    result = validate_issue_eligibility("DSEAR", {}, answers, _all_complete("DSEAR"), [])
    grouped = group_blockers_by_module(result.blockers)
    assert set(grouped) == {"DSEAR_1_DANGEROUS_SUBSTANCES", "DSEAR_3_HAZARDOUS_AREA_CLASSIFICATION", "general"}
    assert grouped["general"][0].message == "Must have at least one action OR confirm controls are adequate"


def test_module_progress():
    progress = module_progress_from_instances([
        {"module_key": "a", "outcome": "compliant"},
        {"module_key": "b", "data": {"x": "", "y": "value"}},
        {"module_key": "c", "data": {"x": False, "y": []}},
    ])
    assert progress == {"a": "complete", "b": "in_progress", "c": "not_started"}


def test_summary_pluralises():
    assert get_validation_summary(ValidationResult(False, [object(), object()])) == \
        "2 issues must be resolved before issuing"


def test_document_readiness_uses_document_fields(store, make_document, instance_of):
    doc = make_document("DSEAR", assessment_date="2025-03-01",
                        issue_answers={"no_zoned_areas": True, "controls_adequate_confirmed": True})
    for m in store.select("module_instances", document_id=doc["id"]):
        store.update("module_instances", m["id"], {"outcome": "compliant"})
    a1 = instance_of(doc["id"], "A1_DOC_CONTROL")
    store.update("module_instances", a1["id"], {"data": {"assessor_name": "J. Smith"}})
    d1 = instance_of(doc["id"], "DSEAR_1_DANGEROUS_SUBSTANCES")
    store.update("module_instances", d1["id"], {"data": {"substances": [{"name": ""}]}})

    messages = [b.message for b in check_document_issue_readiness(store, doc["id"]).blockers]
    assert messages == ["At least one dangerous substance must be identified OR confirm no dangerous substances"]

    store.update("module_instances", d1["id"], {"data": {"substances": [{"name": "Acetone"}]}})
    assert check_document_issue_readiness(store, doc["id"]).eligible
