from ezirisk.forms.registry import get_form, has_form
from ezirisk.forms.core_modules import suggest_a2, suggest_a3, suggest_a4, suggest_a5, suggest_a7


def test_a2_many_unknowns_is_info_gap():
    s = suggest_a2({"height_m": "", "storeys_band": "unknown", "year_built": "unknown",
                    "construction_frame": "unknown", "building_use_uk": "office"})
    assert s.outcome == "info_gap"
    assert s.reason.startswith("4 key fields unknown")


def test_a2_complex_constraint_without_detail():
    s = suggest_a2({"height_m": "21", "storeys_band": "7-10", "year_built": "1998",
                    "construction_frame": "concrete", "building_use_uk": "block_of_flats_purpose_built",
                    "special_constraints": ["High-rise (≥18m)"], "special_constraints_other": "tall"})
    assert s.outcome == "minor_def"
    assert s.reason == "Complex constraints identified but details incomplete"


def test_a2_documented_profile_is_compliant():
    s = suggest_a2({"height_m": "9", "storeys_band": "3", "year_built": "2005",
                    "construction_frame": "masonry", "building_use_uk": "office"})
    assert s.outcome == "compliant"


def test_a3_assistance_without_peeps_is_material():
    s = suggest_a3({"evacuation_assistance_required": "yes", "peeps_dependency": "no"})
    assert s.outcome == "material_def"


def test_a3_counts_blank_occupancy_as_unknown():
    s = suggest_a3({"max_occupancy": "", "occupancy_profile": "unknown",
                    "evacuation_assistance_required": "unknown", "peeps_dependency": "yes",
                    "out_of_hours_occupation": "no"})
    assert s.outcome == "info_gap"
    assert s.reason.startswith("3 key fields unknown")


def test_a4_two_critical_issues():
    s = suggest_a4({"fire_safety_policy_exists": "no", "training_induction_provided": "no",
                    "inspection_alarm_weekly_test": "yes"})
    assert s.outcome == "material_def"
    assert s.reason.startswith("Multiple material deficiencies:")


def test_a4_notes_are_not_counted_as_unknown():
    d = {"management_notes": "unknown", "ptw_other_notes": "unknown", "other_info": "unknown"}
    assert suggest_a4(d) is None


def test_a5_single_issue_is_minor():
    s = suggest_a5({"emergency_plan_exists": "no", "assembly_points_defined": "yes"})
    assert s.outcome == "minor_def"
    assert s.reason == "No emergency plan"


def test_a7_default_checklist_is_info_gap():
    form = get_form("A7_REVIEW_ASSURANCE")
    s = form.suggest_outcome({})
    assert s.outcome == "info_gap"


def test_a7_mostly_yes_is_compliant():
    review = {k: "yes" for k in ("peerReview", "siteInspection", "photos", "alarmEvidence",
                                 "elEvidence", "drillEvidence")}
    review["maintenanceLogs"] = "no"
    s = suggest_a7({"review": review})
    assert s.outcome == "compliant"


def test_hydrate_merges_groups_and_keeps_unknown_keys():
    form = get_form("A7_REVIEW_ASSURANCE")
    data = form.hydrate({"review": {"photos": "yes"}, "legacy_field": 1})
    assert data["review"]["photos"] == "yes"
    assert data["review"]["peerReview"] == "na"
    assert data["legacy_field"] == 1


def test_json_schema_rejects_value_outside_select():
    form = get_form("A2_BUILDING_PROFILE")
    errors = form.validate({"construction_frame": "straw"})
    assert errors and errors[0].startswith("construction_frame:")
    assert form.validate({"construction_frame": ""}) == []


def test_unknown_module_gets_notes_only_form():
    assert not has_form("RE_99_MISC")
    form = get_form("RE_99_MISC")
    assert [f.key for f in form.fields] == ["notes"]
    assert form.suggest_outcome({"notes": "x"}) is None
