from ezirisk.forms.dsear_modules import (
    suggest_dsear1, suggest_dsear2, suggest_dsear3, suggest_dsear4, suggest_dsear5,
    suggest_dsear6, suggest_dsear10, suggest_dsear11,
)
from ezirisk.forms.registry import get_form


def test_dsear_forms_offer_acceptable():
    assert "acceptable" in get_form("DSEAR_1_DANGEROUS_SUBSTANCES").outcomes
    assert "acceptable" not in get_form("FRA_1_HAZARDS").outcomes


def test_dsear1_unknown_safety_data():
    d = {"substances": [
        {"name": "Acetone", "SDS_available": "unknown"},
        {"name": "Toluene", "flash_point": "unknown"},
        {"name": "", "flash_point": "unknown"},
    ]}
    s = suggest_dsear1(d)
    assert s.outcome == "info_gap"
    assert s.reason.startswith("2 substances")


def test_dsear1_flammable_present():
    d = {"substances": [{"name": "LPG", "physical_state": "gas", "SDS_available": "yes"}]}
    assert suggest_dsear1(d).outcome == "material_def"


def test_dsear1_empty_register_is_compliant():
    assert suggest_dsear1({"substances": []}).outcome == "compliant"


def test_dsear2_continuous_release():
    d = {"process_descriptions": [{"activity": "Decanting", "grade_of_release": "continuous",
                                   "ventilation_type": "natural"}]}
    assert suggest_dsear2(d).outcome == "material_def"


def test_dsear3_zone_rules():
    assert suggest_dsear3({"zones": [{"zone_type": "2"}]}).outcome == "info_gap"
    assert suggest_dsear3({"zones": [{"zone_type": "20"}], "drawings_reference": "HAC-01"}).outcome == "material_def"
    assert suggest_dsear3({"zones": [{"zone_type": "2"}], "drawings_reference": "HAC-01"}).outcome == "acceptable"
    assert suggest_dsear3({"zones": []}).outcome == "compliant"


def test_dsear4_atex_required_but_missing():
    s = suggest_dsear4({"ATEX_equipment_required": "yes", "ATEX_equipment_present": "partial"})
    assert s.outcome == "material_def"


def test_dsear5_no_active_mitigation_is_acceptable():
    d = {"explosion_venting": "no", "suppression_systems": "na", "explosion_isolation": "no"}
    assert suggest_dsear5(d).outcome == "acceptable"
    d["explosion_venting"] = "yes"
    assert suggest_dsear5(d).outcome == "compliant"


def test_dsear6_residual_risk():
    rows = [{"activity": "Filling", "residual_risk": "medium"}]
    assert suggest_dsear6({"risk_rows": rows}).outcome == "acceptable"
    rows.append({"activity": "Spraying", "residual_risk": "high"})
    assert suggest_dsear6({"risk_rows": rows}).outcome == "material_def"


def test_dsear10_and_11():
    assert suggest_dsear10({"substitution_considered": "unknown"}).outcome == "info_gap"
    assert suggest_dsear10({"elimination_possible": "yes"}).outcome == "material_def"
    assert suggest_dsear11({"emergency_shutdown_procedures": "yes", "drills_and_training": "no"}).outcome == "material_def"
