from ezirisk.forms.fra_modules import suggest_fra1, suggest_fra2, suggest_fra5
from ezirisk.forms.fsd_modules import suggest_fsd1, suggest_fsd7, suggest_fsd8


def test_fra1_oxygen_enrichment_with_many_sources():
    s = suggest_fra1({"oxygen_enrichment": "known",
                      "ignition_sources": ["smoking", "cooking", "hot_work"]})
    assert s.outcome == "material_def"


def test_fra1_high_arson():
    assert suggest_fra1({"arson_risk": "high"}).outcome == "material_def"


def test_fra1_smoking_is_minor_issue():
    s = suggest_fra1({"ignition_sources": ["smoking"], "arson_risk": "low"})
    assert s.outcome == "minor_def"
    assert "Smoking controls needed" in s.reason


def test_fra1_nothing_noted_returns_none():
    assert suggest_fra1({"arson_risk": "low", "housekeeping_fire_load": "low"}) is None


def test_fra2_unknowns_checked_before_critical():
    d = {"a": "unknown", "b": "unknown", "c": "unknown", "d": "unknown", "final_exits_adequate": "no"}
    assert suggest_fra2(d).outcome == "info_gap"


def test_fra2_critical_issue():
    s = suggest_fra2({"final_exits_adequate": "no"})
    assert s.outcome == "material_def"
    assert s.reason == "Material deficiencies identified: Inadequate final exits"


def test_fra5_not_applicable():
    assert suggest_fra5({"external_wall_system_applicable": "no"}).outcome == "compliant"


def test_fra5_unknown_cladding_depends_on_height():
    d = {"cladding_present": "unknown", "building_height_relevant": "18"}
    assert suggest_fra5(d).outcome == "material_def"
    d["building_height_relevant"] = "11"
    assert suggest_fra5(d).outcome == "info_gap"


def test_fra5_height_with_units():
    for height in ("18m", "20 m", " 18.5 metres"):
        d = {"cladding_present": "unknown", "building_height_relevant": height}
        assert suggest_fra5(d).outcome == "material_def"
    assert suggest_fra5({"cladding_present": "unknown", "building_height_relevant": "approx"}).outcome == "info_gap"


def test_fra5_appraisal_underway():
    s = suggest_fra5({"cladding_present": "no", "pas9980_or_equivalent_appraisal": "underway"})
    assert s.outcome == "info_gap"


def test_fsd1_unknown_framework():
    assert suggest_fsd1({"regulatory_framework": "unknown"}).outcome == "info_gap"


def test_fsd1_weak_deviation_justifications():
    d = {"regulatory_framework": "ADB", "deviations": [{"justification": "ok"}, {"justification": ""}]}
    assert suggest_fsd1(d).outcome == "material_def"


def test_fsd7_drawing_coverage():
    s = suggest_fsd7({"drawings_checklist": {"a": True, "b": False, "c": False, "d": False}})
    assert s.outcome == "material_def"
    assert s.reason.startswith("Only 1/4")


def test_fsd8_present_without_activation_details():
    s = suggest_fsd8({"smoke_control_present": "yes", "activation_and_controls": "AOV"})
    assert s.outcome == "material_def"
