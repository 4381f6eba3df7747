from ezirisk.modules.catalog import (
    build_module_sections, get_module_code, get_module_display_name, get_module_name, modules_for_doc_type,
    sort_modules_by_order,
)


def _inst(*keys):
    return [{"id": k, "module_key": k} for k in keys]


def test_names_and_codes():
    assert get_module_name("NOT_A_MODULE") == "NOT_A_MODULE"
    assert get_module_code("FRA_2_ESCAPE_ASIS") == "FRA-2"
    assert get_module_code("A1_DOC_CONTROL") == "A1"
    assert get_module_code("RISK_ENGINEERING") == "RE-00"
    assert get_module_code("RE_09_MANAGEMENT") == "RE-07"
    assert get_module_display_name("FRA_2_ESCAPE_ASIS") == "Means of Escape"
    assert get_module_display_name("A3_PERSONS_AT_RISK") == "Occupancy & Persons at Risk"


def test_unknown_modules_sort_last():
    ordered = sort_modules_by_order(_inst("ZZZ", "FRA_1_HAZARDS", "A1_DOC_CONTROL"))
    assert [m["module_key"] for m in ordered] == ["A1_DOC_CONTROL", "FRA_1_HAZARDS", "ZZZ"]


def test_modules_for_doc_type():
    fsd = modules_for_doc_type("FSD")
    assert fsd[:3] == ["A1_DOC_CONTROL", "A2_BUILDING_PROFILE", "A3_PERSONS_AT_RISK"]
    assert fsd[-1] == "FSD_9_CONSTRUCTION_PHASE"
    assert "A4_MANAGEMENT_CONTROLS" not in fsd
    assert modules_for_doc_type("RE") == ["RE_02_CONSTRUCTION", "RE_06_FIRE_PROTECTION",
                                          "RE_09_MANAGEMENT", "RE_13_RECOMMENDATIONS"]


def test_sections_group_and_drop_empty():
    sections = build_module_sections(_inst(
        "FRA_4_SIGNIFICANT_FINDINGS", "A1_DOC_CONTROL", "A7_REVIEW_ASSURANCE", "A4_MANAGEMENT_CONTROLS",
        "FRA_1_HAZARDS", "CUSTOM_NOTES",
    ))
    by_key = {s.key: [m["module_key"] for m in s.modules] for s in sections}
    assert list(by_key) == ["core", "fra", "other"]
    assert by_key["core"] == ["A1_DOC_CONTROL", "A7_REVIEW_ASSURANCE"]
    # premium-listed keys first, then the rest in catalog order
    assert by_key["fra"] == ["FRA_1_HAZARDS", "A4_MANAGEMENT_CONTROLS", "FRA_4_SIGNIFICANT_FINDINGS"]
    assert by_key["other"] == ["CUSTOM_NOTES"]


def test_split_protection_hides_legacy_fra3():
    sections = build_module_sections(_inst("FRA_3_PROTECTION_ASIS", "FRA_3_ACTIVE_SYSTEMS"))
    fra = next(s for s in sections if s.key == "fra")
    assert [m["module_key"] for m in fra.modules] == ["FRA_3_ACTIVE_SYSTEMS"]
