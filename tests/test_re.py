import logging

from ezirisk.forms.service import load_module, save_module
from ezirisk.re.grading import (
    SECTOR_PROFILES, calculate_dimension_contributions, calculate_overall_grade, calculate_overall_risk_score,
    calculate_priority, get_lowest_contributors, get_risk_band, get_sector_weights, priority_for_dimension,
    risk_band_from_grade, sort_recommendations_by_priority,
)
from ezirisk.re.recommendations import (
    build_auto_recommendation, ensure_auto_recommendation, ensure_reference_numbers, humanize_canonical_key,
    next_recommendation_ref, sort_by_reference,
)
from ezirisk.re.scoring import (
    calculate_building_combustibility, calculate_site_combustibility, compute_building,
    compute_building_construction_rating, compute_construction_rating_from_re02,
    compute_site_fire_protection_score, get_construction_rating, js_round, sync_construction_grade,
)


def test_js_round_is_half_up():
    assert [js_round(x) for x in (0.5, 1.5, 2.5, 2.49)] == [1, 2, 3, 2]


def test_building_construction_rating():
    good = {"frame_type": "reinforced_concrete", "roof_ceiling_combustibility": "non-combustible",
            "wall_combustibility": "brick", "area_weighted_combustible_percent": 5}
    assert compute_building_construction_rating(good) == 5
    poor = {"frame_type": "timber", "roof_ceiling_combustibility": "timber",
            "area_weighted_combustible_percent": 60}
    assert compute_building_construction_rating(poor) == 1


def test_re02_worst_case_and_site_override():
    data = {"buildings": [{"frame_type": "steel"}, {"frame_type": "timber"}]}
    r = compute_construction_rating_from_re02(data)
    assert r.rating == 1
    assert r.details == "Computed from 2 building(s), worst case: 1"
    assert compute_construction_rating_from_re02({**data, "site_rating_1_5": 4}).rating == 4
    assert compute_construction_rating_from_re02({}).details == "No buildings defined - default to 3"


def test_unparseable_combustible_percent_is_ignored(store, make_document, instance_of):
    steel = {"frame_type": "steel", "area_weighted_combustible_percent": "n/a"}
    assert compute_building_construction_rating(steel) == 4

    doc = make_document("RE")
    re02 = instance_of(doc["id"], "RE_02_CONSTRUCTION")
    store.update("module_instances", re02["id"], {"data": {"buildings": [steel]}})
    assert load_module(store, re02["id"]).suggestion.reason == \
        "Construction rating 4/5 (Good) - Computed from 1 building(s), worst case: 4"


def test_out_of_range_site_rating_falls_back_to_buildings():
    data = {"buildings": [{"frame_type": "steel"}], "site_rating_1_5": 7}
    r = compute_construction_rating_from_re02(data)
    assert (r.rating, r.details) == (4, "Computed from 1 building(s), worst case: 4")
    assert compute_construction_rating_from_re02({**data, "site_rating_1_5": "n/a"}).rating == 4


def test_construction_rating_lookup_order(store, make_document, instance_of):
    doc = make_document("RE")
    assert get_construction_rating(store, doc["id"]).rating == 3

    re02 = instance_of(doc["id"], "RE_02_CONSTRUCTION")
    store.update("module_instances", re02["id"], {"data": {"buildings": [{"frame_type": "steel"}]}})
    rating = get_construction_rating(store, doc["id"])
    assert (rating.rating, rating.source) == (4, "computed")

    assert sync_construction_grade(store, doc["id"]) == 4
    assert get_construction_rating(store, doc["id"]).source == "section_grade"
    assert sync_construction_grade(store, doc["id"]) is None


def test_combustibility():
    building = {"construction": {"roof_ceiling": {"other_combustible_pct": 50},
                                 "walls": {"foam_plastic_approved_pct": 20}}, "floor_area_sqm": 100}
    assert calculate_building_combustibility(building) == 54
    walls_only = {"construction": {"walls": {"other_combustible_pct": 50}}, "floor_area_sqm": 300}
    assert calculate_building_combustibility(walls_only) == 30
    assert calculate_site_combustibility([building, walls_only, {"floor_area_sqm": 0}]) == 36


def test_site_fire_protection_score_and_cap():
    buildings = {
        "b1": {"suppression": {"sprinklers": {"rating": 5}}, "detection_alarm": {"rating": 5}},
        "b2": {"detection_alarm": {"rating": 3}},
    }
    meta = [{"id": "b1", "floor_area_sqm": 3000}, {"id": "b2", "floor_area_sqm": 1000}]
    assert compute_site_fire_protection_score(buildings, {"water_supply_reliability": "reliable"}, meta) == 5
    assert compute_site_fire_protection_score(buildings, {"water_supply_reliability": "unreliable"}, meta) == 3
    assert compute_site_fire_protection_score(buildings, None, meta) == 4
    assert compute_site_fire_protection_score({}) is None


def test_compute_building_flags():
    out = compute_building({"cladding_present": True, "cladding_combustible": True,
                            "sprinklers_present": False, "detection_present": False})
    assert out["has_combustible_cladding"]
    assert out["re02_construction_score"] == 4
    assert out["re06_protection_score"] == 5
    assert "No sprinkler protection" in out["protection_flags"]


def test_overall_grade_and_band():
    assert calculate_overall_grade({}) == 3.0
    assert calculate_overall_grade({"construction": 2, "management": 4, "unset": 0}) == 3.0
    assert [risk_band_from_grade(g) for g in (1.5, 2.5, 3.5, 4.0)] == ["Critical", "High", "Medium", "Low"]


def test_unknown_sector_falls_back(caplog):
    with caplog.at_level(logging.WARNING):
        weights = get_sector_weights("Space Mining")
    assert weights == SECTOR_PROFILES["General Industrial"].weights
    assert 'Unknown sector: "Space Mining"' in caplog.text


def test_weighted_risk_score():
    weights = get_sector_weights("Logistics / Warehouse")
    assert round(sum(weights.values()), 6) == 1.0
    scores = {"construction": 60, "protection": 40, "detection": 80, "management": 70, "hazards": 90, "bi": 50}
    score = calculate_overall_risk_score(scores, weights)
    assert score == 58
    assert get_risk_band(score) == "Tolerable"
    lowest = get_lowest_contributors(calculate_dimension_contributions(scores, weights))
    assert [c.name for c in lowest] == ["Business Interruption", "Special Hazards"]


def test_recommendation_priority():
    assert [calculate_priority(s) for s in (39, 54, 69, 70)] == ["Critical", "High", "Medium", "Low"]
    assert priority_for_dimension("management", {"management": 45}) == "High"
    assert priority_for_dimension(None, {}) is None
    recs = [{"priority": "Low"}, {"priority": ""}, {"priority": "Critical"}]
    assert [r["priority"] for r in sort_recommendations_by_priority(recs)] == ["Critical", "Low", ""]


def test_auto_recommendation_templates():
    assert build_auto_recommendation("process_safety_management", 3) is None
    rec = build_auto_recommendation("process_safety_management", 1)
    assert rec["priority"] == "high"
    assert rec["text"].startswith("CRITICAL: Process safety management")
    assert rec["createdBy"] == "auto"
    custom = build_auto_recommendation("dust_control", 2)
    assert custom["text"] == "Dust Control requires improvement to meet acceptable standards."
    assert humanize_canonical_key("emergency_response_and_bcp") == "Emergency Response And Bcp"


def test_auto_recommendation_added_once_and_removed_on_improvement():
    data = ensure_auto_recommendation({"recommendations": []}, "safety_and_control_systems", 2)
    data = ensure_auto_recommendation(data, "safety_and_control_systems", 1)
    assert len(data["recommendations"]) == 1
    data = ensure_auto_recommendation(data, "safety_and_control_systems", 4)
    assert data["recommendations"] == []


def test_reference_numbers():
    existing = [{"ref_number": "25-03"}, {"ref_number": "24-09"}, {"ref_number": None}]
    assert next_recommendation_ref(existing, 2025) == "25-04"
    assert next_recommendation_ref([], 2026) == "26-01"
    numbered = ensure_reference_numbers([{"text": "a"}, {"ref_number": "25-01"}, {"text": "b"}], 2025)
    refs = [r["ref_number"] for r in numbered]
    assert len(set(refs)) == 3
    assert [r.get("ref_number") for r in sort_by_reference([{"ref_number": None}, {"ref_number": "25-02"},
                                                            {"ref_number": "24-10"}])] == ["24-10", "25-02", None]


def test_re_forms_write_section_grades(store, make_document, instance_of):
    doc = make_document("RE")
    re09 = instance_of(doc["id"], "RE_09_MANAGEMENT")
    view = load_module(store, re09["id"])
    assert view.suggestion is None

    data = {**view.data, "categories": {**view.data["categories"], "housekeeping": "2", "hot_work": "4"}}
    save_module(store, re09["id"], data)
    assert store.get_row("documents", doc["id"])["section_grades"] == {"management": 3}

    re09_view = load_module(store, re09["id"])
    assert re09_view.suggestion.reason == "Management systems rating 3/5 (Average) - Weak: Housekeeping"

    re13 = instance_of(doc["id"], "RE_13_RECOMMENDATIONS")
    assert load_module(store, re13["id"]).suggestion.reason == \
        "Overall grade 3.0 (Medium risk) from 1 section grade(s)"


def test_poor_management_rating_raises_and_clears_re13_recommendation(store, make_document, instance_of):
    doc = make_document("RE", assessment_date="2025-03-07")
    re09 = instance_of(doc["id"], "RE_09_MANAGEMENT")
    re13 = instance_of(doc["id"], "RE_13_RECOMMENDATIONS")
    data = load_module(store, re09["id"]).data

    poor = {**data, "categories": {**data["categories"], "housekeeping": "1"}}
    save_module(store, re09["id"], poor)
    save_module(store, re09["id"], poor)
    recs = store.get_row("module_instances", re13["id"])["data"]["recommendations"]
    assert [(r["canonical_key"], r["createdBy"], r["priority"], r["ref_number"]) for r in recs] == \
        [("housekeeping", "auto", "high", "25-01")]

    improved = {**data, "categories": {**data["categories"], "housekeeping": "4"}}
    save_module(store, re09["id"], improved)
    assert store.get_row("module_instances", re13["id"])["data"]["recommendations"] == []
