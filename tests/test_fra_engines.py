from datetime import date

from ezirisk.fra.complexity import (
    calculate_scs, derive_fire_protection_reliance, derive_floor_area_for_scoring, derive_storeys_for_scoring,
)
from ezirisk.fra.findings import compute_fra_summary, fra_context_from_profile, sort_actions
from ezirisk.fra.severity import (
    FraActionInput, FraContext, check_material_deficiency, derive_executive_outcome, derive_severity,
    map_tier_to_priority, migrate_legacy_action, needs_migration, suggested_target_date, suggested_timescale,
)


def test_final_exit_is_t4():
    r = derive_severity(FraActionInput(final_exit_locked=True), FraContext())
    assert (r.tier, r.priority, r.trigger_id) == ("T4", "P1", "T4-FINAL-EXIT")


def test_no_detection_depends_on_occupancy():
    a = FraActionInput(no_fire_detection=True)
    assert derive_severity(a, FraContext(occupancy_risk="Sleeping")).trigger_id == "T4-NO-DETECTION-SLEEPING"
    assert derive_severity(a, FraContext()).trigger_id == "T3-NO-DETECTION"


def test_single_stair_height_threshold():
    a = FraActionInput(single_stair_compromised=True)
    assert derive_severity(a, FraContext(storeys=4)).tier == "T4"
    assert derive_severity(a, FraContext(storeys=3)).tier == "T3"


def test_category_defaults():
    assert derive_severity(FraActionInput(category="Housekeeping"), FraContext()).priority == "P3"
    assert derive_severity(FraActionInput(category="Other"), FraContext()).priority == "P4"


def test_manual_escalation():
    r = derive_severity(FraActionInput(category="Other", assessor_marked_critical=True), FraContext())
    assert r.priority == "P1"
    assert r.trigger_id == "MANUAL-P1"
    assert r.trigger_text == "Manually escalated to P1 by assessor."


def test_tier_priority_map():
    assert [map_tier_to_priority(t) for t in ("T4", "T3", "T2", "T1")] == ["P1", "P2", "P3", "P4"]


def test_executive_outcome_thresholds():
    assert derive_executive_outcome([{"priority_band": "P1"}]) == "MaterialLifeSafetyRiskPresent"
    assert derive_executive_outcome([{"priority_band": "P2"}] * 3) == "SignificantDeficiencies"
    assert derive_executive_outcome([{"severity_tier": "T3"}]) == "ImprovementsRequired"
    assert derive_executive_outcome([{"priority_band": "P4"}]) == "SatisfactoryWithImprovements"


def test_material_deficiency_adds_vulnerable_trigger():
    check = check_material_deficiency([{"priority_band": "P1"}], FraContext(occupancy_risk="Vulnerable"))
    assert check.is_material_deficiency
    assert len(check.triggers) == 2


def test_timescales():
    today = date(2025, 1, 1)
    assert suggested_timescale("P2") == "30d"
    assert suggested_target_date("30d", today) == "2025-01-31"
    assert suggested_target_date("next_review", today) is None


def test_legacy_score_migration():
    migrated = migrate_legacy_action({"id": "a", "risk_score": 12}, FraContext())
    assert migrated["severity_tier"] == "T3"
    assert migrated["trigger_id"] == "LEGACY-SCORE"
    assert not needs_migration(migrated)


def test_legacy_flags_migration_uses_rules():
    migrated = migrate_legacy_action({"id": "a", "final_exit_obstructed": True}, FraContext())
    assert migrated["priority_band"] == "P1"


def test_storeys_and_area_for_scoring():
    assert derive_storeys_for_scoring("custom", "7") == 7
    assert derive_storeys_for_scoring("5-6") == 6
    assert derive_storeys_for_scoring(None, None) == 4
    assert derive_floor_area_for_scoring("custom", floor_area_m2="2500") == 2500
    assert derive_floor_area_for_scoring(None) == 1000


def test_scs_bands():
    low = calculate_scs({"storeys_band": "2", "floor_area_band": "<150"})
    assert (low.score, low.band) == (4, "Low")
    high = calculate_scs({"storeys_band": "11+", "floor_area_band": "10000+", "sleeping_risk": "Vulnerable",
                          "layout_complexity": "MixedUse", "fire_protection_reliance": "EngineeredSystemsCritical"})
    assert (high.score, high.band) == (20, "VeryHigh")


def test_fire_protection_reliance():
    assert derive_fire_protection_reliance(None) == "Basic"
    assert derive_fire_protection_reliance({"hasSmokeControl": True}) == "EngineeredSystemsCritical"
    assert derive_fire_protection_reliance({"hasDetectionSystem": True, "hasEmergencyLighting": True}) \
        == "DetectionAndEmergencyLighting"


def test_high_complexity_sort_puts_escape_first_within_priority():
    actions = [
        {"id": "1", "priority_band": "P2", "finding_category": "Management"},
        {"id": "2", "priority_band": "P2", "finding_category": "MeansOfEscape"},
        {"id": "3", "priority_band": "P1", "finding_category": "Housekeeping"},
    ]
    assert [a["id"] for a in sort_actions(actions, "High")] == ["3", "2", "1"]
    assert [a["id"] for a in sort_actions(actions, "Moderate")] == ["3", "1", "2"]


def test_summary_ignores_closed_actions():
    actions = [
        {"status": "closed", "priority_band": "P1", "recommended_action": "Old"},
        {"status": "open", "priority_band": "P2", "recommended_action": "Fix doors", "trigger_text": "t"},
        {"status": "in_progress", "priority_band": "P4", "recommended_action": "Signage"},
    ]
    s = compute_fra_summary(actions, "Low", FraContext())
    assert s.computed_outcome == "ImprovementsRequired"
    assert s.counts == {"p1": 0, "p2": 1, "p3": 0, "p4": 1}
    assert [t.title for t in s.top_issues] == ["Fix doors", "Signage"]
    assert s.top_issues[0].trigger_text == "t"
    assert s.top_issues[1].trigger_text is None
    assert not s.material_deficiency


def test_summary_counts_only_explicit_priorities():
    actions = [
        {"status": "open", "priority_band": "P3", "recommended_action": "Labels"},
        {"status": "open", "recommended_action": "Unbanded"},
    ]
    s = compute_fra_summary(actions, "Low", FraContext())
    assert s.counts == {"p1": 0, "p2": 0, "p3": 1, "p4": 0}
    assert [(t.title, t.priority) for t in s.top_issues] == [("Labels", "P3"), ("Unbanded", None)]


def test_context_from_profile():
    ctx = fra_context_from_profile({"storeys_band": "3", "occupancy_risk": "Sleeping"})
    assert ctx.storeys == 3
    assert ctx.occupancy_risk == "Sleeping"
    assert fra_context_from_profile({"occupancy_risk": "bogus"}).occupancy_risk == "NonSleeping"
