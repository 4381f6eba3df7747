# ezirisk/forms/fra_modules.py
"""FRA-1 .. FRA-5 (as-is fire risk assessment)."""
import re
from typing import Any, Dict, List, Optional

from ezirisk.schemas.contracts import Suggestion
from ezirisk.forms.base import FieldSpec, FormSpec, YES_NO, YES_NO_NA, count_unknown_except
from ezirisk.fra.findings import FraSummary, compute_fra_summary, fra_context_from_profile
from ezirisk.fra.severity import EXECUTIVE_OUTCOME_LABELS


def _minor_or_none(issues: List[str], unknowns: int) -> Optional[Suggestion]:
    if issues or unknowns >= 2:
        return Suggestion("minor_def", ", ".join(issues) if issues else "Some information gaps remain")
    return None


# --- FRA-1 --------------------------------------------------------------------

IGNITION_SOURCES = ["smoking", "hot_work", "electrical_equipment", "cooking", "portable_heaters",
                    "plant_rooms", "arson_ignition_points", "other"]
FUEL_SOURCES = ["waste_storage", "packaging_materials", "upholstered_furniture", "storage_racking",
                "flammable_liquids", "lpg_cylinders", "plant_rooms", "other"]
HIGH_RISK_ACTIVITIES = ["hot_work", "lithium_ion_charging", "commercial_kitchens", "laundry_operations",
                        "contractor_works", "maintenance_activities", "other"]


def suggest_fra1(d: Dict[str, Any]) -> Optional[Suggestion]:
    unknowns = sum(1 for k in ("arson_risk", "housekeeping_fire_load", "lone_working", "oxygen_enrichment")
                   if d.get(k) == "unknown")
    ignition = d.get("ignition_sources") or []
    fuel = d.get("fuel_sources") or []

    if d.get("oxygen_enrichment") == "known" and (len(ignition) > 2 or len(fuel) > 2):
        return Suggestion("material_def", "Known oxygen enrichment combined with significant ignition and "
                                          "fuel sources presents elevated fire risk")
    if d.get("arson_risk") == "high":
        return Suggestion("material_def", "High arson risk requires immediate security and preventative measures")
    if unknowns >= 4:
        return Suggestion("info_gap", f"{unknowns} key factors marked as unknown - significant information gaps")

    issues = []
    if "smoking" in ignition:
        issues.append("Smoking controls needed")
    if "hot_work" in ignition:
        issues.append("Hot work controls needed")
    if d.get("housekeeping_fire_load") == "high":
        issues.append("High fire load")
    if d.get("arson_risk") == "medium":
        issues.append("Moderate arson risk")
    return _minor_or_none(issues, unknowns)


FRA_1_HAZARDS = FormSpec(
    module_key="FRA_1_HAZARDS",
    title="Hazards & Ignition Sources",
    fields=[
        FieldSpec("ignition_sources", "Ignition sources", "multiselect", IGNITION_SOURCES),
        FieldSpec("ignition_other", "Other ignition sources"),
        FieldSpec("fuel_sources", "Fuel sources", "multiselect", FUEL_SOURCES),
        FieldSpec("fuel_other", "Other fuel sources"),
        FieldSpec("oxygen_enrichment", "Oxygen enrichment", "select", ["none", "possible", "known", "unknown"]),
        FieldSpec("oxygen_sources_notes", "Oxygen sources", "textarea"),
        FieldSpec("high_risk_activities", "High-risk activities", "multiselect", HIGH_RISK_ACTIVITIES),
        FieldSpec("high_risk_other", "Other high-risk activities"),
        FieldSpec("arson_risk", "Arson risk", "select", ["unknown", "low", "medium", "high"]),
        FieldSpec("housekeeping_fire_load", "Housekeeping / fire load", "select", ["unknown", "low", "medium", "high"]),
        FieldSpec("lone_working", "Lone working", "select", YES_NO),
        FieldSpec("notes", "Notes", "textarea"),
    ],
    suggest=suggest_fra1,
)

# --- FRA-2 --------------------------------------------------------------------


def suggest_fra2(d: Dict[str, Any]) -> Optional[Suggestion]:
    unknowns = count_unknown_except(d, ["notes", "description"])
    if unknowns >= 4:
        return Suggestion("info_gap", f"{unknowns} items marked as unknown - significant information gaps")

    critical = []
    if d.get("stair_protection_status") == "inadequate":
        critical.append("Inadequate stair protection")
    if d.get("final_exits_adequate") == "no":
        critical.append("Inadequate final exits")
    if d.get("travel_distances_compliant") == "no":
        critical.append("Non-compliant travel distances")
    if critical:
        return Suggestion("material_def", f"Material deficiencies identified: {', '.join(critical)}")

    minor = []
    if d.get("escape_route_obstructions") == "yes":
        minor.append("Escape route obstructions")
    if d.get("exit_signage_adequacy") == "inadequate":
        minor.append("Inadequate signage")
    if d.get("disabled_egress_arrangements") == "inadequate":
        minor.append("Inadequate disabled egress")
    return _minor_or_none(minor, unknowns)


FRA_2_ESCAPE_ASIS = FormSpec(
    module_key="FRA_2_ESCAPE_ASIS",
    title="Means of Escape (As-Is)",
    fields=[
        FieldSpec("escape_strategy_current", "Current escape strategy", "select",
                  ["unknown", "simultaneous", "phased", "stay_put", "progressive_horizontal", "other"]),
        FieldSpec("escape_routes_description", "Escape routes", "textarea"),
        FieldSpec("travel_distances_compliant", "Travel distances compliant", "select", YES_NO),
        FieldSpec("final_exits_adequate", "Final exits adequate", "select", YES_NO),
        FieldSpec("escape_route_obstructions", "Escape route obstructions", "select", YES_NO),
        FieldSpec("stair_protection_status", "Stair protection", "select", ["unknown", "adequate", "inadequate", "na"]),
        FieldSpec("inner_rooms_present", "Inner rooms present", "select", YES_NO),
        FieldSpec("basement_present", "Basement present", "select", YES_NO),
        FieldSpec("exit_signage_adequacy", "Exit signage", "select", ["unknown", "adequate", "inadequate"]),
        FieldSpec("emergency_lighting_dependency", "Relies on emergency lighting", "select", YES_NO),
        FieldSpec("disabled_egress_arrangements", "Disabled egress", "select",
                  ["unknown", "adequate", "inadequate", "na"]),
        FieldSpec("notes", "Notes", "textarea"),
    ],
    suggest=suggest_fra2,
)

# --- FRA-3 --------------------------------------------------------------------

EVIDENCE = ["unknown", "yes", "partial", "no"]


def suggest_fra3(d: Dict[str, Any]) -> Optional[Suggestion]:
    unknowns = count_unknown_except(d, ["notes", "sprinkler"])
    if unknowns >= 4:
        return Suggestion("info_gap", f"{unknowns} items marked as unknown - significant information gaps")

    critical = []
    if d.get("fire_alarm_present") == "no":
        critical.append("No fire alarm system")
    if d.get("emergency_lighting_present") == "no":
        critical.append("No emergency lighting on escape routes")
    if d.get("compartmentation_condition") == "inadequate":
        critical.append("Inadequate compartmentation")
    if d.get("fire_doors_condition") == "inadequate":
        critical.append("Fire doors in poor condition")
    if critical:
        return Suggestion("material_def", f"Material deficiencies identified: {', '.join(critical)}")

    minor = []
    if d.get("alarm_testing_evidence") == "no":
        minor.append("No alarm testing evidence")
    if d.get("fire_stopping_confidence") == "unknown":
        minor.append("Fire stopping not verified")
    if d.get("extinguishers_present") == "no":
        minor.append("No extinguishers")
    return _minor_or_none(minor, unknowns)


FRA_3_PROTECTION_ASIS = FormSpec(
    module_key="FRA_3_PROTECTION_ASIS",
    title="Fire Protection (As-Is)",
    fields=[
        FieldSpec("fire_alarm_present", "Fire alarm present", "select", YES_NO),
        FieldSpec("fire_alarm_category", "Fire alarm category", "select",
                  ["unknown", "L1", "L2", "L3", "L4", "L5", "P1", "P2"]),
        FieldSpec("alarm_testing_evidence", "Alarm testing evidence", "select", EVIDENCE),
        FieldSpec("emergency_lighting_present", "Emergency lighting present", "select", YES_NO),
        FieldSpec("emergency_lighting_testing_evidence", "Emergency lighting testing evidence", "select", EVIDENCE),
        FieldSpec("fire_doors_condition", "Fire doors condition", "select", ["unknown", "adequate", "inadequate"]),
        FieldSpec("fire_doors_inspection_regime", "Fire door inspections", "select",
                  ["unknown", "none", "6-monthly", "annual", "other"]),
        FieldSpec("compartmentation_condition", "Compartmentation", "select", ["unknown", "adequate", "inadequate"]),
        FieldSpec("fire_stopping_confidence", "Fire stopping", "select", ["unknown", "known", "assumed"]),
        FieldSpec("extinguishers_present", "Extinguishers present", "select", YES_NO),
        FieldSpec("extinguisher_servicing_evidence", "Extinguisher servicing evidence", "select", EVIDENCE),
        FieldSpec("sprinkler_present", "Sprinklers present", "select", YES_NO_NA),
        FieldSpec("notes", "Notes", "textarea"),
    ],
    suggest=suggest_fra3,
)

# --- FRA-5 --------------------------------------------------------------------


def _height(v: Any) -> Optional[float]:
    """Leading number of a free-text height ("18m", "20 m")."""
    match = re.match(r"\s*(-?\d+(?:\.\d+)?)", str(v or ""))
    return float(match.group(1)) if match else None


def suggest_fra5(d: Dict[str, Any]) -> Optional[Suggestion]:
    if d.get("external_wall_system_applicable") == "no":
        return Suggestion("compliant", "External wall system assessment not applicable to this building")

    height = _height(d.get("building_height_relevant"))
    high_rise = height is not None and height >= 18

    key_unknowns = [label for key, label in (("cladding_present", "cladding"),
                                             ("insulation_combustibility_known", "insulation"),
                                             ("cavity_barriers_status", "cavity_barriers"))
                    if d.get(key) == "unknown"]
    if key_unknowns:
        listed = ", ".join(key_unknowns)
        if high_rise:
            return Suggestion("material_def", f"Building ≥18m with unknown {listed} - significant information "
                                              f"gaps pose potential life safety risk")
        return Suggestion("info_gap", f"Unknown {listed} - requires verification")

    appraisal = d.get("pas9980_or_equivalent_appraisal")
    if appraisal in ("required", "underway"):
        return Suggestion("info_gap", "External wall system appraisal required or underway - awaiting completion")
    if (appraisal == "completed" and d.get("external_openings_fire_stopping") == "adequate"
            and d.get("cavity_barriers_status") == "known"):
        return Suggestion("compliant", "External wall system appraisal completed with adequate findings")
    if d.get("external_openings_fire_stopping") == "inadequate" or d.get("cavity_barriers_status") == "inadequate":
        return Suggestion("minor_def", "Deficiencies identified in external fire spread protection")
    return None


FRA_5_EXTERNAL_FIRE_SPREAD = FormSpec(
    module_key="FRA_5_EXTERNAL_FIRE_SPREAD",
    title="External Fire Spread",
    fields=[
        FieldSpec("external_wall_system_applicable", "External wall system relevant", "select", YES_NO),
        FieldSpec("building_height_relevant", "Building height (m)"),
        FieldSpec("cladding_present", "Cladding present", "select", YES_NO),
        FieldSpec("insulation_combustibility_known", "Insulation combustibility known", "select", YES_NO),
        FieldSpec("cavity_barriers_status", "Cavity barriers", "select",
                  ["unknown", "known", "assumed", "inadequate", "na"]),
        FieldSpec("external_openings_fire_stopping", "Fire stopping at openings", "select",
                  ["unknown", "adequate", "inadequate"]),
        FieldSpec("balconies_present", "Balconies present", "select", YES_NO),
        FieldSpec("fire_spread_routes_notes", "Fire spread routes", "textarea"),
        FieldSpec("pas9980_or_equivalent_appraisal", "PAS 9980 (or equivalent) appraisal", "select",
                  ["unknown", "not_required", "required", "underway", "completed"]),
        FieldSpec("appraisal_reference", "Appraisal reference"),
        FieldSpec("interim_measures", "Interim measures", "textarea"),
        FieldSpec("notes", "Notes", "textarea"),
    ],
    suggest=suggest_fra5,
)

# --- FRA-4 (derived) ----------------------------------------------------------

_EXECUTIVE_TO_OUTCOME = {
    "MaterialLifeSafetyRiskPresent": "material_def",
    "SignificantDeficiencies": "material_def",
    "ImprovementsRequired": "minor_def",
    "SatisfactoryWithImprovements": "compliant",
}


def summarise_document(store, document_id: str) -> FraSummary:
    doc = store.get_row("documents", document_id) or {}
    profile = next((m for m in store.select("module_instances", document_id=document_id)
                    if m.get("module_key") == "A2_BUILDING_PROFILE"), None)
    actions = [a for a in store.select("actions", document_id=document_id) if not a.get("deleted_at")]
    actions.sort(key=lambda a: a.get("created_at") or "")
    scs_band = doc.get("scs_band") or "Moderate"
    return compute_fra_summary(actions, scs_band, fra_context_from_profile((profile or {}).get("data")))


def derive_fra4(store, instance: Dict[str, Any], data: Dict[str, Any]) -> Optional[Suggestion]:
    summary = summarise_document(store, instance["document_id"])
    label = EXECUTIVE_OUTCOME_LABELS[summary.computed_outcome]
    return Suggestion(_EXECUTIVE_TO_OUTCOME[summary.computed_outcome], f"{label}. {summary.tone_paragraph}")


def prepare_fra4(store, instance: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
    if data.get("override_enabled") and not str(data.get("override_reason") or "").strip():
        raise ValueError("Override reason is required when overriding the computed outcome.")
    if not data.get("override_enabled"):
        data = {**data, "override_outcome": "", "override_reason": ""}
    return {**data, "computed": summarise_document(store, instance["document_id"]).to_dict()}


FRA_4_SIGNIFICANT_FINDINGS = FormSpec(
    module_key="FRA_4_SIGNIFICANT_FINDINGS",
    title="Significant Findings (Summary)",
    fields=[
        FieldSpec("override_enabled", "Override computed outcome", "flag"),
        FieldSpec("override_outcome", "Overridden outcome", "select",
                  [""] + list(EXECUTIVE_OUTCOME_LABELS), option_labels=EXECUTIVE_OUTCOME_LABELS),
        FieldSpec("override_reason", "Override justification", "textarea"),
        FieldSpec("executive_commentary", "Executive commentary", "textarea"),
        FieldSpec("limitations_assumptions", "Limitations & assumptions", "textarea"),
    ],
    derive=derive_fra4,
    prepare_save=prepare_fra4,
)

FORMS = [
    FRA_1_HAZARDS,
    FRA_2_ESCAPE_ASIS,
    FRA_3_PROTECTION_ASIS,
    FRA_5_EXTERNAL_FIRE_SPREAD,
    FRA_4_SIGNIFICANT_FINDINGS,
]
