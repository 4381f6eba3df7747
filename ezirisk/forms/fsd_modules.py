# ezirisk/forms/fsd_modules.py
"""FSD-1 .. FSD-9 (fire strategy design basis)."""
from typing import Any, Dict, Optional

from ezirisk.schemas.contracts import Suggestion
from ezirisk.forms.base import FieldSpec, FormSpec, YES_NO, YES_NO_NA, blank_or_unknown, is_short, text

# --- FSD-1 --------------------------------------------------------------------


def suggest_fsd1(d: Dict[str, Any]) -> Optional[Suggestion]:
    if d.get("regulatory_framework") == "unknown":
        return Suggestion("info_gap", "Regulatory framework not defined - cannot proceed with design")

    weak = sum(1 for row in d.get("deviations") or [] if is_short(row.get("justification"), 10))
    if weak >= 2:
        return Suggestion("material_def", f"{weak} deviations lack adequate justification")
    if weak >= 1:
        return Suggestion("minor_def", "Some deviations require better justification")
    if is_short(d.get("key_assumptions"), 50):
        return Suggestion("minor_def", "Key design assumptions should be documented")
    return Suggestion("compliant", "Regulatory basis adequately defined")


FSD_1_REG_BASIS = FormSpec(
    module_key="FSD_1_REG_BASIS",
    title="Regulatory Basis",
    fields=[
        FieldSpec("regulatory_framework", "Regulatory framework", "select",
                  ["unknown", "ADB", "BS9999", "BS9991", "fire_engineered", "other"]),
        FieldSpec("design_objectives", "Design objectives", "multiselect",
                  ["Life safety", "Property protection", "Business continuity", "Firefighter safety",
                   "Heritage protection", "Environmental protection", "Other"]),
        FieldSpec("design_objectives_notes", "Design objectives notes", "textarea"),
        FieldSpec("life_safety_scope", "Life safety scope", "textarea"),
        FieldSpec("property_protection_scope", "Property protection scope", "select",
                  ["excluded", "included", "limited"]),
        FieldSpec("property_protection_notes", "Property protection notes", "textarea"),
        FieldSpec("building_reg_control_body", "Building control body"),
        FieldSpec("deviations", "Deviations from guidance", "rows",
                  columns=["topic", "deviation", "justification"]),
        FieldSpec("key_assumptions", "Key design assumptions", "textarea"),
        FieldSpec("standards_referenced", "Standards referenced", "multiselect",
                  ["BS 9999", "BS 9991", "BS 5839-1", "BS 5266", "BS 5499", "BS 9251", "EN 13501", "EN 1363",
                   "Other"]),
        FieldSpec("notes", "Notes", "textarea"),
    ],
    suggest=suggest_fsd1,
)

# --- FSD-2 --------------------------------------------------------------------


def suggest_fsd2(d: Dict[str, Any]) -> Optional[Suggestion]:
    if d.get("evacuation_strategy") == "unknown":
        return Suggestion("info_gap", "Evacuation strategy not defined - critical for design basis")
    if d.get("management_dependencies") and len(text(d.get("management_dependencies_notes"))) <= 20:
        return Suggestion("material_def", "Strategy relies on management dependencies but these are not "
                                          "adequately documented")
    if is_short(d.get("alarm_philosophy"), 20):
        return Suggestion("minor_def", "Alarm philosophy should be documented")
    return Suggestion("compliant", "Evacuation strategy adequately defined")


FSD_2_EVAC_STRATEGY = FormSpec(
    module_key="FSD_2_EVAC_STRATEGY",
    title="Evacuation Strategy",
    fields=[
        FieldSpec("evacuation_strategy", "Evacuation strategy", "select",
                  ["unknown", "simultaneous", "phased", "stay_put", "defend_in_place", "progressive_horizontal",
                   "other"]),
        FieldSpec("alarm_philosophy", "Alarm philosophy", "textarea"),
        FieldSpec("cause_and_effect_summary", "Cause & effect summary", "textarea"),
        FieldSpec("management_dependencies", "Management dependencies", "multiselect",
                  ["Trained staff", "24/7 staffing", "Fire wardens", "PEEPs for vulnerable persons",
                   "Compartmentation integrity", "Door closure discipline", "Other"]),
        FieldSpec("management_dependencies_notes", "Management dependencies notes", "textarea"),
        FieldSpec("evacuation_lifts", "Evacuation lifts", "select", YES_NO_NA),
        FieldSpec("evacuation_lifts_notes", "Evacuation lifts notes", "textarea"),
        FieldSpec("refuges_provided", "Refuges provided", "select", YES_NO_NA),
        FieldSpec("refuges_notes", "Refuges notes", "textarea"),
        FieldSpec("communication_method", "Communication method", "select",
                  ["unknown", "alarm_only", "pa", "evac", "mixed", "other"]),
        FieldSpec("notes", "Notes", "textarea"),
    ],
    suggest=suggest_fsd2,
)

# --- FSD-3 --------------------------------------------------------------------


def suggest_fsd3(d: Dict[str, Any]) -> Optional[Suggestion]:
    exit_calc = d.get("exit_capacity_calculation_done")
    disabled_short = is_short(d.get("disabled_evacuation_assumptions"), 20)
    unknowns = sum([
        d.get("travel_distance_basis") == "unknown",
        exit_calc in ("unknown", "no"),
        d.get("stairs_strategy") == "unknown",
        disabled_short,
    ])

    if exit_calc in ("no", "unknown"):
        return Suggestion("material_def", "Exit capacity calculations not completed - critical for design basis")
    if unknowns >= 3:
        return Suggestion("info_gap", f"{unknowns} key escape design parameters unknown")
    if disabled_short:
        return Suggestion("material_def", "Assisted evacuation assumptions not defined")
    if unknowns >= 1:
        return Suggestion("minor_def", "Some escape design details require clarification")
    return Suggestion("compliant", "Escape design adequately documented")


FSD_3_ESCAPE_DESIGN = FormSpec(
    module_key="FSD_3_ESCAPE_DESIGN",
    title="Escape Design",
    fields=[
        FieldSpec("travel_distance_basis", "Travel distance basis", "select",
                  ["unknown", "ADB", "BS9999", "engineered", "other"]),
        FieldSpec("travel_distance_limits_summary", "Travel distance limits", "textarea"),
        FieldSpec("exit_capacity_calculation_done", "Exit capacity calculation done", "select", YES_NO),
        FieldSpec("exit_widths_summary", "Exit widths", "textarea"),
        FieldSpec("number_of_exits_per_storey", "Exits per storey"),
        FieldSpec("stairs_strategy", "Stairs strategy", "select",
                  ["unknown", "single_stair", "multiple_stairs", "protected_lobbies", "mixed"]),
        FieldSpec("stairs_strategy_notes", "Stairs strategy notes", "textarea"),
        FieldSpec("disabled_evacuation_assumptions", "Assisted evacuation assumptions", "textarea"),
        FieldSpec("final_exit_security_strategy", "Final exit security", "textarea"),
        FieldSpec("notes", "Notes", "textarea"),
    ],
    suggest=suggest_fsd3,
)

# --- FSD-4 --------------------------------------------------------------------


def suggest_fsd4(d: Dict[str, Any]) -> Optional[Suggestion]:
    compartmentation_short = is_short(d.get("compartmentation_strategy"), 20)
    unknowns = sum([
        blank_or_unknown(d.get("structural_fire_resistance_minutes")),
        compartmentation_short,
        d.get("compartmentation_standard") == "unknown",
        blank_or_unknown(d.get("cavity_barriers_strategy")),
    ])

    if unknowns >= 3:
        return Suggestion("info_gap", f"{unknowns} key passive protection fields unknown")
    if compartmentation_short:
        return Suggestion("material_def", "Compartmentation strategy must be defined for fire strategy")
    if unknowns >= 1:
        return Suggestion("minor_def", "Some passive protection details require clarification")
    return Suggestion("compliant", "Passive protection strategy adequately defined")


FSD_4_PASSIVE_PROTECTION = FormSpec(
    module_key="FSD_4_PASSIVE_PROTECTION",
    title="Passive Fire Protection",
    fields=[
        FieldSpec("structural_fire_resistance_minutes", "Structural fire resistance (minutes)"),
        FieldSpec("compartmentation_strategy", "Compartmentation strategy", "textarea"),
        FieldSpec("compartmentation_standard", "Compartmentation standard", "select",
                  ["unknown", "ADB", "BS9999", "engineered", "other"]),
        FieldSpec("fire_door_ratings", "Fire door ratings", "textarea"),
        FieldSpec("cavity_barriers_strategy", "Cavity barriers strategy", "textarea"),
        FieldSpec("internal_lining_classifications", "Internal lining classifications", "select",
                  ["unknown", "EN13501", "legacy", "mixed"]),
        FieldSpec("internal_lining_notes", "Internal lining notes", "textarea"),
        FieldSpec("penetrations_fire_stopping_strategy", "Penetrations & fire stopping", "textarea"),
        FieldSpec("facade_considerations", "Facade considerations", "textarea"),
        FieldSpec("notes", "Notes", "textarea"),
    ],
    suggest=suggest_fsd4,
)

# --- FSD-5 --------------------------------------------------------------------


def suggest_fsd5(d: Dict[str, Any]) -> Optional[Suggestion]:
    cause_effect_short = is_short(d.get("alarm_cause_and_effect_summary"), 20)
    unknowns = sum([
        d.get("detection_alarm_design_category") == "unknown",
        cause_effect_short,
        d.get("sprinkler_provision") == "unknown",
        is_short(d.get("emergency_lighting_design_principles"), 20),
    ])

    if d.get("detection_alarm_design_category") == "unknown":
        return Suggestion("material_def", "Fire detection/alarm category not defined - critical for design")
    if unknowns >= 3:
        return Suggestion("info_gap", f"{unknowns} key active system parameters unknown")
    if cause_effect_short:
        return Suggestion("minor_def", "Alarm cause & effect should be documented")
    if unknowns >= 1:
        return Suggestion("minor_def", "Some active system details require clarification")
    return Suggestion("compliant", "Active fire systems adequately specified")


FSD_5_ACTIVE_SYSTEMS = FormSpec(
    module_key="FSD_5_ACTIVE_SYSTEMS",
    title="Active Fire Systems",
    fields=[
        FieldSpec("detection_alarm_design_category", "Detection & alarm category", "select",
                  ["unknown", "L1", "L2", "L3", "L4", "L5", "P1", "P2", "other"]),
        FieldSpec("alarm_cause_and_effect_summary", "Alarm cause & effect", "textarea"),
        FieldSpec("emergency_lighting_design_principles", "Emergency lighting design principles", "textarea"),
        FieldSpec("sprinkler_provision", "Sprinkler provision", "select", ["unknown", "yes", "partial", "no", "na"]),
        FieldSpec("sprinkler_standard", "Sprinkler standard", "select", ["unknown", "BSEN12845", "BS9251", "other"]),
        FieldSpec("sprinkler_notes", "Sprinkler notes", "textarea"),
        FieldSpec("suppression_other", "Other suppression", "select", ["na", "mist", "gas", "foam", "other"]),
        FieldSpec("suppression_other_notes", "Other suppression notes", "textarea"),
        FieldSpec("fire_fighting_equipment_strategy", "Firefighting equipment strategy", "textarea"),
        FieldSpec("interface_dependencies", "System interfaces & dependencies", "textarea"),
        FieldSpec("notes", "Notes", "textarea"),
    ],
    suggest=suggest_fsd5,
)

# --- FSD-6 --------------------------------------------------------------------


def suggest_fsd6(d: Dict[str, Any]) -> Optional[Suggestion]:
    unknowns = sum([
        is_short(d.get("appliance_access_routes_summary"), 20),
        d.get("water_supplies_hydrants") == "unknown",
        d.get("dry_riser") == "unknown" or d.get("wet_riser") == "unknown",
        is_short(d.get("fire_control_point_location"), 10),
    ])
    if unknowns >= 3:
        return Suggestion("info_gap", f"{unknowns} key fire service provisions unknown")
    if unknowns >= 1:
        return Suggestion("minor_def", "Some fire service access details require clarification")
    return Suggestion("compliant", "Fire service facilities adequately specified")


FSD_6_FRS_ACCESS = FormSpec(
    module_key="FSD_6_FRS_ACCESS",
    title="Fire & Rescue Service Access",
    fields=[
        FieldSpec("appliance_access_routes_summary", "Appliance access routes", "textarea"),
        FieldSpec("water_supplies_hydrants", "Water supplies / hydrants", "select",
                  ["unknown", "adequate", "inadequate", "na"]),
        FieldSpec("water_supplies_notes", "Water supplies notes", "textarea"),
        FieldSpec("dry_riser", "Dry riser", "select", YES_NO_NA),
        FieldSpec("dry_riser_notes", "Dry riser notes"),
        FieldSpec("wet_riser", "Wet riser", "select", YES_NO_NA),
        FieldSpec("wet_riser_notes", "Wet riser notes"),
        FieldSpec("firefighting_shaft", "Firefighting shaft", "select", YES_NO_NA),
        FieldSpec("firefighting_shaft_notes", "Firefighting shaft notes"),
        FieldSpec("fire_service_lift", "Firefighting lift", "select", YES_NO_NA),
        FieldSpec("fire_service_lift_notes", "Firefighting lift notes"),
        FieldSpec("fire_control_point_location", "Fire control point location"),
        FieldSpec("signage_and_info_pack", "Signage & premises information pack", "select", YES_NO),
        FieldSpec("notes", "Notes", "textarea"),
    ],
    suggest=suggest_fsd6,
)

# --- FSD-7 --------------------------------------------------------------------

DRAWING_TYPES = ["general_arrangement", "escape_routes", "compartmentation", "fire_doors", "detection_zones",
                 "smoke_control", "firefighting_access"]


def suggest_fsd7(d: Dict[str, Any]) -> Optional[Suggestion]:
    checklist = d.get("drawings_checklist") or {}
    total = len(checklist) or len(DRAWING_TYPES)
    completed = sum(1 for v in checklist.values() if v)
    pct = completed / total * 100
    if pct < 30:
        return Suggestion("material_def", f"Only {completed}/{total} drawing types provided - insufficient for strategy")
    if pct < 70:
        return Suggestion("minor_def", f"{completed}/{total} drawing types provided - some key drawings missing")
    return Suggestion("compliant", "Drawing index adequately documented")


FSD_7_DRAWINGS = FormSpec(
    module_key="FSD_7_DRAWINGS",
    title="Drawings & Schedules",
    fields=[
        FieldSpec("drawings_checklist", "Drawings provided", "group", DRAWING_TYPES),
        FieldSpec("drawings_uploaded", "Drawing register", "rows",
                  columns=["name", "type", "url_or_storage_ref", "notes"]),
        FieldSpec("notes", "Notes", "textarea"),
    ],
    suggest=suggest_fsd7,
)

# --- FSD-8 --------------------------------------------------------------------


def suggest_fsd8(d: Dict[str, Any]) -> Optional[Suggestion]:
    present = d.get("smoke_control_present")
    activation_short = is_short(d.get("activation_and_controls"), 20)
    unknowns = sum([
        present == "unknown",
        d.get("system_type") == "unknown",
        d.get("design_standard_or_basis") == "unknown",
        activation_short,
    ])

    if present == "unknown":
        return Suggestion("info_gap", "Smoke control provision not confirmed")
    if present == "yes" and activation_short:
        return Suggestion("material_def", "Smoke control present but activation/control not documented")
    if unknowns >= 2:
        return Suggestion("minor_def", "Some smoke control details require clarification")
    return Suggestion("compliant", "Smoke control adequately specified")


FSD_8_SMOKE_CONTROL = FormSpec(
    module_key="FSD_8_SMOKE_CONTROL",
    title="Smoke Control",
    fields=[
        FieldSpec("smoke_control_present", "Smoke control present", "select", YES_NO_NA),
        FieldSpec("system_type", "System type", "select",
                  ["unknown", "natural", "mechanical", "pressurisation", "mixed", "other"]),
        FieldSpec("coverage_areas", "Coverage areas", "multiselect",
                  ["Stairs", "Corridors", "Lobbies", "Atrium", "Basement", "Car park", "Other"]),
        FieldSpec("coverage_areas_notes", "Coverage notes", "textarea"),
        FieldSpec("design_standard_or_basis", "Design standard / basis", "select",
                  ["unknown", "ADB", "BS9999", "BS9991", "BS7346", "BS_EN_12101", "engineered", "other"]),
        FieldSpec("activation_and_controls", "Activation & controls", "textarea"),
        FieldSpec("maintenance_testing_assumptions", "Maintenance & testing assumptions", "textarea"),
        FieldSpec("notes", "Notes", "textarea"),
    ],
    suggest=suggest_fsd8,
)

# --- FSD-9 --------------------------------------------------------------------

_FSD9_TRISTATE = [
    "fire_plan_exists",
    "hot_work_controls",
    "temporary_detection_alarm",
    "temporary_means_of_escape",
    "combustible_storage_controls",
    "site_security_arson_controls",
    "emergency_access_maintained",
]


def suggest_fsd9(d: Dict[str, Any]) -> Optional[Suggestion]:
    applicable = d.get("construction_phase_applicable")
    if applicable == "no":
        return Suggestion("compliant", "Construction phase fire safety not applicable")
    if applicable == "unknown":
        return Suggestion("info_gap", "Applicability of construction phase fire safety not confirmed")

    if d.get("fire_plan_exists") in ("no", "unknown") or d.get("temporary_means_of_escape") in ("inadequate", "unknown"):
        return Suggestion("material_def", "Critical construction phase fire safety provisions missing or unknown")

    unknowns = sum(1 for k in _FSD9_TRISTATE if d.get(k) == "unknown")
    if unknowns >= 3:
        return Suggestion("info_gap", f"{unknowns} construction phase fire safety parameters unknown")
    if unknowns >= 1:
        return Suggestion("minor_def", "Some construction phase fire safety details require clarification")
    return Suggestion("compliant", "Construction phase fire safety adequately addressed")


FSD_9_CONSTRUCTION_PHASE = FormSpec(
    module_key="FSD_9_CONSTRUCTION_PHASE",
    title="Construction Phase",
    fields=[
        FieldSpec("construction_phase_applicable", "Construction phase applicable", "select", YES_NO),
        FieldSpec("fire_plan_exists", "Construction fire plan", "select", YES_NO),
        FieldSpec("hot_work_controls", "Hot work controls", "select", YES_NO),
        FieldSpec("temporary_detection_alarm", "Temporary detection & alarm", "select", YES_NO_NA),
        FieldSpec("temporary_means_of_escape", "Temporary means of escape", "select",
                  ["unknown", "adequate", "inadequate"]),
        FieldSpec("combustible_storage_controls", "Combustible storage controls", "select", YES_NO),
        FieldSpec("site_security_arson_controls", "Site security / arson controls", "select", YES_NO),
        FieldSpec("emergency_access_maintained", "Emergency access maintained", "select", YES_NO),
        FieldSpec("notes", "Notes", "textarea"),
    ],
    suggest=suggest_fsd9,
)

FORMS = [
    FSD_1_REG_BASIS,
    FSD_2_EVAC_STRATEGY,
    FSD_3_ESCAPE_DESIGN,
    FSD_4_PASSIVE_PROTECTION,
    FSD_5_ACTIVE_SYSTEMS,
    FSD_6_FRS_ACCESS,
    FSD_7_DRAWINGS,
    FSD_8_SMOKE_CONTROL,
    FSD_9_CONSTRUCTION_PHASE,
]
