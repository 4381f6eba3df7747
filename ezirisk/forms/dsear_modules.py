# ezirisk/forms/dsear_modules.py
"""DSEAR modules: substances, releases, zoning, ignition, protection, risk table, controls, emergency."""
from typing import Any, Dict, List, Optional

from ezirisk.schemas.contracts import DSEAR_OUTCOMES, Suggestion
from ezirisk.forms.base import FieldSpec, FormSpec, text

BLANK_YES_NO = ["", "yes", "no", "unknown"]
BLANK_YES_NO_NA = ["", "yes", "no", "unknown", "na"]


def _rows(d: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    return [r for r in d.get(key) or [] if isinstance(r, dict)]


def _dsear_form(module_key: str, title: str, fields, suggest) -> FormSpec:
    return FormSpec(module_key=module_key, title=title, fields=fields, suggest=suggest,
                    outcomes=list(DSEAR_OUTCOMES))


# --- DSEAR-1 ------------------------------------------------------------------

SUBSTANCE_COLUMNS = ["name", "physical_state", "SDS_available", "flash_point", "LFL_UFL",
                     "auto_ignition_temp", "dust_params", "quantity", "storage_location"]
PHYSICAL_STATES = ["", "gas", "vapour", "liquid", "dust", "mist"]


def suggest_dsear1(d: Dict[str, Any]) -> Optional[Suggestion]:
    named = [s for s in _rows(d, "substances") if text(s.get("name"))]
    unknown = sum(1 for s in named
                  if "unknown" in (s.get("SDS_available"), s.get("flash_point"), s.get("LFL_UFL")))
    if unknown >= 2:
        return Suggestion("info_gap", f"{unknown} substances have unknown safety data")
    if any(s.get("physical_state") and s.get("SDS_available") != "no" for s in named):
        return Suggestion("material_def", "Flammable or explosive substances present")
    return Suggestion("compliant", "No dangerous substances requiring further control identified")


DSEAR_1_DANGEROUS_SUBSTANCES = _dsear_form(
    "DSEAR_1_DANGEROUS_SUBSTANCES", "Dangerous Substances Register",
    [FieldSpec("substances", "Substances", "rows", columns=SUBSTANCE_COLUMNS)],
    suggest_dsear1,
)

# --- DSEAR-2 ------------------------------------------------------------------


def suggest_dsear2(d: Dict[str, Any]) -> Optional[Suggestion]:
    processes = _rows(d, "process_descriptions")
    if any(text(p.get("activity")) and "unknown" in (p.get("grade_of_release"), p.get("ventilation_type"))
           for p in processes):
        return Suggestion("info_gap", "Grade of release or ventilation unknown for one or more activities")
    if any(p.get("grade_of_release") == "continuous" for p in processes):
        return Suggestion("material_def", "Continuous grade of release identified")
    return Suggestion("compliant", "Process releases adequately characterised")


DSEAR_2_PROCESS_RELEASES = _dsear_form(
    "DSEAR_2_PROCESS_RELEASES", "Process & Release Assessment",
    [FieldSpec("process_descriptions", "Processes", "rows",
               columns=["activity", "normal_operation", "abnormal_operation", "release_sources",
                        "grade_of_release", "ventilation_type"],
               help="grade_of_release: continuous / primary / secondary / unknown; "
                    "ventilation_type: natural / mechanical / none / unknown")],
    suggest_dsear2,
)

# --- DSEAR-3 ------------------------------------------------------------------

ZONE_TYPES = ["", "0", "1", "2", "20", "21", "22"]


def suggest_dsear3(d: Dict[str, Any]) -> Optional[Suggestion]:
    zones = _rows(d, "zones")
    has_zones = any(text(z.get("zone_type")) for z in zones)
    if has_zones and not text(d.get("drawings_reference")):
        return Suggestion("info_gap", "Zones identified but no hazardous area drawings referenced")
    if any(str(z.get("zone_type")) in ("0", "20") for z in zones):
        return Suggestion("material_def", "Zone 0 or Zone 20 areas present")
    if has_zones:
        return Suggestion("acceptable", "Hazardous areas classified and documented")
    return Suggestion("compliant", "No zoned areas identified")


DSEAR_3_HAZARDOUS_AREA_CLASSIFICATION = _dsear_form(
    "DSEAR_3_HAZARDOUS_AREA_CLASSIFICATION", "Hazardous Area Classification",
    [
        FieldSpec("zones", "Zones", "rows",
                  columns=["zone_type", "extent_description", "basis_of_classification",
                           "dependent_on_housekeeping"]),
        FieldSpec("drawings_reference", "Hazardous area drawings reference"),
    ],
    suggest_dsear3,
)

# --- DSEAR-4 ------------------------------------------------------------------


def suggest_dsear4(d: Dict[str, Any]) -> Optional[Suggestion]:
    required = d.get("ATEX_equipment_required")
    if required == "yes" and d.get("ATEX_equipment_present") != "yes":
        return Suggestion("material_def", "ATEX equipment required but not confirmed in place")
    if required == "unknown" or d.get("static_control_measures") == "unknown":
        return Suggestion("info_gap", "ATEX requirement or static controls unknown")
    return Suggestion("compliant", "Ignition sources controlled")


DSEAR_4_IGNITION_SOURCES = _dsear_form(
    "DSEAR_4_IGNITION_SOURCES", "Ignition Source Control",
    [
        FieldSpec("ignition_sources_assessed", "Ignition sources assessed", "multiselect",
                  ["electrical", "static", "hot_work", "mechanical", "other"]),
        FieldSpec("ATEX_equipment_required", "ATEX equipment required", "select", BLANK_YES_NO),
        FieldSpec("ATEX_equipment_present", "ATEX equipment present", "select", ["", "yes", "no", "partial", "unknown"]),
        FieldSpec("static_control_measures", "Static control measures", "textarea"),
        FieldSpec("hot_work_controls", "Hot work controls", "select", BLANK_YES_NO),
        FieldSpec("inspection_testing_regime", "Inspection & testing regime", "textarea"),
    ],
    suggest_dsear4,
)

# --- DSEAR-5 ------------------------------------------------------------------

_MITIGATION = ("explosion_venting", "suppression_systems", "explosion_isolation")


def suggest_dsear5(d: Dict[str, Any]) -> Optional[Suggestion]:
    answers = [d.get(k) for k in _MITIGATION]
    if "unknown" in answers:
        return Suggestion("info_gap", "Explosion protection provision unknown")
    if "yes" in answers:
        return Suggestion("compliant", "Explosion mitigation measures in place")
    return Suggestion("acceptable", "Protection relies on prevention without active mitigation")


DSEAR_5_EXPLOSION_PROTECTION = _dsear_form(
    "DSEAR_5_EXPLOSION_PROTECTION", "Explosion Protection & Mitigation",
    [
        FieldSpec("prevention_measures", "Prevention measures", "textarea"),
        FieldSpec("explosion_venting", "Explosion venting", "select", BLANK_YES_NO_NA),
        FieldSpec("suppression_systems", "Suppression systems", "select", BLANK_YES_NO_NA),
        FieldSpec("explosion_isolation", "Explosion isolation", "select", BLANK_YES_NO_NA),
        FieldSpec("segregation_distance_controls", "Segregation / distance controls", "textarea"),
    ],
    suggest_dsear5,
)

# --- DSEAR-6 ------------------------------------------------------------------


def suggest_dsear6(d: Dict[str, Any]) -> Optional[Suggestion]:
    rows = [r for r in _rows(d, "risk_rows") if text(r.get("activity"))]
    if any(r.get("residual_risk") == "high" for r in rows):
        return Suggestion("material_def", "High residual explosion risk remains")
    if any(r.get("residual_risk") == "medium" for r in rows):
        return Suggestion("acceptable", "Residual risk medium - tolerable with controls maintained")
    return Suggestion("compliant", "Residual risks low")


DSEAR_6_RISK_ASSESSMENT = _dsear_form(
    "DSEAR_6_RISK_ASSESSMENT", "Risk Assessment Table",
    [FieldSpec("risk_rows", "Risk assessment", "rows",
               columns=["activity", "hazard", "persons_at_risk", "existing_controls", "likelihood",
                        "severity", "additional_controls", "residual_risk"])],
    suggest_dsear6,
)

# --- DSEAR-10 -----------------------------------------------------------------


def suggest_dsear10(d: Dict[str, Any]) -> Optional[Suggestion]:
    if d.get("substitution_considered") == "unknown":
        return Suggestion("info_gap", "Substitution not yet considered")
    if d.get("elimination_possible") == "yes" and not text(d.get("justification_for_retained_risk")):
        return Suggestion("material_def", "Elimination possible but retained risk not justified")
    return Suggestion("compliant", "Hierarchy of control applied")


DSEAR_10_HIERARCHY_OF_CONTROL = _dsear_form(
    "DSEAR_10_HIERARCHY_OF_CONTROL", "Hierarchy of Control",
    [
        FieldSpec("substitution_considered", "Substitution considered", "select", BLANK_YES_NO),
        FieldSpec("elimination_possible", "Elimination possible", "select", BLANK_YES_NO),
        FieldSpec("engineering_controls", "Engineering controls", "textarea"),
        FieldSpec("administrative_controls", "Administrative controls", "textarea"),
        FieldSpec("PPE_controls", "PPE", "textarea"),
        FieldSpec("justification_for_retained_risk", "Justification for retained risk", "textarea"),
    ],
    suggest_dsear10,
)

# --- DSEAR-11 -----------------------------------------------------------------


def suggest_dsear11(d: Dict[str, Any]) -> Optional[Suggestion]:
    answers = (d.get("emergency_shutdown_procedures"), d.get("drills_and_training"))
    if "unknown" in answers:
        return Suggestion("info_gap", "Shutdown procedures or drills unknown")
    if "no" in answers:
        return Suggestion("material_def", "No emergency shutdown procedures or drills")
    return Suggestion("compliant", "Explosion emergency response arrangements in place")


DSEAR_11_EXPLOSION_EMERGENCY_RESPONSE = _dsear_form(
    "DSEAR_11_EXPLOSION_EMERGENCY_RESPONSE", "Explosion Emergency Response",
    [
        FieldSpec("explosion_scenarios_considered", "Explosion scenarios considered", "textarea"),
        FieldSpec("emergency_shutdown_procedures", "Emergency shutdown procedures", "select", BLANK_YES_NO),
        FieldSpec("isolation_arrangements", "Isolation arrangements", "textarea"),
        FieldSpec("emergency_services_information", "Emergency services information", "select", BLANK_YES_NO),
        FieldSpec("drills_and_training", "Drills & training", "select", BLANK_YES_NO),
    ],
    suggest_dsear11,
)

FORMS = [
    DSEAR_1_DANGEROUS_SUBSTANCES,
    DSEAR_2_PROCESS_RELEASES,
    DSEAR_3_HAZARDOUS_AREA_CLASSIFICATION,
    DSEAR_4_IGNITION_SOURCES,
    DSEAR_5_EXPLOSION_PROTECTION,
    DSEAR_6_RISK_ASSESSMENT,
    DSEAR_10_HIERARCHY_OF_CONTROL,
    DSEAR_11_EXPLOSION_EMERGENCY_RESPONSE,
]
