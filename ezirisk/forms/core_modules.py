# ezirisk/forms/core_modules.py
"""Common modules shared by FRA / FSD / DSEAR documents (A1 - A7)."""
from typing import Any, Dict, Optional

from ezirisk.schemas.contracts import Suggestion
from ezirisk.forms.base import (
    FieldSpec, FormSpec, YES_NO, YES_NO_NA,
    blank_or_unknown, count_unknown, count_unknown_except, is_short,
)

STANDARDS_OPTIONS = [
    "BS 9999:2017",
    "BS 9991:2015",
    "Approved Document B",
    "BS 5588 (legacy)",
    "BS 7974 (fire engineering)",
    "PD 7974",
    "NFPA 101",
    "Other",
]

A1_DOC_CONTROL = FormSpec(
    module_key="A1_DOC_CONTROL",
    title="Document Control & Governance",
    fields=[
        FieldSpec("assessment_date", "Assessment date", "text", document_field=True),
        FieldSpec("assessor_name", "Assessor name", "text", document_field=True),
        FieldSpec("assessor_role", "Assessor role", "text", document_field=True),
        FieldSpec("responsible_person", "Responsible person", "text", document_field=True),
        FieldSpec("scope_description", "Scope", "textarea", document_field=True),
        FieldSpec("limitations_assumptions", "Limitations & assumptions", "textarea", document_field=True),
        FieldSpec("standards_selected", "Standards referenced", "multiselect", STANDARDS_OPTIONS,
                  document_field=True),
        FieldSpec("revision", "Revision"),
        FieldSpec("approval_status", "Approval status", "select", ["draft", "issued", "under_review", "superseded"]),
        FieldSpec("approval_signatory", "Approval signatory"),
        FieldSpec("revision_history", "Revision history", "textarea"),
        FieldSpec("distribution_list", "Distribution list", "textarea"),
        FieldSpec("document_owner", "Document owner"),
    ],
)

# --- A2 -----------------------------------------------------------------------

COMPLEX_CONSTRAINTS = ("high-rise", "shared occupancy", "complex evacuation")


def suggest_a2(d: Dict[str, Any]) -> Optional[Suggestion]:
    unknowns = sum([
        blank_or_unknown(d.get("height_m")),
        d.get("storeys_band") == "unknown",
        blank_or_unknown(d.get("year_built")),
        d.get("construction_frame") == "unknown",
        d.get("building_use_uk") == "unknown",
    ])
    if unknowns >= 4:
        return Suggestion("info_gap", f"{unknowns} key fields unknown - significant information gaps for strategy basis")

    constraints = [str(c).lower() for c in d.get("special_constraints") or []]
    has_complex = any(c.startswith(k) for c in constraints for k in COMPLEX_CONSTRAINTS)
    if has_complex and is_short(d.get("special_constraints_other"), 20):
        return Suggestion("minor_def", "Complex constraints identified but details incomplete")

    if unknowns >= 2:
        return Suggestion("minor_def", "Some key building information gaps requiring clarification")
    return Suggestion("compliant", "Building profile sufficiently documented")


A2_BUILDING_PROFILE = FormSpec(
    module_key="A2_BUILDING_PROFILE",
    title="Building Profile",
    fields=[
        FieldSpec("building_name", "Building name"),
        FieldSpec("year_built", "Year built"),
        FieldSpec("height_m", "Height (m)", help="Height to top occupied floor; 'unknown' if not known"),
        FieldSpec("storeys_band", "Storeys", "select",
                  ["unknown", "1", "2", "3", "4", "5-6", "7-10", "11+", "custom"]),
        FieldSpec("storeys_exact", "Storeys (exact)", "number"),
        FieldSpec("floor_area_band", "Floor area (m²)", "select",
                  ["unknown", "<150", "150-300", "300-1000", "1000-5000", "5000-10000", "10000+", "custom"]),
        FieldSpec("floor_area_m2", "Floor area (exact m²)", "number"),
        FieldSpec("building_use_uk", "Primary use", "select", [
            "unknown", "hmo", "block_of_flats_purpose_built", "converted_flats", "hotel_hostel",
            "care_home", "office", "retail", "industrial_warehouse", "educational",
            "healthcare_non_residential", "assembly_leisure", "mixed_use", "other",
        ]),
        FieldSpec("building_use_other", "Primary use (other)"),
        FieldSpec("secondary_uses", "Secondary uses", "multiselect",
                  ["Ancillary office", "Storage", "Plant rooms", "Car parking", "Retail units", "Other"]),
        FieldSpec("secondary_uses_other", "Secondary uses (other)"),
        FieldSpec("construction_frame", "Construction frame", "select",
                  ["unknown", "steel", "concrete", "timber", "masonry", "mixed"]),
        FieldSpec("roof_construction_summary", "Roof construction", "textarea"),
        FieldSpec("wall_construction_summary", "External wall construction", "textarea"),
        FieldSpec("special_constraints", "Special constraints", "multiselect",
                  ["Listed building", "Heritage building", "Shared occupancy", "High-rise (≥18m)",
                   "Complex evacuation", "Other"]),
        FieldSpec("special_constraints_other", "Constraint details", "textarea"),
        FieldSpec("notes", "Notes", "textarea"),
    ],
    suggest=suggest_a2,
)

# --- A3 -----------------------------------------------------------------------


def suggest_a3(d: Dict[str, Any]) -> Optional[Suggestion]:
    if d.get("evacuation_assistance_required") == "yes" and d.get("peeps_dependency") != "yes":
        return Suggestion("material_def", "Evacuation assistance required but PEEP process not confirmed")

    unknowns = blank_or_unknown(d.get("max_occupancy")) + count_unknown(
        d, ["occupancy_profile", "evacuation_assistance_required", "peeps_dependency", "out_of_hours_occupation"])
    if unknowns >= 3:
        return Suggestion("info_gap", f"{unknowns} key fields unknown - occupancy profile incomplete")
    if unknowns >= 1:
        return Suggestion("minor_def", "Some occupancy information gaps requiring clarification")
    return Suggestion("compliant", "Occupancy profile sufficiently documented")


A3_PERSONS_AT_RISK = FormSpec(
    module_key="A3_PERSONS_AT_RISK",
    title="Occupancy & Persons at Risk",
    fields=[
        FieldSpec("max_occupancy", "Maximum occupancy"),
        FieldSpec("normal_occupancy", "Normal occupancy"),
        FieldSpec("occupancy_profile", "Occupancy profile", "select",
                  ["unknown", "office", "industrial", "public_access", "sleeping", "healthcare",
                   "education", "other"]),
        FieldSpec("vulnerable_groups", "Vulnerable groups", "multiselect",
                  ["Mobility impaired", "Visual impairment", "Hearing impairment", "Cognitive impairment",
                   "Elderly", "Children", "Visitors / Public", "Other"]),
        FieldSpec("vulnerable_groups_notes", "Vulnerable groups notes", "textarea"),
        FieldSpec("lone_working", "Lone working", "select", YES_NO),
        FieldSpec("out_of_hours_occupation", "Out-of-hours occupation", "select", YES_NO),
        FieldSpec("evacuation_assistance_required", "Evacuation assistance required", "select", YES_NO),
        FieldSpec("peeps_dependency", "PEEPs in place", "select", ["unknown", "yes", "no", "partial"]),
        FieldSpec("notes", "Notes", "textarea"),
    ],
    suggest=suggest_a3,
)

# --- A4 -----------------------------------------------------------------------


def suggest_a4(d: Dict[str, Any]) -> Optional[Suggestion]:
    unknowns = count_unknown_except(d, ["notes", "other"])
    if unknowns >= 5:
        return Suggestion("info_gap", f"{unknowns} items marked as unknown - significant information gaps identified")

    issues = []
    if d.get("fire_safety_policy_exists") == "no":
        issues.append("No fire safety policy")
    if d.get("training_induction_provided") == "no":
        issues.append("No staff induction")
    if d.get("ptw_hot_work") == "no" and d.get("contractor_supervision") == "no":
        issues.append("No hot work permit system with contractor works")
    if d.get("inspection_alarm_weekly_test") == "no":
        issues.append("Fire alarm not tested weekly")

    if len(issues) >= 2:
        return Suggestion("material_def", f"Multiple material deficiencies: {', '.join(issues)}")
    if unknowns >= 3:
        return Suggestion("minor_def", "Some information gaps remain")
    if len(issues) == 1:
        return Suggestion("minor_def", issues[0])
    return None


A4_MANAGEMENT_CONTROLS = FormSpec(
    module_key="A4_MANAGEMENT_CONTROLS",
    title="Management Systems",
    fields=[
        FieldSpec("responsibilities_defined", "Fire safety responsibilities defined", "select",
                  ["unknown", "yes", "partial", "no"]),
        FieldSpec("fire_safety_policy_exists", "Fire safety policy", "select", YES_NO),
        FieldSpec("training_induction_provided", "Staff induction training", "select", YES_NO),
        FieldSpec("training_refresher_frequency", "Refresher training", "select",
                  ["unknown", "none", "annual", "6-monthly", "other"]),
        FieldSpec("fire_warden_marshal_provision", "Fire wardens / marshals", "select",
                  ["unknown", "adequate", "inadequate"]),
        FieldSpec("contractor_induction", "Contractor induction", "select", YES_NO),
        FieldSpec("contractor_supervision", "Contractor supervision", "select", YES_NO),
        FieldSpec("ptw_hot_work", "Hot work permits", "select", YES_NO),
        FieldSpec("ptw_electrical_isolation_loto", "Electrical isolation / LOTO permits", "select", YES_NO),
        FieldSpec("ptw_confined_space", "Confined space permits", "select", YES_NO_NA),
        FieldSpec("ptw_other_permits", "Other permits"),
        FieldSpec("inspection_alarm_weekly_test", "Weekly fire alarm test", "select", YES_NO),
        FieldSpec("inspection_emergency_lighting_monthly", "Monthly emergency lighting test", "select", YES_NO),
        FieldSpec("inspection_extinguishers_annual_service", "Annual extinguisher service", "select", YES_NO),
        FieldSpec("inspection_fire_doors_frequency", "Fire door inspections", "select",
                  ["unknown", "none", "6-monthly", "annual", "other"]),
        FieldSpec("inspection_records_available", "Inspection records available", "select",
                  ["unknown", "yes", "partial", "no"]),
        FieldSpec("housekeeping_waste_control", "Waste control", "select", ["unknown", "adequate", "inadequate"]),
        FieldSpec("housekeeping_storage_control", "Storage control", "select", ["unknown", "adequate", "inadequate"]),
        FieldSpec("housekeeping_combustible_accumulation_risk", "Combustible accumulation risk", "select",
                  ["unknown", "low", "med", "high"]),
        FieldSpec("change_management_process_exists", "Change management process", "select", YES_NO),
        FieldSpec("change_management_review_triggers_defined", "Review triggers defined", "select", YES_NO),
        FieldSpec("management_notes", "Notes", "textarea"),
    ],
    suggest=suggest_a4,
)

# --- A5 -----------------------------------------------------------------------


def suggest_a5(d: Dict[str, Any]) -> Optional[Suggestion]:
    unknowns = count_unknown_except(d, ["notes", "arrangements"])
    if unknowns >= 4:
        return Suggestion("info_gap", f"{unknowns} items marked as unknown - significant information gaps")

    issues = []
    if d.get("emergency_plan_exists") == "no":
        issues.append("No emergency plan")
    if d.get("assembly_points_defined") == "no":
        issues.append("No assembly points")
    if d.get("evacuation_drills_frequency") == "none":
        issues.append("No evacuation drills")
    if d.get("peeps_in_place") == "no":
        issues.append("No PEEPs where required")

    if len(issues) >= 2:
        return Suggestion("material_def", f"Multiple material deficiencies: {', '.join(issues)}")
    if issues or unknowns >= 2:
        return Suggestion("minor_def", issues[0] if issues else "Some information gaps remain")
    return None


A5_EMERGENCY_ARRANGEMENTS = FormSpec(
    module_key="A5_EMERGENCY_ARRANGEMENTS",
    title="Emergency Arrangements",
    fields=[
        FieldSpec("emergency_plan_exists", "Emergency plan", "select", YES_NO),
        FieldSpec("alarm_raising_procedure_defined", "Alarm raising procedure", "select", YES_NO),
        FieldSpec("calling_fire_service_procedure", "Calling the fire service", "select", YES_NO),
        FieldSpec("assembly_points_defined", "Assembly points defined", "select", YES_NO),
        FieldSpec("evacuation_drills_frequency", "Evacuation drills", "select",
                  ["unknown", "none", "annual", "6-monthly", "quarterly"]),
        FieldSpec("fire_wardens_present", "Fire wardens present", "select", YES_NO),
        FieldSpec("peeps_in_place", "PEEPs in place", "select", YES_NO_NA),
        FieldSpec("emergency_services_access_info_available", "Fire service information available", "select", YES_NO),
        FieldSpec("utilities_isolation_known", "Utilities isolation known", "select", YES_NO),
        FieldSpec("out_of_hours_arrangements", "Out-of-hours arrangements", "textarea"),
        FieldSpec("notes", "Notes", "textarea"),
    ],
    suggest=suggest_a5,
)

# --- A7 -----------------------------------------------------------------------

REVIEW_ITEMS = {
    "peerReview": "Peer review completed?",
    "siteInspection": "Site inspection completed?",
    "photos": "Photos taken?",
    "alarmEvidence": "Fire alarm test evidence reviewed?",
    "elEvidence": "Emergency lighting test evidence reviewed?",
    "drillEvidence": "Evacuation drill evidence reviewed?",
    "maintenanceLogs": "Maintenance logs reviewed?",
    "rpInterview": "Responsible person interview completed?",
}


def suggest_a7(d: Dict[str, Any]) -> Optional[Suggestion]:
    answers = list((d.get("review") or {}).values())
    yes, no = answers.count("yes"), answers.count("no")
    if no >= 4:
        return Suggestion("material_def", "Multiple review/assurance activities not completed")
    if no >= 2:
        return Suggestion("minor_def", "Some review/assurance activities incomplete")
    if yes >= 6:
        return Suggestion("compliant", "Comprehensive review and assurance activities completed")
    return Suggestion("info_gap", "Review and assurance status unclear")


A7_REVIEW_ASSURANCE = FormSpec(
    module_key="A7_REVIEW_ASSURANCE",
    title="Review & Assurance",
    fields=[
        FieldSpec("review", "Review checklist", "group", list(REVIEW_ITEMS),
                  choices=["yes", "no", "na"], option_labels=REVIEW_ITEMS),
        FieldSpec("assumptionsLimitations", "Assumptions & limitations", "textarea"),
        FieldSpec("commentary", "Commentary", "textarea"),
    ],
    suggest=suggest_a7,
)

FORMS = [
    A1_DOC_CONTROL,
    A2_BUILDING_PROFILE,
    A3_PERSONS_AT_RISK,
    A4_MANAGEMENT_CONTROLS,
    A5_EMERGENCY_ARRANGEMENTS,
    A7_REVIEW_ASSURANCE,
]
