# ezirisk/forms/re_modules.py
"""
Risk engineering rating modules. These do not suggest a compliance outcome;
the suggestion panel shows the computed 1-5 rating instead.
"""
import logging
from typing import Any, Dict, List, Optional

from ezirisk.schemas.contracts import Suggestion
from ezirisk.forms.base import FieldSpec, FormSpec, text
from ezirisk.re.grading import calculate_overall_grade, risk_band_from_grade
from ezirisk.re.scoring import (
    compute_construction_rating_from_re02, compute_site_fire_protection_score,
    js_round, rating_label, update_section_grade,
)
from ezirisk.re.recommendations import (
    ensure_auto_recommendation, ensure_reference_numbers, sort_by_reference, survey_year,
)
from ezirisk.utils.jsonsafe import utc_now_iso

logger = logging.getLogger(__name__)


def _num(v: Any) -> Optional[float]:
    if v in (None, ""):
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


def _rating(v: Any) -> Optional[int]:
    n = _num(v)
    return int(n) if n and 1 <= n <= 5 else None


def _rated(label: str, rating: int, details: str = "") -> Suggestion:
    reason = f"{label} rating {rating}/5 ({rating_label(rating)})"
    return Suggestion(None, f"{reason} - {details}" if details else reason)


def _grade_on_save(section_key: str, rating_of):
    def prepare(store, instance: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
        rating = rating_of(data)
        if rating is not None:
            update_section_grade(store, instance["document_id"], section_key, rating)
        return data
    return prepare


# --- RE-02 construction -------------------------------------------------------

FRAME_TYPES = ["steel", "protected_steel", "timber", "reinforced_concrete", "masonry", "other"]


def suggest_re02(d: Dict[str, Any]) -> Optional[Suggestion]:
    result = compute_construction_rating_from_re02(d)
    return _rated("Construction", result.rating, result.details)


RE_02_CONSTRUCTION = FormSpec(
    module_key="RE_02_CONSTRUCTION",
    title="Construction",
    fields=[
        FieldSpec("buildings", "Buildings", "rows",
                  columns=["name", "frame_type", "roof_ceiling_combustibility", "wall_combustibility",
                           "area_weighted_combustible_percent", "floor_area_sqm"],
                  help="frame_type: " + " / ".join(FRAME_TYPES)),
        FieldSpec("site_rating_1_5", "Site construction rating (1-5)", "number"),
        FieldSpec("site_rating_notes", "Rating notes", "textarea"),
    ],
    suggest=suggest_re02,
    prepare_save=_grade_on_save("construction", lambda d: _rating(d.get("site_rating_1_5"))),
)

# --- RE-06 fire protection ----------------------------------------------------


def fire_protection_inputs(d: Dict[str, Any]):
    """Flat building rows -> (buildings by id, site, building metadata) for the site score."""
    buildings: Dict[str, Dict[str, Any]] = {}
    meta: List[Dict[str, Any]] = []
    for i, row in enumerate(r for r in d.get("buildings") or [] if isinstance(r, dict)):
        bid = text(row.get("building_id")) or f"building-{i + 1}"
        buildings[bid] = {
            "suppression": {
                "sprinklers": {"rating": _rating(row.get("sprinkler_rating"))},
                "water_mist": {"rating": _rating(row.get("water_mist_rating"))},
            },
            "detection_alarm": {"rating": _rating(row.get("detection_rating"))},
        }
        meta.append({"id": bid, "floor_area_sqm": _num(row.get("floor_area_sqm"))})
    site = {"water_supply_reliability": d.get("water_supply_reliability") or "unknown"}
    return buildings, site, meta


def site_fire_protection_rating(d: Dict[str, Any]) -> Optional[int]:
    return compute_site_fire_protection_score(*fire_protection_inputs(d))


def suggest_re06(d: Dict[str, Any]) -> Optional[Suggestion]:
    score = site_fire_protection_rating(d)
    if score is None:
        return None
    capped = {"unknown": "capped at 4 - water supply reliability unknown",
              "unreliable": "capped at 3 - water supply unreliable"}
    return _rated("Fire protection", score, capped.get(d.get("water_supply_reliability") or "unknown", ""))


RE_06_FIRE_PROTECTION = FormSpec(
    module_key="RE_06_FIRE_PROTECTION",
    title="Fire Protection",
    fields=[
        FieldSpec("buildings", "Building fire protection", "rows",
                  columns=["building_id", "floor_area_sqm", "sprinkler_rating", "water_mist_rating",
                           "detection_rating"]),
        FieldSpec("water_supply_reliability", "Water supply reliability", "select",
                  ["unknown", "reliable", "unreliable"]),
        FieldSpec("water_supply_notes", "Water supply notes", "textarea"),
    ],
    suggest=suggest_re06,
    prepare_save=_grade_on_save("fire_protection", site_fire_protection_rating),
)

# --- RE-09 management ---------------------------------------------------------

MANAGEMENT_CATEGORIES = {
    "housekeeping": "Housekeeping",
    "hot_work": "Hot Work Controls",
    "impairment_management": "Impairment Management",
    "contractor_control": "Contractor Control",
    "maintenance": "Maintenance Programs",
    "emergency_planning": "Emergency Planning",
    "change_management": "Change Management",
}
RATING_CHOICES = ["", "1", "2", "3", "4", "5"]


def management_rating(d: Dict[str, Any]) -> Optional[int]:
    """Assessor's site rating, else the rounded mean of the rated categories."""
    site = _rating(d.get("site_rating_1_5"))
    if site is not None:
        return site
    rated = [r for r in (_rating(v) for v in (d.get("categories") or {}).values()) if r is not None]
    if not rated:
        return None
    return js_round(sum(rated) / len(rated))


def suggest_re09(d: Dict[str, Any]) -> Optional[Suggestion]:
    rating = management_rating(d)
    if rating is None:
        return None
    poor = [MANAGEMENT_CATEGORIES.get(k, k) for k, v in (d.get("categories") or {}).items()
            if (_rating(v) or 5) <= 2]
    return _rated("Management systems", rating, ("Weak: " + ", ".join(poor)) if poor else "")


def prepare_re09(store, instance: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
    """Grades the management section and keeps RE-13 auto recommendations in step with category ratings."""
    data = _grade_on_save("management", management_rating)(store, instance, data)
    rows = store.select("module_instances", document_id=instance["document_id"],
                        module_key="RE_13_RECOMMENDATIONS")
    if not rows:
        return data
    re13 = rows[0]
    current = dict(re13.get("data") or {})
    updated = current
    for key, value in (data.get("categories") or {}).items():
        updated = ensure_auto_recommendation(updated, key, _rating(value) or 5)
    if updated == current:
        return data

    doc = store.get_row("documents", instance["document_id"]) or {}
    year = survey_year(doc.get("assessment_date"), doc.get("issue_date"))
    updated["recommendations"] = ensure_reference_numbers(updated.get("recommendations") or [], year)
    store.update("module_instances", re13["id"], {"data": updated, "updated_at": utc_now_iso()})
    logger.info("Synced RE-13 auto recommendations for document %s", instance["document_id"])
    return data


RE_09_MANAGEMENT = FormSpec(
    module_key="RE_09_MANAGEMENT",
    title="Management Systems",
    fields=[
        FieldSpec("categories", "Category ratings (1-5)", "group", options=list(MANAGEMENT_CATEGORIES),
                  choices=RATING_CHOICES, option_labels=MANAGEMENT_CATEGORIES,
                  default={k: "" for k in MANAGEMENT_CATEGORIES}),
        FieldSpec("site_rating_1_5", "Overall management systems rating (1-5)", "number"),
        FieldSpec("site_rating_notes", "Rating notes", "textarea"),
    ],
    suggest=suggest_re09,
    prepare_save=prepare_re09,
)

# --- RE-13 recommendations (derived) ------------------------------------------


def derive_re13(store, instance: Dict[str, Any], data: Dict[str, Any]) -> Optional[Suggestion]:
    doc = store.get_row("documents", instance["document_id"]) or {}
    grades = doc.get("section_grades") or {}
    overall = calculate_overall_grade(grades)
    band = risk_band_from_grade(overall)
    return Suggestion(None, f"Overall grade {overall:.1f} ({band} risk) from {len(grades)} section grade(s)")


def prepare_re13(store, instance: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
    return {**data, "recommendations": sort_by_reference(data.get("recommendations") or [])}


RE_13_RECOMMENDATIONS = FormSpec(
    module_key="RE_13_RECOMMENDATIONS",
    title="Recommendations",
    fields=[
        FieldSpec("numbering_prefix", "Numbering prefix"),
        FieldSpec("numbering_includes_year_month", "Include year in reference numbers", "flag", default=True),
        FieldSpec("max_images_per_recommendation", "Max images per recommendation", "number", default=3),
        FieldSpec("recommendations", "Recommendations", "rows",
                  columns=["ref_number", "canonical_key", "priority", "text", "createdBy"]),
    ],
    derive=derive_re13,
    prepare_save=prepare_re13,
)

FORMS = [RE_02_CONSTRUCTION, RE_06_FIRE_PROTECTION, RE_09_MANAGEMENT, RE_13_RECOMMENDATIONS]
