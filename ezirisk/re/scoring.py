# ezirisk/re/scoring.py
"""
Risk engineering ratings (1-5 scale, 5 best) for construction and fire protection.

Construction rating lookup order for a document:
  1. documents.section_grades.construction
  2. computed from the RE_02_CONSTRUCTION module (worst building)
  3. default 3 (Adequate)
"""
from __future__ import annotations
import logging
import math
from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, List, Optional

from ezirisk.storage.errors import RecordNotFound
from ezirisk.utils.jsonsafe import utc_now_iso

logger = logging.getLogger(__name__)

DEFAULT_RATING = 3

RATING_LABELS = {5: "Excellent", 4: "Good", 3: "Average", 2: "Below Average", 1: "Poor"}


def js_round(x: float) -> int:
    """Half-up rounding (0.5 -> 1, 2.5 -> 3)."""
    return int(math.floor(x + 0.5))


def clamp(lo: float, hi: float, value: float) -> float:
    return max(lo, min(hi, value))


def _num(v: Any) -> Optional[float]:
    if v in (None, ""):
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


def rating_label(rating: Optional[int]) -> str:
    return RATING_LABELS.get(rating, "Unknown")


@dataclass
class ConstructionRating:
    rating: int
    source: str          # section_grade | computed | default
    details: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# --- construction (RE-02) -----------------------------------------------------

def compute_building_construction_rating(building: Dict[str, Any]) -> int:
    rating = 3.0

    frame = (building.get("frame_type") or "").lower()
    if "steel" in frame or "concrete" in frame or "reinforced" in frame:
        rating += 1
    elif "timber" in frame or "wood" in frame:
        rating -= 2

    roof = (building.get("roof_ceiling_combustibility") or "").lower()
    if "non-combustible" in roof or "concrete" in roof or "metal" in roof:
        rating += 0.5
    elif "combustible" in roof or "timber" in roof or "wood" in roof:
        rating -= 1.5

    wall = (building.get("wall_combustibility") or "").lower()
    if "non-combustible" in wall or "brick" in wall or "concrete" in wall:
        rating += 0.5
    elif "combustible" in wall or "metal clad" in wall:
        rating -= 0.5

    weighted = _num(building.get("area_weighted_combustible_percent"))
    if weighted is not None:
        if weighted < 10:
            rating += 1
        elif weighted < 25:
            rating += 0.5
        elif weighted > 50:
            rating -= 1

    return int(clamp(1, 5, js_round(rating)))


def _site_rating(data: Dict[str, Any]) -> Optional[int]:
    ratings = data.get("ratings") or {}
    value = _num(ratings.get("site_rating_1_5") or data.get("site_rating_1_5"))
    if value is None or not 1 <= value <= 5:
        return None
    return int(value)


def compute_construction_rating_from_re02(data: Dict[str, Any]) -> ConstructionRating:
    site = _site_rating(data)
    if site:
        return ConstructionRating(site, "computed", "From RE-02 site rating")

    buildings = [b for b in data.get("buildings") or [] if isinstance(b, dict)]
    if not buildings:
        return ConstructionRating(DEFAULT_RATING, "computed", "No buildings defined - default to 3")

    worst = min(compute_building_construction_rating(b) for b in buildings)
    return ConstructionRating(worst, "computed",
                              f"Computed from {len(buildings)} building(s), worst case: {worst}")


def _re02_data(store, document_id: str) -> Optional[Dict[str, Any]]:
    rows = store.select("module_instances", document_id=document_id, module_key="RE_02_CONSTRUCTION")
    return rows[0].get("data") if rows else None


def get_construction_rating(store, document_id: str) -> ConstructionRating:
    doc = store.get_row("documents", document_id) or {}
    graded = (doc.get("section_grades") or {}).get("construction")
    if graded:
        return ConstructionRating(int(graded), "section_grade", "From documents.section_grades.construction")

    data = _re02_data(store, document_id)
    if data:
        return compute_construction_rating_from_re02(data)

    return ConstructionRating(DEFAULT_RATING, "default",
                              "No construction data available - defaulting to 3 (Adequate)")


def update_section_grade(store, document_id: str, section_key: str, value: int) -> Dict[str, Any]:
    doc = store.get_row("documents", document_id)
    if doc is None:
        raise RecordNotFound("documents", document_id)
    grades = {**(doc.get("section_grades") or {}), section_key: value}
    logger.info("Section grade %s=%s for document %s", section_key, value, document_id)
    return store.update("documents", document_id, {"section_grades": grades, "updated_at": utc_now_iso()})


def sync_construction_grade(store, document_id: str) -> Optional[int]:
    """Writes the computed construction rating into section_grades unless one is already set."""
    result = get_construction_rating(store, document_id)
    if result.source == "section_grade":
        return None
    update_section_grade(store, document_id, "construction", result.rating)
    return result.rating


# --- combustibility -----------------------------------------------------------

def _pct(d: Dict[str, Any], key: str) -> float:
    return _num(d.get(key)) or 0.0


def calculate_building_combustibility(building: Dict[str, Any]) -> int:
    """Percentage (0-100). Roof combustibility dominates when present."""
    construction = building.get("construction") or {}
    walls = construction.get("walls") or {}
    roof = construction.get("roof_ceiling") or {}

    roof_combustible = _pct(roof, "foam_plastic_unapproved_pct") + _pct(roof, "other_combustible_pct")
    roof_transitional = _pct(roof, "foam_plastic_approved_pct")
    wall_combustible = _pct(walls, "foam_plastic_unapproved_pct") + _pct(walls, "other_combustible_pct")
    wall_transitional = _pct(walls, "foam_plastic_approved_pct")

    if roof_combustible > 0 or roof_transitional > 0:
        raw = roof_combustible * 1.0 + roof_transitional * 0.5 + wall_combustible * 0.4 + wall_transitional * 0.2
    else:
        raw = wall_combustible * 0.6 + wall_transitional * 0.3

    return 100 if raw > 100 else js_round(raw)


def _float_or_zero(v: Any) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        return 0.0


def calculate_site_combustibility(buildings: Iterable[Dict[str, Any]]) -> int:
    """Floor-area weighted average; buildings without an area are ignored."""
    weighted = 0.0
    total_area = 0.0
    for b in buildings:
        area = _float_or_zero(b.get("floor_area_sqm"))
        if area > 0:
            weighted += calculate_building_combustibility(b) * area
            total_area += area
    if total_area == 0:
        return 0
    return js_round(weighted / total_area)


# --- fire protection (RE-06) --------------------------------------------------

def compute_building_fire_protection_score(building_fp: Optional[Dict[str, Any]]) -> Optional[int]:
    """Suppression 70% / detection 30% when both are rated; None when neither is."""
    if not building_fp:
        return None

    suppression = building_fp.get("suppression") or {}
    supp = ((suppression.get("sprinklers") or {}).get("rating")
            or (suppression.get("water_mist") or {}).get("rating")
            or None)
    det = (building_fp.get("detection_alarm") or {}).get("rating")

    if supp is not None and det is not None:
        raw = 0.7 * float(supp) + 0.3 * float(det)
    elif supp is not None:
        raw = float(supp)
    elif det is not None:
        raw = float(det)
    else:
        return None
    return int(clamp(1, 5, js_round(raw)))


WATER_SUPPLY_CAP = {"unknown": 4, "unreliable": 3}


def compute_site_fire_protection_score(buildings: Optional[Dict[str, Dict[str, Any]]],
                                       site: Optional[Dict[str, Any]] = None,
                                       buildings_meta: Optional[List[Dict[str, Any]]] = None) -> Optional[int]:
    """Floor-area weighted average of building scores, capped by water supply reliability."""
    if not buildings:
        return None

    meta_by_id = {m.get("id"): m for m in buildings_meta or []}
    scores = []
    for building_id, fp in buildings.items():
        score = compute_building_fire_protection_score(fp)
        if score is None:
            continue
        meta = meta_by_id.get(building_id) or {}
        area = meta.get("floor_area_sqm") or meta.get("footprint_m2")
        weight = float(area) if area and float(area) > 0 else 1.0
        scores.append((score, weight))

    if not scores:
        return None

    total = sum(w for _, w in scores)
    site_score = int(clamp(1, 5, js_round(sum(s * w for s, w in scores) / total)))

    reliability = (site or {}).get("water_supply_reliability") or "unknown"
    cap = WATER_SUPPLY_CAP.get(reliability)
    if cap is not None:
        site_score = min(site_score, cap)
    return site_score


# --- building quick flags -----------------------------------------------------

def compute_building(building: Dict[str, Any]) -> Dict[str, Any]:
    """Deterministic flags plus placeholder RE-02 / RE-06 scores (3, nudged to 4/5 on big issues)."""
    construction_flags: List[str] = []
    protection_flags: List[str] = []

    has_cladding = bool(building.get("cladding_present") and building.get("cladding_combustible") is True)
    if has_cladding:
        construction_flags.append("Combustible external wall / cladding present")
    if building.get("frame_type") == "steel" and building.get("frame_fire_protection") == "none":
        construction_flags.append("Steel frame appears unprotected")

    sprinklers = building.get("sprinklers_present")
    detection = building.get("detection_present")
    if sprinklers is False:
        protection_flags.append("No sprinkler protection")
    elif building.get("sprinkler_coverage") != "full":
        protection_flags.append("Sprinkler coverage is not full")
    if detection is False:
        protection_flags.append("No automatic fire detection")

    re02 = 4 if has_cladding or len(construction_flags) >= 2 else 3
    re06 = 3
    if sprinklers is False:
        re06 = 5 if detection is False else 4

    return {
        "has_combustible_cladding": has_cladding,
        "construction_flags": construction_flags,
        "protection_flags": protection_flags,
        "re02_construction_score": re02,
        "re06_protection_score": re06,
    }
