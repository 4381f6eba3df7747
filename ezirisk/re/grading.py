# ezirisk/re/grading.py
"""Overall site grade, sector-weighted risk score and recommendation priorities."""
from __future__ import annotations
import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

from ezirisk.re.scoring import js_round

logger = logging.getLogger(__name__)

DEFAULT_SECTOR = "General Industrial"


@dataclass
class SectorProfile:
    name: str
    weights: Dict[str, float]    # construction, protection, detection, management, hazards, bi
    description: str
    emphasis: List[str]


def _weights(construction, protection, detection, management, hazards, bi) -> Dict[str, float]:
    return {
        "construction": construction,
        "protection": protection,
        "detection": detection,
        "management": management,
        "hazards": hazards,
        "bi": bi,
    }


SECTOR_PROFILES: Dict[str, SectorProfile] = {
    "Food & Beverage": SectorProfile(
        "Food & Beverage", _weights(0.35, 0.30, 0.15, 0.10, 0.05, 0.05),
        "Food processing and storage occupancies are historically associated with severe fire losses driven "
        "by combustible construction, insulated panels, ceiling void fire spread, and smoke contamination. "
        "As such, construction materials and fire protection coverage are weighted more heavily in the "
        "overall risk score.",
        ["Construction & Combustibility (High)", "Fire Protection (High)", "Detection Systems (Medium)"],
    ),
    "Foundry / Metal": SectorProfile(
        "Foundry / Metal", _weights(0.15, 0.20, 0.15, 0.25, 0.15, 0.10),
        "Foundry operations are typically characterised by non-combustible construction but elevated "
        "process hazards, including molten metal, high-energy equipment, and dependency on critical plant. "
        "Management systems and special hazards therefore carry increased weighting.",
        ["Management Systems (High)", "Fire Protection (Medium)", "Special Hazards (Medium)"],
    ),
    "Chemical / ATEX": SectorProfile(
        "Chemical / ATEX", _weights(0.15, 0.25, 0.15, 0.20, 0.20, 0.05),
        "Chemical manufacturing and ATEX-classified environments present elevated risks from flammable "
        "materials, explosive atmospheres, and reactive processes. Fire protection systems, management "
        "controls, and special hazard management are prioritised in the risk assessment.",
        ["Fire Protection (High)", "Special Hazards (High)", "Management Systems (High)"],
    ),
    "Logistics / Warehouse": SectorProfile(
        "Logistics / Warehouse", _weights(0.30, 0.35, 0.15, 0.10, 0.05, 0.05),
        "Warehousing and logistics operations typically involve high-piled storage in large open spaces, "
        "making fire protection coverage and building construction critical factors. These elements are "
        "weighted most heavily in the risk score.",
        ["Fire Protection (Very High)", "Construction & Combustibility (High)", "Detection Systems (Medium)"],
    ),
    "Office / Commercial": SectorProfile(
        "Office / Commercial", _weights(0.20, 0.20, 0.20, 0.15, 0.05, 0.20),
        "Office and commercial occupancies generally present lower fire risks but may have significant "
        "business interruption exposure. The risk assessment provides balanced weighting across protection "
        "systems with emphasis on business continuity.",
        ["Business Interruption (High)", "Detection Systems (Medium)", "Fire Protection (Medium)"],
    ),
    "General Industrial": SectorProfile(
        "General Industrial", _weights(0.25, 0.25, 0.15, 0.15, 0.10, 0.10),
        "General industrial occupancies employ balanced weighting across all risk factors, reflecting "
        "typical manufacturing environments without specific elevated hazards.",
        ["Construction & Combustibility (Medium)", "Fire Protection (Medium)", "Management Systems (Medium)"],
    ),
    "Other": SectorProfile(
        "Other", _weights(0.25, 0.25, 0.15, 0.15, 0.10, 0.10),
        "Default weighting profile applies balanced emphasis across all risk factors.",
        ["Construction & Combustibility (Medium)", "Fire Protection (Medium)", "All other factors equally weighted"],
    ),
}

AVAILABLE_SECTORS = list(SECTOR_PROFILES)


def get_sector_weights(industry_sector: Optional[str]) -> Dict[str, float]:
    profile = SECTOR_PROFILES.get(industry_sector or "")
    if profile is None:
        logger.warning('Unknown sector: "%s", falling back to "%s"', industry_sector, DEFAULT_SECTOR)
        return dict(SECTOR_PROFILES[DEFAULT_SECTOR].weights)
    return dict(profile.weights)


# --- section grades (1-5) -----------------------------------------------------

def calculate_overall_grade(section_grades: Dict[str, Any]) -> float:
    """Mean of the positive grades; 3 (Adequate) when none are set."""
    grades = [float(g) for g in (section_grades or {}).values() if g is not None and float(g) > 0]
    if not grades:
        return 3.0
    return sum(grades) / len(grades)


def risk_band_from_grade(overall_grade: float) -> str:
    if overall_grade < 2.0:
        return "Critical"
    if overall_grade < 3.0:
        return "High"
    if overall_grade < 4.0:
        return "Medium"
    return "Low"


def grade_priority_level(grade: int) -> str:
    return {1: "Critical", 2: "High", 3: "Medium"}.get(grade, "Low")


# --- weighted 0-100 score -----------------------------------------------------

DIMENSIONS = [
    ("construction", "Construction & Combustibility"),
    ("protection", "Fire Protection"),
    ("detection", "Detection Systems"),
    ("management", "Management Systems"),
    ("hazards", "Special Hazards"),
    ("bi", "Business Interruption"),
]


@dataclass
class DimensionContribution:
    name: str
    score: float
    weight: float
    contribution: float
    percentage: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def calculate_overall_risk_score(scores: Dict[str, float], weights: Dict[str, float]) -> int:
    """`scores` and `weights` are keyed by dimension (construction, protection, ...)."""
    return js_round(sum(float(scores.get(k) or 0) * weights.get(k, 0) for k, _ in DIMENSIONS))


def get_risk_band(score: float) -> str:
    if score >= 85:
        return "Very Good"
    if score >= 70:
        return "Good"
    if score >= 55:
        return "Tolerable"
    if score >= 40:
        return "Poor"
    return "Very Poor"


def calculate_dimension_contributions(scores: Dict[str, float],
                                      weights: Dict[str, float]) -> List[DimensionContribution]:
    out = []
    for key, name in DIMENSIONS:
        score = float(scores.get(key) or 0)
        weight = weights.get(key, 0)
        out.append(DimensionContribution(name, score, weight, score * weight, f"{weight * 100:.0f}%"))
    return out


def get_lowest_contributors(contributions: List[DimensionContribution]) -> List[DimensionContribution]:
    return sorted(contributions, key=lambda c: c.contribution)[:2]


# --- recommendation priority --------------------------------------------------

DRIVER_DIMENSION_LABELS = {
    "construction": "Construction & Combustibility",
    "fire_protection": "Fire Protection",
    "detection": "Detection Systems",
    "management": "Management Systems",
    "special_hazards": "Special Hazards",
    "business_interruption": "Business Interruption",
}

_PRIORITY_RANK = {"Critical": 1, "High": 2, "Medium": 3, "Low": 4, "": 5}


def calculate_priority(score: float) -> str:
    if score < 40:
        return "Critical"
    if score < 55:
        return "High"
    if score < 70:
        return "Medium"
    return "Low"


def priority_for_dimension(driver: Optional[str], dimension_scores: Dict[str, float]) -> Optional[str]:
    if not driver:
        return None
    score = dimension_scores.get(driver)
    if not score:
        return None
    return calculate_priority(score)


def sort_recommendations_by_priority(recommendations: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(recommendations, key=lambda r: _PRIORITY_RANK.get(r.get("priority") or "", 5))
