# ezirisk/re/recommendations.py
"""Auto-recommendations raised from poor HRG ratings, and YY-NN reference numbers."""
from __future__ import annotations
import time
from datetime import date
from typing import Any, Dict, List, Optional

from ezirisk.utils.jsonsafe import utc_now_iso

# (critical, moderate)
TEMPLATES: Dict[str, tuple] = {
    "process_control_and_stability": (
        "CRITICAL: Process control and stability requires immediate improvement. Review and upgrade "
        "instrumentation, implement robust control loops, and establish clear operational procedures to "
        "prevent process deviations.",
        "Process control systems need enhancement. Recommend review of control strategies, upgrade aging "
        "instrumentation, and implement additional monitoring for critical parameters.",
    ),
    "safety_and_control_systems": (
        "CRITICAL: Fire protection and safety systems are inadequate. Immediate action required to upgrade "
        "detection, suppression, and emergency response systems to meet acceptable standards.",
        "Fire protection systems require improvement. Recommend installation of additional detection "
        "coverage, upgrade suppression systems, and enhance emergency response procedures.",
    ),
    "natural_hazard_exposure_and_controls": (
        "CRITICAL: Natural hazard exposure presents severe risk. Implement immediate physical protection "
        "measures, flood barriers, seismic bracing, or other controls appropriate to site-specific perils.",
        "Natural hazard controls need strengthening. Review site exposure to flood, wind, earthquake and "
        "implement appropriate mitigation measures based on risk assessment.",
    ),
    "electrical_and_utilities_reliability": (
        "CRITICAL: Electrical and utilities infrastructure is unreliable. Install backup power systems, "
        "upgrade critical electrical distribution, and implement redundancy for essential utilities.",
        "Utilities reliability requires improvement. Recommend installation of UPS systems, backup "
        "generators, or enhanced utility monitoring and maintenance programs.",
    ),
    "process_safety_management": (
        "CRITICAL: Process safety management is severely deficient. Establish comprehensive PSM program "
        "including procedures, training, maintenance systems, and safety culture initiatives immediately.",
        "Process safety management needs development. Enhance safety procedures, improve training programs, "
        "and strengthen maintenance and inspection regimes.",
    ),
    "flammable_liquids_and_fire_risk": (
        "CRITICAL: Flammable liquid storage and handling presents unacceptable fire risk. Implement proper "
        "segregation, containment, fire protection, and control measures urgently.",
        "Flammable materials handling needs improvement. Enhance storage arrangements, improve containment "
        "and separation, and upgrade fire protection for storage areas.",
    ),
    "critical_equipment_reliability": (
        "CRITICAL: Critical equipment reliability is poor with high failure risk. Implement immediate "
        "preventive maintenance program, condition monitoring, and spare parts management.",
        "Equipment reliability requires enhancement. Develop comprehensive maintenance program, implement "
        "condition-based monitoring, and establish critical spares inventory.",
    ),
    "high_energy_materials_control": (
        "CRITICAL: High-energy materials present severe hazard. Implement stringent controls for reactive "
        "chemicals or explosives including segregation, quantity limits, and specialized handling procedures.",
        "High-energy materials handling needs improvement. Review storage arrangements, enhance control "
        "measures, and implement additional safety protocols for reactive substances.",
    ),
    "high_energy_process_equipment": (
        "CRITICAL: High-pressure or high-energy equipment presents major hazard. Conduct immediate inspection "
        "program, upgrade relief systems, and implement enhanced monitoring and maintenance.",
        "High-energy equipment requires improved controls. Enhance inspection programs, upgrade safety "
        "systems, and implement additional monitoring for pressure vessels and energetic equipment.",
    ),
    "emergency_response_and_bcp": (
        "CRITICAL: Emergency response and business continuity capabilities are inadequate. Develop "
        "comprehensive emergency plans, establish response teams, and implement business continuity "
        "strategies immediately.",
        "Emergency preparedness needs strengthening. Enhance emergency response procedures, conduct regular "
        "drills, and develop robust business continuity plans.",
    ),
}


def humanize_canonical_key(key: str) -> str:
    return " ".join(w[:1].upper() + w[1:] for w in key.split("_"))


def build_auto_recommendation(canonical_key: str, rating: int,
                              industry_key: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Ratings of 1 (critical) or 2 (moderate) raise a recommendation; anything better returns None."""
    if rating > 2:
        return None
    critical = rating == 1
    template = TEMPLATES.get(canonical_key)
    if template:
        text = template[0] if critical else template[1]
    else:
        text = f"{humanize_canonical_key(canonical_key)} requires improvement to meet acceptable standards."
    return {
        "id": f"auto-{canonical_key}-{int(time.time() * 1000)}",
        "canonical_key": canonical_key,
        "priority": "high" if critical else "medium",
        "text": text,
        "createdBy": "auto",
        "createdAt": utc_now_iso(),
    }


def _is_auto_for(rec: Dict[str, Any], canonical_key: str) -> bool:
    return rec.get("canonical_key") == canonical_key and rec.get("createdBy") == "auto"


def should_create_auto_recommendation(existing: List[Dict[str, Any]], canonical_key: str, rating: int) -> bool:
    if rating > 2:
        return False
    return not any(_is_auto_for(r, canonical_key) for r in existing)


def ensure_auto_recommendation(data: Dict[str, Any], canonical_key: str, rating: int,
                               industry_key: Optional[str] = None) -> Dict[str, Any]:
    """Adds an auto recommendation for a poor rating; removes it again once the rating improves."""
    recs = list(data.get("recommendations") or [])
    if rating > 2:
        return {**data, "recommendations": [r for r in recs if not _is_auto_for(r, canonical_key)]}
    if should_create_auto_recommendation(recs, canonical_key, rating):
        rec = build_auto_recommendation(canonical_key, rating, industry_key)
        if rec:
            return {**data, "recommendations": recs + [rec]}
    return data


# --- reference numbers --------------------------------------------------------

def generate_reference_number(year: int, sequence: int) -> str:
    return f"{str(year)[-2:]}-{sequence:02d}"


def survey_year(survey_date: Optional[str] = None, issue_date: Optional[str] = None) -> int:
    value = survey_date or issue_date
    if not value:
        return date.today().year
    return int(str(value)[:4])


def _parse_ref(ref: str):
    parts = ref.split("-")
    try:
        return int(parts[0] or 0), int(parts[1] if len(parts) > 1 and parts[1] else 0)
    except ValueError:
        return 0, 0


def next_recommendation_ref(existing: List[Dict[str, Any]], year: int) -> str:
    """Next YY-NN after the highest sequence already used for that year."""
    yy = int(str(year)[-2:])
    used = [_parse_ref(r["ref_number"])[1] for r in existing
            if r.get("ref_number") and _parse_ref(r["ref_number"])[0] == yy]
    return generate_reference_number(year, max(used, default=0) + 1)


def ensure_reference_numbers(recommendations: List[Dict[str, Any]], year: int) -> List[Dict[str, Any]]:
    out = []
    for rec in recommendations:
        if not rec.get("ref_number"):
            rec = {**rec, "ref_number": next_recommendation_ref(out + recommendations, year)}
        out.append(rec)
    return out


def sort_by_reference(recommendations: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """(year, sequence) ascending; rows without a reference go last."""
    def key(r):
        ref = r.get("ref_number")
        if not ref:
            return (1, 0, 0)
        y, s = _parse_ref(ref)
        return (0, y, s)
    return sorted(recommendations, key=key)
