# ezirisk/fra/complexity.py
"""Structural Complexity Score (SCS): five 1-4 sub-scores summed into a band."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional

ComplexityBand = Literal["Low", "Moderate", "High", "VeryHigh"]

_STOREYS_BAND = {"1": 1, "2": 2, "3": 3, "4": 4, "5-6": 6, "7-10": 10, "11+": 11, "unknown": 4}
_AREA_BAND = {"<150": 150, "150-300": 300, "300-1000": 1000, "1000-5000": 5000,
              "5000-10000": 10000, "10000+": 10000, "unknown": 1000}

_SLEEPING = {"HMO": 2, "BlockOrHotel": 3, "Vulnerable": 4}
_LAYOUT = {"Moderate": 2, "Complex": 3, "MixedUse": 4}
_RELIANCE = {"DetectionAndEmergencyLighting": 2, "CompartmentationCritical": 3, "EngineeredSystemsCritical": 4}


@dataclass
class SCSResult:
    score: int
    band: ComplexityBand
    breakdown: Dict[str, int] = field(default_factory=dict)


def _to_number(v: Any) -> Optional[float]:
    if isinstance(v, bool) or v is None:
        return None
    if isinstance(v, (int, float)):
        return float(v)
    try:
        return float(str(v).strip()) if str(v).strip() else None
    except ValueError:
        return None


def _positive(v: Optional[float]) -> bool:
    return v is not None and v > 0


def derive_storeys_for_scoring(storeys_band: Optional[str] = None, storeys_exact: Any = None) -> float:
    exact = _to_number(storeys_exact)
    if storeys_band == "custom" and _positive(exact):
        return exact
    if storeys_band in _STOREYS_BAND:
        return _STOREYS_BAND[storeys_band]
    return exact if _positive(exact) else 4


def derive_floor_area_for_scoring(floor_area_band: Optional[str] = None, floor_area_m2: Any = None,
                                  floor_area_m2_exact: Any = None) -> float:
    exact = _to_number(floor_area_m2_exact if floor_area_m2_exact is not None else floor_area_m2)
    if floor_area_band == "custom" and _positive(exact):
        return exact
    if floor_area_band in _AREA_BAND:
        return _AREA_BAND[floor_area_band]
    return exact if _positive(exact) else 1000


def _score_height(storeys: float) -> int:
    if storeys <= 2:
        return 1
    if storeys <= 4:
        return 2
    if storeys <= 6:
        return 3
    return 4


def _score_area(m2: float) -> int:
    if m2 < 300:
        return 1
    if m2 < 1000:
        return 2
    if m2 < 5000:
        return 3
    return 4


def calculate_scs(inp: Dict[str, Any]) -> SCSResult:
    """
    inp keys (all optional): storeys_band, storeys_exact | storeys, floor_area_band,
    floor_area_m2, floor_area_m2_exact, sleeping_risk, layout_complexity,
    fire_protection_reliance
    """
    storeys_exact = inp.get("storeys_exact")
    if storeys_exact is None:
        storeys_exact = inp.get("storeys")
    storeys = derive_storeys_for_scoring(inp.get("storeys_band"), storeys_exact)
    area = derive_floor_area_for_scoring(inp.get("floor_area_band"), inp.get("floor_area_m2"),
                                         inp.get("floor_area_m2_exact"))

    breakdown = {
        "height": _score_height(storeys),
        "area": _score_area(area),
        "sleeping": _SLEEPING.get(inp.get("sleeping_risk"), 0),
        "layout": _LAYOUT.get(inp.get("layout_complexity"), 1),
        "reliance": _RELIANCE.get(inp.get("fire_protection_reliance"), 1),
    }
    score = sum(breakdown.values())

    band: ComplexityBand = "Low"
    if score >= 18:
        band = "VeryHigh"
    elif score >= 14:
        band = "High"
    elif score >= 9:
        band = "Moderate"
    return SCSResult(score=score, band=band, breakdown=breakdown)


def derive_fire_protection_reliance(protection: Optional[Dict[str, Any]]) -> str:
    if not protection:
        return "Basic"
    if (protection.get("hasSuppressionSystem") or protection.get("hasSmokeControl")
            or protection.get("engineeredEvacuationStrategy")):
        return "EngineeredSystemsCritical"
    if protection.get("compartmentationCritical"):
        return "CompartmentationCritical"
    if protection.get("hasDetectionSystem") and protection.get("hasEmergencyLighting"):
        return "DetectionAndEmergencyLighting"
    return "Basic"
