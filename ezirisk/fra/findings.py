# ezirisk/fra/findings.py
"""Significant findings summary for FRA-4: counts, top issues and tone paragraph."""
from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from ezirisk.fra.complexity import derive_storeys_for_scoring
from ezirisk.fra.severity import (
    FraContext, check_material_deficiency, derive_executive_outcome,
)

PRIORITY_ORDER = {"P1": 1, "P2": 2, "P3": 3, "P4": 4}
HIGH_PRIORITY_CATEGORIES = ("MeansOfEscape", "DetectionAlarm", "Compartmentation")

_COMPLEXITY_TONE = {
    "VeryHigh": "The premises comprises a complex building with significant reliance on structural and "
                "active fire protection systems. Effective maintenance and management controls are critical.",
    "High": "The building presents structural and occupancy complexity which increases reliance on "
            "fire protection measures.",
    "Moderate": "The building has moderate complexity requiring appropriate fire safety provisions.",
}
_LOW_TONE = "The premises presents a relatively straightforward fire safety context."

_OCCUPANCY_TONE = {
    "Vulnerable": " The presence of vulnerable occupants increases the criticality of maintaining robust "
                  "fire safety systems.",
    "Sleeping": " As sleeping accommodation, occupants may be less alert to fire cues, requiring higher "
                "standards of detection and alarm provision.",
}

_OUTCOME_TONE = {
    "MaterialLifeSafetyRiskPresent": " Material life safety deficiencies have been identified which require "
                                     "immediate attention.",
    "SignificantDeficiencies": " Significant deficiencies have been identified which require prompt "
                               "remedial action.",
    "ImprovementsRequired": " Improvements are required to achieve compliance with fire safety standards.",
}
_SATISFACTORY_TONE = " Overall, fire safety arrangements are satisfactory subject to the improvements identified."


@dataclass
class TopIssue:
    title: str
    priority: Optional[str]
    trigger_text: Optional[str] = None
    category: Optional[str] = None


@dataclass
class FraSummary:
    computed_outcome: str
    counts: Dict[str, int]
    top_issues: List[TopIssue] = field(default_factory=list)
    material_deficiency: bool = False
    tone_paragraph: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def tone_paragraph(scs_band: str, occupancy_risk: str, outcome: str) -> str:
    return (
        _COMPLEXITY_TONE.get(scs_band, _LOW_TONE)
        + _OCCUPANCY_TONE.get(occupancy_risk, "")
        + _OUTCOME_TONE.get(outcome, _SATISFACTORY_TONE)
    )


def _priority(a: Dict[str, Any]) -> Optional[str]:
    return a.get("priority_band") or a.get("priority") or None


def _category(a: Dict[str, Any]) -> Optional[str]:
    return a.get("finding_category") or a.get("category")


def sort_actions(actions: List[Dict[str, Any]], scs_band: str) -> List[Dict[str, Any]]:
    """Priority first; in complex buildings escape/detection/compartmentation lead within a band."""
    high_complexity = scs_band in ("High", "VeryHigh")

    def key(a):
        cat_rank = 0
        if high_complexity and _category(a) not in HIGH_PRIORITY_CATEGORIES:
            cat_rank = 1
        return PRIORITY_ORDER.get(_priority(a), 4), cat_rank

    return sorted(actions, key=key)


def compute_fra_summary(actions: List[Dict[str, Any]], scs_band: str, ctx: FraContext) -> FraSummary:
    open_actions = [a for a in actions if a.get("status") in ("open", "in_progress")]

    counts = {p.lower(): sum(1 for a in open_actions if _priority(a) == p) for p in PRIORITY_ORDER}
    outcome = derive_executive_outcome(open_actions)
    material = check_material_deficiency(open_actions, ctx).is_material_deficiency

    top: List[TopIssue] = []
    for a in sort_actions(open_actions, scs_band)[:3]:
        priority = _priority(a)
        top.append(TopIssue(
            title=a.get("recommended_action") or a.get("title") or "Untitled action",
            priority=priority,
            trigger_text=a.get("trigger_text") if priority in ("P1", "P2") else None,
            category=_category(a),
        ))

    return FraSummary(
        computed_outcome=outcome,
        counts=counts,
        top_issues=top,
        material_deficiency=material,
        tone_paragraph=tone_paragraph(scs_band, ctx.occupancy_risk, outcome),
    )


def fra_context_from_profile(profile: Optional[Dict[str, Any]]) -> FraContext:
    """FRA context from the A2 building profile data."""
    profile = profile or {}
    storeys = derive_storeys_for_scoring(
        profile.get("storeys_band"),
        profile.get("storeys_exact") or profile.get("number_of_storeys"),
    )
    occupancy = profile.get("occupancy_risk") or "NonSleeping"
    if occupancy not in ("NonSleeping", "Sleeping", "Vulnerable"):
        occupancy = "NonSleeping"
    return FraContext(occupancy_risk=occupancy, storeys=storeys)
