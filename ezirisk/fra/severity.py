# ezirisk/fra/severity.py
"""
FRA action severity. Tiers come from explicit trigger flags on the finding,
not from a likelihood x impact score:

  T4 -> P1  material life safety risk
  T3 -> P2  significant deficiency
  T2 -> P3  improvement required
  T1 -> P4  minor
"""
from __future__ import annotations
from dataclasses import dataclass, asdict
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Literal, Optional

from pydantic import BaseModel


Priority = Literal["P1", "P2", "P3", "P4"]
SeverityTier = Literal["T1", "T2", "T3", "T4"]
OccupancyRisk = Literal["NonSleeping", "Sleeping", "Vulnerable"]
ExecutiveOutcome = Literal[
    "SatisfactoryWithImprovements",
    "ImprovementsRequired",
    "SignificantDeficiencies",
    "MaterialLifeSafetyRiskPresent",
]

FINDING_CATEGORIES = [
    "MeansOfEscape",
    "DetectionAlarm",
    "EmergencyLighting",
    "Compartmentation",
    "FireDoors",
    "FireFighting",
    "Management",
    "Housekeeping",
    "Other",
]

EXECUTIVE_OUTCOME_LABELS = {
    "MaterialLifeSafetyRiskPresent": "Material Life Safety Risk Present",
    "SignificantDeficiencies": "Significant Deficiencies",
    "ImprovementsRequired": "Improvements Required",
    "SatisfactoryWithImprovements": "Satisfactory with Improvements",
}

TIMESCALES = ["immediate", "30d", "90d", "next_review", "custom"]


class FraContext(BaseModel):
    occupancy_risk: OccupancyRisk = "NonSleeping"
    storeys: Optional[float] = None


class FraActionInput(BaseModel):
    category: str = "Other"
    final_exit_obstructed: bool = False
    final_exit_locked: bool = False
    single_stair_compromised: bool = False
    no_fire_detection: bool = False
    detection_inadequate_coverage: bool = False
    no_emergency_lighting: bool = False
    serious_compartmentation_failure: bool = False
    high_risk_room_to_escape_route: bool = False
    no_fra_evidence_or_review: bool = False
    assessor_marked_critical: bool = False   # up-rate only; UI asks for a justification


@dataclass
class SeverityResult:
    tier: SeverityTier
    priority: Priority
    trigger_id: str
    trigger_text: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class MaterialDeficiencyCheck:
    is_material_deficiency: bool
    triggers: List[str]


def _evaluate(a: FraActionInput, ctx: FraContext):
    """First matching rule wins. Returns (tier, trigger_id, trigger_text)."""
    sleeping_or_vulnerable = ctx.occupancy_risk in ("Sleeping", "Vulnerable")
    storeys = ctx.storeys or 0

    # --- T4 ---
    if a.final_exit_locked or a.final_exit_obstructed:
        return "T4", "T4-FINAL-EXIT", "Final exit locked or obstructed."
    if sleeping_or_vulnerable and a.no_fire_detection:
        return "T4", "T4-NO-DETECTION-SLEEPING", "No fire detection in sleeping or vulnerable occupancy."
    if storeys >= 2 and a.no_emergency_lighting:
        return "T4", "T4-NO-EL-MULTISTOREY", "No emergency lighting in a multi-storey building."
    if storeys >= 4 and a.single_stair_compromised:
        return "T4", "T4-SINGLE-STAIR", "Single stair compromised above low-rise."
    if sleeping_or_vulnerable and a.serious_compartmentation_failure:
        return "T4", "T4-COMPARTMENTATION-SLEEPING", "Serious compartmentation failure where escape relies on it."
    if a.high_risk_room_to_escape_route:
        return "T4", "T4-HIGH-RISK-ROOM", "High-risk room opens onto an escape route without protection."

    # --- T3 ---
    if a.no_fire_detection:
        return "T3", "T3-NO-DETECTION", "No fire detection."
    if a.detection_inadequate_coverage:
        return "T3", "T3-DETECTION-COVERAGE", "Fire detection coverage inadequate."
    if a.serious_compartmentation_failure:
        return "T3", "T3-COMPARTMENTATION", "Serious compartmentation failure."
    if a.single_stair_compromised:
        return "T3", "T3-SINGLE-STAIR", "Single stair compromised."
    if a.no_fra_evidence_or_review:
        return "T3", "T3-NO-FRA-REVIEW", "No evidence of fire risk assessment or review."

    # --- T2: category defaults when no hard trigger is set ---
    if a.category in ("Management", "Housekeeping", "FireFighting"):
        return "T2", "T2-CATEGORY", f"{a.category} finding requiring improvement."

    return "T1", "T1-DEFAULT", "Minor finding."


def derive_severity_tier(action: FraActionInput, ctx: FraContext) -> SeverityTier:
    return _evaluate(action, ctx)[0]


def map_tier_to_priority(tier: str) -> Priority:
    return {"T4": "P1", "T3": "P2", "T2": "P3"}.get(tier, "P4")


def derive_severity(action: FraActionInput, ctx: FraContext) -> SeverityResult:
    if action.assessor_marked_critical:
        return SeverityResult("T4", "P1", "MANUAL-P1", "Manually escalated to P1 by assessor.")
    tier, trigger_id, trigger_text = _evaluate(action, ctx)
    return SeverityResult(tier, map_tier_to_priority(tier), trigger_id, trigger_text)


# --- document level -----------------------------------------------------------

def _priority_of(a: Dict[str, Any]) -> Optional[str]:
    return a.get("priority_band") or a.get("priority")


def _tier_of(a: Dict[str, Any]) -> Optional[str]:
    return a.get("severity_tier") or a.get("severityTier")


def _is_p1(a: Dict[str, Any]) -> bool:
    return _priority_of(a) == "P1" or _tier_of(a) == "T4"


def _is_p2(a: Dict[str, Any]) -> bool:
    return _priority_of(a) == "P2" or _tier_of(a) == "T3"


def check_material_deficiency(actions: Iterable[Dict[str, Any]], ctx: FraContext) -> MaterialDeficiencyCheck:
    triggers: List[str] = []
    any_p1 = any(_is_p1(a) for a in actions)
    if any_p1:
        triggers.append("One or more actions classified as P1 (Material Life Safety Risk).")
        if ctx.occupancy_risk == "Vulnerable":
            triggers.append("Vulnerable occupants increase the criticality of life safety deficiencies.")
    return MaterialDeficiencyCheck(bool(triggers), triggers)


def derive_executive_outcome(actions: Iterable[Dict[str, Any]]) -> ExecutiveOutcome:
    actions = list(actions)
    p1 = sum(1 for a in actions if _is_p1(a))
    p2 = sum(1 for a in actions if _is_p2(a))
    if p1 >= 1:
        return "MaterialLifeSafetyRiskPresent"
    if p2 >= 3:
        return "SignificantDeficiencies"
    if p2 >= 1:
        return "ImprovementsRequired"
    return "SatisfactoryWithImprovements"


# --- timescales ---------------------------------------------------------------

def suggested_timescale(priority: Optional[str]) -> str:
    return {"P1": "immediate", "P2": "30d", "P3": "90d"}.get(priority or "", "next_review")


def suggested_target_date(timescale: str, today: Optional[date] = None) -> Optional[str]:
    today = today or date.today()
    if timescale == "immediate":
        return today.isoformat()
    if timescale == "30d":
        return (today + timedelta(days=30)).isoformat()
    if timescale == "90d":
        return (today + timedelta(days=90)).isoformat()
    return None   # next_review / custom


# --- legacy L x I actions -----------------------------------------------------

_LEGACY_FLAG_FIELDS = [
    "final_exit_locked",
    "final_exit_obstructed",
    "no_fire_detection",
    "detection_inadequate_coverage",
    "no_emergency_lighting",
    "serious_compartmentation_failure",
    "single_stair_compromised",
    "high_risk_room_to_escape_route",
    "no_fra_evidence_or_review",
]


def needs_migration(action: Dict[str, Any]) -> bool:
    return not action.get("severity_tier") or not action.get("priority_band") or not action.get("trigger_id")


def _tier_from_legacy_score(score: float) -> SeverityTier:
    if score >= 20:
        return "T4"
    if score >= 12:
        return "T3"
    if score >= 6:
        return "T2"
    return "T1"


def migrate_legacy_action(action: Dict[str, Any], ctx: FraContext) -> Dict[str, Any]:
    """Returns a copy with severity_tier / priority_band / trigger_* filled in."""
    if not needs_migration(action):
        return action

    score = action.get("risk_score")
    if score is not None:
        tier = _tier_from_legacy_score(float(score))
        result = SeverityResult(tier, map_tier_to_priority(tier), "LEGACY-SCORE",
                                "Priority derived from legacy scoring (migrated).")
    else:
        flags = {k: bool(action.get(k)) for k in _LEGACY_FLAG_FIELDS}
        result = derive_severity(FraActionInput(category=action.get("finding_category") or "Other", **flags), ctx)

    return {
        **action,
        "severity_tier": result.tier,
        "priority_band": result.priority,
        "trigger_id": result.trigger_id,
        "trigger_text": result.trigger_text,
    }


def migrate_legacy_actions(actions: Iterable[Dict[str, Any]], ctx: FraContext) -> List[Dict[str, Any]]:
    return [migrate_legacy_action(a, ctx) for a in actions]
