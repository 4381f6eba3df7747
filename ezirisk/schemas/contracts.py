# ezirisk/schemas/contracts.py
from __future__ import annotations
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, Dict, Any, List, Literal

# --- Backend selection --------------------------------------------------------

class StoreBackend(str, Enum):
    LOCAL = "local"
    SUPABASE = "supabase"

# --- Document level -----------------------------------------------------------

class DocType(str, Enum):
    FRA = "FRA"
    FSD = "FSD"
    DSEAR = "DSEAR"
    RE = "RE"

class IssueStatus(str, Enum):
    DRAFT = "draft"
    ISSUED = "issued"
    SUPERSEDED = "superseded"

LOCKED_STATUSES = (IssueStatus.ISSUED.value, IssueStatus.SUPERSEDED.value)

# --- Module outcomes ----------------------------------------------------------

class Outcome(str, Enum):
    COMPLIANT = "compliant"
    MINOR_DEF = "minor_def"
    MATERIAL_DEF = "material_def"
    INFO_GAP = "info_gap"
    NA = "na"
    ACCEPTABLE = "acceptable"   # DSEAR forms only

OUTCOME_LABELS: Dict[str, str] = {
    "compliant": "Compliant",
    "minor_def": "Minor Deficiency",
    "material_def": "Material Deficiency",
    "info_gap": "Information Gap",
    "na": "Not Applicable",
    "acceptable": "Acceptable",
}

# Options shown in the outcome panel; DSEAR adds "acceptable"
STANDARD_OUTCOMES = ["compliant", "minor_def", "material_def", "info_gap", "na"]
DSEAR_OUTCOMES = ["compliant", "acceptable", "minor_def", "material_def", "info_gap", "na"]


@dataclass
class Suggestion:
    """Rule-derived outcome shown next to the outcome selector. Never applied automatically."""
    outcome: Optional[str]
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

# --- Action register ----------------------------------------------------------

ActionStatus = Literal["open", "in_progress", "closed"]
TrackingStatus = Literal["closed", "overdue", "due_soon", "on_track"]

# --- Issue gating -------------------------------------------------------------

BlockerType = Literal[
    "module_incomplete",
    "missing_field",
    "conditional_missing",
    "confirm_missing",
    "no_recommendations",
]

@dataclass
class Blocker:
    type: BlockerType
    message: str
    module_key: Optional[str] = None
    field_key: Optional[str] = None

@dataclass
class ValidationResult:
    eligible: bool
    blockers: List[Blocker] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
