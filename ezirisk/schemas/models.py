# ezirisk/schemas/models.py
from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import List, Optional, Literal, Dict, Any
import uuid

ActionStatus = Literal["open", "in_progress", "closed"]
Priority = Literal["P1", "P2", "P3", "P4"]
SeverityTier = Literal["T1", "T2", "T3", "T4"]


class _Row(BaseModel):
    """Base for rows persisted in the record store. Extra columns are kept."""
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None

    @model_validator(mode="after")
    def _auto_id(self):
        if not self.id:
            self.id = uuid.uuid4().hex
        return self

    def to_row(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class Organisation(_Row):
    name: str = ""
    storage_used_mb: float = 0.0
    max_storage_mb: float = 500.0


class Document(_Row):
    organisation_id: Optional[str] = None
    base_document_id: Optional[str] = None   # first version in the revision family
    title: str = "Untitled assessment"
    document_type: Literal["FRA", "FSD", "DSEAR", "RE"] = "FRA"
    issue_status: Literal["draft", "issued", "superseded"] = "draft"
    version_number: int = 1
    assessment_date: Optional[str] = None     # ISO date
    scope_description: Optional[str] = None
    limitations_assumptions: Optional[str] = None
    executive_summary_ai: Optional[str] = None
    section_grades: Dict[str, Any] = Field(default_factory=dict)
    issue_context: Dict[str, Any] = Field(default_factory=dict)  # scope_type, engineered_solutions_used, ...
    issue_answers: Dict[str, Any] = Field(default_factory=dict)  # confirmations used by issue gating
    industry_sector: Optional[str] = None
    scs_band: Optional[str] = None           # Low | Moderate | High | VeryHigh
    issue_date: Optional[str] = None
    updated_at: Optional[str] = None


class ModuleInstance(_Row):
    document_id: str
    organisation_id: Optional[str] = None
    module_key: str
    module_scope: str = "document"
    outcome: Optional[str] = None
    assessor_notes: str = ""
    data: Dict[str, Any] = Field(default_factory=dict)
    completed_at: Optional[str] = None
    updated_at: Optional[str] = None


class Action(_Row):
    document_id: str
    organisation_id: Optional[str] = None
    module_instance_id: Optional[str] = None
    recommended_action: str = ""
    status: ActionStatus = "open"
    priority_band: Optional[Priority] = None
    severity_tier: Optional[SeverityTier] = None
    timescale: Optional[str] = None
    target_date: Optional[str] = None
    finding_category: Optional[str] = None
    trigger_id: Optional[str] = None
    trigger_text: Optional[str] = None
    risk_score: Optional[float] = None        # legacy L x I score, pre-migration
    reference_number: Optional[str] = None    # R-01, R-02 ...
    origin_action_id: Optional[str] = None
    carried_from_document_id: Optional[str] = None
    first_raised_in_version: Optional[int] = None
    source: str = "manual"
    owner_name: Optional[str] = None
    created_at: Optional[str] = None
    closed_at: Optional[str] = None
    deleted_at: Optional[str] = None


class Attachment(_Row):
    organisation_id: str
    document_id: str
    module_instance_id: Optional[str] = None
    action_id: Optional[str] = None
    file_path: str
    file_name: str
    file_type: str
    file_size_bytes: Optional[int] = None
    caption: Optional[str] = None
    taken_at: Optional[str] = None
    created_at: Optional[str] = None


TABLE_MODELS = {
    "organisations": Organisation,
    "documents": Document,
    "module_instances": ModuleInstance,
    "actions": Action,
    "attachments": Attachment,
}
