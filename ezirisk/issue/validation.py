# ezirisk/issue/validation.py
"""
Issue gating: a draft can be issued only when every required module is
complete and the survey-type confirmations are in place.

Inputs are plain dicts so the same checks run in the UI and in scripts.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ezirisk.schemas.contracts import Blocker, ValidationResult
from ezirisk.modules.catalog import get_module_display_name
from ezirisk.storage.errors import RecordNotFound

logger = logging.getLogger(__name__)

ModuleProgress = Dict[str, str]     # module_key -> not_started | in_progress | complete


@dataclass
class ModuleRule:
    key: str
    required: bool = True
    condition: Optional[Callable[[Dict[str, Any]], bool]] = None
    required_fields: List[str] = field(default_factory=list)

    @property
    def label(self) -> str:
        return get_module_display_name(self.key)

    def applies(self, ctx: Dict[str, Any]) -> bool:
        if self.required:
            return True
        return bool(self.condition and self.condition(ctx))


def _engineered(ctx: Dict[str, Any]) -> bool:
    return ctx.get("engineered_solutions_used") is True


def _smoke_control(ctx: Dict[str, Any]) -> bool:
    return ctx.get("has_smoke_control") is True or _engineered(ctx)


_CORE = [
    ModuleRule("A1_DOC_CONTROL", required_fields=["assessment_date", "assessor_name"]),
    ModuleRule("A2_BUILDING_PROFILE"),
    ModuleRule("A3_PERSONS_AT_RISK"),
]


def get_required_modules(doc_type: str, ctx: Optional[Dict[str, Any]] = None) -> List[ModuleRule]:
    ctx = ctx or {}
    if doc_type == "FRA":
        return _CORE + [ModuleRule(k) for k in (
            "A4_MANAGEMENT_CONTROLS", "A5_EMERGENCY_ARRANGEMENTS", "A7_REVIEW_ASSURANCE",
            "FRA_1_HAZARDS", "FRA_2_ESCAPE_ASIS", "FRA_3_PROTECTION_ASIS", "FRA_5_EXTERNAL_FIRE_SPREAD",
            "FRA_4_SIGNIFICANT_FINDINGS",
        )]
    if doc_type == "FSD":
        rules = _CORE + [ModuleRule(f"FSD_{n}_{name}") for n, name in (
            (1, "REG_BASIS"), (2, "EVAC_STRATEGY"), (3, "ESCAPE_DESIGN"), (4, "PASSIVE_PROTECTION"),
            (5, "ACTIVE_SYSTEMS"), (6, "FRS_ACCESS"), (7, "DRAWINGS"),
        )]
        rules.append(ModuleRule("FSD_8_SMOKE_CONTROL", required=False, condition=_smoke_control))
        return rules
    if doc_type == "DSEAR":
        return _CORE + [ModuleRule(k) for k in (
            "DSEAR_1_DANGEROUS_SUBSTANCES", "DSEAR_2_PROCESS_RELEASES", "DSEAR_3_HAZARDOUS_AREA_CLASSIFICATION",
            "DSEAR_4_IGNITION_SOURCES", "DSEAR_5_EXPLOSION_PROTECTION", "DSEAR_6_RISK_ASSESSMENT",
            "DSEAR_10_HIERARCHY_OF_CONTROL", "DSEAR_11_EXPLOSION_EMERGENCY_RESPONSE",
        )]
    return []


def get_requirement_description(doc_type: str, ctx: Optional[Dict[str, Any]] = None) -> str:
    rules = get_required_modules(doc_type, ctx)
    required = sum(1 for r in rules if r.required)
    conditional = sum(1 for r in rules if not r.required and r.condition)
    desc = f"{required} required modules must be completed"
    if conditional:
        desc += f", {conditional} conditional modules based on your selections"
    return desc


# --- checks -------------------------------------------------------------------

def _blank(v: Any) -> bool:
    return not str(v if v is not None else "").strip()


def _open_count(actions: List[Dict[str, Any]]) -> int:
    return sum(1 for a in actions or [] if a.get("status") != "closed")


def _validate_fra(ctx, answers, actions) -> List[Blocker]:
    out = []
    if ctx.get("scope_type") in ("limited", "desktop") and _blank(answers.get("scope_limitations")):
        out.append(Blocker("conditional_missing",
                           "Scope limitations must be specified for limited/desktop assessments"))
    if not _open_count(actions) and answers.get("no_significant_findings") is not True:
        out.append(Blocker("no_recommendations",
                           "Must have at least one recommendation OR confirm no significant findings"))
    return out


def _validate_fsd(ctx, answers, actions) -> List[Blocker]:
    out = []
    if _engineered(ctx):
        if _blank(answers.get("limitations_text")):
            out.append(Blocker("conditional_missing",
                               "Limitations must be documented when using engineered solutions"))
        if _blank(answers.get("management_assumptions_text")):
            out.append(Blocker("conditional_missing",
                               "Management assumptions must be documented when using engineered solutions"))
    return out


def _validate_dsear(ctx, answers, actions) -> List[Blocker]:
    out = []
    if not answers.get("substances") and answers.get("no_dangerous_substances") is not True:
        out.append(Blocker("missing_field",
                           "At least one dangerous substance must be identified OR confirm no dangerous substances",
                           module_key="DSEAR_1_DANGEROUS_SUBSTANCES"))
    if not answers.get("zones") and answers.get("no_zoned_areas") is not True:
        out.append(Blocker("missing_field",
                           "Zone classification must be documented OR confirm no zoned areas",
                           module_key="DSEAR_3_HAZARDOUS_AREA_CLASSIFICATION"))
    if not _open_count(actions) and answers.get("controls_adequate_confirmed") is not True:
        out.append(Blocker("no_recommendations", "Must have at least one action OR confirm controls are adequate"))
    return out


_TYPE_CHECKS = {"FRA": _validate_fra, "FSD": _validate_fsd, "DSEAR": _validate_dsear}


def validate_issue_eligibility(doc_type: str, ctx: Optional[Dict[str, Any]], answers: Optional[Dict[str, Any]],
                               module_progress: ModuleProgress,
                               actions: List[Dict[str, Any]]) -> ValidationResult:
    ctx = ctx or {}
    answers = answers or {}
    blockers: List[Blocker] = []

    for rule in get_required_modules(doc_type, ctx):
        if not rule.applies(ctx):
            continue
        if module_progress.get(rule.key) != "complete":
            blockers.append(Blocker("module_incomplete", f"{rule.label} must be completed", module_key=rule.key))
        for fk in rule.required_fields:
            if _blank(answers.get(fk)):
                blockers.append(Blocker("missing_field", f"{rule.label}: {fk.replace('_', ' ')} is required",
                                        module_key=rule.key, field_key=fk))

    check = _TYPE_CHECKS.get(doc_type)
    if check:
        blockers.extend(check(ctx, answers, actions))

    return ValidationResult(eligible=not blockers, blockers=blockers)


def module_progress_from_instances(instances: List[Dict[str, Any]]) -> ModuleProgress:
    progress: ModuleProgress = {}
    for m in instances:
        if m.get("completed_at") or m.get("outcome"):
            status = "complete"
        elif any(v not in (None, "", [], {}, False) for v in (m.get("data") or {}).values()):
            status = "in_progress"
        else:
            status = "not_started"
        progress[m["module_key"]] = status
    return progress


def group_blockers_by_module(blockers: List[Blocker]) -> Dict[str, List[Blocker]]:
    grouped: Dict[str, List[Blocker]] = {}
    for b in blockers:
        grouped.setdefault(b.module_key or "general", []).append(b)
    return grouped


def get_validation_summary(result: ValidationResult) -> str:
    if result.eligible:
        return "All requirements met - ready to issue"
    n = len(result.blockers)
    return f"{n} issue{'s' if n != 1 else ''} must be resolved before issuing"


# --- document-level entry point ----------------------------------------------

def collect_answers(document: Dict[str, Any], instances: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Flattened module data with the document's explicit confirmations on top."""
    answers: Dict[str, Any] = {}
    for m in instances:
        answers.update(m.get("data") or {})
    answers["substances"] = [s for s in answers.get("substances") or []
                             if isinstance(s, dict) and not _blank(s.get("name"))]
    answers["zones"] = [z for z in answers.get("zones") or []
                        if isinstance(z, dict) and not _blank(z.get("zone_type"))]
    for key in ("assessment_date", "assessor_name"):
        if _blank(answers.get(key)) and not _blank(document.get(key)):
            answers[key] = document[key]
    answers.setdefault("scope_limitations",
                       answers.get("limitations_assumptions") or document.get("limitations_assumptions") or "")
    answers.update(document.get("issue_answers") or {})
    return answers


def check_document_issue_readiness(store, document_id: str) -> ValidationResult:
    doc = store.get_row("documents", document_id)
    if doc is None:
        raise RecordNotFound("documents", document_id)
    instances = store.select("module_instances", document_id=document_id)
    actions = [a for a in store.select("actions", document_id=document_id) if not a.get("deleted_at")]
    result = validate_issue_eligibility(
        doc.get("document_type") or "FRA",
        doc.get("issue_context") or {},
        collect_answers(doc, instances),
        module_progress_from_instances(instances),
        actions,
    )
    logger.info("Issue readiness for %s: %s", document_id, get_validation_summary(result))
    return result
