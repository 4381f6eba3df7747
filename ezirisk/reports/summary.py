# ezirisk/reports/summary.py
"""
Deterministic executive summary for a draft assessment, built from module
outcomes and open action priorities. An optional LLM pass can tidy the
wording; it never changes the facts and falls back to the plain text.
"""
from __future__ import annotations
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from ezirisk.config import get_config
from ezirisk.issue.lock_state import is_locked
from ezirisk.utils.events import publish
from ezirisk.utils.jsonsafe import utc_now_iso
from ezirisk.utils.llm_status import get_api_key, record_llm_call_end, record_llm_call_start

logger = logging.getLogger(__name__)

PRIORITIES = ("P1", "P2", "P3", "P4")

CLOSING_P1 = (
    "High priority recommendations should be implemented without delay to address significant fire "
    "safety concerns and reduce risk to acceptable levels. These actions are essential to ensuring the "
    "safety of occupants and compliance with fire safety legislation. Full details of the assessment "
    "methodology, specific findings, and detailed recommendations are provided in the main body of this report."
)
CLOSING_ACTIONS = (
    "Implementation of the recommended actions will enhance fire safety standards and ensure continued "
    "compliance with regulatory requirements. Priority should be given to higher-rated recommendations to "
    "address the most significant areas for improvement. Full details of the assessment methodology, specific "
    "findings, and detailed recommendations are provided in the main body of this report."
)
CLOSING_NONE = (
    "This executive summary provides an overview of the key findings. Full details of the assessment "
    "methodology and current fire safety arrangements are provided in the main body of this report."
)
NO_ACTIONS = (
    "No specific recommendations have been made at this time. Continued maintenance of existing fire safety "
    "measures and regular review of arrangements are advised."
)

SYSTEM = (
    "You are editing a fire risk assessment executive summary. "
    "Improve readability only. Keep every bullet, number and priority exactly as given. "
    "Do not add findings. Return only the edited text."
)


class SummaryError(Exception):
    pass


def _s(n: int) -> str:
    return "s" if n > 1 else ""


def format_assessment_date(value: Any) -> str:
    """'7 March 2025' style; unparseable or missing dates read 'Not recorded'."""
    if not value:
        return "Not recorded"
    try:
        d = value if isinstance(value, date) else date.fromisoformat(str(value)[:10])
    except ValueError:
        return "Not recorded"
    return f"{d.day} {d.strftime('%B')} {d.year}"


def count_action_priorities(actions: List[Dict[str, Any]]) -> Dict[str, int]:
    counts = {p: 0 for p in PRIORITIES}
    for a in actions:
        p = a.get("priority_band") or a.get("priority")
        if p in counts:
            counts[p] += 1
    return counts


def build_executive_summary(title: str, assessment_date: Any, scope: Optional[str],
                            limitations: Optional[str], modules: List[Dict[str, Any]],
                            action_counts: Dict[str, int]) -> str:
    outcomes = [m.get("outcome") for m in modules]
    total_modules = len(outcomes)
    material = outcomes.count("material_def")
    minor = outcomes.count("minor_def")
    compliant = outcomes.count("compliant")
    info_gap = outcomes.count("info_gap")
    counts = {p: int(action_counts.get(p, 0) or 0) for p in PRIORITIES}
    total_actions = sum(counts.values())

    covering = f" covering {scope.lower()}" if scope else ""
    bullets = [
        f"Assessment Date: {format_assessment_date(assessment_date)}{covering}.",
        f"{total_modules} key area{'s' if total_modules != 1 else ''} of fire safety were examined to identify "
        "hazards, evaluate controls, and determine necessary actions.",
    ]
    if material:
        bullets.append(f"{material} area{_s(material)} with material deficiencies requiring immediate "
                       "attention were identified.")
    if minor:
        bullets.append(f"{minor} area{_s(minor)} with minor deficiencies were found.")
    if total_modules and compliant == total_modules:
        bullets.append("All assessed areas were found to be compliant with current fire safety standards "
                       "and regulations.")
    if info_gap:
        bullets.append(f"{info_gap} area{_s(info_gap)} where further information is required to complete "
                       "the assessment.")

    if total_actions:
        parts = []
        if counts["P1"]:
            parts.append(f"{counts['P1']} high priority (P1) action{_s(counts['P1'])}")
        if counts["P2"]:
            parts.append(f"{counts['P2']} medium-high priority (P2) action{_s(counts['P2'])}")
        if counts["P3"]:
            parts.append(f"{counts['P3']} medium priority (P3) action{_s(counts['P3'])}")
        if counts["P4"]:
            parts.append(f"{counts['P4']} lower priority (P4) improvement{_s(counts['P4'])}")
        verb = "s have" if total_actions > 1 else " has"
        bullets.append(f"{total_actions} recommendation{verb} been made: {', '.join(parts)}.")
    else:
        bullets.append(NO_ACTIONS)

    if limitations:
        tail = "..." if len(limitations) > 150 else ""
        bullets.append(f"Assessment limitations: {limitations[:150]}{tail}")

    if counts["P1"]:
        closing = CLOSING_P1
    elif total_actions:
        closing = CLOSING_ACTIONS
    else:
        closing = CLOSING_NONE

    return "\n".join(f"• {b}" for b in bullets) + "\n\n" + closing


def polish_summary_with_llm(text: str, model: Optional[str] = None) -> str:
    """Returns the input unchanged when no key is configured or the call fails."""
    api_key = get_api_key()
    if not api_key or not text:
        return text
    model = model or get_config().get("llm_summary_model", "gpt-4o-mini")
    try:
        from openai import OpenAI
        client = OpenAI(api_key=api_key)
        record_llm_call_start(model)
        resp = client.responses.create(
            model=model,
            input=[
                {"role": "system", "content": SYSTEM},
                {"role": "user", "content": text},
            ],
            temperature=0.2,
            max_output_tokens=700,
        )
        polished = (resp.output_text or "").strip()
        record_llm_call_end(True)
        return polished or text
    except Exception as e:
        record_llm_call_end(False)
        logger.warning("LLM summary polish failed (%s); keeping deterministic text", e)
        return text


def generate_executive_summary(store, document_id: str, organisation_id: Optional[str] = None,
                               use_llm: Optional[bool] = None) -> str:
    """
    Builds and stores documents.executive_summary_ai for a draft document.
    Raises SummaryError for a missing (or other-organisation) or locked document.
    """
    doc = store.get_row("documents", document_id)
    if doc is None or (organisation_id and doc.get("organisation_id") != organisation_id):
        raise SummaryError("Document not found")
    if (doc.get("issue_status") or "draft") != "draft" or is_locked(doc):
        raise SummaryError("Cannot generate summary for issued or superseded documents")

    modules = store.select("module_instances", document_id=document_id)
    actions = [a for a in store.select("actions", document_id=document_id, status="open")
               if not a.get("deleted_at")]

    summary = build_executive_summary(
        doc.get("title") or "",
        doc.get("assessment_date"),
        doc.get("scope_description"),
        doc.get("limitations_assumptions"),
        modules,
        count_action_priorities(actions),
    )

    if use_llm is None:
        use_llm = bool(get_config().get("use_llm_summary"))
    if use_llm:
        summary = polish_summary_with_llm(summary)

    store.update("documents", document_id, {"executive_summary_ai": summary, "updated_at": utc_now_iso()})
    publish("ExecutiveSummaryGenerated", {"document_id": document_id, "modules": len(modules),
                                          "open_actions": len(actions)})
    logger.info("Generated executive summary for %s (%d modules, %d open actions)",
                document_id, len(modules), len(actions))
    return summary
