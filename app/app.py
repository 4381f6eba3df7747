import sys
from pathlib import Path

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import logging
from datetime import date

import pandas as pd
import streamlit as st

from ezirisk.config import get_config
from ezirisk.utils.logs import setup_logging
from ezirisk.utils.llm_status import get_llm_status
from ezirisk.storage.factory import get_store
from ezirisk.storage.errors import EziRiskError
from ezirisk.storage.attachments import (
    create_attachment_row, delete_attachment, open_attachment_preview, upload_evidence_file,
)
from ezirisk.schemas.contracts import OUTCOME_LABELS
from ezirisk.modules.catalog import build_module_sections, get_module_code, get_module_display_name
from ezirisk.forms.service import load_module, save_module
from ezirisk.issue.lock_state import get_lock_reason, is_locked
from ezirisk.issue.versioning import create_new_version, get_document_version_history, issue_document
from ezirisk.issue.validation import (
    check_document_issue_readiness, get_validation_summary, group_blockers_by_module,
)
from ezirisk.actions.register import (
    build_action_register, create_action, close_action, export_action_register_csv,
    filter_action_register, get_action_register_stats, reopen_action,
)
from ezirisk.fra.severity import FINDING_CATEGORIES, TIMESCALES, FraActionInput
from ezirisk.fra.findings import fra_context_from_profile
from ezirisk.reports.frames import action_register_frame, module_progress_frame
from ezirisk.reports.summary import SummaryError, generate_executive_summary

_cfg = get_config()
setup_logging(_cfg["log_level"], str(Path(_cfg["data_dir"]) / "logs"))
logger = logging.getLogger("ezirisk.app")

st.set_page_config(page_title="EziRisk", layout="wide")
st.title("EziRisk Assessments")


@st.cache_resource
def _store():
    return get_store()


store = _store()


# ---------------- field rendering ---------------- #

def _render_field(f, value, key: str, disabled: bool):
    if f.kind == "textarea":
        return st.text_area(f.label, value=value or "", key=key, disabled=disabled, help=f.help or None)
    if f.kind == "select":
        options = list(f.options)
        if value not in options:
            options = options + [value]
        return st.selectbox(f.label, options, index=options.index(value), key=key,
                            format_func=lambda o: f.label_for(o) if o else "-", disabled=disabled)
    if f.kind == "multiselect":
        return st.multiselect(f.label, f.options, default=[v for v in value or [] if v in f.options],
                              key=key, format_func=f.label_for, disabled=disabled)
    if f.kind == "number":
        raw = st.text_input(f.label, value="" if value in (None, "") else str(value), key=key, disabled=disabled)
        try:
            return float(raw) if raw.strip() else ""
        except ValueError:
            st.caption(f":red[{f.label} must be a number]")
            return value
    if f.kind == "flag":
        return st.checkbox(f.label, value=bool(value), key=key, disabled=disabled)
    if f.kind == "group":
        st.markdown(f"**{f.label}**")
        out = {}
        for opt in f.options:
            current = (value or {}).get(opt)
            if f.choices:
                choices = list(f.choices)
                idx = choices.index(current) if current in choices else len(choices) - 1
                out[opt] = st.selectbox(f.label_for(opt), choices, index=idx, key=f"{key}:{opt}",
                                        disabled=disabled)
            else:
                out[opt] = st.checkbox(f.label_for(opt), value=bool(current), key=f"{key}:{opt}",
                                       disabled=disabled)
        return out
    if f.kind == "rows":
        st.markdown(f"**{f.label}**")
        df = pd.DataFrame(value or [], columns=f.columns)
        edited = st.data_editor(df, num_rows="dynamic", key=key, disabled=disabled,
                                use_container_width=True)
        rows = edited.where(pd.notna(edited), None).to_dict(orient="records")
        return [r for r in rows if any(v not in (None, "") for v in r.values())]
    return st.text_input(f.label, value=value or "", key=key, disabled=disabled, help=f.help or None)


# ---------------- Sidebar ---------------- #

documents = sorted(store.select("documents"), key=lambda d: d.get("updated_at") or "", reverse=True)

with st.sidebar:
    st.header("Documents")
    if not documents:
        st.info("No documents yet. Run `python scripts/seed_demo_document.py` to create one.")
        st.stop()

    doc_ids = [d["id"] for d in documents]
    labels = {d["id"]: f"{d.get('title') or 'Untitled'} ({d.get('document_type')} v{d.get('version_number') or 1})"
              for d in documents}
    doc_id = st.selectbox("Document", doc_ids, format_func=lambda i: labels[i])
    doc = next(d for d in documents if d["id"] == doc_id)

    instances = store.select("module_instances", document_id=doc_id)
    st.markdown("### Modules")
    module_labels = {}
    for section in build_module_sections(instances):
        for m in section.modules:
            done = "✓ " if m.get("outcome") else ""
            module_labels[m["id"]] = (f"{section.label} · {done}{get_module_code(m['module_key'])} "
                                      f"{get_module_display_name(m['module_key'])}")
    if not module_labels:
        st.warning("This document has no modules.")
        st.stop()
    module_id = st.radio("Module", list(module_labels), format_func=lambda i: module_labels[i],
                         label_visibility="collapsed")

    st.markdown("---")
    llm_info = get_llm_status()
    st.markdown("### LLM Status")
    if llm_info["api_key_set"]:
        st.success("API key set")
    else:
        st.caption("No API key (summary polish disabled)")
    st.write(f"**Model:** {llm_info['model']}")
    if llm_info["last_success"] is False:
        st.error("Last call failed")


locked = is_locked(doc)
if locked:
    st.warning(get_lock_reason(doc))

tabs = st.tabs(["Module", "Actions", "Issue readiness", "Summary"])


# --- Tab 0: Module form --- #
with tabs[0]:
    try:
        view = load_module(store, module_id)
    except EziRiskError as e:
        logger.exception("Failed to load module %s", module_id)
        st.error(str(e))
        st.stop()

    form = view.form
    st.subheader(f"{get_module_code(view.module_key)} {get_module_display_name(view.module_key)}")

    data = {}
    with st.container(border=True):
        for f in form.fields:
            data[f.key] = _render_field(f, view.data.get(f.key), f"{module_id}:{f.key}", locked)
        # keys the form does not render are carried through unchanged
        for k, v in view.data.items():
            data.setdefault(k, v)

    suggestion = view.suggestion
    outcome_key = f"{module_id}:outcome"
    if suggestion is not None:
        with st.container(border=True):
            st.markdown("**Suggested outcome**")
            label = OUTCOME_LABELS.get(suggestion.outcome or "", "Rating only")
            st.write(f"{label}: {suggestion.reason}")
            if suggestion.outcome and st.button("Apply", disabled=locked):
                st.session_state[outcome_key] = suggestion.outcome

    options = [""] + list(form.outcomes)
    current = st.session_state.get(outcome_key, view.outcome or "")
    outcome = st.selectbox("Outcome", options, index=options.index(current) if current in options else 0,
                           format_func=lambda o: OUTCOME_LABELS.get(o, "-"), disabled=locked)
    notes = st.text_area("Assessor notes", value=view.assessor_notes, disabled=locked)

    if st.button("Save", type="primary", disabled=locked):
        try:
            save_module(store, module_id, data, outcome or None, notes)
            st.session_state.pop(outcome_key, None)
            st.success("Saved")
            st.rerun()
        except ValueError as e:
            st.error(str(e))
        except Exception as e:
            logger.exception("Save failed for %s", module_id)
            st.error(f"Save failed: {e}")

    st.markdown("#### Evidence")
    attachments = [a for a in store.select("attachments", document_id=doc_id)
                   if a.get("module_instance_id") == module_id]
    for a in attachments:
        c1, c2, c3 = st.columns([0.6, 0.2, 0.2])
        c1.write(f"{a.get('file_name')} {('- ' + a['caption']) if a.get('caption') else ''}")
        if c2.button("Preview", key=f"pv:{a['id']}"):
            res = open_attachment_preview(store, a)
            if res.ok:
                st.markdown(f"[Open {res.file_type}]({res.url})")
            else:
                st.error(res.error)
        if c3.button("Delete", key=f"del:{a['id']}", disabled=locked):
            ok, err = delete_attachment(store, a["id"])
            if ok:
                st.rerun()
            st.error(err)

    upload = st.file_uploader("Upload evidence", type=["jpg", "jpeg", "png", "webp", "pdf"], disabled=locked)
    caption = st.text_input("Caption", key=f"{module_id}:caption", disabled=locked)
    if upload is not None and st.button("Attach", disabled=locked):
        try:
            meta = upload_evidence_file(store, upload.getvalue(), upload.name, upload.type,
                                        doc.get("organisation_id"), doc_id)
            create_attachment_row(store, organisation_id=doc.get("organisation_id"), document_id=doc_id,
                                  module_instance_id=module_id, caption=caption or None, **meta)
            st.success(f"Uploaded {upload.name}")
            st.rerun()
        except EziRiskError as e:
            st.error(str(e))
        except Exception as e:
            logger.exception("Upload failed")
            st.error(f"Upload failed: {e}")


# --- Tab 1: Actions --- #
with tabs[1]:
    st.subheader("Action register")

    with st.expander("Add action", expanded=False):
        text = st.text_area("Recommended action", key="new_action_text")
        c1, c2 = st.columns(2)
        category = c1.selectbox("Finding category", FINDING_CATEGORIES, index=len(FINDING_CATEGORIES) - 1)
        timescale = c2.selectbox("Timescale", [""] + TIMESCALES, format_func=lambda t: t or "Suggested")
        flags = {}
        flag_cols = st.columns(2)
        for i, name in enumerate(k for k in FraActionInput.model_fields if k != "category"):
            flags[name] = flag_cols[i % 2].checkbox(name.replace("_", " ").capitalize(), key=f"flag:{name}")
        if st.button("Add action", disabled=locked):
            profile = next((m.get("data") for m in instances if m["module_key"] == "A2_BUILDING_PROFILE"), {})
            try:
                row = create_action(
                    store, doc_id, text,
                    module_instance_id=module_id,
                    action_input=FraActionInput(category=category, **flags),
                    ctx=fra_context_from_profile(profile),
                    timescale=timescale or None,
                )
                st.success(f"Added {row.get('priority_band')} action ({row.get('trigger_id') or 'no trigger'})")
                st.rerun()
            except ValueError as e:
                st.warning(str(e))
            except EziRiskError as e:
                st.error(str(e))

    entries = build_action_register(store, document_id=doc_id, today=date.today())
    stats = get_action_register_stats(entries)
    m = st.columns(5)
    m[0].metric("Open", stats["open"])
    m[1].metric("Overdue", stats["overdue"])
    m[2].metric("Due soon", stats["due_soon"])
    m[3].metric("P1", stats["p1"])
    m[4].metric("Closed", stats["closed"])

    f1, f2, f3 = st.columns(3)
    status_f = f1.multiselect("Status", ["open", "in_progress", "closed"])
    priority_f = f2.multiselect("Priority", ["P1", "P2", "P3", "P4"])
    tracking_f = f3.multiselect("Tracking", ["overdue", "due_soon", "on_track", "closed"])
    shown = filter_action_register(entries, status=status_f, priority=priority_f, tracking=tracking_f)

    if not shown:
        st.info("No actions match.")
    else:
        st.dataframe(action_register_frame(shown), use_container_width=True, hide_index=True)
        pick = st.selectbox("Action", [e["id"] for e in shown],
                            format_func=lambda i: next(e["recommended_action"][:80] for e in shown if e["id"] == i))
        picked = next(e for e in shown if e["id"] == pick)
        if picked.get("status") == "closed":
            if st.button("Reopen", disabled=locked):
                reopen_action(store, pick)
                st.rerun()
        else:
            note = st.text_input("Closure note")
            if st.button("Close action", disabled=locked):
                close_action(store, pick, note or None)
                st.rerun()

    st.download_button("Download CSV", export_action_register_csv(shown),
                       file_name=f"action-register-{date.today().isoformat()}.csv", mime="text/csv")


# --- Tab 2: Issue readiness --- #
with tabs[2]:
    st.subheader("Issue readiness")
    st.dataframe(module_progress_frame(instances), use_container_width=True, hide_index=True)
    try:
        result = check_document_issue_readiness(store, doc_id)
    except EziRiskError as e:
        st.error(str(e))
    else:
        if result.eligible:
            st.success(get_validation_summary(result))
        else:
            st.error(get_validation_summary(result))
            for module_key, blockers in group_blockers_by_module(result.blockers).items():
                title = "General" if module_key == "general" else get_module_display_name(module_key)
                with st.expander(f"{title} ({len(blockers)})", expanded=True):
                    for b in blockers:
                        st.write(f"- {b.message}")

    st.markdown("**Versions**")
    history = get_document_version_history(store, doc.get("base_document_id") or doc_id)
    st.dataframe(pd.DataFrame([{"Version": d.get("version_number"), "Status": d.get("issue_status"),
                                "Issued": d.get("issue_date") or "-"} for d in history]),
                 use_container_width=True, hide_index=True)
    if not locked and st.button("Issue document"):
        try:
            issue_document(store, doc_id)
            st.rerun()
        except EziRiskError as e:
            st.error(str(e))
    if doc.get("issue_status") == "issued" and st.button("Create new version"):
        try:
            new_doc = create_new_version(store, doc.get("base_document_id") or doc_id)
            st.success(f"Draft v{new_doc['version_number']} created")
        except EziRiskError as e:
            st.error(str(e))


# --- Tab 3: Summary --- #
with tabs[3]:
    st.subheader("Executive summary")
    use_llm = st.checkbox("Polish wording with LLM", value=bool(_cfg.get("use_llm_summary")))
    if st.button("Generate summary", disabled=locked):
        try:
            with st.spinner("Generating..."):
                generate_executive_summary(store, doc_id, doc.get("organisation_id"), use_llm=use_llm)
            st.rerun()
        except SummaryError as e:
            st.error(str(e))
        except Exception as e:
            logger.exception("Summary generation failed for %s", doc_id)
            st.error(f"Summary generation failed: {e}")
    if doc.get("executive_summary_ai"):
        st.text(doc["executive_summary_ai"])
    else:
        st.caption("No summary generated yet.")
