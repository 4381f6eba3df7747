# ezirisk/reports/frames.py
from typing import Any, Dict, List

import pandas as pd

from ezirisk.actions.register import register_dataframe
from ezirisk.issue.validation import module_progress_from_instances
from ezirisk.modules.catalog import get_module_code, get_module_display_name, sort_modules_by_order
from ezirisk.schemas.contracts import OUTCOME_LABELS

PROGRESS_COLUMNS = ["Code", "Module", "Status", "Outcome", "Updated"]


def module_progress_frame(instances: List[Dict[str, Any]]) -> pd.DataFrame:
    """One row per module instance, in catalog order."""
    progress = module_progress_from_instances(instances)
    rows = []
    for m in sort_modules_by_order(instances):
        key = m["module_key"]
        outcome = m.get("outcome") or ""
        rows.append([
            get_module_code(key),
            get_module_display_name(key),
            progress.get(key, "not_started").replace("_", " "),
            OUTCOME_LABELS.get(outcome, outcome),
            (m.get("updated_at") or "")[:10],
        ])
    return pd.DataFrame(rows, columns=PROGRESS_COLUMNS)


def action_register_frame(entries: List[Dict[str, Any]]) -> pd.DataFrame:
    df = register_dataframe(entries)
    df["Age (Days)"] = pd.to_numeric(df["Age (Days)"], errors="coerce").fillna(0).astype(int)
    if entries:
        df.insert(0, "Ref", [e.get("reference_number") or "" for e in entries])
    else:
        df.insert(0, "Ref", pd.Series(dtype=str))
    return df
