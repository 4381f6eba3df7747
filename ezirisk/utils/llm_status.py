# ezirisk/utils/llm_status.py
from __future__ import annotations
import logging
import os
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# ---- in-memory state (process-local) ----
_last_start_ts: Optional[float] = None     # epoch seconds
_last_duration_s: Optional[float] = None
_last_success: Optional[bool] = None
_last_model: Optional[str] = None


def record_llm_call_start(model_name: str):
    global _last_start_ts, _last_model, _last_success
    _last_start_ts = time.time()
    _last_model = model_name
    _last_success = None


def record_llm_call_end(success: bool):
    global _last_duration_s, _last_success
    if _last_start_ts:
        _last_duration_s = time.time() - _last_start_ts
    _last_success = bool(success)


def get_api_key() -> Optional[str]:
    """OPENAI_API_KEY from env, else streamlit secrets (read lazily, never at import)."""
    key = os.environ.get("OPENAI_API_KEY")
    if key:
        return key
    try:
        import streamlit as st
        v = st.secrets.get("OPENAI_API_KEY", "")
        return str(v) if v else None
    except FileNotFoundError:
        return None
    except Exception as e:
        logger.debug("secrets lookup suppressed: %r", e)
        return None


def get_llm_status() -> Dict[str, Any]:
    model = _last_model or os.environ.get("LLM_SUMMARY_MODEL") or "gpt-4o-mini"
    last_call_iso = None
    if _last_start_ts:
        last_call_iso = datetime.fromtimestamp(_last_start_ts, tz=timezone.utc).isoformat(timespec="seconds")
    return {
        "api_key_set": bool(get_api_key()),
        "model": model,
        "last_call": last_call_iso,
        "last_duration": None if _last_duration_s is None else round(_last_duration_s, 2),
        "last_success": _last_success,
    }
