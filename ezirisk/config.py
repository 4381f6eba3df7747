# ezirisk/config.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict

import yaml
from dotenv import load_dotenv

# local dev: pick up SUPABASE_URL / OPENAI_API_KEY etc. from .env
load_dotenv()


def _load_yaml(path: str | Path) -> dict:
    """YAML loader; returns {} if the file is missing or empty."""
    p = Path(path)
    if not p.exists():
        return {}
    with p.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data or {}


def _getenv_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return str(v).strip().lower() in ("1", "true", "yes", "on")


def _getenv_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or not str(v).strip():
        return default
    return int(v)


def get_config() -> Dict[str, Any]:
    """
    Central place for app/runtime config.
    Merges (in order): defaults <- YAML (if present) <- ENV.
    """
    cfg: Dict[str, Any] = {}
    for candidate in ("ezirisk/config.yaml", "config.yaml"):
        cfg.update(_load_yaml(candidate))

    defaults = {
        "store_backend": "local",  # local | supabase
        "data_dir": "data",
        "supabase_url": "",
        "supabase_key": "",
        "evidence_bucket": "evidence",
        "signed_url_ttl": 3600,
        "max_upload_mb": 10,
        "log_level": "INFO",
        "use_llm_summary": False,
        "llm_summary_model": "gpt-4o-mini",
        "url_signing_secret": "ezirisk-local-dev",
    }

    merged = {**defaults, **cfg}

    # ENV overrides
    merged["store_backend"] = os.getenv("EZIRISK_STORE", merged["store_backend"])
    merged["data_dir"] = os.getenv("EZIRISK_DATA_DIR", merged["data_dir"])
    merged["supabase_url"] = os.getenv("SUPABASE_URL", merged["supabase_url"])
    merged["supabase_key"] = os.getenv("SUPABASE_KEY", merged["supabase_key"])
    merged["evidence_bucket"] = os.getenv("EZIRISK_EVIDENCE_BUCKET", merged["evidence_bucket"])
    merged["signed_url_ttl"] = _getenv_int("EZIRISK_SIGNED_URL_TTL", int(merged["signed_url_ttl"]))
    merged["max_upload_mb"] = _getenv_int("EZIRISK_MAX_UPLOAD_MB", int(merged["max_upload_mb"]))
    merged["log_level"] = os.getenv("EZIRISK_LOG_LEVEL", merged["log_level"])
    merged["use_llm_summary"] = _getenv_bool("USE_LLM_SUMMARY", bool(merged["use_llm_summary"]))
    merged["llm_summary_model"] = os.getenv("LLM_SUMMARY_MODEL", merged["llm_summary_model"])
    merged["url_signing_secret"] = os.getenv("EZIRISK_URL_SECRET", merged["url_signing_secret"])

    return merged
