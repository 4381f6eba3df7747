# ezirisk/utils/jsonsafe.py
from __future__ import annotations
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

import numpy as np


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def to_jsonable(val: Any) -> Any:
    """Deep-coerce form payloads so the jsonb column never sees non-JSON values."""
    if val is None or isinstance(val, (bool, str)):
        return val
    if isinstance(val, Enum):
        return to_jsonable(val.value)
    if isinstance(val, (np.integer, np.floating, np.bool_)):
        return val.item()
    if isinstance(val, (int, float)):
        return val
    if isinstance(val, (datetime, date)):
        return val.isoformat()
    if isinstance(val, Decimal):
        return float(val)
    if isinstance(val, dict):
        return {str(k): to_jsonable(v) for k, v in val.items()}
    if isinstance(val, (list, tuple, set, frozenset)):
        items = sorted(val, key=str) if isinstance(val, (set, frozenset)) else val
        return [to_jsonable(v) for v in items]
    return str(val)
