# ezirisk/utils/events.py
import json, os
from datetime import datetime, timezone
from typing import Dict, Any


def _events_path() -> str:
    return os.environ.get("EZIRISK_EVENTS_PATH", "data/events.jsonl")


def publish(event_type: str, payload: Dict[str, Any]) -> None:
    path = _events_path()
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    record = {
        "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "type": event_type,
        "payload": payload,
    }
    with open(path, "a", encoding="utf-8") as f:
        f.write(json.dumps(record, ensure_ascii=False, default=str) + "\n")


def read_events(event_type: str | None = None) -> list[dict]:
    path = _events_path()
    if not os.path.exists(path):
        return []
    out = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            rec = json.loads(line)
            if event_type and rec.get("type") != event_type:
                continue
            out.append(rec)
    return out
