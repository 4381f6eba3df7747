# ezirisk/storage/local_store.py
from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, List, Optional, Iterable
from datetime import datetime, date
from urllib.parse import urlencode, urlparse, parse_qs
import hashlib
import hmac
import json
import time


def _json_default(o: Any):
    # Serialize datetimes & dates as ISO-8601 strings
    if isinstance(o, (datetime, date)):
        return o.isoformat()
    return str(o)


def _read_json(path: Path) -> dict:
    if path.exists():
        return json.loads(path.read_text(encoding="utf-8"))
    return {}


def _write_json(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False, default=_json_default), encoding="utf-8")


class LocalStore:
    """
    File-backed stand-in for the hosted backend, used for local dev and tests.
    Tables:  <data_dir>/tables/<table>.json   as {id: row}
    Blobs:   <data_dir>/blobs/<bucket>/<path>
    """

    def __init__(self, data_dir: str | Path = "data", signing_secret: str = "ezirisk-local-dev"):
        self.root = Path(data_dir)
        self._secret = signing_secret.encode("utf-8")

    # --- records --------------------------------------------------------------

    def _table_path(self, table: str) -> Path:
        return self.root / "tables" / f"{table}.json"

    def get_row(self, table: str, row_id: str) -> Optional[Dict[str, Any]]:
        return _read_json(self._table_path(table)).get(row_id)

    def select(self, table: str, **eq: Any) -> List[Dict[str, Any]]:
        rows = list(_read_json(self._table_path(table)).values())
        return [r for r in rows if all(r.get(k) == v for k, v in eq.items())]

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        if not row.get("id"):
            raise ValueError(f"insert into {table} requires an id")
        path = self._table_path(table)
        data = _read_json(path)
        if row["id"] in data:
            raise ValueError(f"duplicate id in {table}: {row['id']}")
        data[row["id"]] = row
        _write_json(path, data)
        return data[row["id"]]

    def update(self, table: str, row_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        path = self._table_path(table)
        data = _read_json(path)
        if row_id not in data:
            raise KeyError(f"{table}:{row_id}")
        data[row_id] = {**data[row_id], **patch}
        _write_json(path, data)
        return data[row_id]

    def delete(self, table: str, row_id: str) -> None:
        path = self._table_path(table)
        data = _read_json(path)
        if data.pop(row_id, None) is not None:
            _write_json(path, data)

    # --- blobs ----------------------------------------------------------------

    def _blob_path(self, bucket: str, path: str) -> Path:
        p = (self.root / "blobs" / bucket / path).resolve()
        base = (self.root / "blobs" / bucket).resolve()
        if base not in p.parents:
            raise ValueError(f"blob path escapes bucket: {path}")
        return p

    def upload(self, bucket: str, path: str, content: bytes, content_type: str) -> str:
        target = self._blob_path(bucket, path)
        if target.exists():
            # mirrors upsert=False on the hosted bucket
            raise FileExistsError(f"{bucket}/{path} already exists")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        return path

    def remove(self, bucket: str, paths: Iterable[str]) -> None:
        for p in paths:
            target = self._blob_path(bucket, p)
            if target.exists():
                target.unlink()

    def read_blob(self, bucket: str, path: str) -> bytes:
        return self._blob_path(bucket, path).read_bytes()

    def _sign(self, bucket: str, path: str, expires: int) -> str:
        msg = f"{bucket}/{path}:{expires}".encode("utf-8")
        return hmac.new(self._secret, msg, hashlib.sha256).hexdigest()

    def create_signed_url(self, bucket: str, path: str, expires_in: int) -> str:
        target = self._blob_path(bucket, path)
        if not target.exists():
            raise FileNotFoundError(f"{bucket}/{path}")
        expires = int(time.time()) + int(expires_in)
        query = urlencode({"bucket": bucket, "key": path, "expires": expires,
                           "token": self._sign(bucket, path, expires)})
        return f"{target.as_uri()}?{query}"

    def verify_signed_url(self, url: str, now: Optional[float] = None) -> bool:
        q = parse_qs(urlparse(url).query)
        try:
            bucket, key = q["bucket"][0], q["key"][0]
            expires, token = int(q["expires"][0]), q["token"][0]
        except (KeyError, IndexError, ValueError):
            return False
        if (now if now is not None else time.time()) > expires:
            return False
        return hmac.compare_digest(token, self._sign(bucket, key, expires))
