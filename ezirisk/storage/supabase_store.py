# ezirisk/storage/supabase_store.py
from __future__ import annotations
from typing import Any, Dict, List, Optional, Iterable
import logging

from supabase import create_client, Client

logger = logging.getLogger(__name__)


class SupabaseStore:
    """Thin adapter over supabase-py. Errors from the client propagate to callers."""

    def __init__(self, url: str, key: str, client: Optional[Client] = None):
        if client is None and (not url or not key):
            raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set for the supabase backend")
        self.client: Client = client or create_client(url, key)

    # --- records --------------------------------------------------------------

    def get_row(self, table: str, row_id: str) -> Optional[Dict[str, Any]]:
        resp = self.client.table(table).select("*").eq("id", row_id).limit(1).execute()
        rows = resp.data or []
        return rows[0] if rows else None

    def select(self, table: str, **eq: Any) -> List[Dict[str, Any]]:
        query = self.client.table(table).select("*")
        for k, v in eq.items():
            query = query.is_(k, "null") if v is None else query.eq(k, v)
        return query.execute().data or []

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        resp = self.client.table(table).insert(row).execute()
        return (resp.data or [row])[0]

    def update(self, table: str, row_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        resp = self.client.table(table).update(patch).eq("id", row_id).execute()
        rows = resp.data or []
        if not rows:
            raise KeyError(f"{table}:{row_id}")
        return rows[0]

    def delete(self, table: str, row_id: str) -> None:
        self.client.table(table).delete().eq("id", row_id).execute()

    # --- blobs ----------------------------------------------------------------

    def upload(self, bucket: str, path: str, content: bytes, content_type: str) -> str:
        self.client.storage.from_(bucket).upload(
            path,
            content,
            {"content-type": content_type, "cache-control": "3600", "upsert": "false"},
        )
        return path

    def remove(self, bucket: str, paths: Iterable[str]) -> None:
        self.client.storage.from_(bucket).remove(list(paths))

    def create_signed_url(self, bucket: str, path: str, expires_in: int) -> str:
        data = self.client.storage.from_(bucket).create_signed_url(path, expires_in)
        # supabase-py has returned both spellings across releases
        url = data.get("signedURL") or data.get("signedUrl") or data.get("signed_url")
        if not url:
            raise RuntimeError(f"No signed URL returned for {bucket}/{path}")
        return url
