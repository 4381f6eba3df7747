# ezirisk/storage/factory.py
import os
from typing import Optional

from ezirisk.config import get_config
from ezirisk.schemas.contracts import StoreBackend
from ezirisk.storage.base import Store
from ezirisk.storage.local_store import LocalStore


def select_backend() -> StoreBackend:
    val = (os.environ.get("EZIRISK_STORE") or get_config()["store_backend"] or "local").lower()
    try:
        return StoreBackend(val)
    except ValueError:
        return StoreBackend.LOCAL


def get_store(name: Optional[str] = None) -> Store:
    cfg = get_config()
    name = (name or select_backend().value).lower()
    if name == StoreBackend.LOCAL.value:
        return LocalStore(cfg["data_dir"], signing_secret=cfg["url_signing_secret"])
    if name == StoreBackend.SUPABASE.value:
        # imported lazily so local dev does not need network config
        from ezirisk.storage.supabase_store import SupabaseStore
        return SupabaseStore(cfg["supabase_url"], cfg["supabase_key"])
    raise ValueError(f"Unknown store backend: {name}")
