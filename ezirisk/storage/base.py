# ezirisk/storage/base.py
from __future__ import annotations
from typing import Protocol, Any, Dict, List, Optional, Iterable


class RecordStore(Protocol):
    """Row access over the hosted tables. Only single-row writes; no transactions."""

    def get_row(self, table: str, row_id: str) -> Optional[Dict[str, Any]]: ...
    def select(self, table: str, **eq: Any) -> List[Dict[str, Any]]: ...
    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]: ...
    def update(self, table: str, row_id: str, patch: Dict[str, Any]) -> Dict[str, Any]: ...
    def delete(self, table: str, row_id: str) -> None: ...


class BlobStore(Protocol):
    def upload(self, bucket: str, path: str, content: bytes, content_type: str) -> str: ...
    def remove(self, bucket: str, paths: Iterable[str]) -> None: ...
    def create_signed_url(self, bucket: str, path: str, expires_in: int) -> str: ...


class Store(RecordStore, BlobStore, Protocol):
    """Both halves; every backend implements the pair."""
