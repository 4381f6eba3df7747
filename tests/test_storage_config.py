import pytest

from ezirisk.config import get_config
from ezirisk.schemas.contracts import StoreBackend
from ezirisk.storage.factory import get_store, select_backend
from ezirisk.storage.local_store import LocalStore


@pytest.fixture(autouse=True)
def _isolated(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in ("EZIRISK_STORE", "EZIRISK_DATA_DIR", "EZIRISK_MAX_UPLOAD_MB", "USE_LLM_SUMMARY"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    cfg = get_config()
    assert cfg["store_backend"] == "local"
    assert cfg["max_upload_mb"] == 10
    assert cfg["use_llm_summary"] is False


def test_yaml_then_env_overrides(tmp_path, monkeypatch):
    (tmp_path / "config.yaml").write_text("max_upload_mb: 5\nevidence_bucket: photos\n", encoding="utf-8")
    monkeypatch.setenv("EZIRISK_MAX_UPLOAD_MB", "25")
    monkeypatch.setenv("USE_LLM_SUMMARY", "yes")
    cfg = get_config()
    assert cfg["evidence_bucket"] == "photos"
    assert cfg["max_upload_mb"] == 25
    assert cfg["use_llm_summary"] is True


def test_backend_selection(monkeypatch):
    assert select_backend() is StoreBackend.LOCAL
    monkeypatch.setenv("EZIRISK_STORE", "SUPABASE")
    assert select_backend() is StoreBackend.SUPABASE
    monkeypatch.setenv("EZIRISK_STORE", "mongo")
    assert select_backend() is StoreBackend.LOCAL


def test_get_store(tmp_path, monkeypatch):
    monkeypatch.setenv("EZIRISK_DATA_DIR", str(tmp_path / "d"))
    store = get_store()
    assert isinstance(store, LocalStore)
    assert store.root == tmp_path / "d"
    with pytest.raises(ValueError, match="Unknown store backend: mongo"):
        get_store("mongo")


def test_local_store_rows(tmp_path):
    store = LocalStore(tmp_path)
    with pytest.raises(ValueError):
        store.insert("documents", {"title": "no id"})
    store.insert("documents", {"id": "d1", "title": "A", "organisation_id": "o1"})
    store.update("documents", "d1", {"title": "B"})
    assert store.select("documents", organisation_id="o1") == [{"id": "d1", "title": "B", "organisation_id": "o1"}]
    with pytest.raises(KeyError):
        store.update("documents", "nope", {})
    store.delete("documents", "d1")
    assert store.get_row("documents", "d1") is None


def test_blob_paths_stay_in_bucket(tmp_path):
    store = LocalStore(tmp_path)
    with pytest.raises(ValueError):
        store.upload("evidence", "../outside.txt", b"x", "text/plain")
    store.upload("evidence", "a/b.png", b"x", "image/png")
    with pytest.raises(FileExistsError):
        store.upload("evidence", "a/b.png", b"y", "image/png")
