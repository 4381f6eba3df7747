import pytest

from ezirisk.modules.catalog import modules_for_doc_type
from ezirisk.schemas.models import Document, ModuleInstance, Organisation
from ezirisk.storage.local_store import LocalStore


@pytest.fixture
def store(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("EZIRISK_EVENTS_PATH", str(tmp_path / "events.jsonl"))
    monkeypatch.delenv("EZIRISK_STORE", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    return LocalStore(tmp_path / "data", signing_secret="test-secret")


@pytest.fixture
def org(store):
    return store.insert("organisations", Organisation(name="Acme", max_storage_mb=1.0).to_row())


@pytest.fixture
def make_document(store, org):
    """Inserts a document (plus its catalog modules) and returns the documents row."""
    def _make(doc_type="FRA", with_modules=True, **fields):
        doc = Document(organisation_id=org["id"], document_type=doc_type, **fields)
        if not doc.base_document_id:
            doc.base_document_id = doc.id
        row = store.insert("documents", doc.to_row())
        if with_modules:
            for key in modules_for_doc_type(doc_type):
                store.insert("module_instances", ModuleInstance(
                    document_id=row["id"], organisation_id=org["id"], module_key=key).to_row())
        return row
    return _make


@pytest.fixture
def instance_of(store):
    def _get(document_id, module_key):
        return store.select("module_instances", document_id=document_id, module_key=module_key)[0]
    return _get
