# scripts/migrate_fra_actions.py
"""
Fill severity_tier / priority_band / trigger_* on legacy FRA actions of one
document (or every FRA document with --all).

    python scripts/migrate_fra_actions.py <document_id> [--dry-run]
"""
import argparse
import logging
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from ezirisk.config import get_config
from ezirisk.fra.findings import fra_context_from_profile
from ezirisk.fra.severity import migrate_legacy_action, needs_migration
from ezirisk.storage.errors import RecordNotFound
from ezirisk.storage.factory import get_store
from ezirisk.utils.events import publish
from ezirisk.utils.logs import setup_logging

logger = logging.getLogger("ezirisk.migrate")

_MIGRATED_FIELDS = ("severity_tier", "priority_band", "trigger_id", "trigger_text")


def migrate_document(store, document_id: str, dry_run: bool = False) -> int:
    doc = store.get_row("documents", document_id)
    if doc is None:
        raise RecordNotFound("documents", document_id)

    profile = next((m.get("data") for m in store.select("module_instances", document_id=document_id)
                    if m["module_key"] == "A2_BUILDING_PROFILE"), {})
    ctx = fra_context_from_profile(profile)

    migrated = 0
    for action in store.select("actions", document_id=document_id):
        if action.get("deleted_at") or not needs_migration(action):
            continue
        updated = migrate_legacy_action(action, ctx)
        logger.info("%s %s -> %s (%s)", "Would migrate" if dry_run else "Migrating",
                    action["id"], updated["priority_band"], updated["trigger_id"])
        if not dry_run:
            store.update("actions", action["id"], {k: updated[k] for k in _MIGRATED_FIELDS})
        migrated += 1

    if migrated and not dry_run:
        publish("ActionsMigrated", {"document_id": document_id, "count": migrated})
    return migrated


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Migrate legacy FRA action scores to severity tiers")
    parser.add_argument("document_id", nargs="?")
    parser.add_argument("--all", action="store_true", help="migrate every FRA document")
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args(argv)
    if not args.document_id and not args.all:
        parser.error("document_id or --all is required")

    cfg = get_config()
    setup_logging(cfg["log_level"], str(Path(cfg["data_dir"]) / "logs"))
    store = get_store()

    ids = [args.document_id] if args.document_id else \
        [d["id"] for d in store.select("documents", document_type="FRA")]
    total = sum(migrate_document(store, doc_id, args.dry_run) for doc_id in ids)
    print(f"{'Would migrate' if args.dry_run else 'Migrated'} {total} action(s) across {len(ids)} document(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
