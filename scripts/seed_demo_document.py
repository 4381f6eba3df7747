# scripts/seed_demo_document.py
"""
Seed the local store with a demo organisation, one draft document of the
requested type, its module instances and a couple of actions.

    python scripts/seed_demo_document.py --type FRA --title "Riverside House"
"""
import argparse
import logging
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from ezirisk.actions.register import assign_action_reference_numbers, create_action
from ezirisk.config import get_config
from ezirisk.fra.severity import FraActionInput, FraContext
from ezirisk.modules.catalog import modules_for_doc_type
from ezirisk.schemas.models import Document, ModuleInstance, Organisation
from ezirisk.storage.factory import get_store
from ezirisk.utils.jsonsafe import utc_now_iso
from ezirisk.utils.logs import setup_logging

logger = logging.getLogger("ezirisk.seed")

DEMO_ACTIONS = [
    ("Remove stored combustibles from the ground floor escape corridor.",
     FraActionInput(category="MeansOfEscape", final_exit_obstructed=True)),
    ("Introduce a documented weekly fire alarm test with a log book.",
     FraActionInput(category="Management")),
]


def seed(store, doc_type: str, title: str, with_actions: bool = True) -> dict:
    org = store.insert("organisations", Organisation(name="Demo Organisation").to_row())
    doc = Document(
        organisation_id=org["id"],
        title=title,
        document_type=doc_type,
        assessment_date=utc_now_iso()[:10],
        scope_description="All common areas and plant rooms",
        updated_at=utc_now_iso(),
    )
    doc.base_document_id = doc.id
    doc = store.insert("documents", doc.to_row())

    for key in modules_for_doc_type(doc_type):
        store.insert("module_instances", ModuleInstance(
            document_id=doc["id"], organisation_id=org["id"], module_key=key,
        ).to_row())

    if with_actions and doc_type != "RE":
        for text, action_input in DEMO_ACTIONS:
            create_action(store, doc["id"], text, action_input=action_input, ctx=FraContext(), source="seed")
        assign_action_reference_numbers(store, doc["id"], doc["id"])

    logger.info("Seeded %s document %s (%s)", doc_type, doc["id"], title)
    return doc


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Seed a demo assessment document")
    parser.add_argument("--type", dest="doc_type", default="FRA", choices=["FRA", "FSD", "DSEAR", "RE"])
    parser.add_argument("--title", default="Demo assessment")
    parser.add_argument("--no-actions", action="store_true", help="skip the demo actions")
    args = parser.parse_args(argv)

    cfg = get_config()
    setup_logging(cfg["log_level"], str(Path(cfg["data_dir"]) / "logs"))
    doc = seed(get_store(), args.doc_type, args.title, with_actions=not args.no_actions)
    print(doc["id"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
