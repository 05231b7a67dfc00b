"""
Convert legacy `artworks` documents into media sets and media documents.

Runs the same migration as the `migrate_artworks_to_assets` callable against
the configured Firestore project. Use --dry-run to list what would be written.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.db import InMemoryDocumentStore
from backend.dependencies import get_document_store
from media_pipeline.migration import migrate_artworks_to_assets


logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Migrate artworks to media sets")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log the artworks that would be migrated without writing",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    store = get_document_store()
    if isinstance(store, InMemoryDocumentStore):
        logger.error(
            "No Firestore project configured; set FIREBASE_PROJECT_ID to migrate."
        )
        return 1

    result = migrate_artworks_to_assets(store, dry_run=args.dry_run)
    logger.info("Migrated %d artworks%s.", result["migrated"], " (dry run)" if args.dry_run else "")
    return 0


if __name__ == "__main__":
    sys.exit(main())
