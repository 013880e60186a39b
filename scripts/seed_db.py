"""
Seed script for the Civic Desk mock DB or Firestore.

Usage:
  - Dry run (default): python scripts/seed_db.py
  - Apply to configured DB: python scripts/seed_db.py --apply
  - Force mock DB even if FIREBASE configured: python scripts/seed_db.py --apply --force-mock

Behavior:
  - Loads `db_seed.json` from the working directory (demo accounts and complaints).
  - Gets DB via `app.config.firebase.get_db()` which returns the mock DB or real Firestore depending on settings.
  - Writes each top-level collection/document to the DB, keeping the seed document ids.

NOTE: Seeded timestamps are ISO strings; the repositories parse them on read.
"""

import argparse
import json
import os
from typing import Any

from app.config.firebase import get_db
from app.core.settings import settings


def load_seed(path: str = "./db_seed.json") -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def write_to_db(db: Any, seed: dict, apply: bool = False) -> int:
    """Write (or, without ``apply``, just list) every seed document. Returns the number written."""
    written = 0
    for collection, docs in seed.items():
        for doc_id, data in docs.items():
            print(f"Preparing: {collection}/{doc_id}")
            if not apply:
                continue
            try:
                db.collection(collection).document(doc_id).set(data)
                written += 1
                print(f"Wrote: {collection}/{doc_id}")
            except Exception as e:
                print(f"Failed to write {collection}/{doc_id}: {e}")
    return written


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--apply", action="store_true", help="Write seed to the DB instead of dry-run")
    parser.add_argument("--force-mock", action="store_true", help="Force use of mock DB even if FIREBASE configured")
    parser.add_argument("--seed", default=os.path.join(os.getcwd(), "db_seed.json"), help="Seed file path")
    args = parser.parse_args()

    if not os.path.exists(args.seed):
        print(f"Seed file not found: {args.seed}")
        return

    seed = load_seed(args.seed)

    if args.force_mock:
        print("Forcing mock DB usage for this run.")
        settings.USE_MOCK_DB = True

    db = get_db()

    written = write_to_db(db, seed, apply=args.apply)

    if args.apply:
        print(f"Seeding completed: {written} documents.")
    else:
        print("Dry run complete. Re-run with --apply to write to DB.")


if __name__ == "__main__":
    main()
