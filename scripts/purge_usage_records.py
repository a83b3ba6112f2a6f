#!/usr/bin/env python3
"""
Delete recipe_usage rows older than the retention window.

Counter rows are only read for the current UTC day, so older rows are dead
weight. Schedule this daily (cron / Render cron job).

Run from project root with DATABASE_URL set:
  python scripts/purge_usage_records.py
  python scripts/purge_usage_records.py --days 7
  python scripts/purge_usage_records.py --dry-run
"""

from __future__ import annotations

import argparse
import os
import sys
from datetime import timedelta
from pathlib import Path

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv
load_dotenv(project_root / ".env")
load_dotenv(project_root / ".env.local")

from app.db.session import SessionLocal
from app.models.recipe_usage import RecipeUsage
from app.services.usage_counter import purge_usage_before, utc_today

DEFAULT_RETENTION_DAYS = 30


def main() -> None:
    parser = argparse.ArgumentParser(description="Purge old recipe_usage rows")
    parser.add_argument("--days", type=int, default=DEFAULT_RETENTION_DAYS, help="Keep this many days of usage (default 30)")
    parser.add_argument("--dry-run", action="store_true", help="Only count the rows that would be deleted")
    args = parser.parse_args()

    if not os.getenv("DATABASE_URL"):
        print("ERROR: DATABASE_URL not set. Add it to .env or export it.")
        sys.exit(1)
    if args.days < 1:
        print("ERROR: --days must be at least 1 (today's counters are live).")
        sys.exit(1)

    cutoff = utc_today() - timedelta(days=args.days)
    sess = SessionLocal()
    try:
        if args.dry_run:
            n = sess.query(RecipeUsage).filter(RecipeUsage.date < cutoff).count()
            print(f"{n} recipe_usage rows before {cutoff.isoformat()} would be deleted.")
            return
        n = purge_usage_before(sess, cutoff)
        print(f"Deleted {n} recipe_usage rows before {cutoff.isoformat()}.")
    except Exception as e:
        sess.rollback()
        print(f"ERROR: purge failed: {e}")
        raise
    finally:
        sess.close()


if __name__ == "__main__":
    main()
