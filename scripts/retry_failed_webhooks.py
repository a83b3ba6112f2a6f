#!/usr/bin/env python3
"""
Replay Stripe webhook events that failed after their signature was verified.

Failed events are stored in webhook_event_failures by the webhook endpoint.
Each run re-applies unresolved rows with fewer than --max-attempts attempts.

Run from project root with DATABASE_URL and STRIPE_SECRET_KEY set:
  python scripts/retry_failed_webhooks.py
  python scripts/retry_failed_webhooks.py --max-attempts 10
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv
load_dotenv(project_root / ".env")
load_dotenv(project_root / ".env.local")

import stripe

from app.core.config import settings
from app.db.session import SessionLocal
from app.services.subscription_sync import MAX_RETRY_ATTEMPTS, retry_failed_events


def main() -> None:
    parser = argparse.ArgumentParser(description="Retry dead-lettered Stripe webhook events")
    parser.add_argument("--max-attempts", type=int, default=MAX_RETRY_ATTEMPTS, dest="max_attempts",
                        help="Skip events that already failed this many times")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    if not os.getenv("DATABASE_URL"):
        print("ERROR: DATABASE_URL not set. Add it to .env or export it.")
        sys.exit(1)
    if not settings.STRIPE_SECRET_KEY:
        print("ERROR: STRIPE_SECRET_KEY not set; invoice events need it to look up subscriptions.")
        sys.exit(1)

    stripe_client = stripe.StripeClient(settings.STRIPE_SECRET_KEY)
    sess = SessionLocal()
    try:
        summary = retry_failed_events(sess, stripe_client, max_attempts=args.max_attempts)
    finally:
        sess.close()

    print(f"Resolved: {summary['resolved']}, still failing: {summary['failed']}")
    if summary["failed"]:
        sys.exit(2)


if __name__ == "__main__":
    main()
