"""
Applies Stripe subscription lifecycle events to users.

Every handler overwrites fields rather than incrementing them, so replaying an
event leaves the user in the same state. Events that fail after the signature
has been verified are kept in webhook_event_failures and replayed by
retry_failed_events().
"""
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.plan_limits import SUBSCRIPTION_PLANS, normalize_provider_status
from app.models.subscription_event import SubscriptionEvent
from app.models.user import User
from app.models.webhook_event_failure import WebhookEventFailure

logger = logging.getLogger(__name__)

MAX_RETRY_ATTEMPTS = 5

APPLIED = "applied"
IGNORED = "ignored"
DUPLICATE = "duplicate"
FAILED = "failed"


class SubscriptionSyncError(Exception):
    """An event could not be applied; it belongs in the dead-letter table."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _from_timestamp(value) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def _metadata_user_id(obj: dict) -> Optional[str]:
    metadata = obj.get("metadata") or {}
    return metadata.get("user_id") or metadata.get("userId")


def subscription_period_end(subscription: dict) -> Optional[datetime]:
    # Newer API versions moved the billing period onto the subscription items
    if subscription.get("current_period_end"):
        return _from_timestamp(subscription["current_period_end"])
    items = (subscription.get("items") or {}).get("data") or []
    if items and items[0].get("current_period_end"):
        return _from_timestamp(items[0]["current_period_end"])
    return None


def _period_start(subscription: dict) -> Optional[datetime]:
    if subscription.get("current_period_start"):
        return _from_timestamp(subscription["current_period_start"])
    items = (subscription.get("items") or {}).get("data") or []
    if items and items[0].get("current_period_start"):
        return _from_timestamp(items[0]["current_period_start"])
    return _from_timestamp(subscription.get("start_date"))


def _invoice_subscription_id(invoice: dict) -> Optional[str]:
    if invoice.get("subscription"):
        sub = invoice["subscription"]
        return sub.get("id") if isinstance(sub, dict) else sub
    parent = invoice.get("parent") or {}
    return (parent.get("subscription_details") or {}).get("subscription")


def _retrieve_subscription(stripe_client, subscription_id: str) -> dict:
    return stripe_client.subscriptions.retrieve(subscription_id).to_dict()


def _resolve_user(db: Session, user_id: Optional[str], customer_id: Optional[str]) -> User:
    user = None
    if user_id:
        user = db.query(User).filter(User.id == user_id).first()
    # Fallback: resolve by the Stripe customer attached to the user at checkout
    if user is None and customer_id:
        user = db.query(User).filter(User.stripe_customer_id == customer_id).first()
    if user is None:
        raise SubscriptionSyncError(f"No user for user_id={user_id!r} customer={customer_id!r}")
    return user


def handle_checkout_completed(db: Session, obj: dict, stripe_client) -> User:
    user = _resolve_user(db, _metadata_user_id(obj), obj.get("customer"))
    plan = (obj.get("metadata") or {}).get("plan") or "premium"
    if plan not in SUBSCRIPTION_PLANS:
        plan = "premium"

    user.subscription_status = "active"
    user.subscription_tier = plan
    user.subscription_start_date = _now()
    if obj.get("customer") and not user.stripe_customer_id:
        user.stripe_customer_id = obj["customer"]
    logger.info("[STRIPE webhook] Checkout completed for user %s (plan=%s)", user.id, plan)
    return user


def handle_subscription_created(db: Session, obj: dict, stripe_client) -> User:
    user = _resolve_user(db, _metadata_user_id(obj), obj.get("customer"))
    user.subscription_status = "active"
    user.subscription_tier = "premium"
    user.subscription_start_date = _period_start(obj)
    user.subscription_end_date = subscription_period_end(obj)
    logger.info("[STRIPE webhook] Subscription created for user %s", user.id)
    return user


def handle_subscription_updated(db: Session, obj: dict, stripe_client) -> User:
    user = _resolve_user(db, _metadata_user_id(obj), obj.get("customer"))
    user.subscription_status = normalize_provider_status(obj.get("status"))
    user.subscription_end_date = subscription_period_end(obj)
    logger.info("[STRIPE webhook] Subscription updated for user %s (status=%s)", user.id, user.subscription_status)
    return user


def handle_subscription_deleted(db: Session, obj: dict, stripe_client) -> User:
    user = _resolve_user(db, _metadata_user_id(obj), obj.get("customer"))
    user.subscription_status = "cancelled"
    user.subscription_tier = "free"
    user.subscription_end_date = _now()
    logger.info("[STRIPE webhook] Subscription deleted for user %s", user.id)
    return user


def handle_invoice_paid(db: Session, obj: dict, stripe_client) -> Optional[User]:
    subscription_id = _invoice_subscription_id(obj)
    if not subscription_id:
        # One-off invoice, nothing to sync
        logger.info("[STRIPE webhook] Invoice %s has no subscription, skipping", obj.get("id"))
        return None

    subscription = _retrieve_subscription(stripe_client, subscription_id)
    user = _resolve_user(db, _metadata_user_id(subscription), obj.get("customer") or subscription.get("customer"))
    user.subscription_status = "active"
    user.subscription_end_date = subscription_period_end(subscription)
    logger.info("[STRIPE webhook] Payment succeeded for user %s", user.id)
    return user


def handle_invoice_failed(db: Session, obj: dict, stripe_client) -> None:
    # Stripe retries the charge and sends customer.subscription.deleted if it gives up
    logger.warning(
        "[STRIPE webhook] Payment failed for customer %s (invoice %s, attempt %s)",
        obj.get("customer"), obj.get("id"), obj.get("attempt_count"),
    )
    return None


EVENT_HANDLERS: Dict[str, Callable] = {
    "checkout.session.completed": handle_checkout_completed,
    "customer.subscription.created": handle_subscription_created,
    "customer.subscription.updated": handle_subscription_updated,
    "customer.subscription.deleted": handle_subscription_deleted,
    "invoice.payment_succeeded": handle_invoice_paid,
    "invoice.payment_failed": handle_invoice_failed,
}


def _already_recorded(db: Session, event_id: Optional[str]) -> bool:
    if not event_id:
        return False
    return db.query(SubscriptionEvent.id).filter(SubscriptionEvent.stripe_event_id == event_id).first() is not None


def apply_event(db: Session, event: dict, stripe_client) -> str:
    """
    Apply one verified Stripe event and append it to the audit trail.

    Returns APPLIED, IGNORED or DUPLICATE. Raises SubscriptionSyncError (after
    rolling back) when the event cannot be applied.
    """
    event_type = event.get("type")
    event_id = event.get("id")
    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        logger.info("[STRIPE webhook] Unhandled event type %s", event_type)
        return IGNORED

    obj = (event.get("data") or {}).get("object") or {}
    try:
        if _already_recorded(db, event_id):
            logger.info("[STRIPE webhook] Event %s already applied, skipping", event_id)
            return DUPLICATE

        user = handler(db, obj, stripe_client)
        if user is not None and event_id:
            db.add(SubscriptionEvent(
                user_id=user.id,
                event_type=event_type,
                stripe_event_id=event_id,
                event_data=obj,
            ))
        db.commit()
    except IntegrityError:
        # The same event was applied by a concurrent delivery
        db.rollback()
        try:
            duplicate = _already_recorded(db, event_id)
        except SQLAlchemyError as e:
            raise SubscriptionSyncError(f"{type(e).__name__}: {e}") from e
        if duplicate:
            return DUPLICATE
        raise SubscriptionSyncError(f"Integrity error applying {event_type} {event_id}")
    except SubscriptionSyncError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        raise SubscriptionSyncError(f"{type(e).__name__}: {e}") from e
    return APPLIED


def record_failure(db: Session, event: dict, error: str) -> WebhookEventFailure:
    failure = WebhookEventFailure(
        stripe_event_id=event.get("id"),
        event_type=event.get("type") or "unknown",
        payload=event,
        error=error,
        attempts=1,
    )
    db.add(failure)
    db.commit()
    return failure


def process_event(db: Session, event: dict, stripe_client) -> str:
    """Webhook entry point: never raises for handler failures, dead-letters them instead."""
    try:
        return apply_event(db, event, stripe_client)
    except SubscriptionSyncError as e:
        logger.error("[STRIPE webhook] Failed to apply %s %s: %s", event.get("type"), event.get("id"), e)
        record_failure(db, event, str(e))
        return FAILED


def retry_failed_events(db: Session, stripe_client, max_attempts: int = MAX_RETRY_ATTEMPTS) -> Dict[str, int]:
    """Replay unresolved dead-letter rows that have attempts left."""
    pending = (
        db.query(WebhookEventFailure)
        .filter(WebhookEventFailure.resolved_at.is_(None), WebhookEventFailure.attempts < max_attempts)
        .order_by(WebhookEventFailure.created_at, WebhookEventFailure.id)
        .all()
    )
    summary = {"resolved": 0, "failed": 0}
    for failure in pending:
        try:
            outcome = apply_event(db, failure.payload, stripe_client)
        except SubscriptionSyncError as e:
            failure.attempts += 1
            failure.error = str(e)
            db.commit()
            summary["failed"] += 1
            logger.warning("[STRIPE webhook] Retry %d of event %s failed: %s", failure.attempts, failure.stripe_event_id, e)
            continue
        failure.resolved_at = _now()
        db.commit()
        summary["resolved"] += 1
        logger.info("[STRIPE webhook] Event %s resolved on retry (%s)", failure.stripe_event_id, outcome)
    return summary
