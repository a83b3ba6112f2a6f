import json
import logging
from datetime import datetime

import stripe
from fastapi import APIRouter, Depends, Header, Request, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.errors import AppError
from app.core.plan_limits import SUBSCRIPTION_PLANS
from app.db.session import get_db
from app.dependencies.auth import require_premium, require_user
from app.dependencies.clients import get_stripe_client
from app.models.user import User
from app.schemas.subscription import CheckoutRequest
from app.services.subscription_sync import process_event, subscription_period_end
from app.utils.plan_enforcement import user_is_premium

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_client(stripe_client, code: str):
    if stripe_client is None:
        logger.error("[STRIPE] STRIPE_SECRET_KEY is not configured")
        raise AppError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Payments are not configured", code)
    return stripe_client


def _active_subscription(stripe_client, customer_id: str):
    subscriptions = stripe_client.subscriptions.list(
        params={"customer": customer_id, "status": "active", "limit": 1}
    )
    return subscriptions.data[0] if subscriptions.data else None


def _isoformat(value: datetime):
    return value.isoformat() if value else None


@router.get("/plans")
def list_plans():
    plans = {
        key: {**plan, "priceId": settings.STRIPE_PREMIUM_PRICE_ID if key == "premium" else None}
        for key, plan in SUBSCRIPTION_PLANS.items()
    }
    return {"success": True, "plans": plans}


@router.post("/create-checkout-session")
def create_checkout_session(
    body: CheckoutRequest,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    stripe_client=Depends(get_stripe_client),
):
    """
    Create a Stripe Checkout session for a subscription plan.

    The Stripe customer is created on first checkout and stored on the user.
    Both the session and the subscription carry user_id/plan metadata so the
    webhook can find the user again.
    """
    plan_config = SUBSCRIPTION_PLANS.get(body.plan)
    if plan_config is None:
        raise AppError(status.HTTP_400_BAD_REQUEST, "Invalid subscription plan", "INVALID_PLAN")

    if user_is_premium(user):
        raise AppError(
            status.HTTP_400_BAD_REQUEST,
            "You already have an active subscription",
            "ALREADY_SUBSCRIBED",
        )

    client = _require_client(stripe_client, "CHECKOUT_FAILED")
    metadata = {"user_id": user.id, "plan": body.plan}

    try:
        if not user.stripe_customer_id:
            params = {"email": user.email, "metadata": {"user_id": user.id}}
            if user.full_name:
                params["name"] = user.full_name
            customer = client.customers.create(params=params)
            user.stripe_customer_id = customer.id
            db.commit()
            logger.info("[STRIPE] Created customer %s for user %s", customer.id, user.id)

        session = client.checkout.sessions.create(params={
            "customer": user.stripe_customer_id,
            "payment_method_types": ["card"],
            "line_items": [{"price": settings.STRIPE_PREMIUM_PRICE_ID, "quantity": 1}],
            "mode": "subscription",
            "success_url": f"{settings.FRONTEND_URL}/subscription/success?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{settings.FRONTEND_URL}/membership",
            "metadata": metadata,
            "subscription_data": {"metadata": metadata},
        })
    except stripe.StripeError as e:
        logger.exception("[STRIPE] Checkout session creation failed for user %s: %s", user.id, e)
        raise AppError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to create checkout session", "CHECKOUT_FAILED")

    logger.info("[STRIPE] Checkout session %s created for user %s (plan=%s)", session.id, user.id, body.plan)
    return {"success": True, "sessionId": session.id, "url": session.url, "plan": plan_config}


@router.post("/create-portal-session")
def create_portal_session(
    user: User = Depends(require_user),
    stripe_client=Depends(get_stripe_client),
):
    if not user.stripe_customer_id:
        raise AppError(status.HTTP_400_BAD_REQUEST, "No subscription found", "NO_SUBSCRIPTION")

    client = _require_client(stripe_client, "PORTAL_FAILED")
    try:
        session = client.billing_portal.sessions.create(params={
            "customer": user.stripe_customer_id,
            "return_url": f"{settings.FRONTEND_URL}/profile",
        })
    except stripe.StripeError as e:
        logger.exception("[STRIPE] Portal session creation failed for user %s: %s", user.id, e)
        raise AppError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to create portal session", "PORTAL_FAILED")

    return {"success": True, "url": session.url}


@router.get("/status")
def subscription_status(
    user: User = Depends(require_user),
    stripe_client=Depends(get_stripe_client),
):
    stripe_subscription = None
    if user.stripe_customer_id and stripe_client is not None:
        try:
            active = _active_subscription(stripe_client, user.stripe_customer_id)
        except stripe.StripeError as e:
            # The local record is still authoritative enough to answer
            logger.error("[STRIPE] Could not fetch subscription for user %s: %s", user.id, e)
            active = None
        if active is not None:
            data = active.to_dict()
            items = (data.get("items") or {}).get("data") or []
            price = items[0].get("price") if items else None
            stripe_subscription = {
                "id": data.get("id"),
                "status": data.get("status"),
                "currentPeriodEnd": _isoformat(subscription_period_end(data)),
                "cancelAtPeriodEnd": data.get("cancel_at_period_end", False),
                "plan": (price or {}).get("nickname") or "Premium",
            }

    return {
        "success": True,
        "subscription": {
            "status": user.subscription_status,
            "tier": user.subscription_tier,
            "endDate": _isoformat(user.subscription_end_date),
            "stripeSubscription": stripe_subscription,
        },
    }


@router.post("/cancel")
def cancel_subscription(
    user: User = Depends(require_premium),
    stripe_client=Depends(get_stripe_client),
):
    """Cancel at the end of the current billing period; the webhook flips the user to free when it ends."""
    if not user.stripe_customer_id:
        raise AppError(status.HTTP_400_BAD_REQUEST, "No subscription found", "NO_SUBSCRIPTION")

    client = _require_client(stripe_client, "CANCEL_FAILED")
    try:
        active = _active_subscription(client, user.stripe_customer_id)
        if active is None:
            raise AppError(status.HTTP_400_BAD_REQUEST, "No active subscription found", "NO_ACTIVE_SUBSCRIPTION")
        updated = client.subscriptions.update(active.id, params={"cancel_at_period_end": True}).to_dict()
    except stripe.StripeError as e:
        logger.exception("[STRIPE] Cancellation failed for user %s: %s", user.id, e)
        raise AppError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to cancel subscription", "CANCEL_FAILED")

    logger.info("[STRIPE] Subscription %s set to cancel at period end for user %s", updated.get("id"), user.id)
    return {
        "success": True,
        "message": "Subscription will be cancelled at the end of the current billing period",
        "subscription": {
            "id": updated.get("id"),
            "cancelAtPeriodEnd": updated.get("cancel_at_period_end"),
            "currentPeriodEnd": _isoformat(subscription_period_end(updated)),
        },
    }


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(None, alias="Stripe-Signature"),
    db: Session = Depends(get_db),
    stripe_client=Depends(get_stripe_client),
):
    """
    Stripe webhook. Register https://<backend>/api/subscription/webhook in the
    Stripe dashboard. Returns 400 only when the signature does not verify;
    handler failures are dead-lettered and still acknowledged.
    """
    body = await request.body()

    if not settings.STRIPE_WEBHOOK_SECRET:
        logger.error("[STRIPE webhook] STRIPE_WEBHOOK_SECRET is not configured")
        raise AppError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Webhook not configured", "WEBHOOK_NOT_CONFIGURED")

    try:
        payload = body.decode("utf-8")
        stripe.WebhookSignature.verify_header(
            payload, stripe_signature or "", settings.STRIPE_WEBHOOK_SECRET, tolerance=stripe.Webhook.DEFAULT_TOLERANCE
        )
        event = json.loads(payload)
    except stripe.SignatureVerificationError as e:
        logger.warning("[STRIPE webhook] Signature verification failed: %s", e)
        raise AppError(status.HTTP_400_BAD_REQUEST, "Invalid webhook signature", "INVALID_SIGNATURE")
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise AppError(status.HTTP_400_BAD_REQUEST, "Invalid JSON", "INVALID_PAYLOAD")

    logger.info("[STRIPE webhook] type=%s id=%s", event.get("type"), event.get("id"))
    outcome = await run_in_threadpool(process_event, db, event, stripe_client)
    return {"received": True, "outcome": outcome}
