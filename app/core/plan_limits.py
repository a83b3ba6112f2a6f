from typing import Dict

# Daily recipe quota for free and anonymous callers. Premium users are never counted.
MAX_FREE_RECIPES_PER_DAY = 3

UPGRADE_URL = "/membership"

SUBSCRIPTION_STATUSES = ("free", "active", "cancelled", "past_due", "trialing")
SUBSCRIPTION_TIERS = ("free", "premium")

# Stripe subscription statuses that have no direct counterpart in SUBSCRIPTION_STATUSES
PROVIDER_STATUS_MAP: Dict[str, str] = {
    "canceled": "cancelled",
    "unpaid": "past_due",
    "incomplete": "past_due",
    "incomplete_expired": "past_due",
    "paused": "past_due",
}

SUBSCRIPTION_PLANS: Dict[str, Dict] = {
    "premium": {
        "name": "Premium",
        "features": [
            "Unlimited recipe generation",
            "Save recipes to collection",
            "Advanced dietary customization",
            "Detailed nutrition information",
            "Automatic shopping list generation",
            "Recipe rating and reviews",
            "Priority customer support",
            "Access to premium cuisines",
        ],
    },
}


def is_premium(subscription_status: str, subscription_tier: str) -> bool:
    """Premium access requires both an active status and the premium tier."""
    return subscription_status == "active" and subscription_tier == "premium"


def normalize_provider_status(status: str) -> str:
    status = (status or "").lower()
    status = PROVIDER_STATUS_MAP.get(status, status)
    if status not in SUBSCRIPTION_STATUSES:
        return "past_due"
    return status
