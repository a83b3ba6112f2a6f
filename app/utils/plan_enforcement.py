"""
Gatekeeping for free vs premium callers: the daily recipe quota and the
premium-only check.
"""
import logging
from typing import Optional

from fastapi import status
from sqlalchemy.orm import Session

from app.core.errors import AppError
from app.core.plan_limits import MAX_FREE_RECIPES_PER_DAY, UPGRADE_URL, is_premium
from app.models.user import User
from app.services.usage_counter import (
    UsageCheckError,
    UsageDecision,
    consume_recipe_quota,
    next_reset_at,
    usage_identifier,
)

logger = logging.getLogger(__name__)


def user_is_premium(user: Optional[User]) -> bool:
    return user is not None and is_premium(user.subscription_status, user.subscription_tier)


def rate_limit_headers(decision: UsageDecision) -> dict:
    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": next_reset_at().isoformat(),
    }


def check_recipe_limit(db: Session, user: Optional[User], client_ip: Optional[str]) -> UsageDecision:
    """
    Count one recipe request against the caller's daily quota.

    Premium users are never counted. Raises AppError(429) at the limit and
    AppError(500) when the usage store fails.
    """
    if user_is_premium(user):
        return UsageDecision(allowed=True, limit=MAX_FREE_RECIPES_PER_DAY, current=0, counted=False)

    user_id = user.id if user else None
    identifier = usage_identifier(user_id, client_ip)

    try:
        decision = consume_recipe_quota(db, identifier, user_id=user_id, limit=MAX_FREE_RECIPES_PER_DAY)
    except UsageCheckError:
        raise AppError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            "USAGE_CHECK_FAILED",
        )

    if not decision.allowed:
        raise AppError(
            status.HTTP_429_TOO_MANY_REQUESTS,
            "Daily recipe limit reached",
            "DAILY_LIMIT_REACHED",
            headers=rate_limit_headers(decision),
            message=(
                f"You have reached your daily limit of {decision.limit} free recipes. "
                "Please upgrade to Premium for unlimited recipes."
            ),
            limit=decision.limit,
            current=decision.current,
            upgradeUrl=UPGRADE_URL,
        )

    return decision


def ensure_premium(user: Optional[User]) -> User:
    if user is None:
        raise AppError(status.HTTP_401_UNAUTHORIZED, "Authentication required", "AUTH_REQUIRED")
    if not user_is_premium(user):
        raise AppError(
            status.HTTP_403_FORBIDDEN,
            "Premium subscription required",
            "PREMIUM_REQUIRED",
            upgradeUrl=UPGRADE_URL,
        )
    return user
