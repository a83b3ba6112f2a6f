from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.errors import AppError
from app.core.plan_limits import MAX_FREE_RECIPES_PER_DAY
from app.db.session import get_db
from app.dependencies.auth import optional_user
from app.dependencies.clients import get_client_ip
from app.models.user import User
from app.services.usage_counter import UsageCheckError, get_usage_count, next_reset_at, usage_identifier
from app.utils.plan_enforcement import user_is_premium

router = APIRouter()


@router.get("/today")
def usage_today(
    ip: Optional[str] = Depends(get_client_ip),
    user: Optional[User] = Depends(optional_user),
    db: Session = Depends(get_db),
):
    """Today's counted recipe requests for the caller."""
    if user_is_premium(user):
        return {"success": True, "unlimited": True, "used": 0, "limit": None, "remaining": None}

    identifier = usage_identifier(user.id if user else None, ip)
    try:
        used = get_usage_count(db, identifier)
    except UsageCheckError:
        raise AppError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", "USAGE_CHECK_FAILED")

    return {
        "success": True,
        "unlimited": False,
        "used": used,
        "limit": MAX_FREE_RECIPES_PER_DAY,
        "remaining": max(MAX_FREE_RECIPES_PER_DAY - used, 0),
        "resetsAt": next_reset_at().isoformat(),
    }
