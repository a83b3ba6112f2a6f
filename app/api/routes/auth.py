import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.dependencies.auth import optional_user, require_user
from app.models.user import User
from app.schemas.auth import ProfileUpdate, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def serialize_user(user: User) -> dict:
    return UserResponse.model_validate(user).model_dump(mode="json", by_alias=True)


@router.get("/profile")
def get_profile(user: User = Depends(require_user)):
    """Get current user profile"""
    return {"success": True, "user": serialize_user(user)}


@router.put("/profile")
def update_profile(
    profile: ProfileUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Update user profile information"""
    if profile.full_name:
        user.full_name = profile.full_name.strip()
    db.commit()
    db.refresh(user)
    logger.info("[AUTH] Profile updated for user %s", user.id)
    return {"success": True, "user": serialize_user(user)}


@router.get("/session")
def get_session(user: Optional[User] = Depends(optional_user)):
    """Anonymous-safe session probe used by the frontend on page load."""
    if user is None:
        return {"success": True, "authenticated": False, "user": None}
    return {"success": True, "authenticated": True, "user": serialize_user(user)}
