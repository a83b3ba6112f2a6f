from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime


class UserResponse(BaseModel):
    """Profile as returned to clients, camelCase on the wire."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    email: str
    full_name: Optional[str] = Field(None, serialization_alias="fullName")
    subscription_status: str = Field(..., serialization_alias="subscriptionStatus")
    subscription_tier: str = Field(..., serialization_alias="subscriptionTier")
    subscription_end_date: Optional[datetime] = Field(None, serialization_alias="subscriptionEndDate")
    recipe_count: int = Field(0, serialization_alias="recipeCount")
    created_at: Optional[datetime] = Field(None, serialization_alias="createdAt")
    last_login_at: Optional[datetime] = Field(None, serialization_alias="lastLoginAt")


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    full_name: Optional[str] = Field(None, alias="fullName", min_length=2, max_length=50)
