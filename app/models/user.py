from sqlalchemy import CheckConstraint, Column, Integer, String, DateTime
from sqlalchemy.sql import func
from app.core.plan_limits import SUBSCRIPTION_STATUSES, SUBSCRIPTION_TIERS
from app.db.base import Base


def _one_of(column: str, values) -> str:
    return "%s IN (%s)" % (column, ", ".join("'%s'" % v for v in values))


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(_one_of("subscription_status", SUBSCRIPTION_STATUSES), name="ck_users_subscription_status"),
        CheckConstraint(_one_of("subscription_tier", SUBSCRIPTION_TIERS), name="ck_users_subscription_tier"),
    )

    id = Column(String, primary_key=True, index=True)  # Supabase auth user id (UUID)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    subscription_status = Column(String, default="free", nullable=False, index=True)
    subscription_tier = Column(String, default="free", nullable=False)
    subscription_start_date = Column(DateTime(timezone=True), nullable=True)
    subscription_end_date = Column(DateTime(timezone=True), nullable=True)
    stripe_customer_id = Column(String, unique=True, index=True, nullable=True)
    recipe_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    last_login_at = Column(DateTime(timezone=True), nullable=True)
