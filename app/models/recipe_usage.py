"""
Daily recipe-generation counter, one row per (identifier, date).
The identifier is the user id for signed-in callers and the client IP otherwise.
"""
from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from app.db.base import Base


class RecipeUsage(Base):
    __tablename__ = "recipe_usage"
    __table_args__ = (
        UniqueConstraint("identifier", "date", name="uq_recipe_usage_identifier_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    identifier = Column(String, nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    date = Column(Date, nullable=False)
    count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
