"""
Dead-letter rows for Stripe webhook events whose handler raised after the
signature was verified. The webhook still acknowledges the event; these rows
are replayed by scripts/retry_failed_webhooks.py.
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, JSON
from sqlalchemy.sql import func
from app.db.base import Base


class WebhookEventFailure(Base):
    __tablename__ = "webhook_event_failures"

    id = Column(Integer, primary_key=True, autoincrement=True)
    stripe_event_id = Column(String, index=True, nullable=True)
    event_type = Column(String, nullable=False)
    payload = Column(JSON, nullable=False)
    error = Column(Text, nullable=True)
    attempts = Column(Integer, nullable=False, default=1)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
