"""
Per-identifier, per-day recipe counter stored in recipe_usage.

Admission and increment are one statement:

    INSERT ... ON CONFLICT (identifier, date)
    DO UPDATE SET count = count + 1 WHERE recipe_usage.count < :limit
    RETURNING count

A returned row means the request was admitted and counted. No row means the
conflicting row was already at the limit, so nothing was written. Concurrent
requests for the same identifier serialize on the row lock and can never push
the count past the limit.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.plan_limits import MAX_FREE_RECIPES_PER_DAY
from app.models.recipe_usage import RecipeUsage

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class UsageCheckError(Exception):
    """The usage store could not be read or written. Callers must deny the request."""


@dataclass
class UsageDecision:
    allowed: bool
    limit: int
    current: int
    counted: bool = True

    @property
    def remaining(self) -> int:
        return max(self.limit - self.current, 0)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def next_reset_at(today: Optional[date] = None) -> datetime:
    """Midnight UTC after `today`, when a fresh counter row starts."""
    today = today or utc_today()
    return datetime.combine(today + timedelta(days=1), datetime.min.time(), tzinfo=timezone.utc)


def usage_identifier(user_id: Optional[str], client_ip: Optional[str]) -> str:
    return user_id or client_ip or "unknown"


def _upsert_for(db: Session):
    dialect = db.get_bind().dialect.name
    try:
        return _UPSERT_DIALECTS[dialect]
    except KeyError:
        raise UsageCheckError(f"Atomic usage counting is not supported on {dialect}")


def get_usage_count(db: Session, identifier: str, day: Optional[date] = None) -> int:
    day = day or utc_today()
    try:
        count = (
            db.query(RecipeUsage.count)
            .filter(RecipeUsage.identifier == identifier, RecipeUsage.date == day)
            .scalar()
        )
    except SQLAlchemyError as e:
        logger.exception("[USAGE] Failed to read usage for %s: %s", identifier, e)
        raise UsageCheckError(str(e))
    return count or 0


def consume_recipe_quota(
    db: Session,
    identifier: str,
    user_id: Optional[str] = None,
    limit: int = MAX_FREE_RECIPES_PER_DAY,
    day: Optional[date] = None,
) -> UsageDecision:
    """
    Admit-and-count one request for `identifier`, or reject it at the limit.

    Raises UsageCheckError on any store failure (fail closed).
    """
    day = day or utc_today()
    insert = _upsert_for(db)

    stmt = insert(RecipeUsage).values(identifier=identifier, user_id=user_id, date=day, count=1)
    stmt = stmt.on_conflict_do_update(
        index_elements=[RecipeUsage.identifier, RecipeUsage.date],
        set_={"count": RecipeUsage.count + 1, "updated_at": func.now()},
        where=RecipeUsage.count < limit,
    ).returning(RecipeUsage.count)

    try:
        row = db.execute(stmt).first()
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("[USAGE] Atomic increment failed for %s: %s", identifier, e)
        raise UsageCheckError(str(e))

    if row is not None:
        logger.info("[USAGE] %s admitted (%d/%d on %s)", identifier, row[0], limit, day.isoformat())
        return UsageDecision(allowed=True, limit=limit, current=row[0])

    current = get_usage_count(db, identifier, day)
    logger.info("[USAGE] %s rejected at daily limit (%d/%d)", identifier, current, limit)
    return UsageDecision(allowed=False, limit=limit, current=current)


def purge_usage_before(db: Session, cutoff: date) -> int:
    """Delete counter rows for days before `cutoff`. Returns the number of rows removed."""
    deleted = db.query(RecipeUsage).filter(RecipeUsage.date < cutoff).delete(synchronize_session=False)
    db.commit()
    return deleted
