import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from app.db.base import Base
from app.core.errors import AppError
from app.models.recipe_usage import RecipeUsage
from app.services.usage_counter import (
    UsageCheckError,
    consume_recipe_quota,
    get_usage_count,
    purge_usage_before,
    usage_identifier,
)
from app.utils.plan_enforcement import check_recipe_limit
from tests.conftest import create_user


def test_identifier_prefers_user_id():
    assert usage_identifier("user-1", "10.0.0.1") == "user-1"
    assert usage_identifier(None, "10.0.0.1") == "10.0.0.1"


def test_three_requests_admitted_fourth_rejected(db_session):
    decisions = [consume_recipe_quota(db_session, "10.0.0.1", limit=3) for _ in range(4)]

    assert [d.allowed for d in decisions] == [True, True, True, False]
    assert [d.current for d in decisions] == [1, 2, 3, 3]
    assert decisions[3].limit == 3
    assert decisions[3].remaining == 0
    assert get_usage_count(db_session, "10.0.0.1") == 3


def test_concurrent_requests_never_exceed_limit(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'usage.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine)
    start = threading.Barrier(20)

    def request_recipe(_):
        session = Session()
        try:
            start.wait()
            return consume_recipe_quota(session, "10.0.0.9", limit=3).allowed
        finally:
            session.close()

    try:
        with ThreadPoolExecutor(max_workers=20) as pool:
            admitted = list(pool.map(request_recipe, range(20)))

        session = Session()
        assert admitted.count(True) == 3
        assert get_usage_count(session, "10.0.0.9") == 3
        session.close()
    finally:
        engine.dispose()


def test_rejection_does_not_increment(db_session):
    for _ in range(6):
        consume_recipe_quota(db_session, "10.0.0.2", limit=3)
    row = db_session.query(RecipeUsage).filter_by(identifier="10.0.0.2").one()
    assert row.count == 3


def test_counters_are_per_identifier_and_day(db_session):
    today = date(2026, 3, 1)
    for _ in range(3):
        consume_recipe_quota(db_session, "10.0.0.3", limit=3, day=today)

    assert consume_recipe_quota(db_session, "10.0.0.3", limit=3, day=today).allowed is False
    assert consume_recipe_quota(db_session, "10.0.0.4", limit=3, day=today).current == 1
    assert consume_recipe_quota(db_session, "10.0.0.3", limit=3, day=today + timedelta(days=1)).current == 1


def test_premium_user_is_never_counted(db_session):
    user = create_user(db_session, status="active", tier="premium")
    for _ in range(10):
        decision = check_recipe_limit(db_session, user, "10.0.0.5")
        assert decision.allowed is True
        assert decision.counted is False
    assert db_session.query(RecipeUsage).count() == 0


def test_active_free_tier_is_not_premium(db_session):
    user = create_user(db_session, status="active", tier="free")
    for _ in range(3):
        check_recipe_limit(db_session, user, "10.0.0.6")
    with pytest.raises(AppError) as exc_info:
        check_recipe_limit(db_session, user, "10.0.0.6")
    assert exc_info.value.status_code == 429


def test_limit_error_carries_upgrade_details(db_session):
    for _ in range(3):
        check_recipe_limit(db_session, None, "10.0.0.7")
    with pytest.raises(AppError) as exc_info:
        check_recipe_limit(db_session, None, "10.0.0.7")

    body = exc_info.value.to_dict()
    assert body["code"] == "DAILY_LIMIT_REACHED"
    assert body["limit"] == 3
    assert body["current"] == 3
    assert body["upgradeUrl"] == "/membership"


def test_store_failure_fails_closed(db_session, monkeypatch):
    def broken_execute(*args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("database is down"))

    monkeypatch.setattr(db_session, "execute", broken_execute)
    with pytest.raises(UsageCheckError):
        consume_recipe_quota(db_session, "10.0.0.8")

    with pytest.raises(AppError) as exc_info:
        check_recipe_limit(db_session, None, "10.0.0.8")
    assert exc_info.value.status_code == 500
    assert exc_info.value.code == "USAGE_CHECK_FAILED"


def test_purge_removes_only_old_rows(db_session):
    today = date(2026, 3, 31)
    consume_recipe_quota(db_session, "10.0.0.9", day=today - timedelta(days=40))
    consume_recipe_quota(db_session, "10.0.0.9", day=today - timedelta(days=31))
    consume_recipe_quota(db_session, "10.0.0.9", day=today)

    deleted = purge_usage_before(db_session, today - timedelta(days=30))

    assert deleted == 2
    assert [row.date for row in db_session.query(RecipeUsage).all()] == [today]
