import stripe

from app.main import app
from app.models.user import User
from tests.conftest import auth_headers, create_user


def test_plans_are_public(client):
    body = client.get("/api/subscription/plans").json()
    assert body["success"] is True
    assert body["plans"]["premium"]["priceId"] == "price_test_premium"
    assert "Unlimited recipe generation" in body["plans"]["premium"]["features"]


def test_checkout_requires_auth(client):
    response = client.post("/api/subscription/create-checkout-session", json={"plan": "premium"})
    assert response.status_code == 401
    assert response.json()["code"] == "NO_TOKEN"


def test_checkout_creates_customer_and_session(client, db_session, stripe_client):
    create_user(db_session)

    response = client.post(
        "/api/subscription/create-checkout-session", json={"plan": "premium"}, headers=auth_headers()
    )

    assert response.status_code == 200
    body = response.json()
    assert body["sessionId"] == "cs_test_123"
    assert body["url"].startswith("https://checkout.stripe.test/")

    name, _, kwargs = stripe_client.calls[-1]
    assert name == "checkout.sessions.create"
    params = kwargs["params"]
    assert params["mode"] == "subscription"
    assert params["line_items"] == [{"price": "price_test_premium", "quantity": 1}]
    assert params["metadata"] == {"user_id": "user-123", "plan": "premium"}
    assert params["subscription_data"]["metadata"] == {"user_id": "user-123", "plan": "premium"}

    db_session.expire_all()
    assert db_session.query(User).one().stripe_customer_id == "cus_test_123"


def test_checkout_reuses_existing_customer(client, db_session, stripe_client):
    create_user(db_session, stripe_customer_id="cus_existing")
    client.post("/api/subscription/create-checkout-session", json={"plan": "premium"}, headers=auth_headers())
    assert [call[0] for call in stripe_client.calls] == ["checkout.sessions.create"]


def test_checkout_rejects_active_subscribers(client, db_session):
    create_user(db_session, status="active", tier="premium")
    response = client.post(
        "/api/subscription/create-checkout-session", json={"plan": "premium"}, headers=auth_headers()
    )
    assert response.status_code == 400
    assert response.json()["code"] == "ALREADY_SUBSCRIBED"


def test_checkout_rejects_unknown_plan(client, db_session):
    create_user(db_session)
    response = client.post(
        "/api/subscription/create-checkout-session", json={"plan": "platinum"}, headers=auth_headers()
    )
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_PLAN"


def test_checkout_stripe_failure_is_generic_500(client, db_session, stripe_client):
    create_user(db_session, stripe_customer_id="cus_existing")
    stripe_client.fail_with = stripe.APIConnectionError("network down")

    response = client.post(
        "/api/subscription/create-checkout-session", json={"plan": "premium"}, headers=auth_headers()
    )

    assert response.status_code == 500
    assert response.json()["code"] == "CHECKOUT_FAILED"
    assert "network" not in response.json()["error"]


def test_checkout_without_stripe_configured(client, db_session):
    create_user(db_session)
    app.state.stripe_client = None
    response = client.post(
        "/api/subscription/create-checkout-session", json={"plan": "premium"}, headers=auth_headers()
    )
    assert response.status_code == 500
    assert response.json()["code"] == "CHECKOUT_FAILED"


def test_portal_requires_customer(client, db_session):
    create_user(db_session)
    response = client.post("/api/subscription/create-portal-session", headers=auth_headers())
    assert response.status_code == 400
    assert response.json()["code"] == "NO_SUBSCRIPTION"


def test_portal_session_url(client, db_session):
    create_user(db_session, stripe_customer_id="cus_1")
    response = client.post("/api/subscription/create-portal-session", headers=auth_headers())
    assert response.status_code == 200
    assert response.json()["url"] == "https://billing.stripe.test/session"


def test_status_includes_stripe_subscription(client, db_session, stripe_client):
    create_user(db_session, status="active", tier="premium", stripe_customer_id="cus_1")
    stripe_client.active_by_customer["cus_1"] = {
        "id": "sub_1",
        "status": "active",
        "cancel_at_period_end": False,
        "items": {"data": [{"current_period_end": 1769904000, "price": {"nickname": "Premium Monthly"}}]},
    }

    body = client.get("/api/subscription/status", headers=auth_headers()).json()

    subscription = body["subscription"]
    assert (subscription["status"], subscription["tier"]) == ("active", "premium")
    assert subscription["stripeSubscription"]["id"] == "sub_1"
    assert subscription["stripeSubscription"]["plan"] == "Premium Monthly"
    assert subscription["stripeSubscription"]["currentPeriodEnd"].startswith("2026-02-01")


def test_cancel_requires_premium(client, db_session):
    create_user(db_session, stripe_customer_id="cus_1")
    response = client.post("/api/subscription/cancel", headers=auth_headers())
    assert response.status_code == 403
    body = response.json()
    assert body["code"] == "PREMIUM_REQUIRED"
    assert body["upgradeUrl"] == "/membership"


def test_cancel_at_period_end(client, db_session, stripe_client):
    create_user(db_session, status="active", tier="premium", stripe_customer_id="cus_1")
    stripe_client.active_by_customer["cus_1"] = {"id": "sub_1", "status": "active"}
    stripe_client.subscriptions_by_id["sub_1"] = {"id": "sub_1", "current_period_end": 1769904000}

    response = client.post("/api/subscription/cancel", headers=auth_headers())

    assert response.status_code == 200
    assert response.json()["subscription"]["cancelAtPeriodEnd"] is True
    name, args, kwargs = stripe_client.calls[-1]
    assert name == "subscriptions.update"
    assert args == ("sub_1",)
    assert kwargs["params"] == {"cancel_at_period_end": True}


def test_cancel_without_active_subscription(client, db_session):
    create_user(db_session, status="active", tier="premium", stripe_customer_id="cus_1")
    response = client.post("/api/subscription/cancel", headers=auth_headers())
    assert response.status_code == 400
    assert response.json()["code"] == "NO_ACTIVE_SUBSCRIPTION"
