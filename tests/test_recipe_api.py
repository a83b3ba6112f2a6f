import httpx

from app.main import app
from app.models.user import User
from tests.conftest import auth_headers, completion_response, create_user, make_llm_client
from tests.test_recipe_generator import LLM_RECIPE


def test_fallback_recipe_for_asian_cuisine(client):
    response = client.post(
        "/api/recipe/generate-recipe",
        json={"ingredients": "chicken, rice, garlic", "cuisine": "asian"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    recipe = body["recipe"]
    assert "Stir-Fried Noodles" in recipe["name"]
    ingredients = " ".join(recipe["ingredients"]).lower()
    for ingredient in ("chicken", "rice", "garlic"):
        assert ingredient in ingredients
    assert recipe["difficulty"] == "easy"
    assert "prepTime" in recipe
    assert body["metadata"]["source"] == "fallback"
    assert body["metadata"]["fallbackReason"] == "not_configured"


def test_fourth_anonymous_request_is_rejected(client):
    payload = {"ingredients": "eggs, spinach, cheese"}
    responses = [client.post("/api/recipe/generate-recipe", json=payload) for _ in range(4)]

    assert [r.status_code for r in responses] == [200, 200, 200, 429]
    assert responses[0].headers["X-RateLimit-Remaining"] == "2"
    assert responses[2].headers["X-RateLimit-Remaining"] == "0"

    body = responses[3].json()
    assert body["success"] is False
    assert body["code"] == "DAILY_LIMIT_REACHED"
    assert body["current"] == 3
    assert body["limit"] == 3
    assert body["upgradeUrl"] == "/membership"


def test_premium_user_is_not_limited(client, db_session):
    create_user(db_session, status="active", tier="premium")
    headers = auth_headers()
    for _ in range(5):
        response = client.post("/api/recipe/generate-recipe", json={"ingredients": "tofu, rice"}, headers=headers)
        assert response.status_code == 200
        assert "X-RateLimit-Limit" not in response.headers


def test_authenticated_user_counts_by_user_id_and_tracks_recipes(client, db_session):
    headers = auth_headers(user_id="user-456", email="chef@example.com", full_name="Sam Chef")
    for _ in range(3):
        assert client.post("/api/recipe/generate-recipe", json={"ingredients": "pasta"}, headers=headers).status_code == 200
    assert client.post("/api/recipe/generate-recipe", json={"ingredients": "pasta"}, headers=headers).status_code == 429

    # The client IP still has its own quota
    assert client.post("/api/recipe/generate-recipe", json={"ingredients": "pasta"}).status_code == 200

    db_session.expire_all()
    user = db_session.query(User).filter(User.id == "user-456").one()
    assert user.full_name == "Sam Chef"
    assert user.recipe_count == 3


def test_validation_errors_return_field_details(client):
    response = client.post("/api/recipe/generate-recipe", json={"ingredients": "ab", "cuisine": "martian"})

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "VALIDATION_FAILED"
    fields = {detail["field"] for detail in body["details"]}
    assert {"ingredients", "cuisine"} <= fields


def test_invalid_request_is_not_counted(client):
    for _ in range(3):
        assert client.post("/api/recipe/generate-recipe", json={"ingredients": ""}).status_code == 400
    assert client.post("/api/recipe/generate-recipe", json={"ingredients": "beef, onion"}).status_code == 200


def test_generated_recipe_metadata(client):
    app.state.llm_client = make_llm_client(lambda request: completion_response(LLM_RECIPE, total_tokens=777))

    response = client.post("/api/recipe/generate-recipe", json={"ingredients": "chicken, rice, garlic"})

    assert response.status_code == 200
    metadata = response.json()["metadata"]
    assert metadata["source"] == "generated"
    assert metadata["tokensUsed"] == 777
    assert metadata["model"] == "gpt-4"
    assert "generatedAt" in metadata


def test_llm_quota_exhaustion_returns_503(client):
    app.state.llm_client = make_llm_client(
        lambda request: httpx.Response(429, json={"error": {"code": "insufficient_quota", "message": "quota"}})
    )

    response = client.post("/api/recipe/generate-recipe", json={"ingredients": "chicken, rice"})

    assert response.status_code == 503
    assert response.json()["code"] == "SERVICE_UNAVAILABLE"


def test_suggestions_without_llm_use_templates(client):
    response = client.get("/api/recipe/suggestions", params={"ingredients": "pasta, bacon"})
    assert response.status_code == 200
    assert response.json()["suggestions"][0] == "Creamy Bacon Pasta"


def test_suggestions_require_ingredients(client):
    assert client.get("/api/recipe/suggestions", params={"ingredients": "ab"}).status_code == 400


def test_health(client):
    body = client.get("/api/health").json()
    assert body["status"] == "healthy"
    assert "timestamp" in body
    assert "version" in body
