from urllib.parse import parse_qs, urlparse

from app.services.affiliate_products import add_tracking_params, list_categories, recommend_products, search_products


def _query(url):
    return parse_qs(urlparse(url).query)


def test_tracking_params_keep_existing_tag():
    url = add_tracking_params("https://amazon.com/dp/B1?tag=existing-20", {"source": "ai-recipe-chef", "query": None})
    params = _query(url)
    assert params["tag"] == ["existing-20"]
    assert params["utm_source"] == ["ai-recipe-chef"]
    assert "utm_query" not in params


def test_tracking_params_add_missing_tag():
    url = add_tracking_params("https://amazon.com/dp/B1", {}, affiliate_tag="chef-20")
    assert _query(url)["tag"] == ["chef-20"]


def test_cuisine_products_come_before_general():
    products = recommend_products(cuisine="korean", limit=20)
    ids = [p["id"] for p in products]
    assert ids[:2] == ["gochujang-1", "sesame-oil-1"]
    assert "cast-iron-1" in ids
    assert len(ids) == len(set(ids))


def test_category_filter_and_limit():
    products = recommend_products(cuisine="italian", category="tool", limit=2)
    assert [p["category"] for p in products] == ["tool", "tool"]
    assert products[0]["id"] == "pasta-maker-1"


def test_recipe_keywords_rank_products():
    products = recommend_products(recipe="pre-seasoned skillet steak", limit=3)
    assert products[0]["id"] == "cast-iron-1"
    assert products[0]["relevanceScore"] > products[1]["relevanceScore"]


def test_search_matches_any_term():
    ids = [p["id"] for p in search_products("sesame knife")]
    assert ids == ["sesame-oil-1", "knife-set-1"]
    params = _query(search_products("sesame")[0]["affiliate_url"])
    assert params["utm_medium"] == ["search"]
    assert params["utm_query"] == ["sesame"]


def test_categories_have_display_names():
    names = {c["id"]: c["name"] for c in list_categories()}
    assert names["cooking_tools"] == "Cooking Tools"


def test_products_endpoint(client):
    response = client.get("/api/amazon/products", params={"cuisine": "italian", "limit": 3})
    assert response.status_code == 200
    body = response.json()
    assert len(body["products"]) == 3
    assert body["metadata"]["disclaimer"].startswith("As an Amazon Associate")
    assert _query(body["products"][0]["affiliate_url"])["utm_userId"] == ["anonymous"]


def test_products_endpoint_validates_filters(client):
    assert client.get("/api/amazon/products", params={"category": "toys"}).status_code == 400
    assert client.get("/api/amazon/products", params={"limit": 50}).status_code == 400


def test_search_endpoint_requires_query(client):
    assert client.get("/api/amazon/search", params={"q": "a"}).status_code == 400
    assert client.get("/api/amazon/search", params={"q": "oil"}).json()["metadata"]["totalFound"] == 2


def test_track_click(client):
    response = client.post("/api/amazon/track-click", json={"productId": "cast-iron-1", "source": "recipe-card"})
    assert response.json() == {"success": True, "message": "Click tracked successfully"}
