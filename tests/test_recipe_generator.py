import httpx
import pytest

from app.schemas.recipe import RecipeRequest
from app.services.llm_client import LLMQuotaExceededError
from app.services.recipe_generator import (
    FallbackRecipe,
    GeneratedRecipe,
    build_recipe_prompt,
    normalize_recipe,
    produce_recipe,
    suggest_recipe_names,
)
from tests.conftest import completion_response, make_llm_client

LLM_RECIPE = {
    "name": "Garlic Chicken Rice Bowl",
    "description": "Savory rice bowl",
    "prepTime": "10 min",
    "cookTime": "20 min",
    "totalTime": "30 min",
    "servings": "2 servings",
    "difficulty": "medium",
    "ingredients": ["2 chicken thighs", "1 cup rice", "4 cloves garlic"],
    "instructions": ["Cook rice", "Sear chicken", "Combine"],
    "tips": ["Rest the chicken"],
    "nutrition": {"calories": "550 kcal", "protein": "40g", "carbs": "60g", "fat": "15g"},
}


def test_prompt_mentions_every_selected_option():
    request = RecipeRequest(ingredients="tofu, rice", cuisine="korean", cookingTime="quick",
                            dietary="vegan", skillLevel="beginner")
    prompt = build_recipe_prompt(request)
    assert "tofu, rice" in prompt
    assert "Korean" in prompt
    assert "under 15 minutes" in prompt
    assert "vegan" in prompt
    assert "beginner" in prompt


def test_normalize_fills_missing_fields():
    recipe = normalize_recipe({"name": "Mystery Dish", "difficulty": "Impossible", "ingredients": ["x", 2]})
    assert recipe.name == "Mystery Dish"
    assert recipe.difficulty == "easy"
    assert recipe.ingredients == ["x", "2"]
    assert recipe.instructions == []
    assert recipe.total_time
    assert recipe.nutrition is not None


@pytest.mark.asyncio
async def test_unconfigured_llm_falls_back_to_templates():
    outcome = await produce_recipe(RecipeRequest(ingredients="chicken, rice, garlic", cuisine="asian"), None)
    assert isinstance(outcome, FallbackRecipe)
    assert outcome.reason == "not_configured"
    assert "Stir-Fried Noodles" in outcome.recipe.name


@pytest.mark.asyncio
async def test_generated_recipe_is_customized():
    llm = make_llm_client(lambda request: completion_response(LLM_RECIPE, total_tokens=900))
    request = RecipeRequest(ingredients="chicken, rice, garlic, scallions", cuisine="asian", skillLevel="advanced")

    outcome = await produce_recipe(request, llm)

    assert isinstance(outcome, GeneratedRecipe)
    assert outcome.tokens_used == 900
    assert outcome.recipe.difficulty == "hard"
    assert outcome.recipe.ingredients[-1] == "scallions (as needed)"
    assert outcome.recipe.name.endswith("Garlic Chicken Rice Bowl")
    await llm.http_client.aclose()


@pytest.mark.asyncio
async def test_provider_error_falls_back_with_reason():
    llm = make_llm_client(lambda request: httpx.Response(500, json={"error": {"type": "server_error"}}))
    outcome = await produce_recipe(RecipeRequest(ingredients="pasta, bacon"), llm)
    assert isinstance(outcome, FallbackRecipe)
    assert outcome.reason == "server_error"
    assert "Creamy Bacon Pasta" in outcome.recipe.name
    await llm.http_client.aclose()


@pytest.mark.asyncio
async def test_quota_exhaustion_is_raised():
    llm = make_llm_client(
        lambda request: httpx.Response(429, json={"error": {"code": "insufficient_quota", "message": "quota"}})
    )
    with pytest.raises(LLMQuotaExceededError):
        await produce_recipe(RecipeRequest(ingredients="pasta, bacon"), llm)
    await llm.http_client.aclose()


@pytest.mark.asyncio
async def test_suggestions_fall_back_to_template_names():
    llm = make_llm_client(lambda request: httpx.Response(503, text="unavailable"))
    names = await suggest_recipe_names("kimchi, rice", llm)
    assert names[0] == "Kimchi Fried Rice"
    assert len(names) <= 5
    await llm.http_client.aclose()


@pytest.mark.asyncio
async def test_suggestions_from_llm():
    llm = make_llm_client(lambda request: completion_response({"recipes": ["A", "B", "C"]}))
    assert await suggest_recipe_names("eggs, spinach", llm) == ["A", "B", "C"]
    await llm.http_client.aclose()


@pytest.mark.asyncio
async def test_empty_suggestions_reply_falls_back_to_template_names():
    llm = make_llm_client(lambda request: completion_response({"recipes": []}))
    names = await suggest_recipe_names("kimchi, rice", llm)
    assert names[0] == "Kimchi Fried Rice"
    assert 3 <= len(names) <= 5
    await llm.http_client.aclose()
