"""
Produce a recipe for a request: ask the LLM first, fall back to templates.

produce_recipe() returns either GeneratedRecipe or FallbackRecipe so the route
never has to inspect exception types. The only error it lets through is
LLMQuotaExceededError, which the API reports as 503.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Union

from pydantic import ValidationError

from app.schemas.recipe import Recipe, RecipeRequest
from app.services.ingredient_matcher import find_best_match, parse_ingredients
from app.services.llm_client import LLMClient, LLMError, LLMQuotaExceededError
from app.services.recipe_customizer import customize_recipe
from app.services.recipe_templates import get_templates, has_templates

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a professional chef and recipe developer. Create detailed, practical recipes "
    "that are easy to follow. Always respond in valid JSON format."
)
SUGGESTIONS_SYSTEM_PROMPT = (
    "You are a helpful cooking assistant. Suggest 3-5 simple recipe names based on the given "
    'ingredients. Respond in JSON format: {"recipes": ["name", ...]}.'
)

CUISINE_NAMES = {
    "korean": "Korean",
    "italian": "Italian",
    "asian": "Asian",
    "mexican": "Mexican",
    "american": "American",
    "mediterranean": "Mediterranean",
    "indian": "Indian",
    "french": "French",
}

COOKING_TIME_PHRASES = {
    "quick": "under 15 minutes",
    "medium": "15-30 minutes",
    "long": "30-60 minutes",
    "extended": "over 1 hour",
}

RESPONSE_SHAPE = """
Please respond with a JSON object containing:
{
  "name": "Recipe name",
  "description": "Brief description",
  "prepTime": "Preparation time",
  "cookTime": "Cooking time",
  "totalTime": "Total time",
  "servings": "Number of servings",
  "difficulty": "easy/medium/hard",
  "ingredients": ["ingredient 1", "ingredient 2", ...],
  "instructions": ["step 1", "step 2", ...],
  "tips": ["tip 1", "tip 2", ...],
  "nutrition": {
    "calories": "approximate calories per serving",
    "protein": "protein content",
    "carbs": "carbohydrate content",
    "fat": "fat content"
  }
}"""

DEFAULT_RECIPE_FIELDS = {
    "name": "Delicious Recipe",
    "description": "A wonderful dish made with fresh ingredients",
    "prepTime": "10 min",
    "cookTime": "20 min",
    "totalTime": "30 min",
    "servings": "2-3 servings",
    "difficulty": "easy",
    "nutrition": {"calories": "about 400 kcal", "protein": "20g", "carbs": "45g", "fat": "15g"},
}


@dataclass
class GeneratedRecipe:
    recipe: Recipe
    model: Optional[str] = None
    tokens_used: Optional[int] = None
    source: str = "generated"


@dataclass
class FallbackRecipe:
    recipe: Recipe
    reason: str
    source: str = "fallback"


RecipeOutcome = Union[GeneratedRecipe, FallbackRecipe]


def build_recipe_prompt(request: RecipeRequest) -> str:
    prompt = f"Create a detailed recipe using these ingredients: {request.ingredients}."
    if request.cuisine in CUISINE_NAMES:
        prompt += f" The recipe should be {CUISINE_NAMES[request.cuisine]} cuisine."
    if request.cooking_time in COOKING_TIME_PHRASES:
        prompt += f" Cooking time should be {COOKING_TIME_PHRASES[request.cooking_time]}."
    if request.dietary:
        prompt += f" The recipe must be {request.dietary}."
    if request.skill_level:
        prompt += f" Make it suitable for {request.skill_level} cooks."
    return prompt + "\n" + RESPONSE_SHAPE


def _as_text(value) -> str:
    return value if isinstance(value, str) else str(value)


def normalize_recipe(data: dict) -> Recipe:
    """Fill in every field the model left out and coerce loosely-typed values."""
    merged = dict(DEFAULT_RECIPE_FIELDS)
    merged.update({k: v for k, v in data.items() if v not in (None, "")})

    for key in ("name", "description", "prepTime", "cookTime", "totalTime", "servings"):
        merged[key] = _as_text(merged[key])

    difficulty = _as_text(merged.get("difficulty")).lower()
    merged["difficulty"] = difficulty if difficulty in ("easy", "medium", "hard") else "easy"

    for key in ("ingredients", "instructions", "tips"):
        value = merged.get(key)
        merged[key] = [_as_text(item) for item in value] if isinstance(value, list) else []

    if not isinstance(merged.get("nutrition"), dict):
        merged["nutrition"] = DEFAULT_RECIPE_FIELDS["nutrition"]
    else:
        merged["nutrition"] = {k: _as_text(v) for k, v in merged["nutrition"].items()
                               if k in ("calories", "protein", "carbs", "fat") and v is not None}

    return Recipe.model_validate(merged)


def select_template(request: RecipeRequest, user_ingredients: List[str]) -> Recipe:
    """Match within the requested cuisine when it has templates, otherwise across the catalog."""
    cuisine = request.cuisine if has_templates(request.cuisine) else None
    template, score = find_best_match(user_ingredients, get_templates(cuisine))
    logger.info("[RECIPE] Template %r selected (cuisine=%s, score=%d)", template.name, cuisine or "any", score)
    return template


def _customize(recipe: Recipe, request: RecipeRequest, user_ingredients: List[str]) -> Recipe:
    return customize_recipe(
        recipe,
        user_ingredients,
        cuisine=request.cuisine,
        cooking_time=request.cooking_time,
        dietary=request.dietary,
        skill_level=request.skill_level,
    )


def fallback_recipe(request: RecipeRequest, reason: str) -> FallbackRecipe:
    user_ingredients = parse_ingredients(request.ingredients)
    template = select_template(request, user_ingredients)
    return FallbackRecipe(recipe=_customize(template, request, user_ingredients), reason=reason)


async def produce_recipe(request: RecipeRequest, llm: Optional[LLMClient], model: str = "gpt-4") -> RecipeOutcome:
    if llm is None or not llm.is_configured:
        return fallback_recipe(request, reason="not_configured")

    try:
        data, meta = await llm.complete_json(
            model=model,
            system_prompt=SYSTEM_PROMPT,
            user_prompt=build_recipe_prompt(request),
            temperature=0.7,
            max_tokens=1500,
        )
        recipe = normalize_recipe(data)
    except LLMQuotaExceededError:
        raise
    except LLMError as e:
        logger.warning("[RECIPE] LLM generation failed (%s): %s - using template", e.code, e)
        return fallback_recipe(request, reason=e.code)
    except ValidationError as e:
        logger.warning("[RECIPE] LLM returned an unusable recipe: %s - using template", e)
        return fallback_recipe(request, reason="invalid_response")

    user_ingredients = parse_ingredients(request.ingredients)
    return GeneratedRecipe(
        recipe=_customize(recipe, request, user_ingredients),
        model=meta.get("model"),
        tokens_used=meta.get("tokens_used"),
    )


def template_suggestions(ingredients: str, limit: int = 5) -> List[str]:
    user_ingredients = parse_ingredients(ingredients)
    ranked = sorted(
        get_templates(),
        key=lambda t: -sum(1 for i in user_ingredients if i in " ".join(t.ingredients).lower()),
    )
    return [t.name for t in ranked[:limit]]


async def suggest_recipe_names(ingredients: str, llm: Optional[LLMClient], model: str = "gpt-3.5-turbo") -> List[str]:
    """3-5 recipe names for the ingredients; template names when the LLM is unavailable."""
    if llm is None or not llm.is_configured:
        return template_suggestions(ingredients)
    try:
        data, _ = await llm.complete_json(
            model=model,
            system_prompt=SUGGESTIONS_SYSTEM_PROMPT,
            user_prompt=f"Suggest recipe names for these ingredients: {ingredients}",
            temperature=0.8,
            max_tokens=200,
        )
    except LLMError as e:
        logger.warning("[RECIPE] Suggestions failed (%s): %s - using templates", e.code, e)
        return template_suggestions(ingredients)

    names = data.get("recipes") or data.get("suggestions") or []
    if isinstance(names, list):
        names = [_as_text(name).strip() for name in names if _as_text(name).strip()]
    if not isinstance(names, list) or not names:
        logger.warning("[RECIPE] Suggestions reply had no recipe names - using templates")
        return template_suggestions(ingredients)
    return names[:5]
