import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.errors import AppError
from app.db.session import get_db
from app.dependencies.auth import optional_user
from app.dependencies.clients import get_client_ip, get_llm_client
from app.models.user import User
from app.schemas.recipe import RecipeRequest
from app.services.llm_client import LLMClient, LLMQuotaExceededError
from app.services.recipe_generator import GeneratedRecipe, produce_recipe, suggest_recipe_names
from app.utils.plan_enforcement import check_recipe_limit, rate_limit_headers

logger = logging.getLogger(__name__)

router = APIRouter()


def _increment_recipe_count(db: Session, user_id: str) -> None:
    try:
        db.query(User).filter(User.id == user_id).update(
            {User.recipe_count: User.recipe_count + 1}, synchronize_session=False
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("[RECIPE] Could not update recipe_count for user %s: %s", user_id, e)


@router.post("/generate-recipe")
async def generate_recipe(
    body: RecipeRequest,
    response: Response,
    ip: Optional[str] = Depends(get_client_ip),
    user: Optional[User] = Depends(optional_user),
    db: Session = Depends(get_db),
    llm: Optional[LLMClient] = Depends(get_llm_client),
):
    """Generate a recipe for the given ingredients, falling back to a template when the LLM is unavailable."""
    decision = await run_in_threadpool(check_recipe_limit, db, user, ip)
    if decision.counted:
        response.headers.update(rate_limit_headers(decision))

    logger.info(
        "[RECIPE] Generating recipe (user=%s, cuisine=%s, cookingTime=%s, dietary=%s, skillLevel=%s): %s",
        user.id if user else "anonymous", body.cuisine, body.cooking_time, body.dietary,
        body.skill_level, body.ingredients[:100],
    )

    try:
        outcome = await produce_recipe(body, llm, model=settings.OPENAI_MODEL)
    except LLMQuotaExceededError as e:
        logger.error("[RECIPE] LLM provider quota exhausted: %s", e)
        raise AppError(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "AI service temporarily unavailable. Please try again later.",
            "SERVICE_UNAVAILABLE",
        )

    metadata = {"source": outcome.source, "generatedAt": datetime.now(timezone.utc).isoformat()}
    if isinstance(outcome, GeneratedRecipe):
        metadata["model"] = outcome.model
        metadata["tokensUsed"] = outcome.tokens_used
    else:
        metadata["fallbackReason"] = outcome.reason

    if user is not None:
        await run_in_threadpool(_increment_recipe_count, db, user.id)

    logger.info("[RECIPE] Served %r (%s)", outcome.recipe.name, outcome.source)
    return {"success": True, "recipe": outcome.recipe.to_response(), "metadata": metadata}


@router.get("/suggestions")
async def recipe_suggestions(
    ingredients: str = Query(..., min_length=3, max_length=500),
    user: Optional[User] = Depends(optional_user),
    llm: Optional[LLMClient] = Depends(get_llm_client),
):
    suggestions = await suggest_recipe_names(ingredients, llm, model=settings.OPENAI_SUGGESTIONS_MODEL)
    return {"success": True, "suggestions": suggestions}
