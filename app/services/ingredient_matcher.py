"""
Pick the template whose ingredient list mentions the most of the user's ingredients.
"""
import re
from typing import List, Sequence, Tuple

from app.schemas.recipe import Recipe

_SEPARATORS = re.compile(r"[,\n]")


def parse_ingredients(raw: str) -> List[str]:
    """Split free text on commas/newlines into lowercase, trimmed, non-empty tokens."""
    return [part.strip().lower() for part in _SEPARATORS.split(raw or "") if part.strip()]


def score_template(user_ingredients: Sequence[str], template: Recipe) -> int:
    haystack = " ".join(template.ingredients).lower()
    return sum(1 for ingredient in user_ingredients if ingredient in haystack)


def find_best_match(user_ingredients: Sequence[str], templates: Sequence[Recipe]) -> Tuple[Recipe, int]:
    """
    Return (template, score) for the highest-scoring template.

    Ties keep the earliest template; when nothing scores above zero the first
    template is returned with score 0.
    """
    if not templates:
        raise ValueError("Template catalog is empty")

    best, best_score = templates[0], 0
    for template in templates:
        score = score_template(user_ingredients, template)
        if score > best_score:
            best, best_score = template, score
    return best, best_score
