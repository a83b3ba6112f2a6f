"""
Adjust a recipe (template or generated) to the options the user picked.

Every step has a safe default: unknown cooking times, restrictions, skill
levels and cuisines leave the recipe as it was.
"""
import re
from typing import Dict, List, Optional, Sequence, Tuple

from app.schemas.recipe import Recipe

MIN_APPENDED_INGREDIENT_LENGTH = 3
APPENDED_QUANTITY = "as needed"

COOKING_TIME_TABLE: Dict[str, Dict[str, str]] = {
    "quick": {"prep": "5 min", "cook": "10 min", "total": "15 min"},
    "medium": {"prep": "10 min", "cook": "20 min", "total": "30 min"},
    "long": {"prep": "15 min", "cook": "45 min", "total": "60 min"},
    "extended": {"prep": "30 min", "cook": "90 min", "total": "120 min"},
}

# (from, to) pairs per restriction; matched case-insensitively as whole words
DIETARY_SUBSTITUTIONS: Dict[str, List[Tuple[str, str]]] = {
    "vegetarian": [
        ("chicken breast", "tofu"),
        ("chicken", "tofu"),
        ("pork", "mushrooms"),
        ("beef", "plant-based mince"),
        ("bacon", "smoked mushrooms"),
    ],
    "vegan": [
        ("eggs", "aquafaba"),
        ("egg", "aquafaba"),
        ("heavy cream", "coconut cream"),
        ("milk", "soy milk"),
        ("butter", "olive oil"),
        ("cheese", "nutritional yeast"),
    ],
    "gluten-free": [
        ("flour", "rice flour"),
        ("noodles", "rice noodles"),
        ("pasta", "gluten-free pasta"),
        ("bread", "gluten-free bread"),
        ("soy sauce", "tamari"),
    ],
    "keto": [
        ("rice", "cauliflower rice"),
        ("potato", "radish"),
        ("sugar", "stevia"),
        ("noodles", "zucchini noodles"),
    ],
}

SKILL_TO_DIFFICULTY: Dict[str, str] = {
    "beginner": "easy",
    "intermediate": "medium",
    "advanced": "hard",
}

CUISINE_MARKERS: Dict[str, str] = {
    "korean": "\U0001F35A",  # rice bowl
    "italian": "\U0001F35D",  # spaghetti
    "asian": "\U0001F35C",  # steaming bowl
    "mexican": "\U0001F32E",  # taco
    "american": "\U0001F354",  # hamburger
    "mediterranean": "\U0001F959",  # stuffed flatbread
    "indian": "\U0001F35B",  # curry rice
    "french": "\U0001F950",  # croissant
}
DEFAULT_MARKER = "\U0001F373"  # cooking
ALL_MARKERS = frozenset(CUISINE_MARKERS.values()) | {DEFAULT_MARKER}


def merge_user_ingredients(ingredients: Sequence[str], user_ingredients: Sequence[str]) -> List[str]:
    merged = list(ingredients)
    for user_ingredient in user_ingredients:
        if len(user_ingredient) < MIN_APPENDED_INGREDIENT_LENGTH:
            continue
        if any(user_ingredient in existing.lower() for existing in merged):
            continue
        merged.append(f"{user_ingredient} ({APPENDED_QUANTITY})")
    return merged


def apply_cooking_time(recipe: Recipe, cooking_time: Optional[str]) -> Recipe:
    times = COOKING_TIME_TABLE.get(cooking_time or "")
    if not times:
        return recipe
    return recipe.model_copy(
        update={"prep_time": times["prep"], "cook_time": times["cook"], "total_time": times["total"]}
    )


def _substitution_pattern(substitutions: Sequence[Tuple[str, str]]) -> "re.Pattern":
    # Longest term first; a plural "s"/"es" may follow, but no other letters ("egg" vs "eggplant")
    terms = sorted((source for source, _ in substitutions), key=len, reverse=True)
    alternation = "|".join(re.escape(term) for term in terms)
    return re.compile(rf"\b(?:{alternation})(?=(?:e?s)?\b)", re.IGNORECASE)


def substitute_ingredients(ingredients: Sequence[str], dietary: Optional[str]) -> List[str]:
    """One pass per ingredient, so a replacement is never substituted again."""
    substitutions = DIETARY_SUBSTITUTIONS.get(dietary or "")
    if not substitutions:
        return list(ingredients)
    targets = dict(substitutions)
    pattern = _substitution_pattern(substitutions)

    def replace(match: "re.Match") -> str:
        source = match.group(0).lower()
        target = targets[source]
        # "rice flour" is already the gluten-free form of "flour"
        prefix = target[: -len(source)] if target.lower().endswith(source) else ""
        if prefix and match.string[: match.start()].lower().endswith(prefix.lower()):
            return match.group(0)
        return target

    return [pattern.sub(replace, ingredient) for ingredient in ingredients]


def apply_dietary_restriction(recipe: Recipe, dietary: Optional[str]) -> Recipe:
    if (dietary or "") not in DIETARY_SUBSTITUTIONS:
        return recipe
    return recipe.model_copy(
        update={
            "ingredients": substitute_ingredients(recipe.ingredients, dietary),
            "name": f"{recipe.name} ({dietary})",
        }
    )


def difficulty_for_skill(skill_level: Optional[str], current: str) -> str:
    return SKILL_TO_DIFFICULTY.get(skill_level or "", current)


def apply_cuisine_marker(name: str, cuisine: Optional[str]) -> str:
    """Prefix one cuisine marker unless the name already carries any known marker."""
    if any(marker in name for marker in ALL_MARKERS):
        return name
    marker = CUISINE_MARKERS.get(cuisine or "", DEFAULT_MARKER)
    return f"{marker} {name}"


def customize_recipe(
    recipe: Recipe,
    user_ingredients: Sequence[str],
    cuisine: Optional[str] = None,
    cooking_time: Optional[str] = None,
    dietary: Optional[str] = None,
    skill_level: Optional[str] = None,
) -> Recipe:
    customized = recipe.model_copy(
        update={"ingredients": merge_user_ingredients(recipe.ingredients, user_ingredients)}
    )
    customized = apply_cooking_time(customized, cooking_time)
    customized = apply_dietary_restriction(customized, dietary)
    customized = customized.model_copy(
        update={"difficulty": difficulty_for_skill(skill_level, customized.difficulty)}
    )
    return customized.model_copy(update={"name": apply_cuisine_marker(customized.name, cuisine)})
