from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Cuisine = Literal["korean", "italian", "asian", "mexican", "american", "mediterranean", "indian", "french", ""]
CookingTime = Literal["quick", "medium", "long", "extended", ""]
Dietary = Literal["vegetarian", "vegan", "gluten-free", "low-carb", "keto", "high-protein", ""]
SkillLevel = Literal["beginner", "intermediate", "advanced"]
Difficulty = Literal["easy", "medium", "hard"]


class Nutrition(BaseModel):
    calories: Optional[str] = None
    protein: Optional[str] = None
    carbs: Optional[str] = None
    fat: Optional[str] = None


class Recipe(BaseModel):
    """A recipe as returned to clients. Serialized with camelCase keys (prepTime, cookTime, ...)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    description: str = ""
    prep_time: str = ""
    cook_time: str = ""
    total_time: str = ""
    servings: str = ""
    difficulty: Difficulty = "easy"
    ingredients: List[str] = Field(default_factory=list)
    instructions: List[str] = Field(default_factory=list)
    tips: List[str] = Field(default_factory=list)
    nutrition: Optional[Nutrition] = None

    def to_response(self) -> Dict:
        return self.model_dump(by_alias=True)


class RecipeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ingredients: str = Field(..., min_length=3, max_length=500)
    cuisine: Optional[Cuisine] = None
    cooking_time: Optional[CookingTime] = Field(None, alias="cookingTime")
    dietary: Optional[Dietary] = None
    skill_level: Optional[SkillLevel] = Field(None, alias="skillLevel")

    @field_validator("ingredients")
    @classmethod
    def ingredients_not_blank(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 3:
            raise ValueError("Ingredients must be between 3 and 500 characters")
        return value
