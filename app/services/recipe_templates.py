"""
Hand-authored recipes served when live generation is unavailable.

Templates are grouped by cuisine. The "default" group holds general-purpose
dishes and is iterated first, so it is what callers get when nothing matches.
"""
from typing import Dict, List, Optional

from app.schemas.recipe import Recipe

RECIPE_TEMPLATES: Dict[str, List[dict]] = {
    "default": [
        {
            "name": "Chicken and Vegetable Stir-Fry",
            "description": "A light, high-protein weeknight stir-fry",
            "prep_time": "10 min",
            "cook_time": "15 min",
            "total_time": "25 min",
            "servings": "2 servings",
            "difficulty": "easy",
            "ingredients": [
                "200g chicken breast",
                "1 onion",
                "2 bell peppers",
                "3 cloves garlic",
                "2 tbsp soy sauce",
                "2 tbsp olive oil",
                "salt and pepper",
            ],
            "instructions": [
                "Cut the chicken breast into bite-sized pieces",
                "Slice the vegetables into even strips",
                "Heat oil in a pan and sear the chicken",
                "Add the vegetables once the chicken is cooked through",
                "Season with soy sauce and toss well",
                "Finish with salt and pepper",
            ],
            "tips": [
                "Chicken breast dries out quickly, so do not overcook it",
                "Keep the vegetables crisp",
            ],
            "nutrition": {"calories": "about 350 kcal", "protein": "35g", "carbs": "12g", "fat": "18g"},
        },
        {
            "name": "Egg Fried Rice",
            "description": "Simple and satisfying everyday fried rice",
            "prep_time": "5 min",
            "cook_time": "10 min",
            "total_time": "15 min",
            "servings": "1 serving",
            "difficulty": "easy",
            "ingredients": [
                "1 bowl cooked rice",
                "2 eggs",
                "1 green onion",
                "1 clove garlic",
                "1 tbsp soy sauce",
                "1 tsp sesame oil",
                "2 tbsp vegetable oil",
                "a pinch of salt",
            ],
            "instructions": [
                "Beat the eggs with a pinch of salt",
                "Scramble the eggs in an oiled pan",
                "Add the garlic and cook until fragrant",
                "Add the rice and stir-fry with the eggs",
                "Season with soy sauce and green onion",
                "Finish with sesame oil",
            ],
            "tips": [
                "Keep the eggs soft when scrambling",
                "Day-old rice gives a fluffier result",
            ],
        },
        {
            "name": "Garden Salad",
            "description": "A fresh and healthy vegetable salad",
            "prep_time": "15 min",
            "cook_time": "0 min",
            "total_time": "15 min",
            "servings": "2 servings",
            "difficulty": "easy",
            "ingredients": [
                "1 head lettuce",
                "2 tomatoes",
                "1 cucumber",
                "1/2 carrot",
                "3 tbsp olive oil",
                "1 tbsp vinegar",
                "salt and pepper",
                "cheese (optional)",
            ],
            "instructions": [
                "Wash the lettuce in cold water and dry it well",
                "Cut the tomatoes into bite-sized pieces",
                "Slice the cucumber and carrot",
                "Combine all vegetables in a bowl",
                "Whisk olive oil and vinegar into a dressing",
                "Dress and toss just before serving",
            ],
            "tips": [
                "Keep the vegetables chilled until serving",
                "Dress the salad right before eating",
            ],
        },
    ],
    "korean": [
        {
            "name": "Kimchi Fried Rice",
            "description": "Spicy and savory Korean classic fried rice",
            "prep_time": "10 min",
            "cook_time": "15 min",
            "total_time": "25 min",
            "servings": "2 servings",
            "difficulty": "easy",
            "ingredients": [
                "2 bowls cooked rice",
                "1 cup kimchi",
                "100g pork",
                "2 eggs",
                "2 green onions",
                "2 cloves garlic",
                "1 tbsp sesame oil",
                "1 tbsp soy sauce",
            ],
            "instructions": [
                "Stir-fry the pork in an oiled pan",
                "Add the kimchi and cook together",
                "Add the rice and mix while frying",
                "Season with soy sauce and add the green onions",
                "Stir in the beaten eggs",
                "Finish with sesame oil",
            ],
            "tips": [
                "Well-fermented kimchi gives the best flavor",
                "Cold rice fries better",
            ],
            "nutrition": {"calories": "about 520 kcal", "protein": "25g", "carbs": "65g", "fat": "18g"},
        },
        {
            "name": "Doenjang Jjigae",
            "description": "Hearty soybean paste stew",
            "prep_time": "15 min",
            "cook_time": "20 min",
            "total_time": "35 min",
            "servings": "3-4 servings",
            "difficulty": "easy",
            "ingredients": [
                "3 tbsp doenjang",
                "1/2 block tofu",
                "1 potato",
                "1/2 onion",
                "1/3 zucchini",
                "2 green chilies",
                "3 cloves garlic",
                "2 cups anchovy broth",
            ],
            "instructions": [
                "Prepare the anchovy broth",
                "Cut the potato and onion into large chunks",
                "Dissolve the doenjang in the simmering broth",
                "Add the potato and onion and simmer",
                "Add the tofu, zucchini and chilies",
                "Finish with garlic",
            ],
            "tips": [
                "Straining the doenjang makes the stew smoother",
                "Add the tofu last so it does not break apart",
            ],
            "nutrition": {"calories": "about 180 kcal", "protein": "12g", "carbs": "15g", "fat": "8g"},
        },
    ],
    "italian": [
        {
            "name": "Creamy Bacon Pasta",
            "description": "Rich and silky cream sauce pasta",
            "prep_time": "10 min",
            "cook_time": "20 min",
            "total_time": "30 min",
            "servings": "2 servings",
            "difficulty": "easy",
            "ingredients": [
                "200g pasta",
                "200ml heavy cream",
                "100g bacon",
                "1/2 onion",
                "3 cloves garlic",
                "50g parmesan cheese",
                "2 tbsp olive oil",
                "salt and pepper",
            ],
            "instructions": [
                "Boil the pasta in salted water",
                "Fry the bacon in olive oil",
                "Add the onion and garlic and saute",
                "Pour in the cream and lower the heat once it simmers",
                "Toss in the cooked pasta",
                "Finish with parmesan and black pepper",
            ],
            "tips": [
                "Cook the pasta al dente",
                "Do not let the cream boil hard or it may split",
            ],
        },
        {
            "name": "Tomato Basil Pasta",
            "description": "Bright and fresh tomato pasta",
            "prep_time": "15 min",
            "cook_time": "25 min",
            "total_time": "40 min",
            "servings": "2 servings",
            "difficulty": "easy",
            "ingredients": [
                "200g pasta",
                "1 can tomatoes",
                "1 onion",
                "4 cloves garlic",
                "10 basil leaves",
                "3 tbsp olive oil",
                "salt and pepper",
                "parmesan cheese",
            ],
            "instructions": [
                "Start boiling the pasta",
                "Finely chop the onion and garlic",
                "Saute the onion in olive oil",
                "Add the garlic and cook until fragrant",
                "Add the tomatoes and simmer",
                "Toss with the pasta and basil",
            ],
            "tips": [
                "Crush the tomatoes while cooking for a deeper sauce",
                "Add basil at the end to keep its aroma",
            ],
        },
    ],
    "asian": [
        {
            "name": "Stir-Fried Noodles",
            "description": "Quick and tasty Asian-style fried noodles",
            "prep_time": "10 min",
            "cook_time": "15 min",
            "total_time": "25 min",
            "servings": "2 servings",
            "difficulty": "easy",
            "ingredients": [
                "2 packs ramen noodles",
                "2 cabbage leaves",
                "1/2 carrot",
                "1/2 onion",
                "2 tbsp soy sauce",
                "1 tbsp oyster sauce",
                "1 tbsp sesame oil",
                "2 tbsp vegetable oil",
            ],
            "instructions": [
                "Parboil the noodles in boiling water",
                "Julienne the vegetables",
                "Stir-fry the vegetables in an oiled pan",
                "Add the noodles and toss together",
                "Season with soy sauce and oyster sauce",
                "Finish with sesame oil",
            ],
            "tips": [
                "Do not overcook the noodles",
                "High heat and fast tossing are the key",
            ],
        },
    ],
    "mexican": [
        {
            "name": "Chicken Burrito",
            "description": "Spiced chicken wrapped with fresh vegetables",
            "prep_time": "20 min",
            "cook_time": "15 min",
            "total_time": "35 min",
            "servings": "2 servings",
            "difficulty": "medium",
            "ingredients": [
                "4 flour tortillas",
                "300g chicken breast",
                "1 onion",
                "1 bell pepper",
                "1 tomato",
                "100g cheese",
                "sour cream",
                "taco seasoning",
            ],
            "instructions": [
                "Cut the chicken breast into bite-sized pieces",
                "Slice the vegetables",
                "Season the chicken and stir-fry",
                "Add the vegetables and cook together",
                "Fill the tortillas",
                "Roll them up tightly",
            ],
            "tips": [
                "Warm the tortillas briefly before filling",
                "Do not overfill or they will be hard to roll",
            ],
        },
    ],
}


def get_templates(cuisine: Optional[str] = None) -> List[Recipe]:
    """Templates for one cuisine, or the whole catalog (default group first) when cuisine is None."""
    if cuisine is not None:
        return [Recipe(**t) for t in RECIPE_TEMPLATES.get(cuisine, [])]
    return [Recipe(**t) for group in RECIPE_TEMPLATES.values() for t in group]


def has_templates(cuisine: Optional[str]) -> bool:
    return bool(cuisine) and bool(RECIPE_TEMPLATES.get(cuisine))
