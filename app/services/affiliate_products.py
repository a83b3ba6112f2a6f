"""
Curated Amazon affiliate products shown next to recipes.

There is no Product Advertising API integration; recommendations come from the
static catalog below, ranked against the recipe text.
"""
import logging
from typing import Dict, List, Literal, Optional

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)

DISCLAIMER = "As an Amazon Associate, we earn from qualifying purchases."

ProductCategory = Literal["tool", "ingredient", "appliance", "organization"]

PRODUCT_CATEGORIES: Dict[str, Dict] = {
    "cooking_tools": {
        "keywords": ["pan", "pot", "knife", "cutting board", "spatula", "whisk", "measuring cup"],
        "category": "Kitchen & Dining",
    },
    "ingredients": {
        "keywords": ["sauce", "spice", "oil", "vinegar", "flour", "sugar", "salt"],
        "category": "Grocery & Gourmet Food",
    },
    "appliances": {
        "keywords": ["blender", "mixer", "food processor", "oven", "microwave"],
        "category": "Kitchen & Dining",
    },
}

CURATED_PRODUCTS: Dict[str, List[Dict]] = {
    "korean": [
        {
            "id": "gochujang-1",
            "title": "CJ Haechandle Gochujang Korean Chili Paste",
            "price": "$8.99",
            "rating": 4.6,
            "reviewCount": 1250,
            "image": "https://m.media-amazon.com/images/I/61ZQoE2CVOL._SL1500_.jpg",
            "affiliate_url": "https://amazon.com/dp/B00886GU4U?tag=airecipechef-20",
            "category": "ingredient",
            "description": "Authentic Korean fermented chili paste",
        },
        {
            "id": "sesame-oil-1",
            "title": "Kadoya Pure Sesame Oil",
            "price": "$12.99",
            "rating": 4.7,
            "reviewCount": 890,
            "image": "https://m.media-amazon.com/images/I/71VXoE2CVOL._SL1500_.jpg",
            "affiliate_url": "https://amazon.com/dp/B00027J5UG?tag=airecipechef-20",
            "category": "ingredient",
            "description": "Premium toasted sesame oil",
        },
    ],
    "italian": [
        {
            "id": "pasta-maker-1",
            "title": "Marcato Atlas 150 Pasta Machine",
            "price": "$79.95",
            "rating": 4.5,
            "reviewCount": 2100,
            "image": "https://m.media-amazon.com/images/I/71nVXoE2CVOL._SL1500_.jpg",
            "affiliate_url": "https://amazon.com/dp/B0009U5OSO?tag=airecipechef-20",
            "category": "tool",
            "description": "Professional pasta maker",
        },
        {
            "id": "olive-oil-1",
            "title": "Colavita Extra Virgin Olive Oil",
            "price": "$15.99",
            "rating": 4.4,
            "reviewCount": 3200,
            "image": "https://m.media-amazon.com/images/I/61ZQoE2CVOL._SL1500_.jpg",
            "affiliate_url": "https://amazon.com/dp/B000H29N6W?tag=airecipechef-20",
            "category": "ingredient",
            "description": "Premium Italian extra virgin olive oil",
        },
    ],
    "general": [
        {
            "id": "cast-iron-1",
            "title": "Lodge Cast Iron Skillet",
            "price": "$24.90",
            "rating": 4.6,
            "reviewCount": 15000,
            "image": "https://m.media-amazon.com/images/I/81ZQoE2CVOL._SL1500_.jpg",
            "affiliate_url": "https://amazon.com/dp/B00006JSUB?tag=airecipechef-20",
            "category": "tool",
            "description": "Pre-seasoned cast iron skillet",
        },
        {
            "id": "cutting-board-1",
            "title": "John Boos Block Cutting Board",
            "price": "$89.99",
            "rating": 4.8,
            "reviewCount": 850,
            "image": "https://m.media-amazon.com/images/I/71VXoE2CVOL._SL1500_.jpg",
            "affiliate_url": "https://amazon.com/dp/B001FB5AAS?tag=airecipechef-20",
            "category": "tool",
            "description": "Professional maple cutting board",
        },
        {
            "id": "knife-set-1",
            "title": "Wusthof Classic 3-Piece Knife Set",
            "price": "$199.95",
            "rating": 4.7,
            "reviewCount": 1200,
            "image": "https://m.media-amazon.com/images/I/61ZQoE2CVOL._SL1500_.jpg",
            "affiliate_url": "https://amazon.com/dp/B00005MEGG?tag=airecipechef-20",
            "category": "tool",
            "description": "Professional German knife set",
        },
        {
            "id": "spice-rack-1",
            "title": "Simply Gourmet Spice Rack",
            "price": "$39.99",
            "rating": 4.3,
            "reviewCount": 650,
            "image": "https://m.media-amazon.com/images/I/71nVXoE2CVOL._SL1500_.jpg",
            "affiliate_url": "https://amazon.com/dp/B07FXYZ123?tag=airecipechef-20",
            "category": "organization",
            "description": "Magnetic spice rack with 20 jars",
        },
    ],
}


def add_tracking_params(url: str, params: Dict[str, Optional[str]], affiliate_tag: Optional[str] = None) -> str:
    """Adds the associate tag (unless already present) and utm_* parameters for each non-empty value."""
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as e:
        logger.error("[PRODUCTS] Could not parse affiliate URL %s: %s", url, e)
        return url

    if "tag" not in parsed.params:
        parsed = parsed.copy_set_param("tag", affiliate_tag or settings.AMAZON_AFFILIATE_TAG)
    for key, value in params.items():
        if value:
            parsed = parsed.copy_set_param(f"utm_{key}", value)
    return str(parsed)


def _relevance(product: Dict, keywords: List[str]) -> int:
    text_title = product["title"].lower()
    text_description = product["description"].lower()
    score = 0
    for keyword in keywords:
        if keyword in text_title or keyword in text_description:
            score += 2
    for category in PRODUCT_CATEGORIES.values():
        for category_keyword in category["keywords"]:
            if category_keyword in keywords:
                score += 1
    return score


def _dedupe(products: List[Dict]) -> List[Dict]:
    seen = set()
    unique = []
    for product in products:
        if product["id"] not in seen:
            seen.add(product["id"])
            unique.append(product)
    return unique


def recommend_products(
    recipe: Optional[str] = None,
    cuisine: Optional[str] = None,
    category: Optional[ProductCategory] = None,
    limit: int = 6,
    user_id: Optional[str] = None,
) -> List[Dict]:
    """Cuisine products first, then general ones, optionally filtered and ranked by recipe keywords."""
    products = [dict(p) for p in CURATED_PRODUCTS.get(cuisine or "", [])]
    products += [dict(p) for p in CURATED_PRODUCTS["general"]]

    if category:
        products = [p for p in products if p["category"] == category]

    if recipe:
        keywords = recipe.lower().split()
        for product in products:
            product["relevanceScore"] = _relevance(product, keywords)
        products.sort(key=lambda p: p["relevanceScore"], reverse=True)

    products = _dedupe(products)[:limit]
    for product in products:
        product["affiliate_url"] = add_tracking_params(product["affiliate_url"], {
            "source": "ai-recipe-chef",
            "medium": "api",
            "campaign": "recipe-products",
            "userId": user_id or "anonymous",
        })
    return products


def search_products(
    query: str,
    category: Optional[ProductCategory] = None,
    limit: int = 10,
    user_id: Optional[str] = None,
) -> List[Dict]:
    terms = query.lower().split()
    matches = []
    for group in ("korean", "italian", "general"):
        for product in CURATED_PRODUCTS[group]:
            text = f"{product['title']} {product['description']}".lower()
            if any(term in text for term in terms):
                matches.append(dict(product))

    if category:
        matches = [p for p in matches if p["category"] == category]

    matches = matches[:limit]
    for product in matches:
        product["affiliate_url"] = add_tracking_params(product["affiliate_url"], {
            "source": "ai-recipe-chef",
            "medium": "search",
            "campaign": "product-search",
            "query": query,
            "userId": user_id or "anonymous",
        })
    return matches


def list_categories() -> List[Dict]:
    return [
        {
            "id": key,
            "name": key.replace("_", " ").title(),
            "keywords": data["keywords"],
            "category": data["category"],
        }
        for key, data in PRODUCT_CATEGORIES.items()
    ]
