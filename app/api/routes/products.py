import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.dependencies.auth import optional_user
from app.dependencies.clients import get_client_ip
from app.models.user import User
from app.schemas.products import TrackClickRequest
from app.schemas.recipe import Cuisine
from app.services.affiliate_products import DISCLAIMER, ProductCategory, list_categories, recommend_products, search_products

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/products")
def get_products(
    recipe: Optional[str] = Query(None, max_length=200),
    cuisine: Optional[Cuisine] = None,
    category: Optional[ProductCategory] = None,
    limit: int = Query(6, ge=1, le=20),
    user: Optional[User] = Depends(optional_user),
):
    """Affiliate product recommendations for a recipe."""
    user_id = user.id if user else None
    logger.info("[PRODUCTS] Request (user=%s, cuisine=%s, category=%s, limit=%d)", user_id or "anonymous", cuisine, category, limit)
    products = recommend_products(recipe=recipe, cuisine=cuisine, category=category, limit=limit, user_id=user_id)
    return {
        "success": True,
        "products": products,
        "metadata": {
            "totalFound": len(products),
            "filters": {"recipe": recipe, "cuisine": cuisine, "category": category, "limit": limit},
            "disclaimer": DISCLAIMER,
        },
    }


@router.get("/search")
def search(
    q: str = Query(..., min_length=2, max_length=100),
    category: Optional[ProductCategory] = None,
    limit: int = Query(10, ge=1, le=20),
    user: Optional[User] = Depends(optional_user),
):
    products = search_products(q, category=category, limit=limit, user_id=user.id if user else None)
    return {
        "success": True,
        "products": products,
        "metadata": {"query": q, "totalFound": len(products), "category": category, "disclaimer": DISCLAIMER},
    }


@router.get("/categories")
def categories():
    return {"success": True, "categories": list_categories()}


@router.post("/track-click")
def track_click(
    body: TrackClickRequest,
    ip: Optional[str] = Depends(get_client_ip),
    user: Optional[User] = Depends(optional_user),
):
    # Clicks are only logged; there is no click table
    logger.info(
        "[PRODUCTS] Affiliate click (user=%s, product=%s, source=%s, ip=%s)",
        user.id if user else "anonymous", body.product_id, body.source, ip,
    )
    return {"success": True, "message": "Click tracked successfully"}
