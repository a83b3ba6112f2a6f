"""
AI Recipe Chef Backend API
"""
from dotenv import load_dotenv
load_dotenv()

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from alembic import command
from alembic.config import Config

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)],
    force=True  # Override any existing configuration
)

logger = logging.getLogger(__name__)

from app.core.config import settings


def run_migrations() -> None:
    """Run Alembic migrations on startup. Uses alembic.ini and DATABASE_URL.
    Fails startup if migrations fail, so the DB is never left out of sync."""
    project_root = Path(__file__).resolve().parent.parent
    alembic_ini = project_root / "alembic.ini"
    if not alembic_ini.exists():
        logger.warning("alembic.ini not found, skipping Alembic migrations")
        return
    try:
        alembic_cfg = Config(str(alembic_ini))
        alembic_cfg.set_main_option("script_location", str(project_root / "alembic"))
        alembic_cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
        command.upgrade(alembic_cfg, "head")
        logger.info("Alembic migrations completed successfully")
    except Exception as e:
        logger.exception("Alembic migration failed: %s", e)
        raise  # Fail startup so DB is not left out of sync; fix migration or env and redeploy


import httpx
import stripe
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.api.routes import auth, products, recipe, subscription, usage
from app.core.rate_limit import APIRateLimitMiddleware, api_rate_limiter
from app.core.errors import register_exception_handlers
from app.db.session import engine
from app.db.base import Base
# Import all models to ensure they're registered with Base
from app.models import User, RecipeUsage, SubscriptionEvent, WebhookEventFailure
from app.services.llm_client import LLMClient

app = FastAPI(title="AI Recipe Chef API", version=settings.APP_VERSION)


@app.on_event("startup")
async def startup_event():
    """Run Alembic migrations, then build the shared outbound clients.
    If migrations fail the server refuses to start."""
    try:
        logger.info("Running Alembic migrations...")
        run_migrations()
    except Exception:
        logger.error("Alembic migration failed (server will not start)")
        raise

    # Safety net for tables a migration has not created yet
    Base.metadata.create_all(bind=engine)

    app.state.http_client = httpx.AsyncClient(timeout=httpx.Timeout(settings.LLM_TIMEOUT_SECONDS))
    app.state.llm_client = LLMClient(
        app.state.http_client,
        api_key=settings.OPENAI_API_KEY,
        base_url=settings.OPENAI_BASE_URL,
        timeout=settings.LLM_TIMEOUT_SECONDS,
    )
    if not settings.OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY is not set; recipes will be served from templates")

    app.state.stripe_client = stripe.StripeClient(settings.STRIPE_SECRET_KEY) if settings.STRIPE_SECRET_KEY else None
    if app.state.stripe_client is None:
        logger.warning("STRIPE_SECRET_KEY is not set; subscription endpoints are disabled")


@app.on_event("shutdown")
async def shutdown_event():
    http_client = getattr(app.state, "http_client", None)
    if http_client is not None:
        await http_client.aclose()


# CORS is added last so it stays outermost and 429s carry its headers
app.add_middleware(
    APIRateLimitMiddleware,
    limiter=api_rate_limiter,
    exempt_paths={"/api/health", "/api/subscription/webhook"},
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Register routers
app.include_router(recipe.router, prefix="/api/recipe", tags=["Recipe"])
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(usage.router, prefix="/api/usage", tags=["Usage"])
app.include_router(subscription.router, prefix="/api/subscription", tags=["Subscription"])
app.include_router(products.router, prefix="/api/amazon", tags=["Amazon"])


@app.get("/api/health")
def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.APP_VERSION,
    }
