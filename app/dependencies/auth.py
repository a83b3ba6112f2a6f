from datetime import datetime, timezone
from typing import Dict, Optional

import jwt  # PyJWT
import logging
from fastapi import Depends, Header, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import AppError
from app.db.session import get_db
from app.models.user import User
from app.utils.plan_enforcement import ensure_premium

logger = logging.getLogger(__name__)

ASYMMETRIC_ALGORITHMS = ("ES256", "RS256")

# PyJWKClient caches the fetched key set between calls; one per JWKS URL.
_jwks_clients: Dict[str, jwt.PyJWKClient] = {}


def _jwks_client(supabase_url: str) -> jwt.PyJWKClient:
    jwks_url = f"{supabase_url.rstrip('/')}/auth/v1/.well-known/jwks.json"
    client = _jwks_clients.get(jwks_url)
    if client is None:
        client = jwt.PyJWKClient(jwks_url, cache_keys=True, lifespan=3600)
        _jwks_clients[jwks_url] = client
    return client


def _invalid_token(detail: str = "Invalid or expired token") -> AppError:
    return AppError(status.HTTP_401_UNAUTHORIZED, detail, "INVALID_TOKEN")


def _extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization[len("Bearer "):].strip()
    # Frontends sometimes send the literal string of an unset variable
    if token.lower() in ("", "null", "undefined", "none"):
        return None
    return token


def verify_supabase_token(token: str) -> dict:
    """
    Verifies a Supabase JWT and returns its claims.
    HS256 tokens are checked against SUPABASE_JWT_SECRET, ES256/RS256 tokens
    against the project's JWKS.
    """
    if len(token.split(".")) != 3:
        logger.info("[AUTH] Rejected token with malformed structure")
        raise _invalid_token("Invalid token format")

    try:
        algo = jwt.get_unverified_header(token).get("alg")
    except jwt.DecodeError as e:
        logger.info("[AUTH] Failed to decode token header: %s", e)
        raise _invalid_token("Invalid token header")

    if algo == "HS256":
        if not settings.SUPABASE_JWT_SECRET:
            logger.error("[AUTH] SUPABASE_JWT_SECRET is missing")
            raise AppError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server misconfiguration", "AUTH_MISCONFIGURED")
        key = settings.SUPABASE_JWT_SECRET
    elif algo in ASYMMETRIC_ALGORITHMS:
        if not settings.SUPABASE_URL:
            logger.error("[AUTH] SUPABASE_URL is missing for %s verification", algo)
            raise AppError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server misconfiguration", "AUTH_MISCONFIGURED")
        try:
            key = _jwks_client(settings.SUPABASE_URL).get_signing_key_from_jwt(token).key
        except jwt.PyJWKClientConnectionError as e:
            logger.error("[AUTH] Could not fetch JWKS: %s", e)
            raise AppError(
                status.HTTP_503_SERVICE_UNAVAILABLE,
                "Authentication service temporarily unavailable. Please try again in a moment.",
                "SERVICE_UNAVAILABLE",
            )
        except jwt.PyJWKClientError as e:
            logger.info("[AUTH] No signing key for token: %s", e)
            raise _invalid_token()
    else:
        logger.info("[AUTH] Unsupported algorithm: %s", algo)
        raise _invalid_token("Unsupported token algorithm")

    try:
        payload = jwt.decode(token, key, algorithms=[algo], audience="authenticated")
    except jwt.ExpiredSignatureError:
        raise _invalid_token("Token has expired")
    except jwt.InvalidTokenError as e:
        logger.info("[AUTH] %s verification failed: %s", algo, e)
        raise _invalid_token()

    if not payload.get("sub"):
        raise _invalid_token("Token missing user ID claim")
    return payload


def get_or_create_user(db: Session, claims: dict) -> User:
    """
    Looks up the user for verified token claims, creating the row on first sight
    (the auth provider owns signup). Refreshes last_login_at.
    """
    user_id = claims["sub"]
    email = (claims.get("email") or "").lower()
    full_name = (claims.get("user_metadata") or {}).get("full_name")
    now = datetime.now(timezone.utc)

    try:
        user = db.query(User).filter(User.id == user_id).first()
        if user is None:
            user = User(id=user_id, email=email or f"{user_id}@users.noreply", full_name=full_name, last_login_at=now)
            db.add(user)
            try:
                db.commit()
                logger.info("[AUTH] Auto-created user %s for email %s (lazy sync)", user_id, email)
            except IntegrityError:
                # A concurrent request created the same user first
                db.rollback()
                user = db.query(User).filter(User.id == user_id).one()
        else:
            user.last_login_at = now
            db.commit()
        db.refresh(user)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("[AUTH] Database error while resolving user %s: %s", user_id, e)
        raise AppError(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "Database temporarily unavailable. Please try again in a moment.",
            "SERVICE_UNAVAILABLE",
        )
    return user


def optional_user(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Resolves the caller when a valid token is present; anonymous otherwise."""
    token = _extract_bearer(authorization)
    if token is None:
        return None
    try:
        claims = verify_supabase_token(token)
    except AppError as e:
        logger.info("[AUTH] Ignoring unusable token on optional route: %s", e.code)
        return None
    return get_or_create_user(db, claims)


def require_user(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> User:
    if not authorization:
        raise AppError(status.HTTP_401_UNAUTHORIZED, "Authentication required", "NO_TOKEN")
    token = _extract_bearer(authorization)
    if token is None:
        raise _invalid_token("Invalid header format. Expected 'Bearer <token>'")
    claims = verify_supabase_token(token)
    return get_or_create_user(db, claims)


def require_premium(user: User = Depends(require_user)) -> User:
    return ensure_premium(user)
