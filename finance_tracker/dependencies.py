# finance_tracker/dependencies.py
# Shared FastAPI dependencies for authentication, database and external services

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Optional
import logging
import secrets

import redis

from . import models, auth
from .cache import Cache, get_redis_client
from .config import get_settings
from .email_service import EmailService
from .llm import LLMClient
from .rate_limit import RateLimiter, get_client_ip, rate_limit_headers

logger = logging.getLogger(__name__)

# Security
security = HTTPBearer(auto_error=False)

ACCESS_TOKEN_COOKIE = "access_token"
CSRF_COOKIE = "csrf-token"
CSRF_HEADER = "X-CSRF-Token"
MUTATING_METHODS = {"POST", "PUT", "PATCH", "DELETE"}

# ===== DATABASE DEPENDENCY =====
def get_db():
    """Database session dependency."""
    db = models.SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

# ===== EXTERNAL SERVICES =====
def get_redis() -> Optional[redis.Redis]:
    return get_redis_client()

def get_cache(client: Optional[redis.Redis] = Depends(get_redis)) -> Cache:
    return Cache(client)

def get_llm_client() -> LLMClient:
    """Client for the insights model."""
    return LLMClient()

def get_chat_client() -> LLMClient:
    """Client for the chatbot model."""
    return LLMClient(model=get_settings().mistral_chat_model)

def get_email_service() -> EmailService:
    return EmailService()

# ===== RATE LIMITING =====
def _limits(kind: str):
    settings = get_settings()
    return {
        "default": (settings.rate_limit_default, settings.rate_limit_default_window),
        "read": (settings.rate_limit_read, settings.rate_limit_read_window),
        "auth": (settings.rate_limit_auth, settings.rate_limit_auth_window),
    }[kind]

def rate_limit(kind: str = "default"):
    """Dependency factory: sliding-window limit per client IP for one kind of endpoint."""
    max_requests, window = _limits(kind)

    async def dependency(
        request: Request,
        response: Response,
        client: Optional[redis.Redis] = Depends(get_redis)
    ):
        limiter = RateLimiter(client, max_requests, window, prefix=f"ratelimit:{kind}")
        result = limiter.limit(get_client_ip(request))
        headers = rate_limit_headers(result)
        if not result.success:
            logger.warning("Rate limit exceeded (%s) for %s", kind, get_client_ip(request))
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests. Please try again later.",
                headers=headers
            )
        response.headers.update(headers)
        return result

    return dependency

# ===== CSRF =====
def verify_csrf(request: Request):
    """Double-submit check: the X-CSRF-Token header must match the csrf-token cookie."""
    if request.method not in MUTATING_METHODS:
        return
    header_token = request.headers.get(CSRF_HEADER)
    cookie_token = request.cookies.get(CSRF_COOKIE)
    if not auth.security_manager.validate_csrf_token(header_token, cookie_token):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid CSRF token"
        )

# ===== AUTHENTICATION DEPENDENCIES =====
async def get_token_payload(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> dict:
    """
    Decoded access token from the Authorization header, or from the
    access_token cookie. Cookie sessions must also pass the CSRF check.
    """
    if credentials:
        token = credentials.credentials
    else:
        token = request.cookies.get(ACCESS_TOKEN_COOKIE)
        if not token:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Not authenticated",
                headers={"WWW-Authenticate": "Bearer"}
            )
        verify_csrf(request)

    payload = auth.verify_token(token)
    if payload.get("sub") is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials"
        )
    return payload

async def get_current_user(
    payload: dict = Depends(get_token_payload),
    db: Session = Depends(get_db)
) -> models.User:
    """Get current authenticated user from JWT token."""
    user = models.get_user_by_email(db, payload["sub"])
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    user.last_login = datetime.utcnow()
    db.commit()

    return user

def verify_cron_secret(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
):
    """Guard for the scheduled job endpoint: Authorization: Bearer <CRON_SECRET>."""
    secret = get_settings().cron_secret
    if not secret or not credentials or not secrets.compare_digest(credentials.credentials, secret):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )

# ===== PAGINATION DEPENDENCIES =====
def get_pagination_params(
    offset: int = 0,
    limit: int = 50
) -> dict:
    """Get pagination parameters, clamped to sane bounds."""
    if offset < 0:
        offset = 0
    if limit < 1:
        limit = 1
    if limit > 100:
        limit = 100

    return {"offset": offset, "limit": limit}
