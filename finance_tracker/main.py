# finance_tracker/main.py
# FastAPI application: middleware, routers and service endpoints

from fastapi import FastAPI, Depends, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime
from typing import Optional
import logging

import redis

from . import models, auth
from .config import get_settings
from .dependencies import CSRF_COOKIE, get_redis
from .routers import (
    auth as auth_routes, budgets, categories, chatbot, insights, recurring, transactions, trash, users
)

logger = logging.getLogger(__name__)

settings = get_settings()

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Personal finance tracking with budgets, recurring transactions and AI insights",
    version=settings.app_version
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Create database tables
models.create_tables()

# ===== ROUTERS =====
app.include_router(auth_routes.router, prefix="/auth", tags=["auth"])
app.include_router(users.router, prefix="/users", tags=["users"])
app.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
app.include_router(categories.router, prefix="/categories", tags=["categories"])
app.include_router(budgets.router, prefix="/budgets", tags=["budgets"])
app.include_router(recurring.router, prefix="/recurring", tags=["recurring"])
app.include_router(trash.router, prefix="/trash", tags=["trash"])
app.include_router(insights.reports_router, prefix="/reports", tags=["reports"])
app.include_router(insights.insights_router, prefix="/insights", tags=["insights"])
app.include_router(chatbot.router, prefix="/chatbot", tags=["chatbot"])

# ===== ERROR HANDLING =====
@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )

# ===== CSRF =====
@app.get("/csrf-token")
async def get_csrf_token(response: Response):
    """Issue a CSRF token for cookie-authenticated clients."""
    token = auth.security_manager.generate_csrf_token()
    response.set_cookie(
        key=CSRF_COOKIE,
        value=token,
        secure=settings.is_production,
        samesite="strict",
        max_age=60 * 60 * 24
    )
    return {"csrf_token": token}

# ===== HEALTH CHECK =====
@app.get("/health")
async def health_check(client: Optional[redis.Redis] = Depends(get_redis)):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": settings.app_version,
        "environment": settings.environment,
        "cache": "connected" if client is not None else "disabled"
    }
