"""Video Approval Dashboard - FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from config import get_settings
from database import engine
from error_handlers import register_error_handlers
from models import Base
from routers import (
    auth_router,
    months_router,
    social_media_router,
    storage_router,
    users_router,
    videos_router,
)
from services.scheduler import start_scheduler, stop_scheduler
from middleware.rate_limit import limiter, rate_limit_exceeded_handler

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - create tables on startup, cleanup on shutdown."""
    # Startup: create database tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if not settings.supabase_enabled:
        logger.warning("Supabase not configured - auth provider and storage are disabled")

    # Security check: Warn if using default JWT secret in production
    if not settings.debug and settings.jwt_secret == "dev-secret-change-in-production":
        logger.warning("SECURITY WARNING: Using default JWT secret in production!")
        logger.warning("Set JWT_SECRET environment variable to a secure random value.")

    # Start background scheduler for storage sync
    start_scheduler()

    yield

    stop_scheduler()
    await engine.dispose()


app = FastAPI(
    title=f"{settings.app_name} API",
    description="Video review and approval workflow for editors and their clients",
    version="0.1.0",
    lifespan=lifespan,
)

# Error handling
register_error_handlers(app)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router, prefix="/api")
app.include_router(months_router, prefix="/api")
app.include_router(social_media_router, prefix="/api")
app.include_router(storage_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(videos_router, prefix="/api")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "video-approval-dashboard"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": f"{settings.app_name} API",
        "version": "0.1.0",
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=settings.port, reload=settings.debug)
