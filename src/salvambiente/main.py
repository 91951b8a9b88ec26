"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta

import structlog
from fastapi import FastAPI

from salvambiente.admin.router import router as admin_router
from salvambiente.auth.google import GoogleOAuthClient
from salvambiente.auth.router import router as auth_router
from salvambiente.config import Settings, get_settings
from salvambiente.dashboard.router import router as dashboard_router
from salvambiente.database import close_db, get_session, init_db
from salvambiente.db.seed import seed_roles, seed_support_categories
from salvambiente.footprint.router import router as footprint_router
from salvambiente.games.router import plant_quiz_router, waste_sort_router
from salvambiente.health.router import router as health_router
from salvambiente.middleware import setup_middleware
from salvambiente.password_reset.registry import (
    InMemoryResetCodeRegistry,
    RedisResetCodeRegistry,
    ResetCodeRegistry,
)
from salvambiente.password_reset.router import router as password_reset_router
from salvambiente.redis_client import close_redis, get_redis, init_redis
from salvambiente.support.router import router as support_router
from salvambiente.users.router import router as users_router

logger = structlog.get_logger()


def build_reset_registry(settings: Settings) -> ResetCodeRegistry:
    """Pick the reset-code store. Redis must already be initialized for the redis backend."""
    ttl = timedelta(minutes=settings.reset_code_ttl_minutes)
    redis = get_redis()
    if settings.reset_code_backend == "redis" and redis is not None:
        return RedisResetCodeRegistry(redis, ttl)
    return InMemoryResetCodeRegistry(ttl)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    if settings.reset_code_backend == "redis":
        await init_redis(settings.redis_url)

    app.state.reset_codes = build_reset_registry(settings)
    app.state.google_client = GoogleOAuthClient.from_settings(settings)

    # Roles and support categories are idempotent lookups
    try:
        async for db in get_session():
            await seed_roles(db)
            await seed_support_categories(db)
            break
    except Exception:
        logger.warning("seeding_failed", exc_info=True)

    yield

    await app.state.reset_codes.close()
    await app.state.google_client.close()
    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Salvambiente API",
        description="Backend API for Salvambiente, an environmental education platform",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(password_reset_router)
    app.include_router(footprint_router)
    app.include_router(users_router)
    app.include_router(waste_sort_router)
    app.include_router(plant_quiz_router)
    app.include_router(dashboard_router)
    app.include_router(admin_router)
    app.include_router(support_router)

    return app


app = create_app()
