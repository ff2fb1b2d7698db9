"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from catchfeed.achievements.router import router as achievements_router
from catchfeed.achievements.seed import seed_achievements
from catchfeed.config import get_settings
from catchfeed.database import close_db, get_session, init_db
from catchfeed.feed.router import router as feed_router
from catchfeed.health.router import router as health_router
from catchfeed.leaderboard.router import router as leaderboard_router
from catchfeed.middleware import setup_middleware
from catchfeed.redis_client import close_redis, init_redis
from catchfeed.users.router import router as users_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url, settings.redis_max_connections)

    # Seed the achievement catalog (idempotent)
    try:
        async for db in get_session():
            await seed_achievements(db)
            break
    except SQLAlchemyError:
        logger.warning("Achievement seeding failed (tables may not exist yet)", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Catch Feed API",
        description="Harvest report statistics, achievements, catch feed and leaderboard",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(feed_router)
    app.include_router(leaderboard_router)
    app.include_router(achievements_router)
    app.include_router(users_router)

    return app


app = create_app()
