"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from betthat.achievements.router import router as achievements_router
from betthat.achievements.seed import seed_achievements
from betthat.bets.router import router as bets_router
from betthat.config import get_settings
from betthat.database import close_db, get_session, init_db
from betthat.health.router import router as health_router
from betthat.middleware import setup_middleware
from betthat.redis_client import close_redis, init_redis
from betthat.social.router import friends_router, groups_router
from betthat.users.router import router as users_router
from betthat.wallet.router import router as wallet_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url, echo=settings.debug)
    await init_redis(settings.redis_url)

    if settings.seed_achievements_on_startup:
        try:
            async for db in get_session():
                await seed_achievements(db)
                break
        except Exception:
            logger.warning("achievement_seeding_failed", hint="run alembic upgrade head", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Bet That API",
        description="Peer-to-peer social wagering: bets, friends, groups and achievements",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)
    app.include_router(friends_router)
    app.include_router(groups_router)
    app.include_router(bets_router)
    app.include_router(achievements_router)
    app.include_router(wallet_router)

    return app


app = create_app()
