"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from vca.config import get_settings
from vca.curriculum.router import admin_router as curriculum_admin_router
from vca.curriculum.router import router as curriculum_router
from vca.database import close_db, init_db
from vca.demos.router import router as demos_router
from vca.gamification.router import admin_router as badges_admin_router
from vca.gamification.router import router as badges_router
from vca.health.router import router as health_router
from vca.middleware import setup_middleware
from vca.projects.router import admin_router as projects_admin_router
from vca.projects.router import router as projects_router
from vca.redis_client import close_redis, init_redis
from vca.search.router import router as search_router
from vca.users.router import admin_router as users_admin_router
from vca.users.router import router as users_router


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url, settings.redis_max_connections)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Vibe Coding Academy Cohort API",
        description="Curriculum, demos, badges and projects for the cohort site",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)
    app.include_router(users_admin_router)
    app.include_router(curriculum_router)
    app.include_router(curriculum_admin_router)
    app.include_router(demos_router)
    app.include_router(badges_router)
    app.include_router(badges_admin_router)
    app.include_router(projects_router)
    app.include_router(projects_admin_router)
    app.include_router(search_router)

    return app


app = create_app()
