"""
Zone01 Code Review Service FastAPI Application

Tracks peer code reviews of finished student projects and ranks the
groups still waiting for one.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from codereview.api import health
from codereview.api.v1 import code_reviews, reviews, widgets
from codereview.catalog import get_project_catalog, get_promotion_calendar
from codereview.config import settings
from codereview.core.database import close_db

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Load the catalog and check the database before serving; dispose the
    engine on shutdown. A missing catalog file or an unreachable database
    aborts startup.
    """
    catalog = get_project_catalog()
    calendar = get_promotion_calendar()
    logger.info(
        f"Catalog v{catalog.metadata['version']}: {len(catalog)} projects, "
        f"{len(calendar)} promotions"
    )

    await health.ping_database()
    logger.info(f"Code review service ready ({settings.ENVIRONMENT})")

    yield

    await close_db()
    logger.info("Code review service stopped")


def create_app() -> FastAPI:
    app = FastAPI(
        title=health.SERVICE_NAME,
        description="Peer code review tracking and audit prioritization",
        version=health.SERVICE_VERSION,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.is_local else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    # Static review paths must be matched before /{audit_id}
    app.include_router(reviews.router, prefix=f"{API_PREFIX}/code-reviews", tags=["Review Queue"])
    app.include_router(
        code_reviews.router, prefix=f"{API_PREFIX}/code-reviews", tags=["Code Reviews"]
    )
    app.include_router(widgets.router, prefix=f"{API_PREFIX}/widgets", tags=["Widgets"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "codereview.main:app",
        host="0.0.0.0",  # nosec B104 - Intentional for containerized deployment
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
