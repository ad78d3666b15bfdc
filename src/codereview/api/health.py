"""
Service Health Endpoints

Liveness, readiness and a detailed report over the database and the
curriculum catalog.
"""

import logging
from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from codereview.catalog import CatalogError, get_project_catalog, get_promotion_calendar
from codereview.config import settings
from codereview.core.database import engine

logger = logging.getLogger(__name__)

SERVICE_NAME = "Zone01 Code Review Service"
SERVICE_VERSION = "0.1.0"

router = APIRouter(tags=["Health"])


async def ping_database() -> None:
    """Round-trip a trivial query. Raises SQLAlchemyError when unreachable."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def database_check() -> dict[str, Any]:
    try:
        await ping_database()
    except (SQLAlchemyError, OSError) as e:
        logger.warning(f"Database health check failed: {e}")
        return {"status": "unhealthy", "error": str(e)}
    return {"status": "healthy"}


def catalog_check() -> dict[str, Any]:
    try:
        catalog = get_project_catalog()
        calendar = get_promotion_calendar()
    except CatalogError as e:
        return {"status": "unhealthy", "error": str(e)}
    return {
        "status": "healthy",
        "projects": len(catalog),
        "promotions": len(calendar),
        "version": catalog.metadata["version"],
    }


@router.get("/")
async def service_info() -> dict[str, str]:
    return {
        "service": SERVICE_NAME,
        "status": "operational",
        "version": SERVICE_VERSION,
        "environment": settings.ENVIRONMENT,
    }


@router.get("/health", response_model=None)
async def health_report() -> JSONResponse:
    """Per-dependency checks; 503 as soon as one of them fails."""
    checks = {"database": await database_check(), "catalog": catalog_check()}
    healthy = all(check["status"] == "healthy" for check in checks.values())

    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "environment": settings.ENVIRONMENT,
            "checks": checks,
        },
    )


@router.get("/health/ready", response_model=None)
async def readiness() -> dict[str, str] | JSONResponse:
    """Ready once the database answers."""
    if (await database_check())["status"] != "healthy":
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"status": "not_ready"}
        )
    return {"status": "ready"}


@router.get("/health/live")
async def liveness() -> dict[str, str]:
    return {"status": "alive"}
