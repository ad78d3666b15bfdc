"""
Dashboard Widget Endpoints
"""
# ruff: noqa: B008 - FastAPI Depends in function defaults is standard pattern

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from codereview.catalog import get_project_catalog, get_promotion_calendar
from codereview.core.database import get_db
from codereview.core.schemas.reviews import CodeReviewWidgetResponse
from codereview.review.dropouts import DropoutRegistry, get_dropout_registry
from codereview.review.reporting import build_code_review_report
from codereview.zone01 import ProgressionFeed, get_progression_feed

router = APIRouter()


@router.get("/code-reviews", response_model=CodeReviewWidgetResponse)
async def get_code_reviews_widget(
    db: AsyncSession = Depends(get_db),
    feed: ProgressionFeed = Depends(get_progression_feed),
    registry: DropoutRegistry = Depends(get_dropout_registry),
) -> CodeReviewWidgetResponse:
    """Students left to audit per track for the most recent active promotions.

    Promotions that fail to load are left out rather than failing the widget.
    """
    report = await build_code_review_report(
        db, feed, registry, get_project_catalog(), get_promotion_calendar()
    )
    return CodeReviewWidgetResponse.model_validate(report)
