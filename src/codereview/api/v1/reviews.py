"""
Review Queue API Endpoints

Finished groups with their audit status, pending groups ranked by
priority, audit progress per track, urgent reviews and the pending
queue of a single student.
"""
# ruff: noqa: B008 - FastAPI Depends in function defaults is standard pattern

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from codereview.catalog import PromoConfig, get_project_catalog, get_promotion_calendar
from codereview.core.database import get_db
from codereview.core.schemas.reviews import (
    GroupListResponse,
    GroupListStats,
    GroupMemberSchema,
    GroupWithAuditStatus,
    PendingGroupSchema,
    PendingResponse,
    ProgressResponse,
    PromoPendingSchema,
    StudentPendingAuditSchema,
    StudentPendingResponse,
    TrackCoverageSchema,
    TrackGroupCount,
    TrackStatsResponse,
    TrackStatsSchema,
    UrgentReviewSchema,
)
from codereview.core.validation import ValidationError, validate_track
from codereview.review.dropouts import DropoutRegistry, get_dropout_registry
from codereview.review.reporting import (
    URGENT_REVIEW_LIMIT,
    PromotionNotFoundError,
    StudentNotFoundError,
    build_pending_report,
    get_promotion_coverage,
    get_promotion_track_stats,
    get_student_pending_audits,
    get_urgent_code_reviews,
    list_promotion_groups,
    resolve_promotion,
)
from codereview.zone01 import ProgressionFeed, Zone01Error, get_progression_feed

router = APIRouter()


def _parse_track(track: str | None) -> str | None:
    if track is None:
        return None
    try:
        return validate_track(track)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


def _get_promotion(promo_id: str) -> PromoConfig:
    try:
        return resolve_promotion(get_promotion_calendar(), promo_id)
    except PromotionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


def _feed_unavailable(e: Zone01Error) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"Progression feed unavailable: {e}",
    )


@router.get("/groups", response_model=GroupListResponse)
async def list_groups(
    promo_id: str,
    track: str | None = None,
    project: str | None = None,
    audited: bool | None = Query(
        default=None, description="Only audited (true) or pending (false)"
    ),
    db: AsyncSession = Depends(get_db),
    feed: ProgressionFeed = Depends(get_progression_feed),
    registry: DropoutRegistry = Depends(get_dropout_registry),
) -> GroupListResponse:
    """Finished groups of a promotion, pending ones first."""
    track = _parse_track(track)
    promo = _get_promotion(promo_id)

    try:
        groups = await list_promotion_groups(
            db, feed, registry, get_project_catalog(), promo, track, project, audited
        )
    except Zone01Error as e:
        raise _feed_unavailable(e) from e

    by_track: dict[str, TrackGroupCount] = {}
    for group in groups:
        counts = by_track.setdefault(group.track, TrackGroupCount())
        counts.total += 1
        if group.is_audited:
            counts.audited += 1

    audited_count = sum(1 for g in groups if g.is_audited)
    return GroupListResponse(
        promo_id=promo.promo_id,
        promo_name=promo.key,
        groups=[
            GroupWithAuditStatus(
                group_id=g.group_id,
                project_name=g.project_name,
                track=g.track,
                status=g.status,
                members=[GroupMemberSchema.model_validate(m) for m in g.members],
                active_members=g.active_members,
                is_audited=g.is_audited,
                audit_id=g.audit.id if g.audit else None,
                auditor_name=g.audit.auditor_name if g.audit else None,
                audit_date=g.audit.created_at if g.audit else None,
            )
            for g in groups
        ],
        stats=GroupListStats(
            total_groups=len(groups),
            audited_groups=audited_count,
            pending_groups=len(groups) - audited_count,
            by_track=by_track,
        ),
    )


@router.get("/pending", response_model=PendingResponse)
async def list_pending_groups(
    promo_id: str | None = None,
    track: str | None = None,
    db: AsyncSession = Depends(get_db),
    feed: ProgressionFeed = Depends(get_progression_feed),
    registry: DropoutRegistry = Depends(get_dropout_registry),
) -> PendingResponse:
    """Pending groups ranked by priority, for one promotion or every active one."""
    track = _parse_track(track)

    try:
        report = await build_pending_report(
            db,
            feed,
            registry,
            get_project_catalog(),
            get_promotion_calendar(),
            promo_id=promo_id,
            track=track,
        )
    except PromotionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except Zone01Error as e:
        raise _feed_unavailable(e) from e

    return PendingResponse(
        total_pending=report.total_pending,
        promotions=[
            PromoPendingSchema(
                promo_id=p.evaluation.promo_id,
                promo_name=p.promo_name,
                evaluated_at=p.evaluation.evaluated_at,
                total_pending=p.evaluation.total_pending,
                urgent_count=p.evaluation.urgent_count,
                warning_count=p.evaluation.warning_count,
                normal_count=p.evaluation.normal_count,
                average_score=p.evaluation.average_score,
                groups=[PendingGroupSchema.model_validate(g) for g in p.evaluation.groups],
            )
            for p in report.promotions
        ],
    )


@router.get("/progress", response_model=ProgressResponse)
async def get_progress(
    promo_id: str,
    track: str | None = None,
    db: AsyncSession = Depends(get_db),
    feed: ProgressionFeed = Depends(get_progression_feed),
    registry: DropoutRegistry = Depends(get_dropout_registry),
) -> ProgressResponse:
    """Audited vs pending students per track."""
    track = _parse_track(track)
    promo = _get_promotion(promo_id)

    try:
        coverage = await get_promotion_coverage(
            db, feed, registry, get_project_catalog(), promo, track
        )
    except Zone01Error as e:
        raise _feed_unavailable(e) from e

    return ProgressResponse(
        promo_id=promo.promo_id,
        promo_name=promo.key,
        total_pending_students=coverage.total_pending_students,
        tracks=[TrackCoverageSchema.model_validate(t) for t in coverage.tracks],
    )


@router.get("/urgent", response_model=list[UrgentReviewSchema])
async def list_urgent_reviews(
    promo_id: str | None = None,
    project_name: str | None = None,
    limit: int = Query(default=URGENT_REVIEW_LIMIT, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    feed: ProgressionFeed = Depends(get_progression_feed),
) -> list[UrgentReviewSchema]:
    """Never-audited groups of a project, then audits with warnings."""
    if promo_id:
        promo_id = _get_promotion(promo_id).promo_id

    try:
        reviews = await get_urgent_code_reviews(db, feed, promo_id, project_name, limit)
    except Zone01Error as e:
        raise _feed_unavailable(e) from e

    return [
        UrgentReviewSchema(
            promo_id=r.promo_id,
            project_name=r.project_name,
            group_id=r.group_id,
            reason=r.reason,
            level=r.level,
            members=r.members,
            audit_id=r.audit.id if r.audit else None,
        )
        for r in reviews
    ]


@router.get("/track-stats", response_model=TrackStatsResponse)
async def get_track_statistics(
    promo_id: str,
    track: str | None = None,
    feed: ProgressionFeed = Depends(get_progression_feed),
) -> TrackStatsResponse:
    """Students and finished or in-progress groups per project."""
    track = _parse_track(track)
    promo = _get_promotion(promo_id)

    try:
        stats = await get_promotion_track_stats(feed, get_project_catalog(), promo, track)
    except Zone01Error as e:
        raise _feed_unavailable(e) from e

    return TrackStatsResponse(
        promo_id=promo.promo_id,
        promo_name=promo.key,
        tracks=[TrackStatsSchema(**s) for s in stats],
    )


@router.get("/students/{login}/pending", response_model=StudentPendingResponse)
async def list_student_pending_audits(
    login: str,
    db: AsyncSession = Depends(get_db),
    feed: ProgressionFeed = Depends(get_progression_feed),
) -> StudentPendingResponse:
    """Finished projects of a student still waiting for their audit result."""
    try:
        student, pending = await get_student_pending_audits(
            db, feed, get_project_catalog(), get_promotion_calendar(), login
        )
    except StudentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except Zone01Error as e:
        raise _feed_unavailable(e) from e

    return StudentPendingResponse(
        student_login=student.login,
        pending_audits=[StudentPendingAuditSchema.model_validate(p) for p in pending],
    )
