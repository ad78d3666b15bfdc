"""
Code Review API Endpoints

Audit CRUD, CSV import, administrative bulk clear and audit statistics.
"""
# ruff: noqa: B008 - FastAPI Depends in function defaults is standard pattern

import logging
from collections.abc import Iterable
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from codereview.catalog import get_project_catalog, get_promotion_calendar
from codereview.core.database import get_db
from codereview.core.models import Audit
from codereview.core.schemas.audits import (
    AuditCreate,
    AuditDeleted,
    AuditImportResponse,
    AuditorCountSchema,
    AuditPriorityUpdate,
    AuditResultInput,
    AuditSchema,
    AuditStatsSchema,
    AuditUpdate,
    RecentAuditSchema,
    TrackAuditStatsSchema,
)
from codereview.core.validation import ValidationError, validate_track
from codereview.review.audits import (
    AuditConflictError,
    AuditValidationError,
    check_group_auditable,
    clear_all_audits,
    create_audit,
    delete_audit,
    get_audit_by_id,
    get_audit_count_by_auditor,
    get_audit_stats_for_promo,
    get_audits_by_project,
    get_audits_by_promo_and_track,
    get_audits_by_student_login,
    get_global_audit_stats,
    get_recent_audits,
    set_audit_priority,
    update_audit,
)
from codereview.review.imports import import_audits, read_audit_csv
from codereview.zone01 import (
    ProgressionFeed,
    ProjectGroup,
    Zone01Error,
    build_project_groups,
    get_progression_feed,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _audit_not_found(audit_id: UUID) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Audit not found with ID: {audit_id}",
    )


async def _load_auditable_group(
    feed: ProgressionFeed,
    promo_id: str,
    project_name: str,
    group_id: str,
    results: Iterable[AuditResultInput],
) -> ProjectGroup:
    """Check a submission against the progression feed.

    The group must exist, be finished, and every result must name one of
    its members.
    """
    try:
        entries = await feed.fetch_promotion_progressions(promo_id)
    except Zone01Error as e:
        logger.error(f"Cannot validate audit for promo {promo_id}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e

    groups = build_project_groups(entries, project_name)
    try:
        return check_group_auditable(groups, group_id, results)
    except AuditValidationError as e:
        if e.not_found:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e
        detail: str | dict[str, object] = e.message
        if e.invalid_logins:
            detail = {"message": e.message, "invalid_logins": e.invalid_logins}
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail) from e


@router.get("/", response_model=list[AuditSchema])
async def list_audits(
    promo_id: str | None = None,
    track: str | None = None,
    project_name: str | None = None,
    limit: int = Query(default=20, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> list[Audit]:
    """Latest audits, or every audit of a promotion filtered by project or track."""
    if promo_id and project_name:
        return await get_audits_by_project(db, promo_id, project_name)

    if promo_id and track:
        try:
            track = validate_track(track)
        except ValidationError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
        return await get_audits_by_promo_and_track(db, promo_id, track)

    return await get_recent_audits(db, limit)


@router.post("/", response_model=AuditSchema, status_code=status.HTTP_201_CREATED)
async def create_code_review(
    audit_data: AuditCreate,
    db: AsyncSession = Depends(get_db),
    feed: ProgressionFeed = Depends(get_progression_feed),
) -> Audit:
    """Record an audit for a finished group."""
    group = await _load_auditable_group(
        feed, audit_data.promo_id, audit_data.project_name, audit_data.group_id, audit_data.results
    )

    try:
        return await create_audit(db, audit_data, group)
    except AuditConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e


@router.post("/import", response_model=AuditImportResponse)
async def import_code_reviews(
    request: Request,
    clear: bool = Query(default=False, description="Delete every audit before importing"),
    db: AsyncSession = Depends(get_db),
    feed: ProgressionFeed = Depends(get_progression_feed),
) -> AuditImportResponse:
    """Import audits from a review board CSV export sent as the request body."""
    try:
        content = (await request.body()).decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="CSV must be UTF-8 encoded"
        ) from e

    rows = read_audit_csv(content)
    if not rows:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="CSV file is empty")

    result = await import_audits(
        db, feed, get_project_catalog(), get_promotion_calendar(), rows, clear=clear
    )
    return AuditImportResponse.model_validate(result)


@router.delete("/", response_model=AuditDeleted)
async def clear_code_reviews(db: AsyncSession = Depends(get_db)) -> AuditDeleted:
    """Delete every audit and result (administrative)."""
    deleted = await clear_all_audits(db)
    return AuditDeleted(deleted=deleted)


@router.get("/stats", response_model=AuditStatsSchema)
async def get_code_review_stats(db: AsyncSession = Depends(get_db)) -> AuditStatsSchema:
    """Audit totals by promotion, track and auditor."""
    stats = await get_global_audit_stats(db)
    return AuditStatsSchema(**stats)


@router.get("/stats/auditors", response_model=list[AuditorCountSchema])
async def get_auditor_stats(
    promo_id: str | None = None, db: AsyncSession = Depends(get_db)
) -> list[AuditorCountSchema]:
    counts = await get_audit_count_by_auditor(db, promo_id)
    return [AuditorCountSchema(**c) for c in counts]


@router.get("/stats/{promo_id}", response_model=list[TrackAuditStatsSchema])
async def get_promo_stats(
    promo_id: str, db: AsyncSession = Depends(get_db)
) -> list[TrackAuditStatsSchema]:
    """Audit counters per track for one promotion."""
    stats = await get_audit_stats_for_promo(db, promo_id)
    return [TrackAuditStatsSchema(**s) for s in stats]


@router.get("/recent", response_model=list[RecentAuditSchema])
async def list_recent_audits(
    limit: int = Query(default=10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> list[RecentAuditSchema]:
    """Compact list of the latest audits for the dashboard."""
    calendar = get_promotion_calendar()
    audits = await get_recent_audits(db, limit)
    return [
        RecentAuditSchema(
            id=audit.id,
            promo_id=audit.promo_id,
            promo_name=calendar.promo_name(audit.promo_id),
            track=audit.track,
            project_name=audit.project_name,
            group_id=audit.group_id,
            auditor_name=audit.auditor_name,
            created_at=audit.created_at,
            has_warnings=audit.has_warnings,
            member_count=len(audit.results),
            validated_count=sum(1 for r in audit.results if r.validated),
            members=[r.student_login for r in audit.results],
        )
        for audit in audits
    ]


@router.get("/students/{login}", response_model=list[AuditSchema])
async def list_student_audits(login: str, db: AsyncSession = Depends(get_db)) -> list[Audit]:
    """Every audit holding a result for this student."""
    return await get_audits_by_student_login(db, login)


@router.get("/{audit_id}", response_model=AuditSchema)
async def get_code_review(audit_id: UUID, db: AsyncSession = Depends(get_db)) -> Audit:
    audit = await get_audit_by_id(db, audit_id)
    if not audit:
        raise _audit_not_found(audit_id)
    return audit


@router.put("/{audit_id}", response_model=AuditSchema)
async def update_code_review(
    audit_id: UUID,
    audit_data: AuditUpdate,
    db: AsyncSession = Depends(get_db),
    feed: ProgressionFeed = Depends(get_progression_feed),
) -> Audit:
    """Edit an audit. Submitted results replace the stored ones and must
    name members of the audited group.
    """
    audit = await get_audit_by_id(db, audit_id)
    if not audit:
        raise _audit_not_found(audit_id)

    group = None
    if audit_data.results is not None:
        group = await _load_auditable_group(
            feed, audit.promo_id, audit.project_name, audit.group_id, audit_data.results
        )

    updated = await update_audit(db, audit_id, audit_data, group)
    if not updated:
        raise _audit_not_found(audit_id)
    return updated


@router.patch("/{audit_id}/priority", response_model=AuditSchema)
async def update_code_review_priority(
    audit_id: UUID, priority_data: AuditPriorityUpdate, db: AsyncSession = Depends(get_db)
) -> Audit:
    audit = await set_audit_priority(db, audit_id, priority_data.priority)
    if not audit:
        raise _audit_not_found(audit_id)
    return audit


@router.delete("/{audit_id}", response_model=AuditDeleted)
async def delete_code_review(audit_id: UUID, db: AsyncSession = Depends(get_db)) -> AuditDeleted:
    """Delete an audit and its results."""
    if not await delete_audit(db, audit_id):
        raise _audit_not_found(audit_id)
    return AuditDeleted(deleted=1)
