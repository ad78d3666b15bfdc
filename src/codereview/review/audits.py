"""
Audit Data Access

Reads and writes audit records and their per-student results.

Writes rely on the database for conflict detection: the unique index on
(promo_id, project_name, group_id) rejects a second audit for the same
group, surfaced here as AuditConflictError.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import delete, desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from codereview.core.models import Audit, AuditResult
from codereview.core.schemas.audits import AuditCreate, AuditResultInput, AuditUpdate
from codereview.zone01 import ProjectGroup, can_audit_group

logger = logging.getLogger(__name__)


class AuditValidationError(Exception):
    """Audit submission rejected before reaching the database."""

    def __init__(
        self, message: str, *, not_found: bool = False, invalid_logins: list[str] | None = None
    ):
        super().__init__(message)
        self.message = message
        self.not_found = not_found
        self.invalid_logins = invalid_logins or []


class AuditConflictError(Exception):
    """An audit already exists for this promotion, project and group."""

    pass


# ============================================================================
# Validation against the progression feed
# ============================================================================


def check_group_auditable(
    groups: list[ProjectGroup], group_id: str, results: Iterable[AuditResultInput]
) -> ProjectGroup:
    """Find the audited group and check the submission matches it.

    Returns:
        The matching group

    Raises:
        AuditValidationError: If the group is unknown, not finished, or a
            result names a student outside the group
    """
    group = next((g for g in groups if g.group_id == group_id), None)
    if group is None:
        raise AuditValidationError(f"Group not found: {group_id}", not_found=True)

    if not can_audit_group(group.status):
        raise AuditValidationError(
            f"Group {group_id} cannot be audited (project status: {group.status})"
        )

    member_logins = {login.lower() for login in group.logins}
    invalid = [r.student_login for r in results if r.student_login.lower() not in member_logins]
    if invalid:
        raise AuditValidationError(
            "Some students are not members of the group", invalid_logins=invalid
        )

    return group


def _build_results(
    results: Iterable[AuditResultInput], canonical_logins: dict[str, str] | None = None
) -> list[AuditResult]:
    """Result rows, using the feed's login casing when known."""
    canonical_logins = canonical_logins or {}
    return [
        AuditResult(
            student_login=canonical_logins.get(r.student_login.lower(), r.student_login),
            validated=r.validated,
            feedback=r.feedback,
            warnings=list(r.warnings),
        )
        for r in results
    ]


def _refresh_counters(audit: Audit) -> None:
    audit.total_members = len(audit.results)
    audit.validated_count = sum(1 for r in audit.results if r.validated)


# ============================================================================
# Reads
# ============================================================================


async def get_audit_by_id(db: AsyncSession, audit_id: UUID) -> Audit | None:
    result = await db.execute(
        select(Audit)
        .where(Audit.id == audit_id)
        .options(selectinload(Audit.results))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_audit_by_group(
    db: AsyncSession, promo_id: str, project_name: str, group_id: str
) -> Audit | None:
    """Audit of a given group, or None if the group has not been reviewed yet."""
    result = await db.execute(
        select(Audit)
        .where(
            Audit.promo_id == promo_id,
            func.lower(Audit.project_name) == project_name.lower(),
            Audit.group_id == group_id,
        )
        .options(selectinload(Audit.results))
    )
    return result.scalar_one_or_none()


async def get_audits_by_promo_and_track(db: AsyncSession, promo_id: str, track: str) -> list[Audit]:
    result = await db.execute(
        select(Audit)
        .where(Audit.promo_id == promo_id, Audit.track == track)
        .order_by(desc(Audit.created_at))
        .options(selectinload(Audit.results))
    )
    return list(result.scalars().all())


async def get_audits_by_project(db: AsyncSession, promo_id: str, project_name: str) -> list[Audit]:
    """Audits of one project of a promotion (project name case-insensitive)."""
    result = await db.execute(
        select(Audit)
        .where(Audit.promo_id == promo_id, func.lower(Audit.project_name) == project_name.lower())
        .order_by(desc(Audit.created_at))
        .options(selectinload(Audit.results))
    )
    return list(result.scalars().all())


async def get_audited_group_ids(db: AsyncSession, promo_id: str, project_name: str) -> list[str]:
    result = await db.execute(
        select(Audit.group_id).where(
            Audit.promo_id == promo_id, func.lower(Audit.project_name) == project_name.lower()
        )
    )
    return list(result.scalars().all())


async def get_audits_with_warnings(
    db: AsyncSession, promo_id: str | None = None, project_name: str | None = None
) -> list[Audit]:
    """Audits carrying audit-level warnings, newest first.

    Warnings are a JSON list, so emptiness is checked after loading.
    """
    query = select(Audit).order_by(desc(Audit.created_at)).options(selectinload(Audit.results))
    if promo_id:
        query = query.where(Audit.promo_id == promo_id)
    if project_name:
        query = query.where(func.lower(Audit.project_name) == project_name.lower())

    result = await db.execute(query)
    return [audit for audit in result.scalars().all() if audit.warnings]


async def get_audited_students_by_promo_and_track(
    db: AsyncSession, promo_id: str, track: str
) -> dict[tuple[str, str], set[str]]:
    """Lowercase logins audited per (lowercase project name, group id)."""
    audits = await get_audits_by_promo_and_track(db, promo_id, track)
    audited: dict[tuple[str, str], set[str]] = {}
    for audit in audits:
        key = (audit.project_name.lower(), audit.group_id)
        audited[key] = {r.student_login.lower() for r in audit.results}
    return audited


async def get_recent_audits(db: AsyncSession, limit: int = 10) -> list[Audit]:
    """Most recent audits, bounded by limit."""
    result = await db.execute(
        select(Audit)
        .order_by(desc(Audit.created_at))
        .limit(limit)
        .options(selectinload(Audit.results))
    )
    return list(result.scalars().all())


async def count_recent_audits(db: AsyncSession, limit: int) -> int:
    """Number of audits among the latest `limit` rows."""
    subquery = select(Audit.id).order_by(desc(Audit.created_at)).limit(limit).subquery()
    result = await db.execute(select(func.count()).select_from(subquery))
    return int(result.scalar_one())


async def get_audits_by_student_login(db: AsyncSession, login: str) -> list[Audit]:
    """Every audit holding a result for this student (case-insensitive)."""
    result = await db.execute(
        select(Audit)
        .join(AuditResult, AuditResult.audit_id == Audit.id)
        .where(func.lower(AuditResult.student_login) == login.lower())
        .order_by(desc(Audit.created_at))
        .options(selectinload(Audit.results))
    )
    return list(result.scalars().unique().all())


# ============================================================================
# Writes
# ============================================================================


async def create_audit(
    db: AsyncSession,
    data: AuditCreate,
    group: ProjectGroup | None = None,
    created_at: datetime | None = None,
) -> Audit:
    """Create an audit with its individual results.

    created_at backdates imported audits; it defaults to now.

    Raises:
        AuditConflictError: If the group already has an audit
    """
    canonical = {login.lower(): login for login in group.logins} if group else None

    audit = Audit(
        promo_id=data.promo_id,
        track=data.track,
        project_name=group.project_name if group else data.project_name,
        group_id=data.group_id,
        summary=data.summary,
        warnings=list(data.warnings),
        auditor_id=data.auditor_id,
        auditor_name=data.auditor_name,
        results=_build_results(data.results, canonical),
    )
    _refresh_counters(audit)
    if created_at is not None:
        audit.created_at = audit.updated_at = created_at
        for result in audit.results:
            result.created_at = created_at

    db.add(audit)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning(
            f"Duplicate audit rejected for {data.promo_id}/{data.project_name}/{data.group_id}"
        )
        raise AuditConflictError("An audit already exists for this group") from e

    logger.info(f"Audit {audit.id} created for group {audit.group_id} by {audit.auditor_name}")
    return audit


async def update_audit(
    db: AsyncSession, audit_id: UUID, data: AuditUpdate, group: ProjectGroup | None = None
) -> Audit | None:
    """Update an audit; provided results fully replace the stored ones.

    Replacement logins take the casing of the group members when the group
    is given, otherwise the casing already stored on the audit.

    Returns:
        The updated audit, or None if it does not exist
    """
    audit = await get_audit_by_id(db, audit_id)
    if audit is None:
        return None

    audit.summary = data.summary
    audit.warnings = list(data.warnings)
    audit.updated_at = datetime.now(UTC)

    if data.results is not None:
        known_logins = group.logins if group else [r.student_login for r in audit.results]
        canonical = {login.lower(): login for login in known_logins}
        # Flush the deletions first so re-submitted logins do not hit the unique index
        audit.results.clear()
        await db.flush()
        audit.results.extend(_build_results(data.results, canonical))

    _refresh_counters(audit)
    await db.commit()

    return await get_audit_by_id(db, audit_id)


async def set_audit_priority(db: AsyncSession, audit_id: UUID, priority: str) -> Audit | None:
    audit = await get_audit_by_id(db, audit_id)
    if audit is None:
        return None

    audit.priority = priority
    audit.updated_at = datetime.now(UTC)
    await db.commit()

    return await get_audit_by_id(db, audit_id)


async def delete_audit(db: AsyncSession, audit_id: UUID) -> bool:
    """Delete an audit and its results."""
    audit = await get_audit_by_id(db, audit_id)
    if audit is None:
        return False

    await db.delete(audit)
    await db.commit()
    logger.info(f"Audit {audit_id} deleted")
    return True


async def clear_all_audits(db: AsyncSession) -> int:
    """Administrative bulk clear. Returns the number of audits removed."""
    count = (await db.execute(select(func.count()).select_from(Audit))).scalar_one()

    await db.execute(delete(AuditResult))
    await db.execute(delete(Audit))
    await db.commit()

    logger.warning(f"Cleared all audits ({count} rows)")
    return int(count)


# ============================================================================
# Statistics
# ============================================================================


async def get_audit_stats_for_promo(db: AsyncSession, promo_id: str) -> list[dict[str, Any]]:
    """Audit counters per track for one promotion, with per-project details."""
    result = await db.execute(
        select(Audit)
        .where(Audit.promo_id == promo_id)
        .order_by(Audit.created_at)
        .options(selectinload(Audit.results))
    )

    stats_by_track: dict[str, dict[str, Any]] = {}
    for audit in result.scalars().all():
        stats = stats_by_track.setdefault(
            audit.track,
            {
                "promo_id": promo_id,
                "track": audit.track,
                "total_audits": 0,
                "total_students_audited": 0,
                "project_stats": {},
            },
        )
        stats["total_audits"] += 1
        stats["total_students_audited"] += len(audit.results)

        project = stats["project_stats"].setdefault(
            audit.project_name,
            {"project_name": audit.project_name, "audit_count": 0, "group_ids": []},
        )
        project["audit_count"] += 1
        project["group_ids"].append(audit.group_id)

    return [
        {**stats, "project_stats": list(stats["project_stats"].values())}
        for stats in stats_by_track.values()
    ]


async def get_audit_count_by_auditor(
    db: AsyncSession, promo_id: str | None = None
) -> list[dict[str, Any]]:
    """Audits per auditor, busiest first."""
    query = select(Audit.auditor_name, func.max(Audit.auditor_id), func.count(Audit.id)).group_by(
        Audit.auditor_name
    )
    if promo_id:
        query = query.where(Audit.promo_id == promo_id)

    rows = (await db.execute(query)).all()
    counts = [
        {"auditor_name": name, "auditor_id": auditor_id, "count": count}
        for name, auditor_id, count in rows
    ]
    return sorted(counts, key=lambda c: (-c["count"], c["auditor_name"]))


async def get_global_audit_stats(db: AsyncSession) -> dict[str, Any]:
    """Totals by promotion, track and auditor."""
    total_audits = (await db.execute(select(func.count()).select_from(Audit))).scalar_one()
    total_results = (await db.execute(select(func.count()).select_from(AuditResult))).scalar_one()

    async def _count_by(column: Any) -> dict[str, int]:
        rows = (await db.execute(select(column, func.count()).group_by(column))).all()
        return {str(key): int(count) for key, count in rows}

    return {
        "total_audits": int(total_audits),
        "total_student_results": int(total_results),
        "by_promo": await _count_by(Audit.promo_id),
        "by_track": await _count_by(Audit.track),
        "by_auditor": await _count_by(Audit.auditor_name),
    }
