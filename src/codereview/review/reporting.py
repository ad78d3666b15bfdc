"""
Code Review Reporting

Runs the coverage resolver and the priority scorer across promotions and
assembles the summaries shown by the dashboard and the review endpoints.

Single-promotion queries propagate feed failures to the caller. The
multi-promotion paths log a failing promotion and carry on with the rest.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from codereview.catalog import ProjectCatalog, PromoConfig, PromotionCalendar
from codereview.config import settings
from codereview.core.models import Audit, Student
from codereview.zone01 import (
    GroupMember,
    ProgressEntry,
    ProgressionFeed,
    build_all_groups_for_track,
    build_project_groups,
    can_audit_group,
    get_track_stats,
)

from .audits import (
    count_recent_audits,
    get_audited_group_ids,
    get_audited_students_by_promo_and_track,
    get_audits_with_warnings,
)
from .coverage import PromotionCoverage, TrackCoverage, TrackGroup, resolve_promotion_coverage
from .dropouts import DropoutRegistry, get_student_by_login
from .priority import PriorityEvaluation, evaluate_pending_priorities

logger = logging.getLogger(__name__)


class PromotionNotFoundError(Exception):
    """Promotion id matches no known promotion."""

    pass


@dataclass
class PromoReport:
    promo_id: str
    promo_name: str
    total_pending_students: int
    tracks: list[TrackCoverage]


@dataclass
class CodeReviewReport:
    """Dashboard summary across the most recent active promotions."""

    promos: list[PromoReport] = field(default_factory=list)
    total_pending: int = 0
    recent_audits_count: int = 0


@dataclass
class PromoPending:
    promo_name: str
    evaluation: PriorityEvaluation


@dataclass
class PendingReport:
    promotions: list[PromoPending] = field(default_factory=list)

    @property
    def total_pending(self) -> int:
        return sum(p.evaluation.total_pending for p in self.promotions)


def resolve_promotion(calendar: PromotionCalendar, promo_id: str) -> PromoConfig:
    """Look up a promotion by event id or key.

    Raises:
        PromotionNotFoundError: If nothing matches
    """
    promo = calendar.parse_promo_id(promo_id)
    if promo is None:
        raise PromotionNotFoundError(f"Promotion not found: {promo_id}")
    return promo


async def _fetch_many(
    feed: ProgressionFeed, promos: list[PromoConfig]
) -> list[list[ProgressEntry] | BaseException]:
    """Fetch every promotion concurrently; failures are returned, not raised."""
    return await asyncio.gather(
        *(feed.fetch_promotion_progressions(promo.promo_id) for promo in promos),
        return_exceptions=True,
    )


async def get_promotion_coverage(
    db: AsyncSession,
    feed: ProgressionFeed,
    registry: DropoutRegistry,
    catalog: ProjectCatalog,
    promo: PromoConfig,
    track: str | None = None,
) -> PromotionCoverage:
    """Coverage of one promotion. Feed errors propagate."""
    entries = await feed.fetch_promotion_progressions(promo.promo_id)
    dropouts = await registry.get_dropout_logins()
    return await resolve_promotion_coverage(
        db, promo.promo_id, entries, dropouts, catalog, [track] if track else None
    )


async def list_promotion_groups(
    db: AsyncSession,
    feed: ProgressionFeed,
    registry: DropoutRegistry,
    catalog: ProjectCatalog,
    promo: PromoConfig,
    track: str | None = None,
    project: str | None = None,
    audited: bool | None = None,
) -> list[TrackGroup]:
    """Finished groups of a promotion with their audit status.

    Unaudited groups come first, then groups are ordered by project name.
    """
    coverage = await get_promotion_coverage(db, feed, registry, catalog, promo, track)

    groups = coverage.groups
    if project:
        groups = [g for g in groups if g.project_name.lower() == project.lower()]
    if audited is not None:
        groups = [g for g in groups if g.is_audited == audited]

    return sorted(groups, key=lambda g: (g.is_audited, g.project_name.lower()))


async def evaluate_promotion(
    db: AsyncSession,
    entries: list[ProgressEntry],
    dropouts: set[str],
    catalog: ProjectCatalog,
    promo: PromoConfig,
    track: str | None = None,
) -> PriorityEvaluation:
    coverage = await resolve_promotion_coverage(
        db, promo.promo_id, entries, dropouts, catalog, [track] if track else None
    )
    return await evaluate_pending_priorities(db, promo.promo_id, coverage.pending_groups)


async def build_pending_report(
    db: AsyncSession,
    feed: ProgressionFeed,
    registry: DropoutRegistry,
    catalog: ProjectCatalog,
    calendar: PromotionCalendar,
    promo_id: str | None = None,
    track: str | None = None,
    today: date | None = None,
) -> PendingReport:
    """Scored pending groups for one promotion, or for every active promotion.

    Raises:
        PromotionNotFoundError: If promo_id is given and unknown
        Zone01Error: If promo_id is given and the feed fails
    """
    dropouts = await registry.get_dropout_logins()
    report = PendingReport()

    if promo_id:
        promo = resolve_promotion(calendar, promo_id)
        entries = await feed.fetch_promotion_progressions(promo.promo_id)
        evaluation = await evaluate_promotion(db, entries, dropouts, catalog, promo, track)
        report.promotions.append(PromoPending(promo_name=promo.key, evaluation=evaluation))
        return report

    promos = calendar.get_active(today)
    fetched = await _fetch_many(feed, promos)

    for promo, entries in zip(promos, fetched, strict=True):
        if isinstance(entries, BaseException):
            logger.error(f"Skipping promotion {promo.key}: progression feed failed: {entries}")
            continue
        try:
            evaluation = await evaluate_promotion(db, entries, dropouts, catalog, promo, track)
        except Exception as e:
            logger.exception(f"Skipping promotion {promo.key}: {e}")
            continue
        report.promotions.append(PromoPending(promo_name=promo.key, evaluation=evaluation))

    return report


async def build_code_review_report(
    db: AsyncSession,
    feed: ProgressionFeed,
    registry: DropoutRegistry,
    catalog: ProjectCatalog,
    calendar: PromotionCalendar,
    today: date | None = None,
) -> CodeReviewReport:
    """Pending students per track for the most recent active promotions.

    A promotion whose feed or processing fails is logged and left out of
    the report.
    """
    promos = calendar.get_active(today)[-settings.REPORT_MAX_PROMOTIONS :]
    dropouts = await registry.get_dropout_logins()
    fetched = await _fetch_many(feed, promos)

    report = CodeReviewReport()
    for promo, entries in zip(promos, fetched, strict=True):
        if isinstance(entries, BaseException):
            logger.error(f"Skipping promotion {promo.key}: progression feed failed: {entries}")
            continue
        if not entries:
            logger.debug(f"No progressions for promotion {promo.key}")
            continue

        try:
            coverage = await resolve_promotion_coverage(
                db, promo.promo_id, entries, dropouts, catalog
            )
        except Exception as e:
            logger.exception(f"Skipping promotion {promo.key}: {e}")
            continue

        promo_pending = coverage.total_pending_students
        report.promos.append(
            PromoReport(
                promo_id=promo.promo_id,
                promo_name=promo.key,
                total_pending_students=promo_pending,
                tracks=coverage.tracks,
            )
        )
        report.total_pending += promo_pending

    report.recent_audits_count = await count_recent_audits(db, settings.RECENT_AUDITS_LIMIT)
    return report


# ============================================================================
# Urgent reviews, student queue and track statistics
# ============================================================================

URGENT_REVIEW_LIMIT = 5
NEVER_AUDITED_REASON = "Jamais audité"
WARNINGS_REASON = "Warnings détectés"


class StudentNotFoundError(Exception):
    """No student registered under this login."""

    pass


@dataclass
class UrgentReview:
    """Group needing attention: never audited, or audited with warnings."""

    promo_id: str
    project_name: str
    group_id: str
    reason: str
    members: list[str]
    audit: Audit | None = None
    level: str = "urgent"


@dataclass
class StudentPendingAudit:
    """Finished group of a student whose result is still missing."""

    project_name: str
    track: str
    group_id: str
    status: str
    promo_id: str
    promo_name: str
    members: list[GroupMember]


async def get_urgent_code_reviews(
    db: AsyncSession,
    feed: ProgressionFeed,
    promo_id: str | None = None,
    project_name: str | None = None,
    limit: int = URGENT_REVIEW_LIMIT,
) -> list[UrgentReview]:
    """Never-audited finished groups first, then audits with warnings, newest first.

    Never-audited groups are only looked up when both promo_id and
    project_name are given. Feed errors propagate.
    """
    urgent: list[UrgentReview] = []

    if promo_id and project_name:
        entries = await feed.fetch_promotion_progressions(promo_id)
        audited_ids = set(await get_audited_group_ids(db, promo_id, project_name))
        for group in build_project_groups(entries, project_name):
            if can_audit_group(group.status) and group.group_id not in audited_ids:
                urgent.append(
                    UrgentReview(
                        promo_id=promo_id,
                        project_name=group.project_name,
                        group_id=group.group_id,
                        reason=NEVER_AUDITED_REASON,
                        members=group.logins,
                    )
                )

    for audit in await get_audits_with_warnings(db, promo_id, project_name):
        urgent.append(
            UrgentReview(
                promo_id=audit.promo_id,
                project_name=audit.project_name,
                group_id=audit.group_id,
                reason=WARNINGS_REASON,
                members=[r.student_login for r in audit.results],
                audit=audit,
            )
        )

    return urgent[:limit]


async def get_student_pending_audits(
    db: AsyncSession,
    feed: ProgressionFeed,
    catalog: ProjectCatalog,
    calendar: PromotionCalendar,
    login: str,
) -> tuple[Student, list[StudentPendingAudit]]:
    """Finished groups of a student without an audit result for them.

    A student whose promotion is not in the calendar has nothing pending.

    Raises:
        StudentNotFoundError: If the login is not registered
        Zone01Error: If the feed fails
    """
    student = await get_student_by_login(db, login)
    if student is None:
        raise StudentNotFoundError(f"Student not found: {login}")

    promo = calendar.get_by_key(student.promo_name) if student.promo_name else None
    if promo is None:
        logger.debug(f"No known promotion for student {student.login}")
        return student, []

    entries = await feed.fetch_promotion_progressions(promo.promo_id)
    login_lower = student.login.lower()
    pending: list[StudentPendingAudit] = []

    for track in catalog.get_all_tracks():
        audited = await get_audited_students_by_promo_and_track(db, promo.promo_id, track)
        groups_by_project = build_all_groups_for_track(
            entries, catalog.get_project_names_by_track(track)
        )

        for project_name, groups in groups_by_project.items():
            for group in groups:
                if not can_audit_group(group.status):
                    continue
                if login_lower not in {m.lower() for m in group.logins}:
                    continue
                if login_lower in audited.get((project_name.lower(), group.group_id), set()):
                    continue

                pending.append(
                    StudentPendingAudit(
                        project_name=project_name,
                        track=track,
                        group_id=group.group_id,
                        status=group.status,
                        promo_id=promo.promo_id,
                        promo_name=promo.key,
                        members=group.members,
                    )
                )

    logger.info(f"{len(pending)} pending audits for student {student.login} ({promo.key})")
    return student, pending


async def get_promotion_track_stats(
    feed: ProgressionFeed,
    catalog: ProjectCatalog,
    promo: PromoConfig,
    track: str | None = None,
) -> list[dict[str, object]]:
    """Students and group counts per project for each track of a promotion."""
    entries = await feed.fetch_promotion_progressions(promo.promo_id)
    tracks = [track] if track else catalog.get_all_tracks()
    return [
        get_track_stats(entries, name, catalog.get_project_names_by_track(name)) for name in tracks
    ]
