"""
Pending Audit Priority Scorer

Assigns an urgency score to each pending group so review effort can be
triaged. Points accumulate additively; the score maps to a tier through
two fixed thresholds.

Scoring (defaults):
1. +25 per active member never audited in the promotion
2. +30 if every active member is new, +15 if at least half are
3. +20 if the average prior audits per member is below 1, +10 below 2
4. Track bonus: Golang +5, Javascript +10, Rust +15, Java +15
5. +5 for groups of 3 active members or more

Tiers: score >= 50 is urgent, score >= 25 is warning, anything else normal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import select

from codereview.core.models import Audit, AuditResult

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from .coverage import TrackGroup

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoringRules:
    """Point values and tier thresholds of the priority heuristic."""

    never_audited_points: int = 25
    all_new_bonus: int = 30
    majority_new_bonus: int = 15
    low_history_bonus: int = 20
    some_history_bonus: int = 10
    track_bonus: dict[str, int] = field(
        default_factory=lambda: {"Golang": 5, "Javascript": 10, "Rust": 15, "Java": 15}
    )
    large_group_size: int = 3
    large_group_bonus: int = 5
    urgent_threshold: int = 50
    warning_threshold: int = 25


DEFAULT_RULES = ScoringRules()


@dataclass
class StudentAuditHistory:
    """Prior audits of one student within a promotion."""

    audit_count: int = 0
    validated_count: int = 0
    tracks: set[str] = field(default_factory=set)
    last_audit_date: datetime | None = None


@dataclass
class PriorityScore:
    score: int
    reasons: list[str]
    members_never_audited: int
    total_previous_audits: int
    avg_audits_per_member: float


@dataclass
class PendingGroupPriority:
    """A pending group annotated with its score and tier."""

    group_id: str
    project_name: str
    track: str
    members: list[str]
    active_members: int
    priority_score: int
    priority: str
    reasons: list[str]
    members_never_audited: int
    total_previous_audits: int
    avg_audits_per_member: float


@dataclass
class PriorityEvaluation:
    """Scored pending groups of one promotion, highest priority first."""

    promo_id: str
    evaluated_at: datetime
    total_pending: int
    urgent_count: int
    warning_count: int
    normal_count: int
    average_score: float
    groups: list[PendingGroupPriority]


async def get_student_audit_history(
    db: AsyncSession, promo_id: str
) -> dict[str, StudentAuditHistory]:
    """Audit history of every student of a promotion, keyed by lowercase login."""
    result = await db.execute(
        select(
            AuditResult.student_login,
            AuditResult.validated,
            AuditResult.created_at,
            Audit.track,
        )
        .join(Audit, AuditResult.audit_id == Audit.id)
        .where(Audit.promo_id == promo_id)
    )

    history: dict[str, StudentAuditHistory] = {}
    for login, validated, created_at, track in result.all():
        entry = history.setdefault(login.lower(), StudentAuditHistory())
        entry.audit_count += 1
        if validated:
            entry.validated_count += 1
        entry.tracks.add(track)
        if entry.last_audit_date is None or created_at > entry.last_audit_date:
            entry.last_audit_date = created_at

    return history


def calculate_priority_score(
    active_logins: list[str],
    active_members: int,
    track: str,
    history: dict[str, StudentAuditHistory],
    rules: ScoringRules = DEFAULT_RULES,
) -> PriorityScore:
    """Score a pending group from its active members' audit history."""
    score = 0
    reasons: list[str] = []

    members_never_audited = 0
    total_previous_audits = 0
    for login in active_logins:
        student = history.get(login.lower())
        if student is None or student.audit_count == 0:
            members_never_audited += 1
            score += rules.never_audited_points
        else:
            total_previous_audits += student.audit_count

    if members_never_audited > 0:
        reasons.append(f"{members_never_audited} membre(s) jamais audité(s)")

    if active_members > 0:
        ratio = members_never_audited / active_members
        if ratio == 1:
            score += rules.all_new_bonus
            reasons.append("Groupe entièrement nouveau")
        elif ratio >= 0.5:
            score += rules.majority_new_bonus
            reasons.append("Majorité de nouveaux membres")

    avg_audits = total_previous_audits / active_members if active_members > 0 else 0.0
    if active_members > 0 and avg_audits < 1:
        score += rules.low_history_bonus
        reasons.append("Peu d'audits précédents")
    elif avg_audits < 2:
        score += rules.some_history_bonus
        reasons.append("Historique d'audits limité")

    bonus = rules.track_bonus.get(track, 0)
    if bonus:
        score += bonus
        reasons.append(f"Tronc {track} (+{bonus})")

    if active_members >= rules.large_group_size:
        score += rules.large_group_bonus
        reasons.append(f"Groupe de {active_members} membres")

    return PriorityScore(
        score=score,
        reasons=reasons,
        members_never_audited=members_never_audited,
        total_previous_audits=total_previous_audits,
        avg_audits_per_member=round(avg_audits, 1),
    )


def score_to_priority(score: int, rules: ScoringRules = DEFAULT_RULES) -> str:
    if score >= rules.urgent_threshold:
        return "urgent"
    if score >= rules.warning_threshold:
        return "warning"
    return "normal"


def prioritize_groups(
    pending_groups: list[TrackGroup],
    history: dict[str, StudentAuditHistory],
    rules: ScoringRules = DEFAULT_RULES,
) -> list[PendingGroupPriority]:
    """Score pending groups and sort them by descending score.

    Equal scores are ordered by group id, then project name.
    """
    scored: list[PendingGroupPriority] = []
    for group in pending_groups:
        active_logins = group.active_logins
        result = calculate_priority_score(
            active_logins, group.active_members, group.track, history, rules
        )
        scored.append(
            PendingGroupPriority(
                group_id=group.group_id,
                project_name=group.project_name,
                track=group.track,
                members=active_logins,
                active_members=group.active_members,
                priority_score=result.score,
                priority=score_to_priority(result.score, rules),
                reasons=result.reasons,
                members_never_audited=result.members_never_audited,
                total_previous_audits=result.total_previous_audits,
                avg_audits_per_member=result.avg_audits_per_member,
            )
        )

    return sorted(scored, key=lambda g: (-g.priority_score, g.group_id, g.project_name))


async def evaluate_pending_priorities(
    db: AsyncSession,
    promo_id: str,
    pending_groups: list[TrackGroup],
    rules: ScoringRules = DEFAULT_RULES,
) -> PriorityEvaluation:
    """Score every pending group of a promotion.

    Groups without active members are never pending and are dropped here
    if a caller passes them in.
    """
    pending_groups = [g for g in pending_groups if g.audit is None and g.active_members > 0]
    history = await get_student_audit_history(db, promo_id)
    groups = prioritize_groups(pending_groups, history, rules)

    counts = {"urgent": 0, "warning": 0, "normal": 0}
    for group in groups:
        counts[group.priority] += 1

    average_score = (
        round(sum(g.priority_score for g in groups) / len(groups), 1) if groups else 0.0
    )

    logger.info(
        f"Evaluated {len(groups)} pending groups for promo {promo_id} "
        f"({counts['urgent']} urgent, {counts['warning']} warning)"
    )

    return PriorityEvaluation(
        promo_id=promo_id,
        evaluated_at=datetime.now(UTC),
        total_pending=len(groups),
        urgent_count=counts["urgent"],
        warning_count=counts["warning"],
        normal_count=counts["normal"],
        average_score=average_score,
        groups=groups,
    )
