"""
Audit Coverage Resolver

Cross-references the finished groups of the progression feed with the
stored audits to find which groups and students still wait for a review.

Rules:
- Only finished groups are considered.
- A group is pending when no audit exists for its project and group id.
- Dropouts do not count as active members; a group with no active member
  left is never pending.
- Login comparisons are case-insensitive.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from codereview.zone01 import ProgressEntry, build_project_groups, can_audit_group

from .audits import get_audits_by_promo_and_track

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from codereview.catalog import ProjectCatalog
    from codereview.core.models import Audit


@dataclass
class AnnotatedMember:
    """Group member with dropout status."""

    login: str
    first_name: str | None = None
    last_name: str | None = None
    grade: float | None = None
    is_dropout: bool = False


@dataclass
class TrackGroup:
    """Finished group of a track, with its audit if one exists."""

    group_id: str
    project_name: str
    track: str
    status: str
    members: list[AnnotatedMember]
    audit: Audit | None = None

    @property
    def active_members(self) -> int:
        return sum(1 for m in self.members if not m.is_dropout)

    @property
    def active_logins(self) -> list[str]:
        return [m.login for m in self.members if not m.is_dropout]

    @property
    def is_audited(self) -> bool:
        return self.audit is not None

    @property
    def is_pending(self) -> bool:
        return self.audit is None and self.active_members > 0


@dataclass
class ProjectCoverage:
    project_name: str
    total_groups: int = 0
    audited_groups: int = 0
    pending_groups: int = 0


@dataclass
class TrackCoverage:
    """Audit progress of one track."""

    track: str
    total_students: int = 0
    audited_students: int = 0
    pending_students: int = 0
    total_groups: int = 0
    audited_groups: int = 0
    pending_groups: int = 0
    audit_progress: int = 0
    group_progress: int = 0
    projects: list[ProjectCoverage] = field(default_factory=list)


@dataclass
class PromotionCoverage:
    """Coverage of every requested track of one promotion."""

    promo_id: str
    tracks: list[TrackCoverage]
    groups: list[TrackGroup]

    @property
    def total_pending_students(self) -> int:
        return sum(t.pending_students for t in self.tracks)

    @property
    def pending_groups(self) -> list[TrackGroup]:
        return resolve_pending_groups(self.groups)


def calculate_progress(audited: int, total: int) -> int:
    """Percentage of audited items, rounded half up. 0 when there is nothing to audit."""
    if total == 0:
        return 0
    return math.floor(audited * 100 / total + 0.5)


def collect_track_groups(
    entries: list[ProgressEntry],
    track: str,
    project_names: list[str],
    audits: list[Audit],
    dropout_logins: set[str],
) -> list[TrackGroup]:
    """Finished groups of every project of a track, annotated with audits and dropouts."""
    audits_by_group = {(audit.project_name.lower(), audit.group_id): audit for audit in audits}
    groups: list[TrackGroup] = []

    for project_name in project_names:
        for group in build_project_groups(entries, project_name):
            if not can_audit_group(group.status):
                continue

            groups.append(
                TrackGroup(
                    group_id=group.group_id,
                    project_name=project_name,
                    track=track,
                    status=group.status,
                    members=[
                        AnnotatedMember(
                            login=m.login,
                            first_name=m.first_name,
                            last_name=m.last_name,
                            grade=m.grade,
                            is_dropout=m.login.lower() in dropout_logins,
                        )
                        for m in group.members
                    ],
                    audit=audits_by_group.get((project_name.lower(), group.group_id)),
                )
            )

    return groups


def resolve_pending_groups(groups: list[TrackGroup]) -> list[TrackGroup]:
    """Groups without audit that still have at least one active member."""
    return [group for group in groups if group.is_pending]


def compute_track_coverage(track: str, groups: list[TrackGroup]) -> TrackCoverage:
    """Student and group audit progress for one track.

    A student counts as audited when an audit of one of their finished
    groups on the track holds a result for them.
    """
    coverage = TrackCoverage(track=track)
    student_audited: dict[str, bool] = {}
    projects: dict[str, ProjectCoverage] = {}

    for group in groups:
        if not group.is_audited and group.active_members == 0:
            continue

        project = projects.setdefault(
            group.project_name, ProjectCoverage(project_name=group.project_name)
        )
        project.total_groups += 1
        coverage.total_groups += 1
        if group.is_audited:
            project.audited_groups += 1
            coverage.audited_groups += 1
        else:
            project.pending_groups += 1
            coverage.pending_groups += 1

        audited_logins = (
            {r.student_login.lower() for r in group.audit.results} if group.audit else set()
        )
        for login in group.active_logins:
            key = login.lower()
            student_audited[key] = student_audited.get(key, False) or key in audited_logins

    coverage.total_students = len(student_audited)
    coverage.audited_students = sum(1 for audited in student_audited.values() if audited)
    coverage.pending_students = coverage.total_students - coverage.audited_students
    coverage.audit_progress = calculate_progress(coverage.audited_students, coverage.total_students)
    coverage.group_progress = calculate_progress(coverage.audited_groups, coverage.total_groups)
    coverage.projects = list(projects.values())
    return coverage


async def resolve_promotion_coverage(
    db: AsyncSession,
    promo_id: str,
    entries: list[ProgressEntry],
    dropout_logins: set[str],
    catalog: ProjectCatalog,
    tracks: list[str] | None = None,
) -> PromotionCoverage:
    """Coverage of a promotion across the requested tracks (all by default)."""
    tracks = tracks or catalog.get_all_tracks()
    track_coverages: list[TrackCoverage] = []
    all_groups: list[TrackGroup] = []

    for track in tracks:
        audits = await get_audits_by_promo_and_track(db, promo_id, track)
        groups = collect_track_groups(
            entries,
            track,
            catalog.get_project_names_by_track(track),
            audits,
            dropout_logins,
        )
        track_coverages.append(compute_track_coverage(track, groups))
        all_groups.extend(groups)

    return PromotionCoverage(promo_id=promo_id, tracks=track_coverages, groups=all_groups)
