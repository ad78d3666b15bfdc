"""
Progression Aggregation

Rebuilds project groups from flat progression entries.

Groups are project specific: a student can sit in different groups on
different projects, and group sizes vary.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from .client import GROUP_STATUSES, ProgressEntry

AUDITABLE_STATUS = "finished"


@dataclass
class GroupMember:
    """Student inside a project group."""

    login: str
    first_name: str | None = None
    last_name: str | None = None
    grade: float | None = None


@dataclass
class ProjectGroup:
    """Group rebuilt from the progression feed."""

    group_id: str
    project_name: str
    status: str
    members: list[GroupMember] = field(default_factory=list)

    @property
    def logins(self) -> list[str]:
        return [member.login for member in self.members]


def can_audit_group(status: str) -> bool:
    """Only finished groups can be reviewed."""
    return status == AUDITABLE_STATUS


def build_project_groups(entries: Iterable[ProgressEntry], project_name: str) -> list[ProjectGroup]:
    """Cluster the students of one project by group id.

    Project names are compared case-insensitively. A group keeps the status
    of its first entry, members stay in feed order.
    """
    groups: dict[str, ProjectGroup] = {}
    project_name_lower = project_name.lower()

    for entry in entries:
        if entry.project_name.lower() != project_name_lower:
            continue

        group = groups.get(entry.group_id)
        if group is None:
            group = ProjectGroup(
                group_id=entry.group_id,
                project_name=entry.project_name,
                status=entry.status,
            )
            groups[entry.group_id] = group

        group.members.append(
            GroupMember(
                login=entry.login,
                first_name=entry.first_name,
                last_name=entry.last_name,
                grade=entry.grade,
            )
        )

    return list(groups.values())


def build_all_groups_for_track(
    entries: list[ProgressEntry], track_projects: list[str]
) -> dict[str, list[ProjectGroup]]:
    """Groups of every project of a track, skipping projects nobody started."""
    result: dict[str, list[ProjectGroup]] = {}
    for project_name in track_projects:
        groups = build_project_groups(entries, project_name)
        if groups:
            result[project_name] = groups
    return result


def filter_progressions_by_track(
    entries: Iterable[ProgressEntry], track_projects: list[str]
) -> list[ProgressEntry]:
    project_set = {name.lower() for name in track_projects}
    return [entry for entry in entries if entry.project_name.lower() in project_set]


def count_groups_by_status(entries: Iterable[ProgressEntry], project_name: str) -> dict[str, int]:
    counts = dict.fromkeys(GROUP_STATUSES, 0)
    for group in build_project_groups(entries, project_name):
        counts[group.status] = counts.get(group.status, 0) + 1
    return counts


def get_track_stats(
    entries: list[ProgressEntry], track: str, track_projects: list[str]
) -> dict[str, object]:
    """Students on a track and group counts per project."""
    on_track = filter_progressions_by_track(entries, track_projects)
    projects = []
    for project_name in track_projects:
        counts = count_groups_by_status(on_track, project_name)
        projects.append(
            {
                "name": project_name,
                "total_groups": sum(counts.values()),
                "finished_groups": counts["finished"],
                "in_progress_groups": counts["in_progress"],
            }
        )

    return {
        "track": track,
        "total_students": len({entry.login for entry in on_track}),
        "projects": projects,
    }
