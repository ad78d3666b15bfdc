"""
Zone01 Integration

Progression feed client and group reconstruction.
"""

from .client import (
    GROUP_STATUSES,
    ProgressEntry,
    ProgressionFeed,
    Zone01Client,
    Zone01Error,
    get_progression_feed,
)
from .progression import (
    GroupMember,
    ProjectGroup,
    build_all_groups_for_track,
    build_project_groups,
    can_audit_group,
    count_groups_by_status,
    filter_progressions_by_track,
    get_track_stats,
)

__all__ = [
    "GROUP_STATUSES",
    "ProgressEntry",
    "ProgressionFeed",
    "Zone01Client",
    "Zone01Error",
    "get_progression_feed",
    "GroupMember",
    "ProjectGroup",
    "build_all_groups_for_track",
    "build_project_groups",
    "can_audit_group",
    "count_groups_by_status",
    "filter_progressions_by_track",
    "get_track_stats",
]
