"""
Review Pydantic Schemas

Response models for group listings, coverage, pending priorities and the
dashboard widget. Most are read straight from the review engine's
dataclasses.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# Groups
class GroupMemberSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    login: str
    first_name: str | None = None
    last_name: str | None = None
    grade: float | None = None
    is_dropout: bool = False


class GroupWithAuditStatus(BaseModel):
    """Finished group and whether it has been audited."""

    group_id: str
    project_name: str
    track: str
    status: str
    members: list[GroupMemberSchema]
    active_members: int
    is_audited: bool
    audit_id: UUID | None = None
    auditor_name: str | None = None
    audit_date: datetime | None = None


class TrackGroupCount(BaseModel):
    total: int = 0
    audited: int = 0


class GroupListStats(BaseModel):
    total_groups: int
    audited_groups: int
    pending_groups: int
    by_track: dict[str, TrackGroupCount] = Field(default_factory=dict)


class GroupListResponse(BaseModel):
    promo_id: str
    promo_name: str
    groups: list[GroupWithAuditStatus]
    stats: GroupListStats


# Coverage
class ProjectCoverageSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    project_name: str
    total_groups: int
    audited_groups: int
    pending_groups: int


class TrackCoverageSchema(BaseModel):
    """Audited vs pending counts for one track."""

    model_config = ConfigDict(from_attributes=True)

    track: str
    total_students: int
    audited_students: int
    pending_students: int
    total_groups: int
    audited_groups: int
    pending_groups: int
    audit_progress: int
    group_progress: int
    projects: list[ProjectCoverageSchema] = Field(default_factory=list)


class ProgressResponse(BaseModel):
    promo_id: str
    promo_name: str
    total_pending_students: int
    tracks: list[TrackCoverageSchema]


# Pending priorities
class PendingGroupSchema(BaseModel):
    """Pending group with its priority score and reasons."""

    model_config = ConfigDict(from_attributes=True)

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


class PromoPendingSchema(BaseModel):
    promo_id: str
    promo_name: str
    evaluated_at: datetime
    total_pending: int
    urgent_count: int
    warning_count: int
    normal_count: int
    average_score: float
    groups: list[PendingGroupSchema]


class PendingResponse(BaseModel):
    total_pending: int
    promotions: list[PromoPendingSchema]


# Dashboard widget
class WidgetTrackStats(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    track: str
    pending_students: int
    total_students: int
    audit_progress: int


class WidgetPromoStats(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    promo_id: str
    promo_name: str
    total_pending_students: int
    tracks: list[WidgetTrackStats]


class CodeReviewWidgetResponse(BaseModel):
    """Pending audits summary for the dashboard."""

    model_config = ConfigDict(from_attributes=True)

    promos: list[WidgetPromoStats]
    total_pending: int
    recent_audits_count: int


# Urgent reviews
class UrgentReviewSchema(BaseModel):
    """Group flagged for immediate attention."""

    promo_id: str
    project_name: str
    group_id: str
    reason: str
    level: str
    members: list[str]
    audit_id: UUID | None = None


# Student queue
class StudentPendingAuditSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    project_name: str
    track: str
    group_id: str
    status: str
    promo_id: str
    promo_name: str
    members: list[GroupMemberSchema]


class StudentPendingResponse(BaseModel):
    student_login: str
    pending_audits: list[StudentPendingAuditSchema]


# Track statistics
class ProjectGroupStats(BaseModel):
    name: str
    total_groups: int
    finished_groups: int
    in_progress_groups: int


class TrackStatsSchema(BaseModel):
    track: str
    total_students: int
    projects: list[ProjectGroupStats]


class TrackStatsResponse(BaseModel):
    """Students and group progress per project, from the progression feed."""

    promo_id: str
    promo_name: str
    tracks: list[TrackStatsSchema]
