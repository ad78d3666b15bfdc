"""Pydantic schemas for API validation."""

from .audits import (
    AuditCreate,
    AuditDeleted,
    AuditImportResponse,
    AuditorCountSchema,
    AuditPriorityUpdate,
    AuditResultInput,
    AuditResultSchema,
    AuditSchema,
    AuditStatsSchema,
    AuditUpdate,
    RecentAuditSchema,
    TrackAuditStatsSchema,
)
from .reviews import (
    CodeReviewWidgetResponse,
    GroupListResponse,
    GroupWithAuditStatus,
    PendingResponse,
    ProgressResponse,
    PromoPendingSchema,
    StudentPendingResponse,
    TrackCoverageSchema,
    TrackStatsResponse,
    UrgentReviewSchema,
)

__all__ = [
    # Audits
    "AuditCreate",
    "AuditUpdate",
    "AuditPriorityUpdate",
    "AuditResultInput",
    "AuditResultSchema",
    "AuditSchema",
    "AuditDeleted",
    "AuditImportResponse",
    "AuditStatsSchema",
    "AuditorCountSchema",
    "RecentAuditSchema",
    "TrackAuditStatsSchema",
    # Reviews
    "GroupListResponse",
    "GroupWithAuditStatus",
    "TrackCoverageSchema",
    "ProgressResponse",
    "PromoPendingSchema",
    "PendingResponse",
    "StudentPendingResponse",
    "TrackStatsResponse",
    "UrgentReviewSchema",
    "CodeReviewWidgetResponse",
]
