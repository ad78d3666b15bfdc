"""
Audit Pydantic Schemas

Request/response models for the audit CRUD endpoints.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from codereview.core.validation import (
    check_unique_logins,
    clean_warnings,
    validate_login,
    validate_track,
)

TrackName = Literal["Golang", "Javascript", "Rust", "Java"]
PriorityLevel = Literal["urgent", "warning", "normal"]


# Request schemas
class AuditResultInput(BaseModel):
    """Outcome for one student in a submitted audit."""

    student_login: str
    validated: bool
    feedback: str | None = None
    warnings: list[str] = Field(default_factory=list)

    @field_validator("student_login")
    @classmethod
    def check_login(cls, v: str) -> str:
        return validate_login(v)

    @field_validator("warnings")
    @classmethod
    def check_warnings(cls, v: list[str]) -> list[str]:
        return clean_warnings(v)


class AuditCreate(BaseModel):
    """Request schema for creating an audit."""

    promo_id: str = Field(min_length=1, max_length=50)
    track: TrackName
    project_name: str = Field(min_length=1, max_length=100)
    group_id: str = Field(min_length=1, max_length=100)
    summary: str | None = ""
    warnings: list[str] = Field(default_factory=list)
    auditor_name: str = Field(min_length=1, max_length=255)
    auditor_id: str | None = None
    results: list[AuditResultInput]

    @field_validator("track", mode="before")
    @classmethod
    def normalize_track(cls, v: str) -> str:
        return validate_track(v)

    @field_validator("warnings")
    @classmethod
    def check_warnings(cls, v: list[str]) -> list[str]:
        return clean_warnings(v)

    @field_validator("results")
    @classmethod
    def check_results(cls, v: list[AuditResultInput]) -> list[AuditResultInput]:
        check_unique_logins([r.student_login for r in v])
        return v


class AuditUpdate(BaseModel):
    """Request schema for editing an audit.

    When results are given they replace the stored set entirely.
    """

    summary: str | None = None
    warnings: list[str] = Field(default_factory=list)
    results: list[AuditResultInput] | None = None

    @field_validator("warnings")
    @classmethod
    def check_warnings(cls, v: list[str]) -> list[str]:
        return clean_warnings(v)

    @field_validator("results")
    @classmethod
    def check_results(cls, v: list[AuditResultInput] | None) -> list[AuditResultInput] | None:
        if v is not None:
            check_unique_logins([r.student_login for r in v])
        return v


class AuditPriorityUpdate(BaseModel):
    """Manual priority override."""

    priority: PriorityLevel


# Response schemas
class AuditResultSchema(BaseModel):
    """Audit result response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    student_login: str
    validated: bool
    feedback: str | None = None
    warnings: list[str]
    created_at: datetime


class AuditSchema(BaseModel):
    """Audit response schema with its results."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    promo_id: str
    track: str
    project_name: str
    group_id: str
    summary: str | None = None
    warnings: list[str]
    priority: str
    is_archived: bool
    validated_count: int
    total_members: int
    auditor_id: str | None = None
    auditor_name: str
    has_warnings: bool
    created_at: datetime
    updated_at: datetime
    results: list[AuditResultSchema] = Field(default_factory=list)


class RecentAuditSchema(BaseModel):
    """Compact audit row for dashboard lists."""

    id: UUID
    promo_id: str
    promo_name: str
    track: str
    project_name: str
    group_id: str
    auditor_name: str
    created_at: datetime
    has_warnings: bool
    member_count: int
    validated_count: int
    members: list[str]


class AuditDeleted(BaseModel):
    """Response for delete operations."""

    success: bool = True
    deleted: int


class AuditStatsSchema(BaseModel):
    """Global audit counters."""

    total_audits: int
    total_student_results: int
    by_promo: dict[str, int]
    by_track: dict[str, int]
    by_auditor: dict[str, int]


class ProjectAuditCount(BaseModel):
    project_name: str
    audit_count: int
    group_ids: list[str]


class TrackAuditStatsSchema(BaseModel):
    """Audit counters for one promotion and track."""

    promo_id: str
    track: str
    total_audits: int
    total_students_audited: int
    project_stats: list[ProjectAuditCount]


class AuditorCountSchema(BaseModel):
    auditor_id: str | None = None
    auditor_name: str
    count: int


class ImportMatchSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    row: int
    group_id: str
    logins: list[str]


class ImportUnmatchedSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    row: int
    logins: list[str]
    reason: str


class AuditImportResponse(BaseModel):
    """Outcome of a CSV audit import."""

    model_config = ConfigDict(from_attributes=True)

    total: int
    imported: int
    skipped: int
    cleared: int
    errors: list[str]
    matched: list[ImportMatchSchema]
    unmatched: list[ImportUnmatchedSchema]
