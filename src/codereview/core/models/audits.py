"""
Audit Models

Code review records. Only audit data lives here: students, projects and
groups come from the Zone01 API, which stays the source of truth.

Link keys with Zone01 (no foreign keys, external data):
- promo_id: Zone01 promotion event id
- project_name: object.name in the progression feed
- group_id: group.id in the progression feed (project specific)
"""

from __future__ import annotations

from typing import Literal
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, CreatedAtMixin, TimestampMixin, UUIDPrimaryKeyMixin

TRACKS: tuple[str, ...] = ("Golang", "Javascript", "Rust", "Java")
PRIORITIES: tuple[str, ...] = ("urgent", "warning", "normal")

Track = Literal["Golang", "Javascript", "Rust", "Java"]
Priority = Literal["urgent", "warning", "normal"]

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONList = JSON().with_variant(JSONB(), "postgresql")


class Audit(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """One code review of one project group.

    At most one audit exists per (promotion, project, group).
    """

    __tablename__ = "audits"
    __table_args__ = (
        UniqueConstraint("promo_id", "project_name", "group_id", name="uq_audits_promo_project_group"),
        CheckConstraint(
            "track IN ('Golang', 'Javascript', 'Rust', 'Java')", name="check_audit_track"
        ),
        CheckConstraint(
            "priority IN ('urgent', 'warning', 'normal')", name="check_audit_priority"
        ),
        Index("idx_audits_promo_track", "promo_id", "track"),
        Index("idx_audits_group", "group_id"),
        Index("idx_audits_created", "created_at"),
    )

    # Zone01 link keys
    promo_id: Mapped[str] = mapped_column(String(50), nullable=False, comment="Zone01 event id")
    track: Mapped[str] = mapped_column(
        String(20), nullable=False, comment="Golang | Javascript | Rust | Java"
    )
    project_name: Mapped[str] = mapped_column(String(100), nullable=False)
    group_id: Mapped[str] = mapped_column(
        String(100), nullable=False, comment="group.id from the Zone01 feed"
    )

    # Review content
    summary: Mapped[str | None] = mapped_column(Text, nullable=True, comment="Overall report")
    warnings: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)

    # Status
    priority: Mapped[str] = mapped_column(
        String(20), default="normal", nullable=False, comment="Manual override label"
    )
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    validated_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False, comment="Denormalised count of validated members"
    )
    total_members: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Auditor
    auditor_id: Mapped[str | None] = mapped_column(
        String(100), nullable=True, comment="Identity provider user id"
    )
    auditor_name: Mapped[str] = mapped_column(
        String(255), nullable=False, comment="Denormalised for display"
    )

    # Relationships
    results: Mapped[list[AuditResult]] = relationship(
        back_populates="audit",
        cascade="all, delete-orphan",
        order_by="AuditResult.student_login",
    )

    @property
    def has_warnings(self) -> bool:
        """True if the audit or any member result carries a warning."""
        return bool(self.warnings) or any(result.warnings for result in self.results)


class AuditResult(Base, UUIDPrimaryKeyMixin, CreatedAtMixin):
    """Individual outcome of one student inside an audit."""

    __tablename__ = "audit_results"
    __table_args__ = (
        UniqueConstraint("audit_id", "student_login", name="uq_audit_results_audit_student"),
        Index("idx_audit_results_audit", "audit_id"),
        Index("idx_audit_results_student", "student_login"),
    )

    audit_id: Mapped[UUID] = mapped_column(
        ForeignKey("audits.id", ondelete="CASCADE"), nullable=False
    )
    student_login: Mapped[str] = mapped_column(
        String(100), nullable=False, comment="user.login from the Zone01 feed"
    )

    validated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    warnings: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)

    # Relationships
    audit: Mapped[Audit] = relationship(back_populates="results")
