"""
Student Models

Local student registry. Identity and progression come from Zone01; this
table only records what the staff knows about a student, mainly whether
they dropped out.
"""

from __future__ import annotations

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Student(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Student known to the dashboard."""

    __tablename__ = "students"
    __table_args__ = (
        Index("idx_students_promo", "promo_name"),
        Index("idx_students_dropout", "is_dropout"),
    )

    login: Mapped[str] = mapped_column(
        String(100), unique=True, nullable=False, comment="user.login from the Zone01 feed"
    )
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    promo_name: Mapped[str | None] = mapped_column(
        String(50), nullable=True, comment="Promotion key (e.g. 'P1 2025')"
    )

    is_dropout: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False, comment="Withdrawn from the curriculum"
    )
