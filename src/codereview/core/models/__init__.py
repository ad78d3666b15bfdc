"""
Code Review SQLAlchemy Models
"""

from .audits import PRIORITIES, TRACKS, Audit, AuditResult, Priority, Track
from .base import Base, CreatedAtMixin, TimestampMixin, UUIDPrimaryKeyMixin
from .students import Student

__all__ = [
    # Base
    "Base",
    "UUIDPrimaryKeyMixin",
    "CreatedAtMixin",
    "TimestampMixin",
    # Audits
    "Audit",
    "AuditResult",
    "TRACKS",
    "PRIORITIES",
    "Track",
    "Priority",
    # Students
    "Student",
]
