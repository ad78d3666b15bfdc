"""
Dropout Registry

Students marked as withdrawn are excluded from active counts and from
priority scoring. Logins are returned lowercase.
"""

from __future__ import annotations

from typing import Protocol

from fastapi import Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from codereview.core.database import get_db
from codereview.core.models import Student


class DropoutRegistry(Protocol):
    """Read interface returning the set of withdrawn logins."""

    async def get_dropout_logins(self) -> set[str]: ...


class DatabaseDropoutRegistry:
    """Dropout registry backed by the students table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_dropout_logins(self) -> set[str]:
        result = await self.db.execute(select(Student.login).where(Student.is_dropout.is_(True)))
        return {login.lower() for login in result.scalars().all()}


async def get_student_by_login(db: AsyncSession, login: str) -> Student | None:
    """Student record for a login, matched case-insensitively."""
    result = await db.execute(select(Student).where(func.lower(Student.login) == login.lower()))
    return result.scalar_one_or_none()


def get_dropout_registry(db: AsyncSession = Depends(get_db)) -> DropoutRegistry:  # noqa: B008
    """FastAPI dependency providing the dropout registry."""
    return DatabaseDropoutRegistry(db)
