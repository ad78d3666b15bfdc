"""
Student Registry Import

Loads students (and their dropout status) from a CSV export into the
students table, which backs the dropout registry.

CSV columns: login, first_name, last_name, promo_name, is_dropout
Only login is required. is_dropout accepts true/false, 1/0, yes/no, oui/non.

Usage:
    python -m scripts.import_students students.csv [--dry-run] [--mark-dropouts]
"""

import argparse
import asyncio
import csv
import logging
from pathlib import Path
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from codereview.core.database import AsyncSessionLocal
from codereview.core.models import Student
from codereview.core.validation import ValidationError, validate_login
from codereview.review.dropouts import get_student_by_login

logger = logging.getLogger(__name__)

TRUTHY = {"true", "1", "yes", "y", "oui", "x"}


def parse_bool(value: str | None) -> bool:
    return (value or "").strip().lower() in TRUTHY


def parse_student_row(row: dict[str, str], mark_dropouts: bool = False) -> dict[str, Any] | None:
    """Normalize one CSV row.

    Returns:
        Student fields, or None if the login is missing or invalid
    """
    try:
        login = validate_login(row.get("login"))
    except ValidationError as e:
        logger.warning(f"Skipping row: {e}")
        return None

    return {
        "login": login,
        "first_name": (row.get("first_name") or "").strip() or None,
        "last_name": (row.get("last_name") or "").strip() or None,
        "promo_name": (row.get("promo_name") or "").strip() or None,
        "is_dropout": mark_dropouts or parse_bool(row.get("is_dropout")),
    }


def read_students_csv(path: Path, mark_dropouts: bool = False) -> list[dict[str, Any]]:
    """Read and normalize a student CSV, keeping the last row per login."""
    students: dict[str, dict[str, Any]] = {}
    with open(path, newline="", encoding="utf-8") as csvfile:
        for row in csv.DictReader(csvfile):
            student = parse_student_row(row, mark_dropouts)
            if student:
                students[student["login"].lower()] = student

    logger.info(f"Read {len(students)} students from {path}")
    return list(students.values())


async def upsert_students(db: AsyncSession, students: list[dict[str, Any]]) -> tuple[int, int]:
    """Insert new students and update known ones (matched case-insensitively).

    Returns:
        (created, updated) counts
    """
    created = updated = 0
    for data in students:
        student = await get_student_by_login(db, data["login"])

        if student is None:
            db.add(Student(**data))
            created += 1
            continue

        for field in ("first_name", "last_name", "promo_name"):
            if data[field] is not None:
                setattr(student, field, data[field])
        student.is_dropout = data["is_dropout"]
        updated += 1

    await db.commit()
    return created, updated


async def main():
    """Main entry point for the import."""
    parser = argparse.ArgumentParser(description="Import students into the dropout registry")
    parser.add_argument("file", type=Path, help="CSV file to import")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Parse and report without writing to the database",
    )
    parser.add_argument(
        "--mark-dropouts",
        action="store_true",
        help="Flag every listed student as a dropout",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    students = read_students_csv(args.file, mark_dropouts=args.mark_dropouts)
    dropouts = sum(1 for s in students if s["is_dropout"])

    if args.dry_run:
        logger.info(f"Dry run: {len(students)} students, {dropouts} dropouts")
        return

    async with AsyncSessionLocal() as session:
        created, updated = await upsert_students(session, students)

    logger.info(f"Import complete: {created} created, {updated} updated, {dropouts} dropouts")


if __name__ == "__main__":
    asyncio.run(main())
