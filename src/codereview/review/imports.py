"""
Audit CSV Import

Loads audits exported from the former review board. A row only names the
reviewed students, so each row is matched against the groups of the
progression feed and the audit is stored under the real Zone01 group id,
with one validated result per group member.

CSV columns: Nom, Commentaire, Date, Date de création, Effectuée par,
Groupe, Projet, Promotion
"""

from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from codereview.catalog import ProjectCatalog, PromoConfig, PromotionCalendar
from codereview.core.schemas.audits import AuditCreate, AuditResultInput
from codereview.zone01 import (
    ProgressEntry,
    ProgressionFeed,
    ProjectGroup,
    Zone01Error,
    build_project_groups,
)

from .audits import AuditConflictError, clear_all_audits, create_audit, get_audit_by_group

logger = logging.getLogger(__name__)

DEFAULT_AUDITOR = "Import CSV"
PARTIAL_MATCH_RATIO = 0.5

# "login (https://profile-url)" entries of the Groupe column
GROUP_LOGIN_PATTERN = re.compile(r"([A-Za-z0-9_-]+)\s*\(https?://[^)]+\)")
PROMO_LABEL_PATTERN = re.compile(r"Promo\s+(\d{4})\s+P(\d)", re.IGNORECASE)
FRENCH_DATE_PATTERN = re.compile(r"^(\d{1,2})\s+(\S+)\s+(\d{4})(?:\s+(\d{1,2}):(\d{2}))?$")

FRENCH_MONTHS = {
    "janvier": 1,
    "février": 2,
    "fevrier": 2,
    "mars": 3,
    "avril": 4,
    "mai": 5,
    "juin": 6,
    "juillet": 7,
    "août": 8,
    "aout": 8,
    "septembre": 9,
    "octobre": 10,
    "novembre": 11,
    "décembre": 12,
    "decembre": 12,
}


@dataclass
class MatchedRow:
    row: int
    group_id: str
    logins: list[str]


@dataclass
class UnmatchedRow:
    row: int
    logins: list[str]
    reason: str


@dataclass
class ImportResult:
    """Outcome of an import run. Row numbers are CSV line numbers."""

    total: int = 0
    imported: int = 0
    skipped: int = 0
    cleared: int = 0
    errors: list[str] = field(default_factory=list)
    matched: list[MatchedRow] = field(default_factory=list)
    unmatched: list[UnmatchedRow] = field(default_factory=list)


def read_audit_csv(content: str) -> list[dict[str, str]]:
    """Parse CSV text into rows keyed by trimmed header names, skipping blank lines."""
    reader = csv.DictReader(io.StringIO(content))
    rows = []
    for raw in reader:
        row = {
            key.strip(): (value or "").strip() for key, value in raw.items() if key is not None
        }
        if any(row.values()):
            rows.append(row)
    return rows


def extract_logins(group_field: str) -> list[str]:
    """Lowercase logins listed in a Groupe cell."""
    return [login.lower() for login in GROUP_LOGIN_PATTERN.findall(group_field or "")]


def parse_french_date(value: str) -> datetime | None:
    """Parse "8 avril 2024" or "8 avril 2024 14:30" as a UTC datetime."""
    match = FRENCH_DATE_PATTERN.match((value or "").strip())
    if not match:
        return None

    day, month_name, year, hour, minute = match.groups()
    month = FRENCH_MONTHS.get(month_name.lower())
    if month is None:
        return None

    try:
        return datetime(
            int(year), month, int(day), int(hour or 0), int(minute or 0), tzinfo=UTC
        )
    except ValueError:
        return None


def resolve_import_promotion(
    calendar: PromotionCalendar, promotion_field: str
) -> PromoConfig | None:
    """First known promotion of a Promotion cell.

    Accepts calendar keys ("P1 2025") and board labels ("Promo 2025 P1");
    Green IT cohorts are ignored.
    """
    for label in (promotion_field or "").split(","):
        label = label.strip()
        if not label or "green it" in label.lower():
            continue

        promo = calendar.parse_promo_id(label)
        if promo is None:
            match = PROMO_LABEL_PATTERN.search(label)
            if match:
                promo = calendar.get_by_key(f"P{match.group(2)} {match.group(1)}")
        if promo is not None:
            return promo

    return None


def find_matching_group(logins: list[str], groups: list[ProjectGroup]) -> ProjectGroup | None:
    """Group holding exactly these logins, else the group holding the largest
    share of them (at least half).
    """
    wanted = {login.lower() for login in logins}
    if not wanted:
        return None

    for group in groups:
        if {login.lower() for login in group.logins} == wanted:
            return group

    best: ProjectGroup | None = None
    best_score = 0.0
    for group in groups:
        members = {login.lower() for login in group.logins}
        score = len(wanted & members) / len(wanted)
        if score >= PARTIAL_MATCH_RATIO and score > best_score:
            best, best_score = group, score

    return best


def _skip(result: ImportResult, line: int, logins: list[str], reason: str) -> None:
    result.skipped += 1
    result.unmatched.append(UnmatchedRow(row=line, logins=logins, reason=reason))


async def import_audits(
    db: AsyncSession,
    feed: ProgressionFeed,
    catalog: ProjectCatalog,
    calendar: PromotionCalendar,
    rows: list[dict[str, str]],
    clear: bool = False,
) -> ImportResult:
    """Import parsed CSV rows as audits.

    Rows that cannot be matched to a group are reported, not raised. Groups
    that already have an audit are skipped. With clear=True every stored
    audit is deleted first.
    """
    result = ImportResult(total=len(rows))
    if clear:
        result.cleared = await clear_all_audits(db)

    progressions: dict[str, list[ProgressEntry] | None] = {}

    for line, row in enumerate(rows, start=2):
        logins = extract_logins(row.get("Groupe", ""))

        if not logins:
            _skip(result, line, logins, f"No student found in {row.get('Groupe', '')!r}")
            continue

        project = catalog.get_project_by_name(row.get("Projet", ""))
        if project is None:
            _skip(result, line, logins, f"Unknown project {row.get('Projet', '')!r}")
            continue
        project_config, track = project

        promo = resolve_import_promotion(calendar, row.get("Promotion", ""))
        if promo is None:
            _skip(result, line, logins, f"Unknown promotion {row.get('Promotion', '')!r}")
            continue

        if promo.promo_id not in progressions:
            try:
                progressions[promo.promo_id] = await feed.fetch_promotion_progressions(
                    promo.promo_id
                )
            except Zone01Error as e:
                logger.error(f"Import: progression feed failed for {promo.key}: {e}")
                progressions[promo.promo_id] = None

        entries = progressions[promo.promo_id]
        groups = build_project_groups(entries or [], project_config.name)
        if not groups:
            _skip(result, line, logins, f"No Zone01 group found for {project_config.name}")
            continue

        group = find_matching_group(logins, groups)
        if group is None:
            _skip(result, line, logins, f"No Zone01 group matches students [{', '.join(logins)}]")
            continue

        if await get_audit_by_group(db, promo.promo_id, group.project_name, group.group_id):
            result.skipped += 1
            continue

        audit_date = (
            parse_french_date(row.get("Date", ""))
            or parse_french_date(row.get("Date de création", ""))
            or datetime.now(UTC)
        )
        try:
            data = AuditCreate(
                promo_id=promo.promo_id,
                track=track,
                project_name=group.project_name,
                group_id=group.group_id,
                summary=row.get("Commentaire") or None,
                auditor_name=row.get("Effectuée par") or DEFAULT_AUDITOR,
                results=[
                    AuditResultInput(student_login=login, validated=True)
                    for login in group.logins
                ],
            )
            await create_audit(db, data, group, created_at=audit_date)
        except AuditConflictError:
            result.skipped += 1
            continue
        except PydanticValidationError as e:
            logger.error(f"Import: row {line} rejected: {e}")
            result.errors.append(f"Row {line}: {e}")
            continue
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Import: row {line} failed: {e}")
            result.errors.append(f"Row {line}: {e}")
            continue

        result.imported += 1
        result.matched.append(MatchedRow(row=line, group_id=group.group_id, logins=group.logins))

    logger.info(
        f"Audit import: {result.imported} imported, {result.skipped} skipped, "
        f"{len(result.errors)} errors out of {result.total} rows"
    )
    return result
