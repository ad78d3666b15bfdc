"""
Audit CSV Import

Loads audits exported from the former review board, matching each row to
its Zone01 group through the progression feed.

CSV columns: Nom, Commentaire, Date, Date de création, Effectuée par,
Groupe, Projet, Promotion

Usage:
    python -m scripts.import_audits audits.csv [--clear]
"""

import argparse
import asyncio
import logging
from pathlib import Path

from codereview.catalog import get_project_catalog, get_promotion_calendar
from codereview.core.database import AsyncSessionLocal
from codereview.review.imports import import_audits, read_audit_csv
from codereview.zone01 import Zone01Client

logger = logging.getLogger(__name__)


async def main():
    """Main entry point for the import."""
    parser = argparse.ArgumentParser(description="Import review board audits from CSV")
    parser.add_argument("file", type=Path, help="CSV file to import")
    parser.add_argument(
        "--clear",
        action="store_true",
        help="Delete every stored audit before importing",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    rows = read_audit_csv(args.file.read_text(encoding="utf-8-sig"))
    logger.info(f"Read {len(rows)} rows from {args.file}")
    if not rows:
        return

    async with AsyncSessionLocal() as session:
        result = await import_audits(
            session,
            Zone01Client.from_settings(),
            get_project_catalog(),
            get_promotion_calendar(),
            rows,
            clear=args.clear,
        )

    for unmatched in result.unmatched:
        logger.warning(f"Row {unmatched.row}: {unmatched.reason}")
    for error in result.errors:
        logger.error(error)

    logger.info(
        f"Import complete: {result.imported} imported, {result.skipped} skipped, "
        f"{len(result.errors)} errors"
    )


if __name__ == "__main__":
    asyncio.run(main())
