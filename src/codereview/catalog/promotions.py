"""
Promotion Calendar Loader

Loads promotion definitions (promotions.json): key, Zone01 event id and
curriculum dates.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

from codereview.config import settings

from .projects import CatalogError


@dataclass(frozen=True)
class PromoConfig:
    """One promotion (cohort) of students."""

    key: str
    event_id: int
    title: str
    start: date
    end: date
    milestones: dict[str, date] = field(default_factory=dict)

    @property
    def promo_id(self) -> str:
        """Event id as used in URLs and audit records."""
        return str(self.event_id)

    def is_active(self, today: date) -> bool:
        return self.end > today


class PromotionCalendar:
    """In-memory list of promotions, in file order (oldest first)."""

    def __init__(self, promotions_path: Path | None = None):
        self.path = promotions_path or settings.promotions_path
        self.promotions: list[PromoConfig] = []
        self.metadata: dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        """Load promotions from JSON file."""
        if not self.path.exists():
            raise CatalogError(f"Promotion calendar not found: {self.path}")

        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)

        self.metadata = {"version": data.get("version", "unknown")}

        for promo in data.get("promotions", []):
            dates = {name: date.fromisoformat(value) for name, value in promo["dates"].items()}
            try:
                start = dates.pop("start")
                end = dates.pop("end")
            except KeyError as e:
                raise CatalogError(f"Promotion {promo.get('key')} missing date {e}") from e

            self.promotions.append(
                PromoConfig(
                    key=promo["key"],
                    event_id=int(promo["eventId"]),
                    title=promo.get("title", promo["key"]),
                    start=start,
                    end=end,
                    milestones=dates,
                )
            )

    def get_active(self, today: date | None = None) -> list[PromoConfig]:
        """Promotions whose end date has not passed yet."""
        today = today or date.today()
        return [promo for promo in self.promotions if promo.is_active(today)]

    def get_by_event_id(self, event_id: int) -> PromoConfig | None:
        return next((p for p in self.promotions if p.event_id == event_id), None)

    def get_by_key(self, key: str) -> PromoConfig | None:
        return next((p for p in self.promotions if p.key == key), None)

    def parse_promo_id(self, promo_id: str) -> PromoConfig | None:
        """Resolve a promotion from an event id ("526") or a key ("P1 2025")."""
        if promo_id.strip().isdigit():
            return self.get_by_event_id(int(promo_id))
        return self.get_by_key(promo_id)

    def promo_name(self, promo_id: str) -> str:
        """Display name for a stored promo id, falling back to a generic label."""
        promo = self.parse_promo_id(promo_id)
        return promo.key if promo else f"Promotion {promo_id}"

    def __len__(self) -> int:
        return len(self.promotions)


# Global singleton instance
_promotion_calendar: PromotionCalendar | None = None


def get_promotion_calendar(force_reload: bool = False) -> PromotionCalendar:
    """Get singleton promotion calendar instance."""
    global _promotion_calendar

    if _promotion_calendar is None or force_reload:
        _promotion_calendar = PromotionCalendar()

    return _promotion_calendar
