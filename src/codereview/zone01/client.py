"""
Zone01 API Client

Reads student progressions from the Zone01 API, the source of truth for
students, projects and groups.

Main endpoint: GET /promotions/{promo_id}/students
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from codereview.config import settings

logger = logging.getLogger(__name__)

GROUP_STATUSES: tuple[str, ...] = ("finished", "in_progress", "setup", "failed", "without group")


class Zone01Error(Exception):
    """Zone01 API error."""

    pass


@dataclass(frozen=True)
class ProgressEntry:
    """One student's progression on one project."""

    login: str
    project_name: str
    group_id: str
    status: str
    first_name: str | None = None
    last_name: str | None = None
    grade: float | None = None


class ProgressionFeed(Protocol):
    """Read interface over the progression feed."""

    async def fetch_promotion_progressions(self, promo_id: str) -> list[ProgressEntry]: ...


def parse_progress_entry(raw: dict[str, Any]) -> ProgressEntry | None:
    """Normalize one raw API entry.

    Returns:
        ProgressEntry, or None if a required field is missing
    """
    try:
        user = raw["user"]
        group = raw["group"]
        return ProgressEntry(
            login=user["login"],
            first_name=user.get("firstName"),
            last_name=user.get("lastName"),
            project_name=raw["object"]["name"],
            # Numeric in the API, stored and compared as a string
            group_id=str(group["id"]),
            status=group.get("status", "without group"),
            grade=raw.get("grade"),
        )
    except (KeyError, TypeError):
        logger.warning("Skipping malformed Zone01 progress entry", extra={"entry": raw})
        return None


class Zone01Client:
    """HTTP client for the Zone01 progression API.

    No cache and no retry: every call hits the API, and failures propagate
    to the caller as Zone01Error.
    """

    def __init__(self, *, base_url: str, timeout: float = 30.0):
        """Initialize Zone01 client.

        Args:
            base_url: API base URL (e.g. https://api-zone01-rouen.deno.dev/api/v1)
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> Zone01Client:
        """Create client from application settings."""
        return cls(
            base_url=settings.ZONE01_API_BASE_URL,
            timeout=settings.ZONE01_API_TIMEOUT_SECONDS,
        )

    async def fetch_promotion_progressions(self, promo_id: str) -> list[ProgressEntry]:
        """Fetch every progression entry of a promotion.

        Args:
            promo_id: Zone01 promotion event id

        Returns:
            Parsed progression entries (malformed entries are skipped)

        Raises:
            Zone01Error: If the API is unreachable or answers with an error
        """
        url = f"{self.base_url}/promotions/{quote(str(promo_id), safe='')}/students"
        data = await self._get_json(url)

        raw_entries = data.get("progress") or []
        entries = [entry for raw in raw_entries if (entry := parse_progress_entry(raw))]

        logger.info(f"Fetched {len(entries)} progression entries for promotion {promo_id}")
        return entries

    async def _get_json(self, url: str) -> dict[str, Any]:
        """GET a JSON document from the API.

        Raises:
            Zone01Error: If the request fails or the body is not a JSON object
        """
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    url,
                    headers={"Accept": "application/json"},
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            logger.error(f"HTTP error calling Zone01 API: {e}")
            raise Zone01Error(f"HTTP error: {e}") from e

        if response.status_code != 200:
            logger.error(f"Zone01 API error: {response.status_code} for {url}")
            raise Zone01Error(f"Zone01 API error: {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise Zone01Error("Zone01 API returned invalid JSON") from e

        if not isinstance(data, dict):
            raise Zone01Error("Zone01 API returned an unexpected payload")

        return data


def get_progression_feed() -> ProgressionFeed:
    """FastAPI dependency providing the progression feed."""
    return Zone01Client.from_settings()
