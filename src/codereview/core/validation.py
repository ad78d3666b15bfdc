"""
Input validation functions for code review submissions.

All validation functions follow the pattern:
1. Accept raw user input
2. Normalize/clean the input
3. Validate against business rules
4. Return cleaned value or raise ValidationError
"""

import re

from codereview.core.models import TRACKS


class ValidationError(ValueError):
    """Raised when user input fails validation."""

    pass


LOGIN_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{1,100}$")


def validate_login(login: str | None) -> str:
    """Validate a Zone01 login.

    Logins keep their original casing; comparisons elsewhere are
    case-insensitive.

    Raises:
        ValidationError: If login is empty or contains invalid characters
    """
    if login is None or login.strip() == "":
        raise ValidationError("Student login cannot be empty")

    cleaned = login.strip()
    if not LOGIN_PATTERN.match(cleaned):
        raise ValidationError(f"Invalid student login: {cleaned!r}")

    return cleaned


def validate_track(track: str | None) -> str:
    """Normalize a track name or URL slug ("rust" -> "Rust").

    Raises:
        ValidationError: If track is not one of the curriculum tracks
    """
    if not track:
        raise ValidationError("Track cannot be empty")

    by_slug = {name.lower(): name for name in TRACKS}
    normalized = by_slug.get(track.strip().lower())
    if normalized is None:
        raise ValidationError(f"Unknown track: {track!r} (expected one of {', '.join(TRACKS)})")

    return normalized


def clean_warnings(warnings: list[str] | None) -> list[str]:
    """Strip warning strings and drop blanks and duplicates, keeping order."""
    if not warnings:
        return []

    cleaned: list[str] = []
    for warning in warnings:
        text = re.sub(r"\s+", " ", warning).strip()
        if text and text not in cleaned:
            cleaned.append(text)

    return cleaned


def check_unique_logins(logins: list[str]) -> None:
    """Reject a list naming the same student twice (case-insensitive).

    Raises:
        ValidationError: If a login repeats
    """
    seen: set[str] = set()
    duplicates: list[str] = []
    for login in logins:
        key = login.lower()
        if key in seen and login not in duplicates:
            duplicates.append(login)
        seen.add(key)

    if duplicates:
        raise ValidationError(f"Duplicate student logins: {', '.join(duplicates)}")
