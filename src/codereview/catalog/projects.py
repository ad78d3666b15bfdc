"""
Project Catalog Loader

Loads the per-track project list (projects.json) into memory.

The Zone01 feed only names projects; which track a project belongs to,
and in which order the tracks run, comes from this catalog.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from codereview.config import settings
from codereview.core.models import TRACKS


class CatalogError(Exception):
    """Catalog data is missing or malformed."""

    pass


@dataclass(frozen=True)
class ProjectConfig:
    """One project of a track."""

    id: int
    name: str
    project_time_week: int


class ProjectCatalog:
    """In-memory project catalog keyed by track."""

    def __init__(self, projects_path: Path | None = None):
        """Initialize project catalog.

        Args:
            projects_path: Path to projects JSON.
                           Defaults to settings.projects_path
        """
        self.path = projects_path or settings.projects_path
        self.tracks: dict[str, list[ProjectConfig]] = {}
        self.metadata: dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        """Load projects from JSON file."""
        if not self.path.exists():
            raise CatalogError(f"Project catalog not found: {self.path}")

        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)

        self.metadata = {"version": data.get("version", "unknown")}

        for track, projects in data.get("tracks", {}).items():
            if track not in TRACKS:
                raise CatalogError(f"Unknown track '{track}' in {self.path}")
            self.tracks[track] = [
                ProjectConfig(
                    id=int(project["id"]),
                    name=project["name"],
                    project_time_week=int(project.get("project_time_week", 0)),
                )
                for project in projects
            ]

    def get_all_tracks(self) -> list[str]:
        """Tracks in curriculum order."""
        return [track for track in TRACKS if track in self.tracks]

    def get_projects_by_track(self, track: str) -> list[ProjectConfig]:
        return self.tracks.get(track, [])

    def get_project_names_by_track(self, track: str) -> list[str]:
        return [project.name for project in self.get_projects_by_track(track)]

    def get_project_by_name(self, name: str) -> tuple[ProjectConfig, str] | None:
        """Find a project and its track by name (case-insensitive)."""
        name_lower = name.lower()
        for track, projects in self.tracks.items():
            for project in projects:
                if project.name.lower() == name_lower:
                    return project, track
        return None

    def __len__(self) -> int:
        """Total number of projects across tracks."""
        return sum(len(projects) for projects in self.tracks.values())

    def __repr__(self) -> str:
        return f"ProjectCatalog(version={self.metadata['version']}, projects={len(self)})"


# Global singleton instance
_project_catalog: ProjectCatalog | None = None


def get_project_catalog(force_reload: bool = False) -> ProjectCatalog:
    """Get singleton project catalog instance.

    Args:
        force_reload: Force reload from disk (default: False)

    Returns:
        ProjectCatalog instance
    """
    global _project_catalog

    if _project_catalog is None or force_reload:
        _project_catalog = ProjectCatalog()

    return _project_catalog
