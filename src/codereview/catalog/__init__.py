"""
Curriculum Catalog

Tracks, projects and promotions loaded from JSON data files.
"""

from .projects import CatalogError, ProjectCatalog, ProjectConfig, get_project_catalog
from .promotions import PromoConfig, PromotionCalendar, get_promotion_calendar

__all__ = [
    "CatalogError",
    "ProjectCatalog",
    "ProjectConfig",
    "get_project_catalog",
    "PromoConfig",
    "PromotionCalendar",
    "get_promotion_calendar",
]
