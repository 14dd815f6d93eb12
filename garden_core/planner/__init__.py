# =============================================================================
# garden_core/planner/__init__.py
# Day Planner
# =============================================================================

from .repository import TimeBlockRepository, RecurringTimeBlockRepository, sunday_first_weekday

__all__ = ["TimeBlockRepository", "RecurringTimeBlockRepository", "sunday_first_weekday"]
