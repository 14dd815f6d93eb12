# =============================================================================
# garden_core/priorities/__init__.py
# Weekly Priorities
# =============================================================================

from .repository import PriorityRepository, PriorityWeekRepository
from .ledger import PriorityWeekLedger

__all__ = ["PriorityRepository", "PriorityWeekRepository", "PriorityWeekLedger"]
