# =============================================================================
# garden_core/analytics/__init__.py
# Summaries
# =============================================================================

from .summaries import (
    total_spent,
    spending_by_category,
    habit_completion_rates,
    monthly_subscription_total,
)

__all__ = [
    "total_spent",
    "spending_by_category",
    "habit_completion_rates",
    "monthly_subscription_total",
]
