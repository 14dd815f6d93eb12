# =============================================================================
# garden_core/analytics/summaries.py
# Spending and Habit Summaries (pandas)
# =============================================================================
"""
Pure DataFrame summaries over rows returned by the repositories. They work
the same on fresh remote data and on stale cached rows.
"""

from __future__ import annotations
import calendar
from typing import Any, Dict, List, Optional

import pandas as pd

from garden_core.weeks import DateLike, parse_date

Row = Dict[str, Any]

SPENDING_COLUMNS = ["category", "color", "total", "count", "percentage"]
HABIT_COLUMNS = ["name", "color", "completed_days", "total_days", "percentage"]

UNCATEGORIZED = "Uncategorized"


def total_spent(expenses: List[Row]) -> float:
    if not expenses:
        return 0.0
    return float(pd.to_numeric(pd.DataFrame(expenses)["amount"], errors="coerce").fillna(0).sum())


def spending_by_category(
    expenses: List[Row],
    categories: Optional[List[Row]] = None,
) -> pd.DataFrame:
    """
    Total spent per category with each category's share of the whole.

    Expenses are matched to categories by category_id when present, else by
    their free-text category. Categories with nothing spent are omitted.

    Args:
        expenses: Expense rows (amount, category_id or category)
        categories: Expense category rows (id, name, color)

    Returns:
        DataFrame with SPENDING_COLUMNS, sorted by total descending
    """
    if not expenses:
        return pd.DataFrame(columns=SPENDING_COLUMNS)

    df = pd.DataFrame(expenses)
    df["amount"] = pd.to_numeric(df["amount"], errors="coerce").fillna(0.0)

    names: Dict[Any, str] = {}
    colors: Dict[str, Optional[str]] = {}
    for cat in categories or []:
        names[cat.get("id")] = cat.get("name")
        colors[cat.get("name")] = cat.get("color")

    by_id = df["category_id"].map(names) if "category_id" in df else pd.Series(index=df.index, dtype=object)
    by_text = df["category"] if "category" in df else pd.Series(index=df.index, dtype=object)
    df["label"] = by_id.fillna(by_text).fillna(UNCATEGORIZED)

    summary = (
        df.groupby("label", sort=False)["amount"]
        .agg(total="sum", count="count")
        .reset_index()
        .rename(columns={"label": "category"})
    )
    summary = summary[summary["total"] > 0].copy()

    grand_total = summary["total"].sum()
    summary["percentage"] = (summary["total"] / grand_total * 100) if grand_total > 0 else 0.0
    summary["color"] = summary["category"].map(colors)

    return (
        summary.sort_values("total", ascending=False, kind="stable")
        .reset_index(drop=True)[SPENDING_COLUMNS]
    )


def habit_completion_rates(
    habits: List[Row],
    completions: List[Row],
    month: DateLike,
) -> pd.DataFrame:
    """
    Completed days per habit over a calendar month.

    A weekly habit is many rows (one per week) sharing a name, so rows are
    grouped by name and a day counts once however many rows point at it.

    Args:
        habits: Habit rows (id, name, color) from any weeks
        completions: Completion rows (habit_id, date)
        month: Any date in the month to summarize

    Returns:
        DataFrame with HABIT_COLUMNS; percentage is rounded to an int
    """
    day = parse_date(month)
    days_in_month = calendar.monthrange(day.year, day.month)[1]

    if not habits:
        return pd.DataFrame(columns=HABIT_COLUMNS)

    habit_df = pd.DataFrame(habits)
    if "color" not in habit_df:
        habit_df["color"] = None
    families = habit_df.drop_duplicates("name")[["name", "color"]].reset_index(drop=True)

    if completions:
        done = pd.DataFrame(completions)
        done["date"] = pd.to_datetime(done["date"]).dt.date
        in_month = done[
            done["date"].map(lambda d: d.year == day.year and d.month == day.month)
        ]
        in_month = in_month.merge(
            habit_df[["id", "name"]], left_on="habit_id", right_on="id", how="inner"
        )
        counts = in_month.groupby("name")["date"].nunique()
    else:
        counts = pd.Series(dtype="int64")

    families["completed_days"] = families["name"].map(counts).fillna(0).astype(int)
    families["total_days"] = days_in_month
    families["percentage"] = (
        (families["completed_days"] / days_in_month * 100).round().astype(int)
    )
    return families[HABIT_COLUMNS]


def monthly_subscription_total(subscriptions: List[Row]) -> float:
    """Sum of amounts of active subscriptions."""
    if not subscriptions:
        return 0.0
    df = pd.DataFrame(subscriptions)
    if "is_active" in df:
        df = df[df["is_active"].fillna(True).astype(bool)]
    return float(pd.to_numeric(df.get("amount", pd.Series(dtype=float)), errors="coerce").fillna(0).sum())
