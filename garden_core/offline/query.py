# =============================================================================
# garden_core/offline/query.py
# Row Filters with an Exact Local Equivalent
# =============================================================================
"""
RowFilter describes a remote query narrowing (equality, ranges, membership,
ordering) in a form that can be rendered two ways:

- onto a Supabase/PostgREST query builder (.eq/.gte/.lte/.in_/.order)
- as a pure predicate and sort over cached rows

Only predicates with an exact local counterpart are expressible, so the
offline fallback returns the same set the remote store would have.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

Row = Dict[str, Any]

SUPPORTED_OPS = ("eq", "gte", "lte", "in")


def _normalize(value: Any) -> Any:
    # Remote rows carry dates as ISO strings
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


@dataclass(frozen=True)
class Condition:
    column: str
    op: str
    value: Any

    def matches(self, row: Row) -> bool:
        actual = row.get(self.column)
        expected = self.value

        if self.op == "eq":
            return actual == expected
        if self.op == "in":
            return actual in expected
        if actual is None:
            return False
        try:
            if self.op == "gte":
                return actual >= expected
            if self.op == "lte":
                return actual <= expected
        except TypeError:
            return False
        raise ValueError(f"Unsupported filter operator: {self.op}")

    def render(self) -> str:
        return f"{self.column} {self.op} {self.value!r}"


@dataclass(frozen=True)
class Ordering:
    column: str
    descending: bool = False


@dataclass(frozen=True)
class RowFilter:
    """
    Immutable conjunction of conditions plus an ordering.

    Usage:
        week = RowFilter().eq("week_start_date", "2024-01-08").order_by("sort_order")
        week.matches(row)          # local predicate
        week.apply_to(query)       # Supabase builder
    """
    conditions: Tuple[Condition, ...] = field(default_factory=tuple)
    ordering: Tuple[Ordering, ...] = field(default_factory=tuple)

    # =========================================================================
    # BUILDERS
    # =========================================================================

    def _with(self, column: str, op: str, value: Any) -> RowFilter:
        return replace(self, conditions=self.conditions + (Condition(column, op, value),))

    def eq(self, column: str, value: Any) -> RowFilter:
        return self._with(column, "eq", _normalize(value))

    def gte(self, column: str, value: Any) -> RowFilter:
        return self._with(column, "gte", _normalize(value))

    def lte(self, column: str, value: Any) -> RowFilter:
        return self._with(column, "lte", _normalize(value))

    def in_(self, column: str, values: Iterable[Any]) -> RowFilter:
        return self._with(column, "in", tuple(_normalize(v) for v in values))

    def between(self, column: str, start: Any, end: Any) -> RowFilter:
        """Inclusive range, the same as gte(start) + lte(end)."""
        return self.gte(column, start).lte(column, end)

    def order_by(self, column: str, descending: bool = False) -> RowFilter:
        return replace(self, ordering=self.ordering + (Ordering(column, descending),))

    def without_ordering(self) -> RowFilter:
        return replace(self, ordering=())

    def merged(self, other: RowFilter) -> RowFilter:
        """Conditions of both filters; ordering from other if it has one."""
        return RowFilter(
            conditions=self.conditions + other.conditions,
            ordering=other.ordering or self.ordering,
        )

    @property
    def is_empty(self) -> bool:
        return not self.conditions

    # =========================================================================
    # LOCAL EVALUATION
    # =========================================================================

    def matches(self, row: Row) -> bool:
        return all(c.matches(row) for c in self.conditions)

    def sort(self, rows: Iterable[Row]) -> List[Row]:
        """
        Sort rows the way the remote store would.

        Nulls sort last ascending and first descending, as in Postgres.
        """
        result = list(rows)
        for order in reversed(self.ordering):
            result.sort(
                key=lambda r, col=order.column: (r.get(col) is None, r.get(col) if r.get(col) is not None else 0),
                reverse=order.descending,
            )
        return result

    def apply(self, rows: Iterable[Row]) -> List[Row]:
        """Filter then sort; the local stand-in for a remote list call."""
        return self.sort(r for r in rows if self.matches(r))

    # =========================================================================
    # REMOTE RENDERING
    # =========================================================================

    def apply_to(self, query: Any) -> Any:
        """
        Render onto a PostgREST query builder.

        Args:
            query: Builder returned by client.table(name).select(...)

        Returns:
            The narrowed builder
        """
        for c in self.conditions:
            if c.op == "eq":
                query = query.eq(c.column, c.value)
            elif c.op == "gte":
                query = query.gte(c.column, c.value)
            elif c.op == "lte":
                query = query.lte(c.column, c.value)
            elif c.op == "in":
                query = query.in_(c.column, list(c.value))
            else:
                raise ValueError(f"Unsupported filter operator: {c.op}")

        for order in self.ordering:
            query = query.order(order.column, desc=order.descending)

        return query

    def apply_conditions_to(self, query: Any) -> Any:
        """Render only the WHERE part (for update/delete builders)."""
        return self.without_ordering().apply_to(query)

    def describe(self) -> str:
        if not self.conditions:
            return "all rows"
        return " and ".join(c.render() for c in self.conditions)


def by_id(row_id: Any) -> RowFilter:
    return RowFilter().eq("id", row_id)
