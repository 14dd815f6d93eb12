# =============================================================================
# garden_core/priorities/ledger.py
# Priority-Week Ranking Ledger
# =============================================================================
"""
PriorityWeekLedger - ranks priorities within a week.

assign_to_week() places one priority at a rank and closes the rest of the
week up around it, so the week is always ranked exactly 1..N afterwards.
Adding and reordering build on the same upsert and finish with one dense
rewrite of the week. Reads join the week rows to their priorities and
silently drop rows whose priority no longer exists.
"""

from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Sequence

from garden_core.logging import LogContext, get_logger
from garden_core.offline.query import RowFilter
from garden_core.priorities.repository import PriorityRepository, PriorityWeekRepository
from garden_core.weeks import DateLike, week_key

logger = get_logger(__name__)

Row = Dict[str, Any]


def _by_rank(link: Row) -> tuple:
    rank = link.get("rank_order")
    return (rank is None, rank if rank is not None else 0, link.get("created_at") or "")


class PriorityWeekLedger:
    """
    Args:
        priorities: Priority repository (also performs the delete cascade)
        weeks: Priority-week join repository
    """

    def __init__(self, priorities: PriorityRepository, weeks: PriorityWeekRepository):
        self.priorities = priorities
        self.weeks = weeks

    # =========================================================================
    # READS
    # =========================================================================

    async def _join(self, owner: str, links: List[Row]) -> List[Row]:
        """Attach rank data to live priorities, skipping orphaned links."""
        if not links:
            return []

        ids = list(dict.fromkeys(link["priority_id"] for link in links))
        found = await self.priorities.get_by_filter(owner, RowFilter().in_("id", ids))
        by_id = {p["id"]: p for p in found}

        joined = []
        for link in sorted(links, key=_by_rank):
            priority = by_id.get(link["priority_id"])
            if priority is None:
                logger.debug(f"Dropping orphaned priority week row {link.get('id')}")
                continue
            joined.append({
                **priority,
                "rank_order": link["rank_order"],
                "week_start_date": link["week_start_date"],
                "priority_week_id": link.get("id"),
            })
        return joined

    async def get_by_week(self, owner: str, week: DateLike) -> List[Row]:
        """
        Priorities assigned to a week, most important first.

        Returns:
            Priority rows with rank_order, week_start_date and
            priority_week_id added
        """
        links = await self.weeks.get_by_filter(owner, PriorityWeekRepository.week_filter(week))
        return await self._join(owner, links)

    async def get_weeks_with_priorities(
        self,
        owner: str,
        start: DateLike,
        end: DateLike,
    ) -> Dict[str, List[Row]]:
        """
        Ranked priorities for every week between start and end, in one read.

        Args:
            owner: Owner principal
            start: Any date in the first week
            end: Last date (inclusive) a week may start on

        Returns:
            Mapping of week_start_date -> ranked priorities, in week order.
            Weeks with nothing assigned are absent.
        """
        links = await self.weeks.get_by_filter(owner, PriorityWeekRepository.range_filter(start, end))
        joined = await self._join(owner, links)

        grouped: Dict[str, List[Row]] = {}
        for row in joined:
            grouped.setdefault(row["week_start_date"], []).append(row)

        return {week: grouped[week] for week in sorted(grouped)}

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def _upsert_rank(self, owner: str, priority_id: Any, week: str, rank: int) -> Optional[Row]:
        return await self.weeks.upsert_where(
            owner, PriorityWeekRepository.link_filter(priority_id, week), {"rank_order": int(rank)}
        )

    async def _write_order(self, owner: str, ordered: List[Row]) -> bool:
        """Give ordered links ranks 1..N, writing only the ones that change."""
        ok = True
        for rank, link in enumerate(ordered, start=1):
            if link.get("rank_order") == rank:
                continue
            if await self.weeks.update(owner, link["id"], {"rank_order": rank}) is None:
                ok = False
        return ok

    async def assign_to_week(
        self,
        owner: str,
        priority_id: Any,
        week: DateLike,
        rank: int,
    ) -> Optional[Row]:
        """
        Place a priority at a 1-based rank in a week, creating the link if needed.

        The rest of the week keeps its relative order around it and the
        week is left ranked 1..N. A rank past the end places it last.

        Returns:
            The stored join row with its final rank, or None on failure
        """
        week = week_key(week)
        row = await self._upsert_rank(owner, priority_id, week, rank)
        if row is None:
            return None

        if not await self.normalize_week(owner, week, pinned=priority_id, pinned_rank=rank):
            logger.warning(f"Ranks for {week} could not be fully rewritten after assigning {priority_id}")

        link = await self.weeks.get_by_filter(owner, PriorityWeekRepository.link_filter(priority_id, week))
        return link[0] if link else row

    async def normalize_week(
        self,
        owner: str,
        week: DateLike,
        pinned: Any = None,
        pinned_rank: Optional[int] = None,
    ) -> bool:
        """
        Rewrite a week's ranks to 1..N, keeping their current relative order.

        Args:
            owner: Owner principal
            week: Any date in the week
            pinned: priority_id that must end up at pinned_rank; the other
                rows close up around it
            pinned_rank: 1-based target rank for pinned

        Returns:
            True if every rank that needed changing was written
        """
        week = week_key(week)
        links = await self.weeks.get_by_filter(owner, PriorityWeekRepository.week_filter(week))

        ordered = sorted((link for link in links if link["priority_id"] != pinned), key=_by_rank)
        if pinned is not None:
            held = [link for link in links if link["priority_id"] == pinned]
            target = len(ordered) if pinned_rank is None else pinned_rank - 1
            index = max(0, min(target, len(ordered)))
            ordered[index:index] = held

        with LogContext(logger, f"Normalizing priority ranks for {week}", level=logging.DEBUG):
            return await self._write_order(owner, ordered)

    async def reorder(self, owner: str, week: DateLike, priority_ids: Sequence[Any]) -> bool:
        """
        Rank priority_ids 1..N in the given order.

        Priorities already in the week but missing from priority_ids keep
        their relative order after the listed ones.
        """
        week = week_key(week)
        ok = True
        for rank, priority_id in enumerate(priority_ids, start=1):
            if await self._upsert_rank(owner, priority_id, week, rank) is None:
                ok = False
        if not ok:
            await self.normalize_week(owner, week)
            return False

        current = await self.weeks.get_by_filter(owner, PriorityWeekRepository.week_filter(week))
        by_priority = {link["priority_id"]: link for link in current}
        listed = [by_priority[pid] for pid in dict.fromkeys(priority_ids) if pid in by_priority]
        trailing = sorted(
            (link for link in current if link["priority_id"] not in set(priority_ids)), key=_by_rank
        )
        return await self._write_order(owner, listed + trailing)

    async def add_to_week(
        self,
        owner: str,
        priority_id: Any,
        week: DateLike,
        position: Optional[int] = None,
    ) -> bool:
        """
        Place a priority in a week at a 1-based position (default: last).
        """
        current = await self.get_by_week(owner, week)
        ids = [p["id"] for p in current if p["id"] != priority_id]
        index = len(ids) if position is None else max(0, min(position - 1, len(ids)))
        ids.insert(index, priority_id)
        return await self.reorder(owner, week, ids)

    async def remove_from_week(self, owner: str, priority_id: Any, week: DateLike) -> bool:
        """
        Unassign a priority from a week and close the gap in ranks.

        The priority itself is not touched.
        """
        removed = await self.weeks.delete_where(owner, PriorityWeekRepository.link_filter(priority_id, week))
        if removed:
            await self.normalize_week(owner, week)
        return removed

    async def delete_priority(self, owner: str, priority_id: Any) -> bool:
        """
        Delete a priority and its week rows, then re-densify the weeks it was in.
        """
        links = await self.weeks.get_by_filter(owner, PriorityWeekRepository.priority_filter(priority_id))
        affected = sorted({link["week_start_date"] for link in links})

        if not await self.priorities.delete(owner, priority_id):
            return False

        for week in affected:
            await self.normalize_week(owner, week)
        return True
