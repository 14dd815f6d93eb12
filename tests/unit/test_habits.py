# =============================================================================
# tests/unit/test_habits.py
# Unit Tests for Habits, Completions and the Weekly Recurrence Propagator
# =============================================================================

import asyncio
from datetime import date

import pytest

from garden_core.weeks import previous_week, week_key, week_start

LAST_WEEK = "2024-01-01"
THIS_WEEK = "2024-01-08"


@pytest.fixture
def seeded(remote, owner):
    """Two habits in the week of 2024-01-01"""
    return remote.seed("habits", [
        {"user_id": owner, "name": "Meditate", "color": "#a3c4bc", "sort_order": 0, "week_start_date": LAST_WEEK},
        {"user_id": owner, "name": "Read", "color": "#e8a87c", "sort_order": 1, "week_start_date": LAST_WEEK},
    ])


class TestWeeks:
    """Monday-start week arithmetic"""

    def test_week_start_is_monday(self):
        """Any day of the week maps to its Monday"""
        assert week_start("2024-01-14") == date(2024, 1, 8)
        assert week_start(date(2024, 1, 8)) == date(2024, 1, 8)

    def test_previous_week(self):
        """Seven days before the Monday"""
        assert previous_week("2024-01-10") == date(2024, 1, 1)

    def test_week_key_accepts_timestamps(self):
        """Timestamps are truncated to their date"""
        assert week_key("2024-01-03T22:15:00") == LAST_WEEK


class TestWeeklyRecurrencePropagator:
    """Copy-forward of last week's habits on first view"""

    def test_copies_previous_week(self, service, remote, seeded, owner):
        """Scenario: empty target week is filled from the week before"""
        rows = asyncio.run(service.propagator.ensure_week(owner, THIS_WEEK))

        assert sorted(r["name"] for r in rows) == ["Meditate", "Read"]
        assert all(r["week_start_date"] == THIS_WEEK for r in rows)
        assert {r["id"] for r in rows}.isdisjoint({r["id"] for r in seeded})
        assert {r["name"]: r["color"] for r in rows} == {"Meditate": "#a3c4bc", "Read": "#e8a87c"}

    def test_accepts_any_day_in_week(self, service, seeded, owner):
        """A mid-week date resolves to the week's Monday"""
        rows = asyncio.run(service.propagator.ensure_week(owner, "2024-01-11"))
        assert {r["week_start_date"] for r in rows} == {THIS_WEEK}

    def test_concurrent_calls_copy_once(self, service, remote, seeded, owner):
        """Two simultaneous first views produce one set of copies"""
        async def scenario():
            return await asyncio.gather(
                service.propagator.ensure_week(owner, THIS_WEEK),
                service.propagator.ensure_week(owner, THIS_WEEK),
            )

        first, second = asyncio.run(scenario())

        target = [h for h in remote.rows("habits") if h["week_start_date"] == THIS_WEEK]
        assert len(target) == 2
        assert sorted(r["id"] for r in first) == sorted(r["id"] for r in second)

    def test_populated_week_is_returned_as_is(self, service, remote, seeded, owner):
        """No copy when the target already has rows"""
        remote.seed("habits", [{"user_id": owner, "name": "Run", "sort_order": 0, "week_start_date": THIS_WEEK}])

        rows = asyncio.run(service.propagator.ensure_week(owner, THIS_WEEK))

        assert [r["name"] for r in rows] == ["Run"]
        assert ("rpc", "copy_habits_to_week") not in remote.calls

    def test_repeat_call_is_idempotent(self, service, remote, seeded, owner):
        """A second call after the copy adds nothing"""
        asyncio.run(service.propagator.ensure_week(owner, THIS_WEEK))
        asyncio.run(service.propagator.ensure_week(owner, THIS_WEEK))

        assert len(remote.rows("habits")) == 4

    def test_no_ancestry_returns_empty(self, service, remote, owner):
        """A first-ever week is empty, and nothing is copied"""
        assert asyncio.run(service.propagator.ensure_week(owner, THIS_WEEK)) == []
        assert remote.rows("habits") == []

    def test_only_copies_own_habits(self, service, remote, seeded, owner):
        """Another owner's history is never carried forward"""
        rows = asyncio.run(service.propagator.ensure_week("user-2", THIS_WEEK))

        assert rows == []
        assert all(h["user_id"] == owner for h in remote.rows("habits"))

    def test_offline_returns_cached_week(self, service, remote, seeded, owner):
        """With the remote down the cached rows for the week are returned"""
        online = asyncio.run(service.propagator.ensure_week(owner, THIS_WEEK))
        remote.fail_all = True

        offline = asyncio.run(service.propagator.ensure_week(owner, THIS_WEEK))

        assert sorted(r["id"] for r in offline) == sorted(r["id"] for r in online)

    def test_failed_copy_returns_empty(self, service, remote, seeded, owner):
        """Procedure failure degrades to an empty week"""
        remote.fail_ops.add("rpc")

        assert asyncio.run(service.propagator.ensure_week(owner, THIS_WEEK)) == []


class TestHabitRepository:
    """Week-scoped habit rows"""

    def test_get_by_week_orders_by_sort_order(self, service, remote, owner):
        """Rows come back in sort_order"""
        remote.seed("habits", [
            {"user_id": owner, "name": "B", "sort_order": 2, "week_start_date": THIS_WEEK},
            {"user_id": owner, "name": "A", "sort_order": 1, "week_start_date": THIS_WEEK},
            {"user_id": owner, "name": "X", "sort_order": 0, "week_start_date": LAST_WEEK},
        ])

        rows = asyncio.run(service.habits.get_by_week(owner, THIS_WEEK))

        assert [r["name"] for r in rows] == ["A", "B"]

    def test_deleting_one_week_keeps_the_family(self, service, remote, seeded, owner):
        """Each week's row has its own id"""
        copies = asyncio.run(service.propagator.ensure_week(owner, THIS_WEEK))
        meditate = next(r for r in copies if r["name"] == "Meditate")

        assert asyncio.run(service.habits.delete(owner, meditate["id"])) is True
        names_last_week = [r["name"] for r in asyncio.run(service.habits.get_by_week(owner, LAST_WEEK))]
        assert "Meditate" in names_last_week

    def test_copy_to_week_failure_is_zero(self, service, remote, seeded, owner):
        """Remote failure reports nothing copied"""
        remote.fail_all = True
        assert asyncio.run(service.habits.copy_to_week(owner, LAST_WEEK, THIS_WEEK)) == 0


class TestHabitCompletions:
    """Sparse completion rows"""

    def test_toggle_creates_then_removes(self, service, remote, seeded, owner):
        """First toggle completes, second un-completes"""
        habit_id = seeded[0]["id"]

        assert asyncio.run(service.habit_completions.toggle(owner, habit_id, "2024-01-02")) is True
        assert len(remote.rows("habit_completions")) == 1

        assert asyncio.run(service.habit_completions.toggle(owner, habit_id, date(2024, 1, 2))) is False
        assert remote.rows("habit_completions") == []

    def test_toggle_failure_is_none(self, service, remote, seeded, owner):
        """A failed toggle is distinguishable from 'not completed'"""
        remote.fail_all = True
        assert asyncio.run(service.habit_completions.toggle(owner, seeded[0]["id"], "2024-01-02")) is None

    def test_get_by_date_range(self, service, remote, seeded, owner):
        """Completions inside the range, oldest first"""
        habit_id = seeded[0]["id"]
        for day in ("2024-01-07", "2024-01-02", "2024-01-03"):
            asyncio.run(service.habit_completions.toggle(owner, habit_id, day))

        rows = asyncio.run(service.habit_completions.get_by_date_range(owner, "2024-01-01", "2024-01-05"))

        assert [r["date"] for r in rows] == ["2024-01-02", "2024-01-03"]


class TestHabitReminders:
    """One reminder note per week"""

    def test_upsert_creates_then_updates(self, service, remote, owner):
        """The same week never gets two rows"""
        first = asyncio.run(service.habit_reminders.upsert(owner, "2024-01-10", "Drink water"))
        second = asyncio.run(service.habit_reminders.upsert(owner, THIS_WEEK, "Sleep early"))

        assert first["id"] == second["id"]
        assert second["week_start_date"] == THIS_WEEK
        assert len(remote.rows("habit_reminders")) == 1
        assert asyncio.run(service.habit_reminders.get_by_week(owner, THIS_WEEK))["content"] == "Sleep early"

    def test_missing_week_is_none(self, service, owner):
        """No reminder row -> None"""
        assert asyncio.run(service.habit_reminders.get_by_week(owner, THIS_WEEK)) is None
