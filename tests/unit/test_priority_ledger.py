# =============================================================================
# tests/unit/test_priority_ledger.py
# Unit Tests for the Priority-Week Ranking Ledger
# =============================================================================

import asyncio

import pytest

WEEK = "2024-01-08"
NEXT_WEEK = "2024-01-15"


def ranks(service, owner, week=WEEK):
    rows = asyncio.run(service.ledger.get_by_week(owner, week))
    return [(r["name"], r["rank_order"]) for r in rows]


@pytest.fixture
def abc(service, owner):
    """Priorities A, B and C, added to WEEK in that order"""
    created = {}
    for name in ("A", "B", "C"):
        row = asyncio.run(service.priorities.create(owner, {"name": name, "color": "#5b8a72"}))
        created[name] = row
        assert asyncio.run(service.ledger.add_to_week(owner, row["id"], WEEK)) is True
    return created


class TestRanking:
    """Dense 1..N ranks within a week"""

    def test_add_appends_with_dense_ranks(self, service, abc, owner):
        """Three additions rank 1, 2, 3"""
        assert ranks(service, owner) == [("A", 1), ("B", 2), ("C", 3)]

    def test_remove_closes_the_gap(self, service, abc, owner):
        """Scenario: removing B from A,B,C yields A:1, C:2"""
        assert asyncio.run(service.ledger.remove_from_week(owner, abc["B"]["id"], WEEK)) is True

        assert ranks(service, owner) == [("A", 1), ("C", 2)]

    def test_remove_keeps_the_priority(self, service, abc, owner):
        """Unassigning does not delete the priority itself"""
        asyncio.run(service.ledger.remove_from_week(owner, abc["B"]["id"], WEEK))

        names = [p["name"] for p in asyncio.run(service.priorities.get_all(owner))]
        assert "B" in names

    def test_reorder_partial_list_keeps_the_rest_after(self, service, abc, owner):
        """Listed priorities come first; unlisted keep their relative order"""
        assert asyncio.run(service.ledger.reorder(owner, WEEK, [abc["C"]["id"], abc["A"]["id"]])) is True

        assert ranks(service, owner) == [("C", 1), ("A", 2), ("B", 3)]

    def test_add_at_position(self, service, abc, owner):
        """A new priority can be inserted at the top"""
        d = asyncio.run(service.priorities.create(owner, {"name": "D"}))

        asyncio.run(service.ledger.add_to_week(owner, d["id"], WEEK, position=1))

        assert ranks(service, owner) == [("D", 1), ("A", 2), ("B", 3), ("C", 4)]

    def test_re_adding_moves_instead_of_duplicating(self, service, remote, abc, owner):
        """One join row per (priority, week)"""
        asyncio.run(service.ledger.add_to_week(owner, abc["A"]["id"], WEEK))

        assert ranks(service, owner) == [("B", 1), ("C", 2), ("A", 3)]
        assert len(remote.rows("priority_weeks")) == 3

    def test_normalize_repairs_gaps(self, service, remote, abc, owner):
        """Sparse ranks from elsewhere are rewritten to 1..N"""
        for link in remote.tables["priority_weeks"]:
            link["rank_order"] *= 10

        assert asyncio.run(service.ledger.normalize_week(owner, WEEK)) is True
        assert sorted(l["rank_order"] for l in remote.rows("priority_weeks")) == [1, 2, 3]

    def test_ranks_survive_any_sequence(self, service, remote, abc, owner):
        """After mixed operations, ranks are exactly 1..N"""
        ledger = service.ledger
        d = asyncio.run(service.priorities.create(owner, {"name": "D"}))
        asyncio.run(ledger.add_to_week(owner, d["id"], WEEK, position=2))
        asyncio.run(ledger.remove_from_week(owner, abc["A"]["id"], WEEK))
        asyncio.run(ledger.reorder(owner, WEEK, [abc["C"]["id"]]))
        asyncio.run(ledger.add_to_week(owner, abc["A"]["id"], WEEK, position=99))

        result = ranks(service, owner)
        assert [rank for _, rank in result] == list(range(1, len(result) + 1))
        assert sorted(name for name, _ in result) == ["A", "B", "C", "D"]

    def test_weeks_are_independent(self, service, abc, owner):
        """Ranking one week does not touch another"""
        asyncio.run(service.ledger.add_to_week(owner, abc["C"]["id"], NEXT_WEEK))
        asyncio.run(service.ledger.remove_from_week(owner, abc["A"]["id"], WEEK))

        assert ranks(service, owner, NEXT_WEEK) == [("C", 1)]


class TestAssignToWeek:
    """A single assignment leaves the week ranked 1..N"""

    def test_assign_to_top_shifts_the_rest_down(self, service, abc, owner):
        """C assigned rank 1 over A, B, C ranks C:1, A:2, B:3"""
        row = asyncio.run(service.ledger.assign_to_week(owner, abc["C"]["id"], WEEK, 1))

        assert row["rank_order"] == 1
        assert ranks(service, owner) == [("C", 1), ("A", 2), ("B", 3)]

    def test_assign_down_moves_past_later_rows(self, service, abc, owner):
        """A assigned rank 3 ends up last"""
        asyncio.run(service.ledger.assign_to_week(owner, abc["A"]["id"], WEEK, 3))

        assert ranks(service, owner) == [("B", 1), ("C", 2), ("A", 3)]

    def test_assignment_survives_a_later_normalize(self, service, abc, owner):
        """A full recompute does not undo the assignment"""
        asyncio.run(service.ledger.assign_to_week(owner, abc["C"]["id"], WEEK, 1))
        asyncio.run(service.ledger.normalize_week(owner, WEEK))

        assert ranks(service, owner)[0] == ("C", 1)

    def test_new_link_past_the_end_goes_last(self, service, remote, abc, owner):
        """A rank beyond N is clamped to N + 1"""
        d = asyncio.run(service.priorities.create(owner, {"name": "D"}))

        row = asyncio.run(service.ledger.assign_to_week(owner, d["id"], WEEK, 40))

        assert row["rank_order"] == 4
        assert ranks(service, owner) == [("A", 1), ("B", 2), ("C", 3), ("D", 4)]
        assert len(remote.rows("priority_weeks")) == 4

    def test_bare_assignments_keep_ranks_dense(self, service, abc, owner):
        """Any run of assign/remove calls leaves exactly 1..N"""
        ledger = service.ledger
        asyncio.run(ledger.assign_to_week(owner, abc["B"]["id"], WEEK, 1))
        asyncio.run(ledger.assign_to_week(owner, abc["A"]["id"], WEEK, 2))
        asyncio.run(ledger.remove_from_week(owner, abc["C"]["id"], WEEK))
        asyncio.run(ledger.assign_to_week(owner, abc["C"]["id"], WEEK, 2))

        assert ranks(service, owner) == [("B", 1), ("C", 2), ("A", 3)]

    def test_failed_assignment_returns_none(self, service, remote, abc, owner):
        """Remote failure leaves the ranks untouched"""
        remote.fail_all = True

        assert asyncio.run(service.ledger.assign_to_week(owner, abc["C"]["id"], WEEK, 1)) is None

        remote.fail_all = False
        assert ranks(service, owner) == [("A", 1), ("B", 2), ("C", 3)]


class TestReads:
    """Joined reads"""

    def test_orphaned_links_are_dropped(self, service, remote, abc, owner):
        """A join row whose priority is gone is silently skipped"""
        remote.seed("priority_weeks", [
            {"user_id": owner, "priority_id": "priorities-404", "week_start_date": WEEK, "rank_order": 0},
        ])

        assert ranks(service, owner) == [("A", 1), ("B", 2), ("C", 3)]

    def test_joined_rows_carry_link_data(self, service, abc, owner):
        """Priority fields plus rank_order, week_start_date and priority_week_id"""
        [first, *_] = asyncio.run(service.ledger.get_by_week(owner, "2024-01-10"))

        assert first["id"] == abc["A"]["id"]
        assert first["color"] == "#5b8a72"
        assert first["week_start_date"] == WEEK
        assert first["priority_week_id"].startswith("priority_weeks-")

    def test_weeks_with_priorities_groups_by_week(self, service, abc, owner):
        """One read for a range, keyed by week in order"""
        asyncio.run(service.ledger.add_to_week(owner, abc["B"]["id"], NEXT_WEEK))
        asyncio.run(service.ledger.add_to_week(owner, abc["C"]["id"], "2024-02-05"))

        result = asyncio.run(service.ledger.get_weeks_with_priorities(owner, "2024-01-10", "2024-01-21"))

        assert list(result) == [WEEK, NEXT_WEEK]
        assert [p["name"] for p in result[WEEK]] == ["A", "B", "C"]
        assert [(p["name"], p["rank_order"]) for p in result[NEXT_WEEK]] == [("B", 1)]

    def test_offline_read_matches_online(self, service, remote, abc, owner):
        """The joined week is answered from the cache when the remote is down"""
        online = ranks(service, owner)
        remote.fail_all = True

        assert ranks(service, owner) == online


class TestDeletePriority:
    """Deleting a priority cascades to its week rows"""

    def test_cascade_and_renormalize(self, service, remote, abc, owner):
        """Join rows go, and every affected week is dense again"""
        asyncio.run(service.ledger.add_to_week(owner, abc["A"]["id"], NEXT_WEEK))
        asyncio.run(service.ledger.add_to_week(owner, abc["B"]["id"], NEXT_WEEK))

        assert asyncio.run(service.ledger.delete_priority(owner, abc["A"]["id"])) is True

        assert ranks(service, owner) == [("B", 1), ("C", 2)]
        assert ranks(service, owner, NEXT_WEEK) == [("B", 1)]
        assert all(l["priority_id"] != abc["A"]["id"] for l in remote.rows("priority_weeks"))
        assert all(p["id"] != abc["A"]["id"] for p in remote.rows("priorities"))

    def test_failed_cascade_keeps_priority(self, service, remote, abc, owner):
        """If the join rows cannot be deleted the priority stays"""
        remote.fail_ops.add("delete")

        assert asyncio.run(service.ledger.delete_priority(owner, abc["A"]["id"])) is False
        assert len(remote.rows("priorities")) == 3
