# =============================================================================
# tests/unit/test_entities.py
# Unit Tests for Entity-Specific Repository Behaviour
# =============================================================================

import asyncio

from garden_core.offline.entities import ENTITY_SPECS


class TestEntityCatalogue:
    """Every entity has its own cache partition"""

    def test_names_are_unique_and_tables_known(self):
        """One EntitySpec per table"""
        assert len({spec.table for spec in ENTITY_SPECS.values()}) == len(ENTITY_SPECS)
        assert {"meals", "expenses", "habits", "priority_weeks", "notification_settings"} <= set(ENTITY_SPECS)

    def test_repositories_share_a_store_without_collisions(self, service, store, owner):
        """Writes to one entity never show up under another"""
        asyncio.run(service.meals.create(owner, {"name": "Soup", "date": "2024-01-02"}))
        asyncio.run(service.notes.create(owner, {"content": "hi", "entity_type": "meal", "entity_id": "m1"}))

        assert [r["name"] for r in service.meals.cached(owner)] == ["Soup"]
        assert [r["content"] for r in service.notes.cached(owner)] == ["hi"]
        assert len(store.keys()) == 2


class TestFilteredEntities:
    """Entity-specific filtered reads"""

    def test_reflections_by_type(self, service, remote, owner):
        """Only the requested type, newest first"""
        remote.seed("reflections", [
            {"user_id": owner, "type": "gratitude", "content": "sun", "date": "2024-01-01"},
            {"user_id": owner, "type": "weekly", "content": "ok week", "date": "2024-01-07"},
            {"user_id": owner, "type": "gratitude", "content": "tea", "date": "2024-01-03"},
        ])

        rows = asyncio.run(service.reflections.get_by_type(owner, "gratitude"))

        assert [r["content"] for r in rows] == ["tea", "sun"]

    def test_notes_by_entity(self, service, remote, owner):
        """Notes are matched on entity type and id"""
        remote.seed("notes", [
            {"user_id": owner, "entity_type": "meal", "entity_id": "m1", "content": "spicy"},
            {"user_id": owner, "entity_type": "meal", "entity_id": "m2", "content": "bland"},
            {"user_id": owner, "entity_type": "expense", "entity_id": "m1", "content": "split"},
        ])

        rows = asyncio.run(service.notes.get_by_entity(owner, "meal", "m1"))

        assert [r["content"] for r in rows] == ["spicy"]

    def test_active_subscriptions(self, service, remote, owner):
        """Inactive subscriptions are filtered out, by billing day"""
        remote.seed("subscriptions", [
            {"user_id": owner, "name": "Music", "amount": 10, "billing_day": 15, "is_active": True},
            {"user_id": owner, "name": "Gym", "amount": 30, "billing_day": 1, "is_active": True},
            {"user_id": owner, "name": "Old", "amount": 5, "billing_day": 3, "is_active": False},
        ])

        rows = asyncio.run(service.subscriptions.get_active(owner))

        assert [r["name"] for r in rows] == ["Gym", "Music"]

    def test_meals_by_date_range(self, service, remote, owner):
        """Inclusive range, oldest first"""
        remote.seed("meals", [
            {"user_id": owner, "name": "Oats", "date": "2024-01-01"},
            {"user_id": owner, "name": "Curry", "date": "2024-01-03"},
            {"user_id": owner, "name": "Pasta", "date": "2024-01-05"},
        ])

        rows = asyncio.run(service.meals.get_by_date_range(owner, "2024-01-01", "2024-01-03"))

        assert [r["name"] for r in rows] == ["Oats", "Curry"]


class TestStretching:
    """Routines own their exercises"""

    def test_delete_routine_cascades(self, service, remote, owner):
        """Exercises of the routine go first, then the routine"""
        routine = asyncio.run(service.stretching_routines.create(owner, {"name": "Morning"}))
        for index, name in enumerate(["Neck roll", "Hamstring"]):
            asyncio.run(service.stretching_exercises.create(
                owner, {"routine_id": routine["id"], "name": name, "order_index": index},
            ))
        remote.seed("stretching_exercises", [{"routine_id": "other", "name": "Calf", "order_index": 0}])

        assert asyncio.run(service.stretching_routines.delete(owner, routine["id"])) is True

        assert remote.rows("stretching_routines") == []
        assert [e["name"] for e in remote.rows("stretching_exercises")] == ["Calf"]

    def test_exercises_in_order(self, service, remote, owner):
        """get_by_routine follows order_index"""
        remote.seed("stretching_exercises", [
            {"routine_id": "r1", "name": "B", "order_index": 1},
            {"routine_id": "r1", "name": "A", "order_index": 0},
        ])

        rows = asyncio.run(service.stretching_exercises.get_by_routine(owner, "r1"))

        assert [r["name"] for r in rows] == ["A", "B"]

    def test_failed_cascade_keeps_routine(self, service, remote, owner):
        """If exercises cannot be removed the routine stays"""
        routine = asyncio.run(service.stretching_routines.create(owner, {"name": "Evening"}))
        remote.fail_ops.add("delete")

        assert asyncio.run(service.stretching_routines.delete(owner, routine["id"])) is False
        assert len(remote.rows("stretching_routines")) == 1


class TestUserSettings:
    """Key/value settings and meal options"""

    def test_upsert_setting_keeps_one_row(self, service, remote, owner):
        """Writing a key twice updates in place"""
        settings = service.user_settings
        assert asyncio.run(settings.upsert_setting(owner, "theme", "forest")) is True
        assert asyncio.run(settings.upsert_setting(owner, "theme", "meadow")) is True

        assert asyncio.run(settings.get_setting(owner, "theme")) == "meadow"
        assert len(remote.rows("user_settings")) == 1
        assert [r["setting_value"] for r in settings.cached(owner)] == ["meadow"]

    def test_missing_setting_is_none(self, service, owner):
        """Unknown keys read as None"""
        assert asyncio.run(service.user_settings.get_setting(owner, "nothing")) is None

    def test_meal_options_round_trip(self, service, owner):
        """Blank options are dropped"""
        settings = service.user_settings
        assert asyncio.run(settings.save_meal_options(owner, ["Soup", "  ", "Salad "])) is True

        assert asyncio.run(settings.get_meal_options(owner)) == ["Soup", "Salad"]

    def test_invalid_meal_options_read_as_empty(self, service, remote, owner):
        """Corrupt stored JSON is ignored"""
        remote.seed("user_settings", [
            {"user_id": owner, "setting_key": "meal_options_list", "setting_value": "{not json"},
        ])

        assert asyncio.run(service.user_settings.get_meal_options(owner)) == []

    def test_failed_upsert(self, service, remote, owner):
        """Remote failure leaves the cache alone"""
        remote.fail_all = True

        assert asyncio.run(service.user_settings.upsert_setting(owner, "theme", "forest")) is False
        assert service.user_settings.cached(owner) == []
