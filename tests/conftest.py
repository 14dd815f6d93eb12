# =============================================================================
# tests/conftest.py
# Pytest Configuration, Fakes and Fixtures
# =============================================================================

import asyncio
import copy
import itertools
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Set, Tuple

import pytest

from garden_core.errors import RemoteStoreError
from garden_core.notifications.backend import TriggerBackend
from garden_core.notifications.weekdays import ReminderTime
from garden_core.offline.local_store import KeyedLocalStore
from garden_core.offline.query import RowFilter
from garden_core.offline.remote_store import RemoteStore
from garden_core.services.data_service import GardenDataService

Row = Dict[str, Any]

OWNER = "user-1"
OTHER_OWNER = "user-2"


# =============================================================================
# FAKE REMOTE STORE
# =============================================================================

class InMemoryRemoteStore(RemoteStore):
    """
    RemoteStore kept in dicts, with switches for failures, hangs and gates.

    - fail_all / fail_ops make calls raise RemoteStoreError
    - hang_ops make calls block forever (exercises the timeout)
    - gates[(op, table)] makes the next such call take its snapshot, then
      wait for the event before returning (a slow, stale read)
    """

    UNIQUE = {
        "habits": ("user_id", "week_start_date", "name"),
        "habit_completions": ("habit_id", "date"),
        "priority_weeks": ("priority_id", "week_start_date", "user_id"),
        "user_settings": ("user_id", "setting_key"),
    }

    def __init__(self):
        self.tables: Dict[str, List[Row]] = defaultdict(list)
        self.fail_all = False
        self.fail_ops: Set[str] = set()
        self.hang_ops: Set[str] = set()
        self.gates: Dict[Tuple[str, str], asyncio.Event] = {}
        self.calls: List[Tuple[str, str]] = []
        self._ids = itertools.count(1)
        self._clock = datetime(2024, 1, 1, 8, 0, 0)

    # -------------------------------------------------------------------------
    # helpers
    # -------------------------------------------------------------------------

    def _stamp(self) -> str:
        self._clock += timedelta(seconds=1)
        return self._clock.isoformat()

    def _new_id(self, table: str) -> str:
        return f"{table}-{next(self._ids)}"

    def seed(self, table: str, rows: List[Row]) -> List[Row]:
        stored = []
        for fields in rows:
            row = dict(fields)
            row.setdefault("id", self._new_id(table))
            row.setdefault("created_at", self._stamp())
            row.setdefault("updated_at", row["created_at"])
            self.tables[table].append(row)
            stored.append(copy.deepcopy(row))
        return stored

    def rows(self, table: str) -> List[Row]:
        return copy.deepcopy(self.tables[table])

    async def _enter(self, op: str, table: str) -> None:
        self.calls.append((op, table))
        await asyncio.sleep(0)
        if self.fail_all or op in self.fail_ops:
            raise RemoteStoreError(f"Simulated {op} failure", table=table, operation=op)
        if op in self.hang_ops:
            await asyncio.Event().wait()

    async def _gate(self, op: str, table: str) -> None:
        gate = self.gates.pop((op, table), None)
        if gate is not None:
            await gate.wait()

    def _check_unique(self, table: str, row: Row, ignore_id: Optional[str] = None) -> None:
        columns = self.UNIQUE.get(table)
        if not columns:
            return
        key = tuple(row.get(c) for c in columns)
        for existing in self.tables[table]:
            if existing["id"] != ignore_id and tuple(existing.get(c) for c in columns) == key:
                raise RemoteStoreError("duplicate key value violates unique constraint", table=table)

    # -------------------------------------------------------------------------
    # RemoteStore
    # -------------------------------------------------------------------------

    async def list(self, table: str, row_filter: RowFilter) -> List[Row]:
        await self._enter("list", table)
        snapshot = copy.deepcopy(row_filter.apply(self.tables[table]))
        await self._gate("list", table)
        return snapshot

    async def get(self, table: str, row_filter: RowFilter) -> Optional[Row]:
        await self._enter("get", table)
        found = row_filter.apply(self.tables[table])
        return copy.deepcopy(found[0]) if found else None

    async def insert(self, table: str, fields: Row) -> Row:
        await self._enter("insert", table)
        row = dict(fields)
        row["id"] = self._new_id(table)
        row["created_at"] = row["updated_at"] = self._stamp()
        self._check_unique(table, row)
        self.tables[table].append(row)
        return copy.deepcopy(row)

    async def update(self, table: str, row_filter: RowFilter, fields: Row) -> List[Row]:
        await self._enter("update", table)
        updated = []
        for row in self.tables[table]:
            if row_filter.matches(row):
                self._check_unique(table, {**row, **fields}, ignore_id=row["id"])
                row.update(fields)
                row["updated_at"] = self._stamp()
                updated.append(copy.deepcopy(row))
        return updated

    async def delete(self, table: str, row_filter: RowFilter) -> List[Row]:
        await self._enter("delete", table)
        removed = [r for r in self.tables[table] if row_filter.matches(r)]
        self.tables[table] = [r for r in self.tables[table] if not row_filter.matches(r)]
        return copy.deepcopy(removed)

    async def rpc(self, name: str, params: Dict[str, Any]) -> Any:
        await self._enter("rpc", name)
        if name == "copy_habits_to_week":
            return self._copy_habits(params)
        if name == "upsert_user_setting":
            return self._upsert_setting(params)
        raise RemoteStoreError(f"Unknown procedure {name}", table=name, operation="rpc")

    def _copy_habits(self, params: Dict[str, Any]) -> int:
        # No await inside: runs as one atomic step, like the locked procedure
        owner = params["p_user_id"]
        target = params["p_target_week_start"]
        source = params["p_source_week_start"]
        habits = self.tables["habits"]
        if any(h["user_id"] == owner and h["week_start_date"] == target for h in habits):
            return 0
        copied = 0
        for habit in [h for h in habits if h["user_id"] == owner and h["week_start_date"] == source]:
            clone = {k: v for k, v in habit.items() if k not in ("id", "created_at", "updated_at")}
            clone.update(
                week_start_date=target,
                id=self._new_id("habits"),
                created_at=self._stamp(),
            )
            clone["updated_at"] = clone["created_at"]
            habits.append(clone)
            copied += 1
        return copied

    def _upsert_setting(self, params: Dict[str, Any]) -> Row:
        rows = self.tables["user_settings"]
        for row in rows:
            if row["user_id"] == params["p_user_id"] and row["setting_key"] == params["p_setting_key"]:
                row["setting_value"] = params["p_setting_value"]
                row["updated_at"] = self._stamp()
                return copy.deepcopy(row)
        return self.seed("user_settings", [{
            "user_id": params["p_user_id"],
            "setting_key": params["p_setting_key"],
            "setting_value": params["p_setting_value"],
        }])[0]


# =============================================================================
# FAKE TRIGGER BACKEND
# =============================================================================

class RecordingTriggerBackend(TriggerBackend):
    """Keeps live triggers in a dict and records every call."""

    def __init__(self):
        self.triggers: Dict[str, Dict[str, Any]] = {}
        self.log: List[Tuple[str, str]] = []

    async def schedule_daily(self, trigger_id: str, at: ReminderTime, payload: Dict[str, Any]) -> None:
        self.log.append(("daily", trigger_id))
        self.triggers[trigger_id] = {"kind": "daily", "at": str(at), "payload": payload}

    async def schedule_weekly(self, trigger_id: str, weekday: int, at: ReminderTime, payload: Dict[str, Any]) -> None:
        self.log.append(("weekly", trigger_id))
        self.triggers[trigger_id] = {"kind": "weekly", "weekday": weekday, "at": str(at), "payload": payload}

    async def cancel(self, trigger_id: str) -> None:
        self.log.append(("cancel", trigger_id))
        self.triggers.pop(trigger_id, None)

    async def list_scheduled(self) -> List[str]:
        return list(self.triggers)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def owner():
    """The authenticated principal used by most tests"""
    return OWNER


@pytest.fixture
def store(tmp_path):
    """Local cache in a temporary SQLite file"""
    local = KeyedLocalStore(tmp_path / "garden.db")
    yield local
    local.close()


@pytest.fixture
def remote():
    """Empty in-memory remote store"""
    return InMemoryRemoteStore()


@pytest.fixture
def trigger_backend():
    """Trigger backend that records schedules in memory"""
    return RecordingTriggerBackend()


@pytest.fixture
def service(store, remote, trigger_backend):
    """Fully wired data service over the fakes"""
    return GardenDataService(store, remote, trigger_backend, timeout_seconds=0.5)
