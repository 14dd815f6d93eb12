# =============================================================================
# garden_core/offline/repository.py
# Generic Cache-Aside Entity Repository
# =============================================================================
"""
EntityRepository - one implementation of the cache-aside pattern, configured
per entity type by an EntitySpec.

Reads:  remote first, refresh the local cache, fall back to the cache on any
        failure (fail-open-to-stale). Reads never raise.
Writes: remote first, then patch the cached row by id. Failures come back
        as None / False. No optimistic local-only rows are created.

Every call takes the owner principal explicitly. A blank owner is an
authorization failure and is handled like any other failed remote call.
"""

from __future__ import annotations
import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from garden_core.errors import AuthorizationError, LocalStoreError, RemoteStoreError, RemoteTimeoutError
from garden_core.logging import get_logger
from garden_core.offline.local_store import KeyedLocalStore
from garden_core.offline.query import RowFilter, by_id
from garden_core.offline.remote_store import RemoteStore

logger = get_logger(__name__)

Row = Dict[str, Any]
T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 5.0

# A list refresh that loses a race with a write is retried this many times
REFRESH_ATTEMPTS = 2


@dataclass(frozen=True)
class EntitySpec:
    """
    Static description of one entity type.

    Attributes:
        name: Cache key suffix, e.g. "meals" -> "@garden/<owner>/meals"
        table: Remote table name
        order_column: Column used to order get_all() results
        descending: Whether get_all() is newest-first
        prepend: New rows go to the front of the cached list (else the back)
        owner_column: Column holding the owner, or None when the table is
            scoped through a parent row (e.g. habit_completions)
    """
    name: str
    table: str
    order_column: str = "created_at"
    descending: bool = False
    prepend: bool = False
    owner_column: Optional[str] = "user_id"

    @property
    def default_filter(self) -> RowFilter:
        return RowFilter().order_by(self.order_column, descending=self.descending)


class EntityRepository:
    """
    Cache-aside repository for one entity type.

    Args:
        spec: Entity configuration
        store: Local cache
        remote: Authoritative store; None runs cache-only (every remote call fails)
        timeout_seconds: Budget for each remote call
    """

    def __init__(
        self,
        spec: EntitySpec,
        store: KeyedLocalStore,
        remote: Optional[RemoteStore],
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.spec = spec
        self.store = store
        self.remote = remote
        self.timeout_seconds = timeout_seconds

    @property
    def table(self) -> str:
        return self.spec.table

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def cache_key(self, owner: str) -> str:
        return self.store.key_for(f"{owner}/{self.spec.name}")

    def cached(self, owner: str) -> List[Row]:
        """Current cache contents for owner, without touching the remote store."""
        return self.store.get(self.cache_key(owner))

    @staticmethod
    def check_owner(owner: Optional[str]) -> str:
        if owner is None or not str(owner).strip():
            raise AuthorizationError("No authenticated owner for this request", owner=owner)
        return str(owner)

    def scoped(self, owner: str, row_filter: Optional[RowFilter] = None) -> RowFilter:
        """row_filter narrowed to owner's rows (when the table has an owner column)."""
        self.check_owner(owner)
        base = RowFilter()
        if self.spec.owner_column:
            base = base.eq(self.spec.owner_column, owner)
        return base.merged(row_filter or self.spec.default_filter)

    async def call_remote(
        self,
        operation: str,
        call: Callable[[RemoteStore], Awaitable[T]],
    ) -> T:
        """
        Run one remote call under the timeout budget.

        Raises:
            RemoteStoreError: No remote configured, or the call failed
            RemoteTimeoutError: The call exceeded timeout_seconds
        """
        if self.remote is None:
            raise RemoteStoreError("No remote store configured", table=self.table, operation=operation)
        try:
            return await asyncio.wait_for(call(self.remote), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise RemoteTimeoutError(
                f"Remote {operation} timed out",
                timeout_seconds=self.timeout_seconds,
                table=self.table,
                operation=operation,
            ) from e

    def _log_failure(self, operation: str, error: Exception) -> None:
        logger.warning(f"Remote {operation} failed for {self.table}: {error}")

    def _patch_cache(self, owner: str, mutate: Callable[[List[Row]], List[Row]]) -> None:
        key = self.cache_key(owner)
        try:
            self.store.set(key, mutate(self.store.get(key)))
        except LocalStoreError as e:
            logger.error(f"Could not patch local cache {key}: {e}")

    def _put_row(self, owner: str, row: Row) -> None:
        """Insert or replace row by id so exactly one copy is cached."""
        def mutate(rows: List[Row]) -> List[Row]:
            for i, existing in enumerate(rows):
                if existing.get("id") == row.get("id"):
                    return rows[:i] + [row] + rows[i + 1:]
            return [row] + rows if self.spec.prepend else rows + [row]
        self._patch_cache(owner, mutate)

    def _drop_rows(self, owner: str, predicate: Callable[[Row], bool]) -> None:
        self._patch_cache(owner, lambda rows: [r for r in rows if not predicate(r)])

    # =========================================================================
    # READS
    # =========================================================================

    async def get_all(self, owner: str) -> List[Row]:
        """
        All of owner's rows, refreshed from the remote store.

        On success the cache is replaced wholesale with the result. On any
        failure the cache is returned unmodified. If a write landed on the
        cache while the list was in flight the list is fetched again, and
        if that also races, the (fresher) cache is returned instead of
        overwriting it.
        """
        key = self.cache_key(owner)

        for _ in range(REFRESH_ATTEMPTS):
            _, version = self.store.get_versioned(key)
            try:
                query = self.scoped(owner)
                rows = await self.call_remote("list", lambda r: r.list(self.table, query))
            except Exception as e:
                self._log_failure("list", e)
                return self.store.get(key)

            try:
                if self.store.compare_and_set(key, rows, version):
                    logger.debug(f"Refreshed {key} with {len(rows)} rows")
                    return rows
            except LocalStoreError as e:
                logger.error(f"Could not refresh local cache {key}: {e}")
                return rows

            logger.debug(f"Refresh of {key} raced a write, retrying")

        return self.store.get(key)

    async def get_by_filter(
        self,
        owner: str,
        row_filter: RowFilter,
        post_filter: Optional[Callable[[Row], bool]] = None,
    ) -> List[Row]:
        """
        Rows matching row_filter, remote first.

        Args:
            owner: Owner principal
            row_filter: Remote-expressible predicate and ordering
            post_filter: Optional pure predicate applied after either path

        Returns:
            Matching rows. On success, cached rows matching the filter are
            replaced by the remote result; on failure the full cache is
            filtered with the same predicate.
        """
        key = self.cache_key(owner)
        post = post_filter or (lambda row: True)

        for _ in range(REFRESH_ATTEMPTS):
            cached, version = self.store.get_versioned(key)
            try:
                query = self.scoped(owner, row_filter)
                rows = await self.call_remote("filtered list", lambda r: r.list(self.table, query))
            except Exception as e:
                self._log_failure(f"filtered list ({row_filter.describe()})", e)
                try:
                    query = self.scoped(owner, row_filter)
                except AuthorizationError:
                    return []
                return [r for r in query.apply(cached) if post(r)]

            current = self.store.get(key)
            merged = self.spec.default_filter.sort(
                [r for r in current if not query.matches(r)] + rows
            )
            try:
                if self.store.compare_and_set(key, merged, version):
                    return [r for r in rows if post(r)]
            except LocalStoreError as e:
                logger.error(f"Could not merge into local cache {key}: {e}")
                return [r for r in rows if post(r)]

            logger.debug(f"Filtered refresh of {key} raced a write, retrying")

        return [r for r in rows if post(r)]

    async def get_by_id(self, owner: str, row_id: Any) -> Optional[Row]:
        """Remote point lookup; linear scan of the cache on failure."""
        try:
            query = self.scoped(owner, by_id(row_id))
            return await self.call_remote("get", lambda r: r.get(self.table, query))
        except Exception as e:
            self._log_failure("get", e)
            if not owner:
                return None
            return next((r for r in self.cached(owner) if r.get("id") == row_id), None)

    # =========================================================================
    # WRITES
    # =========================================================================

    async def create(self, owner: str, fields: Row) -> Optional[Row]:
        """
        Insert a row remotely, then cache the stored version.

        Returns:
            The row as returned by the remote store, or None on failure
        """
        try:
            payload = dict(fields)
            if self.spec.owner_column:
                payload[self.spec.owner_column] = self.check_owner(owner)
            else:
                self.check_owner(owner)
            row = await self.call_remote("insert", lambda r: r.insert(self.table, payload))
        except Exception as e:
            self._log_failure("insert", e)
            return None

        self._put_row(owner, row)
        return row

    async def update(self, owner: str, row_id: Any, fields: Row) -> Optional[Row]:
        """
        Update a row remotely and replace the cached copy by id.

        Returns:
            The updated row, or None on failure (cache untouched)
        """
        try:
            query = self.scoped(owner, by_id(row_id))
            rows = await self.call_remote("update", lambda r: r.update(self.table, query, dict(fields)))
            if not rows:
                raise RemoteStoreError(
                    f"No row {row_id} to update", table=self.table, operation="update"
                )
        except Exception as e:
            self._log_failure("update", e)
            return None

        row = rows[0]
        self._put_row(owner, row)
        return row

    async def delete(self, owner: str, row_id: Any) -> bool:
        """Delete a row remotely, then drop it from the cache."""
        try:
            query = self.scoped(owner, by_id(row_id))
            await self.call_remote("delete", lambda r: r.delete(self.table, query))
        except Exception as e:
            self._log_failure("delete", e)
            return False

        self._drop_rows(owner, lambda r: r.get("id") == row_id)
        return True

    async def delete_where(self, owner: str, row_filter: RowFilter) -> bool:
        """Delete every row matching row_filter, then drop them from the cache."""
        try:
            query = self.scoped(owner, row_filter)
            await self.call_remote("bulk delete", lambda r: r.delete(self.table, query))
        except Exception as e:
            self._log_failure(f"bulk delete ({row_filter.describe()})", e)
            return False

        self._drop_rows(owner, query.matches)
        return True

    async def upsert_where(self, owner: str, row_filter: RowFilter, fields: Row) -> Optional[Row]:
        """
        Update the first row matching row_filter, or create one.

        Args:
            owner: Owner principal
            row_filter: Identifies the logical row (e.g. setting type)
            fields: Values to write; on create they are merged with the
                filter's equality values

        Returns:
            The stored row, or None on failure
        """
        existing = await self.get_by_filter(owner, row_filter)
        if existing:
            return await self.update(owner, existing[0]["id"], fields)

        seed = {c.column: c.value for c in row_filter.conditions if c.op == "eq"}
        return await self.create(owner, {**seed, **fields})
