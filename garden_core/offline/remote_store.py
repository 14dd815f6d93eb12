# =============================================================================
# garden_core/offline/remote_store.py
# Remote Store Contract and Supabase Implementation
# =============================================================================
"""
The remote store is the authoritative copy of every row.

RemoteStore is the contract the repositories depend on; SupabaseRemoteStore
implements it on top of the async supabase-py client. Both transport failures
and server-side rejections surface as RemoteStoreError.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient, acreate_client

from garden_core.config import Settings
from garden_core.errors import RemoteStoreError
from garden_core.logging import get_logger
from garden_core.offline.query import RowFilter

logger = get_logger(__name__)

Row = Dict[str, Any]

# PostgREST caps a single response at this many rows
PAGE_SIZE = 1000


class RemoteStore(ABC):
    """Authoritative row store. Every method may raise RemoteStoreError."""

    @abstractmethod
    async def list(self, table: str, row_filter: RowFilter) -> List[Row]:
        """Rows matching row_filter, in its ordering."""

    @abstractmethod
    async def get(self, table: str, row_filter: RowFilter) -> Optional[Row]:
        """First row matching row_filter, or None."""

    @abstractmethod
    async def insert(self, table: str, fields: Row) -> Row:
        """Insert one row and return it as stored (with id and timestamps)."""

    @abstractmethod
    async def update(self, table: str, row_filter: RowFilter, fields: Row) -> List[Row]:
        """Update matching rows and return them as stored."""

    @abstractmethod
    async def delete(self, table: str, row_filter: RowFilter) -> List[Row]:
        """Delete matching rows and return what was removed."""

    @abstractmethod
    async def rpc(self, name: str, params: Dict[str, Any]) -> Any:
        """Invoke a server-side procedure."""


class SupabaseRemoteStore(RemoteStore):
    """
    RemoteStore backed by Supabase (PostgREST).

    Args:
        client: An AsyncClient from acreate_client()
    """

    def __init__(self, client: AsyncClient):
        self.client = client

    async def _execute(self, query: Any, table: str, operation: str) -> Any:
        try:
            response = await query.execute()
        except APIError as e:
            raise RemoteStoreError(
                e.message or "Remote store rejected the request",
                table=table,
                operation=operation,
                details={"remote_code": e.code, "hint": e.hint},
            ) from e
        except httpx.HTTPError as e:
            raise RemoteStoreError(
                f"Transport error: {e}", table=table, operation=operation
            ) from e
        return response.data

    async def list(self, table: str, row_filter: RowFilter) -> List[Row]:
        rows: List[Row] = []
        offset = 0

        while True:
            query = row_filter.apply_to(self.client.table(table).select("*"))
            query = query.range(offset, offset + PAGE_SIZE - 1)
            batch = await self._execute(query, table, "list") or []
            rows.extend(batch)

            if len(batch) < PAGE_SIZE:
                break
            offset += PAGE_SIZE

        logger.debug(f"Fetched {len(rows)} rows from {table} where {row_filter.describe()}")
        return rows

    async def get(self, table: str, row_filter: RowFilter) -> Optional[Row]:
        query = row_filter.apply_to(self.client.table(table).select("*")).limit(1)
        data = await self._execute(query, table, "get") or []
        return data[0] if data else None

    async def insert(self, table: str, fields: Row) -> Row:
        data = await self._execute(self.client.table(table).insert(fields), table, "insert")
        if not data:
            raise RemoteStoreError("Insert returned no row", table=table, operation="insert")
        return data[0]

    async def update(self, table: str, row_filter: RowFilter, fields: Row) -> List[Row]:
        query = row_filter.apply_conditions_to(self.client.table(table).update(fields))
        return await self._execute(query, table, "update") or []

    async def delete(self, table: str, row_filter: RowFilter) -> List[Row]:
        if row_filter.is_empty:
            raise RemoteStoreError(
                "Refusing an unfiltered delete", table=table, operation="delete"
            )
        query = row_filter.apply_conditions_to(self.client.table(table).delete())
        return await self._execute(query, table, "delete") or []

    async def rpc(self, name: str, params: Dict[str, Any]) -> Any:
        return await self._execute(self.client.rpc(name, params), name, "rpc")


async def create_remote_store(settings: Settings) -> SupabaseRemoteStore:
    """
    Connect to Supabase with the configured credentials.

    Raises:
        ConfigurationError: If the URL or key is missing
    """
    settings.require_remote()
    client = await acreate_client(settings.supabase_url, settings.supabase_key)
    logger.info("Connected to Supabase")
    return SupabaseRemoteStore(client)
