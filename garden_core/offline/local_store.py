# =============================================================================
# garden_core/offline/local_store.py
# Keyed Local Store - Durable Key -> JSON Array Cache
# =============================================================================
"""
KeyedLocalStore - SQLite-backed cache holding one JSON array per entity type.

Features:
- Works before any remote connectivity exists (first run)
- Corrupt or undecodable entries read back as an empty list
- Monotonic version stamp per key, bumped on every write
- Compare-and-set writes for refreshes that raced a mutation
"""

from __future__ import annotations
import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from garden_core.errors import LocalStoreError
from garden_core.logging import get_logger

logger = get_logger(__name__)

Row = Dict[str, Any]


class KeyedLocalStore:
    """
    Namespaced key -> list-of-rows store that survives process restarts.

    Pure storage: it knows nothing about entities, owners or the remote store.
    """

    DEFAULT_DB_PATH = Path("local_data") / "garden.db"

    SCHEMA = {
        "cache_entries": """
            CREATE TABLE IF NOT EXISTS cache_entries (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                version INTEGER NOT NULL DEFAULT 0,
                updated_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """,
    }

    def __init__(
        self,
        db_path: Optional[Union[str, Path]] = None,
        namespace: str = "@garden",
    ):
        """
        Initialize the local store.

        Args:
            db_path: Path to the SQLite file, or ":memory:" for a throwaway store
            namespace: Prefix applied by key_for()
        """
        self.db_path = db_path if db_path is not None else self.DEFAULT_DB_PATH
        self.namespace = namespace.rstrip("/")
        self._lock = threading.RLock()
        self._connection: Optional[sqlite3.Connection] = None
        self._initialized = False

    def key_for(self, name: str) -> str:
        """Namespaced cache key for an entity type, e.g. '@garden/meals'."""
        return f"{self.namespace}/{name}"

    # =========================================================================
    # CONNECTION MANAGEMENT
    # =========================================================================

    def _get_connection(self) -> sqlite3.Connection:
        if self._connection is None:
            if str(self.db_path) != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            try:
                self._connection = sqlite3.connect(str(self.db_path), check_same_thread=False)
            except sqlite3.Error as e:
                raise LocalStoreError(f"Cannot open local store at {self.db_path}: {e}") from e
            self._connection.row_factory = sqlite3.Row
        return self._connection

    @contextmanager
    def transaction(self):
        """Context manager for a single write transaction."""
        with self._lock:
            conn = self._get_connection()
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def initialize(self) -> None:
        """Create the schema if needed. Called lazily by every operation."""
        if self._initialized:
            return

        try:
            with self.transaction() as conn:
                for table_name, schema in self.SCHEMA.items():
                    conn.execute(schema)
                    logger.debug(f"Created/verified table: {table_name}")
        except sqlite3.Error as e:
            raise LocalStoreError(f"Cannot initialize local store at {self.db_path}: {e}") from e

        self._initialized = True
        logger.info(f"Local store initialized at: {self.db_path}")

    def close(self) -> None:
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None
                self._initialized = False

    # =========================================================================
    # READS
    # =========================================================================

    def get_versioned(self, key: str) -> Tuple[List[Row], int]:
        """
        Read a key together with its current version.

        Args:
            key: Cache key

        Returns:
            (rows, version). Absent keys are ([], 0); corrupt values are
            ([], version) so a later write still advances the stamp.
        """
        try:
            self.initialize()
            with self._lock:
                record = self._get_connection().execute(
                    "SELECT value, version FROM cache_entries WHERE key = ?", [key]
                ).fetchone()
        except (sqlite3.Error, LocalStoreError) as e:
            logger.warning(f"Local store unreadable for {key}, treating as empty: {e}")
            return [], 0

        if record is None:
            return [], 0

        version = record["version"]
        try:
            rows = json.loads(record["value"])
        except (TypeError, ValueError) as e:
            logger.warning(f"Corrupt cache entry for {key}, treating as empty: {e}")
            return [], version

        if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
            logger.warning(f"Cache entry for {key} is not a list of rows, treating as empty")
            return [], version

        return rows, version

    def get(self, key: str) -> List[Row]:
        """Rows stored under key; [] if absent or corrupt."""
        rows, _ = self.get_versioned(key)
        return rows

    def version(self, key: str) -> int:
        return self.get_versioned(key)[1]

    def keys(self) -> List[str]:
        """All keys currently stored, sorted."""
        self.initialize()
        with self._lock:
            records = self._get_connection().execute(
                "SELECT key FROM cache_entries ORDER BY key"
            ).fetchall()
        return [r["key"] for r in records]

    # =========================================================================
    # WRITES
    # =========================================================================

    def set(self, key: str, rows: List[Row]) -> int:
        """
        Replace the rows stored under key.

        Args:
            key: Cache key
            rows: Full replacement list

        Returns:
            The new version stamp
        """
        payload = self._encode(key, rows)
        self.initialize()
        try:
            with self.transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO cache_entries (key, value, version, updated_at)
                    VALUES (?, ?, 1, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        version = cache_entries.version + 1,
                        updated_at = excluded.updated_at
                    """,
                    [key, payload, datetime.now().isoformat()],
                )
                version = conn.execute(
                    "SELECT version FROM cache_entries WHERE key = ?", [key]
                ).fetchone()["version"]
        except sqlite3.Error as e:
            raise LocalStoreError(f"Failed to write cache entry: {e}", key=key) from e

        logger.debug(f"Cached {len(rows)} rows under {key} (v{version})")
        return version

    def compare_and_set(self, key: str, rows: List[Row], expected_version: int) -> bool:
        """
        Replace the rows under key only if nobody wrote it since expected_version.

        Args:
            key: Cache key
            rows: Full replacement list
            expected_version: Version observed before the caller's remote read

        Returns:
            True if written, False if the version moved on
        """
        payload = self._encode(key, rows)
        self.initialize()
        try:
            with self.transaction() as conn:
                record = conn.execute(
                    "SELECT version FROM cache_entries WHERE key = ?", [key]
                ).fetchone()
                current = record["version"] if record else 0
                if current != expected_version:
                    logger.debug(
                        f"Skipped stale write to {key}: expected v{expected_version}, found v{current}"
                    )
                    return False
                conn.execute(
                    """
                    INSERT INTO cache_entries (key, value, version, updated_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        version = excluded.version,
                        updated_at = excluded.updated_at
                    """,
                    [key, payload, current + 1, datetime.now().isoformat()],
                )
        except sqlite3.Error as e:
            raise LocalStoreError(f"Failed to write cache entry: {e}", key=key) from e

        return True

    def clear(self, key: str) -> None:
        """Empty a key. The version still advances."""
        self.set(key, [])

    @staticmethod
    def _encode(key: str, rows: List[Row]) -> str:
        try:
            return json.dumps(list(rows), default=str)
        except (TypeError, ValueError) as e:
            raise LocalStoreError(f"Rows are not JSON serializable: {e}", key=key) from e
