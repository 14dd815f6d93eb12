# =============================================================================
# garden_core/offline/__init__.py
# Local-First Storage: Cache, Remote Store and Generic Repository
# =============================================================================

from .local_store import KeyedLocalStore
from .query import RowFilter
from .remote_store import RemoteStore, SupabaseRemoteStore, create_remote_store
from .repository import EntityRepository, EntitySpec

__all__ = [
    "KeyedLocalStore",
    "RowFilter",
    "RemoteStore",
    "SupabaseRemoteStore",
    "create_remote_store",
    "EntityRepository",
    "EntitySpec",
]
