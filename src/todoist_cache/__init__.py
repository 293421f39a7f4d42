"""Local cache and filter engine for the Todoist sync API."""

from todoist_cache.api import TodoistApi
from todoist_cache.core.store import CacheStore
from todoist_cache.core.sync_manager import SyncManager
from todoist_cache.models.snapshot import CacheSnapshot
from todoist_cache.protocols import SnapshotStore, SyncTransport

__all__ = [
    "CacheSnapshot",
    "CacheStore",
    "SnapshotStore",
    "SyncManager",
    "SyncTransport",
    "TodoistApi",
]
