"""Protocols for dependency injection in the sync manager."""

from typing import Protocol, runtime_checkable

from todoist_cache.models.snapshot import CacheSnapshot
from todoist_cache.models.sync import SyncRequest, SyncResponse


@runtime_checkable
class SyncTransport(Protocol):
    """Anything that can execute a sync request against the remote service.

    Implementations own retries and rate limiting. Failures must be raised as
    :class:`todoist_cache.errors.ApiError` subclasses; a rejected sync token
    must surface as :class:`todoist_cache.errors.SyncTokenInvalidError`.
    """

    async def execute(self, request: SyncRequest) -> SyncResponse:
        """Send the request and return the decoded response."""
        ...


@runtime_checkable
class SnapshotStore(Protocol):
    """Persistence for cache snapshots."""

    def load(self) -> CacheSnapshot:
        """Return the stored snapshot, or an empty one if none is usable."""
        ...

    async def save_async(self, snapshot: CacheSnapshot) -> None:
        """Atomically replace the stored snapshot."""
        ...
