"""Sync orchestration: staleness, token lifecycle and persistence."""

import asyncio
import contextlib
import dataclasses
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

from loguru import logger

from todoist_cache.config import DEFAULT_STALE_THRESHOLD
from todoist_cache.core import merge
from todoist_cache.errors import (
    ApiError,
    CommandFailedError,
    SyncError,
    SyncTokenInvalidError,
    ValidationError,
    is_sync_token_message,
)
from todoist_cache.models.snapshot import COLLECTION_TYPES, FULL_SYNC_TOKEN, CacheSnapshot
from todoist_cache.models.sync import SyncCommand, SyncRequest, SyncResponse
from todoist_cache.protocols import SnapshotStore, SyncTransport


def is_stale(
    snapshot: CacheSnapshot,
    now: datetime,
    threshold: timedelta = DEFAULT_STALE_THRESHOLD,
) -> bool:
    """True if the snapshot was never synced or is older than ``threshold``.

    A snapshot exactly ``threshold`` old is still fresh.
    """
    if snapshot.last_sync_at is None:
        return True
    return now - snapshot.last_sync_at > threshold


def _working_copy(snapshot: CacheSnapshot) -> CacheSnapshot:
    # Records are frozen, so copying the lists is enough to isolate a merge.
    return dataclasses.replace(
        snapshot, **{name: list(getattr(snapshot, name)) for name in COLLECTION_TYPES}
    )


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _token_rejected(error: ApiError) -> bool:
    if isinstance(error, SyncTokenInvalidError):
        return True
    return isinstance(error, ValidationError) and is_sync_token_message(error.message)


class SyncManager:
    """Owns the cache snapshot and keeps it in step with the remote.

    Every operation that touches the remote runs under one ``asyncio.Lock``.
    Changes are built on a working copy and become visible only after the
    store has saved them, so a failed or cancelled round trip leaves both the
    in-memory and on-disk snapshot untouched.
    """

    def __init__(
        self,
        transport: SyncTransport,
        store: SnapshotStore,
        *,
        stale_threshold: timedelta = DEFAULT_STALE_THRESHOLD,
    ) -> None:
        self._transport = transport
        self._store = store
        self.stale_threshold = stale_threshold
        self._lock = asyncio.Lock()
        self._snapshot = store.load()

    @property
    def snapshot(self) -> CacheSnapshot:
        """The current snapshot. Treat it as read-only."""
        return self._snapshot

    def needs_sync(self, now: datetime | None = None) -> bool:
        return is_stale(self._snapshot, now or _utcnow(), self.stale_threshold)

    async def ensure_fresh(self, now: datetime | None = None) -> CacheSnapshot:
        """Sync if the snapshot is stale, then return it.

        Staleness is checked again once the lock is held, so callers that were
        waiting on a sync in progress reuse its result.
        """
        if self.needs_sync(now):
            async with self._lock:
                if self.needs_sync(now):
                    await self._sync_locked(force_full=False)
                    return self._snapshot
        logger.debug("Cache is fresh (last sync {})", self._snapshot.last_sync_at)
        return self._snapshot

    async def sync(self) -> CacheSnapshot:
        """Sync now: full without a token, incremental otherwise."""
        async with self._lock:
            await self._sync_locked(force_full=False)
        return self._snapshot

    async def full_sync(self) -> CacheSnapshot:
        """Discard the token and download everything."""
        async with self._lock:
            await self._sync_locked(force_full=True)
        return self._snapshot

    async def reload(self) -> CacheSnapshot:
        """Re-read the snapshot from the store, dropping in-memory state."""
        async with self._lock:
            self._snapshot = self._store.load()
        return self._snapshot

    async def execute_commands(
        self, commands: Sequence[SyncCommand], *, check: bool = False
    ) -> SyncResponse:
        """Send write commands and merge the affected records.

        The caller reads ``temp_id_mapping`` and ``sync_status`` from the
        returned response. With ``check=True``, rejected commands raise
        :class:`CommandFailedError` after the response has been applied.

        If the remote rejects the sync token, the cache is recovered with a
        full sync but the commands are not replayed; :class:`SyncError` tells
        the caller to retry them.
        """
        async with self._lock:
            request = SyncRequest(sync_token=self._snapshot.sync_token).with_commands(
                list(commands)
            )
            logger.debug("Executing {} command(s)", len(request.commands))
            try:
                response = await self._transport.execute(request)
            except ApiError as e:
                if not _token_rejected(e):
                    raise
                logger.warning("Sync token invalid, performing full sync to recover")
                await self._sync_locked(force_full=True)
                msg = (
                    "Sync token was rejected; the cache was resynced "
                    "but commands were not applied"
                )
                raise SyncError(msg, cause=e) from e
            await self._apply_mutation_locked(response)

        if check and response.has_errors():
            raise CommandFailedError(
                [(uuid_, r.error_code or 0, r.error or "") for uuid_, r in response.errors()]
            )
        return response

    async def apply_mutation_response(self, response: SyncResponse) -> None:
        """Merge a write response obtained outside :meth:`execute_commands`."""
        async with self._lock:
            await self._apply_mutation_locked(response)

    async def _apply_mutation_locked(self, response: SyncResponse) -> None:
        working = _working_copy(self._snapshot)
        merge.apply_mutation_response(working, response, _utcnow())
        await self._commit(working)

    async def _sync_locked(self, *, force_full: bool) -> None:
        token = FULL_SYNC_TOKEN if force_full else self._snapshot.sync_token
        request = SyncRequest(sync_token=token)
        logger.debug("Starting {} sync", "full" if request.is_full_sync else "incremental")

        try:
            response = await self._transport.execute(request)
        except ApiError as e:
            if not _token_rejected(e):
                raise
            if request.is_full_sync:
                msg = f"Full sync was rejected: {e}"
                raise SyncError(msg, cause=e) from e
            logger.warning("Sync token invalid, performing full sync to recover")
            request = SyncRequest.full_sync()
            try:
                response = await self._transport.execute(request)
            except ApiError as e2:
                if not _token_rejected(e2):
                    raise
                msg = f"Full sync after token reset was rejected: {e2}"
                raise SyncError(msg, cause=e2) from e2

        if request.is_full_sync and not response.full_sync:
            response = dataclasses.replace(response, full_sync=True)

        working = _working_copy(self._snapshot)
        merge.apply_sync_response(working, response, _utcnow())
        await self._commit(working)

    async def _commit(self, working: CacheSnapshot) -> None:
        # Once a response is in hand, saving and publishing it run to completion
        # even if the caller is cancelled, keeping memory and disk in step. The
        # caller keeps the lock until then, so no other call starts from the
        # snapshot being replaced.
        save = asyncio.ensure_future(self._save_and_publish(working))
        try:
            await asyncio.shield(save)
        except asyncio.CancelledError:
            while not save.done():
                with contextlib.suppress(asyncio.CancelledError):
                    await asyncio.wait({save})
            if not save.cancelled() and save.exception() is not None:
                logger.warning("Cache save failed after cancellation: {}", save.exception())
            raise

    async def _save_and_publish(self, working: CacheSnapshot) -> None:
        await self._store.save_async(working)
        self._snapshot = working
        logger.debug("Cache updated, sync token {}", working.sync_token[:12])
