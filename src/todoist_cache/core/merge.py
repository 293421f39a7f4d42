"""Fold sync responses into a cache snapshot.

Everything here is pure and synchronous: no I/O and no clock reads (callers
pass ``now``).
"""

from datetime import UTC, datetime
from typing import Any, Protocol, TypeVar

from loguru import logger

from todoist_cache.models.snapshot import COLLECTION_TYPES, CacheSnapshot
from todoist_cache.models.sync import SyncResponse


class Mergeable(Protocol):
    @property
    def id(self) -> str: ...

    @property
    def is_deleted(self) -> bool: ...


T = TypeVar("T", bound=Mergeable)


def merge_resources(existing: list[T], incoming: list[T]) -> None:
    """Merge ``incoming`` into ``existing`` in place.

    Records with a known id replace the existing entry at the same position;
    new ids are appended; records flagged ``is_deleted`` are removed. Removal
    happens last, in descending index order, so survivors keep their relative
    order. Merging the same batch twice gives the same result as merging it once.
    """
    index = {record.id: pos for pos, record in enumerate(existing)}
    to_remove: set[int] = set()

    for record in incoming:
        pos = index.get(record.id)
        if record.is_deleted:
            if pos is not None:
                to_remove.add(pos)
        elif pos is not None:
            existing[pos] = record
            # A later record in the same batch may undelete an earlier tombstone.
            to_remove.discard(pos)
        else:
            index[record.id] = len(existing)
            existing.append(record)

    for pos in sorted(to_remove, reverse=True):
        del existing[pos]


def _live(records: list[Any]) -> list[Any]:
    """Drop tombstones and keep the last record seen for each id."""
    by_id: dict[str, Any] = {}
    for record in records:
        if record.is_deleted:
            by_id.pop(record.id, None)
        else:
            by_id[record.id] = record
    return list(by_id.values())


def _parse_server_time(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Ignoring unparseable full_sync_date_utc {!r}", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _merge_all(snapshot: CacheSnapshot, response: SyncResponse) -> int:
    changed = 0
    for name in COLLECTION_TYPES:
        incoming = response.records(name)
        if incoming:
            merge_resources(getattr(snapshot, name), incoming)
            changed += len(incoming)
    return changed


def apply_sync_response(snapshot: CacheSnapshot, response: SyncResponse, now: datetime) -> None:
    """Apply a read-sync response.

    A full response replaces every collection with its live records; an
    incremental response is merged. The token and ``last_sync_at`` are updated
    only after all collections are in place.
    """
    if response.full_sync:
        for name in COLLECTION_TYPES:
            setattr(snapshot, name, _live(response.records(name)))
        snapshot.full_sync_at = _parse_server_time(response.full_sync_date_utc) or now
        logger.debug(
            "Full sync: {} tasks, {} projects, {} labels",
            len(snapshot.items),
            len(snapshot.projects),
            len(snapshot.labels),
        )
    else:
        changed = _merge_all(snapshot, response)
        logger.debug("Incremental sync: merged {} changed records", changed)

    if response.user is not None:
        snapshot.user = response.user
    snapshot.sync_token = response.sync_token
    snapshot.last_sync_at = now


def apply_mutation_response(
    snapshot: CacheSnapshot, response: SyncResponse, now: datetime
) -> None:
    """Apply the response to a batch of write commands.

    Such a response only carries the affected records, so it is always merged,
    even when it claims ``full_sync``.
    """
    changed = _merge_all(snapshot, response)
    if response.user is not None:
        snapshot.user = response.user
    snapshot.sync_token = response.sync_token
    snapshot.last_sync_at = now
    logger.debug("Mutation: merged {} affected records", changed)
