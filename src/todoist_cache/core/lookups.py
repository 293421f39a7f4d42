"""Resolve user-supplied names and ids against the cache.

Each lookup tries the cached snapshot first. On a miss it syncs once and tries
again, so a resource created elsewhere a moment ago is still found. A final
miss raises :class:`ResourceNotFoundError`, with a close-match suggestion when
one exists.
"""

import difflib
from collections.abc import Callable, Iterable
from typing import TypeVar

from loguru import logger

from todoist_cache.core.sync_manager import SyncManager
from todoist_cache.errors import AmbiguousIdError, ResourceNotFoundError
from todoist_cache.models.resources import Label, Project, Section, Task
from todoist_cache.models.snapshot import CacheSnapshot

R = TypeVar("R")


def suggest(query: str, names: Iterable[str]) -> str | None:
    """Return the closest name to ``query``, ignoring case, if any is close enough."""
    by_lower: dict[str, str] = {}
    for name in names:
        by_lower.setdefault(name.lower(), name)
    matches = difflib.get_close_matches(query.lower(), list(by_lower), n=1, cutoff=0.6)
    return by_lower[matches[0]] if matches else None


def _by_id_or_name(records: Iterable[R], key: str) -> R | None:
    lowered = key.lower()
    by_name = None
    for record in records:
        if record.id == key:  # type: ignore[attr-defined]
            return record
        if by_name is None and record.name.lower() == lowered:  # type: ignore[attr-defined]
            by_name = record
    return by_name


async def _with_sync_fallback(
    manager: SyncManager,
    find: Callable[[CacheSnapshot], R | None],
    resource_type: str,
    identifier: str,
    names: Callable[[CacheSnapshot], Iterable[str]],
) -> R:
    found = find(manager.snapshot)
    if found is not None:
        return found

    logger.debug("{} {!r} not in cache, syncing", resource_type, identifier)
    snapshot = await manager.sync()
    found = find(snapshot)
    if found is not None:
        return found

    raise ResourceNotFoundError(
        resource_type, identifier, suggestion=suggest(identifier, names(snapshot))
    )


async def resolve_project(manager: SyncManager, name_or_id: str) -> Project:
    """Find a project by id or case-insensitive name."""
    return await _with_sync_fallback(
        manager,
        lambda s: _by_id_or_name(s.projects, name_or_id),
        "Project",
        name_or_id,
        lambda s: (p.name for p in s.projects),
    )


async def resolve_section(
    manager: SyncManager, name_or_id: str, project_id: str | None = None
) -> Section:
    """Find a section by id or name, optionally restricted to one project."""

    def candidates(s: CacheSnapshot) -> list[Section]:
        return [x for x in s.sections if project_id is None or x.project_id == project_id]

    return await _with_sync_fallback(
        manager,
        lambda s: _by_id_or_name(candidates(s), name_or_id),
        "Section",
        name_or_id,
        lambda s: (x.name for x in candidates(s)),
    )


async def resolve_label(manager: SyncManager, name_or_id: str) -> Label:
    """Find a label by id or name. A leading ``@`` is ignored."""
    key = name_or_id.removeprefix("@")
    return await _with_sync_fallback(
        manager,
        lambda s: _by_id_or_name(s.labels, key),
        "Label",
        key,
        lambda s: (x.name for x in s.labels),
    )


async def resolve_item(manager: SyncManager, item_id: str) -> Task:
    """Find a task by its full id."""
    return await _with_sync_fallback(
        manager,
        lambda s: next((t for t in s.items if t.id == item_id), None),
        "Task",
        item_id,
        lambda s: (t.id for t in s.items),
    )


def _match_prefix(tasks: list[Task], prefix: str, require_checked: bool | None) -> Task | None:
    pool = [t for t in tasks if require_checked is None or t.checked == require_checked]
    for task in pool:
        if task.id == prefix:
            return task
    matches = [t for t in pool if t.id.startswith(prefix)]
    if len(matches) > 1:
        raise AmbiguousIdError("task", prefix, [f"{t.id}  {t.content}" for t in matches])
    return matches[0] if matches else None


async def resolve_item_by_prefix(
    manager: SyncManager, prefix: str, require_checked: bool | None = None
) -> Task:
    """Find a task by a unique id prefix.

    ``require_checked`` restricts the search to completed (True) or open
    (False) tasks.

    Raises:
        AmbiguousIdError: If several tasks share the prefix.
        ResourceNotFoundError: If no task matches, even after a sync.
    """
    return await _with_sync_fallback(
        manager,
        lambda s: _match_prefix(s.items, prefix, require_checked),
        "Task",
        prefix,
        lambda s: (),
    )
