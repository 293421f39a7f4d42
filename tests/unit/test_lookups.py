"""Tests for name and id resolution with sync fallback."""

import asyncio
from datetime import timedelta

import pytest

from todoist_cache.core.lookups import (
    resolve_item,
    resolve_item_by_prefix,
    resolve_label,
    resolve_project,
    resolve_section,
    suggest,
)
from todoist_cache.core.sync_manager import SyncManager
from todoist_cache.errors import AmbiguousIdError, ResourceNotFoundError
from todoist_cache.models import CacheSnapshot, Label, Project, Section
from tests.unit.fakes import NOW, FakeTransport, MemoryStore, make_task, sync_payload


def _manager(*script: object) -> tuple[SyncManager, FakeTransport]:
    snapshot = CacheSnapshot(
        sync_token="abc",
        last_sync_at=NOW - timedelta(minutes=1),
        projects=[Project(id="p1", name="Groceries"), Project(id="p2", name="Work")],
        sections=[
            Section(id="s1", name="Backlog", project_id="p2"),
            Section(id="s2", name="Backlog", project_id="p1"),
        ],
        labels=[Label(id="l1", name="urgent")],
        items=[
            make_task("6Jf8VQXxpwv56VQ7", content="Buy milk"),
            make_task("6Jf8VQXxpwv56VQ8", content="Call mum", checked=True),
            make_task("7aaaaaaaaaaaaaaa", content="Write report"),
        ],
    )
    transport = FakeTransport(*script)
    return SyncManager(transport, MemoryStore(snapshot)), transport


def test_project_found_in_cache_by_name_or_id() -> None:
    manager, transport = _manager()
    assert asyncio.run(resolve_project(manager, "groceries")).id == "p1"
    assert asyncio.run(resolve_project(manager, "p2")).name == "Work"
    assert transport.requests == []


def test_project_missing_from_cache_triggers_one_sync() -> None:
    manager, transport = _manager(
        sync_payload("def", projects=[{"id": "p3", "name": "Holiday"}]),
    )

    project = asyncio.run(resolve_project(manager, "Holiday"))

    assert project.id == "p3"
    assert transport.tokens == ["abc"]


def test_not_found_after_sync_suggests_close_match() -> None:
    manager, transport = _manager(sync_payload("def"))

    with pytest.raises(ResourceNotFoundError) as excinfo:
        asyncio.run(resolve_project(manager, "Grocerys"))

    assert excinfo.value.suggestion == "Groceries"
    assert "Did you mean 'Groceries'?" in str(excinfo.value)
    assert len(transport.requests) == 1


def test_not_found_without_suggestion() -> None:
    manager, _ = _manager(sync_payload("def"))
    with pytest.raises(ResourceNotFoundError) as excinfo:
        asyncio.run(resolve_label(manager, "@zzzzzz"))
    assert excinfo.value.suggestion is None
    assert excinfo.value.identifier == "zzzzzz"


def test_label_ignores_leading_at() -> None:
    manager, _ = _manager()
    assert asyncio.run(resolve_label(manager, "@Urgent")).id == "l1"


def test_section_scoped_to_project() -> None:
    manager, _ = _manager()
    assert asyncio.run(resolve_section(manager, "backlog", project_id="p1")).id == "s2"
    assert asyncio.run(resolve_section(manager, "backlog")).id == "s1"


def test_item_by_full_id() -> None:
    manager, _ = _manager()
    assert asyncio.run(resolve_item(manager, "7aaaaaaaaaaaaaaa")).content == "Write report"


def test_item_by_unique_prefix() -> None:
    manager, _ = _manager()
    assert asyncio.run(resolve_item_by_prefix(manager, "7a")).id == "7aaaaaaaaaaaaaaa"


def test_ambiguous_prefix_lists_candidates() -> None:
    manager, transport = _manager()

    with pytest.raises(AmbiguousIdError) as excinfo:
        asyncio.run(resolve_item_by_prefix(manager, "6Jf8"))

    message = str(excinfo.value)
    assert 'Ambiguous task ID "6Jf8"' in message
    assert "Buy milk" in message
    assert "Call mum" in message
    assert transport.requests == []


def test_prefix_respects_checked_filter() -> None:
    manager, _ = _manager()
    open_task = asyncio.run(resolve_item_by_prefix(manager, "6Jf8", require_checked=False))
    done_task = asyncio.run(resolve_item_by_prefix(manager, "6Jf8", require_checked=True))
    assert open_task.content == "Buy milk"
    assert done_task.content == "Call mum"


def test_suggest_is_case_insensitive() -> None:
    assert suggest("WORK", ["Work", "Home"]) == "Work"
    assert suggest("xyz", ["Work", "Home"]) is None
