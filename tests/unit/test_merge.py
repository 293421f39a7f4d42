"""Tests for the merge engine."""

import dataclasses
from datetime import UTC, datetime

import pytest

from todoist_cache.core.merge import apply_mutation_response, apply_sync_response, merge_resources
from todoist_cache.models import CacheSnapshot, Label, Project, SyncResponse, Task, User
from tests.unit.fakes import NOW, make_task


def _deleted(task: Task) -> Task:
    return dataclasses.replace(task, is_deleted=True)


def _ids(tasks: list[Task]) -> list[str]:
    return [t.id for t in tasks]


def test_merge_updates_in_place_and_appends() -> None:
    existing = [make_task("a"), make_task("b"), make_task("c")]
    merge_resources(existing, [make_task("b", content="B!"), make_task("d")])

    assert _ids(existing) == ["a", "b", "c", "d"]
    assert existing[1].content == "B!"


def test_merge_removes_deleted_and_keeps_order() -> None:
    existing = [make_task(x) for x in "abcde"]
    merge_resources(existing, [_deleted(make_task("b")), _deleted(make_task("d"))])
    assert _ids(existing) == ["a", "c", "e"]


def test_merge_ignores_deletion_of_unknown_id() -> None:
    existing = [make_task("a")]
    merge_resources(existing, [_deleted(make_task("zzz"))])
    assert _ids(existing) == ["a"]


def test_merge_insert_then_delete_in_same_batch() -> None:
    existing = [make_task("a")]
    merge_resources(existing, [make_task("new"), _deleted(make_task("new"))])
    assert _ids(existing) == ["a"]


BATCHES = [
    [make_task("b", content="changed"), make_task("x")],
    [_deleted(make_task("a")), make_task("y"), _deleted(make_task("c"))],
    [make_task("x"), _deleted(make_task("x"))],
    [_deleted(make_task("q")), make_task("q")],
    [],
]


@pytest.mark.parametrize("batch", BATCHES)
def test_merge_is_idempotent(batch: list[Task]) -> None:
    once = [make_task(x) for x in "abc"]
    merge_resources(once, batch)
    twice = list(once)
    merge_resources(twice, batch)
    assert twice == once


@pytest.mark.parametrize("batch", BATCHES)
def test_merge_is_complete(batch: list[Task]) -> None:
    existing = [make_task(x) for x in "abc"]
    before = set(_ids(existing))
    merge_resources(existing, batch)

    final_state = {t.id: t.is_deleted for t in batch}
    result = set(_ids(existing))
    for task_id, deleted in final_state.items():
        if deleted:
            assert task_id not in result
        elif task_id not in before:
            assert task_id in result
    assert len(result) == len(existing)


def test_merge_works_for_any_record_type() -> None:
    labels = [Label(id="1", name="a"), Label(id="2", name="b")]
    merge_resources(labels, [Label(id="2", name="b", is_deleted=True), Label(id="3", name="c")])
    assert [x.name for x in labels] == ["a", "c"]


def test_full_sync_replaces_collections() -> None:
    snapshot = CacheSnapshot(
        sync_token="old",
        items=[make_task("stale")],
        projects=[Project(id="gone", name="Gone")],
    )
    response = SyncResponse(
        sync_token="new",
        full_sync=True,
        full_sync_date_utc="2025-03-14T11:59:00Z",
        resources={
            "items": [make_task("t1"), _deleted(make_task("t2"))],
            "projects": [Project(id="p", name="P")],
        },
        user=User(id="me"),
    )

    apply_sync_response(snapshot, response, NOW)

    assert _ids(snapshot.items) == ["t1"]
    assert [p.id for p in snapshot.projects] == ["p"]
    assert snapshot.labels == []
    assert snapshot.sync_token == "new"
    assert snapshot.last_sync_at == NOW
    assert snapshot.full_sync_at == datetime(2025, 3, 14, 11, 59, tzinfo=UTC)
    assert snapshot.user == User(id="me")


def test_full_sync_without_server_date_uses_now() -> None:
    snapshot = CacheSnapshot()
    apply_sync_response(snapshot, SyncResponse(sync_token="t", full_sync=True), NOW)
    assert snapshot.full_sync_at == NOW


def test_incremental_sync_merges() -> None:
    snapshot = CacheSnapshot(sync_token="old", items=[make_task("a"), make_task("b")])
    response = SyncResponse(
        sync_token="new",
        resources={"items": [_deleted(make_task("a")), make_task("c")]},
    )

    apply_sync_response(snapshot, response, NOW)

    assert _ids(snapshot.items) == ["b", "c"]
    assert snapshot.full_sync_at is None
    assert snapshot.sync_token == "new"


def test_mutation_response_merges_even_when_flagged_full() -> None:
    snapshot = CacheSnapshot(
        sync_token="old",
        items=[make_task("a"), make_task("b")],
        projects=[Project(id="p", name="P")],
    )
    response = SyncResponse(
        sync_token="after-write",
        full_sync=True,
        resources={"items": [make_task("new")]},
    )

    apply_mutation_response(snapshot, response, NOW)

    assert _ids(snapshot.items) == ["a", "b", "new"]
    assert [p.id for p in snapshot.projects] == ["p"]
    assert snapshot.sync_token == "after-write"
    assert snapshot.user is None
