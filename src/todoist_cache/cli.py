"""Command line for the Todoist cache: ``td sync``, ``td tasks --filter ...``."""

import asyncio
import json
from collections.abc import Coroutine
from pathlib import Path
from typing import Annotated, Any, TypeVar

import typer
from loguru import logger

from todoist_cache.api import TodoistApi
from todoist_cache.collaborators import CollaboratorDirectory
from todoist_cache.core.lookups import resolve_project
from todoist_cache.core.store import CacheStore
from todoist_cache.core.sync_manager import SyncManager
from todoist_cache.errors import ApiError, SyncError, TodoistCacheError
from todoist_cache.filter import FilterContext, filter_collection, parse
from todoist_cache.logging_config import configure_logging
from todoist_cache.models.resources import Task
from todoist_cache.models.snapshot import CacheSnapshot
from todoist_cache.protocols import SyncTransport

T = TypeVar("T")

app = typer.Typer(help="Todoist from the terminal, served from a local sync cache.")

_state: dict[str, Path | None] = {"cache_file": None}


def make_transport() -> SyncTransport:
    return TodoistApi()


def _store() -> CacheStore:
    return CacheStore(_state["cache_file"])


def _manager() -> SyncManager:
    return SyncManager(make_transport(), _store())


def _exit_code(error: TodoistCacheError) -> int:
    if isinstance(error, ApiError):
        return error.exit_code
    if isinstance(error, SyncError) and isinstance(error.cause, ApiError):
        return error.cause.exit_code
    return 1


def _run(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine, turning package errors into a logged message and exit code."""
    try:
        return asyncio.run(coro)
    except TodoistCacheError as e:
        logger.error("{}", e)
        raise typer.Exit(_exit_code(e)) from e


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only show warnings and errors"),
    cache_file: Annotated[
        Path | None,
        typer.Option("--cache-file", help="Use this cache file instead of the default"),
    ] = None,
) -> None:
    configure_logging(verbose=verbose, quiet=quiet)
    _state["cache_file"] = cache_file


@app.command()
def sync(
    full: bool = typer.Option(False, "--full", help="Discard the sync token and fetch everything"),
) -> None:
    """Bring the local cache up to date."""

    async def run() -> CacheSnapshot:
        manager = _manager()
        return await (manager.full_sync() if full else manager.sync())

    snapshot = _run(run())
    typer.echo(
        f"Synced: {len(snapshot.items)} tasks, {len(snapshot.projects)} projects, "
        f"{len(snapshot.labels)} labels, {len(snapshot.sections)} sections"
    )


def _format_task(task: Task, project_names: dict[str, str]) -> str:
    parts = [task.id, f"p{task.display_priority}", task.content]
    if task.due is not None:
        parts.append(f"[{task.due.string or task.due.date}]")
    parts.extend(f"@{label}" for label in task.labels)
    if task.project_id in project_names:
        parts.append(f"#{project_names[task.project_id]}")
    return "  ".join(parts)


@app.command()
def tasks(
    filter_expr: Annotated[
        str | None,
        typer.Option("--filter", "-f", help="Filter expression, e.g. '(today | overdue) & p1'"),
    ] = None,
    include_completed: bool = typer.Option(False, "--all", "-a", help="Include completed tasks"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON"),
) -> None:
    """List tasks, optionally filtered."""

    async def run() -> tuple[list[Task], CacheSnapshot]:
        node = parse(filter_expr) if filter_expr else None
        snapshot = await _manager().ensure_fresh()
        candidates = [t for t in snapshot.items if include_completed or not t.checked]
        if node is None:
            return candidates, snapshot
        context = FilterContext.from_snapshot(snapshot)
        return filter_collection(node, candidates, context), snapshot

    matched, snapshot = _run(run())
    if as_json:
        typer.echo(json.dumps([t.to_dict() for t in matched], indent=2, ensure_ascii=False))
        return
    project_names = {p.id: p.name for p in snapshot.projects}
    for task in matched:
        typer.echo(_format_task(task, project_names))
    logger.debug("{} of {} tasks matched", len(matched), len(snapshot.items))


@app.command()
def collaborators(
    project: Annotated[str, typer.Argument(help="Project name or id")],
    as_json: bool = typer.Option(False, "--json", help="Print JSON"),
) -> None:
    """List the collaborators of a shared project."""

    async def run() -> tuple[str, str, CacheSnapshot]:
        manager = _manager()
        await manager.ensure_fresh()
        found = await resolve_project(manager, project)
        return found.id, found.name, manager.snapshot

    project_id, project_name, snapshot = _run(run())
    directory = CollaboratorDirectory.from_snapshot(snapshot)
    rows = []
    for state in directory.states_for(project_id):
        collaborator = directory.get(state.user_id)
        if collaborator is None:
            continue
        rows.append(
            {
                "id": collaborator.id,
                "name": collaborator.full_name,
                "email": collaborator.email,
                "status": state.state,
                "is_you": collaborator.id == directory.owner_id,
            }
        )

    if as_json:
        typer.echo(json.dumps({"collaborators": rows}, indent=2, ensure_ascii=False))
        return
    if not rows:
        typer.echo(
            f'No collaborators found for project "{project_name}"; '
            "it may be a personal project."
        )
        return
    typer.echo(f"{'Name':<25} {'Email':<30} Status")
    for row in rows:
        status = f"{row['status']} (you)" if row["is_you"] else row["status"]
        name = directory.display_name(row["id"])
        typer.echo(f"{name:<25} {row['email'] or '':<30} {status}")


@app.command(name="cache-path")
def cache_path() -> None:
    """Print the location of the cache file."""
    typer.echo(str(_store().path))


@app.command(name="clear-cache")
def clear_cache() -> None:
    """Delete the cache file; the next command does a full sync."""
    store = _store()
    try:
        store.delete()
    except TodoistCacheError as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e
    typer.echo(f"Removed {store.path}")
