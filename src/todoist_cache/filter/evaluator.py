"""Evaluate filter syntax trees against tasks."""

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta, tzinfo
from functools import cached_property
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loguru import logger

from todoist_cache import collaborators
from todoist_cache.collaborators import CollaboratorDirectory
from todoist_cache.errors import FilterEvaluationError, ResolveError
from todoist_cache.filter import ast
from todoist_cache.models.resources import Label, Project, Section, Task
from todoist_cache.models.snapshot import CacheSnapshot

# Deepest project nesting followed when expanding ##project.
MAX_PROJECT_DEPTH = 32


def load_timezone(name: str | None) -> tzinfo:
    """Return the named zone, or UTC if it is missing or unknown."""
    if not name:
        return UTC
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone {!r}, using UTC for date filters", name)
        return UTC


@dataclass(frozen=True)
class FilterContext:
    """Everything a filter may refer to besides the task itself.

    ``today`` is the current calendar date in ``timezone``; both are fixed for
    the lifetime of the context so one query sees a single "now".
    """

    today: date
    timezone: tzinfo = UTC
    projects: Sequence[Project] = ()
    sections: Sequence[Section] = ()
    labels: Sequence[Label] = ()
    current_user_id: str | None = None
    directory: CollaboratorDirectory = field(default_factory=CollaboratorDirectory)

    @classmethod
    def from_snapshot(
        cls,
        snapshot: CacheSnapshot,
        *,
        now: datetime | None = None,
        timezone: str | None = None,
    ) -> "FilterContext":
        """Build a context from the cache, in the user's timezone unless overridden."""
        tz_name = timezone or (snapshot.user.timezone if snapshot.user else None)
        tz = load_timezone(tz_name)
        moment = now or datetime.now(UTC)
        return cls(
            today=moment.astimezone(tz).date(),
            timezone=tz,
            projects=tuple(snapshot.projects),
            sections=tuple(snapshot.sections),
            labels=tuple(snapshot.labels),
            current_user_id=snapshot.user.id if snapshot.user else None,
            directory=CollaboratorDirectory.from_snapshot(snapshot),
        )

    def project_ids(self, name: str) -> set[str]:
        lowered = name.lower()
        return {p.id for p in self.projects if p.name.lower() == lowered}

    def section_ids(self, name: str) -> set[str]:
        lowered = name.lower()
        return {s.id for s in self.sections if s.name.lower() == lowered}

    @cached_property
    def _children(self) -> dict[str, list[str]]:
        children: dict[str, list[str]] = defaultdict(list)
        for project in self.projects:
            if project.parent_id:
                children[project.parent_id].append(project.id)
        return children

    def project_ids_with_subprojects(self, name: str) -> set[str]:
        """Ids of the named project(s) and all their descendants.

        Traversal stops at :data:`MAX_PROJECT_DEPTH` levels and never revisits
        a project, so a cyclic parent chain terminates.
        """
        found: set[str] = set()
        frontier = list(self.project_ids(name))
        depth = 0
        while frontier and depth <= MAX_PROJECT_DEPTH:
            next_frontier: list[str] = []
            for project_id in frontier:
                if project_id in found:
                    continue
                found.add(project_id)
                next_frontier.extend(self._children.get(project_id, ()))
            frontier = next_frontier
            depth += 1
        return found


class FilterEvaluator:
    """Match tasks against one parsed filter.

    Name lookups are memoized per evaluator, so reuse one instance across the
    tasks of a single query.
    """

    def __init__(self, node: ast.Filter, context: FilterContext) -> None:
        self.node = node
        self.context = context
        self._project_ids: dict[tuple[str, bool], set[str]] = {}
        self._section_ids: dict[str, set[str]] = {}
        self._resolved: dict[tuple[str, str], str] = {}

    def matches(self, task: Task) -> bool:
        """Return whether ``task`` satisfies the filter.

        Raises:
            FilterEvaluationError: If a named assignee cannot be resolved in
                the task's project.
        """
        return self._eval(self.node, task)

    def filter_tasks(self, tasks: Iterable[Task]) -> list[Task]:
        return [task for task in tasks if self._eval(self.node, task)]

    def _eval(self, node: ast.Filter, task: Task) -> bool:
        match node:
            case ast.And(left, right):
                return self._eval(left, task) and self._eval(right, task)
            case ast.Or(left, right):
                return self._eval(left, task) or self._eval(right, task)
            case ast.Not(operand):
                return not self._eval(operand, task)

            case ast.Today():
                return self._due(task) == self.context.today
            case ast.Tomorrow():
                return self._due(task) == self.context.today + timedelta(days=1)
            case ast.Overdue():
                due = self._due(task)
                return not task.checked and due is not None and due < self.context.today
            case ast.NoDate():
                return task.due is None
            case ast.WithinDays(days):
                due = self._due(task)
                today = self.context.today
                return due is not None and today <= due < today + timedelta(days=days)
            case ast.OnDate(month, day):
                due = self._due(task)
                return due is not None and (due.month, due.day) == (month, day)

            case ast.Priority(level):
                return task.display_priority == level

            case ast.Label(name):
                lowered = name.lower()
                return any(label.lower() == lowered for label in task.labels)
            case ast.NoLabels():
                return not task.labels

            case ast.Project(name):
                return task.project_id in self._projects(name, subprojects=False)
            case ast.ProjectWithSubprojects(name):
                return task.project_id in self._projects(name, subprojects=True)
            case ast.Section(name):
                if name not in self._section_ids:
                    self._section_ids[name] = self.context.section_ids(name)
                return task.section_id in self._section_ids[name]

            case ast.AssignedTo(target):
                return self._assignee_matches(task.responsible_uid, target, task)
            case ast.AssignedBy(target):
                return self._assignee_matches(task.assigned_by_uid, target, task)
            case ast.Assigned():
                return task.responsible_uid is not None
            case ast.NoAssignee():
                return task.responsible_uid is None

        msg = f"unsupported filter node: {node!r}"
        raise TypeError(msg)

    def _due(self, task: Task) -> date | None:
        if task.due is None:
            return None
        return task.due.local_date(self.context.timezone)

    def _projects(self, name: str, *, subprojects: bool) -> set[str]:
        key = (name, subprojects)
        if key not in self._project_ids:
            if subprojects:
                self._project_ids[key] = self.context.project_ids_with_subprojects(name)
            else:
                self._project_ids[key] = self.context.project_ids(name)
        return self._project_ids[key]

    def _assignee_matches(self, uid: str | None, target: ast.AssignTarget, task: Task) -> bool:
        me = self.context.current_user_id
        match target:
            case ast.Me():
                return uid is not None and uid == me
            case ast.Others():
                return uid is not None and uid != me
            case ast.User(name):
                if uid is None:
                    return False
                return uid == self._resolve(name, task.project_id)
        msg = f"unsupported assignment target: {target!r}"
        raise TypeError(msg)

    def _resolve(self, name: str, project_id: str) -> str:
        key = (name, project_id)
        if key not in self._resolved:
            try:
                self._resolved[key] = collaborators.resolve(
                    name, project_id, self.context.directory
                )
            except ResolveError as e:
                raise FilterEvaluationError(name, e) from e
        return self._resolved[key]


def evaluate(node: ast.Filter, task: Task, context: FilterContext) -> bool:
    return FilterEvaluator(node, context).matches(task)


def filter_collection(
    node: ast.Filter, tasks: Iterable[Task], context: FilterContext
) -> list[Task]:
    """Return the tasks matching ``node``, in their original order."""
    return FilterEvaluator(node, context).filter_tasks(tasks)
