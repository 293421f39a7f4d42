"""Resource records returned by the Todoist sync protocol.

Each record is a frozen dataclass. ``from_dict`` validates required fields and
ignores unknown keys so that new server-side fields never break deserialization.
"""

import dataclasses
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Any, ClassVar, Self


def require_object(name: str, data: Any) -> dict[str, Any]:
    """Return ``data`` if it is a JSON object, else raise ValueError naming ``name``."""
    if not isinstance(data, dict):
        msg = f"{name}: expected an object, got {type(data).__name__}"
        raise ValueError(msg)
    return data


def _build(cls: type, data: dict[str, Any], **overrides: Any) -> Any:
    """Construct a dataclass from a raw payload, keeping only known fields."""
    require_object(cls.__name__, data)
    kwargs: dict[str, Any] = {}
    missing: list[str] = []
    for f in dataclasses.fields(cls):
        if f.name in overrides:
            kwargs[f.name] = overrides[f.name]
        elif f.name in data:
            kwargs[f.name] = data[f.name]
        elif f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
            missing.append(f.name)
    if missing:
        msg = f"{cls.__name__}: missing required field(s) {missing!r}"
        raise ValueError(msg)
    return cls(**kwargs)


class Record:
    """Shared serialization for resource records."""

    def to_dict(self) -> dict[str, Any]:
        out = dataclasses.asdict(self)  # type: ignore[call-overload]
        for key, value in out.items():
            if isinstance(value, tuple):
                out[key] = list(value)
        return out  # type: ignore[no-any-return]


@dataclass(frozen=True)
class Due(Record):
    """A due date; ``date`` is ``YYYY-MM-DD`` or a local ``YYYY-MM-DDTHH:MM:SS``."""

    date: str
    datetime: str | None = None
    is_recurring: bool = False
    string: str | None = None
    timezone: str | None = None
    lang: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return _build(cls, data)  # type: ignore[no-any-return]

    def local_date(self, tz: tzinfo) -> date | None:
        """Return the calendar date this is due on, as seen in ``tz``.

        Timestamps carrying a UTC offset are converted to ``tz``; floating
        timestamps and plain dates are taken as-is.
        """
        raw = self.datetime or self.date
        if "T" in raw:
            try:
                moment = datetime.fromisoformat(raw.replace("Z", "+00:00"))
            except ValueError:
                moment = None
            if moment is not None:
                if moment.tzinfo is not None:
                    moment = moment.astimezone(tz)
                return moment.date()
        try:
            return date.fromisoformat(self.date[:10])
        except ValueError:
            return None


def _due_or_none(value: Any) -> Due | None:
    if value is None:
        return None
    if isinstance(value, Due):
        return value
    return Due.from_dict(value)


@dataclass(frozen=True)
class Task(Record):
    """A task (``item`` in the sync protocol).

    ``priority`` is the wire value: 4 is the most urgent, shown to users as p1.
    """

    id: str
    project_id: str
    content: str
    description: str = ""
    priority: int = 1
    due: Due | None = None
    deadline: dict[str, Any] | None = None
    parent_id: str | None = None
    child_order: int = 0
    section_id: str | None = None
    day_order: int = 0
    is_collapsed: bool = False
    labels: tuple[str, ...] = ()
    user_id: str | None = None
    added_by_uid: str | None = None
    assigned_by_uid: str | None = None
    responsible_uid: str | None = None
    checked: bool = False
    is_deleted: bool = False
    added_at: str | None = None
    updated_at: str | None = None
    completed_at: str | None = None
    duration: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        require_object(cls.__name__, data)
        return _build(  # type: ignore[no-any-return]
            cls,
            data,
            due=_due_or_none(data.get("due")),
            labels=tuple(data.get("labels") or ()),
        )

    @property
    def display_priority(self) -> int:
        """User-facing priority level: 1 (urgent) .. 4 (normal)."""
        return 5 - self.priority


@dataclass(frozen=True)
class Project(Record):
    id: str
    name: str
    color: str | None = None
    parent_id: str | None = None
    child_order: int = 0
    is_collapsed: bool = False
    shared: bool = False
    can_assign_tasks: bool = False
    is_deleted: bool = False
    is_archived: bool = False
    is_favorite: bool = False
    view_style: str | None = None
    inbox_project: bool = False
    folder_id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return _build(cls, data)  # type: ignore[no-any-return]


@dataclass(frozen=True)
class Section(Record):
    id: str
    name: str
    project_id: str
    section_order: int = 0
    is_collapsed: bool = False
    is_deleted: bool = False
    is_archived: bool = False
    archived_at: str | None = None
    added_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return _build(cls, data)  # type: ignore[no-any-return]


@dataclass(frozen=True)
class Label(Record):
    id: str
    name: str
    color: str | None = None
    item_order: int = 0
    is_deleted: bool = False
    is_favorite: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return _build(cls, data)  # type: ignore[no-any-return]


@dataclass(frozen=True)
class Note(Record):
    """A comment on a task."""

    id: str
    item_id: str
    content: str
    posted_at: str | None = None
    posted_uid: str | None = None
    is_deleted: bool = False
    file_attachment: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return _build(cls, data)  # type: ignore[no-any-return]


@dataclass(frozen=True)
class ProjectNote(Record):
    """A comment on a project."""

    id: str
    project_id: str
    content: str
    posted_at: str | None = None
    posted_uid: str | None = None
    is_deleted: bool = False
    file_attachment: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return _build(cls, data)  # type: ignore[no-any-return]


@dataclass(frozen=True)
class Reminder(Record):
    id: str
    item_id: str
    type: str = "relative"
    due: Due | None = None
    minute_offset: int | None = None
    notify_uid: str | None = None
    is_deleted: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        require_object(cls.__name__, data)
        return _build(cls, data, due=_due_or_none(data.get("due")))  # type: ignore[no-any-return]


@dataclass(frozen=True)
class SavedFilter(Record):
    """A saved filter; ``query`` uses the filter expression syntax."""

    id: str
    name: str
    query: str
    color: str | None = None
    item_order: int = 0
    is_deleted: bool = False
    is_favorite: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return _build(cls, data)  # type: ignore[no-any-return]


@dataclass(frozen=True)
class Collaborator(Record):
    """A user who shares at least one project with the current user."""

    id: str
    email: str | None = None
    full_name: str | None = None
    timezone: str | None = None
    image_id: str | None = None
    is_deleted: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return _build(cls, data)  # type: ignore[no-any-return]

    @property
    def display_name(self) -> str:
        return self.full_name or self.email or self.id


@dataclass(frozen=True)
class CollaboratorState(Record):
    """Membership of one user in one project (``active`` or ``invited``)."""

    ACTIVE: ClassVar[str] = "active"

    project_id: str
    user_id: str
    state: str
    is_deleted: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        require_object(cls.__name__, data)
        deleted = bool(data.get("is_deleted")) or data.get("state") == "deleted"
        return _build(cls, data, is_deleted=deleted)  # type: ignore[no-any-return]

    @property
    def id(self) -> str:
        return f"{self.project_id}:{self.user_id}"

    @property
    def is_active(self) -> bool:
        return self.state == self.ACTIVE and not self.is_deleted


@dataclass(frozen=True)
class User(Record):
    """The profile of the account that owns the cache."""

    id: str
    email: str | None = None
    full_name: str | None = None
    timezone: str | None = None
    inbox_project_id: str | None = None
    start_page: str | None = None
    start_day: int | None = None
    date_format: int | None = None
    time_format: int | None = None
    is_premium: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        require_object(cls.__name__, data)
        timezone = data.get("timezone")
        tz_info = data.get("tz_info")
        if timezone is None and isinstance(tz_info, dict):
            timezone = tz_info.get("timezone")
        return _build(cls, data, timezone=timezone)  # type: ignore[no-any-return]
