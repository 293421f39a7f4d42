"""The cache snapshot: everything persisted between invocations."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from todoist_cache.models.resources import (
    Collaborator,
    CollaboratorState,
    Label,
    Note,
    Project,
    ProjectNote,
    Reminder,
    SavedFilter,
    Section,
    Task,
    User,
)

# Sync token meaning "no continuation token; request everything".
FULL_SYNC_TOKEN = "*"

# Snapshot collection name -> record type. Order is the on-disk order.
COLLECTION_TYPES: dict[str, type] = {
    "items": Task,
    "projects": Project,
    "labels": Label,
    "sections": Section,
    "notes": Note,
    "project_notes": ProjectNote,
    "reminders": Reminder,
    "filters": SavedFilter,
    "collaborators": Collaborator,
    "collaborator_states": CollaboratorState,
}


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _format_timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass
class CacheSnapshot:
    """Local mirror of the sync protocol state.

    ``sync_token`` is either :data:`FULL_SYNC_TOKEN` (never synced, or reset
    after the remote rejected the token) or an opaque continuation token.
    Record ids are unique within each collection.
    """

    sync_token: str = FULL_SYNC_TOKEN
    last_sync_at: datetime | None = None
    full_sync_at: datetime | None = None
    items: list[Task] = field(default_factory=list)
    projects: list[Project] = field(default_factory=list)
    labels: list[Label] = field(default_factory=list)
    sections: list[Section] = field(default_factory=list)
    notes: list[Note] = field(default_factory=list)
    project_notes: list[ProjectNote] = field(default_factory=list)
    reminders: list[Reminder] = field(default_factory=list)
    filters: list[SavedFilter] = field(default_factory=list)
    collaborators: list[Collaborator] = field(default_factory=list)
    collaborator_states: list[CollaboratorState] = field(default_factory=list)
    user: User | None = None

    def needs_full_sync(self) -> bool:
        """True when no valid sync token is held."""
        return self.sync_token == FULL_SYNC_TOKEN

    def reset_sync_token(self) -> None:
        self.sync_token = FULL_SYNC_TOKEN

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "sync_token": self.sync_token,
            "last_sync_at": _format_timestamp(self.last_sync_at),
            "full_sync_at": _format_timestamp(self.full_sync_at),
        }
        for name in COLLECTION_TYPES:
            data[name] = [record.to_dict() for record in getattr(self, name)]
        data["user"] = self.user.to_dict() if self.user is not None else None
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CacheSnapshot":
        """Rebuild a snapshot from :meth:`to_dict` output.

        Raises:
            ValueError: If a record is malformed or a timestamp cannot be parsed.
        """
        if not isinstance(data, dict) or not isinstance(data.get("sync_token"), str):
            msg = "cache snapshot must be an object with a string 'sync_token'"
            raise ValueError(msg)
        snapshot = cls(
            sync_token=data["sync_token"],
            last_sync_at=_parse_timestamp(data.get("last_sync_at")),
            full_sync_at=_parse_timestamp(data.get("full_sync_at")),
        )
        for name, record_type in COLLECTION_TYPES.items():
            raw = data.get(name) or []
            records = [record_type.from_dict(x) for x in raw]  # type: ignore[attr-defined]
            setattr(snapshot, name, records)
        if data.get("user"):
            snapshot.user = User.from_dict(data["user"])
        return snapshot
