"""Resource, snapshot and sync protocol models."""

from todoist_cache.models.resources import (
    Collaborator,
    CollaboratorState,
    Due,
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
from todoist_cache.models.snapshot import COLLECTION_TYPES, FULL_SYNC_TOKEN, CacheSnapshot
from todoist_cache.models.sync import CommandResult, SyncCommand, SyncRequest, SyncResponse

__all__ = [
    "COLLECTION_TYPES",
    "FULL_SYNC_TOKEN",
    "CacheSnapshot",
    "Collaborator",
    "CollaboratorState",
    "CommandResult",
    "Due",
    "Label",
    "Note",
    "Project",
    "ProjectNote",
    "Reminder",
    "SavedFilter",
    "Section",
    "SyncCommand",
    "SyncRequest",
    "SyncResponse",
    "Task",
    "User",
]
