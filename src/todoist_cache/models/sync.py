"""Sync protocol request and response types."""

import json
import uuid
from dataclasses import dataclass, field
from typing import Any

from todoist_cache.models.resources import User, require_object
from todoist_cache.models.snapshot import COLLECTION_TYPES, FULL_SYNC_TOKEN


@dataclass(frozen=True)
class SyncCommand:
    """One write command.

    ``uuid`` is the idempotency key; ``temp_id`` lets later commands in the
    same batch refer to a resource this command creates.
    """

    type: str
    args: dict[str, Any]
    uuid: str = field(default_factory=lambda: str(uuid.uuid4()))
    temp_id: str | None = None

    @classmethod
    def new(cls, command_type: str, args: dict[str, Any]) -> "SyncCommand":
        return cls(type=command_type, args=args)

    @classmethod
    def with_temp_id(cls, command_type: str, temp_id: str, args: dict[str, Any]) -> "SyncCommand":
        return cls(type=command_type, args=args, temp_id=temp_id)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type, "uuid": self.uuid, "args": self.args}
        if self.temp_id is not None:
            data["temp_id"] = self.temp_id
        return data


@dataclass(frozen=True)
class SyncRequest:
    sync_token: str = FULL_SYNC_TOKEN
    resource_types: tuple[str, ...] = ("all",)
    commands: tuple[SyncCommand, ...] = ()

    @classmethod
    def full_sync(cls) -> "SyncRequest":
        return cls()

    @classmethod
    def incremental(cls, sync_token: str) -> "SyncRequest":
        return cls(sync_token=sync_token)

    def with_commands(self, commands: list[SyncCommand]) -> "SyncRequest":
        return SyncRequest(
            sync_token=self.sync_token,
            resource_types=self.resource_types,
            commands=self.commands + tuple(commands),
        )

    @property
    def is_full_sync(self) -> bool:
        return self.sync_token == FULL_SYNC_TOKEN

    def to_form(self) -> dict[str, str]:
        """Encode as form fields; list values are JSON strings."""
        form = {"sync_token": self.sync_token}
        if self.resource_types:
            form["resource_types"] = json.dumps(list(self.resource_types))
        if self.commands:
            form["commands"] = json.dumps([c.to_dict() for c in self.commands])
        return form


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one command: ``"ok"`` or an error code and message."""

    ok: bool
    error_code: int | None = None
    error: str | None = None

    @classmethod
    def from_raw(cls, raw: Any) -> "CommandResult":
        if raw == "ok":
            return cls(ok=True)
        if isinstance(raw, dict):
            return cls(ok=False, error_code=raw.get("error_code"), error=raw.get("error"))
        return cls(ok=False, error=str(raw))


@dataclass
class SyncResponse:
    """A decoded sync response.

    ``resources`` maps each snapshot collection name to the records the
    server returned for it (possibly with deletion markers).
    """

    sync_token: str
    full_sync: bool = False
    full_sync_date_utc: str | None = None
    resources: dict[str, list[Any]] = field(default_factory=dict)
    user: User | None = None
    sync_status: dict[str, CommandResult] = field(default_factory=dict)
    temp_id_mapping: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SyncResponse":
        """Decode a raw JSON response; unknown top-level keys are ignored."""
        require_object("sync response", data)
        if not isinstance(data.get("sync_token"), str):
            msg = f"sync response has no sync_token: keys {sorted(data.keys())!r}"
            raise ValueError(msg)
        resources: dict[str, list[Any]] = {}
        for name, record_type in COLLECTION_TYPES.items():
            raw = data.get(name) or []
            resources[name] = [record_type.from_dict(x) for x in raw]  # type: ignore[attr-defined]
        status = require_object("sync_status", data.get("sync_status") or {})
        temp_ids = require_object("temp_id_mapping", data.get("temp_id_mapping") or {})
        return cls(
            sync_token=data["sync_token"],
            full_sync=bool(data.get("full_sync", False)),
            full_sync_date_utc=data.get("full_sync_date_utc"),
            resources=resources,
            user=User.from_dict(data["user"]) if data.get("user") else None,
            sync_status={k: CommandResult.from_raw(v) for k, v in status.items()},
            temp_id_mapping=dict(temp_ids),
        )

    def records(self, name: str) -> list[Any]:
        return self.resources.get(name, [])

    def has_errors(self) -> bool:
        return any(not r.ok for r in self.sync_status.values())

    def errors(self) -> list[tuple[str, CommandResult]]:
        return [(uuid_, r) for uuid_, r in self.sync_status.items() if not r.ok]

    def real_id(self, temp_id: str) -> str | None:
        return self.temp_id_mapping.get(temp_id)
