"""Collaborator lookup scoped to a project."""

from collections.abc import Sequence
from dataclasses import dataclass

from todoist_cache.errors import AmbiguousCollaboratorError, CollaboratorNotFoundError
from todoist_cache.models.resources import Collaborator, CollaboratorState
from todoist_cache.models.snapshot import CacheSnapshot


@dataclass(frozen=True)
class CollaboratorDirectory:
    """Read-only view of collaborators and their per-project membership.

    ``owner_id`` is the account that owns the cache; it is never counted when
    deciding whether a project is shared.
    """

    collaborators: Sequence[Collaborator] = ()
    states: Sequence[CollaboratorState] = ()
    owner_id: str | None = None

    @classmethod
    def from_snapshot(cls, snapshot: CacheSnapshot) -> "CollaboratorDirectory":
        return cls(
            collaborators=tuple(snapshot.collaborators),
            states=tuple(snapshot.collaborator_states),
            owner_id=snapshot.user.id if snapshot.user else None,
        )

    def get(self, user_id: str) -> Collaborator | None:
        for collaborator in self.collaborators:
            if collaborator.id == user_id:
                return collaborator
        return None

    def states_for(self, project_id: str) -> list[CollaboratorState]:
        return [s for s in self.states if s.project_id == project_id and not s.is_deleted]

    def active_for(self, project_id: str) -> list[Collaborator]:
        """Collaborators with an ``active`` state in the project, in directory order."""
        active_ids = {s.user_id for s in self.states_for(project_id) if s.is_active}
        return [c for c in self.collaborators if c.id in active_ids and not c.is_deleted]

    def display_name(self, user_id: str) -> str | None:
        collaborator = self.get(user_id)
        return collaborator.display_name if collaborator else None


def resolve(query: str, project_id: str, directory: CollaboratorDirectory) -> str:
    """Resolve a name or email to the id of an active collaborator of ``project_id``.

    Matching is case-insensitive and tried in tiers: exact full name, exact
    email, then substring of either. The first tier with any match decides.

    Raises:
        CollaboratorNotFoundError: If no tier matches.
        AmbiguousCollaboratorError: If the deciding tier matches several
            collaborators; ``candidates`` lists all their display names.
    """
    needle = query.strip().lower()
    pool = directory.active_for(project_id)

    tiers = (
        lambda c: (c.full_name or "").lower() == needle,
        lambda c: (c.email or "").lower() == needle,
        lambda c: needle in (c.full_name or "").lower() or needle in (c.email or "").lower(),
    )
    if needle:
        for matches_tier in tiers:
            matches = [c for c in pool if matches_tier(c)]
            if len(matches) == 1:
                return matches[0].id
            if matches:
                raise AmbiguousCollaboratorError(query, [c.display_name for c in matches])

    raise CollaboratorNotFoundError(query, project_id)


def is_shared(project_id: str, directory: CollaboratorDirectory) -> bool:
    """True if someone other than the owner is an active member of the project.

    Without a known owner, a project counts as shared once two different users
    are active in it.
    """
    active_users = {s.user_id for s in directory.states_for(project_id) if s.is_active}
    if directory.owner_id is None:
        return len(active_users) > 1
    return bool(active_users - {directory.owner_id})
