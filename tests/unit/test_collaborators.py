"""Tests for collaborator resolution and shared-project detection."""

import pytest

from todoist_cache.collaborators import CollaboratorDirectory, is_shared, resolve
from todoist_cache.errors import AmbiguousCollaboratorError, CollaboratorNotFoundError
from todoist_cache.models import CacheSnapshot, Collaborator, CollaboratorState, User


def test_ambiguous_prefix_lists_every_candidate(directory: CollaboratorDirectory) -> None:
    with pytest.raises(AmbiguousCollaboratorError) as excinfo:
        resolve("ali", "shared", directory)
    assert sorted(excinfo.value.candidates) == ["Alice Smith", "Alicia Chen"]
    assert "Alice Smith" in str(excinfo.value)
    assert "Alicia Chen" in str(excinfo.value)


def test_exact_name_wins_over_substring(directory: CollaboratorDirectory) -> None:
    assert resolve("alice smith", "shared", directory) == "u-alice"
    assert resolve("ALICIA CHEN", "shared", directory) == "u-alicia"


def test_exact_email_match(directory: CollaboratorDirectory) -> None:
    assert resolve("Alice@Example.com", "shared", directory) == "u-alice"


def test_unique_substring_match(directory: CollaboratorDirectory) -> None:
    assert resolve("chen", "shared", directory) == "u-alicia"
    assert resolve("achen@", "shared", directory) == "u-alicia"


def test_invited_collaborators_are_excluded(directory: CollaboratorDirectory) -> None:
    with pytest.raises(CollaboratorNotFoundError) as excinfo:
        resolve("Bob", "shared", directory)
    assert excinfo.value.project_id == "shared"
    assert resolve("Bob", "work", directory) == "u-bob"


def test_not_found_in_personal_project(directory: CollaboratorDirectory) -> None:
    with pytest.raises(CollaboratorNotFoundError):
        resolve("alice", "home", directory)


def test_blank_query_is_not_found(directory: CollaboratorDirectory) -> None:
    with pytest.raises(CollaboratorNotFoundError):
        resolve("  ", "shared", directory)


def test_ambiguity_at_exact_tier() -> None:
    directory = CollaboratorDirectory(
        collaborators=(
            Collaborator(id="1", full_name="Sam Lee", email="sam1@example.com"),
            Collaborator(id="2", full_name="Sam Lee", email="sam2@example.com"),
        ),
        states=(
            CollaboratorState(project_id="p", user_id="1", state="active"),
            CollaboratorState(project_id="p", user_id="2", state="active"),
        ),
    )
    with pytest.raises(AmbiguousCollaboratorError) as excinfo:
        resolve("sam lee", "p", directory)
    assert excinfo.value.candidates == ["Sam Lee", "Sam Lee"]
    assert resolve("sam2@example.com", "p", directory) == "2"


def test_only_owner_is_not_shared() -> None:
    directory = CollaboratorDirectory(
        states=(CollaboratorState(project_id="p", user_id="me", state="active"),),
        owner_id="me",
    )
    assert not is_shared("p", directory)


def test_one_active_non_owner_makes_shared() -> None:
    states = (
        CollaboratorState(project_id="p", user_id="me", state="active"),
        CollaboratorState(project_id="p", user_id="friend", state="active"),
    )
    assert is_shared("p", CollaboratorDirectory(states=states, owner_id="me"))


def test_invited_or_deleted_member_does_not_make_shared() -> None:
    states = (
        CollaboratorState(project_id="p", user_id="me", state="active"),
        CollaboratorState(project_id="p", user_id="a", state="invited"),
        CollaboratorState(project_id="p", user_id="b", state="active", is_deleted=True),
    )
    assert not is_shared("p", CollaboratorDirectory(states=states, owner_id="me"))


def test_project_without_states_is_personal(directory: CollaboratorDirectory) -> None:
    assert not is_shared("home", directory)
    assert is_shared("shared", directory)


def test_directory_from_snapshot_sets_owner() -> None:
    snapshot = CacheSnapshot(
        user=User(id="me"),
        collaborator_states=[CollaboratorState(project_id="p", user_id="me", state="active")],
    )
    directory = CollaboratorDirectory.from_snapshot(snapshot)
    assert directory.owner_id == "me"
    assert not is_shared("p", directory)


def test_display_name_falls_back_to_email_then_id() -> None:
    directory = CollaboratorDirectory(
        collaborators=(
            Collaborator(id="1", full_name="Sam Lee", email="sam@example.com"),
            Collaborator(id="2", email="kim@example.com"),
            Collaborator(id="3"),
        )
    )
    assert directory.display_name("1") == "Sam Lee"
    assert directory.display_name("2") == "kim@example.com"
    assert directory.display_name("3") == "3"
    assert directory.display_name("missing") is None
