"""Shared test fixtures."""

from datetime import UTC

import pytest

from todoist_cache.collaborators import CollaboratorDirectory
from todoist_cache.filter import FilterContext
from todoist_cache.models.resources import Collaborator, CollaboratorState, Project, Section
from tests.unit.fakes import TODAY

PROJECTS = (
    Project(id="inbox", name="Inbox", inbox_project=True),
    Project(id="work", name="Work"),
    Project(id="work-eng", name="Engineering", parent_id="work"),
    Project(id="work-eng-be", name="Backend", parent_id="work-eng"),
    Project(id="home", name="Home"),
    Project(id="shared", name="Shared Plans"),
)

SECTIONS = (
    Section(id="s-next", name="Next", project_id="work"),
    Section(id="s-later", name="Later", project_id="work"),
)

COLLABORATORS = (
    Collaborator(id="me", full_name="Pat Owner", email="pat@example.com"),
    Collaborator(id="u-alice", full_name="Alice Smith", email="alice@example.com"),
    Collaborator(id="u-alicia", full_name="Alicia Chen", email="achen@example.com"),
    Collaborator(id="u-bob", full_name="Bob Jones", email="bob@example.com"),
)

COLLABORATOR_STATES = (
    CollaboratorState(project_id="shared", user_id="me", state="active"),
    CollaboratorState(project_id="shared", user_id="u-alice", state="active"),
    CollaboratorState(project_id="shared", user_id="u-alicia", state="active"),
    CollaboratorState(project_id="shared", user_id="u-bob", state="invited"),
    CollaboratorState(project_id="work", user_id="me", state="active"),
    CollaboratorState(project_id="work", user_id="u-bob", state="active"),
)


@pytest.fixture
def directory() -> CollaboratorDirectory:
    return CollaboratorDirectory(
        collaborators=COLLABORATORS, states=COLLABORATOR_STATES, owner_id="me"
    )


@pytest.fixture
def context(directory: CollaboratorDirectory) -> FilterContext:
    return FilterContext(
        today=TODAY,
        timezone=UTC,
        projects=PROJECTS,
        sections=SECTIONS,
        current_user_id="me",
        directory=directory,
    )
