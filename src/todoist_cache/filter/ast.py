"""Filter expression syntax tree.

Nodes are frozen dataclasses: a parsed tree is immutable and can be evaluated
against any number of tasks. Nodes without fields compare equal to each other,
so ``Today() == Today()``.
"""

from dataclasses import dataclass

# --- Assignment targets ---


@dataclass(frozen=True)
class Me:
    """The current user."""


@dataclass(frozen=True)
class Others:
    """Anyone except the current user."""


@dataclass(frozen=True)
class User:
    """A collaborator named in the expression, resolved per task project."""

    name: str


AssignTarget = Me | Others | User


# --- Dates ---


@dataclass(frozen=True)
class Today:
    pass


@dataclass(frozen=True)
class Tomorrow:
    pass


@dataclass(frozen=True)
class Overdue:
    pass


@dataclass(frozen=True)
class NoDate:
    pass


@dataclass(frozen=True)
class WithinDays:
    """Due in ``[today, today + days)``."""

    days: int


@dataclass(frozen=True)
class OnDate:
    """Due on this month and day, in any year."""

    month: int
    day: int


# --- Priority, labels, location ---


@dataclass(frozen=True)
class Priority:
    """User-facing priority: 1 is the most urgent."""

    level: int


@dataclass(frozen=True)
class Label:
    name: str


@dataclass(frozen=True)
class NoLabels:
    pass


@dataclass(frozen=True)
class Project:
    name: str


@dataclass(frozen=True)
class ProjectWithSubprojects:
    name: str


@dataclass(frozen=True)
class Section:
    name: str


# --- Assignment ---


@dataclass(frozen=True)
class AssignedTo:
    target: AssignTarget


@dataclass(frozen=True)
class AssignedBy:
    target: AssignTarget


@dataclass(frozen=True)
class Assigned:
    pass


@dataclass(frozen=True)
class NoAssignee:
    pass


# --- Combinators ---


@dataclass(frozen=True)
class And:
    left: "Filter"
    right: "Filter"


@dataclass(frozen=True)
class Or:
    left: "Filter"
    right: "Filter"


@dataclass(frozen=True)
class Not:
    operand: "Filter"


Filter = (
    Today
    | Tomorrow
    | Overdue
    | NoDate
    | WithinDays
    | OnDate
    | Priority
    | Label
    | NoLabels
    | Project
    | ProjectWithSubprojects
    | Section
    | AssignedTo
    | AssignedBy
    | Assigned
    | NoAssignee
    | And
    | Or
    | Not
)
