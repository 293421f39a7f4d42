"""Exception hierarchy for the Todoist cache."""

from collections.abc import Sequence

# Substrings (lowercase) that mark a validation error as a rejected sync token.
_SYNC_TOKEN_MARKERS = ("sync_token", "sync token", "invalid token")


class TodoistCacheError(Exception):
    """Base class for every error raised by this package."""


# --- Cache storage ---


class CacheStoreError(TodoistCacheError):
    """Failed to read, write or locate the cache file."""


# --- Transport / API ---


class ApiError(TodoistCacheError):
    """A failure reported by the remote sync transport."""

    is_retryable = False
    exit_code = 2


class SyncTokenInvalidError(ApiError):
    """The remote rejected the sync token; a full sync is required."""

    def __init__(self, message: str = "sync token invalid or expired, full sync required") -> None:
        super().__init__(message)
        self.message = message


class AuthError(ApiError):
    def __init__(self, message: str) -> None:
        super().__init__(f"Auth error: {message}")
        self.message = message


class ValidationError(ApiError):
    def __init__(self, message: str, *, field: str | None = None) -> None:
        if field:
            super().__init__(f"Validation error on {field}: {message}")
        else:
            super().__init__(f"Validation error: {message}")
        self.message = message
        self.field = field


class NotFoundError(ApiError):
    def __init__(self, resource: str, identifier: str) -> None:
        super().__init__(f"{resource} not found: {identifier}")
        self.resource = resource
        self.identifier = identifier


class RateLimitedError(ApiError):
    is_retryable = True
    exit_code = 4

    def __init__(self, retry_after: int | None = None) -> None:
        if retry_after is not None:
            super().__init__(f"Rate limited, retry after {retry_after} seconds")
        else:
            super().__init__("Rate limited")
        self.retry_after = retry_after


class NetworkError(ApiError):
    is_retryable = True
    exit_code = 3

    def __init__(self, message: str) -> None:
        super().__init__(f"Network error: {message}")
        self.message = message


class HttpError(ApiError):
    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"HTTP error {status}: {message}")
        self.status = status
        self.message = message


def is_sync_token_message(message: str) -> bool:
    """Return True if an API error message refers to a rejected sync token."""
    lowered = message.lower()
    return any(marker in lowered for marker in _SYNC_TOKEN_MARKERS)


def classify_api_error(status: int, message: str, *, retry_after: int | None = None) -> ApiError:
    """Convert an HTTP status and error message into a typed ApiError.

    This is the only place where error strings are inspected; everything past
    the transport works with the resulting exception types.
    """
    if status == 400 and is_sync_token_message(message):
        return SyncTokenInvalidError(message)
    if status in (401, 403):
        return AuthError(message)
    if status == 404:
        return NotFoundError("resource", message)
    if status == 429:
        return RateLimitedError(retry_after)
    if status == 400:
        return ValidationError(message)
    return HttpError(status, message)


class CommandFailedError(ApiError):
    """One or more commands in a batch were rejected by the remote."""

    def __init__(self, failures: Sequence[tuple[str, int, str]]) -> None:
        details = "; ".join(f"{uuid}: {error} (code {code})" for uuid, code, error in failures)
        super().__init__(f"{len(failures)} command(s) failed: {details}")
        self.failures = list(failures)


# --- Orchestrator ---


class SyncError(TodoistCacheError):
    """A sync could not be completed, even after token recovery."""

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


def format_not_found_error(resource_type: str, identifier: str, suggestion: str | None) -> str:
    base = (
        f"{resource_type} '{identifier}' not found. "
        "Try running 'td sync' to refresh your cache."
    )
    if suggestion:
        return f"{base} Did you mean '{suggestion}'?"
    return base


class ResourceNotFoundError(TodoistCacheError):
    """A project, section, label or task could not be found in the cache."""

    def __init__(
        self, resource_type: str, identifier: str, *, suggestion: str | None = None
    ) -> None:
        super().__init__(format_not_found_error(resource_type, identifier, suggestion))
        self.resource_type = resource_type
        self.identifier = identifier
        self.suggestion = suggestion


class AmbiguousIdError(TodoistCacheError):
    """An id prefix matches more than one record."""

    def __init__(self, resource_type: str, prefix: str, candidates: Sequence[str]) -> None:
        lines = [
            f'Ambiguous {resource_type} ID "{prefix}"',
            "",
            f"Multiple {resource_type}s match this prefix:",
        ]
        lines += [f"  {c}" for c in candidates[:5]]
        if len(candidates) > 5:
            lines.append(f"  ... and {len(candidates) - 5} more")
        lines += ["", "Please use a longer prefix."]
        super().__init__("\n".join(lines))
        self.resource_type = resource_type
        self.prefix = prefix
        self.candidates = list(candidates)


# --- Filter parsing ---


class FilterError(TodoistCacheError):
    """A filter expression could not be parsed."""

    position: int | None = None


class EmptyExpressionError(FilterError):
    def __init__(self) -> None:
        super().__init__("filter expression is empty")


class UnexpectedTokenError(FilterError):
    def __init__(self, token: str, position: int, expected: str | None = None) -> None:
        msg = f"unexpected token '{token}' at position {position}"
        if expected:
            msg += f" (expected {expected})"
        super().__init__(msg)
        self.token = token
        self.position = position
        self.expected = expected


class UnexpectedEndOfInputError(FilterError):
    def __init__(self, position: int, expected: str | None = None) -> None:
        msg = f"unexpected end of expression after position {position}"
        if expected:
            msg += f" (expected {expected})"
        super().__init__(msg)
        self.position = position
        self.expected = expected


class UnclosedParenthesisError(FilterError):
    def __init__(self, position: int) -> None:
        super().__init__(f"unclosed parenthesis at position {position} (expected ')')")
        self.position = position


class InvalidPriorityError(FilterError):
    def __init__(self, value: str, position: int) -> None:
        super().__init__(f"invalid priority '{value}' at position {position} (expected 1-4)")
        self.value = value
        self.position = position


class UnknownKeywordError(FilterError):
    def __init__(self, keyword: str, position: int) -> None:
        super().__init__(
            f"unknown filter keyword '{keyword}' at position {position} "
            "(expected a date, priority, label, project, section or assignment filter)"
        )
        self.keyword = keyword
        self.position = position


class UnknownCharactersError(FilterError):
    def __init__(self, errors: Sequence[tuple[str, int]]) -> None:
        if len(errors) == 1:
            char, pos = errors[0]
            detail = f"'{char}' at position {pos}"
        else:
            detail = ", ".join(f"'{char}' at {pos}" for char, pos in errors)
        super().__init__(f"unknown character(s) in filter: {detail}")
        self.errors = list(errors)
        self.position = errors[0][1] if errors else None


# --- Collaborator resolution ---


class ResolveError(TodoistCacheError):
    """A collaborator name could not be resolved to a single user."""

    query: str


class CollaboratorNotFoundError(ResolveError):
    def __init__(self, query: str, project_id: str) -> None:
        super().__init__(f"No active collaborator matching '{query}' in project {project_id}")
        self.query = query
        self.project_id = project_id


class AmbiguousCollaboratorError(ResolveError):
    def __init__(self, query: str, candidates: Sequence[str]) -> None:
        names = ", ".join(candidates)
        super().__init__(f"'{query}' matches multiple collaborators: {names}")
        self.query = query
        self.candidates = list(candidates)


class FilterEvaluationError(TodoistCacheError):
    """A filter could not be evaluated against a task."""

    def __init__(self, name: str, cause: ResolveError) -> None:
        super().__init__(f"cannot evaluate assignment filter for '{name}': {cause}")
        self.name = name
        self.cause = cause
