"""HTTP transport for the Todoist sync endpoint."""

import asyncio
import os
from typing import Any

import requests
from loguru import logger

from todoist_cache.config import (
    API_TOKEN_ENV,
    API_TOKEN_FILES,
    INITIAL_BACKOFF_SECS,
    MAX_BACKOFF_SECS,
    MAX_RETRIES,
    REQUEST_TIMEOUT_SECS,
    SYNC_API_URL,
)
from todoist_cache.errors import (
    ApiError,
    AuthError,
    NetworkError,
    RateLimitedError,
    classify_api_error,
)
from todoist_cache.models.sync import SyncRequest, SyncResponse


def load_api_token() -> tuple[str, str]:
    """Return ``(token, source)`` from the environment or the first token file.

    Raises:
        AuthError: If no token is configured.
    """
    token = os.environ.get(API_TOKEN_ENV, "").strip()
    if token:
        return token, f"${API_TOKEN_ENV}"
    for token_path in API_TOKEN_FILES:
        try:
            token = token_path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            continue
        if token:
            return token, str(token_path)
    files = ", ".join(str(p) for p in API_TOKEN_FILES)
    msg = f"No API token: set ${API_TOKEN_ENV} or create one of {files}"
    raise AuthError(msg)


def backoff_delay(attempt: int, retry_after: int | None = None) -> int:
    """Seconds to wait before retry number ``attempt`` (0-based).

    ``Retry-After`` wins when present; both are capped at ``MAX_BACKOFF_SECS``.
    """
    if retry_after is not None:
        return min(retry_after, MAX_BACKOFF_SECS)
    return min(INITIAL_BACKOFF_SECS * (1 << attempt), MAX_BACKOFF_SECS)


def _retry_after(response: requests.Response) -> int | None:
    value = response.headers.get("Retry-After")
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or response.reason or "unknown error"
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.text.strip()


class TodoistApi:
    """Sync API client.

    Requests run in a worker thread so the event loop stays free; awaiting
    callers may cancel, and the response of a cancelled call is discarded.
    Rate-limit and network failures are retried with exponential backoff.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        url: str = SYNC_API_URL,
        max_retries: int = MAX_RETRIES,
        timeout: float = REQUEST_TIMEOUT_SECS,
    ) -> None:
        if token is None:
            token, source = load_api_token()
        else:
            source = "argument"
        self.api_token = token
        self.url = url
        self.max_retries = max_retries
        self.timeout = timeout
        self.sess = requests.Session()
        self.sess.headers["Authorization"] = f"Bearer {token}"
        logger.debug("API ready: token from {}, url {}", source, url)

    def call(self, form: dict[str, str]) -> dict[str, Any]:
        """POST one form-encoded request and return the decoded JSON body.

        Raises:
            NetworkError: On connection failures and timeouts.
            ApiError: The classified error for any non-2xx status.
        """
        try:
            r = self.sess.post(self.url, data=form, timeout=self.timeout)
        except requests.RequestException as e:
            raise NetworkError(str(e)) from e

        if not r.ok:
            raise classify_api_error(
                r.status_code, _error_message(r), retry_after=_retry_after(r)
            )
        try:
            rv: dict[str, Any] = r.json()
        except ValueError as e:
            msg = f"Invalid JSON in sync response: {e}"
            raise NetworkError(msg) from e
        return rv

    async def execute(self, request: SyncRequest) -> SyncResponse:
        form = request.to_form()
        attempt = 0
        while True:
            logger.debug(
                "POST sync (token {}, {} command(s), attempt {})",
                request.sync_token[:12],
                len(request.commands),
                attempt + 1,
            )
            try:
                raw = await asyncio.to_thread(self.call, form)
            except ApiError as e:
                if not e.is_retryable or attempt >= self.max_retries:
                    raise
                retry_after = e.retry_after if isinstance(e, RateLimitedError) else None
                delay = backoff_delay(attempt, retry_after)
                logger.warning("{}; retrying in {}s", e, delay)
                await asyncio.sleep(delay)
                attempt += 1
                continue

            try:
                return SyncResponse.from_dict(raw)
            except (ValueError, TypeError, KeyError) as e:
                msg = f"Malformed sync response: {e}"
                raise ApiError(msg) from e
