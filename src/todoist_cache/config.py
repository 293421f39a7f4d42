"""Configuration constants for the Todoist cache."""

import os
import sys
from datetime import timedelta
from pathlib import Path

# Environment variable holding the API token. Checked before the token files.
API_TOKEN_ENV: str = "TODOIST_API_TOKEN"

# API token location. First file found is used.
API_TOKEN_FILES: list[Path] = [
    Path("~/.config/td/token").expanduser(),
    Path("~/.config/todoist-token.txt").expanduser(),
]

SYNC_API_URL: str = "https://api.todoist.com/api/v1/sync"

APP_NAME: str = "td"
CACHE_FILENAME: str = "cache.json"

# A read older than this triggers a sync.
DEFAULT_STALE_THRESHOLD: timedelta = timedelta(minutes=5)

# Transport tuning.
REQUEST_TIMEOUT_SECS: float = 30.0
MAX_RETRIES: int = 3
INITIAL_BACKOFF_SECS: int = 1
MAX_BACKOFF_SECS: int = 30


def resolve_cache_dir() -> Path:
    """Return the platform cache directory for this application."""
    if sys.platform == "win32":
        base = os.environ.get("LOCALAPPDATA")
        if base:
            return Path(base) / APP_NAME / "cache"
    elif sys.platform == "darwin":
        return Path("~/Library/Caches").expanduser() / APP_NAME

    xdg = os.environ.get("XDG_CACHE_HOME")
    if xdg:
        return Path(xdg) / APP_NAME
    return Path("~/.cache").expanduser() / APP_NAME
