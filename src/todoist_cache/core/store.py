"""Durable storage of the cache snapshot as a JSON file."""

import asyncio
import json
import os
import tempfile
from pathlib import Path

from loguru import logger

from todoist_cache.config import CACHE_FILENAME, resolve_cache_dir
from todoist_cache.errors import CacheStoreError
from todoist_cache.models.snapshot import CacheSnapshot


class CacheStore:
    """Read and write the cache file.

    Writes go to a temporary sibling file which is flushed, fsynced and then
    renamed over the cache file, so a crash leaves either the previous or the
    new snapshot on disk, never a partial one.

    Cross-process writers are not coordinated: the last rename wins.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else self.default_path()

    @staticmethod
    def default_path() -> Path:
        """Return ``<platform cache dir>/td/cache.json``."""
        return resolve_cache_dir() / CACHE_FILENAME

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> CacheSnapshot:
        """Load the snapshot, falling back to an empty one.

        A missing file is normal on first use. An unreadable or corrupt file is
        logged and discarded; the empty snapshot forces a full sync.
        """
        try:
            contents = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("No cache file at {}, starting empty", self.path)
            return CacheSnapshot()
        except OSError as e:
            logger.warning("Cannot read cache file {} ({}), starting empty", self.path, e)
            return CacheSnapshot()

        try:
            return CacheSnapshot.from_dict(json.loads(contents))
        except (ValueError, TypeError, KeyError) as e:
            logger.warning("Cache file {} is corrupt ({}), discarding it", self.path, e)
            return CacheSnapshot()

    def save(self, snapshot: CacheSnapshot) -> None:
        """Atomically write the snapshot.

        Raises:
            CacheStoreError: If serialization or any filesystem step fails.
        """
        self._write(self._serialize(snapshot))

    async def save_async(self, snapshot: CacheSnapshot) -> None:
        """Like :meth:`save`, with the file I/O done off the event loop.

        The snapshot is serialized before yielding, so later in-memory changes
        cannot leak into this write.
        """
        contents = self._serialize(snapshot)
        await asyncio.to_thread(self._write, contents)

    def delete(self) -> None:
        """Remove the cache file. A missing file is not an error."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            msg = f"Cannot delete cache file {str(self.path)!r}: {e}"
            raise CacheStoreError(msg) from e

    def _serialize(self, snapshot: CacheSnapshot) -> str:
        try:
            return json.dumps(snapshot.to_dict(), ensure_ascii=False, indent=2) + "\n"
        except (TypeError, ValueError) as e:
            msg = f"Cannot serialize cache snapshot: {e}"
            raise CacheStoreError(msg) from e

    def _write(self, contents: str) -> None:
        parent = self.path.parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                dir=parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
        except OSError as e:
            msg = f"Cannot prepare cache directory {str(parent)!r}: {e}"
            raise CacheStoreError(msg) from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(contents)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, self.path)
        except OSError as e:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            msg = f"Cannot write cache file {str(self.path)!r}: {e}"
            raise CacheStoreError(msg) from e

        logger.debug("Saved cache to {} ({} bytes)", self.path, len(contents))
