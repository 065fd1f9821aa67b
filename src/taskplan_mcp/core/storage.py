"""
Persistence backends for the task store.

The store hands a complete ``StoreSnapshot`` to the backend after every
mutating operation and reads one back at startup. ``JsonFileStorage``
keeps it in a single JSON file written atomically (temp file + rename)
under a file lock; ``MemoryStorage`` keeps it in process memory.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from filelock import FileLock, Timeout
from pydantic import ValidationError

from taskplan_mcp.core.errors import StorageError
from taskplan_mcp.core.models import StoreSnapshot

logger = logging.getLogger(__name__)

LOCK_TIMEOUT_SECONDS = 10


class StorageBackend(ABC):
    """Load/save primitives consumed by the task store."""

    @abstractmethod
    def load(self) -> StoreSnapshot:
        """Return the persisted snapshot (empty if nothing is stored yet)."""

    @abstractmethod
    def save(self, snapshot: StoreSnapshot) -> None:
        """Durably replace the persisted snapshot.

        Raises:
            StorageError: If the snapshot cannot be written
        """

    def describe(self) -> str:
        return type(self).__name__


class MemoryStorage(StorageBackend):
    """Keeps a serialized copy of the snapshot in memory."""

    def __init__(self) -> None:
        self._data: Optional[dict] = None
        self.save_count = 0

    def load(self) -> StoreSnapshot:
        if self._data is None:
            return StoreSnapshot()
        return StoreSnapshot.model_validate(self._data)

    def save(self, snapshot: StoreSnapshot) -> None:
        self._data = snapshot.model_dump(mode="json")
        self.save_count += 1

    def describe(self) -> str:
        return "memory"


class JsonFileStorage(StorageBackend):
    """Single-file JSON storage with atomic writes and file locking."""

    def __init__(self, path: Union[str, Path], lock_timeout: float = LOCK_TIMEOUT_SECONDS):
        """
        Args:
            path: Location of the JSON store file
            lock_timeout: Seconds to wait for the file lock
        """
        self.path = Path(path).expanduser()
        self.lock_path = self.path.with_name(self.path.name + ".lock")
        self.lock_timeout = lock_timeout

    def _ensure_directory(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(
                f"Cannot create storage directory {self.path.parent}: {exc}",
                remediation="Check filesystem permissions for the storage path",
            ) from exc

    def _lock(self) -> FileLock:
        return FileLock(str(self.lock_path), timeout=self.lock_timeout)

    def load(self) -> StoreSnapshot:
        if not self.path.exists():
            logger.debug("No store file at %s, starting empty", self.path)
            return StoreSnapshot()

        self._ensure_directory()
        try:
            with self._lock():
                raw = json.loads(self.path.read_text(encoding="utf-8"))
        except Timeout as exc:
            raise StorageError(
                f"Timed out waiting for lock on {self.path}",
                remediation="Another process holds the store lock; retry later",
            ) from exc
        except json.JSONDecodeError as exc:
            raise StorageError(
                f"Store file {self.path} is not valid JSON: {exc}",
                remediation="Restore the store file from a backup or remove it",
            ) from exc
        except OSError as exc:
            raise StorageError(f"Cannot read store file {self.path}: {exc}") from exc

        if not isinstance(raw, dict):
            raise StorageError(f"Store file {self.path} does not contain an object")

        # Older files may lack the counters blob; the allocator re-seeds lazily
        if not isinstance(raw.get("id_counters"), dict):
            if "id_counters" in raw:
                logger.warning("Resetting malformed id counters in %s", self.path)
            raw["id_counters"] = {}

        try:
            return StoreSnapshot.model_validate(raw)
        except ValidationError as exc:
            raise StorageError(f"Store file {self.path} has an invalid layout: {exc}") from exc

    def save(self, snapshot: StoreSnapshot) -> None:
        self._ensure_directory()
        payload = json.dumps(snapshot.model_dump(mode="json"), indent=2)
        temp_file = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            with self._lock():
                temp_file.write_text(payload, encoding="utf-8")
                temp_file.replace(self.path)
        except Timeout as exc:
            raise StorageError(
                f"Timed out waiting for lock on {self.path}",
                remediation="Another process holds the store lock; retry later",
            ) from exc
        except OSError as exc:
            if temp_file.exists():
                temp_file.unlink()
            raise StorageError(
                f"Cannot write store file {self.path}: {exc}",
                remediation="Check filesystem permissions and free space",
            ) from exc
        logger.debug("Saved store to %s", self.path)

    def describe(self) -> str:
        return str(self.path)


def create_storage(path: Optional[Union[str, Path]]) -> StorageBackend:
    """Build a backend from a configured path; "memory" selects ``MemoryStorage``."""
    if path is None or str(path) == "memory":
        return MemoryStorage()
    return JsonFileStorage(path)
