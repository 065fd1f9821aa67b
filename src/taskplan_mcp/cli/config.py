"""CLI configuration and store access.

Resolves the store location from ``--db-path`` or the shared server
configuration and opens the task store on first use.
"""

from pathlib import Path
from typing import Optional

from taskplan_mcp.config import ServerConfig, get_config as get_server_config
from taskplan_mcp.core.hierarchy import TaskHierarchyStore
from taskplan_mcp.core.storage import create_storage


class CLIContext:
    """CLI execution context with resolved configuration.

    Holds the effective configuration for a CLI command, including
    any overrides from command-line options.
    """

    def __init__(
        self,
        db_path: Optional[str] = None,
        server_config: Optional[ServerConfig] = None,
    ):
        """Initialize CLI context.

        Args:
            db_path: Explicit store path override from --db-path.
            server_config: Optional server config (uses global if not provided).
        """
        self._db_path_override = db_path
        self._config = server_config or get_server_config()
        self._store: Optional[TaskHierarchyStore] = None

    @property
    def config(self) -> ServerConfig:
        return self._config

    @property
    def db_path(self) -> Optional[Path]:
        """Store file path, or None for the in-memory backend.

        Resolution order:
        1. CLI --db-path option (highest priority)
        2. ServerConfig.storage_path (from env/TOML/defaults)
        """
        if self._db_path_override:
            if self._db_path_override == "memory":
                return None
            return Path(self._db_path_override).expanduser()
        return self._config.get_storage_path()

    @property
    def store(self) -> TaskHierarchyStore:
        """Open (once) and return the task store.

        Raises:
            StorageError: If the store file cannot be read.
        """
        if self._store is None:
            self._store = TaskHierarchyStore(create_storage(self.db_path))
        return self._store


def create_context(db_path: Optional[str] = None) -> CLIContext:
    """Create a CLI context with optional overrides."""
    return CLIContext(db_path=db_path)
