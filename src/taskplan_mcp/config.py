"""
Server configuration for taskplan-mcp.

Supports configuration via:
1. Environment variables (highest priority)
2. TOML config file (taskplan-mcp.toml)
3. Default values (lowest priority)

Environment variables:
- TASKPLAN_MCP_DB_PATH: Path to the JSON store file, or "memory"
  (MCP_DB_PATH is honoured when this is unset)
- TASKPLAN_MCP_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
- TASKPLAN_MCP_STRUCTURED_LOGGING: JSON log lines (true/false)
- TASKPLAN_MCP_CONFIG_FILE: Path to TOML config file

Example taskplan-mcp.toml:

    [storage]
    path = "~/.taskplan-mcp/taskplan.json"

    [logging]
    level = "DEBUG"
    structured = false

    [server]
    name = "taskplan-mcp"
"""

import logging
import os
from dataclasses import dataclass, field
from importlib.metadata import PackageNotFoundError, version as get_package_version
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # Python < 3.11 fallback

from taskplan_mcp.core.logging_config import configure_logging
from taskplan_mcp.core.storage import StorageBackend, create_storage

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_PATH = "~/.taskplan-mcp/taskplan.json"
MEMORY_STORAGE = "memory"
DEFAULT_CONFIG_FILES = ("taskplan-mcp.toml", ".taskplan-mcp.toml")


def _get_version() -> str:
    try:
        return get_package_version("taskplan-mcp")
    except PackageNotFoundError:
        return "0.1.0"


_PACKAGE_VERSION = _get_version()


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes", "on"}


@dataclass
class ServerConfig:
    """Server configuration with support for env vars and TOML overrides."""

    # Storage configuration
    storage_path: str = DEFAULT_STORAGE_PATH

    # Logging configuration
    log_level: str = "INFO"
    structured_logging: bool = True

    # Server configuration
    server_name: str = "taskplan-mcp"
    server_version: str = field(default_factory=lambda: _PACKAGE_VERSION)

    @classmethod
    def from_env(cls, config_file: Optional[str] = None) -> "ServerConfig":
        """
        Create configuration from environment variables and optional TOML file.

        Priority (highest to lowest):
        1. Environment variables
        2. TOML config file
        3. Default values
        """
        config = cls()

        toml_path = config_file or os.environ.get("TASKPLAN_MCP_CONFIG_FILE")
        if toml_path:
            config._load_toml(Path(toml_path))
        else:
            for default_path in DEFAULT_CONFIG_FILES:
                if Path(default_path).exists():
                    config._load_toml(Path(default_path))
                    break

        config._load_env()
        return config

    def _load_toml(self, path: Path) -> None:
        """Load configuration from TOML file."""
        if not path.exists():
            logger.warning(f"Config file not found: {path}")
            return

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.error(f"Error loading config file {path}: {e}")
            return

        if "storage" in data:
            storage = data["storage"]
            if "path" in storage:
                self.storage_path = str(storage["path"])

        if "logging" in data:
            log = data["logging"]
            if "level" in log:
                self.log_level = str(log["level"]).upper()
            if "structured" in log:
                self.structured_logging = _parse_bool(log["structured"])

        if "server" in data:
            server = data["server"]
            if "name" in server:
                self.server_name = str(server["name"])
            if "version" in server:
                self.server_version = str(server["version"])

    def _load_env(self) -> None:
        """Load configuration from environment variables."""
        db_path = os.environ.get("TASKPLAN_MCP_DB_PATH") or os.environ.get("MCP_DB_PATH")
        if db_path:
            self.storage_path = db_path

        if level := os.environ.get("TASKPLAN_MCP_LOG_LEVEL"):
            self.log_level = level.upper()

        if structured := os.environ.get("TASKPLAN_MCP_STRUCTURED_LOGGING"):
            self.structured_logging = _parse_bool(structured)

    @property
    def uses_memory_storage(self) -> bool:
        return self.storage_path == MEMORY_STORAGE

    def get_storage_path(self) -> Optional[Path]:
        """Resolved store file path, or None for the in-memory backend."""
        if self.uses_memory_storage:
            return None
        return Path(self.storage_path).expanduser()

    def create_storage(self) -> StorageBackend:
        """Build the storage backend this configuration points at."""
        return create_storage(self.get_storage_path())

    def setup_logging(self) -> None:
        """Configure the package logger (stderr) from these settings."""
        configure_logging(level=self.log_level, structured=self.structured_logging)


# Global configuration instance
_config: Optional[ServerConfig] = None


def get_config() -> ServerConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = ServerConfig.from_env()
    return _config


def set_config(config: ServerConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
