"""Configuration loading for bookrental."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .document import DEFAULT_COLLECTIONS


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8080
    data_path: str = "~/.bookrental/data.json"


@dataclass
class SyncConfig:
    """Configuration for the client-side sync manager."""

    server_url: str = "http://localhost:8080"
    pull_interval_seconds: float = 30.0
    debounce_seconds: float = 1.0
    pause_when_hidden: bool = True
    request_timeout_seconds: float = 10.0


@dataclass
class Config:
    server: ServerConfig = field(default_factory=ServerConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    collections: list[str] = field(default_factory=lambda: list(DEFAULT_COLLECTIONS))


def _get_env(key: str, default: Any = None) -> Any:
    """Get environment variable with BOOKRENTAL_ prefix."""
    return os.environ.get(f"BOOKRENTAL_{key}", default)


def _parse_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to config."""
    # Server overrides
    if host := _get_env("SERVER_HOST"):
        config.server.host = host
    if port := _get_env("SERVER_PORT"):
        config.server.port = int(port)
    if data_path := _get_env("DATA_PATH"):
        config.server.data_path = data_path

    # Sync overrides
    if server_url := _get_env("SYNC_URL"):
        config.sync.server_url = server_url
    if pull_interval := _get_env("PULL_INTERVAL"):
        config.sync.pull_interval_seconds = float(pull_interval)
    if debounce := _get_env("DEBOUNCE"):
        config.sync.debounce_seconds = float(debounce)
    if pause := _get_env("PAUSE_WHEN_HIDDEN"):
        config.sync.pause_when_hidden = _parse_bool(pause)

    return config


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to YAML config file. If None, uses default config.

    Returns:
        Loaded Config object.
    """
    config = Config()

    if config_path:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                data = yaml.safe_load(f) or {}

            # Parse server config
            if "server" in data:
                server_data = data["server"]
                config.server = ServerConfig(
                    host=server_data.get("host", config.server.host),
                    port=server_data.get("port", config.server.port),
                    data_path=server_data.get("data_path", config.server.data_path),
                )

            # Parse sync config
            if "sync" in data:
                sync_data = data["sync"]
                config.sync = SyncConfig(
                    server_url=sync_data.get("server_url", config.sync.server_url),
                    pull_interval_seconds=sync_data.get(
                        "pull_interval_seconds", config.sync.pull_interval_seconds
                    ),
                    debounce_seconds=sync_data.get(
                        "debounce_seconds", config.sync.debounce_seconds
                    ),
                    pause_when_hidden=sync_data.get(
                        "pause_when_hidden", config.sync.pause_when_hidden
                    ),
                    request_timeout_seconds=sync_data.get(
                        "request_timeout_seconds", config.sync.request_timeout_seconds
                    ),
                )

            if "collections" in data:
                config.collections = list(data["collections"] or [])

    # Apply environment variable overrides
    config = _apply_env_overrides(config)

    if not config.collections:
        config.collections = list(DEFAULT_COLLECTIONS)

    return config
