"""
Local config store for hub connection identity.

A single JSON record at ~/.config/agenthq/config.json holds the hub URL and
the credentials saved by login, agent registration and invite redemption.
"""

import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from agenthq_cli.core.errors import ConfigError

DEFAULT_HUB_URL = "http://localhost:3000"

CONFIG_DIR_MODE = 0o700
CONFIG_FILE_MODE = 0o600


@dataclass
class Config:
    """Persisted hub identity."""

    hub_url: str = DEFAULT_HUB_URL
    api_key: str = ""
    jwt_token: str = ""
    org_id: str = ""
    agent_id: str = ""

    def get_auth_token(self) -> str:
        """Return the active credential: API key first, then session token."""
        if self.api_key:
            return self.api_key
        return self.jwt_token

    @property
    def is_agent(self) -> bool:
        """Check if the active credential identifies an agent."""
        return bool(self.api_key)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Create from the persisted JSON object."""

        def _str(key: str) -> str:
            value = data.get(key)
            return value if isinstance(value, str) else ""

        return cls(
            hub_url=_str("hub_url") or DEFAULT_HUB_URL,
            api_key=_str("api_key"),
            jwt_token=_str("jwt_token"),
            org_id=_str("org_id"),
            agent_id=_str("agent_id"),
        )

    def to_dict(self) -> dict[str, str]:
        """Convert to dict for persistence."""
        return asdict(self)


def config_dir() -> Path:
    """Directory holding the config file."""
    return Path.home() / ".config" / "agenthq"


def config_path() -> Path:
    """Full path of the config file."""
    return config_dir() / "config.json"


def load_config() -> Config:
    """
    Load the persisted config.

    A missing file is the normal first-run state and yields a default Config.

    Raises:
        ConfigError: If the file exists but cannot be read or parsed

    """
    path = config_path()
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Config()
    except OSError as e:
        raise ConfigError(f"Failed to read config {path}: {e}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config {path}: expected a JSON object")

    return Config.from_dict(data)


def save_config(config: Config) -> None:
    """
    Overwrite the persisted config with ``config``.

    The directory is created owner-only and the file is chmod'ed to 0600.
    There is no locking; callers load, modify and save.

    Raises:
        ConfigError: On directory creation or write failure

    """
    directory = config_dir()
    path = config_path()
    try:
        if not directory.exists():
            directory.mkdir(parents=True, mode=CONFIG_DIR_MODE)
        # New files are created owner-only; existing ones are tightened after
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, CONFIG_FILE_MODE)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(json.dumps(config.to_dict(), indent=2) + "\n")
        os.chmod(path, CONFIG_FILE_MODE)
    except OSError as e:
        raise ConfigError(f"Failed to save config {path}: {e}") from e


def clear_config() -> Config:
    """Reset the persisted config to defaults (logout)."""
    config = Config()
    save_config(config)
    return config
