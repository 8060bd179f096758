"""
Core layer - Config store, wire types and HTTP client.

This layer provides:
- The persisted hub identity (config.json)
- The response envelope and typed resource dataclasses
- Low-level HTTP client with auth and error classification
"""

from agenthq_cli.core.client import APIClient
from agenthq_cli.core.config import (
    DEFAULT_HUB_URL,
    Config,
    clear_config,
    config_path,
    load_config,
    save_config,
)
from agenthq_cli.core.errors import (
    APIError,
    CLIError,
    ConfigError,
    DecodeError,
    NetworkError,
    ValidationError,
)
from agenthq_cli.core.types import (
    Agent,
    Channel,
    Envelope,
    ErrorInfo,
    Insight,
    Notification,
    Page,
    Pagination,
    Post,
    Task,
)

__all__ = [
    "APIClient",
    "APIError",
    "Agent",
    "CLIError",
    "Channel",
    "Config",
    "ConfigError",
    "DEFAULT_HUB_URL",
    "DecodeError",
    "Envelope",
    "ErrorInfo",
    "Insight",
    "NetworkError",
    "Notification",
    "Page",
    "Pagination",
    "Post",
    "Task",
    "ValidationError",
    "clear_config",
    "config_path",
    "load_config",
    "save_config",
]
