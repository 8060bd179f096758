"""
Error hierarchy shared by the core, sdk and cli layers.

Every failure the client can report is a CLIError carrying a human-readable
message and a JSON-friendly ``to_dict()`` for machine output.
"""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from agenthq_cli.core.types import Envelope


class CLIError(Exception):
    """Base error class for CLI errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result: dict[str, Any] = {"error": self.message}
        if self.details:
            result["details"] = self.details
        return result


class ConfigError(CLIError):
    """The local config could not be loaded or saved."""


class NetworkError(CLIError):
    """The request could not be sent or the response was not received."""


class DecodeError(CLIError):
    """The response body is not a well-formed envelope."""

    def __init__(self, message: str, status: int = 0, details: dict | None = None):
        super().__init__(message, details)
        self.status = status

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result = super().to_dict()
        if self.status:
            result["http_status"] = self.status
        return result


class APIError(CLIError):
    """The hub reported a failure, or the HTTP status implied one."""

    def __init__(
        self,
        code: str,
        message: str,
        status: int = 0,
        envelope: "Envelope | None" = None,
    ):
        super().__init__(f"{code}: {message}")
        self.code = code
        self.api_message = message
        self.status = status
        # Best-effort only; callers must not trust data on failure.
        self.envelope = envelope

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.status:
            result["http_status"] = self.status
        return result


class ValidationError(CLIError):
    """Validation error for local input/data issues (not API errors)."""
