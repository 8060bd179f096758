"""
Core HTTP client for the AgentHQ hub API.

Handles bearer authentication, request building and decoding of the
response envelope into an Envelope or a classified error.
"""

import http.client
import json
import urllib.error
import urllib.parse
import urllib.request
from typing import Any

from agenthq_cli.core.config import load_config
from agenthq_cli.core.errors import APIError, DecodeError, NetworkError
from agenthq_cli.core.types import Envelope

API_PREFIX = "/api/v1"


def encode_query_value(value: Any) -> str:
    """Stringify a query value; booleans become lowercase true/false."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class APIClient:
    """
    Low-level HTTP client for the AgentHQ hub.

    Handles:
    - Bearer authentication (API key or session token)
    - HTTP methods (GET, POST, PATCH, DELETE)
    - Envelope decoding and error classification

    Every call performs exactly one request: no retries, no caching.
    """

    def __init__(
        self,
        base_url: str,
        token: str = "",
        timeout: float | None = None,
        opener: urllib.request.OpenerDirector | None = None,
    ):
        """
        Initialize the API client explicitly.

        Args:
            base_url: Hub base URL (e.g. http://localhost:3000)
            token: Bearer credential; empty means no Authorization header
            timeout: Socket timeout in seconds (None keeps the transport default)
            opener: urllib opener to send requests through

        """
        self.base_url = base_url.rstrip("/")
        self.token = token or ""
        self.timeout = timeout
        self._opener = opener or urllib.request.build_opener()

    @classmethod
    def from_config(cls, timeout: float | None = None) -> "APIClient":
        """
        Build a client from the persisted config (ambient construction).

        The hub URL and credential come only from the config file.

        Raises:
            ConfigError: If the config cannot be loaded

        """
        config = load_config()
        return cls(config.hub_url, config.get_auth_token(), timeout=timeout)

    def build_url(self, path: str, query: dict[str, Any] | None = None) -> str:
        """Build the full URL for ``path`` with ``query`` percent-encoded."""
        url = f"{self.base_url}{path}"
        if query:
            # Filter out None values; sort for a stable encoding
            filtered = sorted((k, encode_query_value(v)) for k, v in query.items() if v is not None)
            if filtered:
                separator = "&" if "?" in path else "?"
                url = f"{url}{separator}{urllib.parse.urlencode(filtered)}"
        return url

    def build_headers(self, has_body: bool) -> dict[str, str]:
        """Headers for a request, with Authorization only when a credential is set."""
        headers = {"Accept": "application/json"}
        if has_body:
            headers["Content-Type"] = "application/json"
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        query: dict[str, Any] | None = None,
    ) -> Envelope:
        """
        Make an HTTP request to the hub.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE)
            path: API path (e.g., /api/v1/posts)
            body: JSON-serializable request body, or None for no payload
            query: Query parameters; None values are dropped

        Returns:
            Decoded success envelope

        Raises:
            NetworkError: If no response was received or it could not be read
            DecodeError: If the body is not a well-formed envelope
            APIError: If the envelope reports failure

        """
        url = self.build_url(path, query)
        data = json.dumps(body).encode("utf-8") if body is not None else None
        req = urllib.request.Request(
            url,
            data=data,
            headers=self.build_headers(data is not None),
            method=method,
        )

        open_kwargs: dict[str, Any] = {}
        if self.timeout is not None:
            open_kwargs["timeout"] = self.timeout

        try:
            response = self._opener.open(req, **open_kwargs)
        except urllib.error.HTTPError as e:
            # Error statuses still carry an envelope
            response = e
        except urllib.error.URLError as e:
            raise NetworkError(f"request failed: {e.reason}") from e
        except (OSError, http.client.HTTPException) as e:
            raise NetworkError(f"request failed: {e}") from e

        with response:
            status = response.getcode() or 0
            try:
                raw = response.read()
            except (OSError, http.client.HTTPException) as e:
                raise NetworkError(f"failed to read response body: {e}") from e

        try:
            envelope = Envelope.from_dict(json.loads(raw.decode("utf-8")))
        except (UnicodeDecodeError, ValueError) as e:
            raise DecodeError(f"failed to parse response: {e}", status=status) from e

        if not envelope.success:
            if envelope.error is not None:
                raise APIError(envelope.error.code, envelope.error.message, status, envelope)
            raise APIError(
                f"HTTP_{status}",
                f"request failed with status {status}",
                status,
                envelope,
            )

        return envelope

    # =========================================================================
    # HTTP Methods
    # =========================================================================

    def get(self, path: str, query: dict[str, Any] | None = None) -> Envelope:
        """Make a GET request."""
        return self.request("GET", path, query=query)

    def post(self, path: str, body: Any = None) -> Envelope:
        """Make a POST request."""
        return self.request("POST", path, body)

    def patch(self, path: str, body: Any = None) -> Envelope:
        """Make a PATCH request."""
        return self.request("PATCH", path, body)

    def delete(self, path: str) -> Envelope:
        """Make a DELETE request."""
        return self.request("DELETE", path)

    # =========================================================================
    # Versioned API helpers
    # =========================================================================

    def api_path(self, path: str) -> str:
        """Prefix ``path`` with the versioned API root."""
        return f"{API_PREFIX}{path}"
