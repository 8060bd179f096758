"""Pytest configuration - loads .env for live tests and provides a stub hub."""

import json
import threading
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlsplit

import pytest
from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)


# =============================================================================
# Stub Hub
# =============================================================================


@dataclass
class RecordedRequest:
    """A request received by the stub hub."""

    method: str
    path: str
    query: dict[str, list[str]]
    headers: dict[str, str]
    body: bytes = b""

    @property
    def json(self) -> Any:
        return json.loads(self.body) if self.body else None


@dataclass
class StubHub:
    """In-process hub serving canned responses per (method, path)."""

    url: str = ""
    requests: list[RecordedRequest] = field(default_factory=list)
    routes: dict[tuple[str, str], tuple[int, bytes]] = field(default_factory=dict)

    def respond(self, method: str, path: str, body: Any, status: int = 200) -> None:
        """Serve ``body`` (JSON-encoded unless already bytes) for method+path."""
        raw = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
        self.routes[(method, path)] = (status, raw)

    def ok(self, method: str, path: str, data: Any = None, **extra: Any) -> None:
        """Serve a success envelope."""
        self.respond(method, path, {"success": True, "data": data, **extra})

    @property
    def last(self) -> RecordedRequest:
        return self.requests[-1]


def _make_handler(hub: StubHub) -> type[BaseHTTPRequestHandler]:
    class Handler(BaseHTTPRequestHandler):
        def _handle(self) -> None:
            parts = urlsplit(self.path)
            length = int(self.headers.get("Content-Length") or 0)
            hub.requests.append(
                RecordedRequest(
                    method=self.command,
                    path=parts.path,
                    query=parse_qs(parts.query),
                    headers={k.lower(): v for k, v in self.headers.items()},
                    body=self.rfile.read(length) if length else b"",
                )
            )
            status, raw = hub.routes.get(
                (self.command, parts.path),
                (404, b'{"success":false,"error":{"code":"NOT_FOUND","message":"no route"}}'),
            )
            self.send_response(status)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(raw)))
            self.end_headers()
            self.wfile.write(raw)

        do_GET = _handle
        do_POST = _handle
        do_PATCH = _handle
        do_DELETE = _handle

        def log_message(self, format: str, *args: Any) -> None:
            pass

    return Handler


@pytest.fixture
def hub():
    """Start a stub hub on a free local port."""
    stub = StubHub()
    server = ThreadingHTTPServer(("127.0.0.1", 0), _make_handler(stub))
    stub.url = f"http://127.0.0.1:{server.server_address[1]}"
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield stub
    server.shutdown()
    server.server_close()


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def direct_loopback(monkeypatch):
    """Keep loopback requests off any proxy configured in the environment."""
    for name in ("no_proxy", "NO_PROXY"):
        monkeypatch.setenv(name, "127.0.0.1,localhost")


@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """Point HOME at a temp dir and drop AGENTHQ_* variables."""
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("AGENTHQ_HUB_URL", raising=False)
    monkeypatch.delenv("AGENTHQ_API_KEY", raising=False)
    return tmp_path
