"""
AgentHQ CLI Test Suite

Commands are exercised in-process against a stub hub, with HOME pointed at a
temp dir. The live class at the bottom runs the real CLI against a real hub.

Run with: python -m pytest tests/test_cli.py -v
Live tests require: AGENTHQ_HUB_URL and AGENTHQ_API_KEY environment variables
"""

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

from agenthq_cli import cli
from agenthq_cli.cli import (
    CommandContext,
    Output,
    masked_config,
    parse_bool_arg,
    parse_invite_arg,
    truncate,
)
from agenthq_cli.core.config import DEFAULT_HUB_URL, Config, load_config, save_config
from agenthq_cli.core.errors import APIError, ValidationError
from agenthq_cli.core.types import Page, Pagination, Post

# =============================================================================
# Configuration
# =============================================================================

# Read before any fixture strips AGENTHQ_* from the environment
LIVE_HUB_URL = os.environ.get("AGENTHQ_HUB_URL")
LIVE_API_KEY = os.environ.get("AGENTHQ_API_KEY")

CLI_TIMEOUT = 60  # Timeout in seconds for CLI commands


def run_cli(*args: str, env: dict[str, str] | None = None) -> subprocess.CompletedProcess:
    """Run the CLI in a subprocess."""
    return subprocess.run(
        [sys.executable, "-m", "agenthq_cli.cli", *args],
        capture_output=True,
        text=True,
        env={**os.environ, **(env or {})},
        timeout=CLI_TIMEOUT,
        cwd=Path(__file__).resolve().parent.parent,
    )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def run(isolated_home, capsys):
    """Run main() in-process and return (exit code, parsed JSON stdout)."""

    def _run(*args: str) -> tuple[int, object]:
        code = 0
        try:
            cli.main(["--json", *args])
        except SystemExit as e:
            code = e.code or 0
        out = capsys.readouterr().out.strip()
        return code, json.loads(out) if out else None

    return _run


@pytest.fixture
def logged_in(hub, isolated_home):
    """Save an agent identity pointing at the stub hub."""
    save_config(Config(hub_url=hub.url, api_key="ahq_0123456789abcdef", org_id="org-1", agent_id="a1"))
    return hub


# =============================================================================
# Helpers
# =============================================================================


class TestTruncate:
    @pytest.mark.parametrize(
        "text,width,expected",
        [
            ("hello", 10, "hello"),
            ("hello", 5, "hello"),
            ("hello world, this is a long string", 10, "hello w..."),
            ("", 10, ""),
            (None, 10, ""),
            ("hello", 2, "he"),
            ("hello", 0, ""),
        ],
    )
    def test_truncate(self, text, width, expected):
        assert truncate(text, width) == expected

    @pytest.mark.parametrize("width", range(0, 12))
    def test_never_exceeds_width(self, width):
        assert len(truncate("abcdefghijklmnopqrstuvwxyz", width)) <= width


class TestParseInviteArg:
    def test_full_url(self):
        assert parse_invite_arg("https://hub.example.com/invite/AHQ-abc12-XY9") == (
            "https://hub.example.com",
            "AHQ-abc12-XY9",
        )

    def test_full_url_trailing_slash_and_whitespace(self):
        assert parse_invite_arg("  http://localhost:3000/invite/AHQ-a-b/ \n") == (
            "http://localhost:3000",
            "AHQ-a-b",
        )

    def test_url_with_path_prefix(self):
        hub_url, token = parse_invite_arg("https://example.com/hub/invite/AHQ-a1-b2")
        assert hub_url == "https://example.com/hub"
        assert token == "AHQ-a1-b2"

    def test_bare_token_uses_fallback(self):
        assert parse_invite_arg("AHQ-abc-123", "https://hub.example.com") == (
            "https://hub.example.com",
            "AHQ-abc-123",
        )
        assert parse_invite_arg("AHQ-abc-123") == (None, "AHQ-abc-123")


def test_masked_config():
    display = masked_config(Config(api_key="ahq_0123456789abcdef", jwt_token="jwt", org_id="o"))
    assert display["api_key"] == "ahq_01234567..."
    assert display["jwt_token"] == "***set***"
    assert display["hub_url"] == DEFAULT_HUB_URL
    assert "api_key" not in masked_config(Config())


def test_parse_bool_arg():
    assert parse_bool_arg("true", "--read") is True
    assert parse_bool_arg("False", "--read") is False
    assert parse_bool_arg(None, "--read") is None
    with pytest.raises(ValidationError):
        parse_bool_arg("maybe", "--read")


class TestOutput:
    def test_forced_json(self):
        assert Output.detect(force_json=True).json_mode

    def test_piped_stdout_selects_json(self, monkeypatch):
        monkeypatch.setattr(cli, "is_tty", lambda: False)
        assert Output.detect().json_mode

    def test_tty_selects_human(self, monkeypatch):
        monkeypatch.setattr(cli, "is_tty", lambda: True)
        assert not Output.detect().json_mode

    def test_human_success_and_error(self, capsys):
        output = Output(json_mode=False)
        output.success("Post created: p1")
        with pytest.raises(SystemExit) as exc_info:
            output.error(APIError("FORBIDDEN", "Access denied", 403))
        captured = capsys.readouterr()
        assert captured.out == "✓ Post created: p1\n"
        assert captured.err == "✗ FORBIDDEN: Access denied\n"
        assert exc_info.value.code == 1

    def test_json_error_on_stdout(self, capsys):
        with pytest.raises(SystemExit):
            Output(json_mode=True).error(APIError("FORBIDDEN", "Access denied", 403))
        payload = json.loads(capsys.readouterr().out)
        assert payload == {
            "status": "error",
            "error": "FORBIDDEN: Access denied",
            "code": "FORBIDDEN",
            "http_status": 403,
        }

    def test_page_footer(self, capsys):
        page = Page(
            data=[Post(id="p1", content="one"), Post(id="p2", title="Two")],
            pagination=Pagination(page=1, limit=2, total=5, has_more=True),
        )
        Output(json_mode=False).page(page, "posts", ["ID", "Title"], [4, 10], lambda p: [p.id, p.display_title])
        out = capsys.readouterr().out
        assert "p1    one" in out
        assert "Showing 2 of 5 posts" in out

    def test_empty_page(self, capsys):
        Output(json_mode=False).page(Page(data=[]), "tasks", ["ID"], [4], lambda t: [t.id])
        assert capsys.readouterr().out == "No tasks found.\n"


def test_context_builds_client_once():
    built = []

    def factory():
        built.append(object())
        return built[-1]

    ctx = CommandContext(Output(json_mode=True), client_factory=factory)
    assert ctx.client is ctx.client
    assert len(built) == 1


# =============================================================================
# Commands Against a Stub Hub
# =============================================================================


class TestBootstrapCommands:
    def test_connect_with_invite_url(self, run, hub):
        hub.ok(
            "POST",
            "/api/v1/auth/invites/redeem",
            {"agent": {"id": "a1", "name": "box"}, "apiKey": "ahq_new", "orgId": "org-1"},
        )
        code, out = run("connect", f"{hub.url}/invite/AHQ-abc-123", "--name", "box")
        assert code == 0
        assert out["status"] == "success"
        assert hub.last.json == {"token": "AHQ-abc-123", "agentName": "box"}
        assert "authorization" not in hub.last.headers
        assert load_config() == Config(hub_url=hub.url, api_key="ahq_new", org_id="org-1", agent_id="a1")

    def test_connect_bare_token_default_name(self, run, hub, monkeypatch):
        monkeypatch.setattr(cli.socket, "gethostname", lambda: "box")
        hub.ok("POST", "/api/v1/auth/invites/redeem", {"agent": {"id": "a1"}, "apiKey": "k", "orgId": "o"})
        code, _ = run("connect", "AHQ-abc-123", "--hub-url", hub.url)
        assert code == 0
        assert hub.last.json["agentName"] == "Agent - box"

    def test_login_saves_session(self, run, hub):
        hub.ok(
            "POST",
            "/api/v1/auth/login",
            {"user": {"id": "u1", "email": "a@b.c", "name": "Ada", "org_id": "org-1"}, "accessToken": "jwt"},
        )
        code, out = run("auth", "login", "--email", "a@b.c", "--password", "pw", "--hub-url", hub.url)
        assert code == 0
        assert out["message"] == "Logged in as Ada (a@b.c)"
        assert load_config() == Config(hub_url=hub.url, jwt_token="jwt", org_id="org-1")

    def test_login_failure_saves_nothing(self, run, hub, isolated_home):
        hub.respond(
            "POST",
            "/api/v1/auth/login",
            {"success": False, "error": {"code": "UNAUTHORIZED", "message": "Invalid credentials"}},
            status=401,
        )
        code, out = run("auth", "login", "--email", "a@b.c", "--password", "bad", "--hub-url", hub.url)
        assert code == 1
        assert out["code"] == "UNAUTHORIZED"
        assert load_config() == Config()

    def test_login_agent(self, run, hub):
        hub.ok("POST", "/api/v1/auth/agents/register", {"agent": {"id": "a1", "org_id": "o1"}, "apiKey": "ahq_new"})
        code, _ = run("auth", "login-agent", "--name", "builder", "--token", "tok", "--hub-url", hub.url)
        assert code == 0
        assert hub.last.headers["authorization"] == "Bearer tok"
        assert load_config().api_key == "ahq_new"

    def test_whoami_and_logout(self, run, logged_in):
        code, out = run("auth", "whoami")
        assert code == 0
        assert out["data"]["type"] == "agent"

        code, _ = run("auth", "logout")
        assert code == 0
        assert load_config() == Config()

        code, out = run("auth", "whoami")
        assert code == 1
        assert out["error"] == "Not logged in"

    def test_export_requires_api_key(self, run, isolated_home):
        code, out = run("auth", "export")
        assert code == 1
        assert "login-agent" in out["error"]

    def test_export(self, run, logged_in):
        code, out = run("auth", "export")
        assert code == 0
        assert out == {
            "hub_url": logged_in.url,
            "api_key": "ahq_0123456789abcdef",
            "agent_id": "a1",
            "org_id": "org-1",
        }


class TestConfigCommands:
    def test_set_and_get(self, run, isolated_home):
        code, _ = run("config", "set", "api_key", "ahq_0123456789abcdef")
        assert code == 0
        code, out = run("config", "get")
        assert code == 0
        assert out["api_key"] == "ahq_01234567..."
        assert out["hub_url"] == DEFAULT_HUB_URL

    def test_set_unknown_key(self, run, isolated_home):
        code, out = run("config", "set", "jwt_token", "x")
        assert code == 1
        assert out["details"]["valid_keys"] == ["hub_url", "api_key", "org_id", "agent_id"]

    def test_setup_test(self, run, logged_in):
        logged_in.ok("GET", "/health", {"status": "ok"})
        code, out = run("setup", "test")
        assert code == 0
        assert out["message"] == "Hub is reachable"

    def test_setup_test_unreachable(self, run, isolated_home):
        save_config(Config(hub_url="http://127.0.0.1:1"))
        code, out = run("setup", "test")
        assert code == 1
        assert "request failed" in out["error"]


class TestResourceCommands:
    def test_list_prints_page_json(self, run, logged_in):
        logged_in.ok(
            "GET",
            "/api/v1/notifications",
            [{"id": "n1", "type": "mention", "read": False}],
            pagination={"page": 2, "limit": 1, "total": 3, "hasMore": True},
        )
        code, out = run("notifications", "list", "--read", "false", "--page", "2", "--limit", "1")
        assert code == 0
        assert out["data"] == [{"id": "n1", "type": "mention", "read": False}]
        assert out["pagination"]["hasMore"] is True
        assert logged_in.last.query == {"read": ["false"], "page": ["2"], "limit": ["1"]}
        assert logged_in.last.headers["authorization"] == "Bearer ahq_0123456789abcdef"

    def test_saved_identity_wins_over_environment(self, run, logged_in, monkeypatch):
        monkeypatch.setenv("AGENTHQ_HUB_URL", "http://127.0.0.1:1")
        monkeypatch.setenv("AGENTHQ_API_KEY", "stray")
        logged_in.ok("GET", "/api/v1/notifications/unread-count", {"count": 2})
        code, _ = run("notifications", "unread")
        assert code == 0
        assert logged_in.last.headers["authorization"] == "Bearer ahq_0123456789abcdef"

    def test_insights_generate_zero_confidence(self, run, logged_in):
        logged_in.ok("POST", "/api/v1/insights/generate", {"id": "i1", "type": "trend", "title": "Flat"})
        code, _ = run("insights", "generate", "--type", "trend", "--title", "Flat", "--content", "x", "--confidence", "0")
        assert code == 0
        assert logged_in.last.json["confidence"] == 0.0

    def test_post_create(self, run, logged_in):
        logged_in.ok("POST", "/api/v1/posts", {"id": "p1", "content": "hi"})
        code, out = run("post", "create", "--channel", "c1", "--content", "hi", "--metadata", '{"k": 1}')
        assert code == 0
        assert out["message"] == "Post created: p1"
        assert logged_in.last.json == {"channel_id": "c1", "content": "hi", "type": "update", "metadata": {"k": 1}}

    def test_post_create_bad_metadata(self, run, logged_in):
        code, out = run("post", "create", "--channel", "c1", "--content", "hi", "--metadata", "{oops")
        assert code == 1
        assert "Invalid JSON in --metadata" in out["error"]
        assert logged_in.requests == []

    def test_post_edit_without_changes(self, run, logged_in):
        code, _ = run("post", "edit", "p1")
        assert code == 1
        assert logged_in.requests == []

    def test_reaction_add(self, run, logged_in):
        logged_in.ok("POST", "/api/v1/posts/p1/reactions", {"id": "r1", "emoji": "🚀"})
        code, _ = run("post", "reaction", "add", "p1", "--emoji", "🚀")
        assert code == 0

    def test_task_update(self, run, logged_in):
        logged_in.ok("PATCH", "/api/v1/tasks/t1", {"id": "t1", "title": "Ship", "status": "done"})
        code, out = run("task", "update", "t1", "--status", "done", "--assigned-to", "a2")
        assert code == 0
        assert logged_in.last.json == {"status": "done", "assigned_to": "a2"}
        assert out["data"]["status"] == "done"

    def test_heartbeat_defaults_to_saved_agent(self, run, logged_in):
        logged_in.ok("POST", "/api/v1/agents/a1/heartbeat", {"ok": True})
        code, _ = run("agent", "heartbeat", "--status", "online")
        assert code == 0
        assert logged_in.last.path == "/api/v1/agents/a1/heartbeat"

    def test_org_update_settings_must_be_object(self, run, logged_in):
        code, out = run("org", "update", "--settings", "[1]")
        assert code == 1
        assert "JSON object" in out["error"]

    def test_hub_error_exits_nonzero(self, run, logged_in):
        logged_in.respond(
            "GET",
            "/api/v1/org",
            {"success": False, "error": {"code": "FORBIDDEN", "message": "Access denied"}},
            status=403,
        )
        code, out = run("org", "get")
        assert code == 1
        assert out["status"] == "error"
        assert out["code"] == "FORBIDDEN"
        assert "Access denied" in out["error"]

    def test_query_ask(self, run, logged_in):
        logged_in.ok("POST", "/api/v1/query", {"answer": "42", "sources": []})
        code, out = run("query", "ask", "meaning?")
        assert code == 0
        assert out["answer"] == "42"

    def test_notifications_unread(self, run, logged_in):
        logged_in.ok("GET", "/api/v1/notifications/unread-count", {"count": 2})
        assert run("notifications", "unread") == (0, {"count": 2})


# =============================================================================
# Help Tests - All Commands Should Have Working Help
# =============================================================================


class TestHelpCommands:
    """Test that all help commands work."""

    def test_main_help(self):
        result = run_cli("--help")
        assert result.returncode == 0, f"Main help failed: {result.stderr}"
        assert "AgentHQ CLI" in result.stdout

    @pytest.mark.parametrize(
        "group",
        [
            "auth",
            "connect",
            "config",
            "setup",
            "agent",
            "post",
            "channel",
            "task",
            "notifications",
            "insights",
            "search",
            "feed",
            "activity",
            "org",
            "dm",
            "query",
        ],
    )
    def test_group_help(self, group):
        result = run_cli(group, "--help")
        assert result.returncode == 0, f"{group} help failed: {result.stderr}"

    def test_group_without_subcommand_prints_help(self, tmp_path):
        result = run_cli("task", env={"HOME": str(tmp_path)})
        assert result.returncode == 0
        assert "create" in result.stdout


# =============================================================================
# Live Hub Tests
# =============================================================================


@pytest.mark.live
@pytest.mark.skipif(
    not (LIVE_HUB_URL and LIVE_API_KEY),
    reason="AGENTHQ_HUB_URL and AGENTHQ_API_KEY required",
)
class TestLiveHub:
    """Read-only commands against a real hub."""

    @pytest.fixture
    def live_env(self, tmp_path):
        """A temp HOME whose saved config points at the live hub."""
        path = tmp_path / ".config" / "agenthq" / "config.json"
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"hub_url": LIVE_HUB_URL, "api_key": LIVE_API_KEY}))
        return {"HOME": str(tmp_path)}

    @pytest.mark.parametrize(
        "args",
        [
            ["setup", "test"],
            ["agent", "list", "--limit", "5"],
            ["channel", "list"],
            ["task", "list", "--limit", "5"],
            ["notifications", "unread"],
            ["feed", "--limit", "5"],
        ],
    )
    def test_read_commands(self, args, live_env):
        result = run_cli("--json", *args, env=live_env)
        assert result.returncode == 0, f"{' '.join(args)} failed: {result.stdout} {result.stderr}"
        json.loads(result.stdout)

    def test_unknown_post_fails_cleanly(self, live_env):
        result = run_cli("--json", "post", "get", "00000000-0000-0000-0000-000000000000", env=live_env)
        assert result.returncode == 1
        assert json.loads(result.stdout)["status"] == "error"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
