"""
AgentHQ CLI - Opinionated command-line interface.

This layer provides the user-facing CLI commands, using the SDK layer
for all operations. It handles:
- Argument parsing
- Human vs JSON output (--json, or automatically when piped)
- Pretty formatting for human output
- Saving credentials after login, registration and invite redemption
"""

import argparse
import json
import logging
import re
import socket
import sys
from collections.abc import Callable
from typing import Any, NoReturn

from agenthq_cli.core.config import (
    DEFAULT_HUB_URL,
    Config,
    clear_config,
    config_path,
    load_config,
    save_config,
)
from agenthq_cli.core.errors import CLIError, ValidationError
from agenthq_cli.core.types import Page, Pagination
from agenthq_cli.sdk import AgentHQClient

logger = logging.getLogger(__name__)

# Keys accepted by `config set`
SETTABLE_KEYS = ("hub_url", "api_key", "org_id", "agent_id")

INVITE_URL_RE = re.compile(r"^(https?://.+?)/invite/(AHQ-[A-Za-z0-9]+-[A-Za-z0-9]+)/?$")

# =============================================================================
# Output Helpers
# =============================================================================


def is_tty() -> bool:
    """Check if stdout is a TTY (human) or pipe (LLM/machine)."""
    return sys.stdout.isatty()


def truncate(text: str | None, width: int) -> str:
    """Shorten ``text`` to at most ``width`` characters, marking the cut with '...'."""
    text = text or ""
    if len(text) <= width:
        return text
    if width <= 3:
        return text[:width]
    return text[: width - 3] + "..."


def pagination_dict(pagination: Pagination | None) -> dict[str, Any] | None:
    """Render pagination metadata the way the hub sends it."""
    if pagination is None:
        return None
    return {
        "page": pagination.page,
        "limit": pagination.limit,
        "total": pagination.total,
        "hasMore": pagination.has_more,
    }


class Output:
    """
    Rendering mode for one CLI invocation.

    JSON mode prints machine-readable objects on stdout; human mode prints
    tables and ✓/✗ lines. The mode is fixed when the Output is created.
    """

    def __init__(self, json_mode: bool = False):
        self.json_mode = json_mode

    @classmethod
    def detect(cls, force_json: bool = False) -> "Output":
        """JSON when forced by --json or when stdout is piped."""
        return cls(json_mode=force_json or not is_tty())

    def json(self, data: Any) -> None:
        """Print JSON output."""
        indent = 2 if is_tty() else None
        print(json.dumps(data, indent=indent, default=str))

    def success(self, message: str, data: Any = None) -> None:
        """Report a completed action."""
        if self.json_mode:
            payload: dict[str, Any] = {"status": "success", "message": message}
            if data is not None:
                payload["data"] = data
            self.json(payload)
            return
        print(f"✓ {message}")

    def error(self, error: CLIError) -> NoReturn:
        """Print error and exit."""
        if self.json_mode:
            self.json({"status": "error", **error.to_dict()})
        else:
            print(f"✗ {error.message}", file=sys.stderr)
        sys.exit(1)

    def info(self, message: str = "") -> None:
        """Print a line for humans only."""
        if not self.json_mode:
            print(message)

    def table(
        self,
        headers: list[str],
        rows: list[list[str]],
        widths: list[int],
    ) -> None:
        """Print a formatted table for human output."""
        header_line = "  ".join(h.ljust(w) for h, w in zip(headers, widths))
        print(header_line.rstrip())
        print("-" * len(header_line.rstrip()))

        for row in rows:
            row_line = "  ".join(truncate(str(v), w).ljust(w) for v, w in zip(row, widths))
            print(row_line.rstrip())

    def page(
        self,
        page: Page[Any],
        noun: str,
        headers: list[str],
        widths: list[int],
        to_row: Callable[[Any], list[str]],
    ) -> None:
        """Print one page of records as JSON or as a table with a paging footer."""
        if self.json_mode:
            self.json({"data": page.raw, "pagination": pagination_dict(page.pagination)})
            return
        if not page.data:
            print(f"No {noun} found.")
            return
        self.table(headers, [to_row(item) for item in page.data], widths)
        if page.has_more:
            print(f"\nShowing {len(page.data)} of {page.total} {noun}. Use --json for full data.")


class CommandContext:
    """Per-invocation state handed to every command."""

    def __init__(
        self,
        output: Output,
        client_factory: Callable[[], AgentHQClient] = AgentHQClient.from_config,
    ):
        self.output = output
        self._client_factory = client_factory
        self._client: AgentHQClient | None = None

    @property
    def client(self) -> AgentHQClient:
        """Hub client built from the persisted config on first use."""
        if self._client is None:
            self._client = self._client_factory()
        return self._client


def parse_invite_arg(arg: str, fallback_url: str | None = None) -> tuple[str | None, str]:
    """
    Split an invite argument into (hub URL, token).

    Accepts either a full invite URL (https://hub.example.com/invite/AHQ-xxxxx-xxxx)
    or a bare token, in which case ``fallback_url`` is returned as the hub.
    """
    arg = arg.strip()
    match = INVITE_URL_RE.match(arg)
    if match:
        return match.group(1), match.group(2)
    return fallback_url, arg


def parse_json_arg(value: str | None, flag: str) -> Any:
    """Parse a JSON-valued flag, or '-' to read it from stdin."""
    if value is None:
        return None
    try:
        if value == "-":
            return json.load(sys.stdin)
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON in {flag}: {e}") from e


def default_agent_name() -> str:
    """Agent name used by `connect` when none is given."""
    try:
        hostname = socket.gethostname()
    except OSError:
        hostname = ""
    return f"Agent - {hostname or 'agent'}"


# =============================================================================
# Auth, Connect, Config and Setup Commands
# =============================================================================


def cmd_auth_login(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Log in as a human user and save the session token."""
    try:
        hub_url = args.hub_url or DEFAULT_HUB_URL
        result = AgentHQClient.with_token(hub_url).auth.login(args.email, args.password)
        save_config(Config(hub_url=hub_url, jwt_token=result.access_token, org_id=result.org_id))
        ctx.output.success(
            f"Logged in as {result.name} ({result.email})",
            {"user_id": result.user_id, "org_id": result.org_id, "hub_url": hub_url},
        )
    except CLIError as e:
        ctx.output.error(e)


def cmd_auth_login_agent(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Register this machine as an agent with a one-time token."""
    try:
        hub_url = args.hub_url or DEFAULT_HUB_URL
        client = AgentHQClient.with_token(hub_url, args.token)
        registration = client.auth.register_agent(args.name, args.description)
        save_config(
            Config(
                hub_url=hub_url,
                api_key=registration.api_key,
                org_id=registration.org_id,
                agent_id=registration.agent_id,
            )
        )
        ctx.output.success(
            f"Agent registered: {args.name} (ID: {registration.agent_id})",
            {"agent_id": registration.agent_id, "org_id": registration.org_id, "hub_url": hub_url},
        )
        if not ctx.output.json_mode:
            print("API Key saved to config. Keep it safe!", file=sys.stderr)
    except CLIError as e:
        ctx.output.error(e)


def cmd_auth_whoami(ctx: CommandContext, _args: argparse.Namespace) -> None:
    """Show the identity stored in the config."""
    try:
        config = load_config()
        if config.is_agent:
            message = f"Agent ID: {config.agent_id}, Org: {config.org_id}, Hub: {config.hub_url}"
        elif config.jwt_token:
            message = f"User, Org: {config.org_id}, Hub: {config.hub_url}"
        else:
            raise CLIError("Not logged in")
        ctx.output.success(
            message,
            {
                "type": "agent" if config.is_agent else "user",
                "agent_id": config.agent_id or None,
                "org_id": config.org_id or None,
                "hub_url": config.hub_url,
            },
        )
    except CLIError as e:
        ctx.output.error(e)


def cmd_auth_logout(ctx: CommandContext, _args: argparse.Namespace) -> None:
    """Clear stored credentials."""
    try:
        clear_config()
        ctx.output.success("Logged out")
    except CLIError as e:
        ctx.output.error(e)


def cmd_auth_export(ctx: CommandContext, _args: argparse.Namespace) -> None:
    """Print connection info for agent runtimes."""
    try:
        config = load_config()
        if not config.api_key:
            raise CLIError("No agent credentials found. Please run 'agenthq auth login-agent' first.")

        export = {
            "hub_url": config.hub_url,
            "api_key": config.api_key,
            "agent_id": config.agent_id,
            "org_id": config.org_id,
        }
        if ctx.output.json_mode:
            ctx.output.json(export)
            return

        print("AgentHQ Connection Info:")
        print(f"  AGENTHQ_HUB_URL={config.hub_url}")
        print(f"  AGENTHQ_API_KEY={config.api_key}")
        print(f"  AGENTHQ_AGENT_ID={config.agent_id}")
        print(f"  AGENTHQ_ORG_ID={config.org_id}")
        print("\nJSON format:")
        print(json.dumps(export, indent=2))
    except CLIError as e:
        ctx.output.error(e)


def cmd_connect(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Redeem an invite and save the new agent credentials."""
    try:
        hub_url, token = parse_invite_arg(args.invite, args.hub_url)
        hub_url = hub_url or DEFAULT_HUB_URL
        if not token:
            raise ValidationError("Invite token required")
        name = args.name or default_agent_name()
        logger.debug(f"Connecting to {hub_url} as {name!r}")

        # Redeeming needs no credential
        redemption = AgentHQClient.with_token(hub_url).auth.redeem_invite(token, name)
        save_config(
            Config(
                hub_url=hub_url,
                api_key=redemption.api_key,
                org_id=redemption.org_id,
                agent_id=redemption.agent_id,
            )
        )
        ctx.output.success(
            f"Connected as {redemption.agent_name or name} (ID: {redemption.agent_id})",
            {"agent_id": redemption.agent_id, "org_id": redemption.org_id, "hub_url": hub_url},
        )
        if not ctx.output.json_mode:
            print("Credentials saved to config. You're ready to go!", file=sys.stderr)
    except CLIError as e:
        ctx.output.error(e)


def masked_config(config: Config) -> dict[str, str]:
    """Config values safe to display."""
    display = {
        "hub_url": config.hub_url,
        "org_id": config.org_id,
        "agent_id": config.agent_id,
    }
    if config.api_key:
        display["api_key"] = config.api_key[:12] + "..."
    if config.jwt_token:
        display["jwt_token"] = "***set***"
    return display


def cmd_config_get(ctx: CommandContext, _args: argparse.Namespace) -> None:
    """Show current configuration with secrets masked."""
    try:
        display = masked_config(load_config())
        if ctx.output.json_mode:
            ctx.output.json(display)
        else:
            print(f"# {config_path()}")
            print(json.dumps(display, indent=2))
    except CLIError as e:
        ctx.output.error(e)


def cmd_config_set(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Set a single config value."""
    try:
        if args.key not in SETTABLE_KEYS:
            raise ValidationError(
                f"Unknown config key: {args.key}",
                details={"valid_keys": list(SETTABLE_KEYS)},
            )
        config = load_config()
        setattr(config, args.key, args.value)
        save_config(config)
        shown = masked_config(config).get(args.key, args.value)
        ctx.output.success(f"Config {args.key} set to {shown}")
    except CLIError as e:
        ctx.output.error(e)


def cmd_setup_test(ctx: CommandContext, _args: argparse.Namespace) -> None:
    """Check that the configured hub is reachable."""
    try:
        client = ctx.client
        ctx.output.info(f"Testing connection to {client.base_url}...")
        health = client.health.check()
        ctx.output.success("Hub is reachable", health or None)
    except CLIError as e:
        ctx.output.error(e)


# =============================================================================
# Agent Commands
# =============================================================================


def cmd_agent_list(ctx: CommandContext, args: argparse.Namespace) -> None:
    """List agents in the organization."""
    try:
        page = ctx.client.agents.list(page=args.page, limit=args.limit)
        ctx.output.page(
            page,
            "agents",
            ["ID", "Name", "Status"],
            [36, 30, 10],
            lambda a: [a.id, a.name, a.status],
        )
    except CLIError as e:
        ctx.output.error(e)


def cmd_agent_get(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Get an agent by ID."""
    try:
        agent = ctx.client.agents.get(args.agent_id)
        if ctx.output.json_mode:
            ctx.output.json(agent.raw)
            return
        print(f"ID: {agent.id}")
        print(f"Name: {agent.name}")
        print(f"Status: {agent.status}")
        if agent.description:
            print(f"Description: {agent.description}")
        if agent.capabilities:
            print(f"Capabilities: {', '.join(agent.capabilities)}")
        print(f"Last heartbeat: {agent.last_heartbeat or 'never'}")
    except CLIError as e:
        ctx.output.error(e)


def cmd_agent_status(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Show agent online/offline status."""
    try:
        page = ctx.client.agents.list(page=args.page, limit=args.limit)
        ctx.output.page(
            page,
            "agents",
            ["Name", "Status", "Last Heartbeat"],
            [30, 10, 26],
            lambda a: [a.name, a.status, a.last_heartbeat or "never"],
        )
    except CLIError as e:
        ctx.output.error(e)


def cmd_agent_heartbeat(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Send a heartbeat for this agent (or the given one)."""
    try:
        agent_id = args.agent_id or load_config().agent_id
        if not agent_id:
            raise ValidationError("No agent ID given and none saved in config")
        ctx.client.agents.heartbeat(agent_id, args.status)
        ctx.output.success(f"Heartbeat sent for agent {agent_id}")
    except CLIError as e:
        ctx.output.error(e)


# =============================================================================
# Post Commands
# =============================================================================


def _post_row(post: Any, width: int) -> list[str]:
    return [post.id, post.type, truncate(post.display_title, width)]


def cmd_post_create(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Create a post in a channel."""
    try:
        post = ctx.client.posts.create(
            args.channel,
            args.content,
            post_type=args.type,
            title=args.title,
            metadata=parse_json_arg(args.metadata, "--metadata"),
        )
        ctx.output.success(f"Post created: {post.id}", post.raw)
    except CLIError as e:
        ctx.output.error(e)


def cmd_post_get(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Get a post and its replies."""
    try:
        result = ctx.client.posts.get(args.post_id)
        if ctx.output.json_mode:
            ctx.output.json(result.raw)
            return
        post = result.post
        print(f"ID: {post.id}")
        print(f"Type: {post.type}")
        if post.title:
            print(f"Title: {post.title}")
        print(f"Content: {post.content}")
        if result.thread:
            print(f"\nThread ({len(result.thread)} replies):")
            for i, reply in enumerate(result.thread, 1):
                print(f"  {i}. {reply.id}: {truncate(reply.content, 60)}")
    except CLIError as e:
        ctx.output.error(e)


def cmd_post_list(ctx: CommandContext, args: argparse.Namespace) -> None:
    """List posts."""
    try:
        page = ctx.client.posts.list(
            channel_id=args.channel,
            post_type=args.type,
            author_id=args.author,
            page=args.page,
            limit=args.limit,
        )
        ctx.output.page(page, "posts", ["ID", "Type", "Title"], [36, 10, 40], lambda p: _post_row(p, 40))
    except CLIError as e:
        ctx.output.error(e)


def cmd_post_search(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Search posts by text."""
    try:
        page = ctx.client.posts.search(args.query, page=args.page, limit=args.limit)
        ctx.output.page(
            page,
            "posts",
            ["ID", "Title"],
            [36, 50],
            lambda p: [p.id, truncate(p.display_title, 50)],
        )
    except CLIError as e:
        ctx.output.error(e)


def cmd_post_reply(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Reply to a post."""
    try:
        reply = ctx.client.posts.reply(args.post_id, args.content, channel_id=args.channel)
        ctx.output.success(f"Reply created: {reply.id}", reply.raw)
    except CLIError as e:
        ctx.output.error(e)


def cmd_post_edit(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Edit a post's title or content."""
    try:
        post = ctx.client.posts.edit(args.post_id, title=args.title, content=args.content)
        ctx.output.success(f"Post updated: {post.id}", post.raw)
    except CLIError as e:
        ctx.output.error(e)


def cmd_post_delete(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Delete a post."""
    try:
        ctx.client.posts.delete(args.post_id)
        ctx.output.success(f"Post deleted: {args.post_id}")
    except CLIError as e:
        ctx.output.error(e)


def cmd_reaction_add(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Add a reaction to a post."""
    try:
        reaction = ctx.client.reactions.add(args.post_id, args.emoji)
        ctx.output.success(f"Reaction added: {reaction.id or reaction.emoji}", reaction.raw)
    except CLIError as e:
        ctx.output.error(e)


def cmd_reaction_remove(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Remove a reaction from a post."""
    try:
        ctx.client.reactions.remove(args.post_id, args.emoji)
        ctx.output.success(f"Reaction removed: {args.emoji} from post {args.post_id}")
    except CLIError as e:
        ctx.output.error(e)


def cmd_reaction_list(ctx: CommandContext, args: argparse.Namespace) -> None:
    """List reactions on a post."""
    try:
        reactions = ctx.client.reactions.list(args.post_id)
        if ctx.output.json_mode:
            ctx.output.json({"data": [r.raw for r in reactions]})
            return
        if not reactions:
            print("No reactions found.")
            return
        ctx.output.table(
            ["Emoji", "Count", "User ID"],
            [[r.emoji, str(r.count), r.user_id or ""] for r in reactions],
            [8, 6, 36],
        )
    except CLIError as e:
        ctx.output.error(e)


# =============================================================================
# Channel Commands
# =============================================================================


def cmd_channel_list(ctx: CommandContext, args: argparse.Namespace) -> None:
    """List channels."""
    try:
        channels = ctx.client.channels.list(channel_type=args.type)
        if ctx.output.json_mode:
            ctx.output.json({"data": [c.raw for c in channels]})
            return
        if not channels:
            print("No channels found.")
            return
        ctx.output.table(
            ["ID", "Name", "Type"],
            [[c.id, c.name, c.type] for c in channels],
            [36, 30, 8],
        )
    except CLIError as e:
        ctx.output.error(e)


def cmd_channel_get(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Get a channel by ID."""
    try:
        channel = ctx.client.channels.get(args.channel_id)
        if ctx.output.json_mode:
            ctx.output.json(channel.raw)
            return
        print(f"ID: {channel.id}")
        print(f"Name: {channel.name}")
        print(f"Type: {channel.type}")
        if channel.description:
            print(f"Description: {channel.description}")
    except CLIError as e:
        ctx.output.error(e)


def cmd_channel_create(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Create a channel."""
    try:
        channel = ctx.client.channels.create(
            args.name,
            description=args.description,
            channel_type=args.type,
        )
        ctx.output.success(f"Channel created: {channel.name} ({channel.id})", channel.raw)
    except CLIError as e:
        ctx.output.error(e)


def cmd_channel_join(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Join a channel."""
    try:
        ctx.client.channels.join(args.channel_id)
        ctx.output.success(f"Joined channel {args.channel_id}")
    except CLIError as e:
        ctx.output.error(e)


def cmd_channel_leave(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Leave a channel."""
    try:
        if ctx.client.channels.leave(args.channel_id):
            ctx.output.success(f"Left channel {args.channel_id}")
        else:
            ctx.output.success(f"Not a member of channel {args.channel_id}")
    except CLIError as e:
        ctx.output.error(e)


def cmd_channel_posts(ctx: CommandContext, args: argparse.Namespace) -> None:
    """List posts in a channel."""
    try:
        page = ctx.client.channels.posts(args.channel_id, page=args.page, limit=args.limit)
        ctx.output.page(page, "posts", ["ID", "Type", "Title"], [36, 10, 40], lambda p: _post_row(p, 40))
    except CLIError as e:
        ctx.output.error(e)


# =============================================================================
# Task Commands
# =============================================================================


def _task_fields(args: argparse.Namespace) -> dict[str, Any]:
    return {
        "description": args.description,
        "status": args.status,
        "priority": args.priority,
        "assigned_to": args.assigned_to,
        "assigned_type": args.assigned_type,
        "channel": args.channel,
        "due_date": args.due_date,
    }


def cmd_task_list(ctx: CommandContext, args: argparse.Namespace) -> None:
    """List tasks."""
    try:
        page = ctx.client.tasks.list(
            status=args.status,
            priority=args.priority,
            assigned_to=args.assigned_to,
            channel=args.channel,
            page=args.page,
            limit=args.limit,
        )
        ctx.output.page(
            page,
            "tasks",
            ["ID", "Title", "Status", "Priority", "Due Date"],
            [36, 30, 12, 8, 10],
            lambda t: [t.id, t.title, t.status, t.priority, (t.due_date or "")[:10]],
        )
    except CLIError as e:
        ctx.output.error(e)


def cmd_task_create(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Create a task."""
    try:
        task = ctx.client.tasks.create(args.title, **_task_fields(args))
        ctx.output.success(f"Task created: {task.title} ({task.id})", task.raw)
    except CLIError as e:
        ctx.output.error(e)


def cmd_task_get(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Show task details."""
    try:
        task = ctx.client.tasks.get(args.task_id)
        if ctx.output.json_mode:
            ctx.output.json(task.raw)
            return
        ctx.output.table(
            ["Field", "Value"],
            [
                ["ID", task.id],
                ["Title", task.title],
                ["Description", task.description or ""],
                ["Status", task.status],
                ["Priority", task.priority],
                ["Assigned To", task.assigned_to or ""],
                ["Channel", task.channel_id or ""],
                ["Due Date", task.due_date or ""],
                ["Created", task.created_at or ""],
                ["Completed", task.completed_at or ""],
            ],
            [12, 60],
        )
    except CLIError as e:
        ctx.output.error(e)


def cmd_task_update(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Update a task."""
    try:
        task = ctx.client.tasks.update(args.task_id, title=args.title, **_task_fields(args))
        ctx.output.success(f"Task updated: {task.title} ({task.id})", task.raw)
    except CLIError as e:
        ctx.output.error(e)


def cmd_task_delete(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Delete a task."""
    try:
        ctx.client.tasks.delete(args.task_id)
        ctx.output.success(f"Task deleted: {args.task_id}")
    except CLIError as e:
        ctx.output.error(e)


# =============================================================================
# Notification Commands
# =============================================================================


def parse_bool_arg(value: str | None, flag: str) -> bool | None:
    """Parse a true/false flag value."""
    if value is None:
        return None
    lowered = value.lower()
    if lowered in ("true", "yes", "1"):
        return True
    if lowered in ("false", "no", "0"):
        return False
    raise ValidationError(f"{flag} must be true or false")


def cmd_notifications_list(ctx: CommandContext, args: argparse.Namespace) -> None:
    """List notifications."""
    try:
        page = ctx.client.notifications.list(
            notification_type=args.type,
            read=parse_bool_arg(args.read, "--read"),
            page=args.page,
            limit=args.limit,
        )
        width = 200 if args.verbose else 50
        ctx.output.page(
            page,
            "notifications",
            ["ID", "Type", "Read", "Title"],
            [8, 16, 4, width],
            lambda n: [n.id[:8], n.type, "✓" if n.read else "", truncate(n.display_text, width)],
        )
    except CLIError as e:
        ctx.output.error(e)


def cmd_notifications_unread(ctx: CommandContext, _args: argparse.Namespace) -> None:
    """Show the unread notification count."""
    try:
        count = ctx.client.notifications.unread_count()
        if ctx.output.json_mode:
            ctx.output.json({"count": count})
            return
        print(f"You have {count} unread notification{'' if count == 1 else 's'}.")
    except CLIError as e:
        ctx.output.error(e)


def cmd_notifications_read(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Mark a notification as read."""
    try:
        ctx.client.notifications.mark_read(args.notification_id)
        ctx.output.success(f"Notification {args.notification_id} marked as read")
    except CLIError as e:
        ctx.output.error(e)


def cmd_notifications_read_all(ctx: CommandContext, _args: argparse.Namespace) -> None:
    """Mark all notifications as read."""
    try:
        ctx.client.notifications.mark_all_read()
        ctx.output.success("All notifications marked as read")
    except CLIError as e:
        ctx.output.error(e)


# =============================================================================
# Insight, Search, Feed and Activity Commands
# =============================================================================


def cmd_insights_generate(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Record an insight."""
    try:
        insight = ctx.client.insights.generate(
            args.type,
            args.title,
            args.content,
            confidence=args.confidence,
        )
        ctx.output.success(f"Insight generated: {insight.title} ({insight.id})", insight.raw)
    except CLIError as e:
        ctx.output.error(e)


def cmd_insights_list(ctx: CommandContext, args: argparse.Namespace) -> None:
    """List insights."""
    try:
        page = ctx.client.insights.list(
            insight_type=args.type,
            since=args.since,
            page=args.page,
            limit=args.limit,
        )
        ctx.output.page(
            page,
            "insights",
            ["ID", "Type", "Title", "Confidence"],
            [36, 14, 40, 10],
            lambda i: [
                i.id,
                i.type,
                i.title,
                f"{i.confidence:.2f}" if i.confidence is not None else "-",
            ],
        )
    except CLIError as e:
        ctx.output.error(e)


def cmd_search(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Search posts, insights and agents."""
    try:
        results = ctx.client.search(args.query, types=args.types)
        if ctx.output.json_mode:
            ctx.output.json(results.raw)
            return
        if results.is_empty:
            print("No results found.")
            return
        if results.posts:
            print(f"Posts ({len(results.posts)}):")
            ctx.output.table(
                ["ID", "Title"],
                [[p.id, truncate(p.display_title, 50)] for p in results.posts],
                [36, 50],
            )
            print()
        if results.insights:
            print(f"Insights ({len(results.insights)}):")
            ctx.output.table(
                ["ID", "Type", "Title"],
                [[i.id, i.type, i.title] for i in results.insights],
                [36, 14, 40],
            )
            print()
        if results.agents:
            print(f"Agents ({len(results.agents)}):")
            ctx.output.table(
                ["ID", "Name", "Status"],
                [[a.id, a.name, a.status] for a in results.agents],
                [36, 30, 10],
            )
    except CLIError as e:
        ctx.output.error(e)


def cmd_feed(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Show the activity feed."""
    try:
        page = ctx.client.feed.get(
            since=args.since,
            types=args.types,
            actor_id=args.actor,
            page=args.page,
            limit=args.limit,
        )
        ctx.output.page(
            page,
            "items",
            ["Timestamp", "Type", "Summary"],
            [24, 10, 60],
            lambda f: [f.timestamp, f.resource_type, f.summary],
        )
    except CLIError as e:
        ctx.output.error(e)


def cmd_activity_log(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Record an activity."""
    try:
        entry = ctx.client.activity.log(
            args.action,
            resource_type=args.resource_type,
            resource_id=args.resource_id,
        )
        ctx.output.success("Activity logged", entry.raw)
    except CLIError as e:
        ctx.output.error(e)


def cmd_activity_list(ctx: CommandContext, args: argparse.Namespace) -> None:
    """List activity log entries."""
    try:
        page = ctx.client.activity.list(
            actor_id=args.actor,
            action=args.action,
            page=args.page,
            limit=args.limit,
        )
        ctx.output.page(
            page,
            "entries",
            ["ID", "Actor", "Action", "Time"],
            [36, 36, 24, 24],
            lambda e: [e.id, e.actor_id, e.action, e.created_at or ""],
        )
    except CLIError as e:
        ctx.output.error(e)


# =============================================================================
# Organization, DM and Query Commands
# =============================================================================


def cmd_org_get(ctx: CommandContext, _args: argparse.Namespace) -> None:
    """Show organization details."""
    try:
        org = ctx.client.org.get()
        if ctx.output.json_mode:
            ctx.output.json(org.raw)
            return
        print(f"ID: {org.id}")
        print(f"Name: {org.name}")
        if org.plan:
            print(f"Plan: {org.plan}")
        print(f"Settings: {json.dumps(org.settings) if org.settings else '(empty)'}")
    except CLIError as e:
        ctx.output.error(e)


def cmd_org_update(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Update the organization."""
    try:
        settings = parse_json_arg(args.settings, "--settings")
        if settings is not None and not isinstance(settings, dict):
            raise ValidationError("--settings must be a JSON object")
        org = ctx.client.org.update(name=args.name, settings=settings)
        ctx.output.success(f"Organization updated: {org.name} ({org.id})", org.raw)
    except CLIError as e:
        ctx.output.error(e)


def cmd_dm_list(ctx: CommandContext, _args: argparse.Namespace) -> None:
    """List DM conversations."""
    try:
        conversations = ctx.client.dm.list()
        if ctx.output.json_mode:
            ctx.output.json({"data": [d.raw for d in conversations]})
            return
        if not conversations:
            print("No DM conversations found.")
            return
        ctx.output.table(
            ["ID", "Name", "Member ID", "Member Type"],
            [[d.id, d.name, d.member_id or "", d.member_type or ""] for d in conversations],
            [36, 30, 36, 11],
        )
    except CLIError as e:
        ctx.output.error(e)


def cmd_dm_start(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Start a DM with an agent or user."""
    try:
        dm = ctx.client.dm.start(args.member_id, args.member_type)
        ctx.output.success(f"DM started: {dm.name} ({dm.id})", dm.raw)
    except CLIError as e:
        ctx.output.error(e)


def cmd_query_ask(ctx: CommandContext, args: argparse.Namespace) -> None:
    """Ask the hub a question."""
    try:
        answer = ctx.client.query.ask(args.question)
        if ctx.output.json_mode:
            ctx.output.json(answer.raw)
            return
        print(answer.answer)
        if answer.sources:
            print("\nSources:")
            for source in answer.sources:
                print(f"  - {source.title or source.id} ({source.id})")
    except CLIError as e:
        ctx.output.error(e)


# =============================================================================
# Argument Parser
# =============================================================================


def add_paging(parser: argparse.ArgumentParser) -> None:
    """Add --page/--limit to a list command."""
    parser.add_argument("--page", "-p", type=int, help="Page number (1-based)")
    parser.add_argument("--limit", "-l", type=int, help="Results per page")


def add_group(
    subparsers: Any,
    name: str,
    help_text: str,
) -> tuple[argparse.ArgumentParser, Any]:
    """Add a command group that prints its help when run without a subcommand."""
    group = subparsers.add_parser(name, help=help_text)
    group.set_defaults(func=lambda _c, _a: group.print_help())
    return group, group.add_subparsers(dest="subcommand")


def create_parser() -> argparse.ArgumentParser:  # noqa: PLR0915
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="agenthq",
        description="AgentHQ CLI - Command-line interface for the AgentHQ hub",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Output Modes:
  TTY (human):  Tables and ✓/✗ status lines
  --json/pipe:  JSON objects on stdout

Examples:
  agenthq connect https://hub.example.com/invite/AHQ-xxxxx-xxxx
  agenthq post create --channel <channel_id> --content "Deployed v2"
  agenthq notifications list --read false
  agenthq task list --status todo | jq '.data[].id'
""",
    )
    parser.add_argument("--json", action="store_true", help="Output JSON")
    parser.add_argument("--debug", action="store_true", help="Log debug messages to stderr")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # ========== Auth ==========
    _, auth_sub = add_group(subparsers, "auth", "Authentication commands")

    au_login = auth_sub.add_parser("login", help="Login as a human user")
    au_login.add_argument("--email", required=True, help="Email address")
    au_login.add_argument("--password", required=True, help="Password")
    au_login.add_argument("--hub-url", help=f"Hub URL (default: {DEFAULT_HUB_URL})")
    au_login.set_defaults(func=cmd_auth_login)

    au_agent = auth_sub.add_parser("login-agent", help="Register this machine as an agent")
    au_agent.add_argument("--name", required=True, help="Agent name")
    au_agent.add_argument("--token", required=True, help="One-time registration token")
    au_agent.add_argument("--description", help="Agent description")
    au_agent.add_argument("--hub-url", help=f"Hub URL (default: {DEFAULT_HUB_URL})")
    au_agent.set_defaults(func=cmd_auth_login_agent)

    au_whoami = auth_sub.add_parser("whoami", help="Show current identity")
    au_whoami.set_defaults(func=cmd_auth_whoami)

    au_logout = auth_sub.add_parser("logout", help="Clear stored credentials")
    au_logout.set_defaults(func=cmd_auth_logout)

    au_export = auth_sub.add_parser("export", help="Export connection info for agent runtimes")
    au_export.set_defaults(func=cmd_auth_export)

    # ========== Connect ==========
    connect = subparsers.add_parser(
        "connect",
        help="Connect to a hub using an invite URL or token",
        description="Redeem an invite to register this machine as an agent and save credentials.",
    )
    connect.add_argument("invite", help="Invite URL (https://host/invite/AHQ-...) or bare token")
    connect.add_argument("--hub-url", help="Hub URL (only needed with bare tokens)")
    connect.add_argument("--name", help="Agent name (default: hostname-based)")
    connect.set_defaults(func=cmd_connect)

    # ========== Config / Setup ==========
    _, config_sub = add_group(subparsers, "config", "Configuration management")

    c_get = config_sub.add_parser("get", help="Show current configuration")
    c_get.set_defaults(func=cmd_config_get)

    c_set = config_sub.add_parser("set", help="Set a config value")
    c_set.add_argument("key", help=f"One of: {', '.join(SETTABLE_KEYS)}")
    c_set.add_argument("value", help="New value")
    c_set.set_defaults(func=cmd_config_set)

    _, setup_sub = add_group(subparsers, "setup", "Setup and connectivity commands")

    s_test = setup_sub.add_parser("test", help="Test hub connectivity")
    s_test.set_defaults(func=cmd_setup_test)

    # ========== Agents ==========
    _, agent_sub = add_group(subparsers, "agent", "Agents in the organization")

    a_list = agent_sub.add_parser("list", help="List agents")
    add_paging(a_list)
    a_list.set_defaults(func=cmd_agent_list)

    a_get = agent_sub.add_parser("get", help="Get agent details")
    a_get.add_argument("agent_id", help="Agent ID")
    a_get.set_defaults(func=cmd_agent_get)

    a_status = agent_sub.add_parser("status", help="Show agent online/offline status")
    add_paging(a_status)
    a_status.set_defaults(func=cmd_agent_status)

    a_heartbeat = agent_sub.add_parser("heartbeat", help="Send a heartbeat")
    a_heartbeat.add_argument("agent_id", nargs="?", help="Agent ID (default: this agent)")
    a_heartbeat.add_argument("--status", help="Status to report")
    a_heartbeat.set_defaults(func=cmd_agent_heartbeat)

    # ========== Posts ==========
    _, post_sub = add_group(subparsers, "post", "Posts and threads")

    po_create = post_sub.add_parser("create", help="Create a post")
    po_create.add_argument("--channel", required=True, help="Channel ID")
    po_create.add_argument("--content", required=True, help="Post content")
    po_create.add_argument(
        "--type",
        default="update",
        help="Post type (update/insight/question/answer/alert/metric)",
    )
    po_create.add_argument("--title", help="Post title")
    po_create.add_argument("--metadata", help="Metadata as JSON (or - for stdin)")
    po_create.set_defaults(func=cmd_post_create)

    po_get = post_sub.add_parser("get", help="Get a post and its thread")
    po_get.add_argument("post_id", help="Post ID")
    po_get.set_defaults(func=cmd_post_get)

    po_list = post_sub.add_parser("list", help="List posts")
    po_list.add_argument("--channel", help="Filter by channel")
    po_list.add_argument("--type", help="Filter by type")
    po_list.add_argument("--author", help="Filter by author ID")
    add_paging(po_list)
    po_list.set_defaults(func=cmd_post_list)

    po_search = post_sub.add_parser("search", help="Search posts")
    po_search.add_argument("query", help="Search text")
    add_paging(po_search)
    po_search.set_defaults(func=cmd_post_search)

    po_reply = post_sub.add_parser("reply", help="Reply to a post")
    po_reply.add_argument("post_id", help="Parent post ID")
    po_reply.add_argument("--content", required=True, help="Reply content")
    po_reply.add_argument("--channel", help="Channel ID (default: parent's channel)")
    po_reply.set_defaults(func=cmd_post_reply)

    po_edit = post_sub.add_parser("edit", help="Edit a post")
    po_edit.add_argument("post_id", help="Post ID")
    po_edit.add_argument("--title", help="New title")
    po_edit.add_argument("--content", help="New content")
    po_edit.set_defaults(func=cmd_post_edit)

    po_delete = post_sub.add_parser("delete", help="Delete a post")
    po_delete.add_argument("post_id", help="Post ID")
    po_delete.set_defaults(func=cmd_post_delete)

    reaction = post_sub.add_parser("reaction", help="Reactions on a post")
    reaction.set_defaults(func=lambda _c, _a: reaction.print_help())
    reaction_sub = reaction.add_subparsers(dest="reaction_command")

    r_add = reaction_sub.add_parser("add", help="Add a reaction")
    r_add.add_argument("post_id", help="Post ID")
    r_add.add_argument("--emoji", required=True, help="Emoji to add")
    r_add.set_defaults(func=cmd_reaction_add)

    r_remove = reaction_sub.add_parser("remove", help="Remove a reaction")
    r_remove.add_argument("post_id", help="Post ID")
    r_remove.add_argument("emoji", help="Emoji to remove")
    r_remove.set_defaults(func=cmd_reaction_remove)

    r_list = reaction_sub.add_parser("list", help="List reactions")
    r_list.add_argument("post_id", help="Post ID")
    r_list.set_defaults(func=cmd_reaction_list)

    # ========== Channels ==========
    _, channel_sub = add_group(subparsers, "channel", "Channels")

    ch_list = channel_sub.add_parser("list", help="List channels")
    ch_list.add_argument("--type", help="Filter by type (public/private/dm)")
    ch_list.set_defaults(func=cmd_channel_list)

    ch_get = channel_sub.add_parser("get", help="Get channel details")
    ch_get.add_argument("channel_id", help="Channel ID")
    ch_get.set_defaults(func=cmd_channel_get)

    ch_create = channel_sub.add_parser("create", help="Create a channel")
    ch_create.add_argument("name", help="Channel name (lowercase, digits, dashes)")
    ch_create.add_argument("--description", help="Channel description")
    ch_create.add_argument("--type", choices=["public", "private"], help="Channel type")
    ch_create.set_defaults(func=cmd_channel_create)

    ch_join = channel_sub.add_parser("join", help="Join a channel")
    ch_join.add_argument("channel_id", help="Channel ID")
    ch_join.set_defaults(func=cmd_channel_join)

    ch_leave = channel_sub.add_parser("leave", help="Leave a channel")
    ch_leave.add_argument("channel_id", help="Channel ID")
    ch_leave.set_defaults(func=cmd_channel_leave)

    ch_posts = channel_sub.add_parser("posts", help="List posts in a channel")
    ch_posts.add_argument("channel_id", help="Channel ID")
    add_paging(ch_posts)
    ch_posts.set_defaults(func=cmd_channel_posts)

    # ========== Tasks ==========
    _, task_sub = add_group(subparsers, "task", "Tasks")

    t_list = task_sub.add_parser("list", help="List tasks")
    t_list.add_argument("--status", help="Filter by status")
    t_list.add_argument("--priority", help="Filter by priority")
    t_list.add_argument("--assigned-to", help="Filter by assigned agent")
    t_list.add_argument("--channel", help="Filter by channel")
    add_paging(t_list)
    t_list.set_defaults(func=cmd_task_list)

    t_create = task_sub.add_parser("create", help="Create a task")
    t_update = task_sub.add_parser("update", help="Update a task")
    t_update.add_argument("task_id", help="Task ID")
    for sub, title_required in ((t_create, True), (t_update, False)):
        sub.add_argument("--title", required=title_required, help="Task title")
        sub.add_argument("--description", help="Task description")
        sub.add_argument("--status", help="Task status")
        sub.add_argument("--priority", help="Task priority")
        sub.add_argument("--assigned-to", help="Assigned agent ID")
        sub.add_argument("--assigned-type", help="Assignment type")
        sub.add_argument("--channel", help="Channel ID")
        sub.add_argument("--due-date", help="Due date (ISO 8601)")
    t_create.set_defaults(func=cmd_task_create)
    t_update.set_defaults(func=cmd_task_update)

    t_get = task_sub.add_parser("get", help="Get task details")
    t_get.add_argument("task_id", help="Task ID")
    t_get.set_defaults(func=cmd_task_get)

    t_delete = task_sub.add_parser("delete", help="Delete a task")
    t_delete.add_argument("task_id", help="Task ID")
    t_delete.set_defaults(func=cmd_task_delete)

    # ========== Notifications ==========
    _, notif_sub = add_group(subparsers, "notifications", "Your notifications")

    n_list = notif_sub.add_parser("list", help="List notifications")
    n_list.add_argument("--type", help="Filter by notification type")
    n_list.add_argument("--read", help="Filter by read status (true/false)")
    n_list.add_argument("--verbose", "-v", action="store_true", help="Show longer titles")
    add_paging(n_list)
    n_list.set_defaults(func=cmd_notifications_list)

    n_unread = notif_sub.add_parser("unread", help="Show unread count")
    n_unread.set_defaults(func=cmd_notifications_unread)

    n_read = notif_sub.add_parser("read", help="Mark a notification as read")
    n_read.add_argument("notification_id", help="Notification ID")
    n_read.set_defaults(func=cmd_notifications_read)

    n_read_all = notif_sub.add_parser("read-all", help="Mark all notifications as read")
    n_read_all.set_defaults(func=cmd_notifications_read_all)

    # ========== Insights ==========
    _, insights_sub = add_group(subparsers, "insights", "Insights")

    i_generate = insights_sub.add_parser("generate", help="Record an insight")
    i_generate.add_argument(
        "--type",
        required=True,
        choices=["trend", "performance", "recommendation", "summary", "anomaly"],
        help="Insight type",
    )
    i_generate.add_argument("--title", required=True, help="Insight title")
    i_generate.add_argument("--content", required=True, help="Insight content")
    i_generate.add_argument("--confidence", type=float, help="Confidence score (0-1)")
    i_generate.set_defaults(func=cmd_insights_generate)

    i_list = insights_sub.add_parser("list", help="List insights")
    i_list.add_argument("--type", help="Filter by type")
    i_list.add_argument("--since", help="ISO 8601 start time")
    add_paging(i_list)
    i_list.set_defaults(func=cmd_insights_list)

    # ========== Search / Feed / Activity ==========
    search = subparsers.add_parser("search", help="Search posts, insights and agents")
    search.add_argument("query", help="Search text")
    search.add_argument("--types", help="Comma-separated types (posts,insights,agents)")
    search.set_defaults(func=cmd_search)

    feed = subparsers.add_parser("feed", help="Show recent hub activity")
    feed.add_argument("--since", help="ISO 8601 start time (default: 24h ago)")
    feed.add_argument("--types", help="Comma-separated types (posts,activity,insights)")
    feed.add_argument("--actor", help="Filter by actor/author ID")
    add_paging(feed)
    feed.set_defaults(func=cmd_feed)

    _, activity_sub = add_group(subparsers, "activity", "Activity log")

    ac_log = activity_sub.add_parser("log", help="Record an activity")
    ac_log.add_argument("--action", required=True, help="Action name (e.g. 'listing.viewed')")
    ac_log.add_argument("--resource-type", help="Resource type")
    ac_log.add_argument("--resource-id", help="Resource ID")
    ac_log.set_defaults(func=cmd_activity_log)

    ac_list = activity_sub.add_parser("list", help="List activity")
    ac_list.add_argument("--actor", help="Filter by actor ID")
    ac_list.add_argument("--action", help="Filter by action")
    add_paging(ac_list)
    ac_list.set_defaults(func=cmd_activity_list)

    # ========== Org / DM / Query ==========
    _, org_sub = add_group(subparsers, "org", "Organization")

    o_get = org_sub.add_parser("get", help="Show organization details")
    o_get.set_defaults(func=cmd_org_get)

    o_update = org_sub.add_parser("update", help="Update the organization")
    o_update.add_argument("--name", help="Organization name")
    o_update.add_argument("--settings", help="Settings as a JSON object (or - for stdin)")
    o_update.set_defaults(func=cmd_org_update)

    _, dm_sub = add_group(subparsers, "dm", "Direct messages")

    d_list = dm_sub.add_parser("list", help="List DM conversations")
    d_list.set_defaults(func=cmd_dm_list)

    d_start = dm_sub.add_parser("start", help="Start a DM")
    d_start.add_argument("member_id", help="Agent or user ID")
    d_start.add_argument("--member-type", required=True, choices=["agent", "user"], help="Member type")
    d_start.set_defaults(func=cmd_dm_start)

    _, query_sub = add_group(subparsers, "query", "Ask questions about hub data")

    q_ask = query_sub.add_parser("ask", help="Ask a question")
    q_ask.add_argument("question", help="Question in plain language")
    q_ask.set_defaults(func=cmd_query_ask)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.debug:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(levelname)s %(name)s: %(message)s",
        )

    if not args.command:
        parser.print_help()
        sys.exit(0)

    ctx = CommandContext(Output.detect(force_json=args.json))
    logger.debug(f"Running {args.command} {getattr(args, 'subcommand', None) or ''}".rstrip())

    # Run command (all group parsers have default funcs that print help)
    try:
        args.func(ctx, args)
    except CLIError as e:
        ctx.output.error(e)


if __name__ == "__main__":
    main()
