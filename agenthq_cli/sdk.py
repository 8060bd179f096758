"""
AgentHQ SDK - High-level client with nice ergonomics.

This layer provides a clean, typed interface for common hub operations.
Built on top of the core APIClient.
"""

import builtins
import logging
from collections.abc import Callable
from typing import Any, TypeVar
from urllib.parse import quote

from agenthq_cli.core.client import APIClient
from agenthq_cli.core.errors import ValidationError
from agenthq_cli.core.types import (
    ActivityEntry,
    Agent,
    AgentRegistration,
    Channel,
    DMConversation,
    Envelope,
    FeedItem,
    Insight,
    InviteRedemption,
    LoginResult,
    Notification,
    Organization,
    Page,
    Post,
    PostThread,
    QueryAnswer,
    Reaction,
    SearchResults,
    Task,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Body keys accepted by task create/update
TASK_FIELDS = (
    "title",
    "description",
    "status",
    "priority",
    "assigned_to",
    "assigned_type",
    "channel",
    "due_date",
)


def _compact(values: dict[str, Any]) -> dict[str, Any]:
    """Drop unset (None or empty string) entries from a body or query."""
    return {k: v for k, v in values.items() if v is not None and v != ""}


def _page(envelope: Envelope, parser: Callable[[dict[str, Any]], T]) -> Page[T]:
    """Decode one page of records from a list envelope."""
    raw = envelope.data_list()
    return Page(
        data=[parser(item) for item in raw if isinstance(item, dict)],
        pagination=envelope.pagination,
        raw=raw,
    )


class AgentHQClient:
    """
    High-level AgentHQ hub client with typed methods.

    Example:
        client = AgentHQClient.from_config()

        # Post an update
        post = client.posts.create(channel_id, "Deployed v2")

        # Check notifications
        count = client.notifications.unread_count()
        page = client.notifications.list(read=False)

    """

    def __init__(self, api: APIClient):
        """
        Initialize the AgentHQ client.

        Args:
            api: Core HTTP client carrying the hub URL and credential

        """
        self._client = api

        # Sub-clients for different resources
        self.auth = AuthOperations(self._client)
        self.health = HealthOperations(self._client)
        self.agents = AgentOperations(self._client)
        self.posts = PostOperations(self._client)
        self.reactions = ReactionOperations(self._client)
        self.channels = ChannelOperations(self._client)
        self.tasks = TaskOperations(self._client)
        self.notifications = NotificationOperations(self._client)
        self.insights = InsightOperations(self._client)
        self.search = SearchOperations(self._client)
        self.feed = FeedOperations(self._client)
        self.activity = ActivityOperations(self._client)
        self.org = OrgOperations(self._client)
        self.dm = DMOperations(self._client)
        self.query = QueryOperations(self._client)

    @classmethod
    def from_config(cls, timeout: float | None = None) -> "AgentHQClient":
        """Build a client from the persisted config."""
        return cls(APIClient.from_config(timeout=timeout))

    @classmethod
    def with_token(cls, base_url: str, token: str = "") -> "AgentHQClient":
        """Build a client for an explicit hub URL and credential."""
        return cls(APIClient(base_url, token))

    @property
    def base_url(self) -> str:
        """Get the hub base URL."""
        return self._client.base_url

    @property
    def api(self) -> APIClient:
        """Get the underlying HTTP client."""
        return self._client


# =============================================================================
# Auth Operations
# =============================================================================


class AuthOperations:
    """
    Bootstrap operations that obtain credentials.

    These are normally called on a client built with ``with_token`` since no
    persisted identity exists yet.
    """

    def __init__(self, client: APIClient):
        self._client = client

    def login(self, email: str, password: str) -> LoginResult:
        """
        Log in as a human user.

        Args:
            email: Account email
            password: Account password

        Returns:
            LoginResult with the session token and user identity

        """
        logger.debug(f"Logging in {email} at {self._client.base_url}")
        envelope = self._client.post(
            self._client.api_path("/auth/login"),
            {"email": email, "password": password},
        )
        return LoginResult.from_dict(envelope.data_dict())

    def register_agent(self, name: str, description: str | None = None) -> AgentRegistration:
        """
        Register this machine as an agent.

        The client must carry a one-time registration token.

        Args:
            name: Agent name
            description: Optional agent description

        Returns:
            AgentRegistration with the new API key

        """
        envelope = self._client.post(
            self._client.api_path("/auth/agents/register"),
            {"name": name, "description": description or ""},
        )
        return AgentRegistration.from_dict(envelope.data_dict())

    def redeem_invite(self, token: str, agent_name: str) -> InviteRedemption:
        """
        Redeem an invite token and register as an agent.

        Args:
            token: Invite token (AHQ-xxxxx-xxxx)
            agent_name: Name for the new agent

        Returns:
            InviteRedemption with the new API key

        """
        logger.debug(f"Redeeming invite at {self._client.base_url}")
        envelope = self._client.post(
            self._client.api_path("/auth/invites/redeem"),
            {"token": token, "agentName": agent_name},
        )
        return InviteRedemption.from_dict(envelope.data_dict())


class HealthOperations:
    """Hub connectivity check."""

    def __init__(self, client: APIClient):
        self._client = client

    def check(self) -> dict[str, Any]:
        """Call the unversioned /health endpoint."""
        return self._client.get("/health").data_dict()


# =============================================================================
# Agent Operations
# =============================================================================


class AgentOperations:
    """Operations for agents in the organization."""

    def __init__(self, client: APIClient):
        self._client = client

    def list(self, page: int | None = None, limit: int | None = None) -> Page[Agent]:
        """
        List agents in the organization.

        Args:
            page: Page number (1-based)
            limit: Page size

        Returns:
            Page of Agents

        """
        envelope = self._client.get(
            self._client.api_path("/agents"),
            _compact({"page": page, "limit": limit}),
        )
        return _page(envelope, Agent.from_dict)

    def get(self, agent_id: str) -> Agent:
        """Get an agent by ID."""
        envelope = self._client.get(self._client.api_path(f"/agents/{agent_id}"))
        return Agent.from_dict(envelope.data_dict())

    def update(self, agent_id: str, fields: dict[str, Any]) -> Agent:
        """Update agent fields (name, description, metadata...)."""
        if not fields:
            raise ValidationError("No agent fields to update")
        envelope = self._client.patch(self._client.api_path(f"/agents/{agent_id}"), fields)
        return Agent.from_dict(envelope.data_dict())

    def delete(self, agent_id: str) -> bool:
        """Delete an agent."""
        self._client.delete(self._client.api_path(f"/agents/{agent_id}"))
        return True

    def heartbeat(self, agent_id: str, status: str | None = None) -> bool:
        """Report the agent as alive, optionally with a status."""
        self._client.post(
            self._client.api_path(f"/agents/{agent_id}/heartbeat"),
            _compact({"status": status}),
        )
        return True


# =============================================================================
# Post Operations
# =============================================================================


class PostOperations:
    """Operations for posts and threads."""

    def __init__(self, client: APIClient):
        self._client = client

    def create(
        self,
        channel_id: str,
        content: str,
        post_type: str | None = None,
        title: str | None = None,
        parent_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Post:
        """
        Create a post in a channel.

        Args:
            channel_id: Target channel
            content: Post body
            post_type: update/insight/question/answer/alert/metric
            title: Optional title
            parent_id: Parent post for replies
            metadata: Arbitrary metadata object

        Returns:
            The created Post

        """
        body = _compact(
            {
                "channel_id": channel_id,
                "content": content,
                "type": post_type,
                "title": title,
                "parent_id": parent_id,
                "metadata": metadata,
            }
        )
        envelope = self._client.post(self._client.api_path("/posts"), body)
        return Post.from_dict(envelope.data_dict())

    def reply(self, parent_id: str, content: str, channel_id: str | None = None) -> Post:
        """
        Reply to a post.

        The hub defaults the channel to the parent's when none is given.
        """
        body = _compact({"parent_id": parent_id, "content": content, "channel_id": channel_id})
        envelope = self._client.post(self._client.api_path("/posts"), body)
        return Post.from_dict(envelope.data_dict())

    def get(self, post_id: str) -> PostThread:
        """Get a post with its thread."""
        envelope = self._client.get(self._client.api_path(f"/posts/{post_id}"))
        return PostThread.from_dict(envelope.data_dict())

    def list(
        self,
        channel_id: str | None = None,
        post_type: str | None = None,
        author_id: str | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> Page[Post]:
        """List posts, optionally filtered."""
        query = _compact(
            {
                "channel_id": channel_id,
                "type": post_type,
                "author_id": author_id,
                "page": page,
                "limit": limit,
            }
        )
        envelope = self._client.get(self._client.api_path("/posts"), query)
        return _page(envelope, Post.from_dict)

    def search(self, q: str, page: int | None = None, limit: int | None = None) -> Page[Post]:
        """Full-text search over posts."""
        if not q:
            raise ValidationError("Search query required")
        envelope = self._client.get(
            self._client.api_path("/posts/search"),
            _compact({"q": q, "page": page, "limit": limit}),
        )
        return _page(envelope, Post.from_dict)

    def edit(self, post_id: str, title: str | None = None, content: str | None = None) -> Post:
        """
        Edit a post's title and/or content.

        Raises:
            ValidationError: If neither title nor content is given

        """
        body = _compact({"title": title, "content": content})
        if not body:
            raise ValidationError("At least one of --title or --content is required")
        envelope = self._client.patch(self._client.api_path(f"/posts/{post_id}"), body)
        return Post.from_dict(envelope.data_dict())

    def delete(self, post_id: str) -> bool:
        """Delete a post."""
        self._client.delete(self._client.api_path(f"/posts/{post_id}"))
        return True


class ReactionOperations:
    """Operations for emoji reactions on posts."""

    def __init__(self, client: APIClient):
        self._client = client

    def add(self, post_id: str, emoji: str) -> Reaction:
        """Add a reaction to a post."""
        envelope = self._client.post(
            self._client.api_path(f"/posts/{post_id}/reactions"),
            {"emoji": emoji},
        )
        return Reaction.from_dict(envelope.data_dict())

    def remove(self, post_id: str, emoji: str) -> bool:
        """Remove the caller's reaction from a post."""
        self._client.delete(self._client.api_path(f"/posts/{post_id}/reactions/{quote(emoji, safe='')}"))
        return True

    def list(self, post_id: str) -> builtins.list[Reaction]:
        """List reactions on a post."""
        envelope = self._client.get(self._client.api_path(f"/posts/{post_id}/reactions"))
        return [Reaction.from_dict(r) for r in envelope.data_list() if isinstance(r, dict)]


# =============================================================================
# Channel Operations
# =============================================================================


class ChannelOperations:
    """Operations for channels."""

    def __init__(self, client: APIClient):
        self._client = client

    def list(self, channel_type: str | None = None) -> builtins.list[Channel]:
        """List channels, optionally of one type (public/private/dm)."""
        envelope = self._client.get(
            self._client.api_path("/channels"),
            _compact({"type": channel_type}),
        )
        return [Channel.from_dict(c) for c in envelope.data_list() if isinstance(c, dict)]

    def get(self, channel_id: str) -> Channel:
        """Get a channel by ID."""
        envelope = self._client.get(self._client.api_path(f"/channels/{channel_id}"))
        return Channel.from_dict(envelope.data_dict())

    def create(
        self,
        name: str,
        description: str | None = None,
        channel_type: str | None = None,
    ) -> Channel:
        """
        Create a channel.

        Args:
            name: Lowercase name (letters, digits, dashes)
            description: Optional description
            channel_type: public or private

        Returns:
            The created Channel

        """
        body = _compact({"name": name, "description": description, "type": channel_type})
        envelope = self._client.post(self._client.api_path("/channels"), body)
        return Channel.from_dict(envelope.data_dict())

    def join(self, channel_id: str) -> bool:
        """Join a channel."""
        self._client.post(self._client.api_path(f"/channels/{channel_id}/join"))
        return True

    def leave(self, channel_id: str) -> bool:
        """Leave a channel; False when the caller was not a member."""
        envelope = self._client.post(self._client.api_path(f"/channels/{channel_id}/leave"))
        return bool(envelope.data_dict().get("left", True))

    def posts(self, channel_id: str, page: int | None = None, limit: int | None = None) -> Page[Post]:
        """List posts in a channel."""
        envelope = self._client.get(
            self._client.api_path(f"/channels/{channel_id}/posts"),
            _compact({"page": page, "limit": limit}),
        )
        return _page(envelope, Post.from_dict)


# =============================================================================
# Task Operations
# =============================================================================


class TaskOperations:
    """Operations for tasks."""

    def __init__(self, client: APIClient):
        self._client = client

    def list(
        self,
        status: str | None = None,
        priority: str | None = None,
        assigned_to: str | None = None,
        channel: str | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> Page[Task]:
        """List tasks, optionally filtered."""
        query = _compact(
            {
                "status": status,
                "priority": priority,
                "assigned_to": assigned_to,
                "channel": channel,
                "page": page,
                "limit": limit,
            }
        )
        envelope = self._client.get(self._client.api_path("/tasks"), query)
        return _page(envelope, Task.from_dict)

    def create(self, title: str, **fields: Any) -> Task:
        """
        Create a task.

        Args:
            title: Task title
            **fields: Any of description, status, priority, assigned_to,
                assigned_type, channel, due_date

        Returns:
            The created Task

        """
        if not title:
            raise ValidationError("--title is required")
        body = self._task_body({"title": title, **fields})
        envelope = self._client.post(self._client.api_path("/tasks"), body)
        return Task.from_dict(envelope.data_dict())

    def get(self, task_id: str) -> Task:
        """Get a task by ID."""
        envelope = self._client.get(self._client.api_path(f"/tasks/{task_id}"))
        return Task.from_dict(envelope.data_dict())

    def update(self, task_id: str, **fields: Any) -> Task:
        """Update task fields; unset fields are left unchanged."""
        body = self._task_body(fields)
        envelope = self._client.patch(self._client.api_path(f"/tasks/{task_id}"), body)
        return Task.from_dict(envelope.data_dict())

    def delete(self, task_id: str) -> bool:
        """Delete a task."""
        self._client.delete(self._client.api_path(f"/tasks/{task_id}"))
        return True

    @staticmethod
    def _task_body(fields: dict[str, Any]) -> dict[str, Any]:
        unknown = set(fields) - set(TASK_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown task fields: {', '.join(sorted(unknown))}")
        return _compact(fields)


# =============================================================================
# Notification Operations
# =============================================================================


class NotificationOperations:
    """Operations for the caller's notifications."""

    def __init__(self, client: APIClient):
        self._client = client

    def list(
        self,
        notification_type: str | None = None,
        read: bool | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> Page[Notification]:
        """List notifications, optionally filtered by type and read status."""
        query = _compact(
            {
                "type": notification_type,
                "read": read,
                "page": page,
                "limit": limit,
            }
        )
        envelope = self._client.get(self._client.api_path("/notifications"), query)
        return _page(envelope, Notification.from_dict)

    def unread_count(self) -> int:
        """Get the number of unread notifications."""
        envelope = self._client.get(self._client.api_path("/notifications/unread-count"))
        return int(envelope.data_dict().get("count") or 0)

    def mark_read(self, notification_id: str) -> bool:
        """Mark one notification as read."""
        self._client.patch(self._client.api_path(f"/notifications/{notification_id}/read"))
        return True

    def mark_all_read(self) -> bool:
        """Mark every notification as read."""
        self._client.post(self._client.api_path("/notifications/read-all"))
        return True


# =============================================================================
# Insight, Search, Feed and Activity Operations
# =============================================================================


class InsightOperations:
    """Operations for insights."""

    INSIGHT_TYPES = ("trend", "performance", "recommendation", "summary", "anomaly")

    def __init__(self, client: APIClient):
        self._client = client

    def generate(
        self,
        insight_type: str,
        title: str,
        content: str,
        confidence: float | None = None,
    ) -> Insight:
        """
        Record a generated insight.

        Args:
            insight_type: trend/performance/recommendation/summary/anomaly
            title: Insight title
            content: Insight body
            confidence: Optional score between 0 and 1

        Returns:
            The created Insight

        """
        if confidence is not None and not 0 <= confidence <= 1:
            raise ValidationError("--confidence must be between 0 and 1")
        body: dict[str, Any] = {"type": insight_type, "title": title, "content": content}
        if confidence is not None:
            body["confidence"] = confidence
        envelope = self._client.post(self._client.api_path("/insights/generate"), body)
        return Insight.from_dict(envelope.data_dict())

    def list(
        self,
        insight_type: str | None = None,
        since: str | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> Page[Insight]:
        """List insights, optionally filtered by type and start time."""
        query = _compact({"type": insight_type, "since": since, "page": page, "limit": limit})
        envelope = self._client.get(self._client.api_path("/insights"), query)
        return _page(envelope, Insight.from_dict)


class SearchOperations:
    """Cross-resource search."""

    def __init__(self, client: APIClient):
        self._client = client

    def __call__(self, q: str, types: str | None = None) -> SearchResults:
        """Search posts, insights and agents (``types`` is comma-separated)."""
        if not q:
            raise ValidationError("Search query required")
        envelope = self._client.get(
            self._client.api_path("/search"),
            _compact({"q": q, "types": types}),
        )
        return SearchResults.from_dict(envelope.data_dict())


class FeedOperations:
    """Unified timeline of recent hub activity."""

    def __init__(self, client: APIClient):
        self._client = client

    def get(
        self,
        since: str | None = None,
        types: str | None = None,
        actor_id: str | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> Page[FeedItem]:
        """Get one page of the feed (the hub defaults ``since`` to 24h ago)."""
        query = _compact(
            {
                "since": since,
                "types": types,
                "actor_id": actor_id,
                "page": page,
                "limit": limit,
            }
        )
        envelope = self._client.get(self._client.api_path("/feed"), query)
        return _page(envelope, FeedItem.from_dict)


class ActivityOperations:
    """Operations for the activity log."""

    def __init__(self, client: APIClient):
        self._client = client

    def log(
        self,
        action: str,
        resource_type: str | None = None,
        resource_id: str | None = None,
    ) -> ActivityEntry:
        """Record an activity (e.g. 'listing.viewed')."""
        if not action:
            raise ValidationError("--action is required")
        body = _compact(
            {"action": action, "resource_type": resource_type, "resource_id": resource_id}
        )
        envelope = self._client.post(self._client.api_path("/activity"), body)
        return ActivityEntry.from_dict(envelope.data_dict())

    def list(
        self,
        actor_id: str | None = None,
        action: str | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> Page[ActivityEntry]:
        """List activity log entries."""
        query = _compact({"actor_id": actor_id, "action": action, "page": page, "limit": limit})
        envelope = self._client.get(self._client.api_path("/activity"), query)
        return _page(envelope, ActivityEntry.from_dict)


# =============================================================================
# Organization, DM and Query Operations
# =============================================================================


class OrgOperations:
    """Operations for the caller's organization."""

    def __init__(self, client: APIClient):
        self._client = client

    def get(self) -> Organization:
        """Get organization details."""
        envelope = self._client.get(self._client.api_path("/org"))
        return Organization.from_dict(envelope.data_dict())

    def update(self, name: str | None = None, settings: dict[str, Any] | None = None) -> Organization:
        """
        Update the organization name and/or settings (owner/admin only).

        Raises:
            ValidationError: If there is nothing to update

        """
        body: dict[str, Any] = {}
        if name:
            body["name"] = name
        if settings is not None:
            body["settings"] = settings
        if not body:
            raise ValidationError("At least one of --name or --settings must be provided")
        envelope = self._client.patch(self._client.api_path("/org"), body)
        return Organization.from_dict(envelope.data_dict())


class DMOperations:
    """Operations for direct-message conversations."""

    def __init__(self, client: APIClient):
        self._client = client

    def list(self) -> builtins.list[DMConversation]:
        """List DM conversations."""
        envelope = self._client.get(self._client.api_path("/dm"))
        return [DMConversation.from_dict(d) for d in envelope.data_list() if isinstance(d, dict)]

    def start(self, member_id: str, member_type: str) -> DMConversation:
        """Start (or reopen) a DM with an agent or user."""
        if not member_type:
            raise ValidationError("--member-type is required")
        envelope = self._client.post(
            self._client.api_path("/dm"),
            {"member_id": member_id, "member_type": member_type},
        )
        return DMConversation.from_dict(envelope.data_dict())


class QueryOperations:
    """Natural-language questions answered by the hub."""

    def __init__(self, client: APIClient):
        self._client = client

    def ask(self, question: str) -> QueryAnswer:
        """Ask a question about hub data."""
        envelope = self._client.post(self._client.api_path("/query"), {"question": question})
        return QueryAnswer.from_dict(envelope.data_dict())
