"""
Core types for the AgentHQ hub wire contract.

The Envelope wraps every hub response. Resource dataclasses are decoded
leniently from envelope data: unknown keys are ignored, missing keys fall
back to defaults, and nullable hub fields stay None.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")


def _opt_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    return str(value)


# =============================================================================
# Envelope
# =============================================================================


@dataclass(frozen=True)
class ErrorInfo:
    """Machine-readable error descriptor reported by the hub."""

    code: str
    message: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ErrorInfo":
        """Create from envelope 'error' member."""
        return cls(
            code=str(data.get("code") or ""),
            message=str(data.get("message") or ""),
        )


@dataclass(frozen=True)
class Pagination:
    """Pagination descriptor for a single page."""

    page: int = 1
    limit: int = 20
    total: int = 0
    has_more: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Pagination":
        """Create from envelope 'pagination' member."""
        return cls(
            page=int(data.get("page", 1)),
            limit=int(data.get("limit", 20)),
            total=int(data.get("total", 0)),
            has_more=bool(data.get("hasMore", False)),
        )


@dataclass(frozen=True)
class Envelope:
    """Uniform wrapper around every hub response."""

    success: bool
    data: Any = None
    error: ErrorInfo | None = None
    pagination: Pagination | None = None

    @classmethod
    def from_dict(cls, body: Any) -> "Envelope":
        """
        Decode a parsed JSON body.

        Raises:
            ValueError: If the body does not have the envelope shape

        """
        if not isinstance(body, dict):
            raise ValueError(f"expected a JSON object, got {type(body).__name__}")

        success = body.get("success", False)
        if not isinstance(success, bool):
            raise ValueError("'success' must be a boolean")

        error = None
        raw_error = body.get("error")
        if raw_error is not None:
            if not isinstance(raw_error, dict):
                raise ValueError("'error' must be an object")
            error = ErrorInfo.from_dict(raw_error)

        pagination = None
        raw_pagination = body.get("pagination")
        if raw_pagination is not None:
            if not isinstance(raw_pagination, dict):
                raise ValueError("'pagination' must be an object")
            try:
                pagination = Pagination.from_dict(raw_pagination)
            except (TypeError, ValueError) as e:
                raise ValueError(f"invalid 'pagination': {e}") from e

        return cls(
            success=success,
            data=body.get("data"),
            error=error,
            pagination=pagination,
        )

    def data_dict(self) -> dict[str, Any]:
        """Data as an object, or empty dict when the hub sent something else."""
        return self.data if isinstance(self.data, dict) else {}

    def data_list(self) -> list[Any]:
        """Data as a list, or empty list when the hub sent something else."""
        return self.data if isinstance(self.data, list) else []


@dataclass
class Page(Generic[T]):
    """One page of decoded records."""

    data: list[T]
    pagination: Pagination | None = None
    raw: list[Any] = field(default_factory=list, repr=False)

    @property
    def has_more(self) -> bool:
        """Check if the hub reported more results after this page."""
        return self.pagination is not None and self.pagination.has_more

    @property
    def total(self) -> int:
        """Total count reported by the hub, or the page size without pagination."""
        if self.pagination is None:
            return len(self.data)
        return self.pagination.total


# =============================================================================
# Agents
# =============================================================================


@dataclass
class Agent:
    """An agent registered in the organization."""

    id: str
    name: str
    status: str = "offline"
    description: str | None = None
    org_id: str | None = None
    last_heartbeat: str | None = None
    capabilities: list[str] = field(default_factory=list)
    created_at: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Agent":
        """Create from API response dict."""
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name") or "",
            status=data.get("status") or "offline",
            description=data.get("description"),
            org_id=data.get("org_id"),
            last_heartbeat=_opt_str(data, "last_heartbeat"),
            capabilities=data.get("capabilities") or [],
            created_at=_opt_str(data, "created_at"),
            raw=data,
        )


# =============================================================================
# Posts
# =============================================================================


@dataclass
class Post:
    """A post in a channel, or a reply in a thread."""

    id: str
    content: str = ""
    type: str = "update"
    title: str | None = None
    channel_id: str | None = None
    author_id: str | None = None
    author_type: str | None = None
    parent_id: str | None = None
    pinned: bool = False
    created_at: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def display_title(self) -> str:
        """Title, falling back to the content for untitled posts."""
        return self.title or self.content

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Post":
        """Create from API response dict."""
        return cls(
            id=str(data.get("id", "")),
            content=data.get("content") or "",
            type=data.get("type") or "update",
            title=data.get("title"),
            channel_id=data.get("channel_id"),
            author_id=data.get("author_id"),
            author_type=data.get("author_type"),
            parent_id=data.get("parent_id"),
            pinned=bool(data.get("pinned", False)),
            created_at=_opt_str(data, "created_at"),
            raw=data,
        )


@dataclass
class PostThread:
    """A post with its replies."""

    post: Post
    thread: list[Post] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PostThread":
        """Create from API response dict (``{"post": ..., "thread": [...]}`` or a bare post)."""
        post_data = data.get("post") if isinstance(data.get("post"), dict) else data
        return cls(
            post=Post.from_dict(post_data),
            thread=[Post.from_dict(p) for p in data.get("thread") or []],
            raw=data,
        )


@dataclass
class Reaction:
    """An emoji reaction on a post, or a per-emoji summary."""

    emoji: str
    count: int = 1
    id: str | None = None
    user_id: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Reaction":
        """Create from API response dict."""
        return cls(
            emoji=data.get("emoji") or "",
            count=int(data.get("count") or 1),
            id=_opt_str(data, "id"),
            user_id=data.get("user_id") or data.get("author_id"),
            raw=data,
        )


# =============================================================================
# Channels
# =============================================================================


@dataclass
class Channel:
    """A channel (public, private or DM)."""

    id: str
    name: str
    type: str = "public"
    description: str | None = None
    created_at: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Channel":
        """Create from API response dict."""
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name") or "",
            type=data.get("type") or "public",
            description=data.get("description"),
            created_at=_opt_str(data, "created_at"),
            raw=data,
        )


@dataclass
class DMConversation:
    """A direct-message conversation."""

    id: str
    name: str = ""
    member_id: str | None = None
    member_type: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DMConversation":
        """Create from API response dict."""
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name") or "",
            member_id=data.get("member_id"),
            member_type=data.get("member_type"),
            raw=data,
        )


# =============================================================================
# Tasks
# =============================================================================


@dataclass
class Task:
    """A task tracked in the hub."""

    id: str
    title: str
    status: str = "todo"
    priority: str = "medium"
    description: str | None = None
    assigned_to: str | None = None
    assigned_type: str | None = None
    channel_id: str | None = None
    due_date: str | None = None
    created_at: str | None = None
    completed_at: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def is_complete(self) -> bool:
        """Check if the task has been completed."""
        return self.completed_at is not None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        """Create from API response dict."""
        return cls(
            id=str(data.get("id", "")),
            title=data.get("title") or "",
            status=data.get("status") or "todo",
            priority=data.get("priority") or "medium",
            description=data.get("description"),
            assigned_to=data.get("assigned_to"),
            assigned_type=data.get("assigned_type"),
            channel_id=data.get("channel_id"),
            due_date=_opt_str(data, "due_date"),
            created_at=_opt_str(data, "created_at"),
            completed_at=_opt_str(data, "completed_at"),
            raw=data,
        )


# =============================================================================
# Notifications
# =============================================================================


@dataclass
class Notification:
    """A notification addressed to the caller."""

    id: str
    type: str
    title: str = ""
    body: str | None = None
    read: bool = False
    source_id: str | None = None
    actor_id: str | None = None
    created_at: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def display_text(self) -> str:
        """Title, falling back to the body."""
        return self.title or self.body or ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Notification":
        """Create from API response dict."""
        return cls(
            id=str(data.get("id", "")),
            type=data.get("type") or "",
            title=data.get("title") or "",
            body=data.get("body"),
            read=bool(data.get("read", False)),
            source_id=data.get("source_id"),
            actor_id=data.get("actor_id"),
            created_at=_opt_str(data, "created_at"),
            raw=data,
        )


# =============================================================================
# Insights, feed and activity
# =============================================================================


@dataclass
class Insight:
    """A generated insight."""

    id: str
    type: str
    title: str
    content: str = ""
    confidence: float | None = None
    reviewed: bool = False
    created_at: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Insight":
        """Create from API response dict."""
        confidence = data.get("confidence")
        return cls(
            id=str(data.get("id", "")),
            type=data.get("type") or "",
            title=data.get("title") or "",
            content=data.get("content") or "",
            confidence=float(confidence) if confidence is not None else None,
            reviewed=bool(data.get("reviewed", False)),
            created_at=_opt_str(data, "created_at"),
            raw=data,
        )


@dataclass
class FeedItem:
    """An entry in the unified activity timeline."""

    resource_type: str
    resource_id: str
    timestamp: str
    summary: str = ""
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FeedItem":
        """Create from API response dict."""
        return cls(
            resource_type=data.get("resource_type") or "",
            resource_id=str(data.get("resource_id", "")),
            timestamp=str(data.get("timestamp") or ""),
            summary=data.get("summary") or "",
            raw=data,
        )


@dataclass
class ActivityEntry:
    """An activity log entry."""

    id: str
    action: str
    actor_id: str = ""
    actor_type: str | None = None
    resource_type: str | None = None
    resource_id: str | None = None
    created_at: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActivityEntry":
        """Create from API response dict."""
        return cls(
            id=str(data.get("id", "")),
            action=data.get("action") or "",
            actor_id=data.get("actor_id") or "",
            actor_type=data.get("actor_type"),
            resource_type=data.get("resource_type"),
            resource_id=data.get("resource_id"),
            created_at=_opt_str(data, "created_at"),
            raw=data,
        )


# =============================================================================
# Organization
# =============================================================================


@dataclass
class Organization:
    """The caller's organization."""

    id: str
    name: str
    slug: str | None = None
    plan: str | None = None
    settings: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Organization":
        """Create from API response dict."""
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name") or "",
            slug=data.get("slug"),
            plan=data.get("plan"),
            settings=data.get("settings") or {},
            raw=data,
        )


# =============================================================================
# Search and query
# =============================================================================


@dataclass
class SearchResults:
    """Cross-resource search results."""

    posts: list[Post] = field(default_factory=list)
    insights: list[Insight] = field(default_factory=list)
    agents: list[Agent] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def is_empty(self) -> bool:
        """Check if nothing matched."""
        return not (self.posts or self.insights or self.agents)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SearchResults":
        """Create from API response dict."""
        return cls(
            posts=[Post.from_dict(p) for p in data.get("posts") or []],
            insights=[Insight.from_dict(i) for i in data.get("insights") or []],
            agents=[Agent.from_dict(a) for a in data.get("agents") or []],
            raw=data,
        )


@dataclass
class QuerySource:
    """A record cited by a query answer."""

    id: str
    title: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QuerySource":
        """Create from API response dict."""
        return cls(id=str(data.get("id", "")), title=data.get("title"))


@dataclass
class QueryAnswer:
    """Answer to a natural-language question."""

    answer: str
    sources: list[QuerySource] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QueryAnswer":
        """Create from API response dict."""
        return cls(
            answer=data.get("answer") or "",
            sources=[QuerySource.from_dict(s) for s in data.get("sources") or []],
            raw=data,
        )


# =============================================================================
# Auth
# =============================================================================


@dataclass
class LoginResult:
    """Session issued to a human user."""

    access_token: str
    user_id: str = ""
    email: str = ""
    name: str = ""
    org_id: str = ""
    refresh_token: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LoginResult":
        """Create from API response dict."""
        user = data.get("user") or {}
        return cls(
            access_token=data.get("accessToken") or "",
            user_id=str(user.get("id") or ""),
            email=user.get("email") or "",
            name=user.get("name") or "",
            org_id=user.get("org_id") or "",
            refresh_token=data.get("refreshToken"),
        )


@dataclass
class AgentRegistration:
    """Credentials issued to a newly registered agent."""

    api_key: str
    agent_id: str = ""
    agent_name: str = ""
    org_id: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AgentRegistration":
        """Create from API response dict."""
        agent = data.get("agent") or {}
        return cls(
            api_key=data.get("apiKey") or "",
            agent_id=str(agent.get("id") or ""),
            agent_name=agent.get("name") or "",
            # Invite redemption reports orgId at the top level.
            org_id=agent.get("org_id") or data.get("orgId") or "",
        )


InviteRedemption = AgentRegistration
