"""Core domain entities."""

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo


class PostFrequency(str, Enum):
    """Posting cadence of a project."""

    DAILY_DIGEST = "daily-digest"
    PER_COMMIT = "per-commit"
    SMART = "smart"
    IMMEDIATE = "immediate"

    @property
    def posts_on_push(self) -> bool:
        return self in (PostFrequency.PER_COMMIT, PostFrequency.IMMEDIATE)


class DestinationKind(str, Enum):
    """How a publishing target is reached."""

    DIRECT = "direct"
    MANUAL_GROUP = "manual-group"


class ApprovalState(str, Enum):
    """Lifecycle state of a draft."""

    PENDING = "pending"
    APPROVED = "approved"
    EDITED = "edited"
    SKIPPED = "skipped"
    PUBLISHED = "published"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ApprovalState.PUBLISHED, ApprovalState.FAILED, ApprovalState.SKIPPED)


class ApprovalAction(str, Enum):
    """Decision taken by a reviewer on the approval channel."""

    APPROVE = "approve"
    EDIT = "edit"
    SKIP = "skip"


@dataclass(frozen=True)
class PlatformFormat:
    """Formatting constraints of a social platform."""

    name: str
    display_name: str
    max_length: int
    hashtag_style: str


PLATFORM_FORMATS: dict[str, PlatformFormat] = {
    "twitter": PlatformFormat("twitter", "X (Twitter)", 280, "1-2 max, #buildinpublic primary"),
    "linkedin": PlatformFormat("linkedin", "LinkedIn", 3000, "bottom block, 3-5 tags"),
    "facebook": PlatformFormat("facebook", "Facebook", 5000, "minimal, community-focused"),
    "instagram": PlatformFormat("instagram", "Instagram", 2200, "separate comment or bottom block"),
}

PLATFORM_ALIASES = {
    "x": "twitter",
    "fb": "facebook",
}


def normalize_platform(platform: str) -> str:
    """Map platform aliases to their canonical name."""
    name = platform.strip().lower()
    return PLATFORM_ALIASES.get(name, name)


def platform_format(
    platform: str, formats: Optional[dict[str, PlatformFormat]] = None
) -> PlatformFormat:
    """Get formatting constraints, falling back to twitter for unknown platforms."""
    formats = formats or PLATFORM_FORMATS
    return formats.get(normalize_platform(platform)) or formats["twitter"]


def slugify(name: str) -> str:
    """Generate a URL-safe id from a name."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def start_of_day(tz_name: str = "UTC", now: Optional[datetime] = None) -> datetime:
    """Midnight of the current calendar day in the given timezone."""
    tz = ZoneInfo(tz_name)
    local = (now or utcnow()).astimezone(tz)
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


@dataclass
class Commit:
    """One VCS commit recorded for a project."""

    id: str
    project_id: str
    message: str
    author: str
    timestamp: datetime
    files_changed: int = 0
    processed: bool = False

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Commit id cannot be empty")
        if not self.message:
            raise ValueError("Commit message cannot be empty")
        if self.timestamp.tzinfo is None:
            self.timestamp = self.timestamp.replace(tzinfo=timezone.utc)


@dataclass
class Brand:
    """Brand identity a project posts as."""

    name: str
    voice: str = "casual-founder"
    platforms: list[str] = field(default_factory=lambda: ["twitter"])
    account_handle: Optional[str] = None
    examples: list[str] = field(default_factory=list)
    voice_file: Optional[str] = None


@dataclass
class Tagging:
    """Mention rules for generated posts."""

    always_tag: list[str] = field(default_factory=list)
    topic_tags: dict[str, list[str]] = field(default_factory=dict)

    def suggestions(self, topics: list[str]) -> list[str]:
        """Handles to mention for the given topics, always-tag handles first."""
        handles: list[str] = []
        wanted = {t.lower() for t in topics}
        candidates = list(self.always_tag)
        for topic, topic_handles in self.topic_tags.items():
            if topic.lower() in wanted:
                candidates.extend(topic_handles)
        for handle in candidates:
            if handle not in handles:
                handles.append(handle)
        return handles


@dataclass
class Destination:
    """Publishing target of a draft."""

    name: str
    kind: DestinationKind = DestinationKind.DIRECT
    platform: str = ""
    account_id: Optional[str] = None
    url: Optional[str] = None
    label: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.platform:
            self.platform = normalize_platform(self.name)
        self.kind = DestinationKind(self.kind)

    @property
    def is_manual(self) -> bool:
        return self.kind == DestinationKind.MANUAL_GROUP

    @property
    def display_name(self) -> str:
        return self.label or self.name


@dataclass
class Project:
    """A brand/repository the system posts on behalf of."""

    id: str
    name: str
    repository: Optional[str]
    brand: Brand
    tagging: Tagging = field(default_factory=Tagging)
    post_frequency: PostFrequency = PostFrequency.DAILY_DIGEST
    slack_channel: Optional[str] = None
    active: bool = True
    destinations: dict[str, Destination] = field(default_factory=dict)
    product: Optional[str] = None
    goal: Optional[str] = None
    target_audience: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Project name cannot be empty")
        if not self.id:
            self.id = slugify(self.name)
        self.post_frequency = PostFrequency(self.post_frequency)


@dataclass
class Selection:
    """Commits picked by the selection stage plus the narrative around them."""

    commits: list[Commit]
    theme: str
    angle: str = ""
    hook_type: str = ""
    topics: list[str] = field(default_factory=list)


@dataclass
class ClassificationResult:
    """Partition of a commit set into immediate and batch."""

    immediate: list[Commit] = field(default_factory=list)
    batch: list[Commit] = field(default_factory=list)
    reasoning: Optional[str] = None


@dataclass
class ParseError:
    """Failed decode of text generation output."""

    reason: str
    raw: str = ""


@dataclass
class PublishResult:
    """Outcome of a publish call."""

    success: bool
    external_post_id: Optional[str] = None
    error: Optional[str] = None
    duplicate: bool = False


@dataclass
class PastePackage:
    """Ready-to-paste content for a manual-group destination."""

    content: str
    destination_name: str
    url: Optional[str]


def new_draft_id(project_id: str) -> str:
    return f"{project_id}-{uuid.uuid4().hex[:12]}"


@dataclass
class Draft:
    """Generated candidate post for one platform target."""

    id: str
    project_id: str
    platform: str
    content: str
    source_commit_ids: list[str]
    selection: Optional[Selection] = None
    destination: Optional[Destination] = None
    approval_state: ApprovalState = ApprovalState.PENDING
    generated_at: datetime = field(default_factory=utcnow)
    channel: Optional[str] = None
    message_ref: Optional[str] = None
    external_post_id: Optional[str] = None
    error: Optional[str] = None
    history: list[ApprovalState] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.history:
            self.history.append(self.approval_state)

    @property
    def theme(self) -> str:
        return self.selection.theme if self.selection else ""

    @property
    def is_terminal(self) -> bool:
        return self.approval_state.is_terminal

    def transition(self, state: ApprovalState) -> None:
        self.approval_state = state
        self.history.append(state)
