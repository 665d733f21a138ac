"""Catalog of manual groups: communities that have no publishing API.

Posts for these groups are queued as paste packages and a human pastes
them in, one group at a time.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

import structlog

from shippost.core.entities import Destination, DestinationKind, utcnow
from shippost.core.errors import NotFoundError, ValidationError

logger = structlog.get_logger(__name__)

DEFAULT_CATEGORY = "general"
DEFAULT_PLATFORM = "facebook"


@dataclass
class ManualGroup:
    """A community posted to by hand."""

    id: str
    name: str
    url: str
    category: str = DEFAULT_CATEGORY
    platform: str = DEFAULT_PLATFORM
    description: Optional[str] = None

    def to_destination(self) -> Destination:
        return Destination(
            name=self.id,
            kind=DestinationKind.MANUAL_GROUP,
            platform=self.platform,
            url=self.url,
            label=self.name,
        )


@dataclass
class QueuedGroupPost:
    """Content waiting to be pasted into a set of groups."""

    id: str
    content: str
    group_ids: list[str]
    status: str = "pending"
    created_at: datetime = field(default_factory=utcnow)


def group_from_dict(group_id: str, data: dict[str, Any]) -> ManualGroup:
    data = dict(data or {})
    name = (data.get("name") or "").strip()
    url = (data.get("url") or "").strip()
    if not group_id or not name or not url:
        raise ValidationError("id, name, and url are required")
    return ManualGroup(
        id=group_id,
        name=name,
        url=url,
        category=data.get("category") or DEFAULT_CATEGORY,
        platform=data.get("platform") or DEFAULT_PLATFORM,
        description=data.get("description"),
    )


def group_to_dict(group: ManualGroup) -> dict[str, Any]:
    return {
        "name": group.name,
        "url": group.url,
        "category": group.category,
        "platform": group.platform,
        "description": group.description,
    }


class GroupCatalog:
    """Known manual groups plus the queue of posts waiting to be pasted."""

    def __init__(self, groups: Optional[dict[str, dict[str, Any]]] = None) -> None:
        self._groups: dict[str, ManualGroup] = {
            group_id: group_from_dict(group_id, data)
            for group_id, data in (groups or {}).items()
        }
        self._queue: dict[str, QueuedGroupPost] = {}

    def get(self, group_id: str) -> Optional[ManualGroup]:
        return self._groups.get(group_id)

    def groups(self, category: Optional[str] = None) -> list[ManualGroup]:
        found = list(self._groups.values())
        if category is not None:
            found = [g for g in found if g.category == category]
        return found

    def add(self, group_id: str, data: dict[str, Any]) -> ManualGroup:
        """Add a group, replacing any group with the same id."""
        group = group_from_dict(group_id, data)
        replaced = group_id in self._groups
        self._groups[group_id] = group
        self._persist()
        logger.info("Manual group saved", group=group_id, category=group.category, replaced=replaced)
        return group

    def queue(self, content: str, group_ids: Optional[list[str]] = None) -> QueuedGroupPost:
        """Queue content for the given groups, or for every known group."""
        content = (content or "").strip()
        if not content:
            raise ValidationError("content is required")

        ids = list(group_ids) if group_ids else list(self._groups)
        if not ids:
            raise ValidationError("No manual groups configured")
        unknown = [g for g in ids if g not in self._groups]
        if unknown:
            raise ValidationError(f"Unknown groups: {', '.join(unknown)}")

        post = QueuedGroupPost(id=f"grp-{uuid.uuid4().hex[:12]}", content=content, group_ids=ids)
        self._queue[post.id] = post
        logger.info("Group post queued", post=post.id, groups=len(ids))
        return post

    def queued(self, post_id: str) -> QueuedGroupPost:
        post = self._queue.get(post_id)
        if post is None:
            raise NotFoundError(f"Queued post not found: {post_id}")
        return post

    def _persist(self) -> None:
        """Hook for durable subclasses."""
