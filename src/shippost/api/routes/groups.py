"""Manual group catalog and the queue of posts waiting to be pasted."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, status

from shippost.adapters.notifications.slack_channel import group_queue_message
from shippost.api.dependencies import get_groups
from shippost.api.models import GroupIn, GroupQueueRequest
from shippost.core import GroupCatalog, ManualGroup, QueuedGroupPost
from shippost.core.groups import group_to_dict

router = APIRouter()


def _group_out(group: ManualGroup) -> dict[str, Any]:
    return {"id": group.id, **group_to_dict(group)}


def _queued_out(post: QueuedGroupPost) -> dict[str, Any]:
    return {
        "postId": post.id,
        "content": post.content,
        "groups": post.group_ids,
        "status": post.status,
        "createdAt": post.created_at.isoformat(),
    }


@router.get("")
async def list_groups(
    category: Optional[str] = None,
    catalog: GroupCatalog = Depends(get_groups),
) -> dict[str, Any]:
    return {"success": True, "groups": [_group_out(g) for g in catalog.groups(category)]}


@router.get("/category/{category}")
async def groups_by_category(category: str, catalog: GroupCatalog = Depends(get_groups)) -> dict[str, Any]:
    return {"success": True, "groups": [_group_out(g) for g in catalog.groups(category)]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def add_group(request: GroupIn, catalog: GroupCatalog = Depends(get_groups)) -> dict[str, Any]:
    group = catalog.add(request.id, request.model_dump(exclude={"id"}, exclude_none=True))
    return {"success": True, "group": _group_out(group)}


@router.post("/queue")
async def queue_post(request: GroupQueueRequest, catalog: GroupCatalog = Depends(get_groups)) -> dict[str, Any]:
    post = catalog.queue(request.content, request.groups)
    return {
        "success": True,
        **_queued_out(post),
        "message": f"Post queued for {len(post.group_ids)} groups",
    }


@router.get("/queue/{post_id}")
async def get_queued_post(post_id: str, catalog: GroupCatalog = Depends(get_groups)) -> dict[str, Any]:
    return {"success": True, **_queued_out(catalog.queued(post_id))}


@router.get("/slack-message/{post_id}")
async def slack_message(post_id: str, catalog: GroupCatalog = Depends(get_groups)) -> dict[str, Any]:
    """Slack blocks with a link button per group, ready for chat.postMessage."""
    post = catalog.queued(post_id)
    return group_queue_message(post, catalog.groups())
