"""Draft review endpoints: the HTTP twin of the Slack buttons."""

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query

from shippost.api.dependencies import get_approvals
from shippost.api.models import ApproveAllRequest, ApproveAllResponse, DraftActionRequest, DraftOut
from shippost.core import ApprovalAction, ApprovalState, ValidationError
from shippost.use_cases import ApprovalService

router = APIRouter()


@router.get("", response_model=list[DraftOut])
async def list_drafts(
    project_id: Optional[str] = Query(default=None),
    state: Optional[ApprovalState] = Query(default=None),
    approvals: ApprovalService = Depends(get_approvals),
) -> list[DraftOut]:
    drafts = await approvals.list_drafts(project_id=project_id, state=state)
    return [DraftOut.from_draft(d) for d in drafts]


@router.post("/approve-all", response_model=ApproveAllResponse)
async def approve_all(
    request: ApproveAllRequest,
    approvals: ApprovalService = Depends(get_approvals),
) -> ApproveAllResponse:
    drafts = await approvals.approve_all(request.draft_ids)
    return ApproveAllResponse(handled=len(drafts), drafts=[DraftOut.from_draft(d) for d in drafts])


@router.get("/{draft_id}", response_model=DraftOut)
async def get_draft(draft_id: str, approvals: ApprovalService = Depends(get_approvals)) -> DraftOut:
    return DraftOut.from_draft(await approvals.get(draft_id))


@router.post("/{draft_id}/{action}", response_model=DraftOut)
async def resolve_draft(
    draft_id: str,
    action: ApprovalAction,
    request: Optional[DraftActionRequest] = Body(default=None),
    approvals: ApprovalService = Depends(get_approvals),
) -> DraftOut:
    content = request.content if request else None
    if action == ApprovalAction.EDIT and content is None:
        raise ValidationError("content is required to edit a draft")
    draft = await approvals.handle(draft_id, action, content)
    return DraftOut.from_draft(draft)
