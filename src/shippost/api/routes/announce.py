"""Announcements that skip the commit flow but still need approval."""

from typing import Any

from fastapi import APIRouter, Depends

from shippost.api.dependencies import get_announcements
from shippost.api.models import AnnouncementResponse, FeatureAnnouncementRequest, QuickAnnouncementRequest
from shippost.use_cases import AnnouncementService

router = APIRouter()


@router.post("/feature", response_model=AnnouncementResponse)
async def announce_feature(
    request: FeatureAnnouncementRequest,
    announcements: AnnouncementService = Depends(get_announcements),
) -> AnnouncementResponse:
    result = await announcements.announce_feature(
        request.project,
        request.feature,
        description=request.description,
        platforms=request.platforms,
    )
    return AnnouncementResponse.from_result(result)


@router.post("/quick", response_model=AnnouncementResponse)
async def announce_quick(
    request: QuickAnnouncementRequest,
    announcements: AnnouncementService = Depends(get_announcements),
) -> AnnouncementResponse:
    result = await announcements.announce_quick(request.project, request.message, platforms=request.platforms)
    return AnnouncementResponse.from_result(result)


@router.get("/projects")
async def announcement_projects(
    announcements: AnnouncementService = Depends(get_announcements),
) -> dict[str, Any]:
    return {"success": True, "projects": await announcements.list_targets()}
