"""
Health check endpoint.
"""

from fastapi import APIRouter, Depends

from shippost import __version__
from shippost.api.dependencies import get_container
from shippost.api.models import HealthResponse
from shippost.container import Container

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(container: Container = Depends(get_container)) -> HealthResponse:
    settings = container.settings
    return HealthResponse(
        version=__version__,
        storage=settings.storage.backend,
        approval_channel=container.slack is not None,
        publisher_configured=bool(settings.post_bridge_api_key),
    )
