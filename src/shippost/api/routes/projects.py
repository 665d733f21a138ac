"""Project management endpoints."""

from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends, status

from shippost.api.dependencies import get_pipeline, get_registry, get_settings_dep, get_voice
from shippost.api.models import GenerationResponse
from shippost.config import Settings
from shippost.core import NotFoundError, ProjectRegistry
from shippost.core.projects import project_to_dict
from shippost.core.voice import VoiceAnalyzer
from shippost.use_cases import PostingPipeline

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("")
async def list_projects(registry: ProjectRegistry = Depends(get_registry)) -> dict[str, Any]:
    projects = await registry.list_all()
    return {"success": True, "projects": [project_to_dict(p) for p in projects]}


@router.get("/meta/voices")
async def list_voices(settings: Settings = Depends(get_settings_dep)) -> dict[str, Any]:
    return {"success": True, "voices": settings.voices}


@router.get("/meta/platforms")
async def list_platforms(settings: Settings = Depends(get_settings_dep)) -> dict[str, Any]:
    platforms = {
        name: {"name": fmt.display_name, "maxLength": fmt.max_length, "hashtagStyle": fmt.hashtag_style}
        for name, fmt in settings.platform_formats.items()
    }
    return {"success": True, "platforms": platforms}


@router.get("/{project_id}")
async def get_project(project_id: str, registry: ProjectRegistry = Depends(get_registry)) -> dict[str, Any]:
    project = await registry.get(project_id)
    if project is None:
        raise NotFoundError(f"Project not found: {project_id}")
    return {"success": True, "project": project_to_dict(project)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_project(
    payload: dict[str, Any] = Body(...),
    registry: ProjectRegistry = Depends(get_registry),
) -> dict[str, Any]:
    project = await registry.create(payload)
    logger.info("Project created", project=project.id, repository=project.repository)
    return {"success": True, "project": project_to_dict(project)}


@router.put("/{project_id}")
@router.patch("/{project_id}")
async def update_project(
    project_id: str,
    payload: dict[str, Any] = Body(...),
    registry: ProjectRegistry = Depends(get_registry),
) -> dict[str, Any]:
    project = await registry.update(project_id, payload)
    logger.info("Project updated", project=project.id, fields=sorted(payload))
    return {"success": True, "project": project_to_dict(project)}


@router.delete("/{project_id}")
async def delete_project(project_id: str, registry: ProjectRegistry = Depends(get_registry)) -> dict[str, Any]:
    await registry.delete(project_id)
    logger.info("Project deleted", project=project_id)
    return {"success": True}


@router.post("/{project_id}/generate", response_model=GenerationResponse)
async def generate_for_project(
    project_id: str,
    pipeline: PostingPipeline = Depends(get_pipeline),
) -> GenerationResponse:
    result = await pipeline.generate_for_project(project_id)
    return GenerationResponse.from_result(result)


@router.get("/{project_id}/voice")
async def project_voice(
    project_id: str,
    refresh: bool = False,
    registry: ProjectRegistry = Depends(get_registry),
    voice: VoiceAnalyzer = Depends(get_voice),
) -> dict[str, Any]:
    """Learned voice fingerprint of a project; refresh=true re-runs the analysis."""
    project = await registry.get(project_id)
    if project is None:
        raise NotFoundError(f"Project not found: {project_id}")
    context = await voice.context(project, refresh=refresh)
    return {
        "success": True,
        "project": project.id,
        "examples": context.example_count,
        "sections": sorted(context.sections),
        "fingerprint": context.fingerprint,
    }
